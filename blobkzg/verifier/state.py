"""Keyed run state with all-or-nothing commits.

``RunStateStore`` holds ``RunState`` (run key -> latest digest) and the
global ``LastRunDigest``. Writes are staged in a ``RunStateTransaction``
and applied together under a lock on commit; a transaction that is never
committed leaves the store exactly as it was.

Same-key commits serialize on the lock with last-writer-wins semantics.
The per-key write counts expose that contention to harnesses.
"""

from __future__ import annotations

import json
import os
import secrets
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

RUN_KEY_BYTES = 32
DIGEST_BYTES = 32
ZERO_DIGEST = b"\x00" * DIGEST_BYTES
DEFAULT_RUN_KEY = b"\x00" * RUN_KEY_BYTES

SNAPSHOT_SCHEMA_VERSION = 1


def validate_run_key(key: bytes) -> bytes:
    """Check that a run key is 32 bytes. Content is never interpreted."""
    if not isinstance(key, (bytes, bytearray)):
        raise ValueError(f"run key must be bytes, got {type(key).__name__}")
    if len(key) != RUN_KEY_BYTES:
        raise ValueError(f"run key must be {RUN_KEY_BYTES} bytes, got {len(key)}")
    return bytes(key)


@dataclass
class RunStateTransaction:
    """Writes staged by one batch call, invisible until committed."""

    key: Optional[bytes] = None
    digest: Optional[bytes] = None
    version: Optional[int] = None

    def stage(self, key: bytes, digest: bytes) -> None:
        if len(digest) != DIGEST_BYTES:
            raise ValueError(f"digest must be {DIGEST_BYTES} bytes, got {len(digest)}")
        self.key = validate_run_key(key)
        self.digest = bytes(digest)

    @property
    def has_writes(self) -> bool:
        return self.key is not None


class RunStateStore:
    """In-process run state with transactional updates."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._runs: Dict[bytes, bytes] = {}
        self._write_counts: Dict[bytes, int] = {}
        self._last_run_digest = ZERO_DIGEST
        self._version = 0

    @property
    def version(self) -> int:
        """Number of commits applied so far."""
        return self._version

    @property
    def last_run_digest(self) -> bytes:
        return self._last_run_digest

    def get_run_digest(self, key: bytes) -> bytes:
        """Latest digest for ``key``, or ZERO_DIGEST if it was never used."""
        return self._runs.get(validate_run_key(key), ZERO_DIGEST)

    def write_count(self, key: bytes) -> int:
        return self._write_counts.get(validate_run_key(key), 0)

    def keys(self) -> list[bytes]:
        with self._lock:
            return list(self._runs)

    @contextmanager
    def transaction(self) -> Iterator[RunStateTransaction]:
        """Open a transaction that commits only if the block exits normally."""
        txn = RunStateTransaction()
        yield txn
        if txn.has_writes:
            self.commit(txn)

    def commit(self, txn: RunStateTransaction) -> int:
        """Apply both staged writes at once.

        Returns:
            The store version after the commit
        """
        if not txn.has_writes:
            raise ValueError("transaction has no staged writes")
        assert txn.key is not None and txn.digest is not None
        with self._lock:
            self._runs[txn.key] = txn.digest
            self._write_counts[txn.key] = self._write_counts.get(txn.key, 0) + 1
            self._last_run_digest = txn.digest
            self._version += 1
            txn.version = self._version
            return self._version

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "schema_version": SNAPSHOT_SCHEMA_VERSION,
                "version": self._version,
                "last_run_digest": self._last_run_digest.hex(),
                "runs": {k.hex(): v.hex() for k, v in sorted(self._runs.items())},
                "write_counts": {k.hex(): n for k, n in sorted(self._write_counts.items())},
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunStateStore":
        if data.get("schema_version") != SNAPSHOT_SCHEMA_VERSION:
            raise ValueError(f"Unsupported run state schema version: {data.get('schema_version')}")
        store = cls()
        store._version = int(data["version"])
        store._last_run_digest = bytes.fromhex(data["last_run_digest"])
        for key_hex, digest_hex in data.get("runs", {}).items():
            digest = bytes.fromhex(digest_hex)
            if len(digest) != DIGEST_BYTES:
                raise ValueError(f"run digest for key {key_hex} must be {DIGEST_BYTES} bytes, got {len(digest)}")
            store._runs[validate_run_key(bytes.fromhex(key_hex))] = digest
        for key_hex, count in data.get("write_counts", {}).items():
            store._write_counts[bytes.fromhex(key_hex)] = int(count)
        if len(store._last_run_digest) != DIGEST_BYTES:
            raise ValueError("last_run_digest must be 32 bytes")
        return store

    def save(self, path: Union[str, Path]) -> None:
        """Write a JSON snapshot atomically (temp file + fsync + rename)."""
        _atomic_write_text(Path(path), json.dumps(self.to_dict(), indent=2, sort_keys=True))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "RunStateStore":
        """Load a snapshot, or return an empty store if the file is absent."""
        path = Path(path)
        if not path.exists():
            return cls()
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))


def _atomic_write_text(path: Path, text: str, mode: int = 0o644) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_name(
        f".{path.name}.tmp.{os.getpid()}.{secrets.token_hex(8)}"
    )

    fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            if not text.endswith("\n"):
                f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(path))
    finally:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
