"""Digest accumulator for committed batch runs."""

from __future__ import annotations

import hashlib
from typing import Iterable, Sequence

from blobkzg.verifier.packed_input import PackedInput
from blobkzg.verifier.state import DIGEST_BYTES, RunStateTransaction, validate_run_key


def serialize_batch(batch: Iterable[PackedInput]) -> bytes:
    """Concatenate raw item bytes in batch order."""
    return b"".join(item.to_bytes() for item in batch)


def compute_run_digest(batch: Sequence[PackedInput], workload: bytes, key: bytes) -> bytes:
    """sha256(key || workload || item_0 || ... || item_{N-1})."""
    key = validate_run_key(key)
    if len(workload) != DIGEST_BYTES:
        raise ValueError(f"workload digest must be {DIGEST_BYTES} bytes, got {len(workload)}")
    h = hashlib.sha256()
    h.update(key)
    h.update(workload)
    h.update(serialize_batch(batch))
    return h.digest()


class DigestAccumulator:
    """Folds a verified batch into a run digest and stages the state writes."""

    def fold(
        self,
        batch: Sequence[PackedInput],
        workload: bytes,
        key: bytes,
        txn: RunStateTransaction,
    ) -> bytes:
        """Compute the run digest and stage ``RunState[key]`` and ``LastRunDigest``.

        Nothing becomes visible until the enclosing transaction commits.
        """
        digest = compute_run_digest(batch, workload, key)
        txn.stage(key, digest)
        return digest
