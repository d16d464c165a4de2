from __future__ import annotations

import json
import logging
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, Any, Mapping, MutableMapping, Optional

if TYPE_CHECKING:
    from blobkzg.config import LoggingConfig


@dataclass(frozen=True)
class LoggingOptions:
    level: str = "INFO"
    format: str = "text"  # text | json
    file: Optional[str] = None
    redact: bool = True
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 3


_SECRET_KEY_FRAGMENTS = (
    "api_key",
    "apikey",
    "authorization",
    "mnemonic",
    "password",
    "private_key",
    "secret",
    "token",
)

_RE_KV = re.compile(
    r"(?P<key>api[_-]?key|token|password|secret|private[_-]?key|mnemonic)\s*[:=]\s*(?P<value>[^\s,;]+)",
    flags=re.IGNORECASE,
)


class JSONFormatter(logging.Formatter):
    def __init__(self, include_timestamps: bool = False):
        super().__init__()
        self._include_timestamps = include_timestamps

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self._include_timestamps:
            payload["timestamp"] = datetime.now(timezone.utc).isoformat()
        context = getattr(record, "context", None)
        if context is not None:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _looks_secret_key(key: str) -> bool:
    lowered = key.lower()
    return any(fragment in lowered for fragment in _SECRET_KEY_FRAGMENTS)


def _redact_str(value: str) -> str:
    def _sub(match: re.Match[str]) -> str:
        key = match.group("key")
        return f"{key}=[REDACTED]"

    return _RE_KV.sub(_sub, value)


def _redact_any(value: Any, *, depth: int, max_depth: int) -> Any:
    """Redact secret-like values in nested structures.

    Run keys and digests are public and pass through; only keys that look
    like credentials are masked.
    """
    if depth > max_depth:
        return "[REDACTED]"

    if isinstance(value, str):
        return _redact_str(value)

    if isinstance(value, bytes):
        return "[REDACTED]"

    if isinstance(value, Mapping):
        redacted: dict[Any, Any] = {}
        for k, v in value.items():
            if isinstance(k, str) and _looks_secret_key(k):
                redacted[k] = "[REDACTED]"
                continue
            redacted[k] = _redact_any(v, depth=depth + 1, max_depth=max_depth)
        return redacted

    if isinstance(value, (list, tuple)):
        return [_redact_any(v, depth=depth + 1, max_depth=max_depth) for v in value]

    return value


class RedactionFilter(logging.Filter):
    def __init__(self, *, max_depth: int = 4):
        super().__init__()
        self._max_depth = max_depth

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _redact_str(record.msg)

        context = getattr(record, "context", None)
        if isinstance(context, MutableMapping):
            record.context = _redact_any(context, depth=0, max_depth=self._max_depth)

        return True


def _normalize_level(level: str) -> str:
    return level.strip().upper()


def _normalize_format(fmt: str) -> str:
    lowered = fmt.strip().lower()
    if lowered in {"text", "json"}:
        return lowered
    raise ValueError(f"Invalid log format: {fmt}")


def logging_options_from_config(config: "LoggingConfig") -> LoggingOptions:
    return LoggingOptions(
        level=config.level,
        format=config.format,
        file=config.file,
        redact=config.redact,
        max_bytes=config.max_size_mb * 1024 * 1024,
        backup_count=config.backup_count,
    )


def configure_logging(options: LoggingOptions) -> None:
    """Configure logging for blobkzg.

    Postconditions:
        - Logger hierarchy under "blobkzg" is configured
        - Logs emit to stderr (and optional rotating file)
        - Redaction filter attached unless options.redact is False
    """
    logger = logging.getLogger("blobkzg")
    logger.setLevel(getattr(logging, _normalize_level(options.level), logging.INFO))

    logger.handlers.clear()
    logger.propagate = False

    fmt = _normalize_format(options.format)

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    if options.redact:
        handler.addFilter(RedactionFilter())

    logger.addHandler(handler)

    if options.file:
        file_handler = RotatingFileHandler(
            options.file,
            maxBytes=options.max_bytes,
            backupCount=options.backup_count,
        )
        if fmt == "json":
            file_handler.setFormatter(JSONFormatter(include_timestamps=True))
        else:
            file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        if options.redact:
            file_handler.addFilter(RedactionFilter())
        logger.addHandler(file_handler)
