"""
Engine hooks - observer interface for committed batch runs.

Hooks receive immutable event data after the state commit. Hook
exceptions are caught and logged by the engine and never propagate, so an
observer can never turn a committed run into a failed call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunCommittedEvent:
    """Emitted exactly once per committed ``verify_batch_and_stress`` call."""

    key: bytes
    digest: bytes
    item_count: int
    iterations: int = 0
    version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": "0x" + self.key.hex(),
            "digest": "0x" + self.digest.hex(),
            "item_count": self.item_count,
            "iterations": self.iterations,
            "version": self.version,
        }


class EngineHooks(Protocol):
    """Protocol for engine event hooks."""

    def on_run_committed(self, event: RunCommittedEvent) -> None:
        """Called after a batch run has been committed."""
        ...


class NullHooks:
    """No-op hooks implementation."""

    def on_run_committed(self, event: RunCommittedEvent) -> None:
        pass


class RecordingHooks:
    """Hooks that keep every event, for harnesses and tests."""

    def __init__(self) -> None:
        self.events: List[RunCommittedEvent] = []

    def on_run_committed(self, event: RunCommittedEvent) -> None:
        self.events.append(event)


class LoggingHooks:
    """Hooks that log all events for debugging."""

    def __init__(self, log_level: int = logging.INFO):
        self._level = log_level

    def on_run_committed(self, event: RunCommittedEvent) -> None:
        logger.log(
            self._level,
            f"[HOOK] Run committed: key={event.key.hex()[:16]}..., "
            f"digest={event.digest.hex()[:16]}..., items={event.item_count}",
        )
