"""Shared pytest fixtures for verifier tests."""

from __future__ import annotations

import hashlib
import logging
from typing import List

import pytest

from blobkzg.verifier.engine import BatchVerificationEngine
from blobkzg.verifier.hooks import RecordingHooks
from blobkzg.verifier.packed_input import PACKED_INPUT_BYTES
from blobkzg.verifier.point_evaluation import AlwaysFailCapability, AlwaysPassCapability


class RecordingCapability:
    """Capability double that records every request and answers from a script."""

    def __init__(self, verdicts: List[bool] | None = None, default: bool = True):
        self.requests: List[bytes] = []
        self._verdicts = list(verdicts or [])
        self._default = default

    def verify_proof(self, data: bytes) -> bool:
        self.requests.append(data)
        if self._verdicts:
            return self._verdicts.pop(0)
        return self._default


@pytest.fixture(autouse=True)
def _propagating_blobkzg_logger():
    """Undo handler changes made by configure_logging so caplog sees records."""
    logger = logging.getLogger("blobkzg")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield


@pytest.fixture
def zero_input() -> bytes:
    return b"\x00" * PACKED_INPUT_BYTES


@pytest.fixture
def parallel_key_1() -> bytes:
    return hashlib.sha256(b"parallel-key-1").digest()


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def passing_engine(hooks: RecordingHooks) -> BatchVerificationEngine:
    return BatchVerificationEngine(AlwaysPassCapability(), hooks=hooks)


@pytest.fixture
def failing_engine(hooks: RecordingHooks) -> BatchVerificationEngine:
    return BatchVerificationEngine(AlwaysFailCapability(), hooks=hooks)


@pytest.fixture
def recording_capability():
    """Factory for RecordingCapability doubles."""
    return RecordingCapability
