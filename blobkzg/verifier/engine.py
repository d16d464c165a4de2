"""
Batch verification engine.

Orchestrates the codec, the point-evaluation adapter, the stress workload
and the digest accumulator:

    decode(i) -> verify(i)  for i in 0..N-1     (fail fast on first False)
    -> stress workload -> fold -> commit -> event -> digest

A failed call raises and leaves the run state untouched; a committed call
updates ``RunState[key]`` and ``LastRunDigest`` together.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence, Union

from blobkzg.verifier.accumulator import DigestAccumulator
from blobkzg.verifier.errors import KZGVerificationFailedError
from blobkzg.verifier.hooks import EngineHooks, NullHooks, RunCommittedEvent
from blobkzg.verifier.packed_input import PackedInput, decode_packed_input
from blobkzg.verifier.point_evaluation import PointEvaluationAdapter, PointEvaluationCapability
from blobkzg.verifier.state import DEFAULT_RUN_KEY, RunStateStore, validate_run_key
from blobkzg.verifier.workload import derive_stress_seed, run_stress_workload, validate_iterations

logger = logging.getLogger(__name__)

BatchItem = Union[bytes, bytearray, memoryview, PackedInput]


def _decode_item(item: BatchItem, index: Optional[int] = None) -> PackedInput:
    if isinstance(item, PackedInput):
        return item
    return decode_packed_input(bytes(item), index=index)


class BatchVerificationEngine:
    """
    Verifies KZG point-evaluation proofs in batches and accumulates run digests.

    The capability is bound at construction and never changes for the
    lifetime of the engine.
    """

    def __init__(
        self,
        capability: PointEvaluationCapability,
        store: Optional[RunStateStore] = None,
        hooks: Optional[EngineHooks] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            capability: Point-evaluation verifier
            store: Run state store (a fresh in-memory store by default)
            hooks: Observers for committed runs (NullHooks by default)
        """
        self._adapter = PointEvaluationAdapter(capability)
        self._accumulator = DigestAccumulator()
        self._store = store if store is not None else RunStateStore()
        self._hooks: EngineHooks = hooks if hooks is not None else NullHooks()

        logger.info(
            f"BatchVerificationEngine initialized with capability "
            f"{getattr(capability, 'name', type(capability).__name__)}"
        )

    @property
    def capability(self) -> PointEvaluationCapability:
        return self._adapter.capability

    @property
    def store(self) -> RunStateStore:
        return self._store

    def verify_single_packed(self, data: BatchItem) -> bool:
        """
        Check one packed input.

        Returns:
            The capability's verdict; an invalid proof is ``False``, not an error

        Raises:
            InvalidInputLengthError: If the input is not 192 bytes
            PointEvaluationUnavailableError: If the capability gave no verdict
        """
        return self._adapter.verify(_decode_item(data))

    def verify_batch_and_stress(
        self,
        items: Sequence[BatchItem],
        iterations: int,
        key: bytes = DEFAULT_RUN_KEY,
    ) -> bytes:
        """
        Verify every item, run the stress workload and commit the run digest.

        Args:
            items: Ordered batch of packed inputs
            iterations: Stress workload rounds, 0 <= iterations < 2**64
            key: 32-byte run key selecting the state slot

        Returns:
            The 32-byte run digest

        Raises:
            InvalidInputLengthError: Item at its index is not 192 bytes
            KZGVerificationFailedError: First item whose proof did not verify
            PointEvaluationUnavailableError: If the capability gave no verdict
            ValueError: Malformed key or iterations out of range
        """
        key = validate_run_key(key)
        validate_iterations(iterations)
        started = time.perf_counter()

        with self._store.transaction() as txn:
            batch: List[PackedInput] = []
            for index, item in enumerate(items):
                packed = _decode_item(item, index=index)
                if not self._adapter.verify(packed):
                    logger.debug(f"Batch rejected at item {index}: proof did not verify")
                    raise KZGVerificationFailedError(index=index)
                batch.append(packed)

            workload = run_stress_workload(iterations, derive_stress_seed(key))
            digest = self._accumulator.fold(batch, workload, key, txn)

        event = RunCommittedEvent(
            key=key,
            digest=digest,
            item_count=len(batch),
            iterations=iterations,
            version=txn.version or 0,
        )
        logger.info(
            f"Run committed: key={key.hex()[:16]}..., digest={digest.hex()[:16]}..., "
            f"items={len(batch)}, iterations={iterations}, "
            f"elapsed_ms={(time.perf_counter() - started) * 1000:.2f}",
            extra={"context": event.to_dict()},
        )

        try:
            self._hooks.on_run_committed(event)
        except Exception as e:
            logger.warning(f"Hook exception (ignored after commit): {e}")

        return digest

    def get_last_run_digest(self) -> bytes:
        """Digest of the most recent committed run, zero digest if none."""
        return self._store.last_run_digest

    def get_run_digest(self, key: bytes = DEFAULT_RUN_KEY) -> bytes:
        """Latest digest committed under ``key``, zero digest if none."""
        return self._store.get_run_digest(key)
