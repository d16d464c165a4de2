"""Conflict-shaped stress harness for the batch verification engine.

Drives many ``verify_batch_and_stress`` calls against one engine. A
configurable fraction of calls shares the default run key (conflicting
writes to one state slot); the rest each use a unique ``parallel-key-<i>``
key (disjoint slots). The report exposes how many calls committed and how
many slots were written more than once.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from blobkzg.verifier.engine import BatchVerificationEngine
from blobkzg.verifier.errors import VerifierError
from blobkzg.verifier.packed_input import PackedInput, make_zero_packed_input
from blobkzg.verifier.state import DEFAULT_RUN_KEY

logger = logging.getLogger(__name__)

PARALLEL_KEY_PREFIX = "parallel-key-"


def run_key_from_label(label: str) -> bytes:
    """32-byte run key for a human-readable label: sha256(label)."""
    return hashlib.sha256(label.encode("utf-8")).digest()


def parallel_run_key(i: Union[int, str]) -> bytes:
    return run_key_from_label(f"{PARALLEL_KEY_PREFIX}{i}")


@dataclass(frozen=True)
class PlannedCall:
    index: int
    key: bytes
    items: List[PackedInput]
    iterations: int

    @property
    def conflicting(self) -> bool:
        return self.key == DEFAULT_RUN_KEY


@dataclass
class StressPlan:
    calls: List[PlannedCall] = field(default_factory=list)
    conflict_rate: float = 0.0

    @property
    def unique_calls(self) -> int:
        return sum(1 for c in self.calls if not c.conflicting)

    @property
    def conflicting_calls(self) -> int:
        return sum(1 for c in self.calls if c.conflicting)


def build_stress_plan(
    tx_count: int,
    conflict_rate: float,
    iterations: int,
    batch_size: int = 2,
) -> StressPlan:
    """Plan ``tx_count`` calls, ``floor(tx_count * (1 - conflict_rate))`` of them on unique keys.

    Raises:
        ValueError: If tx_count or batch_size is negative or conflict_rate is outside [0, 1]
    """
    if tx_count < 0:
        raise ValueError("tx_count must be non-negative")
    if batch_size < 0:
        raise ValueError("batch_size must be non-negative")
    if not 0.0 <= conflict_rate <= 1.0:
        raise ValueError("conflict_rate must be in [0, 1]")

    unique = math.floor(tx_count * (1 - conflict_rate))
    items = [make_zero_packed_input() for _ in range(batch_size)]
    calls = [
        PlannedCall(
            index=i,
            key=parallel_run_key(i) if i < unique else DEFAULT_RUN_KEY,
            items=items,
            iterations=iterations,
        )
        for i in range(tx_count)
    ]
    return StressPlan(calls=calls, conflict_rate=conflict_rate)


@dataclass
class HarnessReport:
    """Outcome of a harness run."""

    calls: int = 0
    committed: int = 0
    failed: int = 0
    distinct_keys: int = 0
    contended_keys: int = 0
    elapsed_seconds: float = 0.0
    last_run_digest: bytes = b""
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "calls": self.calls,
            "committed": self.committed,
            "failed": self.failed,
            "distinct_keys": self.distinct_keys,
            "contended_keys": self.contended_keys,
            "elapsed_seconds": round(self.elapsed_seconds, 6),
            "last_run_digest": "0x" + self.last_run_digest.hex(),
            "errors": self.errors,
        }


def _run_call(engine: BatchVerificationEngine, call: PlannedCall) -> Optional[Dict[str, Any]]:
    try:
        engine.verify_batch_and_stress(call.items, call.iterations, call.key)
    except VerifierError as exc:
        logger.debug(f"Call {call.index} failed: {exc}")
        return {"call": call.index, **exc.to_dict()}
    return None


def run_stress_plan(
    engine: BatchVerificationEngine,
    plan: StressPlan,
    max_workers: int = 1,
) -> HarnessReport:
    """Execute a plan sequentially (``max_workers == 1``) or on a thread pool."""
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    logger.info(
        f"Running stress plan: calls={len(plan.calls)}, unique={plan.unique_calls}, "
        f"conflicting={plan.conflicting_calls}, workers={max_workers}"
    )
    keys = {call.key for call in plan.calls}
    # Store counters are lifetime totals; contention is measured against this plan only.
    writes_before = {k: engine.store.write_count(k) for k in keys}
    started = time.perf_counter()
    if max_workers == 1:
        outcomes = [_run_call(engine, call) for call in plan.calls]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            outcomes = list(pool.map(lambda c: _run_call(engine, c), plan.calls))
    elapsed = time.perf_counter() - started

    errors = [o for o in outcomes if o is not None]
    report = HarnessReport(
        calls=len(plan.calls),
        committed=len(plan.calls) - len(errors),
        failed=len(errors),
        distinct_keys=len(keys),
        contended_keys=sum(1 for k in keys if engine.store.write_count(k) - writes_before[k] > 1),
        elapsed_seconds=elapsed,
        last_run_digest=engine.get_last_run_digest(),
        errors=errors,
    )
    logger.info(
        f"Stress plan finished: committed={report.committed}, failed={report.failed}, "
        f"contended_keys={report.contended_keys}, elapsed={elapsed:.3f}s",
        extra={"context": report.to_dict()},
    )
    return report
