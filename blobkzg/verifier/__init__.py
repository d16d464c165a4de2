"""Batch KZG point-evaluation verification with stress workload.

Provides the packed-input codec, the point-evaluation adapter, the stress
workload, the digest accumulator and the batch verification engine.
"""

from .accumulator import DigestAccumulator, compute_run_digest
from .engine import BatchVerificationEngine
from .errors import (
    InvalidInputLengthError,
    KZGVerificationFailedError,
    PointEvaluationUnavailableError,
    VerifierError,
    VerifierErrorCode,
)
from .hooks import EngineHooks, LoggingHooks, NullHooks, RecordingHooks, RunCommittedEvent
from .packed_input import (
    PACKED_INPUT_BYTES,
    PackedInput,
    decode_packed_input,
    kzg_to_versioned_hash,
    make_zero_packed_input,
    split_packed_inputs,
)
from .point_evaluation import (
    AlwaysFailCapability,
    AlwaysPassCapability,
    Eip4844PointEvaluation,
    PointEvaluationAdapter,
    PointEvaluationCapability,
    resolve_capability,
)
from .state import DEFAULT_RUN_KEY, ZERO_DIGEST, RunStateStore
from .workload import derive_stress_seed, run_stress_workload

__all__ = [
    "DigestAccumulator",
    "compute_run_digest",
    "BatchVerificationEngine",
    "InvalidInputLengthError",
    "KZGVerificationFailedError",
    "PointEvaluationUnavailableError",
    "VerifierError",
    "VerifierErrorCode",
    "EngineHooks",
    "LoggingHooks",
    "NullHooks",
    "RecordingHooks",
    "RunCommittedEvent",
    "PACKED_INPUT_BYTES",
    "PackedInput",
    "decode_packed_input",
    "kzg_to_versioned_hash",
    "make_zero_packed_input",
    "split_packed_inputs",
    "AlwaysFailCapability",
    "AlwaysPassCapability",
    "Eip4844PointEvaluation",
    "PointEvaluationAdapter",
    "PointEvaluationCapability",
    "resolve_capability",
    "DEFAULT_RUN_KEY",
    "ZERO_DIGEST",
    "RunStateStore",
    "derive_stress_seed",
    "run_stress_workload",
]
