"""Error taxonomy for batch KZG verification.

Every failure the engine surfaces is attributable to one cause: a buffer of
the wrong width, a proof that did not verify at a known batch index, or a
point-evaluation capability that could not complete the request at all.
An invalid proof on the single-item path is *not* an error; it is a
``False`` result.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class VerifierErrorCode(str, Enum):
    """Error codes for verification failures.

    Using str as base class allows JSON serialization.
    """

    OK = "ok"
    INVALID_INPUT_LENGTH = "invalid_input_length"
    KZG_VERIFICATION_FAILED = "kzg_verification_failed"
    CAPABILITY_UNAVAILABLE = "capability_unavailable"


class VerifierError(Exception):
    """Base class for errors raised by the verification engine."""

    code: VerifierErrorCode = VerifierErrorCode.OK

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error_code": self.code.value,
            "message": str(self),
            "details": self.details(),
        }


class InvalidInputLengthError(VerifierError):
    """Raised when a packed input is not exactly 192 bytes."""

    code = VerifierErrorCode.INVALID_INPUT_LENGTH

    def __init__(self, provided: int, index: Optional[int] = None):
        self.provided = provided
        self.index = index
        where = f" at batch index {index}" if index is not None else ""
        super().__init__(f"Invalid packed input length{where}: {provided} bytes")

    def details(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"provided": self.provided}
        if self.index is not None:
            out["index"] = self.index
        return out


class KZGVerificationFailedError(VerifierError):
    """Raised when a batch item fails point-evaluation verification."""

    code = VerifierErrorCode.KZG_VERIFICATION_FAILED

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"KZG verification failed for batch item {index}")

    def details(self) -> Dict[str, Any]:
        return {"index": self.index}


class PointEvaluationUnavailableError(VerifierError):
    """Raised when the point-evaluation capability cannot complete a call.

    Distinct from a proof that evaluates to ``False``: the request never
    produced a verdict.
    """

    code = VerifierErrorCode.CAPABILITY_UNAVAILABLE

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Point-evaluation capability unavailable: {reason}")

    def details(self) -> Dict[str, Any]:
        return {"reason": self.reason}
