"""Point-evaluation capability interface and adapter.

The engine never verifies KZG proofs itself. It depends on the
``PointEvaluationCapability`` protocol, bound once at construction, and
talks to it only through ``PointEvaluationAdapter``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from blobkzg.verifier.errors import PointEvaluationUnavailableError
from blobkzg.verifier.packed_input import PackedInput, kzg_to_versioned_hash

logger = logging.getLogger(__name__)


CAPABILITY_MOCK_OK = "mock-ok"
CAPABILITY_MOCK_FAIL = "mock-fail"
CAPABILITY_EIP4844 = "eip4844"
KNOWN_CAPABILITIES = (CAPABILITY_MOCK_OK, CAPABILITY_MOCK_FAIL, CAPABILITY_EIP4844)


class PointEvaluationCapability(Protocol):
    """Protocol for an external point-evaluation verifier."""

    def verify_proof(self, data: bytes) -> bool:
        """Verify one 192-byte packed input.

        Returns:
            True if the proof opens the commitment at (z, y), False otherwise

        Raises:
            PointEvaluationUnavailableError: If no verdict could be produced
        """
        ...


class AlwaysPassCapability:
    """Conformance double that accepts every request."""

    name = CAPABILITY_MOCK_OK

    def verify_proof(self, data: bytes) -> bool:
        return True


class AlwaysFailCapability:
    """Conformance double that rejects every request."""

    name = CAPABILITY_MOCK_FAIL

    def verify_proof(self, data: bytes) -> bool:
        return False


class Eip4844PointEvaluation:
    """Point evaluation with EIP-4844 precompile semantics, backed by ckzg.

    The versioned hash must match the commitment; the opening is then
    checked with ``ckzg.verify_kzg_proof``. Malformed field or point
    encodings are a failed proof, not an unavailable capability.
    """

    name = CAPABILITY_EIP4844

    def __init__(self, trusted_setup: Union[str, Path], precompute: int = 0):
        try:
            import ckzg
        except ImportError as exc:
            raise PointEvaluationUnavailableError("ckzg is not installed") from exc

        path = Path(trusted_setup)
        if not path.exists():
            raise PointEvaluationUnavailableError(f"trusted setup not found: {path}")
        try:
            self._settings = ckzg.load_trusted_setup(str(path), precompute)
        except Exception as exc:  # noqa: BLE001
            raise PointEvaluationUnavailableError(
                f"failed to load trusted setup: {type(exc).__name__}"
            ) from exc
        self._ckzg = ckzg
        logger.info(f"Loaded KZG trusted setup from {path}")

    def verify_proof(self, data: bytes) -> bool:
        packed = PackedInput(raw=bytes(data))
        if kzg_to_versioned_hash(packed.commitment) != packed.versioned_hash:
            return False
        try:
            return bool(
                self._ckzg.verify_kzg_proof(
                    packed.commitment,
                    packed.z,
                    packed.y,
                    packed.proof,
                    self._settings,
                )
            )
        except (ValueError, RuntimeError) as exc:
            # Bad field or point encodings. Other exceptions reach the adapter as unavailable.
            logger.debug(f"ckzg rejected point-evaluation input: {type(exc).__name__}: {exc}")
            return False


def resolve_capability(
    name: str,
    trusted_setup: Optional[Union[str, Path]] = None,
    precompute: int = 0,
) -> PointEvaluationCapability:
    """Resolve a capability identifier to an instance.

    Raises:
        ValueError: Unknown identifier, or ``eip4844`` without a trusted setup
        PointEvaluationUnavailableError: If the trusted setup cannot be loaded
    """
    if name == CAPABILITY_MOCK_OK:
        return AlwaysPassCapability()
    if name == CAPABILITY_MOCK_FAIL:
        return AlwaysFailCapability()
    if name == CAPABILITY_EIP4844:
        if trusted_setup is None:
            raise ValueError("eip4844 capability requires a trusted setup path")
        return Eip4844PointEvaluation(trusted_setup, precompute=precompute)
    raise ValueError(f"Unknown point-evaluation capability: {name}")


class PointEvaluationAdapter:
    """Invokes the bound capability once per item and returns its verdict."""

    def __init__(self, capability: PointEvaluationCapability):
        self._capability = capability

    @property
    def capability(self) -> PointEvaluationCapability:
        return self._capability

    def verify(self, packed: PackedInput) -> bool:
        """Verify a packed input.

        Raises:
            PointEvaluationUnavailableError: If the capability raised or
                answered with something other than a bool
        """
        request = packed.to_bytes()
        try:
            result: Any = self._capability.verify_proof(request)
        except PointEvaluationUnavailableError:
            raise
        except Exception as exc:
            raise PointEvaluationUnavailableError(
                f"{type(exc).__name__} during point evaluation"
            ) from exc
        if not isinstance(result, bool):
            raise PointEvaluationUnavailableError(
                f"malformed capability response of type {type(result).__name__}"
            )
        return result
