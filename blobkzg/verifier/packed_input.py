"""Packed point-evaluation input codec.

A packed input is the 192-byte request consumed by an EIP-4844 style
point-evaluation precompile::

    versioned_hash (32) | z (32) | y (32) | commitment (48) | proof (48)

The codec only checks widths. Field contents are passed through
uninterpreted; judging them is the point-evaluation capability's job.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import List

from blobkzg.verifier.errors import InvalidInputLengthError


VERSIONED_HASH_BYTES = 32
FIELD_ELEMENT_BYTES = 32
COMMITMENT_BYTES = 48
PROOF_BYTES = 48
PACKED_INPUT_BYTES = (
    VERSIONED_HASH_BYTES
    + 2 * FIELD_ELEMENT_BYTES
    + COMMITMENT_BYTES
    + PROOF_BYTES
)  # 192

VERSIONED_HASH_VERSION_KZG = b"\x01"

# (name, offset, width)
_LAYOUT = (
    ("versioned_hash", 0, VERSIONED_HASH_BYTES),
    ("z", 32, FIELD_ELEMENT_BYTES),
    ("y", 64, FIELD_ELEMENT_BYTES),
    ("commitment", 96, COMMITMENT_BYTES),
    ("proof", 144, PROOF_BYTES),
)


@dataclass(frozen=True)
class PackedInput:
    """Immutable view over one 192-byte packed input."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != PACKED_INPUT_BYTES:
            raise InvalidInputLengthError(provided=len(self.raw))

    @property
    def versioned_hash(self) -> bytes:
        return self.raw[0:32]

    @property
    def z(self) -> bytes:
        return self.raw[32:64]

    @property
    def y(self) -> bytes:
        return self.raw[64:96]

    @property
    def commitment(self) -> bytes:
        return self.raw[96:144]

    @property
    def proof(self) -> bytes:
        return self.raw[144:192]

    def to_bytes(self) -> bytes:
        return self.raw

    @classmethod
    def from_fields(
        cls,
        versioned_hash: bytes,
        z: bytes,
        y: bytes,
        commitment: bytes,
        proof: bytes,
    ) -> "PackedInput":
        """Build a packed input from its five fields.

        Raises:
            ValueError: If any field has the wrong width
        """
        values = {
            "versioned_hash": versioned_hash,
            "z": z,
            "y": y,
            "commitment": commitment,
            "proof": proof,
        }
        for name, _offset, width in _LAYOUT:
            if len(values[name]) != width:
                raise ValueError(
                    f"{name} must be {width} bytes, got {len(values[name])}"
                )
        return cls(raw=b"".join(bytes(values[name]) for name, _, _ in _LAYOUT))

    def to_dict(self) -> dict[str, str]:
        return {name: "0x" + self.raw[off:off + width].hex() for name, off, width in _LAYOUT}


def decode_packed_input(data: bytes, index: int | None = None) -> PackedInput:
    """Decode one packed input.

    Args:
        data: Candidate buffer
        index: Batch position, recorded on the error for attribution

    Raises:
        InvalidInputLengthError: Unless ``len(data) == 192``
    """
    if len(data) != PACKED_INPUT_BYTES:
        raise InvalidInputLengthError(provided=len(data), index=index)
    return PackedInput(raw=bytes(data))


def split_packed_inputs(blob: bytes) -> List[PackedInput]:
    """Split a concatenation of packed inputs into a batch.

    Raises:
        InvalidInputLengthError: If the length is not a multiple of 192
    """
    if len(blob) % PACKED_INPUT_BYTES != 0:
        raise InvalidInputLengthError(provided=len(blob))
    return [
        PackedInput(raw=bytes(blob[i:i + PACKED_INPUT_BYTES]))
        for i in range(0, len(blob), PACKED_INPUT_BYTES)
    ]


def make_zero_packed_input() -> PackedInput:
    """All-zero input used by the benchmark driver with the mock capability."""
    return PackedInput(raw=b"\x00" * PACKED_INPUT_BYTES)


def kzg_to_versioned_hash(commitment: bytes) -> bytes:
    """EIP-4844 versioned hash: version byte followed by sha256(commitment)[1:]."""
    if len(commitment) != COMMITMENT_BYTES:
        raise ValueError(f"commitment must be {COMMITMENT_BYTES} bytes, got {len(commitment)}")
    return VERSIONED_HASH_VERSION_KZG + hashlib.sha256(commitment).digest()[1:]
