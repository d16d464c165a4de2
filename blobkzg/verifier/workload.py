"""Deterministic stress workload.

The workload is a chain of SHA-256 applications whose length is the
iteration count. Its only purpose is a CPU cost proportional to
``iterations`` and an output that is a pure function of its inputs.

Mixing function (stable, golden values depend on it)::

    acc_0     = sha256(b"blobkzg/stress/v1" || seed)
    acc_{i+1} = sha256(acc_i || i.to_bytes(8, "big"))
    result    = acc_iterations

``iterations == 0`` therefore returns ``acc_0``, the seed absorbed once.
"""

from __future__ import annotations

import hashlib

STRESS_DOMAIN = b"blobkzg/stress/v1"
MAX_ITERATIONS = 2**64 - 1


def validate_iterations(iterations: int) -> int:
    if isinstance(iterations, bool) or not isinstance(iterations, int):
        raise ValueError(f"iterations must be an integer, got {type(iterations).__name__}")
    if iterations < 0 or iterations > MAX_ITERATIONS:
        raise ValueError(f"iterations must be in [0, 2**64), got {iterations}")
    return iterations


def derive_stress_seed(key: bytes) -> bytes:
    """Seed for a batch run: the run key itself."""
    return bytes(key)


def run_stress_workload(iterations: int, seed: bytes) -> bytes:
    """Run ``iterations`` mixing rounds seeded by ``seed``.

    Returns:
        32-byte digest

    Raises:
        ValueError: If iterations is outside the unsigned 64-bit range
    """
    validate_iterations(iterations)
    sha256 = hashlib.sha256
    acc = sha256(STRESS_DOMAIN + bytes(seed)).digest()
    for i in range(iterations):
        acc = sha256(acc + i.to_bytes(8, "big")).digest()
    return acc
