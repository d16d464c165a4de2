"""Tests for the run digest accumulator."""

from __future__ import annotations

import hashlib

import pytest

from blobkzg.verifier.accumulator import DigestAccumulator, compute_run_digest, serialize_batch
from blobkzg.verifier.packed_input import PackedInput
from blobkzg.verifier.state import DEFAULT_RUN_KEY, RunStateStore, RunStateTransaction

WORKLOAD = b"\x77" * 32


def _item(fill: int) -> PackedInput:
    return PackedInput(raw=bytes([fill]) * 192)


def test_digest_formula():
    batch = [_item(1), _item(2)]
    key = b"\x09" * 32

    expected = hashlib.sha256(key + WORKLOAD + bytes([1]) * 192 + bytes([2]) * 192).digest()
    assert compute_run_digest(batch, WORKLOAD, key) == expected


def test_empty_batch_digest():
    expected = hashlib.sha256(DEFAULT_RUN_KEY + WORKLOAD).digest()
    assert compute_run_digest([], WORKLOAD, DEFAULT_RUN_KEY) == expected


def test_order_sensitive():
    a, b = _item(1), _item(2)
    assert compute_run_digest([a, b], WORKLOAD, DEFAULT_RUN_KEY) != compute_run_digest(
        [b, a], WORKLOAD, DEFAULT_RUN_KEY
    )


def test_key_sensitive():
    batch = [_item(1)]
    assert compute_run_digest(batch, WORKLOAD, b"\x01" * 32) != compute_run_digest(
        batch, WORKLOAD, b"\x02" * 32
    )


def test_serialize_batch_concatenates():
    assert serialize_batch([_item(3), _item(4)]) == bytes([3]) * 192 + bytes([4]) * 192


def test_rejects_bad_workload_width():
    with pytest.raises(ValueError, match="workload digest must be 32 bytes"):
        compute_run_digest([], b"\x00" * 16, DEFAULT_RUN_KEY)


def test_fold_stages_without_committing():
    store = RunStateStore()
    txn = RunStateTransaction()
    key = b"\x05" * 32

    digest = DigestAccumulator().fold([_item(1)], WORKLOAD, key, txn)

    assert txn.key == key
    assert txn.digest == digest
    assert store.get_run_digest(key) == b"\x00" * 32

    store.commit(txn)
    assert store.get_run_digest(key) == digest
    assert store.last_run_digest == digest
