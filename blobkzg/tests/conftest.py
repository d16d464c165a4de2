from __future__ import annotations

import logging
import os

import pytest


@pytest.fixture(autouse=True)
def _clean_blobkzg_environment(monkeypatch):
    """Isolate tests from BLOBKZG_* variables and from earlier logging setup."""
    for key in list(os.environ):
        if key.startswith("BLOBKZG_"):
            monkeypatch.delenv(key, raising=False)
    logger = logging.getLogger("blobkzg")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield
