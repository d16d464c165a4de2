import json
import logging

import pytest

from blobkzg.config import LoggingConfig
from blobkzg.logging import (
    LoggingOptions,
    configure_logging,
    logging_options_from_config,
)


def test_logging_redacts_secrets_in_message(capfd) -> None:
    configure_logging(LoggingOptions(level="INFO", format="text", redact=True))
    logger = logging.getLogger("blobkzg.test")
    logger.info("api_key=SUPERSECRET")

    captured = capfd.readouterr()
    assert "SUPERSECRET" not in captured.err
    assert "[REDACTED]" in captured.err


def test_logging_redacts_secrets_in_context(capfd) -> None:
    configure_logging(LoggingOptions(level="INFO", format="json", redact=True))
    logger = logging.getLogger("blobkzg.test")
    logger.info("hello", extra={"context": {"token": "SUPERSECRET"}})

    captured = capfd.readouterr()
    assert "SUPERSECRET" not in captured.err
    assert "[REDACTED]" in captured.err


def test_run_digests_are_not_redacted(capfd) -> None:
    configure_logging(LoggingOptions(level="INFO", format="json", redact=True))
    digest = "0x" + "ab" * 32
    logging.getLogger("blobkzg.test").info("commit", extra={"context": {"digest": digest}})

    line = capfd.readouterr().err.strip().splitlines()[-1]
    assert json.loads(line)["context"]["digest"] == digest


def test_redaction_can_be_disabled(capfd) -> None:
    configure_logging(LoggingOptions(level="INFO", format="text", redact=False))
    logging.getLogger("blobkzg.test").info("password=hunter2")

    assert "hunter2" in capfd.readouterr().err


def test_level_filters_records(capfd) -> None:
    configure_logging(LoggingOptions(level="WARNING", format="text"))
    logger = logging.getLogger("blobkzg.test")
    logger.info("quiet")
    logger.warning("loud")

    err = capfd.readouterr().err
    assert "quiet" not in err
    assert "loud" in err


def test_rotating_file_handler(tmp_path) -> None:
    log_file = tmp_path / "blobkzg.log"
    configure_logging(LoggingOptions(level="INFO", format="json", file=str(log_file)))
    logging.getLogger("blobkzg.test").info("to file")
    for handler in logging.getLogger("blobkzg").handlers:
        handler.flush()

    record = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert record["message"] == "to file"
    assert "timestamp" in record


def test_invalid_format_rejected() -> None:
    with pytest.raises(ValueError, match="Invalid log format"):
        configure_logging(LoggingOptions(format="xml"))


def test_options_from_config() -> None:
    options = logging_options_from_config(LoggingConfig(level="ERROR", max_size_mb=2, backup_count=5))
    assert options.level == "ERROR"
    assert options.max_bytes == 2 * 1024 * 1024
    assert options.backup_count == 5
