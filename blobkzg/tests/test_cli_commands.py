import json

import pytest

from blobkzg import cli

ZERO_HEX = "00" * 192
PARALLEL_SCENARIO_DIGEST = "0xa858cc8c74727dc60e4001c93f8fc6aa29a8ca7ef4bb9f5d741d31ddb1b0a128"


def _last_json(capsys):
    out = capsys.readouterr().out.strip().splitlines()
    return json.loads(out[-1])


def test_cli_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["verify-batch", "--help"])
    assert exc.value.code == 0


def test_verify_single_valid(capsys):
    assert cli.main(["verify-single", "--input", "0x" + ZERO_HEX]) == cli.EXIT_OK
    assert _last_json(capsys) == {"valid": True}


def test_verify_single_rejected(capsys):
    code = cli.main(["--capability", "mock-fail", "verify-single", "--input", ZERO_HEX])
    assert code == cli.EXIT_REJECTED
    assert _last_json(capsys) == {"valid": False}


def test_verify_single_wrong_length(capsys):
    code = cli.main(["verify-single", "--input", "00" * 191])
    assert code == cli.EXIT_ERROR
    payload = _last_json(capsys)
    assert payload["error_code"] == "invalid_input_length"
    assert payload["details"] == {"provided": 191}


def test_verify_single_from_file(tmp_path, capsys):
    path = tmp_path / "input.bin"
    path.write_bytes(b"\x00" * 192)
    assert cli.main(["verify-single", "--input-file", str(path)]) == cli.EXIT_OK


def test_verify_single_missing_file(tmp_path):
    assert cli.main(["verify-single", "--input-file", str(tmp_path / "missing.bin")]) == cli.EXIT_ERROR


def test_verify_batch_commits_and_persists(tmp_path, capsys):
    state = tmp_path / "runs.json"
    code = cli.main(
        [
            "--state-file",
            str(state),
            "verify-batch",
            "--input",
            ZERO_HEX,
            "--input",
            ZERO_HEX,
            "--iterations",
            "500",
            "--key-label",
            "parallel-key-1",
        ]
    )
    assert code == cli.EXIT_OK
    payload = _last_json(capsys)
    assert payload["digest"] == PARALLEL_SCENARIO_DIGEST
    assert payload["item_count"] == 2
    assert payload["version"] == 1
    assert state.exists()

    assert cli.main(["--state-file", str(state), "last-digest", "--key-label", "parallel-key-1"]) == cli.EXIT_OK
    payload = _last_json(capsys)
    assert payload["last_run_digest"] == PARALLEL_SCENARIO_DIGEST
    assert payload["run_digest"] == PARALLEL_SCENARIO_DIGEST
    assert payload["version"] == 1


def test_verify_batch_from_concatenated_file(tmp_path, capsys):
    inputs = tmp_path / "batch.bin"
    inputs.write_bytes(b"\x00" * 384)
    code = cli.main(
        [
            "verify-batch",
            "--inputs-file",
            str(inputs),
            "--iterations",
            "500",
            "--key",
            "0x62df7816cc84e4557dac38278f902c4c2a7a8553339ab2ef6af1360002380f08",
        ]
    )
    assert code == cli.EXIT_OK
    assert _last_json(capsys)["digest"] == PARALLEL_SCENARIO_DIGEST


def test_verify_batch_rejected_reports_index(tmp_path, capsys):
    state = tmp_path / "runs.json"
    code = cli.main(
        [
            "--capability",
            "mock-fail",
            "--state-file",
            str(state),
            "verify-batch",
            "--input",
            ZERO_HEX,
            "--iterations",
            "0",
        ]
    )
    assert code == cli.EXIT_REJECTED
    payload = _last_json(capsys)
    assert payload["error_code"] == "kzg_verification_failed"
    assert payload["details"] == {"index": 0}
    assert not state.exists()


def test_verify_batch_bad_key(capsys):
    code = cli.main(["verify-batch", "--input", ZERO_HEX, "--iterations", "0", "--key", "0xabcd"])
    assert code == cli.EXIT_ERROR


def test_last_digest_without_state(capsys):
    assert cli.main(["last-digest"]) == cli.EXIT_OK
    payload = _last_json(capsys)
    assert payload["last_run_digest"] == "0x" + "00" * 32
    assert payload["version"] == 0


def test_stress_command(tmp_path, capsys):
    state = tmp_path / "runs.json"
    code = cli.main(
        [
            "--state-file",
            str(state),
            "stress",
            "--tx-count",
            "4",
            "--conflict-rate",
            "0.5",
            "--iterations",
            "3",
        ]
    )
    assert code == cli.EXIT_OK
    report = _last_json(capsys)
    assert report["calls"] == 4
    assert report["committed"] == 4
    assert report["distinct_keys"] == 3
    assert report["contended_keys"] == 1
    assert json.loads(state.read_text(encoding="utf-8"))["version"] == 4


def test_stress_with_failing_capability(capsys):
    code = cli.main(["--capability", "mock-fail", "stress", "--tx-count", "2", "--iterations", "0"])
    assert code == cli.EXIT_REJECTED
    assert _last_json(capsys)["failed"] == 2


def test_stress_invalid_conflict_rate(capsys):
    assert cli.main(["stress", "--conflict-rate", "2.0"]) == cli.EXIT_ERROR


def test_config_file_sets_iterations(tmp_path, capsys):
    config = tmp_path / "bench.toml"
    config.write_text("[workload]\niterations = 500\n", encoding="utf-8")
    code = cli.main(
        ["--config", str(config), "verify-batch", "--input", ZERO_HEX, "--input", ZERO_HEX, "--key-label", "parallel-key-1"]
    )
    assert code == cli.EXIT_OK
    payload = _last_json(capsys)
    assert payload["iterations"] == 500
    assert payload["digest"] == PARALLEL_SCENARIO_DIGEST


def test_repeated_stress_on_saved_state_counts_only_this_run(tmp_path, capsys):
    state = tmp_path / "runs.json"
    argv = ["--state-file", str(state), "stress", "--tx-count", "3", "--conflict-rate", "0", "--iterations", "1"]

    assert cli.main(argv) == cli.EXIT_OK
    assert _last_json(capsys)["contended_keys"] == 0

    assert cli.main(argv) == cli.EXIT_OK
    report = _last_json(capsys)
    assert report["contended_keys"] == 0
    assert json.loads(state.read_text(encoding="utf-8"))["version"] == 6


def test_log_level_env_applies_to_cli(monkeypatch, capsys):
    monkeypatch.setenv("BLOBKZG_LOG_LEVEL", "WARNING")
    assert cli.main(["verify-batch", "--input", ZERO_HEX, "--iterations", "0"]) == cli.EXIT_OK
    assert "Run committed:" not in capsys.readouterr().err


def test_info_logs_reach_stderr_by_default(capsys):
    assert cli.main(["verify-batch", "--input", ZERO_HEX, "--iterations", "0"]) == cli.EXIT_OK
    assert "Run committed:" in capsys.readouterr().err


def test_key_label_help_names_hash(capsys):
    with pytest.raises(SystemExit):
        cli.main(["verify-batch", "--help"])
    out = capsys.readouterr().out
    assert "sha256(label)" in out
    assert "keccak256" in out
