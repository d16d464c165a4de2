"""Command-line interface for batch KZG verification and stress runs."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from blobkzg.config import BlobKZGConfig
from blobkzg.harness import build_stress_plan, run_key_from_label, run_stress_plan
from blobkzg.logging import configure_logging, logging_options_from_config
from blobkzg.verifier.engine import BatchVerificationEngine
from blobkzg.verifier.errors import KZGVerificationFailedError, VerifierError
from blobkzg.verifier.hooks import LoggingHooks
from blobkzg.verifier.packed_input import split_packed_inputs
from blobkzg.verifier.point_evaluation import KNOWN_CAPABILITIES, resolve_capability
from blobkzg.verifier.state import DEFAULT_RUN_KEY, RunStateStore

SUCCESS = "✅"
STEP = "🚀"
ERROR = "❌"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REJECTED = 2


def _poke_yoke_path(path: Path, must_exist: bool = True) -> None:
    if must_exist and not path.exists():
        raise FileNotFoundError(f"{ERROR} Path not found: {path}")


def _print_header(title: str) -> None:
    print(f"{STEP} {title}", file=sys.stderr)


def _parse_hex(value: str) -> bytes:
    text = value.strip()
    if text.startswith(("0x", "0X")):
        text = text[2:]
    return bytes.fromhex(text)


def _load_config(args: argparse.Namespace) -> BlobKZGConfig:
    config = BlobKZGConfig.load(args.config)
    if args.capability:
        config.verifier.capability = args.capability
    if args.trusted_setup:
        config.verifier.trusted_setup = args.trusted_setup
    if args.state_file:
        config.storage.state_file = args.state_file
    config.validate()
    configure_logging(logging_options_from_config(config.logging))
    return config


def _build_engine(config: BlobKZGConfig) -> BatchVerificationEngine:
    capability = resolve_capability(
        config.verifier.capability,
        trusted_setup=config.verifier.trusted_setup,
        precompute=config.verifier.precompute,
    )
    store = RunStateStore()
    if config.storage.state_file:
        store = RunStateStore.load(config.storage.state_file)
    return BatchVerificationEngine(capability, store=store, hooks=LoggingHooks())


def _save_state(config: BlobKZGConfig, engine: BatchVerificationEngine) -> None:
    if config.storage.state_file:
        engine.store.save(config.storage.state_file)


def _resolve_key(args: argparse.Namespace) -> bytes:
    if getattr(args, "key", None):
        return _parse_hex(args.key)
    if getattr(args, "key_label", None):
        return run_key_from_label(args.key_label)
    return DEFAULT_RUN_KEY


def _read_inputs(args: argparse.Namespace) -> List[bytes]:
    if args.inputs_file:
        path = Path(args.inputs_file)
        _poke_yoke_path(path, must_exist=True)
        return [p.to_bytes() for p in split_packed_inputs(path.read_bytes())]
    return [_parse_hex(h) for h in (args.input or [])]


def _cmd_verify_single(args: argparse.Namespace) -> int:
    try:
        config = _load_config(args)
        engine = _build_engine(config)
        if args.input_file:
            path = Path(args.input_file)
            _poke_yoke_path(path, must_exist=True)
            data = path.read_bytes()
        else:
            data = _parse_hex(args.input)

        _print_header("Verifying packed input")
        ok = engine.verify_single_packed(data)
        print(json.dumps({"valid": ok}))
        if not ok:
            print(f"{ERROR} Proof did not verify", file=sys.stderr)
            return EXIT_REJECTED
        print(f"{SUCCESS} Proof verified", file=sys.stderr)
        return EXIT_OK
    except VerifierError as exc:
        print(json.dumps(exc.to_dict()))
        print(f"{ERROR} Verify failed: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except Exception as exc:  # noqa: BLE001
        print(f"{ERROR} Verify failed: {exc}", file=sys.stderr)
        return EXIT_ERROR


def _cmd_verify_batch(args: argparse.Namespace) -> int:
    try:
        config = _load_config(args)
        engine = _build_engine(config)
        items = _read_inputs(args)
        key = _resolve_key(args)
        iterations = args.iterations if args.iterations is not None else config.workload.iterations

        _print_header(f"Verifying batch of {len(items)} item(s), iterations={iterations}")
        digest = engine.verify_batch_and_stress(items, iterations, key)
        _save_state(config, engine)
        print(json.dumps({
            "key": "0x" + key.hex(),
            "digest": "0x" + digest.hex(),
            "item_count": len(items),
            "iterations": iterations,
            "version": engine.store.version,
        }, sort_keys=True))
        print(f"{SUCCESS} Run committed", file=sys.stderr)
        return EXIT_OK
    except KZGVerificationFailedError as exc:
        print(json.dumps(exc.to_dict()))
        print(f"{ERROR} {exc}", file=sys.stderr)
        return EXIT_REJECTED
    except VerifierError as exc:
        print(json.dumps(exc.to_dict()))
        print(f"{ERROR} Batch failed: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except Exception as exc:  # noqa: BLE001
        print(f"{ERROR} Batch failed: {exc}", file=sys.stderr)
        return EXIT_ERROR


def _cmd_last_digest(args: argparse.Namespace) -> int:
    try:
        config = _load_config(args)
        store = RunStateStore()
        if config.storage.state_file:
            store = RunStateStore.load(config.storage.state_file)
        out = {
            "last_run_digest": "0x" + store.last_run_digest.hex(),
            "version": store.version,
        }
        if args.key or args.key_label:
            key = _resolve_key(args)
            out["key"] = "0x" + key.hex()
            out["run_digest"] = "0x" + store.get_run_digest(key).hex()
        print(json.dumps(out, sort_keys=True))
        return EXIT_OK
    except Exception as exc:  # noqa: BLE001
        print(f"{ERROR} Reading state failed: {exc}", file=sys.stderr)
        return EXIT_ERROR


def _cmd_stress(args: argparse.Namespace) -> int:
    try:
        config = _load_config(args)
        workload = config.workload
        if args.tx_count is not None:
            workload.tx_count = args.tx_count
        if args.conflict_rate is not None:
            workload.conflict_rate = args.conflict_rate
        if args.iterations is not None:
            workload.iterations = args.iterations
        if args.workers is not None:
            workload.max_workers = args.workers
        config.validate()

        engine = _build_engine(config)
        plan = build_stress_plan(
            tx_count=workload.tx_count,
            conflict_rate=workload.conflict_rate,
            iterations=workload.iterations,
            batch_size=workload.batch_size,
        )
        _print_header(
            f"Stress run: {len(plan.calls)} call(s), conflict_rate={workload.conflict_rate}, "
            f"iterations={workload.iterations}"
        )
        report = run_stress_plan(engine, plan, max_workers=workload.max_workers)
        _save_state(config, engine)
        print(json.dumps(report.to_dict(), sort_keys=True))
        return EXIT_OK if report.failed == 0 else EXIT_REJECTED
    except Exception as exc:  # noqa: BLE001
        print(f"{ERROR} Stress run failed: {exc}", file=sys.stderr)
        return EXIT_ERROR


def _add_key_arguments(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--key", help="32-byte run key as hex")
    group.add_argument(
        "--key-label",
        help="Derive the run key as sha256(label); not keccak256, so keys differ from ethers.id(label)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="blobkzg", description="Batch KZG verification with stress workload")
    parser.add_argument("--config", help="Config file (JSON, TOML or YAML)")
    parser.add_argument("--capability", choices=KNOWN_CAPABILITIES, help="Point-evaluation capability")
    parser.add_argument("--trusted-setup", help="Trusted setup file for the eip4844 capability")
    parser.add_argument("--state-file", help="JSON run state snapshot to load and update")
    sub = parser.add_subparsers(dest="command", required=True)

    p_single = sub.add_parser("verify-single", help="Verify one 192-byte packed input")
    src = p_single.add_mutually_exclusive_group(required=True)
    src.add_argument("--input", help="Packed input as hex")
    src.add_argument("--input-file", help="File holding the raw 192-byte packed input")
    p_single.set_defaults(func=_cmd_verify_single)

    p_batch = sub.add_parser("verify-batch", help="Verify a batch, run the stress workload, commit the digest")
    bsrc = p_batch.add_mutually_exclusive_group(required=True)
    bsrc.add_argument("--input", action="append", help="Packed input as hex (repeatable)")
    bsrc.add_argument("--inputs-file", help="File holding N concatenated 192-byte packed inputs")
    p_batch.add_argument("--iterations", type=int, help="Stress workload rounds")
    _add_key_arguments(p_batch)
    p_batch.set_defaults(func=_cmd_verify_batch)

    p_last = sub.add_parser("last-digest", help="Show the last committed run digest")
    _add_key_arguments(p_last)
    p_last.set_defaults(func=_cmd_last_digest)

    p_stress = sub.add_parser("stress", help="Run a conflict-shaped series of batch calls")
    p_stress.add_argument("--tx-count", type=int, help="Number of batch calls")
    p_stress.add_argument("--conflict-rate", type=float, help="Fraction of calls sharing one run key")
    p_stress.add_argument("--iterations", type=int, help="Stress workload rounds per call")
    p_stress.add_argument("--workers", type=int, help="Concurrent callers")
    p_stress.set_defaults(func=_cmd_stress)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
