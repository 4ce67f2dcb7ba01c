from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from gwreplay.analysis import compare_runs
from gwreplay.config import (
    DEFAULT_TRACE_PATH,
    PoolConfig,
    ReplayConfig,
    TargetConfig,
    TraceConfig,
)
from gwreplay.loadgen.runner import run_replay
from gwreplay.storage import Storage, default_storage

logger = logging.getLogger("gwreplay")


def lenient_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def lenient_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "t", "true"}


def _storage(args: argparse.Namespace) -> Storage:
    if args.db:
        return Storage(Path(args.db))
    return default_storage()


def _build_config(args: argparse.Namespace) -> ReplayConfig:
    http_version = 1 if args.http == 1 else 2
    trace = TraceConfig(
        path=Path(args.file),
        max_duration_min=max(0, args.duration),
        max_records=max(0, args.num),
    )
    target = TargetConfig(host=args.ip, use_tls=args.tls, http_version=http_version)
    pool = PoolConfig(size=max(1, args.clients), per_format=args.client_per_format)
    return ReplayConfig(
        trace=trace,
        target=target,
        pool=pool,
        results_dir=Path(args.results_dir),
        seed=args.seed,
        notes=args.notes,
    )


def _cmd_replay(args: argparse.Namespace) -> int:
    config = _build_config(args)
    storage = None if args.no_store else _storage(args)
    summary = asyncio.run(run_replay(config, storage))
    print(f"Run complete: {summary.run_id} ({summary.num_records} records) -> {summary.report_path}")
    return 0


def _cmd_runs(args: argparse.Namespace) -> int:
    runs = _storage(args).list_runs()
    if runs.empty:
        print("No runs stored")
        return 0
    print(runs.to_string(index=False))
    return 0


def _cmd_compare(args: argparse.Namespace) -> int:
    storage = _storage(args)
    base = storage.load_metric_groups(args.base)
    candidate = storage.load_metric_groups(args.candidate)
    regressions = compare_runs(base, candidate)
    if not regressions:
        print("No regressions detected")
        return 0
    for reg in regressions:
        status, fmt, hit = reg.group
        print(f"[{status} {fmt} hit={hit}] {reg.message} ({reg.delta_pct:.1f}% on {reg.metric})")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gateway trace replay")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--db", default="", help="DuckDB path for stored runs")
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Replay a trace against a target")
    replay.add_argument("-f", "--file", default=DEFAULT_TRACE_PATH, help="path to trace file")
    replay.add_argument(
        "-d",
        "--duration",
        type=lenient_int,
        default=0,
        help="minutes of trace to replay, by trace timestamps (0 = all)",
    )
    replay.add_argument("-n", "--num", type=lenient_int, default=0, help="records to replay (0 = all)")
    replay.add_argument("-c", "--clients", type=lenient_int, default=1, help="clients per pool")
    replay.add_argument("--client-per-format", action="store_true", help="separate pool per content format")
    replay.add_argument("--http", type=lenient_int, default=1, help="HTTP version: 1, anything else selects 2")
    replay.add_argument("--ip", default="", help="host or IP address overriding the trace's host")
    replay.add_argument("--tls", type=lenient_bool, default=True, help="use https (true) or http (false)")
    replay.add_argument("--seed", type=int, default=None)
    replay.add_argument("--results-dir", default="results")
    replay.add_argument("--notes", default="")
    replay.add_argument("--no-store", action="store_true", help="skip saving the run to DuckDB")
    replay.set_defaults(func=_cmd_replay)

    runs = sub.add_parser("runs", help="List stored runs")
    runs.set_defaults(func=_cmd_runs)

    compare = sub.add_parser("compare", help="Compare two stored runs")
    compare.add_argument("base")
    compare.add_argument("candidate")
    compare.set_defaults(func=_cmd_compare)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (OSError, ValueError) as exc:
        logger.error("Replay failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
