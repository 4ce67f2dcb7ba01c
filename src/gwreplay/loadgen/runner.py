from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

from gwreplay.config import MEGABYTE, ReplayConfig, TargetConfig
from gwreplay.loadgen.client import send_request
from gwreplay.loadgen.pool import ClientPool, TransportFactory
from gwreplay.metrics import MetricGroup, RequestOutcome, aggregate_groups
from gwreplay.report import build_report, write_report
from gwreplay.storage import Storage
from gwreplay.trace import TraceRecord, load_trace

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    index: int
    completed: int
    total: int
    percent: float
    requests_per_sec: float
    megabytes_per_sec: float
    outcome: RequestOutcome


ProgressCallback = Callable[[ProgressUpdate], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RunSummary:
    run_id: str
    report_path: Path
    num_records: int
    outcomes: list[RequestOutcome]
    groups: list[MetricGroup]
    report: dict[str, Any]


class ReplayProgress:
    """Running completion count and throughput of a replay."""

    def __init__(self, total: int) -> None:
        self.total = total
        self.completed = 0
        self.bytes_received = 0
        self.started = time.perf_counter()

    def record(self, index: int, outcome: RequestOutcome) -> ProgressUpdate:
        self.completed += 1
        self.bytes_received += outcome.bytes_received
        elapsed = time.perf_counter() - self.started
        rps = self.completed / elapsed if elapsed > 0 else 0.0
        mbps = (self.bytes_received / MEGABYTE) / elapsed if elapsed > 0 else 0.0
        return ProgressUpdate(
            index=index,
            completed=self.completed,
            total=self.total,
            percent=100.0 * self.completed / self.total if self.total else 100.0,
            requests_per_sec=rps,
            megabytes_per_sec=mbps,
            outcome=outcome,
        )


async def log_progress(update: ProgressUpdate) -> None:
    outcome = update.outcome
    logger.info(
        "%d, %.2f%%, %.2f r/s, %.2f mb/s, status=%d ttfb=%dms duration=%dms bytes=%d hit=%s error=%s",
        update.index,
        update.percent,
        update.requests_per_sec,
        update.megabytes_per_sec,
        outcome.status,
        outcome.ttfb_ms,
        outcome.duration_ms,
        outcome.bytes_received,
        outcome.cache_hit,
        outcome.error_type.value if outcome.error_type else "-",
    )


def _new_run_id() -> str:
    return uuid.uuid4().hex


async def run_replay(
    config: ReplayConfig,
    storage: Storage | None = None,
    progress: ProgressCallback | None = None,
    transport_factory: TransportFactory | None = None,
) -> RunSummary:
    run_id = config.run_id or _new_run_id()
    if storage is not None and storage.run_exists(run_id):
        msg = f"Run {run_id} already exists"
        raise ValueError(msg)
    records = load_trace(config.trace, config.target)
    async with ClientPool(
        config.pool,
        config.target,
        formats={r.format for r in records},
        transport_factory=transport_factory,
        seed=config.seed,
    ) as pool:
        outcomes = await replay_records(records, pool, config.target, progress)
    groups = aggregate_groups(outcomes)
    completed_at = datetime.now(timezone.utc)
    report = build_report(config, records, groups, completed_at)
    path = write_report(report, config.results_dir, completed_at)
    if storage is not None:
        storage.save_run(config, run_id, outcomes, groups, path)
    return RunSummary(
        run_id=run_id,
        report_path=path,
        num_records=len(records),
        outcomes=outcomes,
        groups=groups,
        report=report,
    )


async def replay_records(
    records: Sequence[TraceRecord],
    pool: ClientPool,
    target: TargetConfig,
    progress: ProgressCallback | None = None,
) -> list[RequestOutcome]:
    """Release records in file order as each one falls due.

    Dispatch never waits for earlier requests. Returns once every dispatched
    request has finished; outcomes are in completion order.
    """
    outcomes: list[RequestOutcome] = []
    lock = asyncio.Lock()
    tracker = ReplayProgress(len(records))
    tasks: list[asyncio.Task[None]] = []
    cursor = 0
    while cursor < len(records):
        record = records[cursor]
        if time.time() < record.scheduled_at:
            await _sleep_until_time(record.scheduled_at)
            continue
        tasks.append(
            asyncio.create_task(
                _send_one(cursor, record, pool, target, outcomes, lock, tracker, progress)
            )
        )
        cursor += 1
    if tasks:
        await asyncio.gather(*tasks)
    return outcomes


async def _send_one(
    index: int,
    record: TraceRecord,
    pool: ClientPool,
    target: TargetConfig,
    outcomes: list[RequestOutcome],
    lock: asyncio.Lock,
    tracker: ReplayProgress,
    progress: ProgressCallback | None,
) -> None:
    outcome = await send_request(pool.client_for(record.format), record, target)
    async with lock:
        outcomes.append(outcome)
        update = tracker.record(index, outcome)
    await (progress or log_progress)(update)


async def _sleep_until_time(target: float) -> None:
    delay = max(0.0, target - time.time())
    if delay > 0:
        await asyncio.sleep(delay)
