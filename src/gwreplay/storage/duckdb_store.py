from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import duckdb
import pandas as pd

from gwreplay.config import ReplayConfig
from gwreplay.metrics import ErrorType, MetricGroup, RequestOutcome


@dataclass(slots=True)
class Storage:
    db_path: Path

    def __post_init__(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> duckdb.DuckDBPyConnection:
        return duckdb.connect(str(self.db_path))

    def _init_schema(self) -> None:
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS run_meta (
                    run_id TEXT PRIMARY KEY,
                    created_at TIMESTAMP,
                    config_json TEXT,
                    report_path TEXT,
                    notes TEXT
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS request_outcomes (
                    run_id TEXT,
                    status INTEGER,
                    format TEXT,
                    cache_hit BOOLEAN,
                    ttfb_ms BIGINT,
                    duration_ms BIGINT,
                    bytes_received BIGINT,
                    error_type TEXT,
                    error TEXT
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS metric_groups (
                    run_id TEXT,
                    status INTEGER,
                    format TEXT,
                    cache_hit BOOLEAN,
                    num_logs INTEGER,
                    ttfb_p50 DOUBLE,
                    ttfb_p90 DOUBLE,
                    ttfb_p95 DOUBLE,
                    ttfb_p99 DOUBLE,
                    duration_p50 DOUBLE,
                    duration_p90 DOUBLE,
                    duration_p95 DOUBLE,
                    duration_p99 DOUBLE,
                    timeout_awaiting_headers INTEGER,
                    timeout_reading_body INTEGER
                );
                """
            )

    def run_exists(self, run_id: str) -> bool:
        with self._connect() as con:
            result = con.execute(
                "SELECT COUNT(*) FROM run_meta WHERE run_id = ?",
                [run_id],
            ).fetchone()
            return bool(result and result[0] > 0)

    def save_run(
        self,
        config: ReplayConfig,
        run_id: str,
        outcomes: Iterable[RequestOutcome],
        groups: Iterable[MetricGroup],
        report_path: Path,
    ) -> None:
        meta = dict(config.to_metadata())
        meta["run_id"] = run_id
        with self._connect() as con:
            con.execute(
                "INSERT INTO run_meta VALUES (?, ?, ?, ?, ?)",
                [run_id, config.created_at, json.dumps(meta), str(report_path), config.notes],
            )
            outcomes_df = pd.DataFrame(
                [
                    {
                        "run_id": run_id,
                        "status": o.status,
                        "format": o.format,
                        "cache_hit": o.cache_hit,
                        "ttfb_ms": o.ttfb_ms,
                        "duration_ms": o.duration_ms,
                        "bytes_received": o.bytes_received,
                        "error_type": o.error_type.value if o.error_type else None,
                        "error": o.error,
                    }
                    for o in outcomes
                ]
            )
            if not outcomes_df.empty:
                con.execute("INSERT INTO request_outcomes SELECT * FROM outcomes_df")
            groups_df = pd.DataFrame(
                [
                    {
                        "run_id": run_id,
                        "status": g.key.status,
                        "format": g.key.format,
                        "cache_hit": g.key.cache_hit,
                        "num_logs": g.num_logs,
                        "ttfb_p50": g.ttfb_ms.p50,
                        "ttfb_p90": g.ttfb_ms.p90,
                        "ttfb_p95": g.ttfb_ms.p95,
                        "ttfb_p99": g.ttfb_ms.p99,
                        "duration_p50": g.duration_ms.p50,
                        "duration_p90": g.duration_ms.p90,
                        "duration_p95": g.duration_ms.p95,
                        "duration_p99": g.duration_ms.p99,
                        "timeout_awaiting_headers": g.errors.get(ErrorType.TIMEOUT_AWAITING_HEADERS.value, 0),
                        "timeout_reading_body": g.errors.get(ErrorType.TIMEOUT_READING_BODY.value, 0),
                    }
                    for g in groups
                ]
            )
            if not groups_df.empty:
                con.execute("INSERT INTO metric_groups SELECT * FROM groups_df")

    def list_runs(self) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                "SELECT run_id, created_at, report_path, notes FROM run_meta ORDER BY created_at DESC"
            ).fetchdf()

    def load_run_meta(self, run_id: str) -> dict[str, object] | None:
        with self._connect() as con:
            row = con.execute(
                "SELECT config_json FROM run_meta WHERE run_id = ?",
                [run_id],
            ).fetchone()
            if not row:
                return None
            return json.loads(row[0])

    def load_metric_groups(self, run_id: str) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                """
                SELECT * FROM metric_groups WHERE run_id = ?
                ORDER BY num_logs DESC, status, format, cache_hit
                """,
                [run_id],
            ).fetchdf()

    def load_outcomes(self, run_id: str) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                "SELECT * FROM request_outcomes WHERE run_id = ?",
                [run_id],
            ).fetchdf()
