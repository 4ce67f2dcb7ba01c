from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

MEGABYTE = 1024 * 1024
DEFAULT_TRACE_PATH = "logs/logs.ndjson"
USER_AGENT = "L1-replay-py"


@dataclass(frozen=True, slots=True)
class TraceConfig:
    path: Path = Path(DEFAULT_TRACE_PATH)
    max_duration_min: int = 0  # 0 = unlimited, measured on trace timestamps
    max_records: int = 0  # 0 = unlimited
    start_buffer_sec: float = 3.0


@dataclass(frozen=True, slots=True)
class TargetConfig:
    host: str = ""  # overrides the host of every trace URL when set
    use_tls: bool | None = True  # None keeps the recorded scheme
    http_version: int = 1
    timeout_sec: float = 60.0
    max_download_bytes: int = 50 * MEGABYTE
    user_agent: str = USER_AGENT

    def __post_init__(self) -> None:
        if self.http_version not in (1, 2):
            msg = f"Unsupported HTTP version: {self.http_version}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class PoolConfig:
    size: int = 1
    per_format: bool = False

    def __post_init__(self) -> None:
        if self.size < 1:
            msg = f"Pool size must be at least 1, got {self.size}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ReplayConfig:
    trace: TraceConfig = field(default_factory=TraceConfig)
    target: TargetConfig = field(default_factory=TargetConfig)
    pool: PoolConfig = field(default_factory=PoolConfig)
    results_dir: Path = Path("results")
    seed: int | None = None
    run_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str = ""

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "run_id": self.run_id or "",
            "created_at": self.created_at.isoformat(),
            "notes": self.notes,
            "seed": self.seed,
            "results_dir": str(self.results_dir),
            "trace": {
                "path": str(self.trace.path),
                "max_duration_min": self.trace.max_duration_min,
                "max_records": self.trace.max_records,
                "start_buffer_sec": self.trace.start_buffer_sec,
            },
            "target": {
                "host": self.target.host,
                "use_tls": self.target.use_tls,
                "http_version": self.target.http_version,
                "timeout_sec": self.target.timeout_sec,
                "max_download_bytes": self.target.max_download_bytes,
                "user_agent": self.target.user_agent,
            },
            "pool": {
                "size": self.pool.size,
                "per_format": self.pool.per_format,
            },
        }
