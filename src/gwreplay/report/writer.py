from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence
from urllib.parse import urlsplit

from gwreplay.config import ReplayConfig
from gwreplay.metrics import MetricGroup
from gwreplay.trace import TraceRecord

logger = logging.getLogger(__name__)


def resolve_target(config: ReplayConfig, records: Sequence[TraceRecord]) -> str:
    if config.target.host:
        return config.target.host
    if not records:
        return ""
    return urlsplit(records[0].url).hostname or ""


def build_report(
    config: ReplayConfig,
    records: Sequence[TraceRecord],
    groups: Sequence[MetricGroup],
    completed_at: datetime | None = None,
) -> dict[str, Any]:
    completed_at = completed_at or datetime.now(timezone.utc)
    return {
        "ipAddress": resolve_target(config, records),
        "httpVersion": config.target.http_version,
        "lang": "Python",
        "date": completed_at.isoformat(),
        "numLogs": len(records),
        "options": config.to_metadata(),
        "metrics": [group.to_dict() for group in groups],
    }


def report_path(results_dir: Path, completed_at: datetime) -> Path:
    return results_dir / f"results_{int(completed_at.timestamp())}.json"


def write_report(report: Mapping[str, Any], results_dir: Path, completed_at: datetime) -> Path:
    path = report_path(results_dir, completed_at)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    logger.info("Wrote report for %d records to %s", report.get("numLogs", 0), path)
    return path
