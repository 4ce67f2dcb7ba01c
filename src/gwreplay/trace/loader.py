from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

import httpx

from gwreplay.config import TargetConfig, TraceConfig
from gwreplay.trace.records import TraceRecord, decode_record

logger = logging.getLogger(__name__)


def load_trace(
    trace: TraceConfig,
    target: TargetConfig,
    now: float | None = None,
) -> list[TraceRecord]:
    """Read a trace file and reschedule its records relative to ``now``.

    Opening or reading the file raises ``OSError``; undecodable lines are
    skipped.
    """
    with trace.path.open("r", encoding="utf-8") as fh:
        records = reschedule(decode_lines(fh), trace, target, now)
    logger.info("Loaded %d records from %s", len(records), trace.path)
    return records


def decode_lines(lines: Iterable[str]) -> Iterable[TraceRecord]:
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            record = decode_record(line)
        except httpx.InvalidURL as exc:
            logger.debug("Skipping line %d: %s", lineno, exc)
            continue
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Skipping line %d: %r", lineno, exc)
            continue
        if not record.format:
            continue
        yield record


def reschedule(
    records: Iterable[TraceRecord],
    trace: TraceConfig,
    target: TargetConfig,
    now: float | None = None,
) -> list[TraceRecord]:
    now = time.time() if now is None else now
    limit_sec = trace.max_duration_min * 60
    result: list[TraceRecord] = []
    first_at: float | None = None
    offset = 0.0
    for record in records:
        if first_at is None:
            first_at = record.original_at
            offset = now - first_at + trace.start_buffer_sec
        if limit_sec and record.original_at - first_at > limit_sec:
            break
        result.append(
            replace(
                record,
                scheduled_at=record.original_at + offset,
                url=rewrite_url(record.url, target),
            )
        )
        if trace.max_records and len(result) >= trace.max_records:
            break
    return result


def rewrite_url(url: str, target: TargetConfig) -> str:
    parts = urlsplit(url)
    if target.host:
        parts = parts._replace(netloc=target.host)
    if target.use_tls is not None:
        parts = parts._replace(scheme="https" if target.use_tls else "http")
    return urlunsplit(parts)
