from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

import httpx
import pandas as pd

ACCEPT_HEADERS: Mapping[str, str] = {
    "car": "application/vnd.ipld.car",
    "raw": "application/vnd.ipld.raw",
}


@dataclass(frozen=True, slots=True)
class TraceRecord:
    url: str
    scheduled_at: float
    original_at: float
    format: str
    cache_hit: bool
    status: int


def accept_header(fmt: str) -> str | None:
    return ACCEPT_HEADERS.get(fmt)


def decode_record(line: str) -> TraceRecord:
    """Decode one trace line.

    Raises ``ValueError``, ``KeyError``, ``TypeError`` or ``httpx.InvalidURL``
    when the line is not a usable record. The scheduled time starts out equal
    to the recorded time; the loader shifts it.
    """
    data = json.loads(line)
    if not isinstance(data, dict):
        msg = f"Expected a JSON object, got {type(data).__name__}"
        raise TypeError(msg)
    url = _require(data, "url", str)
    httpx.URL(url)
    started = pd.Timestamp(_require(data, "startTime", str))
    if started is pd.NaT:
        msg = "startTime is empty"
        raise ValueError(msg)
    if started.tzinfo is None:
        started = started.tz_localize("UTC")
    fmt = data.get("format") or ""
    if not isinstance(fmt, str):
        msg = f"format must be a string, got {type(fmt).__name__}"
        raise TypeError(msg)
    cache_hit = _require(data, "cacheHit", bool)
    status = data["httpStatusCode"]
    if isinstance(status, bool) or not isinstance(status, (int, float)):
        msg = f"httpStatusCode must be a number, got {status!r}"
        raise TypeError(msg)
    original_at = started.timestamp()
    return TraceRecord(
        url=url,
        scheduled_at=original_at,
        original_at=original_at,
        format=fmt,
        cache_hit=cache_hit,
        status=int(status),
    )


def _require(data: Mapping[str, Any], key: str, kind: type) -> Any:
    value = data[key]
    if not isinstance(value, kind):
        msg = f"{key} must be {kind.__name__}, got {value!r}"
        raise TypeError(msg)
    return value
