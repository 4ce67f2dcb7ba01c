from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


class ErrorType(str, Enum):
    TIMEOUT_AWAITING_HEADERS = "timeoutAwaitingHeaders"
    TIMEOUT_READING_BODY = "timeoutReadingBody"
    CONNECT = "connect"
    READ = "read"
    OTHER = "other"


TALLIED_ERRORS = (ErrorType.TIMEOUT_AWAITING_HEADERS, ErrorType.TIMEOUT_READING_BODY)


@dataclass(frozen=True, slots=True)
class RequestOutcome:
    ttfb_ms: int
    cache_hit: bool
    status: int
    format: str
    duration_ms: int
    bytes_received: int
    error_type: ErrorType | None = None
    error: str | None = None


class GroupKey(NamedTuple):
    status: int
    format: str
    cache_hit: bool


@dataclass(frozen=True, slots=True)
class Percentiles:
    p50: float
    p90: float
    p95: float
    p99: float

    def to_dict(self) -> dict[str, float]:
        return {"p50": self.p50, "p90": self.p90, "p95": self.p95, "p99": self.p99}


@dataclass(frozen=True, slots=True)
class MetricGroup:
    key: GroupKey
    num_logs: int
    ttfb_ms: Percentiles
    duration_ms: Percentiles
    errors: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.key.status,
            "format": self.key.format,
            "cacheHit": self.key.cache_hit,
            "ttfb_ms": self.ttfb_ms.to_dict(),
            "duration_ms": self.duration_ms.to_dict(),
            "numLogs": self.num_logs,
            "errors": dict(self.errors),
        }
