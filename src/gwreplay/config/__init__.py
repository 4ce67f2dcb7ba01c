from __future__ import annotations

from gwreplay.config.models import (
    DEFAULT_TRACE_PATH,
    MEGABYTE,
    USER_AGENT,
    PoolConfig,
    ReplayConfig,
    TargetConfig,
    TraceConfig,
)

__all__ = [
    "DEFAULT_TRACE_PATH",
    "MEGABYTE",
    "USER_AGENT",
    "PoolConfig",
    "ReplayConfig",
    "TargetConfig",
    "TraceConfig",
]
