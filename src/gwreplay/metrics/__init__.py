from __future__ import annotations

from gwreplay.metrics.aggregator import aggregate_groups, percentiles
from gwreplay.metrics.models import (
    ErrorType,
    GroupKey,
    MetricGroup,
    Percentiles,
    RequestOutcome,
)

__all__ = [
    "ErrorType",
    "GroupKey",
    "MetricGroup",
    "Percentiles",
    "RequestOutcome",
    "aggregate_groups",
    "percentiles",
]
