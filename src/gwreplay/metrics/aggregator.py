from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

import numpy as np

from gwreplay.metrics.models import (
    TALLIED_ERRORS,
    GroupKey,
    MetricGroup,
    Percentiles,
    RequestOutcome,
)

AGGREGATED_STATUSES = frozenset({200, 0})
PERCENTILE_RANKS = (50, 90, 95, 99)


def percentiles(values: Sequence[float]) -> Percentiles:
    if len(values) == 0:
        msg = "Cannot compute percentiles of an empty sequence"
        raise ValueError(msg)
    ordered = np.sort(np.asarray(values, dtype=float))
    p50, p90, p95, p99 = (float(v) for v in np.percentile(ordered, PERCENTILE_RANKS))
    return Percentiles(p50=p50, p90=p90, p95=p95, p99=p99)


def aggregate_groups(outcomes: Iterable[RequestOutcome]) -> list[MetricGroup]:
    """Summarise outcomes per (status, format, cache-hit).

    Only statuses 200 and 0 are kept. Groups are ordered largest first, ties
    broken by key.
    """
    groups: dict[GroupKey, list[RequestOutcome]] = defaultdict(list)
    for outcome in outcomes:
        if outcome.status in AGGREGATED_STATUSES:
            key = GroupKey(outcome.status, outcome.format, outcome.cache_hit)
            groups[key].append(outcome)

    metrics: list[MetricGroup] = []
    for key, values in groups.items():
        errors = {err.value: 0 for err in TALLIED_ERRORS}
        for v in values:
            if v.error_type in TALLIED_ERRORS:
                errors[v.error_type.value] += 1
        metrics.append(
            MetricGroup(
                key=key,
                num_logs=len(values),
                ttfb_ms=percentiles([v.ttfb_ms for v in values]),
                duration_ms=percentiles([v.duration_ms for v in values]),
                errors=errors,
            )
        )
    metrics.sort(key=lambda m: (-m.num_logs, m.key))
    return metrics
