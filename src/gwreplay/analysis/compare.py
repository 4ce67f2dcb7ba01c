from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from gwreplay.metrics import GroupKey

GROUP_COLUMNS = ["status", "format", "cache_hit"]
LATENCY_THRESHOLD = 0.2


@dataclass(frozen=True, slots=True)
class Regression:
    group: GroupKey
    metric: str
    delta_pct: float
    message: str


def compare_runs(base: pd.DataFrame, candidate: pd.DataFrame) -> list[Regression]:
    """Flag per-group regressions between two runs' metric groups.

    Groups present in only one run are ignored.
    """
    regressions: list[Regression] = []
    if base.empty or candidate.empty:
        return regressions
    merged = base.merge(candidate, on=GROUP_COLUMNS, suffixes=("_base", "_cand"))
    for _, row in merged.iterrows():
        group = GroupKey(int(row["status"]), str(row["format"]), bool(row["cache_hit"]))
        for metric, label in (("ttfb_p99", "p99 TTFB"), ("duration_p99", "p99 duration")):
            base_value = row[f"{metric}_base"]
            cand_value = row[f"{metric}_cand"]
            if base_value > 0:
                delta = (cand_value - base_value) / base_value
                if delta > LATENCY_THRESHOLD:
                    regressions.append(
                        Regression(
                            group=group,
                            metric=metric,
                            delta_pct=delta * 100,
                            message=f"{label} increased materially",
                        )
                    )
        for metric in ("timeout_awaiting_headers", "timeout_reading_body"):
            base_rate = row[f"{metric}_base"] / max(1, row["num_logs_base"])
            cand_rate = row[f"{metric}_cand"] / max(1, row["num_logs_cand"])
            if cand_rate > base_rate:
                delta = (cand_rate - base_rate) / base_rate if base_rate > 0 else 1.0
                regressions.append(
                    Regression(
                        group=group,
                        metric=metric,
                        delta_pct=delta * 100,
                        message="timeout rate regression detected",
                    )
                )
    return regressions
