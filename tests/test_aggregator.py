from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from gwreplay.metrics import ErrorType, GroupKey, RequestOutcome, aggregate_groups, percentiles


def _outcome(
    status: int = 200,
    fmt: str = "raw",
    hit: bool = False,
    ttfb: int = 10,
    duration: int = 20,
    error_type: ErrorType | None = None,
) -> RequestOutcome:
    return RequestOutcome(
        ttfb_ms=ttfb,
        cache_hit=hit,
        status=status,
        format=fmt,
        duration_ms=duration,
        bytes_received=0,
        error_type=error_type,
        error=error_type.value if error_type else None,
    )


def test_three_records_form_three_single_groups() -> None:
    outcomes = [
        _outcome(fmt="raw", hit=True, ttfb=5, duration=7),
        _outcome(fmt="car", hit=False, ttfb=11, duration=40),
        _outcome(fmt="raw", hit=False, ttfb=9, duration=12),
    ]
    groups = {g.key: g for g in aggregate_groups(outcomes)}
    assert set(groups) == {
        GroupKey(200, "raw", True),
        GroupKey(200, "raw", False),
        GroupKey(200, "car", False),
    }
    car = groups[GroupKey(200, "car", False)]
    assert car.num_logs == 1
    assert car.ttfb_ms.p50 == car.ttfb_ms.p99 == 11.0
    assert car.duration_ms.p50 == car.duration_ms.p99 == 40.0


def test_only_success_and_no_response_are_aggregated() -> None:
    outcomes = [
        _outcome(status=200),
        _outcome(status=0, ttfb=0, error_type=ErrorType.CONNECT),
        _outcome(status=404),
        _outcome(status=500),
        _outcome(status=302),
    ]
    groups = aggregate_groups(outcomes)
    assert sorted(g.key.status for g in groups) == [0, 200]
    assert sum(g.num_logs for g in groups) == 2


def test_header_timeout_is_tallied_once() -> None:
    outcomes = [
        _outcome(status=0, ttfb=0, duration=60000, error_type=ErrorType.TIMEOUT_AWAITING_HEADERS),
    ]
    (group,) = aggregate_groups(outcomes)
    assert group.key == GroupKey(0, "raw", False)
    assert group.ttfb_ms.p99 == 0.0
    assert group.errors == {"timeoutAwaitingHeaders": 1, "timeoutReadingBody": 0}


def test_error_counters_present_for_clean_groups() -> None:
    outcomes = [
        _outcome(),
        _outcome(error_type=ErrorType.TIMEOUT_READING_BODY),
        _outcome(error_type=ErrorType.READ),
    ]
    (group,) = aggregate_groups(outcomes)
    assert group.num_logs == 3
    assert group.errors == {"timeoutAwaitingHeaders": 0, "timeoutReadingBody": 1}


def test_groups_sorted_by_count_then_key() -> None:
    outcomes = [
        _outcome(fmt="raw"),
        _outcome(fmt="car"),
        _outcome(fmt="car", hit=True),
        _outcome(fmt="car", hit=True),
        _outcome(status=0, fmt="raw"),
    ]
    keys = [g.key for g in aggregate_groups(outcomes)]
    assert keys == [
        GroupKey(200, "car", True),
        GroupKey(0, "raw", False),
        GroupKey(200, "car", False),
        GroupKey(200, "raw", False),
    ]


def test_empty_outcomes_give_no_groups() -> None:
    assert aggregate_groups([]) == []


def test_group_to_dict_shape() -> None:
    (group,) = aggregate_groups([_outcome(fmt="car", hit=True)])
    data = group.to_dict()
    assert data["status"] == 200
    assert data["format"] == "car"
    assert data["cacheHit"] is True
    assert data["numLogs"] == 1
    assert set(data["ttfb_ms"]) == {"p50", "p90", "p95", "p99"}
    assert data["errors"] == {"timeoutAwaitingHeaders": 0, "timeoutReadingBody": 0}


def test_percentiles_interpolate_linearly() -> None:
    result = percentiles([4, 1, 3, 2])
    assert result.p50 == pytest.approx(2.5)
    assert result.p90 == pytest.approx(3.7)
    assert result.p99 == pytest.approx(3.97)


def test_percentiles_reject_empty() -> None:
    with pytest.raises(ValueError):
        percentiles([])


@given(values=st.lists(st.integers(min_value=0, max_value=120_000), min_size=1, max_size=200))
def test_percentiles_monotonic(values: list[int]) -> None:
    result = percentiles(values)
    assert min(values) <= result.p50 <= result.p90 <= result.p95 <= result.p99 <= max(values)
    assert percentiles(values) == result


@given(value=st.integers(min_value=0, max_value=120_000))
def test_single_value_percentiles(value: int) -> None:
    result = percentiles([value])
    assert result.p50 == result.p90 == result.p95 == result.p99 == float(value)
