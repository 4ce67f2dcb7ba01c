from __future__ import annotations

import asyncio
from pathlib import Path

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from gwreplay.analysis import compare_runs
from gwreplay.config import DEFAULT_TRACE_PATH, PoolConfig, ReplayConfig, TargetConfig, TraceConfig
from gwreplay.loadgen.runner import ProgressUpdate, run_replay
from gwreplay.storage import default_storage


st.set_page_config(page_title="Gateway Trace Replay", layout="wide")

storage = default_storage()


@st.cache_data
def _load_runs() -> pd.DataFrame:
    return storage.list_runs()


def _render_header() -> None:
    st.title("Gateway Trace Replay")
    st.caption("Replay captured gateway traffic and compare latency and cache behaviour.")


def _build_config() -> ReplayConfig:
    with st.sidebar:
        st.header("Replay Configuration")
        trace_path = st.text_input("Trace file", DEFAULT_TRACE_PATH)
        host = st.text_input("Target host / IP override", "")
        use_tls = st.checkbox("Use TLS", value=True)
        http_version = st.selectbox("HTTP version", [1, 2])
        duration = st.number_input("Trace minutes (0 = all)", min_value=0, value=0)
        max_records = st.number_input("Max records (0 = all)", min_value=0, value=0)
        pool_size = st.slider("Clients per pool", 1, 64, 1)
        per_format = st.checkbox("Pool per content format", value=False)
        notes = st.text_input("Notes", "")

    return ReplayConfig(
        trace=TraceConfig(path=Path(trace_path), max_duration_min=int(duration), max_records=int(max_records)),
        target=TargetConfig(host=host, use_tls=use_tls, http_version=int(http_version)),
        pool=PoolConfig(size=pool_size, per_format=per_format),
        notes=notes,
    )


def _run_button(config: ReplayConfig) -> None:
    if st.sidebar.button("Start replay"):
        progress = st.sidebar.progress(0, text="Replaying...")

        async def on_progress(update: ProgressUpdate) -> None:
            progress.progress(min(1.0, update.percent / 100.0))

        summary = asyncio.run(run_replay(config, storage, progress=on_progress))
        st.sidebar.success(f"Run completed: {summary.run_id}")
        st.cache_data.clear()


def _group_labels(groups: pd.DataFrame) -> pd.Series:
    hit = groups["cache_hit"].map({True: "hit", False: "miss"})
    return groups["status"].astype(str) + " " + groups["format"] + " " + hit


def _plot_percentiles(groups: pd.DataFrame, prefix: str, title: str) -> go.Figure:
    fig = go.Figure()
    labels = _group_labels(groups)
    for p in ("p50", "p90", "p95", "p99"):
        fig.add_trace(go.Bar(x=labels, y=groups[f"{prefix}_{p}"], name=p))
    fig.update_layout(title=title, barmode="group", height=320, margin=dict(l=10, r=10, t=40, b=10))
    return fig


def _plot_ttfb_hist(outcomes: pd.DataFrame) -> go.Figure:
    ok = outcomes[outcomes["status"] == 200]
    if ok.empty:
        return go.Figure()
    fig = px.histogram(ok, x="ttfb_ms", color="format", nbins=40, title="TTFB distribution (200s)")
    fig.update_layout(height=320, margin=dict(l=10, r=10, t=40, b=10))
    return fig


def _plot_errors(outcomes: pd.DataFrame) -> go.Figure:
    failed = outcomes[outcomes["error_type"].notna()]
    if failed.empty:
        return go.Figure()
    grouped = failed.groupby(["format", "error_type"]).size().reset_index(name="count")
    fig = px.bar(grouped, x="format", y="count", color="error_type", title="Failures by type")
    fig.update_layout(height=320, margin=dict(l=10, r=10, t=40, b=10))
    return fig


def _render_run_view(run_id: str) -> None:
    groups = storage.load_metric_groups(run_id)
    outcomes = storage.load_outcomes(run_id)
    meta = storage.load_run_meta(run_id) or {}
    st.subheader(f"Run {run_id}")
    st.caption(meta.get("notes", ""))
    if groups.empty:
        st.info("No aggregated groups for this run")
        return
    st.dataframe(groups.drop(columns=["run_id"]), use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(_plot_percentiles(groups, "ttfb", "TTFB percentiles (ms)"), use_container_width=True)
    with col2:
        st.plotly_chart(
            _plot_percentiles(groups, "duration", "Duration percentiles (ms)"),
            use_container_width=True,
        )

    col3, col4 = st.columns(2)
    with col3:
        st.plotly_chart(_plot_ttfb_hist(outcomes), use_container_width=True)
    with col4:
        st.plotly_chart(_plot_errors(outcomes), use_container_width=True)


def _render_comparison() -> None:
    runs = _load_runs()
    if runs.empty:
        return
    run_ids = runs["run_id"].tolist()
    st.subheader("Run Comparison")
    base = st.selectbox("Baseline run", run_ids, index=0)
    candidate = st.selectbox("Candidate run", run_ids, index=min(1, len(run_ids) - 1))
    if base == candidate:
        st.info("Select two different runs for comparison")
        return
    base_df = storage.load_metric_groups(base)
    cand_df = storage.load_metric_groups(candidate)

    fig = go.Figure()
    fig.add_trace(go.Bar(x=_group_labels(base_df), y=base_df["ttfb_p99"], name=f"{base} p99 TTFB"))
    fig.add_trace(go.Bar(x=_group_labels(cand_df), y=cand_df["ttfb_p99"], name=f"{candidate} p99 TTFB"))
    fig.update_layout(barmode="group", height=320, margin=dict(l=10, r=10, t=30, b=10))
    st.plotly_chart(fig, use_container_width=True)

    regressions = compare_runs(base_df, cand_df)
    if not regressions:
        st.success("No regressions detected")
    else:
        for reg in regressions:
            status, fmt, hit = reg.group
            st.error(f"[{status} {fmt} hit={hit}] {reg.message} ({reg.delta_pct:.1f}% on {reg.metric})")


def main() -> None:
    _render_header()
    config = _build_config()
    _run_button(config)

    runs = _load_runs()
    if runs.empty:
        st.info("No runs yet. Start one from the sidebar.")
        return
    selected_run = st.selectbox("Select run", runs["run_id"].tolist())
    _render_run_view(selected_run)
    _render_comparison()


if __name__ == "__main__":
    main()
