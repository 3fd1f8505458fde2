from __future__ import annotations

from typing import Any

import altair as alt
import streamlit as st

from project_tracking.services.dday import dday_statistics
from project_tracking.services.dismissed import DismissedStore, dismiss, dismiss_all
from project_tracking.services.feedback_notifications import PRIORITY_BUCKETS, rank_feedback
from project_tracking.services.progress import BAND_ALL, filter_by_band
from project_tracking.services.schedule_notifications import (
    NotificationThresholds,
    select_schedule_notifications,
)
from project_tracking.services.tables import (
    feedback_frame,
    progress_frame,
    schedule_frame,
    stage_progress_long,
)

BAND_LABELS = {
    BAND_ALL: "All",
    "planning": "Planning (< 30%)",
    "in_progress": "In progress (30-89%)",
    "near_completion": "Near completion (>= 90%)",
}

PRIORITY_LABELS = {
    "critical": "Critical",
    "high": "High",
    "normal": "Normal",
    "low": "Low",
}


def _render_progress(projects: list[dict[str, Any]]) -> None:
    st.subheader("Progress")
    band = st.selectbox(
        "Filter",
        list(BAND_LABELS),
        format_func=lambda key: BAND_LABELS[key],
        key="progress_band",
    )
    visible = filter_by_band(projects, band)
    progress_df = progress_frame(visible)
    st.caption(f"Projects: {len(progress_df)}")
    st.dataframe(progress_df, use_container_width=True, hide_index=True)

    long_df = stage_progress_long(progress_df)
    if long_df.empty:
        return
    chart = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("percent:Q", title="Completion %", scale=alt.Scale(domain=[0, 100])),
            y=alt.Y("name:N", title=None),
            color=alt.Color("stage:N", legend=alt.Legend(title=None)),
            yOffset="stage:N",
            tooltip=[
                alt.Tooltip("name:N", title="Project"),
                alt.Tooltip("stage:N", title="Stage"),
                alt.Tooltip("percent:Q", title="%"),
            ],
        )
    )
    st.altair_chart(chart, use_container_width=True)


def _render_schedule(projects: list[dict[str, Any]], thresholds: NotificationThresholds) -> None:
    st.subheader("Schedule")
    stats = dday_statistics(projects)
    cols = st.columns(4)
    cols[0].metric("Overdue", stats["overdue"])
    cols[1].metric("Today", stats["today"])
    cols[2].metric("Within 7 days", stats["urgent"])
    cols[3].metric("Completed", stats["completed"])

    events = select_schedule_notifications(projects, thresholds)
    if not events:
        st.info("No milestones need attention.")
        return
    st.dataframe(schedule_frame(events), use_container_width=True, hide_index=True)


def _render_feedback(
    projects: list[dict[str, Any]],
    opinions: list[dict[str, Any]],
    store: DismissedStore,
    max_items: int,
) -> None:
    st.subheader("Open feedback")
    ranked = rank_feedback(opinions, store.load(), max_items=max_items, projects=projects)
    if not ranked.items:
        st.info("No open feedback.")
        return

    if st.button("Dismiss all", key="dismiss_all_feedback"):
        dismiss_all(store, ranked.ids)
        st.rerun()

    for priority in PRIORITY_BUCKETS:
        bucket = ranked.buckets[priority]
        if not bucket:
            continue
        st.markdown(f"**{PRIORITY_LABELS[priority]}** ({len(bucket)})")
        for item in bucket:
            payload = item.payload
            left, right = st.columns([6, 1])
            left.write(
                f"{payload['project_name']}: {payload['content']} "
                f"({payload['created_by']}, {payload['days_since_created']} d)"
            )
            if right.button("Dismiss", key=f"dismiss_{item.source_id}"):
                dismiss(store, item.source_id)
                st.rerun()

    with st.expander("Ranking details"):
        st.dataframe(feedback_frame(ranked), use_container_width=True, hide_index=True)


def render(
    projects: list[dict[str, Any]],
    opinions: list[dict[str, Any]],
    store: DismissedStore,
    thresholds: NotificationThresholds | None = None,
    max_items: int = 10,
) -> None:
    st.header("Dashboard")
    _render_progress(projects)
    _render_schedule(projects, thresholds or NotificationThresholds())
    _render_feedback(projects, opinions, store, max_items)
