from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd

from project_tracking.services.dday import ScheduleEvent, dday_tone
from project_tracking.services.feedback_notifications import RankedFeedback
from project_tracking.services.progress import progress_band, score_project
from project_tracking.services.records import first_value, record_id

PROGRESS_COLUMNS = ["id", "name", "model", "overall", "stage1", "stage2", "stage3", "band"]
SCHEDULE_COLUMNS = [
    "project_id",
    "project",
    "stage",
    "milestone",
    "target_date",
    "dday",
    "status",
    "tone",
    "type",
    "urgency",
    "priority_score",
]
FEEDBACK_COLUMNS = ["id", "priority", "score", "project", "content", "created_by", "days_open"]


def progress_frame(projects: Iterable[Any]) -> pd.DataFrame:
    rows = []
    for project in projects:
        progress = score_project(project)
        record = project if isinstance(project, Mapping) else {}
        rows.append(
            {
                "id": record_id(record),
                "name": str(record.get("name") or ""),
                "model": str(first_value(record, "modelName", "model_name", default="")),
                **progress.as_dict(),
                "band": progress_band(progress.overall),
            }
        )
    return pd.DataFrame(rows, columns=PROGRESS_COLUMNS)


def schedule_frame(events: Iterable[ScheduleEvent]) -> pd.DataFrame:
    rows = [
        {
            "project_id": event.project_id,
            "project": event.project_name,
            "stage": event.stage,
            "milestone": event.field_label,
            "target_date": event.target_date,
            "dday": event.dday_label,
            "status": event.status,
            "tone": dday_tone(event.status),
            "type": event.notification_type,
            "urgency": event.urgency,
            "priority_score": event.priority_score,
        }
        for event in events
    ]
    return pd.DataFrame(rows, columns=SCHEDULE_COLUMNS)


def feedback_frame(ranked: RankedFeedback) -> pd.DataFrame:
    rows = [
        {
            "id": item.source_id,
            "priority": item.urgency_class,
            "score": round(item.score, 2),
            "project": item.payload.get("project_name"),
            "content": item.payload.get("content"),
            "created_by": item.payload.get("created_by"),
            "days_open": item.payload.get("days_since_created"),
        }
        for item in ranked.items
    ]
    return pd.DataFrame(rows, columns=FEEDBACK_COLUMNS)


def stage_progress_long(progress: pd.DataFrame) -> pd.DataFrame:
    """Reshape a progress frame to one row per (project, stage) for charting."""
    if progress.empty:
        return pd.DataFrame(columns=["name", "stage", "percent"])
    return progress.melt(
        id_vars=["name"],
        value_vars=["stage1", "stage2", "stage3"],
        var_name="stage",
        value_name="percent",
    )
