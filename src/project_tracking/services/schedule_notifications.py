from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from project_tracking.services.clock import Clock, resolve_today
from project_tracking.services.dday import (
    STATUS_OVERDUE,
    STATUS_TODAY,
    ScheduleEvent,
    iter_schedule_events,
)
from project_tracking.services.ranking import rank

TYPE_OVERDUE = "overdue"
TYPE_TODAY = "today"
TYPE_URGENT = "urgent"
TYPE_REMINDER = "reminder"

URGENCY_HIGH = "high"
URGENCY_MEDIUM = "medium"
URGENCY_LOW = "low"

URGENCY_BY_TYPE = {
    TYPE_OVERDUE: URGENCY_HIGH,
    TYPE_TODAY: URGENCY_HIGH,
    TYPE_URGENT: URGENCY_MEDIUM,
    TYPE_REMINDER: URGENCY_LOW,
}

URGENCY_ORDER = {URGENCY_HIGH: 0, URGENCY_MEDIUM: 1, URGENCY_LOW: 2}


@dataclass(frozen=True)
class NotificationThresholds:
    urgent_days: int = 7
    reminder_days: int = 3
    include_today: bool = True
    include_overdue: bool = True


def classify_notification(event: ScheduleEvent, thresholds: NotificationThresholds) -> str | None:
    """Notification type for an open milestone, or ``None`` when it should stay quiet.

    Checks run in order overdue, today, urgent, reminder; with
    ``reminder_days > urgent_days`` the urgent window still wins for the
    overlapping days.
    """
    if event.executed:
        return None
    if event.status == STATUS_OVERDUE and thresholds.include_overdue:
        return TYPE_OVERDUE
    if event.status == STATUS_TODAY and thresholds.include_today:
        return TYPE_TODAY
    offset = event.day_offset
    if offset is None or offset <= 0:
        return None
    if offset <= thresholds.urgent_days:
        return TYPE_URGENT
    if offset <= thresholds.reminder_days:
        return TYPE_REMINDER
    return None


def _sort_key(event: ScheduleEvent) -> tuple[int, int]:
    return URGENCY_ORDER[event.urgency], event.priority_score


def select_schedule_notifications(
    projects: Iterable[Any],
    thresholds: NotificationThresholds | None = None,
    clock: Clock | None = None,
) -> list[ScheduleEvent]:
    """Open milestones worth notifying about, most urgent first.

    The same (project, field type, day) is reported once. Projects without
    an id are never merged with each other. Events with equal
    urgency and priority keep project order, then field order. The list is
    not capped.
    """
    thresholds = thresholds or NotificationThresholds()
    today = resolve_today(clock)

    seen: set[tuple[str, str, date | None]] = set()
    selected: list[ScheduleEvent] = []
    for project in projects:
        for event in iter_schedule_events(project, today):
            notification_type = classify_notification(event, thresholds)
            if notification_type is None:
                continue
            # Records without an id cannot be told apart, so they are never merged.
            if event.project_id:
                key = (event.project_id, event.field_type, event.calendar_day)
                if key in seen:
                    continue
                seen.add(key)
            selected.append(
                replace(
                    event,
                    notification_type=notification_type,
                    urgency=URGENCY_BY_TYPE[notification_type],
                )
            )

    return rank(selected, _sort_key)
