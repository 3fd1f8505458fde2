from __future__ import annotations

from project_tracking.services.clock import Clock, resolve_today
from project_tracking.services.dday import ScheduleEvent
from project_tracking.services.feedback_notifications import (
    PRIORITY_BUCKETS,
    FeedbackNotification,
    RankedFeedback,
)
from project_tracking.services.schedule_notifications import (
    TYPE_OVERDUE,
    TYPE_REMINDER,
    TYPE_TODAY,
    TYPE_URGENT,
)

SECTION_TITLES = {
    TYPE_OVERDUE: "Overdue",
    TYPE_TODAY: "Due today",
    TYPE_URGENT: "Due soon",
    TYPE_REMINDER: "Reminders",
}


def _format_event_line(event: ScheduleEvent) -> str:
    project = event.project_name or "Untitled project"
    model = f" [{event.model_name}]" if event.model_name else ""
    return (
        f"- {project}{model} | {event.field_label} ({event.stage})"
        f" | Target: {event.target_date} | {event.dday_label}"
    )


def _format_feedback_line(item: FeedbackNotification) -> str:
    payload = item.payload
    content = " ".join(str(payload.get("content") or "").split())
    if len(content) > 80:
        content = content[:77] + "..."
    days = payload.get("days_since_created") or 0
    return (
        f"- [{item.urgency_class}] {payload.get('project_name')} | {content}"
        f" | {payload.get('created_by')} | {days} days open"
    )


def build_schedule_digest(
    events: list[ScheduleEvent],
    clock: Clock | None = None,
) -> tuple[str, str]:
    today = resolve_today(clock)
    subject = f"Stage Tracker: Schedule digest ({today.isoformat()})"

    lines = ["Schedule summary:"]
    for notification_type, title in SECTION_TITLES.items():
        count = sum(1 for event in events if event.notification_type == notification_type)
        lines.append(f"- {title}: {count}")
    lines.append("")

    if not events:
        lines.append("No milestones need attention.")
        return subject, "\n".join(lines)

    for notification_type, title in SECTION_TITLES.items():
        section = [event for event in events if event.notification_type == notification_type]
        if not section:
            continue
        lines.append(f"{title}:")
        for event in section:
            lines.append(_format_event_line(event))
        lines.append("")

    return subject, "\n".join(lines).rstrip()


def build_feedback_digest(
    ranked: RankedFeedback,
    clock: Clock | None = None,
) -> tuple[str, str]:
    today = resolve_today(clock)
    subject = f"Stage Tracker: Open feedback ({today.isoformat()})"

    lines = [f"Open feedback items: {len(ranked.items)}", ""]
    if not ranked.items:
        lines.append("No open feedback.")
        return subject, "\n".join(lines)

    for priority in PRIORITY_BUCKETS:
        bucket = ranked.buckets.get(priority) or []
        if not bucket:
            continue
        lines.append(f"{priority.capitalize()} ({len(bucket)}):")
        for item in bucket:
            lines.append(_format_feedback_line(item))
        lines.append("")

    return subject, "\n".join(lines).rstrip()
