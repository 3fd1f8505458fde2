from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from project_tracking.services.clock import Clock, resolve_today
from project_tracking.services.fields import executed_field_for
from project_tracking.services.ranking import rank
from project_tracking.services.records import first_value, has_text, is_checked, record_id

STATUS_COMPLETED = "completed"
STATUS_OVERDUE = "overdue"
STATUS_TODAY = "today"
STATUS_URGENT = "urgent"
STATUS_UPCOMING = "upcoming"
STATUS_FUTURE = "future"
STATUS_UNKNOWN = "unknown"

STATUSES = (
    STATUS_OVERDUE,
    STATUS_TODAY,
    STATUS_URGENT,
    STATUS_UPCOMING,
    STATUS_FUTURE,
    STATUS_COMPLETED,
    STATUS_UNKNOWN,
)

URGENT_WINDOW_DAYS = 7
UPCOMING_WINDOW_DAYS = 30

PRIORITY_EXECUTED = 1000
PRIORITY_NO_DATE = 999

DONE_LABEL = "Done"

STATUS_TONES = {
    STATUS_COMPLETED: "success",
    STATUS_OVERDUE: "danger",
    STATUS_TODAY: "critical",
    STATUS_URGENT: "warning",
    STATUS_UPCOMING: "caution",
    STATUS_FUTURE: "info",
    STATUS_UNKNOWN: "muted",
}

_DATE_PREFIX_RE = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?=$|[T ])")


@dataclass(frozen=True)
class ScheduleField:
    stage: str
    field: str
    field_type: str
    label: str


# Labeled date-bearing fields checked for notifications, in display order.
# Legacy names share the field type of the field that replaced them.
SCHEDULE_FIELDS: tuple[ScheduleField, ...] = (
    ScheduleField("stage1", "launchDate", "launch", "Launch date"),
    ScheduleField("stage1", "releaseDate", "launch", "Launch date"),
    ScheduleField("stage1", "massProductionDate", "massProduction", "Mass production date"),
    ScheduleField("stage2", "pilotProductionDate", "pilotProduction", "Pilot production date"),
    ScheduleField("stage2", "pilotReceiveDate", "pilotReceive", "Pilot receive date"),
    ScheduleField("stage2", "techTransferDate", "techTransfer", "Tech transfer date"),
    ScheduleField("stage2", "installationDate", "installation", "Installation date"),
    ScheduleField("stage2", "trainingDate", "training", "Training date"),
    ScheduleField("stage2", "orderAcceptanceDate", "orderAcceptance", "Order acceptance date"),
    ScheduleField("stage3", "initialProductionDate", "initialProduction", "Initial production date"),
    ScheduleField("stage3", "firstOrderDate", "firstOrder", "First order date"),
    ScheduleField("stage3", "bomTargetDate", "bomTarget", "BOM target date"),
    ScheduleField("stage3", "bomCompletionDate", "bomTarget", "BOM target date"),
    ScheduleField("stage3", "priceTargetDate", "priceTarget", "Price target date"),
    ScheduleField("stage3", "partsDeliveryDate", "partsDelivery", "Parts delivery date"),
    ScheduleField("stage3", "partsArrivalDate", "partsDelivery", "Parts delivery date"),
    ScheduleField("stage3", "qualityApprovalDate", "qualityApproval", "Quality approval date"),
)


@dataclass(frozen=True)
class ScheduleEvent:
    project_id: str
    project_name: str
    model_name: str
    stage: str
    field_name: str
    field_type: str
    field_label: str
    target_date: str
    calendar_day: date | None
    executed: bool
    day_offset: int | None
    status: str
    priority_score: int
    notification_type: str | None = None
    urgency: str | None = None

    @property
    def dday_label(self) -> str:
        return _format_offset(self.day_offset, self.executed)


def _local_day(moment: datetime) -> date:
    # Offset-aware timestamps land on the local calendar day.
    if moment.tzinfo is not None:
        return moment.astimezone().date()
    return moment.date()


def _parse_datetime(text: str) -> datetime | None:
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_date(value: Any) -> date | None:
    """Calendar day of a free-text date field; ``None`` when absent or unparseable."""
    if value in (None, "") or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _local_day(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    match = _DATE_PREFIX_RE.match(text)
    if match:
        if match.end() < len(text):
            moment = _parse_datetime(text)
            if moment is not None and moment.tzinfo is not None:
                return _local_day(moment)
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    moment = _parse_datetime(text)
    return None if moment is None else _local_day(moment)


def _offset_from(target: Any, today: date) -> int | None:
    parsed = parse_date(target)
    if parsed is None:
        return None
    return (parsed - today).days


def _status_from(offset: int | None, executed: bool) -> str:
    if executed:
        return STATUS_COMPLETED
    if offset is None:
        return STATUS_UNKNOWN
    if offset < 0:
        return STATUS_OVERDUE
    if offset == 0:
        return STATUS_TODAY
    if offset <= URGENT_WINDOW_DAYS:
        return STATUS_URGENT
    if offset <= UPCOMING_WINDOW_DAYS:
        return STATUS_UPCOMING
    return STATUS_FUTURE


def _priority_from(offset: int | None, executed: bool) -> int:
    if executed:
        return PRIORITY_EXECUTED
    if offset is None:
        return PRIORITY_NO_DATE
    # Overdue milestones share the days-remaining scale: D+3 weighs like D-3.
    return abs(offset)


def _format_offset(offset: int | None, executed: bool, done_label: str = DONE_LABEL) -> str:
    if executed:
        return done_label
    if offset is None:
        return ""
    if offset < 0:
        return f"D+{abs(offset)}"
    if offset == 0:
        return "D-Day"
    return f"D-{offset}"


def day_offset(target: Any, clock: Clock | None = None) -> int | None:
    return _offset_from(target, resolve_today(clock))


def dday_status(target: Any, executed: Any = False, clock: Clock | None = None) -> str:
    return _status_from(_offset_from(target, resolve_today(clock)), is_checked(executed))


def dday_priority(target: Any, executed: Any = False, clock: Clock | None = None) -> int:
    """Sort weight for a milestone, lower is more urgent."""
    return _priority_from(_offset_from(target, resolve_today(clock)), is_checked(executed))


def format_dday(
    target: Any,
    executed: Any = False,
    clock: Clock | None = None,
    done_label: str = DONE_LABEL,
) -> str:
    offset = _offset_from(target, resolve_today(clock))
    return _format_offset(offset, is_checked(executed), done_label)


def dday_tone(status: str) -> str:
    return STATUS_TONES.get(status, STATUS_TONES[STATUS_UNKNOWN])


def iter_schedule_events(project: Any, today: date) -> Iterator[ScheduleEvent]:
    """Yield one event per populated schedule field, in ``SCHEDULE_FIELDS`` order."""
    if not isinstance(project, Mapping):
        return
    project_id = record_id(project)
    project_name = str(project.get("name") or "")
    model_name = str(first_value(project, "modelName", "model_name", default=""))

    for entry in SCHEDULE_FIELDS:
        stage = project.get(entry.stage)
        if not isinstance(stage, Mapping):
            continue
        target = stage.get(entry.field)
        if not _has_date_value(target):
            continue
        executed = is_checked(stage.get(executed_field_for(entry.field)))
        calendar_day = parse_date(target)
        offset = None if calendar_day is None else (calendar_day - today).days
        yield ScheduleEvent(
            project_id=project_id,
            project_name=project_name,
            model_name=model_name,
            stage=entry.stage,
            field_name=entry.field,
            field_type=entry.field_type,
            field_label=entry.label,
            target_date=target if isinstance(target, str) else calendar_day.isoformat(),
            calendar_day=calendar_day,
            executed=executed,
            day_offset=offset,
            status=_status_from(offset, executed),
            priority_score=_priority_from(offset, executed),
        )


def _has_date_value(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    return has_text(value)


def project_ddays(project: Any, clock: Clock | None = None) -> list[ScheduleEvent]:
    today = resolve_today(clock)
    return rank(iter_schedule_events(project, today), lambda event: event.priority_score)


def dday_statistics(projects: Iterable[Any], clock: Clock | None = None) -> dict[str, int]:
    today = resolve_today(clock)
    stats = {"total": 0, **{status: 0 for status in STATUSES}}
    for project in projects:
        for event in iter_schedule_events(project, today):
            stats["total"] += 1
            stats[event.status] += 1
    return stats
