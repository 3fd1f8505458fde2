from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from project_tracking.services.clock import Clock, resolve_today
from project_tracking.services.dday import parse_date
from project_tracking.services.ranking import rank
from project_tracking.services.records import first_value, normalize_key, record_id

PRIORITY_CRITICAL = "critical"
PRIORITY_HIGH = "high"
PRIORITY_NORMAL = "normal"
PRIORITY_LOW = "low"

PRIORITY_WEIGHTS = {
    PRIORITY_CRITICAL: 4,
    PRIORITY_HIGH: 3,
    PRIORITY_NORMAL: 2,
    PRIORITY_LOW: 1,
}
PRIORITY_BUCKETS = (PRIORITY_CRITICAL, PRIORITY_HIGH, PRIORITY_NORMAL, PRIORITY_LOW)

AGE_SCORE_PER_DAY = 0.1
AGE_SCORE_CAP = 2.0
DEFAULT_MAX_ITEMS = 10

STATUS_OPEN = "open"

UNKNOWN_PROJECT = "Unknown project"
NO_CONTENT = "(no content)"
ANONYMOUS = "Anonymous"


@dataclass(frozen=True)
class FeedbackNotification:
    source_id: str
    score: float
    urgency_class: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RankedFeedback:
    items: list[FeedbackNotification]
    buckets: dict[str, list[FeedbackNotification]]

    @property
    def ids(self) -> list[str]:
        return [item.source_id for item in self.items]


def normalize_priority(value: Any) -> str:
    priority = normalize_key(value)
    return priority if priority in PRIORITY_WEIGHTS else PRIORITY_NORMAL


def priority_weight(value: Any) -> int:
    return PRIORITY_WEIGHTS[normalize_priority(value)]


def days_since(created_at: Any, today: date) -> int:
    created = parse_date(created_at)
    if created is None:
        return 0
    return max((today - created).days, 0)


def age_score(days: int) -> float:
    return min(days * AGE_SCORE_PER_DAY, AGE_SCORE_CAP)


def is_open_feedback(item: Any, dismissed_ids: set[str] | frozenset[str]) -> bool:
    if not isinstance(item, Mapping):
        return False
    source_id = record_id(item)
    if not source_id or source_id in dismissed_ids:
        return False
    return normalize_key(item.get("status")) == STATUS_OPEN


def _project_names(projects: Iterable[Any]) -> dict[str, str]:
    names: dict[str, str] = {}
    for project in projects:
        project_id = record_id(project)
        if project_id and project_id not in names:
            names[project_id] = str(project.get("name") or "")
    return names


def _build_candidate(
    item: Mapping[str, Any],
    today: date,
    project_names: Mapping[str, str],
) -> FeedbackNotification:
    priority = normalize_priority(item.get("priority"))
    days = days_since(first_value(item, "createdAt", "created_at"), today)
    project_id = str(first_value(item, "projectId", "project_id", default=""))
    return FeedbackNotification(
        source_id=record_id(item),
        score=PRIORITY_WEIGHTS[priority] + age_score(days),
        urgency_class=priority,
        payload={
            "project_id": project_id,
            "project_name": project_names.get(project_id) or UNKNOWN_PROJECT,
            "content": first_value(item, "message", "content", default=NO_CONTENT),
            "stage": item.get("stage") or "general",
            "created_at": first_value(item, "createdAt", "created_at"),
            "created_by": first_value(
                item, "createdByName", "author_name", "createdBy", default=ANONYMOUS
            ),
            "created_by_team": item.get("createdByTeam"),
            "days_since_created": days,
        },
    )


def group_by_priority(
    items: Iterable[FeedbackNotification],
) -> dict[str, list[FeedbackNotification]]:
    """Band ranked items by priority without reordering them."""
    buckets: dict[str, list[FeedbackNotification]] = {name: [] for name in PRIORITY_BUCKETS}
    for item in items:
        buckets[item.urgency_class].append(item)
    return buckets


def rank_feedback(
    items: Iterable[Any],
    dismissed_ids: Iterable[str] = (),
    max_items: int = DEFAULT_MAX_ITEMS,
    projects: Iterable[Any] = (),
    clock: Clock | None = None,
) -> RankedFeedback:
    """Open, non-dismissed feedback ranked by priority weight plus age.

    Age adds 0.1 per day up to 2.0, so a stale low item never outranks a
    fresh critical one. Equal scores keep input order; the cap keeps the
    ranked prefix. Items without an id are skipped because they could never
    be dismissed.
    """
    today = resolve_today(clock)
    dismissed = frozenset(str(source_id) for source_id in dismissed_ids)
    names = _project_names(projects)

    candidates = [
        _build_candidate(item, today, names)
        for item in items
        if is_open_feedback(item, dismissed)
    ]
    ranked = rank(candidates, lambda candidate: candidate.score, descending=True, limit=max_items)
    return RankedFeedback(items=ranked, buckets=group_by_priority(ranked))
