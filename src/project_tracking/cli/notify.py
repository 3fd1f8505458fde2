from __future__ import annotations

import argparse
from datetime import date
import json
import logging
import os
from pathlib import Path
from typing import Any

from project_tracking.data.loader import (
    JsonFileDismissedStore,
    default_data_path,
    default_dismissed_path,
    load_records,
)
from project_tracking.services.clock import Clock, FixedClock
from project_tracking.services.dismissed import dismiss_all
from project_tracking.services.feedback_notifications import DEFAULT_MAX_ITEMS, rank_feedback
from project_tracking.services.notifications import build_feedback_digest, build_schedule_digest
from project_tracking.services.progress import check_completion, progress_band, score_project
from project_tracking.services.schedule_notifications import (
    NotificationThresholds,
    select_schedule_notifications,
)

LOGGER = logging.getLogger(__name__)


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _parse_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Ignoring non-integer setting %r, using %s", value, default)
        return default


def _parse_today(value: str | None) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("Invalid --today date format (YYYY-MM-DD).") from exc


def _thresholds_from(args: argparse.Namespace) -> NotificationThresholds:
    urgent_days = args.urgent_days
    if urgent_days is None:
        urgent_days = _parse_int(os.getenv("PROJECT_TRACKING_URGENT_DAYS"), 7)
    reminder_days = args.reminder_days
    if reminder_days is None:
        reminder_days = _parse_int(os.getenv("PROJECT_TRACKING_REMINDER_DAYS"), 3)
    include_today = not args.no_today and _parse_bool(
        os.getenv("PROJECT_TRACKING_INCLUDE_TODAY"), default=True
    )
    include_overdue = not args.no_overdue and _parse_bool(
        os.getenv("PROJECT_TRACKING_INCLUDE_OVERDUE"), default=True
    )
    return NotificationThresholds(
        urgent_days=urgent_days,
        reminder_days=reminder_days,
        include_today=include_today,
        include_overdue=include_overdue,
    )


def _run_schedule(
    projects: list[dict[str, Any]],
    clock: Clock,
    args: argparse.Namespace,
) -> dict[str, int]:
    thresholds = _thresholds_from(args)
    events = select_schedule_notifications(projects, thresholds, clock=clock)
    subject, body = build_schedule_digest(events, clock=clock)
    print(subject)
    print(body)

    counts: dict[str, int] = {"events": len(events)}
    for event in events:
        counts[event.notification_type] = counts.get(event.notification_type, 0) + 1
    return counts


def _run_feedback(
    projects: list[dict[str, Any]],
    opinions: list[dict[str, Any]],
    clock: Clock,
    args: argparse.Namespace,
) -> dict[str, int]:
    store = JsonFileDismissedStore(Path(args.dismissed) if args.dismissed else default_dismissed_path())
    dismissed = dismiss_all(store, args.dismiss) if args.dismiss else store.load()

    max_items = args.max_items
    if max_items is None:
        max_items = _parse_int(os.getenv("PROJECT_TRACKING_MAX_ITEMS"), DEFAULT_MAX_ITEMS)

    ranked = rank_feedback(opinions, dismissed, max_items=max_items, projects=projects, clock=clock)
    subject, body = build_feedback_digest(ranked, clock=clock)
    print(subject)
    print(body)
    return {
        "shown": len(ranked.items),
        "dismissed": len(dismissed),
        **{priority: len(bucket) for priority, bucket in ranked.buckets.items()},
    }


def _run_progress(projects: list[dict[str, Any]], opinions: list[dict[str, Any]]) -> dict[str, int]:
    counts = {"projects": len(projects), "completable": 0}
    for project in projects:
        progress = score_project(project)
        completion = check_completion(project, opinions)
        if completion.completable:
            counts["completable"] += 1
        print(
            json.dumps(
                {
                    "id": project.get("id"),
                    "name": project.get("name"),
                    **progress.as_dict(),
                    "band": progress_band(progress.overall),
                    "completable": completion.completable,
                    "warnings": list(completion.warnings),
                },
                ensure_ascii=False,
            )
        )
    return counts


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Print project progress and notification digests.")
    parser.add_argument("mode", choices=["schedule", "feedback", "progress"], help="Report type.")
    parser.add_argument("--data", help="Path to the exported projects/opinions JSON.")
    parser.add_argument("--today", help="Override today date (YYYY-MM-DD).")
    parser.add_argument("--urgent-days", type=int, help="Urgent window in days (default 7).")
    parser.add_argument("--reminder-days", type=int, help="Reminder window in days (default 3).")
    parser.add_argument("--no-today", action="store_true", help="Skip milestones due today.")
    parser.add_argument("--no-overdue", action="store_true", help="Skip overdue milestones.")
    parser.add_argument("--max-items", type=int, help="Maximum feedback items (default 10).")
    parser.add_argument("--dismissed", help="Path to the dismissed feedback ids JSON list.")
    parser.add_argument(
        "--dismiss",
        action="append",
        default=[],
        metavar="ID",
        help="Dismiss a feedback id before ranking (repeatable).",
    )
    args = parser.parse_args()

    clock = FixedClock(_parse_today(args.today))
    data_path = Path(args.data) if args.data else default_data_path()
    if not data_path.exists():
        LOGGER.error("Data file not found: %s", data_path)
        return
    try:
        projects, opinions = load_records(data_path)
    except json.JSONDecodeError as exc:
        LOGGER.error("Data file is not valid JSON (%s): %s", data_path, exc)
        return

    if args.mode == "schedule":
        counts = _run_schedule(projects, clock, args)
    elif args.mode == "feedback":
        counts = _run_feedback(projects, opinions, clock, args)
    else:
        counts = _run_progress(projects, opinions)

    LOGGER.info("Summary: %s", counts)


if __name__ == "__main__":
    main()
