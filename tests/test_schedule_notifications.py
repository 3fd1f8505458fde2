import sys
import unittest
from datetime import date, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from project_tracking.services import schedule_notifications as sn
from project_tracking.services.clock import FixedClock

TODAY = date(2024, 3, 15)
CLOCK = FixedClock(TODAY)


def _iso(days: int) -> str:
    return (TODAY + timedelta(days=days)).isoformat()


def _project(project_id: str, stage1=None, stage2=None, stage3=None) -> dict:
    return {
        "id": project_id,
        "name": f"Project {project_id}",
        "stage1": stage1 or {},
        "stage2": stage2 or {},
        "stage3": stage3 or {},
    }


class ScheduleNotificationTests(unittest.TestCase):
    def test_classifies_and_orders_by_urgency_then_priority(self) -> None:
        projects = [
            _project(
                "A",
                stage1={
                    "launchDate": _iso(2),
                    "launchDateExecuted": False,
                    "massProductionDate": _iso(-5),
                    "massProductionDateExecuted": False,
                },
                stage2={"techTransferDate": _iso(6), "techTransferDateExecuted": False},
            ),
            _project(
                "B",
                stage2={"trainingDate": _iso(0), "trainingDateExecuted": False},
                stage3={"firstOrderDate": _iso(40), "firstOrderDateExecuted": False},
            ),
        ]
        events = sn.select_schedule_notifications(projects, clock=CLOCK)
        summary = [(e.project_id, e.field_name, e.notification_type, e.urgency) for e in events]
        self.assertEqual(
            summary,
            [
                ("B", "trainingDate", "today", "high"),
                ("A", "massProductionDate", "overdue", "high"),
                ("A", "launchDate", "urgent", "medium"),
                ("A", "techTransferDate", "urgent", "medium"),
            ],
        )

    def test_executed_and_unparseable_dates_are_skipped(self) -> None:
        project = _project(
            "A",
            stage1={
                "launchDate": _iso(-3),
                "launchDateExecuted": True,
                "massProductionDate": "TBD",
                "massProductionDateExecuted": False,
            },
        )
        self.assertEqual(sn.select_schedule_notifications([project], clock=CLOCK), [])

    def test_thresholds_toggle_today_and_overdue(self) -> None:
        project = _project(
            "A",
            stage1={
                "launchDate": _iso(0),
                "launchDateExecuted": False,
                "massProductionDate": _iso(-1),
                "massProductionDateExecuted": False,
            },
        )
        thresholds = sn.NotificationThresholds(include_today=False, include_overdue=False)
        self.assertEqual(sn.select_schedule_notifications([project], thresholds, CLOCK), [])

    def test_reminder_only_when_wider_than_urgent_window(self) -> None:
        project = _project("A", stage1={"launchDate": _iso(3), "launchDateExecuted": False})
        default = sn.select_schedule_notifications([project], clock=CLOCK)
        self.assertEqual(default[0].notification_type, "urgent")

        thresholds = sn.NotificationThresholds(urgent_days=2, reminder_days=5)
        events = sn.select_schedule_notifications([project], thresholds, CLOCK)
        self.assertEqual(events[0].notification_type, "reminder")
        self.assertEqual(events[0].urgency, "low")

    def test_equal_keys_keep_input_order(self) -> None:
        projects = [
            _project("P2", stage1={"launchDate": _iso(4), "launchDateExecuted": False}),
            _project("P1", stage1={"launchDate": _iso(4), "launchDateExecuted": False}),
            _project("P3", stage1={"launchDate": _iso(4), "launchDateExecuted": False}),
        ]
        events = sn.select_schedule_notifications(projects, clock=CLOCK)
        self.assertEqual([event.project_id for event in events], ["P2", "P1", "P3"])

    def test_same_event_is_reported_once(self) -> None:
        project = _project(
            "A",
            stage1={
                "launchDate": _iso(2),
                "launchDateExecuted": False,
                "releaseDate": _iso(2),
            },
        )
        events = sn.select_schedule_notifications([project, dict(project)], clock=CLOCK)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].field_name, "launchDate")

    def test_projects_without_id_are_not_merged(self) -> None:
        projects = [
            {"name": "Kettle", "stage1": {"launchDate": _iso(2), "launchDateExecuted": False}},
            {"name": "Toaster", "stage1": {"launchDate": _iso(2), "launchDateExecuted": False}},
        ]
        events = sn.select_schedule_notifications(projects, clock=CLOCK)
        self.assertEqual([event.project_name for event in events], ["Kettle", "Toaster"])
        self.assertEqual([event.project_id for event in events], ["", ""])

    def test_different_days_for_same_field_type_are_kept(self) -> None:
        project = _project(
            "A",
            stage1={"launchDate": _iso(2), "launchDateExecuted": False, "releaseDate": _iso(3)},
        )
        events = sn.select_schedule_notifications([project], clock=CLOCK)
        self.assertEqual([event.field_name for event in events], ["launchDate", "releaseDate"])

    def test_very_overdue_sorts_after_recently_overdue_within_high(self) -> None:
        projects = [
            _project("OLD", stage1={"launchDate": _iso(-30), "launchDateExecuted": False}),
            _project("NEW", stage1={"launchDate": _iso(-1), "launchDateExecuted": False}),
        ]
        events = sn.select_schedule_notifications(projects, clock=CLOCK)
        self.assertEqual([event.priority_score for event in events], [1, 30])

    def test_malformed_projects_are_ignored(self) -> None:
        events = sn.select_schedule_notifications([None, "x", {"id": "A"}], clock=CLOCK)
        self.assertEqual(events, [])


if __name__ == "__main__":
    unittest.main()
