import json
import sys
import tempfile
import unittest
from datetime import date, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from project_tracking.data import loader
from project_tracking.services import dismissed, notifications, tables
from project_tracking.services.clock import FixedClock
from project_tracking.services.feedback_notifications import rank_feedback
from project_tracking.services.schedule_notifications import select_schedule_notifications

TODAY = date(2024, 3, 15)
CLOCK = FixedClock(TODAY)


def _iso(days: int) -> str:
    return (TODAY + timedelta(days=days)).isoformat()


PROJECTS = [
    {
        "id": "PRJ-1",
        "name": "Blender X",
        "modelName": "BX-100",
        "stage1": {
            "launchDate": _iso(-2),
            "launchDateExecuted": False,
            "vendor": "ACME",
        },
        "stage2": {"trainingDate": _iso(5), "trainingDateExecuted": False},
        "stage3": {},
    }
]
OPINIONS = [
    {"id": "OP-1", "projectId": "PRJ-1", "message": "Check packaging", "priority": "high", "status": "open"},
    {"id": "OP-2", "projectId": "PRJ-1", "message": "Old note", "priority": "low", "status": "resolved"},
]


class DismissedStoreTests(unittest.TestCase):
    def test_dismiss_accumulates(self) -> None:
        store = dismissed.InMemoryDismissedStore(["OP-1"])
        dismissed.dismiss(store, "OP-2")
        self.assertEqual(dismissed.dismiss_all(store, ["OP-3", ""]), {"OP-1", "OP-2", "OP-3"})
        self.assertEqual(store.load(), {"OP-1", "OP-2", "OP-3"})

    def test_dismissed_ids_are_excluded_from_ranking(self) -> None:
        store = dismissed.InMemoryDismissedStore()
        self.assertEqual(rank_feedback(OPINIONS, store.load(), clock=CLOCK).ids, ["OP-1"])
        dismissed.dismiss(store, "OP-1")
        self.assertEqual(rank_feedback(OPINIONS, store.load(), clock=CLOCK).ids, [])

    def test_json_file_store_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "dismissed.json"
            store = loader.JsonFileDismissedStore(path)
            self.assertEqual(store.load(), set())
            dismissed.dismiss_all(store, ["OP-2", "OP-1"])
            self.assertEqual(json.loads(path.read_text(encoding="utf-8")), ["OP-1", "OP-2"])

            path.write_text("{broken", encoding="utf-8")
            self.assertEqual(store.load(), set())

    def test_json_file_dismissals_survive_a_new_store(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "dismissed.json"
            dismissed.dismiss(loader.JsonFileDismissedStore(path), "OP-1")

            reopened = loader.JsonFileDismissedStore(path)
            self.assertEqual(reopened.load(), {"OP-1"})
            self.assertEqual(rank_feedback(OPINIONS, reopened.load(), clock=CLOCK).ids, [])


class LoaderTests(unittest.TestCase):
    def test_parse_records_shapes(self) -> None:
        projects, opinions = loader.parse_records({"projects": PROJECTS + ["bad"], "opinions": OPINIONS})
        self.assertEqual(len(projects), 1)
        self.assertEqual(len(opinions), 2)

        projects, opinions = loader.parse_records(PROJECTS)
        self.assertEqual((len(projects), opinions), (1, []))

        self.assertEqual(loader.parse_records("nope"), ([], []))
        self.assertEqual(loader.parse_records({"projects": {"id": "x"}}), ([], []))

    def test_load_records_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "export.json"
            path.write_text(json.dumps({"projects": PROJECTS, "opinions": OPINIONS}), encoding="utf-8")
            projects, opinions = loader.load_records(path)
        self.assertEqual(projects[0]["id"], "PRJ-1")
        self.assertEqual(opinions[1]["status"], "resolved")


class DigestTests(unittest.TestCase):
    def test_schedule_digest(self) -> None:
        events = select_schedule_notifications(PROJECTS, clock=CLOCK)
        subject, body = notifications.build_schedule_digest(events, clock=CLOCK)
        self.assertEqual(subject, "Stage Tracker: Schedule digest (2024-03-15)")
        self.assertIn("- Overdue: 1", body)
        self.assertIn("- Due soon: 1", body)
        self.assertIn("Blender X [BX-100] | Launch date (stage1)", body)
        self.assertIn("D+2", body)
        self.assertIn("D-5", body)

    def test_empty_schedule_digest(self) -> None:
        _, body = notifications.build_schedule_digest([], clock=CLOCK)
        self.assertIn("No milestones need attention.", body)

    def test_feedback_digest(self) -> None:
        ranked = rank_feedback(OPINIONS, projects=PROJECTS, clock=CLOCK)
        subject, body = notifications.build_feedback_digest(ranked, clock=CLOCK)
        self.assertEqual(subject, "Stage Tracker: Open feedback (2024-03-15)")
        self.assertIn("High (1):", body)
        self.assertIn("[high] Blender X | Check packaging", body)
        self.assertNotIn("Old note", body)


class TableTests(unittest.TestCase):
    def test_progress_frame(self) -> None:
        frame = tables.progress_frame(PROJECTS + [None])
        self.assertEqual(list(frame.columns), tables.PROGRESS_COLUMNS)
        self.assertEqual(frame.loc[0, "stage1"], 75)
        self.assertEqual(frame.loc[0, "stage2"], 50)
        self.assertEqual(frame.loc[0, "overall"], 42)
        self.assertEqual(frame.loc[1, "overall"], 0)
        self.assertEqual(frame.loc[1, "band"], "planning")

    def test_schedule_and_feedback_frames(self) -> None:
        events = select_schedule_notifications(PROJECTS, clock=CLOCK)
        schedule = tables.schedule_frame(events)
        self.assertEqual(schedule["dday"].tolist(), ["D+2", "D-5"])
        self.assertEqual(schedule["tone"].tolist(), ["danger", "warning"])

        feedback = tables.feedback_frame(rank_feedback(OPINIONS, clock=CLOCK))
        self.assertEqual(feedback["id"].tolist(), ["OP-1"])

    def test_empty_frames_keep_columns(self) -> None:
        self.assertEqual(list(tables.schedule_frame([]).columns), tables.SCHEDULE_COLUMNS)
        self.assertTrue(tables.stage_progress_long(tables.progress_frame([])).empty)

    def test_stage_progress_long(self) -> None:
        long_df = tables.stage_progress_long(tables.progress_frame(PROJECTS))
        self.assertEqual(len(long_df), 3)
        self.assertEqual(sorted(long_df["stage"].unique().tolist()), ["stage1", "stage2", "stage3"])


if __name__ == "__main__":
    unittest.main()
