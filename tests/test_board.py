import io
import unittest
from contextlib import redirect_stdout
from datetime import date

from board import Board, collect_items, group_by_status, item_label, overdue_items, progress
from models import STATUSES, CadenceRule, InstanceOverride, Task, VirtualInstance
from sprints import parse_sprint_id

SPRINT = parse_sprint_id("Week-2-2024")  # 2024-01-08 .. 2024-01-14


def sample_tasks():
    return [
        Task(id="1", title="Write report", status="done", weight=5, sprint_id=SPRINT.id),
        Task(id="2", title="Plan trip", status="todo", weight=8, sprint_id=SPRINT.id),
        Task(id="3", title="Call bank", status="review", weight=3, sprint_id=SPRINT.id),
        Task(id="4", title="Gym", status="todo", weight=2,
             repeat=CadenceRule(cadence="weekly", days_of_week=("Mon", "Wed"), start_date="2024-01-01")),
        Task(id="5", title="Other sprint", status="todo", weight=13, sprint_id="Week-3-2024"),
        Task(id="6", title="Gone", status="todo", weight=1, sprint_id=SPRINT.id, deleted=True),
    ]


class TestAggregation(unittest.TestCase):
    def test_collects_plain_and_generated_items(self) -> None:
        items = collect_items(sample_tasks(), SPRINT)
        self.assertEqual(len(items), 5)
        kinds = sorted(i.kind for i in items)
        self.assertEqual(kinds, ["instance", "instance", "plain", "plain", "plain"])

    def test_progress_by_weight(self) -> None:
        p = progress(collect_items(sample_tasks(), SPRINT))
        self.assertEqual(p.total_weight, 20)
        self.assertEqual(p.completed_weight, 5)
        self.assertEqual(p.total_items, 5)
        self.assertEqual(p.completed_items, 1)
        self.assertAlmostEqual(p.percent, 25.0)

    def test_status_buckets(self) -> None:
        columns = group_by_status(collect_items(sample_tasks(), SPRINT))
        self.assertEqual(list(columns), list(STATUSES))
        todo = columns["todo"]
        self.assertEqual(len(todo), 3)
        self.assertEqual(sorted(i.date for i in todo if isinstance(i, VirtualInstance)),
                         ["2024-01-08", "2024-01-10"])
        self.assertEqual([i.id for i in columns["done"]], ["1"])
        self.assertEqual(columns["icebox"], [])

    def test_override_moves_an_occurrence_between_buckets(self) -> None:
        tasks = sample_tasks()
        tasks[3].overrides["2024-01-10"] = InstanceOverride(status="done", completed=True)
        items = collect_items(tasks, SPRINT)
        columns = group_by_status(items)
        self.assertEqual(len(columns["todo"]), 2)
        self.assertEqual(len(columns["done"]), 2)
        self.assertEqual(progress(items).completed_weight, 7)

    def test_skipped_occurrences_are_hidden(self) -> None:
        tasks = sample_tasks()
        tasks[3].overrides["2024-01-08"] = InstanceOverride(skipped=True)
        items = collect_items(tasks, SPRINT)
        self.assertEqual(progress(items).total_weight, 18)

    def test_overdue(self) -> None:
        tasks = sample_tasks()
        tasks[1].due_date = "2024-01-09"
        items = collect_items(tasks, SPRINT)
        overdue = overdue_items(items, date(2024, 1, 10))
        self.assertEqual(sorted(item_label(i) for i in overdue), ["2", "4@Mon"])


class TestBoard(unittest.TestCase):
    def test_find_by_label(self) -> None:
        board = Board(sample_tasks(), SPRINT)
        item = board.find("4@wed")
        self.assertIsInstance(item, VirtualInstance)
        self.assertEqual(item.date, "2024-01-10")
        self.assertEqual(board.find("2").title, "Plan trip")
        self.assertIsNone(board.find("5"))

    def test_display_renders_headers_items_and_progress(self) -> None:
        board = Board(sample_tasks(), SPRINT)
        buf = io.StringIO()
        with redirect_stdout(buf):
            board.display()
        out = buf.getvalue()
        for header in ("ICEBOX", "BACKLOG", "TO DO", "IN-PROGRESS", "REVIEW", "DONE"):
            self.assertIn(header, out)
        self.assertIn("4@Mon.", out)
        self.assertIn("Week-2-2024", out)
        self.assertIn("5/20 points", out)

    def test_occurrence_cards_show_their_date(self) -> None:
        board = Board(sample_tasks(), SPRINT, today=date(2024, 1, 8))
        buf = io.StringIO()
        with redirect_stdout(buf):
            board.display()
        out = buf.getvalue()
        self.assertIn("2024-01-08", out.split("Week-2-2024")[0])
        self.assertIn("2024-01-10", out)

    def test_summary_counts_overdue_items(self) -> None:
        tasks = sample_tasks()
        tasks[1].due_date = "2024-01-09"
        self.assertIn("2 overdue", Board(tasks, SPRINT, today=date(2024, 1, 10)).summary())
        self.assertNotIn("overdue", Board(tasks, SPRINT, today=date(2024, 1, 8)).summary())

    def test_str_counts(self) -> None:
        self.assertIn("To Do: 3", str(Board(sample_tasks(), SPRINT)))


if __name__ == "__main__":
    unittest.main(verbosity=2)
