import unittest
from datetime import datetime

from errors import InvalidArgumentError
from instances import generate_instances
from models import CadenceRule, InstanceOverride, Task
from updates import apply_update, merge_cadence, skip_instance, update_base, update_instance_status

NOW = datetime(2024, 1, 5, 9, 30)


def recurring(**kwargs) -> Task:
    defaults = dict(
        id="t1",
        title="Gym",
        status="todo",
        weight=2,
        repeat=CadenceRule(cadence="weekly", days_of_week=("Mon", "Wed"), start_date="2024-01-01"),
    )
    defaults.update(kwargs)
    return Task(**defaults)


class TestThisMode(unittest.TestCase):
    def test_override_isolation(self) -> None:
        task = recurring()
        updated = apply_update(task, {"status": "done"}, "this", "2024-01-03", now=NOW)
        instances = generate_instances(updated, "2024-01-01", "2024-01-14")
        done = [i.date for i in instances if i.status == "done"]
        self.assertEqual(done, ["2024-01-03"])
        self.assertTrue(all(i.status == "todo" for i in instances if i.date != "2024-01-03"))
        self.assertEqual(updated.status, "todo")
        self.assertEqual(updated.repeat, task.repeat)
        entry = updated.overrides["2024-01-03"]
        self.assertTrue(entry.modified)
        self.assertTrue(entry.completed)

    def test_end_to_end_example(self) -> None:
        t1 = recurring(status="backlog", weight=3)
        before = generate_instances(t1, "2024-01-01", "2024-01-14")
        after = generate_instances(apply_update(t1, {"status": "done"}, "this", "2024-01-03"),
                                   "2024-01-01", "2024-01-14")
        self.assertEqual([i.date for i in before], [i.date for i in after])
        self.assertEqual([i.status for i in after], ["backlog", "done", "backlog", "backlog"])

    def test_caller_task_is_not_mutated(self) -> None:
        task = recurring()
        apply_update(task, {"status": "done", "title": "Gym!"}, "this", "2024-01-03")
        self.assertEqual(task.overrides, {})
        self.assertEqual(task.title, "Gym")
        self.assertIsNone(task.updated_at)

    def test_base_fields_always_reach_the_base(self) -> None:
        updated = apply_update(recurring(), {"title": "Swim", "weight": 5}, "this", "2024-01-08")
        self.assertEqual(updated.title, "Swim")
        self.assertEqual(updated.weight, 5)
        self.assertEqual(updated.status, "todo")

    def test_every_edit_marks_the_occurrence_modified(self) -> None:
        updated = apply_update(recurring(), {"title": "Swim"}, "this", "2024-01-08")
        entry = updated.overrides["2024-01-08"]
        self.assertTrue(entry.modified)
        self.assertIsNone(entry.status)
        self.assertFalse(entry.completed)
        self.assertFalse(entry.skipped)
        instance = generate_instances(updated, "2024-01-08", "2024-01-08")[0]
        self.assertTrue(instance.modified)
        self.assertEqual(instance.status, "todo")

    def test_rejects_date_without_occurrence(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"status": "done"}, "this", "2024-01-02")

    def test_rejects_cadence_change(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"cadence": {"cadence": "daily"}}, "this", "2024-01-03")

    def test_skip_and_status_helpers(self) -> None:
        task = skip_instance(recurring(), "2024-01-08")
        task = update_instance_status(task, "2024-01-10", "review")
        self.assertTrue(task.overrides["2024-01-08"].skipped)
        self.assertEqual(task.overrides["2024-01-10"].status, "review")


class TestFutureMode(unittest.TestCase):
    def test_clears_from_edited_date_on(self) -> None:
        task = recurring(overrides={
            "2024-01-01": InstanceOverride(status="done", completed=True),
            "2024-01-08": InstanceOverride(status="review"),
            "2024-01-10": InstanceOverride(skipped=True),
        })
        updated = apply_update(task, {"title": "Gym (new plan)"}, "future", "2024-01-08")
        self.assertEqual(sorted(updated.overrides), ["2024-01-01"])
        self.assertEqual(updated.title, "Gym (new plan)")

    def test_merges_cadence(self) -> None:
        updated = apply_update(recurring(), {"cadence": {"days_of_week": ["Tue", "thursday"]}},
                               "future", "2024-01-08")
        self.assertEqual(updated.repeat.days_of_week, ("Tue", "Thu"))
        self.assertEqual(updated.repeat.start_date, "2024-01-01")
        self.assertEqual(updated.repeat.cadence, "weekly")

    def test_status_goes_to_base(self) -> None:
        task = recurring(overrides={"2024-01-08": InstanceOverride(status="review")})
        updated = apply_update(task, {"status": "in-progress"}, "future", "2024-01-08")
        self.assertEqual(updated.status, "in-progress")
        self.assertEqual(updated.overrides, {})

    def test_requires_instance_date(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"status": "done"}, "future")


class TestAllMode(unittest.TestCase):
    def test_clears_every_override(self) -> None:
        task = recurring(overrides={
            "2023-06-01": InstanceOverride(status="done"),
            "2024-01-03": InstanceOverride(status="done"),
            "2030-01-01": InstanceOverride(skipped=True),
        })
        updated = apply_update(task, {"weight": 8}, "all")
        self.assertEqual(updated.overrides, {})
        self.assertEqual(updated.weight, 8)

    def test_replaces_rule_and_stamps_updated_at(self) -> None:
        rule = CadenceRule(cadence="custom", interval_days=3, start_date="2024-01-01")
        updated = apply_update(recurring(), {"cadence": rule}, "all", now=NOW)
        self.assertEqual(updated.repeat, rule)
        self.assertEqual(updated.updated_at, NOW.isoformat())

    def test_turning_recurrence_off(self) -> None:
        updated = apply_update(recurring(), {"cadence": {"cadence": "none"}}, "all")
        self.assertFalse(updated.is_recurring)
        self.assertEqual(generate_instances(updated, "2024-01-01", "2024-01-14"), [])


class TestRejection(unittest.TestCase):
    def test_this_without_date(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"status": "done"}, "this")

    def test_unknown_mode(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"status": "done"}, "some")

    def test_bad_fields(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"colour": "red"}, "all")
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"weight": 0}, "all")
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"status": "finished"}, "all")

    def test_malformed_cadence_update(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"cadence": {"days_of_week": []}}, "all")
        with self.assertRaises(InvalidArgumentError):
            apply_update(recurring(), {"cadence": {"cadence": "custom", "interval_days": -2}}, "all")


class TestPlainTasks(unittest.TestCase):
    def test_plain_update_merges(self) -> None:
        plain = Task(id="p1", title="Taxes", status="todo", weight=5)
        updated = apply_update(plain, {"status": "done"}, "all")
        self.assertEqual(updated.status, "done")
        self.assertEqual(plain.status, "todo")

    def test_plain_task_can_become_recurring(self) -> None:
        plain = Task(id="p1", title="Water plants")
        updated = apply_update(plain, {"cadence": {"cadence": "custom", "intervalDays": 4,
                                                   "startDate": "2024-01-01"}}, "all")
        self.assertTrue(updated.is_recurring)
        self.assertEqual([i.date for i in generate_instances(updated, "2024-01-01", "2024-01-10")],
                         ["2024-01-01", "2024-01-05", "2024-01-09"])


class TestBaseUpdate(unittest.TestCase):
    def test_series_fields_change_and_overrides_survive(self) -> None:
        task = recurring(repeat=CadenceRule(cadence="weekly", days_of_week=("Mon",),
                                            start_date="2024-01-01", end_date="2024-01-08"))
        task = update_instance_status(task, "2024-01-01", "done")
        updated = update_base(task, {"title": "Swim", "weight": 3}, now=NOW)
        self.assertEqual((updated.title, updated.weight), ("Swim", 3))
        self.assertEqual(updated.overrides, task.overrides)
        self.assertEqual(updated.repeat, task.repeat)
        self.assertEqual(updated.updated_at, NOW.isoformat())
        self.assertEqual(task.title, "Gym")

    def test_only_base_fields(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            update_base(recurring(), {"status": "done"})
        with self.assertRaises(InvalidArgumentError):
            update_base(recurring(), {"weight": 0})


class TestMergeCadence(unittest.TestCase):
    def test_unknown_cadence_key(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            merge_cadence(None, {"every": 3})

    def test_rule_argument_replaces_the_old_rule(self) -> None:
        old = CadenceRule(cadence="weekly", days_of_week=("Mon",), interval=2, count=4,
                          start_date="2024-01-01", end_date="2024-03-01")
        merged = merge_cadence(old, CadenceRule(cadence="daily", start_date="2024-01-08"))
        self.assertEqual((merged.interval, merged.count, merged.end_date), (1, None, None))
        self.assertEqual(merged.days_of_week, ())

    def test_normalizes_weekdays_and_dates(self) -> None:
        merged = merge_cadence(None, {"cadence": "weekly", "days_of_week": [1, "fri"],
                                      "start_date": "2024-01-01T10:00:00"})
        self.assertEqual(merged.days_of_week, ("Mon", "Fri"))
        self.assertEqual(merged.start_date, "2024-01-01")


if __name__ == "__main__":
    unittest.main(verbosity=2)
