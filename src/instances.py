"""Instance generator: expand a recurring task over a date window.

Output is a pure function of (task, window). Nothing here reads the
clock or mutates the task, so the board can call it on every redraw.
"""
from __future__ import annotations
import logging
from typing import Any, Iterable, List

from cadence import iso, occurrences_between, to_date
from errors import InvalidArgumentError
from models import Task, VirtualInstance
from overrides import get_override, is_instance_completed, is_instance_skipped, resolve_status

logger = logging.getLogger(__name__)


def make_instance(task: Task, day: str) -> VirtualInstance:
    """Merge the base task with the override stored for ``day`` (if any)."""
    entry = get_override(task, day)
    return VirtualInstance(
        base_id=task.id,
        date=day,
        title=task.title,
        status=resolve_status(task, day),
        weight=task.weight,
        description=task.description,
        sprint_id=task.sprint_id,
        due_date=task.due_date,
        completed=is_instance_completed(task, day),
        skipped=is_instance_skipped(task, day),
        modified=entry is not None and entry.modified,
    )


def generate_instances(task: Task, window_start: Any, window_end: Any,
                       include_skipped: bool = True) -> List[VirtualInstance]:
    """Occurrences of ``task`` inside the inclusive window, oldest first.

    Plain, deleted or misconfigured tasks give an empty list. Overrides for
    dates the rule no longer produces are never surfaced.
    """
    lo, hi = to_date(window_start), to_date(window_end)
    if lo > hi:
        raise InvalidArgumentError(f"Window start {lo} is after window end {hi}")
    if task.deleted or not task.is_recurring:
        return []
    days = occurrences_between(task.repeat, lo, hi)
    if not days and task.repeat is not None:
        logger.debug("Task %s produced no occurrences in %s..%s", task.id, lo, hi)
    result: List[VirtualInstance] = []
    for day in days:
        instance = make_instance(task, iso(day))
        if instance.skipped and not include_skipped:
            continue
        result.append(instance)
    return result


def expand_tasks(tasks: Iterable[Task], window_start: Any, window_end: Any,
                 include_skipped: bool = True) -> List[VirtualInstance]:
    """Flatten the instances of every recurring task in ``tasks``."""
    expanded: List[VirtualInstance] = []
    for task in tasks:
        expanded.extend(generate_instances(task, window_start, window_end, include_skipped))
    return expanded
