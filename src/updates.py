"""Recurrence update engine.

``apply_update`` takes a task, a mapping of field updates and an edit mode
and returns a new task. Modes for recurring tasks:

- "this":   one override at ``instance_date``, always marked modified;
            base status and cadence stay.
- "future": cadence merged into the base rule, overrides on or after
            ``instance_date`` dropped, earlier ones kept.
- "all":    cadence merged, every override dropped.

Title, description, weight, sprint, due date and the deleted flag always
land on the base task whatever the mode.
"""
from __future__ import annotations
import copy
import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from cadence import occurs_on, parse_weekday, to_date, validate_rule
from errors import InvalidArgumentError
from models import CadenceRule, Task, normalize_status
from overrides import clear_from, set_override

logger = logging.getLogger(__name__)

EDIT_MODES: Tuple[str, ...] = ("this", "future", "all")
BASE_FIELDS: Tuple[str, ...] = ("title", "description", "weight", "sprint_id", "due_date", "deleted")
RECURRENCE_FIELDS: Tuple[str, ...] = ("status", "skipped", "cadence")

_CADENCE_KEYS: Dict[str, str] = {
    "cadence": "cadence",
    "days_of_week": "days_of_week", "daysOfWeek": "days_of_week",
    "interval_days": "interval_days", "intervalDays": "interval_days",
    "interval": "interval",
    "count": "count",
    "start_date": "start_date", "startDate": "start_date",
    "end_date": "end_date", "endDate": "end_date",
}


def _base_changes(updates: Mapping[str, Any]) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    for key in BASE_FIELDS:
        if key not in updates:
            continue
        value = updates[key]
        if key == "title":
            if not isinstance(value, str) or not value.strip():
                raise InvalidArgumentError("Title required.")
            value = value.strip()
        elif key == "weight":
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidArgumentError(f"Weight must be a positive integer, got {value!r}")
        elif key == "due_date" and value is not None:
            value = to_date(value).isoformat()
        elif key == "description":
            value = "" if value is None else str(value)
        elif key == "deleted":
            value = bool(value)
        changes[key] = value
    return changes


def merge_cadence(rule: Optional[CadenceRule], changes: Any) -> CadenceRule:
    """Merge cadence changes (a CadenceRule or a partial mapping) into ``rule``.

    The merged rule is validated unless it switches recurrence off.
    """
    if isinstance(changes, CadenceRule):
        merged = copy.deepcopy(changes)
    elif isinstance(changes, Mapping):
        data = rule.to_dict() if rule is not None else {}
        for key, value in changes.items():
            if key not in _CADENCE_KEYS:
                raise InvalidArgumentError(f"Unknown cadence field: {key!r}")
            data[_CADENCE_KEYS[key]] = value
        merged = CadenceRule.from_dict(data)
    else:
        raise InvalidArgumentError(f"Cadence update must be a mapping, got {type(changes).__name__}")
    if merged.cadence == "none":
        return merged
    merged.days_of_week = tuple(parse_weekday(d) for d in merged.days_of_week)
    for attr in ("start_date", "end_date"):
        value = getattr(merged, attr)
        if value is not None:
            setattr(merged, attr, to_date(value).isoformat())
    validate_rule(merged)
    return merged


def apply_update(task: Task, updates: Mapping[str, Any], mode: str = "all",
                 instance_date: Any = None, now: Optional[datetime] = None) -> Task:
    """Return a copy of ``task`` with ``updates`` applied under ``mode``.

    Raises InvalidArgumentError for an unknown mode, a missing
    ``instance_date`` in "this"/"future" mode, unknown or invalid fields,
    or a cadence that would not be well formed.
    """
    if mode not in EDIT_MODES:
        raise InvalidArgumentError(f"Unknown edit mode: {mode!r} (expected one of {', '.join(EDIT_MODES)})")
    if mode in ("this", "future") and instance_date is None:
        raise InvalidArgumentError(f"Edit mode {mode!r} needs the occurrence date being edited")
    unknown = set(updates) - set(BASE_FIELDS) - set(RECURRENCE_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Unknown fields: {', '.join(sorted(unknown))}")

    status: Optional[str] = None
    if "status" in updates and updates["status"] is not None:
        status = normalize_status(updates["status"])
        if status is None:
            raise InvalidArgumentError(f"Invalid status: {updates['status']!r}")
    base_changes = _base_changes(updates)
    skipped = updates.get("skipped")

    result = copy.deepcopy(task)
    if not task.is_recurring:
        if skipped is not None:
            raise InvalidArgumentError(f"Task {task.id} is not recurring; nothing to skip")
        if "cadence" in updates:
            result.repeat = merge_cadence(result.repeat, updates["cadence"])
        if status is not None:
            result.status = status
    elif mode == "this":
        if "cadence" in updates:
            raise InvalidArgumentError("Cadence changes need edit mode 'future' or 'all'")
        day = to_date(instance_date)
        if not occurs_on(task.repeat, day):
            raise InvalidArgumentError(f"Task {task.id} has no occurrence on {day.isoformat()}")
        result.overrides = set_override(result.overrides, day, status=status, skipped=skipped)
    else:
        if skipped is not None:
            raise InvalidArgumentError("Skipping applies to a single occurrence (edit mode 'this')")
        if "cadence" in updates:
            result.repeat = merge_cadence(result.repeat, updates["cadence"])
        if mode == "future":
            before = len(result.overrides)
            result.overrides = clear_from(result.overrides, instance_date)
            logger.debug("Task %s: cleared %d override(s) from %s", task.id,
                         before - len(result.overrides), instance_date)
        else:
            result.overrides = {}
        if status is not None:
            result.status = status

    for key, value in base_changes.items():
        setattr(result, key, value)
    result.updated_at = (now or datetime.now()).isoformat()
    return result


def update_base(task: Task, updates: Mapping[str, Any], now: Optional[datetime] = None) -> Task:
    """Change base fields only; cadence, status and overrides are left alone.

    Used for series-wide edits that have no occurrence to anchor a mode to,
    e.g. renaming a series whose last occurrence is already past.
    """
    unknown = set(updates) - set(BASE_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Not a base field: {', '.join(sorted(unknown))}")
    base_changes = _base_changes(updates)
    result = copy.deepcopy(task)
    for key, value in base_changes.items():
        setattr(result, key, value)
    result.updated_at = (now or datetime.now()).isoformat()
    return result


def update_instance_status(task: Task, day: Any, status: str, now: Optional[datetime] = None) -> Task:
    """Set the status of a single occurrence."""
    return apply_update(task, {"status": status}, "this", day, now=now)


def skip_instance(task: Task, day: Any, skipped: bool = True, now: Optional[datetime] = None) -> Task:
    """Hide (or unhide) a single occurrence from the board."""
    return apply_update(task, {"skipped": skipped}, "this", day, now=now)
