"""Data models for the planner board.

A ``Task`` is the stored record (a "story"). Recurring tasks carry a
``CadenceRule`` plus a sparse override store keyed by ``YYYY-MM-DD``.
``VirtualInstance`` is never stored: the generator builds one per
occurrence and the board discards it after rendering.

Status keys stay hyphenated ("in-progress") for storage stability; the
legacy keys "progress" and "doing" are migrated on load.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

STATUSES: Tuple[str, ...] = ("icebox", "backlog", "todo", "in-progress", "review", "done")
LEGACY_STATUSES: Dict[str, str] = {"progress": "in-progress", "doing": "in-progress"}
CADENCES: Tuple[str, ...] = ("none", "daily", "weekly", "custom")
WEEKDAYS: Tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

OverrideStore = Dict[str, "InstanceOverride"]


def normalize_status(value: Any) -> Optional[str]:
    """Map a raw status (including legacy keys) onto STATUSES, or None."""
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    key = LEGACY_STATUSES.get(key, key)
    return key if key in STATUSES else None


@dataclass
class CadenceRule:
    """How often a task recurs.

    Fields:
        cadence: One of CADENCES. Anything else is kept as-is so that
            legacy data survives a load/save cycle, but it never generates.
        days_of_week: Weekday names (Mon..Sun) for weekly cadences.
        interval_days: Period in days for custom cadences.
        interval: Every N days (daily) or N weeks (weekly).
        count: Optional cap on occurrences counted from start_date.
        start_date / end_date: Inclusive ISO date bounds.
    """
    cadence: str = "none"
    days_of_week: Tuple[str, ...] = ()
    interval_days: Optional[int] = None
    interval: int = 1
    count: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"cadence": self.cadence}
        if self.days_of_week:
            data["days_of_week"] = list(self.days_of_week)
        if self.interval_days is not None:
            data["interval_days"] = self.interval_days
        if self.interval != 1:
            data["interval"] = self.interval
        if self.count is not None:
            data["count"] = self.count
        if self.start_date is not None:
            data["start_date"] = self.start_date
        if self.end_date is not None:
            data["end_date"] = self.end_date
        return data

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CadenceRule":
        cadence = str(raw.get("cadence") or "none").lower()
        interval = raw.get("interval", 1)
        if cadence == "biweekly":  # legacy cadence
            cadence = "weekly"
            interval = 2
        days = raw.get("days_of_week", raw.get("daysOfWeek")) or ()
        return cls(
            cadence=cadence,
            days_of_week=tuple(days),
            interval_days=raw.get("interval_days", raw.get("intervalDays")),
            interval=interval if interval is not None else 1,
            count=raw.get("count"),
            start_date=raw.get("start_date", raw.get("startDate")),
            end_date=raw.get("end_date", raw.get("endDate")),
        )


@dataclass
class InstanceOverride:
    """Per-occurrence exception record. ``None`` status means never set."""
    status: Optional[str] = None
    completed: bool = False
    skipped: bool = False
    modified: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"completed": self.completed, "skipped": self.skipped, "modified": self.modified}
        if self.status is not None:
            data["status"] = self.status
        return data

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "InstanceOverride":
        return cls(
            status=normalize_status(raw.get("status")),
            completed=bool(raw.get("completed", False)),
            skipped=bool(raw.get("skipped", False)),
            modified=bool(raw.get("modified", True)),
        )


@dataclass
class Task:
    """A single stored task.

    Fields:
        id: Stable identifier (sequential string allocated by the repository).
        title / description: Free text.
        status: One of STATUSES. For recurring tasks this is the base status
            every occurrence shows unless an override says otherwise.
        weight: Positive integer used for progress math.
        sprint_id: Sprint association for plain tasks ("Week-<w>-<yyyy>").
        due_date: Optional ISO date.
        repeat: Cadence rule; None or cadence "none" means a plain task.
        overrides: Sparse override store keyed by occurrence date.
        created_at / updated_at: ISO timestamps.
        deleted: Soft-delete marker; deleted tasks never reach the board.
    """
    id: str
    title: str
    description: str = ""
    status: str = "backlog"
    weight: int = 1
    sprint_id: Optional[str] = None
    due_date: Optional[str] = None
    repeat: Optional[CadenceRule] = None
    overrides: OverrideStore = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted: bool = False
    kind: str = field(default="plain", init=False, repr=False)

    @property
    def is_recurring(self) -> bool:
        return self.repeat is not None and self.repeat.cadence != "none"

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"Task(id={self.id}, title={self.title}, status={self.status})"


@dataclass(frozen=True)
class VirtualInstance:
    """One generated occurrence of a recurring task.

    ``id`` is only a display/addressing handle; code that needs the origin
    reads ``base_id`` and ``date`` and branches on ``kind``.
    """
    base_id: str
    date: str
    title: str
    status: str
    weight: int
    description: str = ""
    sprint_id: Optional[str] = None
    due_date: Optional[str] = None
    completed: bool = False
    skipped: bool = False
    modified: bool = False
    kind: str = field(default="instance", init=False)

    @property
    def id(self) -> str:
        return f"{self.base_id}-{self.date}"


def task_to_dict(task: Task) -> Dict[str, Any]:
    """Plain JSON-compatible form of a task (cadence and overrides verbatim)."""
    data: Dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "weight": task.weight,
        "sprint_id": task.sprint_id,
        "due_date": task.due_date,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
        "deleted": task.deleted,
    }
    if task.repeat is not None:
        data["repeat"] = task.repeat.to_dict()
    if task.overrides:
        data["overrides"] = {day: entry.to_dict() for day, entry in sorted(task.overrides.items())}
    return data


def task_from_dict(raw: Mapping[str, Any]) -> Task:
    """Build a Task from stored plain data.

    Raises KeyError/ValueError for records without an id or title; callers
    loading a whole collection skip such records.
    """
    tid = raw["id"]
    title = raw["title"]
    if title is None:
        raise ValueError(f"task {tid!r} has no title")
    status = normalize_status(raw.get("status")) or "backlog"
    repeat_raw = raw.get("repeat")
    repeat = CadenceRule.from_dict(repeat_raw) if isinstance(repeat_raw, Mapping) else None
    overrides_raw = raw.get("overrides")
    if overrides_raw is None and isinstance(repeat_raw, Mapping):
        # older records kept the overrides under repeat.instances
        overrides_raw = repeat_raw.get("instances")
    overrides: OverrideStore = {}
    if isinstance(overrides_raw, Mapping):
        for day, entry in overrides_raw.items():
            if isinstance(entry, Mapping):
                overrides[str(day)] = InstanceOverride.from_dict(entry)
    weight = raw.get("weight", 1)
    return Task(
        id=str(tid),
        title=str(title),
        description=str(raw.get("description") or ""),
        status=status,
        weight=int(weight) if weight is not None else 1,
        sprint_id=raw.get("sprint_id", raw.get("sprintId")),
        due_date=raw.get("due_date", raw.get("dueDate")),
        repeat=repeat,
        overrides=overrides,
        created_at=raw.get("created_at", raw.get("createdAt")),
        updated_at=raw.get("updated_at", raw.get("updatedAt")),
        deleted=bool(raw.get("deleted", False)),
    )
