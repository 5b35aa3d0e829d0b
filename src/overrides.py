"""Override store helpers.

An override store maps an occurrence date (``YYYY-MM-DD``) to an
``InstanceOverride``. Absence of a key means "use the base task". All
helpers return new mappings; the caller's store is left alone.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from cadence import iso, to_date
from errors import InvalidArgumentError
from models import InstanceOverride, OverrideStore, Task, normalize_status

logger = logging.getLogger(__name__)


def clear_from(overrides: Mapping[str, InstanceOverride], from_date: Any = None) -> OverrideStore:
    """Keep only entries strictly before ``from_date``.

    No ``from_date`` clears everything. Keys that are not calendar dates
    are dropped since no occurrence can ever address them.
    """
    if from_date is None:
        return {}
    cutoff = to_date(from_date)
    kept: OverrideStore = {}
    for key, entry in overrides.items():
        try:
            day = to_date(key)
        except InvalidArgumentError:
            logger.debug("Dropping override with unparseable date key %r", key)
            continue
        if day < cutoff:
            kept[key] = entry
    return kept


def set_override(overrides: Mapping[str, InstanceOverride], day: Any,
                 status: Optional[str] = None, skipped: Optional[bool] = None) -> OverrideStore:
    """Write or merge the entry for ``day`` and mark it modified.

    Only the fields passed are changed; ``completed`` follows ``status``.
    """
    key = iso(to_date(day))
    entry = overrides.get(key, InstanceOverride())
    changes: dict = {"modified": True}
    if status is not None:
        resolved = normalize_status(status)
        if resolved is None:
            raise InvalidArgumentError(f"Invalid status: {status!r}")
        changes["status"] = resolved
        changes["completed"] = resolved == "done"
    if skipped is not None:
        changes["skipped"] = bool(skipped)
    updated = dict(overrides)
    updated[key] = replace(entry, **changes)
    return updated


def get_override(task: Task, day: Any) -> Optional[InstanceOverride]:
    key = iso(to_date(day))
    if key in task.overrides:
        return task.overrides[key]
    return None


def resolve_status(task: Task, day: Any) -> str:
    """Override status when one is set for ``day``, else the base status."""
    entry = get_override(task, day)
    if entry is not None and entry.status is not None:
        return entry.status
    return task.status


def is_instance_completed(task: Task, day: Any) -> bool:
    entry = get_override(task, day)
    return entry is not None and entry.completed


def is_instance_skipped(task: Task, day: Any) -> bool:
    entry = get_override(task, day)
    return entry is not None and entry.skipped
