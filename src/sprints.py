"""Weekly sprint windows.

A sprint is an ISO week, Monday to Sunday, identified as ``Week-<w>-<yyyy>``
where ``yyyy`` is the ISO year.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, List, Optional

from cadence import to_date
from errors import InvalidArgumentError

SPRINT_ID_RE = re.compile(r"^Week-(\d{1,2})-(\d{4})$")


@dataclass(frozen=True)
class Sprint:
    id: str
    iso_week: int
    year: int
    start_date: str
    end_date: str


def sprint_id(iso_week: int, year: int) -> str:
    return f"Week-{iso_week}-{year}"


def week_dates(iso_week: int, year: int) -> Sprint:
    try:
        monday = date.fromisocalendar(year, iso_week, 1)
    except ValueError as exc:
        raise InvalidArgumentError(f"No ISO week {iso_week} in {year}") from exc
    sunday = monday + timedelta(days=6)
    return Sprint(sprint_id(iso_week, year), iso_week, year, monday.isoformat(), sunday.isoformat())


def sprint_for(day: Any) -> Sprint:
    """The sprint (ISO week) containing ``day``."""
    year, week, _ = to_date(day).isocalendar()
    return week_dates(week, year)


def parse_sprint_id(value: str) -> Sprint:
    m = SPRINT_ID_RE.match(value.strip())
    if not m:
        raise InvalidArgumentError(f"Invalid sprint id: {value!r} (expected Week-<n>-<year>)")
    return week_dates(int(m.group(1)), int(m.group(2)))


def shift_sprint(sprint: Sprint, weeks: int) -> Sprint:
    return sprint_for(to_date(sprint.start_date) + timedelta(weeks=weeks))


def generate_sprints(weeks_ahead: int = 12, today: Optional[date] = None) -> List[Sprint]:
    """Consecutive sprints starting with the one containing ``today``."""
    first = sprint_for(today or date.today())
    return [shift_sprint(first, i) for i in range(weeks_ahead)]
