"""Cadence rule evaluation.

Every function here is a pure function of (rule, date). Dates are compared
as calendar dates, never as strings.

Weekday integers follow the legacy export convention: 0 = Sunday.
"""
from __future__ import annotations
import logging
from datetime import date, datetime, timedelta
from typing import Any, FrozenSet, Iterator, List, Optional

from errors import InvalidArgumentError
from models import CADENCES, WEEKDAYS, CadenceRule

logger = logging.getLogger(__name__)

# upper bound for open-ended scans (count cutoff, next occurrence)
MAX_SCAN_DAYS = 366 * 20

_FULL_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def to_date(value: Any) -> date:
    """Coerce a date, datetime or ISO string into a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise InvalidArgumentError(f"Not a calendar date: {value!r}")


def iso(day: date) -> str:
    return day.isoformat()


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from start to end inclusive."""
    current = start
    one = timedelta(days=1)
    while current <= end:
        yield current
        current += one


def parse_weekday(value: Any) -> str:
    """Return the canonical weekday name (Mon..Sun) for a loose value."""
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value <= 6:
            return WEEKDAYS[(value - 1) % 7]
        raise InvalidArgumentError(f"Weekday number out of range: {value}")
    if isinstance(value, str):
        key = value.strip().lower()
        if len(key) >= 2:
            matches = [i for i, name in enumerate(_FULL_NAMES) if name.startswith(key)]
            if len(matches) == 1:
                return WEEKDAYS[matches[0]]
    raise InvalidArgumentError(f"Unknown weekday: {value!r}")


def weekday_set(rule: CadenceRule) -> FrozenSet[str]:
    return frozenset(parse_weekday(d) for d in rule.days_of_week)


def validate_rule(rule: CadenceRule) -> None:
    """Raise InvalidArgumentError if the rule cannot answer "does D occur?"."""
    if rule.cadence not in CADENCES:
        raise InvalidArgumentError(f"Unknown cadence: {rule.cadence!r}")
    start = to_date(rule.start_date) if rule.start_date is not None else None
    end = to_date(rule.end_date) if rule.end_date is not None else None
    if start and end and end < start:
        raise InvalidArgumentError(f"end_date {rule.end_date} is before start_date {rule.start_date}")
    if not isinstance(rule.interval, int) or rule.interval < 1:
        raise InvalidArgumentError(f"interval must be a positive integer, got {rule.interval!r}")
    if rule.count is not None:
        if not isinstance(rule.count, int) or rule.count < 1:
            raise InvalidArgumentError(f"count must be a positive integer, got {rule.count!r}")
        if start is None:
            raise InvalidArgumentError("count requires a start_date")
    if rule.cadence == "weekly":
        if not rule.days_of_week:
            raise InvalidArgumentError("weekly cadence needs at least one day of the week")
        weekday_set(rule)
    elif rule.cadence == "custom":
        if not isinstance(rule.interval_days, int) or isinstance(rule.interval_days, bool) or rule.interval_days < 1:
            raise InvalidArgumentError(f"interval_days must be a positive integer, got {rule.interval_days!r}")
        if start is None:
            raise InvalidArgumentError("custom cadence requires a start_date")


def is_valid_rule(rule: Optional[CadenceRule]) -> bool:
    if rule is None or rule.cadence == "none":
        return False
    try:
        validate_rule(rule)
    except InvalidArgumentError as exc:
        logger.debug("Ignoring malformed cadence %r: %s", rule, exc)
        return False
    return True


# ---- predicates (rule assumed valid) ----

def _bounds(rule: CadenceRule):
    start = to_date(rule.start_date) if rule.start_date is not None else None
    end = to_date(rule.end_date) if rule.end_date is not None else None
    return start, end


def _matches(rule: CadenceRule, day: date, start: Optional[date], days: FrozenSet[str]) -> bool:
    if rule.cadence == "daily":
        if start is None or rule.interval == 1:
            return True
        return (day - start).days % rule.interval == 0
    if rule.cadence == "weekly":
        if WEEKDAYS[day.weekday()] not in days:
            return False
        if start is None or rule.interval == 1:
            return True
        week_start = start - timedelta(days=start.weekday())
        this_week = day - timedelta(days=day.weekday())
        return ((this_week - week_start).days // 7) % rule.interval == 0
    if rule.cadence == "custom":
        assert start is not None and rule.interval_days
        return (day - start).days % rule.interval_days == 0
    return False


def _count_cutoff(rule: CadenceRule, start: Optional[date], end: Optional[date], days: FrozenSet[str]) -> Optional[date]:
    """Date of the last occurrence allowed by ``count``; None when uncapped."""
    if rule.count is None or start is None:
        return None
    limit = start + timedelta(days=MAX_SCAN_DAYS)
    if end is not None and end < limit:
        limit = end
    seen = 0
    for day in date_range(start, limit):
        if _matches(rule, day, start, days):
            seen += 1
            if seen == rule.count:
                return day
    return None


def _iter_occurrences(rule: Optional[CadenceRule], lo: date, hi: date) -> Iterator[date]:
    if not is_valid_rule(rule):
        return
    assert rule is not None
    start, end = _bounds(rule)
    days = weekday_set(rule)
    cutoff = _count_cutoff(rule, start, end, days)
    if start is not None and start > lo:
        lo = start
    if end is not None and end < hi:
        hi = end
    if cutoff is not None and cutoff < hi:
        hi = cutoff
    for day in date_range(lo, hi):
        if _matches(rule, day, start, days):
            yield day


def occurrences_between(rule: Optional[CadenceRule], window_start: Any, window_end: Any) -> List[date]:
    """Occurrence dates inside [window_start, window_end], ascending.

    Malformed or non-recurring rules yield an empty list.
    """
    return list(_iter_occurrences(rule, to_date(window_start), to_date(window_end)))


def occurs_on(rule: Optional[CadenceRule], day: Any) -> bool:
    """True when ``day`` produces an occurrence under ``rule``."""
    d = to_date(day)
    return bool(occurrences_between(rule, d, d))


def next_occurrence(rule: Optional[CadenceRule], after: Any) -> Optional[date]:
    """First occurrence strictly after ``after`` (None when exhausted)."""
    first = to_date(after) + timedelta(days=1)
    return next(_iter_occurrences(rule, first, first + timedelta(days=MAX_SCAN_DAYS)), None)
