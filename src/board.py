"""Sprint board: aggregates tasks for one sprint and renders the columns.

Recurring tasks are expanded into virtual instances for the sprint window;
plain tasks appear when their ``sprint_id`` matches. Both kinds expose
``id``, ``status`` and ``weight`` so grouping and progress math treat them
alike. Instances are addressed on screen as ``<id>@<Weekday>`` since a
sprint never holds two occurrences on the same weekday.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import re, shutil

from cadence import to_date
from instances import expand_tasks
from models import STATUSES, WEEKDAYS, Task, VirtualInstance
from sprints import Sprint
from theme import color, HEADER_COLOR, STATUS_COLOR, ID_COLOR, EMPTY_COLOR, DATE_COLOR, BOLD

BoardItem = Union[Task, VirtualInstance]

HEADER_TITLES: Dict[str, str] = {
    "icebox": "ICEBOX", "backlog": "BACKLOG", "todo": "TO DO",
    "in-progress": "IN-PROGRESS", "review": "REVIEW", "done": "DONE",
}
MIN_COL_WIDTH = 12
SEP = " | "
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


@dataclass(frozen=True)
class SprintProgress:
    total_weight: int
    completed_weight: int
    total_items: int
    completed_items: int

    @property
    def percent(self) -> float:
        if self.total_weight <= 0:
            return 0.0
        return self.completed_weight / self.total_weight * 100


# -------------------- aggregation --------------------
def collect_items(tasks: Iterable[Task], sprint: Sprint) -> List[BoardItem]:
    """Flat list of everything the sprint shows, skipped occurrences hidden."""
    live = [t for t in tasks if not t.deleted]
    items: List[BoardItem] = [t for t in live if not t.is_recurring and t.sprint_id == sprint.id]
    items.extend(expand_tasks([t for t in live if t.is_recurring], sprint.start_date, sprint.end_date,
                              include_skipped=False))
    return items


def group_by_status(items: Iterable[BoardItem]) -> Dict[str, List[BoardItem]]:
    """Bucket items by resolved status, every status present, board order."""
    columns: Dict[str, List[BoardItem]] = {status: [] for status in STATUSES}
    for item in items:
        columns.setdefault(item.status, []).append(item)
    return columns


def progress(items: Sequence[BoardItem]) -> SprintProgress:
    done = [i for i in items if i.status == "done"]
    return SprintProgress(
        total_weight=sum(i.weight for i in items),
        completed_weight=sum(i.weight for i in done),
        total_items=len(items),
        completed_items=len(done),
    )


def overdue_items(items: Iterable[BoardItem], today: date) -> List[BoardItem]:
    """Unfinished occurrences dated before ``today`` and plain items past due."""
    overdue: List[BoardItem] = []
    for item in items:
        if item.status == "done":
            continue
        if isinstance(item, VirtualInstance):
            when: Optional[str] = item.date
        else:
            when = item.due_date
        if when and to_date(when) < today:
            overdue.append(item)
    return overdue


def item_label(item: BoardItem) -> str:
    if isinstance(item, VirtualInstance):
        return f"{item.base_id}@{WEEKDAYS[to_date(item.date).weekday()]}"
    return item.id


class Board:
    def __init__(self, tasks: Iterable[Task], sprint: Sprint, today: Optional[date] = None):
        self.sprint = sprint
        self.today = today or date.today()
        self.items: List[BoardItem] = collect_items(tasks, sprint)
        self.columns: Dict[str, List[BoardItem]] = group_by_status(self.items)

    # -------------------- queries --------------------
    def progress(self) -> SprintProgress:
        return progress(self.items)

    def find(self, label: str) -> Optional[BoardItem]:
        """Look up an item by its on-screen label (``3`` or ``3@Wed``)."""
        for item in self.items:
            if item_label(item).lower() == label.lower():
                return item
        return None

    # -------------------- display --------------------
    def display(self) -> None:
        term_width = shutil.get_terminal_size((120, 30)).columns
        widths = self._compute_column_widths(term_width)
        wrapped = self._wrap_all_columns(widths)
        self._render(widths, wrapped)
        print()
        print(self.summary())

    def summary(self) -> str:
        p = self.progress()
        return (f"{self.sprint.id} ({self.sprint.start_date} .. {self.sprint.end_date})  "
                f"{p.completed_weight}/{p.total_weight} points, {p.percent:.0f}% done"
                f"{self._overdue_note()}")

    def overdue(self) -> List[BoardItem]:
        return overdue_items(self.items, self.today)

    def _overdue_note(self) -> str:
        late = self.overdue()
        return f", {len(late)} overdue" if late else ""

    # ---- width calculation ----
    def _compute_column_widths(self, term_width: int) -> Dict[str, int]:
        sep_total = len(SEP) * (len(STATUSES) - 1)
        desired: Dict[str, int] = {}
        for status in STATUSES:
            longest = len(HEADER_TITLES[status])
            for item in self.columns[status]:
                prefix, title_text, suffix = self._segments(item)
                longest = max(longest, len(prefix) + len(title_text) + len(suffix))
            desired[status] = max(MIN_COL_WIDTH, longest)
        widths = dict(desired)
        total = sum(widths.values()) + sep_total
        if total > term_width:
            target_space = max(term_width - sep_total, len(STATUSES) * MIN_COL_WIDTH)
            while sum(widths.values()) > target_space:
                widest = max(STATUSES, key=lambda s: widths[s])
                if widths[widest] <= MIN_COL_WIDTH:
                    break
                widths[widest] -= 1
        else:
            extra = term_width - total
            i = 0
            while extra > 0:
                widths[STATUSES[i % len(STATUSES)]] += 1
                extra -= 1
                i += 1
        return widths

    # ---- wrapping ----
    def _wrap_all_columns(self, widths: Mapping[str, int]) -> Dict[str, List[str]]:
        wrapped: Dict[str, List[str]] = {}
        for status in STATUSES:
            if not self.columns[status]:
                wrapped[status] = [color('(empty)', EMPTY_COLOR)]
                continue
            acc: List[str] = []
            for item in self.columns[status]:
                acc.extend(self._wrap_item(item, widths[status]))
            wrapped[status] = acc
        return wrapped

    @staticmethod
    def _segments(item: BoardItem) -> Tuple[str, str, str]:
        prefix = f"{item_label(item)}. "
        title_text = item.title if item.title else '<untitled>'
        if isinstance(item, VirtualInstance):
            suffix = f" {item.date} ({item.weight})"
        else:
            suffix = f" ({item.weight})"
        return prefix, title_text, suffix

    def _wrap_item(self, item: BoardItem, col_width: int) -> List[str]:
        prefix, title_text, suffix = self._segments(item)
        status_col = STATUS_COLOR.get(item.status, '')
        limit = max(1, col_width - len(prefix))
        lines_raw: List[str] = []
        current = ''
        for w in (title_text + suffix).split():
            candidate = w if not current else current + ' ' + w
            if len(candidate) <= limit:
                current = candidate
            else:
                if current:
                    lines_raw.append(current)
                current = w
        if current:
            lines_raw.append(current)
        colored: List[str] = []
        for idx, raw_line in enumerate(lines_raw):
            lead = color(prefix.rstrip(), ID_COLOR, BOLD) + ' ' if idx == 0 else ' ' * len(prefix)
            if raw_line.endswith(suffix.strip()):
                base_part = raw_line[:-len(suffix.strip())]
                colored.append(lead + color(base_part, status_col) + color(suffix.strip(), DATE_COLOR))
            else:
                colored.append(lead + color(raw_line, status_col))
        return colored

    # ---- rendering ----
    def _render(self, widths: Mapping[str, int], wrapped_lines: Mapping[str, List[str]]) -> None:
        rows = max(len(wrapped_lines[s]) for s in STATUSES)
        header_cells: List[str] = []
        for s in STATUSES:
            h = color(HEADER_TITLES[s], HEADER_COLOR, BOLD)
            pad = widths[s] - self._visible_len(h)
            header_cells.append(h + ' ' * max(pad, 0))
        print(SEP.join(header_cells))
        print(SEP.join(color('-' * widths[s], HEADER_COLOR) for s in STATUSES))
        for r in range(rows):
            row_cells: List[str] = []
            for s in STATUSES:
                col_lines = wrapped_lines[s]
                if r < len(col_lines):
                    line = col_lines[r]
                    pad = widths[s] - self._visible_len(line)
                    row_cells.append(line + ' ' * max(pad, 0))
                else:
                    row_cells.append(' ' * widths[s])
            print(SEP.join(row_cells))

    @staticmethod
    def _visible_len(s: str) -> int:
        return len(ANSI_RE.sub('', s))

    def __str__(self) -> str:
        return ', '.join(f'{HEADER_TITLES[s].title()}: {len(self.columns[s])}' for s in STATUSES)
