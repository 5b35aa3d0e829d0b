"""Command-line interface loop for the sprint board.

Recurring occurrences are addressed as ``<id>@<Weekday>`` (``3@Wed``) or
``<id>@<YYYY-MM-DD>``; plain tasks by bare id. Every mutation goes through
the repository's single write path and the board is rebuilt from the
stored snapshot after each write.
"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from board import Board
from cadence import next_occurrence, parse_weekday, to_date
from errors import InvalidArgumentError
from models import WEEKDAYS, CadenceRule, Task, VirtualInstance
from sprints import Sprint, generate_sprints, parse_sprint_id, shift_sprint, sprint_for
from storage import TaskRepository
from updates import EDIT_MODES, apply_update, skip_instance, update_base, update_instance_status

logger = logging.getLogger(__name__)


# --- terminal control helpers ---
# ESC[3J (scrollback), ESC[H (home), ESC[2J (screen), ESC[H (home)
def _clear_screen() -> None:
    print("\033[3J\033[H\033[2J\033[H", end="", flush=True)


def _enter_alt_screen() -> None:
    print("\033[?1049h", end="", flush=True)


def _leave_alt_screen() -> None:
    print("\033[?1049l", end="", flush=True)


STATUS_ALIASES = {
    'ic': 'icebox', 'icebox': 'icebox',
    'b': 'backlog', 'backlog': 'backlog',
    't': 'todo', 'todo': 'todo',
    'ip': 'in-progress', 'in-progress': 'in-progress',
    'r': 'review', 'review': 'review',
    'd': 'done', 'done': 'done',
}

MODE_ALIASES = {'this': 'this', 'future': 'future', 'all': 'all', 'f': 'future', 'a': 'all'}


class CLI:
    def __init__(self, repo: TaskRepository, sprint: Optional[Sprint] = None, alt_screen: bool = True,
                 today: Optional[date] = None):
        self.repo = repo
        self.today = today or date.today()
        self.sprint: Sprint = sprint or sprint_for(self.today)
        self.alt_screen = alt_screen
        self.board = Board(repo.load_tasks(), self.sprint, today=self.today)
        self._unsubscribe = repo.subscribe(self._on_change)

    def _on_change(self, tasks: List[Task]) -> None:
        self.board = Board(tasks, self.sprint, today=self.today)

    def _set_sprint(self, sprint: Sprint) -> None:
        self.sprint = sprint
        self.board = Board(self.repo.load_tasks(), sprint, today=self.today)

    def run(self) -> None:
        """Main REPL loop; board is cleared/redrawn each cycle."""
        exit_message: Optional[str] = None
        message: Optional[str] = None
        if self.alt_screen:
            _enter_alt_screen()
        try:
            while True:
                _clear_screen()
                print("Sprint Board:")
                self.board.display()
                if message:
                    print("\n" + message)
                message = None
                line = input("\n: ").strip()
                if not line:
                    continue
                lower = line.lower()
                if lower == 'help':
                    _clear_screen()
                    self._help()
                    input("\nPress Enter to return to the board...")
                    continue
                if lower == 'exit':
                    exit_message = "Goodbye."
                    break
                message = self.handle_command(line)
        except (KeyboardInterrupt, EOFError):
            exit_message = "Interrupted. Goodbye."
        finally:
            self._unsubscribe()
            if self.alt_screen:
                _leave_alt_screen()
            if exit_message:
                print(exit_message)

    # -------------------- command dispatch --------------------
    def handle_command(self, line: str) -> Optional[str]:
        """Run one command; returns a message to show under the board."""
        tokens = line.split()
        if not tokens:
            return None
        cmd = tokens[0].lower()
        handler = {
            'add': self._cmd_add,
            'mv': self._cmd_mv,
            'repeat': self._cmd_repeat,
            'norepeat': self._cmd_norepeat,
            'skip': self._cmd_skip,
            'edit': self._cmd_edit,
            'rm': self._cmd_rm,
            'sprint': self._cmd_sprint,
        }.get(cmd)
        if handler is None:
            return "Unknown command. Type 'help' for instructions."
        try:
            return handler(tokens[1:])
        except InvalidArgumentError as exc:
            logger.info("Rejected %r: %s", line, exc)
            return str(exc)

    # ---- address resolution ----
    def _resolve(self, label: str) -> Tuple[Task, Optional[str]]:
        """Return (base task, occurrence date or None) for a label."""
        base_id, _, day_part = label.partition('@')
        task = self.repo.get_task(base_id)
        if task is None or task.deleted:
            raise InvalidArgumentError(f"Task id {base_id} not found.")
        if not day_part:
            return task, None
        item = self.board.find(label)
        if isinstance(item, VirtualInstance):
            return task, item.date
        if not day_part[:1].isdigit():
            offset = WEEKDAYS.index(parse_weekday(day_part))
            return task, (to_date(self.sprint.start_date) + timedelta(days=offset)).isoformat()
        return task, to_date(day_part).isoformat()

    def _save(self, task: Task) -> None:
        self.repo.upsert(task)

    # ---- individual commands ----
    def _cmd_add(self, args: List[str]) -> Optional[str]:
        weight = 1
        if args and args[-1].startswith('w='):
            weight = _positive_int(args[-1][2:])
            args = args[:-1]
        title = ' '.join(args).strip() or input("Enter task title: ").strip()
        if not title:
            return "Title required."
        now = datetime.now().isoformat()
        task = Task(id=self.repo.next_id(), title=title, status='todo', weight=weight,
                    sprint_id=self.sprint.id, created_at=now, updated_at=now)
        self._save(task)
        return f'Task {task.id} added.'

    def _cmd_mv(self, args: List[str]) -> Optional[str]:
        if len(args) not in (2, 3):
            return "Usage: mv <id>[@day] <status> [this|future|all]"
        new_status = STATUS_ALIASES.get(args[1].lower())
        if not new_status:
            return "Invalid status."
        task, day = self._resolve(args[0])
        mode = MODE_ALIASES.get(args[2].lower()) if len(args) == 3 else ('this' if day else 'all')
        if mode is None:
            return f"Invalid mode; use one of {', '.join(EDIT_MODES)}."
        if mode == 'this' and day is not None:
            self._save(update_instance_status(task, day, new_status))
        else:
            self._save(apply_update(task, {'status': new_status}, mode, day))
        return None

    def _cmd_repeat(self, args: List[str]) -> Optional[str]:
        usage = "Usage: repeat <id> daily [every] | weekly <Mon,Wed> [every] | custom <days> [start]"
        if len(args) < 2:
            return usage
        task, day = self._resolve(args[0])
        kind = args[1].lower()
        # a fresh rule each time: nothing from the previous cadence carries over
        rule = CadenceRule(cadence=kind, start_date=day or self.sprint.start_date)
        rest = args[2:]
        if kind == 'daily':
            if rest:
                rule.interval = _positive_int(rest[0])
        elif kind == 'weekly':
            if not rest:
                return usage
            rule.days_of_week = tuple(d for d in rest[0].split(',') if d)
            if len(rest) > 1:
                rule.interval = _positive_int(rest[1])
        elif kind == 'custom':
            if not rest:
                return usage
            rule.interval_days = _positive_int(rest[0])
            if len(rest) > 1:
                rule.start_date = to_date(rest[1]).isoformat()
        else:
            return usage
        mode = 'future' if day else 'all'
        updated = apply_update(task, {'cadence': rule}, mode, day)
        self._save(updated)
        upcoming = next_occurrence(updated.repeat, self.today - timedelta(days=1))
        if upcoming is None:
            return f'Task {task.id} repeats {kind}; no occurrences left.'
        return f'Task {task.id} repeats {kind}, next on {upcoming.isoformat()}.'

    def _cmd_norepeat(self, args: List[str]) -> Optional[str]:
        if len(args) != 1:
            return "Usage: norepeat <id>"
        task, _ = self._resolve(args[0])
        self._save(apply_update(task, {'cadence': {'cadence': 'none'}, 'sprint_id': self.sprint.id}, 'all'))
        return f'Task {task.id} no longer repeats.'

    def _cmd_skip(self, args: List[str]) -> Optional[str]:
        if len(args) != 1 or '@' not in args[0]:
            return "Usage: skip <id>@<day>"
        task, day = self._resolve(args[0])
        self._save(skip_instance(task, day))
        return f'Skipped {args[0]}.'

    def _cmd_edit(self, args: List[str]) -> Optional[str]:
        if len(args) < 3 or args[1].lower() not in ('title', 'weight', 'description'):
            return "Usage: edit <id>[@day] title|weight|description <value...>"
        task, day = self._resolve(args[0])
        field_name = args[1].lower()
        value: object = ' '.join(args[2:])
        if field_name == 'weight':
            value = _positive_int(args[2])
        if day is None:
            self._save(update_base(task, {field_name: value}))
        else:
            self._save(apply_update(task, {field_name: value}, 'this', day))
        return None

    def _cmd_rm(self, args: List[str]) -> Optional[str]:
        if len(args) != 1:
            return "Usage: rm <id>"
        raw_id = args[0].rstrip('.')
        if '@' in raw_id:
            return "Use 'skip' to hide one occurrence; rm removes the whole task."
        if self.repo.remove(raw_id):
            return f'Task {raw_id} removed.'
        return f'Task id {raw_id} not found.'

    def _cmd_sprint(self, args: List[str]) -> Optional[str]:
        target = args[0].lower() if args else 'now'
        if target in ('next', 'n'):
            self._set_sprint(shift_sprint(self.sprint, 1))
        elif target in ('prev', 'p'):
            self._set_sprint(shift_sprint(self.sprint, -1))
        elif target == 'now':
            self._set_sprint(sprint_for(self.today))
        elif target in ('list', 'ls'):
            weeks = _positive_int(args[1]) if len(args) > 1 else 4
            return '  '.join(s.id for s in generate_sprints(weeks, today=self.today))
        else:
            self._set_sprint(parse_sprint_id(args[0]))
        return None

    # -------------------- help --------------------
    def _help(self) -> None:
        print("Commands:")
        print("  add <title...> [w=N]          Add a task to the shown sprint (weight N, default 1)")
        print("  mv <id> <status>              Move a task; statuses: ic b t ip r d")
        print("  mv <id>@<day> <status> [mode] Move one occurrence; mode this (default), future or all")
        print("  repeat <id> daily [every]     Repeat every day (or every N days)")
        print("  repeat <id> weekly Mon,Wed [every]   Repeat on weekdays (every N weeks)")
        print("  repeat <id> custom <days> [start]    Repeat every <days> days from start")
        print("  norepeat <id>                 Stop repeating; keeps the task in this sprint")
        print("  skip <id>@<day>               Hide one occurrence")
        print("  edit <id>[@day] <field> <value>      Change title, weight or description")
        print("  rm <id>                       Remove a task")
        print("  sprint next|prev|now|Week-N-YYYY     Switch sprint")
        print("  sprint list [N]               List the next N sprints (default 4)")
        print("  help                          Show this help (press Enter to return)")
        print("  exit                          Exit")


def _positive_int(raw: str) -> int:
    if not raw.isdigit() or int(raw) < 1:
        raise InvalidArgumentError(f"Expected a positive number, got {raw!r}")
    return int(raw)


