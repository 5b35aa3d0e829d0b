"""Persistence: key/value adapters and the task repository.

The repository never writes a single task in place. Every change goes
through ``replace_tasks`` which serialises the whole collection under one
key and then notifies subscribers, so derived views (columns, progress)
always recompute from one consistent snapshot.
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

from models import Task, task_from_dict, task_to_dict

logger = logging.getLogger(__name__)

TASKS_KEY = 'tasks'

Listener = Callable[[List[Task]], None]


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryStore:
    """Dict-backed store; values are JSON round-tripped like on disk."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {k: json.dumps(v) for k, v in (initial or {}).items()}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return json.loads(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)


class JsonFileStore:
    """All keys live in one pretty-printed JSON document."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: top-level JSON value is not an object", self.path)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=4)
        tmp.replace(self.path)


class TaskRepository:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        self._listeners: List[Listener] = []

    # -------------------- reads --------------------
    def load_tasks(self) -> List[Task]:
        """Snapshot of the stored collection. Unreadable records are skipped."""
        raw = self.kv.get(TASKS_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Stored '%s' is not a list; starting empty", TASKS_KEY)
            return []
        tasks: List[Task] = []
        for entry in raw:
            if not isinstance(entry, dict):
                logger.warning("Skipping non-object task record: %r", entry)
                continue
            try:
                tasks.append(task_from_dict(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed task record %r: %s", entry.get('id'), exc)
        return tasks

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.load_tasks():
            if task.id == task_id:
                return task
        return None

    def next_id(self) -> str:
        numeric = [int(t.id) for t in self.load_tasks() if t.id.isdigit()]
        return str(max(numeric) + 1 if numeric else 1)

    # -------------------- single write path --------------------
    def replace_tasks(self, tasks: List[Task]) -> None:
        snapshot = list(tasks)
        self.kv.set(TASKS_KEY, [task_to_dict(t) for t in snapshot])
        logger.debug("Stored %d task(s)", len(snapshot))
        for listener in list(self._listeners):
            listener(snapshot)

    def upsert(self, task: Task) -> None:
        tasks = self.load_tasks()
        for i, existing in enumerate(tasks):
            if existing.id == task.id:
                tasks[i] = task
                break
        else:
            tasks.append(task)
        self.replace_tasks(tasks)

    def remove(self, task_id: str) -> bool:
        tasks = self.load_tasks()
        kept = [t for t in tasks if t.id != task_id]
        if len(kept) == len(tasks):
            return False
        self.replace_tasks(kept)
        return True

    # -------------------- change notification --------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new collection after each write."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe
