import json
import os
import tempfile
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.core.ledger import TimeSession
from tt.core.snapshot import create_snapshot, prune_snapshots
from tt.util import now_iso

_SCHEMA_VERSION = 1

# Ledger changes that rewrite history get a snapshot first.
DESTRUCTIVE_REASONS = ("edit_session", "delete_session")


# A task as the timer engine sees it. The task store owns everything else about a task; only these fields are read
# or written back here.
@dataclass
class Task:
    id: str
    title: str
    sessions: list = field(default_factory=list)
    duration: int = 0                 # cached sum of sessions' duration_seconds
    is_billable: bool = True
    billable_rate: float = 100.0

    def to_record(self):
        return {
            "id": self.id,
            "title": self.title,
            "sessions": [s.to_record() for s in self.sessions],
            "duration": self.duration,
            "isBillable": self.is_billable,
            "billableRate": self.billable_rate,
        }

    @staticmethod
    def from_record(record):
        return Task(
            id=str(record["id"]),
            title=str(record.get("title") or ""),
            sessions=[TimeSession.from_record(s) for s in record.get("sessions", [])],
            duration=int(record.get("duration", 0)),
            is_billable=bool(record.get("isBillable", True)),
            billable_rate=float(record.get("billableRate", 100.0)),
        )


def _build_default_data():
    return {
        "meta": {"schema_version": _SCHEMA_VERSION, "saved_at": now_iso()},
        "tasks": {},
    }


# JSON-file task store used by the desktop app. Anything with the same all/get/save/raw methods can stand in for it.
class TaskRepository:

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else PATHS.tasks / "tasks.json"

    # Loads the raw task file, defaulting anything missing. Individual task records that fail to parse are dropped
    # with a warning rather than taking the whole file down.
    def raw(self):
        if not self.path.exists():
            return _build_default_data()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError):
            log.warning(f"Could not read task file '{self.path}', starting from an empty task list.", exc_info=True)
            return _build_default_data()
        if not isinstance(data, dict):
            log.warning(f"Task file '{self.path}' is not an object, starting from an empty task list.")
            return _build_default_data()
        if not isinstance(data.get("meta"), dict):
            data["meta"] = {"schema_version": _SCHEMA_VERSION}
        if not isinstance(data.get("tasks"), dict):
            log.warning(f"Task file '{self.path}' has no task table, defaulting to empty.")
            data["tasks"] = {}
        return data

    def all(self):
        tasks = []
        for task_id, record in self.raw()["tasks"].items():
            try:
                tasks.append(Task.from_record(record))
            except (KeyError, TypeError, ValueError, OverflowError):
                log.warning(f"Skipping unreadable task record '{task_id}'", exc_info=True)
        return tasks

    def get(self, task_id):
        record = self.raw()["tasks"].get(task_id)
        if record is None:
            return None
        return Task.from_record(record)

    def create(self, title, is_billable=True, billable_rate=100.0):
        task = Task(id=f"task_{uuid.uuid4().hex[:12]}", title=title,
                    is_billable=is_billable, billable_rate=float(billable_rate))
        self.save(task)
        log.info(f"Created task '{task.id}' ({title})")
        return task

    # Replaces the task's whole record and writes the file atomically.
    def save(self, task):
        data = self.raw()
        data["tasks"][task.id] = task.to_record()
        self._write(data)

    def _write(self, data):
        data["meta"]["saved_at"] = now_iso()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".tasks_", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            try: os.remove(tmp_name)
            except OSError: pass
            raise
        log.debug(f"Saved task file '{self.path}'")


# Writes a task's time-tracking fields back to the task store, always as a complete set. The duration cache is
# recomputed from the ledger on every commit and only lands on the task once the save went through.
class TaskBinding:

    def __init__(self, repository: TaskRepository, snapshot_dir: Path | None = None, snapshot_on_edit=True):
        self.repository = repository
        self.snapshot_dir = Path(snapshot_dir) if snapshot_dir is not None else PATHS.snapshots
        self.snapshot_on_edit = snapshot_on_edit

    # Latest persisted copy of a task, or None if the store has never seen it.
    def reload(self, task_id):
        return self.repository.get(task_id)

    def commit(self, task, reason="save"):
        if self.snapshot_on_edit and reason in DESTRUCTIVE_REASONS:
            create_snapshot(self.repository.raw(), self.snapshot_dir, reason, priority="high")
            prune_snapshots(self.snapshot_dir)
        duration = sum(s.duration_seconds for s in task.sessions)
        self.repository.save(replace(task, duration=duration))
        task.duration = duration
        log.info(f"Committed task '{task.id}' ({reason}): {len(task.sessions)} sessions, {duration}s")
        return task
