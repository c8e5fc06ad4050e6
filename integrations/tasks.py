#!/usr/bin/env python3
"""Task and note registry for the studio organizer.

Tasks and notes are kept newest-first. Remote `/done N` commands address a
task by its 1-based position in the *current* active list, so positions are
always resolved against the live ordering, never cached.

Usage:
    python -m integrations.tasks list
    python -m integrations.tasks add "<task>" [--daily]
    python -m integrations.tasks done <position>
    python -m integrations.tasks note "<text>"
"""

import argparse
import logging
import sys
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

from integrations.state import PersistenceError, StateStore

logger = logging.getLogger(__name__)


class IndexOutOfRange(IndexError):
    """A 1-based task position outside [1, active count]."""


@dataclass(frozen=True)
class Task:
    id: str
    text: str
    completed: bool = False
    is_daily: bool = False
    created_at: int = 0

    @classmethod
    def from_dict(cls, raw: dict) -> "Task":
        return cls(
            id=str(raw["id"]),
            text=str(raw.get("text", "")),
            completed=bool(raw.get("completed", raw.get("done", False))),
            is_daily=bool(raw.get("isDaily", False)),
            created_at=int(raw.get("createdAt") or 0),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "isDaily": self.is_daily,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class Note:
    id: str
    text: str
    created_at: int = 0

    @classmethod
    def from_dict(cls, raw: dict) -> "Note":
        return cls(
            id=str(raw["id"]),
            text=str(raw.get("text", "")),
            created_at=int(raw.get("createdAt") or 0),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "createdAt": self.created_at}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _load_entries(store: StateStore, name: str, factory) -> list:
    entries = []
    for raw in store.load(name, []) or []:
        try:
            entries.append(factory(raw))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Skipping malformed {name} entry: {raw!r}")
    return entries


class TaskRegistry:
    """In-memory mirror of the task and note collections, written through to disk.

    Each mutation builds the new collection, persists it, and only then swaps
    it in; a PersistenceError leaves memory untouched and propagates.
    """

    def __init__(self, store: StateStore, clock: Callable[[], int] = _now_ms):
        self.store = store
        self.clock = clock
        self._lock = threading.RLock()
        self._tasks: list[Task] = _load_entries(store, "tasks", Task.from_dict)
        self._notes: list[Note] = _load_entries(store, "notes", Note.from_dict)

        numeric = [int(e.id) for e in [*self._tasks, *self._notes] if e.id.isdigit()]
        self._last_id = max(numeric, default=0)

    # -------------------- ids --------------------
    def _new_id(self) -> str:
        self._last_id = max(self.clock(), self._last_id + 1)
        return str(self._last_id)

    # -------------------- persistence --------------------
    def _commit_tasks(self, tasks: list[Task]) -> None:
        self.store.save("tasks", [t.to_dict() for t in tasks])
        self._tasks = tasks

    def _commit_notes(self, notes: list[Note]) -> None:
        self.store.save("notes", [n.to_dict() for n in notes])
        self._notes = notes

    # -------------------- queries --------------------
    def tasks(self) -> list[Task]:
        with self._lock:
            return list(self._tasks)

    def notes(self) -> list[Note]:
        with self._lock:
            return list(self._notes)

    def active_tasks(self) -> list[Task]:
        with self._lock:
            return [t for t in self._tasks if not t.completed]

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._lock:
            return next((t for t in self._tasks if t.id == task_id), None)

    # -------------------- task operations --------------------
    def add_task(self, text: str, is_daily: bool = False) -> Optional[Task]:
        """Prepend a new active task. Blank text is a no-op (returns None)."""
        text = (text or "").strip()
        if not text:
            return None
        with self._lock:
            previous_id = self._last_id
            task = Task(id=self._new_id(), text=text, is_daily=is_daily, created_at=self.clock())
            try:
                self._commit_tasks([task, *self._tasks])
            except PersistenceError:
                self._last_id = previous_id
                raise
        logger.info(f"Task added: {text[:50]}")
        return task

    def toggle_task(self, task_id: str) -> Optional[Task]:
        with self._lock:
            target = self.get_task(task_id)
            if target is None:
                return None
            flipped = replace(target, completed=not target.completed)
            self._commit_tasks([flipped if t.id == task_id else t for t in self._tasks])
            return flipped

    def complete_task_by_position(self, position: int) -> Task:
        """Complete the task at 1-based `position` in the current active list."""
        with self._lock:
            active = self.active_tasks()
            if position < 1 or position > len(active):
                raise IndexOutOfRange(
                    f"Task number {position} is out of range (1..{len(active)})"
                )
            target = active[position - 1]
            done = replace(target, completed=True)
            self._commit_tasks([done if t.id == target.id else t for t in self._tasks])
        logger.info(f"Task completed: {done.text[:50]}")
        return done

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            remaining = [t for t in self._tasks if t.id != task_id]
            if len(remaining) == len(self._tasks):
                return False
            self._commit_tasks(remaining)
            return True

    def reset_daily_tasks(self) -> int:
        """Reactivate completed daily tasks; returns how many came back."""
        with self._lock:
            if not any(t.is_daily and t.completed for t in self._tasks):
                return 0
            reset = 0
            updated = []
            for task in self._tasks:
                if task.is_daily and task.completed:
                    task = replace(task, completed=False)
                    reset += 1
                updated.append(task)
            self._commit_tasks(updated)
        logger.info(f"Daily rollover: {reset} task(s) reactivated")
        return reset

    # -------------------- note operations --------------------
    def add_note(self, text: str) -> Optional[Note]:
        text = (text or "").strip()
        if not text:
            return None
        with self._lock:
            previous_id = self._last_id
            note = Note(id=self._new_id(), text=text, created_at=self.clock())
            try:
                self._commit_notes([note, *self._notes])
            except PersistenceError:
                self._last_id = previous_id
                raise
        logger.info(f"Note added: {text[:50]}")
        return note

    def delete_note(self, note_id: str) -> bool:
        with self._lock:
            remaining = [n for n in self._notes if n.id != note_id]
            if len(remaining) == len(self._notes):
                return False
            self._commit_notes(remaining)
            return True

    # -------------------- rendering --------------------
    def list_formatted(self) -> str:
        """Active tasks numbered from 1 in registry order, then completed ones."""
        with self._lock:
            active = [t for t in self._tasks if not t.completed]
            done = [t for t in self._tasks if t.completed]

        lines = ["📋 *Your tasks:*", ""]
        if active:
            lines.extend(f"{i}. ⬜ {t.text}" for i, t in enumerate(active, start=1))
        else:
            lines.append("No active tasks")

        if done:
            lines.extend(["", "*Done:*"])
            lines.extend(f"✅ {t.text}" for t in done)

        return "\n".join(lines)


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Studio task organizer")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("list", help="List tasks")

    add_parser = subparsers.add_parser("add", help="Add a task")
    add_parser.add_argument("text", help="Task text")
    add_parser.add_argument("--daily", action="store_true", help="Reappears every day")

    done_parser = subparsers.add_parser("done", help="Complete a task by list number")
    done_parser.add_argument("position", type=int, help="1-based number from `list`")

    note_parser = subparsers.add_parser("note", help="Add a note")
    note_parser.add_argument("text", help="Note text")

    args = parser.parse_args(argv)
    registry = TaskRegistry(StateStore())

    if args.command == "list":
        print(registry.list_formatted())
    elif args.command == "add":
        task = registry.add_task(args.text, is_daily=args.daily)
        print(f"Added: {task.text}" if task else "Nothing to add")
    elif args.command == "done":
        try:
            task = registry.complete_task_by_position(args.position)
        except IndexOutOfRange as e:
            print(str(e))
            return 1
        print(f"Completed: {task.text}")
    elif args.command == "note":
        note = registry.add_note(args.text)
        print("Note saved" if note else "Nothing to save")
    else:
        parser.print_help()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
