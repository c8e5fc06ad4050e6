#!/usr/bin/env python3
"""State management for the studio sync service.

Usage:
    python -m integrations.state records            # list records and sizes
    python -m integrations.state show <record>      # dump a record
    python -m integrations.state cursor             # show sync cursor/watermark

Each record is one JSON file under the state directory. Records are read on
startup and rewritten in full on every mutation.
"""

import json
import logging
import os
import sys
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

from integrations.config import STATE_DIR

logger = logging.getLogger(__name__)

RECORDS = ("settings", "tasks", "notes", "trends", "sync_state")


class PersistenceError(RuntimeError):
    """Raised when a record cannot be written (or read back) from disk."""


class StateStore:
    """Durable key-value store of JSON records."""

    def __init__(self, state_dir: Optional[Path] = None):
        self.state_dir = Path(state_dir) if state_dir is not None else STATE_DIR

    def get_record_file(self, name: str) -> Path:
        return self.state_dir / f"{name}.json"

    def load(self, name: str, default: Any = None) -> Any:
        """Load a record; missing or corrupt files yield `default`."""
        path = self.get_record_file(name)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(f"Corrupt record {name} at {path}, using defaults")
            return default
        except OSError as e:
            raise PersistenceError(f"Failed to read {name}: {e}") from e

    def save(self, name: str, data: Any) -> None:
        """Write a record atomically (temp file + rename)."""
        path = self.get_record_file(name)
        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Record {name} is not serializable: {e}") from e

        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.state_dir, prefix=f".{name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write {name}: {e}") from e

    def list_records(self) -> dict:
        result = {}
        for name in RECORDS:
            data = self.load(name)
            if data is None:
                continue
            result[name] = len(data) if isinstance(data, (list, dict)) else 1
        return {"records": result}


class SyncState:
    """Sync cursor, reminder watermark and daily rollover marker.

    Every setter persists before touching memory, so a failed write leaves
    the previous value in place.
    """

    def __init__(self, store: StateStore):
        self.store = store
        self._lock = threading.RLock()
        raw = store.load("sync_state", {}) or {}
        self._data = {
            "lastUpdateId": int(raw.get("lastUpdateId") or 0),
            "lastReminderDate": raw.get("lastReminderDate"),
            "lastDailyReset": raw.get("lastDailyReset"),
        }

    @property
    def cursor(self) -> int:
        return self._data["lastUpdateId"]

    @property
    def watermark(self) -> Optional[str]:
        return self._data["lastReminderDate"]

    @property
    def last_daily_reset(self) -> Optional[str]:
        return self._data["lastDailyReset"]

    def snapshot(self) -> dict:
        with self._lock:
            return dict(self._data)

    def _commit(self, **changes) -> None:
        with self._lock:
            updated = {**self._data, **changes}
            self.store.save("sync_state", updated)
            self._data = updated

    def advance_cursor(self, offset: int) -> int:
        """Move the cursor forward to `offset`; never moves it backward."""
        with self._lock:
            if offset > self.cursor:
                self._commit(lastUpdateId=offset)
            return self.cursor

    def set_watermark(self, day: str) -> None:
        self._commit(lastReminderDate=day)

    def set_daily_reset(self, day: str) -> None:
        self._commit(lastDailyReset=day)


def main(argv: Optional[list] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    store = StateStore()

    if not argv:
        print(json.dumps({"usage": "state.py <records|show|cursor>"}))
        return 1

    cmd = argv[0]

    if cmd == "records":
        print(json.dumps(store.list_records(), indent=2))
    elif cmd == "show" and len(argv) > 1:
        if argv[1] not in RECORDS:
            print(json.dumps({"error": f"unknown record: {argv[1]}"}))
            return 1
        print(json.dumps(store.load(argv[1]), indent=2, ensure_ascii=False))
    elif cmd == "cursor":
        print(json.dumps(SyncState(store).snapshot(), indent=2))
    else:
        print(json.dumps({"error": "invalid command"}))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
