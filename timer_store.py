"""Key-value adapters for the timer engine's TimerStore port.

Values are JSON-encoded dicts. Both adapters go through the same encode and
decode path, so a corrupt value surfaces as a json.JSONDecodeError from
load() in either of them.
"""

import json
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Optional

from timer_db import init_database


class MemoryTimerStore:
    """In-process store. State lives as long as the object does."""

    def __init__(self):
        self._values: dict[str, str] = {}

    def load(self, key: str) -> Optional[dict]:
        raw = self._values.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, value: dict) -> None:
        self._values[key] = json.dumps(value)

    def clear(self, key: str) -> None:
        self._values.pop(key, None)


class SqliteTimerStore:
    """Store backed by the timer_store table. One connection per operation."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        init_database(self.db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    def load(self, key: str) -> Optional[dict]:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT value FROM timer_store WHERE key = ?", (key,)).fetchone()
        return json.loads(row[0]) if row else None

    def save(self, key: str, value: dict) -> None:
        with closing(self._connect()) as conn:
            conn.execute("""
                INSERT INTO timer_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (key, json.dumps(value), datetime.now().isoformat()))
            conn.commit()

    def clear(self, key: str) -> None:
        with closing(self._connect()) as conn:
            conn.execute("DELETE FROM timer_store WHERE key = ?", (key,))
            conn.commit()
