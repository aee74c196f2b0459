#!/usr/bin/env python3
"""
Initialize the SQLite database used by the task timer service.
Run this script standalone or let the store / API initialize on startup.
"""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

logger = logging.getLogger("task_timers")


def init_database(db_path: Path) -> None:
    """Create the key-value store and event tables if they don't exist."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with closing(sqlite3.connect(db_path)) as conn:
        cursor = conn.cursor()

        # WAL so the tick loop's writes don't block readers
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")

        # One row per persisted key (timer snapshot, global lock)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS timer_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Audit trail of timer notices
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_type TEXT NOT NULL,
                task_id TEXT,
                details TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_events_time ON events(created_at DESC)")

        conn.commit()

    logger.info(f"Database initialized at {db_path}")


if __name__ == "__main__":
    from timer_config import load_settings

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    init_database(load_settings().db_path)
