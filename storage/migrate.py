"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS sessions (
  session_id TEXT PRIMARY KEY,
  owner_id TEXT NOT NULL,
  interview_type TEXT NOT NULL,
  status TEXT NOT NULL,
  scheduled_at TEXT NOT NULL,
  last_activity_at TEXT NOT NULL,
  document TEXT NOT NULL
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_sessions_owner
  ON sessions (owner_id, scheduled_at);
""",
    """
CREATE TABLE IF NOT EXISTS integrity_flags (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  session_id TEXT NOT NULL,
  owner_id TEXT NOT NULL,
  channel TEXT NOT NULL,
  action TEXT NOT NULL,
  severity TEXT NOT NULL,
  status TEXT,
  count INTEGER NOT NULL,
  question_index INTEGER NOT NULL,
  message TEXT NOT NULL,
  metadata TEXT
);
""",
]


def migrate(db_path: str = "data/interview.db") -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    from config.settings import settings

    migrate(settings.DB_PATH)
