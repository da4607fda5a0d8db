"""Persistence helpers for session documents."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from engine.state import ACTIVE_STATUSES, Session

from .sqlite import get_conn


def save_session(session: Session) -> None:
    """Insert or replace the stored document for ``session``."""

    document = session.model_dump_json()
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO sessions
               (session_id, owner_id, interview_type, status, scheduled_at, last_activity_at, document)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(session_id) DO UPDATE SET
                 status = excluded.status,
                 last_activity_at = excluded.last_activity_at,
                 document = excluded.document""",
            (
                session.session_id,
                session.owner_id,
                session.interview_type,
                session.status,
                session.scheduled_at.isoformat(),
                session.last_activity_at.isoformat(),
                document,
            ),
        )


def load_session(session_id: str) -> Optional[Session]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT document FROM sessions WHERE session_id = ?",
            (session_id,),
        ).fetchone()
    if row is None:
        return None
    return Session.model_validate_json(row["document"])


def list_sessions(
    owner_id: str,
    *,
    page: int = 1,
    limit: int = 10,
    interview_type: Optional[str] = None,
    status: Optional[str] = None,
) -> Tuple[List[Session], int]:
    """Return one page of an owner's sessions, newest first, and the total count."""

    clauses = ["owner_id = ?"]
    params: list = [owner_id]
    if interview_type:
        clauses.append("interview_type = ?")
        params.append(interview_type)
    if status:
        clauses.append("status = ?")
        params.append(status)
    where = " AND ".join(clauses)
    offset = (max(page, 1) - 1) * limit

    with get_conn() as conn:
        total = conn.execute(f"SELECT COUNT(*) FROM sessions WHERE {where}", params).fetchone()[0]
        rows = conn.execute(
            f"SELECT document FROM sessions WHERE {where} "
            "ORDER BY scheduled_at DESC, rowid DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        ).fetchall()
    return [Session.model_validate_json(row["document"]) for row in rows], int(total)


def list_stale_session_ids(cutoff: datetime) -> List[str]:
    """Ids of non-terminal sessions with no activity since ``cutoff``."""

    placeholders = ", ".join("?" for _ in ACTIVE_STATUSES)
    with get_conn() as conn:
        rows = conn.execute(
            f"SELECT session_id FROM sessions WHERE status IN ({placeholders}) AND last_activity_at < ?",
            [*ACTIVE_STATUSES, cutoff.isoformat()],
        ).fetchall()
    return [row["session_id"] for row in rows]
