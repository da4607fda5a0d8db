"""Persistence helpers for integrity flags."""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn


class IntegrityFlagPayload(BaseModel):
    session_id: str
    owner_id: str
    channel: str
    action: str
    severity: str
    status: Optional[str] = None
    count: int
    question_index: int
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class IntegrityFlagRow(IntegrityFlagPayload):
    id: int
    timestamp: str


def insert_integrity_flag(**data: Any) -> int:
    """Insert an integrity flag row and return its primary key."""

    payload = IntegrityFlagPayload(**data)
    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO integrity_flags
               (timestamp, session_id, owner_id, channel, action, severity,
                status, count, question_index, message, metadata)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                timestamp,
                payload.session_id,
                payload.owner_id,
                payload.channel,
                payload.action,
                payload.severity,
                payload.status,
                payload.count,
                payload.question_index,
                payload.message,
                json.dumps(payload.metadata),
            ),
        )
        return int(cur.lastrowid)


def list_integrity_flags(session_id: str) -> List[IntegrityFlagRow]:
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM integrity_flags WHERE session_id = ? ORDER BY id",
            (session_id,),
        ).fetchall()
    return [
        IntegrityFlagRow(**{**dict(row), "metadata": json.loads(row["metadata"] or "{}")})
        for row in rows
    ]
