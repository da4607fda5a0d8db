from __future__ import annotations

import sqlite3
from datetime import timedelta

from config.settings import settings
from engine.state import utcnow
from services.sessions import load_session, new_session
from storage.flags import insert_integrity_flag, list_integrity_flags
from storage.sessions import list_sessions, list_stale_session_ids, save_session


def test_migrate_creates_tables():
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert {"sessions", "integrity_flags"} <= names


def test_save_and_load_roundtrip():
    session = new_session("u1", interview_type="behavioral", difficulty="easy", total_questions=4)
    save_session(session)
    session.status = "in-progress"
    save_session(session)

    loaded = load_session(session.session_id)
    assert loaded is not None
    assert loaded.status == "in-progress"
    assert loaded.difficulty.initial == "easy"
    assert loaded.total_questions == 4
    assert load_session("missing") is None


def test_list_sessions_paginates_newest_first():
    base = utcnow()
    ids = []
    for offset in range(3):
        session = new_session("u1", interview_type="technical" if offset else "hr")
        session.scheduled_at = base + timedelta(minutes=offset)
        save_session(session)
        ids.append(session.session_id)
    save_session(new_session("someone-else"))

    page, total = list_sessions("u1", page=1, limit=2)
    assert total == 3
    assert [s.session_id for s in page] == [ids[2], ids[1]]

    page, _ = list_sessions("u1", page=2, limit=2)
    assert [s.session_id for s in page] == [ids[0]]

    hr, total = list_sessions("u1", interview_type="hr")
    assert total == 1 and hr[0].session_id == ids[0]

    done, total = list_sessions("u1", status="completed")
    assert total == 0 and done == []


def test_stale_ids_skip_terminal_sessions():
    old = utcnow() - timedelta(hours=2)
    idle = new_session("u1")
    idle.last_activity_at = old
    save_session(idle)
    finished = new_session("u1")
    finished.last_activity_at = old
    finished.status = "completed"
    save_session(finished)
    save_session(new_session("u1"))

    assert list_stale_session_ids(utcnow() - timedelta(hours=1)) == [idle.session_id]


def test_integrity_flags_roundtrip():
    insert_integrity_flag(
        session_id="s1",
        owner_id="u1",
        channel="gaze",
        action="warn",
        severity="low",
        status="looking-away",
        count=1,
        question_index=0,
        message="Warning 1/3",
        metadata={"limit": 4},
    )
    rows = list_integrity_flags("s1")
    assert len(rows) == 1
    assert rows[0].status == "looking-away"
    assert rows[0].metadata == {"limit": 4}
    assert list_integrity_flags("other") == []
