from __future__ import annotations

import pytest

from observability import logger as event_logger
from observability import tracing


def test_format_human_keeps_known_keys():
    line = event_logger._format_human(
        {"kind": "difficulty_adjusted", "session_id": "s1", "from_level": "easy", "to_level": "medium", "noise": 1}
    )
    assert line == "session=s1 kind=difficulty_adjusted from_level=easy to_level=medium"


def test_span_logs_outcome(monkeypatch):
    events = []
    monkeypatch.setattr(tracing, "log_event", lambda kind, sid, **fields: events.append((kind, sid, fields)))

    with tracing.span("s1", "evaluate_answer", question_index=2):
        pass
    with pytest.raises(ValueError):
        with tracing.span("s1", "next_question"):
            raise ValueError("boom")

    assert [e[2]["outcome"] for e in events] == ["ok", "error"]
    assert events[0][2]["name"] == "evaluate_answer"
    assert events[0][2]["question_index"] == 2
    assert events[0][2]["ms"] >= 0
