from __future__ import annotations

import pytest
from pydantic import ValidationError

from engine.actor import SessionActor
from engine.errors import RateLimited, SessionNotFound
from protocol.dispatch import dispatch
from protocol.messages import (
    EndMessage,
    ErrorMessage,
    SubmitAnswerMessage,
    TelemetryMessage,
    parse_client_message,
)
from services.sessions import new_session
from storage.sessions import save_session


def test_parse_tagged_messages():
    msg = parse_client_message({"type": "submit-answer", "answer": "hello", "duration": 12.5})
    assert isinstance(msg, SubmitAnswerMessage)
    assert msg.duration == 12.5

    msg = parse_client_message({"type": "telemetry", "frame": {"looking_away": True, "at": 1.5}})
    assert isinstance(msg, TelemetryMessage)
    assert msg.frame.looking_away

    assert isinstance(parse_client_message({"type": "end"}), EndMessage)


def test_parse_rejects_unknown_and_incomplete():
    with pytest.raises(ValidationError):
        parse_client_message({"type": "teleport"})
    with pytest.raises(ValidationError):
        parse_client_message({"type": "visibility-change"})
    with pytest.raises(ValidationError):
        parse_client_message({"answer": "no type"})


def test_parse_raw_frames():
    msg = parse_client_message('{"type": "submit-answer", "answer": "hello"}')
    assert isinstance(msg, SubmitAnswerMessage)

    with pytest.raises(ValidationError) as info:
        parse_client_message("{not json")
    assert info.value.errors()[0]["type"] == "json_invalid"


def test_error_message_from_session_error():
    wire = ErrorMessage.from_error(RateLimited("slow", retry_after=9)).to_wire()
    assert wire == {
        "type": "error",
        "message": "slow",
        "kind": "rate_limit",
        "retry_after": 9,
        "details": [],
    }
    assert ErrorMessage.from_error(SessionNotFound()).kind == "fatal"


def _actor() -> SessionActor:
    session = new_session("owner", total_questions=1)
    save_session(session)
    return SessionActor(session)


@pytest.mark.asyncio
async def test_dispatch_join_and_start(fake_models):
    actor = _actor()
    joined = await dispatch(actor, parse_client_message({"type": "join"}), caller_id="owner")
    assert joined.type == "joined"
    assert joined.status == "scheduled"

    reply = await dispatch(actor, parse_client_message({"type": "start"}), caller_id="owner")
    assert reply is None
    assert actor.session.status == "in-progress"

    await dispatch(actor, parse_client_message({"type": "end"}), caller_id="owner")
    again = await dispatch(actor, parse_client_message({"type": "join"}), caller_id="owner")
    assert again.type == "session-already-complete"
    assert again.status == "abandoned"


@pytest.mark.asyncio
async def test_dispatch_hides_session_from_other_users(fake_models):
    actor = _actor()
    with pytest.raises(SessionNotFound):
        await dispatch(actor, parse_client_message({"type": "join"}), caller_id="intruder")
    with pytest.raises(SessionNotFound):
        await dispatch(actor, parse_client_message({"type": "pause"}), caller_id="intruder")
