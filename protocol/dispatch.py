"""Single dispatch point from client messages to actor operations."""
from __future__ import annotations

from typing import Awaitable, Callable, Dict, Optional

from engine.actor import SessionActor
from engine.errors import SessionNotFound
from protocol.messages import (
    AlreadyCompleteMessage,
    ClientMessage,
    EndMessage,
    JoinedMessage,
    ServerMessage,
    SubmitAnswerMessage,
    TelemetryMessage,
    TranscriptionCompleteMessage,
    UpdateDraftMessage,
    VisibilityChangeMessage,
)

Handler = Callable[[SessionActor, ClientMessage], Awaitable[Optional[ServerMessage]]]


async def _join(actor: SessionActor, message: ClientMessage, caller_id: str) -> ServerMessage:
    result = await actor.join(caller_id)
    if result.already_complete:
        return AlreadyCompleteMessage(
            session_id=result.session_id,
            status=result.status,
            cause=result.cause,
            overall_scores=result.overall_scores,
            analytics=result.analytics,
            completed_at=result.completed_at,
        )
    return JoinedMessage(
        session_id=result.session_id,
        status=result.status,
        question=result.question,
        progress=result.progress,
        difficulty=result.difficulty,
    )


async def _start(actor: SessionActor, message: ClientMessage) -> None:
    await actor.start()


async def _submit(actor: SessionActor, message: SubmitAnswerMessage) -> None:
    await actor.submit_answer(
        message.answer,
        telemetry_snapshot=message.telemetry_snapshot,
        audio_url=message.audio_url,
        duration=message.duration,
    )


async def _pause(actor: SessionActor, message: ClientMessage) -> None:
    await actor.pause()


async def _resume(actor: SessionActor, message: ClientMessage) -> None:
    await actor.resume()


async def _end(actor: SessionActor, message: EndMessage) -> None:
    await actor.end(message.reason)


async def _transcription(actor: SessionActor, message: TranscriptionCompleteMessage) -> None:
    await actor.transcription_complete(message.voice_analysis)


async def _draft(actor: SessionActor, message: UpdateDraftMessage) -> None:
    await actor.update_draft(message.text)


async def _telemetry(actor: SessionActor, message: TelemetryMessage) -> None:
    actor.record_telemetry(message.frame)


async def _visibility(actor: SessionActor, message: VisibilityChangeMessage) -> None:
    await actor.visibility_change(message.hidden)


_HANDLERS: Dict[str, Handler] = {
    "start": _start,
    "submit-answer": _submit,
    "pause": _pause,
    "resume": _resume,
    "end": _end,
    "transcription-complete": _transcription,
    "update-draft": _draft,
    "telemetry": _telemetry,
    "visibility-change": _visibility,
}


async def dispatch(actor: SessionActor, message: ClientMessage, *, caller_id: str) -> Optional[ServerMessage]:
    """Apply one client message; returns a direct reply for the caller, if any.

    Raises ``SessionError`` subclasses for rejected requests.
    """

    if message.type == "join":
        return await _join(actor, message, caller_id)
    if actor.session.owner_id != caller_id:
        raise SessionNotFound()
    return await _HANDLERS[message.type](actor, message)


__all__ = ["dispatch"]
