"""WebSocket endpoint carrying the realtime interview protocol."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from engine.errors import SessionError
from engine.hub import engine
from observability.logger import log_event
from protocol.dispatch import dispatch
from protocol.messages import ErrorMessage, parse_client_message

logger = logging.getLogger(__name__)

router = APIRouter()

FATAL_CLOSE_CODE = 4404


def _caller_id(websocket: WebSocket) -> Optional[str]:
    return websocket.headers.get("x-user-id") or websocket.query_params.get("user_id")


@router.websocket("/ws/interviews/{session_id}")
async def interview_socket(websocket: WebSocket, session_id: str):
    await websocket.accept()
    caller_id = _caller_id(websocket) or ""
    send_lock = asyncio.Lock()

    async def send(payload: Dict[str, Any]) -> None:
        async with send_lock:
            await websocket.send_json(payload)

    try:
        actor = engine.actor_for(session_id, caller_id)
    except SessionError as exc:
        await send(ErrorMessage.from_error(exc).to_wire())
        await websocket.close(code=FATAL_CLOSE_CODE)
        return

    unsubscribe = actor.subscribe(send)
    log_event("socket_connected", session_id)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = parse_client_message(data)
            except ValidationError as exc:
                error = ErrorMessage(
                    message="Invalid message",
                    details=exc.errors(include_url=False, include_context=False, include_input=False),
                )
                await send(error.to_wire())
                continue
            try:
                reply = await dispatch(actor, message, caller_id=caller_id)
            except SessionError as exc:
                await send(ErrorMessage.from_error(exc).to_wire())
                continue
            if reply is not None:
                await send(reply.to_wire())
    except WebSocketDisconnect:
        logger.info("socket closed for session %s", session_id)
    finally:
        unsubscribe()
        log_event("socket_disconnected", session_id)


__all__ = ["router"]
