"""Registry of live session actors."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from config.settings import settings
from engine.actor import SessionActor
from engine.errors import SessionNotFound
from engine.state import Session, utcnow
from services.sessions import load_session, new_session
from storage.sessions import list_stale_session_ids, save_session

logger = logging.getLogger(__name__)


class SessionEngine:
    """Owns one ``SessionActor`` per live session; sessions share nothing else."""

    def __init__(self) -> None:
        self._actors: Dict[str, SessionActor] = {}

    def __len__(self) -> int:
        return len(self._actors)

    def create_session(self, owner_id: str, **params: Any) -> Session:
        session = new_session(owner_id, **params)
        save_session(session)
        self._actors[session.session_id] = SessionActor(session)
        return session

    def actor(self, session_id: str) -> SessionActor:
        """Return the live actor, loading the stored session on first use."""

        actor = self._actors.get(session_id)
        if actor is not None:
            return actor
        session = load_session(session_id)
        if session is None:
            raise SessionNotFound()
        actor = SessionActor(session)
        self._actors[session_id] = actor
        return actor

    def actor_for(self, session_id: str, caller_id: str) -> SessionActor:
        """Like ``actor`` but hides sessions owned by someone else."""

        actor = self.actor(session_id)
        if actor.session.owner_id != caller_id:
            raise SessionNotFound()
        return actor

    def evict_terminal(self) -> int:
        """Drop actors of finished sessions that nobody is listening to."""

        stale = [
            sid
            for sid, actor in self._actors.items()
            if actor.session.is_terminal and actor.idle
        ]
        for sid in stale:
            del self._actors[sid]
        return len(stale)

    async def reclaim_stale(self, now: Optional[datetime] = None) -> List[str]:
        """Abandon sessions idle for longer than ``STALE_SESSION_MINUTES``."""

        cutoff = (now or utcnow()) - timedelta(minutes=settings.STALE_SESSION_MINUTES)
        reclaimed: List[str] = []
        for session_id in list_stale_session_ids(cutoff):
            try:
                actor = self.actor(session_id)
            except SessionNotFound:
                continue
            if actor.session.last_activity_at >= cutoff:
                continue
            if await actor.reclaim_stale():
                reclaimed.append(session_id)
        return reclaimed

    async def run_reaper(self, interval: Optional[float] = None) -> None:
        period = interval or settings.REAPER_INTERVAL_SECONDS
        while True:
            await asyncio.sleep(period)
            try:
                reclaimed = await self.reclaim_stale()
                evicted = self.evict_terminal()
            except Exception:  # noqa: BLE001
                logger.exception("stale session sweep failed")
                continue
            if reclaimed or evicted:
                logger.info("stale sweep reclaimed=%d evicted=%d", len(reclaimed), evicted)

    async def shutdown(self) -> None:
        for actor in list(self._actors.values()):
            await actor.shutdown()
        self._actors.clear()

    def reset(self) -> None:
        self._actors.clear()


engine = SessionEngine()


__all__ = ["SessionEngine", "engine"]
