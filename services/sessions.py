"""Helpers for creating and loading interview sessions."""
from __future__ import annotations

import uuid
from typing import Optional

from agents.difficulty import DifficultyState
from config.settings import settings
from engine.state import Session
from storage.sessions import load_session as _load_stored


def new_session(
    owner_id: str,
    *,
    interview_type: str = "technical",
    difficulty: str = "medium",
    total_questions: Optional[int] = None,
    sub_category: Optional[str] = None,
    personality: str = "professional",
    target_company: Optional[str] = None,
    target_role: Optional[str] = None,
    voice_mode: bool = False,
) -> Session:
    """Create a scheduled Session with a generated identifier."""

    total = total_questions or settings.DEFAULT_TOTAL_QUESTIONS
    total = max(1, min(total, settings.MAX_QUESTIONS_PER_SESSION))
    return Session(
        session_id=str(uuid.uuid4()),
        owner_id=owner_id,
        interview_type=interview_type,
        sub_category=sub_category,
        personality=personality,
        target_company=target_company,
        target_role=target_role,
        difficulty=DifficultyState(initial=difficulty, current=difficulty),
        voice_mode=voice_mode,
        total_questions=total,
    )


def load_session(session_id: str) -> Optional[Session]:
    """Load the stored document for ``session_id`` if present."""

    return _load_stored(session_id)
