"""Session document owned by the state machine."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from agents.difficulty import DifficultyState
from agents.types import DifficultyLevel, InterviewType, Personality, Question, Response
from services.analytics import Analytics
from services.scoring import OverallScores

SessionStatus = Literal["scheduled", "in-progress", "paused", "completed", "abandoned"]
EndCause = Literal["finished", "ended", "integrity", "stale"]

TERMINAL_STATUSES = ("completed", "abandoned")
ACTIVE_STATUSES = ("scheduled", "in-progress", "paused")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Progress(BaseModel):
    current: int
    total: int


class Session(BaseModel):
    """Serializable interview session."""

    session_id: str
    owner_id: str
    interview_type: InterviewType = "technical"
    sub_category: Optional[str] = None
    personality: Personality = "professional"
    target_company: Optional[str] = None
    target_role: Optional[str] = None

    difficulty: DifficultyState = Field(default_factory=DifficultyState)
    status: SessionStatus = "scheduled"
    voice_mode: bool = False

    responses: List[Response] = Field(default_factory=list)
    total_questions: int = Field(default=10, ge=1)
    questions_answered: int = 0
    current_question_index: int = 0
    current_question: Optional[Question] = None
    current_question_started_at: Optional[datetime] = None

    overall_scores: OverallScores = Field(default_factory=OverallScores)
    analytics: Optional[Analytics] = None
    end_cause: Optional[EndCause] = None
    end_reason: Optional[str] = None

    scheduled_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def progress(self) -> Progress:
        return Progress(
            current=min(self.current_question_index + 1, self.total_questions),
            total=self.total_questions,
        )

    @property
    def duration(self) -> Optional[int]:
        """Seconds between start and completion."""
        if self.started_at and self.completed_at:
            return int((self.completed_at - self.started_at).total_seconds())
        return None

    @property
    def completion_percentage(self) -> int:
        return round(self.questions_answered / self.total_questions * 100)

    @property
    def difficulty_level(self) -> DifficultyLevel:
        return self.difficulty.current


__all__ = [
    "ACTIVE_STATUSES",
    "EndCause",
    "Progress",
    "Session",
    "SessionStatus",
    "TERMINAL_STATUSES",
    "utcnow",
]
