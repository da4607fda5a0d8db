"""Pydantic schemas for the interview lifecycle API."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from agents.difficulty import DifficultyState
from agents.types import DifficultyLevel, InterviewType, Personality, Question
from engine.state import Progress
from services.analytics import Analytics
from services.scoring import OverallScores


class CreateSessionReq(BaseModel):
    interview_type: InterviewType = "technical"
    difficulty: DifficultyLevel = "medium"
    total_questions: Optional[int] = Field(default=None, ge=1)
    sub_category: Optional[str] = None
    personality: Personality = "professional"
    target_company: Optional[str] = None
    target_role: Optional[str] = None
    voice_mode: bool = False


class EndSessionReq(BaseModel):
    reason: Optional[str] = None


class SessionStatusResp(BaseModel):
    session_id: str
    status: str
    interview_type: str
    difficulty: DifficultyState
    progress: Progress
    questions_answered: int
    total_questions: int
    completion_percentage: int
    current_question: Optional[Question] = None
    overall_scores: OverallScores
    cause: Optional[str] = None
    scheduled_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ReportEntry(BaseModel):
    question_index: int
    question: str
    question_type: str
    difficulty: str
    answer: str
    skipped: bool
    overall: int
    scores: dict
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    follow_up_question: Optional[str] = None


class IntegritySummary(BaseModel):
    tab_switches: int = 0
    misbehavior_events: int = 0
    terminated: bool = False


class SessionReport(BaseModel):
    session_id: str
    status: Literal["completed", "abandoned"]
    cause: Optional[str] = None
    interview_type: str
    difficulty: DifficultyState
    progress: Progress
    overall_scores: OverallScores
    analytics: Optional[Analytics] = None
    responses: List[ReportEntry] = Field(default_factory=list)
    integrity: IntegritySummary = Field(default_factory=IntegritySummary)
    duration: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class HistoryItem(BaseModel):
    session_id: str
    interview_type: str
    status: str
    difficulty: str
    overall: int
    questions_answered: int
    total_questions: int
    scheduled_at: datetime
    completed_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class HistoryResp(BaseModel):
    sessions: List[HistoryItem]
    pagination: Pagination
