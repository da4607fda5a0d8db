"""Synchronous session state machine.

Every transition validates the current status, mutates the owned
``Session`` in place and stamps ``last_activity_at``. Nothing here awaits or
performs I/O; the actor wraps these calls with locking, timers and
persistence.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel

from agents import difficulty as ladder
from agents.difficulty import DifficultyAdjustment, DifficultyPolicy
from agents.response_evaluator import ScoredAnswer
from agents.types import TIMEOUT_SENTINEL, Answer, BodyLanguage, Question, Response, VoiceAnalysis
from engine.errors import InvalidAnswer, InvalidTransition, SessionAbandoned, SessionNotFound
from engine.state import EndCause, Progress, Session, utcnow
from services.analytics import Analytics, compute_analytics
from services.scoring import OverallScores, aggregate, recent_overalls


class JoinResult(BaseModel):
    session_id: str
    status: str
    already_complete: bool
    cause: Optional[str] = None
    question: Optional[Question] = None
    progress: Progress
    difficulty: str
    overall_scores: OverallScores
    analytics: Optional[Analytics] = None
    completed_at: Optional[datetime] = None


class PendingSubmission(BaseModel):
    question_index: int
    question: Question
    answer: Answer
    voice_analysis: Optional[VoiceAnalysis] = None
    body_language: Optional[BodyLanguage] = None
    started_at: Optional[datetime] = None


class EvaluationOutcome(BaseModel):
    response: Response
    adjustment: Optional[DifficultyAdjustment] = None
    completed: bool = False


def build_answer(
    text: str,
    *,
    draft: str = "",
    audio_url: Optional[str] = None,
    duration: float = 0.0,
    timed_out: bool = False,
) -> Answer:
    """Normalise submitted text; the timeout sentinel keeps any draft for review."""

    if text.strip() == TIMEOUT_SENTINEL:
        return Answer(text=draft.strip(), audio_url=audio_url, duration=duration, skipped=True, timed_out=True)
    if not text.strip():
        raise InvalidAnswer("Answer cannot be empty")
    return Answer(text=text.strip(), audio_url=audio_url, duration=duration, timed_out=timed_out)


class SessionStateMachine:
    def __init__(
        self,
        session: Session,
        *,
        policy: Optional[DifficultyPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.policy = policy or DifficultyPolicy.from_settings()
        self.clock = clock

    def _touch(self) -> datetime:
        now = self.clock()
        self.session.last_activity_at = now
        return now

    def ensure_mutable(self) -> None:
        if self.session.status == "abandoned":
            raise SessionAbandoned()
        if self.session.status == "completed":
            raise InvalidTransition("Session already completed")

    def _require(self, *statuses: str) -> None:
        self.ensure_mutable()
        if self.session.status not in statuses:
            raise InvalidTransition(
                f"Operation not allowed while session is {self.session.status}"
            )

    def join(self, caller_id: str) -> JoinResult:
        s = self.session
        if s.owner_id != caller_id:
            raise SessionNotFound()
        return JoinResult(
            session_id=s.session_id,
            status=s.status,
            already_complete=s.is_terminal,
            cause=s.end_cause,
            question=None if s.is_terminal else s.current_question,
            progress=s.progress,
            difficulty=s.difficulty.current,
            overall_scores=s.overall_scores,
            analytics=s.analytics,
            completed_at=s.completed_at,
        )

    def start(self, question: Question) -> Question:
        self._require("scheduled")
        now = self._touch()
        self.session.status = "in-progress"
        self.session.started_at = now
        return self.issue(question)

    def issue(self, question: Question) -> Question:
        """Open ``question`` at the current ladder level."""

        self._require("in-progress")
        s = self.session
        if s.questions_answered >= s.total_questions:
            raise InvalidTransition("All questions have been answered")
        issued = question.model_copy(update={"difficulty": s.difficulty.current})
        s.current_question = issued
        s.current_question_index = s.questions_answered
        s.current_question_started_at = self._touch()
        return issued

    def begin_submission(
        self,
        answer: Answer,
        *,
        voice: Optional[VoiceAnalysis] = None,
        body: Optional[BodyLanguage] = None,
    ) -> PendingSubmission:
        self._require("in-progress")
        s = self.session
        if s.current_question is None:
            raise InvalidTransition("No question is open")
        self._touch()
        return PendingSubmission(
            question_index=s.current_question_index,
            question=s.current_question,
            answer=answer,
            voice_analysis=voice,
            body_language=body,
            started_at=s.current_question_started_at,
        )

    def record_evaluation(self, pending: PendingSubmission, scored: ScoredAnswer) -> EvaluationOutcome:
        """Append the scored Response and advance or complete the session."""

        s = self.session
        self.ensure_mutable()
        if s.current_question is None or pending.question_index != s.current_question_index:
            raise InvalidTransition("Evaluation does not match the open question")

        now = self._touch()
        response = Response(
            question_index=pending.question_index,
            question=pending.question,
            answer=pending.answer,
            voice_analysis=pending.voice_analysis,
            body_language=pending.body_language,
            scores=scored.scores,
            ai_analysis=scored.ai_analysis,
            follow_up_question=scored.follow_up_question,
            started_at=pending.started_at,
            completed_at=now,
        )
        s.responses.append(response)
        s.questions_answered = len(s.responses)
        s.current_question = None
        s.current_question_started_at = None
        s.current_question_index = min(s.questions_answered, s.total_questions)
        s.overall_scores = aggregate(s.responses)

        decision = ladder.decide(
            recent_overalls(s.responses, self.policy.window), s.difficulty.current, self.policy
        )
        adjustment = ladder.apply(s.difficulty, decision, question_index=pending.question_index, now=now)

        completed = s.questions_answered >= s.total_questions
        if completed:
            self._finish("completed", "finished", now)
        return EvaluationOutcome(response=response, adjustment=adjustment, completed=completed)

    def pause(self) -> None:
        self._require("in-progress")
        self.session.status = "paused"
        self.session.paused_at = self._touch()

    def resume(self) -> Optional[Question]:
        """Back to in-progress; returns the open question, if any."""

        self._require("paused")
        self._touch()
        self.session.status = "in-progress"
        self.session.paused_at = None
        if self.session.current_question is not None:
            self.session.current_question_started_at = self.session.last_activity_at
        return self.session.current_question

    def end(self, reason: Optional[str] = None) -> str:
        self.ensure_mutable()
        status = "completed" if self.session.responses else "abandoned"
        self.session.end_reason = reason
        self._finish(status, "ended", self._touch())
        return status

    def terminate(self, cause: EndCause = "integrity", reason: Optional[str] = None) -> None:
        self.ensure_mutable()
        self.session.end_reason = reason
        self._finish("abandoned", cause, self._touch())

    def _finish(self, status: str, cause: EndCause, now: datetime) -> None:
        s = self.session
        s.status = status
        s.end_cause = cause
        s.completed_at = now
        s.paused_at = None
        s.current_question = None
        s.current_question_started_at = None
        s.overall_scores = aggregate(s.responses)
        s.analytics = compute_analytics(s.responses, s.interview_type)


__all__ = [
    "EvaluationOutcome",
    "JoinResult",
    "PendingSubmission",
    "SessionStateMachine",
    "build_answer",
]
