"""Answer evaluation via the Evaluation Service with the timeout override."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from agents.types import AiAnalysis, Answer, BodyLanguage, EvaluationResult, Question, Scores, VoiceAnalysis
from config.registry import EVAL_KEY, get_model
from eval_gateway import EvaluationServiceError
from services.scoring import score_response, zero_scores


class ScoredAnswer(BaseModel):
    scores: Scores
    ai_analysis: AiAnalysis = Field(default_factory=AiAnalysis)
    follow_up_question: Optional[str] = None


def _override_to_zero(question: Question) -> ScoredAnswer:
    return ScoredAnswer(
        scores=zero_scores(),
        ai_analysis=AiAnalysis(
            weaknesses=["No answer was provided before time expired"],
            suggestions=["Try to provide at least a brief answer, even if uncertain"],
            key_topics_missed=list(question.expected_topics),
        ),
    )


async def evaluate_response(
    *,
    session_id: str,
    question: Question,
    answer: Answer,
    interview_type: str,
    personality: str,
    voice: Optional[VoiceAnalysis] = None,
    body: Optional[BodyLanguage] = None,
    context: Optional[dict[str, Any]] = None,
) -> ScoredAnswer:
    """Score one answer; timeout-sentinel answers never reach the service."""

    if answer.skipped:
        return _override_to_zero(question)

    evaluator = get_model(EVAL_KEY)
    raw = await evaluator(
        session_id=session_id,
        question=question.model_dump(mode="json"),
        answer=answer.text,
        interview_type=interview_type,
        personality=personality,
        voice_analysis=voice.model_dump(mode="json") if voice else None,
        context=context or {},
    )

    try:
        result = raw if isinstance(raw, EvaluationResult) else EvaluationResult.model_validate(raw)
    except ValidationError as exc:
        raise EvaluationServiceError("Evaluation reply did not match the expected schema") from exc

    return ScoredAnswer(
        scores=score_response(question, result, voice=voice, body=body),
        ai_analysis=AiAnalysis(
            strengths=result.strengths,
            weaknesses=result.weaknesses,
            suggestions=result.suggestions,
            key_topics_covered=result.key_topics_covered,
            key_topics_missed=result.key_topics_missed,
        ),
        follow_up_question=result.follow_up_question,
    )


__all__ = ["EVAL_KEY", "ScoredAnswer", "evaluate_response"]
