"""Per-response scoring and session-level score aggregation."""
from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from agents.types import (
    DIMENSIONS,
    EVALUATED_DIMENSIONS,
    BodyLanguage,
    DimensionScore,
    EvaluationResult,
    Question,
    Response,
    Scores,
    VoiceAnalysis,
)

NO_ANSWER_FEEDBACK = "No answer provided"
NO_CAMERA_FEEDBACK = "No camera data available"


class OverallScores(BaseModel):
    correctness: int = 0
    reasoning: int = 0
    communication: int = 0
    structure: int = 0
    confidence: int = 0
    posture_and_presence: int = 0
    overall: int = 0


def _round(value: float) -> int:
    """Round half up, matching the score formulas used for reports."""
    return int(math.floor(value + 0.5))


def _clamp(value: float) -> int:
    return max(0, min(100, _round(value)))


def communication_score(ai_score: int, voice: Optional[VoiceAnalysis]) -> int:
    score = float(ai_score)
    if voice is None:
        return _clamp(score)
    score = _round(score * 0.6 + voice.clarity_score * 0.4)
    wpm = voice.words_per_minute
    if 120 <= wpm <= 160:
        score = min(100, score + 5)
    elif wpm < 100 or wpm > 180:
        score = max(0, score - 10)
    return _clamp(score)


def confidence_score(ai_score: int, voice: Optional[VoiceAnalysis]) -> int:
    if voice is None:
        return _clamp(ai_score)
    hesitation_penalty = min(30, voice.hesitation_count * 3)
    filler_penalty = min(20, voice.filler_total * 2)
    pause_penalty = min(15, voice.long_pauses * 5)
    voice_based = max(0.0, voice.confidence - hesitation_penalty - filler_penalty - pause_penalty)
    return _clamp(ai_score * 0.4 + voice_based * 0.6)


def _communication_feedback(ai_feedback: str, voice: Optional[VoiceAnalysis]) -> str:
    parts = [ai_feedback] if ai_feedback else []
    if voice is not None:
        wpm = voice.words_per_minute
        if wpm > 180:
            parts.append("Consider slowing down your pace for better clarity.")
        elif 0 < wpm < 100:
            parts.append("Try to maintain a slightly faster speaking pace.")
        elif 120 <= wpm <= 160:
            parts.append("Good speaking pace maintained.")
        if voice.filler_total > 5:
            top = ", ".join(item.word for item in voice.filler_words[:3])
            parts.append(f"Reduce filler words like: {top}")
    return " ".join(parts)


def _confidence_feedback(ai_feedback: str, voice: Optional[VoiceAnalysis]) -> str:
    if voice is None:
        return ai_feedback or "Voice analysis not available for detailed feedback."
    if voice.hesitation_count > 5:
        return "Noticeable hesitation detected. Practice can help build confidence."
    if voice.hesitation_count <= 2:
        return "Demonstrated good confidence with minimal hesitation."
    return ai_feedback or "Good overall confidence demonstrated."


def posture_and_presence(body: Optional[BodyLanguage]) -> DimensionScore:
    if body is None:
        return DimensionScore(score=0, feedback=NO_CAMERA_FEEDBACK)
    score = (body.eye_contact_score + body.posture_score) // 2
    if score > 80:
        feedback = "Excellent presence and eye contact."
    elif score > 60:
        feedback = "Good presence, but try to maintain more consistent eye contact."
    else:
        feedback = "Try to maintain better posture and look directly into the camera more often."
    return DimensionScore(score=score, feedback=feedback)


def weighted_overall(scores: Scores, weights: Dict[str, float]) -> int:
    total_weight = sum(weights.get(dim, 0.0) for dim in EVALUATED_DIMENSIONS)
    if total_weight <= 0:
        return 0
    acc = sum(getattr(scores, dim).score * weights.get(dim, 0.0) for dim in EVALUATED_DIMENSIONS)
    return _clamp(acc / total_weight)


def score_response(
    question: Question,
    evaluation: EvaluationResult,
    *,
    voice: Optional[VoiceAnalysis] = None,
    body: Optional[BodyLanguage] = None,
) -> Scores:
    """Fold an evaluation, voice metrics and body language into six dimensions."""

    scores = Scores(
        correctness=DimensionScore(
            score=evaluation.correctness.score, feedback=evaluation.correctness.feedback
        ),
        reasoning=DimensionScore(score=evaluation.reasoning.score, feedback=evaluation.reasoning.feedback),
        communication=DimensionScore(
            score=communication_score(evaluation.communication.score, voice),
            feedback=_communication_feedback(evaluation.communication.feedback, voice),
        ),
        structure=DimensionScore(score=evaluation.structure.score, feedback=evaluation.structure.feedback),
        confidence=DimensionScore(
            score=confidence_score(evaluation.confidence.score, voice),
            feedback=_confidence_feedback(evaluation.confidence.feedback, voice),
        ),
        posture_and_presence=posture_and_presence(body),
    )
    scores.overall = weighted_overall(scores, question.scoring_weights)
    return scores


def zero_scores() -> Scores:
    """Scores for an answer that was never given."""

    zero = DimensionScore(score=0, feedback=NO_ANSWER_FEEDBACK)
    return Scores(**{dim: zero.model_copy() for dim in DIMENSIONS}, overall=0)


def aggregate(responses: Sequence[Response]) -> OverallScores:
    """Recompute session scores from scratch."""

    count = len(responses)
    if count == 0:
        return OverallScores()
    totals: Dict[str, int] = {dim: 0 for dim in DIMENSIONS}
    for response in responses:
        for dim in DIMENSIONS:
            totals[dim] += getattr(response.scores, dim).score
    per_dim = {dim: _round(total / count) for dim, total in totals.items()}
    overall = _round(sum(totals.values()) / (count * len(DIMENSIONS)))
    return OverallScores(**per_dim, overall=overall)


def recent_overalls(responses: Sequence[Response], window: int) -> List[int]:
    """Last ``window`` response overalls, ignoring zeros."""

    recent = [r.scores.overall for r in responses[-window:]] if window > 0 else []
    return [score for score in recent if score > 0]


__all__ = [
    "OverallScores",
    "aggregate",
    "communication_score",
    "confidence_score",
    "posture_and_presence",
    "recent_overalls",
    "score_response",
    "weighted_overall",
    "zero_scores",
]
