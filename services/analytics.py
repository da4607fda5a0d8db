"""Session analytics computed when an interview finishes."""
from __future__ import annotations

from typing import Dict, List, Literal, Sequence

from pydantic import BaseModel, Field

from agents.types import Response
from services.scoring import OverallScores, aggregate

PerformanceTrend = Literal["improving", "stable", "declining", "not-enough-data"]

STRENGTH_LABELS: Dict[str, str] = {
    "correctness": "Strong technical accuracy",
    "reasoning": "Excellent logical thinking",
    "communication": "Clear and articulate communication",
    "structure": "Well-organized responses",
    "confidence": "Confident delivery",
}

WEAKNESS_LABELS: Dict[str, str] = {
    "correctness": "Technical accuracy needs improvement",
    "reasoning": "Logical reasoning could be stronger",
    "communication": "Communication clarity needs work",
    "structure": "Response organization needs improvement",
    "confidence": "Confidence building needed",
}

TECHNICAL_PRACTICE: Dict[str, List[str]] = {
    "technical": [
        "Explain the difference between an array and a linked list",
        "What is the time complexity of common sorting algorithms?",
        "How would you optimize a slow database query?",
    ],
    "system-design": [
        "Design a simple rate limiter",
        "How would you design a cache system?",
        "Explain how you would scale a web application",
    ],
    "behavioral": [
        "Tell me about a challenging project you completed",
        "Describe a time when you had to learn something quickly",
        "How do you handle disagreements with teammates?",
    ],
    "hr": [
        "Why are you interested in this role?",
        "Where do you see yourself in 5 years?",
        "What are your salary expectations?",
    ],
}

STRENGTH_AT = 80
WEAKNESS_BELOW = 60
MAX_TAGS = 5


class Recommendation(BaseModel):
    topic: str
    priority: Literal["high", "medium", "low"]
    suggested_questions: List[str] = Field(default_factory=list)


class DifficultyPoint(BaseModel):
    question_index: int
    difficulty: str
    score: int


class QuestionBreakdown(BaseModel):
    question_index: int
    question: str
    difficulty: str
    score: int
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    time_spent: float = 0.0


class Analytics(BaseModel):
    total_duration: int = 0
    average_response_time: int = 0
    strength_areas: List[str] = Field(default_factory=list)
    weakness_areas: List[str] = Field(default_factory=list)
    improvement_plan: List[Recommendation] = Field(default_factory=list)
    performance_trend: PerformanceTrend = "not-enough-data"
    difficulty_progression: List[DifficultyPoint] = Field(default_factory=list)
    question_breakdown: List[QuestionBreakdown] = Field(default_factory=list)


def _unique(items: Sequence[str]) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def strengths_and_weaknesses(
    responses: Sequence[Response], averages: OverallScores
) -> tuple[List[str], List[str]]:
    strengths: List[str] = []
    weaknesses: List[str] = []
    for category in STRENGTH_LABELS:
        score = getattr(averages, category)
        if score >= STRENGTH_AT:
            strengths.append(STRENGTH_LABELS[category])
        elif score < WEAKNESS_BELOW:
            weaknesses.append(WEAKNESS_LABELS[category])

    ai_strengths = _unique([s for r in responses for s in r.ai_analysis.strengths])
    ai_weaknesses = _unique([w for r in responses for w in r.ai_analysis.weaknesses])
    strengths.extend(ai_strengths[:3])
    weaknesses.extend(ai_weaknesses[:3])
    return _unique(strengths)[:MAX_TAGS], _unique(weaknesses)[:MAX_TAGS]


def performance_trend(responses: Sequence[Response]) -> PerformanceTrend:
    """Compare the mean overall of the first half against the second half."""

    if len(responses) < 3:
        return "not-enough-data"
    scores = [r.scores.overall for r in responses]
    mid = len(scores) // 2
    first, second = scores[:mid], scores[mid:]
    difference = sum(second) / len(second) - sum(first) / len(first)
    if difference > 10:
        return "improving"
    if difference < -10:
        return "declining"
    return "stable"


def practice_recommendations(weaknesses: Sequence[str], interview_type: str) -> List[Recommendation]:
    recs: List[Recommendation] = []
    for weakness in weaknesses:
        lower = weakness.lower()
        if "reasoning" in lower or "logic" in lower:
            recs.append(
                Recommendation(
                    topic="Logical Reasoning",
                    priority="high",
                    suggested_questions=[
                        "Walk me through your approach to solving a complex problem",
                        "How do you break down a large task into manageable pieces?",
                        "Explain the trade-offs between different approaches to a problem",
                    ],
                )
            )
        if "communication" in lower or "clarity" in lower:
            recs.append(
                Recommendation(
                    topic="Communication Skills",
                    priority="high",
                    suggested_questions=[
                        "Explain a technical concept to a non-technical person",
                        "Walk me through a project you worked on",
                        "Describe how you would present a proposal to stakeholders",
                    ],
                )
            )
        if "confidence" in lower:
            recs.append(
                Recommendation(
                    topic="Building Confidence",
                    priority="medium",
                    suggested_questions=[
                        "Practice answering questions without hesitation",
                        "Record yourself and review for filler words",
                        "Practice with a timer to build comfort with time pressure",
                    ],
                )
            )
        if "technical" in lower or "accuracy" in lower:
            recs.append(
                Recommendation(
                    topic="Technical Fundamentals",
                    priority="high",
                    suggested_questions=TECHNICAL_PRACTICE.get(interview_type, TECHNICAL_PRACTICE["technical"]),
                )
            )
        if "structure" in lower or "organiz" in lower:
            recs.append(
                Recommendation(
                    topic="Response Structure",
                    priority="medium",
                    suggested_questions=[
                        "Use the STAR method for behavioral questions",
                        "Practice outlining your answer before speaking",
                        "Structure technical answers with problem, approach, solution",
                    ],
                )
            )

    unique: List[Recommendation] = []
    for rec in recs:
        if all(existing.topic != rec.topic for existing in unique):
            unique.append(rec)
    return unique[:MAX_TAGS]


def _time_spent(response: Response) -> float:
    if response.started_at and response.completed_at:
        return max(0.0, (response.completed_at - response.started_at).total_seconds())
    return response.answer.duration


def compute_analytics(responses: Sequence[Response], interview_type: str) -> Analytics:
    if not responses:
        return Analytics()

    averages = aggregate(responses)
    strengths, weaknesses = strengths_and_weaknesses(responses, averages)
    total = sum(_time_spent(r) for r in responses)
    return Analytics(
        total_duration=round(total),
        average_response_time=round(total / len(responses)),
        strength_areas=strengths,
        weakness_areas=weaknesses,
        improvement_plan=practice_recommendations(weaknesses, interview_type),
        performance_trend=performance_trend(responses),
        difficulty_progression=[
            DifficultyPoint(question_index=idx, difficulty=r.question.difficulty, score=r.scores.overall)
            for idx, r in enumerate(responses)
        ],
        question_breakdown=[
            QuestionBreakdown(
                question_index=idx + 1,
                question=r.question.text[:100],
                difficulty=r.question.difficulty,
                score=r.scores.overall,
                strengths=r.ai_analysis.strengths[:2],
                weaknesses=r.ai_analysis.weaknesses[:2],
                time_spent=r.answer.duration,
            )
            for idx, r in enumerate(responses)
        ],
    )


__all__ = [
    "Analytics",
    "Recommendation",
    "compute_analytics",
    "performance_trend",
    "practice_recommendations",
    "strengths_and_weaknesses",
]
