from __future__ import annotations

from agents.types import AiAnalysis, Answer, DimensionScore, Question, Response, Scores
from services.analytics import compute_analytics, performance_trend, practice_recommendations


def _response(index: int, overall: int, dims: dict | None = None, difficulty: str = "medium") -> Response:
    dims = dims or {}
    scores = Scores(
        **{name: DimensionScore(score=value) for name, value in dims.items()},
        overall=overall,
    )
    return Response(
        question_index=index,
        question=Question(text=f"Question {index}", difficulty=difficulty),
        answer=Answer(text="answer", duration=30.0),
        scores=scores,
        ai_analysis=AiAnalysis(strengths=["Concrete examples"], weaknesses=["Rushed ending"]),
    )


def test_trend_needs_three_responses():
    assert performance_trend([_response(0, 50), _response(1, 90)]) == "not-enough-data"


def test_trend_compares_halves():
    improving = [_response(0, 40), _response(1, 60), _response(2, 80), _response(3, 90)]
    assert performance_trend(improving) == "improving"
    declining = list(reversed(improving))
    assert performance_trend(declining) == "declining"
    flat = [_response(i, 70) for i in range(4)]
    assert performance_trend(flat) == "stable"


def test_recommendations_are_deduplicated():
    recs = practice_recommendations(
        ["Logical reasoning could be stronger", "Reasoning gaps", "Communication clarity needs work"],
        "technical",
    )
    assert [r.topic for r in recs] == ["Logical Reasoning", "Communication Skills"]


def test_technical_recommendation_uses_interview_type():
    recs = practice_recommendations(["Technical accuracy needs improvement"], "system-design")
    assert recs[0].suggested_questions[0] == "Design a simple rate limiter"


def test_compute_analytics_summary():
    strong = {"correctness": 90, "reasoning": 85, "communication": 40, "structure": 70, "confidence": 70}
    responses = [_response(i, 70, strong, difficulty="hard" if i else "medium") for i in range(3)]
    analytics = compute_analytics(responses, "technical")
    assert "Strong technical accuracy" in analytics.strength_areas
    assert "Excellent logical thinking" in analytics.strength_areas
    assert "Concrete examples" in analytics.strength_areas
    assert "Communication clarity needs work" in analytics.weakness_areas
    assert analytics.improvement_plan[0].topic == "Communication Skills"
    assert analytics.total_duration == 90
    assert analytics.average_response_time == 30
    assert [p.difficulty for p in analytics.difficulty_progression] == ["medium", "hard", "hard"]
    assert analytics.question_breakdown[0].question_index == 1
    assert analytics.performance_trend == "stable"


def test_compute_analytics_empty():
    analytics = compute_analytics([], "hr")
    assert analytics.strength_areas == []
    assert analytics.performance_trend == "not-enough-data"
