from __future__ import annotations

import pytest

from agents.response_evaluator import evaluate_response
from agents.types import Answer, BodyLanguage, Question
from config.registry import EVAL_KEY, bind_model
from conftest import evaluation_payload
from eval_gateway import EvaluationServiceError


QUESTION = Question(text="Explain consistent hashing", expected_topics=["ring", "rebalancing"])


@pytest.mark.asyncio
async def test_skipped_answer_never_reaches_the_service():
    calls = []

    async def evaluator(**kwargs):
        calls.append(kwargs)
        return evaluation_payload(90)

    bind_model(EVAL_KEY, evaluator)
    scored = await evaluate_response(
        session_id="s1",
        question=QUESTION,
        answer=Answer(text="", skipped=True, timed_out=True),
        interview_type="technical",
        personality="professional",
    )
    assert calls == []
    assert scored.scores.overall == 0
    assert scored.ai_analysis.key_topics_missed == ["ring", "rebalancing"]


@pytest.mark.asyncio
async def test_evaluation_is_folded_into_scores():
    async def evaluator(**kwargs):
        assert kwargs["answer"] == "Hash nodes onto a ring"
        assert kwargs["question"]["text"] == QUESTION.text
        return evaluation_payload(70, follow_up_question="How do virtual nodes help?")

    bind_model(EVAL_KEY, evaluator)
    scored = await evaluate_response(
        session_id="s1",
        question=QUESTION,
        answer=Answer(text="Hash nodes onto a ring"),
        interview_type="technical",
        personality="strict",
        body=BodyLanguage(eye_contact_score=80, posture_score=60),
    )
    assert scored.scores.overall == 70
    assert scored.scores.posture_and_presence.score == 70
    assert scored.follow_up_question == "How do virtual nodes help?"
    assert scored.ai_analysis.strengths == ["Clear example"]


@pytest.mark.asyncio
async def test_malformed_reply_raises_service_error():
    async def evaluator(**kwargs):
        return {"correctness": {"score": 101}}

    bind_model(EVAL_KEY, evaluator)
    with pytest.raises(EvaluationServiceError):
        await evaluate_response(
            session_id="s1",
            question=QUESTION,
            answer=Answer(text="something"),
            interview_type="technical",
            personality="friendly",
        )
