"""Question sourcing with a local fallback pool."""
from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from agents.types import GeneratedQuestion, Question
from config.registry import QUESTION_KEY, get_model
from config.settings import settings
from eval_gateway import EvaluationServiceError
from observability.logger import log_event

FALLBACK_POOL: Dict[str, List[str]] = {
    "technical": [
        "Explain the concept of time and space complexity. How do you analyze an algorithm's efficiency?",
        "What are the key differences between SQL and NoSQL databases? When would you choose one over the other?",
        "Explain how HTTP works. What happens when you type a URL into a browser?",
        "What is the difference between processes and threads? When would you use each?",
        "Explain the concept of closures. Provide an example.",
    ],
    "behavioral": [
        "Describe a situation where you had to learn a new technology quickly. How did you approach it?",
        "Tell me about a project you are most proud of. What made it special?",
        "How do you handle tight deadlines and competing priorities?",
        "Describe a time you received critical feedback. How did you respond?",
        "Tell me about a time you disagreed with your manager. What happened?",
    ],
    "hr": [
        "Where do you see yourself in five years?",
        "What motivates you in your work?",
        "How do you handle feedback from your manager or peers?",
        "Why are you interested in this role?",
        "What is your greatest professional strength?",
    ],
    "system-design": [
        "How would you design a chat application like WhatsApp?",
        "Design a caching system. What strategies would you use?",
        "How would you design a notification service for a large-scale application?",
        "Design a rate limiter. How would you handle distributed rate limiting?",
        "How would you design an online file storage service like Google Drive?",
    ],
}

VALID_TYPES = ("open-ended", "technical", "coding", "scenario", "follow-up")

_rng = random.Random()
logger = logging.getLogger(__name__)


def fallback_question(interview_type: str, difficulty: str, asked: Sequence[str] = ()) -> Question:
    pool = FALLBACK_POOL.get(interview_type, FALLBACK_POOL["hr"])
    fresh = [text for text in pool if text not in asked] or pool
    return Question(
        text=_rng.choice(fresh),
        type="technical" if interview_type == "technical" else "open-ended",
        difficulty=difficulty,
        time_allowed=settings.DEFAULT_TIME_PER_QUESTION,
    )


def _from_generated(generated: GeneratedQuestion, difficulty: str) -> Question:
    qtype = generated.type if generated.type in VALID_TYPES else "open-ended"
    return Question(
        text=generated.text,
        type=qtype,
        difficulty=difficulty,
        time_allowed=generated.time_allowed or settings.DEFAULT_TIME_PER_QUESTION,
        expected_topics=generated.expected_topics,
        category=generated.category,
    )


async def next_question(
    *,
    session_id: str,
    interview_type: str,
    difficulty: str,
    question_index: int,
    sub_category: Optional[str] = None,
    personality: str = "professional",
    target_role: Optional[str] = None,
    target_company: Optional[str] = None,
    asked: Sequence[str] = (),
    follow_up_hint: Optional[str] = None,
) -> Question:
    """Ask the Evaluation Service for a question at ``difficulty``.

    Any failure, including rate limiting, falls back to the local pool so a
    session never stalls on question sourcing.
    """

    try:
        generator = get_model(QUESTION_KEY)
        raw = await generator(
            session_id=session_id,
            interview_type=interview_type,
            sub_category=sub_category,
            difficulty=difficulty,
            question_index=question_index,
            personality=personality,
            target_role=target_role,
            target_company=target_company,
            previous_questions=list(asked),
            follow_up_hint=follow_up_hint,
        )
        generated = raw if isinstance(raw, GeneratedQuestion) else GeneratedQuestion.model_validate(raw)
    except (KeyError, ValidationError, EvaluationServiceError) as exc:
        log_event(
            "question_fallback",
            session_id,
            question_index=question_index,
            error=type(exc).__name__,
        )
        return fallback_question(interview_type, difficulty, asked)
    except Exception as exc:  # noqa: BLE001
        logger.exception("question generator failed for session %s", session_id)
        log_event(
            "question_fallback",
            session_id,
            question_index=question_index,
            error=type(exc).__name__,
        )
        return fallback_question(interview_type, difficulty, asked)
    return _from_generated(generated, difficulty)


__all__ = ["FALLBACK_POOL", "QUESTION_KEY", "fallback_question", "next_question"]
