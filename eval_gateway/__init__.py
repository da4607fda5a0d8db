from __future__ import annotations  # Re-export eval_gateway public API

from .gateway import EvaluationRateLimited, EvaluationServiceError, evaluate_answer, generate_question, request

__all__ = [
    "EvaluationRateLimited",
    "EvaluationServiceError",
    "evaluate_answer",
    "generate_question",
    "request",
]
