import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import registry
from config.registry import EVAL_KEY, QUESTION_KEY, bind_model
from config.settings import settings
from engine.hub import engine
from storage.migrate import migrate


def evaluation_payload(score: int = 80, **extra: Any) -> Dict[str, Any]:
    dims = {
        name: {"score": score, "feedback": f"{name} feedback"}
        for name in ("correctness", "reasoning", "communication", "structure", "confidence")
    }
    payload: Dict[str, Any] = {
        **dims,
        "strengths": ["Clear example"],
        "weaknesses": ["Missed edge cases"],
        "suggestions": ["Mention complexity"],
        "key_topics_covered": ["caching"],
        "key_topics_missed": [],
    }
    payload.update(extra)
    return payload


class FakeEvaluator:
    """Async stand-in for the Evaluation Service answer route."""

    def __init__(self) -> None:
        self.score = 80
        self.scores: List[int] = []
        self.follow_up: Optional[str] = None
        self.error: Optional[Exception] = None
        self.gate = None
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(kwargs)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        score = self.scores.pop(0) if self.scores else self.score
        return evaluation_payload(score, follow_up_question=self.follow_up)


class FakeQuestionWriter:
    """Async stand-in for the Evaluation Service question route."""

    def __init__(self) -> None:
        self.time_allowed = 120.0
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(kwargs)
        index = kwargs["question_index"]
        return {
            "text": f"Question {index + 1}: describe a cache you built",
            "type": "technical",
            "expected_topics": ["eviction", "consistency"],
            "time_allowed": self.time_allowed,
        }


class FakeModels:
    def __init__(self) -> None:
        self.evaluator = FakeEvaluator()
        self.questions = FakeQuestionWriter()


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


@pytest.fixture(autouse=True)
def clean_registry(monkeypatch):
    monkeypatch.setattr(registry, "_REGISTRY", {})


@pytest.fixture(autouse=True)
def clean_engine():
    engine.reset()
    yield
    engine.reset()


@pytest.fixture
def fake_models(clean_registry) -> FakeModels:
    models = FakeModels()
    bind_model(EVAL_KEY, models.evaluator)
    bind_model(QUESTION_KEY, models.questions)
    return models
