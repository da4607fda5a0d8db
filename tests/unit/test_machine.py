from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from agents.difficulty import DifficultyPolicy
from agents.response_evaluator import ScoredAnswer
from agents.types import TIMEOUT_SENTINEL, DimensionScore, Question, Scores
from engine.errors import InvalidAnswer, InvalidTransition, SessionAbandoned, SessionNotFound
from engine.machine import SessionStateMachine, build_answer
from services.sessions import new_session


class StepClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=10)
        return self.now


def _scored(overall: int) -> ScoredAnswer:
    dim = DimensionScore(score=overall)
    return ScoredAnswer(
        scores=Scores(
            correctness=dim,
            reasoning=dim,
            communication=dim,
            structure=dim,
            confidence=dim,
            posture_and_presence=dim,
            overall=overall,
        )
    )


def _machine(total: int = 3, policy: DifficultyPolicy | None = None) -> SessionStateMachine:
    session = new_session("u1", total_questions=total)
    return SessionStateMachine(session, policy=policy or DifficultyPolicy(), clock=StepClock())


def _answer(machine: SessionStateMachine, text: str, overall: int):
    pending = machine.begin_submission(build_answer(text))
    return machine.record_evaluation(pending, _scored(overall))


def test_build_answer_rules():
    assert build_answer("  my answer ").text == "my answer"
    with pytest.raises(InvalidAnswer):
        build_answer("   ")
    timed = build_answer(TIMEOUT_SENTINEL, draft=" half done ")
    assert timed.skipped and timed.timed_out
    assert timed.text == "half done"


def test_new_session_clamps_question_count():
    assert new_session("u1", total_questions=500).total_questions == 20
    assert new_session("u1").total_questions == 10


def test_start_issues_first_question():
    machine = _machine()
    issued = machine.start(Question(text="Q1", difficulty="easy"))
    s = machine.session
    assert s.status == "in-progress"
    assert s.started_at is not None
    assert issued.difficulty == "medium"
    assert s.progress.current == 1 and s.progress.total == 3
    with pytest.raises(InvalidTransition):
        machine.start(Question(text="again"))


def test_join_hides_foreign_sessions():
    machine = _machine()
    with pytest.raises(SessionNotFound):
        machine.join("someone-else")
    result = machine.join("u1")
    assert not result.already_complete
    assert result.status == "scheduled"


def test_record_evaluation_advances_and_completes():
    machine = _machine(total=2)
    machine.start(Question(text="Q1"))
    outcome = _answer(machine, "first", 70)
    s = machine.session
    assert not outcome.completed
    assert s.questions_answered == 1
    assert s.current_question is None
    assert s.progress.current == 2
    assert s.overall_scores.overall == 70

    machine.issue(Question(text="Q2"))
    outcome = _answer(machine, "second", 80)
    assert outcome.completed
    assert s.status == "completed"
    assert s.end_cause == "finished"
    assert s.progress.current == 2
    assert s.completion_percentage == 100
    assert s.analytics is not None
    assert s.overall_scores.overall == 75


def test_difficulty_adjusts_between_questions():
    machine = _machine(total=4, policy=DifficultyPolicy(window=3, min_samples=2))
    machine.start(Question(text="Q1"))
    assert _answer(machine, "a", 90).adjustment is None
    machine.issue(Question(text="Q2"))
    outcome = _answer(machine, "b", 92)
    assert outcome.adjustment is not None
    assert outcome.adjustment.to_level == "hard"
    assert outcome.adjustment.question_index == 1
    issued = machine.issue(Question(text="Q3", difficulty="easy"))
    assert issued.difficulty == "hard"
    assert machine.session.difficulty.initial == "medium"


def test_zero_scores_do_not_drive_difficulty():
    machine = _machine(total=4, policy=DifficultyPolicy(window=3, min_samples=2))
    machine.start(Question(text="Q1"))
    _answer(machine, "a", 0)
    machine.issue(Question(text="Q2"))
    assert _answer(machine, "b", 0).adjustment is None
    assert machine.session.difficulty.current == "medium"


def test_pause_and_resume():
    machine = _machine()
    machine.start(Question(text="Q1"))
    machine.pause()
    assert machine.session.status == "paused"
    with pytest.raises(InvalidTransition):
        machine.begin_submission(build_answer("late"))
    question = machine.resume()
    assert question.text == "Q1"
    assert machine.session.status == "in-progress"
    assert machine.session.paused_at is None


def test_end_without_answers_abandons():
    machine = _machine()
    machine.start(Question(text="Q1"))
    assert machine.end("bored") == "abandoned"
    with pytest.raises(SessionAbandoned):
        machine.ensure_mutable()
    with pytest.raises(SessionAbandoned):
        machine.pause()


def test_end_with_answers_completes_early():
    machine = _machine(total=5)
    machine.start(Question(text="Q1"))
    _answer(machine, "a", 60)
    assert machine.end() == "completed"
    s = machine.session
    assert s.end_cause == "ended"
    assert s.questions_answered == 1
    assert s.completion_percentage == 20
    with pytest.raises(InvalidTransition):
        machine.end()


def test_terminate_records_cause():
    machine = _machine()
    machine.start(Question(text="Q1"))
    machine.terminate("integrity", "cheating")
    s = machine.session
    assert s.status == "abandoned"
    assert s.end_cause == "integrity"
    assert s.end_reason == "cheating"
    assert s.duration == 20
    assert machine.join("u1").already_complete


def test_stale_evaluation_is_rejected():
    machine = _machine()
    machine.start(Question(text="Q1"))
    pending = machine.begin_submission(build_answer("a"))
    machine.record_evaluation(pending, _scored(50))
    with pytest.raises(InvalidTransition):
        machine.record_evaluation(pending, _scored(50))
