"""Difficulty ladder controller."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from agents.types import DIFFICULTY_LADDER, DifficultyLevel
from config.settings import settings

Direction = Literal["increase", "decrease", "hold"]

INCREASE_NOTE = "Excellent performance, increasing challenge"
DECREASE_NOTE = "Providing more accessible questions"


class DifficultyPolicy(BaseModel):
    window: int = Field(default=3, ge=1)
    min_samples: int = Field(default=2, ge=1)
    increase_at: float = 85.0
    decrease_below: float = 50.0

    @classmethod
    def from_settings(cls) -> "DifficultyPolicy":
        return cls(
            window=settings.DIFFICULTY_WINDOW,
            min_samples=settings.DIFFICULTY_MIN_SAMPLES,
            increase_at=settings.DIFFICULTY_INCREASE_AT,
            decrease_below=settings.DIFFICULTY_DECREASE_BELOW,
        )


class DifficultyAdjustment(BaseModel):
    from_level: DifficultyLevel
    to_level: DifficultyLevel
    reason: Direction
    question_index: int
    timestamp: datetime
    note: str = ""


class DifficultyState(BaseModel):
    initial: DifficultyLevel = "medium"
    current: DifficultyLevel = "medium"
    history: List[DifficultyAdjustment] = Field(default_factory=list)


class Decision(BaseModel):
    direction: Direction
    target: DifficultyLevel
    average: Optional[float] = None
    note: str = ""


def step(level: str, direction: Direction) -> str:
    idx = DIFFICULTY_LADDER.index(level)
    if direction == "increase":
        idx = min(idx + 1, len(DIFFICULTY_LADDER) - 1)
    elif direction == "decrease":
        idx = max(idx - 1, 0)
    return DIFFICULTY_LADDER[idx]


def decide(recent_scores: Sequence[int], current: str, policy: DifficultyPolicy) -> Decision:
    """Choose increase, decrease or hold from recent non-zero overalls."""

    if len(recent_scores) < policy.min_samples:
        return Decision(direction="hold", target=current)
    average = sum(recent_scores) / len(recent_scores)
    if average >= policy.increase_at and step(current, "increase") != current:
        return Decision(
            direction="increase", target=step(current, "increase"), average=average, note=INCREASE_NOTE
        )
    if average < policy.decrease_below and step(current, "decrease") != current:
        return Decision(
            direction="decrease", target=step(current, "decrease"), average=average, note=DECREASE_NOTE
        )
    return Decision(direction="hold", target=current, average=average)


def apply(
    state: DifficultyState,
    decision: Decision,
    *,
    question_index: int,
    now: Optional[datetime] = None,
) -> Optional[DifficultyAdjustment]:
    """Record a non-hold decision on the ladder; ``initial`` is left alone."""

    if decision.direction == "hold" or decision.target == state.current:
        return None
    adjustment = DifficultyAdjustment(
        from_level=state.current,
        to_level=decision.target,
        reason=decision.direction,
        question_index=question_index,
        timestamp=now or datetime.now(timezone.utc),
        note=decision.note,
    )
    state.history.append(adjustment)
    state.current = decision.target
    return adjustment


__all__ = [
    "DifficultyAdjustment",
    "DifficultyPolicy",
    "DifficultyState",
    "Decision",
    "apply",
    "decide",
    "step",
]
