"""Integrity monitor fusing gaze/posture status and tab focus into enforcement."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from agents.types import BehaviorStatus
from config.settings import settings
from storage.flags import insert_integrity_flag

Channel = Literal["gaze", "focus"]
Action = Literal["warn", "terminate"]
Severity = Literal["info", "low", "high", "critical"]


class IntegrityPolicy(BaseModel):
    window_seconds: float = Field(default=4.0, gt=0)
    terminate_at: int = Field(default=4, ge=1)
    tab_switch_cap: int = Field(default=3, ge=1)

    @classmethod
    def from_settings(cls) -> "IntegrityPolicy":
        return cls(
            window_seconds=settings.MISBEHAVIOR_WINDOW_SECONDS,
            terminate_at=settings.MISBEHAVIOR_TERMINATE_AT,
            tab_switch_cap=settings.TAB_SWITCH_WARNING_CAP,
        )


class IntegrityVerdict(BaseModel):
    channel: Channel
    action: Action
    severity: Severity
    count: int
    limit: int
    message: str
    status: Optional[BehaviorStatus] = None
    display_count: Optional[int] = None
    flagged: bool = False


def choose_severity(channel: Channel, count: int, policy: IntegrityPolicy) -> Severity:
    """Derive severity from the channel and how far the session has escalated."""

    if channel == "focus":
        return "low" if count >= policy.tab_switch_cap else "info"
    if count >= policy.terminate_at:
        return "critical"
    if count == policy.terminate_at - 1:
        return "high"
    return "low"


def _gaze_message(status: BehaviorStatus, count: int, policy: IntegrityPolicy) -> str:
    if count >= policy.terminate_at:
        return "Cheating detected (multiple warnings ignored). The interview has been terminated."
    action = "maintain eye contact with the camera" if status == "looking-away" else "sit still"
    return (
        f"Warning {count}/{policy.terminate_at - 1}: Please {action}. "
        "The interview will end if warnings are ignored."
    )


def _focus_message(count: int, policy: IntegrityPolicy) -> str:
    if count >= policy.tab_switch_cap:
        return f"Warning: You have switched tabs {count} times. Your interview may be flagged."
    return f"Tab switch detected! ({count}/{policy.tab_switch_cap} allowed)"


class IntegrityMonitor:
    """Per-session integrity state. Counters only ever grow."""

    def __init__(self, policy: Optional[IntegrityPolicy] = None):
        self.policy = policy or IntegrityPolicy.from_settings()
        self.tab_switches = 0
        self.misbehavior_events = 0
        self.bad_since: Optional[float] = None
        self.terminated = False

    def observe(self, status: BehaviorStatus, now: float, *, counting: bool = True) -> Optional[IntegrityVerdict]:
        """Track the continuous bad-behaviour window and fire on expiry.

        A fired window re-arms immediately. When ``counting`` is false the
        window still advances but the event is not counted.
        """

        if self.terminated:
            return None
        if status == "good":
            self.bad_since = None
            return None
        if self.bad_since is None:
            self.bad_since = now
            return None
        if now - self.bad_since < self.policy.window_seconds:
            return None

        self.bad_since = now
        if not counting:
            return None

        self.misbehavior_events += 1
        count = self.misbehavior_events
        action: Action = "warn"
        if count >= self.policy.terminate_at:
            action = "terminate"
            self.terminated = True
        return IntegrityVerdict(
            channel="gaze",
            action=action,
            severity=choose_severity("gaze", count, self.policy),
            count=count,
            limit=self.policy.terminate_at,
            message=_gaze_message(status, count, self.policy),
            status=status,
            flagged=action == "terminate",
        )

    def tab_hidden(self) -> IntegrityVerdict:
        """Count a tab switch; this channel never terminates."""

        self.tab_switches += 1
        count = self.tab_switches
        return IntegrityVerdict(
            channel="focus",
            action="warn",
            severity=choose_severity("focus", count, self.policy),
            count=count,
            limit=self.policy.tab_switch_cap,
            display_count=min(count, self.policy.tab_switch_cap),
            message=_focus_message(count, self.policy),
            flagged=count >= self.policy.tab_switch_cap,
        )


def record_verdict(
    verdict: IntegrityVerdict,
    *,
    session_id: str,
    owner_id: str,
    question_index: int,
) -> int:
    """Persist a verdict for later review."""

    return insert_integrity_flag(
        session_id=session_id,
        owner_id=owner_id,
        channel=verdict.channel,
        action=verdict.action,
        severity=verdict.severity,
        status=verdict.status,
        count=verdict.count,
        question_index=question_index,
        message=verdict.message,
        metadata={"limit": verdict.limit, "flagged": verdict.flagged},
    )


__all__ = [
    "IntegrityMonitor",
    "IntegrityPolicy",
    "IntegrityVerdict",
    "choose_severity",
    "record_verdict",
]
