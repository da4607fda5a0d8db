"""Per-session asyncio worker.

A ``SessionActor`` serialises every mutation of one Session behind an
``asyncio.Lock``. Answer evaluation and next-question sourcing run on a
background task outside the lock so pause, end and integrity termination are
still honoured while an answer is in flight; a generation counter, bumped on
every terminal transition, makes any late result a no-op.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

from agents.difficulty import DifficultyPolicy
from agents.integrity_monitor import IntegrityMonitor, IntegrityPolicy, IntegrityVerdict, record_verdict
from agents.question_generator import fallback_question, next_question
from agents.response_evaluator import ScoredAnswer, evaluate_response
from agents.types import TIMEOUT_SENTINEL, BehaviorStatus, Question, TelemetryFrame, TelemetrySnapshot, VoiceAnalysis
from engine.errors import EvaluationFailed, InvalidTransition, RateLimited, SessionBusy, SessionError
from engine.machine import JoinResult, PendingSubmission, SessionStateMachine, build_answer
from engine.state import Session
from eval_gateway import EvaluationRateLimited
from observability.logger import log_event
from observability.tracing import span
from protocol.messages import (
    AnswerEvaluatedMessage,
    AnswerProcessingMessage,
    DifficultyAdjustedMessage,
    ErrorMessage,
    IntegrityWarningMessage,
    PausedMessage,
    QuestionMessage,
    ResumedMessage,
    ServerMessage,
    SessionCompleteMessage,
    TabSwitchWarningMessage,
    TranscriptionSavedMessage,
)
from services.timeouts import TimeoutController
from storage.sessions import save_session
from telemetry.sampler import TelemetryAccumulator, TelemetrySampler

logger = logging.getLogger(__name__)

Listener = Callable[[Dict], Awaitable[None]]


class SessionActor:
    def __init__(
        self,
        session: Session,
        *,
        difficulty_policy: Optional[DifficultyPolicy] = None,
        integrity_policy: Optional[IntegrityPolicy] = None,
        persist: Callable[[Session], None] = save_session,
    ):
        self.session = session
        self.machine = SessionStateMachine(session, policy=difficulty_policy)
        self.lock = asyncio.Lock()
        self.timeouts = TimeoutController(self._on_timeout)
        self.telemetry = TelemetryAccumulator()
        self.integrity = IntegrityMonitor(integrity_policy)
        self.sampler: Optional[TelemetrySampler] = None
        self.draft = ""
        self.pending_voice: Optional[VoiceAnalysis] = None

        self._persist = persist
        self._listeners: List[Listener] = []
        self._generation = 0
        self._in_flight: Optional[PendingSubmission] = None
        self._eval_task: Optional[asyncio.Task] = None
        self._staged_question: Optional[Question] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    @property
    def idle(self) -> bool:
        """No listeners attached and no background work pending."""

        return not self._listeners and not self._tasks

    # listeners

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def _publish(self, message: ServerMessage) -> None:
        payload = message.to_wire()
        for listener in list(self._listeners):
            try:
                await listener(payload)
            except Exception as exc:  # noqa: BLE001
                logger.warning("dropping listener for session %s: %s", self.session_id, exc)
                if listener in self._listeners:
                    self._listeners.remove(listener)

    # helpers

    def _save(self) -> None:
        self._persist(self.session)

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _ensure_sampler(self) -> TelemetrySampler:
        if self.sampler is None:
            self.sampler = TelemetrySampler(self.session_id, self.telemetry, self._observe_frame)
        self.sampler.start()
        return self.sampler

    def _arm(self, question: Question) -> None:
        self.timeouts.arm(question.time_allowed)

    def _restore_countdown(self) -> None:
        """Re-arm an open question that has no countdown, e.g. after a reload."""

        s = self.session
        if s.status != "in-progress" or s.current_question is None:
            return
        if self.busy or self.timeouts.armed:
            return
        self._arm(s.current_question)
        log_event("countdown_restored", self.session_id, question_index=s.current_question_index)

    def _question_message(self, question: Question) -> QuestionMessage:
        return QuestionMessage(
            question=question,
            progress=self.session.progress,
            difficulty=self.session.difficulty.current,
        )

    def _complete_message(self) -> SessionCompleteMessage:
        s = self.session
        return SessionCompleteMessage(
            session_id=s.session_id,
            status=s.status,
            cause=s.end_cause,
            overall_scores=s.overall_scores,
            analytics=s.analytics,
            completed_at=s.completed_at,
        )

    async def _source_question(self, index: int, follow_up: Optional[str] = None) -> Question:
        s = self.session
        with span(s.session_id, "next_question", question_index=index):
            return await next_question(
                session_id=s.session_id,
                interview_type=s.interview_type,
                difficulty=s.difficulty.current,
                question_index=index,
                sub_category=s.sub_category,
                personality=s.personality,
                target_role=s.target_role,
                target_company=s.target_company,
                asked=[r.question.text for r in s.responses],
                follow_up_hint=follow_up,
            )

    async def _issue(self, question: Question) -> Question:
        issued = self.machine.issue(question)
        self._save()
        self._arm(issued)
        log_event(
            "question_issued",
            self.session_id,
            question_index=self.session.current_question_index,
            difficulty=issued.difficulty,
        )
        await self._publish(self._question_message(issued))
        return issued

    async def _close(self) -> None:
        """Shared teardown after any terminal transition; lock held."""

        self._generation += 1
        self.timeouts.cancel()
        self._in_flight = None
        self._staged_question = None
        task, self._eval_task = self._eval_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        self._save()
        log_event(
            "session_closed",
            self.session_id,
            status=self.session.status,
            cause=self.session.end_cause,
            questions_answered=self.session.questions_answered,
        )
        await self._publish(self._complete_message())
        if self.sampler is not None:
            await self.sampler.stop()

    # operations

    async def join(self, caller_id: str) -> JoinResult:
        async with self.lock:
            result = self.machine.join(caller_id)
            self._restore_countdown()
            return result

    async def start(self) -> Question:
        async with self.lock:
            if self.session.status != "scheduled":
                self.machine.ensure_mutable()
                raise InvalidTransition("Session already started")
            question = await self._source_question(0)
            issued = self.machine.start(question)
            self._save()
            log_event("session_started", self.session_id, status=self.session.status)
            self._arm(issued)
            self._ensure_sampler()
            await self._publish(self._question_message(issued))
            return issued

    async def submit_answer(
        self,
        text: str,
        *,
        telemetry_snapshot: Optional[TelemetrySnapshot] = None,
        audio_url: Optional[str] = None,
        duration: float = 0.0,
    ) -> PendingSubmission:
        """Accept an answer and schedule its evaluation.

        Returns once the submission is acknowledged; the scored Response is
        pushed to listeners when evaluation finishes.
        """

        async with self.lock:
            return await self._accept(
                text,
                telemetry_snapshot=telemetry_snapshot,
                audio_url=audio_url,
                duration=duration,
            )

    async def _accept(
        self,
        text: str,
        *,
        telemetry_snapshot: Optional[TelemetrySnapshot] = None,
        audio_url: Optional[str] = None,
        duration: float = 0.0,
        timed_out: bool = False,
    ) -> PendingSubmission:
        self.machine.ensure_mutable()
        if self.busy:
            raise SessionBusy()
        if self.session.status != "in-progress":
            raise InvalidTransition(f"Cannot submit while session is {self.session.status}")
        answer = build_answer(text, draft=self.draft, audio_url=audio_url, duration=duration, timed_out=timed_out)

        measured = self.telemetry.take()
        snapshot = telemetry_snapshot or measured
        body = snapshot.to_body_language() if snapshot.frames_assessed > 0 else None
        pending = self.machine.begin_submission(answer, voice=self.pending_voice, body=body)

        self.timeouts.cancel()
        self._in_flight = pending
        self.draft = ""
        self.pending_voice = None
        self._save()
        log_event(
            "answer_submitted",
            self.session_id,
            question_index=pending.question_index,
            skipped=answer.skipped,
            timed_out=answer.timed_out,
        )
        await self._publish(AnswerProcessingMessage(status="evaluating"))
        self._eval_task = self._spawn(self._evaluate(pending, self._generation))
        return pending

    async def _evaluate(self, pending: PendingSubmission, generation: int) -> None:
        s = self.session
        try:
            with span(s.session_id, "evaluate_answer", question_index=pending.question_index):
                scored = await evaluate_response(
                    session_id=s.session_id,
                    question=pending.question,
                    answer=pending.answer,
                    interview_type=s.interview_type,
                    personality=s.personality,
                    voice=pending.voice_analysis,
                    body=pending.body_language,
                    context={
                        "question_index": pending.question_index,
                        "total_questions": s.total_questions,
                        "difficulty": s.difficulty.current,
                    },
                )
        except asyncio.CancelledError:
            raise
        except EvaluationRateLimited as exc:
            await self._evaluation_failed(
                pending,
                generation,
                RateLimited("Evaluation service is busy, please retry shortly", retry_after=exc.retry_after),
            )
            return
        except Exception:  # noqa: BLE001
            logger.exception("answer evaluation failed for session %s", s.session_id)
            await self._evaluation_failed(
                pending, generation, EvaluationFailed("Failed to evaluate answer, please submit again")
            )
            return

        follow_up = await self._apply_evaluation(pending, scored, generation)
        if follow_up is None:
            return

        try:
            question = await self._source_question(s.questions_answered, follow_up=follow_up or None)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            logger.exception("question sourcing failed for session %s", s.session_id)
            asked = [r.question.text for r in s.responses]
            question = fallback_question(s.interview_type, s.difficulty.current, asked)
        async with self.lock:
            if generation != self._generation or s.is_terminal:
                log_event("question_discarded", s.session_id, question_index=s.questions_answered)
                return
            self._in_flight = None
            self._eval_task = None
            if s.status == "paused":
                self._staged_question = question
                return
            await self._issue(question)

    async def _apply_evaluation(
        self, pending: PendingSubmission, scored: ScoredAnswer, generation: int
    ) -> Optional[str]:
        """Record the scored Response.

        Returns ``None`` when nothing else should happen, otherwise the
        follow-up hint (possibly empty) for the next question.
        """

        async with self.lock:
            s = self.session
            if generation != self._generation or s.is_terminal:
                log_event("evaluation_discarded", s.session_id, question_index=pending.question_index)
                return None
            outcome = self.machine.record_evaluation(pending, scored)
            self._save()
            log_event(
                "answer_evaluated",
                s.session_id,
                question_index=pending.question_index,
                overall=outcome.response.scores.overall,
            )
            await self._publish(
                AnswerEvaluatedMessage(
                    response=outcome.response,
                    progress=s.progress,
                    overall_scores=s.overall_scores,
                )
            )
            if outcome.adjustment is not None:
                adj = outcome.adjustment
                log_event(
                    "difficulty_adjusted",
                    s.session_id,
                    from_level=adj.from_level,
                    to_level=adj.to_level,
                    reason=adj.reason,
                )
                await self._publish(
                    DifficultyAdjustedMessage(
                        from_level=adj.from_level,
                        to_level=adj.to_level,
                        reason=adj.reason,
                        note=adj.note,
                    )
                )
            if outcome.completed:
                await self._close()
                return None
            await self._publish(AnswerProcessingMessage(status="generating-question"))
            return outcome.response.follow_up_question or ""

    async def _evaluation_failed(self, pending: PendingSubmission, generation: int, error: SessionError) -> None:
        async with self.lock:
            s = self.session
            if generation != self._generation or s.is_terminal:
                return
            self._in_flight = None
            self._eval_task = None
            if not pending.answer.skipped:
                self.draft = pending.answer.text
            self.pending_voice = pending.voice_analysis
            log_event(
                "evaluation_failed",
                s.session_id,
                question_index=pending.question_index,
                error_kind=error.kind,
            )
            if s.status == "in-progress" and s.current_question is not None:
                self._arm(s.current_question)
            await self._publish(ErrorMessage.from_error(error))

    async def pause(self) -> None:
        async with self.lock:
            self.machine.pause()
            self.timeouts.cancel()
            self._save()
            log_event("session_paused", self.session_id, status=self.session.status)
            await self._publish(PausedMessage())

    async def resume(self) -> Optional[Question]:
        async with self.lock:
            question = self.machine.resume()
            self._save()
            log_event("session_resumed", self.session_id, status=self.session.status)
            if self._staged_question is not None:
                staged, self._staged_question = self._staged_question, None
                question = await self._issue(staged)
            elif question is not None and not self.busy:
                self._arm(question)
            await self._publish(ResumedMessage(question=question, progress=self.session.progress))
            return question

    async def end(self, reason: Optional[str] = None) -> str:
        async with self.lock:
            status = self.machine.end(reason)
            log_event("session_ended", self.session_id, status=status, reason=reason)
            await self._close()
            return status

    async def terminate_for_integrity(self, reason: str) -> None:
        async with self.lock:
            await self._terminate_locked(reason)

    async def _terminate_locked(self, reason: str) -> None:
        self.machine.terminate("integrity", reason)
        log_event("integrity_terminated", self.session_id, cause="integrity")
        await self._close()

    async def reclaim_stale(self) -> bool:
        async with self.lock:
            if self.session.is_terminal:
                return False
            self.machine.terminate("stale")
            log_event("session_reclaimed", self.session_id, cause="stale")
            await self._close()
            return True

    async def transcription_complete(self, voice: VoiceAnalysis) -> None:
        async with self.lock:
            self.machine.ensure_mutable()
            self.pending_voice = voice
            log_event(
                "transcription_saved",
                self.session_id,
                words_per_minute=voice.words_per_minute,
                question_index=self.session.current_question_index,
            )
            await self._publish(TranscriptionSavedMessage(voice_analysis=voice))

    async def update_draft(self, text: str) -> None:
        async with self.lock:
            self.machine.ensure_mutable()
            self.draft = text

    # telemetry and integrity

    def record_telemetry(self, frame: TelemetryFrame) -> bool:
        """Queue a frame for the sampler; ignored before start and after the end."""

        if self.session.is_terminal or self.session.status == "scheduled":
            return False
        return self._ensure_sampler().feed(frame)

    async def _observe_frame(self, frame: TelemetryFrame, status: BehaviorStatus) -> None:
        async with self.lock:
            s = self.session
            if s.is_terminal:
                return
            counting = s.status == "in-progress" and not self.busy
            now = frame.at if frame.at is not None else asyncio.get_running_loop().time()
            verdict = self.integrity.observe(status, now, counting=counting)
            if verdict is None:
                return
            self._record(verdict)
            await self._publish(
                IntegrityWarningMessage(
                    status=verdict.status,
                    count=verdict.count,
                    limit=verdict.limit,
                    action=verdict.action,
                    message=verdict.message,
                )
            )
            if verdict.action == "terminate":
                await self._terminate_locked(verdict.message)

    async def visibility_change(self, hidden: bool) -> None:
        if not hidden:
            return
        async with self.lock:
            s = self.session
            if s.is_terminal or s.status == "scheduled":
                return
            verdict = self.integrity.tab_hidden()
            self._record(verdict)
            await self._publish(
                TabSwitchWarningMessage(
                    count=verdict.count,
                    display_count=verdict.display_count or verdict.count,
                    limit=verdict.limit,
                    flagged=verdict.flagged,
                    message=verdict.message,
                )
            )

    def _record(self, verdict: IntegrityVerdict) -> None:
        record_verdict(
            verdict,
            session_id=self.session_id,
            owner_id=self.session.owner_id,
            question_index=self.session.current_question_index,
        )
        log_event(
            f"integrity_{verdict.channel}",
            self.session_id,
            count=verdict.count,
            severity=verdict.severity,
            action=verdict.action,
        )

    # timeout

    def _on_timeout(self, token: int) -> None:
        self._spawn(self._handle_timeout(token))

    async def _handle_timeout(self, token: int) -> None:
        async with self.lock:
            s = self.session
            if (
                not self.timeouts.is_current(token)
                or s.status != "in-progress"
                or self.busy
                or s.current_question is None
            ):
                log_event("timeout_ignored", self.session_id, status=s.status)
                return
            log_event("timeout_fired", self.session_id, question_index=s.current_question_index)
            text = self.draft.strip()
            if not text and self.pending_voice is not None:
                text = self.pending_voice.transcription.strip()
            try:
                await self._accept(text or TIMEOUT_SENTINEL, timed_out=True)
            except SessionError as exc:
                log_event("timeout_submit_rejected", self.session_id, error=exc.message)

    async def wait_idle(self) -> None:
        """Wait for background evaluation and timeout work to settle."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self.sampler is not None and self.sampler.running:
            await self.sampler.drain()

    async def shutdown(self) -> None:
        """Stop timers and background work; the stored session is left as is."""

        self.timeouts.cancel()
        for task in list(self._tasks):
            task.cancel()
        if self.sampler is not None:
            await self.sampler.stop()


__all__ = ["Listener", "SessionActor"]
