"""Telemetry accumulation and the per-session sampling loop.

The accumulator owns the counters for the currently open question. The
sampler drains a bounded queue of frames on its own task so a chatty camera
never delays protocol handling; each frame is folded into the accumulator
and then handed to the session's observer callback.
"""
from __future__ import annotations

import asyncio
import logging
import math
from typing import Awaitable, Callable, Iterable, Optional

from agents.types import BehaviorStatus, TelemetryFrame, TelemetrySnapshot
from config.settings import settings

logger = logging.getLogger("interview.telemetry")

FrameObserver = Callable[[TelemetryFrame, BehaviorStatus], Awaitable[None]]


class NoisyDiagnosticsFilter(logging.Filter):
    """Drop vision-pipeline chatter that carries no signal."""

    def __init__(self, patterns: Iterable[str]):
        super().__init__()
        self.patterns = tuple(patterns)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return not any(pattern in message for pattern in self.patterns)


class TelemetryAccumulator:
    def __init__(
        self,
        *,
        fidget_threshold: float | None = None,
        fidget_ratio: float | None = None,
    ):
        self.fidget_threshold = (
            settings.FIDGET_MOVEMENT_THRESHOLD if fidget_threshold is None else fidget_threshold
        )
        self.fidget_ratio = settings.FIDGET_FRAME_RATIO if fidget_ratio is None else fidget_ratio
        self.reset()

    def reset(self) -> None:
        self.frames_assessed = 0
        self.frames_looking_at_camera = 0
        self.fidget_frames = 0
        self.face_missing_frames = 0
        self.face_visible_seconds = 0.0
        self._last_nose: Optional[tuple[float, float]] = None
        self._last_at: Optional[float] = None

    def record(self, frame: TelemetryFrame) -> BehaviorStatus:
        """Fold one frame into the counters and classify it."""

        self.frames_assessed += 1
        previous_at, self._last_at = self._last_at, frame.at

        if not frame.face_visible:
            self.face_missing_frames += 1
            return "looking-away"

        if frame.at is not None and previous_at is not None and frame.at > previous_at:
            self.face_visible_seconds += frame.at - previous_at

        if not frame.looking_away:
            self.frames_looking_at_camera += 1

        if frame.nose_x is not None and frame.nose_y is not None:
            if self._last_nose is not None:
                movement = math.hypot(frame.nose_x - self._last_nose[0], frame.nose_y - self._last_nose[1])
                if movement > self.fidget_threshold:
                    self.fidget_frames += 1
            self._last_nose = (frame.nose_x, frame.nose_y)

        if frame.looking_away:
            return "looking-away"
        if self.fidget_frames > self.frames_assessed * self.fidget_ratio:
            return "fidgeting"
        return "good"

    def snapshot(self) -> TelemetrySnapshot:
        if self.frames_assessed == 0:
            return TelemetrySnapshot()
        eye = round(self.frames_looking_at_camera / self.frames_assessed * 100)
        fidget_pct = round(self.fidget_frames / self.frames_assessed * 100)
        missing_pct = round(self.face_missing_frames / self.frames_assessed * 100)
        posture = max(0, 100 - fidget_pct - missing_pct)
        return TelemetrySnapshot(
            frames_assessed=self.frames_assessed,
            frames_looking_at_camera=self.frames_looking_at_camera,
            fidget_frames=self.fidget_frames,
            face_missing_frames=self.face_missing_frames,
            face_visible_seconds=self.face_visible_seconds,
            eye_contact_score=min(100, max(0, eye)),
            posture_score=min(100, posture),
        )

    def take(self) -> TelemetrySnapshot:
        """Snapshot and reset in one step."""

        snap = self.snapshot()
        self.reset()
        return snap


class TelemetrySampler:
    """Consumes telemetry frames for one session on a dedicated task."""

    def __init__(
        self,
        session_id: str,
        accumulator: TelemetryAccumulator,
        observer: FrameObserver,
        *,
        queue_size: int | None = None,
        noisy_patterns: Iterable[str] | None = None,
    ):
        self.session_id = session_id
        self.accumulator = accumulator
        self.observer = observer
        self.queue: asyncio.Queue[TelemetryFrame] = asyncio.Queue(
            maxsize=queue_size or settings.TELEMETRY_QUEUE_SIZE
        )
        self.dropped = 0
        self.logger = logger.getChild(session_id)
        self.logger.addFilter(
            NoisyDiagnosticsFilter(
                settings.TELEMETRY_NOISY_PATTERNS if noisy_patterns is None else noisy_patterns
            )
        )
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        while not self.queue.empty():
            self.queue.get_nowait()
            self.queue.task_done()
        if task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    def feed(self, frame: TelemetryFrame) -> bool:
        """Queue a frame without blocking; the oldest frame is dropped when full."""

        if self.queue.full():
            self.queue.get_nowait()
            self.queue.task_done()
            self.dropped += 1
        self.queue.put_nowait(frame)
        return True

    async def drain(self) -> None:
        """Wait until every queued frame has been processed."""

        await self.queue.join()

    async def _run(self) -> None:
        while True:
            frame = await self.queue.get()
            try:
                await self.process(frame)
            except Exception:  # noqa: BLE001
                self.logger.exception("telemetry frame processing failed")
            finally:
                self.queue.task_done()

    async def process(self, frame: TelemetryFrame) -> BehaviorStatus:
        for line in frame.diagnostics:
            self.logger.info("client diagnostic: %s", line)
        status = self.accumulator.record(frame)
        await self.observer(frame, status)
        return status


__all__ = [
    "NoisyDiagnosticsFilter",
    "TelemetryAccumulator",
    "TelemetrySampler",
]
