"""Per-question countdown for interview sessions."""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

ExpiryCallback = Callable[[int], None]


class TimeoutController:
    """One cancellable countdown per open question.

    Every ``arm`` hands out a new token; the expiry callback receives the
    token it was armed with so a late fire can be matched against
    ``is_current`` and ignored once the session has moved on.
    """

    def __init__(self, on_expire: ExpiryCallback):
        self._on_expire = on_expire
        self._handle: Optional[asyncio.TimerHandle] = None
        self._token = 0
        self.allowance: Optional[float] = None
        self.deadline: Optional[float] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def token(self) -> int:
        return self._token

    def arm(self, seconds: float) -> int:
        """Start a full countdown of ``seconds``, replacing any running one."""

        self.cancel()
        loop = asyncio.get_running_loop()
        self._token += 1
        token = self._token
        self.allowance = seconds
        self.deadline = loop.time() + seconds
        self._handle = loop.call_later(seconds, self._fire, token)
        return token

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.deadline = None

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - asyncio.get_running_loop().time())

    def is_current(self, token: int) -> bool:
        return token == self._token and self.deadline is not None

    def _fire(self, token: int) -> None:
        if token != self._token:
            return
        self._handle = None
        self._on_expire(token)


__all__ = ["TimeoutController"]
