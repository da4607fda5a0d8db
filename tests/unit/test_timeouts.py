from __future__ import annotations

import asyncio

import pytest

from services.timeouts import TimeoutController


@pytest.mark.asyncio
async def test_arm_fires_with_its_token():
    fired = []
    ctl = TimeoutController(fired.append)
    token = ctl.arm(0.01)
    assert ctl.armed
    await asyncio.sleep(0.05)
    assert fired == [token]
    assert ctl.is_current(token)
    assert not ctl.armed


@pytest.mark.asyncio
async def test_cancel_prevents_expiry():
    fired = []
    ctl = TimeoutController(fired.append)
    token = ctl.arm(0.01)
    ctl.cancel()
    await asyncio.sleep(0.05)
    assert fired == []
    assert not ctl.is_current(token)
    assert ctl.remaining() is None


@pytest.mark.asyncio
async def test_rearm_replaces_previous_countdown():
    fired = []
    ctl = TimeoutController(fired.append)
    first = ctl.arm(0.01)
    second = ctl.arm(0.03)
    assert second != first
    assert not ctl.is_current(first)
    await asyncio.sleep(0.08)
    assert fired == [second]


@pytest.mark.asyncio
async def test_remaining_counts_down_from_full_allowance():
    ctl = TimeoutController(lambda token: None)
    ctl.arm(10.0)
    assert ctl.allowance == 10.0
    assert 9.0 < ctl.remaining() <= 10.0
    ctl.cancel()
