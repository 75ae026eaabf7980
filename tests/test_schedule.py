"""Tests for fire_at and delayed_completion."""

import asyncio
import heapq
import itertools
import sys
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest
from structlog.testing import capture_logs

from timepoint import TimePeriod, TimePoint, delayed_completion, fire_at


class VirtualLoop:
    """Event loop stand-in that runs timers on a virtual millisecond clock."""

    def __init__(self, now_ms: float = 0):
        self.now_ms: float = now_ms
        self.skew_ms: float = 0
        self.delays: list[float] = []
        self._timers: list[tuple[float, int, Callable[..., object], tuple[Any, ...]]] = []
        self._seq = itertools.count()

    def clock(self) -> TimePoint:
        return TimePoint(self.now_ms + self.skew_ms)

    def call_later(self, delay: float, callback: Callable[..., object], *args: Any) -> None:
        self.delays.append(delay)
        self.at(self.now_ms + delay * 1000, callback, *args)

    def at(self, due_ms: float, callback: Callable[..., object], *args: Any) -> None:
        heapq.heappush(self._timers, (due_ms, next(self._seq), callback, args))

    def run(self) -> None:
        while self._timers:
            due_ms, _, callback, args = heapq.heappop(self._timers)
            self.now_ms = max(self.now_ms, due_ms)
            callback(*args)


def test_fire_at_reanchors_every_thirty_seconds():
    """Test a 65 second target re-anchors at 30s and 60s, then fires at 65s."""
    loop = VirtualLoop()
    fired: list[float] = []

    fire_at(TimePoint(65000), lambda: fired.append(loop.now_ms), loop=loop, clock=loop.clock)
    loop.run()

    assert loop.delays == [30.0, 30.0, 5.0]
    assert fired == [65000]


def test_fire_at_short_target_schedules_once():
    """Test that targets under the anchor interval use a single timer."""
    loop = VirtualLoop()
    fired: list[float] = []

    fire_at(TimePoint(29999), lambda: fired.append(loop.now_ms), loop=loop, clock=loop.clock)
    loop.run()

    assert loop.delays == [29.999]
    assert fired == [pytest.approx(29999)]


def test_fire_at_exactly_anchor_interval_away():
    """Test that a target exactly 30 seconds out re-anchors first."""
    loop = VirtualLoop()
    fired: list[float] = []

    fire_at(TimePoint(30000), lambda: fired.append(loop.now_ms), loop=loop, clock=loop.clock)
    loop.run()

    assert loop.delays == [30.0, 0.0]
    assert fired == [30000]


def test_fire_at_past_target_fires_immediately():
    """Test that past targets are scheduled with no delay."""
    loop = VirtualLoop(now_ms=10000)
    fired: list[float] = []

    fire_at(TimePoint(0), lambda: fired.append(loop.now_ms), loop=loop, clock=loop.clock)
    loop.run()

    assert loop.delays == [0]
    assert fired == [10000]


def test_fire_at_measures_against_original_target_after_clock_jump():
    """Test that a clock jump mid-wait shortens the remaining segments."""
    loop = VirtualLoop()
    fired: list[float] = []

    def record() -> None:
        fired.append(loop.clock().unix_epoch.as_milliseconds)

    fire_at(TimePoint(65000), record, loop=loop, clock=loop.clock)
    loop.at(10000, setattr, loop, "skew_ms", 20000)
    loop.run()

    assert loop.delays == [30.0, 15.0]
    assert fired == [65000]


def test_fire_at_calls_callback_once():
    """Test that the callback runs exactly once at the end of the chain."""
    loop = VirtualLoop()
    calls: list[None] = []

    fire_at(TimePoint(95000), lambda: calls.append(None), loop=loop, clock=loop.clock)
    assert calls == []
    loop.run()

    assert calls == [None]
    assert len(loop.delays) == 4


def test_fire_at_long_chain_does_not_grow_the_stack():
    """Test that a day-long wait chains through the loop, not recursion."""
    loop = VirtualLoop()
    fired: list[float] = []
    day = TimePeriod.days(1)

    fire_at(TimePoint(day), lambda: fired.append(loop.now_ms), loop=loop, clock=loop.clock)
    loop.run()

    assert len(loop.delays) > sys.getrecursionlimit()
    assert fired == [day.as_milliseconds]


def test_fire_at_accepts_datetime():
    """Test that datetime targets are converted."""
    loop = VirtualLoop()
    fired: list[float] = []
    target = datetime(1970, 1, 1, 0, 0, 12, tzinfo=timezone.utc)

    fire_at(target, lambda: fired.append(loop.now_ms), loop=loop, clock=loop.clock)
    loop.run()

    assert fired == [12000]


def test_fire_at_rejects_relative_targets():
    """Test that fire_at only takes absolute instants."""
    loop = VirtualLoop()
    with pytest.raises(TypeError, match="TimePoint or datetime"):
        fire_at(5000, lambda: None, loop=loop, clock=loop.clock)  # type: ignore[arg-type]


def test_fire_at_logs_each_segment():
    """Test that re-anchoring and the final segment are logged."""
    loop = VirtualLoop()

    with capture_logs() as logs:
        fire_at(TimePoint(65000), lambda: None, loop=loop, clock=loop.clock)
        loop.run()

    assert [entry["event"] for entry in logs] == [
        "fire_at.reanchor",
        "fire_at.reanchor",
        "fire_at.final",
    ]
    assert logs[0]["remaining_ms"] == 65000
    assert logs[-1]["delay_ms"] == 5000
    assert all(entry["log_level"] == "debug" for entry in logs)


@pytest.mark.asyncio
async def test_fire_at_runs_callback_on_running_loop():
    """Test fire_at with the real event loop."""
    fired = asyncio.Event()

    fire_at(TimePoint.now().add({"milliseconds": 100}), fired.set)
    await asyncio.sleep(0.05)
    assert not fired.is_set()

    await asyncio.wait_for(fired.wait(), timeout=1)


@pytest.mark.asyncio
async def test_delayed_completion_waits_for_period():
    """Test waiting for a TimePeriod."""
    start = time.monotonic()
    result = await delayed_completion(TimePeriod.milliseconds(200))
    elapsed = time.monotonic() - start

    assert result is None
    assert 0.19 <= elapsed < 1.0


@pytest.mark.asyncio
async def test_delayed_completion_waits_until_point():
    """Test waiting until a TimePoint."""
    start = time.monotonic()
    await delayed_completion(TimePoint.now().add({"milliseconds": 150}))
    elapsed = time.monotonic() - start

    assert 0.14 <= elapsed < 1.0


@pytest.mark.asyncio
async def test_delayed_completion_accepts_numbers_and_breakdowns():
    """Test milliseconds and unit breakdowns as relative delays."""
    start = time.monotonic()
    await delayed_completion(50)
    await delayed_completion({"milliseconds": 50})
    elapsed = time.monotonic() - start

    assert 0.09 <= elapsed < 1.0


@pytest.mark.asyncio
async def test_delayed_completion_past_point_resolves():
    """Test that past instants resolve on the next loop iteration."""
    await asyncio.wait_for(delayed_completion(TimePoint.epoch_start()), timeout=1)


@pytest.mark.asyncio
async def test_delayed_completion_uses_injected_clock():
    """Test that relative delays are measured from the supplied clock."""
    frozen = TimePoint.now()
    future = delayed_completion(
        TimePeriod.milliseconds(20), clock=lambda: frozen.add({"milliseconds": 10})
    )
    await asyncio.wait_for(future, timeout=1)
    assert future.done()


@pytest.mark.asyncio
async def test_delayed_completion_survives_cancelled_waiter():
    """Test that a cancelled future is not resolved a second time."""
    future = delayed_completion({"milliseconds": 30})
    future.cancel()
    await asyncio.sleep(0.08)
    assert future.cancelled()


@pytest.mark.asyncio
async def test_delayed_completion_rejects_unknown_targets():
    """Test unsupported target types."""
    with pytest.raises(TypeError, match="delayed_completion expects"):
        delayed_completion("soon")  # type: ignore[arg-type]
