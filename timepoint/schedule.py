"""Run callbacks at distant instants on top of asyncio's single-shot timers.

A single event loop timer is only trusted for ``ANCHOR_INTERVAL_MS``. Longer
waits are split into fixed segments; after each one the remaining distance
is measured again against the live clock and the original target, so clock
drift and clamped timers cannot move the firing time. The final segment is
always shorter than the anchor interval and is scheduled against the exact
target.

Example:
    >>> async def main():
    ...     await delayed_completion(TimePeriod.seconds(2))
    ...     fire_at(TimePoint.now().add({"hours": 1}), lambda: print("done"))
"""

import asyncio
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, Protocol, TypeAlias

import structlog

from timepoint.period import Breakdown, TimePeriod
from timepoint.point import TimePoint
from timepoint.util import ANCHOR_INTERVAL_MS, SECOND

logger = structlog.get_logger()

Clock: TypeAlias = Callable[[], TimePoint]


class TimerLoop(Protocol):
    """The part of an asyncio event loop the scheduler relies on."""

    def call_later(
        self, delay: float, callback: Callable[..., object], *args: Any
    ) -> Any: ...


def _target_point(target: Any) -> TimePoint:
    if isinstance(target, TimePoint):
        return target
    if isinstance(target, datetime):
        return TimePoint(target)
    raise TypeError(
        f"fire_at target must be a TimePoint or datetime.\n"
        f"Got {type(target).__name__!r}: {target!r}\n"
        f"Hint: for a relative delay use TimePoint.now().add(period)"
    )


def fire_at(
    target: TimePoint | datetime,
    callback: Callable[[], object],
    *,
    loop: TimerLoop | None = None,
    clock: Clock | None = None,
) -> None:
    """Invoke ``callback`` once ``target`` is reached.

    Args:
        target: Instant to fire at. Targets in the past fire on the next
            loop iteration.
        callback: Zero-argument callable.
        loop: Timer host; defaults to the running asyncio loop.
        clock: Returns the current TimePoint; defaults to ``TimePoint.now``.

    Note:
        There is no cancellation. Once armed, the chain keeps re-anchoring
        until the callback runs or the loop stops.
    """
    point = _target_point(target)
    timer: TimerLoop = loop if loop is not None else asyncio.get_running_loop()
    now: Clock = clock if clock is not None else TimePoint.now

    def arm() -> None:
        remaining = now().difference(point).as_milliseconds
        if remaining < ANCHOR_INTERVAL_MS:
            delay = max(remaining, 0)
            logger.debug("fire_at.final", target=str(point), delay_ms=delay)
            timer.call_later(delay / SECOND, callback)
        else:
            logger.debug(
                "fire_at.reanchor", target=str(point), remaining_ms=remaining
            )
            # Re-submitted through the loop, so the stack does not grow
            timer.call_later(ANCHOR_INTERVAL_MS / SECOND, arm)

    arm()


def delayed_completion(
    target: TimePoint | datetime | TimePeriod | float | Breakdown,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    clock: Clock | None = None,
) -> "asyncio.Future[None]":
    """Return a future that resolves to None once ``target`` is reached.

    Args:
        target: An instant to wait until (TimePoint or datetime), or a delay
            from now (TimePeriod, milliseconds, or a unit breakdown such as
            ``{"seconds": 5}``).
        loop: Event loop owning the future; defaults to the running loop.
        clock: Returns the current TimePoint; defaults to ``TimePoint.now``.

    Raises:
        TypeError: If ``target`` is none of the accepted shapes
    """
    event_loop = loop if loop is not None else asyncio.get_running_loop()
    now: Clock = clock if clock is not None else TimePoint.now

    if isinstance(target, (TimePoint, datetime)):
        point = _target_point(target)
    elif isinstance(target, (TimePeriod, Mapping)) or (
        isinstance(target, (int, float)) and not isinstance(target, bool)
    ):
        point = now().add(TimePeriod(target))
    else:
        raise TypeError(
            f"delayed_completion expects a TimePoint, datetime, TimePeriod, "
            f"milliseconds, or unit breakdown.\n"
            f"Got {type(target).__name__!r}: {target!r}"
        )

    future: asyncio.Future[None] = event_loop.create_future()

    def resolve() -> None:
        # The awaiting task may have been cancelled meanwhile
        if not future.done():
            future.set_result(None)

    fire_at(point, resolve, loop=event_loop, clock=clock)
    return future


__all__ = ["fire_at", "delayed_completion", "TimerLoop"]
