"""Unit constants and helpers for timepoint.

Unit divisors represent durations in milliseconds.
These are used throughout the API for consistent time representation.
"""

from typing import Literal, TypeAlias

TimeUnit: TypeAlias = Literal[
    "milliseconds",
    "seconds",
    "minutes",
    "hours",
    "days",
    "weeks",
    "microfortnights",
]

# Unit constants (all values in milliseconds)
MILLISECOND = 1
SECOND = 1000
MINUTE = 60000
HOUR = 3600000
DAY = 86400000
WEEK = 604800000
MICROFORTNIGHT = 1209.6

DIVISORS: dict[TimeUnit, float] = {
    "weeks": WEEK,
    "days": DAY,
    "hours": HOUR,
    "minutes": MINUTE,
    "seconds": SECOND,
    "microfortnights": MICROFORTNIGHT,
    "milliseconds": MILLISECOND,
}

# Most significant first
UNIT_ORDER: tuple[TimeUnit, ...] = tuple(
    sorted(DIVISORS, key=lambda unit: DIVISORS[unit], reverse=True)
)

DEFAULT_UNITS: tuple[TimeUnit, ...] = (
    "days",
    "hours",
    "minutes",
    "seconds",
    "milliseconds",
)

# Longest single timer the scheduler will trust before re-anchoring
ANCHOR_INTERVAL_MS = 30 * SECOND


def divisor(unit: str) -> float:
    """Look up the millisecond divisor for a unit name.

    Raises:
        ValueError: If the unit name is not known
    """
    try:
        return DIVISORS[unit]  # type: ignore[index]
    except KeyError:
        valid = ", ".join(UNIT_ORDER)
        raise ValueError(
            f"Invalid time unit: {unit!r}\n" f"Valid units: {valid}\n"
        ) from None
