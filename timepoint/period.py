"""Signed millisecond durations with unit views and decomposition.

A TimePeriod holds a single number of milliseconds. Every unit view
(seconds, hours, weeks, ...) is derived from it through the fixed divisors
in ``timepoint.util``, and every operation returns a new TimePeriod.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from typing_extensions import override

from timepoint.util import DEFAULT_UNITS, DIVISORS, divisor

Breakdown: TypeAlias = Mapping[str, float]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _floor(value: float) -> float:
    """math.floor that lets inf and nan through instead of raising."""
    if math.isfinite(value):
        return math.floor(value)
    return value


def _divide(numerator: float, denominator: float) -> float:
    """True division with IEEE-754 results for a zero denominator."""
    try:
        return numerator / denominator
    except ZeroDivisionError:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _sum_breakdown(breakdown: Breakdown) -> float:
    total: float = 0
    for unit, amount in breakdown.items():
        if not _is_number(amount):
            raise TypeError(
                f"Breakdown amounts must be numbers.\n"
                f"Got {type(amount).__name__!r} for {unit!r}: {amount!r}"
            )
        total += divisor(unit) * amount
    return total


@dataclass(frozen=True, init=False, repr=False, order=True, slots=True)
class TimePeriod:
    """An immutable span of time measured in milliseconds.

    Accepts a number of milliseconds, a mapping of unit name to amount
    (``{"hours": 1, "minutes": 30}``), or another TimePeriod.
    """

    _milliseconds: float

    def __init__(self, value: "float | Breakdown | TimePeriod" = 0):
        if isinstance(value, TimePeriod):
            milliseconds = value._milliseconds
        elif _is_number(value):
            milliseconds = value
        elif isinstance(value, Mapping):
            milliseconds = _sum_breakdown(value)
        else:
            raise TypeError(
                f"TimePeriod expects milliseconds, a unit breakdown, or a TimePeriod.\n"
                f"Got {type(value).__name__!r}: {value!r}\n"
                f"Examples:\n"
                f"  TimePeriod(1500)\n"
                f'  TimePeriod({{"hours": 1, "minutes": 30}})'
            )
        object.__setattr__(self, "_milliseconds", milliseconds)

    @property
    def as_milliseconds(self) -> float:
        return self._milliseconds

    @property
    def as_seconds(self) -> float:
        return self._milliseconds / DIVISORS["seconds"]

    @property
    def as_minutes(self) -> float:
        return self._milliseconds / DIVISORS["minutes"]

    @property
    def as_hours(self) -> float:
        return self._milliseconds / DIVISORS["hours"]

    @property
    def as_days(self) -> float:
        return self._milliseconds / DIVISORS["days"]

    @property
    def as_weeks(self) -> float:
        return self._milliseconds / DIVISORS["weeks"]

    @property
    def as_microfortnights(self) -> float:
        return self._milliseconds / DIVISORS["microfortnights"]

    def add(self, *periods: "TimePeriod | Breakdown") -> "TimePeriod":
        """Return the sum of this period and every argument."""
        return TimePeriod(
            sum((TimePeriod(p)._milliseconds for p in periods), self._milliseconds)
        )

    def subtract(self, period: "TimePeriod | Breakdown") -> "TimePeriod":
        """Return this period minus ``period`` (may be negative)."""
        return TimePeriod(self._milliseconds - TimePeriod(period)._milliseconds)

    def multiply(self, factor: float) -> "TimePeriod":
        return TimePeriod(self._milliseconds * factor)

    def divide(self, by: float) -> "TimePeriod":
        """Scale down by ``by``; dividing by zero gives an infinite or NaN period."""
        return TimePeriod(_divide(self._milliseconds, by))

    def abs(self) -> "TimePeriod":
        if self._milliseconds < 0:
            return TimePeriod(-self._milliseconds)
        return self

    def equals(self, other: "TimePeriod") -> bool:
        """Exact millisecond equality, no tolerance."""
        return self._milliseconds == other._milliseconds

    def breakdown(
        self,
        units: Iterable[str] | str | None = None,
        *,
        float_last: bool | None = None,
        include_zero: bool | None = None,
    ) -> dict[str, float]:
        """Describe this period as amounts of the given units.

        Units are always filled most significant first, whatever order they
        are passed in, and the returned dict follows that order. Every unit
        but the last receives a floored amount; the last receives either the
        exact remainder (``float_last``) or its floor, dropping what is left.

        Args:
            units: Unit names, e.g. ``["hours", "minutes"]``. Defaults to
                days, hours, minutes, seconds and milliseconds.
            float_last: Give the last unit the fractional remainder.
                Defaults to True without ``units``, False with them.
            include_zero: Keep units whose amount is zero.
                Defaults to False without ``units``, True with them.

        Note:
            Negative periods floor toward negative infinity, so
            ``TimePeriod(-1000).breakdown(["minutes", "seconds"])`` is
            ``{"minutes": -1, "seconds": 59}``.

        Example:
            >>> TimePeriod({"hours": 26}).breakdown(["days", "hours", "minutes"])
            {'days': 1, 'hours': 2, 'minutes': 0}
        """
        if units is None:
            units = DEFAULT_UNITS
            float_last = True if float_last is None else float_last
            include_zero = False if include_zero is None else include_zero
        else:
            if isinstance(units, str):
                units = [units]
            float_last = False if float_last is None else float_last
            include_zero = True if include_zero is None else include_zero

        divisors = {unit: divisor(unit) for unit in units}
        ordered = sorted(divisors, key=divisors.__getitem__, reverse=True)

        result: dict[str, float] = {}
        remaining = self._milliseconds
        last = len(ordered) - 1
        for index, unit in enumerate(ordered):
            div = divisors[unit]
            if float_last and index == last:
                amount = remaining / div
            else:
                amount = _floor(remaining / div)
                remaining -= amount * div
            if include_zero or amount != 0:
                result[unit] = amount
        return result

    def to_json(self) -> dict[str, float]:
        return {"milliseconds": self._milliseconds}

    @classmethod
    def from_json(cls, data: Breakdown) -> "TimePeriod":
        return cls(data)

    @classmethod
    def weeks(cls, n: float) -> "TimePeriod":
        return cls({"weeks": n})

    @classmethod
    def days(cls, n: float) -> "TimePeriod":
        return cls({"days": n})

    @classmethod
    def hours(cls, n: float) -> "TimePeriod":
        return cls({"hours": n})

    @classmethod
    def minutes(cls, n: float) -> "TimePeriod":
        return cls({"minutes": n})

    @classmethod
    def seconds(cls, n: float) -> "TimePeriod":
        return cls({"seconds": n})

    @classmethod
    def milliseconds(cls, n: float) -> "TimePeriod":
        return cls(n)

    @classmethod
    def microfortnights(cls, n: float) -> "TimePeriod":
        return cls({"microfortnights": n})

    def __add__(self, other: Any) -> "TimePeriod":
        if isinstance(other, (TimePeriod, Mapping)):
            return self.add(other)
        return NotImplemented

    def __radd__(self, other: Any) -> "TimePeriod":
        if isinstance(other, Mapping):
            return TimePeriod(other).add(self)
        return NotImplemented

    def __sub__(self, other: Any) -> "TimePeriod":
        if isinstance(other, (TimePeriod, Mapping)):
            return self.subtract(other)
        return NotImplemented

    def __rsub__(self, other: Any) -> "TimePeriod":
        if isinstance(other, Mapping):
            return TimePeriod(other).subtract(self)
        return NotImplemented

    def __mul__(self, other: Any) -> "TimePeriod":
        if _is_number(other):
            return self.multiply(other)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other: Any) -> "TimePeriod | float":
        if isinstance(other, TimePeriod):
            return _divide(self._milliseconds, other._milliseconds)
        if _is_number(other):
            return self.divide(other)
        return NotImplemented

    def __neg__(self) -> "TimePeriod":
        return TimePeriod(-self._milliseconds)

    def __abs__(self) -> "TimePeriod":
        return self.abs()

    def __bool__(self) -> bool:
        return self._milliseconds != 0

    @override
    def __repr__(self) -> str:
        return f"TimePeriod({self._milliseconds!r})"

    @override
    def __str__(self) -> str:
        """Human-friendly string from the default breakdown."""
        if self._milliseconds < 0:
            return f"-{-self}"
        parts = self.breakdown()
        if not parts:
            return "0ms"
        return " ".join(f"{amount:g} {unit}" for unit, amount in parts.items())
