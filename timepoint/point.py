"""Points in time, stored as a TimePeriod offset from the Unix epoch.

TimePoint accepts several input shapes (strings, datetimes, millisecond
offsets, periods, serialized epoch breakdowns and calendar descriptors) and
normalizes all of them to one millisecond offset at construction. Date
strings are read by python-dateutil's parser.
"""

import calendar
import math
import time
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, TypeAlias, TypedDict

from dateutil import parser as date_parser
from dateutil import tz
from typing_extensions import NotRequired, override

from timepoint.errors import DescriptorRangeError, InvalidDescriptorError
from timepoint.period import Breakdown, TimePeriod

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
EPOCH_KEY = "unixEpoch"

_ONE_MS = timedelta(milliseconds=1)

# RFC 2822 North American zone names; dateutil only knows UTC, GMT and Z
ZONE_ABBREVIATIONS: dict[str, tz.tzoffset] = {
    name: tz.tzoffset(name, hours * 3600)
    for name, hours in (
        ("EST", -5),
        ("EDT", -4),
        ("CST", -6),
        ("CDT", -5),
        ("MST", -7),
        ("MDT", -6),
        ("PST", -8),
        ("PDT", -7),
    )
}

# Days per month in a common year; February gains a day in leap years
_MONTH_DAYS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


class TimeDescriptor(TypedDict):
    """Calendar and clock fields as written on a calendar, 1-based month and day."""

    year: int
    month: int
    day: int
    hour: NotRequired[int]
    minute: NotRequired[int]
    second: NotRequired[float]
    timezone: NotRequired[str]


class EpochDescriptor(TypedDict):
    unixEpoch: Breakdown


TimePointInput: TypeAlias = (
    "str | datetime | float | TimePeriod | EpochDescriptor | TimeDescriptor"
)


def datetime_ms(dt: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are read as local time."""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return (dt - EPOCH) // _ONE_MS


def parse_ms(text: str) -> int:
    """Parse a date/time string into milliseconds since the epoch.

    Strings without a zone designator are local time. Zone names other than
    UTC, GMT, Z and those in ``ZONE_ABBREVIATIONS`` are rejected rather than
    silently read as local time.

    Raises:
        dateutil.parser.ParserError: If the text is not a recognizable date
            or names an unknown zone
    """
    with warnings.catch_warnings():
        warnings.simplefilter("error", date_parser.UnknownTimezoneWarning)
        try:
            parsed = date_parser.parse(text, tzinfos=ZONE_ABBREVIATIONS)
        except date_parser.UnknownTimezoneWarning as exc:
            raise date_parser.ParserError(
                f"Unknown timezone in {text!r}: {exc}\n"
                f"Known names: UTC, GMT, Z, {', '.join(ZONE_ABBREVIATIONS)}\n"
                f"Hint: use a numeric offset such as +02:00"
            ) from exc
    return datetime_ms(parsed)


def _is_integral(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def days_in_month(year: int, month: int) -> int:
    if month == 2 and calendar.isleap(year):
        return 29
    return _MONTH_DAYS[month - 1]


def _format_second(second: float) -> str:
    if _is_integral(second):
        return f"{int(second):02d}"
    # Sub-millisecond digits are truncated; rounding first drops float noise
    millis = math.floor(round(second * 1000, 6))
    return f"{millis // 1000:02d}.{millis % 1000:03d}"


def descriptor_ms(descriptor: Mapping[str, Any]) -> int:
    """Validate a calendar descriptor and resolve it to epoch milliseconds.

    Missing hour, minute and second default to 0. A missing timezone leaves
    the time in local time.

    Raises:
        InvalidDescriptorError: If year, month, day, hour or minute is not
            integral, or year, month or day is missing
        DescriptorRangeError: If any field is outside its calendar range
    """
    missing = [key for key in ("year", "month", "day") if key not in descriptor]
    if missing:
        raise InvalidDescriptorError(
            f"Time descriptor is missing required fields: {', '.join(missing)}\n"
            f"Got: {dict(descriptor)!r}\n"
            f"Example: {{'year': 2021, 'month': 10, 'day': 31, 'hour': 19, "
            f"'minute': 30, 'second': 0, 'timezone': 'GMT'}}"
        )

    year = descriptor["year"]
    month = descriptor["month"]
    day = descriptor["day"]
    hour = descriptor.get("hour", 0)
    minute = descriptor.get("minute", 0)
    second = descriptor.get("second", 0)
    zone = descriptor.get("timezone", "")

    integral = {"year": year, "month": month, "day": day, "hour": hour, "minute": minute}
    for name, value in integral.items():
        if not _is_integral(value):
            raise InvalidDescriptorError(
                f"Invalid time descriptor: {name}={value!r}\n"
                f"Non-integral values are only allowed for 'second'"
            )
    if not isinstance(second, (int, float)) or isinstance(second, bool):
        raise InvalidDescriptorError(
            f"Invalid time descriptor: second={second!r}\n"
            f"'second' must be a number"
        )

    year, month, day, hour, minute = (int(v) for v in integral.values())

    if not 1 <= month <= 12:
        raise DescriptorRangeError(f"Invalid month: {month}\nValid range: 1-12")
    last_day = days_in_month(year, month)
    if not 1 <= day <= last_day:
        raise DescriptorRangeError(
            f"Invalid day: {day}\n"
            f"{year}-{month:02d} has days 1-{last_day}"
        )
    if not 0 <= hour < 24:
        raise DescriptorRangeError(f"Invalid hour: {hour}\nValid range: 0-23")
    if not 0 <= minute < 60:
        raise DescriptorRangeError(f"Invalid minute: {minute}\nValid range: 0-59")
    if not 0 <= second < 60:
        raise DescriptorRangeError(
            f"Invalid second: {second}\nValid range: 0 to less than 60"
        )

    text = (
        f"{year}-{month:02d}-{day:02d} "
        f"{hour:02d}:{minute:02d}:{_format_second(second)} {zone}"
    )
    return parse_ms(text.rstrip())


def _to_epoch(value: Any) -> TimePeriod:
    if isinstance(value, str):
        return TimePeriod(parse_ms(value))
    if isinstance(value, datetime):
        return TimePeriod(datetime_ms(value))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return TimePeriod(value)
    if isinstance(value, TimePeriod):
        return value
    if isinstance(value, Mapping):
        if EPOCH_KEY in value:
            return TimePeriod(value[EPOCH_KEY])
        return TimePeriod(descriptor_ms(value))
    raise TypeError(
        f"Cannot build a TimePoint from {type(value).__name__!r}: {value!r}\n"
        f"Accepted inputs:\n"
        f"  TimePoint('2021-10-31 19:30 GMT')  # date string\n"
        f"  TimePoint(datetime.now(timezone.utc))  # datetime\n"
        f"  TimePoint(1635708600000)  # milliseconds since 1970-01-01\n"
        f"  TimePoint(TimePeriod.days(3))  # offset from the epoch\n"
        f"  TimePoint({{'unixEpoch': {{'days': 18931}}}})  # serialized form\n"
        f"  TimePoint({{'year': 2021, 'month': 10, 'day': 31, ...}})  # descriptor"
    )


def _when_ms(when: "TimePoint | datetime") -> float:
    if isinstance(when, TimePoint):
        return when.unix_epoch.as_milliseconds
    if isinstance(when, datetime):
        return datetime_ms(when)
    raise TypeError(
        f"Expected a TimePoint or datetime.\n"
        f"Got {type(when).__name__!r}: {when!r}"
    )


@dataclass(frozen=True, init=False, repr=False, slots=True)
class TimePoint:
    """An immutable instant, held as a TimePeriod since 1970-01-01T00:00:00Z."""

    unix_epoch: TimePeriod

    def __init__(self, value: TimePointInput):
        """
        Initialize a time point.

        Args:
            value: One of, checked in this order:
                - a date string, parsed by dateutil (e.g. "2021-10-31 19:30 GMT")
                - a datetime
                - milliseconds since the epoch
                - a TimePeriod offset from the epoch
                - a serialized form ``{"unixEpoch": {unit: amount}}``
                - a calendar descriptor with year, month, day, hour, minute,
                  second and timezone fields, as shown on a calendar and clock

        Raises:
            InvalidDescriptorError: If a descriptor field must be integral but is not
            DescriptorRangeError: If a descriptor field is out of range
            TypeError: If the input is none of the above
        """
        object.__setattr__(self, "unix_epoch", _to_epoch(value))

    @classmethod
    def from_calendar(
        cls,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: float = 0,
        timezone: str = "",
    ) -> "TimePoint":
        return cls(
            TimeDescriptor(
                year=year,
                month=month,
                day=day,
                hour=hour,
                minute=minute,
                second=second,
                timezone=timezone,
            )
        )

    @classmethod
    def from_json(cls, data: EpochDescriptor) -> "TimePoint":
        return cls(data)

    @classmethod
    def epoch_start(cls) -> "TimePoint":
        return cls(0)

    @classmethod
    def now(cls) -> "TimePoint":
        return cls(time.time_ns() // 1_000_000)

    @property
    def as_date(self) -> datetime:
        """Timezone-aware UTC datetime for this instant.

        Raises:
            ValueError: If the offset is infinite or NaN
            OverflowError: If the offset is outside the years datetime supports
        """
        ms = self.unix_epoch.as_milliseconds
        if not math.isfinite(ms):
            raise ValueError(f"TimePoint offset {ms!r} has no datetime equivalent")
        return EPOCH + timedelta(milliseconds=ms)

    def is_before(self, when: "TimePoint | datetime") -> bool:
        return self.unix_epoch.as_milliseconds < _when_ms(when)

    def is_after(self, when: "TimePoint | datetime") -> bool:
        return self.unix_epoch.as_milliseconds > _when_ms(when)

    def equals(self, when: "TimePoint | datetime") -> bool:
        return self.unix_epoch.as_milliseconds == _when_ms(when)

    def compare(self, when: "TimePoint | datetime") -> int:
        """Return -1, 0 or 1 as this point is before, equal to or after ``when``."""
        if self.is_before(when):
            return -1
        if self.is_after(when):
            return 1
        return 0

    def add(self, *periods: "TimePeriod | Breakdown") -> "TimePoint":
        return TimePoint(self.unix_epoch.add(*periods))

    def subtract(self, period: "TimePeriod | Breakdown") -> "TimePoint":
        return TimePoint(self.unix_epoch.subtract(period))

    def difference(self, when: "TimePoint | datetime") -> TimePeriod:
        """Period from this point to ``when``; positive when ``when`` is later."""
        return TimePeriod(_when_ms(when)).subtract(self.unix_epoch)

    def to_json(self) -> dict[str, dict[str, float]]:
        return {EPOCH_KEY: self.unix_epoch.breakdown()}

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, (TimePoint, datetime)):
            return self.is_before(other)
        return NotImplemented

    def __gt__(self, other: Any) -> bool:
        if isinstance(other, (TimePoint, datetime)):
            return self.is_after(other)
        return NotImplemented

    def __le__(self, other: Any) -> bool:
        if isinstance(other, (TimePoint, datetime)):
            return not self.is_after(other)
        return NotImplemented

    def __ge__(self, other: Any) -> bool:
        if isinstance(other, (TimePoint, datetime)):
            return not self.is_before(other)
        return NotImplemented

    def __add__(self, other: Any) -> "TimePoint":
        if isinstance(other, (TimePeriod, Mapping)):
            return self.add(other)
        return NotImplemented

    __radd__ = __add__

    def __sub__(self, other: Any) -> "TimePoint | TimePeriod":
        if isinstance(other, (TimePoint, datetime)):
            return self.unix_epoch.subtract(TimePeriod(_when_ms(other)))
        if isinstance(other, (TimePeriod, Mapping)):
            return self.subtract(other)
        return NotImplemented

    @override
    def __repr__(self) -> str:
        return f"TimePoint({self.unix_epoch.as_milliseconds!r})"

    @override
    def __str__(self) -> str:
        if not math.isfinite(self.unix_epoch.as_milliseconds):
            return "Invalid TimePoint"
        return str(self.as_date)
