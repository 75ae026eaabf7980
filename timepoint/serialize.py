"""JSON helpers for TimePeriod and TimePoint.

Text encoding is left to the ``json`` module; these helpers only map the
value types to and from their plain structures:

    {"milliseconds": 5400000.0}
    {"unixEpoch": {"days": 18931, "hours": 19, "minutes": 30}}

Examples:
    >>> json.dumps({"at": TimePoint(0)}, default=json_default)
    '{"at": {"unixEpoch": {}}}'
    >>> loads_period('{"milliseconds": 1500}')
    TimePeriod(1500)
"""

import json
from typing import Any

from timepoint.period import TimePeriod
from timepoint.point import TimePoint


def json_default(obj: Any) -> Any:
    """``default=`` hook for ``json.dumps`` covering TimePeriod and TimePoint."""
    if isinstance(obj, (TimePeriod, TimePoint)):
        return obj.to_json()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(obj: Any, **kwargs: Any) -> str:
    """``json.dumps`` with TimePeriod and TimePoint support."""
    return json.dumps(obj, default=json_default, **kwargs)


def loads_period(text: str | bytes) -> TimePeriod:
    return TimePeriod.from_json(json.loads(text))


def loads_point(text: str | bytes) -> TimePoint:
    return TimePoint.from_json(json.loads(text))


__all__ = ["json_default", "dumps", "loads_period", "loads_point"]
