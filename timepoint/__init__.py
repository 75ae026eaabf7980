from .errors import DescriptorRangeError, InvalidDescriptorError, TimePointError
from .period import Breakdown, TimePeriod
from .point import EpochDescriptor, TimeDescriptor, TimePoint
from .schedule import delayed_completion, fire_at
from .serialize import dumps, json_default, loads_period, loads_point
from .util import DEFAULT_UNITS, DIVISORS, TimeUnit

__all__ = [
    "TimePeriod",
    "TimePoint",
    "Breakdown",
    "TimeUnit",
    "TimeDescriptor",
    "EpochDescriptor",
    "DIVISORS",
    "DEFAULT_UNITS",
    "fire_at",
    "delayed_completion",
    "json_default",
    "dumps",
    "loads_period",
    "loads_point",
    "TimePointError",
    "InvalidDescriptorError",
    "DescriptorRangeError",
]
