"""Exceptions raised when building a TimePoint from a calendar descriptor.

Both inherit from ValueError so existing ``except ValueError`` handlers
keep working.
"""


class TimePointError(ValueError):
    """Base exception for timepoint construction failures."""


class InvalidDescriptorError(TimePointError):
    """A calendar descriptor field that must be integral is not.

    Only ``second`` may be fractional. Also raised when one of the
    required fields (year, month, day) is missing.
    """


class DescriptorRangeError(TimePointError):
    """A calendar descriptor field is outside its valid range.

    Day bounds follow the real month length, so February 29 is only
    accepted in leap years.
    """


__all__ = ["TimePointError", "InvalidDescriptorError", "DescriptorRangeError"]
