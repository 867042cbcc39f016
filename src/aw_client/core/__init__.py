"""Client core."""

from .client import AWClient, TimePeriod, format_timeperiod

__all__ = ["AWClient", "TimePeriod", "format_timeperiod"]
