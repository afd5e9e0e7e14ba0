"""Time unit model - converts delay values into seconds"""

from enum import Enum


class TimeUnit(str, Enum):
    """Unit a delay value is expressed in"""

    NANOSECONDS = "nanoseconds"
    MICROSECONDS = "microseconds"
    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def seconds(self) -> float:
        """Length of one unit in seconds"""
        return _SECONDS_PER_UNIT[self]

    def to_seconds(self, value: float) -> float:
        """Convert ``value`` expressed in this unit to seconds"""
        return value * self.seconds


_SECONDS_PER_UNIT = {
    TimeUnit.NANOSECONDS: 1e-9,
    TimeUnit.MICROSECONDS: 1e-6,
    TimeUnit.MILLISECONDS: 1e-3,
    TimeUnit.SECONDS: 1.0,
    TimeUnit.MINUTES: 60.0,
    TimeUnit.HOURS: 3600.0,
    TimeUnit.DAYS: 86400.0,
}
