"""Clock with an optional simulated "now".

The simulated time only changes what ``now()`` returns; stored timestamps are
always interpreted as plain local datetimes.
"""

from datetime import date, datetime
from typing import Optional, Union


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class Clock:
    """Source of the current local time for freshness and midnight checks."""

    def __init__(self, simulated: Optional[datetime] = None):
        self._simulated: Optional[datetime] = None
        self.set_simulated(simulated)

    def now(self) -> datetime:
        """Current time, or the simulated time when one is set."""
        if self._simulated is not None:
            return self._simulated
        return datetime.now()

    def set_simulated(self, value: Optional[Union[datetime, date]]) -> None:
        """Override "now".

        Args:
            value: Datetime or date to pin the clock to (a date means its
                midnight, an aware datetime is converted to local time),
                or None to return to real time
        """
        if isinstance(value, datetime):
            value = to_local_naive(value)
        elif value is not None:
            value = datetime(value.year, value.month, value.day)
        self._simulated = value

    @property
    def is_simulated(self) -> bool:
        return self._simulated is not None
