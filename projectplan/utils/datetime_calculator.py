from datetime import date, datetime, timedelta
from typing import Optional, Protocol, Union

import numpy as np

TimeKey = Union[int, date]


class TimeAxisConverter(Protocol):
    """Anything that can turn a zero-based time index into an axis value."""

    def convert(
        self,
        time_index: int,
        use_business_days: bool,
        project_start: Optional[date],
    ) -> TimeKey:
        ...


class DateTimeCalculator:
    """
    Default time-axis converter.

    With no project start the raw index is returned. Otherwise the index is an
    offset from the start date, counted in business days (Mon-Fri) or in
    calendar days.
    """

    def __init__(self, weekmask: str = "1111100", holidays=None):
        self.weekmask = weekmask
        self.holidays = list(holidays or [])

    def convert(
        self,
        time_index: int,
        use_business_days: bool = True,
        project_start: Optional[date] = None,
    ) -> TimeKey:
        if project_start is None:
            return time_index
        if isinstance(project_start, datetime):
            project_start = project_start.date()

        if not use_business_days:
            return project_start + timedelta(days=time_index)

        # A weekend start rolls forward to the next business day
        offset = np.busday_offset(
            np.datetime64(project_start, "D"),
            time_index,
            roll="forward",
            weekmask=self.weekmask,
            holidays=self.holidays,
        )
        return offset.item()

    def to_index(
        self,
        value: date,
        use_business_days: bool = True,
        project_start: Optional[date] = None,
    ) -> int:
        """Inverse of ``convert`` for dates on the axis."""
        if project_start is None:
            raise ValueError("A project start date is needed to convert dates")
        if isinstance(project_start, datetime):
            project_start = project_start.date()
        if not use_business_days:
            return (value - project_start).days

        start = np.busday_offset(
            np.datetime64(project_start, "D"),
            0,
            roll="forward",
            weekmask=self.weekmask,
            holidays=self.holidays,
        )
        return int(
            np.busday_count(
                start,
                np.datetime64(value, "D"),
                weekmask=self.weekmask,
                holidays=self.holidays,
            )
        )
