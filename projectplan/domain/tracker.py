import math
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Tuple

from .activity import ActivityStatus
from .errors import InvalidPercentageError, ProjectPlanError


def _check_index(value, label):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ProjectPlanError(f"{label} must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class ActivityTrackerRecord:
    """
    Work observed on one activity during one time index.

    ``percentage_worked`` is the share of the activity's planned work done on
    that day; successive records accumulate.
    """

    activity_id: int
    time_index: int
    percentage_worked: int
    resource_id: Optional[int] = None

    def __post_init__(self):
        _check_index(self.time_index, "Time index")
        pct = self.percentage_worked
        if isinstance(pct, bool) or not isinstance(pct, int) or not 0 <= pct <= 100:
            raise InvalidPercentageError(
                f"Percentage worked must be an integer in 0..100, got {pct!r}"
            )

    @property
    def key(self) -> Tuple[int, int, Optional[int]]:
        """Uniqueness key within the tracker history."""
        return (self.activity_id, self.time_index, self.resource_id)


@dataclass(frozen=True)
class ResourceTrackerRecord:
    """What one resource worked on during one time index."""

    resource_id: int
    time_index: int
    activity_trackers: Tuple[ActivityTrackerRecord, ...] = field(default_factory=tuple)

    def __post_init__(self):
        _check_index(self.time_index, "Time index")
        # Normalise so every nested record points back at this resource and day
        normalised = tuple(
            ActivityTrackerRecord(
                activity_id=record.activity_id,
                time_index=self.time_index,
                percentage_worked=record.percentage_worked,
                resource_id=self.resource_id,
            )
            for record in sorted(self.activity_trackers, key=lambda r: r.activity_id)
        )
        object.__setattr__(self, "activity_trackers", normalised)

    @classmethod
    def from_percentages(cls, resource_id, time_index, percentages):
        """Build from a ``{activity_id: percentage_worked}`` mapping."""
        return cls(
            resource_id=resource_id,
            time_index=time_index,
            activity_trackers=tuple(
                ActivityTrackerRecord(activity_id, time_index, pct, resource_id)
                for activity_id, pct in percentages.items()
            ),
        )


@dataclass(frozen=True)
class ActivityProgress:
    """Accumulated progress of one activity as of some time index."""

    activity_id: int
    cumulative_percentage: int = 0
    first_worked_time_index: Optional[int] = None
    latest_time_index: Optional[int] = None
    actual_finish: Optional[int] = None

    @property
    def status(self) -> ActivityStatus:
        if self.actual_finish is not None:
            return ActivityStatus.COMPLETE
        if self.cumulative_percentage > 0:
            return ActivityStatus.IN_PROGRESS
        return ActivityStatus.NOT_STARTED

    @property
    def is_complete(self) -> bool:
        return self.actual_finish is not None

    @property
    def actual_start(self) -> Optional[int]:
        if self.first_worked_time_index is not None:
            return self.first_worked_time_index
        return self.actual_finish

    def remaining_duration(self, duration: int) -> int:
        """
        Remaining whole time units for an activity of planned ``duration``.

        Partially worked units still occupy a slot, so the value is rounded up.
        """
        if self.is_complete:
            return 0
        remaining = duration * (100 - self.cumulative_percentage) / 100
        return max(0, math.ceil(remaining))

    def advance(self, record: ActivityTrackerRecord) -> "ActivityProgress":
        """Return the progress after applying ``record``; ``self`` is unchanged."""
        if self.is_complete:
            # Finish time stays fixed once reached
            return ActivityProgress(
                self.activity_id,
                self.cumulative_percentage,
                self.first_worked_time_index,
                record.time_index,
                self.actual_finish,
            )
        cumulative = min(100, self.cumulative_percentage + record.percentage_worked)
        first_worked = self.first_worked_time_index
        if first_worked is None and record.percentage_worked > 0:
            first_worked = record.time_index
        finish = record.time_index if cumulative >= 100 else None
        return ActivityProgress(
            self.activity_id, cumulative, first_worked, record.time_index, finish
        )


class Rejection(NamedTuple):
    """A record a batch operation refused, with the reason."""

    record: object
    error: Exception
