from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

from .errors import InvalidDurationError, ProjectPlanError


class ActivityStatus(Enum):
    """
    Enum representing the progress state of an activity.

    Transitions are monotonic: NOT_STARTED -> IN_PROGRESS -> COMPLETE.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class ActivityError(ProjectPlanError, ValueError):
    """Exception raised for errors in the Activity class."""

    pass


def validate_duration(duration) -> int:
    """Return ``duration`` if it is a non-negative integer, raise otherwise."""
    # bool is an int subclass but never a meaningful duration
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise InvalidDurationError(
            f"Duration must be a non-negative integer, got {duration!r}"
        )
    if duration < 0:
        raise InvalidDurationError(f"Duration must be non-negative, got {duration}")
    return duration


def _as_id_set(ids: Optional[Iterable[int]], label: str) -> set:
    if ids is None:
        return set()
    if isinstance(ids, (str, bytes)):
        raise ActivityError(f"{label} must be a collection of integer ids")
    result = set()
    for item in ids:
        if isinstance(item, bool) or not isinstance(item, int):
            raise ActivityError(f"{label} must contain integer ids, got {item!r}")
        result.add(item)
    return result


class Activity:
    """
    Represents a unit of work in the activity graph.

    An activity only carries its own inputs: name, duration, the resources
    assigned to it and the ids of its predecessors. Timing attributes are
    never stored here; they are produced by the critical path compiler as
    ``CompiledActivity`` snapshots.
    """

    def __init__(
        self,
        id: int,
        name: str = "",
        duration: int = 0,
        resource_ids: Optional[Iterable[int]] = None,
        predecessor_ids: Optional[Iterable[int]] = None,
    ):
        """
        Initialize a new Activity.

        Args:
            id: Unique integer identifier within a graph
            name: Display name of the activity
            duration: Duration in whole time units (>= 0)
            resource_ids: Ids of the resources assigned to this activity
            predecessor_ids: Ids of the activities that must finish first

        Raises:
            ActivityError: If the id, name or id collections are malformed
            InvalidDurationError: If the duration is negative or not an integer
        """
        if isinstance(id, bool) or not isinstance(id, int):
            raise ActivityError(f"Activity id must be an integer, got {id!r}")
        self.id = id

        if not isinstance(name, str):
            raise ActivityError("Activity name must be a string")
        self.name = name

        self._duration = validate_duration(duration)

        # Resources are referenced weakly, by id only
        self.resource_ids = _as_id_set(resource_ids, "Resource ids")

        # Kept in sync by ActivityGraph once the activity is added to one
        self.predecessor_ids = _as_id_set(predecessor_ids, "Predecessor ids")
        if self.id in self.predecessor_ids:
            raise ActivityError(f"Activity {self.id} cannot be its own predecessor")

    @property
    def duration(self) -> int:
        """Planned duration in time units."""
        return self._duration

    @duration.setter
    def duration(self, value: int):
        self._duration = validate_duration(value)

    def copy(self) -> "Activity":
        return Activity(
            self.id,
            self.name,
            self._duration,
            resource_ids=set(self.resource_ids),
            predecessor_ids=set(self.predecessor_ids),
        )

    def __eq__(self, other):
        if not isinstance(other, Activity):
            return NotImplemented
        return (
            self.id == other.id
            and self.name == other.name
            and self._duration == other._duration
            and self.resource_ids == other.resource_ids
            and self.predecessor_ids == other.predecessor_ids
        )

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return (
            f"Activity(id={self.id}, name={self.name!r}, duration={self._duration}, "
            f"resources={sorted(self.resource_ids)}, "
            f"predecessors={sorted(self.predecessor_ids)})"
        )


@dataclass(frozen=True)
class CompiledActivity:
    """Timing snapshot of one activity, as produced by a single compile."""

    id: int
    name: str
    duration: int
    original_duration: int
    resource_ids: FrozenSet[int]
    predecessor_ids: FrozenSet[int]
    successor_ids: FrozenSet[int]
    earliest_start: int
    earliest_finish: int
    latest_start: int
    latest_finish: int
    total_float: int
    free_float: int
    is_critical: bool
    status: ActivityStatus = ActivityStatus.NOT_STARTED
    percentage_complete: int = 0

    @property
    def is_complete(self) -> bool:
        return self.status is ActivityStatus.COMPLETE

    @property
    def sort_key(self) -> Tuple[int, int]:
        """Stable ordering: earliest start, then ascending id."""
        return (self.earliest_start, self.id)
