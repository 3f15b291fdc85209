class ProjectPlanError(Exception):
    """Base class for every error raised by the planning engine."""

    pass


class CycleError(ProjectPlanError, ValueError):
    """
    Raised when a dependency would close a cycle, or when a graph that should be
    acyclic turns out not to be. Fatal: the edge set must be fixed first.
    """

    def __init__(self, message, cycle=None):
        super().__init__(message)
        self.cycle = list(cycle) if cycle else []


class NotFoundError(ProjectPlanError, KeyError):
    """Raised when an activity, resource or dependency id is unknown."""

    def __init__(self, message, key=None):
        super().__init__(message)
        self.key = key

    def __str__(self):
        # KeyError quotes its argument otherwise
        return str(self.args[0]) if self.args else ""


class DuplicateIdError(ProjectPlanError, ValueError):
    """Raised when an id that already exists is added again."""

    pass


class InvalidDurationError(ProjectPlanError, ValueError):
    """Raised when an activity is given a negative or non-integer duration."""

    pass


class InvalidPercentageError(ProjectPlanError, ValueError):
    """Raised when a tracker record carries a percentage outside 0..100."""

    pass


class OutOfOrderTrackingError(ProjectPlanError):
    """
    Raised when a tracker record is older than the latest record already applied
    to the same activity. Only the offending record is rejected.
    """

    def __init__(self, message, record=None, latest_time_index=None):
        super().__init__(message)
        self.record = record
        self.latest_time_index = latest_time_index


class DuplicateTrackerRecordError(OutOfOrderTrackingError):
    """Raised when a tracker record repeats an already applied (activity, time, resource) key."""

    pass


class StaleCompilationError(ProjectPlanError):
    """Raised when compiled results are read after a mutation and before recompile()."""

    pass
