import logging
from typing import Callable, Dict, Iterable, List, Optional

from ..domain.errors import (
    DuplicateTrackerRecordError,
    NotFoundError,
    OutOfOrderTrackingError,
)
from ..domain.tracker import (
    ActivityProgress,
    ActivityTrackerRecord,
    Rejection,
    ResourceTrackerRecord,
)

logger = logging.getLogger(__name__)


class ProgressTrackerEngine:
    """
    Applies dated progress records and derives per-activity progress.

    Records for an activity must arrive in non-decreasing time index order: a
    record older than the latest applied one is rejected, so cumulative work
    and remaining duration only ever move forward. Several resources may
    report on the same activity for the same time index, but the same
    (activity, time index, resource) key cannot be applied twice.

    The engine keeps the full history, so progress can also be recomputed as
    of any earlier time index without replaying anything by hand.
    """

    def __init__(
        self,
        activity_exists: Optional[Callable[[int], bool]] = None,
        resource_exists: Optional[Callable[[int], bool]] = None,
    ):
        """
        Args:
            activity_exists: Predicate used to reject records for unknown activities
            resource_exists: Predicate used to reject records for unknown resources
        """
        self._activity_exists = activity_exists
        self._resource_exists = resource_exists
        self._history: Dict[int, List[ActivityTrackerRecord]] = {}
        self._keys = set()
        self._progress: Dict[int, ActivityProgress] = {}
        self._resource_history: Dict[int, List[ResourceTrackerRecord]] = {}
        # Bumped on every applied or forgotten record
        self.version = 0

    # ------------------------------------------------------------------
    # Applying records
    # ------------------------------------------------------------------

    def apply(self, record: ActivityTrackerRecord) -> ActivityProgress:
        """
        Apply one activity record and return the activity's new progress.

        Raises:
            NotFoundError: The activity (or the reporting resource) is unknown
            OutOfOrderTrackingError: The record is older than the latest applied one
            DuplicateTrackerRecordError: The record's key was already applied
        """
        self._validate(record)
        return self._commit(record)

    def apply_many(self, records: Iterable[ActivityTrackerRecord]) -> List[Rejection]:
        """
        Apply records in time index order, collecting the ones refused.

        The sort is stable, so records sharing a time index keep their given
        order; the outcome does not depend on how the batch was assembled.
        """
        rejections = []
        for record in sorted(records, key=lambda r: r.time_index):
            try:
                self.apply(record)
            except (NotFoundError, OutOfOrderTrackingError) as e:
                logger.warning("Rejected tracker record %s: %s", record, e)
                rejections.append(Rejection(record, e))
        return rejections

    def apply_resource_record(self, record: ResourceTrackerRecord) -> List[Rejection]:
        """
        Apply what one resource worked on during one time index.

        Each nested activity record is applied on its own; the ones refused are
        returned and the rest still take effect.
        """
        if self._resource_exists is not None and not self._resource_exists(record.resource_id):
            error = NotFoundError(
                f"Resource {record.resource_id} not found", key=record.resource_id
            )
            logger.warning("Rejected resource tracker %s: %s", record, error)
            return [Rejection(record, error)]

        rejections = self.apply_many(record.activity_trackers)
        refused = {id(rejection.record) for rejection in rejections}
        applied = tuple(r for r in record.activity_trackers if id(r) not in refused)
        if applied:
            # Only work that was actually applied counts as worked
            self._resource_history.setdefault(record.resource_id, []).append(
                ResourceTrackerRecord(record.resource_id, record.time_index, applied)
            )
        return rejections

    def apply_resource_records(self, records: Iterable[ResourceTrackerRecord]) -> List[Rejection]:
        rejections = []
        # Day order first so one resource's late report cannot block another's
        for record in sorted(records, key=lambda r: (r.time_index, r.resource_id)):
            rejections.extend(self.apply_resource_record(record))
        return rejections

    def _validate(self, record: ActivityTrackerRecord):
        if self._activity_exists is not None and not self._activity_exists(record.activity_id):
            raise NotFoundError(
                f"Activity {record.activity_id} not found", key=record.activity_id
            )
        if (
            record.resource_id is not None
            and self._resource_exists is not None
            and not self._resource_exists(record.resource_id)
        ):
            raise NotFoundError(
                f"Resource {record.resource_id} not found", key=record.resource_id
            )

        current = self._progress.get(record.activity_id)
        latest = current.latest_time_index if current else None
        if latest is not None and record.time_index < latest:
            raise OutOfOrderTrackingError(
                f"Tracker for activity {record.activity_id} at time index "
                f"{record.time_index} is earlier than the latest applied ({latest})",
                record=record,
                latest_time_index=latest,
            )
        if record.key in self._keys:
            raise DuplicateTrackerRecordError(
                f"Tracker for activity {record.activity_id} at time index "
                f"{record.time_index} was already applied",
                record=record,
                latest_time_index=latest,
            )

    def _commit(self, record: ActivityTrackerRecord) -> ActivityProgress:
        previous = self._progress.get(record.activity_id) or ActivityProgress(
            record.activity_id
        )
        updated = previous.advance(record)
        self._progress[record.activity_id] = updated
        self._history.setdefault(record.activity_id, []).append(record)
        self._keys.add(record.key)
        self.version += 1

        if updated.is_complete and not previous.is_complete:
            logger.info(
                "Activity %d complete at time index %d",
                record.activity_id,
                updated.actual_finish,
            )
        return updated

    # ------------------------------------------------------------------
    # Reading progress
    # ------------------------------------------------------------------

    def progress(self, activity_id: int) -> ActivityProgress:
        """Latest progress of an activity; untracked activities are not started."""
        return self._progress.get(activity_id) or ActivityProgress(activity_id)

    def remaining_duration(self, activity_id: int, duration: int) -> int:
        return self.progress(activity_id).remaining_duration(duration)

    def progress_as_of(self, as_of_time_index: Optional[int] = None) -> Dict[int, ActivityProgress]:
        """
        Progress of every tracked activity using only records at or before
        ``as_of_time_index``. ``None`` means the whole history.
        """
        if as_of_time_index is None:
            return dict(self._progress)

        result = {}
        for activity_id, records in self._history.items():
            state = ActivityProgress(activity_id)
            for record in records:
                if record.time_index > as_of_time_index:
                    # History is in time order per activity
                    break
                state = state.advance(record)
            if state.latest_time_index is not None:
                result[activity_id] = state
        return result

    def history(self, activity_id: Optional[int] = None) -> List[ActivityTrackerRecord]:
        """Applied records of one activity in application order, or of all activities by time index."""
        if activity_id is not None:
            return list(self._history.get(activity_id, []))
        records = [r for history in self._history.values() for r in history]
        return sorted(
            records,
            key=lambda r: (
                r.time_index,
                r.activity_id,
                -1 if r.resource_id is None else r.resource_id,
            ),
        )

    def resource_history(self, resource_id: Optional[int] = None) -> List[ResourceTrackerRecord]:
        if resource_id is not None:
            return list(self._resource_history.get(resource_id, []))
        records = [r for history in self._resource_history.values() for r in history]
        return sorted(records, key=lambda r: (r.time_index, r.resource_id))

    def latest_time_index(self) -> Optional[int]:
        indices = [p.latest_time_index for p in self._progress.values()]
        return max(indices, default=None)

    def forget_activity(self, activity_id: int):
        """Drop the history of a removed activity, including its resource work."""
        for record in self._history.pop(activity_id, []):
            self._keys.discard(record.key)
        self._progress.pop(activity_id, None)

        for resource_id, records in list(self._resource_history.items()):
            kept = []
            for record in records:
                remaining = tuple(
                    r for r in record.activity_trackers if r.activity_id != activity_id
                )
                if len(remaining) == len(record.activity_trackers):
                    kept.append(record)
                elif remaining:
                    kept.append(
                        ResourceTrackerRecord(record.resource_id, record.time_index, remaining)
                    )
            if kept:
                self._resource_history[resource_id] = kept
            else:
                del self._resource_history[resource_id]
        self.version += 1

    def copy(self) -> "ProgressTrackerEngine":
        clone = ProgressTrackerEngine(self._activity_exists, self._resource_exists)
        clone._history = {k: list(v) for k, v in self._history.items()}
        clone._keys = set(self._keys)
        clone._progress = dict(self._progress)
        clone._resource_history = {k: list(v) for k, v in self._resource_history.items()}
        clone.version = self.version
        return clone

    def __len__(self):
        return len(self._keys)
