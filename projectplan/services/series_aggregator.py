import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..domain.resource import ResourceRegistry
from ..domain.schedule import CompilationResult, ResourceSchedule
from ..utils.datetime_calculator import DateTimeCalculator, TimeAxisConverter, TimeKey

logger = logging.getLogger(__name__)

TOTAL_TITLE = "Total"


@dataclass(frozen=True)
class ResourceSeries:
    """Per-time-index values of one resource, zero-filled to the axis length."""

    resource_id: Optional[int]
    title: str
    values: Tuple[float, ...]
    unit_cost: float = 0.0
    display_order: int = 0

    def costed(self) -> "ResourceSeries":
        return ResourceSeries(
            self.resource_id,
            self.title,
            tuple(v * self.unit_cost for v in self.values),
            self.unit_cost,
            self.display_order,
        )


class SeriesAggregator:
    """
    Pivots resource schedules and tracker history into aligned time series.

    Every series of one aggregation has the same length, so they can be
    stacked; the total is the elementwise sum of the resource series.
    Output order follows the caller's display order, not insertion order.
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        time_axis: Optional[TimeAxisConverter] = None,
        use_business_days: bool = True,
        project_start=None,
    ):
        self.registry = registry
        self.time_axis = time_axis or DateTimeCalculator()
        self.use_business_days = use_business_days
        self.project_start = project_start

    # ------------------------------------------------------------------
    # Ordering and time keys
    # ------------------------------------------------------------------

    def ordered_resource_ids(
        self, resource_ids: Iterable[int], display_order: Optional[Sequence[int]] = None
    ) -> List[int]:
        """
        Order ``resource_ids`` by the explicit ``display_order`` first, then by
        each resource's own display order and id.
        """
        remaining = set(resource_ids)
        ordered = []
        for resource_id in display_order or []:
            if resource_id in remaining:
                ordered.append(resource_id)
                remaining.discard(resource_id)

        def default_key(rid):
            resource = self.registry.get(rid) if rid in self.registry else None
            return (resource.display_order if resource else rid, rid)

        ordered.extend(sorted(remaining, key=default_key))
        return ordered

    def time_key(self, time_index: int) -> TimeKey:
        return self.time_axis.convert(
            time_index, self.use_business_days, self.project_start
        )

    def axis_range(self, compilation: CompilationResult) -> Tuple[TimeKey, TimeKey]:
        """First and last axis values covering every resource schedule."""
        return self.time_key(0), self.time_key(compilation.resource_finish_time)

    # ------------------------------------------------------------------
    # Resource allocation series
    # ------------------------------------------------------------------

    def _title(self, resource_id, used):
        if resource_id in self.registry:
            title = self.registry.get(resource_id).name
        else:
            title = f"Resource {resource_id}"
        if title in used or title == TOTAL_TITLE:
            title = f"{title} ({resource_id})"
        used.add(title)
        return title

    def resource_series(
        self,
        schedules: Sequence[ResourceSchedule],
        display_order: Optional[Sequence[int]] = None,
        cost: bool = False,
        length: Optional[int] = None,
    ) -> List[ResourceSeries]:
        """
        Allocated units (or units x unit cost) per time index for each schedule.

        Args:
            schedules: Resource schedules to pivot
            display_order: Resource ids in the order the caller wants them
            cost: Multiply units by each resource's unit cost
            length: Axis length; defaults to the latest schedule finish

        Returns:
            list: ResourceSeries in display order
        """
        by_id = {s.resource_id: s for s in schedules}
        if length is None:
            length = max((s.finish_time for s in schedules), default=0)

        series = []
        used_titles = set()
        for position, resource_id in enumerate(
            self.ordered_resource_ids(by_id, display_order)
        ):
            values = np.zeros(length, dtype=float)
            for row in by_id[resource_id].rows:
                start, finish = max(row.start, 0), min(row.finish, length)
                if finish > start:
                    values[start:finish] += row.percentage / 100

            unit_cost = (
                self.registry.unit_cost(resource_id)
                if resource_id in self.registry
                else self.registry.default_unit_cost
            )
            item = ResourceSeries(
                resource_id=resource_id,
                title=self._title(resource_id, used_titles),
                values=tuple(values.tolist()),
                unit_cost=unit_cost,
                display_order=position,
            )
            series.append(item.costed() if cost else item)
        return series

    @staticmethod
    def total(series: Sequence[ResourceSeries]) -> Tuple[float, ...]:
        """Elementwise sum of ``series``, padded to the longest one."""
        if not series:
            return ()
        length = max(len(s.values) for s in series)
        matrix = np.zeros((len(series), length), dtype=float)
        for index, item in enumerate(series):
            matrix[index, : len(item.values)] = item.values
        return tuple(matrix.sum(axis=0).tolist())

    def to_mapping(
        self, series: Sequence[ResourceSeries], include_total: bool = True
    ) -> Dict[str, List[Tuple[TimeKey, float]]]:
        """Series title -> ordered (time key, value) pairs."""
        mapping = {}
        for item in series:
            mapping[item.title] = [
                (self.time_key(t), value) for t, value in enumerate(item.values)
            ]
        if include_total and series:
            mapping[TOTAL_TITLE] = [
                (self.time_key(t), value) for t, value in enumerate(self.total(series))
            ]
        return mapping

    def aggregate(
        self,
        compilation: CompilationResult,
        display_order: Optional[Sequence[int]] = None,
        cost: bool = False,
        include_total: bool = True,
    ) -> Dict[str, List[Tuple[TimeKey, float]]]:
        """Resource allocation series of a compilation, ready for charting."""
        series = self.resource_series(
            compilation.resource_schedules, display_order=display_order, cost=cost
        )
        logger.debug("Aggregated %d resource series", len(series))
        return self.to_mapping(series, include_total=include_total)

    def pivot_table(
        self, series: Sequence[ResourceSeries], time_title: str = "Time"
    ) -> Tuple[List[str], List[list]]:
        """
        Header and rows with one row per time index and one column per series,
        for external table writers.
        """
        header = [time_title] + [s.title for s in series]
        length = max((len(s.values) for s in series), default=0)
        rows = []
        for t in range(length):
            row = [self.time_key(t)]
            row.extend(s.values[t] if t < len(s.values) else 0.0 for s in series)
            rows.append(row)
        return header, rows

    # ------------------------------------------------------------------
    # Tracker history series
    # ------------------------------------------------------------------

    def activity_progress_series(
        self,
        tracker_engine,
        activity_ids: Sequence[int],
        length: Optional[int] = None,
    ) -> Dict[int, Tuple[int, ...]]:
        """
        Cumulative percentage complete of each activity at every time index.

        Values carry forward after the last record and are zero before the first.
        """
        histories = {aid: tracker_engine.history(aid) for aid in activity_ids}
        if length is None:
            last = [h[-1].time_index for h in histories.values() if h]
            length = max(last, default=-1) + 1

        result = {}
        for activity_id, records in histories.items():
            daily = np.zeros(length, dtype=int)
            for record in records:
                if record.time_index < length:
                    daily[record.time_index] += record.percentage_worked
            result[activity_id] = tuple(np.minimum(np.cumsum(daily), 100).tolist())
        return result

    def resource_worked_series(
        self,
        tracker_engine,
        display_order: Optional[Sequence[int]] = None,
        cost: bool = False,
        length: Optional[int] = None,
    ) -> List[ResourceSeries]:
        """
        Units each resource actually worked per time index, from resource
        tracker history. Disabled resources are included.
        """
        records = tracker_engine.resource_history()
        if length is None:
            length = max((r.time_index for r in records), default=-1) + 1

        worked = {}
        for record in records:
            values = worked.setdefault(record.resource_id, np.zeros(length, dtype=float))
            if record.time_index < length:
                values[record.time_index] += (
                    sum(a.percentage_worked for a in record.activity_trackers) / 100
                )

        series = []
        used_titles = set()
        for position, resource_id in enumerate(
            self.ordered_resource_ids(worked, display_order)
        ):
            unit_cost = (
                self.registry.unit_cost(resource_id)
                if resource_id in self.registry
                else self.registry.default_unit_cost
            )
            item = ResourceSeries(
                resource_id=resource_id,
                title=self._title(resource_id, used_titles),
                values=tuple(worked[resource_id].tolist()),
                unit_cost=unit_cost,
                display_order=position,
            )
            series.append(item.costed() if cost else item)
        return series
