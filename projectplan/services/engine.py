import logging
import threading
from contextlib import contextmanager
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config.settings import settings
from ..domain.activity import Activity
from ..domain.activity_graph import ActivityGraph
from ..domain.arrow_graph import ArrowGraph
from ..domain.errors import NotFoundError, StaleCompilationError
from ..domain.resource import Resource, ResourceRegistry
from ..domain.schedule import CompilationResult
from ..domain.tracker import (
    ActivityProgress,
    ActivityTrackerRecord,
    Rejection,
    ResourceTrackerRecord,
)
from ..utils.datetime_calculator import DateTimeCalculator
from .arrow_converter import ArrowDiagramConverter
from .compiler import CriticalPathCompiler
from .resource_scheduler import ResourceScheduler
from .series_aggregator import SeriesAggregator
from .tracker_engine import ProgressTrackerEngine

logger = logging.getLogger(__name__)


class ProjectPlanEngine:
    """
    Entry point tying the activity graph, resources and progress together.

    Mutations only mark the engine dirty; nothing is recomputed until
    ``recompile()`` is called, typically once after a batch of changes.
    Every public method holds one re-entrant lock, so a compile always sees a
    single consistent graph state. Use ``session()`` to hold that lock across
    a compile-and-read sequence.
    """

    def __init__(
        self,
        resources: Optional[Iterable[Resource]] = None,
        default_unit_cost: Optional[float] = None,
        resources_disabled: Optional[bool] = None,
        allocation_percentage: Optional[int] = None,
        use_business_days: Optional[bool] = None,
        project_start=None,
        time_axis=None,
    ):
        """
        Initialize the engine. Unset arguments fall back to the configured
        settings.

        Args:
            resources: Initial resources of the project
            default_unit_cost: Unit cost for resources that do not set one
            resources_disabled: Treat every resource as disabled (pure CPM)
            allocation_percentage: Percentage written on allocation rows
            use_business_days: Count time indices in business days
            project_start: Date of time index 0; None keeps numeric axes
            time_axis: Time-axis converter, a DateTimeCalculator by default
        """
        self._lock = threading.RLock()

        self.graph = ActivityGraph()
        self.registry = ResourceRegistry(
            resources,
            default_unit_cost=(
                settings.DEFAULT_UNIT_COST if default_unit_cost is None else default_unit_cost
            ),
            are_disabled=(
                settings.RESOURCES_DISABLED if resources_disabled is None else resources_disabled
            ),
        )
        self.trackers = ProgressTrackerEngine(
            activity_exists=lambda activity_id: activity_id in self.graph,
            resource_exists=lambda resource_id: resource_id in self.registry,
        )

        self.allocation_percentage = (
            settings.ALLOCATION_PERCENTAGE if allocation_percentage is None else allocation_percentage
        )
        self.use_business_days = (
            settings.USE_BUSINESS_DAYS if use_business_days is None else use_business_days
        )
        self.project_start = settings.PROJECT_START if project_start is None else project_start
        self.time_axis = time_axis or DateTimeCalculator()

        self.compiler = CriticalPathCompiler()
        self.arrow_converter = ArrowDiagramConverter()

        self._result: Optional[CompilationResult] = None
        # (graph, registry, trackers) versions the current result was built from
        self._compiled_versions: Optional[Tuple[int, int, int]] = None
        self._dirty = True
        self.as_of_time_index: Optional[int] = None

    @contextmanager
    def session(self):
        """Hold the engine lock for a compile-and-read sequence."""
        with self._lock:
            yield self

    # ------------------------------------------------------------------
    # Graph mutation
    # ------------------------------------------------------------------

    def add_activity(self, activity: Activity) -> "ProjectPlanEngine":
        """
        Add an activity to the project.

        Raises:
            NotFoundError: The activity names an unregistered resource
        """
        with self._lock:
            self.registry.check_ids(activity.resource_ids)
            self.graph.add_activity(activity)
            self._invalidate()
        return self

    def load(self, activities: Iterable[Activity]) -> "ProjectPlanEngine":
        """Add a batch of activities; all or nothing."""
        with self._lock:
            activities = list(activities)
            for activity in activities:
                self.registry.check_ids(activity.resource_ids)
            self.graph.load(activities)
            self._invalidate()
        return self

    def remove_activity(self, activity_id: int) -> Activity:
        with self._lock:
            activity = self.graph.remove_activity(activity_id)
            self.trackers.forget_activity(activity_id)
            self._invalidate()
        return activity

    def add_dependency(self, predecessor_id: int, successor_id: int) -> "ProjectPlanEngine":
        with self._lock:
            self.graph.add_dependency(predecessor_id, successor_id)
            self._invalidate()
        return self

    def remove_dependency(self, predecessor_id: int, successor_id: int) -> "ProjectPlanEngine":
        with self._lock:
            self.graph.remove_dependency(predecessor_id, successor_id)
            self._invalidate()
        return self

    def remove_dependencies(self, pairs: Iterable[Tuple[int, int]]) -> List[Rejection]:
        with self._lock:
            pairs = list(pairs)
            rejections = self.graph.remove_dependencies(pairs)
            if len(rejections) < len(pairs):
                self._invalidate()
        return rejections

    def set_duration(self, activity_id: int, duration: int) -> "ProjectPlanEngine":
        with self._lock:
            self.graph.set_duration(activity_id, duration)
            self._invalidate()
        return self

    def assign_resources(self, activity_id: int, resource_ids: Iterable[int]) -> "ProjectPlanEngine":
        with self._lock:
            resource_ids = list(resource_ids)
            self.registry.check_ids(resource_ids)
            self.graph.set_resources(activity_id, resource_ids)
            self._invalidate()
        return self

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def add_resource(self, resource: Resource) -> "ProjectPlanEngine":
        with self._lock:
            self.registry.add(resource)
            self._invalidate()
        return self

    def set_resource_disabled(self, resource_id: int, disabled: bool = True) -> "ProjectPlanEngine":
        with self._lock:
            self.registry.set_disabled(resource_id, disabled)
            self._invalidate()
        return self

    def set_resources_disabled(self, disabled: bool = True) -> "ProjectPlanEngine":
        """Switch every resource off (or back on) at once."""
        with self._lock:
            self.registry.are_disabled = bool(disabled)
            self._invalidate()
        return self

    # ------------------------------------------------------------------
    # Progress tracking
    # ------------------------------------------------------------------

    def apply_activity_tracker(self, record: ActivityTrackerRecord) -> ActivityProgress:
        """
        Apply one activity tracker record.

        Raises:
            NotFoundError: Unknown activity or resource; engine state unchanged
            OutOfOrderTrackingError: Record older than the latest applied one
        """
        with self._lock:
            progress = self.trackers.apply(record)
            self._invalidate()
        return progress

    def apply_activity_trackers(self, records: Iterable[ActivityTrackerRecord]) -> List[Rejection]:
        """Apply a batch; refused records are returned, the rest take effect."""
        with self._lock:
            before = self.trackers.version
            rejections = self.trackers.apply_many(records)
            if self.trackers.version != before:
                self._invalidate()
        return rejections

    def apply_resource_trackers(self, records: Iterable[ResourceTrackerRecord]) -> List[Rejection]:
        with self._lock:
            before = self.trackers.version
            rejections = self.trackers.apply_resource_records(records)
            if self.trackers.version != before:
                self._invalidate()
        return rejections

    def progress(self, activity_id: int) -> ActivityProgress:
        with self._lock:
            if activity_id not in self.graph:
                raise NotFoundError(f"Activity {activity_id} not found", key=activity_id)
            return self.trackers.progress(activity_id)

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    @property
    def is_dirty(self) -> bool:
        with self._lock:
            return self._is_stale()

    def recompile(self, as_of_time_index: Optional[int] = None) -> CompilationResult:
        """
        Run the critical path compiler and the resource scheduler, then derive
        a fresh arrow graph.

        Either everything is replaced at once or, if the compile fails, the
        previous result and arrow graph are left untouched.

        Args:
            as_of_time_index: Only use progress recorded at or before this
                time index; None uses the whole tracker history

        Raises:
            CycleError: If the activity graph is cyclic
        """
        with self._lock:
            progress = self.trackers.progress_as_of(as_of_time_index)
            compiled = self.compiler.compile(self.graph, progress)
            scheduler = ResourceScheduler(self.registry, self.allocation_percentage)
            result = scheduler.schedule(compiled)

            self.arrow_converter.derive(result)
            self._result = result
            self._compiled_versions = self._versions()
            self.as_of_time_index = as_of_time_index
            self._dirty = False
            logger.info(
                "Recompiled graph version %d: finish %d, leveled finish %d",
                self.graph.version,
                result.project_finish_time,
                result.leveled_finish_time,
            )
            return result

    @property
    def compilation_result(self) -> CompilationResult:
        """
        The current compilation result.

        Changes made straight on ``graph``, ``registry`` or ``trackers``
        count too, not only those made through the engine.

        Raises:
            StaleCompilationError: If anything changed since the last recompile()
        """
        with self._lock:
            if self._is_stale():
                raise StaleCompilationError(
                    "Compilation result is stale; call recompile() first"
                )
            return self._result

    @property
    def last_compilation_result(self) -> Optional[CompilationResult]:
        """Most recent result even if stale, for callers that can live with it."""
        with self._lock:
            return self._result

    @property
    def arrow_graph(self) -> ArrowGraph:
        """Cached arrow graph; check ``is_stale`` before trusting it."""
        with self._lock:
            if self._is_stale():
                self.arrow_converter.invalidate()
            return self.arrow_converter.arrow_graph

    @property
    def critical_path(self) -> Tuple[int, ...]:
        return self.compilation_result.critical_path

    # ------------------------------------------------------------------
    # Series
    # ------------------------------------------------------------------

    def series_aggregator(self, show_dates: Optional[bool] = None) -> SeriesAggregator:
        if show_dates is None:
            show_dates = settings.SHOW_DATES or self.project_start is not None
        return SeriesAggregator(
            self.registry,
            time_axis=self.time_axis,
            use_business_days=self.use_business_days,
            project_start=self.project_start if show_dates else None,
        )

    def resource_series(
        self,
        display_order: Optional[Sequence[int]] = None,
        cost: bool = False,
        include_total: bool = True,
        show_dates: Optional[bool] = None,
    ):
        """Title -> (time key, value) pairs for every scheduled resource."""
        with self._lock:
            return self.series_aggregator(show_dates).aggregate(
                self.compilation_result,
                display_order=display_order,
                cost=cost,
                include_total=include_total,
            )

    def _versions(self) -> Tuple[int, int, int]:
        return (self.graph.version, self.registry.version, self.trackers.version)

    def _is_stale(self) -> bool:
        return self._dirty or self._result is None or self._compiled_versions != self._versions()

    def _invalidate(self):
        self._dirty = True
        self.arrow_converter.invalidate()
