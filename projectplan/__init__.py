"""
Project Planning Engine
=======================

Critical path scheduling, resource leveling and progress tracking for
networks of dependent activities.

Available modules:
- domain: activities, resources, tracker records and compiled results
- services: compiler, resource scheduler, tracker engine, arrow converter,
  series aggregator and the ProjectPlanEngine facade
- utils: graph passes, time axis conversion and logging setup
"""

from projectplan.domain.activity import Activity, ActivityStatus, CompiledActivity
from projectplan.domain.activity_graph import ActivityGraph
from projectplan.domain.errors import (
    CycleError,
    DuplicateIdError,
    DuplicateTrackerRecordError,
    InvalidDurationError,
    InvalidPercentageError,
    NotFoundError,
    OutOfOrderTrackingError,
    ProjectPlanError,
    StaleCompilationError,
)
from projectplan.domain.resource import Resource, ResourceRegistry
from projectplan.domain.tracker import ActivityTrackerRecord, ResourceTrackerRecord
from projectplan.services.engine import ProjectPlanEngine

__all__ = [
    "Activity",
    "ActivityStatus",
    "CompiledActivity",
    "ActivityGraph",
    "Resource",
    "ResourceRegistry",
    "ActivityTrackerRecord",
    "ResourceTrackerRecord",
    "ProjectPlanEngine",
    "ProjectPlanError",
    "CycleError",
    "DuplicateIdError",
    "DuplicateTrackerRecordError",
    "InvalidDurationError",
    "InvalidPercentageError",
    "NotFoundError",
    "OutOfOrderTrackingError",
    "StaleCompilationError",
]
