from datetime import date

from projectplan.domain.activity import Activity
from projectplan.domain.resource import Resource
from projectplan.domain.tracker import ActivityTrackerRecord, ResourceTrackerRecord
from projectplan.services.engine import ProjectPlanEngine


def create_sample_project(cost=False):
    # Define resources
    resources = [
        Resource(1, "Red", unit_cost=400),
        Resource(2, "Green", unit_cost=350),
        Resource(3, "Magenta", unit_cost=500),
        Resource(4, "Blue", unit_cost=300),
    ]

    # Create activities
    activities = [
        Activity(1, "T1.1", duration=4, resource_ids=[1]),
        Activity(2, "T1.2", duration=3, resource_ids=[2], predecessor_ids=[1]),
        Activity(3, "T3", duration=5, resource_ids=[3], predecessor_ids=[5, 2]),
        Activity(4, "T2.1", duration=4, resource_ids=[4]),
        Activity(5, "T2.2", duration=2, resource_ids=[2], predecessor_ids=[4]),
    ]

    start_date = date(2025, 4, 1)
    engine = ProjectPlanEngine(resources=resources, project_start=start_date)
    engine.load(activities)

    # Plan before any work is reported
    planned = engine.recompile()

    # Two days of progress
    rejections = engine.apply_resource_trackers(
        [
            ResourceTrackerRecord.from_percentages(1, 0, {1: 25}),
            ResourceTrackerRecord.from_percentages(4, 0, {4: 25}),
            ResourceTrackerRecord.from_percentages(1, 1, {1: 25}),
            ResourceTrackerRecord.from_percentages(4, 1, {4: 50}),
        ]
    )
    rejections += engine.apply_activity_trackers(
        [ActivityTrackerRecord(4, 2, 25, resource_id=4)]
    )
    result = engine.recompile()

    # Print report
    print("Project Plan Report")
    print("===================")
    print(f"Project Start Date: {start_date.strftime('%Y-%m-%d')}")
    print(f"Planned finish: {planned.project_finish_time} days")
    print(f"Current finish: {result.project_finish_time} days")
    print(f"Leveled finish: {result.leveled_finish_time} days")

    print("\nCritical Path:")
    for activity_id in result.critical_path:
        activity = result.activity(activity_id)
        print(
            f"  Activity {activity.id}: {activity.name} - "
            f"ES {activity.earliest_start}, EF {activity.earliest_finish}"
        )

    print("\nActivities:")
    for activity in result.activities:
        print(
            f"  {activity.name}: {activity.status.value} "
            f"({activity.percentage_complete}%), float {activity.total_float}"
        )

    print("\nResource Schedules:")
    for schedule in result.resource_schedules:
        rows = ", ".join(
            f"{row.activity_id}@[{row.start},{row.finish})" for row in schedule.rows
        )
        print(f"  {engine.registry.get(schedule.resource_id).name}: {rows}")

    arrow_graph = engine.arrow_graph
    print(
        f"\nArrow Diagram: {len(arrow_graph.nodes)} events, "
        f"{len(arrow_graph.activity_edges)} activities, "
        f"{len(arrow_graph.dummy_edges)} dummies"
    )

    print("\nResource Series:")
    for title, points in engine.resource_series(cost=cost).items():
        values = " ".join(f"{value:g}" for _, value in points)
        print(f"  {title}: {values}")

    if rejections:
        print("\nRejected records:")
        for rejection in rejections:
            print(f"  {rejection.record}: {rejection.error}")

    return engine


if __name__ == "__main__":
    create_sample_project()
