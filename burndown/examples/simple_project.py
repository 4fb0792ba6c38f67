from datetime import date
from burndown.domain.task import (
    Project,
    ProjectResourceAssignment,
    ResourceAssignment,
    Task,
)
from burndown.domain.snapshot import Milestone, ProgressSnapshot
from burndown.services.forecaster import BurndownForecaster
from burndown.visualization.burndown_chart import create_burndown_chart


def create_sample_project(today=None, output="burndown_example.png", show=False):
    today = today or date(2025, 4, 10)

    forecaster = BurndownForecaster()
    forecaster.add_project(Project("P1", "Website Relaunch", start_date=date(2025, 4, 1)))

    # Project staffing: two developers at 80% focus, one tester full time
    forecaster.assign_resource_to_project("P1", ProjectResourceAssignment("dev", 2, 80))
    forecaster.assign_resource_to_project("P1", ProjectResourceAssignment("qa", 1, 100))

    # Create tasks
    design = Task("T1", "Design", "P1", status="Done", progress=100, color="#0ea5e9")
    build = Task("T2", "Build", "P1", status="In Progress", progress=20, color="#6366f1")
    test = Task("T3", "Test", "P1", color="#f97316")
    docs = Task("T4", "Docs", "P1", color="#84cc16")

    for task in (design, build, test, docs):
        forecaster.add_task(task)

    forecaster.add_dependency("T2", "T1")  # Build waits for Design
    forecaster.add_dependency("T3", "T2")  # Test waits for Build

    forecaster.assign_resource_to_task("T1", ResourceAssignment("dev", 6))
    forecaster.assign_resource_to_task("T2", ResourceAssignment("dev", 10, number_of_profiles=2))
    forecaster.assign_resource_to_task("T3", ResourceAssignment("qa", 4))
    forecaster.assign_resource_to_task("T4", ResourceAssignment("qa", 2))

    # Progress history
    forecaster.add_snapshot(ProgressSnapshot("T1", "P1", "2025-04-03", 4, 50))
    forecaster.add_snapshot(ProgressSnapshot("T1", "P1", "2025-04-07", 0, 100, status="Done"))
    forecaster.add_snapshot(
        ProgressSnapshot(
            "T2", "P1", "2025-04-09", 9, 20, notes="API contract grew", focus_factors={"dev": 70}
        )
    )

    forecaster.add_milestone(Milestone("P1", "Beta", date(2025, 4, 25)))

    report = forecaster.report("P1", today)
    projection = forecaster.simulate_burndown("P1", today)

    if output:
        create_burndown_chart(
            projection,
            output,
            show=show,
            title="Website Relaunch Burndown",
            milestones=forecaster.get_milestones("P1"),
            velocity=report["velocity"],
            task_colors={task.id: task.color for task in forecaster.get_project_tasks("P1")},
        )

    # Print report
    print("Burndown Forecast Report")
    print("========================")
    print(f"Status date: {today.strftime('%Y-%m-%d')}")
    print(f"Original estimate: {report['original_estimate']:.1f} person-days")
    print(f"Planned remaining: {report['planned_remaining']:.1f} person-days")

    for label, key in (
        ("Planned completion", "planned_completion"),
        ("Forecast completion", "actual_informed_completion"),
    ):
        value = report[key]
        print(f"{label}: {value.strftime('%Y-%m-%d') if value else 'not within horizon'}")

    velocity = report["velocity"]
    print("\nVelocity:")
    print(f"  Planned: {velocity.planned_velocity:.2f} person-days/day")
    print(f"  Recent: {velocity.recent_velocity:.2f} person-days/day ({velocity.velocity_trend})")
    print(f"  Confidence: {velocity.confidence_level}")

    print("\nTask Dates:")
    for bar in forecaster.gantt_bars("P1", today):
        scope_str = f" (+{bar.scope_increase:.1f}d scope)" if bar.has_scope_increase else ""
        print(f"  {bar.task_id}: {bar.title} {bar.start} -> {bar.visual_end}{scope_str}")

    estimates = report["estimates"]
    print("\nEstimate Health:")
    print(f"  On track: {estimates['on_track_count']}")
    print(f"  Scope creep: {estimates['scope_creep_count']}")
    print(f"  Major issues: {estimates['major_issues_count']}")

    if report["diagnostics"]:
        print("\nDiagnostics:")
        for entry in report["diagnostics"]:
            print(f"  [{entry['kind']}] {entry['message']}")

    return forecaster


if __name__ == "__main__":
    create_sample_project()
