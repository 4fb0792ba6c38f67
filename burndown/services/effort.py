"""
Effort model: turns resource assignments into task effort and duration.

Effort is measured in person-days. A resource type's throughput on a task is
number_of_profiles * focus_factor / 100 person-days per working day; distinct
resource types work in parallel, so a task lasts as long as its slowest one.
"""

from math import ceil

DEFAULT_FOCUS_FACTOR = 100.0


def ceil_days(value):
    """Round a fractional day count up, ignoring float noise such as 10.000000000000002."""
    return ceil(round(value, 9))


def find_project_resource(project_resources, resource_id):
    """Return the project-level assignment for a resource type, if any."""
    for project_resource in project_resources or []:
        if project_resource.resource_id == resource_id:
            return project_resource
    return None


def resolve_focus_factor(assignment, project_resources=None):
    """
    Focus factor (0-100) that applies to a task assignment.

    The task-level value wins, then the project's value for that resource
    type, then 100. Zero counts as unset at every level so it can never turn
    into a division by zero.
    """
    if assignment.focus_factor:
        return assignment.focus_factor
    project_resource = find_project_resource(project_resources, assignment.resource_id)
    if project_resource is not None and project_resource.focus_factor:
        return project_resource.focus_factor
    return DEFAULT_FOCUS_FACTOR


def total_effort(assignments):
    """Original estimate of a task: the sum of its assignments' person-days."""
    return sum(assignment.estimated_days for assignment in assignments or [])


def remaining_from_progress(effort, progress):
    """Remaining person-days implied by a completion percentage."""
    return effort * (1 - progress / 100)


def daily_throughput(assignments, project_resources=None):
    """Person-days the task's assigned profiles burn per working day."""
    return sum(
        assignment.number_of_profiles
        * (resolve_focus_factor(assignment, project_resources) / 100)
        for assignment in assignments or []
    )


def uses_snapshot(snapshot):
    """Only a snapshot showing started, unfinished work overrides the estimate."""
    return (
        snapshot is not None
        and snapshot.progress > 0
        and snapshot.remaining_estimate > 0
    )


def task_duration(assignments, project_resources=None, snapshot=None):
    """
    Working days a task needs.

    With a usable snapshot the whole team burns the reported remaining
    estimate together. Otherwise each resource type finishes its own
    estimate independently and the slowest one gates the task. A task
    without assignments takes one day.

    Args:
        assignments: The task's ResourceAssignment list
        project_resources: The project's ProjectResourceAssignment list
        snapshot: Latest ProgressSnapshot for the task as of today, if any

    Returns:
        int: Duration in working days
    """
    if uses_snapshot(snapshot):
        throughput = daily_throughput(assignments, project_resources)
        remaining = snapshot.remaining_estimate
        if throughput > 0:
            return ceil_days(remaining / throughput)
        return ceil_days(remaining)

    if not assignments:
        return 1

    resource_durations = []
    for assignment in assignments:
        focus = resolve_focus_factor(assignment, project_resources) / 100
        resource_durations.append(
            assignment.estimated_days / (assignment.number_of_profiles * focus)
        )
    return ceil_days(max(resource_durations))
