import logging
from collections import namedtuple

from burndown.domain.diagnostics import CYCLE, MISSING_DEPENDENCY, Diagnostics
from burndown.domain.snapshot import latest_snapshot
from burndown.services.effort import ceil_days, task_duration, uses_snapshot
from burndown.services.reconciliation import latest_scope_increase
from burndown.utils.calendar import (
    add_working_days,
    as_date,
    skip_to_next_weekday,
)
from burndown.utils.graph import as_lookup, dependency_ids

logger = logging.getLogger(__name__)

TaskDates = namedtuple("TaskDates", ["start", "end"])

STATUS_COLORS = {
    "Todo": "#B3B3BA",
    "In Progress": "#f59e0b",
    "Done": "#10b981",
}


class DateResolver:
    """
    Resolves start and end dates for every task of one schedule.

    One resolver instance is one resolution pass: it owns the memo table and
    the recursion stack, so two resolutions over different inputs never share
    state.
    """

    def __init__(
        self,
        tasks,
        dependencies_of,
        resource_assignments_of,
        project_resources,
        project_start_date,
        snapshots,
        today,
        diagnostics=None,
    ):
        self.tasks = {task.id: task for task in tasks}
        self.task_order = [task.id for task in tasks]
        self.dependencies_of = as_lookup(dependencies_of)
        self.resource_assignments_of = as_lookup(resource_assignments_of)
        self.project_resources = list(project_resources or [])
        self.project_start_date = (
            as_date(project_start_date) if project_start_date is not None else None
        )
        self.today = as_date(today)
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

        # Only history recorded on or before today informs the schedule
        self.current_snapshots = {}
        for task_id in self.task_order:
            snapshot = latest_snapshot(snapshots or [], task_id, as_of=self.today)
            if snapshot is not None:
                self.current_snapshots[task_id] = snapshot

        self.resolved = {}
        self._visiting = set()

    def resolve_all(self):
        """Resolve every task, in input order; returns {task_id: TaskDates}."""
        for task_id in self.task_order:
            self.resolve(task_id)
        return {task_id: self.resolved[task_id] for task_id in self.task_order}

    def resolve(self, task_id):
        """
        Resolve one task, resolving its prerequisites first.

        Returns None only when the task is already on the recursion stack,
        i.e. when the caller reached it through a dependency cycle.
        """
        if task_id in self.resolved:
            return self.resolved[task_id]
        if task_id in self._visiting:
            return None

        task = self.tasks[task_id]
        self._visiting.add(task_id)
        try:
            dependency_ends = []
            for dep_id in dependency_ids(self.dependencies_of(task_id)):
                if dep_id not in self.tasks:
                    self.diagnostics.warn(
                        MISSING_DEPENDENCY,
                        f"Task {task_id} depends on unknown task {dep_id}; dependency ignored",
                        task_id=task_id,
                        dependency_id=dep_id,
                    )
                    continue
                dep_dates = self.resolve(dep_id)
                if dep_dates is None:
                    self.diagnostics.warn(
                        CYCLE,
                        f"Dependency cycle through {dep_id} -> {task_id}; edge ignored",
                        task_id=task_id,
                        dependency_id=dep_id,
                    )
                    continue
                dependency_ends.append(dep_dates.end)

            if dependency_ends:
                earliest_start = max(dependency_ends)
            else:
                earliest_start = skip_to_next_weekday(self._unconstrained_start(task))

            snapshot = self.current_snapshots.get(task_id)
            if uses_snapshot(snapshot):
                # Work in progress continues from today, never from the past
                earliest_start = max(earliest_start, skip_to_next_weekday(self.today))

            duration = task_duration(
                self.resource_assignments_of(task_id), self.project_resources, snapshot
            )
            result = TaskDates(earliest_start, add_working_days(earliest_start, duration))
        finally:
            self._visiting.discard(task_id)

        self.resolved[task_id] = result
        logger.debug("Resolved %s: %s -> %s", task_id, result.start, result.end)
        return result

    def _unconstrained_start(self, task):
        if task.start_date is not None:
            return task.start_date
        if self.project_start_date is not None:
            return self.project_start_date
        return self.today


def resolve_task_dates(
    tasks,
    dependencies_of,
    resource_assignments_of,
    project_resources,
    project_start_date,
    snapshots,
    today,
    diagnostics=None,
):
    """
    Compute {task_id: TaskDates(start, end)} for a set of tasks.

    Args:
        tasks: Task objects, in display order
        dependencies_of: Mapping or callable giving the prerequisite ids of a task
        resource_assignments_of: Mapping or callable giving a task's ResourceAssignments
        project_resources: The project's ProjectResourceAssignment list
        project_start_date: Fallback start for tasks without an explicit start
        snapshots: ProgressSnapshot history; only records on or before today are used
        today: The reference day
        diagnostics: Optional Diagnostics collecting cycles and dangling ids

    Returns:
        dict: Resolved dates keyed by task id, in the order of `tasks`
    """
    resolver = DateResolver(
        tasks,
        dependencies_of,
        resource_assignments_of,
        project_resources,
        project_start_date,
        snapshots,
        today,
        diagnostics,
    )
    return resolver.resolve_all()


class GanttBar:
    """Display-ready schedule row for one task."""

    def __init__(
        self, task, start, end, visual_end, scope_increase, is_past, color
    ):
        self.task_id = task.id
        self.title = task.title
        self.status = task.status
        self.progress = task.progress
        self.start = start
        self.end = end
        self.visual_end = visual_end
        self.scope_increase = scope_increase
        self.is_past = is_past
        self.color = color

    @property
    def has_scope_increase(self):
        return self.scope_increase > 0

    def __repr__(self):
        return f"GanttBar(task_id={self.task_id!r}, start={self.start}, end={self.visual_end})"


def build_gantt_bars(tasks, task_dates, resource_assignments_of, snapshots, today):
    """
    Turn resolved dates into Gantt rows.

    A task whose latest snapshot reports more remaining work than its progress
    implies gets its bar stretched by that many extra working days (rounded up).
    """
    lookup = as_lookup(resource_assignments_of)
    today = as_date(today)
    bars = []
    for task in tasks:
        dates = task_dates.get(task.id)
        if dates is None:
            continue

        scope_increase = latest_scope_increase(
            task, lookup(task.id), snapshots or [], today
        )
        visual_end = dates.end
        if scope_increase > 0:
            visual_end = add_working_days(dates.end, ceil_days(scope_increase))

        color = task.color or STATUS_COLORS.get(task.status, STATUS_COLORS["Todo"])
        bars.append(
            GanttBar(
                task,
                dates.start,
                dates.end,
                visual_end,
                scope_increase,
                dates.end < today,
                color,
            )
        )
    return bars