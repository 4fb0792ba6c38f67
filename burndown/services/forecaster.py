import logging
from datetime import date

from burndown.domain.diagnostics import Diagnostics
from burndown.domain.snapshot import COMPLETION_THRESHOLD
from burndown.services.date_resolver import build_gantt_bars, resolve_task_dates
from burndown.services.effort import remaining_from_progress, total_effort
from burndown.services.leveling import (
    HORIZON_MARGIN_DAYS,
    MAX_HORIZON_DAYS,
    TRIM_BUFFER_DAYS,
    simulate_burndown,
)
from burndown.services.reconciliation import (
    aggregate_metrics,
    compare_task_estimates,
    export_comparison_csv,
    summarize_scope_changes,
)
from burndown.services.velocity import (
    DEFAULT_TOLERANCE_PCT,
    DEFAULT_WINDOW_DAYS,
    calculate_velocity_metrics,
    compute_velocity,
    planned_velocity,
)
from burndown.utils.calendar import as_date
from burndown.utils.graph import (
    build_dependency_graph,
    dependency_depth,
    find_dependency_cycles,
)

logger = logging.getLogger(__name__)


class BurndownForecaster:
    """
    Holds a portfolio of projects and answers scheduling questions about them.

    The forecaster keeps tasks, their resource assignments and dependencies,
    each project's resource pools, and the append-only progress history. Every
    query recomputes from scratch; nothing derived is cached between calls.
    """

    def __init__(
        self,
        completion_threshold=COMPLETION_THRESHOLD,
        trim_buffer_days=TRIM_BUFFER_DAYS,
        horizon_margin_days=HORIZON_MARGIN_DAYS,
        max_horizon_days=MAX_HORIZON_DAYS,
        velocity_window_days=DEFAULT_WINDOW_DAYS,
        velocity_tolerance_pct=DEFAULT_TOLERANCE_PCT,
    ):
        self.completion_threshold = completion_threshold
        self.trim_buffer_days = trim_buffer_days
        self.horizon_margin_days = horizon_margin_days
        self.max_horizon_days = max_horizon_days
        self.velocity_window_days = velocity_window_days
        self.velocity_tolerance_pct = velocity_tolerance_pct

        self.projects = {}  # Dictionary of Project objects
        self.tasks = {}  # Dictionary of Task objects, in insertion order
        self.task_resources = {}  # Format: {task_id: [ResourceAssignment]}
        self.project_resources = {}  # Format: {project_id: [ProjectResourceAssignment]}
        self.snapshots = []  # Append-only ProgressSnapshot history
        self.milestones = []

    def add_project(self, project):
        """Add a project to the forecaster"""
        self.projects[project.id] = project
        return self

    def add_task(self, task):
        """Add a task to the forecaster"""
        self._require_project(task.project_id)
        self.tasks[task.id] = task
        self.task_resources.setdefault(task.id, [])
        return self

    def assign_resource_to_task(self, task_id, assignment):
        """Assign a resource type to a task, replacing any previous assignment of it."""
        self._require_task(task_id)
        assignments = [
            a
            for a in self.task_resources.get(task_id, [])
            if a.resource_id != assignment.resource_id
        ]
        assignments.append(assignment)
        self.task_resources[task_id] = assignments
        return self

    def add_dependency(self, task_id, depends_on_task_id):
        """Make `task_id` wait for `depends_on_task_id`."""
        self._require_task(task_id)
        self._require_task(depends_on_task_id)
        self.tasks[task_id].add_dependency(depends_on_task_id)
        return self

    def remove_dependency(self, task_id, depends_on_task_id):
        self._require_task(task_id)
        self.tasks[task_id].remove_dependency(depends_on_task_id)
        return self

    def assign_resource_to_project(self, project_id, assignment):
        """Set the size of a resource pool available to a project."""
        self._require_project(project_id)
        assignments = [
            a
            for a in self.project_resources.get(project_id, [])
            if a.resource_id != assignment.resource_id
        ]
        assignments.append(assignment)
        self.project_resources[project_id] = assignments
        return self

    def add_snapshot(self, snapshot):
        """
        Record a progress snapshot.

        History is append-only, but there is at most one snapshot per task per
        day: a second snapshot for the same day supersedes the first.
        """
        self._require_task(snapshot.task_id)
        kept = [
            s
            for s in self.snapshots
            if not (s.task_id == snapshot.task_id and s.date == snapshot.date)
        ]
        if len(kept) != len(self.snapshots):
            logger.debug(
                "Replacing snapshot of task %s on %s", snapshot.task_id, snapshot.date
            )
        kept.append(snapshot)
        self.snapshots = kept
        return self

    def add_milestone(self, milestone):
        self._require_project(milestone.project_id)
        self.milestones.append(milestone)
        return self

    def _require_task(self, task_id):
        if task_id not in self.tasks:
            raise ValueError(f"Task {task_id} not found in the project")

    def _require_project(self, project_id):
        if project_id not in self.projects:
            raise ValueError(f"Project {project_id} not found")

    # Store-style lookups

    def get_project_tasks(self, project_id):
        return [task for task in self.tasks.values() if task.project_id == project_id]

    def get_task_resources(self, task_id):
        return list(self.task_resources.get(task_id, []))

    def get_task_dependencies(self, task_id):
        """Prerequisite Task objects of a task (unknown ids are left out)."""
        self._require_task(task_id)
        return [
            self.tasks[dep_id]
            for dep_id in self.tasks[task_id].dependencies
            if dep_id in self.tasks
        ]

    def get_project_resources(self, project_id):
        return list(self.project_resources.get(project_id, []))

    def get_snapshots(self, project_id=None, task_id=None):
        return [
            s
            for s in self.snapshots
            if (project_id is None or s.project_id == project_id)
            and (task_id is None or s.task_id == task_id)
        ]

    def get_milestones(self, project_id):
        return sorted(
            (m for m in self.milestones if m.project_id == project_id),
            key=lambda m: m.date,
        )

    def _dependency_ids(self, task_id):
        return list(self.tasks[task_id].dependencies)

    def _project_start(self, project_id):
        project = self.projects.get(project_id)
        return project.start_date if project is not None else None

    def _today(self, today):
        return as_date(today) if today is not None else date.today()

    # Scheduling queries

    def resolve_task_dates(self, project_id, today=None, diagnostics=None):
        """Resolved {task_id: TaskDates} for the project's tasks."""
        return resolve_task_dates(
            self.get_project_tasks(project_id),
            self._dependency_ids,
            self.get_task_resources,
            self.get_project_resources(project_id),
            self._project_start(project_id),
            self.get_snapshots(project_id),
            self._today(today),
            diagnostics,
        )

    def gantt_bars(self, project_id, today=None):
        today = self._today(today)
        tasks = self.get_project_tasks(project_id)
        return build_gantt_bars(
            tasks,
            self.resolve_task_dates(project_id, today),
            self.get_task_resources,
            self.get_snapshots(project_id),
            today,
        )

    def simulate_burndown(self, project_id, today=None):
        """Planned and actual-informed burndown projection for a project."""
        return simulate_burndown(
            self.get_project_tasks(project_id),
            self._dependency_ids,
            self.get_task_resources,
            self.get_project_resources(project_id),
            self.get_snapshots(project_id),
            self._today(today),
            project_start_date=self._project_start(project_id),
            completion_threshold=self.completion_threshold,
            trim_buffer_days=self.trim_buffer_days,
            horizon_margin_days=self.horizon_margin_days,
            max_horizon_days=self.max_horizon_days,
        )

    def compare_estimates(self, project_id, today=None):
        """Estimate comparisons as of today; later snapshots are not counted."""
        today = self._today(today)
        project = self.projects.get(project_id)
        title = project.title if project is not None else str(project_id)
        snapshots = self.get_snapshots(project_id)
        return [
            compare_task_estimates(
                task, self.get_task_resources(task.id), snapshots, title, today
            )
            for task in self.get_project_tasks(project_id)
        ]

    def export_estimates_csv(self, project_id, today=None):
        return export_comparison_csv(self.compare_estimates(project_id, today))

    def scope_changes(self, project_id):
        return summarize_scope_changes(
            self.get_project_tasks(project_id), self.get_snapshots(project_id)
        )

    def planned_velocity(self, project_id):
        return planned_velocity(self.get_project_resources(project_id))

    def current_remaining_work(self, project_id, today=None):
        """Latest recorded remaining work of the project, progress-derived where unrecorded."""
        return sum(c.current_remaining for c in self.compare_estimates(project_id, today))

    def velocity(self, project_id, today=None):
        return compute_velocity(
            self.get_snapshots(project_id),
            self.velocity_window_days,
            self.planned_velocity(project_id),
            self._today(today),
            self.velocity_tolerance_pct,
        )

    def velocity_metrics(self, project_id, today=None):
        return calculate_velocity_metrics(
            self.get_snapshots(project_id),
            self.current_remaining_work(project_id, today),
            self.planned_velocity(project_id),
            today=self._today(today),
            window_days=self.velocity_window_days,
            tolerance_pct=self.velocity_tolerance_pct,
        )

    def check_dependencies(self, project_id):
        """
        Inspect the dependency graph of a project.

        Returns:
            dict: cycles (lists of task ids), depth of the longest chain
            (None with cycles), and the Diagnostics gathered while building it
        """
        diagnostics = Diagnostics()
        graph = build_dependency_graph(
            self.get_project_tasks(project_id), self._dependency_ids, diagnostics
        )
        return {
            "cycles": find_dependency_cycles(graph),
            "depth": dependency_depth(graph),
            "diagnostics": diagnostics,
        }

    def report(self, project_id, today=None):
        """
        Headline numbers for a project as of today.

        Returns:
            dict: planned and actual-informed completion dates, remaining
            work, velocity, estimate health and any diagnostics
        """
        today = self._today(today)
        projection = self.simulate_burndown(project_id, today)
        comparisons = self.compare_estimates(project_id, today)
        metrics = self.velocity_metrics(project_id, today)

        original = sum(
            total_effort(self.get_task_resources(task.id))
            for task in self.get_project_tasks(project_id)
        )
        planned_remaining = sum(
            0.0
            if task.is_done
            else remaining_from_progress(
                total_effort(self.get_task_resources(task.id)), task.progress
            )
            for task in self.get_project_tasks(project_id)
        )

        return {
            "project_id": project_id,
            "today": today,
            "original_estimate": original,
            "planned_remaining": planned_remaining,
            "planned_completion": projection.completion_date,
            "actual_informed_completion": projection.actual_completion_date,
            "velocity": metrics,
            "estimates": aggregate_metrics(comparisons),
            "scope_changes": self.scope_changes(project_id),
            "diagnostics": list(projection.diagnostics),
        }
