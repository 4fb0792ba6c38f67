import logging
from bisect import bisect_right
from datetime import timedelta

from burndown.domain.diagnostics import STALLED, UNSTAFFED_RESOURCE, Diagnostics
from burndown.domain.snapshot import (
    COMPLETION_THRESHOLD,
    latest_snapshot,
    snapshots_by_task,
)
from burndown.services.date_resolver import resolve_task_dates
from burndown.services.effort import remaining_from_progress, total_effort
from burndown.services.reconciliation import scope_series_by_task
from burndown.utils.calendar import as_date, each_day, is_working_day
from burndown.utils.graph import as_lookup, build_dependency_graph, order_tasks

logger = logging.getLogger(__name__)

TRIM_BUFFER_DAYS = 5
HORIZON_MARGIN_DAYS = 30
MAX_HORIZON_DAYS = 3650


class SimulationRun:
    """
    Day-by-day record of one leveling simulation.

    remaining_by_task holds one value per simulated day for every task,
    totals the summed remaining work, and allocations, per day, which task
    received each resource type's capacity as {resource_id: (task_id, amount)}.
    """

    def __init__(self, start, task_ids):
        self.start = start
        self.days = []
        self.remaining_by_task = {task_id: [] for task_id in task_ids}
        self.totals = []
        self.allocations = []
        self.completion_day_index = -1
        self.stalled = False
        self.blocked_tasks = []

    @property
    def is_complete(self):
        return self.completion_day_index != -1

    def record(self, day, remaining, allocation):
        self.days.append(day)
        for task_id, values in self.remaining_by_task.items():
            values.append(remaining[task_id])
        self.totals.append(sum(remaining[task_id] for task_id in self.remaining_by_task))
        self.allocations.append(allocation)


class LevelingSimulator:
    """
    Resource-leveling simulation over working days.

    Every working day each project resource type spends its whole daily
    capacity on the first workable task (in task order) that needs it and
    still has work left. A resource is never split between tasks on the same
    day, and capacity nobody can use that day is lost.
    """

    def __init__(
        self,
        ordered_tasks,
        dependencies,
        task_resource_types,
        resource_capacity,
        completion_threshold=COMPLETION_THRESHOLD,
        horizon_margin_days=HORIZON_MARGIN_DAYS,
        max_horizon_days=MAX_HORIZON_DAYS,
        trim_buffer_days=TRIM_BUFFER_DAYS,
    ):
        """
        Args:
            ordered_tasks: Tasks in allocation priority order
            dependencies: {task_id: [prerequisite ids]} (known, acyclic edges only)
            task_resource_types: {task_id: [resource ids the task needs]}
            resource_capacity: {resource_id: person-days per working day}, in
                project assignment order
            completion_threshold: Remaining work at or below which a task is done
            horizon_margin_days: Days added each time the horizon is extended
            max_horizon_days: Hard cap on the number of simulated days
            trim_buffer_days: Days kept after completion before stopping
        """
        self.ordered_tasks = list(ordered_tasks)
        self.task_ids = [task.id for task in self.ordered_tasks]
        self.dependencies = dependencies
        self.task_resource_types = task_resource_types
        self.resource_capacity = resource_capacity
        self.completion_threshold = completion_threshold
        self.horizon_margin_days = horizon_margin_days
        self.max_horizon_days = max_horizon_days
        self.trim_buffer_days = trim_buffer_days

    def workable_tasks(self, remaining, completed):
        """Tasks not yet completed whose prerequisites are all completed."""
        return [
            task_id
            for task_id in self.task_ids
            if task_id not in completed
            and all(dep_id in completed for dep_id in self.dependencies.get(task_id, []))
        ]

    def allocate(self, workable, remaining):
        """
        Hand each resource type's full capacity to one task.

        Returns:
            tuple: ({task_id: work}, {resource_id: (task_id, capacity)})
        """
        work_done = {}
        allocation = {}
        for resource_id, capacity in self.resource_capacity.items():
            for task_id in workable:
                if (
                    resource_id in self.task_resource_types.get(task_id, [])
                    and remaining[task_id] > 0
                ):
                    work_done[task_id] = work_done.get(task_id, 0.0) + capacity
                    allocation[resource_id] = (task_id, capacity)
                    break
        return work_done, allocation

    def step(self, remaining, completed):
        """
        Simulate one working day in place.

        Returns:
            tuple: (allocation, progressed) where progressed is False when the
            day changed nothing, which means no later day ever will either
        """
        workable = self.workable_tasks(remaining, completed)
        work_done, allocation = self.allocate(workable, remaining)

        progressed = False
        for task_id in workable:
            work = work_done.get(task_id, 0.0)
            remaining[task_id] = max(0.0, remaining[task_id] - work)
            if work > 0:
                progressed = True
            if remaining[task_id] <= self.completion_threshold:
                remaining[task_id] = 0.0
                completed.add(task_id)
                progressed = True
        return allocation, progressed

    def run(self, start, seed_remaining, completed, min_end, simulate_first_day=True):
        """
        Simulate from `start` until at least `min_end`.

        The horizon grows by horizon_margin_days while the work is unfinished,
        until completion, a stall, or max_horizon_days. Once complete, the run
        keeps going for trim_buffer_days so the finish can be displayed.

        Args:
            start: First day of the run
            seed_remaining: {task_id: remaining person-days} at the start
            completed: Task ids already complete at the start
            min_end: Last day the run must cover
            simulate_first_day: False records `start` as-is, without work

        Returns:
            SimulationRun
        """
        completed = set(completed)
        # Completed tasks carry no leftover below the threshold
        remaining = {
            task_id: 0.0 if task_id in completed else seed_remaining.get(task_id, 0.0)
            for task_id in self.task_ids
        }
        run = SimulationRun(start, self.task_ids)

        last_allowed = start + timedelta(days=self.max_horizon_days - 1)
        end = min(max(min_end, start), last_allowed)
        day = start

        while True:
            if day > end:
                if run.is_complete or run.stalled or end >= last_allowed:
                    break
                end = min(end + timedelta(days=self.horizon_margin_days), last_allowed)
                continue

            allocation = {}
            if (day > start or simulate_first_day) and is_working_day(day):
                allocation, progressed = self.step(remaining, completed)
                total = sum(remaining.values())
                if not progressed and total > self.completion_threshold and not run.stalled:
                    run.stalled = True
                    run.blocked_tasks = [t for t in self.task_ids if t not in completed]

            run.record(day, remaining, allocation)

            if not run.is_complete and run.totals[-1] <= self.completion_threshold:
                run.completion_day_index = len(run.days) - 1
                end = min(
                    max(end, day + timedelta(days=self.trim_buffer_days)), last_allowed
                )

            day += timedelta(days=1)

        return run


class BurndownProjection:
    """
    Planned and actual-informed burndown over a shared day axis.

    Series are lists aligned with `days`. actual_informed_series holds None
    before today; historical_series holds None on days without snapshots.
    Completion indexes are -1 when the work never finishes within the horizon.
    """

    def __init__(
        self,
        days=None,
        theoretical_series=None,
        actual_informed_series=None,
        per_task_series=None,
        actual_per_task_series=None,
        historical_series=None,
        scope_series=None,
        completion_day_index=-1,
        actual_completion_day_index=-1,
        today_index=-1,
        allocations=None,
        task_dates=None,
        diagnostics=None,
    ):
        self.days = days or []
        self.theoretical_series = theoretical_series or []
        self.actual_informed_series = actual_informed_series or []
        self.per_task_series = per_task_series or {}
        self.actual_per_task_series = actual_per_task_series or {}
        self.historical_series = historical_series or []
        self.scope_series = scope_series or {}
        self.completion_day_index = completion_day_index
        self.actual_completion_day_index = actual_completion_day_index
        self.today_index = today_index
        self.allocations = allocations or []
        self.task_dates = task_dates or {}
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    @property
    def completion_date(self):
        if self.completion_day_index < 0:
            return None
        return self.days[self.completion_day_index]

    @property
    def actual_completion_date(self):
        if self.actual_completion_day_index < 0:
            return None
        return self.days[self.actual_completion_day_index]

    def trim(self, end_index):
        """Cut every series to the first `end_index` days."""
        self.days = self.days[:end_index]
        self.theoretical_series = self.theoretical_series[:end_index]
        self.actual_informed_series = self.actual_informed_series[:end_index]
        self.historical_series = self.historical_series[:end_index]
        self.allocations = self.allocations[:end_index]
        for series in (self.per_task_series, self.actual_per_task_series, self.scope_series):
            for task_id in series:
                series[task_id] = series[task_id][:end_index]

    def to_dict(self):
        return {
            "days": list(self.days),
            "theoretical_series": list(self.theoretical_series),
            "actual_informed_series": list(self.actual_informed_series),
            "per_task_series": {k: list(v) for k, v in self.per_task_series.items()},
            "historical_series": list(self.historical_series),
            "scope_series": {k: list(v) for k, v in self.scope_series.items()},
            "completion_day_index": self.completion_day_index,
            "actual_completion_day_index": self.actual_completion_day_index,
            "today_index": self.today_index,
        }


def _pad(values, length):
    """Extend a series by repeating its last value; state is frozen after a run ends."""
    if not values:
        return [0.0] * length
    return values + [values[-1]] * (length - len(values))


def simulate_burndown(
    tasks,
    dependencies_of,
    resource_assignments_of,
    project_resources,
    snapshots,
    today,
    project_start_date=None,
    diagnostics=None,
    completion_threshold=COMPLETION_THRESHOLD,
    trim_buffer_days=TRIM_BUFFER_DAYS,
    horizon_margin_days=HORIZON_MARGIN_DAYS,
    max_horizon_days=MAX_HORIZON_DAYS,
):
    """
    Project the burndown of a set of tasks under resource contention.

    Two independent leveling runs share one day axis, starting at the
    earliest resolved task start:

    - the theoretical run starts there, seeded with the progress-derived
      remaining work of each task and ignoring snapshot history;
    - the actual-informed run starts today, seeded from each task's latest
      snapshot on or before today (progress-derived when there is none).

    Every series is then trimmed to five days past the later completion.

    Args:
        tasks: Task objects, in priority order
        dependencies_of: Mapping or callable giving a task's prerequisite ids
        resource_assignments_of: Mapping or callable giving a task's ResourceAssignments
        project_resources: The project's ProjectResourceAssignment list
        snapshots: ProgressSnapshot history
        today: The reference day
        project_start_date: Fallback start for tasks without an explicit start
        diagnostics: Optional Diagnostics to collect anomalies into

    Returns:
        BurndownProjection
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    today = as_date(today)
    tasks = list(tasks)
    snapshots = list(snapshots or [])

    if not tasks:
        return BurndownProjection(diagnostics=diagnostics)

    dependencies_of = as_lookup(dependencies_of)
    resource_assignments_of = as_lookup(resource_assignments_of)
    project_resources = list(project_resources or [])

    task_dates = resolve_task_dates(
        tasks,
        dependencies_of,
        resource_assignments_of,
        project_resources,
        project_start_date,
        snapshots,
        today,
        diagnostics,
    )

    graph = build_dependency_graph(tasks, dependencies_of, diagnostics)
    back_edges = set()
    ordered = order_tasks(graph, diagnostics, back_edges)
    dependencies = {
        task.id: [
            dep_id
            for dep_id in graph.predecessors(task.id)
            if (dep_id, task.id) not in back_edges
        ]
        for task in ordered
    }

    resource_capacity = {}
    for project_resource in project_resources:
        resource_capacity[project_resource.resource_id] = project_resource.daily_capacity

    task_resource_types = {}
    theoretical_seed = {}
    theoretical_completed = set()
    for task in ordered:
        assignments = resource_assignments_of(task.id)
        task_resource_types[task.id] = [a.resource_id for a in assignments]
        for resource_id in task_resource_types[task.id]:
            if resource_id not in resource_capacity and not task.is_done:
                diagnostics.warn(
                    UNSTAFFED_RESOURCE,
                    f"Task {task.id} needs resource {resource_id}, which the project does not staff",
                    task_id=task.id,
                    resource_id=resource_id,
                )

        if task.is_done:
            theoretical_seed[task.id] = 0.0
            theoretical_completed.add(task.id)
        else:
            theoretical_seed[task.id] = remaining_from_progress(
                total_effort(assignments), task.progress
            )

    actual_seed = {}
    actual_completed = set(theoretical_completed)
    for task in ordered:
        snapshot = latest_snapshot(snapshots, task.id, as_of=today)
        if task.is_done:
            actual_seed[task.id] = 0.0
        elif snapshot is not None:
            actual_seed[task.id] = snapshot.remaining_estimate
        else:
            actual_seed[task.id] = theoretical_seed[task.id]
        if actual_seed[task.id] <= completion_threshold:
            actual_seed[task.id] = 0.0
            actual_completed.add(task.id)

    chart_start = min(dates.start for dates in task_dates.values())
    latest_end = max(max(dates.end for dates in task_dates.values()), today)
    horizon_end = latest_end + timedelta(days=horizon_margin_days)

    simulator = LevelingSimulator(
        ordered,
        dependencies,
        task_resource_types,
        resource_capacity,
        completion_threshold=completion_threshold,
        horizon_margin_days=horizon_margin_days,
        max_horizon_days=max_horizon_days,
        trim_buffer_days=trim_buffer_days,
    )

    theoretical = simulator.run(
        chart_start, theoretical_seed, theoretical_completed, horizon_end
    )

    actual_start = max(today, chart_start)
    actual = simulator.run(
        actual_start,
        actual_seed,
        actual_completed,
        horizon_end,
        simulate_first_day=actual_start > today,
    )

    for run, label in ((theoretical, "theoretical"), (actual, "actual-informed")):
        if run.stalled:
            diagnostics.warn(
                STALLED,
                f"The {label} simulation cannot finish: tasks "
                f"{', '.join(str(t) for t in run.blocked_tasks)} never receive capacity",
                run=label,
                blocked_tasks=tuple(run.blocked_tasks),
            )

    # Shared axis long enough for both runs
    offset = (actual_start - chart_start).days
    length = max(len(theoretical.days), offset + len(actual.days))
    days = each_day(chart_start, chart_start + timedelta(days=length - 1))
    today_index = offset if actual_start == today else -1

    theoretical_series = _pad(theoretical.totals, length)
    per_task_series = {
        task_id: _pad(values, length)
        for task_id, values in theoretical.remaining_by_task.items()
    }
    allocations = theoretical.allocations + [{}] * (length - len(theoretical.allocations))

    leading = [None] * offset
    actual_informed_series = leading + _pad(actual.totals, length - offset)
    actual_per_task_series = {
        task_id: leading + _pad(values, length - offset)
        for task_id, values in actual.remaining_by_task.items()
    }

    actual_completion_day_index = -1
    if actual.is_complete:
        actual_completion_day_index = offset + actual.completion_day_index

    projection = BurndownProjection(
        days=days,
        theoretical_series=theoretical_series,
        actual_informed_series=actual_informed_series,
        per_task_series=per_task_series,
        actual_per_task_series=actual_per_task_series,
        historical_series=historical_series(
            ordered, snapshots, days, today, theoretical_seed
        ),
        scope_series=scope_series_by_task(
            ordered, resource_assignments_of, snapshots, days, today
        ),
        completion_day_index=theoretical.completion_day_index,
        actual_completion_day_index=actual_completion_day_index,
        today_index=today_index,
        allocations=allocations,
        task_dates=task_dates,
        diagnostics=diagnostics,
    )

    latest_completion = max(
        projection.completion_day_index, projection.actual_completion_day_index
    )
    if latest_completion > -1:
        projection.trim(min(latest_completion + trim_buffer_days, len(days)))

    logger.debug(
        "Simulated %d tasks over %d days: theoretical completion %s, actual-informed %s",
        len(ordered),
        len(projection.days),
        projection.completion_date,
        projection.actual_completion_date,
    )
    return projection


def historical_series(tasks, snapshots, days, today, fallback_remaining):
    """
    Recorded total remaining work on each day that has a snapshot.

    Each task contributes its latest snapshot on or before the day, or its
    fallback remaining work when nothing was recorded for it yet. Days with no
    snapshot at all, and days after today, are None.
    """
    today = as_date(today)
    history = snapshots_by_task(snapshots)
    history_dates = {
        task_id: [snapshot.date for snapshot in entries]
        for task_id, entries in history.items()
    }
    task_ids = {task.id for task in tasks}
    snapshot_days = {s.date for s in snapshots if s.task_id in task_ids}

    series = []
    for day in days:
        if day > today or day not in snapshot_days:
            series.append(None)
            continue
        total = 0.0
        for task in tasks:
            position = bisect_right(history_dates.get(task.id, []), day)
            if position:
                total += history[task.id][position - 1].remaining_estimate
            else:
                total += fallback_remaining.get(task.id, 0.0)
        series.append(total)
    return series
