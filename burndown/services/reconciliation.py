"""
Reconciliation of recorded progress against the original estimates.

A snapshot says two things about a task: how far along it is (progress %)
and how much work is left (remaining estimate). On the original estimate,
progress alone implies `effort * (1 - progress/100)` remaining; anything
recorded above that is scope that was discovered along the way.
"""

import csv
import io
from collections import namedtuple

from burndown.domain.snapshot import latest_snapshot, snapshots_by_task
from burndown.services.effort import remaining_from_progress, total_effort
from burndown.utils.calendar import as_date, date_key
from burndown.utils.graph import as_lookup

ON_TRACK = "on-track"
SCOPE_CREEP = "scope-creep"
MAJOR_ISSUES = "major-issues"

ON_TRACK_LIMIT_PCT = 10.0
SCOPE_CREEP_LIMIT_PCT = 25.0

# Re-estimates smaller than this are treated as noise in scope summaries
SIGNIFICANT_SCOPE_CHANGE = 0.5

ScopeReconciliation = namedtuple(
    "ScopeReconciliation", ["scope_increase", "theoretical_remaining"]
)

VarianceClassification = namedtuple(
    "VarianceClassification", ["variance", "variance_percentage", "status"]
)


def reconcile_scope(task, resource_assignments, snapshot):
    """
    Compare a snapshot's remaining estimate with what its progress implies.

    Args:
        task: The Task the snapshot belongs to
        resource_assignments: The task's ResourceAssignment list
        snapshot: A ProgressSnapshot of the task

    Returns:
        ScopeReconciliation: scope_increase is positive when more work remains
        than the recorded progress percentage accounts for
    """
    theoretical_remaining = remaining_from_progress(
        total_effort(resource_assignments), snapshot.progress
    )
    return ScopeReconciliation(
        snapshot.remaining_estimate - theoretical_remaining, theoretical_remaining
    )


def latest_scope_increase(task, resource_assignments, snapshots, today=None):
    """Positive scope increase of the task's latest snapshot (as of today), else 0."""
    snapshot = latest_snapshot(snapshots, task.id, as_of=today)
    if snapshot is None:
        return 0.0
    increase = reconcile_scope(task, resource_assignments, snapshot).scope_increase
    return increase if increase > 0 else 0.0


def scope_series_by_task(tasks, resource_assignments_of, snapshots, days, today):
    """
    Per-task, per-day scope increase for a stacked "scope" series.

    A day only carries a value when the task has a snapshot dated that exact
    day, the day is not in the future, and the snapshot shows scope increase.
    """
    today = as_date(today)
    resource_assignments_of = as_lookup(resource_assignments_of)
    on_day = {}
    for snapshot in snapshots:
        on_day[(snapshot.task_id, snapshot.date)] = _newer(
            on_day.get((snapshot.task_id, snapshot.date)), snapshot
        )

    series = {}
    for task in tasks:
        assignments = resource_assignments_of(task.id)
        values = []
        for day in days:
            snapshot = on_day.get((task.id, day))
            increase = 0.0
            if snapshot is not None and day <= today:
                delta = reconcile_scope(task, assignments, snapshot).scope_increase
                if delta > 0:
                    increase = delta
            values.append(increase)
        series[task.id] = values
    return series


def _newer(current, candidate):
    if current is None or candidate.created_at >= current.created_at:
        return candidate
    return current


def classify_variance(
    original_estimate,
    current_remaining,
    progress,
    on_track_limit=ON_TRACK_LIMIT_PCT,
    scope_creep_limit=SCOPE_CREEP_LIMIT_PCT,
):
    """
    Classify how far the remaining work deviates from what progress implies.

    Within +/- on_track_limit percent of the original estimate is on-track,
    up to scope_creep_limit above it is scope creep, and anything else,
    including finishing much faster than implied, is a major issue.
    """
    theoretical_remaining = remaining_from_progress(original_estimate, progress)
    variance = current_remaining - theoretical_remaining
    if original_estimate > 0:
        variance_percentage = variance / original_estimate * 100
    else:
        variance_percentage = 0.0

    # Rounded so 30.000000000000004 lands in the same band as 30
    rounded = round(variance_percentage, 9)
    if abs(rounded) <= on_track_limit:
        status = ON_TRACK
    elif on_track_limit < rounded <= scope_creep_limit:
        status = SCOPE_CREEP
    else:
        status = MAJOR_ISSUES

    return VarianceClassification(variance, variance_percentage, status)


class TaskEstimateComparison:
    """Original estimate versus latest recorded remaining work for one task."""

    def __init__(
        self,
        task,
        project_title,
        original_estimate,
        current_remaining,
        variance,
        last_updated=None,
        has_snapshot=False,
        resources=None,
    ):
        self.task_id = task.id
        self.task_title = task.title
        self.task_color = task.color
        self.task_status = task.status
        self.project_id = task.project_id
        self.project_title = project_title
        self.original_estimate = original_estimate
        self.current_remaining = current_remaining
        self.work_completed = max(0.0, original_estimate - current_remaining)
        if original_estimate > 0:
            self.progress_percentage = min(
                100.0, self.work_completed / original_estimate * 100
            )
        else:
            self.progress_percentage = 0.0
        self.variance = variance.variance
        self.variance_percentage = variance.variance_percentage
        self.status = variance.status
        self.last_updated = last_updated
        self.has_snapshot = has_snapshot
        self.resources = resources or []

    def __repr__(self):
        return (
            f"TaskEstimateComparison(task_id={self.task_id!r}, "
            f"variance={self.variance:.2f}, status={self.status!r})"
        )


def compare_task_estimates(
    task, resource_assignments, snapshots, project_title="", today=None
):
    """
    Build the estimate comparison for one task.

    The current remaining work is the remaining estimate of the latest
    snapshot on or before today (any snapshot when today is None), or the
    progress-derived remaining when the task has no such snapshot.
    """
    original_estimate = total_effort(resource_assignments)
    snapshot = latest_snapshot(snapshots, task.id, as_of=today)

    if snapshot is not None:
        current_remaining = snapshot.remaining_estimate
        last_updated = snapshot.date
    else:
        current_remaining = remaining_from_progress(original_estimate, task.progress)
        last_updated = None

    return TaskEstimateComparison(
        task,
        project_title,
        original_estimate,
        current_remaining,
        classify_variance(original_estimate, current_remaining, task.progress),
        last_updated=last_updated,
        has_snapshot=snapshot is not None,
        resources=[
            {
                "id": a.resource_id,
                "estimated_days": a.estimated_days,
                "number_of_profiles": a.number_of_profiles,
                "focus_factor": a.focus_factor,
            }
            for a in resource_assignments
        ],
    )


def aggregate_metrics(comparisons):
    """Project-level totals over a list of TaskEstimateComparison."""
    total_original = sum(c.original_estimate for c in comparisons)
    total_remaining = sum(c.current_remaining for c in comparisons)
    total_completed = sum(c.work_completed for c in comparisons)
    total_variance = sum(c.variance for c in comparisons)

    return {
        "total_tasks": len(comparisons),
        "total_original_estimate": total_original,
        "total_current_remaining": total_remaining,
        "total_work_completed": total_completed,
        "total_variance": total_variance,
        "total_variance_percentage": (
            total_variance / total_original * 100 if total_original > 0 else 0.0
        ),
        "avg_progress_percentage": (
            sum(c.progress_percentage for c in comparisons) / len(comparisons)
            if comparisons
            else 0.0
        ),
        "on_track_count": sum(1 for c in comparisons if c.status == ON_TRACK),
        "scope_creep_count": sum(1 for c in comparisons if c.status == SCOPE_CREEP),
        "major_issues_count": sum(1 for c in comparisons if c.status == MAJOR_ISSUES),
    }


CSV_HEADERS = [
    "Project",
    "Task",
    "Status",
    "Original Estimate (days)",
    "Current Remaining (days)",
    "Work Completed (days)",
    "Progress (%)",
    "Variance (days)",
    "Variance (%)",
    "Health Status",
    "Last Updated",
    "Has Snapshot",
]


def export_comparison_csv(comparisons):
    """Render estimate comparisons as CSV text, one row per task."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for c in comparisons:
        writer.writerow(
            [
                c.project_title,
                c.task_title,
                c.task_status,
                f"{c.original_estimate:.2f}",
                f"{c.current_remaining:.2f}",
                f"{c.work_completed:.2f}",
                f"{c.progress_percentage:.1f}",
                f"{c.variance:.2f}",
                f"{c.variance_percentage:.1f}",
                c.status,
                date_key(c.last_updated) if c.last_updated else "Never",
                "Yes" if c.has_snapshot else "No",
            ]
        )
    return buffer.getvalue().rstrip("\n")


def summarize_scope_changes(tasks, snapshots, threshold=SIGNIFICANT_SCOPE_CHANGE, top=5):
    """
    Summarise re-estimates between consecutive snapshots of each task.

    Between two snapshots, the progress gained should have burned the same
    share of the previous remaining estimate. A newer remaining estimate that
    differs from that by more than `threshold` person-days is a scope change.

    Returns:
        dict: total_scope_increase, total_scope_decrease, net_scope_change,
        estimate_adjustments, top_scope_changes, all_scope_changes,
        changes_by_date
    """
    titles = {task.id: task for task in tasks}
    changes = []
    total_increase = 0.0
    total_decrease = 0.0

    for task_id, history in snapshots_by_task(snapshots).items():
        task = titles.get(task_id)
        if task is None:
            continue

        for prev, current in zip(history, history[1:]):
            expected = prev.remaining_estimate * (
                1 - (current.progress - prev.progress) / 100
            )
            scope_change = current.remaining_estimate - expected
            if abs(scope_change) <= threshold:
                continue

            if scope_change > 0:
                total_increase += scope_change
            else:
                total_decrease += abs(scope_change)

            changes.append(
                {
                    "task_id": task_id,
                    "task_title": task.title,
                    "task_color": task.color,
                    "date": current.date,
                    "scope_change": scope_change,
                    "new_remaining": current.remaining_estimate,
                    "change_percentage": (
                        scope_change / prev.remaining_estimate * 100
                        if prev.remaining_estimate > 0
                        else 0.0
                    ),
                }
            )

    by_date = {}
    for change in changes:
        by_date[change["date"]] = by_date.get(change["date"], 0.0) + change["scope_change"]

    return {
        "total_scope_increase": total_increase,
        "total_scope_decrease": total_decrease,
        "net_scope_change": total_increase - total_decrease,
        "estimate_adjustments": len(changes),
        "top_scope_changes": sorted(
            changes, key=lambda c: abs(c["scope_change"]), reverse=True
        )[:top],
        "all_scope_changes": changes,
        "changes_by_date": sorted(by_date.items(), reverse=True),
    }
