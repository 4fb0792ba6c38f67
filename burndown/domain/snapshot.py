from datetime import datetime
from typing import Dict, Optional

from burndown.domain.task import TaskStatus
from burndown.utils.calendar import as_date

COMPLETION_THRESHOLD = 0.01


class SnapshotError(Exception):
    """Exception raised for errors in the ProgressSnapshot class."""

    pass


class ProgressSnapshot:
    """
    A recorded fact about a task on one calendar day.

    Snapshots are append-only history: the remaining estimate (person-days)
    and progress percentage someone reported for the task on that day.
    """

    def __init__(
        self,
        task_id: str,
        project_id: str,
        date,
        remaining_estimate: float,
        progress: float,
        status: str = "In Progress",
        notes: Optional[str] = None,
        focus_factors: Optional[Dict[str, float]] = None,
        created_at: Optional[datetime] = None,
    ):
        """
        Initialize a new ProgressSnapshot.

        Args:
            task_id: ID of the task this snapshot describes
            project_id: ID of the task's project
            date: Calendar day of the snapshot (date, datetime or ISO string)
            remaining_estimate: Person-days of work remaining on that day
            progress: Completion percentage reported on that day (0-100)
            status: Task status on that day
            notes: Optional free-form notes about progress or blockers
            focus_factors: Optional map of resource id to focus factor observed that day
            created_at: When the snapshot was recorded

        Raises:
            SnapshotError: If any input validation fails
        """
        if task_id is None:
            raise SnapshotError("Snapshot task ID cannot be None")
        self.task_id = task_id
        self.project_id = project_id

        if date is None:
            raise SnapshotError("Snapshot date cannot be None")
        self.date = as_date(date)

        if not isinstance(remaining_estimate, (int, float)) or remaining_estimate < 0:
            raise SnapshotError("Remaining estimate must be a non-negative number")
        self.remaining_estimate = float(remaining_estimate)

        if not isinstance(progress, (int, float)) or not 0 <= progress <= 100:
            raise SnapshotError("Progress must be a number between 0 and 100")
        self.progress = float(progress)

        try:
            self.status = TaskStatus(status).value
        except ValueError:
            valid_statuses = [s.value for s in TaskStatus]
            raise SnapshotError(
                f"Invalid status: {status}. Must be one of {valid_statuses}"
            )

        self.notes = notes
        self.focus_factors = dict(focus_factors) if focus_factors else {}
        self.created_at = created_at or datetime.now()

    @property
    def is_complete(self) -> bool:
        return self.remaining_estimate <= COMPLETION_THRESHOLD

    def __repr__(self):
        return (
            f"ProgressSnapshot(task_id={self.task_id!r}, date={self.date}, "
            f"remaining_estimate={self.remaining_estimate}, progress={self.progress})"
        )


class Milestone:
    """Pass-through display data: a dated marker on the project charts."""

    def __init__(
        self,
        project_id: str,
        title: str,
        date,
        icon: str = "flag",
        color: str = "#9333ea",
    ):
        self.project_id = project_id
        self.title = title
        self.date = as_date(date)
        self.icon = icon
        self.color = color

    def __repr__(self):
        return f"Milestone(title={self.title!r}, date={self.date})"


def latest_snapshot(snapshots, task_id, as_of=None):
    """
    Return the most recent snapshot for a task, optionally on or before a day.

    Ties on the same date are broken by created_at so the latest record wins.
    """
    as_of = as_date(as_of) if as_of is not None else None
    candidates = [
        s
        for s in snapshots
        if s.task_id == task_id and (as_of is None or s.date <= as_of)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda s: (s.date, s.created_at))


def snapshots_by_task(snapshots):
    """Group snapshots by task id, each list sorted oldest first."""
    grouped = {}
    for snapshot in snapshots:
        grouped.setdefault(snapshot.task_id, []).append(snapshot)
    for task_snapshots in grouped.values():
        task_snapshots.sort(key=lambda s: (s.date, s.created_at))
    return grouped
