import unittest
from datetime import date, datetime

from burndown.domain.task import (
    AssignmentError,
    Project,
    ProjectResourceAssignment,
    ResourceAssignment,
    Task,
    TaskError,
    TaskStatus,
)
from burndown.domain.snapshot import (
    ProgressSnapshot,
    SnapshotError,
    latest_snapshot,
    snapshots_by_task,
)
from burndown.domain.diagnostics import CYCLE, MISSING_DEPENDENCY, Diagnostics


class TaskTestCase(unittest.TestCase):
    """Test cases for the Task class."""

    def test_initialization_validation(self):
        """Test validation during task initialization."""
        # Invalid ID
        with self.assertRaises(TaskError):
            Task(id=None, title="Invalid Task", project_id="P1")

        # Invalid title
        with self.assertRaises(TaskError):
            Task(id="T1", title="", project_id="P1")

        # Progress out of range
        with self.assertRaises(TaskError):
            Task(id="T1", title="Build", project_id="P1", progress=120)

        task = Task(id="T1", title="Build", project_id="P1", start_date="2025-04-01")
        self.assertEqual(task.start_date, date(2025, 4, 1))
        self.assertEqual(task.status, "Todo")
        self.assertEqual(task.dependencies, [])

    def test_status_handling(self):
        """Test status values and validation."""
        task = Task(id="T1", title="Build", project_id="P1")

        task.status = "In Progress"
        self.assertEqual(task.status, "In Progress")

        task.status = TaskStatus.DONE
        self.assertEqual(task.status, "Done")
        self.assertTrue(task.is_done)

        with self.assertRaises(TaskError):
            task.status = "finished"

    def test_full_progress_counts_as_done(self):
        task = Task(id="T1", title="Build", project_id="P1", progress=100)
        self.assertEqual(task.status, "Todo")
        self.assertTrue(task.is_done)

    def test_dependencies(self):
        task = Task(id="T2", title="Test", project_id="P1", dependencies=["T1"])
        task.add_dependency("T1")
        self.assertEqual(task.dependencies, ["T1"])

        with self.assertRaises(TaskError):
            task.add_dependency("T2")

        task.remove_dependency("T1")
        self.assertEqual(task.dependencies, [])


class AssignmentTestCase(unittest.TestCase):
    def test_zero_profiles_means_one(self):
        assignment = ResourceAssignment("dev", 10, number_of_profiles=0)
        self.assertEqual(assignment.number_of_profiles, 1)

    def test_zero_focus_factor_means_unset(self):
        assignment = ResourceAssignment("dev", 10, focus_factor=0)
        self.assertIsNone(assignment.focus_factor)

    def test_invalid_assignments(self):
        with self.assertRaises(AssignmentError):
            ResourceAssignment("dev", -1)
        with self.assertRaises(AssignmentError):
            ResourceAssignment("dev", 5, focus_factor=150)
        with self.assertRaises(AssignmentError):
            ProjectResourceAssignment("dev", number_of_resources=-2)

    def test_project_daily_capacity(self):
        pool = ProjectResourceAssignment("dev", number_of_resources=2, focus_factor=80)
        self.assertAlmostEqual(pool.daily_capacity, 1.6)

    def test_project(self):
        project = Project("P1", "Relaunch", start_date=datetime(2025, 4, 1, 9, 30))
        self.assertEqual(project.start_date, date(2025, 4, 1))
        with self.assertRaises(TaskError):
            Project("P2", "")


class SnapshotTestCase(unittest.TestCase):
    def test_validation(self):
        with self.assertRaises(SnapshotError):
            ProgressSnapshot("T1", "P1", "2025-04-01", -1, 10)
        with self.assertRaises(SnapshotError):
            ProgressSnapshot("T1", "P1", "2025-04-01", 5, 101)
        with self.assertRaises(SnapshotError):
            ProgressSnapshot("T1", "P1", "2025-04-01", 5, 10, status="Blocked")

    def test_is_complete(self):
        self.assertTrue(ProgressSnapshot("T1", "P1", "2025-04-01", 0.005, 99).is_complete)
        self.assertFalse(ProgressSnapshot("T1", "P1", "2025-04-01", 0.5, 99).is_complete)

    def test_latest_snapshot(self):
        early = ProgressSnapshot("T1", "P1", "2025-04-01", 8, 20)
        late = ProgressSnapshot("T1", "P1", "2025-04-05", 4, 60)
        other = ProgressSnapshot("T2", "P1", "2025-04-10", 1, 90)
        snapshots = [late, other, early]

        self.assertIs(latest_snapshot(snapshots, "T1"), late)
        self.assertIs(latest_snapshot(snapshots, "T1", as_of=date(2025, 4, 3)), early)
        self.assertIsNone(latest_snapshot(snapshots, "T1", as_of=date(2025, 3, 1)))
        self.assertIsNone(latest_snapshot(snapshots, "T3"))

    def test_same_day_uses_latest_recorded(self):
        first = ProgressSnapshot(
            "T1", "P1", "2025-04-01", 8, 20, created_at=datetime(2025, 4, 1, 9)
        )
        second = ProgressSnapshot(
            "T1", "P1", "2025-04-01", 7, 30, created_at=datetime(2025, 4, 1, 17)
        )
        self.assertIs(latest_snapshot([second, first], "T1"), second)

    def test_snapshots_by_task_sorted(self):
        a2 = ProgressSnapshot("A", "P1", "2025-04-02", 3, 40)
        a1 = ProgressSnapshot("A", "P1", "2025-04-01", 5, 0)
        b1 = ProgressSnapshot("B", "P1", "2025-04-01", 2, 0)
        grouped = snapshots_by_task([a2, b1, a1])
        self.assertEqual(grouped["A"], [a1, a2])
        self.assertEqual(grouped["B"], [b1])


class DiagnosticsTestCase(unittest.TestCase):
    def test_warnings_are_deduplicated(self):
        diagnostics = Diagnostics()
        with self.assertLogs("burndown.domain.diagnostics", level="WARNING"):
            diagnostics.warn(CYCLE, "cycle A -> B", task_id="B", dependency_id="A")
        diagnostics.warn(CYCLE, "cycle A -> B", task_id="B", dependency_id="A")
        diagnostics.warn(MISSING_DEPENDENCY, "unknown Z", task_id="B", dependency_id="Z")

        self.assertEqual(len(diagnostics), 2)
        self.assertEqual(len(diagnostics.cycles), 1)
        self.assertEqual(diagnostics.missing_dependencies[0]["dependency_id"], "Z")
        self.assertTrue(diagnostics)
        self.assertFalse(Diagnostics())


if __name__ == "__main__":
    unittest.main()
