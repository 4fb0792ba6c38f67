import unittest
from datetime import date

from burndown.domain.diagnostics import STALLED, UNSTAFFED_RESOURCE
from burndown.domain.snapshot import ProgressSnapshot
from burndown.domain.task import ProjectResourceAssignment, ResourceAssignment, Task
from burndown.services.leveling import LevelingSimulator, simulate_burndown
from burndown.utils.graph import (
    build_dependency_graph,
    dependency_depth,
    find_dependency_cycles,
    order_tasks,
)

MONDAY = date(2025, 4, 7)


class LevelingSimulatorTestCase(unittest.TestCase):
    def setUp(self):
        self.tasks = [Task("A", "First", "P1"), Task("B", "Second", "P1")]
        self.simulator = LevelingSimulator(
            self.tasks,
            {},
            {"A": ["dev"], "B": ["dev"]},
            {"dev": 1.0},
        )

    def test_resource_is_never_split(self):
        """The first workable task takes the whole daily capacity."""
        remaining = {"A": 5.0, "B": 3.0}
        work_done, allocation = self.simulator.allocate(["A", "B"], remaining)
        self.assertEqual(work_done, {"A": 1.0})
        self.assertEqual(allocation, {"dev": ("A", 1.0)})

        self.simulator.step(remaining, set())
        self.assertEqual(remaining, {"A": 4.0, "B": 3.0})

    def test_capacity_passes_to_next_task_once_first_is_done(self):
        remaining = {"A": 0.0, "B": 3.0}
        work_done, _ = self.simulator.allocate(["A", "B"], remaining)
        self.assertEqual(work_done, {"B": 1.0})

    def test_dependencies_block_work(self):
        simulator = LevelingSimulator(
            self.tasks, {"B": ["A"]}, {"A": ["qa"], "B": ["dev"]}, {"dev": 1.0}
        )
        self.assertEqual(simulator.workable_tasks({"A": 1, "B": 1}, set()), ["A"])
        self.assertEqual(simulator.workable_tasks({"A": 0, "B": 1}, {"A"}), ["B"])

    def test_weekends_do_no_work(self):
        run = self.simulator.run(date(2025, 4, 4), {"A": 2.0, "B": 0.0}, {"B"}, date(2025, 4, 4))
        # Friday, Saturday, Sunday, Monday
        self.assertEqual(run.totals[:4], [1.0, 1.0, 1.0, 0.0])
        self.assertEqual(run.completion_day_index, 3)

    def test_completed_task_leaves_no_leftover(self):
        remaining = {"A": 1.008, "B": 0.0}
        completed = {"B"}
        self.simulator.step(remaining, completed)
        self.assertEqual(remaining, {"A": 0.0, "B": 0.0})
        self.assertEqual(completed, {"A", "B"})


class GraphTestCase(unittest.TestCase):
    def test_order_keeps_input_order_for_independent_tasks(self):
        tasks = [
            Task("C", "Third", "P1", dependencies=["A"]),
            Task("B", "Second", "P1"),
            Task("A", "First", "P1"),
        ]
        graph = build_dependency_graph(tasks, {t.id: t.dependencies for t in tasks})
        self.assertEqual([t.id for t in order_tasks(graph)], ["A", "C", "B"])
        self.assertEqual(dependency_depth(graph), 1)

    def test_cycle_edges_are_skipped(self):
        tasks = [
            Task("A", "First", "P1", dependencies=["B"]),
            Task("B", "Second", "P1", dependencies=["A"]),
        ]
        graph = build_dependency_graph(tasks, {t.id: t.dependencies for t in tasks})
        back_edges = set()
        ordered = order_tasks(graph, back_edges=back_edges)
        self.assertEqual(sorted(t.id for t in ordered), ["A", "B"])
        self.assertEqual(back_edges, {("A", "B")})
        self.assertEqual(len(find_dependency_cycles(graph)), 1)
        self.assertIsNone(dependency_depth(graph))


class SimulateBurndownTestCase(unittest.TestCase):
    """Test cases for the planned and actual-informed burndown runs."""

    def setUp(self):
        self.tasks = [Task("A", "Design", "P1"), Task("B", "Build", "P1")]
        self.assignments = {
            "A": [ResourceAssignment("dev", 2)],
            "B": [ResourceAssignment("dev", 3)],
        }
        self.pools = [ProjectResourceAssignment("dev", 1, 100)]

    def simulate(self, tasks=None, snapshots=None, today=MONDAY, start=MONDAY, pools=None):
        tasks = tasks or self.tasks
        return simulate_burndown(
            tasks,
            {task.id: task.dependencies for task in tasks},
            self.assignments,
            self.pools if pools is None else pools,
            snapshots or [],
            today,
            project_start_date=start,
        )

    def test_theoretical_and_actual_runs(self):
        projection = self.simulate()

        self.assertEqual(projection.days[0], MONDAY)
        self.assertEqual(projection.today_index, 0)
        self.assertEqual(projection.theoretical_series[:5], [4.0, 3.0, 2.0, 1.0, 0.0])
        self.assertEqual(projection.completion_date, date(2025, 4, 11))
        self.assertEqual(projection.per_task_series["A"][:3], [1.0, 0.0, 0.0])

        # Today is recorded as-is; work resumes tomorrow
        self.assertEqual(
            projection.actual_informed_series[:8],
            [5.0, 4.0, 3.0, 2.0, 1.0, 1.0, 1.0, 0.0],
        )
        self.assertEqual(projection.actual_completion_date, date(2025, 4, 14))
        self.assertEqual(len(projection.days), 7 + 5)
        self.assertEqual(projection.historical_series, [None] * 12)

    def test_completion_index_and_trim(self):
        """Work finishing on day 12 leaves 17 days after trimming."""
        tasks = [Task("A", "Design", "P1")]
        self.assignments = {"A": [ResourceAssignment("dev", 9)]}
        wednesday = date(2025, 4, 2)
        projection = self.simulate(tasks, today=date(2025, 3, 31), start=wednesday)

        self.assertEqual(projection.completion_day_index, 12)
        self.assertEqual(projection.actual_completion_day_index, 12)
        self.assertEqual(len(projection.days), 17)
        self.assertEqual(len(projection.theoretical_series), 17)
        self.assertEqual(len(projection.per_task_series["A"]), 17)
        self.assertEqual(projection.today_index, -1)

    def test_deterministic(self):
        first = self.simulate()
        second = self.simulate()
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_task_order_breaks_ties(self):
        projection = self.simulate(tasks=list(reversed(self.tasks)))
        self.assertEqual(projection.allocations[0], {"dev": ("B", 1.0)})

    def test_dependencies_respected(self):
        tasks = [Task("A", "Design", "P1"), Task("B", "Build", "P1", dependencies=["A"])]
        self.pools = [ProjectResourceAssignment("dev", 2, 100)]
        projection = self.simulate(tasks)
        # B cannot start until A is done, even with spare capacity
        self.assertEqual(projection.per_task_series["B"][:1], [3.0])
        self.assertEqual(projection.per_task_series["A"][:1], [0.0])
        self.assertEqual(projection.per_task_series["B"][1], 1.0)

    def test_done_tasks_contribute_nothing(self):
        tasks = [Task("A", "Design", "P1", status="Done"), Task("B", "Build", "P1")]
        projection = self.simulate(tasks)
        self.assertEqual(projection.theoretical_series[0], 2.0)

    def test_progress_reduces_seed(self):
        tasks = [Task("A", "Design", "P1", progress=50), Task("B", "Build", "P1")]
        projection = self.simulate(tasks)
        self.assertEqual(projection.actual_informed_series[0], 4.0)

    def test_snapshot_seeds_actual_run(self):
        snapshot = ProgressSnapshot("B", "P1", MONDAY, 6, 10)
        projection = self.simulate(snapshots=[snapshot])
        self.assertEqual(projection.actual_informed_series[0], 8.0)
        self.assertEqual(projection.theoretical_series[0], 4.0)
        self.assertEqual(projection.historical_series[0], 8.0)
        self.assertAlmostEqual(projection.scope_series["B"][0], 3.3)

    def test_unstaffed_resource_stalls(self):
        self.assignments["B"] = [ResourceAssignment("qa", 3)]
        with self.assertLogs("burndown.domain.diagnostics", level="WARNING"):
            projection = self.simulate()

        self.assertEqual(projection.completion_day_index, -1)
        self.assertIsNone(projection.actual_completion_date)
        self.assertEqual(len(projection.diagnostics.of_kind(UNSTAFFED_RESOURCE)), 1)
        stalled = projection.diagnostics.of_kind(STALLED)
        self.assertEqual(len(stalled), 2)
        self.assertEqual(stalled[0]["blocked_tasks"], ("B",))

    def test_leftovers_below_threshold_still_complete(self):
        """Tasks finishing with a sliver of work left do not keep the run open."""
        self.assignments = {
            "A": [ResourceAssignment("dev", 2)],
            "B": [ResourceAssignment("qa", 2)],
        }
        pools = [
            ProjectResourceAssignment("dev", 1, 100),
            ProjectResourceAssignment("qa", 1, 100),
        ]
        snapshots = [
            ProgressSnapshot("A", "P1", MONDAY, 1.008, 50),
            ProgressSnapshot("B", "P1", MONDAY, 1.008, 50),
        ]
        projection = self.simulate(snapshots=snapshots, pools=pools)

        self.assertEqual(projection.actual_completion_day_index, 1)
        self.assertEqual(projection.actual_informed_series[1], 0.0)
        self.assertEqual(projection.diagnostics.of_kind(STALLED), [])

    def test_no_tasks(self):
        projection = simulate_burndown([], {}, {}, self.pools, [], MONDAY)
        self.assertEqual(projection.days, [])
        self.assertIsNone(projection.completion_date)


if __name__ == "__main__":
    unittest.main()
