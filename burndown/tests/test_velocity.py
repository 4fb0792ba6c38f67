import unittest
from datetime import date

from burndown.domain.snapshot import ProgressSnapshot
from burndown.domain.task import ProjectResourceAssignment
from burndown.services.velocity import (
    DECLINING,
    IMPROVING,
    STABLE,
    burn_rate,
    calculate_velocity_metrics,
    classify_trend,
    compute_velocity,
    focus_factor_history,
    generate_actual_projection,
    planned_velocity,
    project_completion_date,
    recent_snapshots,
)


class VelocityTestCase(unittest.TestCase):
    def setUp(self):
        self.snapshots = [
            ProgressSnapshot("T1", "P1", "2025-04-01", 10, 0),
            ProgressSnapshot("T1", "P1", "2025-04-06", 5, 50),
        ]

    def test_planned_velocity(self):
        pools = [
            ProjectResourceAssignment("dev", 2, 80),
            ProjectResourceAssignment("qa", 1, 100),
        ]
        self.assertAlmostEqual(planned_velocity(pools), 2.6)
        self.assertEqual(planned_velocity([]), 0)

    def test_burn_rate(self):
        velocity, points = burn_rate(self.snapshots)
        self.assertAlmostEqual(velocity, 1.0)
        self.assertEqual(points, 1)

    def test_scope_increases_are_not_negative_burn(self):
        snapshots = self.snapshots + [ProgressSnapshot("T1", "P1", "2025-04-11", 8, 50)]
        velocity, points = burn_rate(snapshots)
        self.assertAlmostEqual(velocity, 0.5)
        self.assertEqual(points, 1)

    def test_too_little_history(self):
        self.assertEqual(burn_rate(self.snapshots[:1]), (0.0, 0))
        reading = compute_velocity([], planned_velocity=1.0, today="2025-04-06")
        self.assertEqual(reading.recent_velocity, 0)
        self.assertEqual(reading.trend, DECLINING)
        self.assertEqual(reading.confidence, "low")

    def test_trend_bands(self):
        self.assertEqual(classify_trend(1.05, 1.0), STABLE)
        self.assertEqual(classify_trend(1.2, 1.0), IMPROVING)
        self.assertEqual(classify_trend(0.8, 1.0), DECLINING)
        self.assertEqual(classify_trend(1.15, 1.0, tolerance_pct=20), STABLE)
        self.assertEqual(classify_trend(0.5, 0), IMPROVING)
        self.assertEqual(classify_trend(0, 0), STABLE)

    def test_recent_window_falls_back_to_history(self):
        recent = recent_snapshots(self.snapshots, window_days=2, today="2025-04-06")
        self.assertEqual(recent, self.snapshots)

        more = self.snapshots + [ProgressSnapshot("T1", "P1", "2025-04-05", 6, 40)]
        recent = recent_snapshots(more, window_days=2, today="2025-04-06")
        self.assertEqual(len(recent), 2)

    def test_project_completion_date(self):
        self.assertEqual(project_completion_date(10, 2, date(2025, 4, 1)), date(2025, 4, 6))
        self.assertIsNone(project_completion_date(10, 0, date(2025, 4, 1)))

    def test_velocity_metrics(self):
        metrics = calculate_velocity_metrics(self.snapshots, 5, 0.5, today="2025-04-06")
        self.assertAlmostEqual(metrics.average_velocity, 1.0)
        self.assertAlmostEqual(metrics.recent_velocity, 1.0)
        self.assertEqual(metrics.velocity_trend, IMPROVING)
        self.assertEqual(metrics.completion_date_optimistic, date(2025, 4, 16))
        self.assertEqual(metrics.completion_date_realistic, date(2025, 4, 11))
        self.assertEqual(metrics.schedule_delta_days, 5)
        self.assertAlmostEqual(metrics.velocity_percentage, 200)
        self.assertEqual(metrics.days_analyzed, 2)
        self.assertEqual(metrics.confidence_level, "low")

    def test_actual_projection(self):
        self.assertEqual(generate_actual_projection(0, 3, 1, 10), [3, 2, 1, 0])
        self.assertEqual(generate_actual_projection(5, 10, 1, 8), [10, 9, 8])

    def test_focus_factor_history(self):
        snapshots = [
            ProgressSnapshot("T1", "P1", "2025-04-01", 10, 0, focus_factors={"dev": 80}),
            ProgressSnapshot("T2", "P1", "2025-04-01", 4, 0, focus_factors={"dev": 60}),
            ProgressSnapshot("T1", "P1", "2025-04-02", 9, 10, focus_factors={"dev": 70, "qa": 90}),
        ]
        history = focus_factor_history(snapshots)
        self.assertEqual(
            history["dev"], [(date(2025, 4, 1), 70), (date(2025, 4, 2), 70)]
        )
        self.assertEqual(history["qa"], [(date(2025, 4, 2), 90)])


if __name__ == "__main__":
    unittest.main()
