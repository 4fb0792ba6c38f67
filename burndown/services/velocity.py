"""
Velocity: how many person-days the project burns per day, planned and actual.
"""

import logging
from collections import namedtuple
from datetime import date, timedelta

from burndown.domain.snapshot import snapshots_by_task
from burndown.services.effort import ceil_days
from burndown.utils.calendar import as_date

logger = logging.getLogger(__name__)

IMPROVING = "improving"
STABLE = "stable"
DECLINING = "declining"

DEFAULT_WINDOW_DAYS = 15
DEFAULT_TOLERANCE_PCT = 10.0

HIGH_CONFIDENCE_POINTS = 10
MEDIUM_CONFIDENCE_POINTS = 5

VelocityReading = namedtuple(
    "VelocityReading", ["recent_velocity", "trend", "confidence", "data_points"]
)


def planned_velocity(project_resources):
    """Maximum theoretical daily burn: sum of every pool's daily capacity."""
    return sum(
        resource.number_of_resources * (resource.focus_factor / 100)
        for resource in project_resources or []
    )


def burn_rate(snapshots):
    """
    Average person-days burned per calendar day across a set of snapshots.

    Work burned is the drop in remaining estimate between consecutive
    snapshots of the same task; re-estimates upwards are scope, not negative
    burn, and are left out. The total is spread over the calendar days the
    snapshots span.

    Returns:
        tuple: (velocity, data_points) where data_points counts burning pairs
    """
    if len(snapshots) < 2:
        return 0.0, 0

    burned = 0.0
    data_points = 0
    for history in snapshots_by_task(snapshots).values():
        for prev, current in zip(history, history[1:]):
            work_done = prev.remaining_estimate - current.remaining_estimate
            if (current.date - prev.date).days > 0 and work_done > 0:
                burned += work_done
                data_points += 1

    dates = [snapshot.date for snapshot in snapshots]
    elapsed_days = (max(dates) - min(dates)).days
    if elapsed_days <= 0:
        return 0.0, data_points
    return burned / elapsed_days, data_points


def confidence_level(data_points):
    if data_points >= HIGH_CONFIDENCE_POINTS:
        return "high"
    if data_points >= MEDIUM_CONFIDENCE_POINTS:
        return "medium"
    return "low"


def classify_trend(recent, planned, tolerance_pct=DEFAULT_TOLERANCE_PCT):
    """
    Compare actual against planned velocity.

    Within +/- tolerance_pct percent of the plan is stable; faster is
    improving and slower is declining.
    """
    if planned <= 0:
        return IMPROVING if recent > 0 else STABLE

    percent_change = (recent - planned) / planned * 100
    if percent_change > tolerance_pct:
        return IMPROVING
    if percent_change < -tolerance_pct:
        return DECLINING
    return STABLE


def recent_snapshots(snapshots, window_days=DEFAULT_WINDOW_DAYS, today=None):
    """
    Snapshots from the trailing window ending today.

    Falls back to all history up to today when the window holds fewer than
    two snapshots.
    """
    today = as_date(today) if today is not None else date.today()
    cutoff = today - timedelta(days=window_days)
    history = [s for s in snapshots if s.date <= today]
    recent = [s for s in history if s.date >= cutoff]
    if len(recent) < 2:
        return history
    return recent


def compute_velocity(
    snapshots,
    window_days=DEFAULT_WINDOW_DAYS,
    planned_velocity=0.0,
    today=None,
    tolerance_pct=DEFAULT_TOLERANCE_PCT,
):
    """
    Recent burn rate of the project and how it compares with the plan.

    Args:
        snapshots: ProgressSnapshot history of the project
        window_days: Length of the trailing window in calendar days
        planned_velocity: Person-days per day the staffing could burn
        today: End of the window (defaults to the current date)
        tolerance_pct: Half-width of the "stable" band around the plan

    Returns:
        VelocityReading
    """
    window = recent_snapshots(snapshots, window_days, today)
    velocity, data_points = burn_rate(window)
    return VelocityReading(
        velocity,
        classify_trend(velocity, planned_velocity, tolerance_pct),
        confidence_level(data_points),
        data_points,
    )


def project_completion_date(remaining_work, velocity, today=None):
    """Day the remaining work runs out at a constant velocity, or None at velocity 0."""
    if velocity <= 0:
        return None
    today = as_date(today) if today is not None else date.today()
    return today + timedelta(days=ceil_days(remaining_work / velocity))


class VelocityMetrics:
    """Velocity summary of a project as of one day."""

    def __init__(
        self,
        average_velocity,
        recent_velocity,
        planned_velocity,
        velocity_trend,
        completion_date_optimistic,
        completion_date_realistic,
        days_analyzed,
        confidence_level,
    ):
        self.average_velocity = average_velocity
        self.recent_velocity = recent_velocity
        self.planned_velocity = planned_velocity
        self.velocity_trend = velocity_trend
        self.completion_date_optimistic = completion_date_optimistic
        self.completion_date_realistic = completion_date_realistic
        self.days_analyzed = days_analyzed
        self.confidence_level = confidence_level

    @property
    def velocity_percentage(self):
        """Actual velocity as a percentage of the planned one."""
        if self.planned_velocity <= 0:
            return 0.0
        return self.average_velocity / self.planned_velocity * 100

    @property
    def schedule_delta_days(self):
        """
        Days the realistic finish is ahead (positive) or behind (negative)
        the optimistic one; None when either date is unknown.
        """
        if self.completion_date_optimistic is None or self.completion_date_realistic is None:
            return None
        return (self.completion_date_optimistic - self.completion_date_realistic).days

    def __repr__(self):
        return (
            f"VelocityMetrics(recent={self.recent_velocity:.2f}, "
            f"planned={self.planned_velocity:.2f}, trend={self.velocity_trend!r})"
        )


def calculate_velocity_metrics(
    snapshots,
    current_remaining_work,
    planned,
    today=None,
    window_days=DEFAULT_WINDOW_DAYS,
    tolerance_pct=DEFAULT_TOLERANCE_PCT,
):
    """
    Full velocity picture: average and recent burn, trend, completion dates.

    The optimistic completion assumes the planned velocity, the realistic one
    the average velocity actually observed.
    """
    today = as_date(today) if today is not None else date.today()
    history = [s for s in snapshots if s.date <= today]
    average, data_points = burn_rate(history)
    reading = compute_velocity(history, window_days, planned, today, tolerance_pct)

    metrics = VelocityMetrics(
        average_velocity=average,
        recent_velocity=reading.recent_velocity,
        planned_velocity=planned,
        velocity_trend=reading.trend,
        completion_date_optimistic=project_completion_date(
            current_remaining_work, planned, today
        ),
        completion_date_realistic=project_completion_date(
            current_remaining_work, average, today
        ),
        days_analyzed=len({s.date for s in history}),
        confidence_level=confidence_level(data_points),
    )
    logger.debug("Velocity metrics as of %s: %r", today, metrics)
    return metrics


def generate_actual_projection(today_index, current_remaining, velocity, max_days):
    """
    Straight-line burndown from today at a constant velocity.

    Values start at today_index and stop once the work reaches zero (the zero
    itself is included) or at max_days.
    """
    projection = []
    remaining = current_remaining
    for _ in range(today_index, max_days):
        projection.append(max(0.0, remaining))
        remaining -= velocity
        if remaining <= 0:
            projection.append(0.0)
            break
    return projection


def focus_factor_history(snapshots):
    """
    Observed focus factor per resource type over time.

    Returns:
        dict: {resource_id: [(date, average focus factor that day), ...]}
    """
    by_resource = {}
    for snapshot in snapshots:
        for resource_id, focus in snapshot.focus_factors.items():
            by_resource.setdefault(resource_id, {}).setdefault(snapshot.date, []).append(
                focus
            )

    return {
        resource_id: [
            (day, sum(values) / len(values)) for day, values in sorted(by_day.items())
        ]
        for resource_id, by_day in by_resource.items()
    }
