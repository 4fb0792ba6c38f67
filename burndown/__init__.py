"""
Burndown Forecaster
===================

Forecasts when a project's remaining work reaches zero.

Available modules:
- domain: tasks, resource assignments, progress snapshots and diagnostics
- services: date resolution, effort, resource leveling, reconciliation, velocity
- visualization: burndown and Gantt charts
"""

from burndown.domain.task import (
    Project,
    ProjectResourceAssignment,
    ResourceAssignment,
    Task,
    TaskStatus,
)
from burndown.domain.snapshot import Milestone, ProgressSnapshot
from burndown.domain.diagnostics import Diagnostics
from burndown.services.forecaster import BurndownForecaster
from burndown.services.leveling import BurndownProjection, simulate_burndown
from burndown.services.date_resolver import build_gantt_bars, resolve_task_dates

__all__ = [
    "Project",
    "ProjectResourceAssignment",
    "ResourceAssignment",
    "Task",
    "TaskStatus",
    "Milestone",
    "ProgressSnapshot",
    "Diagnostics",
    "BurndownForecaster",
    "BurndownProjection",
    "simulate_burndown",
    "build_gantt_bars",
    "resolve_task_dates",
]
