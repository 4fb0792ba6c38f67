from datetime import date
from enum import Enum
from typing import List, Optional

from burndown.utils.calendar import as_date


class TaskStatus(Enum):
    """
    Enum representing the possible status values of a task.
    """

    TODO = "Todo"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class TaskError(Exception):
    """Exception raised for errors in the Task class."""

    pass


class AssignmentError(Exception):
    """Exception raised for invalid task or project resource assignments."""

    pass


DEFAULT_TASK_COLOR = "#6366f1"


class Task:
    """
    Represents a task tracked by the burndown forecaster.

    A task carries its completion progress, an optional explicit start date,
    and the ids of the tasks it depends on. Effort lives on its resource
    assignments, not on the task itself.
    """

    def __init__(
        self,
        id: str,
        title: str,
        project_id: str,
        status: str = "Todo",
        progress: float = 0,
        start_date=None,
        color: Optional[str] = None,
        dependencies: Optional[List] = None,
        description: str = "",
    ):
        """
        Initialize a new Task.

        Args:
            id: Unique identifier for the task
            title: Display title of the task
            project_id: Identifier of the project the task belongs to
            status: One of "Todo", "In Progress" or "Done"
            progress: Completion percentage (0-100)
            start_date: Optional explicit start date (date, datetime or ISO string)
            color: Hex color used when rendering the task
            dependencies: List of task IDs that must finish before this task
            description: Detailed description of the task

        Raises:
            TaskError: If any input validation fails
        """
        if id is None or str(id).strip() == "":
            raise TaskError("Task ID cannot be None or empty")
        self.id = id

        if not title or not isinstance(title, str):
            raise TaskError("Task title must be a non-empty string")
        self.title = title

        if project_id is None:
            raise TaskError("Task project ID cannot be None")
        self.project_id = project_id

        self._status = TaskStatus.TODO
        self.status = status

        if not isinstance(progress, (int, float)) or not 0 <= progress <= 100:
            raise TaskError("Progress must be a number between 0 and 100")
        self.progress = float(progress)

        self.start_date = as_date(start_date) if start_date is not None else None
        self.color = color or DEFAULT_TASK_COLOR
        self.description = description

        self.dependencies = []
        if dependencies:
            if not isinstance(dependencies, (list, tuple)):
                raise TaskError("Dependencies must be a list")
            for dep_id in dependencies:
                self.add_dependency(dep_id)

    @property
    def status(self) -> str:
        """Get the current status of the task."""
        return self._status.value

    @status.setter
    def status(self, value):
        """Set the status of the task."""
        if isinstance(value, TaskStatus):
            self._status = value
            return
        try:
            self._status = TaskStatus(value)
        except ValueError:
            valid_statuses = [s.value for s in TaskStatus]
            raise TaskError(f"Invalid status: {value}. Must be one of {valid_statuses}")

    @property
    def is_done(self) -> bool:
        """A task counts as done when flagged Done or fully progressed."""
        return self._status == TaskStatus.DONE or self.progress >= 100

    def add_dependency(self, dep_id):
        """Add a prerequisite task id, ignoring duplicates."""
        if dep_id == self.id:
            raise TaskError(f"Task {self.id} cannot depend on itself")
        if dep_id not in self.dependencies:
            self.dependencies.append(dep_id)
        return self

    def remove_dependency(self, dep_id):
        if dep_id in self.dependencies:
            self.dependencies.remove(dep_id)
        return self

    def __repr__(self):
        return f"Task(id={self.id!r}, title={self.title!r}, status={self.status!r}, progress={self.progress})"


class ResourceAssignment:
    """
    A resource type working on a single task.

    estimated_days is effort in person-days; number_of_profiles is how many
    people of that resource type work on the task concurrently. A missing or
    zero focus_factor means "use the project's focus factor for this resource".
    """

    def __init__(
        self,
        resource_id: str,
        estimated_days: float,
        number_of_profiles: int = 1,
        focus_factor: Optional[float] = None,
    ):
        if resource_id is None or str(resource_id).strip() == "":
            raise AssignmentError("Resource ID cannot be None or empty")
        self.resource_id = resource_id

        if not isinstance(estimated_days, (int, float)) or estimated_days < 0:
            raise AssignmentError("Estimated days must be a non-negative number")
        self.estimated_days = float(estimated_days)

        # 0 and None both fall back to a single profile
        if not number_of_profiles:
            number_of_profiles = 1
        if not isinstance(number_of_profiles, (int, float)) or number_of_profiles < 1:
            raise AssignmentError("Number of profiles must be at least 1")
        self.number_of_profiles = number_of_profiles

        if focus_factor is not None:
            if not isinstance(focus_factor, (int, float)) or not 0 <= focus_factor <= 100:
                raise AssignmentError("Focus factor must be between 0 and 100")
            focus_factor = float(focus_factor) or None
        self.focus_factor = focus_factor

    def __repr__(self):
        return (
            f"ResourceAssignment(resource_id={self.resource_id!r}, "
            f"estimated_days={self.estimated_days}, "
            f"number_of_profiles={self.number_of_profiles}, "
            f"focus_factor={self.focus_factor})"
        )


class ProjectResourceAssignment:
    """A pool of one resource type available to the whole project."""

    def __init__(
        self, resource_id: str, number_of_resources: int = 1, focus_factor: float = 100
    ):
        if resource_id is None or str(resource_id).strip() == "":
            raise AssignmentError("Resource ID cannot be None or empty")
        self.resource_id = resource_id

        if not isinstance(number_of_resources, (int, float)) or number_of_resources < 0:
            raise AssignmentError("Number of resources must be a non-negative number")
        self.number_of_resources = number_of_resources

        if not isinstance(focus_factor, (int, float)) or not 0 <= focus_factor <= 100:
            raise AssignmentError("Focus factor must be between 0 and 100")
        self.focus_factor = float(focus_factor)

    @property
    def daily_capacity(self) -> float:
        """Person-days of work this pool can burn on one working day."""
        return self.number_of_resources * (self.focus_factor / 100)

    def __repr__(self):
        return (
            f"ProjectResourceAssignment(resource_id={self.resource_id!r}, "
            f"number_of_resources={self.number_of_resources}, "
            f"focus_factor={self.focus_factor})"
        )


class Project:
    """A project groups tasks and optionally fixes the schedule start date."""

    def __init__(self, id: str, title: str, start_date=None, description: str = ""):
        if id is None or str(id).strip() == "":
            raise TaskError("Project ID cannot be None or empty")
        if not title or not isinstance(title, str):
            raise TaskError("Project title must be a non-empty string")
        self.id = id
        self.title = title
        self.start_date: Optional[date] = (
            as_date(start_date) if start_date is not None else None
        )
        self.description = description

    def __repr__(self):
        return f"Project(id={self.id!r}, title={self.title!r}, start_date={self.start_date})"
