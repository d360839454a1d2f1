"""Enums for work item and pipeline state."""

from enum import Enum


class WorkItemStatus(str, Enum):
    """Lifecycle status of a task queue work item."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Done and Error end an item's lifecycle for the current run."""
        return self in (WorkItemStatus.DONE, WorkItemStatus.ERROR)


class ItemOutcome(str, Enum):
    """Outcome of processing a single work item."""

    SUCCESS = "success"
    ERROR = "error"
