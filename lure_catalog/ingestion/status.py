"""
Work Item Status Module
=======================

The only code path that changes a work item's status. Enforces the
lifecycle pending -> in_progress -> done | error, with pending -> error
for items rejected before any work starts.
"""

from __future__ import annotations

import logging

from lure_catalog.core.enums import WorkItemStatus
from lure_catalog.core.errors import InvalidTransitionError
from lure_catalog.core.schema import WorkItem
from lure_catalog.db.repositories import TaskQueueStore

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 500

ALLOWED_TRANSITIONS: dict[WorkItemStatus, frozenset[WorkItemStatus]] = {
    WorkItemStatus.PENDING: frozenset({WorkItemStatus.IN_PROGRESS, WorkItemStatus.ERROR}),
    WorkItemStatus.IN_PROGRESS: frozenset({WorkItemStatus.DONE, WorkItemStatus.ERROR}),
    WorkItemStatus.DONE: frozenset(),
    WorkItemStatus.ERROR: frozenset(),
}


def done_note(colors: int, weights: int, inserted: int, skipped: int = 0, failed: int = 0) -> str:
    """
    Build the note recorded on a completed item.

    Example: done_note(3, 2, 6) -> "3 colors x 2 weights = 6 rows inserted"
    """
    note = f"{colors} colors x {weights} weights = {inserted} rows inserted"
    if skipped:
        note += f", {skipped} duplicates skipped"
    if failed:
        note += f", {failed} failed"
    return note


class StatusTracker:
    """
    Moves work items through their lifecycle.

    The tracker updates both the store and the in-memory WorkItem so the
    caller always sees the current status.
    """

    def __init__(self, queue: TaskQueueStore) -> None:
        self.queue = queue

    def start(self, item: WorkItem) -> None:
        """Mark an item in progress."""
        self._transition(item, WorkItemStatus.IN_PROGRESS)

    def complete(self, item: WorkItem, note: str) -> None:
        """Mark an in-progress item done."""
        self._transition(item, WorkItemStatus.DONE, note)

    def fail(self, item: WorkItem, message: str) -> None:
        """Mark an item errored; the message is truncated to 500 characters."""
        self._transition(item, WorkItemStatus.ERROR, message[:MAX_NOTE_LENGTH])

    def _transition(self, item: WorkItem, target: WorkItemStatus, note: str | None = None) -> None:
        if target not in ALLOWED_TRANSITIONS[item.status]:
            raise InvalidTransitionError(
                f"Work item {item.id}: {item.status.value} -> {target.value} not allowed"
            )
        self.queue.set_status(item.id, target, note)
        item.status = target
        if note is not None:
            item.note = note
        logger.debug(f"Work item {item.id} -> {target.value}")
