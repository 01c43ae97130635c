"""Task approval workflow.

TODO -> IN_PROGRESS -> SUBMITTED -> APPROVED, with SUBMITTED -> REJECTED -> IN_PROGRESS
as the rework loop. APPROVED is terminal.
"""

from __future__ import annotations

from agency.domain.enums import TaskStatus
from agency.domain.errors import InvalidTransition

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.TODO: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.SUBMITTED}),
    TaskStatus.SUBMITTED: frozenset({TaskStatus.APPROVED, TaskStatus.REJECTED}),
    TaskStatus.REJECTED: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.APPROVED: frozenset(),
}

REVIEW_OUTCOMES = frozenset({TaskStatus.APPROVED, TaskStatus.REJECTED})


def can_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def validate_transition(current: TaskStatus, requested: TaskStatus) -> None:
    """Raise ``InvalidTransition`` unless ``current -> requested`` is an allowed edge."""

    if not can_transition(current, requested):
        raise InvalidTransition(current, requested)


def valid_next_statuses(current: TaskStatus, *, is_manager: bool) -> list[TaskStatus]:
    """Statuses the actor may move a task to; review outcomes need a manager."""

    allowed = ALLOWED_TRANSITIONS[current]
    if not is_manager:
        allowed = allowed - REVIEW_OUTCOMES
    return [status for status in TaskStatus if status in allowed]
