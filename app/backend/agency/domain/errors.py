"""Domain errors raised by the aggregation and workflow core."""

from __future__ import annotations

from agency.domain.enums import TaskStatus


class AgencyDomainError(Exception):
    """Base class for errors raised outside of the HTTP layer."""


class InvalidTransition(AgencyDomainError):
    """Requested task status change is not part of the workflow graph."""

    def __init__(self, current: TaskStatus, requested: TaskStatus) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition from {current.value} to {requested.value}.")


class InvalidParameter(AgencyDomainError):
    """Input parameter rejected before any computation starts."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")
