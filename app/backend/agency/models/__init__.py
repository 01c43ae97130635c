"""ORM model package."""

from agency.models.entities import (
    Milestone,
    Project,
    Task,
    User,
)

__all__ = [
    "Milestone",
    "Project",
    "Task",
    "User",
]
