"""Plain input records for the aggregation core.

The service layer builds these from ORM rows so the core never touches a session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from agency.domain.enums import PaymentStatus, ProjectStatus, TaskStatus


@dataclass(frozen=True, slots=True)
class TaskRecord:
    id: UUID
    title: str
    status: TaskStatus
    is_visible: bool = True


@dataclass(frozen=True, slots=True)
class MilestoneRecord:
    id: UUID
    title: str
    price: Decimal | None = None
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_amount: Decimal | None = None
    payment_date: date | None = None
    is_visible: bool = True
    tasks: tuple[TaskRecord, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ClientRef:
    id: UUID
    name: str | None
    email: str


@dataclass(frozen=True, slots=True)
class ProjectRef:
    id: UUID
    title: str
    slug: str
    status: ProjectStatus
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class PaidMilestoneRecord:
    """Milestone annotated with its owning project and that project's client."""

    milestone: MilestoneRecord
    project: ProjectRef
    client: ClientRef | None


@dataclass(frozen=True, slots=True)
class ClientProjectRecord:
    """One (client, project) pair; a client may appear once per project."""

    client: ClientRef
    project: ProjectRef
