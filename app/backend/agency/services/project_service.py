"""Application service for projects, milestones and milestone payments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext, can_view_project
from agency.domain.progress import (
    MilestoneProgress,
    ProjectSummary,
    compute_milestone_progress,
    compute_project_summary,
    filter_for_client_visibility,
)
from agency.domain.records import ClientRef, MilestoneRecord, ProjectRef, TaskRecord
from agency.models.entities import Milestone, PaymentStatus, Project, ProjectStatus, Task, User, UserRole
from agency.repositories.agency_repository import AgencyRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProjectCreateData:
    title: str
    slug: str
    status: ProjectStatus
    client_id: UUID | None


@dataclass(slots=True)
class ProjectUpdateData:
    title: str | None = None
    slug: str | None = None
    status: ProjectStatus | None = None
    client_id: UUID | None = None
    fields_set: frozenset[str] = frozenset()


@dataclass(slots=True)
class MilestoneCreateData:
    title: str
    description: str | None = None
    order: int | None = None
    price: Decimal | None = None
    deadline: date | None = None
    is_visible: bool = True


@dataclass(slots=True)
class MilestoneUpdateData:
    title: str | None = None
    description: str | None = None
    price: Decimal | None = None
    deadline: date | None = None
    is_visible: bool | None = None
    fields_set: frozenset[str] = frozenset()


@dataclass(slots=True)
class PaymentUpdateData:
    payment_status: PaymentStatus
    payment_date: date | None = None
    payment_amount: Decimal | None = None


def _decimal_or_none(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def to_task_record(task: Task) -> TaskRecord:
    return TaskRecord(id=task.id, title=task.title, status=task.status, is_visible=task.is_visible)


def to_milestone_record(milestone: Milestone) -> MilestoneRecord:
    return MilestoneRecord(
        id=milestone.id,
        title=milestone.title,
        price=milestone.price,
        payment_status=milestone.payment_status,
        payment_amount=milestone.payment_amount,
        payment_date=milestone.payment_date,
        is_visible=milestone.is_visible,
        tasks=tuple(to_task_record(task) for task in milestone.tasks),
    )


def to_project_ref(project: Project) -> ProjectRef:
    return ProjectRef(
        id=project.id,
        title=project.title,
        slug=project.slug,
        status=project.status,
        updated_at=project.updated_at,
    )


def to_client_ref(user: User | None) -> ClientRef | None:
    if user is None:
        return None
    return ClientRef(id=user.id, name=user.name, email=user.email)


class ProjectService:
    """Project and milestone management with role-gated visibility."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = AgencyRepository(db)

    # ---------- Access ----------
    @staticmethod
    def ensure_staff(context: RequestUserContext) -> None:
        if not context.is_staff_or_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only agency staff can perform this operation.",
            )

    @staticmethod
    def ensure_admin(context: RequestUserContext) -> None:
        if not context.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only administrators can perform this operation.",
            )

    def _ensure_project_access(self, *, context: RequestUserContext, project: Project | None) -> Project:
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        if not can_view_project(context, project):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this project.",
            )
        return project

    def _get_milestone_for_staff(self, *, context: RequestUserContext, milestone_id: UUID) -> Milestone:
        self.ensure_staff(context)
        milestone = self.repo.get_milestone(milestone_id)
        if milestone is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Milestone not found.")
        return milestone

    def _ensure_client_user(self, client_id: UUID) -> User:
        client = self.repo.get_user(client_id)
        if client is None or client.role is not UserRole.CLIENT:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="client_id must reference an existing client user.",
            )
        return client

    def _commit_or_conflict(self, detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc

    # ---------- Serialization ----------
    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": str(project.id),
            "title": project.title,
            "slug": project.slug,
            "status": project.status.value,
            "client_id": str(project.client_id) if project.client_id is not None else None,
            "published_at": project.published_at.isoformat() if project.published_at else None,
            "created_at": project.created_at.isoformat(),
            "updated_at": project.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_milestone(milestone: Milestone) -> dict[str, object]:
        return {
            "id": str(milestone.id),
            "project_id": str(milestone.project_id),
            "title": milestone.title,
            "description": milestone.description,
            "order": milestone.order,
            "price": _decimal_or_none(milestone.price),
            "payment_status": milestone.payment_status.value,
            "payment_amount": _decimal_or_none(milestone.payment_amount),
            "payment_date": milestone.payment_date.isoformat() if milestone.payment_date else None,
            "deadline": milestone.deadline.isoformat() if milestone.deadline else None,
            "is_visible": milestone.is_visible,
        }

    @staticmethod
    def serialize_task(task: Task, *, client_view: bool = False) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": str(task.id),
            "milestone_id": str(task.milestone_id),
            "title": task.title,
            "status": task.status.value,
            "is_visible": task.is_visible,
            "approved_at": task.approved_at.isoformat() if task.approved_at else None,
            "created_at": task.created_at.isoformat(),
        }
        if client_view:
            return payload
        payload.update(
            {
                "description": task.description,
                "priority": task.priority.value,
                "due_date": task.due_date.isoformat() if task.due_date else None,
                "assignee_id": str(task.assignee_id) if task.assignee_id is not None else None,
                "rejection_reason": task.rejection_reason,
                "submitted_at": task.submitted_at.isoformat() if task.submitted_at else None,
                "approved_by_id": str(task.approved_by_id) if task.approved_by_id is not None else None,
            }
        )
        return payload

    @staticmethod
    def serialize_progress(progress: MilestoneProgress) -> dict[str, object]:
        return {
            "total_tasks": progress.total_tasks,
            "completed_tasks": progress.completed_tasks,
            "progress_percent": progress.progress_percent,
        }

    @staticmethod
    def serialize_summary(summary: ProjectSummary) -> dict[str, object]:
        return {
            "total_milestones": summary.total_milestones,
            "total_tasks": summary.total_tasks,
            "completed_tasks": summary.completed_tasks,
            "overall_progress": summary.overall_progress,
            "total_price": str(summary.total_price),
            "paid_amount": str(summary.paid_amount),
            "unpaid_amount": str(summary.unpaid_amount),
            "paid_milestones": summary.paid_milestones,
        }

    # ---------- Projects ----------
    def list_projects(self, *, context: RequestUserContext) -> list[Project]:
        if context.is_staff_or_admin:
            return self.repo.list_projects()
        return self.repo.list_projects(client_id=context.user_id)

    def get_project(self, *, context: RequestUserContext, project_id: UUID) -> Project:
        return self._ensure_project_access(context=context, project=self.repo.get_project(project_id))

    def create_project(self, *, context: RequestUserContext, data: ProjectCreateData) -> Project:
        self.ensure_admin(context)
        if data.client_id is not None:
            self._ensure_client_user(data.client_id)

        now = datetime.utcnow()
        project = Project(
            title=data.title.strip(),
            slug=data.slug.strip().lower(),
            status=data.status,
            client_id=data.client_id,
            created_at=now,
            updated_at=now,
        )
        try:
            self.repo.add_project(project)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project slug already exists.") from exc
        self.db.refresh(project)
        logger.info("Project %s created by %s", project.slug, context.email)
        return project

    def update_project(self, *, context: RequestUserContext, project_id: UUID, data: ProjectUpdateData) -> Project:
        self.ensure_admin(context)
        project = self.get_project(context=context, project_id=project_id)

        if data.title is not None:
            project.title = data.title.strip()
        if data.slug is not None:
            project.slug = data.slug.strip().lower()
        if data.status is not None:
            project.status = data.status
        if "client_id" in data.fields_set:
            if data.client_id is not None:
                self._ensure_client_user(data.client_id)
            project.client_id = data.client_id
        project.updated_at = datetime.utcnow()

        self._commit_or_conflict("Project slug already exists.")
        self.db.refresh(project)
        return project

    # ---------- Milestones ----------
    def create_milestone(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        data: MilestoneCreateData,
    ) -> Milestone:
        self.ensure_staff(context)
        project = self.get_project(context=context, project_id=project_id)

        order = data.order if data.order is not None else self.repo.max_milestone_order(project.id) + 1
        now = datetime.utcnow()
        milestone = Milestone(
            project_id=project.id,
            title=data.title.strip(),
            description=data.description.strip() if data.description else None,
            order=order,
            price=data.price,
            payment_status=PaymentStatus.UNPAID,
            deadline=data.deadline,
            is_visible=data.is_visible,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_milestone(milestone)
        self.db.commit()
        self.db.refresh(milestone)
        return milestone

    def update_milestone(
        self,
        *,
        context: RequestUserContext,
        milestone_id: UUID,
        data: MilestoneUpdateData,
    ) -> Milestone:
        milestone = self._get_milestone_for_staff(context=context, milestone_id=milestone_id)

        if data.title is not None:
            milestone.title = data.title.strip()
        if "description" in data.fields_set:
            milestone.description = (data.description or "").strip() or None
        if "price" in data.fields_set:
            milestone.price = data.price
        if "deadline" in data.fields_set:
            milestone.deadline = data.deadline
        if data.is_visible is not None:
            milestone.is_visible = data.is_visible
        milestone.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(milestone)
        return milestone

    def delete_milestone(self, *, context: RequestUserContext, milestone_id: UUID) -> None:
        self.ensure_admin(context)
        milestone = self._get_milestone_for_staff(context=context, milestone_id=milestone_id)
        self.repo.delete_milestone(milestone)
        self.db.commit()

    def reorder_milestones(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        milestone_ids: list[UUID],
    ) -> list[Milestone]:
        self.ensure_staff(context)
        project = self.get_project(context=context, project_id=project_id)
        milestones = self.repo.list_milestones_with_tasks(project.id)

        by_id = {milestone.id: milestone for milestone in milestones}
        if len(milestone_ids) != len(set(milestone_ids)) or set(milestone_ids) != set(by_id):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="milestone_ids must list every milestone of the project exactly once.",
            )

        now = datetime.utcnow()
        for position, milestone_id in enumerate(milestone_ids, start=1):
            milestone = by_id[milestone_id]
            if milestone.order != position:
                milestone.order = position
                milestone.updated_at = now
        self.db.commit()
        return self.repo.list_milestones_with_tasks(project.id)

    def update_payment(
        self,
        *,
        context: RequestUserContext,
        milestone_id: UUID,
        data: PaymentUpdateData,
    ) -> Milestone:
        """Record a milestone's billing state.

        PAID and PARTIAL get a payment date (today when none is given); PAID stores the full
        price as the paid amount; UNPAID clears both date and amount.
        """

        self.ensure_admin(context)
        milestone = self._get_milestone_for_staff(context=context, milestone_id=milestone_id)

        payment_status = data.payment_status
        if payment_status is PaymentStatus.UNPAID:
            milestone.payment_date = None
            milestone.payment_amount = None
        elif payment_status is PaymentStatus.PAID:
            milestone.payment_date = data.payment_date or date.today()
            milestone.payment_amount = milestone.price
        elif payment_status is PaymentStatus.PARTIAL:
            milestone.payment_date = data.payment_date or date.today()
            milestone.payment_amount = data.payment_amount
            if (
                data.payment_amount is not None
                and milestone.price is not None
                and data.payment_amount > milestone.price
            ):
                logger.warning(
                    "Milestone %s partial payment %s exceeds price %s; stored as given",
                    milestone.id,
                    data.payment_amount,
                    milestone.price,
                )
        milestone.payment_status = payment_status
        milestone.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(milestone)
        logger.info(
            "Milestone %s payment set to %s by %s",
            milestone.id,
            payment_status.value,
            context.email,
        )
        return milestone

    # ---------- Progress views ----------
    def _milestone_overview(self, *, context: RequestUserContext, project: Project) -> dict[str, object]:
        milestones = self.repo.list_milestones_with_tasks(project.id)
        client_view = not context.is_staff_or_admin

        records = [to_milestone_record(milestone) for milestone in milestones]
        if client_view:
            records = filter_for_client_visibility(records)

        rows_by_id = {milestone.id: milestone for milestone in milestones}
        milestone_payloads: list[dict[str, object]] = []
        for record in records:
            milestone = rows_by_id[record.id]
            visible_task_ids = {task.id for task in record.tasks}
            payload = self.serialize_milestone(milestone)
            payload["tasks"] = [
                self.serialize_task(task, client_view=client_view)
                for task in milestone.tasks
                if task.id in visible_task_ids
            ]
            payload.update(self.serialize_progress(compute_milestone_progress(record)))
            milestone_payloads.append(payload)

        return {
            "project": {"id": str(project.id), "title": project.title, "slug": project.slug},
            "milestones": milestone_payloads,
            "summary": self.serialize_summary(compute_project_summary(records)),
        }

    def project_milestones(self, *, context: RequestUserContext, project_id: UUID) -> dict[str, object]:
        project = self.get_project(context=context, project_id=project_id)
        return self._milestone_overview(context=context, project=project)

    def portal_milestones(self, *, context: RequestUserContext, slug: str) -> dict[str, object]:
        project = self._ensure_project_access(context=context, project=self.repo.get_project_by_slug(slug))
        return self._milestone_overview(context=context, project=project)
