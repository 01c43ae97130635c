"""Repository helpers for projects, milestones, tasks and users."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload, selectinload

from agency.models.entities import Milestone, PaymentStatus, Project, ProjectStatus, Task, User, UserRole


def period_bounds(year: int, month: int | None) -> tuple[date, date]:
    """Inclusive first and last day of a calendar year or month."""

    if month is None:
        return date(year, 1, 1), date(year, 12, 31)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


class AgencyRepository:
    """Persistence operations used by project, workflow and reporting services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users ----------
    def get_user(self, user_id: UUID) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def list_users(self, *, role: UserRole | None = None) -> list[User]:
        query = select(User).order_by(User.created_at.asc(), User.email.asc())
        if role is not None:
            query = query.where(User.role == role)
        return list(self.db.scalars(query).all())

    def get_user_by_subject(self, subject: str) -> User | None:
        return self.db.scalar(select(User).where(User.subject == subject))

    def add_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    # ---------- Projects ----------
    def list_projects(self, *, client_id: UUID | None = None) -> list[Project]:
        query = select(Project).order_by(Project.updated_at.desc(), Project.title.asc())
        if client_id is not None:
            query = query.where(Project.client_id == client_id)
        return list(self.db.scalars(query).unique().all())

    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def get_project_by_slug(self, slug: str) -> Project | None:
        return self.db.scalar(select(Project).where(Project.slug == slug))

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    # ---------- Milestones ----------
    def list_milestones_with_tasks(self, project_id: UUID) -> list[Milestone]:
        """Milestones of a project by order, each with tasks in creation order."""

        return list(
            self.db.scalars(
                select(Milestone)
                .where(Milestone.project_id == project_id)
                .options(selectinload(Milestone.tasks))
                .order_by(Milestone.order.asc(), Milestone.created_at.asc())
            ).all()
        )

    def get_milestone(self, milestone_id: UUID) -> Milestone | None:
        return self.db.scalar(select(Milestone).where(Milestone.id == milestone_id))

    def max_milestone_order(self, project_id: UUID) -> int:
        return self.db.scalar(
            select(func.coalesce(func.max(Milestone.order), 0)).where(Milestone.project_id == project_id)
        ) or 0

    def add_milestone(self, milestone: Milestone) -> Milestone:
        self.db.add(milestone)
        self.db.flush()
        return milestone

    def delete_milestone(self, milestone: Milestone) -> None:
        self.db.delete(milestone)
        self.db.flush()

    # ---------- Tasks ----------
    def get_task(self, task_id: UUID) -> Task | None:
        return self.db.scalar(select(Task).where(Task.id == task_id))

    def add_task(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    def delete_task(self, task: Task) -> None:
        self.db.delete(task)
        self.db.flush()

    # ---------- Reporting ----------
    def list_paid_milestones(self, *, year: int, month: int | None) -> list[Milestone]:
        """PAID milestones and PARTIAL milestones with a recorded amount, paid in the period.

        Each row has its project and the project's client loaded.
        """

        period_start, period_end = period_bounds(year, month)
        return list(
            self.db.scalars(
                select(Milestone)
                .join(Project, Project.id == Milestone.project_id)
                .where(
                    Milestone.payment_status.in_([PaymentStatus.PAID, PaymentStatus.PARTIAL]),
                    or_(Milestone.payment_status == PaymentStatus.PAID, Milestone.payment_amount.is_not(None)),
                    Milestone.payment_date.is_not(None),
                    Milestone.payment_date >= period_start,
                    Milestone.payment_date <= period_end,
                )
                .options(joinedload(Milestone.project).joinedload(Project.client))
                .order_by(Milestone.payment_date.asc(), Milestone.title.asc())
            )
            .unique()
            .all()
        )

    def list_client_projects(self, *, statuses: Iterable[ProjectStatus]) -> list[Project]:
        """Projects that have a client, most recently updated first."""

        return list(
            self.db.scalars(
                select(Project)
                .where(Project.client_id.is_not(None), Project.status.in_(list(statuses)))
                .options(joinedload(Project.client))
                .order_by(Project.updated_at.desc())
            )
            .unique()
            .all()
        )
