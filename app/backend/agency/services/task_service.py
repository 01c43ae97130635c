"""Application service for milestone tasks and the approval workflow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from agency.core.auth import STAFF_ROLES, RequestUserContext
from agency.domain.progress import is_project_complete
from agency.domain.workflow import valid_next_statuses, validate_transition
from agency.models.entities import Project, ProjectStatus, Task, TaskPriority, TaskStatus
from agency.repositories.agency_repository import AgencyRepository
from agency.services.project_service import ProjectService, to_milestone_record

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskCreateData:
    title: str
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    is_visible: bool = True
    assignee_id: UUID | None = None


@dataclass(slots=True)
class TaskUpdateData:
    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None
    due_date: date | None = None
    is_visible: bool | None = None
    assignee_id: UUID | None = None
    fields_set: frozenset[str] = frozenset()


@dataclass(slots=True)
class TaskStatusChange:
    status: TaskStatus
    rejection_reason: str | None = None


class TaskService:
    """Task CRUD and status workflow enforcement."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = AgencyRepository(db)

    def _get_task(self, *, context: RequestUserContext, task_id: UUID) -> Task:
        ProjectService.ensure_staff(context)
        task = self.repo.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
        return task

    def _ensure_assignee_exists(self, assignee_id: UUID) -> None:
        assignee = self.repo.get_user(assignee_id)
        if assignee is None or assignee.role not in STAFF_ROLES:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="assignee_id must reference an existing staff user.",
            )

    @staticmethod
    def _is_manager(context: RequestUserContext, task: Task) -> bool:
        return task.assignee is not None and task.assignee.manager_id == context.user_id

    # ---------- CRUD ----------
    def create_task(self, *, context: RequestUserContext, milestone_id: UUID, data: TaskCreateData) -> Task:
        ProjectService.ensure_staff(context)
        milestone = self.repo.get_milestone(milestone_id)
        if milestone is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Milestone not found.")
        if data.assignee_id is not None:
            self._ensure_assignee_exists(data.assignee_id)

        now = datetime.utcnow()
        task = Task(
            milestone_id=milestone.id,
            title=data.title.strip(),
            description=data.description.strip() if data.description else None,
            status=TaskStatus.TODO,
            priority=data.priority,
            due_date=data.due_date,
            is_visible=data.is_visible,
            assignee_id=data.assignee_id,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_task(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def update_task(self, *, context: RequestUserContext, task_id: UUID, data: TaskUpdateData) -> Task:
        task = self._get_task(context=context, task_id=task_id)

        if data.title is not None:
            task.title = data.title.strip()
        if "description" in data.fields_set:
            task.description = (data.description or "").strip() or None
        if data.priority is not None:
            task.priority = data.priority
        if "due_date" in data.fields_set:
            task.due_date = data.due_date
        if data.is_visible is not None:
            task.is_visible = data.is_visible
        if "assignee_id" in data.fields_set:
            if data.assignee_id is not None:
                self._ensure_assignee_exists(data.assignee_id)
            task.assignee_id = data.assignee_id
        task.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(task)
        return task

    def delete_task(self, *, context: RequestUserContext, task_id: UUID) -> None:
        ProjectService.ensure_admin(context)
        task = self._get_task(context=context, task_id=task_id)
        self.repo.delete_task(task)
        self.db.commit()

    # ---------- Workflow ----------
    def next_statuses(self, *, context: RequestUserContext, task_id: UUID) -> list[TaskStatus]:
        task = self._get_task(context=context, task_id=task_id)
        return valid_next_statuses(task.status, is_manager=context.is_admin or self._is_manager(context, task))

    def _ensure_transition_permission(self, *, context: RequestUserContext, task: Task, requested: TaskStatus) -> None:
        if context.is_admin:
            return

        if requested in {TaskStatus.APPROVED, TaskStatus.REJECTED}:
            if not self._is_manager(context, task):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only the assignee's manager can approve or reject tasks.",
                )
            return

        if task.assignee_id != context.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the assignee can move this task forward.",
            )

    def change_status(self, *, context: RequestUserContext, task_id: UUID, change: TaskStatusChange) -> Task:
        """Apply a workflow transition.

        The transition graph is checked before permissions and nothing is written when
        either check fails.
        """

        task = self._get_task(context=context, task_id=task_id)
        current = task.status
        requested = change.status

        validate_transition(current, requested)
        self._ensure_transition_permission(context=context, task=task, requested=requested)

        reason = change.rejection_reason.strip() if change.rejection_reason else None
        if requested is TaskStatus.REJECTED and not reason:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Rejection reason is required.",
            )

        now = datetime.utcnow()
        if requested is TaskStatus.SUBMITTED:
            task.submitted_at = now
            task.rejection_reason = None
        elif requested is TaskStatus.APPROVED:
            task.approved_at = now
            task.approved_by_id = context.user_id
            task.rejection_reason = None
        elif requested is TaskStatus.REJECTED:
            task.rejection_reason = reason
            task.approved_at = None
            task.approved_by_id = None
        elif requested is TaskStatus.IN_PROGRESS and current is TaskStatus.REJECTED:
            task.submitted_at = None

        task.status = requested
        task.updated_at = now
        self.db.flush()

        if requested is TaskStatus.APPROVED:
            self._complete_project_if_done(task.milestone.project)

        self.db.commit()
        self.db.refresh(task)
        logger.info(
            "Task %s moved %s -> %s by %s",
            task.id,
            current.value,
            requested.value,
            context.email,
        )
        return task

    def _complete_project_if_done(self, project: Project) -> None:
        milestones = self.repo.list_milestones_with_tasks(project.id)
        if not is_project_complete([to_milestone_record(milestone) for milestone in milestones]):
            return
        if project.status is ProjectStatus.COMPLETED:
            return

        now = datetime.utcnow()
        project.status = ProjectStatus.COMPLETED
        project.published_at = now
        project.updated_at = now
        logger.info("Project %s completed: every task approved", project.slug)
