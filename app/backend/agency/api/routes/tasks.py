"""Task maintenance and workflow endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext, get_current_user_context
from agency.db.dependencies import get_db_session
from agency.models.entities import TaskPriority, TaskStatus
from agency.services.project_service import ProjectService
from agency.services.task_service import TaskService, TaskStatusChange, TaskUpdateData

router = APIRouter(prefix="/tasks", tags=["tasks"])


class TaskUpdatePayload(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority | None = None
    due_date: date | None = None
    is_visible: bool | None = None
    assignee_id: UUID | None = None


class TaskStatusPayload(BaseModel):
    status: TaskStatus
    rejection_reason: str | None = Field(default=None, max_length=2000)


def _task_service(db: Session) -> TaskService:
    return TaskService(db)


@router.patch("/{task_id}")
def update_task(
    task_id: UUID,
    payload: TaskUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _task_service(db)
    task = service.update_task(
        context=context,
        task_id=task_id,
        data=TaskUpdateData(
            title=payload.title,
            description=payload.description,
            priority=payload.priority,
            due_date=payload.due_date,
            is_visible=payload.is_visible,
            assignee_id=payload.assignee_id,
            fields_set=frozenset(payload.model_fields_set),
        ),
    )
    return ProjectService.serialize_task(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _task_service(db)
    service.delete_task(context=context, task_id=task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{task_id}/next-statuses")
def get_task_next_statuses(
    task_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[str]]:
    service = _task_service(db)
    statuses = service.next_statuses(context=context, task_id=task_id)
    return {"items": [item.value for item in statuses]}


@router.put("/{task_id}/status")
def change_task_status(
    task_id: UUID,
    payload: TaskStatusPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _task_service(db)
    task = service.change_status(
        context=context,
        task_id=task_id,
        change=TaskStatusChange(status=payload.status, rejection_reason=payload.rejection_reason),
    )
    return ProjectService.serialize_task(task)
