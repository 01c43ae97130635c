"""Milestone maintenance, payment and task creation endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext, get_current_user_context
from agency.db.dependencies import get_db_session
from agency.models.entities import PaymentStatus, TaskPriority
from agency.services.project_service import MilestoneUpdateData, PaymentUpdateData, ProjectService
from agency.services.task_service import TaskCreateData, TaskService

router = APIRouter(prefix="/milestones", tags=["milestones"])


class MilestoneUpdatePayload(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    deadline: date | None = None
    is_visible: bool | None = None


class PaymentUpdatePayload(BaseModel):
    payment_status: PaymentStatus
    payment_date: date | None = None
    payment_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class TaskCreatePayload(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    is_visible: bool = True
    assignee_id: UUID | None = None


def _project_service(db: Session) -> ProjectService:
    return ProjectService(db)


@router.patch("/{milestone_id}")
def update_milestone(
    milestone_id: UUID,
    payload: MilestoneUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    milestone = service.update_milestone(
        context=context,
        milestone_id=milestone_id,
        data=MilestoneUpdateData(
            title=payload.title,
            description=payload.description,
            price=payload.price,
            deadline=payload.deadline,
            is_visible=payload.is_visible,
            fields_set=frozenset(payload.model_fields_set),
        ),
    )
    return service.serialize_milestone(milestone)


@router.delete("/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_milestone(
    milestone_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _project_service(db)
    service.delete_milestone(context=context, milestone_id=milestone_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{milestone_id}/payment")
def update_milestone_payment(
    milestone_id: UUID,
    payload: PaymentUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    milestone = service.update_payment(
        context=context,
        milestone_id=milestone_id,
        data=PaymentUpdateData(
            payment_status=payload.payment_status,
            payment_date=payload.payment_date,
            payment_amount=payload.payment_amount,
        ),
    )
    return service.serialize_milestone(milestone)


@router.post("/{milestone_id}/tasks", status_code=status.HTTP_201_CREATED)
def create_milestone_task(
    milestone_id: UUID,
    payload: TaskCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = TaskService(db)
    task = service.create_task(
        context=context,
        milestone_id=milestone_id,
        data=TaskCreateData(
            title=payload.title,
            description=payload.description,
            priority=payload.priority,
            due_date=payload.due_date,
            is_visible=payload.is_visible,
            assignee_id=payload.assignee_id,
        ),
    )
    return ProjectService.serialize_task(task)
