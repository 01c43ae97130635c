"""Project and project-milestone endpoints for the admin and staff consoles."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext, get_current_user_context
from agency.db.dependencies import get_db_session
from agency.models.entities import ProjectStatus
from agency.services.project_service import (
    MilestoneCreateData,
    ProjectCreateData,
    ProjectService,
    ProjectUpdateData,
)

router = APIRouter(tags=["projects"])


class ProjectCreatePayload(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=r"^[A-Za-z0-9][A-Za-z0-9-]*$")
    status: ProjectStatus = ProjectStatus.DRAFT
    client_id: UUID | None = None


class ProjectUpdatePayload(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255, pattern=r"^[A-Za-z0-9][A-Za-z0-9-]*$")
    status: ProjectStatus | None = None
    client_id: UUID | None = None


class MilestoneCreatePayload(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    order: int | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    deadline: date | None = None
    is_visible: bool = True


class MilestoneReorderPayload(BaseModel):
    milestone_ids: list[UUID]


def _project_service(db: Session) -> ProjectService:
    return ProjectService(db)


@router.get("/projects")
def list_projects(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _project_service(db)
    items = service.list_projects(context=context)
    return {"items": [service.serialize_project(project) for project in items]}


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    project = service.create_project(
        context=context,
        data=ProjectCreateData(
            title=payload.title,
            slug=payload.slug,
            status=payload.status,
            client_id=payload.client_id,
        ),
    )
    return service.serialize_project(project)


@router.get("/projects/{project_id}")
def get_project(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    project = service.get_project(context=context, project_id=project_id)
    return service.serialize_project(project)


@router.patch("/projects/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    project = service.update_project(
        context=context,
        project_id=project_id,
        data=ProjectUpdateData(
            title=payload.title,
            slug=payload.slug,
            status=payload.status,
            client_id=payload.client_id,
            fields_set=frozenset(payload.model_fields_set),
        ),
    )
    return service.serialize_project(project)


@router.get("/projects/{project_id}/milestones")
def get_project_milestones(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    return service.project_milestones(context=context, project_id=project_id)


@router.post("/projects/{project_id}/milestones", status_code=status.HTTP_201_CREATED)
def create_project_milestone(
    project_id: UUID,
    payload: MilestoneCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    milestone = service.create_milestone(
        context=context,
        project_id=project_id,
        data=MilestoneCreateData(
            title=payload.title,
            description=payload.description,
            order=payload.order,
            price=payload.price,
            deadline=payload.deadline,
            is_visible=payload.is_visible,
        ),
    )
    return service.serialize_milestone(milestone)


@router.put("/projects/{project_id}/milestones/order")
def reorder_project_milestones(
    project_id: UUID,
    payload: MilestoneReorderPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _project_service(db)
    rows = service.reorder_milestones(
        context=context,
        project_id=project_id,
        milestone_ids=payload.milestone_ids,
    )
    return {"items": [service.serialize_milestone(milestone) for milestone in rows]}
