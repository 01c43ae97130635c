"""Client portal endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext, get_current_user_context
from agency.db.dependencies import get_db_session
from agency.services.project_service import ProjectService

router = APIRouter(prefix="/portal", tags=["portal"])


@router.get("/projects")
def list_portal_projects(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = ProjectService(db)
    items = service.list_projects(context=context)
    return {"items": [service.serialize_project(project) for project in items]}


@router.get("/projects/{slug}/milestones")
def get_portal_project_milestones(
    slug: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    return service.portal_milestones(context=context, slug=slug)
