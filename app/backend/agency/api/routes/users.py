"""Admin user administration endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext, get_current_user_context
from agency.db.dependencies import get_db_session
from agency.models.entities import UserRole
from agency.services.user_service import UserService, UserUpdateData

router = APIRouter(prefix="/users", tags=["users"])


class UserUpdatePayload(BaseModel):
    role: UserRole | None = None
    manager_id: UUID | None = None


@router.get("")
def list_users(
    role: UserRole | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = UserService(db)
    users = service.list_users(context=context, role=role)
    return {"items": [service.serialize_user(user) for user in users]}


@router.patch("/{user_id}")
def update_user(
    user_id: UUID,
    payload: UserUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = UserService(db)
    user = service.update_user(
        context=context,
        user_id=user_id,
        data=UserUpdateData(
            role=payload.role,
            manager_id=payload.manager_id,
            fields_set=frozenset(payload.model_fields_set),
        ),
    )
    return service.serialize_user(user)
