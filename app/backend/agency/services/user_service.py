"""Admin user management: roles and manager links."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext
from agency.models.entities import User, UserRole
from agency.repositories.agency_repository import AgencyRepository
from agency.services.project_service import ProjectService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserUpdateData:
    role: UserRole | None = None
    manager_id: UUID | None = None
    fields_set: frozenset[str] = frozenset()


class UserService:
    """Role and manager administration, restricted to ADMIN."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = AgencyRepository(db)

    @staticmethod
    def serialize_user(user: User) -> dict[str, object]:
        return {
            "id": str(user.id),
            "subject": user.subject,
            "email": user.email,
            "name": user.name,
            "role": user.role.value,
            "manager_id": str(user.manager_id) if user.manager_id is not None else None,
            "status": user.status,
            "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
            "created_at": user.created_at.isoformat(),
            "updated_at": user.updated_at.isoformat(),
        }

    def list_users(self, *, context: RequestUserContext, role: UserRole | None = None) -> list[User]:
        ProjectService.ensure_admin(context)
        return self.repo.list_users(role=role)

    def _get_user(self, user_id: UUID) -> User:
        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    def _ensure_manager(self, *, user: User, manager_id: UUID) -> None:
        if manager_id == user.id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="A user cannot be their own manager.",
            )
        manager = self.repo.get_user(manager_id)
        if manager is None or manager.role is not UserRole.ADMIN:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Manager must be an ADMIN user.",
            )

    def update_user(self, *, context: RequestUserContext, user_id: UUID, data: UserUpdateData) -> User:
        """Change a user's role and/or manager.

        An omitted ``manager_id`` keeps the current manager; an explicit null clears it.
        """

        ProjectService.ensure_admin(context)
        user = self._get_user(user_id)

        if data.role is not None and user.role is not data.role:
            logger.info("User %s role %s -> %s by %s", user.email, user.role.value, data.role.value, context.email)
            user.role = data.role
        if "manager_id" in data.fields_set:
            if data.manager_id is not None:
                self._ensure_manager(user=user, manager_id=data.manager_id)
            user.manager_id = data.manager_id
        user.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(user)
        return user
