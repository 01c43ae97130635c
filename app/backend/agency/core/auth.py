"""Authentication context extraction and role guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from agency.core.config import get_settings
from agency.db.dependencies import get_db_session
from agency.models.entities import Project, User, UserRole

STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.STAFF})


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    subject: str
    email: str
    display_name: str | None
    status: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    @property
    def is_staff_or_admin(self) -> bool:
        """Whether the user belongs to the agency side (admin console or staff)."""

        return self.role in STAFF_ROLES

    @property
    def is_client(self) -> bool:
        return self.role is UserRole.CLIENT


def _require_identity_headers(
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_name: str | None,
) -> tuple[str, str, str]:
    if not x_auth_subject or not x_auth_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "Missing identity headers. Expected X-Auth-Subject and X-Auth-Email or enable development principal fallback."
            ),
        )

    display_name = x_auth_name or x_auth_email
    return x_auth_subject.strip(), x_auth_email.strip().lower(), display_name.strip()


def _resolve_identity(
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_name: str | None,
) -> tuple[str, str, str]:
    settings = get_settings()
    if x_auth_subject and x_auth_email:
        return _require_identity_headers(x_auth_subject, x_auth_email, x_auth_name)

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_subject.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_display_name.strip(),
        )

    return _require_identity_headers(x_auth_subject, x_auth_email, x_auth_name)


def _upsert_user(
    db: Session,
    *,
    subject: str,
    email: str,
    display_name: str,
    role: UserRole | None = None,
) -> User:
    user = db.scalar(select(User).where(User.subject == subject))
    now = datetime.utcnow()

    if user is None:
        if role is None:
            role = UserRole.ADMIN if email in get_settings().auth_admin_emails else UserRole.CLIENT
        user = User(
            subject=subject,
            email=email,
            name=display_name,
            role=role,
            status="active",
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        return user

    changed = False
    if user.email != email:
        user.email = email
        changed = True
    if user.name != display_name:
        user.name = display_name
        changed = True
    if role is not None and user.role is not role:
        user.role = role
        changed = True

    user.last_login_at = now
    if changed:
        user.updated_at = now
    db.flush()
    return user


def ensure_user_principal(
    db: Session,
    *,
    subject: str,
    email: str,
    display_name: str,
    role: UserRole | None = None,
    manager_id: UUID | None = None,
) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_subject = subject.strip()
    normalized_email = email.strip().lower()
    normalized_display_name = display_name.strip() or normalized_email

    user = _upsert_user(
        db,
        subject=normalized_subject,
        email=normalized_email,
        display_name=normalized_display_name,
        role=role,
    )
    if manager_id is not None:
        user.manager_id = manager_id
    db.commit()
    db.refresh(user)
    return user


def get_current_user_context(
    x_auth_subject: str | None = Header(default=None, alias="X-Auth-Subject"),
    x_auth_email: str | None = Header(default=None, alias="X-Auth-Email"),
    x_auth_name: str | None = Header(default=None, alias="X-Auth-Name"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and role.

    Identity headers are trusted; they are set by the session-aware frontend proxy.
    """

    subject, email, display_name = _resolve_identity(x_auth_subject, x_auth_email, x_auth_name)
    user = _upsert_user(db, subject=subject, email=email, display_name=display_name)
    db.commit()

    return RequestUserContext(
        user_id=user.id,
        subject=user.subject,
        email=user.email,
        display_name=user.name,
        status=user.status,
        role=user.role,
    )


def has_role(context: RequestUserContext, allowed_roles: set[UserRole] | frozenset[UserRole]) -> bool:
    """Check whether user has one of the allowed roles."""

    return context.role in allowed_roles


def can_view_project(context: RequestUserContext, project: Project) -> bool:
    """Agency users see every project; clients only their own."""

    if context.is_staff_or_admin:
        return True
    return project.client_id is not None and project.client_id == context.user_id


def require_roles(*roles: UserRole):
    """Dependency factory requiring one of the provided roles."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this operation.",
            )
        return context

    return dependency
