from __future__ import annotations

import uuid
from datetime import datetime

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from agency.core.auth import (
    RequestUserContext,
    can_view_project,
    ensure_user_principal,
    has_role,
    require_roles,
)
from agency.models.entities import Project, ProjectStatus, UserRole


def _context(role: UserRole, user_id: uuid.UUID | None = None) -> RequestUserContext:
    return RequestUserContext(
        user_id=user_id or uuid.uuid4(),
        subject=f"sub-{role.value.lower()}",
        email=f"{role.value.lower()}@test.local",
        display_name=role.value.title(),
        status="active",
        role=role,
    )


def _project(client_id: uuid.UUID | None) -> Project:
    now = datetime.utcnow()
    return Project(
        id=uuid.uuid4(),
        title="Site",
        slug="site",
        status=ProjectStatus.IN_PROGRESS,
        client_id=client_id,
        created_at=now,
        updated_at=now,
    )


def test_has_role_matches_expected_roles() -> None:
    context = _context(UserRole.STAFF)

    assert has_role(context, {UserRole.STAFF}) is True
    assert has_role(context, {UserRole.ADMIN, UserRole.CLIENT}) is False
    assert context.is_staff_or_admin is True
    assert context.is_admin is False


def test_client_sees_only_own_projects() -> None:
    client_id = uuid.uuid4()
    context = _context(UserRole.CLIENT, user_id=client_id)

    assert can_view_project(context, _project(client_id)) is True
    assert can_view_project(context, _project(uuid.uuid4())) is False
    assert can_view_project(context, _project(None)) is False


def test_agency_roles_see_every_project() -> None:
    project = _project(uuid.uuid4())

    assert can_view_project(_context(UserRole.ADMIN), project) is True
    assert can_view_project(_context(UserRole.STAFF), project) is True


def test_ensure_user_principal_updates_role_and_manager(db_session: Session) -> None:
    manager = ensure_user_principal(
        db_session,
        subject="sub-manager",
        email="Manager@Test.local",
        display_name="Manager",
        role=UserRole.STAFF,
    )
    user = ensure_user_principal(db_session, subject="sub-user", email="user@test.local", display_name="User")
    assert user.role is UserRole.CLIENT
    assert manager.email == "manager@test.local"

    promoted = ensure_user_principal(
        db_session,
        subject="sub-user",
        email="user@test.local",
        display_name="User",
        role=UserRole.STAFF,
        manager_id=manager.id,
    )

    assert promoted.id == user.id
    assert promoted.role is UserRole.STAFF
    assert promoted.manager_id == manager.id


def test_me_resolves_identity_headers(client: TestClient, db_session: Session) -> None:
    ensure_user_principal(
        db_session,
        subject="sub-admin",
        email="admin@test.local",
        display_name="Admin",
        role=UserRole.ADMIN,
    )

    response = client.get(
        "/api/v1/me",
        headers={"X-Auth-Subject": "sub-admin", "X-Auth-Email": "admin@test.local", "X-Auth-Name": "Admin"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["subject"] == "sub-admin"
    assert body["role"] == "ADMIN"


def test_me_falls_back_to_development_principal(client: TestClient) -> None:
    response = client.get("/api/v1/me")

    assert response.status_code == 200
    body = response.json()
    assert body["subject"] == "dev-user"
    assert body["role"] == "CLIENT"


def test_require_roles_dependency_rejects_other_roles() -> None:
    dependency = require_roles(UserRole.ADMIN, UserRole.STAFF)
    staff = _context(UserRole.STAFF)

    assert dependency(context=staff) is staff
    with pytest.raises(HTTPException) as exc_info:
        dependency(context=_context(UserRole.CLIENT))

    assert exc_info.value.status_code == 403
