from __future__ import annotations

import csv
import io

from fastapi.testclient import TestClient
from openpyxl import load_workbook
from sqlalchemy.orm import Session

from agency.core.auth import ensure_user_principal
from agency.models.entities import User, UserRole
from agency.services.payment_report_service import EXPORT_COLUMNS


def _headers(subject: str, email: str, display_name: str) -> dict[str, str]:
    return {
        "X-Auth-Subject": subject,
        "X-Auth-Email": email,
        "X-Auth-Name": display_name,
    }


def _create_user(db: Session, *, subject: str, role: UserRole) -> tuple[User, dict[str, str]]:
    email = f"{subject}@test.local"
    display_name = subject.title()
    user = ensure_user_principal(db, subject=subject, email=email, display_name=display_name, role=role)
    return user, _headers(subject, email, display_name)


def _create_project(client: TestClient, admin: dict[str, str], *, slug: str, client_id: str) -> str:
    response = client.post(
        "/api/v1/projects",
        json={"title": slug.replace("-", " ").title(), "slug": slug, "status": "IN_PROGRESS", "client_id": client_id},
        headers=admin,
    )
    assert response.status_code == 201
    return response.json()["id"]


def _paid_milestone(
    client: TestClient,
    admin: dict[str, str],
    project_id: str,
    *,
    title: str,
    price: str,
    payment: dict[str, str],
) -> str:
    created = client.post(
        f"/api/v1/projects/{project_id}/milestones",
        json={"title": title, "price": price},
        headers=admin,
    )
    assert created.status_code == 201
    milestone_id = created.json()["id"]
    updated = client.put(f"/api/v1/milestones/{milestone_id}/payment", json=payment, headers=admin)
    assert updated.status_code == 200
    return milestone_id


def _seed_payments(client: TestClient, db: Session) -> dict[str, str]:
    _, admin = _create_user(db, subject="admin", role=UserRole.ADMIN)
    acme, _ = _create_user(db, subject="acme", role=UserRole.CLIENT)
    globex, _ = _create_user(db, subject="globex", role=UserRole.CLIENT)

    acme_site = _create_project(client, admin, slug="acme-site", client_id=str(acme.id))
    globex_app = _create_project(client, admin, slug="globex-app", client_id=str(globex.id))

    _paid_milestone(
        client,
        admin,
        acme_site,
        title="Design",
        price="1000.00",
        payment={"payment_status": "PAID", "payment_date": "2024-03-15"},
    )
    _paid_milestone(
        client,
        admin,
        acme_site,
        title="Build",
        price="500.00",
        payment={"payment_status": "PARTIAL", "payment_date": "2024-03-20", "payment_amount": "200.00"},
    )
    _paid_milestone(
        client,
        admin,
        globex_app,
        title="Kickoff",
        price="800.00",
        payment={"payment_status": "PAID", "payment_date": "2024-01-10"},
    )
    client.post(
        f"/api/v1/projects/{globex_app}/milestones",
        json={"title": "Launch", "price": "900.00"},
        headers=admin,
    )
    return {"acme_id": str(acme.id), "globex_id": str(globex.id)}


def _admin_headers() -> dict[str, str]:
    return _headers("admin", "admin@test.local", "Admin")


def test_monthly_report_totals_and_inactive_clients(client: TestClient, db_session: Session) -> None:
    seeded = _seed_payments(client, db_session)

    response = client.get("/api/v1/reports/payments", params={"year": 2024, "month": 3}, headers=_admin_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["year"] == 2024
    assert body["month"] == 3
    assert body["summary"] == {
        "total_paid": "1200.00",
        "total_milestones": 2,
        "unique_clients": 1,
        "inactive_clients_count": 1,
    }
    assert [month["month_key"] for month in body["monthly_data"]] == ["2024-03"]
    march = body["monthly_data"][0]
    assert [row["title"] for row in march["milestones"]] == ["Design", "Build"]
    assert [row["paid_amount"] for row in march["milestones"]] == ["1000.00", "200.00"]
    assert march["milestones"][0]["project"]["client"]["id"] == seeded["acme_id"]

    inactive = body["inactive_clients"]
    assert [row["id"] for row in inactive] == [seeded["globex_id"]]
    assert inactive[0]["last_project"]["slug"] == "globex-app"


def test_yearly_report_groups_months_in_calendar_order(client: TestClient, db_session: Session) -> None:
    _seed_payments(client, db_session)

    response = client.get("/api/v1/reports/payments", params={"year": 2024}, headers=_admin_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["month"] is None
    assert [month["month_key"] for month in body["monthly_data"]] == ["2024-01", "2024-03"]
    assert body["summary"]["total_paid"] == "2000.00"
    assert body["summary"]["unique_clients"] == 2
    assert body["inactive_clients"] == []


def test_empty_period_report(client: TestClient, db_session: Session) -> None:
    _seed_payments(client, db_session)

    response = client.get("/api/v1/reports/payments", params={"year": 2023}, headers=_admin_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["monthly_data"] == []
    assert body["summary"]["total_paid"] == "0.00"
    assert body["summary"]["inactive_clients_count"] == 2


def test_invalid_month_is_rejected(client: TestClient, db_session: Session) -> None:
    _seed_payments(client, db_session)

    response = client.get("/api/v1/reports/payments", params={"year": 2024, "month": 13}, headers=_admin_headers())

    assert response.status_code == 422
    assert response.json()["field"] == "month"


def test_report_is_admin_only(client: TestClient, db_session: Session) -> None:
    _seed_payments(client, db_session)
    _, staff = _create_user(db_session, subject="staff", role=UserRole.STAFF)

    assert client.get("/api/v1/reports/payments", params={"year": 2024}, headers=staff).status_code == 403
    assert client.get("/api/v1/exports/payments", params={"year": 2024}, headers=staff).status_code == 403


def test_csv_export(client: TestClient, db_session: Session) -> None:
    _seed_payments(client, db_session)

    response = client.get(
        "/api/v1/exports/payments",
        params={"format": "csv", "year": 2024, "month": 3},
        headers=_admin_headers(),
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="payments-2024-03.csv"' in response.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert [row["milestone_title"] for row in rows] == ["Design", "Build"]
    assert rows[0]["client_email"] == "acme@test.local"
    assert rows[1]["payment_status"] == "PARTIAL"
    assert rows[1]["paid_amount"] == "200.00"


def test_xlsx_export(client: TestClient, db_session: Session) -> None:
    _seed_payments(client, db_session)

    response = client.get(
        "/api/v1/exports/payments",
        params={"format": "xlsx", "year": 2024},
        headers=_admin_headers(),
    )

    assert response.status_code == 200
    assert 'filename="payments-2024.xlsx"' in response.headers["content-disposition"]
    workbook = load_workbook(io.BytesIO(response.content))
    sheet = workbook["payments"]
    rows = list(sheet.iter_rows(values_only=True))
    assert list(rows[0]) == list(EXPORT_COLUMNS)
    assert [row[0] for row in rows[1:]] == ["2024-01", "2024-03", "2024-03"]


def test_unknown_export_format_is_rejected(client: TestClient, db_session: Session) -> None:
    _seed_payments(client, db_session)

    response = client.get(
        "/api/v1/exports/payments",
        params={"format": "pdf", "year": 2024},
        headers=_admin_headers(),
    )

    assert response.status_code == 422


def test_partial_payment_without_amount_is_left_out_of_report(client: TestClient, db_session: Session) -> None:
    seeded = _seed_payments(client, db_session)
    initech, _ = _create_user(db_session, subject="initech", role=UserRole.CLIENT)
    initech_portal = _create_project(client, _admin_headers(), slug="initech-portal", client_id=str(initech.id))
    _paid_milestone(
        client,
        _admin_headers(),
        initech_portal,
        title="Deposit",
        price="600.00",
        payment={"payment_status": "PARTIAL", "payment_date": "2024-03-20"},
    )

    response = client.get("/api/v1/reports/payments", params={"year": 2024, "month": 3}, headers=_admin_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["total_milestones"] == 2
    assert body["summary"]["total_paid"] == "1200.00"
    assert body["monthly_data"][0]["clients_count"] == 1
    assert [row["title"] for row in body["monthly_data"][0]["milestones"]] == ["Design", "Build"]
    assert body["summary"]["inactive_clients_count"] == 2
    assert {row["id"] for row in body["inactive_clients"]} == {seeded["globex_id"], str(initech.id)}


def test_export_checks_admin_before_format(client: TestClient, db_session: Session) -> None:
    _seed_payments(client, db_session)
    _, staff = _create_user(db_session, subject="staff", role=UserRole.STAFF)

    response = client.get("/api/v1/exports/payments", params={"format": "pdf", "year": 2024}, headers=staff)

    assert response.status_code == 403
