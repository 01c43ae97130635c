from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest

from agency.domain.enums import PaymentStatus, ProjectStatus
from agency.domain.errors import InvalidParameter
from agency.domain.payments import build_payment_report, validate_report_period
from agency.domain.records import (
    ClientProjectRecord,
    ClientRef,
    MilestoneRecord,
    PaidMilestoneRecord,
    ProjectRef,
)


def _client(name: str) -> ClientRef:
    return ClientRef(id=uuid.uuid4(), name=name, email=f"{name.lower()}@client.test")


def _project(slug: str, *, updated_at: datetime | None = None) -> ProjectRef:
    return ProjectRef(
        id=uuid.uuid4(),
        title=slug.replace("-", " ").title(),
        slug=slug,
        status=ProjectStatus.IN_PROGRESS,
        updated_at=updated_at or datetime(2024, 1, 1, 12, 0),
    )


def _paid(
    client: ClientRef | None,
    project: ProjectRef,
    *,
    paid_on: date | None,
    price: str | None,
    payment_status: PaymentStatus = PaymentStatus.PAID,
    payment_amount: str | None = None,
    title: str = "Milestone",
) -> PaidMilestoneRecord:
    milestone = MilestoneRecord(
        id=uuid.uuid4(),
        title=title,
        price=Decimal(price) if price is not None else None,
        payment_status=payment_status,
        payment_amount=Decimal(payment_amount) if payment_amount is not None else None,
        payment_date=paid_on,
    )
    return PaidMilestoneRecord(milestone=milestone, project=project, client=client)


def test_empty_report_has_zero_totals() -> None:
    report = build_payment_report([], 2024, 3)

    assert report.year == 2024
    assert report.month == 3
    assert report.monthly_data == ()
    assert report.inactive_clients == ()
    assert report.summary.total_paid == Decimal("0.00")
    assert report.summary.total_milestones == 0
    assert report.summary.unique_clients == 0
    assert report.summary.inactive_clients_count == 0


def test_single_month_report_sums_paid_and_partial() -> None:
    acme = _client("Acme")
    site = _project("acme-site")
    rows = [
        _paid(acme, site, paid_on=date(2024, 3, 15), price="1000.00", title="Design"),
        _paid(
            acme,
            site,
            paid_on=date(2024, 3, 20),
            price="500.00",
            payment_status=PaymentStatus.PARTIAL,
            payment_amount="200.00",
            title="Build",
        ),
    ]

    report = build_payment_report(rows, 2024, 3)

    assert len(report.monthly_data) == 1
    march = report.monthly_data[0]
    assert march.month_key == "2024-03"
    assert march.total_paid == Decimal("1200.00")
    assert march.milestones_count == 2
    assert march.clients_count == 1
    assert [entry.title for entry in march.milestones] == ["Design", "Build"]
    assert [entry.paid_amount for entry in march.milestones] == [Decimal("1000.00"), Decimal("200.00")]
    assert report.summary.total_paid == Decimal("1200.00")
    assert report.summary.unique_clients == 1


def test_year_report_lists_months_in_calendar_order() -> None:
    acme = _client("Acme")
    globex = _client("Globex")
    site = _project("acme-site")
    app = _project("globex-app")
    rows = [
        _paid(globex, app, paid_on=date(2024, 11, 2), price="300.00"),
        _paid(acme, site, paid_on=date(2024, 2, 10), price="100.00"),
        _paid(acme, site, paid_on=date(2024, 7, 1), price="200.00"),
        _paid(globex, app, paid_on=date(2024, 2, 28), price="50.00"),
    ]

    report = build_payment_report(rows, 2024)

    assert [month.month_key for month in report.monthly_data] == ["2024-02", "2024-07", "2024-11"]
    february = report.monthly_data[0]
    assert february.total_paid == Decimal("150.00")
    assert february.clients_count == 2
    assert report.summary.total_milestones == 4
    assert report.summary.unique_clients == 2
    assert report.summary.total_paid == sum((month.total_paid for month in report.monthly_data), Decimal("0"))


def test_records_outside_period_or_unpaid_are_ignored() -> None:
    acme = _client("Acme")
    site = _project("acme-site")
    rows = [
        _paid(acme, site, paid_on=date(2024, 3, 1), price="100.00"),
        _paid(acme, site, paid_on=date(2024, 4, 1), price="999.00"),
        _paid(acme, site, paid_on=date(2023, 3, 1), price="999.00"),
        _paid(acme, site, paid_on=date(2024, 3, 5), price="999.00", payment_status=PaymentStatus.UNPAID),
        _paid(acme, site, paid_on=None, price="999.00"),
    ]

    report = build_payment_report(rows, 2024, 3)

    assert report.summary.total_milestones == 1
    assert report.summary.total_paid == Decimal("100.00")


def test_paid_milestone_without_price_counts_zero() -> None:
    site = _project("acme-site")
    report = build_payment_report([_paid(None, site, paid_on=date(2024, 5, 5), price=None)], 2024, 5)

    assert report.summary.total_milestones == 1
    assert report.summary.total_paid == Decimal("0.00")
    assert report.summary.unique_clients == 0


def test_inactive_client_reported_with_latest_project() -> None:
    acme = _client("Acme")
    globex = _client("Globex")
    acme_site = _project("acme-site")
    globex_old = _project("globex-old", updated_at=datetime(2023, 6, 1))
    globex_new = _project("globex-new", updated_at=datetime(2024, 2, 1))

    rows = [
        _paid(acme, acme_site, paid_on=date(2024, 3, 10), price="400.00"),
        _paid(globex, globex_new, paid_on=date(2024, 1, 20), price="800.00"),
    ]
    client_projects = [
        ClientProjectRecord(client=acme, project=acme_site),
        ClientProjectRecord(client=globex, project=globex_old),
        ClientProjectRecord(client=globex, project=globex_new),
    ]

    report = build_payment_report(rows, 2024, 3, client_projects=client_projects)

    assert report.summary.inactive_clients_count == 1
    inactive = report.inactive_clients[0]
    assert inactive.client.id == globex.id
    assert inactive.last_project.slug == "globex-new"


def test_clients_are_never_both_active_and_inactive() -> None:
    acme = _client("Acme")
    globex = _client("Globex")
    initech = _client("Initech")
    projects = {client.id: _project(f"{client.name.lower()}-site") for client in (acme, globex, initech)}
    rows = [_paid(acme, projects[acme.id], paid_on=date(2024, 6, 1), price="10.00")]
    client_projects = [ClientProjectRecord(client=c, project=projects[c.id]) for c in (acme, globex, initech)]

    report = build_payment_report(rows, 2024, client_projects=client_projects)

    active_ids = {entry.client.id for month in report.monthly_data for entry in month.milestones}
    inactive_ids = {item.client.id for item in report.inactive_clients}
    assert active_ids.isdisjoint(inactive_ids)
    assert active_ids | inactive_ids == {acme.id, globex.id, initech.id}


def test_inactive_clients_ordered_by_latest_activity() -> None:
    older = _client("Older")
    newer = _client("Newer")
    client_projects = [
        ClientProjectRecord(client=older, project=_project("older-site", updated_at=datetime(2024, 1, 1))),
        ClientProjectRecord(client=newer, project=_project("newer-site", updated_at=datetime(2024, 5, 1))),
    ]

    report = build_payment_report([], 2024, client_projects=client_projects)

    assert [item.client.name for item in report.inactive_clients] == ["Newer", "Older"]


@pytest.mark.parametrize(
    ("year", "month", "field"),
    [(2024, 13, "month"), (2024, 0, "month"), (0, None, "year"), ("2024", None, "year"), (2024, True, "month")],
)
def test_invalid_period_is_rejected(year: object, month: object, field: str) -> None:
    with pytest.raises(InvalidParameter) as exc_info:
        validate_report_period(year, month)

    assert exc_info.value.field == field


def test_build_report_validates_before_aggregating() -> None:
    with pytest.raises(InvalidParameter):
        build_payment_report([], 2024, 13)


def test_partial_without_amount_does_not_make_client_active() -> None:
    acme = _client("Acme")
    globex = _client("Globex")
    acme_site = _project("acme-site")
    globex_app = _project("globex-app")
    rows = [
        _paid(acme, acme_site, paid_on=date(2024, 3, 10), price="400.00"),
        _paid(
            globex,
            globex_app,
            paid_on=date(2024, 3, 12),
            price="900.00",
            payment_status=PaymentStatus.PARTIAL,
            payment_amount=None,
        ),
    ]
    client_projects = [
        ClientProjectRecord(client=acme, project=acme_site),
        ClientProjectRecord(client=globex, project=globex_app),
    ]

    report = build_payment_report(rows, 2024, 3, client_projects=client_projects)

    assert report.summary.total_milestones == 1
    assert report.monthly_data[0].clients_count == 1
    assert [item.client.id for item in report.inactive_clients] == [globex.id]
