"""Monthly paid-revenue report and inactive-client detection."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date
from decimal import Decimal
from uuid import UUID

from agency.domain.enums import PaymentStatus
from agency.domain.errors import InvalidParameter
from agency.domain.progress import milestone_paid_amount
from agency.domain.records import ClientProjectRecord, ClientRef, PaidMilestoneRecord, ProjectRef

logger = logging.getLogger(__name__)

REPORTED_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.PARTIAL})

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


@dataclass(frozen=True, slots=True)
class PaymentReportEntry:
    milestone_id: UUID
    title: str
    price: Decimal | None
    payment_status: PaymentStatus
    payment_amount: Decimal | None
    payment_date: date
    paid_amount: Decimal
    project: ProjectRef
    client: ClientRef | None


@dataclass(frozen=True, slots=True)
class MonthlyPayments:
    year: int
    month: int
    total_paid: Decimal
    milestones_count: int
    clients_count: int
    milestones: tuple[PaymentReportEntry, ...]

    @property
    def month_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True, slots=True)
class InactiveClient:
    client: ClientRef
    last_project: ProjectRef


@dataclass(frozen=True, slots=True)
class PaymentReportSummary:
    total_paid: Decimal
    total_milestones: int
    unique_clients: int
    inactive_clients_count: int


@dataclass(frozen=True, slots=True)
class PaymentReport:
    year: int
    month: int | None
    summary: PaymentReportSummary
    monthly_data: tuple[MonthlyPayments, ...]
    inactive_clients: tuple[InactiveClient, ...]


def validate_report_period(year: object, month: object | None) -> tuple[int, int | None]:
    """Check the requested period before any aggregation happens."""

    if isinstance(year, bool) or not isinstance(year, int):
        raise InvalidParameter("year", year, "must be an integer")
    if not MINYEAR <= year <= MAXYEAR:
        raise InvalidParameter("year", year, f"must be between {MINYEAR} and {MAXYEAR}")
    if month is None:
        return year, None
    if isinstance(month, bool) or not isinstance(month, int):
        raise InvalidParameter("month", month, "must be an integer")
    if not 1 <= month <= 12:
        raise InvalidParameter("month", month, "must be between 1 and 12")
    return year, month


def _reported_payment_date(record: PaidMilestoneRecord, year: int, month: int | None) -> date | None:
    """Payment date of a reportable milestone paid in the period, else None.

    PARTIAL milestones without a recorded amount are not reportable.
    """

    milestone = record.milestone
    if milestone.payment_status not in REPORTED_PAYMENT_STATUSES:
        return None
    if milestone.payment_status is PaymentStatus.PARTIAL and milestone.payment_amount is None:
        return None
    paid_on = milestone.payment_date
    if paid_on is None or paid_on.year != year:
        return None
    if month is not None and paid_on.month != month:
        return None
    return paid_on


def _to_entry(record: PaidMilestoneRecord, paid_on: date) -> PaymentReportEntry:
    milestone = record.milestone
    if (
        milestone.payment_status is PaymentStatus.PARTIAL
        and milestone.payment_amount is not None
        and milestone.price is not None
        and milestone.payment_amount > milestone.price
    ):
        logger.warning(
            "Milestone %s has partial payment %s above price %s; reporting as recorded",
            milestone.id,
            milestone.payment_amount,
            milestone.price,
        )
    return PaymentReportEntry(
        milestone_id=milestone.id,
        title=milestone.title,
        price=milestone.price,
        payment_status=milestone.payment_status,
        payment_amount=milestone.payment_amount,
        payment_date=paid_on,
        paid_amount=_q2(milestone_paid_amount(milestone)),
        project=record.project,
        client=record.client,
    )


def _latest_project_per_client(client_projects: Iterable[ClientProjectRecord]) -> dict[UUID, ClientProjectRecord]:
    latest: dict[UUID, ClientProjectRecord] = {}
    for row in client_projects:
        current = latest.get(row.client.id)
        if current is None or (row.project.updated_at, str(row.project.id)) > (
            current.project.updated_at,
            str(current.project.id),
        ):
            latest[row.client.id] = row
    return latest


def find_inactive_clients(
    entries: Iterable[PaymentReportEntry],
    client_projects: Iterable[ClientProjectRecord],
) -> list[InactiveClient]:
    """Clients with projects but no paid milestone among ``entries``.

    Each is reported with their most recently updated project, whatever its payment state.
    """

    active_client_ids = {entry.client.id for entry in entries if entry.client is not None}
    latest = _latest_project_per_client(client_projects)

    inactive = [
        InactiveClient(client=row.client, last_project=row.project)
        for client_id, row in latest.items()
        if client_id not in active_client_ids
    ]
    inactive.sort(key=lambda item: str(item.client.id))
    inactive.sort(key=lambda item: item.last_project.updated_at, reverse=True)
    return inactive


def build_payment_report(
    milestones: Sequence[PaidMilestoneRecord],
    year: int,
    month: int | None = None,
    *,
    client_projects: Iterable[ClientProjectRecord] = (),
) -> PaymentReport:
    """Group paid milestones by payment month and flag inactive clients.

    Months are listed in calendar order regardless of input order. Only PAID milestones and
    PARTIAL milestones with a recorded amount, paid within the period, are reported.
    """

    year, month = validate_report_period(year, month)

    entries: list[PaymentReportEntry] = []
    for record in milestones:
        paid_on = _reported_payment_date(record, year, month)
        if paid_on is not None:
            entries.append(_to_entry(record, paid_on))

    by_month: dict[tuple[int, int], list[PaymentReportEntry]] = {}
    for entry in entries:
        by_month.setdefault((entry.payment_date.year, entry.payment_date.month), []).append(entry)

    monthly_data: list[MonthlyPayments] = []
    for (bucket_year, bucket_month) in sorted(by_month):
        bucket = sorted(by_month[(bucket_year, bucket_month)], key=lambda row: (row.payment_date, str(row.milestone_id)))
        monthly_data.append(
            MonthlyPayments(
                year=bucket_year,
                month=bucket_month,
                total_paid=_q2(sum((row.paid_amount for row in bucket), ZERO)),
                milestones_count=len(bucket),
                clients_count=len({row.client.id for row in bucket if row.client is not None}),
                milestones=tuple(bucket),
            )
        )

    inactive_clients = find_inactive_clients(entries, client_projects)
    summary = PaymentReportSummary(
        total_paid=_q2(sum((row.paid_amount for row in entries), ZERO)),
        total_milestones=len(entries),
        unique_clients=len({row.client.id for row in entries if row.client is not None}),
        inactive_clients_count=len(inactive_clients),
    )
    return PaymentReport(
        year=year,
        month=month,
        summary=summary,
        monthly_data=tuple(monthly_data),
        inactive_clients=tuple(inactive_clients),
    )
