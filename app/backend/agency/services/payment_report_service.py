"""Admin payment reporting and export service."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date

from fastapi import HTTPException, status
from openpyxl import Workbook
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext
from agency.core.config import get_settings
from agency.domain.payments import (
    InactiveClient,
    MonthlyPayments,
    PaymentReport,
    PaymentReportEntry,
    build_payment_report,
    validate_report_period,
)
from agency.domain.records import ClientProjectRecord, ClientRef, PaidMilestoneRecord, ProjectRef
from agency.repositories.agency_repository import AgencyRepository
from agency.services.project_service import ProjectService, to_client_ref, to_milestone_record, to_project_ref

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "month",
    "payment_date",
    "project_slug",
    "project_title",
    "milestone_title",
    "client_name",
    "client_email",
    "payment_status",
    "price",
    "paid_amount",
)


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


class PaymentReportService:
    """Monthly paid-revenue report over all projects."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = AgencyRepository(db)
        self.settings = get_settings()

    # ---------- Serialization ----------
    @staticmethod
    def _serialize_client(client: ClientRef | None) -> dict[str, object] | None:
        if client is None:
            return None
        return {"id": str(client.id), "name": client.name, "email": client.email}

    @staticmethod
    def _serialize_project_ref(project: ProjectRef) -> dict[str, object]:
        return {
            "id": str(project.id),
            "title": project.title,
            "slug": project.slug,
            "status": project.status.value,
            "updated_at": project.updated_at.isoformat(),
        }

    def _serialize_entry(self, entry: PaymentReportEntry) -> dict[str, object]:
        project = {
            "id": str(entry.project.id),
            "title": entry.project.title,
            "slug": entry.project.slug,
            "client": self._serialize_client(entry.client),
        }
        return {
            "id": str(entry.milestone_id),
            "title": entry.title,
            "price": str(entry.price) if entry.price is not None else None,
            "payment_status": entry.payment_status.value,
            "payment_amount": str(entry.payment_amount) if entry.payment_amount is not None else None,
            "payment_date": entry.payment_date.isoformat(),
            "paid_amount": str(entry.paid_amount),
            "project": project,
        }

    def _serialize_month(self, month: MonthlyPayments) -> dict[str, object]:
        return {
            "month_key": month.month_key,
            "year": month.year,
            "month": month.month,
            "total_paid": str(month.total_paid),
            "milestones_count": month.milestones_count,
            "clients_count": month.clients_count,
            "milestones": [self._serialize_entry(entry) for entry in month.milestones],
        }

    def _serialize_inactive(self, inactive: InactiveClient) -> dict[str, object]:
        return {
            "id": str(inactive.client.id),
            "name": inactive.client.name,
            "email": inactive.client.email,
            "last_project": self._serialize_project_ref(inactive.last_project),
        }

    def serialize_report(self, report: PaymentReport) -> dict[str, object]:
        return {
            "year": report.year,
            "month": report.month,
            "summary": {
                "total_paid": str(report.summary.total_paid),
                "total_milestones": report.summary.total_milestones,
                "unique_clients": report.summary.unique_clients,
                "inactive_clients_count": report.summary.inactive_clients_count,
            },
            "monthly_data": [self._serialize_month(month) for month in report.monthly_data],
            "inactive_clients": [self._serialize_inactive(item) for item in report.inactive_clients],
        }

    # ---------- Report ----------
    def build_report(self, *, context: RequestUserContext, year: int | None, month: int | None) -> PaymentReport:
        ProjectService.ensure_admin(context)
        report_year, report_month = validate_report_period(
            year if year is not None else date.today().year,
            month,
        )

        paid_rows = self.repo.list_paid_milestones(year=report_year, month=report_month)
        paid_records = [
            PaidMilestoneRecord(
                milestone=to_milestone_record(row),
                project=to_project_ref(row.project),
                client=to_client_ref(row.project.client),
            )
            for row in paid_rows
        ]

        client_projects: list[ClientProjectRecord] = []
        for project in self.repo.list_client_projects(statuses=self.settings.report_inactive_project_statuses):
            client = to_client_ref(project.client)
            if client is None:
                continue
            client_projects.append(ClientProjectRecord(client=client, project=to_project_ref(project)))

        report = build_payment_report(
            paid_records,
            report_year,
            report_month,
            client_projects=client_projects,
        )
        logger.info(
            "Payment report %s/%s: %s milestones, %s inactive clients",
            report.year,
            report.month or "all",
            report.summary.total_milestones,
            report.summary.inactive_clients_count,
        )
        return report

    def payment_report(self, *, context: RequestUserContext, year: int | None, month: int | None) -> dict[str, object]:
        return self.serialize_report(self.build_report(context=context, year=year, month=month))

    # ---------- Exports ----------
    @staticmethod
    def _flatten_report_rows(report: PaymentReport) -> list[dict[str, str]]:
        rows: list[dict[str, str]] = []
        for month in report.monthly_data:
            for entry in month.milestones:
                rows.append(
                    {
                        "month": month.month_key,
                        "payment_date": entry.payment_date.isoformat(),
                        "project_slug": entry.project.slug,
                        "project_title": entry.project.title,
                        "milestone_title": entry.title,
                        "client_name": (entry.client.name or "") if entry.client else "",
                        "client_email": entry.client.email if entry.client else "",
                        "payment_status": entry.payment_status.value,
                        "price": str(entry.price) if entry.price is not None else "",
                        "paid_amount": str(entry.paid_amount),
                    }
                )
        return rows

    def export_report(
        self,
        *,
        context: RequestUserContext,
        format_name: str,
        year: int | None,
        month: int | None,
    ) -> ExportFilePayload:
        ProjectService.ensure_admin(context)
        normalized_format = format_name.strip().lower()
        if normalized_format not in {"csv", "xlsx"}:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )

        report = self.build_report(context=context, year=year, month=month)
        flattened = self._flatten_report_rows(report)

        base_filename = f"payments-{report.year}" + (f"-{report.month:02d}" if report.month else "")
        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.DictWriter(sio, fieldnames=list(EXPORT_COLUMNS))
            writer.writeheader()
            writer.writerows(flattened)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "payments"
        sheet.append(list(EXPORT_COLUMNS))
        for row in flattened:
            sheet.append([row.get(column, "") for column in EXPORT_COLUMNS])

        output = io.BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
