"""Reporting endpoints for paid-revenue analytics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext, get_current_user_context
from agency.db.dependencies import get_db_session
from agency.services.payment_report_service import PaymentReportService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/payments")
def report_payments(
    year: int | None = Query(default=None),
    month: int | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = PaymentReportService(db)
    return service.payment_report(context=context, year=year, month=month)
