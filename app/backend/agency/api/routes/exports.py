"""Export endpoint for report datasets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from agency.core.auth import RequestUserContext, get_current_user_context
from agency.db.dependencies import get_db_session
from agency.services.payment_report_service import PaymentReportService

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/payments")
def export_payments(
    format: str = Query(default="xlsx"),
    year: int | None = Query(default=None),
    month: int | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = PaymentReportService(db)
    exported = service.export_report(
        context=context,
        format_name=format,
        year=year,
        month=month,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
