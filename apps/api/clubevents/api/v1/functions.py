from __future__ import annotations

from fastapi import APIRouter

from clubevents.api.errors import callable_error_from_service
from clubevents.api.v1.schemas.functions import ExportRequest, ExportResponse
from clubevents.auth.deps import CallablePrincipal, DBSession
from clubevents.services import export_service
from clubevents.services.exceptions import ServiceError

router = APIRouter(prefix="/functions", tags=["functions"])


@router.post("/export-registrations", response_model=ExportResponse)
def export_registrations(principal: CallablePrincipal, db: DBSession, payload: ExportRequest | None = None):
    """Export an event's registrations to a spreadsheet.

    Errors use the callable shape ``{"error": {"status", "message"}}``.
    """
    payload = payload or ExportRequest()
    try:
        result = export_service.export_registrations(
            db,
            principal,
            payload.event_id,
            target_document_id=payload.spreadsheet_id or None,
        )
    except ServiceError as err:
        return callable_error_from_service(err)

    return ExportResponse(
        spreadsheet_id=result.document_id,
        exported_count=result.exported_count,
        spreadsheet_url=result.url,
    )
