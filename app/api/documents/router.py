"""Document injection and listing endpoints."""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api.documents.schemas import DocumentInjectionError, DocumentInjectionResponse
from app.config.logger import app_logger
from app.dependencies import AppServices, get_services
from app.models.document_record import DocumentSubmission
from app.services.document_injection import inject_document
from app.utils.responses import SuccessResponse, success_response

router = APIRouter(prefix="/api/documents", tags=["documents"])

REQUIRED_FIELDS_ERROR = "localPath and Title are required"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=DocumentInjectionError(error=message).model_dump(),
    )


def _has_text(payload: Dict[str, Any], key: str) -> bool:
    value = payload.get(key)
    return isinstance(value, str) and bool(value.strip())


@router.post(
    "",
    response_model=DocumentInjectionResponse,
    responses={400: {"model": DocumentInjectionError}, 500: {"model": DocumentInjectionError}},
)
async def add_document(
    payload: Dict[str, Any] = Body(...),
    services: AppServices = Depends(get_services),
):
    """Add a document to the approval list and notify its approver.

    The approver is ``notifyAadObjectId`` / ``notifyEmail`` when given,
    otherwise the first email found in ResponsiblePerson, ModifiedBy,
    CreatedBy or OriginalCreator. Without any target the notification is
    shown to whoever greets the assistant next.
    """
    if not _has_text(payload, "localPath") or not _has_text(payload, "Title"):
        app_logger.warning("Rejected document injection without localPath/Title")
        return _error(status.HTTP_400_BAD_REQUEST, REQUIRED_FIELDS_ERROR)

    try:
        submission = DocumentSubmission.model_validate(payload)
    except ValidationError as e:
        app_logger.warning(f"Rejected invalid document injection: {e}")
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid document submission: {e.errors()[0]['msg']}")

    try:
        result = await inject_document(
            submission,
            store=services.store,
            notifications=services.notifications,
            directory=services.directory,
            gateway=services.gateway,
        )
    except OSError as e:
        app_logger.error(f"Document injection failed: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to store document")

    return DocumentInjectionResponse(doc=result.doc.to_storage(), notified=result.notified)


@router.get("", response_model=SuccessResponse[List[Dict[str, Any]]])
async def list_documents(
    pending_only: bool = False,
    services: AppServices = Depends(get_services),
):
    """List stored document records, optionally only those pending approval."""
    records = services.store.list_pending() if pending_only else services.store.list_all()
    return success_response(
        data=[r.to_storage() for r in records],
        message=f"{len(records)} document(s) found",
    )
