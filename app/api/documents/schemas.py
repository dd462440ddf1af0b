"""Request and response schemas for the document injection API."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class DocumentInjectionResponse(BaseModel):
    """Response schema for POST /api/documents."""

    ok: bool = Field(default=True)
    doc: Dict[str, Any] = Field(..., description="The stored document record.")
    notified: bool = Field(
        ...,
        description="True if the approver was notified right away, False if the notification is only queued.",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "ok": True,
                "doc": {
                    "id": "DOC-001",
                    "state": "pendingApproval",
                    "localPath": "docs/spec.txt",
                    "docType": "TXT",
                    "Title": "Spec v2",
                    "OriginalFileName": "spec.txt",
                },
                "notified": False,
            }
        }
    }


class DocumentInjectionError(BaseModel):
    """Error body of POST /api/documents."""

    ok: bool = Field(default=False)
    error: str

    model_config = {
        "json_schema_extra": {
            "example": {"ok": False, "error": "localPath and Title are required"}
        }
    }
