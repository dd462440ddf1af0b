"""Document record model for the approval workflow."""

from datetime import datetime, timezone
from pathlib import PurePath
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PENDING_APPROVAL = "pendingApproval"
APPROVED = "approved"
REJECTED = "rejected"
WORKFLOW_STATES = (PENDING_APPROVAL, APPROVED, REJECTED)

# Misspelled state written by early versions of the approval feed
LEGACY_PENDING_SYNONYM = "pendigApprovel"

DOC_TYPE_BY_EXTENSION = {
    ".pdf": "PDF",
    ".docx": "DOCX",
    ".xlsx": "XLSX",
    ".xlsb": "XLSB",
    ".xls": "XLS",
    ".pptx": "PPTX",
    ".ppt": "PPT",
    ".txt": "TXT",
    ".md": "MD",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def infer_doc_type(name: Optional[str]) -> Optional[str]:
    """Infer the document type label (``"PDF"``, ``"DOCX"`` ...) from a file name."""
    if not name:
        return None
    suffix = PurePath(str(name).strip()).suffix.lower()
    return DOC_TYPE_BY_EXTENSION.get(suffix)


def normalize_state(value: Optional[str]) -> str:
    """Map a stored workflow state to its canonical value."""
    if value is None or value == "" or value == LEGACY_PENDING_SYNONYM:
        return PENDING_APPROVAL
    return value


def is_pending(state: Optional[str]) -> bool:
    return normalize_state(state) == PENDING_APPROVAL


class DocumentRecord(BaseModel):
    """A document awaiting (or past) approval.

    Serialized with the field names used by the injection API and the
    persisted collection (``Title``, ``DocumentNo`` ...).
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., description="Record id in the form DOC-###")
    state: str = Field(default=PENDING_APPROVAL, description="Workflow state")
    local_path: Optional[str] = Field(default=None, alias="localPath")
    doc_type: Optional[str] = Field(default=None, alias="docType")
    title: str = Field(default="", alias="Title")
    document_no: str = Field(default="", alias="DocumentNo")
    document_class: str = Field(default="", alias="DocumentClass")
    format: str = Field(default="*", alias="Format")
    document_sheet: str = Field(default="1", alias="DocumentSheet")
    document_revision: str = Field(default="", alias="DocumentRevision")
    original_file_type: str = Field(default="", alias="OriginalFileType")
    document_status: str = Field(default="Preliminary", alias="DocumentStatus")
    file_status: str = Field(default="Checked In", alias="FileStatus")
    language: str = Field(default="en", alias="Language")
    responsible_person: str = Field(default="", alias="ResponsiblePerson")
    modified_by: str = Field(default="", alias="ModifiedBy")
    created_by: str = Field(default="", alias="CreatedBy")
    original_creator: str = Field(default="", alias="OriginalCreator")
    date_created: str = Field(default_factory=utc_now_iso, alias="DateCreated")
    modified: str = Field(default_factory=utc_now_iso, alias="Modified")
    checked_out_by: str = Field(default="", alias="CheckedOutBy")
    document_type: str = Field(default="ORIGINAL", alias="DocumentType")
    original_file_name: str = Field(default="", alias="OriginalFileName")
    source: Optional[str] = None

    @field_validator("state", mode="before")
    @classmethod
    def _canonical_state(cls, value):
        return normalize_state(value)

    @property
    def is_pending(self) -> bool:
        return self.state == PENDING_APPROVAL

    @property
    def display_title(self) -> str:
        return self.title or self.original_file_name or self.id

    @property
    def metadata_label(self) -> Optional[str]:
        """``CLASS - NO - SHEET - REV`` when all four parts are known."""
        parts = (self.document_class, self.document_no, self.document_sheet, self.document_revision)
        if all(parts):
            return " - ".join(parts)
        return None

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class DocumentSubmission(BaseModel):
    """Fields accepted when a document is added to the approval list."""

    local_path: str = Field(..., alias="localPath", description="Path to the extractable content")
    title: str = Field(..., alias="Title")
    doc_type: Optional[str] = Field(default=None, alias="docType")
    notify_email: Optional[str] = Field(default=None, alias="notifyEmail")
    notify_identity: Optional[str] = Field(
        default=None,
        alias="notifyAadObjectId",
        description="Directory identity of the approver to notify",
    )
    document_no: Optional[str] = Field(default=None, alias="DocumentNo")
    document_class: Optional[str] = Field(default=None, alias="DocumentClass")
    document_revision: Optional[str] = Field(default=None, alias="DocumentRevision")
    document_sheet: Optional[str] = Field(default=None, alias="DocumentSheet")
    original_file_type: Optional[str] = Field(default=None, alias="OriginalFileType")
    document_status: Optional[str] = Field(default=None, alias="DocumentStatus")
    file_status: Optional[str] = Field(default=None, alias="FileStatus")
    language: Optional[str] = Field(default=None, alias="Language")
    responsible_person: Optional[str] = Field(default=None, alias="ResponsiblePerson")
    modified_by: Optional[str] = Field(default=None, alias="ModifiedBy")
    created_by: Optional[str] = Field(default=None, alias="CreatedBy")
    original_creator: Optional[str] = Field(default=None, alias="OriginalCreator")
    date_created: Optional[str] = Field(default=None, alias="DateCreated")
    modified: Optional[str] = Field(default=None, alias="Modified")
    checked_out_by: Optional[str] = Field(default=None, alias="CheckedOutBy")
    document_type: Optional[str] = Field(default=None, alias="DocumentType")
    original_file_name: Optional[str] = Field(default=None, alias="OriginalFileName")
    format: Optional[str] = Field(default=None, alias="Format")

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "localPath": "docs/spec.txt",
                "Title": "Spec v2",
                "DocumentNo": "1028340",
                "DocumentClass": "01-TEST",
                "DocumentRevision": "A1",
                "ResponsiblePerson": "Jane Doe (jane.doe@example.com)",
            }
        },
    )
