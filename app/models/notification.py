"""Queued "new document" notifications."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.document_record import DocumentRecord, utc_now_iso


def _clean_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip().lower()
    return value or None


class NotificationTarget(BaseModel):
    """Who a notification is for: a directory identity, an email, or both."""

    identity: Optional[str] = Field(default=None, description="Directory identity (AAD object id)")
    email: Optional[str] = None

    @field_validator("identity", "email", mode="before")
    @classmethod
    def _normalize(cls, value):
        return _clean_key(value)

    @property
    def is_empty(self) -> bool:
        return not self.identity and not self.email


class DocumentSnapshot(BaseModel):
    """Display fields of a document, copied at enqueue time."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = Field(default="", alias="Title")
    document_no: str = Field(default="", alias="DocumentNo")
    document_class: str = Field(default="", alias="DocumentClass")
    document_revision: str = Field(default="", alias="DocumentRevision")
    original_file_name: str = Field(default="", alias="OriginalFileName")
    doc_type: Optional[str] = Field(default=None, alias="docType")

    @classmethod
    def from_record(cls, record: DocumentRecord) -> "DocumentSnapshot":
        return cls(
            id=record.id,
            title=record.title,
            document_no=record.document_no,
            document_class=record.document_class,
            document_revision=record.document_revision,
            original_file_name=record.original_file_name,
            doc_type=record.doc_type,
        )

    @property
    def display_title(self) -> str:
        return self.title or self.original_file_name or self.id


class NotificationEntry(BaseModel):
    """A pending notification; ``target`` of None means broadcast."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")
    target: Optional[NotificationTarget] = None
    doc: DocumentSnapshot

    @field_validator("target", mode="after")
    @classmethod
    def _drop_empty_target(cls, value):
        if value is not None and value.is_empty:
            return None
        return value

    @property
    def is_broadcast(self) -> bool:
        return self.target is None

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
