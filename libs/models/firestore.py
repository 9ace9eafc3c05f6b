"""Pydantic models for Firestore collections.

These models define the structure of the documents stored in Firestore
and are used for data validation and serialization.
"""
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QueryType(str, Enum):
    LEGAL_DEFINITION = "legal_definition"
    CASE_LAW = "case_law"
    PROCEDURAL_GUIDANCE = "procedural_guidance"
    GENERAL = "general"


class DocumentType(str, Enum):
    CHARGE_SHEET = "charge_sheet"
    COURT_ORDER = "court_order"
    BAIL_APPLICATION = "bail_application"
    APPEAL = "appeal"
    AFFIDAVIT = "affidavit"
    LEGAL_NOTICE = "legal_notice"
    OTHER = "other"


class EntityStatus(str, Enum):
    """Lifecycle shared by queries and documents."""
    RECEIVED = "received"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Source(str, Enum):
    WEB = "web"
    WHATSAPP = "whatsapp"


class Reference(BaseModel):
    """A statutory reference attached to an answer."""
    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Statute or instrument name.", examples=["Penal Code"])
    section: str = Field(..., description="Section or article.", examples=["Section 296"])
    text: str = Field(..., description="Short description of the provision.")


class CaseLawEntry(BaseModel):
    """A reported decision. Entries are deduplicated by citation."""
    model_config = ConfigDict(frozen=True)

    citation: str = Field(..., description="Neutral citation, unique within a result set.")
    title: str = Field(..., description="Case name.")
    summary: str = Field(..., description="One-line holding.")
    court: str | None = Field(None, description="Court that decided the case.")
    date: str | None = Field(None, description="Decision date (YYYY-MM-DD).")
    url: str | None = Field(None, description="Link to the judgment on Kenya Law.")


class FileMetadata(BaseModel):
    """Metadata for an uploaded file. The bytes live in the upload directory."""
    url: str = Field(..., description="Storage location of the file.")
    name: str = Field(..., description="Original file name.")
    content_type: str = Field(..., description="MIME type of the file.")
    size: int = Field(0, ge=0, description="Size in bytes.")


class _ProcessedEntity(BaseModel):
    """Fields and invariants common to queries and documents."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    user_id: str = Field(..., description="UID of the owning user.")
    status: EntityStatus = Field(EntityStatus.RECEIVED, description="Lifecycle status.")
    source: Source = Field(Source.WEB, description="Channel the entity arrived on.")
    processing_time: float | None = Field(None, description="Seconds spent producing the result.")
    error: str | None = Field(None, description="Failure reason, set only when failed.")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Timestamp of creation.")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Timestamp of the last status change.")

    def _result_fields(self) -> list:
        raise NotImplementedError

    @model_validator(mode="after")
    def check_status_fields(self):
        if self.status != EntityStatus.COMPLETED.value and any(self._result_fields()):
            raise ValueError("Result fields may only be set on completed entities")
        if self.status != EntityStatus.FAILED.value and self.error:
            raise ValueError("Error may only be set on failed entities")
        return self


class QueryRecord(_ProcessedEntity):
    """A free-text legal question in the ``queries`` collection."""
    query_id: str = Field(..., description="Unique identifier for the query.")
    query_text: str = Field(..., min_length=1, max_length=2000, description="The question as submitted.")
    query_type: QueryType = Field(QueryType.GENERAL, description="Classifier category.")
    intent: str | None = Field(None, description="Classifier intent tag.")
    keywords: list[str] = Field(default_factory=list, description="Extracted keywords.")
    answer: str | None = Field(None, description="Answer text, set only when completed.")
    references: list[Reference] = Field(default_factory=list, description="Ordered statutory references.")
    case_laws: list[CaseLawEntry] = Field(default_factory=list, description="Ordered case citations.")

    def _result_fields(self) -> list:
        return [self.answer, self.references, self.case_laws]


class DocumentRecord(_ProcessedEntity):
    """An uploaded legal document in the ``documents`` collection."""
    document_id: str = Field(..., description="Unique identifier for the document.")
    title: str = Field(..., min_length=1, max_length=100, description="Document title.")
    description: str | None = Field(None, max_length=500, description="Free-text description.")
    document_type: DocumentType = Field(DocumentType.OTHER, description="Classifier category.")
    file: FileMetadata = Field(..., description="Uploaded file metadata.")
    analysis: str | None = Field(None, description="Analysis text, set only when completed.")
    recommendations: list[str] = Field(default_factory=list, description="Ordered recommendations.")
    case_law_references: list[CaseLawEntry] = Field(default_factory=list, description="Related case law.")

    def _result_fields(self) -> list:
        return [self.analysis, self.recommendations, self.case_law_references]


class WhatsAppMessageRecord(BaseModel):
    """An entry in the append-only ``whatsapp_messages`` ledger."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    message_id: str = Field(..., description="Unique identifier for the message.")
    user_id: str = Field(..., description="UID of the user in the conversation.")
    phone_number: str = Field(..., pattern=r"^\+?[0-9]{10,15}$", description="Normalized phone number.")
    direction: Literal["incoming", "outgoing"] = Field(..., description="Message direction.")
    message_type: Literal["text", "image", "document", "audio", "video", "location", "template"] = "text"
    content: str = Field("", description="Message body.")
    media_url: str | None = Field(None, description="Media link for non-text messages.")
    status: Literal["sent", "delivered", "read", "failed"] = "sent"
    related_query: str | None = Field(None, description="Query this message belongs to.")
    related_document: str | None = Field(None, description="Document this message belongs to.")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Timestamp of the message.")


class UserRecord(BaseModel):
    """Represents a user's profile in Firestore."""
    uid: str = Field(..., description="The user's unique identifier.")
    name: str | None = Field(None, description="Display name.")
    email: str | None = Field(None, description="The user's email address.")
    phone: str | None = Field(None, description="Normalized phone number, for WhatsApp users.")
    role: Literal["user", "admin"] = Field("user", description="Access role.")
    whatsapp_verified: bool = Field(False, description="Whether the phone was seen on WhatsApp.")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Timestamp of user creation.")


class SystemSettings(BaseModel):
    """Operator-editable settings stored at ``settings/system``."""
    whatsapp_enabled: bool = True
    query_processing_timeout: int = Field(120, ge=1, description="Seconds before a query task fails.")
    document_processing_timeout: int = Field(300, ge=1, description="Seconds before a document task fails.")
    max_query_length: int = Field(2000, ge=1, le=2000)
    max_document_size: int = Field(10 * 1024 * 1024, ge=1, description="Upload size limit in bytes.")
    allowed_document_types: list[str] = Field(default_factory=lambda: ["pdf", "doc", "docx", "txt", "jpg", "png"])
    maintenance_mode: bool = False
    notifications_enabled: bool = True
    updated_at: datetime = Field(default_factory=datetime.utcnow)
