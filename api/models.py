"""Pydantic models for the legal agent API.

This module defines the request and response models used by the API endpoints.
JSON field names are camelCase; Python attributes stay snake_case.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from api.agents.research import ResearchItem, ResearchSource, StatuteResearch, TopicResearch
from libs.models.firestore import CaseLawEntry, DocumentRecord, QueryRecord, Reference, WhatsAppMessageRecord


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuerySubmitRequest(CamelModel):
    """Request model for a legal question."""

    query_text: str = Field(
        ...,
        max_length=2000,
        description="The legal question",
        examples=["What is the definition of robbery?"],
    )

    @field_validator("query_text")
    @classmethod
    def text_must_not_be_empty(cls, v: str) -> str:
        """Validate that the query text is not empty."""
        if not v.strip():
            raise ValueError("Query text must not be empty")
        return v


class QuerySubmitResponse(CamelModel):
    query_id: str = Field(description="Identifier to poll for the result")
    status: str = Field(description="Always 'received' on submission", examples=["received"])
    estimated_time: int = Field(description="Estimated seconds until completion", examples=[10])
    message: str = Field(description="Human-readable acknowledgement")


class DocumentUploadResponse(CamelModel):
    document_id: str = Field(description="Identifier to poll for the result")
    status: str = Field(description="Always 'received' on submission", examples=["received"])
    estimated_time: int = Field(description="Estimated seconds until completion", examples=[60])
    message: str = Field(description="Human-readable acknowledgement")


class QueryStatusResponse(CamelModel):
    """Current state of a query.

    Attributes:
        answer: Set only when status is completed
        error: Set only when status is failed
    """

    query_id: str
    status: str
    query_text: str
    query_type: str
    answer: str | None = None
    references: list[Reference] = Field(default_factory=list)
    case_laws: list[CaseLawEntry] = Field(default_factory=list)
    error: str | None = None
    processing_time: float | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, query: QueryRecord) -> "QueryStatusResponse":
        return cls(**query.model_dump(include=set(cls.model_fields)))


class DocumentStatusResponse(CamelModel):
    """Current state of an uploaded document."""

    document_id: str
    status: str
    title: str
    description: str | None = None
    document_type: str
    file_name: str
    file_type: str
    file_size: int
    analysis: str | None = None
    recommendations: list[str] = Field(default_factory=list)
    case_law_references: list[CaseLawEntry] = Field(default_factory=list)
    error: str | None = None
    processing_time: float | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, document: DocumentRecord) -> "DocumentStatusResponse":
        data = document.model_dump(include=set(cls.model_fields))
        return cls(
            **data,
            file_name=document.file.name,
            file_type=document.file.content_type,
            file_size=document.file.size,
        )


class WhatsAppSendRequest(CamelModel):
    """Request model for sending a WhatsApp text message."""

    to: str = Field(
        ...,
        validation_alias=AliasChoices("to", "phone", "phoneNumber"),
        description="Recipient phone number",
        examples=["0712345678"],
    )
    message: str = Field(..., min_length=1, max_length=4096, description="Message text")


class WhatsAppTemplateRequest(CamelModel):
    """Request model for sending a pre-approved WhatsApp template."""

    to: str = Field(..., validation_alias=AliasChoices("to", "phone", "phoneNumber"))
    template_name: str = Field(..., min_length=1, examples=["hello_world"])
    language: str = Field("en_US", examples=["en_US"])
    components: list[dict[str, Any]] | None = None


class WhatsAppMediaRequest(CamelModel):
    """Request model for sending an image, document, audio or video link."""

    to: str = Field(..., validation_alias=AliasChoices("to", "phone", "phoneNumber"))
    media_type: Literal["image", "document", "audio", "video"] = Field(..., examples=["document"])
    media_url: str = Field(..., min_length=1, examples=["https://example.com/charge-sheet.pdf"])
    caption: str | None = Field(None, max_length=1024, description="Ignored for audio")


class WhatsAppSendResponse(CamelModel):
    success: bool
    message_id: str | None = None


class WebhookResponse(CamelModel):
    success: bool
    processed: int = Field(0, description="Number of inbound messages handled")
    intent: str | None = Field(None, description="Intent of the last handled message")
    message: str | None = Field(None, description="Reply sent for the last handled message")


class MessageView(CamelModel):
    message_id: str
    direction: str
    message_type: str
    content: str
    status: str
    related_query: str | None = None
    related_document: str | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, message: WhatsAppMessageRecord) -> "MessageView":
        return cls(**message.model_dump(include=set(cls.model_fields)))


class MessageHistoryResponse(CamelModel):
    success: bool = True
    count: int
    messages: list[MessageView]


class StatuteResponse(CamelModel):
    """A statute, or one section of it, from the research library."""

    statute_name: str
    section: str | None = None
    found: bool
    full_name: str | None = None
    url: str | None = None
    content: str = ""
    related_sections: list[str] = Field(default_factory=list)

    @classmethod
    def from_research(cls, research: StatuteResearch) -> "StatuteResponse":
        return cls(**research.model_dump())


class TopicResearchResponse(CamelModel):
    topic: str
    keywords: list[str]
    sources: list[ResearchSource]
    statutes: list[ResearchItem]
    regulations: list[ResearchItem]
    articles: list[ResearchItem]

    @classmethod
    def from_research(cls, research: TopicResearch) -> "TopicResearchResponse":
        return cls(**research.model_dump(exclude={"timestamp"}))


class CaseLawResponse(CamelModel):
    success: bool = True
    case: CaseLawEntry


class AdminStats(CamelModel):
    total_queries: int
    active_users: int
    documents_processed: int
    success_rate: float = Field(description="Percentage of finished queries that completed")


class AdminStatsResponse(CamelModel):
    stats: AdminStats


class AdminUserView(CamelModel):
    uid: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: str
    created_at: datetime


class AdminUsersResponse(CamelModel):
    users: list[AdminUserView]


class AdminQueryView(CamelModel):
    query_id: str
    user_id: str
    query_text: str
    query_type: str
    status: str
    source: str
    created_at: datetime


class AdminQueriesResponse(CamelModel):
    queries: list[AdminQueryView]


class SystemSettingsUpdate(CamelModel):
    """Partial update of the operator settings. Omitted fields are unchanged."""

    whatsapp_enabled: bool | None = None
    query_processing_timeout: int | None = Field(None, ge=1)
    document_processing_timeout: int | None = Field(None, ge=1)
    max_query_length: int | None = Field(None, ge=1, le=2000)
    max_document_size: int | None = Field(None, ge=1)
    allowed_document_types: list[str] | None = None
    maintenance_mode: bool | None = None
    notifications_enabled: bool | None = None


class SystemSettingsResponse(CamelModel):
    success: bool = True
    settings: dict[str, Any]


class HealthResponse(BaseModel):
    """Response model for health check endpoints.

    Attributes:
        status: Health status (healthy/unhealthy/ready/not_ready)
        service: Service name
        version: Service version
        timestamp: Unix timestamp
        details: Optional additional details
    """

    status: Literal["healthy", "unhealthy", "ready", "not_ready"] = Field(
        description="Health status",
        examples=["healthy"],
    )
    service: str = Field(
        description="Service name",
        examples=["api"],
    )
    version: str = Field(
        description="Service version",
        examples=["1.0.0"],
    )
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp",
    )
    details: dict[str, str] | None = Field(
        default=None,
        description="Optional additional details",
        examples=[{"cache": "file"}],
    )
