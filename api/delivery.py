"""Channel rendering and delivery of finished queries and documents."""

from __future__ import annotations

from typing import Any, Literal

import structlog
from google.cloud.firestore_v1.async_client import AsyncClient

from api.errors import DeliveryFailure
from api.whatsapp import WhatsAppClient, format_whatsapp_text, mask_phone
from libs.firestore import messages as message_store
from libs.firestore.users import get_user_profile
from libs.models.firestore import DocumentRecord, EntityStatus, QueryRecord, WhatsAppMessageRecord

logger = structlog.get_logger(__name__)

Channel = Literal["web", "whatsapp"]

WEBSITE = "www.sureintel.co.ke"
QUERY_FOOTER = (
    f"For more detailed information, please visit our website at {WEBSITE} "
    "or reply with any follow-up questions."
)
DOCUMENT_FOOTER = (
    f"For more detailed analysis, please visit our website at {WEBSITE} "
    "or reply with any follow-up questions."
)


def _render_query_whatsapp(query: QueryRecord) -> str:
    if query.status == EntityStatus.FAILED.value:
        return (
            "We're sorry, but we encountered an error while processing your query. "
            "Please try again later or rephrase your question."
        )

    parts = [
        "*Legal Query Response*",
        "",
        "*Your Question:*",
        query.query_text,
        "",
        "*Answer:*",
        query.answer or "",
        "",
    ]
    if query.references:
        parts.append("*References:*")
        parts.extend(f"{i}. {ref.title} {ref.section}: {ref.text}" for i, ref in enumerate(query.references, 1))
        parts.append("")
    if query.case_laws:
        parts.append("*Relevant Case Law:*")
        parts.extend(f"{i}. {case.citation}: {case.summary}" for i, case in enumerate(query.case_laws, 1))
        parts.append("")
    parts.append(QUERY_FOOTER)
    return "\n".join(parts)


def _render_document_whatsapp(document: DocumentRecord) -> str:
    if document.status == EntityStatus.FAILED.value:
        return (
            "We're sorry, but we encountered an error while analyzing your document. "
            "Please try uploading it again later."
        )

    parts = [
        "*Document Analysis*",
        "",
        f"*Document:* {document.title}",
        "",
        "*Analysis:*",
        document.analysis or "",
        "",
    ]
    if document.recommendations:
        parts.append("*Recommendations:*")
        parts.extend(f"{i}. {rec}" for i, rec in enumerate(document.recommendations, 1))
        parts.append("")
    if document.case_law_references:
        parts.append("*Relevant Case Law:*")
        parts.extend(
            f"{i}. {case.citation}: {case.summary}"
            for i, case in enumerate(document.case_law_references, 1)
        )
        parts.append("")
    parts.append(DOCUMENT_FOOTER)
    return "\n".join(parts)


def render(entity: QueryRecord | DocumentRecord, channel: Channel) -> str | dict[str, Any]:
    """Render a finished entity for a channel.

    WhatsApp gets formatted text; web gets the structured fields unchanged.
    """
    if channel == "web":
        return entity.model_dump(mode="json")
    if isinstance(entity, QueryRecord):
        return format_whatsapp_text(_render_query_whatsapp(entity))
    return format_whatsapp_text(_render_document_whatsapp(entity))


class DeliveryAdapter:
    """Sends WhatsApp-sourced results back to their owner and logs the message."""

    def __init__(self, client: AsyncClient, transport: WhatsAppClient):
        self.client = client
        self.transport = transport

    async def deliver(self, entity: QueryRecord | DocumentRecord) -> WhatsAppMessageRecord:
        """Send the rendered entity to the owner's phone.

        A failed send is logged and recorded in the ledger with status
        ``failed``; it is not raised.

        Raises:
            DeliveryFailure: If the owner has no phone number on record.
        """
        user = await get_user_profile(self.client, entity.user_id)
        if user is None or not user.phone:
            raise DeliveryFailure(f"No phone number on record for user {entity.user_id}")

        text = render(entity, "whatsapp")
        send_status = "sent"
        try:
            await self.transport.send_text(user.phone, text)
        except Exception as e:
            logger.error(
                "WhatsApp send failed",
                to=mask_phone(user.phone),
                entity_status=entity.status,
                error=str(e),
            )
            send_status = "failed"

        is_query = isinstance(entity, QueryRecord)
        message = await message_store.create_message(
            self.client,
            WhatsAppMessageRecord(
                message_id=message_store.new_message_id(),
                user_id=user.uid,
                phone_number=user.phone,
                direction="outgoing",
                content=text,
                status=send_status,
                related_query=entity.query_id if is_query else None,
                related_document=None if is_query else entity.document_id,
            ),
        )
        logger.info(
            "Result delivered",
            to=mask_phone(user.phone),
            status=send_status,
            related_query=message.related_query,
            related_document=message.related_document,
        )
        return message
