"""Functions for the append-only WhatsApp message ledger in Firestore."""

import uuid

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import WhatsAppMessageRecord

COLLECTION = "whatsapp_messages"


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex}"


async def create_message(client: AsyncClient, message: WhatsAppMessageRecord) -> WhatsAppMessageRecord:
    """Appends a message to the ledger.

    Messages are never updated once written.

    Args:
        client: The asynchronous Firestore client.
        message: The message to record.

    Returns:
        The recorded WhatsAppMessageRecord.
    """
    doc_ref = client.collection(COLLECTION).document(message.message_id)
    await doc_ref.set(message.model_dump())
    return message


async def get_message_history(
    client: AsyncClient, phone_number: str, limit: int = 50
) -> list[WhatsAppMessageRecord]:
    """Retrieves the conversation with a phone number, newest first.

    Args:
        client: The asynchronous Firestore client.
        phone_number: Normalized phone number.
        limit: Maximum number of messages to return.

    Returns:
        List of WhatsAppMessageRecord objects.
    """
    history = (
        client.collection(COLLECTION)
        .where(filter=FieldFilter("phone_number", "==", phone_number))
        .order_by("created_at", direction="DESCENDING")
        .limit(limit)
    )
    docs = await history.get()
    return [WhatsAppMessageRecord(**doc.to_dict()) for doc in docs]
