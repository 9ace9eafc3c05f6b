"""Functions for managing uploaded legal documents in Firestore."""

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import DocumentRecord

COLLECTION = "documents"


async def save_document(client: AsyncClient, document: DocumentRecord) -> DocumentRecord:
    """Creates or overwrites a document record.

    Args:
        client: The asynchronous Firestore client.
        document: The document record to store.

    Returns:
        The stored DocumentRecord.
    """
    doc_ref = client.collection(COLLECTION).document(document.document_id)
    await doc_ref.set(document.model_dump())
    return document


async def get_document(client: AsyncClient, document_id: str) -> DocumentRecord | None:
    """Retrieves a document record by ID.

    Args:
        client: The asynchronous Firestore client.
        document_id: The unique document identifier.

    Returns:
        A DocumentRecord if it exists, otherwise None.
    """
    snapshot = await client.collection(COLLECTION).document(document_id).get()
    if not snapshot.exists:
        return None
    return DocumentRecord(**snapshot.to_dict())


async def list_documents_by_status(client: AsyncClient, status: str) -> list[DocumentRecord]:
    """Returns every document currently in the given status."""
    docs = await client.collection(COLLECTION).where(filter=FieldFilter("status", "==", status)).get()
    return [DocumentRecord(**doc.to_dict()) for doc in docs]
