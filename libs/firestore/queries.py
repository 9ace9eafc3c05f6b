"""Functions for managing legal queries in Firestore."""

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import QueryRecord

COLLECTION = "queries"


async def save_query(client: AsyncClient, query: QueryRecord) -> QueryRecord:
    """Creates or overwrites a query document.

    Args:
        client: The asynchronous Firestore client.
        query: The query record to store.

    Returns:
        The stored QueryRecord.
    """
    doc_ref = client.collection(COLLECTION).document(query.query_id)
    await doc_ref.set(query.model_dump())
    return query


async def get_query(client: AsyncClient, query_id: str) -> QueryRecord | None:
    """Retrieves a query by ID.

    Args:
        client: The asynchronous Firestore client.
        query_id: The unique query identifier.

    Returns:
        A QueryRecord if the document exists, otherwise None.
    """
    snapshot = await client.collection(COLLECTION).document(query_id).get()
    if not snapshot.exists:
        return None
    return QueryRecord(**snapshot.to_dict())


async def list_recent_queries(client: AsyncClient, limit: int = 20) -> list[QueryRecord]:
    """Returns the most recently created queries, newest first."""
    recent = client.collection(COLLECTION).order_by("created_at", direction="DESCENDING").limit(limit)
    docs = await recent.get()
    return [QueryRecord(**doc.to_dict()) for doc in docs]


async def list_queries_by_status(client: AsyncClient, status: str) -> list[QueryRecord]:
    """Returns every query currently in the given status."""
    docs = await client.collection(COLLECTION).where(filter=FieldFilter("status", "==", status)).get()
    return [QueryRecord(**doc.to_dict()) for doc in docs]
