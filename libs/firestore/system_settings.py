"""Functions for the operator settings document in Firestore."""

from datetime import datetime

from google.cloud.firestore_v1.async_client import AsyncClient

from libs.models.firestore import SystemSettings

COLLECTION = "settings"
DOCUMENT_ID = "system"


async def get_system_settings(client: AsyncClient) -> SystemSettings:
    """Reads the settings document, falling back to defaults when absent."""
    snapshot = await client.collection(COLLECTION).document(DOCUMENT_ID).get()
    if not snapshot.exists:
        return SystemSettings()
    return SystemSettings(**snapshot.to_dict())


async def update_system_settings(client: AsyncClient, changes: dict) -> SystemSettings:
    """Merges changes into the settings document.

    Args:
        client: The asynchronous Firestore client.
        changes: Field values to overwrite. Unknown fields are ignored.

    Returns:
        The updated SystemSettings.
    """
    current = await get_system_settings(client)
    updated = SystemSettings(**{**current.model_dump(), **changes, "updated_at": datetime.utcnow()})
    await client.collection(COLLECTION).document(DOCUMENT_ID).set(updated.model_dump())
    return updated
