"""Functions for managing user profiles in Firestore."""

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import UserRecord

COLLECTION = "users"


async def get_user_profile(client: AsyncClient, uid: str) -> UserRecord | None:
    """Retrieves a user profile document from Firestore.

    Args:
        client: The asynchronous Firestore client.
        uid: The user's unique identifier.

    Returns:
        A UserRecord object if the profile exists, otherwise None.
    """
    doc_ref = client.collection(COLLECTION).document(uid)
    snapshot = await doc_ref.get()

    if not snapshot.exists:
        return None

    return UserRecord(**snapshot.to_dict())


async def create_user_profile(client: AsyncClient, user_data: UserRecord) -> UserRecord:
    """Creates a new user profile document in Firestore.

    Args:
        client: The asynchronous Firestore client.
        user_data: The UserRecord object containing the profile data.

    Returns:
        The created UserRecord object.
    """
    doc_ref = client.collection(COLLECTION).document(user_data.uid)
    await doc_ref.set(user_data.model_dump())
    return user_data


async def get_user_by_phone(client: AsyncClient, phone: str) -> UserRecord | None:
    """Finds the user registered with a normalized phone number.

    Args:
        client: The asynchronous Firestore client.
        phone: Normalized phone number.

    Returns:
        The first matching UserRecord, or None.
    """
    docs = await client.collection(COLLECTION).where(filter=FieldFilter("phone", "==", phone)).limit(1).get()
    if not docs:
        return None
    return UserRecord(**docs[0].to_dict())


async def list_users(client: AsyncClient, limit: int = 100) -> list[UserRecord]:
    """Returns the newest user profiles first."""
    docs = await client.collection(COLLECTION).order_by("created_at", direction="DESCENDING").limit(limit).get()
    return [UserRecord(**doc.to_dict()) for doc in docs]
