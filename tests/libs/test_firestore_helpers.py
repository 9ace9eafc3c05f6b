import pytest
from unittest.mock import MagicMock, AsyncMock

from libs.firestore.documents import get_document, save_document
from libs.firestore.messages import create_message, get_message_history
from libs.firestore.queries import get_query, list_queries_by_status, save_query
from libs.firestore.system_settings import get_system_settings, update_system_settings
from libs.models.firestore import (
    DocumentRecord,
    FileMetadata,
    QueryRecord,
    SystemSettings,
    WhatsAppMessageRecord,
)


@pytest.fixture
def mock_firestore_helpers():
    """
    Provides a structured set of mocks for the Firestore record helpers.
    Returns a dictionary with handles to the client and key method mocks.
    """
    # 1. Mock the final methods that are awaited
    mock_set = AsyncMock()
    mock_snapshot = MagicMock()
    mock_snapshot.exists = True
    mock_get = AsyncMock(return_value=mock_snapshot)
    mock_query_get = AsyncMock(return_value=[])

    # 2. Build the chain of mocks leading to the final methods
    mock_query = MagicMock()
    mock_query.get = mock_query_get
    mock_query.where.return_value = mock_query
    mock_query.order_by.return_value = mock_query
    mock_query.limit.return_value = mock_query

    mock_doc_ref = MagicMock()
    mock_doc_ref.set = mock_set
    mock_doc_ref.get = mock_get

    mock_collection_ref = MagicMock()
    mock_collection_ref.document.return_value = mock_doc_ref
    mock_collection_ref.where.return_value = mock_query
    mock_collection_ref.order_by.return_value = mock_query

    # 3. Mock the top-level client
    mock_client = MagicMock()
    mock_client.collection.return_value = mock_collection_ref

    return {
        "client": mock_client,
        "collection_mock": mock_collection_ref,
        "doc_mock": mock_doc_ref,
        "set_mock": mock_set,
        "snapshot": mock_snapshot,
        "query_mock": mock_query,
        "query_get_mock": mock_query_get,
    }


@pytest.mark.asyncio
async def test_save_query(mock_firestore_helpers):
    client = mock_firestore_helpers["client"]
    set_mock = mock_firestore_helpers["set_mock"]
    query = QueryRecord(query_id="q-1", user_id="user-1", query_text="Define theft")

    await save_query(client, query)

    client.collection.assert_called_once_with("queries")
    mock_firestore_helpers["collection_mock"].document.assert_called_once_with("q-1")
    set_mock.assert_awaited_once_with(query.model_dump())
    assert set_mock.call_args.args[0]["status"] == "received"


@pytest.mark.asyncio
async def test_get_query_found(mock_firestore_helpers):
    client = mock_firestore_helpers["client"]
    mock_firestore_helpers["snapshot"].to_dict.return_value = {
        "query_id": "q-1",
        "user_id": "user-1",
        "query_text": "Define theft",
        "status": "processing",
    }

    query = await get_query(client, "q-1")

    assert query is not None
    assert query.status == "processing"


@pytest.mark.asyncio
async def test_get_query_missing(mock_firestore_helpers):
    mock_firestore_helpers["snapshot"].exists = False

    assert await get_query(mock_firestore_helpers["client"], "missing") is None


@pytest.mark.asyncio
async def test_list_queries_by_status(mock_firestore_helpers):
    client = mock_firestore_helpers["client"]
    doc = MagicMock()
    doc.to_dict.return_value = {"query_id": "q-2", "user_id": "u", "query_text": "Bail?", "status": "failed", "error": "x"}
    mock_firestore_helpers["query_get_mock"].return_value = [doc]

    queries = await list_queries_by_status(client, "failed")

    assert [q.query_id for q in queries] == ["q-2"]
    field_filter = mock_firestore_helpers["collection_mock"].where.call_args.kwargs["filter"]
    assert (field_filter.field_path, field_filter.op_string, field_filter.value) == ("status", "==", "failed")


@pytest.mark.asyncio
async def test_save_and_get_document(mock_firestore_helpers):
    client = mock_firestore_helpers["client"]
    document = DocumentRecord(
        document_id="d-1",
        user_id="user-1",
        title="Charge sheet",
        file=FileMetadata(url="/uploads/c.pdf", name="c.pdf", content_type="application/pdf", size=10),
    )

    await save_document(client, document)
    mock_firestore_helpers["snapshot"].to_dict.return_value = mock_firestore_helpers["set_mock"].call_args.args[0]
    loaded = await get_document(client, "d-1")

    client.collection.assert_called_with("documents")
    assert loaded == document


@pytest.mark.asyncio
async def test_create_message(mock_firestore_helpers):
    client = mock_firestore_helpers["client"]
    message = WhatsAppMessageRecord(
        message_id="msg_1",
        user_id="wa_1",
        phone_number="254712345678",
        direction="incoming",
        content="Hello",
        status="delivered",
    )

    await create_message(client, message)

    client.collection.assert_called_once_with("whatsapp_messages")
    assert mock_firestore_helpers["set_mock"].call_args.args[0]["content"] == "Hello"


@pytest.mark.asyncio
async def test_get_message_history_orders_newest_first(mock_firestore_helpers):
    client = mock_firestore_helpers["client"]
    query_mock = mock_firestore_helpers["query_mock"]

    history = await get_message_history(client, "254712345678", limit=5)

    assert history == []
    query_mock.order_by.assert_called_once_with("created_at", direction="DESCENDING")
    query_mock.limit.assert_called_once_with(5)


@pytest.mark.asyncio
async def test_system_settings_default_when_missing(mock_firestore_helpers):
    mock_firestore_helpers["snapshot"].exists = False

    system_settings = await get_system_settings(mock_firestore_helpers["client"])

    assert system_settings.whatsapp_enabled is True
    assert system_settings.maintenance_mode is False


@pytest.mark.asyncio
async def test_update_system_settings_merges(mock_firestore_helpers):
    client = mock_firestore_helpers["client"]
    mock_firestore_helpers["snapshot"].to_dict.return_value = SystemSettings(max_query_length=1500).model_dump()

    updated = await update_system_settings(client, {"maintenance_mode": True})

    assert updated.maintenance_mode is True
    assert updated.max_query_length == 1500
    written = mock_firestore_helpers["set_mock"].call_args.args[0]
    assert written["maintenance_mode"] is True
    mock_firestore_helpers["collection_mock"].document.assert_called_with("system")
