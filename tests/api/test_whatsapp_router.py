import asyncio
import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import pytest

from api.auth import User
from api.conversation import GREETING_RESPONSE
from api.errors import DeliveryFailure
from libs.firestore.system_settings import update_system_settings

META_PAYLOAD = {
    "object": "whatsapp_business_account",
    "entry": [
        {
            "id": "ACCOUNT_ID",
            "changes": [
                {
                    "field": "messages",
                    "value": {
                        "messaging_product": "whatsapp",
                        "metadata": {"phone_number_id": "123"},
                        "messages": [
                            {
                                "from": "254712345678",
                                "id": "wamid.1",
                                "timestamp": "1700000000",
                                "type": "text",
                                "text": {"body": "Hello"},
                            }
                        ],
                    },
                }
            ],
        }
    ],
}


def test_verify_whatsapp_webhook_success(client):
    response = client.get(
        "/api/whatsapp/webhook",
        params={"hub.mode": "subscribe", "hub.challenge": "challenge_string", "hub.verify_token": "verify-me"},
    )

    assert response.status_code == 200
    assert response.text == "challenge_string"


def test_verify_whatsapp_webhook_failure(client):
    response = client.get(
        "/api/whatsapp/webhook",
        params={"hub.mode": "subscribe", "hub.challenge": "challenge_string", "hub.verify_token": "wrong"},
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Verification failed"


def test_simple_webhook_message_gets_greeting(client, firestore):
    response = client.post("/api/whatsapp/webhook", json={"from": "0712345678", "body": "Hello"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "processed": 1,
        "intent": "greeting",
        "message": GREETING_RESPONSE,
    }
    assert firestore.documents("queries") == {}


def test_meta_webhook_payload_is_processed(client, firestore):
    response = client.post("/api/whatsapp/webhook", json=META_PAYLOAD)

    assert response.status_code == 200
    assert response.json()["processed"] == 1
    assert len(firestore.documents("whatsapp_messages")) == 2


def test_general_question_is_queued(client, recording_runner):
    response = client.post(
        "/api/whatsapp/webhook",
        json={"from": "0712345678", "body": "Is stealing from an employer a felony?", "message_type": "text"},
    )

    assert response.json()["intent"] == "general_query"
    assert len(recording_runner.spawned) == 1


def test_webhook_errors_still_return_200(client, services):
    services.conversation.handle_incoming = AsyncMock(side_effect=RuntimeError("firestore down"))

    response = client.post("/api/whatsapp/webhook", json={"from": "0712345678", "body": "Hello"})

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_unreadable_webhook_payload_returns_200(client):
    response = client.post(
        "/api/whatsapp/webhook", content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_webhook_ignored_when_whatsapp_disabled(client, services, firestore):
    asyncio.run(update_system_settings(services.firestore, {"whatsapp_enabled": False}))

    response = client.post("/api/whatsapp/webhook", json={"from": "0712345678", "body": "Hello"})

    assert response.json()["success"] is False
    assert firestore.documents("whatsapp_messages") == {}


def test_webhook_signature_is_enforced(client, settings):
    settings.whatsapp_app_secret = "app-secret"
    body = json.dumps({"from": "0712345678", "body": "Hello"}).encode()

    rejected = client.post(
        "/api/whatsapp/webhook",
        content=body,
        headers={"Content-Type": "application/json", "X-Hub-Signature-256": "sha256=deadbeef"},
    )
    signature = hmac.new(b"app-secret", body, hashlib.sha256).hexdigest()
    accepted = client.post(
        "/api/whatsapp/webhook",
        content=body,
        headers={"Content-Type": "application/json", "X-Hub-Signature-256": f"sha256={signature}"},
    )

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert accepted.json()["success"] is True


def test_send_requires_admin(client):
    response = client.post("/api/whatsapp/send", json={"to": "0712345678", "message": "Hi"})

    assert response.status_code == 403


@pytest.mark.parametrize("current_user", [User(uid="admin-1", is_admin=True)])
def test_send_message(client, firestore, current_user):
    response = client.post("/api/whatsapp/send", json={"phone": "0712345678", "message": "Your hearing is on Monday"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["messageId"].startswith("wamid.")
    [logged] = firestore.documents("whatsapp_messages").values()
    assert logged["phone_number"] == "254712345678"
    assert logged["user_id"] == "system"


@pytest.mark.parametrize("current_user", [User(uid="admin-1", is_admin=True)])
def test_send_message_transport_failure(client, services, current_user):
    services.transport.send_text = AsyncMock(side_effect=DeliveryFailure("WhatsApp API returned 500"))

    response = client.post("/api/whatsapp/send", json={"to": "0712345678", "message": "Hi"})

    assert response.status_code == 502


@pytest.mark.parametrize("current_user", [User(uid="admin-1", is_admin=True)])
def test_send_template(client, firestore, current_user):
    response = client.post(
        "/api/whatsapp/template",
        json={"to": "0712345678", "templateName": "hearing_reminder", "language": "en_US"},
    )

    assert response.status_code == 200
    [logged] = firestore.documents("whatsapp_messages").values()
    assert logged["message_type"] == "template"
    assert logged["content"] == "hearing_reminder"


@pytest.mark.parametrize("current_user", [User(uid="admin-1", is_admin=True)])
def test_history_lists_both_directions(client, current_user):
    client.post("/api/whatsapp/webhook", json={"from": "0712345678", "body": "Hello"})

    response = client.get("/api/whatsapp/history/0712345678")

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert {m["direction"] for m in body["messages"]} == {"incoming", "outgoing"}


def test_history_of_another_number_is_forbidden(client):
    response = client.get("/api/whatsapp/history/0712345678")

    assert response.status_code == 403


def test_webhook_with_invalid_sender_stores_nothing(client, firestore):
    response = client.post("/api/whatsapp/webhook", json={"from": "12345", "body": "Hello"})

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["processed"] == 0
    assert firestore.documents("users") == {}
    assert firestore.documents("whatsapp_messages") == {}


@pytest.mark.parametrize("current_user", [User(uid="admin-1", is_admin=True)])
@pytest.mark.parametrize("path", ["/api/whatsapp/send", "/api/whatsapp/media"])
def test_send_to_short_number_is_rejected(client, firestore, current_user, path):
    response = client.post(
        path,
        json={"to": "12345", "message": "Hi", "mediaType": "document", "mediaUrl": "https://example.com/a.pdf"},
    )

    assert response.status_code == 400
    assert "10 to 15 digits" in response.json()["detail"]
    assert firestore.documents("whatsapp_messages") == {}


@pytest.mark.parametrize("current_user", [User(uid="admin-1", is_admin=True)])
def test_send_media(client, services, firestore, current_user):
    response = client.post(
        "/api/whatsapp/media",
        json={
            "to": "0712345678",
            "mediaType": "document",
            "mediaUrl": "https://example.com/charge-sheet.pdf",
            "caption": "Charge sheet",
        },
    )

    assert response.status_code == 200
    assert response.json()["messageId"].startswith("wamid.")
    [logged] = firestore.documents("whatsapp_messages").values()
    assert logged["message_type"] == "document"
    assert logged["media_url"] == "https://example.com/charge-sheet.pdf"
    assert logged["content"] == "Charge sheet"


@pytest.mark.parametrize("current_user", [User(uid="admin-1", is_admin=True)])
def test_send_media_transport_failure(client, services, current_user):
    services.transport.send_media = AsyncMock(side_effect=DeliveryFailure("WhatsApp API returned 500"))

    response = client.post(
        "/api/whatsapp/media",
        json={"to": "0712345678", "mediaType": "image", "mediaUrl": "https://example.com/a.png"},
    )

    assert response.status_code == 502


def test_send_media_requires_admin(client):
    response = client.post(
        "/api/whatsapp/media",
        json={"to": "0712345678", "mediaType": "image", "mediaUrl": "https://example.com/a.png"},
    )

    assert response.status_code == 403
