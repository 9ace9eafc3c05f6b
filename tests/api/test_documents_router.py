import asyncio
from unittest.mock import AsyncMock

from libs.firestore.documents import save_document
from libs.firestore.system_settings import update_system_settings
from libs.models.firestore import DocumentRecord, FileMetadata


def upload(
    client,
    title="Bail application",
    content=b"%PDF-1.4 test",
    content_type="application/pdf",
    file_name="bail.pdf",
    **form,
):
    return client.post(
        "/api/document/upload",
        data={"title": title, **form},
        files={"file": (file_name, content, content_type)},
    )


def test_upload_document_returns_receipt(client, firestore, settings, recording_runner):
    response = upload(client, description="For my brother", documentType="bail_application")

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "received"
    assert body["estimatedTime"] == 60
    assert recording_runner.spawned == [body["documentId"]]

    stored = firestore.documents("documents")[body["documentId"]]
    assert stored["document_type"] == "bail_application"
    assert stored["file"]["size"] == len(b"%PDF-1.4 test")
    assert stored["file"]["content_type"] == "application/pdf"
    assert list(settings.upload_dir.iterdir())


def test_upload_classifies_document_type_from_title(client, firestore):
    body = upload(client, title="Charge sheet").json()

    assert firestore.documents("documents")[body["documentId"]]["document_type"] == "charge_sheet"


def test_upload_rejects_unsupported_type(client, firestore):
    response = upload(client, content_type="application/zip")

    assert response.status_code == 415
    assert firestore.documents("documents") == {}


def test_upload_rejects_oversized_file(client, settings):
    settings.max_document_size = 4

    response = upload(client, content=b"0123456789")

    assert response.status_code == 413


def test_upload_respects_operator_size_limit(client, services, firestore):
    asyncio.run(update_system_settings(services.firestore, {"max_document_size": 8}))

    response = upload(client, content=b"0123456789")

    assert response.status_code == 413
    assert response.json()["detail"] == "File too large. Maximum size: 8 bytes"
    assert firestore.documents("documents") == {}


def test_upload_respects_operator_extension_list(client, services, firestore):
    asyncio.run(update_system_settings(services.firestore, {"allowed_document_types": ["docx", "txt"]}))

    rejected = upload(client)
    accepted = upload(client, content=b"Charged with theft", content_type="text/plain", file_name="charge.txt")

    assert rejected.status_code == 415
    assert rejected.json()["detail"] == "File extension not allowed: pdf"
    assert accepted.status_code == 202
    assert len(firestore.documents("documents")) == 1


def test_upload_treats_jpeg_extension_as_jpg(client, services):
    asyncio.run(update_system_settings(services.firestore, {"allowed_document_types": ["jpg"]}))

    response = upload(client, content=b"\xff\xd8\xff", content_type="image/jpeg", file_name="photo.jpeg")

    assert response.status_code == 202


def test_upload_rejects_unknown_document_type(client):
    response = upload(client, documentType="parking_ticket")

    assert response.status_code == 400


def test_upload_rejects_long_title(client, firestore, settings):
    response = upload(client, title="t" * 101)

    assert response.status_code == 400
    assert firestore.documents("documents") == {}
    assert not settings.upload_dir.exists() or not list(settings.upload_dir.iterdir())


def test_failed_submission_removes_stored_upload(client, services, settings):
    services.coordinator.submit_document = AsyncMock(side_effect=RuntimeError("firestore down"))

    response = upload(client)

    assert response.status_code == 500
    assert not settings.upload_dir.exists() or not list(settings.upload_dir.iterdir())


def test_get_document_status(client, services):
    document = DocumentRecord(
        document_id="d-1",
        user_id="user-1",
        title="Affidavit",
        document_type="affidavit",
        status="completed",
        file=FileMetadata(url="/uploads/a.pdf", name="a.pdf", content_type="application/pdf", size=42),
        analysis="This affidavit is sworn evidence.",
        recommendations=["1", "2", "3", "4", "5"],
    )
    asyncio.run(save_document(services.firestore, document))

    response = client.get("/api/document/d-1")

    assert response.status_code == 200
    body = response.json()
    assert body["documentId"] == "d-1"
    assert body["documentType"] == "affidavit"
    assert body["fileName"] == "a.pdf"
    assert body["fileSize"] == 42
    assert len(body["recommendations"]) == 5
    assert body["caseLawReferences"] == []


def test_get_unknown_document_returns_404(client):
    response = client.get("/api/document/missing")

    assert response.status_code == 404
