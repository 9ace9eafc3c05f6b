import asyncio
from datetime import datetime, timedelta

import pytest

from api.auth import User
from libs.firestore.documents import save_document
from libs.firestore.queries import save_query
from libs.firestore.users import create_user_profile
from libs.models.firestore import DocumentRecord, FileMetadata, QueryRecord, UserRecord

ADMIN = User(uid="admin-1", email="admin@example.com", is_admin=True)


def seed(services):
    now = datetime.utcnow()
    records = [
        QueryRecord(query_id="q-1", user_id="u-1", query_text="Define theft", status="completed",
                    answer="Theft is defined in Section 268.", created_at=now - timedelta(minutes=3)),
        QueryRecord(query_id="q-2", user_id="u-1", query_text="Define robbery", status="completed",
                    answer="Robbery is defined in Section 295.", created_at=now - timedelta(minutes=2)),
        QueryRecord(query_id="q-3", user_id="u-2", query_text="Can I appeal?", status="failed",
                    error="Processing timed out after 120 seconds", created_at=now - timedelta(minutes=1)),
        QueryRecord(query_id="q-4", user_id="u-3", query_text="What is bail?", created_at=now),
    ]

    async def _seed():
        for record in records:
            await save_query(services.firestore, record)
        await save_document(
            services.firestore,
            DocumentRecord(
                document_id="d-1",
                user_id="u-1",
                title="Charge sheet",
                status="completed",
                file=FileMetadata(url="/uploads/c.pdf", name="c.pdf", content_type="application/pdf"),
                analysis="This charge sheet lists one count.",
            ),
        )
        await create_user_profile(services.firestore, UserRecord(uid="u-1", name="Wanjiru", email="w@example.com"))
        await create_user_profile(services.firestore, UserRecord(uid="u-2", name="WhatsApp User 5678", phone="254712345678"))

    asyncio.run(_seed())


@pytest.mark.parametrize("path", ["/api/admin/stats", "/api/admin/users", "/api/admin/queries/recent", "/api/admin/settings"])
def test_admin_routes_require_admin(client, path):
    response = client.get(path)

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


@pytest.mark.parametrize("current_user", [ADMIN])
def test_stats_are_computed_from_stored_queries(client, services, current_user):
    seed(services)

    response = client.get("/api/admin/stats")

    assert response.status_code == 200
    assert response.json()["stats"] == {
        "totalQueries": 4,
        "activeUsers": 3,
        "documentsProcessed": 1,
        "successRate": 66.7,
    }


@pytest.mark.parametrize("current_user", [ADMIN])
def test_stats_without_finished_queries(client, current_user):
    stats = client.get("/api/admin/stats").json()["stats"]

    assert stats["totalQueries"] == 0
    assert stats["successRate"] == 0.0


@pytest.mark.parametrize("current_user", [ADMIN])
def test_list_users(client, services, current_user):
    seed(services)

    users = client.get("/api/admin/users").json()["users"]

    assert {user["uid"] for user in users} == {"u-1", "u-2"}
    assert all("createdAt" in user for user in users)


@pytest.mark.parametrize("current_user", [ADMIN])
def test_recent_queries_newest_first(client, services, current_user):
    seed(services)

    queries = client.get("/api/admin/queries/recent", params={"limit": 2}).json()["queries"]

    assert [query["queryId"] for query in queries] == ["q-4", "q-3"]
    assert queries[1]["status"] == "failed"


@pytest.mark.parametrize("current_user", [ADMIN])
def test_settings_defaults(client, current_user):
    response = client.get("/api/admin/settings")

    assert response.status_code == 200
    settings = response.json()["settings"]
    assert settings["whatsapp_enabled"] is True
    assert settings["maintenance_mode"] is False
    assert settings["max_query_length"] == 2000


@pytest.mark.parametrize("current_user", [ADMIN])
def test_update_settings_keeps_omitted_fields(client, current_user):
    response = client.put("/api/admin/settings", json={"maintenanceMode": True})

    assert response.status_code == 200
    settings = client.get("/api/admin/settings").json()["settings"]
    assert settings["maintenance_mode"] is True
    assert settings["whatsapp_enabled"] is True


@pytest.mark.parametrize("current_user", [ADMIN])
def test_update_settings_validates_values(client, current_user):
    response = client.put("/api/admin/settings", json={"maxQueryLength": 5000})

    assert response.status_code == 422


@pytest.mark.parametrize("current_user", [ADMIN])
def test_updated_query_length_applies_to_new_queries(client, firestore, current_user):
    client.put("/api/admin/settings", json={"maxQueryLength": 50})

    rejected = client.post("/api/query/submit", json={"queryText": "Can I be held without charge? " * 17})
    accepted = client.post("/api/query/submit", json={"queryText": "Can I be held without charge?"})

    assert rejected.status_code == 400
    assert accepted.status_code == 202
    assert list(firestore.documents("queries")) == [accepted.json()["queryId"]]
