"""
Pytest configuration and fixtures for the legal agent tests.

Provides shared fixtures for:
- An in-memory Firestore double with the query surface the helpers use
- File and fakeredis cache stores
- Fully wired services with a simulated WhatsApp transport
"""

import copy
import os

# Settings are read on first import of api.main; these must exist before it.
os.environ.setdefault("LEGALAGENT_SECRET_KEY", "test-secret-key-that-is-at-least-32-chars")
os.environ.setdefault("LEGALAGENT_APP_ENV", "test")

import pytest
from fastapi.testclient import TestClient

from api.auth import User, get_current_user
from api.dependencies import build_services, get_services
from api.main import app
from api.orchestrators.tasks import TaskRunner
from libs.caching.store import FileCacheStore
from libs.common.settings import Settings

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"

_OPERATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
}


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, store, doc_id):
        self._store = store
        self.id = doc_id

    async def get(self):
        return FakeSnapshot(self.id, self._store.get(self.id))

    async def set(self, data, merge=False):
        if merge and self.id in self._store:
            self._store[self.id].update(copy.deepcopy(data))
        else:
            self._store[self.id] = copy.deepcopy(data)


class FakeQuery:
    def __init__(self, store, filters=(), order=None, limit_to=None):
        self._store = store
        self._filters = tuple(filters)
        self._order = order
        self._limit = limit_to

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return FakeQuery(self._store, (*self._filters, (field_path, op_string, value)), self._order, self._limit)

    def order_by(self, field_path, direction="ASCENDING"):
        return FakeQuery(self._store, self._filters, (field_path, direction), self._limit)

    def limit(self, count):
        return FakeQuery(self._store, self._filters, self._order, count)

    async def get(self):
        rows = [
            (doc_id, data)
            for doc_id, data in self._store.items()
            if all(_OPERATORS[op](data.get(field), value) for field, op, value in self._filters)
        ]
        if self._order is not None:
            field, direction = self._order
            rows.sort(key=lambda row: row[1].get(field), reverse=direction == "DESCENDING")
        if self._limit is not None:
            rows = rows[: self._limit]
        return [FakeSnapshot(doc_id, data) for doc_id, data in rows]


class FakeCollection(FakeQuery):
    def document(self, doc_id):
        return FakeDocument(self._store, doc_id)


class FakeFirestore:
    """Async Firestore stand-in backed by dictionaries."""

    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return FakeCollection(self.collections.setdefault(name, {}))

    def documents(self, name):
        return self.collections.get(name, {})


@pytest.fixture
def firestore():
    return FakeFirestore()


@pytest.fixture
def cache(tmp_path):
    return FileCacheStore(tmp_path / "cache")


@pytest.fixture
async def redis_client():
    """
    Provide fakeredis client for testing.

    This avoids requiring actual Redis server during tests.
    """
    from fakeredis import aioredis as fakeredis

    client = fakeredis.FakeRedis(decode_responses=True)

    yield client

    await client.flushdb()
    await client.aclose()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key=TEST_SECRET,
        app_env="test",
        cache_dir=tmp_path / "cache",
        upload_dir=tmp_path / "uploads",
        general_query_delay_seconds=0,
        processing_timeout_seconds=5,
        whatsapp_verify_token="verify-me",
    )


@pytest.fixture
def services(settings, firestore, cache):
    return build_services(settings, firestore, cache)


@pytest.fixture
def coordinator(services):
    return services.coordinator


class RecordingRunner(TaskRunner):
    """Task runner that records spawned keys and never runs the work."""

    def __init__(self):
        super().__init__()
        self.spawned = []

    def spawn(self, key, coro):
        coro.close()
        self.spawned.append(key)
        return True


@pytest.fixture
def recording_runner():
    return RecordingRunner()


@pytest.fixture
def current_user():
    return User(uid="user-1", email="user@example.com")


@pytest.fixture
def client(services, recording_runner, current_user):
    """TestClient wired to the fixture services; background work is only recorded."""
    services.coordinator.runner = recording_runner
    app.dependency_overrides[get_services] = lambda: services
    app.dependency_overrides[get_current_user] = lambda: current_user

    yield TestClient(app)

    app.dependency_overrides.clear()
