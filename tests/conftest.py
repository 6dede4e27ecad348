"""
Shared fixtures.

API tests run the real application with the mock storage client and an
in-memory session store swapped in through dependency overrides, so no
test touches real object storage.
"""

from typing import Callable

import pytest
from fastapi.testclient import TestClient

from media_gateway.api.dependencies import get_session_store, get_storage_client
from media_gateway.config.settings import Settings, get_settings
from media_gateway.infrastructure.sessions.store import InMemorySessionStore
from media_gateway.infrastructure.storage.client import MockStorageClient
from media_gateway.main import create_app

BUCKET = "test-bucket"
PRIVATE_DIR = "private"


@pytest.fixture
def storage() -> MockStorageClient:
    return MockStorageClient(bucket_name=BUCKET)


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def make_client(
    storage: MockStorageClient,
    session_store: InMemorySessionStore,
) -> Callable[..., TestClient]:
    """Build a TestClient for an app with the given setting overrides."""

    def _make(**overrides) -> TestClient:
        settings = Settings(
            _env_file=None,
            r2_mock_mode=True,
            r2_bucket_name=BUCKET,
            private_object_dir=PRIVATE_DIR,
            **overrides,
        )
        app = create_app()
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_storage_client] = lambda: storage
        app.dependency_overrides[get_session_store] = lambda: session_store
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def login(session_store: InMemorySessionStore):
    """Attach an authenticated session cookie to a client."""

    def _login(test_client: TestClient, tenant_id: str = "tenant-1") -> str:
        session_id = session_store.create(tenant_id=tenant_id, name="Test User")
        test_client.cookies.set("media_session", session_id)
        return session_id

    return _login
