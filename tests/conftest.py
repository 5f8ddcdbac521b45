"""
Shared test configuration and fixtures.

Provides settings, an on-disk SQLite credential store, and a running test
application used across the test files.
"""

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from meta_ads.tracker.app.config import Settings
from meta_ads.tracker.app.metrics import NoOpMetricsClient
from meta_ads.tracker.app.server import start_web_server
from meta_ads.tracker.store import CredentialStore

from tests.test_helpers import (
    TEST_APP_ID,
    TEST_APP_SECRET,
    TEST_DATABASE_URL,
    TEST_REDIRECT_URI,
)


@pytest.fixture
def settings():
    """Settings with every required value supplied explicitly."""
    return Settings(
        meta_app_id=TEST_APP_ID,
        meta_app_secret=TEST_APP_SECRET,
        meta_redirect_uri=TEST_REDIRECT_URI,
        database_url=TEST_DATABASE_URL,
    )


@pytest.fixture
def metrics_client():
    return NoOpMetricsClient()


@pytest_asyncio.fixture(scope="function")
async def store(tmp_path):
    """Initialized credential store backed by a fresh SQLite file."""
    store = CredentialStore(f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}")
    await store.initialize()

    yield store

    await store.close()


@pytest_asyncio.fixture(scope="function")
async def client(settings, store, metrics_client):
    """Test client for the full application, wired to the SQLite store."""
    app = await start_web_server(settings, store=store, metrics_client=metrics_client)

    async with TestClient(TestServer(app)) as test_client:
        yield test_client
