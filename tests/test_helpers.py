"""
Common testing utilities.

Builders for credential records and Graph API responses, and a mock HTTP
session for the Graph API client.
"""

from datetime import datetime, timezone, timedelta
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock
from aiohttp import ClientResponse, ClientSession
from ulid import ULID

from meta_ads.tracker.graph.models import ProviderResourceList, ProviderTokenResponse
from meta_ads.tracker.model.credentials import CredentialRecord

TEST_APP_ID = "1234567890"
TEST_APP_SECRET = "test_app_secret"
TEST_REDIRECT_URI = "https://tracker.example.com/meta/auth/callback"
TEST_DATABASE_URL = "postgresql+asyncpg://postgres:password@db/meta_ads_tracker"


def generate_ulid_string() -> str:
    """Generate a ULID string for testing."""
    return str(ULID())


def generate_test_datetime(offset_minutes: int = 0) -> datetime:
    """Generate a timezone-aware datetime for testing."""
    return datetime.now(timezone.utc) + timedelta(minutes=offset_minutes)


def make_record(
    access_token: str = "test_access_token",
    issued_at: Optional[datetime] = None,
    ad_accounts: Optional[List[Dict[str, Any]]] = None,
    client_id: Optional[str] = None,
) -> CredentialRecord:
    """Build an unsaved credential record."""
    if ad_accounts is None:
        ad_accounts = [{"id": "act_1"}]
    return CredentialRecord(
        access_token=access_token,
        token_type="bearer",
        expires_in=5184000,
        issued_at=issued_at or generate_test_datetime(),
        ad_accounts=ad_accounts,
        ad_accounts_count=len(ad_accounts),
        client_info={"user_agent": "pytest", "ip_address": "127.0.0.1"},
        client_id=client_id,
        status="active",
    )


async def insert_records(store, count: int, client_id: Optional[str] = None) -> List[str]:
    """Insert ``count`` records, each issued one minute after the previous, and return their ids in order."""
    base = generate_test_datetime(-count)
    ids = []
    for i in range(count):
        record = make_record(
            access_token=f"token_{i}",
            issued_at=base + timedelta(minutes=i),
            client_id=client_id,
        )
        ids.append(await store.insert(record))
    return ids


def short_lived_token() -> ProviderTokenResponse:
    return ProviderTokenResponse(access_token="SHORT")


def long_lived_token() -> ProviderTokenResponse:
    return ProviderTokenResponse(
        access_token="LONG", token_type="bearer", expires_in=5184000
    )


def ad_account_list() -> ProviderResourceList:
    return ProviderResourceList(data=[{"id": "act_1"}, {"id": "act_2"}])


def mock_graph_session(status: int, body: Any) -> AsyncMock:
    """Mock ClientSession whose ``get`` yields a response with the given status and JSON body."""
    mock_session = AsyncMock(spec=ClientSession)
    mock_response = AsyncMock(spec=ClientResponse)
    mock_response.status = status
    mock_response.json.return_value = body

    mock_session.get.return_value.__aenter__.return_value = mock_response
    return mock_session
