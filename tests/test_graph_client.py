"""
Unit tests for the Graph API client in meta_ads.tracker.graph.client

Tests cover request construction for each exchange step, response parsing,
and the ProviderRequestError contract for HTTP, transport and shape failures.
"""

import asyncio
from unittest.mock import AsyncMock, Mock
from urllib.parse import parse_qs, urlparse

import aiohttp
import pytest

from meta_ads.tracker.errors import ProviderRequestError
from meta_ads.tracker.graph.client import (
    build_oauth_url,
    exchange_code,
    exchange_long_lived,
    validate,
)

from tests.test_helpers import (
    TEST_APP_ID,
    TEST_APP_SECRET,
    TEST_REDIRECT_URI,
    mock_graph_session,
)

TOKEN_URL = "https://graph.facebook.com/v18.0/oauth/access_token"
AD_ACCOUNTS_URL = "https://graph.facebook.com/v18.0/me/adaccounts"

GRAPH_ERROR = {
    "error": {
        "message": "Invalid verification code format.",
        "type": "OAuthException",
        "code": 100,
        "fbtrace_id": "AbCdEf",
    }
}


class TestExchangeCode:
    """Test suite for the authorization code exchange."""

    async def test_exchange_code_success(self, settings, metrics_client):
        """A 200 response is parsed into a token response."""
        mock_session = mock_graph_session(
            200, {"access_token": "SHORT", "token_type": "bearer", "expires_in": 3600}
        )

        token = await exchange_code(settings, mock_session, metrics_client, "the-code")

        assert token.access_token == "SHORT"
        assert token.token_type == "bearer"
        assert token.expires_in == 3600
        mock_session.get.assert_called_once_with(
            TOKEN_URL,
            params={
                "client_id": TEST_APP_ID,
                "redirect_uri": TEST_REDIRECT_URI,
                "client_secret": TEST_APP_SECRET,
                "code": "the-code",
            },
        )

    async def test_exchange_code_minimal_response(self, settings, metrics_client):
        """Only the access token is required."""
        mock_session = mock_graph_session(200, {"access_token": "SHORT"})

        token = await exchange_code(settings, mock_session, metrics_client, "the-code")

        assert token.access_token == "SHORT"
        assert token.token_type is None
        assert token.expires_in is None

    async def test_exchange_code_provider_error(self, settings, metrics_client):
        """A non-2xx response raises with the provider's error payload."""
        mock_session = mock_graph_session(400, GRAPH_ERROR)

        with pytest.raises(ProviderRequestError) as exc_info:
            await exchange_code(settings, mock_session, metrics_client, "bad-code")

        assert exc_info.value.endpoint == "exchange_code"
        assert exc_info.value.status == 400
        assert exc_info.value.payload == GRAPH_ERROR
        assert exc_info.value.details == GRAPH_ERROR

    async def test_exchange_code_missing_access_token(self, settings, metrics_client):
        """A 200 response without an access token is a provider failure."""
        mock_session = mock_graph_session(200, {"token_type": "bearer"})

        with pytest.raises(ProviderRequestError) as exc_info:
            await exchange_code(settings, mock_session, metrics_client, "the-code")

        assert exc_info.value.status == 200

    async def test_exchange_code_transport_error(self, settings, metrics_client):
        """Connection failures raise with the transport message."""
        mock_session = AsyncMock(spec=aiohttp.ClientSession)
        mock_session.get.side_effect = aiohttp.ClientConnectionError("connection reset")

        with pytest.raises(ProviderRequestError) as exc_info:
            await exchange_code(settings, mock_session, metrics_client, "the-code")

        assert exc_info.value.status is None
        assert exc_info.value.details == "connection reset"

    async def test_exchange_code_timeout(self, settings, metrics_client):
        """Timeouts are reported as provider failures."""
        mock_session = AsyncMock(spec=aiohttp.ClientSession)
        mock_session.get.side_effect = asyncio.TimeoutError()

        with pytest.raises(ProviderRequestError) as exc_info:
            await exchange_code(settings, mock_session, metrics_client, "the-code")

        assert exc_info.value.details == "TimeoutError"

    async def test_exchange_code_non_json_error(self, settings, metrics_client):
        """A non-JSON error body is carried as text."""
        mock_session = mock_graph_session(502, None)
        mock_response = mock_session.get.return_value.__aenter__.return_value
        mock_response.json.side_effect = ValueError("not json")
        mock_response.text.return_value = "Bad Gateway"

        with pytest.raises(ProviderRequestError) as exc_info:
            await exchange_code(settings, mock_session, metrics_client, "the-code")

        assert exc_info.value.status == 502
        assert exc_info.value.payload == "Bad Gateway"

    async def test_exchange_code_undecodable_error(self, settings, metrics_client):
        """An error body that is not valid UTF-8 still raises ProviderRequestError."""
        raw_body = b"\xff\xfe bad gateway \x80"

        async def read_json(content_type=None):
            return raw_body.decode("utf-8")

        async def read_text(encoding=None, errors="strict"):
            return raw_body.decode("utf-8", errors)

        mock_session = mock_graph_session(502, None)
        mock_response = mock_session.get.return_value.__aenter__.return_value
        mock_response.json.side_effect = read_json
        mock_response.text.side_effect = read_text

        with pytest.raises(ProviderRequestError) as exc_info:
            await exchange_code(settings, mock_session, metrics_client, "the-code")

        assert exc_info.value.status == 502
        assert "bad gateway" in exc_info.value.payload


class TestExchangeLongLived:
    """Test suite for the long-lived token exchange."""

    async def test_exchange_long_lived_success(self, settings, metrics_client):
        """The short-lived token is sent as an fb_exchange_token grant."""
        mock_session = mock_graph_session(
            200, {"access_token": "LONG", "token_type": "bearer", "expires_in": 5184000}
        )

        token = await exchange_long_lived(settings, mock_session, metrics_client, "SHORT")

        assert token.access_token == "LONG"
        assert token.expires_in == 5184000
        mock_session.get.assert_called_once_with(
            TOKEN_URL,
            params={
                "grant_type": "fb_exchange_token",
                "client_id": TEST_APP_ID,
                "client_secret": TEST_APP_SECRET,
                "fb_exchange_token": "SHORT",
            },
        )

    async def test_exchange_long_lived_expired_token(self, settings, metrics_client):
        mock_session = mock_graph_session(400, GRAPH_ERROR)

        with pytest.raises(ProviderRequestError) as exc_info:
            await exchange_long_lived(settings, mock_session, metrics_client, "SHORT")

        assert exc_info.value.endpoint == "exchange_long_lived"


class TestValidate:
    """Test suite for token validation against /me/adaccounts."""

    async def test_validate_success(self, settings, metrics_client):
        """The ad account list is returned with unknown fields kept."""
        mock_session = mock_graph_session(
            200,
            {
                "data": [{"id": "act_1", "name": "One"}, {"id": "act_2"}],
                "paging": {"cursors": {"before": "a", "after": "b"}},
            },
        )

        ad_accounts = await validate(settings, mock_session, metrics_client, "LONG")

        assert [account["id"] for account in ad_accounts.data] == ["act_1", "act_2"]
        assert ad_accounts.data[0]["name"] == "One"
        assert ad_accounts.paging == {"cursors": {"before": "a", "after": "b"}}
        mock_session.get.assert_called_once_with(
            AD_ACCOUNTS_URL, params={"access_token": "LONG"}
        )

    async def test_validate_no_accounts(self, settings, metrics_client):
        """A response without data is an empty list."""
        mock_session = mock_graph_session(200, {})

        ad_accounts = await validate(settings, mock_session, metrics_client, "LONG")

        assert ad_accounts.data == []

    async def test_validate_invalid_token(self, settings, metrics_client):
        mock_session = mock_graph_session(401, GRAPH_ERROR)

        with pytest.raises(ProviderRequestError) as exc_info:
            await validate(settings, mock_session, metrics_client, "LONG")

        assert exc_info.value.endpoint == "validate"
        assert exc_info.value.status == 401


class TestMetrics:
    """Test suite for provider request metrics."""

    async def test_request_metrics_recorded(self, settings):
        """Each request records a timing and a tagged count."""
        metrics_client = Mock()
        mock_session = mock_graph_session(200, {"access_token": "SHORT"})

        await exchange_code(settings, mock_session, metrics_client, "the-code")

        metrics_client.timer.assert_called_once()
        assert metrics_client.timer.call_args.args[0] == "tracker.graph.request.time"
        metrics_client.increment.assert_called_once_with(
            "tracker.graph.request.count",
            1,
            tag_dict={"endpoint": "exchange_code", "status": 200},
        )


class TestBuildOAuthUrl:
    """Test suite for the consent dialog URL."""

    def test_build_oauth_url(self, settings):
        url = urlparse(build_oauth_url(settings))
        query = parse_qs(url.query)

        assert url.scheme == "https"
        assert url.netloc == "www.facebook.com"
        assert url.path == "/v18.0/dialog/oauth"
        assert query == {
            "client_id": [TEST_APP_ID],
            "redirect_uri": [TEST_REDIRECT_URI],
            "scope": ["ads_read"],
        }

    def test_build_oauth_url_with_state(self, settings):
        url = urlparse(build_oauth_url(settings, state="acme"))

        assert parse_qs(url.query)["state"] == ["acme"]
