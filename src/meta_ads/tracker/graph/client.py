"""
Graph API Client

Three stateless requests against Meta's Graph API make up the credential exchange:

1. ``exchange_code``: trade the authorization code from the OAuth callback for a short-lived user access token
2. ``exchange_long_lived``: trade the short-lived token for a long-lived one (``fb_exchange_token`` grant)
3. ``validate``: fetch ``/me/adaccounts`` with the long-lived token, which both proves the token works and returns
   the ad accounts to persist alongside it

Every function raises ProviderRequestError on a non-2xx response, a transport failure, or a body that does not have
the expected shape. Nothing is retried; the exchange is a one-shot, user-triggered flow and failures are surfaced to
the caller immediately.

Access tokens are sent as query parameters, so request URLs are never logged.
"""

import asyncio
import logging
from time import time
from typing import Any, Dict, Optional, Type, TypeVar
from urllib.parse import urlencode
import aiohttp
from pydantic import BaseModel, ValidationError

from meta_ads.tracker.app.config import Settings
from meta_ads.tracker.app.metrics import MetricsClient
from meta_ads.tracker.errors import ProviderRequestError
from meta_ads.tracker.graph.models import ProviderResourceList, ProviderTokenResponse

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


async def _read_body(response: aiohttp.ClientResponse) -> Any:
    try:
        return await response.json(content_type=None)
    except ValueError:
        # Covers UnicodeDecodeError; error pages are not always UTF-8.
        return await response.text(errors="replace")


async def _graph_get(
    settings: Settings,
    http_session: aiohttp.ClientSession,
    metrics_client: MetricsClient,
    endpoint: str,
    path: str,
    params: Dict[str, str],
    model: Type[ModelT],
) -> ModelT:
    url = f"{settings.graph_base_url}{path}"
    start_time = time()
    status = 0

    try:
        async with http_session.get(url, params=params) as response:
            status = response.status
            body = await _read_body(response)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        metrics_client.increment(
            "tracker.graph.request.exception",
            1,
            tag_dict={"endpoint": endpoint, "exception": type(e).__name__},
        )
        logger.error("Graph API %s request failed: %s", endpoint, type(e).__name__)
        raise ProviderRequestError(endpoint, str(e) or type(e).__name__) from e
    finally:
        metrics_client.timer(
            "tracker.graph.request.time",
            time() - start_time,
            tag_dict={"endpoint": endpoint},
        )
        metrics_client.increment(
            "tracker.graph.request.count",
            1,
            tag_dict={"endpoint": endpoint, "status": status},
        )

    if status < 200 or status >= 300:
        logger.error(
            "Graph API %s request returned HTTP %s: %s", endpoint, status, body
        )
        raise ProviderRequestError(
            endpoint,
            f"Graph API {endpoint} request returned HTTP {status}",
            status=status,
            payload=body,
        )

    try:
        return model.model_validate(body)
    except ValidationError as e:
        logger.error("Graph API %s response has an unexpected shape", endpoint)
        raise ProviderRequestError(
            endpoint,
            f"Unexpected Graph API {endpoint} response: {e.error_count()} validation error(s)",
            status=status,
        ) from e


async def exchange_code(
    settings: Settings,
    http_session: aiohttp.ClientSession,
    metrics_client: MetricsClient,
    auth_code: str,
) -> ProviderTokenResponse:
    """
    Exchange an authorization code for a short-lived user access token.

    The code is passed through unchanged; the caller is responsible for rejecting empty values.

    Raises:
        ProviderRequestError: If the provider rejects the code or cannot be reached.
    """
    logger.info("Exchanging authorization code for access token")
    token = await _graph_get(
        settings,
        http_session,
        metrics_client,
        "exchange_code",
        "/oauth/access_token",
        {
            "client_id": settings.meta_app_id,
            "redirect_uri": settings.meta_redirect_uri,
            "client_secret": settings.meta_app_secret,
            "code": auth_code,
        },
        ProviderTokenResponse,
    )
    logger.info("Received short-lived access token")
    return token


async def exchange_long_lived(
    settings: Settings,
    http_session: aiohttp.ClientSession,
    metrics_client: MetricsClient,
    short_lived_token: str,
) -> ProviderTokenResponse:
    """
    Exchange a short-lived access token for a long-lived one.

    Raises:
        ProviderRequestError: If the provider rejects the token or cannot be reached.
    """
    logger.info("Exchanging short-lived token for long-lived token")
    token = await _graph_get(
        settings,
        http_session,
        metrics_client,
        "exchange_long_lived",
        "/oauth/access_token",
        {
            "grant_type": "fb_exchange_token",
            "client_id": settings.meta_app_id,
            "client_secret": settings.meta_app_secret,
            "fb_exchange_token": short_lived_token,
        },
        ProviderTokenResponse,
    )
    logger.info(
        "Received long-lived access token",
        extra={"token_type": token.token_type, "expires_in": token.expires_in},
    )
    return token


async def validate(
    settings: Settings,
    http_session: aiohttp.ClientSession,
    metrics_client: MetricsClient,
    access_token: str,
) -> ProviderResourceList:
    """
    Verify an access token by listing the ad accounts it can read.

    Raises:
        ProviderRequestError: If the token is rejected or the provider cannot be reached.
    """
    logger.info("Testing access token and fetching ad accounts")
    ad_accounts = await _graph_get(
        settings,
        http_session,
        metrics_client,
        "validate",
        "/me/adaccounts",
        {"access_token": access_token},
        ProviderResourceList,
    )
    logger.info(f"Token is valid. Found {len(ad_accounts.data)} ad accounts")
    return ad_accounts


def build_oauth_url(settings: Settings, state: Optional[str] = None) -> str:
    """Build the consent dialog URL a client opens to authorize this application."""
    query = {
        "client_id": settings.meta_app_id,
        "redirect_uri": settings.meta_redirect_uri,
        "scope": settings.oauth_scopes,
    }
    if state:
        query["state"] = state
    return (
        f"https://{settings.dialog_hostname}/{settings.meta_api_version}/dialog/oauth?"
        f"{urlencode(query)}"
    )
