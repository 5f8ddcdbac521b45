"""
Meta OAuth Handlers

Request handlers for the browser-facing half of the OAuth flow.

OAuth Flow with Meta:
1. A client asks GET /meta/auth/url for the consent dialog URL and sends the advertiser there
2. The advertiser grants the requested scopes on facebook.com
3. Meta redirects back to GET /meta/auth/callback with an authorization code (or an error)
4. The callback runs the credential exchange pipeline and responds with the stored credential

The callback response body includes the plaintext long-lived access token. This is the one place a raw token leaves
the service in a response and is kept deliberately: the party completing the consent flow is the party that needs
the token.
"""

import logging
from typing import Optional
from aiohttp import web
import sentry_sdk

from meta_ads.tracker.app.config import (
    CredentialStoreAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
    SessionAppKey,
    SettingsAppKey,
)
from meta_ads.tracker.app.handlers.helpers import error_response
from meta_ads.tracker.errors import ExchangeFailed, MissingCodeError, StoreUnavailable
from meta_ads.tracker.exchange import complete_authorization
from meta_ads.tracker.graph.client import build_oauth_url

logger = logging.getLogger(__name__)


async def handle_meta_auth_url(request: web.Request) -> web.Response:
    """
    Return the consent dialog URL for this application.

    Query Parameters:
        client_id: Optional identifier of the requesting client, carried through the flow as the OAuth state and
            stored with the resulting credential
    """
    settings = request.app[SettingsAppKey]
    client_id: Optional[str] = request.query.get("client_id", None)

    oauth_url = build_oauth_url(settings, state=client_id)
    logger.info("Generated OAuth URL for client")
    return web.json_response(
        {
            "oauth_url": oauth_url,
            "message": "Send this URL to your client to authorize access",
        }
    )


async def handle_meta_callback(request: web.Request) -> web.Response:
    """
    Handle the OAuth redirect from Meta.

    Query Parameters:
        code: Authorization code to exchange
        error: Error code when the user denied access or the dialog failed
        error_description: Human-readable description of ``error``
        state: Client identifier passed to GET /meta/auth/url, if any

    Responses:
        200: The exchange completed and the credential was stored
        400: Meta reported an error, or no code was supplied
        500: A Graph API step failed or the credential could not be stored
    """
    code: Optional[str] = request.query.get("code", None)
    error: Optional[str] = request.query.get("error", None)
    error_description: Optional[str] = request.query.get("error_description", None)
    client_id: Optional[str] = request.query.get("state", None) or None

    user_agent = request.headers.get("User-Agent")
    logger.info(
        "OAuth callback received",
        extra={
            "has_code": bool(code),
            "has_error": bool(error),
            "user_agent": user_agent,
            "ip": request.remote,
        },
    )

    if error:
        logger.error(
            "OAuth error received: %s",
            error,
            extra={"error_description": error_description},
        )
        return error_response(
            400, error, error_description or "OAuth authorization failed"
        )

    settings = request.app[SettingsAppKey]
    http_session = request.app[SessionAppKey]
    metrics_client = request.app[MetricsClientAppKey]
    store = request.app[CredentialStoreAppKey]
    health_gauge = request.app[HealthGaugeAppKey]

    origin_context = {"user_agent": user_agent, "ip_address": request.remote}

    try:
        document = await complete_authorization(
            settings,
            http_session,
            metrics_client,
            store,
            code,
            origin_context=origin_context,
            client_id=client_id,
        )
    except MissingCodeError as e:
        logger.error("No authorization code received in callback")
        return error_response(400, "missing_code", str(e))
    except ExchangeFailed as e:
        logger.error("OAuth callback processing failed: %s", e)
        sentry_sdk.capture_exception(e)
        await health_gauge.womp()
        return error_response(
            500,
            "oauth_processing_failed",
            "Failed to process OAuth callback",
            details=e.details,
            step=e.step,
        )
    except StoreUnavailable as e:
        logger.error("OAuth callback processing failed: %s", e)
        sentry_sdk.capture_exception(e)
        await health_gauge.womp()
        return error_response(
            500,
            "oauth_processing_failed",
            "Failed to process OAuth callback",
            details=str(e),
            step="persist",
        )

    metrics_client.increment("tracker.oauth.completed", 1)

    return web.json_response(
        {
            "success": True,
            "message": "OAuth authorization completed successfully",
            "data": {
                "token_id": document.id,
                "access_token": document.access_token,
                "token_type": document.token_type,
                "expires_in": document.expires_in,
                "ad_accounts": document.ad_accounts,
                "timestamp": document.issued_at.isoformat(),
            },
        }
    )
