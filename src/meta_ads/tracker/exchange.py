"""
Credential Exchange Pipeline

Turns the authorization code from an OAuth callback into a stored, validated long-lived credential.

The pipeline is a strict sequence:

    Start -> CodeExchanged -> TokenUpgraded -> Validated -> Persisted

Each step depends on the previous step's output. The first failing step ends the run: provider failures are
raised as ExchangeFailed naming the step, and a failed write is raised as StoreUnavailable. Nothing is written
until all three provider calls have succeeded, so there is never a record of a short-lived or unvalidated token.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from aiohttp import ClientSession

from meta_ads.tracker.app.config import Settings
from meta_ads.tracker.app.metrics import MetricsClient
from meta_ads.tracker.errors import ExchangeFailed, MissingCodeError, ProviderRequestError
from meta_ads.tracker.graph import client as graph
from meta_ads.tracker.graph.models import ProviderResourceList, ProviderTokenResponse
from meta_ads.tracker.model.credentials import (
    STATUS_ACTIVE,
    CredentialDocument,
    CredentialRecord,
)
from meta_ads.tracker.store import CredentialStore

logger = logging.getLogger(__name__)


def build_credential_record(
    token: ProviderTokenResponse,
    ad_accounts: ProviderResourceList,
    origin_context: Optional[Dict[str, Any]] = None,
    client_id: Optional[str] = None,
    issued_at: Optional[datetime] = None,
) -> CredentialRecord:
    """Assemble the record for a fully validated long-lived token."""
    client_info: Dict[str, Any] = {"user_agent": None, "ip_address": None}
    client_info.update(origin_context or {})

    accounts = list(ad_accounts.data)
    return CredentialRecord(
        access_token=token.access_token,
        token_type=token.token_type,
        expires_in=token.expires_in,
        issued_at=issued_at or datetime.now(timezone.utc),
        ad_accounts=accounts,
        ad_accounts_count=len(accounts),
        client_info=client_info,
        client_id=client_id,
        status=STATUS_ACTIVE,
    )


async def complete_authorization(
    settings: Settings,
    http_session: ClientSession,
    metrics_client: MetricsClient,
    store: CredentialStore,
    auth_code: Optional[str],
    origin_context: Optional[Dict[str, Any]] = None,
    client_id: Optional[str] = None,
) -> CredentialDocument:
    """
    Run the full credential exchange for one OAuth callback.

    Args:
        settings: Application settings
        http_session: HTTP session for Graph API requests
        metrics_client: Metrics client for provider request timings
        store: Credential store the validated record is written to
        auth_code: Authorization code from the callback
        origin_context: Request metadata (user agent, remote address) stored with the record
        client_id: Optional identifier of the client that started the flow

    Returns:
        CredentialDocument: The stored record, including its id and the plaintext access token.

    Raises:
        MissingCodeError: If ``auth_code`` is empty. No request is made.
        ExchangeFailed: If any Graph API step fails. Nothing is stored.
        StoreUnavailable: If the validated record could not be written.
    """
    if not auth_code:
        raise MissingCodeError()

    step = "exchange_code"
    try:
        short_lived = await graph.exchange_code(
            settings, http_session, metrics_client, auth_code
        )

        step = "exchange_long_lived"
        long_lived = await graph.exchange_long_lived(
            settings, http_session, metrics_client, short_lived.access_token
        )

        step = "validate"
        ad_accounts = await graph.validate(
            settings, http_session, metrics_client, long_lived.access_token
        )
    except ProviderRequestError as e:
        logger.error(
            "Credential exchange failed at %s: %s", step, e.message,
            extra={"step": step, "provider_status": e.status},
        )
        raise ExchangeFailed(step, e) from e

    logger.info(
        "OAuth flow completed successfully",
        extra={
            "token_type": long_lived.token_type,
            "expires_in": long_lived.expires_in,
            "ad_accounts_count": len(ad_accounts.data),
        },
    )

    record = build_credential_record(
        long_lived, ad_accounts, origin_context=origin_context, client_id=client_id
    )
    record.id = await store.insert(record)

    return CredentialDocument.from_record(record, include_token=True)
