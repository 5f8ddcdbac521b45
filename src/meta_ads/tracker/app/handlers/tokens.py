import logging
from aiohttp import web

from meta_ads.tracker.app.config import CredentialStoreAppKey
from meta_ads.tracker.app.handlers.helpers import error_response, query_flag, query_int
from meta_ads.tracker.errors import InvalidIdentity, NotFound
from meta_ads.tracker.store import clamp_window

logger = logging.getLogger(__name__)


async def handle_list_tokens(request: web.Request) -> web.Response:
    """
    List stored credentials, newest first, with access tokens redacted.

    Query Parameters:
        limit: Page size (default 10, at most 100)
        skip: Number of records to skip (default 0)
        client_id: Only list credentials that originated from this client
    """
    store = request.app[CredentialStoreAppKey]
    (limit, skip) = clamp_window(query_int(request, "limit"), query_int(request, "skip"))
    client_id = request.query.get("client_id", None) or None

    (documents, total) = await store.list(limit, skip, client_id=client_id)

    return web.json_response(
        {
            "success": True,
            "data": {
                "tokens": [document.to_json() for document in documents],
                "pagination": {
                    "total": total,
                    "limit": limit,
                    "skip": skip,
                    "hasMore": skip + len(documents) < total,
                },
            },
        }
    )


async def handle_get_token(request: web.Request) -> web.Response:
    """
    Fetch one stored credential.

    The access token is only included when ``includeToken=true`` is passed.
    """
    store = request.app[CredentialStoreAppKey]
    token_id = request.match_info["id"]
    include_token = query_flag(request, "includeToken")

    try:
        document = await store.get_by_id(token_id, include_token=include_token)
    except InvalidIdentity as e:
        return error_response(400, "invalid_id", str(e))
    except NotFound as e:
        return error_response(404, "not_found", str(e))

    if include_token:
        logger.info("Access token disclosed for credential record %s", token_id)

    return web.json_response({"success": True, "data": document.to_json()})
