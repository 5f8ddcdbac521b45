from typing import Any, Optional
from aiohttp import web


def error_response(
    status: int, error: str, description: str, **extra: Any
) -> web.Response:
    """Build the JSON body shared by every failed request."""
    body = {"success": False, "error": error, "description": description}
    body.update(extra)
    return web.json_response(body, status=status)


def query_int(request: web.Request, name: str) -> Optional[int]:
    """Read an integer query parameter, treating missing or malformed values as absent."""
    value = request.query.get(name, None)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def query_flag(request: web.Request, name: str) -> bool:
    return request.query.get(name, "").strip().lower() in ("1", "true", "yes")
