from typing import Dict, Optional
from urllib.parse import urlparse


def parse_allowed_origins(value: str) -> set:
    return {origin.strip() for origin in value.split(",") if origin.strip()}


def get_cors_headers(origin_value: Optional[str], allowed_origins: str) -> Dict[str, str]:
    """Return appropriate CORS headers for the request origin."""
    allowed = parse_allowed_origins(allowed_origins)

    headers = {
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": (
            "Keep-Alive, User-Agent, X-Requested-With, "
            "If-Modified-Since, Cache-Control, Content-Type, Authorization"
        ),
        "Vary": "Origin",
    }

    if "*" in allowed:
        headers["Access-Control-Allow-Origin"] = "*"
    elif origin_value:
        parsed = urlparse(origin_value)
        base = f"{parsed.scheme}://{parsed.netloc}" if parsed.scheme and parsed.netloc else origin_value

        if base in allowed:
            headers["Access-Control-Allow-Origin"] = origin_value

    return headers
