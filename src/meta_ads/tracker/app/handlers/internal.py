import logging
from datetime import datetime, timezone
from aiohttp import web

from meta_ads.tracker.app.config import HealthGaugeAppKey

logger = logging.getLogger(__name__)


async def handle_index(request: web.Request) -> web.Response:
    logger.debug("Health check endpoint accessed")
    return web.json_response(
        {
            "status": "OK",
            "message": "Meta Ads Tracker API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


async def handle_internal_ready(request: web.Request) -> web.Response:
    health_gauge = request.app[HealthGaugeAppKey]
    if await health_gauge.is_healthy():
        return web.json_response({"ready": True, "failures": health_gauge.value})
    return web.json_response(
        {"ready": False, "failures": health_gauge.value}, status=503
    )


async def handle_internal_alive(request: web.Request) -> web.Response:
    return web.Response(status=200)
