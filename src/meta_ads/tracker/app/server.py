import asyncio
import contextlib
import logging
from time import time
from typing import NoReturn, Optional
from aiohttp import web
import aiohttp
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from meta_ads.tracker.app.config import (
    CredentialStoreAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
    SessionAppKey,
    Settings,
    SettingsAppKey,
    TickHealthTaskAppKey,
)
from meta_ads.tracker.app.cors import get_cors_headers
from meta_ads.tracker.app.handlers.helpers import error_response
from meta_ads.tracker.app.handlers.internal import (
    handle_index,
    handle_internal_alive,
    handle_internal_ready,
)
from meta_ads.tracker.app.handlers.oauth import (
    handle_meta_auth_url,
    handle_meta_callback,
)
from meta_ads.tracker.app.handlers.tokens import handle_get_token, handle_list_tokens
from meta_ads.tracker.app.metrics import MetricsClient, create_metrics_client
from meta_ads.tracker.model.health import HealthGauge
from meta_ads.tracker.store import CredentialStore

logger = logging.getLogger(__name__)


async def tick_health_task(app: web.Application) -> NoReturn:
    """
    Tick the health gauge every 30 seconds, reducing the failure count by 1 each time.
    The remaining failure count is reported as the tracker.health.failures gauge.
    """

    logger.info("Starting health gauge task")

    health_gauge = app[HealthGaugeAppKey]
    metrics_client = app[MetricsClientAppKey]
    while True:
        await health_gauge.tick()
        metrics_client.gauge("tracker.health.failures", health_gauge.value)
        await asyncio.sleep(30)


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    # Raises StoreUnavailable, which aborts startup.
    await app[CredentialStoreAppKey].initialize()

    trace_config = aiohttp.TraceConfig()

    if settings.debug:

        async def on_request_start(
            session, trace_config_ctx, params: aiohttp.TraceRequestStartParams
        ):
            logger.debug("Starting request: %s %s", params.method, params.url.path)

        async def on_request_end(
            session, trace_config_ctx, params: aiohttp.TraceRequestEndParams
        ):
            logger.debug(
                "Ending request: %s %s -> %s",
                params.method,
                params.url.path,
                params.response.status,
            )

        trace_config.on_request_start.append(on_request_start)
        trace_config.on_request_end.append(on_request_end)

    app[SessionAppKey] = aiohttp.ClientSession(trace_configs=[trace_config])

    await app[MetricsClientAppKey].connect()

    logger.info("Startup complete")
    logger.info("OAuth redirect URI: %s", settings.meta_redirect_uri)

    app[TickHealthTaskAppKey] = asyncio.create_task(tick_health_task(app))

    yield

    logger.info("Shutting down")

    app[TickHealthTaskAppKey].cancel()

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[TickHealthTaskAppKey]

    await app[SessionAppKey].close()
    await app[CredentialStoreAppKey].close()
    await app[MetricsClientAppKey].close()


@web.middleware
async def cors_middleware(request: web.Request, handler):
    settings = request.app[SettingsAppKey]
    cors_headers = get_cors_headers(
        request.headers.get("Origin"), settings.allowed_origins
    )
    if request.method == "OPTIONS":
        response = web.Response(status=204)
    else:
        try:
            response = await handler(request)
        except web.HTTPException as e:
            e.headers.update(cors_headers)
            raise e
    response.headers.update(cors_headers)
    return response


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPNotFound:
        logger.warning("404 - Route not found: %s", request.path)
        return error_response(404, "not_found", "Route not found")
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unhandled error")
        await request.app[HealthGaugeAppKey].womp()
        return error_response(
            500, "internal_server_error", "An unexpected error occurred"
        )


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        sentry_sdk.capture_exception(e)
        raise e


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    metrics_client = request.app[MetricsClientAppKey]
    request_method: str = request.method
    request_path = request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except Exception as e:
        metrics_client.increment(
            "tracker.server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        metrics_client.timer(
            "tracker.server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        metrics_client.increment(
            "tracker.server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


async def start_web_server(
    settings: Optional[Settings] = None,
    store: Optional[CredentialStore] = None,
    metrics_client: Optional[MetricsClient] = None,
):

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=False,
            integrations=[AioHttpIntegration()],
        )
    if store is None:
        store = CredentialStore(str(settings.database_url))
    if metrics_client is None:
        metrics_client = create_metrics_client(
            settings.metrics_backend,
            host=settings.statsd_host,
            port=settings.statsd_port,
            debug=settings.debug,
        )

    app = web.Application(
        middlewares=[
            cors_middleware,
            statsd_middleware,
            error_middleware,
            sentry_middleware,
        ]
    )

    app[SettingsAppKey] = settings
    app[HealthGaugeAppKey] = HealthGauge()
    app[CredentialStoreAppKey] = store
    app[MetricsClientAppKey] = metrics_client

    app.add_routes([web.get("/", handle_index)])
    app.add_routes(
        [
            web.get("/meta/auth/url", handle_meta_auth_url),
            web.get("/meta/auth/callback", handle_meta_callback),
        ]
    )
    app.add_routes(
        [
            web.get("/meta/tokens", handle_list_tokens),
            web.get("/meta/tokens/{id}", handle_get_token),
        ]
    )
    app.add_routes(
        [
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
        ]
    )

    app.cleanup_ctx.append(background_tasks)

    return app
