"""
Configuration Module

Settings are loaded from environment variables with pydantic-settings and shared with request handlers through
typed aiohttp AppKeys.

The Meta application identity (META_APP_ID, META_APP_SECRET, META_REDIRECT_URI) and the database connection string
(DATABASE_URL) are required and have no defaults: the process refuses to start without them.
"""

import asyncio
from typing import Final, Optional
import logging
from aiohttp import ClientSession, web
from pydantic import AliasChoices, Field, PostgresDsn
from pydantic_settings import BaseSettings

from meta_ads.tracker.app.metrics import MetricsClient
from meta_ads.tracker.model.health import HealthGauge
from meta_ads.tracker.store import CredentialStore


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings.

    Environment variables map onto fields by name, case-insensitively. The database connection string can be set
    with either DATABASE_URL or PG_DSN.
    """

    debug: bool = False
    """
    Enable debug logging and request tracing.
    Set with DEBUG=true environment variable.
    """

    http_port: int = Field(alias="port", default=3000)
    """
    HTTP port for the service to listen on.
    Set with PORT environment variable.
    """

    allowed_origins: str = "*"
    """
    Comma-separated list of origins allowed for CORS, or * for any origin.
    Set with ALLOWED_ORIGINS environment variable.
    """

    # Meta application identity
    meta_app_id: str
    """Meta application id (required). Set with META_APP_ID."""

    meta_app_secret: str
    """Meta application secret (required). Set with META_APP_SECRET."""

    meta_redirect_uri: str
    """
    Redirect URI registered with the Meta application (required).
    Must point at this service's /meta/auth/callback route.
    Set with META_REDIRECT_URI.
    """

    meta_api_version: str = "v18.0"
    """Graph API version used for every provider call. Set with META_API_VERSION."""

    graph_hostname: str = "graph.facebook.com"
    """Graph API host. Set with GRAPH_HOSTNAME."""

    dialog_hostname: str = "www.facebook.com"
    """Host serving the OAuth consent dialog. Set with DIALOG_HOSTNAME."""

    oauth_scopes: str = "ads_read"
    """Comma-separated OAuth scopes requested in the consent dialog. Set with OAUTH_SCOPES."""

    database_url: PostgresDsn = Field(
        validation_alias=AliasChoices("database_url", "pg_dsn"),
    )
    """
    PostgreSQL connection string for the credential store (required).
    Set with DATABASE_URL or PG_DSN environment variables.
    Example: postgresql+asyncpg://postgres:password@db/meta_ads_tracker
    """

    # Monitoring and error reporting
    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    metrics_backend: str = "none"
    """
    Metrics backend, either 'telegraf' or 'none'.
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    @property
    def graph_base_url(self) -> str:
        return f"https://{self.graph_hostname}/{self.meta_api_version}"


# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

CredentialStoreAppKey: Final = web.AppKey("credential_store", CredentialStore)
"""AppKey for accessing the credential store"""

SessionAppKey: Final = web.AppKey("http_session", ClientSession)
"""AppKey for accessing the shared aiohttp client session"""

HealthGaugeAppKey: Final = web.AppKey("health_gauge", HealthGauge)
"""AppKey for accessing the health monitoring gauge"""

MetricsClientAppKey: Final = web.AppKey("metrics_client", MetricsClient)
"""AppKey for the configured metrics client"""

TickHealthTaskAppKey: Final = web.AppKey("tick_health_task", asyncio.Task[None])
"""AppKey for the background task that decays the health gauge"""
