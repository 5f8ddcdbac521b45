import os
import sys
from aiohttp import web
import logging
from logging.config import dictConfig
import json

from pydantic import ValidationError

logger = logging.getLogger(__name__)


def configure_logging():
    logging_config_file = os.getenv("LOGGING_CONFIG_FILE", "")

    if len(logging_config_file) > 0:
        with open(logging_config_file) as fl:
            dictConfig(json.load(fl))
        return

    logging.basicConfig(
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    debug = os.getenv("DEBUG", "").lower() in ("1", "true", "yes")
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)


def invoke():
    configure_logging()

    from meta_ads.tracker.app.config import Settings
    from meta_ads.tracker.app.server import start_web_server
    from meta_ads.tracker.errors import StoreUnavailable

    try:
        settings = Settings()  # type: ignore
    except ValidationError as e:
        for error in e.errors():
            logger.error(
                "Missing or invalid configuration: %s (%s)",
                ".".join(str(part) for part in error["loc"]).upper(),
                error["msg"],
            )
        sys.exit(1)

    try:
        web.run_app(start_web_server(settings), port=settings.http_port)
    except StoreUnavailable as e:
        logger.critical("Refusing to start: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    invoke()
