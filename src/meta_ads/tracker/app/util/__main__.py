import argparse
import asyncio
import json
import logging
from typing import Optional

from meta_ads.tracker.app.config import Settings
from meta_ads.tracker.graph.client import build_oauth_url
from meta_ads.tracker.store import CredentialStore

logger = logging.getLogger(__name__)


async def printAuthUrl(settings: Settings, client_id: Optional[str] = None) -> None:
    print(build_oauth_url(settings, state=client_id))


async def initDatabase(settings: Settings) -> None:
    store = CredentialStore(str(settings.database_url))
    try:
        await store.initialize()
        print("Credential store initialized")
    finally:
        await store.close()


async def listTokens(settings: Settings, limit: int, skip: int) -> None:
    store = CredentialStore(str(settings.database_url))
    try:
        await store.initialize()
        (documents, total) = await store.list(limit, skip)
    finally:
        await store.close()

    print(
        json.dumps(
            {"total": total, "tokens": [document.to_json() for document in documents]},
            indent=2,
        )
    )


async def realMain() -> None:
    parser = argparse.ArgumentParser(
        prog="trackerutil", description="Meta Ads Tracker utilities"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    auth_url = subparsers.add_parser(
        "auth-url", help="Print the OAuth consent dialog URL"
    )
    auth_url.add_argument(
        "--client-id", default=None, help="Client identifier to carry as OAuth state."
    )

    _ = subparsers.add_parser(
        "init-db", help="Create the tokens table and its indexes if missing"
    )

    list_tokens = subparsers.add_parser(
        "list-tokens", help="Print stored credentials with tokens redacted"
    )
    list_tokens.add_argument("--limit", type=int, default=10)
    list_tokens.add_argument("--skip", type=int, default=0)

    args = vars(parser.parse_args())
    command = args.get("command", None)

    settings = Settings()  # type: ignore

    if command == "auth-url":
        await printAuthUrl(settings, args.get("client_id", None))
    elif command == "init-db":
        await initDatabase(settings)
    elif command == "list-tokens":
        await listTokens(settings, args["limit"], args["skip"])


def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
