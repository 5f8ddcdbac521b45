"""
Credential Store

Durable append-and-read access to credential records, backed by SQLAlchemy's async engine.

The store is an explicitly constructed object with a two-step lifecycle:

    store = CredentialStore("postgresql+asyncpg://...")
    await store.initialize()   # connect, create table and indexes if missing
    ...
    await store.close()

``initialize`` is idempotent and safe to call on every process start. If the database cannot be reached it raises
StoreUnavailable, and the process should refuse to serve traffic.

Records are append-only: there is no update or delete path. Every read path redacts the access token unless the
caller explicitly asks for it by id.
"""

import logging
from typing import Any, List, Optional, Tuple
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from ulid import ULID

from meta_ads.tracker.errors import InvalidIdentity, NotFound, StoreUnavailable
from meta_ads.tracker.model.base import Base
from meta_ads.tracker.model.credentials import CredentialDocument, CredentialRecord

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def clamp_window(limit: Optional[int], skip: Optional[int]) -> Tuple[int, int]:
    """Coerce a caller-supplied page window into a safe one."""
    if limit is None or limit <= 0:
        limit = DEFAULT_LIMIT
    limit = min(limit, MAX_LIMIT)
    if skip is None or skip < 0:
        skip = 0
    return (limit, skip)


def parse_identity(identity: str) -> str:
    try:
        return str(ULID.from_str(identity))
    except (ValueError, TypeError) as e:
        raise InvalidIdentity(identity) from e


class CredentialStore:
    def __init__(self, dsn: str, **engine_kwargs: Any) -> None:
        self._dsn = dsn
        self._engine_kwargs = engine_kwargs
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreUnavailable("Credential store has not been initialized")
        return self._engine

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self._session_maker is None:
            raise StoreUnavailable("Credential store has not been initialized")
        return self._session_maker

    async def initialize(self) -> None:
        """
        Connect and make sure the tokens table and its secondary indexes exist.

        Raises:
            StoreUnavailable: If the database cannot be reached.
        """
        if self._engine is None:
            self._engine = create_async_engine(self._dsn, **self._engine_kwargs)
            self._session_maker = async_sessionmaker(
                self._engine, class_=AsyncSession, expire_on_commit=False
            )

        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Unable to initialize credential store: %s", e)
            await self.close()
            raise StoreUnavailable(f"Unable to initialize credential store: {e}") from e

        logger.info("Credential store ready")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_maker = None

    async def insert(self, record: CredentialRecord) -> str:
        """Append one record and return its newly assigned id."""
        record.id = str(ULID())
        try:
            async with self.session_maker() as database_session:
                async with database_session.begin():
                    database_session.add(record)
        except SQLAlchemyError as e:
            logger.error("Unable to save credential record: %s", e)
            raise StoreUnavailable(f"Unable to save credential record: {e}") from e

        logger.info(
            "Credential record saved",
            extra={"token_id": record.id, "ad_accounts_count": record.ad_accounts_count},
        )
        return record.id

    async def list(
        self,
        limit: Optional[int] = DEFAULT_LIMIT,
        skip: Optional[int] = 0,
        client_id: Optional[str] = None,
    ) -> Tuple[List[CredentialDocument], int]:
        """
        Return one page of records, newest first, with access tokens redacted.

        Args:
            limit: Page size. Non-positive values fall back to the default; large values are capped.
            skip: Number of records to skip. Negative values are treated as zero.
            client_id: Only return records that originated from this client.

        Returns:
            Tuple of (records in the window, total number of matching records).
        """
        (limit, skip) = clamp_window(limit, skip)

        records_stmt = select(CredentialRecord)
        count_stmt = select(func.count()).select_from(CredentialRecord)
        if client_id is not None:
            records_stmt = records_stmt.where(CredentialRecord.client_id == client_id)
            count_stmt = count_stmt.where(CredentialRecord.client_id == client_id)

        records_stmt = (
            records_stmt.order_by(
                CredentialRecord.issued_at.desc(), CredentialRecord.id.desc()
            )
            .offset(skip)
            .limit(limit)
        )

        try:
            async with self.session_maker() as database_session:
                records = (await database_session.scalars(records_stmt)).all()
                total = (await database_session.execute(count_stmt)).scalar_one()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Unable to list credential records: {e}") from e

        return ([CredentialDocument.from_record(record) for record in records], total)

    async def get_by_id(
        self, identity: str, include_token: bool = False
    ) -> CredentialDocument:
        """
        Look up a single record.

        Raises:
            InvalidIdentity: If ``identity`` is not a well-formed record id.
            NotFound: If no record has that id.
        """
        record_id = parse_identity(identity)

        try:
            async with self.session_maker() as database_session:
                record: Optional[CredentialRecord] = await database_session.get(
                    CredentialRecord, record_id
                )
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Unable to read credential record: {e}") from e

        if record is None:
            raise NotFound(identity)
        return CredentialDocument.from_record(record, include_token=include_token)
