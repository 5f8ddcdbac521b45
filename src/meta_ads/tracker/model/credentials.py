"""Issued-credential records.

``CredentialRecord`` is the SQLAlchemy row written once per completed exchange.
``CredentialDocument`` is the read-side view handed back to callers, with the
access token left out unless it was explicitly requested.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel
from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from meta_ads.tracker.model.base import Base, str64, str512, str1024, ulidpk

STATUS_ACTIVE = "active"


class CredentialRecord(Base):
    """A long-lived Graph API token together with the ad accounts it could see.

    The ``id`` is assigned by the credential store at insert time.
    """

    __tablename__ = "tokens"

    id: Mapped[ulidpk]
    access_token: Mapped[str1024]
    token_type: Mapped[Optional[str64]]
    expires_in: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    ad_accounts: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False)
    ad_accounts_count: Mapped[int] = mapped_column(Integer, nullable=False)
    client_info: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    client_id: Mapped[Optional[str512]]
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=STATUS_ACTIVE
    )

    __table_args__ = (Index("idx_tokens_client_id", "client_id"),)


# Listing reads newest first.
Index("idx_tokens_issued_at", CredentialRecord.issued_at.desc())


class CredentialDocument(BaseModel):
    """Serializable view of a stored credential record."""

    id: str
    access_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    issued_at: datetime
    ad_accounts: List[Dict[str, Any]]
    ad_accounts_count: int
    client_info: Dict[str, Any]
    client_id: Optional[str] = None
    status: str

    @classmethod
    def from_record(
        cls, record: CredentialRecord, include_token: bool = False
    ) -> "CredentialDocument":
        return cls(
            id=record.id,
            access_token=record.access_token if include_token else None,
            token_type=record.token_type,
            expires_in=record.expires_in,
            issued_at=record.issued_at,
            ad_accounts=list(record.ad_accounts or []),
            ad_accounts_count=record.ad_accounts_count,
            client_info=dict(record.client_info or {}),
            client_id=record.client_id,
            status=record.status,
        )

    def to_json(self) -> Dict[str, Any]:
        # A redacted document omits the key entirely rather than sending null.
        exclude = {"access_token"} if self.access_token is None else None
        return self.model_dump(mode="json", exclude=exclude)
