"""Typed views of Graph API responses.

Unknown fields are kept so nothing the provider returns is silently dropped.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ProviderTokenResponse(BaseModel):
    """Body of a successful ``/oauth/access_token`` call."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class ProviderResourceList(BaseModel):
    """Body of a successful ``/me/adaccounts`` call.

    Each entry in ``data`` is an ad account descriptor. They are stored as-is.
    """

    model_config = ConfigDict(extra="allow")

    data: List[Dict[str, Any]] = Field(default_factory=list)
    paging: Optional[Dict[str, Any]] = None
