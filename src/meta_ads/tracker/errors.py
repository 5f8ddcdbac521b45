"""Error types raised by the exchange pipeline, provider client, and credential store.

Handlers map these onto HTTP responses with a stable ``error`` code string:

- MissingCodeError: the callback carried no authorization code (400)
- ExchangeFailed: a provider step failed (500)
- StoreUnavailable: the database could not be reached or written (500, fatal at startup)
- NotFound / InvalidIdentity: read-path lookup misses (404 / 400)
"""

from typing import Any, Optional


class TrackerError(Exception):
    """Base class for all errors raised by this service."""


class MissingCodeError(TrackerError):
    def __init__(self, message: str = "Authorization code not found in callback"):
        super().__init__(message)


class ProviderRequestError(TrackerError):
    """A request to the Graph API failed.

    Carries the endpoint that was called, the HTTP status when a response was
    received, and the provider's error payload when one could be read.
    """

    def __init__(
        self,
        endpoint: str,
        message: str,
        status: Optional[int] = None,
        payload: Optional[Any] = None,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.message = message
        self.status = status
        self.payload = payload

    @property
    def details(self) -> Any:
        if self.payload is not None:
            return self.payload
        return self.message


class ExchangeFailed(TrackerError):
    """The credential exchange pipeline stopped at ``step``."""

    def __init__(self, step: str, cause: ProviderRequestError):
        super().__init__(f"{step} failed: {cause.message}")
        self.step = step
        self.cause = cause

    @property
    def details(self) -> Any:
        return self.cause.details


class StoreError(TrackerError):
    """Base class for credential store conditions."""


class StoreUnavailable(StoreError):
    pass


class NotFound(StoreError):
    def __init__(self, identity: str):
        super().__init__(f"No credential record with id {identity}")
        self.identity = identity


class InvalidIdentity(StoreError):
    def __init__(self, identity: str):
        super().__init__(f"Invalid credential record id: {identity!r}")
        self.identity = identity
