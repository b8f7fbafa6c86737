"""Error taxonomy shared by the storefront services.

Each error carries the HTTP status it is reported with, a short message for
the caller and, where available, the underlying error text.
"""
from typing import Any, Optional


class StoreError(Exception):
    """Base class for all storefront domain errors."""

    status_code = 500

    def __init__(self, message: str, error: Optional[Any] = None):
        self.message = message
        self.error = error
        super().__init__(message if error is None else f"{message}: {error}")


class InvalidInput(StoreError):
    status_code = 400


class NotFound(StoreError):
    status_code = 404


class UpstreamFailure(StoreError):
    """The database or the payment processor failed."""


class ServerError(StoreError):
    pass
