"""Custom exception hierarchy for queryread."""

from __future__ import annotations


class QueryReadError(Exception):
    """Base exception for all queryread errors."""


class StoreConfigError(QueryReadError):
    """Invalid or missing store configuration."""


class InvalidItemError(QueryReadError):
    """An item argument did not originate from the store it was passed to."""


class InvalidAttributeError(QueryReadError):
    """Attribute missing on an item (no default given) or not a valid name."""


class StoreTransportError(QueryReadError):
    """HTTP-level failure (network, non-2xx, undecodable body, no ``items``).

    Handed verbatim to the fetch error callback. The store never retries
    and keeps its previous result set when this happens.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)
