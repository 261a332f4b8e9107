"""
Error taxonomy for the feed synchronization engine.

- TransportError: non-2xx response or network failure, surfaced to the user
- NotFoundError: a single-item lookup returned 404, surfaced as a notice
- StorageError: bookmark storage could not be read or written, logged only

Cancellation of a superseded request is signalled with the standard
asyncio.CancelledError and never reaches the user.
"""

from __future__ import annotations


class FeedSyncError(Exception):
    """Base class for all engine errors."""


class TransportError(FeedSyncError):
    """Remote content API request failed.

    Attributes:
        status_code: HTTP status code, or None if no response was received
        url: The URL that was requested, when known
    """

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class NotFoundError(FeedSyncError):
    """A single item does not exist on the server."""

    def __init__(self, item_id: int):
        super().__init__(f"Item {item_id} not found.")
        self.item_id = item_id


class StorageError(FeedSyncError):
    """Durable local storage could not be read or written."""
