"""
Feed Sync - client-side synchronization engine for a filterable content feed.

This package keeps the list of items that should currently be displayed in
step with a remote content API: filters, pagination, "latest request wins"
cancellation, facet counts and a locally persisted bookmark set.

Main entry points are `SyncController` for embedding and the CLI via the
`feed-sync` command.

Example:
    $ feed-sync browse --query "interpretability" --pages 2
"""

__all__ = [
    "__version__",
    "SyncController",
    "FeedSession",
    "FilterState",
    "Item",
    "BookmarkStore",
    "ContentApiClient",
    "load_config",
]
__version__ = "0.1.0"

from .bookmarks import BookmarkStore
from .client import ContentApiClient
from .config import load_config
from .controller import SyncController
from .filters import FilterState
from .session import FeedSession
from .types import Item
