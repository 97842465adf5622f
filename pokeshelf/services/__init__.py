"""
Pokeshelf services.

Collection persistence and catalog discovery.
"""

from pokeshelf.services.collection_store import (
    CollectionStore,
    deserialize_collection,
    serialize_collection,
)
from pokeshelf.services.discovery import (
    CatalogClient,
    DiscoveryCache,
    DiscoverySnapshot,
    DiscoveryState,
    collect_garbage_periodically,
)
from pokeshelf.services.retry import RetryPolicy

__all__ = [
    "CatalogClient",
    "CollectionStore",
    "DiscoveryCache",
    "DiscoverySnapshot",
    "DiscoveryState",
    "collect_garbage_periodically",
    "RetryPolicy",
    "deserialize_collection",
    "serialize_collection",
]
