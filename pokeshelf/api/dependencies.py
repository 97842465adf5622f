"""
Request-scoped access to the process-wide services.

The services are built once by the application lifespan and stored on
``app.state``. Tests may assign their own instances there.
"""

from typing import Annotated

from fastapi import Depends, Request

from pokeshelf.services.collection_store import CollectionStore
from pokeshelf.services.discovery import DiscoveryCache


def get_collection_store(request: Request) -> CollectionStore:
    store: CollectionStore = request.app.state.collection_store
    return store


def get_discovery_cache(request: Request) -> DiscoveryCache:
    cache: DiscoveryCache = request.app.state.discovery_cache
    return cache


CollectionStoreDep = Annotated[CollectionStore, Depends(get_collection_store)]
DiscoveryCacheDep = Annotated[DiscoveryCache, Depends(get_discovery_cache)]
