from pokeshelf.api.collection import router as collection_router
from pokeshelf.api.discovery import router as discovery_router
from pokeshelf.api.health import router as health_router

__all__ = [
    "collection_router",
    "discovery_router",
    "health_router",
]
