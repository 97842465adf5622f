import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from importlib.metadata import version as pkg_version

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pokeshelf.api import collection_router, discovery_router, health_router
from pokeshelf.clients.pokeapi import PokeApiClient
from pokeshelf.config import settings
from pokeshelf.services.collection_store import CollectionStore
from pokeshelf.services.discovery import DiscoveryCache, collect_garbage_periodically
from pokeshelf.storage.kv import JsonFileStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the process-wide services on startup and release them on shutdown."""
    client = PokeApiClient()
    app.state.collection_store = CollectionStore(JsonFileStore(settings.data_dir))
    app.state.discovery_cache = DiscoveryCache(client)
    collector = asyncio.create_task(
        collect_garbage_periodically(app.state.discovery_cache, settings.gc_interval_seconds)
    )
    yield
    collector.cancel()
    with suppress(asyncio.CancelledError):
        await collector
    await app.state.discovery_cache.aclose()
    await client.aclose()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("pokeshelf"),
    lifespan=lifespan,
)

app.include_router(collection_router)
app.include_router(discovery_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
