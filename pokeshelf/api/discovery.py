"""
Discovery API endpoints.

Exposes the flattened list of loaded Pokemon and the load-more, retry and
refresh triggers.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from pokeshelf.api.dependencies import DiscoveryCacheDep
from pokeshelf.models.failure import FailureDetail, NothingToRetryError
from pokeshelf.models.pokemon import Pokemon
from pokeshelf.services.discovery import DiscoverySnapshot, DiscoveryState

router = APIRouter(prefix="/discovery", tags=["discovery"])


class DiscoveryResponse(BaseModel):
    """Response model for the discovery list."""

    pokemon: list[Pokemon] = Field(default_factory=list)
    loaded_count: int = 0
    has_next_page: bool = True
    state: DiscoveryState = DiscoveryState.IDLE
    is_fetching: bool = False
    is_stale: bool = False
    error: FailureDetail | None = Field(
        default=None,
        description="Present when the last page failed after all retries",
    )
    refresh_error: FailureDetail | None = Field(
        default=None,
        description="Present when the last refresh failed; loaded data is unchanged",
    )


def snapshot_to_response(snapshot: DiscoverySnapshot) -> DiscoveryResponse:
    return DiscoveryResponse(
        pokemon=list(snapshot.pokemon),
        loaded_count=snapshot.loaded_count,
        has_next_page=snapshot.has_next_page,
        state=snapshot.state,
        is_fetching=snapshot.is_fetching,
        is_stale=snapshot.is_stale,
        error=snapshot.error,
        refresh_error=snapshot.refresh_error,
    )


@router.get("", response_model=DiscoveryResponse)
async def get_discovery(cache: DiscoveryCacheDep) -> DiscoveryResponse:
    """
    Return everything loaded so far without waiting on the catalog.

    Each read counts as a visit: a cache unused for its retention window is
    evicted first, and stale data is returned while a background refresh
    starts.
    """
    snapshot = cache.attach()
    cache.detach()
    return snapshot_to_response(snapshot)


@router.post("/next", response_model=DiscoveryResponse)
async def fetch_next_page(cache: DiscoveryCacheDep) -> DiscoveryResponse:
    """
    Load the next page.

    Concurrent calls share one upstream fetch. After a failure the response
    carries ``error`` and ``state == "error"`` until ``/discovery/retry``.
    """
    return snapshot_to_response(await cache.fetch_next_page())


@router.post("/retry", response_model=DiscoveryResponse)
async def retry_page(cache: DiscoveryCacheDep) -> DiscoveryResponse:
    """Retry the page that failed."""
    if cache.state is not DiscoveryState.ERROR:
        error = NothingToRetryError(cache.state.value)
        raise HTTPException(status_code=error.status_code, detail=error.message)
    return snapshot_to_response(await cache.try_again())


@router.post("/refresh", response_model=DiscoveryResponse)
async def refresh(cache: DiscoveryCacheDep) -> DiscoveryResponse:
    """Refetch every loaded page."""
    return snapshot_to_response(await cache.refresh())
