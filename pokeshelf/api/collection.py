"""
Collection API endpoints.

Receives add, remove, reorder and clear intents for the user's collection.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from pokeshelf.api.dependencies import CollectionStoreDep, DiscoveryCacheDep
from pokeshelf.models.collection import Collection
from pokeshelf.models.failure import FailureDetail, KnownError
from pokeshelf.models.pokemon import Pokemon
from pokeshelf.services.collection_store import CollectionStore

router = APIRouter(prefix="/collection", tags=["collection"])


class CollectionResponse(BaseModel):
    """Response model for collection data."""

    pokemon: list[Pokemon] = Field(default_factory=list)
    count: int = 0
    persisted: bool = Field(
        default=True,
        description="False when the last save failed; changes last for this session only",
    )
    storage_failure: FailureDetail | None = None


class AddRequest(BaseModel):
    """Request model for adding a discovered Pokemon."""

    pokemon_id: int = Field(..., gt=0, examples=[25])


class ReorderRequest(BaseModel):
    """Request model for moving a Pokemon within the collection."""

    from_index: int = Field(..., ge=0, examples=[0])
    to_index: int = Field(..., ge=0, examples=[2])


class MembershipResponse(BaseModel):
    """Response model for a membership check."""

    pokemon_id: int
    in_collection: bool


def _to_response(collection: Collection, store: CollectionStore) -> CollectionResponse:
    failure = None
    if store.last_save is not None and store.last_save.failure is not None:
        failure = store.last_save.failure
    elif store.last_save is None and store.last_load.failure is not None:
        failure = store.last_load.failure
    return CollectionResponse(
        pokemon=list(collection),
        count=len(collection),
        persisted=store.persisted,
        storage_failure=failure,
    )


@router.get("", response_model=CollectionResponse)
async def get_collection(store: CollectionStoreDep) -> CollectionResponse:
    """Return the collection in user order."""
    return _to_response(store.collection, store)


@router.post("", response_model=CollectionResponse)
async def add_pokemon(
    request: AddRequest,
    store: CollectionStoreDep,
    cache: DiscoveryCacheDep,
) -> CollectionResponse:
    """
    Add a Pokemon found through discovery.

    Adding a Pokemon that is already collected changes nothing.
    """
    try:
        pokemon = cache.get(request.pokemon_id)
    except KnownError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    return _to_response(store.add(pokemon), store)


@router.post("/reorder", response_model=CollectionResponse)
async def reorder_collection(
    request: ReorderRequest,
    store: CollectionStoreDep,
) -> CollectionResponse:
    """Move one Pokemon to a new position."""
    try:
        collection = store.reorder(request.from_index, request.to_index)
    except KnownError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    return _to_response(collection, store)


@router.get("/{pokemon_id}", response_model=MembershipResponse)
async def check_membership(pokemon_id: int, store: CollectionStoreDep) -> MembershipResponse:
    """Check whether a Pokemon is collected."""
    return MembershipResponse(pokemon_id=pokemon_id, in_collection=store.contains(pokemon_id))


@router.delete("/{pokemon_id}", response_model=CollectionResponse)
async def remove_pokemon(pokemon_id: int, store: CollectionStoreDep) -> CollectionResponse:
    """Remove a Pokemon. Unknown ids are not an error."""
    return _to_response(store.remove(pokemon_id), store)


@router.delete("", response_model=CollectionResponse)
async def clear_collection(store: CollectionStoreDep) -> CollectionResponse:
    """Remove every Pokemon from the collection."""
    return _to_response(store.clear(), store)
