from pokeshelf.models.collection import Collection
from pokeshelf.models.failure import (
    CatalogFetchError,
    FailureDetail,
    FailureKind,
    InvalidReorderError,
    KnownError,
    NothingToRetryError,
    PageFetchError,
    PokemonNotDiscoveredError,
    StorageResult,
    StorageUnavailableError,
)
from pokeshelf.models.page import PageCacheEntry, PokemonListPage, PokemonSummary
from pokeshelf.models.pokemon import Pokemon, PokemonStats, PokemonType

__all__ = [
    "CatalogFetchError",
    "Collection",
    "FailureDetail",
    "FailureKind",
    "InvalidReorderError",
    "KnownError",
    "NothingToRetryError",
    "PageCacheEntry",
    "PageFetchError",
    "Pokemon",
    "PokemonListPage",
    "PokemonNotDiscoveredError",
    "PokemonStats",
    "PokemonSummary",
    "PokemonType",
    "StorageResult",
    "StorageUnavailableError",
]
