from dataclasses import dataclass

from pokeshelf.models.pokemon import Pokemon


@dataclass(frozen=True, slots=True)
class PokemonSummary:
    """One entry of a catalog list page."""

    name: str
    url: str = ""


@dataclass(frozen=True, slots=True)
class PokemonListPage:
    """
    A page of summaries from the catalog.

    Attributes:
        results: Summaries in catalog order
        next: Link to the following page, None when the catalog is exhausted
    """

    results: tuple[PokemonSummary, ...]
    next: str | None = None


@dataclass(frozen=True, slots=True)
class PageCacheEntry:
    """
    A committed discovery page.

    Attributes:
        offset: Catalog offset the page was requested at
        pokemon: Fully detailed entities, in summary order
        is_last: True when the catalog reported no further pages
        fetched_at: Clock reading when the page was committed
    """

    offset: int
    pokemon: tuple[Pokemon, ...]
    is_last: bool
    fetched_at: float
