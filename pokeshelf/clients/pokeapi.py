"""
PokeAPI catalog client.

Translates PokeAPI responses into ``Pokemon`` entities. Exposes the list-page
and detail operations consumed by the discovery cache.

The client never retries. Every failure (bad status, network fault, timeout,
malformed payload) is raised as ``CatalogFetchError`` and the caller applies
its own retry policy.
"""

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from pokeshelf.config import PLACEHOLDER_IMAGE, UNKNOWN_TYPE_COLOR, settings
from pokeshelf.models.failure import CatalogFetchError
from pokeshelf.models.page import PokemonListPage, PokemonSummary
from pokeshelf.models.pokemon import Pokemon, PokemonStats, PokemonType

logger = logging.getLogger(__name__)

T = TypeVar("T")

TYPE_COLORS: dict[str, str] = {
    "normal": "#A8A878",
    "fire": "#F08030",
    "water": "#6890F0",
    "electric": "#F8D030",
    "grass": "#78C850",
    "ice": "#98D8D8",
    "fighting": "#C03028",
    "poison": "#A040A0",
    "ground": "#E0C068",
    "flying": "#A890F0",
    "psychic": "#F85888",
    "bug": "#A8B820",
    "rock": "#B8A038",
    "ghost": "#705898",
    "dragon": "#7038F8",
    "dark": "#705848",
    "steel": "#B8B8D0",
    "fairy": "#EE99AC",
}

# Upstream stat name -> PokemonStats field
_STAT_FIELDS = {
    "hp": "hp",
    "attack": "attack",
    "defense": "defense",
    "special-attack": "special_attack",
    "special-defense": "special_defense",
    "speed": "speed",
}


def _display_name(name: str) -> str:
    """Upper-case the first letter, keep the rest as upstream sends it."""
    return name[:1].upper() + name[1:]


def _pick_image(sprites: dict[str, Any]) -> str:
    """Official artwork, else the default sprite, else the placeholder."""
    artwork = (sprites.get("other") or {}).get("official-artwork") or {}
    return artwork.get("front_default") or sprites.get("front_default") or PLACEHOLDER_IMAGE


def parse_pokemon(data: dict[str, Any]) -> Pokemon:
    """
    Build a Pokemon from a PokeAPI ``/pokemon/{name}`` payload.

    Args:
        data: Decoded JSON response

    Returns:
        Normalized Pokemon

    Raises:
        CatalogFetchError: If required fields are missing or invalid
    """
    try:
        types = [
            PokemonType(
                name=entry["type"]["name"].upper(),
                color=TYPE_COLORS.get(entry["type"]["name"], UNKNOWN_TYPE_COLOR),
            )
            for entry in sorted(data.get("types") or [], key=lambda t: t.get("slot", 0))
        ]

        stats: dict[str, int] = {}
        for entry in data.get("stats") or []:
            field_name = _STAT_FIELDS.get(entry.get("stat", {}).get("name"))
            if field_name is not None:
                stats[field_name] = entry.get("base_stat") or 0

        return Pokemon(
            id=data["id"],
            name=_display_name(data["name"]),
            image=_pick_image(data.get("sprites") or {}),
            types=tuple(types),
            stats=PokemonStats(**stats),
        )
    except (KeyError, TypeError, AttributeError, ValidationError) as e:
        raise CatalogFetchError(
            "Malformed Pokemon payload",
            detail=f"{type(e).__name__}: {e}",
        ) from e


def parse_list_page(data: dict[str, Any]) -> PokemonListPage:
    """
    Build a PokemonListPage from a PokeAPI ``/pokemon`` payload.

    Raises:
        CatalogFetchError: If ``results`` is missing or malformed
    """
    try:
        results = tuple(
            PokemonSummary(name=str(entry["name"]), url=str(entry.get("url", "")))
            for entry in data["results"]
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise CatalogFetchError(
            "Malformed Pokemon list payload",
            detail=f"{type(e).__name__}: {e}",
        ) from e

    return PokemonListPage(results=results, next=data.get("next"))


async def gather_all(requests: Iterable[Awaitable[T]]) -> list[T]:
    """
    Run requests concurrently and wait for every one to finish.

    A failing request does not cancel its siblings. Once all have finished,
    the first failure in request order is raised and the other results are
    discarded.

    Returns:
        Results in request order
    """
    results = await asyncio.gather(*requests, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return [r for r in results if not isinstance(r, BaseException)]


class PokeApiClient:
    """
    Client for the PokeAPI catalog.

    Holds one ``httpx.AsyncClient`` for connection reuse. Each request is
    bounded by its own timeout, so a slow request never cancels its siblings.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the PokeAPI client.

        Args:
            base_url: API base URL. Defaults to settings.pokeapi_url.
            timeout: Per-request timeout in seconds. Defaults to
                settings.request_timeout_seconds.
            client: Optional httpx client (tests, custom transports)
        """
        self.base_url = (base_url or settings.pokeapi_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._client = client or httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with asyncio.timeout(self.timeout):
                response = await self._client.get(url, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise CatalogFetchError(
                f"Failed to fetch {path}: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise CatalogFetchError(f"Failed to fetch {path}: {e}") from e
        except TimeoutError as e:
            raise CatalogFetchError(
                f"Failed to fetch {path}: timed out after {self.timeout}s"
            ) from e
        except ValueError as e:
            raise CatalogFetchError(f"Failed to fetch {path}: invalid JSON") from e

    async def list_page(self, offset: int, limit: int) -> PokemonListPage:
        """
        Fetch one page of Pokemon summaries.

        Args:
            offset: Non-negative catalog offset
            limit: Positive page size

        Returns:
            PokemonListPage whose ``next`` is None at the end of the catalog

        Raises:
            ValueError: If offset or limit is out of range
            CatalogFetchError: If the request fails
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        data = await self._get_json("/pokemon", params={"offset": offset, "limit": limit})
        return parse_list_page(data)

    async def get_detail(self, name_or_id: str | int) -> Pokemon:
        """
        Fetch full details for one Pokemon.

        Raises:
            CatalogFetchError: If the request fails or the payload is malformed
        """
        data = await self._get_json(f"/pokemon/{name_or_id}")
        return parse_pokemon(data)

    async def get_batch(self, names: list[str]) -> list[Pokemon]:
        """
        Fetch details for several Pokemon concurrently.

        Waits for every request to finish before reporting. If any fail, the
        first failure is raised and the successful results are discarded.

        Returns:
            Pokemon in the same order as ``names``

        Raises:
            CatalogFetchError: If any request fails
        """
        if not names:
            return []

        try:
            return await gather_all(self.get_detail(name) for name in names)
        except CatalogFetchError as e:
            logger.warning(
                "pokemon_batch_failed",
                extra={"requested": len(names), "error": e.message},
            )
            raise
