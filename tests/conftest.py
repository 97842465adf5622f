import asyncio

import pytest

from pokeshelf.models.failure import CatalogFetchError
from pokeshelf.models.page import PokemonListPage, PokemonSummary
from pokeshelf.models.pokemon import Pokemon, PokemonStats, PokemonType


def make_pokemon(pokemon_id: int, name: str | None = None) -> Pokemon:
    """Build a minimal valid Pokemon."""
    return Pokemon(
        id=pokemon_id,
        name=(name or f"pokemon-{pokemon_id}").capitalize(),
        image=f"https://img.example/{pokemon_id}.png",
        types=(PokemonType(name="NORMAL", color="#A8A878"),),
        stats=PokemonStats(hp=pokemon_id, attack=10, defense=10, speed=10),
    )


class FakeCatalog:
    """
    In-memory catalog client.

    Pokemon ids follow the position of the first occurrence of a name,
    starting at 1, like the upstream numbering.
    """

    def __init__(self, names: list[str]) -> None:
        self.names = names
        self.list_calls: list[tuple[int, int]] = []
        self.detail_calls: list[str] = []
        self.list_failures = 0
        self.detail_failures: dict[str, int] = {}
        self.list_gate: asyncio.Event | None = None
        self.hang_details: set[str] = set()

    async def list_page(self, offset: int, limit: int) -> PokemonListPage:
        self.list_calls.append((offset, limit))
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_failures > 0:
            self.list_failures -= 1
            raise CatalogFetchError("Failed to fetch /pokemon: HTTP 503")

        chunk = self.names[offset : offset + limit]
        has_more = offset + limit < len(self.names)
        return PokemonListPage(
            results=tuple(PokemonSummary(name=name) for name in chunk),
            next=f"https://catalog.test/pokemon?offset={offset + limit}" if has_more else None,
        )

    async def get_detail(self, name_or_id: str | int) -> Pokemon:
        name = str(name_or_id)
        self.detail_calls.append(name)
        if name in self.hang_details:
            await asyncio.Event().wait()
        remaining = self.detail_failures.get(name, 0)
        if remaining != 0:
            self.detail_failures[name] = remaining - 1
            raise CatalogFetchError(f"Failed to fetch /pokemon/{name}: HTTP 500")
        return make_pokemon(self.names.index(name) + 1, name)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog(
        ["bulbasaur", "ivysaur", "venusaur", "charmander", "charmeleon", "charizard", "squirtle"]
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def bulbasaur_payload() -> dict:
    """Trimmed PokeAPI /pokemon/bulbasaur response."""
    return {
        "id": 1,
        "name": "bulbasaur",
        "sprites": {
            "front_default": "https://sprites.example/1.png",
            "other": {"official-artwork": {"front_default": "https://artwork.example/1.png"}},
        },
        "types": [
            {"slot": 2, "type": {"name": "poison", "url": ""}},
            {"slot": 1, "type": {"name": "grass", "url": ""}},
        ],
        "stats": [
            {"base_stat": 45, "stat": {"name": "hp"}},
            {"base_stat": 49, "stat": {"name": "attack"}},
            {"base_stat": 49, "stat": {"name": "defense"}},
            {"base_stat": 65, "stat": {"name": "special-attack"}},
            {"base_stat": 65, "stat": {"name": "special-defense"}},
            {"base_stat": 45, "stat": {"name": "speed"}},
        ],
    }


@pytest.fixture
def ivysaur_payload() -> dict:
    """Trimmed PokeAPI /pokemon/ivysaur response without artwork."""
    return {
        "id": 2,
        "name": "ivysaur",
        "sprites": {"front_default": "https://sprites.example/2.png", "other": {}},
        "types": [{"slot": 1, "type": {"name": "grass", "url": ""}}],
        "stats": [{"base_stat": 60, "stat": {"name": "hp"}}],
    }


@pytest.fixture
def pokemon_factory():
    """Factory for minimal valid Pokemon."""
    return make_pokemon


@pytest.fixture
def catalog_factory():
    """Factory for fake catalogs with a custom name list."""
    return FakeCatalog
