"""
Normalized Pokemon entity.

Independent of the PokeAPI response shape. Persisted and served with the
camelCase stat keys (``specialAttack``, ``specialDefense``).
"""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from pokeshelf.config import PLACEHOLDER_IMAGE


class PokemonType(BaseModel):
    """A display type with its badge colour."""

    model_config = ConfigDict(frozen=True)

    name: str
    color: str


class PokemonStats(BaseModel):
    """Base stats. Missing upstream values default to 0."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hp: int = Field(default=0, ge=0)
    attack: int = Field(default=0, ge=0)
    defense: int = Field(default=0, ge=0)
    special_attack: int = Field(default=0, ge=0, alias="specialAttack")
    special_defense: int = Field(default=0, ge=0, alias="specialDefense")
    speed: int = Field(default=0, ge=0)


class Pokemon(BaseModel):
    """
    A catalog entity.

    Attributes:
        id: Stable catalog key. Two Pokemon with equal ids are the same item.
        name: Display name (first letter upper-cased)
        image: Artwork URL, or the placeholder reference
        types: Ordered display types, at least one
        stats: Base stats
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., gt=0)
    name: str
    image: str = PLACEHOLDER_IMAGE
    types: tuple[PokemonType, ...] = Field(..., min_length=1)
    stats: PokemonStats = Field(default_factory=PokemonStats)


pokemon_list_adapter = TypeAdapter(list[Pokemon])
