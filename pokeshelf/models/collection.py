from collections.abc import Iterator
from dataclasses import dataclass, field

from pokeshelf.models.failure import InvalidReorderError
from pokeshelf.models.pokemon import Pokemon


@dataclass(frozen=True)
class Collection:
    """
    A user's curated Pokemon collection.

    Ordered by user placement. Never holds two Pokemon with the same id.
    Every change produces a new Collection.
    """

    pokemon: tuple[Pokemon, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Keep the first occurrence of each id
        seen: set[int] = set()
        unique: list[Pokemon] = []
        for p in self.pokemon:
            if p.id not in seen:
                seen.add(p.id)
                unique.append(p)
        object.__setattr__(self, "pokemon", tuple(unique))

    def __len__(self) -> int:
        return len(self.pokemon)

    def __iter__(self) -> Iterator[Pokemon]:
        return iter(self.pokemon)

    def ids(self) -> list[int]:
        """Pokemon ids in collection order."""
        return [p.id for p in self.pokemon]

    def contains(self, pokemon_id: int) -> bool:
        """Check if a Pokemon with this id is in the collection."""
        return any(p.id == pokemon_id for p in self.pokemon)

    def with_added(self, pokemon: Pokemon) -> "Collection":
        """Append to the end. Returns self unchanged if the id is present."""
        if self.contains(pokemon.id):
            return self
        return Collection(self.pokemon + (pokemon,))

    def without(self, pokemon_id: int) -> "Collection":
        """Drop the Pokemon with this id, if any."""
        return Collection(tuple(p for p in self.pokemon if p.id != pokemon_id))

    def moved(self, from_index: int, to_index: int) -> "Collection":
        """
        Move one Pokemon to a new position.

        The item at ``from_index`` is removed and reinserted at ``to_index``
        in the remaining sequence, so ``[A, B, C, D].moved(0, 2)`` is
        ``[B, C, A, D]``.

        Raises:
            InvalidReorderError: If either index is outside [0, len)
        """
        length = len(self.pokemon)
        if not (0 <= from_index < length and 0 <= to_index < length):
            raise InvalidReorderError(from_index, to_index, length)

        items = list(self.pokemon)
        item = items.pop(from_index)
        items.insert(to_index, item)
        return Collection(tuple(items))
