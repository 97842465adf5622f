"""
Collection store service.

Single source of truth for the user's curated, ordered, persisted Pokemon
collection. The durable store is read once at construction; afterwards the
in-memory collection is authoritative and every mutation is written back as
a whole value.

Storage faults never escape this service:
- Read failures and corrupt data degrade to an empty collection
- Write failures degrade to in-memory only for the rest of the session

Both are returned as a ``StorageResult`` and logged, so they stay
observable without blocking the user.

INVARIANT: No public operation suspends. Two calls made back to back are
applied in call order.
"""

import logging

from pydantic import ValidationError

from pokeshelf.config import settings
from pokeshelf.models.collection import Collection
from pokeshelf.models.failure import FailureKind, KnownError, StorageResult
from pokeshelf.models.pokemon import Pokemon, pokemon_list_adapter
from pokeshelf.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)


def serialize_collection(collection: Collection) -> str:
    """Encode a collection as a JSON array of Pokemon."""
    return pokemon_list_adapter.dump_json(list(collection), by_alias=True).decode("utf-8")


def deserialize_collection(raw: str) -> Collection:
    """
    Decode a JSON array of Pokemon.

    Raises:
        ValidationError: If the text is not JSON or not a list of Pokemon
    """
    return Collection(tuple(pokemon_list_adapter.validate_json(raw)))


class CollectionStore:
    """
    Persisted, deduplicated, user-ordered Pokemon collection.

    Construct once at application start and share the instance.
    """

    def __init__(self, storage: KeyValueStore, key: str | None = None) -> None:
        """
        Initialize the store and load the persisted collection.

        Args:
            storage: Durable key-value store
            key: Storage key. Defaults to settings.collection_key.
        """
        self._storage = storage
        self.key = key or settings.collection_key
        self.last_load: StorageResult[Collection] = self.load()
        self.last_save: StorageResult[None] | None = None
        self._collection: Collection = self.last_load.value

    @property
    def collection(self) -> Collection:
        return self._collection

    @property
    def persisted(self) -> bool:
        """Whether the durable store currently matches the in-memory state."""
        return self.last_save is None or self.last_save.ok

    def load(self) -> StorageResult[Collection]:
        """
        Read the collection from the durable store.

        Never raises. A missing key is an expected first-run condition and
        returns an empty collection as a success.

        Returns:
            StorageResult whose value is the loaded collection, or an empty
            collection when the read failed or the data was corrupt.
        """
        try:
            raw = self._storage.get(self.key)
        except (OSError, KnownError, ValueError) as e:
            logger.error(
                "collection_load_failed",
                extra={"key": self.key, "error": str(e)},
            )
            return StorageResult.degraded(
                Collection(),
                FailureKind.STORAGE_READ,
                "Could not read the saved collection.",
                detail=str(e),
            )

        if raw is None:
            return StorageResult.success(Collection())

        try:
            collection = deserialize_collection(raw)
        except ValidationError as e:
            logger.error(
                "collection_data_corrupt",
                extra={"key": self.key, "error_count": e.error_count()},
            )
            return StorageResult.degraded(
                Collection(),
                FailureKind.CORRUPT_DATA,
                "The saved collection could not be parsed and was reset.",
                detail=str(e),
            )

        logger.debug("collection_loaded", extra={"key": self.key, "count": len(collection)})
        return StorageResult.success(collection)

    def save(self, collection: Collection) -> StorageResult[None]:
        """
        Replace the collection and write it to the durable store.

        Never raises. The in-memory collection is replaced even when the
        write fails, so it stays valid for the session; ``persisted`` and
        ``last_save`` report the failure.
        """
        self._collection = collection
        self.last_save = self._write(collection)
        return self.last_save

    def _write(self, collection: Collection) -> StorageResult[None]:
        try:
            self._storage.set(self.key, serialize_collection(collection))
        except (OSError, KnownError, ValueError) as e:
            logger.warning(
                "collection_save_failed",
                extra={"key": self.key, "count": len(collection), "error": str(e)},
            )
            return StorageResult.degraded(
                None,
                FailureKind.STORAGE_WRITE,
                "Your collection could not be saved. Changes will last for this session only.",
                detail=str(e),
            )
        return StorageResult.success(None)

    def _commit(self, collection: Collection) -> Collection:
        self.save(collection)
        return collection

    def add(self, pokemon: Pokemon) -> Collection:
        """
        Append a Pokemon to the end of the collection.

        A Pokemon whose id is already present is ignored: the collection is
        returned unchanged and nothing is written.
        """
        if self._collection.contains(pokemon.id):
            return self._collection
        return self._commit(self._collection.with_added(pokemon))

    def remove(self, pokemon_id: int) -> Collection:
        """Remove the Pokemon with this id. Absent ids are not an error."""
        return self._commit(self._collection.without(pokemon_id))

    def reorder(self, from_index: int, to_index: int) -> Collection:
        """
        Move the Pokemon at ``from_index`` to ``to_index``.

        Raises:
            InvalidReorderError: If either index is out of range. The
                collection is left untouched.
        """
        return self._commit(self._collection.moved(from_index, to_index))

    def clear(self) -> Collection:
        """Empty the collection."""
        logger.info("collection_cleared", extra={"key": self.key, "count": len(self._collection)})
        return self._commit(Collection())

    def contains(self, pokemon_id: int) -> bool:
        return self._collection.contains(pokemon_id)

    def count(self) -> int:
        return len(self._collection)
