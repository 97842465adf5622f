"""
Durable key-value stores.

A store holds whole string values under fixed keys. Writes overwrite the
entire value; there is no partial-key scheme and no versioning.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from pokeshelf.models.failure import StorageUnavailableError

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    """Contract for the durable store behind the collection."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Overwrite the value. May raise OSError or StorageUnavailableError."""
        ...


class MemoryStore:
    """In-process store. Lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """
    File-backed store, one file per key.

    Values are written to a temporary file in the same directory and renamed
    into place, so a reader sees either the old value or the new one.
    """

    def __init__(self, directory: Path) -> None:
        """
        Initialize the store.

        Args:
            directory: Where value files live. Created on first write.
        """
        self.directory = directory

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Storage directory {self.directory} is unavailable",
                detail=str(e),
            ) from e

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
