"""
Failure classification and typed results.

Every fault the core can observe is classified by a ``FailureKind``:

- Transport: list or detail fetch failed (network, timeout, bad status,
  malformed payload). Retried by the discovery cache, then surfaced as
  page-level state.
- Storage: the durable store could not be read or written, or held data
  that does not parse. Always recovered locally.
- Input: a caller asked for something impossible (bad reorder index,
  unknown Pokemon).

Storage operations return a ``StorageResult`` instead of raising, so that
callers and tests can assert on the degraded path explicitly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"

    # Transport failures (upstream payload validation folds in here)
    EXTERNAL_API_ERROR = "external_api_error"

    # Storage failures
    STORAGE_READ = "storage_read"
    STORAGE_WRITE = "storage_write"
    CORRUPT_DATA = "corrupt_data"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to a FailureDetail."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class CatalogFetchError(KnownError):
    """Raised when a single list or detail request to the catalog fails."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=message,
            detail=detail,
            status_code=502,
        )


class PageFetchError(KnownError):
    """
    Raised when a discovery page could not be fetched after all retries.

    Nothing from the failed page is committed. The cursor stays on ``offset``
    so that a retry targets the same page.
    """

    def __init__(self, offset: int, attempts: int, cause: Exception | None = None):
        self.offset = offset
        self.attempts = attempts
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=(
                f"Failed to fetch Pokemon at offset {offset} after {attempts} attempts."
            ),
            detail=str(cause) if cause is not None else None,
            suggestion="Please try again.",
            status_code=502,
        )


class InvalidReorderError(KnownError):
    """Raised when a reorder index falls outside the collection."""

    def __init__(self, from_index: int, to_index: int, length: int):
        self.from_index = from_index
        self.to_index = to_index
        self.length = length
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=(
                f"Cannot move item {from_index} to {to_index} "
                f"in a collection of {length}."
            ),
            suggestion=f"Indices must be between 0 and {max(length - 1, 0)}.",
            status_code=400,
        )


class PokemonNotDiscoveredError(KnownError):
    """Raised when a Pokemon is looked up before discovery has loaded it."""

    def __init__(self, pokemon_id: int):
        self.pokemon_id = pokemon_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Pokemon {pokemon_id} has not been discovered yet.",
            suggestion="Load more Pokemon and try again.",
            status_code=404,
        )


class NothingToRetryError(KnownError):
    """Raised when a retry is requested but the last page did not fail."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(
            kind=FailureKind.CONFLICT,
            message=f"Nothing to retry: discovery is {state}, not in error.",
            status_code=409,
        )


class StorageUnavailableError(KnownError):
    """Raised by a durable store that cannot serve reads or writes."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.STORAGE_WRITE,
            message=message,
            detail=detail,
            status_code=503,
        )


T = TypeVar("T")


@dataclass(frozen=True)
class StorageResult(Generic[T]):
    """
    Outcome of a durable store read or write.

    A failed result still carries a usable ``value`` (for loads, the empty
    fallback), so callers can always continue.
    """

    value: T
    failure: FailureDetail | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "StorageResult[T]":
        return cls(value=value)

    @classmethod
    def degraded(
        cls,
        value: T,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
    ) -> "StorageResult[T]":
        return cls(
            value=value,
            failure=FailureDetail(kind=kind, message=message, detail=detail),
        )
