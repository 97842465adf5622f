"""
Discovery pagination cache.

Fetches the Pokemon catalog one page at a time and exposes a growing,
flattened list of loaded Pokemon.

STATE MACHINE:
- IDLE: cursor known, nothing in flight
- FETCHING: exactly one page fetch (or refresh) is in flight. Further
  load-more triggers join it instead of starting another request.
- ERROR: a page failed after all retries. Nothing more is fetched until
  ``try_again()``. The cursor still points at the failed page.
- EXHAUSTED: the catalog reported no further pages. Terminal.

FETCH PROTOCOL (one page):
1. List summaries at the cursor
2. Fetch every detail concurrently; the page completes when all finish
3. Any transport failure retries the whole page with exponential backoff
4. After the last retry, one PageFetchError; nothing from the page is kept

INVARIANT: Pages are requested in increasing offset order. Page N+1 is never
requested before page N has been committed.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, TypeVar

from pokeshelf.clients.pokeapi import gather_all
from pokeshelf.config import settings
from pokeshelf.models.failure import (
    CatalogFetchError,
    FailureDetail,
    PageFetchError,
    PokemonNotDiscoveredError,
)
from pokeshelf.models.page import PageCacheEntry, PokemonListPage
from pokeshelf.models.pokemon import Pokemon
from pokeshelf.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CatalogClient(Protocol):
    """The remote catalog operations the cache depends on."""

    async def list_page(self, offset: int, limit: int) -> PokemonListPage: ...

    async def get_detail(self, name_or_id: str | int) -> Pokemon: ...


class DiscoveryState(str, Enum):
    """Lifecycle of the next-page request."""

    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class DiscoverySnapshot:
    """Point-in-time view of the cache for a consumer."""

    pokemon: tuple[Pokemon, ...]
    state: DiscoveryState
    next_offset: int | None
    has_next_page: bool
    is_fetching: bool
    is_stale: bool
    error: FailureDetail | None = None
    refresh_error: FailureDetail | None = None

    @property
    def loaded_count(self) -> int:
        return len(self.pokemon)


class DiscoveryCache:
    """
    Paginated, cached view over the remote catalog.

    Construct once per consuming view lifetime (usually once per process)
    and share the instance. All methods must be called from the event loop
    that owns the cache.
    """

    def __init__(
        self,
        client: CatalogClient,
        *,
        page_size: int | None = None,
        retry_policy: RetryPolicy | None = None,
        request_timeout: float | None = None,
        stale_time: float | None = None,
        retention: float | None = None,
        refresh_on_stale: bool | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize an empty cache.

        Args:
            client: Remote catalog client
            page_size: Summaries per page. Defaults to settings.page_size.
            retry_policy: Backoff schedule. Defaults to settings values.
            request_timeout: Bound on each list/detail request, in seconds
            stale_time: Seconds before committed data counts as stale
            retention: Seconds an unused cache is kept before eviction
            refresh_on_stale: Refresh in the background when a consumer
                attaches to stale data
            clock: Monotonic time source, in seconds
            sleep: Awaitable delay used between retries
        """
        self._client = client
        self.page_size = page_size if page_size is not None else settings.page_size
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.request_timeout = (
            request_timeout if request_timeout is not None else settings.request_timeout_seconds
        )
        self.stale_time = stale_time if stale_time is not None else settings.stale_time_seconds
        self.retention = retention if retention is not None else settings.retention_seconds
        self.refresh_on_stale = (
            refresh_on_stale if refresh_on_stale is not None else settings.refresh_on_stale
        )
        self._clock = clock
        self._sleep = sleep

        self._pages: list[PageCacheEntry] = []
        self._next_offset: int | None = 0
        self._state = DiscoveryState.IDLE
        self._error: PageFetchError | None = None
        self._refresh_error: PageFetchError | None = None
        self._inflight: asyncio.Task[None] | None = None
        self._updated_at: float | None = None
        self._observers = 0
        self._last_used_at = clock()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def state(self) -> DiscoveryState:
        return self._state

    @property
    def error(self) -> PageFetchError | None:
        return self._error

    @property
    def refresh_error(self) -> PageFetchError | None:
        return self._refresh_error

    @property
    def next_offset(self) -> int | None:
        return self._next_offset

    @property
    def pages(self) -> tuple[PageCacheEntry, ...]:
        return tuple(self._pages)

    @property
    def has_next_page(self) -> bool:
        return self._next_offset is not None

    @property
    def is_fetching(self) -> bool:
        return self._state is DiscoveryState.FETCHING

    @property
    def is_stale(self) -> bool:
        if self._updated_at is None:
            return False
        return self._clock() - self._updated_at >= self.stale_time

    @property
    def entities(self) -> tuple[Pokemon, ...]:
        """All loaded Pokemon in fetch order. Later repeats of an id are dropped."""
        seen: set[int] = set()
        flat: list[Pokemon] = []
        for page in self._pages:
            for pokemon in page.pokemon:
                if pokemon.id not in seen:
                    seen.add(pokemon.id)
                    flat.append(pokemon)
        return tuple(flat)

    def find(self, pokemon_id: int) -> Pokemon | None:
        """Look up a loaded Pokemon by id."""
        return next((p for p in self.entities if p.id == pokemon_id), None)

    def get(self, pokemon_id: int) -> Pokemon:
        """
        Look up a loaded Pokemon by id.

        Raises:
            PokemonNotDiscoveredError: If no loaded page holds this id
        """
        pokemon = self.find(pokemon_id)
        if pokemon is None:
            raise PokemonNotDiscoveredError(pokemon_id)
        return pokemon

    def snapshot(self) -> DiscoverySnapshot:
        self._touch()
        return DiscoverySnapshot(
            pokemon=self.entities,
            state=self._state,
            next_offset=self._next_offset,
            has_next_page=self.has_next_page,
            is_fetching=self.is_fetching,
            is_stale=self.is_stale,
            error=self._error.to_detail() if self._error else None,
            refresh_error=self._refresh_error.to_detail() if self._refresh_error else None,
        )

    # -------------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------------

    async def fetch_next_page(self) -> DiscoverySnapshot:
        """
        Load the page at the cursor.

        While a fetch is in flight this joins it instead of issuing another
        request. In ERROR or EXHAUSTED this does nothing.
        """
        self._touch()
        if self._state is DiscoveryState.FETCHING and self._inflight is not None:
            await asyncio.shield(self._inflight)
        elif self._state is DiscoveryState.IDLE:
            await asyncio.shield(self._start_next_page())
        return self.snapshot()

    def request_more(self) -> bool:
        """
        Fire-and-forget load-more trigger (e.g. the end of the list scrolled
        into view).

        Returns:
            True if a fetch was started, False if the trigger was absorbed
            by an in-flight fetch, an error, or exhaustion.
        """
        self._touch()
        if self._state is not DiscoveryState.IDLE:
            return False
        self._start_next_page()
        return True

    async def try_again(self) -> DiscoverySnapshot:
        """Leave ERROR and fetch the same page again. No-op in other states."""
        if self._state is DiscoveryState.ERROR:
            logger.info("discovery_retry_requested", extra={"offset": self._next_offset})
            self._error = None
            self._state = DiscoveryState.IDLE
        return await self.fetch_next_page()

    async def refresh(self) -> DiscoverySnapshot:
        """
        Refetch every resident page in order.

        Pages are replaced only if every page succeeds. On failure the old
        pages stay and the error is kept in ``refresh_error``; the cache does
        not enter ERROR.
        """
        self._touch()
        if self._state is DiscoveryState.FETCHING and self._inflight is not None:
            await asyncio.shield(self._inflight)
        elif self._pages:
            await asyncio.shield(self._start_refresh())
        elif self._state is DiscoveryState.IDLE:
            await asyncio.shield(self._start_next_page())
        return self.snapshot()

    # -------------------------------------------------------------------------
    # Consumers and retention
    # -------------------------------------------------------------------------

    def attach(self) -> DiscoverySnapshot:
        """
        Register a consumer (a view mounting).

        Fresh data is served as-is. Stale data is served immediately and a
        background refresh is started when ``refresh_on_stale`` is set.
        """
        self.collect_garbage()
        self._observers += 1
        if (
            self.refresh_on_stale
            and self._pages
            and self.is_stale
            and self._state is not DiscoveryState.FETCHING
        ):
            logger.info("discovery_background_refresh", extra={"pages": len(self._pages)})
            self._start_refresh()
        return self.snapshot()

    def detach(self) -> None:
        """Unregister a consumer. In-flight requests are left to finish."""
        self._observers = max(0, self._observers - 1)
        self._touch()

    @property
    def observers(self) -> int:
        return self._observers

    def collect_garbage(self, now: float | None = None) -> bool:
        """
        Evict everything if the cache has gone unused for the retention window.

        Returns:
            True if the cache was reset
        """
        if self._observers > 0 or self._state is DiscoveryState.FETCHING:
            return False
        if not self._pages and self._state is DiscoveryState.IDLE:
            return False

        now = now if now is not None else self._clock()
        if now - self._last_used_at < self.retention:
            return False

        logger.info(
            "discovery_cache_evicted",
            extra={"pages": len(self._pages), "idle_seconds": now - self._last_used_at},
        )
        self._reset()
        return True

    async def aclose(self) -> None:
        """Cancel any in-flight fetch. Used at application shutdown."""
        task = self._inflight
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _touch(self) -> None:
        self._last_used_at = self._clock()

    def _reset(self) -> None:
        self._pages = []
        self._next_offset = 0
        self._state = DiscoveryState.IDLE
        self._error = None
        self._refresh_error = None
        self._updated_at = None

    def _start_next_page(self) -> asyncio.Task[None]:
        offset = self._next_offset
        if offset is None:
            raise RuntimeError("Cannot fetch past the end of the catalog")
        self._state = DiscoveryState.FETCHING
        return self._track(asyncio.create_task(self._run_next_page(offset)))

    def _start_refresh(self) -> asyncio.Task[None]:
        previous = self._state
        self._state = DiscoveryState.FETCHING
        return self._track(asyncio.create_task(self._run_refresh(previous)))

    def _track(self, task: asyncio.Task[None]) -> asyncio.Task[None]:
        self._inflight = task
        task.add_done_callback(_log_task_failure)
        return task

    async def _run_next_page(self, offset: int) -> None:
        try:
            entry = await self._fetch_page_with_retry(offset)
        except PageFetchError as e:
            self._error = e
            self._state = DiscoveryState.ERROR
            logger.error(
                "discovery_page_failed",
                extra={"offset": offset, "attempts": e.attempts, "error": e.detail},
            )
            return
        except BaseException:
            # Cancelled or unexpected: release the state so triggers work again
            self._state = DiscoveryState.IDLE
            raise
        finally:
            self._inflight = None

        self._pages.append(entry)
        self._updated_at = entry.fetched_at
        if entry.is_last:
            self._next_offset = None
            self._state = DiscoveryState.EXHAUSTED
        else:
            self._next_offset = offset + self.page_size
            self._state = DiscoveryState.IDLE

        logger.info(
            "discovery_page_committed",
            extra={
                "offset": offset,
                "count": len(entry.pokemon),
                "is_last": entry.is_last,
                "loaded": sum(len(p.pokemon) for p in self._pages),
            },
        )

    async def _run_refresh(self, previous: DiscoveryState) -> None:
        offsets = [page.offset for page in self._pages]
        fresh: list[PageCacheEntry] = []
        try:
            for offset in offsets:
                entry = await self._fetch_page_with_retry(offset)
                fresh.append(entry)
                if entry.is_last:
                    break
        except PageFetchError as e:
            self._refresh_error = e
            self._state = previous
            logger.warning(
                "discovery_refresh_failed",
                extra={"offset": e.offset, "attempts": e.attempts, "error": e.detail},
            )
            return
        except BaseException:
            self._state = previous
            raise
        finally:
            self._inflight = None

        last = fresh[-1]
        self._pages = fresh
        self._updated_at = last.fetched_at
        self._refresh_error = None
        if last.is_last:
            self._next_offset = None
            self._error = None
            self._state = DiscoveryState.EXHAUSTED
        else:
            self._next_offset = last.offset + self.page_size
            # EXHAUSTED before means the catalog grew since the last page was seen
            self._state = (
                DiscoveryState.ERROR if previous is DiscoveryState.ERROR else DiscoveryState.IDLE
            )

        logger.info("discovery_refreshed", extra={"pages": len(fresh)})

    async def _fetch_page_with_retry(self, offset: int) -> PageCacheEntry:
        policy = self.retry_policy
        last_error: CatalogFetchError | None = None

        for attempt in range(policy.max_attempts):
            if attempt > 0:
                delay = policy.delay_seconds(attempt - 1)
                logger.warning(
                    "discovery_page_retry",
                    extra={"offset": offset, "attempt": attempt + 1, "delay_seconds": delay},
                )
                await self._sleep(delay)
            try:
                return await self._fetch_page_once(offset)
            except CatalogFetchError as e:
                last_error = e

        raise PageFetchError(offset, policy.max_attempts, last_error)

    async def _fetch_page_once(self, offset: int) -> PageCacheEntry:
        listing = await self._bounded(
            self._client.list_page(offset, self.page_size), f"list at offset {offset}"
        )
        pokemon = await gather_all(
            self._bounded(self._client.get_detail(s.name), s.name) for s in listing.results
        )

        return PageCacheEntry(
            offset=offset,
            pokemon=tuple(pokemon),
            is_last=listing.next is None,
            fetched_at=self._clock(),
        )

    async def _bounded(self, request: Awaitable[T], what: str) -> T:
        try:
            async with asyncio.timeout(self.request_timeout):
                return await request
        except TimeoutError as e:
            raise CatalogFetchError(
                f"Request for {what} timed out after {self.request_timeout}s"
            ) from e


def _log_task_failure(task: asyncio.Task[None]) -> None:
    """Retrieve the outcome of a fetch task so fire-and-forget failures are logged."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("discovery_task_failed", exc_info=error)


async def collect_garbage_periodically(
    cache: DiscoveryCache,
    interval: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """
    Evict the cache whenever it has gone unused for its retention window.

    Runs until cancelled. Started by the application lifespan.
    """
    while True:
        await sleep(interval)
        cache.collect_garbage()
