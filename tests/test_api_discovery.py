"""Tests for discovery API endpoints."""

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from pokeshelf.config import settings
from pokeshelf.main import app, lifespan
from pokeshelf.services.collection_store import CollectionStore
from pokeshelf.services.discovery import DiscoveryCache, DiscoveryState
from pokeshelf.storage.kv import MemoryStore


@pytest.fixture
def cache(catalog, clock, recording_sleep) -> DiscoveryCache:
    return DiscoveryCache(catalog, page_size=3, clock=clock, sleep=recording_sleep)


@pytest.fixture
async def client(cache: DiscoveryCache):
    """Provide an async test client over a fake catalog."""
    app.state.collection_store = CollectionStore(MemoryStore())
    app.state.discovery_cache = cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestGetDiscovery:
    async def test_nothing_loaded_initially(self, client: AsyncClient, catalog) -> None:
        """Reading the list never fetches."""
        response = await client.get("/discovery")

        assert response.status_code == 200
        data = response.json()
        assert data["pokemon"] == []
        assert data["has_next_page"] is True
        assert data["state"] == "idle"
        assert catalog.list_calls == []

    async def test_stale_read_starts_background_refresh(
        self, client: AsyncClient, cache: DiscoveryCache, catalog, clock
    ) -> None:
        """Stale data is returned at once and refreshed behind the response."""
        await client.post("/discovery/next")
        clock.advance(300)

        response = await client.get("/discovery")

        data = response.json()
        assert data["loaded_count"] == 3
        assert data["is_stale"] is True
        assert data["is_fetching"] is True

        refreshed = await cache.refresh()

        assert catalog.list_calls == [(0, 3), (0, 3)]
        assert refreshed.is_stale is False
        assert cache.observers == 0

    async def test_fresh_read_issues_no_request(
        self, client: AsyncClient, catalog, clock
    ) -> None:
        await client.post("/discovery/next")
        clock.advance(299)

        response = await client.get("/discovery")

        assert response.json()["is_fetching"] is False
        assert catalog.list_calls == [(0, 3)]

    async def test_read_after_retention_starts_over(
        self, client: AsyncClient, catalog, clock
    ) -> None:
        await client.post("/discovery/next")
        clock.advance(10_000)

        response = await client.get("/discovery")

        data = response.json()
        assert data["loaded_count"] == 0
        assert data["has_next_page"] is True
        assert data["is_fetching"] is False
        assert catalog.list_calls == [(0, 3)]


class TestNextPage:
    async def test_loads_pages_in_order(self, client: AsyncClient) -> None:
        await client.post("/discovery/next")
        response = await client.post("/discovery/next")

        data = response.json()
        assert data["loaded_count"] == 6
        assert [p["id"] for p in data["pokemon"]] == [1, 2, 3, 4, 5, 6]

    async def test_reports_exhaustion(self, client: AsyncClient) -> None:
        for _ in range(3):
            response = await client.post("/discovery/next")

        data = response.json()
        assert data["loaded_count"] == 7
        assert data["has_next_page"] is False
        assert data["state"] == "exhausted"

    async def test_failure_reported_in_body(self, client: AsyncClient, catalog) -> None:
        catalog.list_failures = 3

        response = await client.post("/discovery/next")

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "error"
        assert data["error"]["kind"] == "external_api_error"
        assert data["error"]["suggestion"] == "Please try again."


class TestRetry:
    async def test_retry_without_error_conflicts(self, client: AsyncClient) -> None:
        response = await client.post("/discovery/retry")

        assert response.status_code == 409
        assert "Nothing to retry" in response.json()["detail"]

    async def test_retry_after_error(self, client: AsyncClient, catalog) -> None:
        catalog.list_failures = 3
        await client.post("/discovery/next")

        response = await client.post("/discovery/retry")

        assert response.status_code == 200
        data = response.json()
        assert data["error"] is None
        assert data["loaded_count"] == 3


class TestRefresh:
    async def test_refresh_keeps_loaded_count(self, client: AsyncClient, catalog) -> None:
        await client.post("/discovery/next")

        response = await client.post("/discovery/refresh")

        assert response.json()["loaded_count"] == 3
        assert catalog.list_calls == [(0, 3), (0, 3)]


class TestLifespan:
    async def test_lifespan_builds_and_releases_services(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "data_dir", tmp_path)

        async with lifespan(app):
            cache = app.state.discovery_cache
            assert isinstance(cache, DiscoveryCache)
            assert isinstance(app.state.collection_store, CollectionStore)
            assert app.state.collection_store.count() == 0

        assert cache.state is DiscoveryState.IDLE
