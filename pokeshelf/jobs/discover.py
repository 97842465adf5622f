"""
Walk the first pages of the Pokemon catalog.

Useful for checking catalog connectivity and the retry behaviour from a shell:

    python -m pokeshelf.jobs.discover --pages 3
"""

import argparse
import asyncio
import logging

from pokeshelf.clients.pokeapi import PokeApiClient
from pokeshelf.config import settings
from pokeshelf.services.discovery import CatalogClient, DiscoveryCache, DiscoverySnapshot

logger = logging.getLogger(__name__)

DEFAULT_PAGES = 3


async def run_discovery(
    pages: int = DEFAULT_PAGES,
    page_size: int | None = None,
    client: CatalogClient | None = None,
) -> DiscoverySnapshot:
    """
    Fetch up to ``pages`` pages, stopping early on failure or exhaustion.

    Args:
        pages: Number of pages to request
        page_size: Summaries per page. Defaults to settings.page_size.
        client: Catalog client. A PokeApiClient is created (and closed) if omitted.

    Returns:
        Snapshot of the cache after the last fetch
    """
    owned = client is None
    catalog = client if client is not None else PokeApiClient()
    cache = DiscoveryCache(catalog, page_size=page_size)

    try:
        snapshot = cache.snapshot()
        for _ in range(pages):
            snapshot = await cache.fetch_next_page()
            if snapshot.error is not None:
                logger.error(
                    "Stopped at offset %s: %s", snapshot.next_offset, snapshot.error.message
                )
                break
            if not snapshot.has_next_page:
                logger.info("Reached the end of the catalog")
                break
            logger.info("Loaded %d Pokemon", snapshot.loaded_count)
    finally:
        if owned and isinstance(catalog, PokeApiClient):
            await catalog.aclose()

    return snapshot


def main() -> None:
    """CLI entry point for catalog discovery."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Fetch pages of the Pokemon catalog")
    parser.add_argument(
        "--pages",
        type=int,
        default=DEFAULT_PAGES,
        help=f"Number of pages to fetch (default: {DEFAULT_PAGES})",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=settings.page_size,
        help=f"Pokemon per page (default: {settings.page_size})",
    )
    args = parser.parse_args()

    snapshot = asyncio.run(run_discovery(args.pages, args.page_size))

    print(f"Loaded {snapshot.loaded_count} Pokemon:")
    for pokemon in snapshot.pokemon:
        types = "/".join(t.name for t in pokemon.types)
        print(f"  #{pokemon.id} {pokemon.name} ({types})")


if __name__ == "__main__":
    main()
