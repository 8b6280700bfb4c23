"""
Script para chequear que las fuentes respondan y que los selectores
sigan encontrando items.

Uso:
    python -m tasador.scripts.check_sources
    python -m tasador.scripts.check_sources --query "Longchamp Le Pliage" --source vinted
"""

import argparse
import asyncio
import sys
from typing import Optional

import structlog

from tasador.log import configure_logging
from tasador.models import SearchOptions
from tasador.scrapers import SCRAPER_CLASSES, build_scrapers

logger = structlog.get_logger()


async def check_sources(query: str, sources: Optional[list[str]] = None, limit: int = 5) -> dict:
    """
    Prueba cada fuente con un probe y una búsqueda de ejemplo.

    Returns:
        dict fuente -> {"available": bool, "count": int}
    """
    scrapers = build_scrapers(sources=sources)
    report = {}
    try:
        for scraper in scrapers:
            available = await scraper.is_available()
            listings = await scraper.search(query, SearchOptions(max_results=limit))
            report[scraper.SOURCE_NAME] = {"available": available, "count": len(listings)}

            logger.info(
                "Fuente chequeada",
                source=scraper.SOURCE_NAME,
                available=available,
                count=len(listings),
                url=scraper.search_url(query),
            )
            for listing in listings:
                print(f"  [{scraper.display_name}] {listing.price:>8.2f} {listing.currency}  {listing.title[:70]}")
    finally:
        for fetcher in {id(s.fetcher): s.fetcher for s in scrapers}.values():
            await fetcher.close()

    return report


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(description="Chequeo de fuentes de reventa")
    parser.add_argument("--query", type=str, default="Nike Air Max 90", help="Búsqueda de prueba")
    parser.add_argument(
        "--source",
        dest="sources",
        action="append",
        choices=list(SCRAPER_CLASSES),
        default=None,
        help="Fuente a chequear (repetible, default: todas)",
    )
    parser.add_argument("--limit", type=int, default=5, help="Listings a mostrar por fuente")

    args = parser.parse_args()
    configure_logging()

    try:
        report = asyncio.run(check_sources(args.query, args.sources, args.limit))
    except KeyboardInterrupt:
        logger.info("Chequeo interrumpido por usuario")
        sys.exit(130)

    failing = [name for name, status in report.items() if status["count"] == 0]
    if failing:
        logger.warning("Fuentes sin resultados", sources=failing)
        sys.exit(1)


if __name__ == "__main__":
    main()
