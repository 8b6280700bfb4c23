"""
Módulo de scrapers.

Provee scrapers para los marketplaces de reventa, el cache de resultados
y el scheduler que limita las búsquedas concurrentes.
"""

from typing import Optional

from tasador.config import Settings, get_settings
from tasador.scrapers.base import BaseScraper
from tasador.scrapers.cache import ResultCache
from tasador.scrapers.ebay import EbayScraper
from tasador.scrapers.fetchers import BaseFetcher, BrowserFetcher, HttpFetcher
from tasador.scrapers.google_shopping import GoogleShoppingScraper
from tasador.scrapers.leboncoin import LeboncoinScraper
from tasador.scrapers.parsing import parse_price
from tasador.scrapers.scheduler import FetchScheduler
from tasador.scrapers.vestiaire import VestiaireScraper
from tasador.scrapers.vinted import VintedScraper

SCRAPER_CLASSES: dict[str, type[BaseScraper]] = {
    VintedScraper.SOURCE_NAME: VintedScraper,
    EbayScraper.SOURCE_NAME: EbayScraper,
    VestiaireScraper.SOURCE_NAME: VestiaireScraper,
    LeboncoinScraper.SOURCE_NAME: LeboncoinScraper,
    GoogleShoppingScraper.SOURCE_NAME: GoogleShoppingScraper,
}


def build_scrapers(
    settings: Optional[Settings] = None,
    sources: Optional[list[str]] = None,
) -> list[BaseScraper]:
    """
    Factory de scrapers.

    Las fuentes listadas en settings.browser_sources comparten un único
    BrowserFetcher; el resto usa HTTP plano.

    Args:
        settings: Configuración (default: get_settings())
        sources: Fuentes a instanciar (default: todas)

    Returns:
        Lista de scrapers en el orden de SCRAPER_CLASSES
    """
    settings = settings or get_settings()
    wanted = sources or list(SCRAPER_CLASSES)

    unknown = [s for s in wanted if s not in SCRAPER_CLASSES]
    if unknown:
        raise ValueError(f"Fuentes no soportadas: {', '.join(unknown)}")

    http_fetcher = HttpFetcher(timeout=settings.fetch_timeout_seconds)
    browser_fetcher: Optional[BrowserFetcher] = None

    scrapers: list[BaseScraper] = []
    for name, scraper_class in SCRAPER_CLASSES.items():
        if name not in wanted:
            continue
        fetcher: BaseFetcher = http_fetcher
        if name in settings.browser_sources:
            browser_fetcher = browser_fetcher or BrowserFetcher(
                timeout=settings.fetch_timeout_seconds
            )
            fetcher = browser_fetcher
        scrapers.append(scraper_class(fetcher=fetcher, settings=settings))

    return scrapers


__all__ = [
    "BaseScraper",
    "ResultCache",
    "FetchScheduler",
    "BaseFetcher",
    "HttpFetcher",
    "BrowserFetcher",
    "parse_price",
    "VintedScraper",
    "EbayScraper",
    "VestiaireScraper",
    "LeboncoinScraper",
    "GoogleShoppingScraper",
    "SCRAPER_CLASSES",
    "build_scrapers",
]
