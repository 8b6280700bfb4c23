"""
Scraper para Vestiaire Collective.

Mejor cobertura para artículos de diseñador y lujo.
"""

from typing import Optional
from urllib.parse import urlencode

from bs4 import Tag

from tasador.models import ListingCandidate, SearchOptions
from tasador.scrapers.base import BaseScraper
from tasador.scrapers.parsing import parse_price, price_param


class VestiaireScraper(BaseScraper):
    """Scraper de búsqueda de Vestiaire Collective."""

    SOURCE_NAME = "vestiaire"
    BASE_URL = "https://www.vestiairecollective.com"

    ITEM_SELECTORS = (
        ".product-card",
        '[data-testid="product-card"]',
        ".catalog-product-item",
        '[class*="ProductCard_container__"]',
    )

    BRAND_SELECTORS = (".product-card__brand", '[data-testid="product-brand"]')
    NAME_SELECTORS = (".product-card__name", '[data-testid="product-name"]')
    PRICE_SELECTORS = (".product-card__price", '[data-testid="product-price"]')
    CONDITION_SELECTORS = (".product-card__condition", '[data-testid="product-condition"]')

    def build_search_url(self, query: str, options: Optional[SearchOptions] = None) -> str:
        """Construye URL de búsqueda para Vestiaire."""
        params = {"q": query}
        if options and options.min_price:
            params["priceMin"] = price_param(options.min_price)
        if options and options.max_price:
            params["priceMax"] = price_param(options.max_price)
        return f"{self.BASE_URL}/search/?{urlencode(params)}"

    def parse_item(self, node: Tag) -> Optional[ListingCandidate]:
        """Parsea una product card. El título es marca + nombre."""
        brand = self._safe_get_text(node, self.BRAND_SELECTORS)
        name = self._safe_get_text(node, self.NAME_SELECTORS)
        title = f"{brand} {name}" if brand and name else brand or name
        if not title:
            return None

        price = parse_price(self._safe_get_text(node, self.PRICE_SELECTORS))
        if price <= 0:
            return None

        return self.make_listing(
            title=title,
            price=price,
            url=self._extract_link(node),
            image_url=self._extract_image(node),
            condition=self._safe_get_text(node, self.CONDITION_SELECTORS),
        )
