"""
Scraper para Vinted Francia.

Ejemplo de búsqueda:
- https://www.vinted.fr/catalog?search_text=nike+air+max&order=relevance
"""

from typing import Optional
from urllib.parse import urlencode

from bs4 import Tag

from tasador.models import ListingCandidate, SearchOptions
from tasador.scrapers.base import BaseScraper
from tasador.scrapers.parsing import parse_price, parse_rating, price_param


class VintedScraper(BaseScraper):
    """Scraper del catálogo de Vinted."""

    SOURCE_NAME = "vinted"
    BASE_URL = "https://www.vinted.fr"

    ITEM_SELECTORS = (
        ".feed-grid__item",
        '[data-testid="grid-item"]',
        '[class*="ItemBox_container__"]',
        ".new-item-box__container",
    )

    TITLE_SELECTORS = (
        ".new-item-box__title",
        '[data-testid="item-title"]',
        '[class*="ItemBox_title__"]',
    )
    PRICE_SELECTORS = (
        ".new-item-box__price",
        '[data-testid="item-price"]',
        '[class*="ItemBox_price__"]',
        '[class*="price"]',
    )
    SELLER_SELECTORS = (".new-item-box__owner", '[data-testid="seller-name"]')

    def build_search_url(self, query: str, options: Optional[SearchOptions] = None) -> str:
        """Construye URL de búsqueda para Vinted."""
        params = {"search_text": query, "order": "relevance"}
        if options and options.min_price:
            params["price_from"] = price_param(options.min_price)
        if options and options.max_price:
            params["price_to"] = price_param(options.max_price)
        return f"{self.BASE_URL}/catalog?{urlencode(params)}"

    def parse_item(self, node: Tag) -> Optional[ListingCandidate]:
        """Parsea una card del catálogo."""
        title = (
            self._safe_get_text(node, self.TITLE_SELECTORS)
            or self._safe_get_attribute(node, ["a"], "title")
            or self._safe_get_attribute(node, ["img"], "alt")
        )
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
            seller_name=self._safe_get_text(node, self.SELLER_SELECTORS),
            seller_rating=parse_rating(self._safe_get_text(node, ['[class*="rating"]'])),
        )
