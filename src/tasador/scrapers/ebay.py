"""
Scraper para eBay Francia.

Solo busca ofertas "Achat immédiat" (precio fijo), ordenadas por relevancia.
"""

from typing import Optional
from urllib.parse import urlencode

from bs4 import Tag

from tasador.models import ListingCandidate, SearchOptions
from tasador.scrapers.base import BaseScraper
from tasador.scrapers.parsing import parse_price, parse_rating, price_param


class EbayScraper(BaseScraper):
    """Scraper de resultados de búsqueda de eBay."""

    SOURCE_NAME = "ebay"
    BASE_URL = "https://www.ebay.fr"

    ITEM_SELECTORS = (
        ".s-item",
        ".srp-results .s-item__wrapper",
        '[data-testid="s-item"]',
    )

    TITLE_SELECTORS = (".s-item__title", '[data-testid="item-title"]', "h3")
    PRICE_SELECTORS = (".s-item__price", '[data-testid="item-price"]')
    CONDITION_SELECTORS = (".s-item__subtitle", ".SECONDARY_INFO")

    # Cards de relleno que eBay mete entre los resultados
    PLACEHOLDER_TITLES = ("Shop on eBay", "Achetez sur eBay")

    def build_search_url(self, query: str, options: Optional[SearchOptions] = None) -> str:
        """Construye URL de búsqueda para eBay."""
        params = {
            "_nkw": query,
            "_sop": "12",  # Mejor coincidencia
            "LH_BIN": "1",  # Solo precio fijo
        }
        if options and options.min_price:
            params["_udlo"] = price_param(options.min_price)
        if options and options.max_price:
            params["_udhi"] = price_param(options.max_price)
        return f"{self.BASE_URL}/sch/i.html?{urlencode(params)}"

    def parse_item(self, node: Tag) -> Optional[ListingCandidate]:
        """Parsea un resultado de eBay."""
        if "s-item__pl-on-bottom" in (node.get("class") or []):
            return None

        title = self._safe_get_text(node, self.TITLE_SELECTORS) or self._safe_get_attribute(
            node, ["a"], "title"
        )
        if not title or any(p in title for p in self.PLACEHOLDER_TITLES):
            return None

        price = parse_price(self._safe_get_text(node, self.PRICE_SELECTORS))
        if price <= 0:
            return None

        url = self._extract_link(node, (".s-item__link", "a[href]"))
        if "ebay" not in url:
            return None

        return self.make_listing(
            title=title,
            price=price,
            url=url,
            image_url=self._extract_image(node),
            condition=self._safe_get_text(node, self.CONDITION_SELECTORS),
            seller_name=self._safe_get_text(node, [".s-item__seller-info-text"]),
            seller_rating=parse_rating(
                self._safe_get_text(node, [".s-item__seller-info .POSITIVE"])
            ),
        )
