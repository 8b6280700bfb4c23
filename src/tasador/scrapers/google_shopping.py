"""
Scraper para Google Shopping.

Se usa sobre todo para encontrar precios retail (artículos nuevos).
"""

from typing import Optional
from urllib.parse import urlencode

from bs4 import Tag

from tasador.models import ListingCandidate, SearchOptions
from tasador.scrapers.base import BaseScraper
from tasador.scrapers.parsing import parse_price, price_param

RETAIL_MAX_RESULTS = 5


class GoogleShoppingScraper(BaseScraper):
    """Scraper de la pestaña Shopping de Google."""

    SOURCE_NAME = "google_shopping"
    BASE_URL = "https://www.google.fr"

    ITEM_SELECTORS = (
        ".sh-dgr__content",
        ".sh-dlr__list-result",
        ".sh-np__click-target",
        "[data-docid]",
    )

    TITLE_SELECTORS = (".tAxDx", ".Xjkr3b", "h3", "[data-sh-item-title]")
    PRICE_SELECTORS = (
        ".a8Pemb",
        ".kHxwFf",
        "[data-sh-item-price]",
        'span[aria-label*="€"]',
        "b",
    )
    MERCHANT_SELECTORS = (".aULzUe", ".IuHnof", "[data-sh-item-seller]", ".merchant")

    def build_search_url(self, query: str, options: Optional[SearchOptions] = None) -> str:
        """Construye URL de búsqueda de Google Shopping."""
        params = {"q": query, "tbm": "shop", "hl": "fr", "gl": "fr"}

        min_price = options.min_price if options else None
        max_price = options.max_price if options else None
        if max_price:
            params["tbs"] = (
                f"mr:1,price:1,ppr_min:{price_param(min_price or 0)},"
                f"ppr_max:{price_param(max_price)}"
            )
        elif min_price:
            params["tbs"] = f"mr:1,price:1,ppr_min:{price_param(min_price)}"

        return f"{self.BASE_URL}/search?{urlencode(params)}"

    def parse_item(self, node: Tag) -> Optional[ListingCandidate]:
        """Parsea un resultado. La URL puede faltar en algunos layouts."""
        title = self._safe_get_text(node, self.TITLE_SELECTORS) or self._safe_get_text(
            node, ["a"]
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
            seller_name=self._safe_get_text(node, self.MERCHANT_SELECTORS),
            require_url=False,
        )

    def retail_query(self, query: str) -> str:
        """Query con el calificador de artículo nuevo."""
        return f"{query} {self.settings.retail_query_suffix}".strip()

    async def search_retail(self, query: str) -> list[ListingCandidate]:
        """Busca el artículo nuevo para obtener precios retail."""
        return await self.search(
            self.retail_query(query),
            SearchOptions(max_results=RETAIL_MAX_RESULTS),
        )
