"""
Scraper base abstracto.

Define la interfaz común para todos los scrapers de marketplaces y la
lógica compartida: cache, descarga, selección de items con selectores
alternativos, parseo tolerante a items rotos y filtros de precio.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import structlog
from bs4 import BeautifulSoup, Tag

from tasador.config import DEFAULT_CURRENCY, SOURCE_NAMES, Settings, get_settings
from tasador.models import ListingCandidate, SearchOptions, SellerInfo
from tasador.scrapers.cache import ResultCache
from tasador.scrapers.fetchers import BaseFetcher, HttpFetcher, browser_headers
from tasador.scrapers.parsing import absolute_url, background_image_url, clean_text

logger = structlog.get_logger()


class BaseScraper(ABC):
    """
    Clase base abstracta para scrapers de marketplaces.

    Las subclases definen la URL de búsqueda, la lista ordenada de
    selectores de items y cómo parsear un item.
    """

    # Identificador de la fuente (override en subclases)
    SOURCE_NAME: str = "base"

    # URL base (override en subclases)
    BASE_URL: str = ""

    CURRENCY: str = DEFAULT_CURRENCY

    # Selectores de items en orden de prioridad: gana el primero que matchea
    ITEM_SELECTORS: tuple[str, ...] = ()

    def __init__(
        self,
        fetcher: Optional[BaseFetcher] = None,
        cache: Optional[ResultCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.fetcher = (
            fetcher if fetcher is not None
            else HttpFetcher(timeout=self.settings.fetch_timeout_seconds)
        )
        self.cache = (
            cache if cache is not None
            else ResultCache(ttl_seconds=self.settings.cache_ttl_seconds)
        )

    @property
    def display_name(self) -> str:
        return SOURCE_NAMES.get(self.SOURCE_NAME, self.SOURCE_NAME)

    @abstractmethod
    def build_search_url(self, query: str, options: Optional[SearchOptions] = None) -> str:
        """
        Construye la URL de búsqueda para el portal.

        Args:
            query: Texto a buscar
            options: Filtros de precio a embeber en la URL

        Returns:
            URL completa de búsqueda
        """
        pass

    @abstractmethod
    def parse_item(self, node: Tag) -> Optional[ListingCandidate]:
        """
        Parsea un item de la página de resultados.

        Returns:
            ListingCandidate o None si el item no tiene datos útiles
        """
        pass

    def search_url(self, query: str, options: Optional[SearchOptions] = None) -> str:
        """URL de búsqueda para referencia del usuario."""
        return self.build_search_url(query, options)

    def request_headers(self) -> dict:
        return browser_headers(self.settings.accept_language, referer=self.BASE_URL)

    async def search(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> list[ListingCandidate]:
        """
        Busca listings en el portal.

        Nunca lanza: ante cualquier error de red o de parseo devuelve [].

        Args:
            query: Texto a buscar
            options: max_results, min_price, max_price

        Returns:
            Lista de ListingCandidate filtrada
        """
        key = ResultCache.make_key(self.SOURCE_NAME, query, options)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Resultado desde cache", source=self.SOURCE_NAME, query=query)
            return cached

        try:
            url = self.build_search_url(query, options)
            html = await self.fetcher.fetch_text(url, headers=self.request_headers())
            listings = self.parse_listings(html)
            listings = self.apply_filters(listings, options)
        except Exception as e:
            logger.warning(
                "Búsqueda fallida",
                source=self.SOURCE_NAME,
                query=query,
                error=str(e),
            )
            return []

        self.cache.put(key, listings)
        logger.info(
            "Búsqueda completada",
            source=self.SOURCE_NAME,
            query=query,
            count=len(listings),
        )
        return listings

    async def is_available(self) -> bool:
        """Chequeo liviano (HEAD) de que el portal responde."""
        try:
            return await self.fetcher.probe(self.BASE_URL, headers=self.request_headers())
        except Exception as e:
            logger.debug("Probe fallido", source=self.SOURCE_NAME, error=str(e))
            return False

    def select_items(self, soup: BeautifulSoup) -> list[Tag]:
        """Aplica los selectores en orden y devuelve los items del primero que matchea."""
        for selector in self.ITEM_SELECTORS:
            items = soup.select(selector)
            if items:
                logger.debug(
                    "Items encontrados",
                    source=self.SOURCE_NAME,
                    selector=selector,
                    count=len(items),
                )
                return items

        logger.debug("Ningún selector matcheó", source=self.SOURCE_NAME)
        return []

    def parse_listings(self, html: str) -> list[ListingCandidate]:
        """Parsea la página de resultados; un item roto se descarta sin cortar el resto."""
        soup = BeautifulSoup(html, "lxml")
        listings: list[ListingCandidate] = []

        for node in self.select_items(soup):
            try:
                listing = self.parse_item(node)
            except Exception as e:
                logger.debug(
                    "Item malformado descartado",
                    source=self.SOURCE_NAME,
                    error=str(e),
                )
                continue
            if listing:
                listings.append(listing)

        return listings

    @staticmethod
    def apply_filters(
        listings: list[ListingCandidate], options: Optional[SearchOptions]
    ) -> list[ListingCandidate]:
        if options is None:
            return listings
        if options.min_price is not None:
            listings = [item for item in listings if item.price >= options.min_price]
        if options.max_price is not None:
            listings = [item for item in listings if item.price <= options.max_price]
        if options.max_results is not None:
            listings = listings[: options.max_results]
        return listings

    def make_listing(
        self,
        title: str,
        price: float,
        url: str,
        image_url: Optional[str] = None,
        condition: Optional[str] = None,
        location: Optional[str] = None,
        seller_name: Optional[str] = None,
        seller_rating: Optional[float] = None,
        require_url: bool = True,
    ) -> Optional[ListingCandidate]:
        """Construye el ListingCandidate o None si falta título, precio o URL."""
        title = clean_text(title)
        if not title or price <= 0:
            return None
        if not url and require_url:
            return None

        seller_name = clean_text(seller_name)
        seller = SellerInfo(name=seller_name, rating=seller_rating) if seller_name else None

        return ListingCandidate(
            source=self.SOURCE_NAME,
            title=title,
            price=price,
            currency=self.CURRENCY,
            url=absolute_url(self.BASE_URL, url) if url else "",
            image_url=image_url or None,
            condition=clean_text(condition) or None,
            location=clean_text(location) or None,
            seller=seller,
        )

    def _safe_get_text(self, node: Tag, selectors: Sequence[str], default: str = "") -> str:
        """Texto del primer selector que tenga contenido."""
        for selector in selectors:
            element = node.select_one(selector)
            if element:
                text = clean_text(element.get_text(" "))
                if text:
                    return text
        return default

    def _safe_get_attribute(
        self, node: Tag, selectors: Sequence[str], attribute: str, default: str = ""
    ) -> str:
        """Atributo del primer selector que lo tenga."""
        for selector in selectors:
            element = node.select_one(selector)
            if element:
                value = element.get(attribute)
                if isinstance(value, list):
                    value = " ".join(value)
                if value and value.strip():
                    return value.strip()
        return default

    def _extract_link(self, node: Tag, selectors: Sequence[str] = ("a[href]",)) -> str:
        """href del item; el nodo mismo puede ser el link."""
        if node.name == "a" and node.get("href"):
            return node["href"].strip()
        return self._safe_get_attribute(node, selectors, "href")

    def _extract_image(self, node: Tag) -> Optional[str]:
        """Imagen del item: src, data-src o background-image inline."""
        image = self._safe_get_attribute(node, ["img"], "src") or self._safe_get_attribute(
            node, ["img"], "data-src"
        )
        if image:
            return image
        styled = node.select_one('[style*="background-image"]')
        if styled:
            return background_image_url(styled.get("style"))
        return None
