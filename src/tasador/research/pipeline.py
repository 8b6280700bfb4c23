"""
Pipeline de research de precio de mercado.

Orquesta todas las etapas para un artículo:
1. Análisis de fotos -> features y queries
2. Búsqueda en todas las fuentes, en paralelo y con rate limit
3. Verificación de matches con IA
4. Agregación de precios por fuente y estimación consolidada
5. Precio retail de referencia

Solo un input inválido corta la corrida. Fuentes caídas, IA no
disponible o falta de matches degradan el resultado pero no lo impiden.
"""

import asyncio
from functools import partial
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from tasador.analysis import (
    BaseLLMProvider,
    ImageAnalyzer,
    MatchVerifier,
    get_llm_provider,
)
from tasador.config import Settings, get_settings
from tasador.exceptions import InvalidResearchInput
from tasador.models import (
    ListingCandidate,
    ResearchInput,
    SearchOptions,
    SourceResearchResult,
)
from tasador.pricing import RetailPriceResolver, aggregate, filter_matched
from tasador.scrapers import (
    BaseScraper,
    FetchScheduler,
    GoogleShoppingScraper,
    build_scrapers,
)

logger = structlog.get_logger()


def default_provider(settings: Settings) -> Optional[BaseLLMProvider]:
    """Proveedor LLM configurado, o None si falta la API key."""
    try:
        return get_llm_provider(settings=settings)
    except ValueError as e:
        logger.error("LLM no disponible, se usan fallbacks", error=str(e))
        return None


class SourceResearchPipeline:
    """
    Research multi-fuente del precio de mercado de un artículo.

    Todas las dependencias se pueden inyectar; por default se arman
    desde Settings. Usar como async context manager para liberar el
    navegador si alguna fuente usa Playwright.
    """

    def __init__(
        self,
        scrapers: Optional[list[BaseScraper]] = None,
        image_analyzer: Optional[ImageAnalyzer] = None,
        matcher: Optional[MatchVerifier] = None,
        retail_resolver: Optional[RetailPriceResolver] = None,
        scheduler: Optional[FetchScheduler] = None,
        provider: Optional[BaseLLMProvider] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.scrapers = scrapers if scrapers is not None else build_scrapers(self.settings)

        if provider is None and (image_analyzer is None or matcher is None):
            provider = default_provider(self.settings)

        if image_analyzer is None:
            image_analyzer = ImageAnalyzer(provider=provider, settings=self.settings)
        if matcher is None:
            matcher = MatchVerifier(provider=provider, settings=self.settings)
        if scheduler is None:
            scheduler = FetchScheduler(
                concurrency=self.settings.scheduler_concurrency,
                interval=self.settings.scheduler_interval_seconds,
                interval_cap=self.settings.scheduler_interval_cap,
            )
        if retail_resolver is None:
            retail_resolver = RetailPriceResolver(self._retail_scraper())

        self.image_analyzer = image_analyzer
        self.matcher = matcher
        self.scheduler = scheduler
        self.retail_resolver = retail_resolver

    def _retail_scraper(self) -> GoogleShoppingScraper:
        for scraper in self.scrapers:
            if isinstance(scraper, GoogleShoppingScraper):
                return scraper
        return GoogleShoppingScraper(settings=self.settings)

    @staticmethod
    def _validate(data: Union[ResearchInput, dict]) -> ResearchInput:
        if isinstance(data, ResearchInput):
            return data
        try:
            return ResearchInput.model_validate(data)
        except ValidationError as e:
            raise InvalidResearchInput(f"Input de research inválido: {e}", cause=e) from e

    async def research(self, data: Union[ResearchInput, dict]) -> SourceResearchResult:
        """
        Ejecuta el research completo para un artículo.

        Args:
            data: ResearchInput o dict con photos, title, brand, price,
                condition y size

        Returns:
            SourceResearchResult con estimación, fuentes y precio retail

        Raises:
            InvalidResearchInput: si faltan fotos o título, o el precio es negativo
        """
        item = self._validate(data)
        logger.info(
            "Iniciando research",
            title=item.title,
            brand=item.brand,
            photos=len(item.photos),
        )

        features = await self.image_analyzer.analyze(item.photos, item.title, item.brand)
        query = features.search_queries.primary

        listings = await self._search_all(query)

        verified = await self.matcher.verify(
            listings,
            title=item.title,
            brand=item.brand or features.brand,
            condition=item.condition,
            features=features,
            size=item.size,
        )
        matched = filter_matched(verified)

        search_urls = {scraper.SOURCE_NAME: scraper.search_url(query) for scraper in self.scrapers}
        market_price, sources = aggregate(verified, item.price, search_urls)

        retail_price = await self.retail_resolver.resolve(features)

        logger.info(
            "Research completado",
            query=query,
            listings=len(listings),
            matched=len(matched),
            average=market_price.average,
            confidence=market_price.confidence,
        )

        return SourceResearchResult(
            market_price=market_price,
            sources=sources,
            retail_price=retail_price,
            total_listings_analyzed=len(listings),
            matched_listings=len(matched),
            image_analysis=features,
        )

    async def _search_all(self, query: str) -> list[ListingCandidate]:
        """Busca en todas las fuentes; una fuente que falla aporta []."""
        options = SearchOptions(max_results=self.settings.max_results_per_source)
        results = await self.scheduler.run_all(
            [partial(scraper.search, query, options) for scraper in self.scrapers]
        )

        listings: list[ListingCandidate] = []
        for scraper, result in zip(self.scrapers, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Fuente con error",
                    source=scraper.SOURCE_NAME,
                    error=str(result) or type(result).__name__,
                )
                continue
            listings.extend(result)

        logger.info(
            "Búsqueda multi-fuente",
            query=query,
            sources=len(self.scrapers),
            count=len(listings),
        )
        return listings

    async def is_available(self) -> bool:
        """True si al menos una fuente responde."""
        if not self.scrapers:
            return False
        checks = await asyncio.gather(*(scraper.is_available() for scraper in self.scrapers))
        return any(checks)

    async def aclose(self) -> None:
        """Cierra los fetchers (navegador incluido)."""
        fetchers = {id(scraper.fetcher): scraper.fetcher for scraper in self.scrapers}
        retail_scraper = getattr(self.retail_resolver, "scraper", None)
        if retail_scraper is not None:
            fetchers.setdefault(id(retail_scraper.fetcher), retail_scraper.fetcher)
        for fetcher in fetchers.values():
            await fetcher.close()

    async def __aenter__(self) -> "SourceResearchPipeline":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
