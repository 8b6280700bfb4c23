"""
Tests end-to-end de la pipeline con fuentes y LLM falsos.
"""

from urllib.parse import parse_qs, urlparse

import pytest

from conftest import (
    PNG_DATA_URL,
    FakeFetcher,
    FakeProvider,
    ebay_html,
    listing_indices,
    verification_payload,
    vinted_html,
)
from tasador.exceptions import FetchError, InvalidResearchInput
from tasador.models import ResearchInput
from tasador.pricing import RetailPriceResolver
from tasador.research import SourceResearchPipeline
from tasador.scrapers import EbayScraper, GoogleShoppingScraper, VestiaireScraper, VintedScraper

DETECTED_FEATURES = {
    "brand": "Acme",
    "model": "Tote 42",
    "category": "handbag",
    "colors": ["black"],
    "materials": ["leather"],
    "patterns": [],
    "condition": "good condition",
    "search_queries": {
        "primary": "Acme Tote 42 noir",
        "secondary": ["sac Acme cuir"],
        "visual_features": "black grained leather, gold hardware",
    },
    "estimated_retail_price": 120,
}


def llm_handler(features=DETECTED_FEATURES, matching=lambda index: True):
    """Features para el análisis de fotos; veredictos por índice para el verificador."""

    def handler(prompt, images):
        if images:
            return features
        return {
            "results": [
                verification_payload(i, True, 85) if matching(i) else verification_payload(i, False, 20)
                for i in listing_indices(prompt)
            ]
        }

    return handler


class Sources:
    """Tres fuentes con fetchers falsos: vinted, ebay y vestiaire."""

    def __init__(self, settings, vinted_prices=(), ebay_prices=(), vestiaire_error=None):
        self.vinted = FakeFetcher(default=vinted_html(list(vinted_prices)))
        self.ebay = FakeFetcher(default=ebay_html(list(ebay_prices)))
        self.vestiaire = FakeFetcher(
            default="<html></html>",
            error=vestiaire_error,
        )
        self.google = FakeFetcher(default="<html></html>")
        self.scrapers = [
            VintedScraper(fetcher=self.vinted, settings=settings),
            EbayScraper(fetcher=self.ebay, settings=settings),
            VestiaireScraper(fetcher=self.vestiaire, settings=settings),
        ]
        self.retail = RetailPriceResolver(GoogleShoppingScraper(fetcher=self.google, settings=settings))

    def pipeline(self, provider, settings) -> SourceResearchPipeline:
        return SourceResearchPipeline(
            scrapers=self.scrapers,
            retail_resolver=self.retail,
            provider=provider,
            settings=settings,
        )


def research_input(**overrides) -> dict:
    data = {
        "photos": [PNG_DATA_URL, PNG_DATA_URL],
        "title": "Sac cabas Acme cuir noir",
        "brand": "Acme",
        "price": 50,
        "condition": "bon état",
    }
    data.update(overrides)
    return data


class TestScenarios:

    @pytest.mark.asyncio
    async def test_partial_sources_and_filtered_matches(self, settings):
        """4 + 6 + 0 listings (una fuente caída), 7 de 10 matchean."""
        sources = Sources(
            settings,
            vinted_prices=[40, 45, 50, 55],
            ebay_prices=[60, 65, 70, 300, 310, 320],
            vestiaire_error=FetchError("HTTP 503: Service Unavailable", status=503),
        )
        provider = FakeProvider(handler=llm_handler(matching=lambda i: i < 7))

        result = await sources.pipeline(provider, settings).research(research_input())

        assert result.total_listings_analyzed == 10
        assert result.matched_listings == 7
        assert len(result.sources) == 2
        assert [s.name for s in result.sources] == ["Vinted", "eBay"]
        assert [s.count for s in result.sources] == [4, 3]

        market = result.market_price
        assert (market.low, market.high) == (40, 70)
        assert market.average == 55  # trim de 7 precios: ventana completa
        assert market.confidence == "medium"

    @pytest.mark.asyncio
    async def test_no_listings_falls_back_to_heuristic_band(self, settings):
        sources = Sources(settings)
        features = dict(DETECTED_FEATURES, estimated_retail_price=0)
        provider = FakeProvider(handler=llm_handler(features=features))

        result = await sources.pipeline(provider, settings).research(research_input(price=50))

        assert result.total_listings_analyzed == 0
        assert result.matched_listings == 0
        assert result.sources == []
        assert (result.market_price.low, result.market_price.average, result.market_price.high) == (
            40,
            55,
            70,
        )
        assert result.market_price.confidence == "low"
        assert result.retail_price is None
        # Solo la llamada de análisis de fotos: sin listings no hay verificación
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_feature_extraction_failure_still_returns_result(self, settings):
        sources = Sources(settings, vinted_prices=[40, 45])
        provider = FakeProvider(handler=llm_handler(features=RuntimeError("400 INVALID_ARGUMENT")))

        result = await sources.pipeline(provider, settings).research(research_input())

        analysis = result.image_analysis
        assert analysis.category == "item"
        assert analysis.search_queries.primary == "Acme Sac cabas Acme cuir noir"
        assert analysis.estimated_retail_price is None
        assert result.total_listings_analyzed == 2

        # Las fuentes se consultaron con la query de fallback
        url, _ = sources.vinted.requests[0]
        assert parse_qs(urlparse(url).query)["search_text"][0] == "Acme Sac cabas Acme cuir noir"

    @pytest.mark.asyncio
    async def test_retail_estimate_is_trusted_without_network(self, settings):
        sources = Sources(settings, vinted_prices=[40])
        provider = FakeProvider(handler=llm_handler())

        result = await sources.pipeline(provider, settings).research(research_input())

        assert result.retail_price.price == 120
        assert result.retail_price.brand == "Acme"
        assert sources.google.requests == []


class TestPipelineBehaviour:

    @pytest.mark.asyncio
    async def test_searches_primary_query_with_result_cap(self, settings):
        sources = Sources(settings, vinted_prices=[10 + i for i in range(25)])
        provider = FakeProvider(handler=llm_handler())

        result = await sources.pipeline(provider, settings).research(research_input())

        assert result.total_listings_analyzed == settings.max_results_per_source == 20
        url, _ = sources.vinted.requests[0]
        assert parse_qs(urlparse(url).query)["search_text"][0] == "Acme Tote 42 noir"

    @pytest.mark.asyncio
    async def test_detected_brand_is_passed_to_verifier(self, settings):
        sources = Sources(settings, vinted_prices=[40])
        provider = FakeProvider(handler=llm_handler())

        await sources.pipeline(provider, settings).research(research_input(brand=None))

        verification_prompt = provider.calls[-1]["user_prompt"]
        assert "Brand: Acme" in verification_prompt

    @pytest.mark.asyncio
    async def test_source_urls_in_result(self, settings):
        sources = Sources(settings, vinted_prices=[40])
        provider = FakeProvider(handler=llm_handler())

        result = await sources.pipeline(provider, settings).research(research_input())

        [vinted] = result.sources
        assert vinted.url.startswith("https://www.vinted.fr/catalog?")

    @pytest.mark.asyncio
    async def test_without_llm_everything_degrades(self, settings):
        sources = Sources(settings, vinted_prices=[40, 45, 50])
        pipeline = SourceResearchPipeline(
            scrapers=sources.scrapers, retail_resolver=sources.retail, settings=settings
        )

        result = await pipeline.research(research_input())

        # Sin API key: features de fallback y matches degradados (confianza 30)
        assert result.image_analysis.category == "item"
        assert result.total_listings_analyzed == 3
        assert result.matched_listings == 0
        assert result.market_price.confidence == "low"

    @pytest.mark.asyncio
    async def test_accepts_research_input_model(self, settings):
        sources = Sources(settings, vinted_prices=[40])
        provider = FakeProvider(handler=llm_handler())

        result = await sources.pipeline(provider, settings).research(
            ResearchInput(**research_input())
        )

        assert result.to_dict()["market_price"]["confidence"] == "low"


class TestInputValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [{"photos": []}, {"title": "  "}, {"price": -10}, {"photos": [""]}],
    )
    async def test_invalid_input_raises_before_any_stage(self, settings, overrides):
        sources = Sources(settings, vinted_prices=[40])
        provider = FakeProvider(handler=llm_handler())
        pipeline = sources.pipeline(provider, settings)

        with pytest.raises(InvalidResearchInput) as excinfo:
            await pipeline.research(research_input(**overrides))

        assert isinstance(excinfo.value, ValueError)
        assert provider.calls == []
        assert sources.vinted.requests == []


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_available_if_any_source_is(self, settings):
        sources = Sources(settings)
        sources.vinted.available = False
        sources.ebay.available = True
        sources.vestiaire.available = False
        pipeline = sources.pipeline(FakeProvider(), settings)

        assert await pipeline.is_available() is True

        sources.ebay.available = False
        assert await pipeline.is_available() is False

    @pytest.mark.asyncio
    async def test_context_manager_closes_fetchers(self, settings):
        sources = Sources(settings)

        async with sources.pipeline(FakeProvider(), settings):
            pass

        assert sources.vinted.closed and sources.ebay.closed and sources.vestiaire.closed
        assert sources.google.closed
