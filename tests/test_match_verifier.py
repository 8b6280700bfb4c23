"""
Tests del verificador de matches: batches, índices globales y fallbacks.
"""

import pytest

from conftest import FakeProvider, listing_indices, make_listing, verification_payload
from tasador.analysis import MatchVerifier
from tasador.analysis.match_verifier import DEGRADED_REASON, MISSING_REASON


def verify_kwargs(features) -> dict:
    return {
        "title": "Sac Longchamp Le Pliage",
        "brand": "Longchamp",
        "condition": "très bon état",
        "features": features,
    }


class TestMatchVerifier:

    @pytest.mark.asyncio
    async def test_results_are_spliced_by_index_not_position(self, settings, sample_features):
        listings = [make_listing(price=p) for p in (40, 50, 60)]
        # El modelo devuelve los resultados desordenados
        provider = FakeProvider(
            responses=[
                {
                    "results": [
                        verification_payload(2, True, 90),
                        verification_payload(0, False, 10),
                        verification_payload(1, True, 70),
                    ]
                }
            ]
        )
        verifier = MatchVerifier(provider=provider, settings=settings)

        verified = await verifier.verify(listings, **verify_kwargs(sample_features))

        by_price = {item.price: item for item in verified}
        assert by_price[60].verification.confidence == 90
        assert by_price[40].verification.is_match is False
        assert by_price[50].relevance_score == 70

    @pytest.mark.asyncio
    async def test_sorted_by_confidence_descending(self, settings, sample_features):
        listings = [make_listing(price=p) for p in (40, 50, 60, 70)]
        provider = FakeProvider(
            responses=[
                {
                    "results": [
                        verification_payload(0, True, 60),
                        verification_payload(1, True, 95),
                        verification_payload(2, True, 60),
                        verification_payload(3, False, 5),
                    ]
                }
            ]
        )

        verified = await MatchVerifier(provider=provider, settings=settings).verify(
            listings, **verify_kwargs(sample_features)
        )

        assert [item.price for item in verified] == [50, 40, 60, 70]

    @pytest.mark.asyncio
    async def test_missing_index_is_not_a_match(self, settings, sample_features):
        listings = [make_listing(price=p) for p in (40, 50)]
        provider = FakeProvider(responses=[{"results": [verification_payload(0, True, 80)]}])

        verified = await MatchVerifier(provider=provider, settings=settings).verify(
            listings, **verify_kwargs(sample_features)
        )

        missing = next(item for item in verified if item.price == 50)
        assert missing.verification.is_match is False
        assert missing.verification.confidence == 0
        assert missing.verification.reason == MISSING_REASON

    @pytest.mark.asyncio
    async def test_failed_batch_gets_degraded_default(self, settings, sample_features):
        listings = [make_listing(price=p) for p in (40, 50)]
        provider = FakeProvider(responses=[RuntimeError("400 bad request")])

        verified = await MatchVerifier(provider=provider, settings=settings).verify(
            listings, **verify_kwargs(sample_features)
        )

        assert len(verified) == 2
        for item in verified:
            assert item.verification.is_match is True
            assert item.verification.confidence == 30
            assert item.verification.reason == DEGRADED_REASON
            assert not any(item.verification.match_details.model_dump().values())

    @pytest.mark.asyncio
    async def test_unparseable_batch_gets_degraded_default(self, settings, sample_features):
        provider = FakeProvider(responses=["not json"])
        verified = await MatchVerifier(provider=provider, settings=settings).verify(
            [make_listing()], **verify_kwargs(sample_features)
        )
        assert verified[0].verification.confidence == 30

    @pytest.mark.asyncio
    async def test_batches_use_global_indices(self, settings, sample_features):
        listings = [make_listing(price=10 + i) for i in range(5)]
        seen_batches = []

        def handler(prompt, images):
            indices = listing_indices(prompt)
            seen_batches.append(indices)
            return {"results": [verification_payload(i, True, 50 + i) for i in indices]}

        verifier = MatchVerifier(
            provider=FakeProvider(handler=handler), settings=settings, batch_size=2
        )
        verified = await verifier.verify(listings, **verify_kwargs(sample_features))

        assert seen_batches == [[0, 1], [2, 3], [4]]
        assert {item.price: item.verification.confidence for item in verified} == {
            10: 50, 11: 51, 12: 52, 13: 53, 14: 54
        }

    @pytest.mark.asyncio
    async def test_one_failed_batch_does_not_affect_others(self, settings, sample_features):
        listings = [make_listing(price=10 + i) for i in range(4)]

        def handler(prompt, images):
            indices = listing_indices(prompt)
            if 2 in indices:
                return RuntimeError("model overloaded")
            return {"results": [verification_payload(i, True, 90) for i in indices]}

        verifier = MatchVerifier(
            provider=FakeProvider(handler=handler), settings=settings, batch_size=2
        )
        verified = await verifier.verify(listings, **verify_kwargs(sample_features))

        confidences = {item.price: item.verification.confidence for item in verified}
        assert confidences == {10: 90, 11: 90, 12: 30, 13: 30}

    @pytest.mark.asyncio
    async def test_prompt_carries_reference_item(self, settings, sample_features):
        provider = FakeProvider(responses=[{"results": []}])
        await MatchVerifier(provider=provider, settings=settings).verify(
            [make_listing(title="Pliage bleu marine")],
            size="M",
            **verify_kwargs(sample_features),
        )

        prompt = provider.calls[0]["user_prompt"]
        assert "Brand: Longchamp" in prompt
        assert "Size: M" in prompt
        assert "[0] Pliage bleu marine" in prompt

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_calls(self, settings, sample_features):
        provider = FakeProvider()
        assert await MatchVerifier(provider=provider, settings=settings).verify(
            [], **verify_kwargs(sample_features)
        ) == []
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_without_provider_everything_is_degraded(self, settings, sample_features):
        verified = await MatchVerifier(provider=None, settings=settings).verify(
            [make_listing()], **verify_kwargs(sample_features)
        )
        assert verified[0].verification.reason == DEGRADED_REASON
