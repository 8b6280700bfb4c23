"""
Agregación de precios de mercado.

Funciones puras: reciben los listings verificados y devuelven la
estimación consolidada y el resumen por fuente. No hacen I/O.
"""

import math
from collections import defaultdict
from typing import Optional

from tasador.config import SOURCE_NAMES
from tasador.models import (
    ConfidenceTier,
    EnrichedSource,
    MarketPriceEstimate,
    PriceRange,
    VerifiedListing,
)

MATCH_CONFIDENCE_THRESHOLD = 50
TRIM_PERCENT = 10
TOP_LISTINGS_PER_SOURCE = 3
HIGH_CONFIDENCE_MIN = 10
MEDIUM_CONFIDENCE_MIN = 5

# Banda heurística sobre el precio pedido cuando no hay matches
FALLBACK_LOW_MULTIPLIER = 0.8
FALLBACK_AVERAGE_MULTIPLIER = 1.1
FALLBACK_HIGH_MULTIPLIER = 1.4


def round_half_up(value: float) -> int:
    """Redondeo comercial: 2.5 -> 3 (round() de Python redondea al par)."""
    return int(math.floor(value + 0.5))


def filter_matched(verified: list[VerifiedListing]) -> list[VerifiedListing]:
    """Listings confirmados como match con confianza suficiente."""
    return [
        item
        for item in verified
        if item.verification.is_match
        and item.verification.confidence >= MATCH_CONFIDENCE_THRESHOLD
    ]


def confidence_tier(matched_count: int) -> ConfidenceTier:
    if matched_count >= HIGH_CONFIDENCE_MIN:
        return "high"
    if matched_count >= MEDIUM_CONFIDENCE_MIN:
        return "medium"
    return "low"


def trim_window(count: int) -> tuple[int, int]:
    """
    Índices [start, end) de los precios ordenados que entran al promedio.

    Descarta el 10% inferior y superior. Con pocos precios la ventana
    nunca queda vacía.
    """
    start = count * TRIM_PERCENT // 100
    # ceil(count * 0.9) con aritmética entera
    end = max(-(-count * (100 - TRIM_PERCENT) // 100), 1)
    if start >= end:
        start = end - 1
    return start, end


def trimmed_mean(prices: list[float]) -> float:
    ordered = sorted(prices)
    start, end = trim_window(len(ordered))
    window = ordered[start:end]
    return sum(window) / len(window)


def fallback_estimate(current_price: float) -> MarketPriceEstimate:
    """Estimación heurística alrededor del precio pedido."""
    return MarketPriceEstimate(
        low=round_half_up(current_price * FALLBACK_LOW_MULTIPLIER),
        high=round_half_up(current_price * FALLBACK_HIGH_MULTIPLIER),
        average=round_half_up(current_price * FALLBACK_AVERAGE_MULTIPLIER),
        confidence="low",
    )


def summarize_sources(
    matched: list[VerifiedListing],
    search_urls: Optional[dict[str, str]] = None,
) -> list[EnrichedSource]:
    """
    Agrupa los matches por fuente.

    Args:
        matched: Listings ya filtrados
        search_urls: URL de búsqueda por fuente, para el usuario

    Returns:
        Un EnrichedSource por fuente, de mayor a menor cantidad de listings
    """
    search_urls = search_urls or {}
    groups: dict[str, list[VerifiedListing]] = defaultdict(list)
    for item in matched:
        groups[item.source].append(item)

    sources = []
    for source, items in groups.items():
        prices = [item.price for item in items]
        top = sorted(items, key=lambda item: item.relevance_score or 0, reverse=True)
        sources.append(
            EnrichedSource(
                name=SOURCE_NAMES.get(source, source),
                average_price=round_half_up(sum(prices) / len(prices)),
                price_range=PriceRange(min=min(prices), max=max(prices)),
                count=len(items),
                top_listings=top[:TOP_LISTINGS_PER_SOURCE],
                url=search_urls.get(source, ""),
            )
        )

    sources.sort(key=lambda s: s.count, reverse=True)
    return sources


def aggregate(
    verified: list[VerifiedListing],
    current_price: float,
    search_urls: Optional[dict[str, str]] = None,
) -> tuple[MarketPriceEstimate, list[EnrichedSource]]:
    """
    Calcula la estimación de mercado a partir de los listings verificados.

    Args:
        verified: Salida del verificador (se filtra acá)
        current_price: Precio pedido, usado si no hay matches
        search_urls: URL de búsqueda por fuente

    Returns:
        (estimación, resumen por fuente)
    """
    matched = filter_matched(verified)
    if not matched:
        return fallback_estimate(current_price), []

    prices = [item.price for item in matched]
    estimate = MarketPriceEstimate(
        low=round_half_up(min(prices)),
        high=round_half_up(max(prices)),
        average=round_half_up(trimmed_mean(prices)),
        confidence=confidence_tier(len(matched)),
    )
    return estimate, summarize_sources(matched, search_urls)
