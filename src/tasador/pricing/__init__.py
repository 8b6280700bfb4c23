"""
Módulo de pricing.

Agregación de precios de mercado y precio retail de referencia.
"""

from tasador.pricing.aggregator import (
    aggregate,
    confidence_tier,
    fallback_estimate,
    filter_matched,
    round_half_up,
    trim_window,
    trimmed_mean,
)
from tasador.pricing.retail import RetailPriceResolver

__all__ = [
    "aggregate",
    "confidence_tier",
    "fallback_estimate",
    "filter_matched",
    "round_half_up",
    "trim_window",
    "trimmed_mean",
    "RetailPriceResolver",
]
