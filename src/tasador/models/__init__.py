"""
Modelos de datos del sistema.

- Listings: lo que devuelven las fuentes y su verificación
- Features: análisis de las fotos del artículo
- Research: input y resultado de la pipeline
"""

from tasador.models.listing import (
    ListingCandidate,
    MatchDetails,
    MatchVerification,
    SearchOptions,
    SellerInfo,
    VerifiedListing,
)
from tasador.models.features import ImageFeatures, SearchQueries
from tasador.models.research import (
    ConfidenceTier,
    EnrichedSource,
    MarketPriceEstimate,
    PriceRange,
    ResearchInput,
    RetailPrice,
    SourceResearchResult,
)

__all__ = [
    # Listings
    "ListingCandidate",
    "MatchDetails",
    "MatchVerification",
    "SearchOptions",
    "SellerInfo",
    "VerifiedListing",
    # Features
    "ImageFeatures",
    "SearchQueries",
    # Research
    "ConfidenceTier",
    "EnrichedSource",
    "MarketPriceEstimate",
    "PriceRange",
    "ResearchInput",
    "RetailPrice",
    "SourceResearchResult",
]
