"""
Verificación de listings con IA.

Compara cada listing encontrado contra el artículo de referencia y
decide si es el mismo producto. Se procesa en batches para limitar el
tamaño del prompt.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from tasador.analysis.llm_providers import BaseLLMProvider
from tasador.config import Settings, get_settings
from tasador.exceptions import StructuredOutputError
from tasador.models import (
    ImageFeatures,
    ListingCandidate,
    MatchDetails,
    MatchVerification,
    VerifiedListing,
)

logger = structlog.get_logger()

# Un batch que falla no descarta listings: quedan como match dudoso
DEGRADED_CONFIDENCE = 30
DEGRADED_REASON = "automatic fallback, low confidence"
MISSING_REASON = "verification failed"

MATCH_SYSTEM_PROMPT = """You are an expert in second-hand fashion authentication and pricing on the French resale market.
You compare marketplace listings against a reference item and decide whether each listing is the SAME product (same brand, same model, comparable condition).
Be strict: similar-looking items from another brand or another model are NOT matches.
Answer with a single JSON object, no markdown, no comments."""


@dataclass
class MatchContext:
    """Artículo de referencia contra el que se comparan los listings."""
    title: str
    condition: str
    features: ImageFeatures
    brand: Optional[str] = None
    size: Optional[str] = None


class IndexedVerification(BaseModel):
    listing_index: int
    verification: MatchVerification


class BatchVerificationResponse(BaseModel):
    """Schema de respuesta del verificador para un batch."""

    results: list[IndexedVerification] = Field(default_factory=list)


def degraded_verification() -> MatchVerification:
    return MatchVerification(
        is_match=True,
        confidence=DEGRADED_CONFIDENCE,
        match_details=MatchDetails(),
        reason=DEGRADED_REASON,
    )


def missing_verification() -> MatchVerification:
    return MatchVerification(
        is_match=False,
        confidence=0,
        match_details=MatchDetails(),
        reason=MISSING_REASON,
    )


class MatchVerifier:
    """Verifica en batches si los listings corresponden al artículo."""

    def __init__(
        self,
        provider: Optional[BaseLLMProvider] = None,
        settings: Optional[Settings] = None,
        batch_size: Optional[int] = None,
    ):
        self.settings = settings or get_settings()
        self._provider = provider
        self.batch_size = batch_size or self.settings.match_batch_size

    async def verify(
        self,
        listings: list[ListingCandidate],
        title: str,
        brand: Optional[str],
        condition: str,
        features: ImageFeatures,
        size: Optional[str] = None,
    ) -> list[VerifiedListing]:
        """
        Verifica todos los listings contra el artículo de referencia.

        Returns:
            Un VerifiedListing por listing de entrada, ordenados por
            confianza descendente (estable ante empates)
        """
        if not listings:
            return []

        context = MatchContext(
            title=title, condition=condition, features=features, brand=brand, size=size
        )
        verified: list[VerifiedListing] = []
        for start in range(0, len(listings), self.batch_size):
            batch = listings[start:start + self.batch_size]
            verified.extend(await self._verify_batch(batch, start, context))

        verified.sort(key=lambda item: item.verification.confidence, reverse=True)

        logger.info(
            "Listings verificados",
            total=len(verified),
            matches=sum(1 for item in verified if item.verification.is_match),
        )
        return verified

    async def _verify_batch(
        self,
        batch: list[ListingCandidate],
        start: int,
        context: MatchContext,
    ) -> list[VerifiedListing]:
        """Verifica un batch. Los índices del prompt son globales."""
        if self._provider is None:
            return [VerifiedListing.from_candidate(item, degraded_verification()) for item in batch]

        try:
            response = await self._provider.generate_structured(
                self._build_prompt(batch, start, context),
                BatchVerificationResponse,
                system_prompt=MATCH_SYSTEM_PROMPT,
                temperature=0.1,
                max_tokens=4096,
            )
            if response is None:
                raise StructuredOutputError("El verificador no devolvió resultados")
        except Exception as e:
            logger.error(
                "Error verificando batch, se usa fallback",
                start=start,
                size=len(batch),
                error=str(e),
            )
            return [VerifiedListing.from_candidate(item, degraded_verification()) for item in batch]

        by_index: dict[int, MatchVerification] = {}
        for result in response.results:
            by_index.setdefault(result.listing_index, result.verification)

        missing = [start + offset for offset in range(len(batch)) if start + offset not in by_index]
        if missing:
            logger.warning("Listings sin verificación en la respuesta", indices=missing)

        return [
            VerifiedListing.from_candidate(
                item, by_index.get(start + offset) or missing_verification()
            )
            for offset, item in enumerate(batch)
        ]

    def _build_prompt(
        self,
        batch: list[ListingCandidate],
        start: int,
        context: MatchContext,
    ) -> str:
        """Construye el prompt de verificación para un batch."""
        features = context.features
        reference = [
            f"Title: {context.title}",
            f"Brand: {context.brand or features.brand or 'unknown'}",
            f"Model: {features.model or 'unknown'}",
            f"Category: {features.category}",
            f"Condition: {context.condition or features.condition}",
            f"Colors: {', '.join(features.colors) or 'unknown'}",
            f"Materials: {', '.join(features.materials) or 'unknown'}",
            f"Visual features: {features.search_queries.visual_features or 'none'}",
        ]
        if context.size:
            reference.append(f"Size: {context.size}")

        lines = []
        for offset, item in enumerate(batch):
            parts = [f"[{start + offset}] {item.title}", f"{item.price} {item.currency}"]
            if item.condition:
                parts.append(f"condition: {item.condition}")
            parts.append(f"source: {item.source}")
            lines.append(" | ".join(parts))

        reference_text = "\n".join(reference)
        listings_text = "\n".join(lines)

        return f"""REFERENCE ITEM:
{reference_text}

LISTINGS:
{listings_text}

For EVERY listing above, return:
{{
  "results": [
    {{
      "listing_index": <number in brackets>,
      "verification": {{
        "is_match": true,
        "confidence": 0-100,
        "match_details": {{
          "brand_match": true,
          "model_match": true,
          "condition_match": true,
          "size_match": false,
          "color_match": true
        }},
        "reason": "one short sentence"
      }}
    }}
  ]
}}"""
