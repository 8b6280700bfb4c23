"""
Listings de mercado: lo que devuelve cada fuente y su verificación por IA.

Los candidatos son inmutables; el score de relevancia se agrega
creando una copia.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tasador.config import DEFAULT_CURRENCY


class SellerInfo(BaseModel):
    """Vendedor de un listing, cuando la fuente lo expone."""

    model_config = ConfigDict(frozen=True)

    name: str
    rating: Optional[float] = None


class SearchOptions(BaseModel):
    """Filtros opcionales de una búsqueda. Forma parte de la clave de cache."""

    model_config = ConfigDict(frozen=True)

    max_results: Optional[int] = Field(None, ge=1)
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)

    def cache_token(self) -> str:
        return self.model_dump_json(exclude_none=True)


class ListingCandidate(BaseModel):
    """Un anuncio devuelto por la búsqueda en una fuente."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Identificador de la fuente: vinted, ebay, ...")
    title: str = Field(..., min_length=1)
    price: float = Field(..., gt=0, description="Precio publicado, siempre positivo")
    currency: str = Field(DEFAULT_CURRENCY)
    url: str
    image_url: Optional[str] = None
    condition: Optional[str] = None
    location: Optional[str] = None
    seller: Optional[SellerInfo] = None
    relevance_score: Optional[float] = Field(None, ge=0, le=100)

    def with_relevance(self, score: float) -> "ListingCandidate":
        return self.model_copy(update={"relevance_score": score})


class MatchDetails(BaseModel):
    """Sub-señales del matching."""

    brand_match: bool = False
    model_match: bool = False
    condition_match: bool = False
    size_match: bool = False
    color_match: bool = False


class MatchVerification(BaseModel):
    """Juicio del verificador sobre un listing."""

    is_match: bool
    confidence: float = Field(..., ge=0, le=100)
    match_details: MatchDetails = Field(default_factory=MatchDetails)
    reason: str = ""

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value):
        # Algunos modelos se salen del rango 0-100
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return min(max(float(value), 0.0), 100.0)
        return value


class VerifiedListing(ListingCandidate):
    """ListingCandidate con su verificación adjunta."""

    verification: MatchVerification

    @classmethod
    def from_candidate(
        cls, listing: ListingCandidate, verification: MatchVerification
    ) -> "VerifiedListing":
        data = listing.model_dump(exclude={"verification"})
        data["relevance_score"] = verification.confidence
        return cls(**data, verification=verification)
