"""
Input y resultado de una corrida de research de precio de mercado.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from tasador.models.features import ImageFeatures
from tasador.models.listing import VerifiedListing

ConfidenceTier = Literal["low", "medium", "high"]


class ResearchInput(BaseModel):
    """
    Artículo a tasar.

    Se valida al construirse: sin fotos o sin título el research no arranca.
    """

    photos: list[str] = Field(..., min_length=1, description="URLs, data URLs o base64")
    title: str = Field(..., description="Título publicado por el vendedor")
    brand: Optional[str] = None
    price: float = Field(..., ge=0, description="Precio pedido, solo para el fallback")
    condition: str = ""
    size: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title no puede estar vacío")
        return value

    @field_validator("photos")
    @classmethod
    def _photos_not_blank(cls, value: list[str]) -> list[str]:
        photos = [p.strip() for p in value if p and p.strip()]
        if not photos:
            raise ValueError("se requiere al menos una foto")
        return photos

    @field_validator("brand")
    @classmethod
    def _empty_brand_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class PriceRange(BaseModel):
    min: float
    max: float


class EnrichedSource(BaseModel):
    """Agregado de los listings verificados de una fuente."""

    name: str = Field(..., description="Nombre visible de la fuente")
    average_price: int
    price_range: PriceRange
    count: int = Field(..., ge=1)
    top_listings: list[VerifiedListing] = Field(default_factory=list, max_length=3)
    url: str = Field("", description="Búsqueda en la fuente para referencia del usuario")


class MarketPriceEstimate(BaseModel):
    """Estimación consolidada del precio de mercado."""

    low: int
    high: int
    average: int
    confidence: ConfidenceTier


class RetailPrice(BaseModel):
    """Precio de referencia del artículo nuevo."""

    price: float = Field(..., gt=0)
    url: str
    brand: Optional[str] = None


class SourceResearchResult(BaseModel):
    """Valor devuelto por la pipeline. No se persiste acá."""

    market_price: MarketPriceEstimate
    sources: list[EnrichedSource] = Field(default_factory=list)
    retail_price: Optional[RetailPrice] = None
    total_listings_analyzed: int = 0
    matched_listings: int = 0
    image_analysis: Optional[ImageFeatures] = None

    def to_dict(self) -> dict:
        """Convierte a diccionario serializable a JSON."""
        return self.model_dump(mode="json")
