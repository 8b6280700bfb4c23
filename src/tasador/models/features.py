"""
Features visuales extraídas de las fotos de un artículo.

También es el schema que se le pide al LLM como respuesta estructurada.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FALLBACK_CATEGORY = "item"
FALLBACK_CONDITION = "good condition"
PRIMARY_QUERY_MAX_CHARS = 100
SECONDARY_QUERY_MAX_CHARS = 50


class SearchQueries(BaseModel):
    """Queries de búsqueda generadas a partir de las fotos."""

    model_config = ConfigDict(frozen=True)

    primary: str = Field(..., description="Query principal, la más precisa")
    secondary: list[str] = Field(default_factory=list, description="2-3 variantes")
    visual_features: str = Field(
        "", description="Rasgos visuales distintivos para comparar resultados"
    )


class ImageFeatures(BaseModel):
    """
    Resultado del análisis de imágenes.

    Se crea una vez por corrida y no se modifica. brand/model quedan en
    None cuando no se pueden identificar.
    """

    model_config = ConfigDict(frozen=True)

    brand: Optional[str] = None
    model: Optional[str] = None
    category: str = FALLBACK_CATEGORY
    colors: list[str] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    condition: str = FALLBACK_CONDITION
    search_queries: SearchQueries
    estimated_retail_price: Optional[float] = Field(None, gt=0)

    @field_validator("estimated_retail_price", mode="before")
    @classmethod
    def _drop_non_positive_price(cls, value):
        # El modelo devuelve 0 cuando no sabe estimar
        if value is not None and float(value) <= 0:
            return None
        return value

    @classmethod
    def fallback(cls, title: str, brand: Optional[str] = None) -> "ImageFeatures":
        """Features determinísticas cuando el análisis con IA no está disponible."""
        query = f"{brand} {title}" if brand else title
        return cls(
            brand=brand,
            model=None,
            category=FALLBACK_CATEGORY,
            colors=[],
            materials=[],
            patterns=[],
            condition=FALLBACK_CONDITION,
            search_queries=SearchQueries(
                primary=query.strip()[:PRIMARY_QUERY_MAX_CHARS],
                secondary=[title[:SECONDARY_QUERY_MAX_CHARS]],
                visual_features="",
            ),
            estimated_retail_price=None,
        )
