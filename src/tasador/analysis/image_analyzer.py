"""
Análisis de fotos de un artículo con un LLM multimodal.

Extrae marca, modelo, categoría, colores, materiales y queries de
búsqueda. Nunca falla: ante cualquier error devuelve features armadas
con el título y la marca del vendedor.
"""

from typing import Optional

import structlog

from tasador.analysis.images import ImageLoader
from tasador.analysis.llm_providers import BaseLLMProvider
from tasador.config import Settings, get_settings
from tasador.models import ImageFeatures

logger = structlog.get_logger()

IMAGE_ANALYSIS_SYSTEM_PROMPT = """You are an expert in second-hand fashion and luxury goods on the French resale market (Vinted, Vestiaire Collective, eBay, Leboncoin).
You look at item photos and identify the item as precisely as possible so it can be found on resale platforms.
Answer with a single JSON object, no markdown, no comments."""

IMAGE_ANALYSIS_PROMPT = """Analyse the attached photos of an item listed for sale.

SELLER TITLE: {title}
SELLER BRAND: {brand}

Return this JSON:
{{
  "brand": "brand name or null if not identifiable",
  "model": "model / reference name or null",
  "category": "item category (e.g. sneakers, handbag, jacket)",
  "colors": ["main colours"],
  "materials": ["visible materials"],
  "patterns": ["patterns, prints, logos"],
  "condition": "visible condition (e.g. new with tags, very good condition, good condition, worn)",
  "search_queries": {{
    "primary": "most precise search query to find this exact item on resale sites",
    "secondary": ["2 or 3 alternative, broader queries"],
    "visual_features": "short description of distinctive visual details to compare listings"
  }},
  "estimated_retail_price": 0
}}

RULES:
- Prefer what you SEE over the seller title when they disagree.
- Queries must be short (3 to 8 words), in the language sellers use on French platforms.
- estimated_retail_price is the new price in EUR at retail, or 0 if you do not know."""


class ImageAnalyzer:
    """Convierte las fotos del vendedor en ImageFeatures."""

    def __init__(
        self,
        provider: Optional[BaseLLMProvider] = None,
        image_loader: Optional[ImageLoader] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Args:
            provider: Proveedor LLM. Sin proveedor siempre se usa el fallback.
            image_loader: Cargador de fotos (default: ImageLoader con HTTP)
            settings: Configuración (default: get_settings())
        """
        self.settings = settings or get_settings()
        self._provider = provider
        self._image_loader = image_loader if image_loader is not None else ImageLoader()

    async def analyze(
        self,
        photos: list[str],
        title: str,
        brand: Optional[str] = None,
    ) -> ImageFeatures:
        """
        Analiza las fotos de un artículo.

        Args:
            photos: URLs, data URLs o base64; se usan las primeras max_photos
            title: Título del vendedor
            brand: Marca declarada por el vendedor

        Returns:
            ImageFeatures del análisis, o las de fallback si algo falla
        """
        if self._provider is None:
            logger.warning("Sin proveedor LLM, usando features de fallback")
            return ImageFeatures.fallback(title, brand)

        try:
            images = await self._image_loader.load_many(photos, self.settings.max_photos)
            if not images:
                logger.warning("No se pudo cargar ninguna foto", photos=len(photos))
                return ImageFeatures.fallback(title, brand)

            features = await self._provider.generate_structured(
                IMAGE_ANALYSIS_PROMPT.format(title=title, brand=brand or "unknown"),
                ImageFeatures,
                images=images,
                system_prompt=IMAGE_ANALYSIS_SYSTEM_PROMPT,
                temperature=0.2,
                max_tokens=2048,
            )
        except Exception as e:
            logger.error("Error analizando fotos", title=title, error=str(e))
            return ImageFeatures.fallback(title, brand)

        if features is None or not features.search_queries.primary.strip():
            logger.warning("Análisis de fotos sin query utilizable", title=title)
            return ImageFeatures.fallback(title, brand)

        logger.info(
            "Fotos analizadas",
            photos=len(images),
            brand=features.brand,
            model=features.model,
            category=features.category,
            query=features.search_queries.primary,
        )
        return features
