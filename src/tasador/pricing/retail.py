"""
Precio retail de referencia (artículo nuevo).

Es información complementaria: si no se puede resolver, la pipeline
sigue sin él.
"""

from typing import Optional

import structlog

from tasador.models import ImageFeatures, RetailPrice
from tasador.scrapers.google_shopping import GoogleShoppingScraper

logger = structlog.get_logger()


class RetailPriceResolver:
    """Resuelve el precio nuevo a partir de las features del artículo."""

    def __init__(self, scraper: Optional[GoogleShoppingScraper] = None):
        self.scraper = scraper if scraper is not None else GoogleShoppingScraper()

    async def resolve(self, features: ImageFeatures) -> Optional[RetailPrice]:
        """
        Orden de preferencia:
        1. Estimación del análisis de fotos, si además hay marca (sin red)
        2. Búsqueda en Google Shopping del artículo nuevo, mediana de precios
        3. None
        """
        query = features.search_queries.primary

        if features.estimated_retail_price and features.brand:
            retail_query = self.scraper.retail_query(f"{features.brand} {query}")
            logger.debug(
                "Usando precio retail estimado",
                price=features.estimated_retail_price,
                brand=features.brand,
            )
            return RetailPrice(
                price=features.estimated_retail_price,
                url=self.scraper.search_url(retail_query),
                brand=features.brand,
            )

        try:
            results = await self.scraper.search_retail(query)
        except Exception as e:
            logger.warning("Error buscando precio retail", query=query, error=str(e))
            return None

        if not results:
            logger.info("Sin resultados de precio retail", query=query)
            return None

        prices = sorted(item.price for item in results)
        median = prices[len(prices) // 2]

        logger.info("Precio retail encontrado", query=query, price=median, results=len(results))
        return RetailPrice(
            price=median,
            url=results[0].url or self.scraper.search_url(self.scraper.retail_query(query)),
            brand=features.brand,
        )
