"""
Script para ejecutar el research de precio de mercado de un artículo.

Uso:
    python -m tasador.scripts.run_research --title "Sac Longchamp Le Pliage" --photo https://...
    python -m tasador.scripts.run_research --title "Air Max 90" --brand Nike --price 60 \\
        --photo foto1.jpg --photo foto2.jpg --condition "très bon état"
"""

import argparse
import asyncio
import base64
import json
import sys
from pathlib import Path
from typing import Optional

import structlog

from tasador.exceptions import InvalidResearchInput
from tasador.log import configure_logging
from tasador.research import SourceResearchPipeline
from tasador.scrapers import SCRAPER_CLASSES, build_scrapers

logger = structlog.get_logger()


def _photo_ref(value: str) -> str:
    """Archivos locales se mandan como data URL; URLs y base64 pasan tal cual."""
    path = Path(value)
    if not value.startswith(("http://", "https://", "data:")) and path.is_file():
        suffix = path.suffix.lower().lstrip(".") or "jpeg"
        mime = "image/jpeg" if suffix in ("jpg", "jpeg") else f"image/{suffix}"
        encoded = base64.b64encode(path.read_bytes()).decode("ascii")
        return f"data:{mime};base64,{encoded}"
    return value


async def run_research(
    title: str,
    photos: list[str],
    price: float,
    brand: Optional[str] = None,
    condition: str = "",
    size: Optional[str] = None,
    sources: Optional[list[str]] = None,
) -> dict:
    """
    Ejecuta la pipeline completa y devuelve el resultado serializable.

    Args:
        title: Título del artículo
        photos: Referencias de fotos
        price: Precio pedido
        brand: Marca declarada
        condition: Estado declarado
        size: Talle
        sources: Fuentes a consultar (None = todas)
    """
    async with SourceResearchPipeline(scrapers=build_scrapers(sources=sources)) as pipeline:
        result = await pipeline.research(
            {
                "photos": photos,
                "title": title,
                "brand": brand,
                "price": price,
                "condition": condition,
                "size": size,
            }
        )
    return result.to_dict()


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(
        description="Research de precio de mercado en plataformas de reventa"
    )
    parser.add_argument("--title", type=str, required=True, help="Título del artículo")
    parser.add_argument(
        "--photo",
        dest="photos",
        action="append",
        default=[],
        help="URL, data URL o archivo local (repetible)",
    )
    parser.add_argument("--brand", type=str, default=None, help="Marca declarada")
    parser.add_argument("--price", type=float, default=0.0, help="Precio pedido en EUR")
    parser.add_argument("--condition", type=str, default="", help="Estado del artículo")
    parser.add_argument("--size", type=str, default=None, help="Talle")
    parser.add_argument(
        "--sources",
        type=str,
        default=None,
        help=f"Fuentes separadas por coma ({','.join(SCRAPER_CLASSES)})",
    )
    parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING")

    args = parser.parse_args()
    configure_logging(args.log_level)

    sources = None
    if args.sources:
        sources = [s.strip() for s in args.sources.split(",") if s.strip()]

    try:
        result = asyncio.run(
            run_research(
                title=args.title,
                photos=[_photo_ref(p) for p in args.photos],
                price=args.price,
                brand=args.brand,
                condition=args.condition,
                size=args.size,
                sources=sources,
            )
        )
    except InvalidResearchInput as e:
        logger.error("Input inválido", error=str(e))
        sys.exit(2)
    except ValueError as e:
        logger.error("Configuración inválida", error=str(e))
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Research interrumpido por usuario")
        sys.exit(130)

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
