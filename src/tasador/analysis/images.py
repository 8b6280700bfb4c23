"""
Carga de fotos para el análisis multimodal.

Acepta URLs http(s), data URLs o base64 crudo.
"""

import asyncio
import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

import structlog

from tasador.analysis.retry import ai_retry
from tasador.scrapers.fetchers import USER_AGENT, HttpFetcher

logger = structlog.get_logger()

IMAGE_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
    "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
    "Referer": "https://www.vinted.fr/",
}

DEFAULT_MIME_TYPE = "image/webp"

_DATA_URL = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class ImageInput:
    """Imagen lista para mandar al LLM."""

    data: bytes
    mime_type: str

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


class ImageLoader:
    """Resuelve referencias de fotos a bytes."""

    def __init__(self, fetcher: Optional[HttpFetcher] = None):
        self.fetcher = fetcher if fetcher is not None else HttpFetcher()

    async def load(self, ref: str) -> Optional[ImageInput]:
        """
        Carga una foto. Devuelve None si no se puede obtener.

        Args:
            ref: URL, data URL o base64 crudo
        """
        ref = (ref or "").strip()
        if not ref:
            return None

        if ref.startswith("data:"):
            match = _DATA_URL.match(ref)
            if not match:
                logger.warning("Data URL inválida", prefix=ref[:30])
                return None
            return self._decode(match.group(2), match.group(1))

        if ref.startswith(("http://", "https://")):
            try:
                data, content_type = await self._download(ref)
            except Exception as e:
                logger.warning("No se pudo descargar la foto", url=ref, error=str(e))
                return None

            mime_type = (content_type or DEFAULT_MIME_TYPE).split(";")[0].strip()
            if not mime_type.startswith("image/"):
                logger.warning("La URL no devolvió una imagen", url=ref, content_type=mime_type)
                return None
            if not data:
                return None
            return ImageInput(data=data, mime_type=mime_type)

        return self._decode(ref, "image/png")

    async def load_many(self, refs: list[str], limit: int) -> list[ImageInput]:
        """Carga hasta `limit` fotos en paralelo, descartando las que fallan."""
        results = await asyncio.gather(*(self.load(ref) for ref in refs[:limit]))
        return [image for image in results if image is not None]

    @ai_retry()
    async def _download(self, url: str) -> tuple[bytes, Optional[str]]:
        return await self.fetcher.fetch_bytes(url, headers=IMAGE_HEADERS)

    @staticmethod
    def _decode(payload: str, mime_type: str) -> Optional[ImageInput]:
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Base64 de imagen inválido")
            return None
        if not data:
            return None
        return ImageInput(data=data, mime_type=mime_type)
