"""
Proveedores LLM multimodales.

El análisis de fotos y el verificador de matches solo ven
BaseLLMProvider; Gemini o Groq se eligen por configuración.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from tasador.analysis.images import ImageInput
from tasador.analysis.json_cleaning import clean_json_response
from tasador.analysis.retry import ai_retry
from tasador.config import Settings, get_settings
from tasador.exceptions import StructuredOutputError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

STRUCTURED_SYSTEM_PROMPT = (
    "You are a precise assistant for the French second-hand fashion market. "
    "Always answer with a single valid JSON object and nothing else."
)


@dataclass
class LLMResponse:
    """Texto generado más metadata de uso."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None


class BaseLLMProvider(ABC):
    """
    Interfaz común de los proveedores.

    Las subclases implementan `generate`; `generate_structured` arma
    encima la salida tipada.
    """

    provider_name: str = "base"

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        images: Optional[list[ImageInput]] = None,
        temperature: float = 0.2,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Una llamada al modelo.

        Args:
            system_prompt: Rol e instrucciones generales
            user_prompt: Pedido concreto (listings, referencia, formato)
            images: Fotos del artículo, si el pedido es multimodal
            temperature: 0.0-1.0; bajo para respuestas estructuradas
            max_tokens: Tope de tokens de salida
            json_mode: Pedir al proveedor que responda solo JSON

        Returns:
            LLMResponse con el texto sin espacios alrededor
        """
        pass

    async def generate_structured(
        self,
        user_prompt: str,
        schema: type[T],
        images: Optional[list[ImageInput]] = None,
        system_prompt: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 4096,
    ) -> Optional[T]:
        """
        Genera y valida una respuesta contra un modelo pydantic.

        Returns:
            Instancia de `schema`, o None si el modelo no devolvió nada

        Raises:
            StructuredOutputError: si la respuesta no es JSON válido para el schema
        """
        response = await self.generate(
            system_prompt=system_prompt or STRUCTURED_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            images=images,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
        if not response.text:
            logger.warning("Respuesta vacía del LLM", provider=response.provider)
            return None

        raw_text = clean_json_response(response.text)
        logger.debug("Respuesta estructurada", provider=response.provider, preview=raw_text[:300])

        try:
            return schema.model_validate_json(raw_text)
        except ValidationError as e:
            raise StructuredOutputError(
                f"Respuesta de {response.provider} no cumple {schema.__name__}", cause=e
            ) from e


class GeminiProvider(BaseLLMProvider):
    """
    Gemini vía google-genai.

    Las fotos viajan como partes inline junto al prompt; en modo JSON se
    fija el mime type de la respuesta.
    """

    provider_name = "gemini"

    def __init__(self, api_key: str, model: str):
        if not api_key:
            raise ValueError("Falta la API key de Gemini (GEMINI_API_KEY)")

        from google import genai

        self.model = model
        self.client = genai.Client(api_key=api_key)
        logger.debug("Cliente Gemini listo", model=model)

    @ai_retry()
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        images: Optional[list[ImageInput]] = None,
        temperature: float = 0.2,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        from google.genai import types

        parts = [
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type)
            for image in images or []
        ]
        parts.append(user_prompt)

        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            top_p=0.8,
            max_output_tokens=max_tokens,
            response_mime_type="application/json" if json_mode else None,
        )
        result = await self.client.aio.models.generate_content(
            model=self.model, contents=parts, config=config
        )

        usage = result.usage_metadata
        return LLMResponse(
            text=(result.text or "").strip(),
            model=self.model,
            provider=self.provider_name,
            tokens_used=usage.total_token_count if usage else None,
        )


class GroqProvider(BaseLLMProvider):
    """
    Groq (API compatible con OpenAI).

    Los prompts con fotos van al modelo de visión, que acepta hasta 5
    imágenes por request como data URLs.
    Docs: https://console.groq.com/docs/vision
    """

    provider_name = "groq"

    def __init__(self, api_key: str, model: str, vision_model: str):
        if not api_key:
            raise ValueError("Falta la API key de Groq (GROQ_API_KEY)")

        from groq import AsyncGroq

        self.model = model
        self.vision_model = vision_model
        self.client = AsyncGroq(api_key=api_key)
        logger.debug("Cliente Groq listo", model=model, vision_model=vision_model)

    @ai_retry()
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        images: Optional[list[ImageInput]] = None,
        temperature: float = 0.2,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        model = self.vision_model if images else self.model

        content = user_prompt
        if images:
            content = [{"type": "text", "text": user_prompt}]
            content.extend(
                {"type": "image_url", "image_url": {"url": image.to_data_url()}}
                for image in images
            )

        extra = {"response_format": {"type": "json_object"}} if json_mode else {}

        completion = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": content},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            **extra,
        )

        usage = completion.usage
        return LLMResponse(
            text=(completion.choices[0].message.content or "").strip(),
            model=model,
            provider=self.provider_name,
            tokens_used=usage.total_tokens if usage else None,
        )


def get_llm_provider(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> BaseLLMProvider:
    """
    Instancia el proveedor pedido, completando key y modelo desde Settings.

    Raises:
        ValueError: proveedor desconocido o sin API key
    """
    settings = settings or get_settings()
    name = (provider or settings.llm_provider).lower()

    if name == "gemini":
        return GeminiProvider(
            api_key=api_key or settings.gemini_api_key,
            model=model or settings.gemini_model,
        )
    if name == "groq":
        return GroqProvider(
            api_key=api_key or settings.groq_api_key,
            model=model or settings.groq_model,
            vision_model=settings.groq_vision_model,
        )
    raise ValueError(f"Proveedor LLM no soportado: {name!r} (opciones: gemini, groq)")
