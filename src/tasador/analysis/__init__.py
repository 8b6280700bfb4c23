"""
Módulo de análisis con IA.

Provee el análisis de fotos y la verificación de listings usando LLM
multimodales (Gemini/Groq).
"""

from tasador.analysis.image_analyzer import ImageAnalyzer
from tasador.analysis.images import ImageInput, ImageLoader
from tasador.analysis.llm_providers import (
    get_llm_provider,
    BaseLLMProvider,
    GeminiProvider,
    GroqProvider,
    LLMResponse,
)
from tasador.analysis.match_verifier import MatchVerifier
from tasador.analysis.retry import ai_retry, is_retryable_error

__all__ = [
    # Analizadores
    "ImageAnalyzer",
    "MatchVerifier",
    # Imágenes
    "ImageInput",
    "ImageLoader",
    # Proveedores LLM
    "get_llm_provider",
    "BaseLLMProvider",
    "GeminiProvider",
    "GroqProvider",
    "LLMResponse",
    # Reintentos
    "ai_retry",
    "is_retryable_error",
]
