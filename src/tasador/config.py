"""
Configuración centralizada del sistema.
Carga variables de entorno y define settings globales.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py -> tasador/ -> src/ -> raíz del proyecto
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Configuración principal de la aplicación."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Provider
    llm_provider: str = Field(
        "gemini",
        description="Proveedor de LLM a usar: 'gemini' o 'groq'"
    )

    # Gemini
    gemini_api_key: Optional[str] = Field(None, description="API key de Google Gemini")
    gemini_model: str = Field("gemini-2.5-flash", description="Modelo de Gemini a usar")

    # Groq
    groq_api_key: Optional[str] = Field(None, description="API key de Groq")
    groq_model: str = Field(
        "llama-3.3-70b-versatile",
        description="Modelo de Groq para prompts de solo texto"
    )
    groq_vision_model: str = Field(
        "meta-llama/llama-4-scout-17b-16e-instruct",
        description="Modelo de Groq con soporte de imágenes"
    )

    # Scraping
    fetch_timeout_seconds: float = Field(
        10.0, gt=0, description="Timeout por request a cada fuente (segundos)"
    )
    cache_ttl_seconds: float = Field(
        3600.0, ge=0, description="Vigencia de los resultados cacheados por fuente"
    )
    accept_language: str = Field(
        "fr-FR,fr;q=0.9,en;q=0.8", description="Header Accept-Language de los requests"
    )
    max_results_per_source: int = Field(
        20, ge=1, description="Máximo de listings a pedir a cada fuente"
    )
    browser_sources: list[str] = Field(
        default_factory=list,
        description="Fuentes que se descargan con Playwright en vez de HTTP plano",
    )

    # Rate limiting entre fuentes
    scheduler_concurrency: int = Field(3, ge=1, description="Búsquedas simultáneas")
    scheduler_interval_seconds: float = Field(
        0.5, ge=0, description="Ventana de admisión (segundos)"
    )
    scheduler_interval_cap: int = Field(
        3, ge=1, description="Admisiones máximas por ventana"
    )

    # Análisis con IA
    max_photos: int = Field(4, ge=1, description="Fotos máximas enviadas al analizador")
    match_batch_size: int = Field(
        10, ge=1, description="Listings por llamada al verificador de matches"
    )

    # Precio retail
    retail_query_suffix: str = Field(
        "neuf", description="Calificador agregado a la búsqueda de artículos nuevos"
    )

    # Logging
    log_level: str = Field("INFO", description="Nivel de logging")


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuración cacheada."""
    return Settings()


# Constantes del sistema
SOURCE_NAMES = {
    "vinted": "Vinted",
    "vestiaire": "Vestiaire Collective",
    "ebay": "eBay",
    "leboncoin": "Leboncoin",
    "google_shopping": "Google Shopping",
}

DEFAULT_CURRENCY = "EUR"
