"""
Reintentos con backoff exponencial para errores transitorios.

Se usa en las llamadas a los LLM y en la descarga de imágenes.
"""

import asyncio

import aiohttp
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from tasador.exceptions import FetchError

logger = structlog.get_logger()

# Fragmentos de mensaje que indican sobrecarga, rate limit o red caída
RETRYABLE_MARKERS = (
    "503",
    "overload",
    "unavailable",
    "429",
    "rate limit",
    "rate_limit",
    "ratelimit",
    "too many requests",
    "quota",
    "resource_exhausted",
    "econnreset",
    "etimedout",
    "network",
    "timed out",
    "timeout",
)

MAX_ATTEMPTS = 4  # 1 intento + 3 reintentos
INITIAL_WAIT_SECONDS = 2
MAX_WAIT_SECONDS = 30


def is_retryable_error(error: BaseException) -> bool:
    """Clasifica un error como transitorio (vale la pena reintentar) o no."""
    if isinstance(error, (asyncio.TimeoutError, aiohttp.ClientConnectionError)):
        return True

    if isinstance(error, FetchError):
        if error.status is not None:
            return error.status == 429 or error.status >= 500
        if error.cause is not None:
            return is_retryable_error(error.cause)

    message = str(error).lower()
    return any(marker in message for marker in RETRYABLE_MARKERS)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Error transitorio, reintentando",
        function=getattr(retry_state.fn, "__qualname__", "unknown"),
        attempt=retry_state.attempt_number,
        wait=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
        error=str(error),
    )


def ai_retry(
    max_attempts: int = MAX_ATTEMPTS,
    min_wait: float = INITIAL_WAIT_SECONDS,
    max_wait: float = MAX_WAIT_SECONDS,
):
    """
    Decorador de reintento para corrutinas.

    Solo reintenta errores transitorios; el resto se propaga de inmediato.
    Agotados los intentos, se relanza el último error.
    """
    return retry(
        retry=retry_if_exception(is_retryable_error),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=2, min=min_wait, max=max_wait),
        before_sleep=_log_before_sleep,
        reraise=True,
    )
