"""
Jerarquía de excepciones del sistema.

Solo InvalidResearchInput llega al caller de la pipeline; el resto se
absorbe en el componente que la produce y se traduce a un fallback.
"""

from typing import Optional


class TasadorError(Exception):
    """Excepción base de todos los errores propios."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (causa: {self.cause})"
        return self.message


class InvalidResearchInput(TasadorError, ValueError):
    """El input de research viola el contrato (sin fotos, título vacío)."""


class FetchError(TasadorError):
    """Fallo de red o respuesta no exitosa al descargar una página."""

    def __init__(
        self,
        message: str,
        url: str = "",
        status: Optional[int] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, cause=cause)
        self.url = url
        self.status = status


class StructuredOutputError(TasadorError):
    """La respuesta del LLM no pudo convertirse al schema pedido."""
