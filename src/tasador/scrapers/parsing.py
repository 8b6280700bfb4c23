"""
Helpers de parseo compartidos por los scrapers.
"""

import re
from typing import Optional
from urllib.parse import urljoin

_CURRENCY_SYMBOLS = re.compile(r"[€$£]")
_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_BACKGROUND_URL = re.compile(r"url\(['\"]?([^'\")]+)['\"]?\)")


def parse_price(text: Optional[str]) -> float:
    """
    Parsea un precio desde texto libre.

    Quita símbolos de moneda y espacios, acepta coma decimal y toma la
    primera secuencia numérica. Devuelve 0.0 si no hay número; los callers
    descartan precios no positivos.

    Ejemplos: "45,50 €" -> 45.5, "€ 1 200" -> 1200.0, "1.234,56" -> 1234.56
    """
    if not text:
        return 0.0

    cleaned = _CURRENCY_SYMBOLS.sub("", text)
    cleaned = _WHITESPACE.sub("", cleaned)

    # Separadores mixtos: el último es el decimal
    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "")
        else:
            cleaned = cleaned.replace(",", "")

    cleaned = cleaned.replace(",", ".", 1)

    match = _NUMBER.search(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))


def parse_rating(text: Optional[str]) -> Optional[float]:
    """Parsea un rating de vendedor ("4.8", "99,5%"). None si no hay número."""
    if not text:
        return None
    match = _NUMBER.search(text.replace("%", "").replace(",", "."))
    return float(match.group(0)) if match else None


def clean_text(text: Optional[str]) -> str:
    """Colapsa espacios y recorta."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def absolute_url(base_url: str, path: str) -> str:
    """Convierte un path relativo en URL absoluta sobre base_url."""
    if path.startswith("http"):
        return path
    return urljoin(base_url, path)


def background_image_url(style: Optional[str]) -> Optional[str]:
    """Extrae la URL de un style inline con background-image."""
    if not style:
        return None
    match = _BACKGROUND_URL.search(style)
    return match.group(1) if match else None


def price_param(value: float) -> str:
    """Precio para query string: sin decimales si es entero."""
    return f"{value:g}"
