"""
Limpieza de respuestas JSON de los LLM.

Los modelos a veces envuelven el JSON en bloques markdown, agregan texto
antes o después, dejan comentarios // o cortan la respuesta por tokens.
"""

import re

import structlog

logger = structlog.get_logger()

_MISSING_COMMA_PATTERNS = (
    re.compile(r'(\d+\.?\d*)\s*\n(\s*")'),
    re.compile(r'(")\s*\n(\s*")'),
    re.compile(r"(true|false|null)\s*\n(\s*\")"),
    re.compile(r'(\}|\])\s*\n(\s*["{])'),
)
_TRAILING_COMMA = re.compile(r",(\s*[\]}])")


def strip_code_fences(text: str) -> str:
    """Saca el bloque ```json ... ``` si existe."""
    text = text.strip()
    if text.startswith("```"):
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1]
            if text.lower().startswith("json"):
                text = text[4:]
    return text.strip()


def remove_line_comments(text: str) -> str:
    """Elimina comentarios // que no estén dentro de un string."""
    cleaned = []
    for line in text.split("\n"):
        pos = line.find("//")
        if pos != -1:
            before = line[:pos]
            if (before.count('"') - before.count('\\"')) % 2 == 0:
                line = before.rstrip()
        cleaned.append(line)
    return "\n".join(cleaned)


def fix_json(text: str) -> str:
    """Arregla comentarios, comas faltantes y comas colgantes."""
    text = remove_line_comments(text)
    for pattern in _MISSING_COMMA_PATTERNS:
        text = pattern.sub(r"\1,\n\2", text)
    return _TRAILING_COMMA.sub(r"\1", text)


def fix_truncated_json(text: str) -> str:
    """Cierra strings, arrays y objetos que quedaron abiertos."""
    fixed = text.rstrip().rstrip(",")

    if (fixed.count('"') - fixed.count('\\"')) % 2 == 1:
        fixed += '"'

    # Cierra en el orden inverso de apertura
    stack = []
    in_string = False
    escaped = False
    for char in fixed:
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string
        elif not in_string and char in "{[":
            stack.append("}" if char == "{" else "]")
        elif not in_string and char in "}]" and stack:
            stack.pop()

    return fixed + "".join(reversed(stack))


def clean_json_response(raw_text: str) -> str:
    """
    Extrae el JSON de la respuesta cruda del LLM.

    Returns:
        Texto listo para json.loads / model_validate_json
    """
    text = strip_code_fences(raw_text)

    # Texto suelto antes del objeto
    start = text.find("{")
    if start > 0:
        text = text[start:]

    # Texto suelto después del objeto (sin comillas: no es JSON cortado)
    end = text.rfind("}")
    if end != -1 and '"' not in text[end + 1:]:
        text = text[: end + 1]

    text = fix_json(text)

    if not text.endswith("}"):
        logger.warning("Respuesta parece truncada, intentando arreglar", length=len(text))
        text = fix_truncated_json(text)

    return text
