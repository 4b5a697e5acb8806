"""
Cell value parsers shared by the row validator and the row transformer.

Both stages must read prices, booleans and image URLs identically, so every
interpretation of a raw cell lives here and nowhere else.
"""

import re
from typing import Optional, Union
from urllib.parse import urlparse

from utils.text_utils import strip_accents

CellValue = Union[str, int, float, None]

_CURRENCY_SYMBOLS = re.compile(r"[$€£¥]")
_WHITESPACE = re.compile(r"\s")
# Leading numeric portion, the way a lenient float reader consumes "12.5kg"
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_URL_WITH_PROTOCOL = re.compile(r"^https?://", re.IGNORECASE)
_SPECIAL_PROTOCOLS = re.compile(r"^(data:|blob:)", re.IGNORECASE)
_RELATIVE_PATH = re.compile(r"^(\.?/|/)")
_DOMAIN_LIKE = re.compile(r"^[\w-]+(\.[\w-]+)+", re.ASCII)
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_HIERARCHICAL_SCHEMES = {"http", "https", "ftp", "ftps", "ws", "wss"}

TRUE_TOKENS = frozenset({"true", "1", "yes", "si", "verdadero", "activo", "x"})
FALSE_TOKENS = frozenset({"false", "0", "no", "falso", "inactivo", ""})


def cell_text(value: CellValue) -> Optional[str]:
    """Trimmed text of a cell, or None for a missing cell."""
    if value is None:
        return None
    return str(value).strip()


def parse_price(value: CellValue) -> Optional[float]:
    """
    Parse a price cell into a float.

    Handles both decimal conventions:
        "1.234,56" -> 1234.56   (comma after period: European grouping)
        "1,234.56" -> 1234.56   (period after comma: US grouping)
        "$ 12,50"  -> 12.5      (comma only: decimal comma)
        "abc"      -> None

    Returns:
        Parsed value, or None when the cell is empty or not numeric
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = _WHITESPACE.sub("", _CURRENCY_SYMBOLS.sub("", value)).strip()

    has_comma = "," in cleaned
    has_period = "." in cleaned

    if has_comma and not has_period:
        # Only the first comma becomes the decimal point
        cleaned = cleaned.replace(",", ".", 1)
    elif has_comma and has_period:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".", 1)
        else:
            cleaned = cleaned.replace(",", "")

    match = _LEADING_FLOAT.match(cleaned)
    if not match:
        return None
    return float(match.group(0))


def parse_boolean(value: CellValue) -> Optional[bool]:
    """
    Parse a yes/no cell.

    Recognizes true/1/yes/sí/si/verdadero/activo/x and
    false/0/no/falso/inactivo, case and accent insensitive.

    Returns:
        True/False, or None when empty or unrecognized
    """
    if value is None or value == "":
        return None

    token = strip_accents(str(value).lower().strip())

    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    return None


def is_valid_url(value: Optional[str]) -> bool:
    """
    Check an image reference.

    Accepts empty values, relative paths, absolute URLs with a scheme, and
    bare domain-like tokens such as "cdn.example.com/img.png".
    """
    if not value or value.strip() == "":
        return True

    if value.startswith("/") or value.startswith("./"):
        return True

    if _SCHEME.match(value):
        scheme = value.split(":", 1)[0].lower()
        if scheme not in _HIERARCHICAL_SCHEMES:
            return True
        if urlparse(value).netloc:
            return True

    return bool(_DOMAIN_LIKE.match(value))


def normalize_image_url(value: Optional[str]) -> Optional[str]:
    """
    Normalize an image reference for storage.

    - "http(s)://…", "data:…", "blob:…"  -> unchanged
    - "/img/a.png", "./img/a.png"          -> unchanged
    - "cdn.example.com/a.png"              -> "https://cdn.example.com/a.png"
    - anything else                        -> unchanged (trimmed)
    - empty                                -> None
    """
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None

    if _URL_WITH_PROTOCOL.match(trimmed):
        return trimmed
    if _SPECIAL_PROTOCOLS.match(trimmed):
        return trimmed
    if _RELATIVE_PATH.match(trimmed):
        return trimmed

    if _DOMAIN_LIKE.match(trimmed):
        return f"https://{trimmed}"

    return trimmed
