"""
Text utilities for handling Spanish text with accents.

Used for column-name matching and boolean token recognition.
"""

import re
import unicodedata
from typing import Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def strip_accents(value: str) -> str:
    """
    Remove combining accent marks, keeping the base letters.

    - "Almacén" → "Almacen"
    - "Sí" → "Si"
    """
    # NFD decomposition separates base chars from accents
    normalized = unicodedata.normalize('NFD', value)
    return ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )


def normalize_header(name: Optional[str]) -> str:
    """
    Normalize a column header or field label for comparison.

    Lowercase, no diacritics, letters and digits only:
    - "Precio M." → "preciom"
    - "Categoría F1" → "categoriaf1"
    - "  ID Tienda " → "idtienda"
    """
    if not name:
        return ""
    return _NON_ALNUM.sub("", strip_accents(str(name).lower()))


def truncate_for_display(value: str, limit: int = 50) -> str:
    """Shorten long cell text for error reports."""
    return value[:limit] + "..."
