"""Text normalization helpers shared by matching code."""

from __future__ import annotations

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9\s]+")
_WHITESPACE = re.compile(r"\s+")


def fold_unicode(text: str) -> str:
    """Strip diacritics ("Jalapeño" -> "Jalapeno")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize_food_name(name: str) -> str:
    """Fold, lowercase, keep letters/digits only, collapse whitespace.

    Example:
        >>> normalize_food_name("  Crème-Brûlée (Large) ")
        'creme brulee large'
    """
    folded = fold_unicode(name or "").lower()
    return collapse_whitespace(_NON_ALNUM.sub(" ", folded))
