"""
Pure extraction helpers for nutrition label text.

Every extractor takes already-normalized text and returns
``Optional[float]``; ``None`` means the value was not found. Priority
between competing sources (kcal vs kJ, sodium vs salt) is resolved by
the small ``resolve_*`` functions so it can be tested in isolation.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Pattern, Tuple

from nutrinorm.domain.label.models import ServingSize, ServingUnit

KJ_PER_KCAL = 4.184
SODIUM_PER_SALT = 0.4
DEFAULT_LOOKAHEAD_CHARS = 24

# Leading point allowed (".5 g")
NUMBER = r"(\d*\.?\d+)"

# Nutrient keyword patterns; fat excludes saturated / trans fat
PROTEIN = r"\bproteins?\b"
CARBS = r"\b(?:total\s+)?carb(?:ohydrate)?s?\b"
SUGAR = r"\b(?:total\s+)?sugars?\b"
FAT = r"(?<!saturated\s)(?<!trans\s)(?<!sat\s)(?<!sat\.\s)\b(?:total\s+)?fats?\b"
SATFAT = r"\b(?:saturated\s+fats?|saturates|sat\.?\s*fats?)\b"
FIBER = r"\b(?:dietary\s+)?fib(?:er|re)s?\b"
SODIUM = r"\bsodium\b"
SALT = r"\bsalt\b"
CALORIES = r"\bcalories\b"

GRAM_UNIT = r"\s*(?:g|grams?)\b"
MG_UNIT = r"\s*(?:mg|milligrams?)\b"

PER_100_MARKER = re.compile(r"(?:\bper|/)\s*100\s*(?:g|ml)?\b")
INGREDIENTS_MARKER = re.compile(r"\bingredients?\s*:")
_SERVING_PAREN = re.compile(r"\(\s*" + NUMBER + r"\s*(g|ml)\s*\)")
_SERVING_TEXT = re.compile(r"\bserving[^0-9]{0,30}?" + NUMBER + r"\s*(g|ml)\b")
_KCAL = re.compile(NUMBER + r"\s*kcal\b")
_KJ = re.compile(NUMBER + r"\s*kj\b")
_DECIMAL_COMMA = re.compile(r"(\d),(\d{1,2})(?!\d)")
_WHITESPACE = re.compile(r"\s+")

# Characters allowed between a keyword and its value: no digit, no point
# that starts a number (".5") and no other nutrient name
_OTHER_NUTRIENT = r"\b(?:protein|fat|sugar|carb|fib|sodium|salt|energy|calorie|saturate)"
_WINDOW_CHAR = r"(?:(?!\.\d)(?!" + _OTHER_NUTRIENT + r")[^0-9])"

# NBSP, narrow NBSP, fullwidth comma, ideographic comma
_TRANSLATE = str.maketrans(
    {"\u00a0": " ", "\u202f": " ", "\uff0c": ",", "\u3001": ","}
)


def normalize_label_text(text: str) -> str:
    """
    Lowercase, unify spaces and commas, fix decimal commas.

    Example:
        >>> normalize_label_text("Fat\\u00a03,5 g\\n  Sugars 1,000 mg")
        'fat 3.5 g sugars 1,000 mg'
    """
    lowered = (text or "").lower().translate(_TRANSLATE)
    lowered = _DECIMAL_COMMA.sub(r"\1.\2", lowered)
    return _WHITESPACE.sub(" ", lowered).strip()


def _compile(keyword: str, unit: str, lookahead: int) -> Pattern[str]:
    return re.compile(
        keyword + _WINDOW_CHAR + "{0," + str(lookahead) + "}?" + NUMBER + unit
    )


def extract_amount(
    text: str,
    keyword: str,
    unit: str = GRAM_UNIT,
    lookahead: int = DEFAULT_LOOKAHEAD_CHARS,
) -> Optional[float]:
    """
    First ``<keyword> ... <number><unit>`` within ``lookahead`` chars.

    Example:
        >>> extract_amount("protein 12.5 g", PROTEIN)
        12.5
        >>> extract_amount("protein: see side panel for details 12 g", PROTEIN) is None
        True
    """
    match = _compile(keyword, unit, lookahead).search(text)
    return float(match.group(1)) if match else None


def extract_energy_kcal(
    text: str, lookahead: int = DEFAULT_LOOKAHEAD_CHARS
) -> Optional[float]:
    """Energy in kcal: explicit kcal, then kJ / 4.184, then bare calories."""
    kcal = _KCAL.search(text)
    kj = _KJ.search(text)
    calories = extract_amount(text, CALORIES, unit="", lookahead=lookahead)
    return resolve_energy_kcal(
        kcal=float(kcal.group(1)) if kcal else None,
        kj=float(kj.group(1)) if kj else None,
        calories=calories,
    )


def resolve_energy_kcal(
    kcal: Optional[float] = None,
    kj: Optional[float] = None,
    calories: Optional[float] = None,
) -> Optional[float]:
    if kcal is not None:
        return kcal
    if kj is not None:
        return round_nutrient(kj / KJ_PER_KCAL)
    return calories


def extract_sodium_mg(
    text: str, lookahead: int = DEFAULT_LOOKAHEAD_CHARS
) -> Optional[float]:
    """Sodium in mg from label text (see ``resolve_sodium_mg``)."""
    return resolve_sodium_mg(
        sodium_mg=extract_amount(text, SODIUM, MG_UNIT, lookahead),
        sodium_g=extract_amount(text, SODIUM, GRAM_UNIT, lookahead),
        salt_g=extract_amount(text, SALT, GRAM_UNIT, lookahead),
    )


def resolve_sodium_mg(
    sodium_mg: Optional[float] = None,
    sodium_g: Optional[float] = None,
    salt_g: Optional[float] = None,
) -> Optional[float]:
    """
    Sodium priority: explicit mg > explicit g x 1000 > salt g x 0.4 x 1000.

    Example:
        >>> resolve_sodium_mg(sodium_g=0.4, salt_g=1.5)
        400.0
        >>> resolve_sodium_mg(salt_g=1.5)
        600.0
    """
    if sodium_mg is not None:
        return sodium_mg
    if sodium_g is not None:
        return round_nutrient(sodium_g * 1000)
    if salt_g is not None:
        return round_nutrient(salt_g * SODIUM_PER_SALT * 1000)
    return None


def extract_serving(text: str) -> Optional[ServingSize]:
    """
    Declared serving size: ``(NN g|ml)`` first, then ``serving ... NN g|ml``.

    Example:
        >>> extract_serving("serving size 1 cup (240ml)").unit.value
        'ml'
    """
    match = _SERVING_PAREN.search(text) or _SERVING_TEXT.search(text)
    if not match:
        return None
    amount = float(match.group(1))
    if amount <= 0:
        return None
    return ServingSize(
        raw=match.group(0).strip(),
        amount=amount,
        unit=ServingUnit(match.group(2)),
    )


def split_ingredients(text: str) -> Tuple[str, Optional[str]]:
    """Split text into (nutrition part, trailing ingredients text)."""
    match = INGREDIENTS_MARKER.search(text)
    if not match:
        return text, None
    ingredients = text[match.end():].strip() or None
    return text[: match.start()].strip() or text, ingredients


def round_nutrient(value: float) -> float:
    """0 decimals for values >= 50, else 2 (half rounds up)."""
    if value >= 50:
        return float(math.floor(value + 0.5))
    return math.floor(value * 100 + 0.5) / 100
