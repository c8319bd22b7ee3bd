"""
Non-food filtering and tolerant payload extraction for detections.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from nutrinorm.domain.detection.models import RawDetection

# Tableware, containers and ambiguous condiment/snack labels that vision
# models routinely report alongside the actual food.
REJECT_SET = frozenset(
    {
        "plate",
        "dish",
        "bowl",
        "table",
        "cutlery",
        "fork",
        "knife",
        "spoon",
        "cup",
        "glass",
        "syrup",
        "curd",
        "ketchup",
        "bar",
        "cookie",
        "snack",
        "container",
        "wrapper",
        "package",
    }
)

# Packaging / branding tokens that show up in label-level detections.
BRANDING_TOKENS = frozenset(
    {
        "logo",
        "brand",
        "text",
        "label",
        "font",
        "barcode",
        "trademark",
        "sticker",
    }
)

DEFAULT_CONFIDENCE = 0.7

_ITEM_KEYS = ("items", "foods", "detections")
_NAME_KEYS = ("name", "label")
_CONFIDENCE_KEYS = ("confidence", "score")
_PORTION_KEYS = ("portion_estimate", "grams")


def is_food_name(name: Optional[str]) -> bool:
    """True when the lowercased name is non-empty and not rejected."""
    if not name:
        return False
    key = name.strip().lower()
    return bool(key) and key not in REJECT_SET


def filter_detected_items(items: Iterable[RawDetection]) -> List[RawDetection]:
    """Drop non-food detections, preserving order."""
    return [item for item in items if is_food_name(item.name)]


def filter_foodish(labels: Iterable[str]) -> List[str]:
    """
    Keep only labels that look like food.

    Stricter than the router filter: branding tokens are dropped too.

    Example:
        >>> filter_foodish(["plate", "fork", "salmon", "logo", "chicken"])
        ['salmon', 'chicken']
    """
    kept = []
    for label in labels:
        if not is_food_name(label):
            continue
        if label.strip().lower() in BRANDING_TOKENS:
            continue
        kept.append(label)
    return kept


def _first(entry: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def _item_list(payload: Mapping[str, Any]) -> List[Any]:
    result = payload.get("result")
    if isinstance(result, Mapping) and isinstance(result.get("items"), list):
        return result["items"]
    for key in _ITEM_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            return value
    return []


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_raw_detections(payload: Any) -> List[RawDetection]:
    """
    Read detections out of a provider payload of unknown shape.

    Items are looked up under ``items``, ``result.items``, ``foods`` or
    ``detections``. Malformed entries are skipped, never raised.

    Args:
        payload: Provider response (dict, or anything else)

    Returns:
        Raw detections in provider order
    """
    if not isinstance(payload, Mapping):
        return []

    detections = []
    for entry in _item_list(payload):
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, Mapping):
            continue

        name = _first(entry, _NAME_KEYS)
        if not isinstance(name, str) or not name.strip():
            continue

        confidence = _as_float(_first(entry, _CONFIDENCE_KEYS))
        portion = _as_float(_first(entry, _PORTION_KEYS))
        try:
            detections.append(
                RawDetection(
                    name=name.strip(),
                    confidence=(
                        DEFAULT_CONFIDENCE if confidence is None else confidence
                    ),
                    portion_grams=portion if portion and portion > 0 else None,
                )
            )
        except ValidationError:
            continue
    return detections
