"""
OpenFoodFacts product normalizer.

Maps a raw OpenFoodFacts product payload to ``NormalizedProduct``, the
shape consumed by the barcode analysis service and the flag engine.
"""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from nutrinorm.domain.label.extractors import (
    extract_serving,
    normalize_label_text,
    resolve_energy_kcal,
    resolve_sodium_mg,
)
from nutrinorm.domain.label.models import NutrientSet, ServingSize, ServingUnit
from nutrinorm.domain.label.parser import scale_nutrients

_TAG_PREFIX = re.compile(r"^(?:en|fr|es):")
_SERVING_AMOUNT = re.compile(r"(\d+(?:\.\d+)?)\s*(g|ml)\b")

# Locale fallbacks, most preferred first
_INGREDIENT_KEYS = (
    "ingredients_text_en",
    "ingredients_text",
    "ingredients_text_es",
    "ingredients_text_fr",
)

# NutrientSet field -> OFF nutriment stem
_NUTRIMENT_STEMS = {
    "protein_g": "proteins",
    "carbs_g": "carbohydrates",
    "sugar_g": "sugars",
    "fat_g": "fat",
    "satfat_g": "saturated-fat",
    "fiber_g": "fiber",
}


class NormalizedProduct(BaseModel):
    """
    Barcode product in pipeline units.

    Attributes:
        barcode: Product barcode
        name: Product name (None when the provider had none)
        brand: First listed brand
        image_url: Front image URL
        per100: Nutrients per 100 g/ml
        per_serving: Nutrients per declared serving
        serving: Parsed serving size
        ingredients: Ingredient list
        ingredients_text: Raw ingredients text
        additives: Additive codes, prefix-stripped and lowercase (e.g. "e129")
        allergens: Allergens, prefix-stripped and lowercase
    """

    model_config = ConfigDict(frozen=True)

    barcode: str = ""
    name: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    per100: NutrientSet = Field(default_factory=NutrientSet)
    per_serving: NutrientSet = Field(default_factory=NutrientSet)
    serving: Optional[ServingSize] = None
    ingredients: List[str] = Field(default_factory=list)
    ingredients_text: Optional[str] = None
    additives: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


def _clean_tags(tags: Any) -> List[str]:
    if not isinstance(tags, list):
        return []
    cleaned = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        value = _TAG_PREFIX.sub("", tag.strip()).lower()
        if value:
            cleaned.append(value)
    return cleaned


def split_ingredients_list(text: str) -> List[str]:
    """
    Split an ingredients string on top-level commas.

    Example:
        >>> split_ingredients_list("Sugar, Cocoa (12%), Emulsifier (Soy, Lecithin)")
        ['Sugar', 'Cocoa (12%)', 'Emulsifier (Soy, Lecithin)']
    """
    parts: List[str] = []
    depth = 0
    current = []
    for ch in text:
        if ch in "([":
            depth += 1
        elif ch in ")]" and depth:
            depth -= 1
        if ch in ",;" and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return [p.rstrip(".").strip() for p in parts if p.rstrip(".").strip()]


class OpenFoodFactsNormalizer:
    """Maps OpenFoodFacts payloads to ``NormalizedProduct``."""

    @staticmethod
    def normalize(payload: Mapping[str, Any], barcode: str = "") -> NormalizedProduct:
        """Normalize an OFF product payload.

        Accepts either the API envelope (``{"status": 1, "product": {...}}``)
        or the bare product object.

        Args:
            payload: Raw OFF JSON
            barcode: Scanned barcode (falls back to the product code)

        Returns:
            NormalizedProduct

        Example:
            >>> product = OpenFoodFactsNormalizer.normalize({
            ...     "status": 1,
            ...     "product": {
            ...         "product_name": "Nutella",
            ...         "brands": "Ferrero, Nutella",
            ...         "nutriments": {"energy-kcal_100g": 539, "salt_100g": 0.107},
            ...     },
            ... }, barcode="3017620422003")
            >>> product.brand, product.per100.energy_kcal, product.per100.sodium_mg
            ('Ferrero', 539.0, 42.8)
        """
        product = payload.get("product") if isinstance(payload.get("product"), Mapping) else payload
        if not isinstance(product, Mapping):
            product = {}

        ingredients_text = OpenFoodFactsNormalizer._ingredients_text(product)
        serving = OpenFoodFactsNormalizer.parse_serving_size(product.get("serving_size"))
        nutriments = product.get("nutriments")
        if not isinstance(nutriments, Mapping):
            nutriments = {}

        per100 = OpenFoodFactsNormalizer.nutrients(nutriments, "100g")
        per_serving = OpenFoodFactsNormalizer.nutrients(nutriments, "serving")
        if per_serving.is_empty() and serving and serving.grams and not per100.is_empty():
            per_serving = scale_nutrients(per100, serving.grams / 100)

        return NormalizedProduct(
            barcode=barcode or str(product.get("code") or ""),
            name=OpenFoodFactsNormalizer._name(product),
            brand=OpenFoodFactsNormalizer._brand(product.get("brands")),
            image_url=product.get("image_front_small_url") or product.get("image_url"),
            per100=per100,
            per_serving=per_serving,
            serving=serving,
            ingredients=OpenFoodFactsNormalizer._ingredients(product, ingredients_text),
            ingredients_text=ingredients_text,
            additives=_clean_tags(
                product.get("additives_tags") or product.get("additives_original_tags")
            ),
            allergens=_clean_tags(product.get("allergens_tags")),
        )

    @staticmethod
    def nutrients(nutriments: Mapping[str, Any], basis: str) -> NutrientSet:
        """Read one basis (``100g`` or ``serving``) from OFF nutriments.

        Energy: ``energy-kcal`` first, else ``energy`` (kJ) / 4.184.
        Sodium: ``sodium`` (g) first, else ``salt`` (g) x 0.4.
        """

        def get(stem: str) -> Optional[float]:
            return _number(nutriments.get(f"{stem}_{basis}"))

        kj = get("energy-kj")
        if kj is None:
            kj = get("energy")
        values = {field: get(stem) for field, stem in _NUTRIMENT_STEMS.items()}
        return NutrientSet(
            energy_kcal=resolve_energy_kcal(kcal=get("energy-kcal"), kj=kj),
            sodium_mg=resolve_sodium_mg(sodium_g=get("sodium"), salt_g=get("salt")),
            **values,
        )

    @staticmethod
    def parse_serving_size(raw: Any) -> Optional[ServingSize]:
        """Parse OFF ``serving_size`` text ("30 g", "1 bar (40g)", "250 ml")."""
        if not isinstance(raw, str) or not raw.strip():
            return None
        text = normalize_label_text(raw)
        serving = extract_serving(text)
        if serving:
            return serving
        match = _SERVING_AMOUNT.search(text)
        if not match or float(match.group(1)) <= 0:
            return None
        return ServingSize(
            raw=raw.strip(),
            amount=float(match.group(1)),
            unit=ServingUnit(match.group(2)),
        )

    @staticmethod
    def _ingredients_text(product: Mapping[str, Any]) -> Optional[str]:
        for key in _INGREDIENT_KEYS:
            value = product.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    @staticmethod
    def _ingredients(product: Mapping[str, Any], text: Optional[str]) -> List[str]:
        structured = product.get("ingredients")
        if isinstance(structured, list) and structured:
            names = []
            for entry in structured:
                if isinstance(entry, Mapping):
                    value = entry.get("text") or entry.get("id")
                else:
                    value = entry
                if value:
                    names.append(str(value))
            return names
        return split_ingredients_list(text) if text else []

    @staticmethod
    def _name(product: Mapping[str, Any]) -> Optional[str]:
        for key in ("product_name", "product_name_en", "generic_name"):
            value = product.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    @staticmethod
    def _brand(brands: Any) -> Optional[str]:
        if not isinstance(brands, str):
            return None
        first = brands.split(",")[0].strip()
        return first or None
