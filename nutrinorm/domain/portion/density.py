"""
Density table.

Static food densities (g/ml) and default portion masses (g), with the
lookup functions used by the portion estimator.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from nutrinorm.domain.shared.text import normalize_food_name

DEFAULT_PORTION_GRAMS = 100.0
DEFAULT_DENSITY = 0.7

# Typical single-plate portion per food (grams)
DEFAULT_PORTIONS: Dict[str, float] = {
    # Protein
    "salmon": 140.0,
    "tuna": 120.0,
    "chicken": 150.0,
    "chicken breast": 170.0,
    "grilled chicken": 150.0,
    "beef": 150.0,
    "steak": 200.0,
    "pork": 150.0,
    "bacon": 30.0,
    "sausage": 75.0,
    "shrimp": 100.0,
    "tofu": 120.0,
    "egg": 50.0,
    "eggs": 100.0,
    "fried egg": 46.0,
    # Starch
    "rice": 160.0,
    "brown rice": 160.0,
    "fried rice": 200.0,
    "pasta": 180.0,
    "spaghetti": 180.0,
    "noodles": 180.0,
    "bread": 40.0,
    "toast": 30.0,
    "potato": 150.0,
    "mashed potatoes": 200.0,
    "french fries": 120.0,
    "fries": 120.0,
    "sweet potato": 130.0,
    "quinoa": 150.0,
    "oatmeal": 240.0,
    "tortilla": 45.0,
    # Vegetables
    "broccoli": 90.0,
    "asparagus": 90.0,
    "carrot": 60.0,
    "carrots": 80.0,
    "green beans": 90.0,
    "zucchini": 110.0,
    "tomato": 120.0,
    "cherry tomatoes": 75.0,
    "bell pepper": 100.0,
    "mushrooms": 70.0,
    "corn": 90.0,
    "peas": 80.0,
    "cauliflower": 100.0,
    "avocado": 70.0,
    # Leafy
    "salad": 80.0,
    "lettuce": 50.0,
    "spinach": 60.0,
    "kale": 60.0,
    "arugula": 30.0,
    "mixed greens": 60.0,
    # Fruit and other
    "apple": 180.0,
    "banana": 120.0,
    "orange": 130.0,
    "berries": 100.0,
    "strawberries": 100.0,
    "yogurt": 170.0,
    "cheese": 30.0,
    "soup": 250.0,
    "pizza": 110.0,
    "burger": 220.0,
    "sandwich": 200.0,
}

# Explicit densities (g/ml); liquids and common pantry items
DENSITIES: Dict[str, float] = {
    "water": 1.0,
    "milk": 1.03,
    "whole milk": 1.03,
    "skim milk": 1.035,
    "yogurt": 1.06,
    "cream": 1.01,
    "orange juice": 1.04,
    "apple juice": 1.04,
    "olive oil": 0.92,
    "honey": 1.42,
    "maple syrup": 1.33,
    "soup": 1.0,
    "coffee": 1.0,
    "tea": 1.0,
    "soda": 1.04,
    "beer": 1.01,
    "wine": 0.99,
    "flour": 0.53,
    "sugar": 0.85,
    "rice": 0.85,
    "oats": 0.41,
}

# Category keywords checked in order when no explicit density matches
CATEGORY_DENSITIES: Tuple[Tuple[str, float], ...] = (
    ("juice", 1.02),
    ("oil", 0.92),
    ("powder", 0.45),
    ("milk", 1.03),
    ("yogurt", 1.05),
    ("smoothie", 1.05),
    ("shake", 1.04),
    ("broth", 1.0),
    ("soup", 1.0),
    ("sauce", 1.05),
    ("syrup", 1.3),
    ("drink", 1.0),
    ("soda", 1.04),
    ("cereal", 0.25),
)


def _longest_match(name: str, table: Dict[str, float]) -> Optional[float]:
    """Value of the longest table key contained in ``name``."""
    key = normalize_food_name(name)
    if not key:
        return None
    if key in table:
        return table[key]

    padded = f" {key} "
    best_len = 0
    best: Optional[float] = None
    for candidate, value in table.items():
        if f" {candidate} " in padded and len(candidate) > best_len:
            best_len = len(candidate)
            best = value
    return best


def lookup_default_grams(food_name: str) -> float:
    """
    Default portion for a food, by most specific name match.

    Example:
        >>> lookup_default_grams("Fried Rice")
        200.0
        >>> lookup_default_grams("unknown food")
        100.0
    """
    grams = _longest_match(food_name, DEFAULT_PORTIONS)
    return DEFAULT_PORTION_GRAMS if grams is None else grams


def lookup_density(food_name: str) -> float:
    """
    Density in g/ml: explicit entry, then category keyword, then 0.7.

    Example:
        >>> lookup_density("fresh pineapple juice")
        1.02
        >>> lookup_density("protein powder")
        0.45
    """
    density = _longest_match(food_name, DENSITIES)
    if density is not None:
        return density

    tokens = normalize_food_name(food_name).split()
    for keyword, category_density in CATEGORY_DENSITIES:
        # "milkshake" and "oils" match, "boiled" does not
        if any(t.startswith(keyword) or t.endswith(keyword) for t in tokens):
            return category_density
    return DEFAULT_DENSITY
