"""
Portion estimator.

Turns a food name plus optional visual signals (item box, plate box) or
a volume into a bounded gram estimate with a confidence band.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from nutrinorm.domain.portion.density import lookup_default_grams, lookup_density
from nutrinorm.domain.portion.models import (
    BoundingBox,
    ConfidenceBand,
    FoodClass,
    ImageSize,
    PortionEstimate,
)
from nutrinorm.domain.shared.text import normalize_food_name

MIN_GRAMS = 10.0
MAX_GRAMS = 600.0

# (upper bound of item/plate area ratio, size multiplier)
RATIO_BANDS: Tuple[Tuple[float, float], ...] = (
    (0.07, 0.75),
    (0.13, 1.00),
    (0.25, 1.25),
)
LARGE_MULTIPLIER = 1.50

# Checked in this order; first hit wins
FOOD_CLASS_KEYWORDS: Tuple[Tuple[FoodClass, frozenset], ...] = (
    (
        FoodClass.PROTEIN,
        frozenset(
            {
                "chicken", "beef", "steak", "pork", "salmon", "tuna", "fish",
                "shrimp", "prawn", "turkey", "lamb", "egg", "eggs", "tofu",
                "tempeh", "bacon", "ham", "sausage", "cod", "meat",
                "lentils", "chickpeas",
            }
        ),
    ),
    (
        FoodClass.STARCH,
        frozenset(
            {
                "rice", "pasta", "spaghetti", "noodles", "bread", "toast",
                "potato", "potatoes", "fries", "quinoa", "oatmeal", "oats",
                "tortilla", "couscous", "bagel", "bun", "corn",
            }
        ),
    ),
    (
        FoodClass.VEG,
        frozenset(
            {
                "broccoli", "asparagus", "carrot", "carrots", "zucchini",
                "tomato", "tomatoes", "pepper", "peppers", "cauliflower",
                "mushroom", "mushrooms", "peas", "cucumber", "eggplant",
                "onion", "onions", "beans", "vegetables", "veggies",
            }
        ),
    ),
    (
        FoodClass.LEAFY,
        frozenset(
            {
                "lettuce", "spinach", "kale", "arugula", "salad", "greens",
                "cabbage", "chard", "romaine",
            }
        ),
    ),
)


def clamp_grams(grams: float) -> float:
    """Clamp a mass to [10, 600]; NaN maps to the lower bound."""
    if math.isnan(grams):
        return MIN_GRAMS
    return min(MAX_GRAMS, max(MIN_GRAMS, grams))


def classify_food(food_name: str) -> FoodClass:
    """
    Classify a food name as protein / starch / veg / leafy / other.

    Example:
        >>> classify_food("grilled chicken").value
        'protein'
        >>> classify_food("lettuce").value
        'leafy'
    """
    tokens = set(normalize_food_name(food_name).split())
    for food_class, keywords in FOOD_CLASS_KEYWORDS:
        if tokens & keywords:
            return food_class
    return FoodClass.OTHER


def ratio_multiplier(ratio: float) -> float:
    """Size multiplier for an item/plate area ratio."""
    for upper, multiplier in RATIO_BANDS:
        if ratio < upper:
            return multiplier
    return LARGE_MULTIPLIER


class PortionEstimator:
    """
    Estimates portion mass for detected foods.

    Confidence bands:
    - high: plate box and a usable item box
    - medium: plate box without a usable item box, or a volume conversion
    - low: no plate reference at all

    Example:
        >>> estimator = PortionEstimator()
        >>> estimate = estimator.estimate("salmon")
        >>> estimate.grams, estimate.confidence
        (140.0, 'low')
    """

    def estimate(
        self,
        food_name: str,
        item_box: Optional[BoundingBox] = None,
        image_size: Optional[ImageSize] = None,
        plate_box: Optional[BoundingBox] = None,
        volume_ml: Optional[float] = None,
    ) -> PortionEstimate:
        """
        Estimate grams for a single food.

        Args:
            food_name: Detected food name
            item_box: Bounding box of the food (optional)
            image_size: Image dimensions, used to normalize pixel boxes
            plate_box: Reference plate bounding box (optional)
            volume_ml: Known volume; converted via density when given

        Returns:
            PortionEstimate with grams in [10, 600]
        """
        food_class = classify_food(food_name)

        if volume_ml is not None and volume_ml > 0:
            return PortionEstimate(
                name=food_name,
                grams=self.grams_from_volume(food_name, volume_ml),
                confidence=ConfidenceBand.MEDIUM,
                food_class=food_class,
            )

        grams = lookup_default_grams(food_name)
        multiplier = 1.0

        if plate_box is None:
            confidence = ConfidenceBand.LOW
        else:
            ratio = self._area_ratio(item_box, plate_box, image_size)
            if ratio is None:
                confidence = ConfidenceBand.MEDIUM
            else:
                multiplier = ratio_multiplier(ratio)
                confidence = ConfidenceBand.HIGH

        return PortionEstimate(
            name=food_name,
            grams=clamp_grams(grams * multiplier),
            confidence=confidence,
            food_class=food_class,
            multiplier=multiplier,
        )

    def estimate_many(
        self,
        food_names: Sequence[str],
        item_boxes: Optional[Sequence[Optional[BoundingBox]]] = None,
        image_size: Optional[ImageSize] = None,
        plate_box: Optional[BoundingBox] = None,
    ) -> List[PortionEstimate]:
        """Estimate each food; ``item_boxes`` is matched by index."""
        boxes = list(item_boxes or [])
        return [
            self.estimate(
                name,
                item_box=boxes[i] if i < len(boxes) else None,
                image_size=image_size,
                plate_box=plate_box,
            )
            for i, name in enumerate(food_names)
        ]

    def grams_from_volume(self, food_name: str, volume_ml: float) -> float:
        """``ml * density``, clamped."""
        return clamp_grams(volume_ml * lookup_density(food_name))

    @staticmethod
    def _area_ratio(
        item_box: Optional[BoundingBox],
        plate_box: BoundingBox,
        image_size: Optional[ImageSize],
    ) -> Optional[float]:
        if item_box is None or item_box.is_degenerate or plate_box.is_degenerate:
            return None
        plate_area = plate_box.area(image_size)
        if plate_area <= 0:
            return None
        return item_box.area(image_size) / plate_area


def estimate_portions(
    food_names: Sequence[str],
    item_boxes: Optional[Sequence[Optional[BoundingBox]]] = None,
    image_size: Optional[ImageSize] = None,
    plate_box: Optional[BoundingBox] = None,
) -> List[PortionEstimate]:
    """Shortcut for ``PortionEstimator().estimate_many(...)``."""
    return PortionEstimator().estimate_many(
        food_names, item_boxes, image_size, plate_box
    )
