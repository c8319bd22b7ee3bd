"""
Portion domain models.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class ConfidenceBand(str, Enum):
    """How much corroborating signal supported a portion estimate."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FoodClass(str, Enum):
    """Coarse food class used for display annotation."""

    PROTEIN = "protein"
    STARCH = "starch"
    VEG = "veg"
    LEAFY = "leafy"
    OTHER = "other"


class ImageSize(BaseModel):
    """Image dimensions in pixels."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class BoundingBox(BaseModel):
    """
    Axis-aligned bounding box.

    Coordinates are pixels when an ``ImageSize`` accompanies the box,
    otherwise they are taken as already normalized to [0, 1].

    Example:
        >>> box = BoundingBox.from_points([(10, 10), (110, 60)])
        >>> box.area()
        5000.0
    """

    model_config = ConfigDict(frozen=True)

    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> "BoundingBox":
        """Axis-aligned bounds of a polygon (e.g. vision vertices)."""
        xs = [float(p[0]) for p in points]
        ys = [float(p[1]) for p in points]
        return cls(x_min=min(xs), y_min=min(ys), x_max=max(xs), y_max=max(ys))

    @property
    def width(self) -> float:
        return max(0.0, self.x_max - self.x_min)

    @property
    def height(self) -> float:
        return max(0.0, self.y_max - self.y_min)

    def area(self, image_size: Optional[ImageSize] = None) -> float:
        """Box area, normalized by image area when ``image_size`` is given."""
        area = self.width * self.height
        if image_size is not None:
            area /= image_size.width * image_size.height
        return area

    @property
    def is_degenerate(self) -> bool:
        """Zero-width or zero-height boxes carry no size signal."""
        return self.width <= 0 or self.height <= 0


class PortionEstimate(BaseModel):
    """
    Estimated mass for one food.

    Attributes:
        name: Food name as given
        grams: Estimated mass, clamped to [10, 600]
        confidence: Confidence band
        food_class: Display classification
        multiplier: Plate-ratio size multiplier applied (1.0 if none)
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    name: str
    grams: float = Field(..., ge=10, le=600)
    confidence: ConfidenceBand
    food_class: FoodClass = FoodClass.OTHER
    multiplier: float = Field(1.0, gt=0)
