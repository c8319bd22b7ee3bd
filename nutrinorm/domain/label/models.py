"""
Nutrition label domain models.

All nutrient fields are optional: ``None`` means "not observed" and is
never defaulted to zero.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServingUnit(str, Enum):
    GRAM = "g"
    MILLILITRE = "ml"


class NutrientSet(BaseModel):
    """
    Nutrient values for one reference quantity (per 100 or per serving).

    Attributes:
        energy_kcal: Energy in kcal
        protein_g: Protein in grams
        carbs_g: Carbohydrates in grams
        sugar_g: Total sugars in grams
        fat_g: Total fat in grams
        satfat_g: Saturated fat in grams
        fiber_g: Dietary fiber in grams
        sodium_mg: Sodium in milligrams
    """

    model_config = ConfigDict(frozen=True)

    energy_kcal: Optional[float] = Field(None, ge=0)
    protein_g: Optional[float] = Field(None, ge=0)
    carbs_g: Optional[float] = Field(None, ge=0)
    sugar_g: Optional[float] = Field(None, ge=0)
    fat_g: Optional[float] = Field(None, ge=0)
    satfat_g: Optional[float] = Field(None, ge=0)
    fiber_g: Optional[float] = Field(None, ge=0)
    sodium_mg: Optional[float] = Field(None, ge=0)

    def is_empty(self) -> bool:
        """True when no nutrient was observed."""
        return all(value is None for value in self.model_dump().values())

    def map_values(self, fn: Callable[[float], float]) -> "NutrientSet":
        """Apply ``fn`` to every observed value; unset fields stay unset."""
        return NutrientSet(
            **{
                key: (None if value is None else fn(value))
                for key, value in self.model_dump().items()
            }
        )


class ServingSize(BaseModel):
    """
    Declared serving size.

    Example:
        >>> ServingSize(raw="(30 g)", amount=30, unit=ServingUnit.GRAM).grams
        30.0
        >>> ServingSize(raw="(250 ml)", amount=250, unit=ServingUnit.MILLILITRE).grams
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    amount: float = Field(..., gt=0)
    unit: ServingUnit

    @property
    def is_volume(self) -> bool:
        return self.unit == ServingUnit.MILLILITRE

    @property
    def grams(self) -> Optional[float]:
        """Serving mass; ``None`` for volume servings."""
        return None if self.is_volume else float(self.amount)


class ParsedNutritionFacts(BaseModel):
    """
    Result of parsing a nutrition panel.

    Attributes:
        per100: Values per 100 g/ml
        per_serving: Values per declared serving
        serving_size_raw: Serving size text as matched
        serving: Parsed serving size (optional)
        ingredients_text: Text after the "ingredients:" marker
        per100_derived: per100 was computed from per-serving values
        per_serving_derived: per_serving was computed from per100 values
    """

    model_config = ConfigDict(frozen=True)

    per100: NutrientSet = Field(default_factory=NutrientSet)
    per_serving: NutrientSet = Field(default_factory=NutrientSet)
    serving_size_raw: Optional[str] = None
    serving: Optional[ServingSize] = None
    ingredients_text: Optional[str] = None
    per100_derived: bool = False
    per_serving_derived: bool = False

    @classmethod
    def empty(cls) -> "ParsedNutritionFacts":
        return cls()

    def has_nutrition(self) -> bool:
        return not (self.per100.is_empty() and self.per_serving.is_empty())
