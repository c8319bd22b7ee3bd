"""
Ingredient / nutrient flag models.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


class FlagCode(str, Enum):
    """Stable identifiers for ingredient and nutrient concerns."""

    # Ingredient flags
    HFCS = "hfcs"
    RED40 = "red40"
    YELLOW5 = "yellow5"
    BLUE1 = "blue1"
    ASPARTAME = "aspartame"
    SUCRALOSE = "sucralose"
    ACESULFAME = "acesulfame"
    MSG = "msg"
    BHT = "bht"
    BHA = "bha"
    NITRITES = "nitrites"
    PHOSPHATES = "phosphates"
    CARRAGEENAN = "carrageenan"
    PALM_OIL = "palm_oil"

    # Nutrient threshold flags
    HIGH_SUGAR = "high_sugar"
    MED_SUGAR = "med_sugar"
    HIGH_SATFAT = "high_satfat"
    HIGH_SODIUM = "high_sodium"
    MED_SODIUM = "med_sodium"
    HIGH_CALORIE = "high_calorie"


class Flag(BaseModel):
    """
    A single risk flag.

    Example:
        >>> flag = Flag(code=FlagCode.HFCS, severity=Severity.HIGH,
        ...             reason="Contains high fructose corn syrup")
        >>> flag.code
        'hfcs'
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    code: FlagCode
    severity: Severity
    reason: str = Field(..., description="Short human-readable reason")
