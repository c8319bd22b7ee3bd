"""
User-facing flag explanations.

Presentation only: maps flag codes to copy with light interpolation of
serving grams, repeat counts and user goals. Flag computation never
depends on this module.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from nutrinorm.domain.flags.models import Flag, FlagCode
from nutrinorm.domain.label.models import NutrientSet

_TEMPLATES: Dict[str, str] = {
    FlagCode.HFCS.value: "High fructose corn syrup is a refined sweetener linked to excess sugar intake.",
    FlagCode.RED40.value: "Red 40 is a synthetic dye some people choose to avoid.",
    FlagCode.YELLOW5.value: "Yellow 5 (tartrazine) is a synthetic dye that can cause sensitivity in some people.",
    FlagCode.BLUE1.value: "Blue 1 is a synthetic dye used for color only.",
    FlagCode.ASPARTAME.value: "Aspartame is an artificial sweetener.",
    FlagCode.SUCRALOSE.value: "Sucralose is an artificial sweetener.",
    FlagCode.ACESULFAME.value: "Acesulfame K is an artificial sweetener often paired with others.",
    FlagCode.MSG.value: "Contains MSG, a flavor enhancer some people prefer to limit.",
    FlagCode.BHT.value: "BHT is a synthetic preservative.",
    FlagCode.BHA.value: "BHA is a synthetic preservative.",
    FlagCode.NITRITES.value: "Nitrites are curing agents common in processed meats.",
    FlagCode.PHOSPHATES.value: "Added phosphates are common in highly processed foods.",
    FlagCode.CARRAGEENAN.value: "Carrageenan is a thickener that can upset sensitive stomachs.",
    FlagCode.PALM_OIL.value: "Palm oil is high in saturated fat.",
    FlagCode.HIGH_SUGAR.value: "High in sugar.",
    FlagCode.MED_SUGAR.value: "Moderate sugar content.",
    FlagCode.HIGH_SATFAT.value: "High in saturated fat.",
    FlagCode.HIGH_SODIUM.value: "High in sodium.",
    FlagCode.MED_SODIUM.value: "Moderate sodium content.",
    FlagCode.HIGH_CALORIE.value: "Energy dense.",
}

# flag code -> (nutrient field, unit)
_NUTRIENT_FOR_CODE: Dict[str, Tuple[str, str]] = {
    FlagCode.HIGH_SUGAR.value: ("sugar_g", "g sugar"),
    FlagCode.MED_SUGAR.value: ("sugar_g", "g sugar"),
    FlagCode.HIGH_SATFAT.value: ("satfat_g", "g saturated fat"),
    FlagCode.HIGH_SODIUM.value: ("sodium_mg", "mg sodium"),
    FlagCode.MED_SODIUM.value: ("sodium_mg", "mg sodium"),
    FlagCode.HIGH_CALORIE.value: ("energy_kcal", " kcal"),
}

# goal -> flag codes it makes more relevant
_GOAL_CODES: Dict[str, Tuple[str, ...]] = {
    "weight_loss": ("high_calorie", "high_sugar", "med_sugar", "hfcs"),
    "blood_sugar": ("high_sugar", "med_sugar", "hfcs"),
    "heart_health": ("high_sodium", "med_sodium", "high_satfat", "palm_oil"),
    "low_sodium": ("high_sodium", "med_sodium"),
}

_GOAL_COPY: Dict[str, str] = {
    "weight_loss": "weight loss",
    "blood_sugar": "blood sugar",
    "heart_health": "heart health",
    "low_sodium": "low sodium",
}


class ExplanationContext(BaseModel):
    """Optional context for interpolation."""

    model_config = ConfigDict(frozen=True)

    serving_grams: Optional[float] = Field(None, gt=0)
    per100: Optional[NutrientSet] = None
    count: int = Field(0, ge=0, description="Times this flag was seen recently")
    goals: Tuple[str, ...] = ()


def _serving_amount(code: str, context: ExplanationContext) -> Optional[str]:
    if code not in _NUTRIENT_FOR_CODE or not context.serving_grams or not context.per100:
        return None
    field, unit = _NUTRIENT_FOR_CODE[code]
    per100 = getattr(context.per100, field)
    if per100 is None:
        return None
    amount = round(per100 * context.serving_grams / 100)
    return f"About {amount}{unit} in a {context.serving_grams:g}g serving."


def explain_flag(flag: Flag, context: Optional[ExplanationContext] = None) -> str:
    """
    Explanation text for one flag.

    Example:
        >>> from nutrinorm.domain.flags.models import Severity
        >>> flag = Flag(code=FlagCode.HIGH_SUGAR, severity=Severity.HIGH, reason="")
        >>> explain_flag(flag, ExplanationContext(
        ...     serving_grams=50, per100=NutrientSet(sugar_g=30), goals=("blood_sugar",),
        ... ))
        'High in sugar. About 15g sugar in a 50g serving. Worth watching for your blood sugar goal.'
    """
    context = context or ExplanationContext()
    code = str(flag.code)
    parts: List[str] = [_TEMPLATES.get(code, flag.reason or code)]

    amount = _serving_amount(code, context)
    if amount:
        parts.append(amount)

    if context.count > 1:
        parts.append(f"Seen {context.count} times recently.")

    for goal in context.goals:
        if code in _GOAL_CODES.get(goal, ()):
            parts.append(f"Worth watching for your {_GOAL_COPY[goal]} goal.")
            break

    return " ".join(parts)


def explain_flags(
    flags: List[Flag], context: Optional[ExplanationContext] = None
) -> Dict[str, str]:
    """Explanations keyed by flag code, in flag order."""
    return {str(flag.code): explain_flag(flag, context) for flag in flags}
