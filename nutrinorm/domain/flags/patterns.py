"""
Flag pattern table.

Synonym patterns per ingredient flag, and nutrient thresholds. Both are
evaluated in declaration order, which fixes output order.
"""

from __future__ import annotations

import re
from typing import Optional, Pattern, Tuple

from pydantic import BaseModel, ConfigDict

from nutrinorm.domain.flags.models import FlagCode, Severity


class IngredientRule(BaseModel):
    """One ingredient flag: any pattern matching emits the flag once."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    code: FlagCode
    severity: Severity
    reason: str
    patterns: Tuple[Pattern[str], ...]

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


class ThresholdRule(BaseModel):
    """
    Nutrient threshold on per-100 values.

    Matches when ``lower <= value`` and, if set, ``value < upper``.
    """

    model_config = ConfigDict(frozen=True)

    code: FlagCode
    severity: Severity
    nutrient: str
    lower: float
    upper: Optional[float] = None
    unit: str
    label: str

    def matches(self, value: Optional[float]) -> bool:
        if value is None or value < self.lower:
            return False
        return self.upper is None or value < self.upper


def _rule(
    code: FlagCode, severity: Severity, reason: str, *patterns: str
) -> IngredientRule:
    return IngredientRule(
        code=code,
        severity=severity,
        reason=reason,
        patterns=tuple(re.compile(p) for p in patterns),
    )


def _e_number(number: int) -> str:
    return rf"\be\s?{number}[a-z]?\b"


INGREDIENT_RULES: Tuple[IngredientRule, ...] = (
    _rule(
        FlagCode.HFCS,
        Severity.HIGH,
        "Contains high fructose corn syrup",
        r"\bhigh[\s-]?fructose[\s-]?corn[\s-]?syrup\b",
        r"\bhfcs\b",
        r"\b(?:glucose[\s-]fructose|fructose[\s-]glucose)\s+syrup\b",
        r"\bisoglucose\b",
    ),
    _rule(
        FlagCode.RED40,
        Severity.MED,
        "Contains Red 40 (Allura Red)",
        r"\bred\s*(?:no\s*)?40\b",
        r"\ballura\s+red\b",
        _e_number(129),
    ),
    _rule(
        FlagCode.YELLOW5,
        Severity.MED,
        "Contains Yellow 5 (Tartrazine)",
        r"\byellow\s*(?:no\s*)?5\b",
        r"\btartrazine\b",
        _e_number(102),
    ),
    _rule(
        FlagCode.BLUE1,
        Severity.MED,
        "Contains Blue 1 (Brilliant Blue)",
        r"\bblue\s*(?:no\s*)?1\b",
        r"\bbrilliant\s+blue\b",
        _e_number(133),
    ),
    _rule(
        FlagCode.ASPARTAME,
        Severity.MED,
        "Contains aspartame",
        r"\baspartame\b",
        r"\bnutrasweet\b",
        _e_number(951),
    ),
    _rule(
        FlagCode.SUCRALOSE,
        Severity.MED,
        "Contains sucralose",
        r"\bsucralose\b",
        r"\bsplenda\b",
        _e_number(955),
    ),
    _rule(
        FlagCode.ACESULFAME,
        Severity.MED,
        "Contains acesulfame potassium",
        r"\bacesulfame\b",
        r"\bace[\s-]?k\b",
        _e_number(950),
    ),
    _rule(
        FlagCode.MSG,
        Severity.LOW,
        "Contains monosodium glutamate",
        r"\bmsg\b",
        r"\bmonosodium\s+glutamate\b",
        _e_number(621),
    ),
    _rule(
        FlagCode.BHT,
        Severity.MED,
        "Contains BHT preservative",
        r"\bbht\b",
        r"\bbutylated\s+hydroxytoluene\b",
        _e_number(321),
    ),
    _rule(
        FlagCode.BHA,
        Severity.MED,
        "Contains BHA preservative",
        r"\bbha\b",
        r"\bbutylated\s+hydroxyanisole\b",
        _e_number(320),
    ),
    _rule(
        FlagCode.NITRITES,
        Severity.HIGH,
        "Contains nitrites or nitrates",
        r"\b(?:sodium|potassium)\s+nitr[ia]tes?\b",
        r"\bnitrites?\b",
        _e_number(249),
        _e_number(250),
        _e_number(251),
        _e_number(252),
    ),
    _rule(
        FlagCode.PHOSPHATES,
        Severity.LOW,
        "Contains added phosphates",
        r"\b(?:poly|pyro|di|tri)?phosphates?\b",
        r"\bphosphoric\s+acid\b",
        _e_number(338),
        _e_number(339),
        _e_number(340),
        _e_number(341),
        _e_number(450),
        _e_number(451),
        _e_number(452),
    ),
    _rule(
        FlagCode.CARRAGEENAN,
        Severity.LOW,
        "Contains carrageenan",
        r"\bcarrageenan\b",
        _e_number(407),
    ),
    _rule(
        FlagCode.PALM_OIL,
        Severity.LOW,
        "Contains palm oil",
        r"\bpalm\s+(?:kernel\s+)?(?:oil|fat)\b",
        r"\bpalm\s?olein\b",
    ),
)


# Higher band first for sugar and sodium
THRESHOLD_RULES: Tuple[ThresholdRule, ...] = (
    ThresholdRule(
        code=FlagCode.HIGH_SUGAR, severity=Severity.HIGH, nutrient="sugar_g",
        lower=22, unit="g", label="sugar",
    ),
    ThresholdRule(
        code=FlagCode.MED_SUGAR, severity=Severity.MED, nutrient="sugar_g",
        lower=15, upper=22, unit="g", label="sugar",
    ),
    ThresholdRule(
        code=FlagCode.HIGH_SATFAT, severity=Severity.MED, nutrient="satfat_g",
        lower=5, unit="g", label="saturated fat",
    ),
    ThresholdRule(
        code=FlagCode.HIGH_SODIUM, severity=Severity.MED, nutrient="sodium_mg",
        lower=600, unit="mg", label="sodium",
    ),
    ThresholdRule(
        code=FlagCode.MED_SODIUM, severity=Severity.LOW, nutrient="sodium_mg",
        lower=400, upper=600, unit="mg", label="sodium",
    ),
    ThresholdRule(
        code=FlagCode.HIGH_CALORIE, severity=Severity.LOW, nutrient="energy_kcal",
        lower=400, unit="kcal", label="calories",
    ),
)
