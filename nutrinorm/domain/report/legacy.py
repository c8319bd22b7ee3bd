
"""
Legacy report adapter.

Existing consumers key off ``status``; its derivation must stay exactly:

1. ``not_found``: a barcode was scanned but no product name resolved
2. ``no_detection``: no name, no health signal and no nutrition
3. ``ok``: everything else
"""

from __future__ import annotations

from typing import Dict

from nutrinorm.domain.label.models import NutrientSet
from nutrinorm.domain.report.models import (
    HealthReport,
    LegacyFlag,
    LegacyReport,
    LegacyStatus,
)

_LEVELS = {"high": "danger", "med": "warning", "low": "info"}

# NutrientSet field -> legacy key
_LEGACY_KEYS = {
    "energy_kcal": "calories",
    "protein_g": "protein",
    "carbs_g": "carbs",
    "fat_g": "fat",
    "sugar_g": "sugar",
    "fiber_g": "fiber",
    "sodium_mg": "sodium",
}


def _has_name(report: HealthReport) -> bool:
    if report.product_name and report.product_name.strip():
        return True
    return any(item.name for item in report.items)


def _has_health_signal(report: HealthReport) -> bool:
    return bool(report.flags) or report.health_score is not None


def _has_nutrition(report: HealthReport) -> bool:
    return report.facts.has_nutrition()


def derive_legacy_status(report: HealthReport) -> LegacyStatus:
    if report.barcode and not (report.product_name or "").strip():
        return LegacyStatus.NOT_FOUND
    if not (_has_name(report) or _has_health_signal(report) or _has_nutrition(report)):
        return LegacyStatus.NO_DETECTION
    return LegacyStatus.OK


def _legacy_nutrition(nutrients: NutrientSet) -> Dict[str, float]:
    values = nutrients.model_dump()
    return {
        legacy: values[field]
        for field, legacy in _LEGACY_KEYS.items()
        if values[field] is not None
    }


def to_legacy_report(report: HealthReport) -> LegacyReport:
    """
    Convert a report to the legacy shape.

    Nutrition is per100 when observed, otherwise per serving.

    Example:
        >>> from nutrinorm.domain.report.models import ReportSource
        >>> to_legacy_report(HealthReport(source=ReportSource.PHOTO)).status
        'no_detection'
    """
    facts = report.facts
    nutrients = facts.per100 if not facts.per100.is_empty() else facts.per_serving
    serving_grams = facts.serving.grams if facts.serving else None

    return LegacyReport(
        status=derive_legacy_status(report),
        product_name=report.product_name,
        brand=report.brand,
        barcode=report.barcode,
        health_score=report.health_score,
        flags=[
            LegacyFlag(
                id=str(flag.code),
                label=flag.reason,
                level=_LEVELS.get(str(flag.severity), "info"),
            )
            for flag in report.flags
        ],
        nutrition=_legacy_nutrition(nutrients),
        serving_grams=serving_grams,
        ingredients_text=facts.ingredients_text,
        items=[
            {
                "name": item.name,
                "grams": item.grams,
                "confidence": item.confidence,
                "source": item.source.value,
            }
            for item in report.items
        ],
        fallback=report.fallback,
    )
