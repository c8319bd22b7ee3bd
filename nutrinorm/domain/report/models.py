"""
Report models.

``HealthReport`` is the assembled output of one analysis. ``LegacyReport``
is the camelCase shape existing consumers still read.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from nutrinorm.domain.detection.models import DetectedItem
from nutrinorm.domain.flags.models import Flag
from nutrinorm.domain.label.models import ParsedNutritionFacts


class ReportSource(str, Enum):
    """Input modality the report was built from."""

    PHOTO = "photo"
    LABEL = "label"
    BARCODE = "barcode"


class HealthReport(BaseModel):
    """
    Assembled analysis result.

    Attributes:
        source: Input modality
        product_name: Resolved product name (barcode / label)
        brand: Brand (optional)
        barcode: Scanned barcode value (optional)
        items: Detected items (photo path)
        facts: Parsed nutrition facts
        flags: Deduplicated flags
        health_score: Score from the scoring collaborator (optional)
        fallback: An upstream provider was skipped or failed
        error: Human-readable provider error when ``fallback`` is set
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    source: ReportSource
    product_name: Optional[str] = None
    brand: Optional[str] = None
    barcode: Optional[str] = None
    items: List[DetectedItem] = Field(default_factory=list)
    facts: ParsedNutritionFacts = Field(default_factory=ParsedNutritionFacts)
    flags: List[Flag] = Field(default_factory=list)
    health_score: Optional[float] = Field(None, ge=0, le=100)
    fallback: bool = False
    error: Optional[str] = None


class LegacyStatus(str, Enum):
    OK = "ok"
    NO_DETECTION = "no_detection"
    NOT_FOUND = "not_found"


class LegacyFlag(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    label: str
    level: str


class LegacyReport(BaseModel):
    """Backward-compatible report shape (serialize with ``by_alias=True``)."""

    model_config = ConfigDict(
        frozen=True,
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    status: LegacyStatus
    product_name: Optional[str] = None
    brand: Optional[str] = None
    barcode: Optional[str] = None
    health_score: Optional[float] = None
    flags: List[LegacyFlag] = Field(default_factory=list)
    nutrition: Dict[str, float] = Field(default_factory=dict)
    serving_grams: Optional[float] = None
    ingredients_text: Optional[str] = None
    items: List[Dict[str, object]] = Field(default_factory=list)
    fallback: bool = False
