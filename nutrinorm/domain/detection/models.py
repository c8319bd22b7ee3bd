"""
Detection domain models.

Value objects produced and consumed by the detection router.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DetectMode(str, Enum):
    """
    Detection strategy, resolved once from configuration.

    GPT_ONLY: LLM backend only.
    GPT_FIRST: LLM backend, falling back to vision when it yields nothing.
    VISION_ONLY: vision backend only (the lyf detector when registered).
    """

    GPT_ONLY = "GPT_ONLY"
    GPT_FIRST = "GPT_FIRST"
    VISION_ONLY = "VISION_ONLY"


class DetectionSource(str, Enum):
    """Backend that produced a detection."""

    GPT = "gpt"
    VISION = "vision"
    BARCODE = "barcode"
    LYF = "lyf"


class RawDetection(BaseModel):
    """
    A single label as returned by a detection backend.

    Nothing is filtered or bounded yet; ``portion_grams`` is whatever the
    provider suggested (if anything).
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Raw label from the provider")
    confidence: float = Field(0.7, ge=0.0, le=1.0)
    portion_grams: Optional[float] = Field(
        None, description="Provider-supplied portion estimate in grams"
    )

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: object) -> float:
        """Providers occasionally send scores outside [0, 1] or as strings."""
        if v is None:
            return 0.7
        value = float(v)  # type: ignore[arg-type]
        return min(1.0, max(0.0, value))


class DetectedItem(BaseModel):
    """
    Normalized detection handed to UI and persistence collaborators.

    Attributes:
        name: Lowercased food name
        grams: Estimated mass, always within [10, 600]
        confidence: Provider confidence (0.0 - 1.0)
        source: Backend that produced the item

    Example:
        >>> item = DetectedItem(
        ...     name="salmon", grams=150, confidence=0.9,
        ...     source=DetectionSource.GPT,
        ... )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    grams: float = Field(..., ge=10, le=600, description="Mass in grams")
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: DetectionSource
