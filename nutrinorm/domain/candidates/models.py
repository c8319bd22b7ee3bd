"""
Food candidate model used during cross-provider merging.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from nutrinorm.domain.shared.text import normalize_food_name


def _lower(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class Candidate(BaseModel):
    """
    Food candidate from a single provider.

    Attributes:
        name: Display name as returned by the provider
        class_id: Provider class / category id (optional)
        brand_name: Brand (optional)
        provider_ref: Provider-side identifier (optional)

    Example:
        >>> c = Candidate(name="Crème Fraîche", brand_name="Président")
        >>> c.canonical_key
        'creme fraiche||président|'
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Provider display name")
    class_id: Optional[str] = None
    brand_name: Optional[str] = None
    provider_ref: Optional[str] = None

    @property
    def canonical_key(self) -> str:
        """``name|classId|brand|ref``; equal keys mean the same food."""
        return "|".join(
            (
                normalize_food_name(self.name),
                _lower(self.class_id),
                _lower(self.brand_name),
                _lower(self.provider_ref),
            )
        )
