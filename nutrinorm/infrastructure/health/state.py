"""
Provider health state.

A frozen value object. The gate swaps the whole value on every change,
so a reader never observes a half-applied update.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class HealthStatus(str, Enum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    DOWN = "down"


class ProviderHealthState(BaseModel):
    """
    Health of one provider.

    Attributes:
        is_down: Provider believed unreachable
        last_checked_at: Monotonic time of the last probe (None: never probed)
        check_in_progress: A probe is in flight
    """

    model_config = ConfigDict(frozen=True)

    is_down: bool = False
    last_checked_at: Optional[float] = None
    check_in_progress: bool = False

    @property
    def status(self) -> HealthStatus:
        if self.is_down:
            return HealthStatus.DOWN
        if self.last_checked_at is None:
            return HealthStatus.UNKNOWN
        return HealthStatus.HEALTHY

    def is_fresh(self, now: float, ttl_s: float) -> bool:
        """Last probe result is still inside the cache window."""
        return self.last_checked_at is not None and now - self.last_checked_at < ttl_s
