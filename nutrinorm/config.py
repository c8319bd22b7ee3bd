"""
Pipeline configuration.

Settings are read from environment variables once at startup
(optionally after loading a ``.env`` file) and passed to the router and
gates. Nothing in the pipeline re-reads the environment per call.

Example .env:
    DETECT_MODE=GPT_FIRST
    ENRICH_HEALTH_URL=https://enrich.example.com/health
    ENRICH_HEALTH_TTL_S=30
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from nutrinorm.domain.detection.models import DetectMode

_TRUTHY = {"1", "true", "yes", "on"}

# Accepted spellings for DETECT_MODE
_MODE_ALIASES = {
    "GPT_ONLY": DetectMode.GPT_ONLY,
    "GPT": DetectMode.GPT_ONLY,
    "GPT_FIRST": DetectMode.GPT_FIRST,
    "HYBRID": DetectMode.GPT_FIRST,
    "VISION_ONLY": DetectMode.VISION_ONLY,
    "VISION": DetectMode.VISION_ONLY,
}


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def parse_detect_mode(raw: Optional[str]) -> Optional[DetectMode]:
    """Parse a mode name (case-insensitive); unknown names give ``None``."""
    if not raw:
        return None
    return _MODE_ALIASES.get(raw.strip().upper().replace("-", "_"))


class PipelineSettings(BaseModel):
    """
    Immutable pipeline settings.

    Attributes:
        detect_mode: Explicit mode override (DETECT_MODE)
        allowed_modes: Modes DETECT_MODE may select (DETECT_MODE_ALLOWED)
        use_vision_only: FEATURE_USE_VISION_ONLY
        enrich_safe_mode: Kill switch for enrichment calls (ENRICH_SAFE_MODE)
        enrich_health_url: Health endpoint probed by the gate
        enrich_health_ttl_s: Probe cache window in seconds
        enrich_probe_timeout_s: Probe timeout in seconds
        enrich_force_up: Force the enrichment gate Healthy
        ocr_lookahead_chars: Forward window for nutrient values on labels
    """

    model_config = ConfigDict(frozen=True)

    detect_mode: Optional[DetectMode] = None
    allowed_modes: Tuple[DetectMode, ...] = tuple(DetectMode)
    use_vision_only: bool = False
    enrich_safe_mode: bool = False
    enrich_health_url: Optional[str] = None
    enrich_health_ttl_s: float = Field(30.0, gt=0)
    enrich_probe_timeout_s: float = Field(3.0, gt=0)
    enrich_force_up: bool = False
    ocr_lookahead_chars: int = Field(24, ge=1, le=200)

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "PipelineSettings":
        """
        Build settings from environment variables.

        Args:
            env_file: Optional .env file loaded first (existing vars win)
            environ: Mapping to read instead of ``os.environ`` (tests)

        Returns:
            PipelineSettings
        """
        if env_file is not None:
            load_dotenv(env_file, override=False)
        env = os.environ if environ is None else environ

        allowed_raw = env.get("DETECT_MODE_ALLOWED", "")
        allowed = tuple(
            mode
            for mode in (parse_detect_mode(part) for part in allowed_raw.split(","))
            if mode is not None
        )

        return cls(
            detect_mode=parse_detect_mode(env.get("DETECT_MODE")),
            allowed_modes=allowed or tuple(DetectMode),
            use_vision_only=_env_bool(env, "FEATURE_USE_VISION_ONLY"),
            enrich_safe_mode=_env_bool(env, "ENRICH_SAFE_MODE"),
            enrich_health_url=env.get("ENRICH_HEALTH_URL") or None,
            enrich_health_ttl_s=_env_float(env, "ENRICH_HEALTH_TTL_S", 30.0),
            enrich_probe_timeout_s=_env_float(env, "ENRICH_PROBE_TIMEOUT_S", 3.0),
            enrich_force_up=_env_bool(env, "ENRICH_FORCE_UP"),
            ocr_lookahead_chars=int(_env_float(env, "OCR_LOOKAHEAD_CHARS", 24)),
        )


def resolve_detect_mode(
    settings: PipelineSettings, context: Optional[str] = None
) -> DetectMode:
    """
    Resolve the detection mode once, at startup or per entry point.

    Order: allowed explicit DETECT_MODE, then the "log" context (forces
    GPT_ONLY unless DETECT_MODE asked for VISION_ONLY), then
    FEATURE_USE_VISION_ONLY, then GPT_ONLY.

    Example:
        >>> resolve_detect_mode(PipelineSettings(detect_mode=DetectMode.GPT_FIRST))
        <DetectMode.GPT_FIRST: 'GPT_FIRST'>
    """
    requested = settings.detect_mode
    if requested is not None and requested in settings.allowed_modes:
        return requested
    if context == "log" and requested != DetectMode.VISION_ONLY:
        return DetectMode.GPT_ONLY
    if settings.use_vision_only:
        return DetectMode.VISION_ONLY
    return DetectMode.GPT_ONLY
