"""
Detection router.

Top-level orchestrator for photo detection: dispatches to the backend
implied by the detection mode, drops non-food labels, and returns
bounded ``DetectedItem`` values.

Provider trouble never escapes as an exception: the router answers with
an empty (or shorter) list and logs why. Cancellation and caller aborts
do propagate.
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Mapping, Optional, Tuple

import structlog

from nutrinorm.domain.detection.filters import (
    extract_raw_detections,
    filter_detected_items,
)
from nutrinorm.domain.detection.models import (
    DetectedItem,
    DetectionSource,
    DetectMode,
    RawDetection,
)
from nutrinorm.domain.detection.ports import DetectionBackend
from nutrinorm.domain.portion.estimator import PortionEstimator, clamp_grams
from nutrinorm.domain.shared.errors import OperationAbortedError
from nutrinorm.infrastructure.health.gate import ProviderHealthGate, run_abortable
from nutrinorm.infrastructure.metrics import (
    DETECTION_ITEMS_TOTAL,
    MetricsRegistry,
    registry,
)

logger = structlog.get_logger(__name__)


class DetectionRouter:
    """
    Routes an image to detection backends according to ``mode``.

    - GPT_ONLY: gpt
    - GPT_FIRST: gpt, then vision when gpt fails or finds nothing
    - VISION_ONLY: lyf when registered, else vision

    Example:
        >>> router = DetectionRouter(
        ...     backends={DetectionSource.GPT: gpt_client},
        ...     mode=DetectMode.GPT_ONLY,
        ... )
        >>> items = await router.route(image_bytes)
    """

    def __init__(
        self,
        backends: Mapping[DetectionSource, DetectionBackend],
        mode: DetectMode,
        estimator: Optional[PortionEstimator] = None,
        gates: Optional[Mapping[DetectionSource, ProviderHealthGate]] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        """Initialize router.

        Args:
            backends: Detection backend per source
            mode: Detection mode, resolved once from configuration
            estimator: Portion estimator for items without a provider portion
            gates: Optional health gate per source
            metrics: Metrics registry (defaults to the process registry)
        """
        self.backends = dict(backends)
        self.mode = mode
        self.estimator = estimator or PortionEstimator()
        self.gates = dict(gates or {})
        self._metrics = metrics or registry()

        logger.info(
            "Detection router ready",
            mode=mode.value,
            backends=sorted(source.value for source in self.backends),
        )

    def plan(self, mode: Optional[DetectMode] = None) -> Tuple[DetectionSource, ...]:
        """Backends tried for ``mode``, in order."""
        mode = mode or self.mode
        vision = (
            DetectionSource.LYF
            if DetectionSource.LYF in self.backends
            else DetectionSource.VISION
        )
        if mode == DetectMode.GPT_ONLY:
            return (DetectionSource.GPT,)
        if mode == DetectMode.GPT_FIRST:
            return (DetectionSource.GPT, vision)
        return (vision,)

    async def route(
        self,
        image: Any,
        mode: Optional[DetectMode] = None,
        abort: Optional[asyncio.Event] = None,
    ) -> List[DetectedItem]:
        """
        Detect foods in an image.

        Args:
            image: Opaque image handle passed to the backend
            mode: Override of the configured mode (optional)
            abort: Optional abort event

        Returns:
            Detected items; empty on missing input or provider failure

        Raises:
            OperationAbortedError: ``abort`` was set
            asyncio.CancelledError: The calling task was cancelled
        """
        if image is None or (isinstance(image, (bytes, str)) and not image):
            logger.info("No image supplied")
            return []

        plan = self.plan(mode)
        for index, source in enumerate(plan):
            items = await self._detect(source, image, abort)
            if items:
                self._metrics.counter(
                    DETECTION_ITEMS_TOTAL, source=source.value
                ).inc(len(items))
                return items
            if index + 1 < len(plan):
                logger.info(
                    "Falling back to next detector",
                    source=source.value,
                    fallback=plan[index + 1].value,
                )

        logger.info("Detection returned no items", mode=(mode or self.mode).value)
        return []

    async def _detect(
        self,
        source: DetectionSource,
        image: Any,
        abort: Optional[asyncio.Event],
    ) -> List[DetectedItem]:
        backend = self.backends.get(source)
        if backend is None:
            logger.warning("Detection backend not registered", source=source.value)
            return []

        try:
            payload = await self._call_backend(source, backend, image, abort)
        except (asyncio.CancelledError, OperationAbortedError):
            raise
        except Exception as e:
            logger.warning(
                "Detection backend failed",
                source=source.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        raw = extract_raw_detections(payload)
        kept = filter_detected_items(raw)
        if len(kept) < len(raw):
            logger.debug(
                "Filtered non-food detections",
                source=source.value,
                dropped=len(raw) - len(kept),
            )
        return [self._to_item(detection, source) for detection in kept]

    async def _call_backend(
        self,
        source: DetectionSource,
        backend: DetectionBackend,
        image: Any,
        abort: Optional[asyncio.Event],
    ) -> Any:
        gate = self.gates.get(source)
        if gate is not None:
            result = await gate.call(backend.detect, image, abort=abort)
            if result.fallback:
                logger.warning(
                    "Detection backend gated",
                    source=source.value,
                    error=result.error,
                )
                return None
            return result.data

        if abort is None:
            return await backend.detect(image)
        if abort.is_set():
            raise OperationAbortedError(f"{source.value}: detection aborted")
        return await run_abortable(backend.detect(image), abort, source.value)

    def _to_item(self, detection: RawDetection, source: DetectionSource) -> DetectedItem:
        name = detection.name.strip().lower()
        if detection.portion_grams is not None:
            grams = clamp_grams(detection.portion_grams)
        else:
            grams = self.estimator.estimate(name).grams
        return DetectedItem(
            name=name,
            grams=grams,
            confidence=detection.confidence,
            source=source,
        )
