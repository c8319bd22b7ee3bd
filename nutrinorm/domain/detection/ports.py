"""
Ports for detection backends.

The router only depends on this protocol; the concrete vision / LLM
clients live outside this package.
"""

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class DetectionBackend(Protocol):
    """
    Port for an image detection provider.

    Implementations return the provider payload as-is, e.g.
    ``{"items": [{"name": "salmon", "confidence": 0.9, "portion_estimate": 140}]}``.
    Empty or error shapes are allowed; the router tolerates them.
    """

    async def detect(self, image: Any) -> Mapping[str, Any]:
        """
        Run detection on an image.

        Args:
            image: Opaque image handle (bytes, URL, ...)

        Returns:
            Raw provider payload
        """
        ...
