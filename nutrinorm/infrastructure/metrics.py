"""In-memory counters for the pipeline (probes, gate fallbacks, detections).

Counters only: nothing here times operations. Values live in one dict
keyed by name plus sorted tags; ``counter()`` hands out a small handle
bound to that key. No exporter: the host application reads
``snapshot()`` and ships it wherever it wants.
"""

from __future__ import annotations

import time
from threading import Lock
from typing import Dict, List, Tuple, TypedDict

SeriesKey = Tuple[str, Tuple[Tuple[str, str], ...]]

PROBE_TOTAL = "probe_total"
GATE_FALLBACK_TOTAL = "gate_fallback_total"
DETECTION_ITEMS_TOTAL = "detection_items_total"


class CounterSnap(TypedDict):
    name: str
    tags: Dict[str, str]
    value: int


class RegistrySnapshot(TypedDict):
    counters: List[CounterSnap]
    generatedAt: float


def series_key(name: str, tags: Dict[str, str]) -> SeriesKey:
    """Tag order never creates a second series."""
    return name, tuple(sorted(tags.items()))


class Counter:
    """Handle for one counter series; increments go to the registry."""

    __slots__ = ("_registry", "key")

    def __init__(self, registry: "MetricsRegistry", key: SeriesKey) -> None:
        self._registry = registry
        self.key = key

    @property
    def name(self) -> str:
        return self.key[0]

    def inc(self, amount: int = 1) -> None:
        self._registry.add(self.key, amount)

    def value(self) -> int:
        return self._registry.read(self.key)


class MetricsRegistry:
    """Thread-safe counter store."""

    def __init__(self) -> None:
        self._values: Dict[SeriesKey, int] = {}
        self._lock = Lock()

    def counter(self, name: str, **tags: str) -> Counter:
        key = series_key(name, tags)
        with self._lock:
            self._values.setdefault(key, 0)
        return Counter(self, key)

    def add(self, key: SeriesKey, amount: int = 1) -> None:
        with self._lock:
            self._values[key] = self._values.get(key, 0) + amount

    def read(self, key: SeriesKey) -> int:
        with self._lock:
            return self._values.get(key, 0)

    def value(self, name: str, **tags: str) -> int:
        """Current value, 0 for counters never incremented."""
        return self.read(series_key(name, tags))

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            items = list(self._values.items())
        return {
            "counters": [
                {"name": name, "tags": dict(tags), "value": value}
                for (name, tags), value in items
            ],
            "generatedAt": time.time(),
        }

    def reset(self) -> None:
        """Drop all counters (tests)."""
        with self._lock:
            self._values.clear()


_registry = MetricsRegistry()


def registry() -> MetricsRegistry:
    """Process-wide default registry."""
    return _registry
