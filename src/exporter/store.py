"""Lock-guarded gauge store backing the exported incident metrics.

Gauges are registered once when the store is built. Every mutation and every
read (exposition, sample inspection) goes through the same re-entrant lock,
so a publish wrapped in ``transaction()`` is seen by readers as one step.
"""

import contextlib
import threading
from collections.abc import Iterator, Mapping, Sequence

from prometheus_client import REGISTRY, CollectorRegistry, Gauge, generate_latest

from src.collector.extraction import (
    INCIDENT_INFO_HELP,
    INCIDENT_INFO_LABELS,
    INCIDENT_INFO_METRIC,
    INCIDENT_STATUS_HELP,
    INCIDENT_STATUS_LABELS,
    INCIDENT_STATUS_METRIC,
)


class MetricStore:
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else REGISTRY
        self._lock = threading.RLock()
        self._gauges: dict[str, Gauge] = {}

    def register_gauge(self, name: str, documentation: str, labelnames: Sequence[str]) -> Gauge:
        with self._lock:
            if name in self._gauges:
                raise ValueError(f"Gauge {name!r} is already registered")
            gauge = Gauge(name, documentation, labelnames=list(labelnames), registry=self.registry)
            self._gauges[name] = gauge
            return gauge

    def __contains__(self, name: object) -> bool:
        return name in self._gauges

    @contextlib.contextmanager
    def transaction(self) -> Iterator["MetricStore"]:
        """Hold the store lock so readers see all enclosed changes at once."""
        with self._lock:
            yield self

    def reset(self, name: str) -> None:
        with self._lock:
            self._gauges[name].clear()

    def set(self, name: str, labels: Mapping[str, str], value: float) -> None:
        with self._lock:
            self._gauges[name].labels(**labels).set(value)

    def samples(self, name: str) -> dict[tuple[tuple[str, str], ...], float]:
        """Current samples of one gauge, keyed by label tuple."""
        with self._lock:
            return {
                tuple(sample.labels.items()): sample.value
                for metric in self._gauges[name].collect()
                for sample in metric.samples
            }

    def sample_count(self, name: str) -> int:
        return len(self.samples(name))

    def render(self) -> bytes:
        """Prometheus exposition text for the whole registry."""
        with self._lock:
            return generate_latest(self.registry)


def build_incident_store(registry: CollectorRegistry | None = None) -> MetricStore:
    """Create the store with the incident info and status gauges registered."""
    store = MetricStore(registry)
    store.register_gauge(INCIDENT_INFO_METRIC, INCIDENT_INFO_HELP, INCIDENT_INFO_LABELS)
    store.register_gauge(INCIDENT_STATUS_METRIC, INCIDENT_STATUS_HELP, INCIDENT_STATUS_LABELS)
    return store
