"""Per-cycle sample collection for a single gauge metric."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

# Stand-in for timestamps that are missing or fail to parse.
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)


def timestamp_value(value: datetime) -> float:
    """Unix seconds for ``value``; the zero time maps to 0."""
    if value == ZERO_TIME:
        return 0.0
    return value.timestamp()


def _label_value(value: object) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class MetricSample:
    labels: tuple[tuple[str, str], ...]
    value: float
    observed_at: datetime

    @property
    def label_dict(self) -> dict[str, str]:
        return dict(self.labels)


@dataclass(frozen=True)
class MetricSnapshot:
    """Every sample of one metric for one collection cycle."""

    name: str
    labelnames: tuple[str, ...]
    samples: tuple[MetricSample, ...]

    def __len__(self) -> int:
        return len(self.samples)


class MetricAggregator:
    """Collects samples for one metric, collapsing identical label sets.

    When two samples share a label set, the one observed later wins; on a tie
    the later addition wins. Insertion order of first appearance is kept.
    """

    def __init__(self, name: str, labelnames: Sequence[str]) -> None:
        self.name = name
        self.labelnames = tuple(labelnames)
        self._samples: dict[tuple[tuple[str, str], ...], MetricSample] = {}

    def __len__(self) -> int:
        return len(self._samples)

    def _key(self, labels: Mapping[str, object]) -> tuple[tuple[str, str], ...]:
        if set(labels) != set(self.labelnames):
            missing = sorted(set(self.labelnames) - set(labels))
            unexpected = sorted(set(labels) - set(self.labelnames))
            raise ValueError(f"{self.name}: label mismatch (missing={missing}, unexpected={unexpected})")
        return tuple((name, _label_value(labels[name])) for name in self.labelnames)

    def add(self, labels: Mapping[str, object], value: float, observed_at: datetime) -> None:
        key = self._key(labels)
        existing = self._samples.get(key)
        if existing is not None and existing.observed_at > observed_at:
            return
        self._samples[key] = MetricSample(labels=key, value=value, observed_at=observed_at)

    def add_time(self, labels: Mapping[str, object], timestamp: datetime) -> None:
        """Add a sample whose value is ``timestamp`` in Unix seconds."""
        self.add(labels, timestamp_value(timestamp), timestamp)

    def materialize(self) -> MetricSnapshot:
        return MetricSnapshot(
            name=self.name,
            labelnames=self.labelnames,
            samples=tuple(self._samples.values()),
        )
