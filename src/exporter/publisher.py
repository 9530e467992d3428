"""Applies a finished collection cycle to the metric store."""

import logging

from src.collector.incident import PublishJob
from src.exporter.store import MetricStore

logger = logging.getLogger(__name__)


class Publisher:
    """Replaces each published metric's samples with the snapshot's, atomically."""

    def __init__(self, store: MetricStore) -> None:
        self.store = store

    def publish(self, job: PublishJob) -> None:
        unknown = [snapshot.name for snapshot in job.snapshots if snapshot.name not in self.store]
        if unknown:
            raise KeyError(f"Metrics not registered in the store: {', '.join(unknown)}")

        with self.store.transaction():
            for snapshot in job.snapshots:
                self.store.reset(snapshot.name)
                for sample in snapshot.samples:
                    self.store.set(snapshot.name, sample.label_dict, sample.value)

        logger.debug(
            "Published %s: %s",
            job.collector,
            ", ".join(f"{snapshot.name}={len(snapshot)}" for snapshot in job.snapshots),
        )
