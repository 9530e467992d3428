"""APScheduler-driven collection loop with a single publish worker.

Each interval the scheduler runs one collection cycle. A successful cycle
hands its ``PublishJob`` to the publish worker through an ``asyncio.Queue``;
the worker is the only code that mutates the metric store. A failed cycle is
logged and counted, and the previously published metrics stay in place until
the next interval retries.
"""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

from src.collector.incident import IncidentCollector, PublishJob
from src.exporter.publisher import Publisher
from src.observability.metrics import COLLECTION_DURATION, COLLECTIONS_TOTAL, LAST_SUCCESS_TIMESTAMP

logger = logging.getLogger(__name__)


class ServiceStopped(Exception):
    """The service shut down before a collected cycle could be published."""


@dataclass
class CollectorStatus:
    last_success: datetime | None = None
    last_error: str | None = None
    last_error_at: datetime | None = None


class ExporterService:
    def __init__(
        self,
        collector: IncidentCollector,
        publisher: Publisher,
        interval_seconds: int,
    ) -> None:
        self.collector = collector
        self.publisher = publisher
        self.interval_seconds = interval_seconds
        self.status = CollectorStatus()
        self._queue: asyncio.Queue[tuple[PublishJob, asyncio.Future[None]]] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._scheduler: AsyncIOScheduler | None = None
        self._stopping = False

    # --- Publish worker ---

    async def _publish_worker(self) -> None:
        while True:
            job, done = await self._queue.get()
            try:
                self.publisher.publish(job)
            except Exception as exc:
                if not done.done():
                    done.set_exception(exc)
            else:
                if not done.done():
                    done.set_result(None)
            finally:
                self._queue.task_done()

    def start_worker(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self._publish_worker(), name="publish-worker")

    async def stop_worker(self) -> None:
        """Cancel the worker and fail every job it had not picked up yet."""
        if self._worker is not None:
            _ = self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None

        while not self._queue.empty():
            _, done = self._queue.get_nowait()
            self._queue.task_done()
            if not done.done():
                done.set_exception(ServiceStopped("Exporter stopped before the cycle was published"))

    async def _submit(self, job: PublishJob) -> None:
        """Hand ``job`` to the publish worker and wait until it is applied.

        Raises:
            ServiceStopped: if the service is stopping; the job is dropped.
        """
        if self._stopping:
            raise ServiceStopped("Exporter stopped before the cycle was published")
        self.start_worker()
        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        await self._queue.put((job, done))
        await done

    # --- Collection cycle ---

    async def run_cycle(self) -> bool:
        """Collect and publish once. Returns True when new metrics were published."""
        name = self.collector.name
        start = time.monotonic()
        try:
            job = await self.collector.collect()
            await self._submit(job)
            self.collector.mark_published()
        except ServiceStopped:
            logger.info("Collection cycle for %s discarded, exporter is stopping", name)
            return False
        except Exception as exc:
            COLLECTIONS_TOTAL.labels(collector=name, status="error").inc()
            COLLECTION_DURATION.labels(collector=name).observe(time.monotonic() - start)
            self.status.last_error = str(exc)
            self.status.last_error_at = datetime.now(UTC)
            logger.exception("Collection cycle for %s failed, keeping previous metrics", name)
            return False

        now = datetime.now(UTC)
        COLLECTIONS_TOTAL.labels(collector=name, status="success").inc()
        COLLECTION_DURATION.labels(collector=name).observe(time.monotonic() - start)
        LAST_SUCCESS_TIMESTAMP.labels(collector=name).set(now.timestamp())
        self.status.last_success = now
        self.status.last_error = None
        return True

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the publish worker and schedule cycles, the first one immediately."""
        self._stopping = False
        self.start_worker()
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_cycle,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=f"collect_{self.collector.name}",
            name=f"PagerDuty {self.collector.name} collection",
            next_run_time=datetime.now(UTC),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Collector %s scheduled every %ds", self.collector.name, self.interval_seconds)

    async def stop(self) -> None:
        """Gracefully shut down the scheduler and the publish worker."""
        self._stopping = True
        if self._scheduler is not None:
            with contextlib.suppress(Exception):
                self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Collector %s stopped", self.collector.name)
        await self.stop_worker()
