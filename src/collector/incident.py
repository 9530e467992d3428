"""One PagerDuty incident collection cycle, from window to publishable snapshots.

The collector never writes to the metric store. ``collect()`` returns a
``PublishJob`` that the store owner applies once, after the whole cycle has
succeeded; a failed cycle leaves the previously published metrics in place.
"""

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from src.collector.aggregator import MetricAggregator, MetricSnapshot
from src.collector.extraction import (
    INCIDENT_INFO_LABELS,
    INCIDENT_INFO_METRIC,
    INCIDENT_STATUS_LABELS,
    INCIDENT_STATUS_METRIC,
    extract_incident,
)
from src.collector.window import TimeWindow, compute_window
from src.config import Settings, parse_team_filter
from src.pagerduty.client import PagerDutyClient, RemoteError
from src.pagerduty.paginator import DEFAULT_LIST_LIMIT, DEFAULT_MAX_PAGES, fetch_all

logger = logging.getLogger(__name__)


class CycleState(enum.Enum):
    IDLE = "idle"
    WINDOW_COMPUTED = "window_computed"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    MATERIALIZED = "materialized"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass(frozen=True)
class PublishJob:
    """Immutable result of a successful cycle, applied by the publisher as one unit."""

    collector: str
    window: TimeWindow
    snapshots: tuple[MetricSnapshot, ...]


class IncidentCollector:
    name = "incident"

    def __init__(
        self,
        client: PagerDutyClient,
        time_format: str,
        team_ids: Sequence[str] = (),
        list_limit: int = DEFAULT_LIST_LIMIT,
        max_pages: int = DEFAULT_MAX_PAGES,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.client = client
        self.time_format = time_format
        self.team_ids = tuple(team_ids)
        self.list_limit = list_limit
        self.max_pages = max_pages
        self._clock = clock
        self.state = CycleState.IDLE

    @classmethod
    def from_settings(cls, settings: Settings, client: PagerDutyClient | None = None) -> "IncidentCollector":
        return cls(
            client=client or PagerDutyClient.from_settings(settings),
            time_format=settings.pagerduty_incident_time_format,
            team_ids=parse_team_filter(settings.pagerduty_team_filter),
            list_limit=settings.pagerduty_list_limit,
            max_pages=settings.pagerduty_max_pages,
        )

    async def collect(self) -> PublishJob:
        """Run one cycle and return the snapshots to publish.

        Raises:
            RemoteError: if fetching fails. The collector moves to ``FAILED``
                and nothing is returned for publishing.
        """
        window = compute_window(self._clock() if self._clock else None)
        self.state = CycleState.WINDOW_COMPUTED

        self.state = CycleState.FETCHING
        try:
            incidents = await fetch_all(
                self.client,
                window,
                team_ids=self.team_ids,
                limit=self.list_limit,
                max_pages=self.max_pages,
            )
        except RemoteError:
            self.state = CycleState.FAILED
            raise

        self.state = CycleState.EXTRACTING
        info = MetricAggregator(INCIDENT_INFO_METRIC, INCIDENT_INFO_LABELS)
        status = MetricAggregator(INCIDENT_STATUS_METRIC, INCIDENT_STATUS_LABELS)
        skipped = 0
        for incident in incidents:
            if not extract_incident(incident, info, status, self.time_format):
                skipped += 1

        job = PublishJob(
            collector=self.name,
            window=window,
            snapshots=(info.materialize(), status.materialize()),
        )
        self.state = CycleState.MATERIALIZED
        logger.info(
            "Collected %d incident(s) for %s..%s (%d info, %d status samples, %d skipped)",
            len(incidents),
            window.since,
            window.until,
            len(info),
            len(status),
            skipped,
        )
        return job

    def mark_published(self) -> None:
        """Record that the last ``PublishJob`` reached the store."""
        self.state = CycleState.PUBLISHED
        self.state = CycleState.IDLE
