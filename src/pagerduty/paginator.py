"""Offset-driven pagination over ``GET /incidents``."""

import logging
from collections.abc import Sequence

from src.collector.window import TimeWindow
from src.pagerduty.client import (
    ListIncidentsOptions,
    PagerDutyClient,
    PagerDutyIncident,
    PaginationLimitExceeded,
    RemoteError,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
DEFAULT_MAX_PAGES = 500


async def fetch_all(
    client: PagerDutyClient,
    window: TimeWindow,
    team_ids: Sequence[str] = (),
    limit: int = DEFAULT_LIST_LIMIT,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[PagerDutyIncident]:
    """Fetch every incident in ``window``, one page at a time.

    The offset advances by the ``limit`` each page declares, which can differ
    from the requested limit when the server adjusts page sizes. Fetching
    stops when a page reports ``more=false``.

    Raises:
        RemoteError: if any page fails; nothing fetched so far is returned.
        PaginationLimitExceeded: if the server still reports more results
            after ``max_pages`` pages.
    """
    options = ListIncidentsOptions(
        since=window.since,
        until=window.until,
        limit=limit,
        offset=0,
        team_ids=tuple(team_ids) or None,
    )
    incidents: list[PagerDutyIncident] = []

    for _ in range(max_pages):
        logger.debug("fetch incidents (offset: %d, limit: %d)", options.offset, options.limit)
        page = await client.list_incidents(options)
        incidents.extend(page.incidents)

        if not page.more:
            return incidents
        if page.limit <= 0:
            raise RemoteError(f"PagerDuty reported more incidents but a page size of {page.limit}")

        options = options.with_offset(options.offset + page.limit)

    raise PaginationLimitExceeded(
        f"PagerDuty still reported more incidents after {max_pages} pages (next offset {options.offset})"
    )
