"""Run a single incident collection cycle and print the resulting metrics.

Usage:
    uv run python -m scripts.run_collect
"""

import asyncio
import logging
import sys

from prometheus_client import CollectorRegistry

from src.collector.incident import IncidentCollector
from src.config import get_settings
from src.exporter.publisher import Publisher
from src.exporter.store import build_incident_store
from src.pagerduty.client import RemoteError


async def main() -> None:
    """Collect once and print the incident metrics in exposition format."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(levelname)s: %(message)s",
    )

    store = build_incident_store(CollectorRegistry())
    collector = IncidentCollector.from_settings(settings)
    try:
        job = await collector.collect()
    except RemoteError as e:
        print(f"Failed to collect incidents: {e}", file=sys.stderr)
        sys.exit(1)

    Publisher(store).publish(job)
    collector.mark_published()
    print(store.render().decode("utf-8"), end="")


if __name__ == "__main__":
    asyncio.run(main())
