"""FastAPI app exposing the PagerDuty incident metrics to Prometheus.

The metric store and the collection service are built once at startup and
shared across requests.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel

from src.collector.incident import IncidentCollector
from src.config import get_settings
from src.exporter.publisher import Publisher
from src.exporter.scheduler import ExporterService
from src.exporter.store import MetricStore, build_incident_store
from src.observability.metrics import APP_INFO

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class CollectorHealth(BaseModel):
    """Outcome of the most recent collection cycles for one collector."""

    name: str
    status: str
    last_success: str | None = None
    last_error: str | None = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str
    version: str
    collectors: list[CollectorHealth]


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_store() -> MetricStore:
    """Build the incident store against the default registry, once per process."""
    return build_incident_store()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the collection schedule at startup, stop it on shutdown."""
    settings = get_settings()
    APP_INFO.info({"version": VERSION})

    store = get_store()
    service = ExporterService(
        collector=IncidentCollector.from_settings(settings),
        publisher=Publisher(store),
        interval_seconds=settings.scrape_interval_seconds,
    )
    app.state.store = store
    app.state.service = service

    service.start()
    yield
    await service.stop()
    logger.info("Shutting down PagerDuty exporter")


app = FastAPI(title="PagerDuty Incident Exporter", lifespan=lifespan)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/metrics")
async def metrics(request: Request) -> Response:
    """Expose incident and self-instrumentation metrics in exposition format."""
    store: MetricStore = request.app.state.store
    return Response(content=store.render(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Report the outcome of the latest collection cycle."""
    service: ExporterService = request.app.state.service
    status = service.status

    if status.last_success is None:
        collector_status = "unhealthy" if status.last_error else "starting"
    elif status.last_error:
        collector_status = "degraded"
    else:
        collector_status = "healthy"

    collector = CollectorHealth(
        name=service.collector.name,
        status=collector_status,
        last_success=status.last_success.isoformat() if status.last_success else None,
        last_error=status.last_error,
    )
    return HealthResponse(status=collector_status, version=VERSION, collectors=[collector])
