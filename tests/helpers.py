"""Incident payloads and a fake PagerDuty client shared by the test modules."""

from datetime import UTC, datetime
from typing import Any

from src.pagerduty.client import IncidentPage, ListIncidentsOptions, PagerDutyIncident, RemoteError

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
FIXED_NOW = datetime(2024, 1, 1, 13, 47, tzinfo=UTC)


def make_incident(
    canonical_id: str = "PABC123",
    number: int = 1,
    created_at: str = "2024-01-01T13:05:00Z",
    **overrides: Any,
) -> PagerDutyIncident:
    """Build a PagerDuty incident payload with sensible defaults."""
    incident: dict[str, Any] = {
        "id": canonical_id,
        "type": "incident",
        "incident_number": number,
        "title": f"Incident {number}",
        "urgency": "high",
        "status": "acknowledged",
        "html_url": f"https://example.pagerduty.com/incidents/{canonical_id}",
        "created_at": created_at,
        "service": {"id": "PSVC001", "type": "service_reference"},
        "acknowledgements": [],
        "assignments": [],
        "last_status_change_at": created_at,
        "last_status_change_by": {"id": "PSVC001", "type": "service_reference"},
    }
    incident.update(overrides)
    return incident  # type: ignore[return-value]


class FakePagerDutyClient:
    """Serves pre-built pages in order and records the options it was asked for."""

    def __init__(self, pages: list[IncidentPage] | None = None, error: RemoteError | None = None) -> None:
        self.pages = list(pages or [])
        self.error = error
        self.requests: list[ListIncidentsOptions] = []

    async def list_incidents(self, options: ListIncidentsOptions) -> IncidentPage:
        self.requests.append(options)
        if self.error is not None:
            raise self.error
        return self.pages[len(self.requests) - 1]


def make_page(incidents: list[PagerDutyIncident], limit: int | None = None, more: bool = False) -> IncidentPage:
    return IncidentPage(incidents=incidents, limit=len(incidents) if limit is None else limit, more=more)
