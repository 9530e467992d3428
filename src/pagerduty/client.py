"""Thin async client for the PagerDuty REST API incidents endpoint."""

import json
import logging
from dataclasses import dataclass, field
from typing import TypedDict

import httpx

from src.config import Settings
from src.observability.metrics import PAGERDUTY_API_COUNTER

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
INCIDENT_STATUSES = ("triggered", "acknowledged", "resolved")


class RemoteError(Exception):
    """The PagerDuty API could not be reached or returned an unusable response."""


class PaginationLimitExceeded(RemoteError):
    """The server kept reporting more results past the configured page cap."""


# --- PagerDuty response types ---


class PagerDutyReference(TypedDict, total=False):
    id: str
    type: str
    summary: str
    html_url: str


class PagerDutyAcknowledgement(TypedDict, total=False):
    at: str
    acknowledger: PagerDutyReference


class PagerDutyAssignment(TypedDict, total=False):
    at: str
    assignee: PagerDutyReference


class PagerDutyIncident(TypedDict, total=False):
    id: str
    incident_id: str
    incident_number: int
    title: str
    type: str
    urgency: str
    status: str
    html_url: str
    created_at: str
    service: PagerDutyReference
    acknowledgements: list[PagerDutyAcknowledgement]
    assignments: list[PagerDutyAssignment]
    last_status_change_at: str
    last_status_change_by: PagerDutyReference


# --- Request / response values ---


@dataclass(frozen=True)
class ListIncidentsOptions:
    """Query for one page of ``GET /incidents``.

    ``team_ids`` is ``None`` when no team filter applies. An empty tuple is
    normalised to ``None`` because PagerDuty reads an empty filter as
    "no teams match".
    """

    since: str
    until: str
    limit: int
    offset: int = 0
    statuses: tuple[str, ...] = INCIDENT_STATUSES
    team_ids: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if self.team_ids is not None and not self.team_ids:
            object.__setattr__(self, "team_ids", None)

    def with_offset(self, offset: int) -> "ListIncidentsOptions":
        return ListIncidentsOptions(
            since=self.since,
            until=self.until,
            limit=self.limit,
            offset=offset,
            statuses=self.statuses,
            team_ids=self.team_ids,
        )

    def to_params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = [
            ("since", self.since),
            ("until", self.until),
            ("limit", str(self.limit)),
            ("offset", str(self.offset)),
        ]
        params.extend(("statuses[]", status) for status in self.statuses)
        if self.team_ids:
            params.extend(("team_ids[]", team_id) for team_id in self.team_ids)
        return params


@dataclass(frozen=True)
class IncidentPage:
    """One page of incidents plus the server's pagination bookkeeping."""

    incidents: list[PagerDutyIncident] = field(default_factory=list)
    limit: int = 0
    offset: int = 0
    more: bool = False


# --- Client ---


class PagerDutyClient:
    """Issues authenticated requests against the PagerDuty REST API."""

    def __init__(
        self,
        api_url: str,
        auth_token: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._auth_token = auth_token
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "PagerDutyClient":
        return cls(
            api_url=settings.pagerduty_api_url,
            auth_token=settings.pagerduty_auth_token,
            timeout=settings.pagerduty_request_timeout_seconds,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Token token={self._auth_token}",
            "Accept": "application/vnd.pagerduty+json;version=2",
        }

    async def list_incidents(self, options: ListIncidentsOptions) -> IncidentPage:
        """Fetch a single page of incidents.

        Raises:
            RemoteError: on transport failure, a non-2xx status, or a body that
                is not a valid incidents envelope.
        """
        url = f"{self.api_url}/incidents"
        PAGERDUTY_API_COUNTER.labels(name="ListIncidents").inc()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self._headers(), params=options.to_params())
                _ = response.raise_for_status()
                data: object = response.json()  # pyright: ignore[reportAny]
        except httpx.HTTPStatusError as e:
            raise RemoteError(f"PagerDuty API error: HTTP {e.response.status_code} - {e.response.text[:500]}") from e
        except httpx.ConnectError as e:
            raise RemoteError(f"Cannot connect to PagerDuty at {self.api_url}: {e}") from e
        except httpx.TimeoutException as e:
            raise RemoteError(f"PagerDuty request timed out after {self.timeout}s: {e}") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"PagerDuty request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise RemoteError(f"PagerDuty returned invalid JSON: {e}") from e

        return _parse_page(data)


def _parse_page(data: object) -> IncidentPage:
    """Validate the ``{incidents, limit, offset, more}`` envelope."""
    if not isinstance(data, dict):
        raise RemoteError(f"Unexpected PagerDuty response type: {type(data).__name__}")

    incidents = data.get("incidents")
    if not isinstance(incidents, list):
        raise RemoteError("PagerDuty response is missing the 'incidents' list")

    limit = data.get("limit", 0)
    offset = data.get("offset", 0)
    more = data.get("more", False)
    if not isinstance(limit, int) or not isinstance(offset, int) or not isinstance(more, bool):
        raise RemoteError(f"PagerDuty response has malformed pagination fields: limit={limit!r} more={more!r}")

    return IncidentPage(
        incidents=[incident for incident in incidents if isinstance(incident, dict)],  # type: ignore[misc]
        limit=limit,
        offset=offset,
        more=more,
    )
