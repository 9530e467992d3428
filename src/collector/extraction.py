"""Turn raw PagerDuty incidents into incident info and status samples."""

import logging
import re
from datetime import datetime

from src.collector.aggregator import ZERO_TIME, MetricAggregator
from src.observability.metrics import SKIPPED_INCIDENTS_TOTAL
from src.pagerduty.client import PagerDutyIncident, PagerDutyReference

logger = logging.getLogger(__name__)

INCIDENT_INFO_METRIC = "pagerduty_incident_info"
INCIDENT_INFO_HELP = "PagerDuty incident"
INCIDENT_INFO_LABELS = (
    "incidentID",
    "serviceID",
    "incidentUrl",
    "incidentNumber",
    "title",
    "urgency",
    "type",
    "time",
)

INCIDENT_STATUS_METRIC = "pagerduty_incident_status"
INCIDENT_STATUS_HELP = "PagerDuty incident status"
INCIDENT_STATUS_LABELS = ("incidentID", "userID", "time", "type")

STATUS_ACKNOWLEDGEMENT = "acknowledgement"
STATUS_ASSIGNMENT = "assignment"
STATUS_LAST_CHANGE = "lastChange"

_RFC3339 = re.compile(r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$")


def parse_timestamp(value: object) -> datetime:
    """Parse an RFC3339 timestamp, falling back to ``ZERO_TIME``."""
    if not isinstance(value, str) or not value:
        return ZERO_TIME
    if not _RFC3339.match(value):
        logger.debug("Unparseable timestamp %r, using zero time", value)
        return ZERO_TIME
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable timestamp %r, using zero time", value)
        return ZERO_TIME


def format_time(value: datetime, time_format: str) -> str:
    # strftime drops the zero padding of year 1 on some platforms
    if value == ZERO_TIME:
        time_format = time_format.replace("%Y", "0001")
    return value.strftime(time_format)


def resolve_incident_id(incident: PagerDutyIncident) -> str:
    """Prefer the canonical ``id``, falling back to the legacy ``incident_id``."""
    return incident.get("id") or incident.get("incident_id") or ""


def _ref_id(ref: PagerDutyReference | None) -> str:
    if not isinstance(ref, dict):
        return ""
    return ref.get("id", "") or ""


def extract_incident(
    incident: PagerDutyIncident,
    info: MetricAggregator,
    status: MetricAggregator,
    time_format: str,
) -> bool:
    """Add the samples for one incident. Returns False if it was skipped."""
    incident_id = resolve_incident_id(incident)
    if not incident_id:
        logger.warning(
            "Skipping incident without id (number=%s, title=%r)",
            incident.get("incident_number", ""),
            incident.get("title", ""),
        )
        SKIPPED_INCIDENTS_TOTAL.inc()
        return False

    created_at = parse_timestamp(incident.get("created_at"))
    info.add_time(
        {
            "incidentID": incident_id,
            "serviceID": _ref_id(incident.get("service")),
            "incidentUrl": incident.get("html_url", ""),
            "incidentNumber": incident.get("incident_number", ""),
            "title": incident.get("title", ""),
            "urgency": incident.get("urgency", ""),
            "type": incident.get("type", ""),
            "time": format_time(created_at, time_format),
        },
        created_at,
    )

    for acknowledgement in incident.get("acknowledgements") or []:
        if not isinstance(acknowledgement, dict):
            continue
        acknowledged_at = parse_timestamp(acknowledgement.get("at"))
        status.add_time(
            {
                "incidentID": incident_id,
                "userID": _ref_id(acknowledgement.get("acknowledger")),
                "time": format_time(acknowledged_at, time_format),
                "type": STATUS_ACKNOWLEDGEMENT,
            },
            acknowledged_at,
        )

    for assignment in incident.get("assignments") or []:
        if not isinstance(assignment, dict):
            continue
        assigned_at = parse_timestamp(assignment.get("at"))
        status.add_time(
            {
                "incidentID": incident_id,
                "userID": _ref_id(assignment.get("assignee")),
                "time": format_time(assigned_at, time_format),
                "type": STATUS_ASSIGNMENT,
            },
            assigned_at,
        )

    changed_at = parse_timestamp(incident.get("last_status_change_at"))
    status.add_time(
        {
            "incidentID": incident_id,
            "userID": _ref_id(incident.get("last_status_change_by")),
            "time": format_time(changed_at, time_format),
            "type": STATUS_LAST_CHANGE,
        },
        changed_at,
    )
    return True
