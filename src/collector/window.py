"""Hour-aligned time window used to scope each incident collection cycle."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

WINDOW_LENGTH = timedelta(hours=1) - timedelta(minutes=1)


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def since(self) -> str:
        return format_rfc3339(self.start)

    @property
    def until(self) -> str:
        return format_rfc3339(self.end)


def compute_window(now: datetime | None = None) -> TimeWindow:
    """Return the window covering the hour that contains ``now``.

    ``start`` is ``now`` truncated to the hour (in UTC) and ``end`` is 59
    minutes later. Naive datetimes are taken to be UTC.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    else:
        now = now.astimezone(UTC)

    start = now.replace(minute=0, second=0, microsecond=0)
    return TimeWindow(start=start, end=start + WINDOW_LENGTH)


def format_rfc3339(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
