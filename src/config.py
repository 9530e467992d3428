from functools import lru_cache
from typing import ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    pagerduty_auth_token: str
    pagerduty_api_url: str = "https://api.pagerduty.com"

    # Pagination
    pagerduty_list_limit: int = Field(default=100, gt=0)
    pagerduty_max_pages: int = Field(default=500, gt=0)

    # Comma-separated team IDs (optional — empty string means all teams)
    pagerduty_team_filter: str = ""

    # strftime pattern for the "time" label on incident metrics
    pagerduty_incident_time_format: str = "%a, %d %b %H:%M:%S %Z %Y"

    pagerduty_request_timeout_seconds: float = Field(default=30.0, gt=0)

    # Collection schedule
    scrape_interval_seconds: int = Field(default=300, gt=0)

    # HTTP server for /metrics and /health
    server_host: str = "0.0.0.0"  # noqa: S104
    server_port: int = 8080

    log_level: str = "INFO"

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()  # type: ignore[call-arg]  # pyright: ignore[reportCallIssue] — fields loaded from env


def parse_team_filter(raw: str) -> tuple[str, ...]:
    """Split the comma-separated team filter, dropping blanks."""
    return tuple(part.strip() for part in raw.split(",") if part.strip())
