"""Shared pytest configuration and fixtures."""

from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from src.config import Settings, get_settings
from src.exporter.store import MetricStore, build_incident_store
from tests.helpers import TIME_FORMAT


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run e2e tests that hit the real PagerDuty API (requires .env with a valid token)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="Need --run-e2e flag to run")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def _no_dotenv(request: pytest.FixtureRequest) -> Generator[None]:
    """Block .env loading so tests that forget mock_settings fail locally, not just in CI.

    Sets Settings.model_config['env_file'] = None before each test (except e2e).
    Tests that use mock_settings bypass Settings() entirely, so this is transparent.
    """
    if "e2e" in request.keywords:
        yield
        return

    get_settings.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()


@pytest.fixture
def mock_settings() -> Generator[Any]:
    """Provide fake settings so tests don't need a .env file.

    Patches get_settings at every import site so cached references are overridden.
    """
    fake_settings = type(
        "FakeSettings",
        (),
        {
            "pagerduty_auth_token": "pd-test-fake-token",
            "pagerduty_api_url": "https://pagerduty.test",
            "pagerduty_list_limit": 100,
            "pagerduty_max_pages": 500,
            "pagerduty_team_filter": "",
            "pagerduty_incident_time_format": TIME_FORMAT,
            "pagerduty_request_timeout_seconds": 5.0,
            "scrape_interval_seconds": 300,
            "server_host": "127.0.0.1",
            "server_port": 8080,
            "log_level": "DEBUG",
        },
    )()
    with (
        patch("src.config.get_settings", return_value=fake_settings),
        patch("src.api.main.get_settings", return_value=fake_settings),
    ):
        yield fake_settings


@pytest.fixture
def store() -> MetricStore:
    """An incident store on its own registry, isolated from the default one."""
    return build_incident_store(CollectorRegistry())

