"""Shared pytest configuration and fixtures."""

from collections.abc import Generator
from unittest.mock import patch

import pytest

from ratip.config import Settings, get_settings

TEST_BASE_URL = "http://ratip.test:8080/api/v1"


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run e2e tests that hit a real RATIP backend (RATIP_API_BASE_URL or the default URL)",
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
    """Block .env loading so a developer's local .env never leaks into tests.

    Sets Settings.model_config['env_file'] = None before each test (except e2e).
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
def mock_settings() -> Generator[Settings]:
    """Provide explicit settings pointing at a fake backend.

    Patches get_settings at every import site so cached references are overridden.
    """
    fake_settings = Settings(
        api_base_url=TEST_BASE_URL,
        health_interval_seconds=30.0,
        telemetry_interval_seconds=5.0,
        alarm_interval_seconds=10.0,
        correlation_interval_seconds=0.0,
        health_timeout_seconds=1.0,
        query_timeout_seconds=2.0,
        telemetry_window_size=20,
        alarm_batch_size=5,
        log_level="WARNING",
    )
    with (
        patch("ratip.config.get_settings", return_value=fake_settings),
        patch("ratip.engine.session.get_settings", return_value=fake_settings),
        patch("ratip.cli.get_settings", return_value=fake_settings),
    ):
        yield fake_settings
