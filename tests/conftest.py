# tests/conftest.py
import os
import tempfile

import pytest
from fakes import BASE_URL, FakeClock
from freezegun import freeze_time

from modules.phd_watch.lib.config import Settings
from modules.phd_watch.lib.run_log import RunLog


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (real browser + network).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: marks tests that launch a real browser against the live site (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch):
    # Structured JSONL logs go to a throwaway dir so real logs stay clean (per test)
    monkeypatch.setenv("LOG_DIR", tempfile.mkdtemp(prefix="phd-pytest-logs-"))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")
    for name in ("PHD_WATCH_BASE_URL", "PHD_WATCH_MAX_PAGES", "PHD_WATCH_OUTPUT", "PHD_WATCH_LOG_DIR", "HEADLESS"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


@pytest.fixture
def settings(tmp_path):
    return Settings(
        base_url=BASE_URL,
        max_pages=3,
        output_path=str(tmp_path / "data" / "phd-listings.csv"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def run_log(tmp_path):
    return RunLog(str(tmp_path / "logs"))


@pytest.fixture
def clock():
    return FakeClock()
