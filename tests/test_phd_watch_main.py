import os

import pytest
from fakes import BASE_URL, FakePage, FakeSessionManager, listing_block, listing_page

from modules.phd_watch import run
from modules.phd_watch.lib import engine
from modules.phd_watch.lib.browser import SessionError
from modules.phd_watch.lib.config import ConfigError


@pytest.fixture
def run_kwargs(tmp_path):
    return {
        "base_url": BASE_URL,
        "max_pages": 2,
        "settle_delay_s": 0,
        "page_delay_s": 0,
        "output_path": str(tmp_path / "data" / "phd-listings.csv"),
        "log_dir": str(tmp_path / "logs"),
    }


def _use_page(monkeypatch, page=None, fail_open=None):
    manager = FakeSessionManager(page=page, fail_open=fail_open)
    monkeypatch.setattr(engine, "SessionManager", lambda settings, run_log: manager)
    return manager


def _log_text(tmp_path):
    files = os.listdir(tmp_path / "logs")
    assert len(files) == 1 and files[0].startswith("scrape-")
    with open(tmp_path / "logs" / files[0], encoding="utf-8") as f:
        return f.read()


def test_successful_run_writes_csv_and_log(monkeypatch, run_kwargs, tmp_path):
    page = FakePage(documents={BASE_URL + "1": [listing_page(listing_block("A", "X", "2025-01-10"))]})
    manager = _use_page(monkeypatch, page)

    outcome = run(**run_kwargs)

    assert outcome.ok
    assert os.path.exists(run_kwargs["output_path"])
    assert manager.closed == 1
    assert outcome.log_path is not None and os.path.exists(outcome.log_path)
    text = _log_text(tmp_path)
    assert "=== PhD Listings Scraper Started ===" in text
    assert "=== Scraper completed successfully ===" in text


def test_no_listings_reports_failure_but_flushes_log(monkeypatch, run_kwargs, tmp_path):
    _use_page(monkeypatch, FakePage())

    outcome = run(**run_kwargs)

    assert not outcome.ok
    assert not os.path.exists(run_kwargs["output_path"])
    text = _log_text(tmp_path)
    assert "No listings found!" in text
    assert "completed successfully" not in text


def test_structural_failure_raises_after_flush(monkeypatch, run_kwargs, tmp_path):
    _use_page(monkeypatch, fail_open=SessionError("Browser launch failed: missing executable"))

    with pytest.raises(SessionError):
        run(**run_kwargs)

    text = _log_text(tmp_path)
    assert "[ERROR] Fatal error" in text
    assert "missing executable" in text


def test_config_error_is_logged(run_kwargs, tmp_path):
    run_kwargs["max_pages"] = -3
    with pytest.raises(ConfigError):
        run(**run_kwargs)
    assert "[ERROR] Fatal error" in _log_text(tmp_path)


def test_unwritable_log_dir_leaves_log_path_empty(monkeypatch, run_kwargs, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    run_kwargs["log_dir"] = str(blocker)
    page = FakePage(documents={BASE_URL + "1": [listing_page(listing_block("A", "X", "2025-01-10"))]})
    _use_page(monkeypatch, page)

    outcome = run(**run_kwargs)

    assert outcome.ok
    assert outcome.log_path is None
