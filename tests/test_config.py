import pytest

from modules.phd_watch.lib.config import DEFAULT_BASE_URL, ConfigError, Settings
from modules.phd_watch.lib.utils import first_set, setting_str, truthy


def test_defaults():
    s = Settings.from_env_and_kwargs({})
    assert s.base_url == DEFAULT_BASE_URL
    assert s.max_pages == 16
    assert s.headless is True
    assert (s.nav_timeout_s, s.challenge_timeout_s, s.selector_timeout_s) == (30.0, 30.0, 10.0)
    assert (s.settle_delay_s, s.page_delay_s) == (1.0, 2.0)
    assert s.output_path.endswith("phd-listings.csv")
    assert s.page_url(4) == DEFAULT_BASE_URL + "4"


def test_env_and_kwargs_precedence(monkeypatch):
    monkeypatch.setenv("PHD_WATCH_MAX_PAGES", "5")
    monkeypatch.setenv("PHD_WATCH_OUTPUT", "/tmp/env.csv")
    monkeypatch.setenv("HEADLESS", "false")

    s = Settings.from_env_and_kwargs({"max_pages": "2"})

    assert s.max_pages == 2  # kwargs win
    assert s.output_path == "/tmp/env.csv"  # env beats default
    assert s.headless is False


def test_headless_only_disabled_by_false(monkeypatch):
    monkeypatch.setenv("HEADLESS", "0")
    assert Settings.from_env_and_kwargs({}).headless is True
    assert Settings.from_env_and_kwargs({"headless": "no"}).headless is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_pages": -1},
        {"max_pages": "many"},
        {"base_url": "ftp://example.test/?PG="},
        {"page_delay_s": -0.5},
        {"retries": 3},
    ],
)
def test_invalid_settings_raise(kwargs):
    with pytest.raises(ConfigError):
        Settings.from_env_and_kwargs(kwargs)


def test_setting_str_skips_blank_values(monkeypatch):
    monkeypatch.setenv("PHD_WATCH_OUTPUT", "")
    assert setting_str({"output_path": ""}, "output_path", "PHD_WATCH_OUTPUT", "out.csv") == "out.csv"
    monkeypatch.setenv("PHD_WATCH_OUTPUT", " env.csv ")
    assert setting_str({}, "output_path", "PHD_WATCH_OUTPUT", "out.csv") == "env.csv"
    assert first_set(None, "", 0, 5) == 0
    assert truthy("YES") and truthy(2) and not truthy("off") and not truthy(None)
