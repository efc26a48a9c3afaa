from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from .utils import first_set, getenv_str, setting_str, truthy

DEFAULT_BASE_URL = (
    "https://www.findaphd.com/phds/united-kingdom/bioinformatics/non-eu-students/"
    "?j1M78yYM440&Show=M&Sort=I&PG="
)
DEFAULT_OUTPUT_PATH = os.path.join("data", "phd-listings.csv")
DEFAULT_LOG_DIR = "logs"


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class Settings:
    """
    Canonical configuration for a 'phd_watch' run.

    All values are fixed for the lifetime of a run. Timeouts and delays are in
    seconds; the browser layer converts to milliseconds where playwright wants them.
    """

    base_url: str = DEFAULT_BASE_URL
    max_pages: int = 16
    headless: bool = True

    # Waits (seconds)
    nav_timeout_s: float = 30.0
    challenge_timeout_s: float = 30.0
    challenge_poll_s: float = 0.5
    post_challenge_delay_s: float = 2.0
    selector_timeout_s: float = 10.0
    settle_delay_s: float = 1.0
    page_delay_s: float = 2.0

    listing_selector: str = "div.col-md-18"

    # Artifacts
    output_path: str = DEFAULT_OUTPUT_PATH
    log_dir: str = DEFAULT_LOG_DIR

    def page_url(self, page_number: int) -> str:
        return f"{self.base_url}{page_number}"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None = None) -> Settings:
        """
        Build Settings from kwargs with validation.

        Precedence: kwargs > environment > defaults.

            base_url: str       (env PHD_WATCH_BASE_URL)
            max_pages: int      (env PHD_WATCH_MAX_PAGES, default 16)
            headless: bool      (env HEADLESS; only "false" shows the browser)
            output_path: str    (env PHD_WATCH_OUTPUT, default data/phd-listings.csv)
            log_dir: str        (env PHD_WATCH_LOG_DIR, default logs)

            nav_timeout_s, challenge_timeout_s, challenge_poll_s,
            post_challenge_delay_s, selector_timeout_s, settle_delay_s,
            page_delay_s: float
            listing_selector: str
        """
        kw = dict(kwargs or {})
        unknown = set(kw) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown setting(s): {sorted(unknown)}")

        base_url = setting_str(kw, "base_url", "PHD_WATCH_BASE_URL", DEFAULT_BASE_URL)
        max_pages = _as_int("max_pages", first_set(kw.get("max_pages"), getenv_str("PHD_WATCH_MAX_PAGES"), 16))

        if "headless" in kw:
            headless = truthy(kw["headless"])
        else:
            headless = (getenv_str("HEADLESS") or "").strip().lower() != "false"

        output_path = setting_str(kw, "output_path", "PHD_WATCH_OUTPUT", DEFAULT_OUTPUT_PATH)
        log_dir = setting_str(kw, "log_dir", "PHD_WATCH_LOG_DIR", DEFAULT_LOG_DIR)

        waits: dict[str, float] = {}
        for name in (
            "nav_timeout_s",
            "challenge_timeout_s",
            "challenge_poll_s",
            "post_challenge_delay_s",
            "selector_timeout_s",
            "settle_delay_s",
            "page_delay_s",
        ):
            default = cls.__dataclass_fields__[name].default
            waits[name] = _as_float(name, first_set(kw.get(name), None, default))

        settings = cls(
            base_url=base_url,
            max_pages=max_pages,
            headless=headless,
            listing_selector=str(kw.get("listing_selector") or "div.col-md-18").strip(),
            output_path=output_path,
            log_dir=log_dir,
            **waits,
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be an integer (got {value!r}).") from e


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be a number (got {value!r}).") from e


def _validate_settings(s: Settings) -> None:
    if not s.base_url.lower().startswith(("http://", "https://")):
        raise ConfigError(f"'base_url' must be an http(s) URL (got {s.base_url!r}).")
    if s.max_pages < 0:
        raise ConfigError("'max_pages' must be >= 0.")
    for name in (
        "nav_timeout_s",
        "challenge_timeout_s",
        "challenge_poll_s",
        "post_challenge_delay_s",
        "selector_timeout_s",
        "settle_delay_s",
        "page_delay_s",
    ):
        if getattr(s, name) < 0:
            raise ConfigError(f"'{name}' must be >= 0.")
    if not s.listing_selector:
        raise ConfigError("'listing_selector' cannot be empty.")
    if not s.output_path:
        raise ConfigError("'output_path' cannot be empty.")
    if not s.log_dir:
        raise ConfigError("'log_dir' cannot be empty.")
