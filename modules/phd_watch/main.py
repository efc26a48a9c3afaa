from __future__ import annotations

import platform
import sys
import traceback
from typing import Any

from .lib.config import DEFAULT_LOG_DIR, ConfigError, Settings
from .lib.engine import run_once as _run_engine
from .lib.models import RunOutcome
from .lib.run_log import RunLog
from .lib.utils import now_iso, setting_str


def run(**kwargs: Any) -> RunOutcome:
    """
    Entry point for the 'phd_watch' module.

    Accepts kwargs (from CLI/scheduler), including:
      base_url: str
      max_pages: int = 16
      headless: bool = True
      output_path: str = "data/phd-listings.csv"
      log_dir: str = "logs"
      ...plus any wait/timeout field on Settings.

    Returns:
      RunOutcome (ok=False when no listing survived filtering; log_path is None
      when the run log could not be written).

    Raises:
      ConfigError / SessionError / anything structural, after the run log is flushed.
    The run log is flushed exactly once on every path.
    """
    try:
        settings = Settings.from_env_and_kwargs(kwargs)
    except ConfigError as e:
        run_log = RunLog(setting_str(kwargs, "log_dir", "PHD_WATCH_LOG_DIR", DEFAULT_LOG_DIR))
        run_log.error("Fatal error", {"message": str(e), "stack": traceback.format_exc()})
        run_log.flush()
        raise

    run_log = RunLog(settings.log_dir)
    outcome: RunOutcome | None = None
    try:
        run_log.info("=== PhD Listings Scraper Started ===")
        run_log.info(f"Timestamp: {now_iso()}")
        run_log.info(f"Python version: {platform.python_version()}")
        run_log.info(f"Platform: {sys.platform}")

        outcome = _run_engine(settings, run_log)
        if outcome.ok:
            run_log.success("=== Scraper completed successfully ===")
    except Exception as e:
        run_log.error("Fatal error", {"message": str(e), "stack": traceback.format_exc()})
        raise
    finally:
        log_path = run_log.flush()
        if outcome is not None:
            outcome.log_path = log_path
    return outcome
