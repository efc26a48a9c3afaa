# modules/phd_watch/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, Settings
from .models import Listing, LogEntry, RunOutcome
from .run_log import RunLog

__all__ = [
    "ConfigError",
    "Listing",
    "LogEntry",
    "RunLog",
    "RunOutcome",
    "Settings",
]
