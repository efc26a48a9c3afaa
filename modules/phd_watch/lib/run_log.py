from __future__ import annotations

import json
import logging
import os
from typing import Any

from .models import LEVELS, LogEntry
from .utils import file_stamp, now_iso

LOG = logging.getLogger("phd_watch.run")

# Console mirror level for each run-log level
_STD_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class RunLog:
    """
    In-memory, append-only event log for one harvest run.

    Every entry is mirrored to the stdlib logger ``phd_watch.run`` as it is
    recorded, and the whole run is written once to ``<log_dir>/scrape-<ts>.log``
    by ``flush()``.
    """

    def __init__(self, log_dir: str = "logs") -> None:
        self.path = os.path.join(log_dir, f"scrape-{file_stamp()}.log")
        self.entries: list[LogEntry] = []
        self._flushed = False

    # ---- recording ----
    def log(self, level: str, message: str, data: Any = None) -> LogEntry:
        level = (level or "").strip().lower()
        if level not in LEVELS:
            raise ValueError(f"Unknown log level {level!r}; expected one of {LEVELS}.")
        entry = LogEntry(timestamp=now_iso(), level=level, message=message, data=data)
        self.entries.append(entry)
        LOG.log(_STD_LEVELS[level], "%s", _format_line(entry))
        return entry

    def info(self, message: str, data: Any = None) -> LogEntry:
        return self.log("info", message, data)

    def warn(self, message: str, data: Any = None) -> LogEntry:
        return self.log("warn", message, data)

    def error(self, message: str, data: Any = None) -> LogEntry:
        return self.log("error", message, data)

    def success(self, message: str, data: Any = None) -> LogEntry:
        return self.log("success", message, data)

    def count(self, level: str) -> int:
        return sum(1 for e in self.entries if e.level == level)

    # ---- persistence ----
    @property
    def flushed(self) -> bool:
        return self._flushed

    def render(self) -> str:
        """Human-readable dump: one block per entry, blocks separated by a blank line."""
        return "\n\n".join(_format_block(e) for e in self.entries)

    def flush(self) -> str | None:
        """
        Write the accumulated log to ``self.path``. Only the first call writes;
        later calls return the same path without touching the file.
        Returns None if the write failed (reported via stdlib logging).
        """
        if self._flushed:
            return self.path
        self._flushed = True
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(self.render())
        except OSError:
            LOG.exception("Failed to save log file %s", self.path)
            return None
        LOG.info("Log file saved to: %s", self.path)
        return self.path


# ---- formatting ----
def _dump(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2, default=str)


def _format_line(entry: LogEntry) -> str:
    line = f"[{entry.timestamp}] [{entry.level.upper()}] {entry.message}"
    if entry.data is not None:
        line += " " + _dump(entry.data)
    return line


def _format_block(entry: LogEntry) -> str:
    block = f"[{entry.timestamp}] [{entry.level.upper()}] {entry.message}"
    if entry.data is not None:
        block += "\n" + _dump(entry.data)
    return block
