from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

LEVELS = ("info", "warn", "error", "success")


@dataclass(frozen=True)
class Listing:
    """
    A single PhD listing as extracted from one listing block (pre-filter).
    `uni` is the organization; `deadline` is the raw human-readable text.
    """

    title: str
    uni: str
    deadline: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class LogEntry:
    """One leveled, timestamped run-log event."""

    timestamp: str  # ISO-8601, UTC
    level: str  # one of LEVELS
    message: str
    data: Any = None


@dataclass
class RunOutcome:
    """
    Result bundle for a single harvest run.
    - ok: True only if at least one listing survived filtering and the CSV was written.
    - listings: the filtered, sorted listings (may be empty).
    - log_path: where the run log landed; None until flushed or if the write failed.
    """

    ok: bool
    listings: list[Listing] = field(default_factory=list)
    csv_path: str | None = None
    csv_bytes: int = 0
    log_path: str | None = None
