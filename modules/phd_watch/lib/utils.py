from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

_TRUE_WORDS = frozenset({"1", "true", "yes", "on", "y", "t"})


def truthy(v: Any) -> bool:
    """Bool from a kwarg or env value: bools pass through, numbers are nonzero, words from _TRUE_WORDS."""
    if v is None or isinstance(v, bool):
        return bool(v)
    if isinstance(v, (int, float)):
        return v != 0
    return str(v).strip().lower() in _TRUE_WORDS


def getenv_str(name: str, default: str | None = None) -> str | None:
    return os.environ.get(name, default)


def first_set(*values: Any) -> Any:
    """First value that is neither None nor an empty string."""
    return next((v for v in values if v is not None and v != ""), None)


def setting_str(kwargs: Mapping[str, Any], key: str, env_name: str, default: str) -> str:
    """String setting resolved as kwargs[key] > $env_name > default, stripped."""
    return str(first_set(kwargs.get(key), getenv_str(env_name), default)).strip()


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with millisecond precision and a 'Z' suffix,
    the format every run-log entry carries.
    """
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def file_stamp() -> str:
    """Filesystem-safe UTC timestamp, e.g. 2025-01-01T00-00-00-000Z."""
    return now_iso().replace(":", "-").replace(".", "-")
