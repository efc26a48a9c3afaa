from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from dateutil import parser as dateparser

from .models import Listing
from .run_log import RunLog

# Anchor for fields a partial date string leaves out, so parsing never depends on "today".
_DEFAULT_ANCHOR = datetime(2000, 1, 1)


def has_empty_fields(listing: Listing) -> bool:
    return not (
        (listing.title or "").strip()
        and (listing.uni or "").strip()
        and (listing.deadline or "").strip()
    )


def parse_deadline(text: str | None) -> date | None:
    """
    Parse a human-readable deadline ("10 January 2025", "2025-01-10", ...).
    Returns None for empty or unparsable input; never raises.
    """
    s = (text or "").strip()
    if not s:
        return None
    try:
        return dateparser.parse(s, default=_DEFAULT_ANCHOR).date()
    except (ValueError, OverflowError, TypeError):
        return None


def _sort_key(listing: Listing) -> tuple[bool, date]:
    parsed = parse_deadline(listing.deadline)
    if parsed is None:
        # undated: all share one key, so the stable sort keeps their input order
        return (False, date.min)
    return (True, parsed)


def sort_by_deadline(listings: Iterable[Listing]) -> list[Listing]:
    """Latest deadline first; dated listings always precede undated ones."""
    return sorted(listings, key=_sort_key, reverse=True)


def process(listings: Iterable[Listing], run_log: RunLog) -> list[Listing]:
    """
    Filter incomplete listings (logging each drop), then sort by deadline.
    Input is never mutated; a new list is returned.
    """
    items = list(listings)
    run_log.info(f"Total listings before filtering: {len(items)}")

    kept: list[Listing] = []
    for item in items:
        if has_empty_fields(item):
            run_log.warn("Filtered out listing with empty fields", {"listing": item.as_dict()})
            continue
        kept.append(item)

    run_log.info(f"Listings after filtering: {len(kept)} (removed {len(items) - len(kept)})")

    ordered = sort_by_deadline(kept)
    run_log.info("Listings sorted by deadline (latest first)")
    return ordered
