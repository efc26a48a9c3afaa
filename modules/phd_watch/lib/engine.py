"""
Engine for harvesting PhD listings and writing the CSV artifact.

Features:
  - One browser session per run, closed exactly once (try/finally)
  - Sequential page loop with a polite inter-page delay
  - Page-level failures absorbed by the fetcher; session failures propagate
  - Post-processing (filter + deadline sort) before serialization
  - Dependency injection for testability (`session_manager`, `fetcher`, `sleep`)
"""

from __future__ import annotations

import os
import time
import traceback
from collections.abc import Callable

from . import csv_render, postprocess
from .browser import SessionManager
from .config import Settings
from .fetcher import PageFetcher
from .models import Listing, RunOutcome
from .run_log import RunLog

SAMPLE_SIZE = 5


# =============================================================================
# PAGE LOOP
# =============================================================================
def harvest(
    settings: Settings,
    run_log: RunLog,
    *,
    session_manager: SessionManager | None = None,
    fetcher: PageFetcher | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[Listing]:
    """
    Scrape pages 1..settings.max_pages and return filtered, deadline-sorted listings.

    Raises:
        SessionError (or whatever the session manager raises) if the browser
        cannot be opened. Per-page failures never raise.
    """
    sessions = session_manager or SessionManager(settings, run_log)
    pages = fetcher or PageFetcher(settings, run_log, sleep=sleep)

    run_log.info(f"Starting scrape of {settings.max_pages} pages")
    run_log.info(f"Base URL: {settings.base_url}")
    started = time.perf_counter()

    collected: list[Listing] = []
    session = None
    try:
        session = sessions.open()
        for page_number in range(1, settings.max_pages + 1):
            collected.extend(pages.fetch_page(session, page_number))
            if page_number < settings.max_pages and settings.page_delay_s > 0:
                sleep(settings.page_delay_s)
    except Exception as e:
        run_log.error("Scraping failed", {"error": str(e), "stack": traceback.format_exc()})
        raise
    finally:
        sessions.close(session)

    elapsed = time.perf_counter() - started
    run_log.success(
        f"Scraping completed in {elapsed:.2f}s",
        {"totalListings": len(collected), "pages": settings.max_pages},
    )
    return postprocess.process(collected, run_log)


# =============================================================================
# FULL RUN
# =============================================================================
def run_once(
    settings: Settings,
    run_log: RunLog,
    *,
    session_manager: SessionManager | None = None,
    fetcher: PageFetcher | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunOutcome:
    """
    Harvest, then write the CSV if at least one listing survived filtering.

    Returns a RunOutcome; ok=False (and no CSV written) when nothing survived.
    Structural failures propagate to the caller, which owns the log flush.
    """
    listings = harvest(
        settings,
        run_log,
        session_manager=session_manager,
        fetcher=fetcher,
        sleep=sleep,
    )

    if not listings:
        run_log.warn("No listings found!")
        return RunOutcome(ok=False)

    run_log.info(f"Total listings collected: {len(listings)}")
    run_log.info("Generating CSV...")
    text = csv_render.serialize(listings)
    size = len(text.encode("utf-8"))
    run_log.info(f"CSV generated ({size} bytes)")

    path = settings.output_path
    _ensure_parent(path)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    run_log.success(f"CSV saved to: {path}")

    run_log.info(
        f"Sample of listings (first {SAMPLE_SIZE}):",
        {"sample": [item.as_dict() for item in listings[:SAMPLE_SIZE]]},
    )
    return RunOutcome(ok=True, listings=listings, csv_path=path, csv_bytes=size)


def _ensure_parent(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(d, exist_ok=True)
