from __future__ import annotations

import time
import traceback
from collections.abc import Callable

from . import extract
from .browser import BrowserPage, BrowserSession
from .config import Settings
from .models import Listing
from .run_log import RunLog


class PageLoadError(RuntimeError):
    """Navigation produced no response or a non-2xx/3xx status."""


class PageFetcher:
    """
    Fetches and extracts one listing page at a time through a borrowed session.

    fetch_page() never raises: any failure is logged to the RunLog and turned
    into an empty result so the harvest moves on to the next page.
    """

    def __init__(
        self,
        settings: Settings,
        run_log: RunLog,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.run_log = run_log
        self._sleep = sleep
        self._clock = clock

    def fetch_page(self, session: BrowserSession, page_number: int) -> list[Listing]:
        try:
            if session.page is None:
                raise PageLoadError("Browser session has no open page")
            return self._fetch(session.page, page_number)
        except Exception as e:
            self.run_log.error(
                f"Failed to scrape page {page_number}",
                {"error": str(e), "stack": traceback.format_exc()},
            )
            return []

    # ---- internals ----

    def _fetch(self, page: BrowserPage, page_number: int) -> list[Listing]:
        s = self.settings
        url = s.page_url(page_number)
        self.run_log.info(f"Navigating to page {page_number}: {url}")

        resp = page.goto(url, timeout_ms=_ms(s.nav_timeout_s))
        if resp is None:
            raise PageLoadError("HTTP unknown: Failed to load")
        if not resp.ok:
            raise PageLoadError(f"HTTP {resp.status}: {resp.status_text or 'Failed to load'}")

        if extract.is_challenge(page.content()):
            self.run_log.info("Challenge page detected, waiting for completion...")
            self._wait_out_challenge(page)
            self.run_log.info("Challenge wait finished")
            self._pause(s.post_challenge_delay_s)

        if not page.wait_for_selector(s.listing_selector, timeout_ms=_ms(s.selector_timeout_s)):
            self.run_log.warn("Timeout waiting for listings selector, continuing anyway...")

        self._pause(s.settle_delay_s)

        listings = extract.extract_listings(page.content(), listing_selector=s.listing_selector)
        self.run_log.info(f"Found {len(listings)} listing blocks on page {page_number}")
        self.run_log.success(
            f"Page {page_number} scraped successfully",
            {"listingsFound": len(listings)},
        )
        return listings

    def _wait_out_challenge(self, page: BrowserPage) -> bool:
        """
        Poll until no challenge marker is present or the challenge timeout runs out.
        A timeout is logged once and tolerated.
        """
        deadline = self._clock() + self.settings.challenge_timeout_s
        while True:
            self._pause(self.settings.challenge_poll_s)
            if not extract.is_challenge(page.content()):
                return True
            if self._clock() >= deadline:
                self.run_log.warn("Challenge timeout, continuing anyway...")
                return False

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)


def _ms(seconds: float) -> int:
    return int(seconds * 1000)
