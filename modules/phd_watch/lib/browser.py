"""
Browser session lifecycle for the harvester.

One SessionManager owns one playwright driver, one Chromium process, one
browsing context and exactly one reused page. The fetcher only ever sees the
page through the small ``BrowserPage`` protocol, so tests can hand it a fake.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout
from playwright.sync_api import sync_playwright

from .config import Settings
from .run_log import RunLog

log = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}
LOCALE = "en-GB"
EXTRA_HEADERS = {
    "Accept-Language": "en-GB,en-US;q=0.9,en;q=0.8",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
]

# Installed on the page before any site script runs.
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
delete Object.getPrototypeOf(navigator).webdriver;
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) => (
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters)
);
"""


class SessionError(RuntimeError):
    """Raised when a browser session cannot be established (structural failure)."""


# -----------------------------------------------------------------------------
# Page capability
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class NavigationResult:
    status: int | None
    status_text: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not None and 200 <= self.status < 400


class BrowserPage(Protocol):
    """What the fetcher needs from a live page."""

    def goto(self, url: str, *, timeout_ms: int) -> NavigationResult | None: ...

    def content(self) -> str: ...

    def wait_for_selector(self, selector: str, *, timeout_ms: int) -> bool: ...

    def close(self) -> None: ...


class PlaywrightPage:
    """Adapts a playwright sync ``Page`` to ``BrowserPage``."""

    def __init__(self, page: Any) -> None:
        self._page = page

    def goto(self, url: str, *, timeout_ms: int) -> NavigationResult | None:
        resp = self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        if resp is None:
            return None
        return NavigationResult(status=resp.status, status_text=resp.status_text or "")

    def content(self) -> str:
        try:
            return self._page.content()
        except PlaywrightError:
            # content() fails while a challenge redirect is in flight; settle and read again
            self._page.wait_for_load_state("domcontentloaded")
            return self._page.content()

    def wait_for_selector(self, selector: str, *, timeout_ms: int) -> bool:
        try:
            self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeout:
            return False
        return True

    def close(self) -> None:
        self._page.close()


# -----------------------------------------------------------------------------
# Session
# -----------------------------------------------------------------------------
@dataclass
class BrowserSession:
    page: BrowserPage | None = None
    driver: Any = None  # playwright.sync_api.Playwright
    browser: Any = None
    context: Any = None
    closed: bool = False


class SessionManager:
    """
    Owns the lifecycle of one browser session.

    open()  -> launch browser, configure context + stealth, create the single page
    close() -> release page, context, browser, driver; never raises
    """

    def __init__(
        self,
        settings: Settings,
        run_log: RunLog,
        *,
        start_driver: Callable[[], Any] | None = None,
    ) -> None:
        self.settings = settings
        self.run_log = run_log
        self._start_driver = start_driver or (lambda: sync_playwright().start())

    def open(self) -> BrowserSession:
        self.run_log.info(f"Launching browser (headless: {str(self.settings.headless).lower()})...")
        session = BrowserSession()
        try:
            session.driver = self._start_driver()
            session.browser = session.driver.chromium.launch(
                headless=self.settings.headless,
                args=list(LAUNCH_ARGS),
            )
            session.context = session.browser.new_context(
                user_agent=USER_AGENT,
                viewport=dict(VIEWPORT),
                locale=LOCALE,
                extra_http_headers=dict(EXTRA_HEADERS),
            )
            raw_page = session.context.new_page()
            raw_page.add_init_script(STEALTH_SCRIPT)
            session.page = PlaywrightPage(raw_page)
        except Exception as e:
            # Release whatever did start; the launch failure is what the caller sees.
            self.close(session)
            raise SessionError(f"Browser launch failed: {e}") from e

        self.run_log.info("Browser launched successfully")
        return session

    def close(self, session: BrowserSession | None) -> None:
        if session is None or session.closed:
            return
        session.closed = True

        if session.page is not None:
            self._quietly("page", session.page.close)
        if session.context is not None:
            self._quietly("context", session.context.close)
        if session.browser is not None:
            self.run_log.info("Closing browser...")
            self._quietly("browser", session.browser.close)
            self.run_log.info("Browser closed")
        if session.driver is not None:
            self._quietly("driver", session.driver.stop)

    def _quietly(self, what: str, fn: Callable[[], Any]) -> None:
        try:
            fn()
        except Exception as e:
            log.debug("close(%s) swallow", what, exc_info=True)
            self.run_log.warn(f"Error while closing {what}", {"error": str(e)})
