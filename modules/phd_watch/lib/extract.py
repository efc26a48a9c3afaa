from __future__ import annotations

from bs4 import BeautifulSoup  # pip install beautifulsoup4 html5lib

from .models import Listing

LISTING_SELECTOR = "div.col-md-18"
TITLE_SELECTOR = "span.h4"
UNI_SELECTOR = ".col-24.instLink span"
DEADLINE_SELECTOR = "span:nth-of-type(1) span.col-xs-24"

# Interstitial markers shown by the anti-bot layer before real content
CHALLENGE_TITLE_PHRASE = "Just a moment"
CHALLENGE_BODY_PHRASE = "Checking your browser"
CHALLENGE_CONTAINER_SELECTOR = "#challenge-running"


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html5lib")


def _text(block, selector: str) -> str:
    el = block.select_one(selector)
    return el.get_text().strip() if el is not None else ""


def is_challenge(html: str) -> bool:
    """True if the document looks like a bot-challenge interstitial."""
    soup = _soup(html)
    title = soup.title.get_text() if soup.title is not None else ""
    if CHALLENGE_TITLE_PHRASE in title:
        return True
    body = soup.body.get_text() if soup.body is not None else ""
    if CHALLENGE_BODY_PHRASE in body:
        return True
    return soup.select_one(CHALLENGE_CONTAINER_SELECTOR) is not None


def extract_listings(html: str, *, listing_selector: str = LISTING_SELECTOR) -> list[Listing]:
    """
    Return one Listing per listing block in document order.
    Missing field nodes resolve to "" (completeness is checked downstream).
    """
    soup = _soup(html)
    return [
        Listing(
            title=_text(block, TITLE_SELECTOR),
            uni=_text(block, UNI_SELECTOR),
            deadline=_text(block, DEADLINE_SELECTOR),
        )
        for block in soup.select(listing_selector)
    ]
