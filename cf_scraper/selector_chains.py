"""Ordered selector strategies and the lookup that walks them

Each chain is plain data, tried front to back; the first selector that
matches an element wins. Chains use Playwright selector syntax, so text
pseudo-classes such as ``:has-text()`` are allowed.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from loguru import logger
from playwright.async_api import Error as PlaywrightError

# Login form
USERNAME_SELECTORS = (
    "#handleOrEmail",
    'input[name="handleOrEmail"]',
    'input[name="handle"]',
    'input[placeholder*="handle" i]',
    'input[placeholder*="email" i]',
    'input[type="text"]:not([name="ftaa"])',
    'form input[type="text"]:first-of-type',
)

PASSWORD_SELECTORS = (
    "#password",
    'input[name="password"]',
    'input[type="password"]',
    'form input[type="password"]',
)

SUBMIT_SELECTORS = (
    'input[type="submit"]',
    'button[type="submit"]',
    'input[value*="Enter" i]',
    'button:has-text("Enter")',
    ".submit",
    "form button:last-of-type",
)

# Elements only rendered for an authenticated user. Scoped to the header
# user menu; sidebars link to /profile/<handle> for anonymous visitors too.
LOGGED_IN_INDICATORS = (
    '#header a[href*="/logout"]',
    '#header a[href^="/profile/"]',
    ".lang-chooser a[href*='/logout']",
)

# Markers of a page that demands a login instead of showing content
LOGIN_REQUIRED_MARKERS = (
    "form#enterForm",
    "#handleOrEmail",
    'input[name="handleOrEmail"]',
)

# Anti-bot interstitial markers, one chain per category
SCRIPT_INTERSTITIAL_MARKERS = (
    "#cf-challenge-running",
    "#challenge-running",
    "#challenge-spinner",
)

CAPTCHA_MARKERS = (
    ".cf-captcha-container",
    "#cf-captcha-container",
)

INTERACTIVE_WIDGET_MARKERS = (
    "#challenge-stage button",
    '#challenge-stage input[type="button"]',
)

MANAGED_WIDGET_MARKERS = (
    ".cf-turnstile",
    '[id^="cf-chl-widget"]',
)

# Problem page
PROBLEM_CONTAINER = ".problem-statement"

# Contest status page and submission source
STATUS_TABLE_SELECTORS = (
    "table.status-frame-datatable",
    ".datatable table",
)

SOURCE_SELECTORS = (
    "#program-source-text",
    "pre.prettyprint",
    ".source-code pre",
    ".program-source pre",
    "pre",
)


@dataclass
class SelectorMatch:
    selector: str
    element: Any


async def resolve_first(page, selectors: Sequence[str]) -> Optional[SelectorMatch]:
    """
    Try selectors in order and return the first one that matches.

    A selector the engine rejects counts as a miss, not an error.

    Args:
        page: Playwright page (or anything with ``query_selector``)
        selectors: Ordered selector strategies

    Returns:
        The first match, or None when every strategy is exhausted
    """
    for selector in selectors:
        try:
            element = await page.query_selector(selector)
        except PlaywrightError as e:
            logger.debug(f"   Selector rejected: {selector} ({e})")
            continue

        if element:
            logger.debug(f"   ✓ Matched selector: {selector}")
            return SelectorMatch(selector=selector, element=element)

    return None


async def any_present(page, selectors: Sequence[str]) -> bool:
    return await resolve_first(page, selectors) is not None
