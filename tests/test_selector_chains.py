import random

import pytest
from playwright.async_api import Error as PlaywrightError

from cf_scraper.selector_chains import USERNAME_SELECTORS, any_present, resolve_first
from cf_scraper.session_manager import camoufox_options
from cf_scraper.stealth import (
    FINGERPRINT_MASK_SCRIPT,
    USER_AGENTS,
    VIEWPORTS,
    pick_profile,
)

from conftest import FakePage


class PickyPage(FakePage):
    """Rejects selectors using a pseudo-class the engine does not know"""

    async def query_selector(self, selector):
        if ":has-text" in selector:
            raise PlaywrightError(f"Unknown pseudo-class in {selector}")
        return await super().query_selector(selector)


@pytest.mark.asyncio
async def test_first_matching_selector_wins():
    page = FakePage(present={USERNAME_SELECTORS[1], USERNAME_SELECTORS[3]})

    match = await resolve_first(page, USERNAME_SELECTORS)

    assert match.selector == USERNAME_SELECTORS[1]
    assert match.element is page.elements[USERNAME_SELECTORS[1]]


@pytest.mark.asyncio
async def test_exhausted_chain_returns_none():
    assert await resolve_first(FakePage(), USERNAME_SELECTORS) is None
    assert not await any_present(FakePage(), USERNAME_SELECTORS)


@pytest.mark.asyncio
async def test_rejected_selector_counts_as_miss():
    chain = ('button:has-text("Enter")', "#fallback")
    page = PickyPage(present={"#fallback"})

    match = await resolve_first(page, chain)

    assert match.selector == "#fallback"


def test_pick_profile_draws_from_pools():
    profile = pick_profile(random.Random(7))
    options = profile.context_options()

    assert profile.user_agent in USER_AGENTS
    assert profile.viewport in VIEWPORTS
    assert options["locale"] == "en-US"
    assert "Accept-Language" in options["extra_http_headers"]


def test_user_agents_match_the_gecko_engine_on_windows():
    assert camoufox_options(headless=True) == {"headless": True, "os": "windows"}
    for user_agent in USER_AGENTS:
        assert "Gecko/20100101 Firefox/" in user_agent
        assert "Windows NT 10.0" in user_agent
        assert "Chrome/" not in user_agent
        assert "AppleWebKit" not in user_agent


def test_mask_script_reports_firefox_values():
    assert "'Win32'" in FINGERPRINT_MASK_SCRIPT
    assert "!(prop in target)" in FINGERPRINT_MASK_SCRIPT
    assert "cdc_" not in FINGERPRINT_MASK_SCRIPT
