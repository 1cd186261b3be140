import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

from cf_scraper.cookie_manager import CookieManager
from cf_scraper.session_manager import SessionManager
from cf_scraper.stealth import FINGERPRINT_MASK_SCRIPT, USER_AGENTS, VIEWPORTS

COOKIE = {"name": "JSESSIONID", "value": "abc", "domain": "codeforces.com", "path": "/"}


@pytest.fixture
def cookie_manager(tmp_path: Path):
    return CookieManager(tmp_path / "cf_session.json")


@pytest.mark.asyncio
async def test_concurrent_acquire_launches_once(fake_launcher, cookie_manager):
    sessions = SessionManager(cookie_manager, launcher=fake_launcher)

    results = await asyncio.gather(*[sessions.acquire() for _ in range(5)])

    assert fake_launcher.launches == 1
    assert all(session is results[0] for session in results)
    await sessions.close()


@pytest.mark.asyncio
async def test_context_gets_profile_and_mask_script(fake_launcher, cookie_manager):
    sessions = SessionManager(cookie_manager, launcher=fake_launcher)
    session = await sessions.acquire()

    options = fake_launcher.browsers[0].context_options[0]
    assert options["user_agent"] in USER_AGENTS
    assert options["viewport"] in VIEWPORTS
    assert session.context.init_scripts == [FINGERPRINT_MASK_SCRIPT]
    assert not session.logged_in
    await sessions.close()


@pytest.mark.asyncio
async def test_saved_cookies_are_restored(fake_launcher, cookie_manager):
    await cookie_manager.save([COOKIE])
    sessions = SessionManager(cookie_manager, launcher=fake_launcher)

    session = await sessions.acquire()

    assert session.context.added_cookies == [COOKIE]
    await sessions.close()


@pytest.mark.asyncio
async def test_close_persists_cookies_and_tears_down(fake_launcher, cookie_manager):
    sessions = SessionManager(cookie_manager, launcher=fake_launcher)
    session = await sessions.acquire()
    session.context.jar.append(COOKIE)

    await sessions.close()

    assert fake_launcher.closes == 1
    assert sessions.session is None
    assert await CookieManager(cookie_manager.cookie_file).load() == [COOKIE]

    # closing twice is harmless
    await sessions.close()
    assert fake_launcher.closes == 1


@pytest.mark.asyncio
async def test_page_is_closed_even_on_error(fake_launcher, cookie_manager):
    async with SessionManager(cookie_manager, launcher=fake_launcher) as sessions:
        with pytest.raises(RuntimeError):
            async with sessions.page() as page:
                raise RuntimeError("extraction blew up")

        assert page.closed
        assert not sessions.session.page.closed

    assert fake_launcher.closes == 1


@pytest.mark.asyncio
async def test_failed_setup_releases_browser(cookie_manager):
    closes = []

    class BrokenBrowser:
        async def new_context(self, **options):
            raise RuntimeError("context creation failed")

    @asynccontextmanager
    async def launcher(headless):
        try:
            yield BrokenBrowser()
        finally:
            closes.append(True)

    sessions = SessionManager(cookie_manager, launcher=launcher)

    with pytest.raises(RuntimeError):
        await sessions.acquire()

    assert closes == [True]
    assert sessions.session is None
