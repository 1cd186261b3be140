"""Lifecycle of the one shared automated-browser session"""

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from loguru import logger
from playwright.async_api import Error as PlaywrightError

from .cookie_manager import CookieManager
from .stealth import (
    CAMOUFOX_OS,
    FINGERPRINT_MASK_SCRIPT,
    StealthProfile,
    pick_profile,
)


def camoufox_options(headless: bool) -> Dict[str, Any]:
    """Launch options keeping Camoufox's own fingerprint on the pooled OS"""
    return {"headless": headless, "os": CAMOUFOX_OS}


def camoufox_launcher(headless: bool):
    """Async context manager yielding a Camoufox (Firefox) browser"""
    from camoufox.async_api import AsyncCamoufox

    return AsyncCamoufox(**camoufox_options(headless))


@dataclass
class BrowserSession:
    """
    The shared browser identity: one context (cookie jar) plus the primary
    page used for login. Owned by the SessionManager.
    """

    context: Any
    page: Any
    profile: StealthProfile
    logged_in: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    async def cookies(self) -> List[Dict[str, Any]]:
        return await self.context.cookies()


class SessionManager:
    """
    Owns the single long-lived browser resource.

    The browser is launched lazily on the first ``acquire()`` and reused by
    every later call. Concurrency is isolated at the page level: each
    in-flight item gets its own page from ``page()``, all sharing one
    context and therefore one cookie jar.

    Usage:
        async with SessionManager(CookieManager(path)) as sessions:
            async with sessions.page() as page:
                ...
    """

    def __init__(
        self,
        cookie_manager: Optional[CookieManager] = None,
        headless: bool = True,
        launcher: Callable[[bool], Any] = camoufox_launcher,
    ):
        """
        Initialize session manager.

        Args:
            cookie_manager: Persistence for the cookie jar
            headless: Run browser in headless mode
            launcher: Factory returning an async context manager that yields a browser
        """
        self.cookie_manager = cookie_manager or CookieManager()
        self.headless = headless
        self.launcher = launcher

        self._session: Optional[BrowserSession] = None
        self._stack: Optional[AsyncExitStack] = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> Optional[BrowserSession]:
        return self._session

    async def __aenter__(self) -> "SessionManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def acquire(self) -> BrowserSession:
        """Return the ready session, launching the browser on first use"""
        if self._session is not None:
            return self._session

        async with self._lock:
            if self._session is not None:
                return self._session

            logger.info("🚀 Launching browser session...")
            stack = AsyncExitStack()
            try:
                browser = await stack.enter_async_context(self.launcher(self.headless))

                profile = pick_profile()
                context = await browser.new_context(**profile.context_options())
                await context.add_init_script(FINGERPRINT_MASK_SCRIPT)
                await self._restore_cookies(context)

                page = await context.new_page()
            except BaseException:
                await stack.aclose()
                raise

            self._stack = stack
            self._session = BrowserSession(context=context, page=page, profile=profile)

            logger.success(
                f"✅ Browser session ready ({profile.viewport['width']}x"
                f"{profile.viewport['height']})"
            )
            logger.debug(f"   User agent: {profile.user_agent}")
            return self._session

    async def _restore_cookies(self, context) -> None:
        cookies = await self.cookie_manager.load()
        if not cookies:
            return

        try:
            await context.add_cookies(cookies)
            logger.info(f"🔄 Session restored ({len(cookies)} cookies)")
        except PlaywrightError as e:
            logger.warning(f"⚠️ Could not restore saved cookies: {e}")

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Any]:
        """Open a dedicated page on the shared context; always closed afterwards"""
        session = await self.acquire()
        page = await session.context.new_page()
        try:
            yield page
        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.debug(f"   Page already closed: {e}")

    async def close(self) -> None:
        """Persist cookies, then tear the browser down"""
        async with self._lock:
            if self._session is None:
                return

            session, stack = self._session, self._stack
            self._session = None
            self._stack = None

            try:
                await self.cookie_manager.save(await session.cookies())
            except (PlaywrightError, OSError) as e:
                logger.error(f"Failed to save session cookies: {e}")
            finally:
                await stack.aclose()

        logger.info("🔒 Browser session closed")
