"""Multi-strategy login against the site's entry form"""

from loguru import logger
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .challenge import ChallengeHandler
from .config import (
    FIELD_PAUSE_RANGE,
    LOGIN_SETTLE_TIMEOUT,
    LOGIN_URL,
    NAVIGATION_TIMEOUT,
    TYPING_DELAY_RANGE,
)
from .exceptions import FormNotFoundError, LoginVerificationFailed
from .humanize import human_delay
from .models import Credentials
from .retry import navigate
from .selector_chains import (
    LOGGED_IN_INDICATORS,
    PASSWORD_SELECTORS,
    SUBMIT_SELECTORS,
    USERNAME_SELECTORS,
    any_present,
    resolve_first,
)
from .session_manager import BrowserSession


class Authenticator:
    """
    Logs a browser session in through the HTML form.

    Every form element is located through an ordered selector chain, so a
    markup change only costs a fallback, not the login.
    """

    def __init__(
        self,
        challenge: ChallengeHandler = None,
        login_url: str = LOGIN_URL,
        navigation_timeout: float = NAVIGATION_TIMEOUT,
        settle_timeout: float = LOGIN_SETTLE_TIMEOUT,
    ):
        self.challenge = challenge or ChallengeHandler()
        self.login_url = login_url
        self.navigation_timeout = navigation_timeout
        self.settle_timeout = settle_timeout

    async def login(self, session: BrowserSession, credentials: Credentials) -> None:
        """
        Log the session in. A no-op when it already is.

        Raises:
            FormNotFoundError: If a form field could not be located
            LoginVerificationFailed: If the form stayed or no header user menu appeared
            ChallengeTimeoutError: If the entry page stayed behind an interstitial
            NavigationError: If the entry page could not be reached
        """
        if session.logged_in:
            logger.debug("Session already logged in, skipping")
            return

        page = session.page
        logger.info(f"🔐 Logging in as {credentials.username}...")
        await navigate(page, self.login_url, timeout=self.navigation_timeout)
        await self.challenge.handle(page)

        username_field = await resolve_first(page, USERNAME_SELECTORS)
        if username_field is None and await self._is_authenticated(page):
            logger.success("✅ Restored session is already authenticated")
            session.logged_in = True
            return

        if username_field is None:
            raise FormNotFoundError(
                "No username field matched", identifier="USERNAME_SELECTORS"
            )

        password_field = await resolve_first(page, PASSWORD_SELECTORS)
        if password_field is None:
            raise FormNotFoundError(
                "No password field matched", identifier="PASSWORD_SELECTORS"
            )

        await self._type_slowly(page, username_field.element, credentials.username)
        await human_delay(FIELD_PAUSE_RANGE)
        await self._type_slowly(page, password_field.element, credentials.password)
        await human_delay(FIELD_PAUSE_RANGE)

        submit = await resolve_first(page, SUBMIT_SELECTORS)
        if submit:
            logger.debug(f"   Submitting via {submit.selector}")
            await submit.element.click()
        else:
            logger.debug("   No submit control matched, pressing Enter")
            await password_field.element.press("Enter")

        try:
            await page.wait_for_load_state(
                "networkidle", timeout=int(self.settle_timeout * 1000)
            )
        except PlaywrightTimeoutError:
            logger.debug("   Login page did not reach network idle, verifying anyway")

        if not await self._is_authenticated(page):
            raise LoginVerificationFailed(
                "Login form still shown or no authenticated-only element after submit",
                identifier=credentials.username,
            )

        session.logged_in = True
        logger.success(f"✅ Logged in as {credentials.username}")

    @staticmethod
    async def _is_authenticated(page) -> bool:
        """Header user menu present and the entry form gone"""
        if await any_present(page, USERNAME_SELECTORS) or await any_present(
            page, PASSWORD_SELECTORS
        ):
            return False
        return await any_present(page, LOGGED_IN_INDICATORS)

    @staticmethod
    async def _type_slowly(page, element, text: str) -> None:
        # fill() clears and focuses the field; keystrokes go to the focus
        await element.fill("")
        for char in text:
            await page.keyboard.type(char)
            await human_delay(TYPING_DELAY_RANGE)
