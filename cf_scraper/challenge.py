"""Detection and resolution of anti-bot interstitials"""

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import (
    BODY_EXCERPT_LENGTH,
    CHALLENGE_TIMEOUT,
    INTERACTIVE_DELAY_RANGE,
    MANAGED_DELAY_RANGE,
    MAX_INTERACTIVE_ROUNDS,
    SETTLE_TIMEOUT,
)
from .exceptions import ChallengeTimeoutError
from .humanize import human_delay
from .models import ChallengeState
from .selector_chains import (
    CAPTCHA_MARKERS,
    INTERACTIVE_WIDGET_MARKERS,
    MANAGED_WIDGET_MARKERS,
    SCRIPT_INTERSTITIAL_MARKERS,
    any_present,
    resolve_first,
)

# True once none of the given selectors matches anything
_ALL_DETACHED = "selectors => selectors.every(s => !document.querySelector(s))"


class ChallengeHandler:
    """
    Classifies the interstitial a page is showing and waits it out.

    Each wait has a ceiling. A script interstitial that outlives its ceiling
    raises ChallengeTimeoutError; the final settle wait is allowed to expire
    because some challenges clear without navigating.
    """

    def __init__(
        self,
        challenge_timeout: float = CHALLENGE_TIMEOUT,
        settle_timeout: float = SETTLE_TIMEOUT,
        max_interactive_rounds: int = MAX_INTERACTIVE_ROUNDS,
    ):
        self.challenge_timeout = challenge_timeout
        self.settle_timeout = settle_timeout
        self.max_interactive_rounds = max_interactive_rounds

    async def classify(self, page) -> ChallengeState:
        """Check the DOM for every known marker category"""
        state = ChallengeState(
            script_interstitial=await any_present(page, SCRIPT_INTERSTITIAL_MARKERS),
            captcha_present=await any_present(page, CAPTCHA_MARKERS),
            interactive_widget=await any_present(page, INTERACTIVE_WIDGET_MARKERS),
            managed_widget=await any_present(page, MANAGED_WIDGET_MARKERS),
        )

        state.url = page.url
        try:
            state.title = await page.title()
            body = await page.inner_text("body", timeout=1000)
            state.body_excerpt = body.strip()[:BODY_EXCERPT_LENGTH]
        except PlaywrightError as e:
            logger.debug(f"   Diagnostic snapshot incomplete: {e}")

        return state

    async def handle(self, page) -> ChallengeState:
        """Classify the page and resolve whatever was found"""
        state = await self.classify(page)
        if not state.detected:
            return state

        logger.warning(f"🛡️ Challenge detected ({state.summary()}) at {state.url}")
        logger.debug(f"   Title: {state.title!r}")
        logger.debug(f"   Body: {state.body_excerpt[:120]!r}")
        return await self.resolve(page, state)

    async def resolve(self, page, state: ChallengeState) -> ChallengeState:
        """
        Wait out the challenge described by ``state``.

        Returns:
            The last classification taken

        Raises:
            ChallengeTimeoutError: If a script interstitial never cleared
        """
        if state.script_interstitial:
            await self._wait_for_script(page, state.url)

        rounds = 0
        while state.interactive_widget and rounds < self.max_interactive_rounds:
            rounds += 1
            match = await resolve_first(page, INTERACTIVE_WIDGET_MARKERS)
            if match:
                logger.info(f"🖱️ Clicking challenge control ({match.selector})...")
                try:
                    await match.element.click()
                except PlaywrightError as e:
                    logger.warning(f"⚠️ Challenge click failed: {e}")

            await human_delay(INTERACTIVE_DELAY_RANGE)
            state = await self.classify(page)
            if state.script_interstitial:
                await self._wait_for_script(page, state.url)

        if state.interactive_widget:
            logger.warning(
                f"⚠️ Interactive challenge still present after {rounds} clicks"
            )

        if state.managed_widget:
            logger.info("🎯 Managed widget present, waiting without interaction...")
            await human_delay(MANAGED_DELAY_RANGE)

        if state.captcha_present:
            logger.warning("⚠️ CAPTCHA present; solving it is outside this engine")

        await self._wait_for_settle(page)
        return state

    async def _wait_for_script(self, page, url: str) -> None:
        logger.info("🔄 Waiting for script interstitial to clear...")
        try:
            await page.wait_for_function(
                _ALL_DETACHED,
                arg=list(SCRIPT_INTERSTITIAL_MARKERS),
                timeout=int(self.challenge_timeout * 1000),
            )
        except PlaywrightTimeoutError as e:
            raise ChallengeTimeoutError(
                f"Script interstitial still present after {self.challenge_timeout:.0f}s",
                identifier=url,
            ) from e

        logger.success("✓ Script interstitial cleared")

    async def _wait_for_settle(self, page) -> None:
        try:
            await page.wait_for_load_state(
                "networkidle", timeout=int(self.settle_timeout * 1000)
            )
            logger.success("✅ Challenge handled, page settled")
        except PlaywrightTimeoutError:
            logger.info("⏳ No navigation detected, continuing...")
