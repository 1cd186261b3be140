"""Facade tying the engine together: scrape_one, batch_scrape, scrape_top_solutions, login"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urljoin

from loguru import logger

from .auth import Authenticator
from .batch import BatchOrchestrator
from .challenge import ChallengeHandler
from .circuit_breaker import CircuitBreaker
from .config import (
    BASE_URL,
    DEFAULT_ITEM_TIMEOUT,
    DEFAULT_SOLUTION_LIMIT,
    NAVIGATION_TIMEOUT,
    PROBLEM_URL_TEMPLATE,
    STATUS_URL_TEMPLATE,
)
from .extractor import ProblemExtractor
from .models import BatchItemResult, Credentials, ProblemRecord, SolutionRecord
from .retry import navigate
from .session_manager import BrowserSession, SessionManager
from .solutions import SolutionExtractor


class CodeforcesScraper:
    """
    Entry point used by callers of the engine.

    Usage:
        async with CodeforcesScraper(SessionManager(CookieManager(path))) as scraper:
            record = await scraper.scrape_one("1850", "A")
    """

    def __init__(
        self,
        sessions: SessionManager,
        credentials: Optional[Credentials] = None,
        breaker: Optional[CircuitBreaker] = None,
        challenge: Optional[ChallengeHandler] = None,
        authenticator: Optional[Authenticator] = None,
        extractor: Optional[ProblemExtractor] = None,
        orchestrator: Optional[BatchOrchestrator] = None,
        solution_extractor: Optional[SolutionExtractor] = None,
        item_timeout: Optional[float] = DEFAULT_ITEM_TIMEOUT,
        navigation_timeout: float = NAVIGATION_TIMEOUT,
    ):
        """
        Initialize scraper.

        Args:
            sessions: Owner of the shared browser
            credentials: Login credentials; anonymous access when None
            breaker: Circuit breaker guarding every fetch
            challenge: Interstitial handler
            authenticator: Login strategy
            extractor: Page parser
            orchestrator: Batch runner
            solution_extractor: Status page and submission source parser
            item_timeout: Overall deadline per item in seconds, None for none
            navigation_timeout: Per-attempt navigation timeout in seconds
        """
        self.sessions = sessions
        self.credentials = credentials
        self.breaker = breaker or CircuitBreaker(name="codeforces")
        self.challenge = challenge or ChallengeHandler()
        self.authenticator = authenticator or Authenticator(challenge=self.challenge)
        self.extractor = extractor or ProblemExtractor()
        self.orchestrator = orchestrator or BatchOrchestrator()
        self.solution_extractor = solution_extractor or SolutionExtractor()
        self.item_timeout = item_timeout
        self.navigation_timeout = navigation_timeout

        self._login_lock = asyncio.Lock()

    async def __aenter__(self) -> "CodeforcesScraper":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def login(self) -> None:
        """
        Log the shared session in.

        Raises:
            CredentialsMissingError: If no credentials were configured
            FormNotFoundError, LoginVerificationFailed: If the login failed
        """
        if self.credentials is None:
            self.credentials = Credentials.from_env()

        session = await self.sessions.acquire()
        async with self._login_lock:
            await self.authenticator.login(session, self.credentials)

    async def scrape_one(self, contest_id: str, index: str) -> ProblemRecord:
        """Fetch one problem under circuit breaker protection"""
        return await self.breaker.call(
            self._fetch_problem,
            str(contest_id),
            index,
            timeout=self.item_timeout,
            identifier=f"{contest_id}{index}",
        )

    async def batch_scrape(
        self, contest_id: str, indices: Sequence[str]
    ) -> List[BatchItemResult]:
        """Fetch several problems of one contest; never raises per item"""
        return await self.orchestrator.batch_fetch(
            str(contest_id), indices, self.scrape_one
        )

    async def scrape_top_solutions(
        self,
        contest_id: str,
        index: str,
        language: str,
        limit: int = DEFAULT_SOLUTION_LIMIT,
    ) -> List[SolutionRecord]:
        """
        Fetch the sources of the first accepted submissions in ``language``
        listed on the contest status page, under circuit breaker protection.
        """
        return await self.breaker.call(
            self._fetch_solutions,
            str(contest_id),
            index,
            language,
            limit,
            timeout=self.item_timeout,
            identifier=f"{contest_id}{index}",
        )

    def cancel_batch(self) -> None:
        self.orchestrator.cancel()

    def breaker_status(self) -> Dict[str, Any]:
        return self.breaker.status()

    async def close(self) -> None:
        await self.sessions.close()

    async def _ensure_logged_in(self, session: BrowserSession) -> None:
        if self.credentials is None or session.logged_in:
            return
        async with self._login_lock:
            if not session.logged_in:
                await self.authenticator.login(session, self.credentials)

    async def _fetch_problem(self, contest_id: str, index: str) -> ProblemRecord:
        session = await self.sessions.acquire()
        await self._ensure_logged_in(session)

        url = PROBLEM_URL_TEMPLATE.format(contest_id=contest_id, index=index)
        logger.info(f"🌐 Fetching {contest_id}{index}: {url}")

        async with self.sessions.page() as page:
            await navigate(page, url, timeout=self.navigation_timeout)
            await self.challenge.handle(page)
            return await self.extractor.extract(page, contest_id, index)

    async def _fetch_solutions(
        self, contest_id: str, index: str, language: str, limit: int
    ) -> List[SolutionRecord]:
        session = await self.sessions.acquire()
        await self._ensure_logged_in(session)

        url = STATUS_URL_TEMPLATE.format(contest_id=contest_id, index=index)
        logger.info(f"🌐 Looking for accepted {language} solutions of {contest_id}{index}: {url}")

        records = []
        async with self.sessions.page() as page:
            await navigate(page, url, timeout=self.navigation_timeout)
            await self.challenge.handle(page)
            rows = await self.solution_extractor.accepted_submissions(
                page, contest_id, index, language, limit
            )

            for row in rows:
                await navigate(
                    page, urljoin(BASE_URL, row.href), timeout=self.navigation_timeout
                )
                await self.challenge.handle(page)
                records.append(
                    await self.solution_extractor.extract_source(
                        page, contest_id, index, row
                    )
                )

        return records
