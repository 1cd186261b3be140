"""Client for the site's public JSON API"""

from typing import Any, Callable, Dict, List, Optional

import orjson
from curl_cffi import CurlError
from curl_cffi.requests import AsyncSession
from loguru import logger

from .circuit_breaker import CircuitBreaker
from .config import API_BASE_URL, BASE_URL, DEFAULT_REQUEST_TIMEOUT
from .exceptions import APIError
from .retry import retry_fixed


class CodeforcesAPIClient:
    """
    Thin client for https://codeforces.com/api.

    Used to discover what to scrape (a contest's problem indices, finished
    contests of a division); the problem pages themselves always go through
    the browser. Every response is an envelope ``{"status": "OK", "result":
    ...}`` or ``{"status": "FAILED", "comment": ...}``.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        impersonate: str = "firefox135",
        session_factory: Optional[Callable[..., Any]] = None,
    ):
        """
        Initialize API client.

        Args:
            timeout: Request timeout in seconds
            impersonate: curl_cffi browser fingerprint to present
            session_factory: Callable returning an async HTTP session context
        """
        self.timeout = timeout
        self.impersonate = impersonate
        self.session_factory = session_factory or AsyncSession
        self.circuit_breaker = CircuitBreaker(name="cf_api")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    async def _call(self, method: str, params: Dict[str, Any]) -> Any:
        """Call one API method and unwrap its result"""
        return await self.circuit_breaker.call(
            retry_fixed,
            self._request,
            method,
            params,
            retry_on=(CurlError,),
            identifier=method,
        )

    async def _request(self, method: str, params: Dict[str, Any]) -> Any:
        url = f"{API_BASE_URL}/{method}"
        logger.debug(f"→ GET {url} {params}")

        async with self.session_factory(impersonate=self.impersonate) as session:
            response = await session.get(url, params=params, timeout=self.timeout)

        logger.debug(f"← Response {response.status_code}")

        # Failed calls come back as 400 with a JSON envelope, so parse first
        try:
            payload = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise APIError(
                f"Non-JSON response (HTTP {response.status_code})", identifier=method
            ) from e

        if not isinstance(payload, dict) or payload.get("status") != "OK":
            comment = payload.get("comment") if isinstance(payload, dict) else None
            raise APIError(
                comment or f"Unexpected response (HTTP {response.status_code})",
                identifier=method,
            )

        return payload.get("result")

    async def get_problem_indices(self, contest_id: str) -> List[str]:
        """Problem indices of a contest, in contest order"""
        result = await self._call(
            "contest.standings", {"contestId": contest_id, "from": 1, "count": 1}
        )
        indices = [p["index"] for p in (result or {}).get("problems", []) if "index" in p]
        logger.info(f"📋 Contest {contest_id}: {len(indices)} problems ({', '.join(indices)})")
        return indices

    async def list_contests(
        self, division: Optional[int] = None, limit: int = 20
    ) -> List[Dict[str, Any]]:
        """
        Most recent finished contests, newest first.

        Args:
            division: Keep only contests whose name contains "Div. N"
            limit: Maximum number of contests returned
        """
        result = await self._call("contest.list", {"gym": "false"})

        contests = []
        for contest in result or []:
            if contest.get("phase") != "FINISHED":
                continue
            if division is not None and f"Div. {division}" not in contest.get("name", ""):
                continue

            contests.append(
                {
                    "id": contest["id"],
                    "name": contest.get("name", ""),
                    "start_time_seconds": contest.get("startTimeSeconds"),
                    "url": f"{BASE_URL}/contest/{contest['id']}",
                }
            )
            if len(contests) >= limit:
                break

        logger.info(f"📋 Found {len(contests)} finished contests")
        return contests
