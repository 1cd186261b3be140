"""Custom exception classes for the Codeforces scraper"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class CFScraperError(Exception):
    """Base exception for scraper errors

    Every error carries the identifier it relates to (problem id, URL,
    selector chain) and the moment it was raised, so callers can log it
    without extra bookkeeping.
    """

    def __init__(self, message: str = "", identifier: Optional[str] = None):
        self.message = message or (self.__doc__ or self.__class__.__name__).splitlines()[0]
        self.identifier = identifier
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.identifier:
            return f"[{self.identifier}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "identifier": self.identifier,
            "timestamp": self.timestamp.isoformat(),
        }


class ChallengeTimeoutError(CFScraperError):
    """Raised when an anti-bot interstitial never cleared"""

    pass


class FormNotFoundError(CFScraperError):
    """Raised when no selector strategy located a login form field"""

    pass


class LoginVerificationFailed(CFScraperError):
    """Raised when no authenticated-only indicator appeared after login"""

    pass


class CredentialsMissingError(CFScraperError):
    """Raised when login credentials are not configured"""

    pass


class ContentNotFoundError(CFScraperError):
    """Raised when the problem statement container never appeared"""

    pass


class AuthRequiredError(CFScraperError):
    """Raised when the page asks for a login instead of showing content"""

    pass


class CircuitOpenError(CFScraperError):
    """Raised when circuit breaker is open"""

    def __init__(
        self,
        message: str = "",
        identifier: Optional[str] = None,
        retry_in: float = 0.0,
    ):
        self.retry_in = retry_in
        super().__init__(message, identifier)


class ScrapeTimeoutError(CFScraperError):
    """Raised when an operation exceeded its deadline"""

    pass


class NavigationError(CFScraperError):
    """Raised when navigation failed after all retry attempts"""

    pass


class APIError(CFScraperError):
    """Raised when the public API returned an error or malformed payload"""

    pass
