"""Codeforces problem scraper
Async browser automation for problems and accepted solutions, with challenge
handling, login and circuit breaking
"""

__version__ = "0.1.0"

from .api_client import CodeforcesAPIClient
from .auth import Authenticator
from .batch import BatchOrchestrator
from .challenge import ChallengeHandler
from .circuit_breaker import CircuitBreaker
from .cookie_manager import CookieManager
from .exceptions import (
    APIError,
    AuthRequiredError,
    CFScraperError,
    ChallengeTimeoutError,
    CircuitOpenError,
    ContentNotFoundError,
    CredentialsMissingError,
    FormNotFoundError,
    LoginVerificationFailed,
    NavigationError,
    ScrapeTimeoutError,
)
from .extractor import ProblemExtractor, parse_problem
from .models import (
    BatchItemResult,
    ChallengeState,
    CircuitState,
    Credentials,
    ErrorType,
    ProblemRecord,
    SampleTest,
    SolutionRecord,
)
from .scraper import CodeforcesScraper
from .session_manager import BrowserSession, SessionManager
from .solutions import SolutionExtractor, normalize_language

__all__ = [
    "__version__",
    "APIError",
    "AuthRequiredError",
    "Authenticator",
    "BatchItemResult",
    "BatchOrchestrator",
    "BrowserSession",
    "CFScraperError",
    "ChallengeHandler",
    "ChallengeState",
    "ChallengeTimeoutError",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "CodeforcesAPIClient",
    "CodeforcesScraper",
    "ContentNotFoundError",
    "CookieManager",
    "Credentials",
    "CredentialsMissingError",
    "ErrorType",
    "FormNotFoundError",
    "LoginVerificationFailed",
    "NavigationError",
    "ProblemExtractor",
    "ProblemRecord",
    "SampleTest",
    "ScrapeTimeoutError",
    "SessionManager",
    "SolutionExtractor",
    "SolutionRecord",
    "normalize_language",
    "parse_problem",
]
