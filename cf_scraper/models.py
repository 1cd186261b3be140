"""Data models and enums for the Codeforces scraper"""

import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .config import PASSWORD_ENV_VAR, USERNAME_ENV_VAR
from .exceptions import CredentialsMissingError

_KEYWORD_PATTERN = re.compile(
    r"\b(array|string|tree|graph|dp|greedy|sort|binary|search|math|geometry|game|interactive)\b"
)
_TAG_PATTERN = re.compile(r"<[^>]*>")


class CircuitState(Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if recovered


class ErrorType(Enum):
    """Error categories for different handling strategies"""

    TRANSIENT = "transient"  # Retry after cooldown
    AUTH_FAILURE = "auth_failure"  # Need a (re-)login
    NOT_FOUND = "not_found"  # Item is genuinely missing
    CIRCUIT_OPEN = "circuit_open"  # Not attempted
    PERMANENT = "permanent"  # Don't retry


@dataclass
class ChallengeState:
    """Classification of the interstitial currently shown by a page"""

    script_interstitial: bool = False
    captcha_present: bool = False
    interactive_widget: bool = False
    managed_widget: bool = False
    title: str = ""
    url: str = ""
    body_excerpt: str = ""

    @property
    def detected(self) -> bool:
        return (
            self.script_interstitial
            or self.captcha_present
            or self.interactive_widget
            or self.managed_widget
        )

    def summary(self) -> str:
        kinds = [
            name
            for name, present in (
                ("script", self.script_interstitial),
                ("captcha", self.captcha_present),
                ("interactive", self.interactive_widget),
                ("managed", self.managed_widget),
            )
            if present
        ]
        return ",".join(kinds) or "none"


@dataclass(frozen=True)
class SampleTest:
    input: str
    output: str


@dataclass(frozen=True)
class ProblemRecord:
    """A fully extracted problem. Never mutated after extraction."""

    contest_id: str
    index: str
    title: str
    time_limit: str
    memory_limit: str
    time_limit_seconds: Optional[float]
    memory_limit_mb: Optional[int]
    statement_html: str
    legend_html: str
    input_spec: str
    output_spec: str
    note: str
    sample_tests: Tuple[SampleTest, ...]
    tags: FrozenSet[str]
    url: str
    extracted_at: datetime

    @property
    def problem_id(self) -> str:
        return f"{self.contest_id}{self.index}"

    @property
    def search_terms(self) -> List[str]:
        """Lowercase keywords from title, tags and statement text"""
        terms = []

        def add(term: str) -> None:
            if term not in terms:
                terms.append(term)

        for word in re.sub(r"[^\w\s]", " ", self.title.lower()).split():
            if len(word) > 2:
                add(word)
        for tag in sorted(self.tags):
            add(tag.lower())
        text = _TAG_PATTERN.sub(" ", self.statement_html).lower()
        for keyword in _KEYWORD_PATTERN.findall(text):
            add(keyword)
        return terms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contest_id": self.contest_id,
            "index": self.index,
            "title": self.title,
            "time_limit": self.time_limit,
            "memory_limit": self.memory_limit,
            "time_limit_seconds": self.time_limit_seconds,
            "memory_limit_mb": self.memory_limit_mb,
            "statement_html": self.statement_html,
            "legend_html": self.legend_html,
            "input_spec": self.input_spec,
            "output_spec": self.output_spec,
            "note": self.note,
            "sample_tests": [
                {"input": s.input, "output": s.output} for s in self.sample_tests
            ],
            "tags": sorted(self.tags),
            "search_terms": self.search_terms,
            "url": self.url,
            "extracted_at": self.extracted_at.isoformat(),
        }


@dataclass(frozen=True)
class SolutionRecord:
    """Source of one accepted submission, as shown on its submission page"""

    contest_id: str
    index: str
    submission_id: str
    author: str
    language: str
    language_family: str
    time_ms: Optional[int]
    memory_kb: Optional[int]
    source: str
    url: str
    extracted_at: datetime

    @property
    def problem_id(self) -> str:
        return f"{self.contest_id}{self.index}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contest_id": self.contest_id,
            "index": self.index,
            "submission_id": self.submission_id,
            "author": self.author,
            "language": self.language,
            "language_family": self.language_family,
            "time_ms": self.time_ms,
            "memory_kb": self.memory_kb,
            "source": self.source,
            "code_length": len(self.source),
            "url": self.url,
            "extracted_at": self.extracted_at.isoformat(),
        }


@dataclass
class BatchItemResult:
    """Outcome of one item inside a batch"""

    index: str
    success: bool
    data: Optional[ProblemRecord] = None
    error_message: Optional[str] = None
    error_type: Optional[ErrorType] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"index": self.index, "success": self.success}
        if self.success:
            result["data"] = self.data.to_dict() if self.data else None
        else:
            result["error"] = self.error_message
            result["error_type"] = self.error_type.value if self.error_type else None
        return result


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)

    @classmethod
    def from_env(cls) -> "Credentials":
        """Read credentials from CF_USERNAME / CF_PASSWORD"""
        username = os.environ.get(USERNAME_ENV_VAR, "").strip()
        password = os.environ.get(PASSWORD_ENV_VAR, "")
        if not username or not password:
            raise CredentialsMissingError(
                f"{USERNAME_ENV_VAR} and {PASSWORD_ENV_VAR} are required"
            )
        return cls(username=username, password=password)
