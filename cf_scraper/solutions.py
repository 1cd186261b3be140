"""Accepted solutions: contest status page -> submission source"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag
from loguru import logger
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import CONTENT_TIMEOUT, SOURCE_TIMEOUT
from .exceptions import AuthRequiredError, ContentNotFoundError
from .models import SolutionRecord
from .selector_chains import (
    LOGIN_REQUIRED_MARKERS,
    SOURCE_SELECTORS,
    STATUS_TABLE_SELECTORS,
    any_present,
)

_NUMBER_PATTERN = re.compile(r"\d+")

# First match wins: C++ before C, JavaScript before Java
_LANGUAGE_FAMILIES = (
    ("C#", re.compile(r"c#|mono|\.net")),
    ("C++", re.compile(r"c\+\+|g\+\+|clang|\bcpp\b")),
    ("C", re.compile(r"\b(gnu )?c(11|17|23)?\b")),
    ("JavaScript", re.compile(r"javascript|node|\bjs\b")),
    ("Java", re.compile(r"java|openjdk")),
    ("Python", re.compile(r"python|pypy|\bpy\b")),
    ("Go", re.compile(r"\bgo(lang)?\b")),
    ("Rust", re.compile(r"rust")),
    ("Kotlin", re.compile(r"kotlin")),
    ("Swift", re.compile(r"swift")),
    ("Scala", re.compile(r"scala")),
)
_KNOWN_FAMILIES = {family for family, _ in _LANGUAGE_FAMILIES}


def normalize_language(name: str) -> str:
    """
    Map a compiler label or alias to its language family.

    'GNU G++20 13.2 (64 bit, winlibs)' -> 'C++', 'PyPy 3-64' -> 'Python'.
    Unknown labels come back stripped but otherwise unchanged.
    """
    lowered = (name or "").strip().lower()
    for family, pattern in _LANGUAGE_FAMILIES:
        if pattern.search(lowered):
            return family
    return (name or "").strip()


def language_matches(label: str, wanted: str) -> bool:
    """Whether a status-table language label satisfies the requested language"""
    family = normalize_language(wanted)
    if family in _KNOWN_FAMILIES:
        return normalize_language(label) == family
    return wanted.strip().lower() in (label or "").lower()


@dataclass(frozen=True)
class SubmissionRow:
    """One row of a contest status table"""

    submission_id: str
    author: str
    language: str
    accepted: bool
    time_ms: Optional[int]
    memory_kb: Optional[int]
    href: str


def _cell_text(node: Optional[Tag]) -> str:
    return node.get_text(" ", strip=True) if node else ""


def _cell_number(node: Optional[Tag]) -> Optional[int]:
    match = _NUMBER_PATTERN.search(_cell_text(node))
    return int(match.group(0)) if match else None


def parse_status_rows(html: str) -> List[SubmissionRow]:
    """Rows of the status table, in page order; rows without a source link are skipped"""
    soup = BeautifulSoup(html, "html.parser")
    rows = []

    for tr in soup.select("tr[data-submission-id]"):
        link = tr.select_one('a[href*="/submission/"]')
        if link is None:
            continue

        cells = tr.find_all("td", recursive=False)
        verdict_cell = tr.select_one("td[data-verdict]")
        verdict = verdict_cell.get("data-verdict", "") if verdict_cell else ""

        rows.append(
            SubmissionRow(
                submission_id=tr["data-submission-id"],
                author=_cell_text(tr.select_one(".status-party-cell")),
                language=_cell_text(cells[4]) if len(cells) > 4 else "",
                accepted=verdict == "OK" or "Accepted" in _cell_text(verdict_cell),
                time_ms=_cell_number(tr.select_one(".time-consumed-cell")),
                memory_kb=_cell_number(tr.select_one(".memory-consumed-cell")),
                href=link["href"],
            )
        )

    return rows


def select_accepted(
    rows: Sequence[SubmissionRow], language: str, limit: int
) -> List[SubmissionRow]:
    return [r for r in rows if r.accepted and language_matches(r.language, language)][
        :limit
    ]


def parse_source(html: str) -> str:
    """Source text of a submission page, or '' when no source block matched"""
    soup = BeautifulSoup(html, "html.parser")

    for selector in SOURCE_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue

        # Pretty-printed sources render one <li> per line
        lines = node.select("li")
        text = "\n".join(li.get_text() for li in lines) if lines else node.get_text()
        if text.strip():
            return text.strip()

    return ""


class SolutionExtractor:
    """Finds accepted submissions on a status page and reads their source"""

    def __init__(
        self,
        content_timeout: float = CONTENT_TIMEOUT,
        source_timeout: float = SOURCE_TIMEOUT,
    ):
        self.content_timeout = content_timeout
        self.source_timeout = source_timeout

    async def accepted_submissions(
        self, page, contest_id: str, index: str, language: str, limit: int
    ) -> List[SubmissionRow]:
        """
        Accepted rows in ``language`` from the status page shown by ``page``.

        Raises:
            AuthRequiredError: If the page asks for a login instead
            ContentNotFoundError: If no table appeared or no row matched
        """
        problem_id = f"{contest_id}{index}"
        await self._wait_for_any(
            page, STATUS_TABLE_SELECTORS, self.content_timeout, problem_id, "status table"
        )

        rows = parse_status_rows(await page.content())
        chosen = select_accepted(rows, language, limit)
        if not chosen:
            raise ContentNotFoundError(
                f"No accepted {normalize_language(language)} submission among "
                f"{len(rows)} listed",
                identifier=problem_id,
            )

        logger.info(
            f"🔎 {problem_id}: {len(chosen)} accepted {normalize_language(language)} "
            f"submission(s) out of {len(rows)} rows"
        )
        return chosen

    async def extract_source(
        self, page, contest_id: str, index: str, row: SubmissionRow
    ) -> SolutionRecord:
        """
        Read the source of ``row`` from the submission page shown by ``page``.

        Raises:
            AuthRequiredError: If the page asks for a login instead
            ContentNotFoundError: If no source block appeared
        """
        problem_id = f"{contest_id}{index}"
        await self._wait_for_any(
            page, SOURCE_SELECTORS, self.source_timeout, problem_id, "submission source"
        )

        source = parse_source(await page.content())
        if not source:
            raise ContentNotFoundError(
                f"Submission {row.submission_id} has an empty source block",
                identifier=problem_id,
            )

        record = SolutionRecord(
            contest_id=contest_id,
            index=index,
            submission_id=row.submission_id,
            author=row.author,
            language=row.language,
            language_family=normalize_language(row.language),
            time_ms=row.time_ms,
            memory_kb=row.memory_kb,
            source=source,
            url=page.url,
            extracted_at=datetime.now(timezone.utc),
        )
        logger.success(
            f"✅ Extracted submission {row.submission_id} for {problem_id} "
            f"({record.language_family}, {len(source)} chars)"
        )
        return record

    @staticmethod
    async def _wait_for_any(
        page, selectors: Sequence[str], timeout: float, problem_id: str, what: str
    ) -> None:
        try:
            await page.wait_for_selector(selectors[0], timeout=int(timeout * 1000))
            return
        except PlaywrightTimeoutError as e:
            if await any_present(page, selectors[1:]):
                logger.debug(f"   {what}: primary selector missing, using a fallback")
                return
            if "/enter" in page.url or await any_present(page, LOGIN_REQUIRED_MARKERS):
                raise AuthRequiredError(
                    f"{what.capitalize()} requires login", identifier=problem_id
                ) from e
            raise ContentNotFoundError(
                f"No {what} after {timeout:.0f}s", identifier=problem_id
            ) from e
