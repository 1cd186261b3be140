"""Problem page extraction: settled page -> ProblemRecord"""

import re
from datetime import datetime, timezone
from typing import List, Optional

from bs4 import BeautifulSoup, Tag
from loguru import logger
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import CONTENT_TIMEOUT
from .exceptions import AuthRequiredError, ContentNotFoundError
from .models import ProblemRecord, SampleTest
from .selector_chains import LOGIN_REQUIRED_MARKERS, PROBLEM_CONTAINER, any_present

_SECONDS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*seconds?", re.IGNORECASE)
_MEGABYTES_PATTERN = re.compile(r"(\d+)\s*megabytes?", re.IGNORECASE)

# Blocks that end the legend
_LEGEND_STOP_CLASSES = {
    "input-specification",
    "output-specification",
    "sample-tests",
    "note",
}


def parse_time_limit(text: str) -> Optional[float]:
    """'time limit per test2 seconds' -> 2.0"""
    match = _SECONDS_PATTERN.search(text or "")
    return float(match.group(1)) if match else None


def parse_memory_limit(text: str) -> Optional[int]:
    """'memory limit per test256 megabytes' -> 256"""
    match = _MEGABYTES_PATTERN.search(text or "")
    return int(match.group(1)) if match else None


def _text(node: Optional[Tag]) -> str:
    return node.get_text(" ", strip=True) if node else ""


def _inner_html(node: Optional[Tag]) -> str:
    return node.decode_contents().strip() if node else ""


def _block_text(pre: Tag) -> str:
    """Text of a sample block, one line per row"""
    lines = pre.select("div.test-example-line")
    if lines:
        return "\n".join(line.get_text() for line in lines).strip()

    for br in pre.find_all("br"):
        br.replace_with("\n")
    return pre.get_text().strip()


def _legend_html(statement: Tag) -> str:
    parts = []
    found_header = False
    for child in statement.find_all(recursive=False):
        classes = set(child.get("class") or [])
        if found_header:
            if classes & _LEGEND_STOP_CLASSES:
                break
            parts.append(str(child))
        elif "header" in classes:
            found_header = True
    return "".join(parts)


def _sample_tests(statement: Tag) -> List[SampleTest]:
    inputs = statement.select(".sample-test .input pre")
    outputs = statement.select(".sample-test .output pre")

    if len(inputs) != len(outputs):
        logger.warning(
            f"⚠️ Sample block mismatch: {len(inputs)} inputs, {len(outputs)} outputs"
        )

    # zip truncates to the shorter side
    return [
        SampleTest(input=_block_text(i), output=_block_text(o))
        for i, o in zip(inputs, outputs)
    ]


def parse_problem(html: str, contest_id: str, index: str, url: str = "") -> ProblemRecord:
    """
    Parse a problem page into a ProblemRecord.

    Args:
        html: Full page HTML
        contest_id: Contest the problem belongs to
        index: Problem index within the contest ("A", "B1", ...)
        url: Page the HTML came from

    Raises:
        ContentNotFoundError: If the page has no problem statement
    """
    soup = BeautifulSoup(html, "html.parser")
    statement = soup.select_one(PROBLEM_CONTAINER)
    if statement is None:
        raise ContentNotFoundError(
            "Problem statement missing from page", identifier=f"{contest_id}{index}"
        )

    time_limit = _text(statement.select_one(".header .time-limit"))
    memory_limit = _text(statement.select_one(".header .memory-limit"))

    tags = frozenset(
        tag.get_text(strip=True)
        for tag in soup.select(".tag-box")
        if tag.get_text(strip=True)
    )

    return ProblemRecord(
        contest_id=str(contest_id),
        index=index,
        title=_text(statement.select_one(".header .title")),
        time_limit=time_limit,
        memory_limit=memory_limit,
        time_limit_seconds=parse_time_limit(time_limit),
        memory_limit_mb=parse_memory_limit(memory_limit),
        statement_html=_inner_html(statement),
        legend_html=_legend_html(statement),
        input_spec=_inner_html(statement.select_one(".input-specification")),
        output_spec=_inner_html(statement.select_one(".output-specification")),
        note=_inner_html(statement.select_one(".note")),
        sample_tests=tuple(_sample_tests(statement)),
        tags=tags,
        url=url,
        extracted_at=datetime.now(timezone.utc),
    )


class ProblemExtractor:
    """Waits for a problem page to render, then parses it"""

    def __init__(self, content_timeout: float = CONTENT_TIMEOUT):
        self.content_timeout = content_timeout

    async def extract(self, page, contest_id: str, index: str) -> ProblemRecord:
        """
        Extract the problem shown by ``page``.

        Raises:
            AuthRequiredError: If the page asks for a login instead
            ContentNotFoundError: If the statement never appeared
        """
        problem_id = f"{contest_id}{index}"
        try:
            await page.wait_for_selector(
                PROBLEM_CONTAINER, timeout=int(self.content_timeout * 1000)
            )
        except PlaywrightTimeoutError as e:
            if "/enter" in page.url or await any_present(page, LOGIN_REQUIRED_MARKERS):
                raise AuthRequiredError(
                    "Problem page requires login", identifier=problem_id
                ) from e
            raise ContentNotFoundError(
                f"No problem statement after {self.content_timeout:.0f}s",
                identifier=problem_id,
            ) from e

        record = parse_problem(await page.content(), contest_id, index, url=page.url)
        logger.success(
            f"✅ Extracted {problem_id}: {record.title!r} "
            f"({len(record.sample_tests)} samples, {len(record.tags)} tags)"
        )
        return record
