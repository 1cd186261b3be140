"""Command-line interface for the Codeforces scraper"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .api_client import CodeforcesAPIClient
from .batch import BatchOrchestrator
from .circuit_breaker import CircuitBreaker
from .config import (
    BATCH_CHUNK_SIZE,
    CIRCUIT_BREAKER_THRESHOLD,
    CIRCUIT_BREAKER_TIMEOUT,
    DEFAULT_COOKIE_FILE,
    DEFAULT_ITEM_TIMEOUT,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SOLUTION_LIMIT,
)
from .cookie_manager import CookieManager
from .exceptions import CFScraperError, CredentialsMissingError
from .logging_config import setup_logging
from .models import BatchItemResult, Credentials
from .scraper import CodeforcesScraper
from .session_manager import SessionManager
from .solutions import normalize_language
from .storage import ResultStorage


def _optional_credentials(required: bool = False) -> Optional[Credentials]:
    try:
        return Credentials.from_env()
    except CredentialsMissingError:
        if required:
            raise
        logger.info("ℹ️ No credentials configured, scraping anonymously")
        return None


def build_scraper(args: argparse.Namespace, require_login: bool = False) -> CodeforcesScraper:
    """Wire the engine from parsed arguments"""
    cookie_file = Path(args.cookies) if args.cookies else DEFAULT_COOKIE_FILE
    sessions = SessionManager(CookieManager(cookie_file), headless=not args.no_headless)

    return CodeforcesScraper(
        sessions,
        credentials=_optional_credentials(required=require_login),
        breaker=CircuitBreaker(
            failure_threshold=args.breaker_threshold,
            timeout=args.breaker_timeout,
            name="codeforces",
        ),
        orchestrator=BatchOrchestrator(chunk_size=args.chunk_size),
        item_timeout=args.item_timeout or None,
    )


async def scrape_problem(
    scraper: CodeforcesScraper, storage: ResultStorage, contest_id: str, index: str
) -> Path:
    """Scrape one problem and save it"""
    async with scraper:
        record = await scraper.scrape_one(contest_id, index)
    return await storage.save_problem(record)


async def scrape_contest(
    scraper: CodeforcesScraper,
    storage: ResultStorage,
    contest_id: str,
    indices: Optional[List[str]] = None,
    api_client: Optional[CodeforcesAPIClient] = None,
) -> List[BatchItemResult]:
    """
    Scrape several problems of a contest and save a summary.

    Indices are discovered through the public API when none are given.
    """
    if not indices:
        async with (api_client or CodeforcesAPIClient()) as client:
            indices = await client.get_problem_indices(contest_id)

    if not indices:
        logger.warning(f"⚠️ Contest {contest_id} has no problems")
        return []

    async with scraper:
        results = await scraper.batch_scrape(contest_id, indices)

    await storage.save_batch(contest_id, results)
    return results


async def scrape_solutions(
    scraper: CodeforcesScraper,
    storage: ResultStorage,
    contest_id: str,
    index: str,
    language: str,
    limit: int = DEFAULT_SOLUTION_LIMIT,
) -> Path:
    """Scrape accepted solutions of one problem and save them"""
    async with scraper:
        records = await scraper.scrape_top_solutions(contest_id, index, language, limit)
    return await storage.save_solutions(
        contest_id, index, normalize_language(language), records
    )


async def run_login(scraper: CodeforcesScraper) -> None:
    """Log in and persist the session cookies on close"""
    async with scraper:
        await scraper.login()


async def show_contests(
    division: Optional[int], limit: int, api_client: Optional[CodeforcesAPIClient] = None
) -> List[dict]:
    async with (api_client or CodeforcesAPIClient()) as client:
        contests = await client.list_contests(division=division, limit=limit)

    for contest in contests:
        print(f"{contest['id']}\t{contest['name']}")
    return contests


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cf-scraper",
        description="Codeforces problem scraper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Session
    session_group = parser.add_argument_group("Session")
    session_group.add_argument("--cookies", type=str, help="Cookie file path")
    session_group.add_argument(
        "--no-headless", action="store_true", help="Visible browser mode"
    )

    # Resilience
    resilience_group = parser.add_argument_group("Resilience")
    resilience_group.add_argument(
        "--breaker-threshold",
        type=int,
        default=CIRCUIT_BREAKER_THRESHOLD,
        help=f"Failures before the circuit opens (default: {CIRCUIT_BREAKER_THRESHOLD})",
    )
    resilience_group.add_argument(
        "--breaker-timeout",
        type=float,
        default=CIRCUIT_BREAKER_TIMEOUT,
        help=f"Seconds the circuit stays open (default: {CIRCUIT_BREAKER_TIMEOUT})",
    )
    resilience_group.add_argument(
        "--chunk-size",
        type=int,
        default=BATCH_CHUNK_SIZE,
        help=f"Problems fetched concurrently (default: {BATCH_CHUNK_SIZE})",
    )
    resilience_group.add_argument(
        "--item-timeout",
        type=float,
        default=DEFAULT_ITEM_TIMEOUT,
        help=f"Deadline per problem in seconds, 0 for none (default: {DEFAULT_ITEM_TIMEOUT:.0f})",
    )

    # Configuration
    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument(
        "--output", type=str, default=str(DEFAULT_OUTPUT_DIR), help="Output directory"
    )
    config_group.add_argument("--verbose", action="store_true", help="Debug logging")
    config_group.add_argument("--log-file", type=str, help="Log file path")

    subparsers = parser.add_subparsers(dest="command", required=True)

    problem = subparsers.add_parser("problem", help="Scrape a single problem")
    problem.add_argument("contest_id", help="Contest id, e.g. 1850")
    problem.add_argument("index", help="Problem index, e.g. A")

    contest = subparsers.add_parser("contest", help="Scrape problems of a contest")
    contest.add_argument("contest_id", help="Contest id, e.g. 1850")
    contest.add_argument(
        "indices", nargs="*", help="Problem indices (default: all, via the API)"
    )

    solutions = subparsers.add_parser(
        "solutions", help="Scrape accepted solutions of a problem"
    )
    solutions.add_argument("contest_id", help="Contest id, e.g. 2065")
    solutions.add_argument("index", help="Problem index, e.g. A")
    solutions.add_argument(
        "--language",
        default="C++",
        help="Language or compiler label, e.g. cpp, 'PyPy 3-64' (default: C++)",
    )
    solutions.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_SOLUTION_LIMIT,
        help=f"Solutions to fetch (default: {DEFAULT_SOLUTION_LIMIT})",
    )

    subparsers.add_parser("login", help="Log in and save the session cookies")

    contests = subparsers.add_parser("contests", help="List finished contests")
    contests.add_argument("--division", type=int, help="Only contests of 'Div. N'")
    contests.add_argument("--limit", type=int, default=20, help="Maximum listed")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else Path("./logs/cf_scraper.log")
    setup_logging(verbose=args.verbose, log_file=log_file)

    storage = ResultStorage(Path(args.output))

    async def run() -> int:
        if args.command == "contests":
            await show_contests(args.division, args.limit)
            return 0

        if args.command == "login":
            await run_login(build_scraper(args, require_login=True))
            return 0

        scraper = build_scraper(args)
        if args.command == "problem":
            await scrape_problem(scraper, storage, args.contest_id, args.index.upper())
            return 0

        if args.command == "solutions":
            await scrape_solutions(
                scraper,
                storage,
                args.contest_id,
                args.index.upper(),
                args.language,
                args.limit,
            )
            return 0

        results = await scrape_contest(
            scraper, storage, args.contest_id, [i.upper() for i in args.indices]
        )
        return 0 if results and all(r.success for r in results) else 1

    try:
        exit_code = asyncio.run(run())
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(130)
    except CFScraperError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
