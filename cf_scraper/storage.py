"""JSON output of scraped records with async I/O"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import orjson
from loguru import logger

from .models import BatchItemResult, ProblemRecord, SolutionRecord


class ResultStorage:
    """
    Writes problems, solutions and batch summaries under an output directory.
    Uses aiofiles for async I/O and orjson for serialization.
    """

    def __init__(self, output_dir: Path):
        """
        Initialize result storage.

        Args:
            output_dir: Base output directory
        """
        self.output_dir = Path(output_dir)
        self.problems_dir = self.output_dir / "problems"
        self.solutions_dir = self.output_dir / "solutions"

    async def _write_json(self, path: Path, document: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        json_bytes = orjson.dumps(document, option=orjson.OPT_INDENT_2)

        async with aiofiles.open(path, "wb") as f:
            await f.write(json_bytes)

        logger.debug(f"💾 Wrote {path.name} ({len(json_bytes) / 1024:.1f}KB)")
        return path

    async def save_problem(self, record: ProblemRecord) -> Path:
        """
        Save one problem as ``problems/<contest>/<index>.json``.

        Returns:
            Path to saved file
        """
        path = self.problems_dir / record.contest_id / f"{record.index}.json"
        await self._write_json(path, record.to_dict())
        logger.success(f"💾 Saved {record.problem_id}: {path}")
        return path

    async def save_batch(
        self,
        contest_id: str,
        results: List[BatchItemResult],
        timestamp: Optional[str] = None,
    ) -> Path:
        """
        Save every successful record, plus a summary of the whole batch.

        Returns:
            Path to the summary file
        """
        timestamp = timestamp or datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

        for result in results:
            if result.success and result.data is not None:
                await self.save_problem(result.data)

        succeeded = sum(1 for r in results if r.success)
        summary: Dict[str, Any] = {
            "contest_id": str(contest_id),
            "total": len(results),
            "succeeded": succeeded,
            "failed": len(results) - succeeded,
            "items": [
                {
                    "index": r.index,
                    "success": r.success,
                    "error": r.error_message,
                    "error_type": r.error_type.value if r.error_type else None,
                }
                for r in results
            ],
        }

        path = self.output_dir / f"contest_{contest_id}_{timestamp}.json"
        await self._write_json(path, summary)

        if succeeded == len(results):
            logger.success(f"💾 Saved batch summary: {path.name}")
        else:
            logger.warning(
                f"⚠️ Saved batch summary with {len(results) - succeeded} failures: {path.name}"
            )
        return path

    async def save_solutions(
        self, contest_id: str, index: str, language: str, records: List[SolutionRecord]
    ) -> Path:
        """
        Save accepted solutions as ``solutions/<contest>/<index>_<language>.json``.

        Returns:
            Path to saved file
        """
        # C++ -> cpp, C# -> csharp
        slug = re.sub(r"\W+", "_", language.lower().replace("+", "p").replace("#", "sharp"))
        path = self.solutions_dir / str(contest_id) / f"{index}_{slug.strip('_')}.json"
        document = {
            "contest_id": str(contest_id),
            "index": index,
            "language": language,
            "count": len(records),
            "solutions": [record.to_dict() for record in records],
        }
        await self._write_json(path, document)
        logger.success(f"💾 Saved {len(records)} {language} solution(s) for {contest_id}{index}: {path}")
        return path
