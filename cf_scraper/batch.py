"""Chunked, bounded-concurrency batch fetching"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from loguru import logger

from .config import BATCH_CHUNK_SIZE, BATCH_DELAY_RANGE
from .exceptions import ScrapeTimeoutError
from .humanize import human_delay
from .models import BatchItemResult, ErrorType, ProblemRecord
from .retry import classify_error

CANCELLED_MESSAGE = "batch cancelled"

FetchFunc = Callable[[str, str], Awaitable[ProblemRecord]]


class BatchOrchestrator:
    """
    Fetches many items of one parent (e.g. all problems of a contest).

    Items are split into chunks; chunks run one after another with a
    randomized pause in between, items inside a chunk run concurrently.
    Failures never escape: every requested item yields exactly one
    BatchItemResult, in the order the items were given. Nothing is retried
    here; retries belong to the caller.
    """

    def __init__(
        self,
        chunk_size: int = BATCH_CHUNK_SIZE,
        delay_range: Tuple[float, float] = BATCH_DELAY_RANGE,
        item_timeout: Optional[float] = None,
    ):
        """
        Initialize batch orchestrator.

        Args:
            chunk_size: Items fetched concurrently
            delay_range: (min, max) seconds paused between chunks
            item_timeout: Optional deadline per item in seconds
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

        self.chunk_size = chunk_size
        self.delay_range = delay_range
        self.item_timeout = item_timeout
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop issuing chunks; the chunk in flight is allowed to finish"""
        if not self._cancelled:
            logger.warning("🛑 Batch cancellation requested")
        self._cancelled = True

    async def batch_fetch(
        self, parent_id: str, items: Sequence[str], fetch: FetchFunc
    ) -> List[BatchItemResult]:
        """
        Fetch every item through ``fetch(parent_id, item)``.

        Returns:
            One result per item, in input order

        Raises:
            asyncio.CancelledError: If the awaiting task was cancelled, after
                the in-flight chunk completed
        """
        items = list(items)
        results: List[Optional[BatchItemResult]] = [None] * len(items)
        total_chunks = (len(items) + self.chunk_size - 1) // self.chunk_size

        logger.info(
            f"📦 Batch {parent_id}: {len(items)} items in {total_chunks} chunks "
            f"of up to {self.chunk_size}"
        )

        try:
            await self._run_chunks(parent_id, items, results, fetch, total_chunks)
        finally:
            # A cancel() issued before this run still applies to it
            self._cancelled = False

        final = [
            result
            if result is not None
            else BatchItemResult(
                index=item,
                success=False,
                error_message=CANCELLED_MESSAGE,
                error_type=ErrorType.TRANSIENT,
            )
            for item, result in zip(items, results)
        ]

        succeeded = sum(1 for r in final if r.success)
        log = logger.success if succeeded == len(final) else logger.warning
        log(f"📊 Batch {parent_id}: {succeeded}/{len(final)} succeeded")
        return final

    async def _run_chunks(
        self,
        parent_id: str,
        items: List[str],
        results: List[Optional[BatchItemResult]],
        fetch: FetchFunc,
        total_chunks: int,
    ) -> None:
        for chunk_number, start in enumerate(range(0, len(items), self.chunk_size)):
            if chunk_number > 0 and not self._cancelled:
                await human_delay(self.delay_range)
            if self._cancelled:
                logger.warning(f"🛑 Batch {parent_id} stopped before chunk {chunk_number + 1}")
                break

            chunk = items[start : start + self.chunk_size]
            logger.info(
                f"🔄 Chunk {chunk_number + 1}/{total_chunks}: {', '.join(chunk)}"
            )

            chunk_task = asyncio.ensure_future(self._run_chunk(parent_id, chunk, fetch))
            try:
                chunk_results = await asyncio.shield(chunk_task)
            except asyncio.CancelledError:
                logger.warning("🛑 Batch task cancelled, finishing in-flight chunk...")
                self._cancelled = True
                await chunk_task
                raise

            results[start : start + len(chunk)] = chunk_results

    async def _run_chunk(
        self, parent_id: str, chunk: List[str], fetch: FetchFunc
    ) -> List[BatchItemResult]:
        return list(
            await asyncio.gather(
                *[self._fetch_item(parent_id, item, fetch) for item in chunk]
            )
        )

    async def _fetch_item(
        self, parent_id: str, item: str, fetch: FetchFunc
    ) -> BatchItemResult:
        try:
            if self.item_timeout is None:
                data = await fetch(parent_id, item)
            else:
                try:
                    data = await asyncio.wait_for(
                        fetch(parent_id, item), self.item_timeout
                    )
                except asyncio.TimeoutError as e:
                    raise ScrapeTimeoutError(
                        f"Timed out after {self.item_timeout:.0f}s",
                        identifier=f"{parent_id}{item}",
                    ) from e
        except Exception as e:
            error_type = classify_error(e)
            logger.error(f"❌ {parent_id}{item} failed ({error_type.value}): {e}")
            return BatchItemResult(
                index=item,
                success=False,
                error_message=str(e),
                error_type=error_type,
            )

        return BatchItemResult(index=item, success=True, data=data)
