"""
Extraction Orchestrator

Main orchestration module: splits a query into batches, runs them
concurrently with a staggered start, funnels every batch result through a
single consumer that deduplicates and caps, and reports progress.

Batch tasks never touch the shared state directly. They put
(batch, candidates) on a queue; only the consumer loop in run() admits
records, so the seen-key check and insert are never interleaved.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from ..config import BATCH_SIZE, BATCH_STAGGER
from ..exceptions import ExtractionError
from ..models import BatchDescriptor, BusinessRecord, ExtractionProgress, ExtractionQuery
from .batch import BatchExecutor, plan_batches
from .cooldown import CooldownGate
from .dedup import RecordDeduplicator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ExtractionProgress], None]
PartialResultsCallback = Callable[[List[BusinessRecord]], None]

START_PERCENT = 5
BATCH_BASE_PERCENT = 10
BATCH_SPAN_PERCENT = 85


class ProgressReporter:
    """Forwards progress to a callback, never letting the percentage go down."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self.percentage = 0
        self.history: List[ExtractionProgress] = []

    def __call__(self, progress: ExtractionProgress):
        self.emit(progress.percentage, progress.message)

    def emit(self, percentage: float, message: str):
        value = min(100, max(self.percentage, int(round(percentage))))
        self.percentage = value
        progress = ExtractionProgress(value, message)
        self.history.append(progress)
        logger.debug("Progress %d%%: %s", value, message)
        if self._callback is not None:
            self._callback(progress)


class ExtractionOrchestrator:
    """
    Runs whole extraction jobs.

    Args:
        executor: Executes single batches
        cooldown_gate: Shared gate enforcing idle time between runs
        batch_size: Maximum target count per batch
        stagger: Seconds between batch starts (multiplied by batch index)
        batch_timeout: Hard cap on a whole batch, rate-limit pauses included (None disables;
            per-request timeouts live in the executor's RetryPolicy)
        cancel_on_limit: Cancel in-flight batches once the limit is filled
        sleep: Coroutine function used for the stagger delay
    """

    def __init__(
        self,
        executor: BatchExecutor,
        cooldown_gate: Optional[CooldownGate] = None,
        batch_size: int = BATCH_SIZE,
        stagger: float = BATCH_STAGGER,
        batch_timeout: Optional[float] = None,
        cancel_on_limit: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.executor = executor
        self.cooldown_gate = cooldown_gate or CooldownGate()
        self.batch_size = batch_size
        self.stagger = stagger
        self.batch_timeout = batch_timeout
        self.cancel_on_limit = cancel_on_limit
        self._sleep = sleep
        self.last_statistics: Dict[str, int] = {}

    async def _run_batch(
        self,
        batch: BatchDescriptor,
        query: ExtractionQuery,
        queue: "asyncio.Queue[Tuple[BatchDescriptor, List[dict]]]",
        on_rate_limit: Callable[[float], None],
    ):
        """Run one batch and hand its candidates to the consumer. Always enqueues."""
        candidates: List[dict] = []
        try:
            if self.stagger and batch.index:
                await self._sleep(self.stagger * batch.index)
            execution = self.executor.execute(batch, query, on_rate_limit=on_rate_limit)
            if self.batch_timeout:
                candidates = await asyncio.wait_for(execution, timeout=self.batch_timeout)
            else:
                candidates = await execution
        except asyncio.TimeoutError:
            logger.error("Batch %d timed out after %gs", batch.index, self.batch_timeout)
        except Exception:
            logger.exception("Batch %d crashed", batch.index)
        finally:
            queue.put_nowait((batch, candidates))

    async def run(
        self,
        query: ExtractionQuery,
        on_progress: Optional[ProgressCallback] = None,
        on_partial_results: Optional[PartialResultsCallback] = None,
    ) -> List[BusinessRecord]:
        """
        Run one extraction.

        Args:
            query: What to search for and how many results to return
            on_progress: Receives ExtractionProgress updates (non-decreasing, ends at 100)
            on_partial_results: Receives each batch's newly admitted records

        Returns:
            Deduplicated records, at most query.limit of them

        Raises:
            ExtractionError: If the run cannot be planned or the cooldown bookkeeping fails
        """
        progress = ProgressReporter(on_progress)
        start_time = time.time()

        try:
            async with self.cooldown_gate.hold(progress):
                return await self._run(query, progress, on_partial_results, start_time)
        except ExtractionError:
            raise
        except Exception as e:
            logger.exception("Extraction aborted")
            raise ExtractionError(f"Extraction failed: {e}. Please try again.") from e

    async def _run(
        self,
        query: ExtractionQuery,
        progress: ProgressReporter,
        on_partial_results: Optional[PartialResultsCallback],
        start_time: float,
    ) -> List[BusinessRecord]:
        try:
            batches = plan_batches(query.limit, self.batch_size)
        except ValueError as e:
            raise ExtractionError(f"Could not plan extraction: {e}") from e

        total = len(batches)
        limit = query.limit
        dedup = RecordDeduplicator(run_started_ms=int(start_time * 1000))
        results: List[BusinessRecord] = []
        completed = 0

        def batch_percentage() -> float:
            return BATCH_BASE_PERCENT + (completed / total) * BATCH_SPAN_PERCENT

        def on_rate_limit(wait_seconds: float):
            progress.emit(
                batch_percentage(),
                f"To help the environment and keep this app free, we recommend you to wait for "
                f"{wait_seconds:g} seconds. Managing pause time...",
            )

        logger.info(
            "Extracting up to %d '%s' in '%s' over %d batches", limit, query.niche, query.location, total
        )
        progress.emit(START_PERCENT, "Starting real-time extraction...")

        queue: "asyncio.Queue[Tuple[BatchDescriptor, List[dict]]]" = asyncio.Queue()
        tasks = [
            asyncio.create_task(self._run_batch(batch, query, queue, on_rate_limit))
            for batch in batches
        ]
        cancelled = 0

        try:
            while completed < total:
                batch, candidates = await queue.get()
                completed += 1

                admitted = []
                for position, candidate in enumerate(candidates):
                    if len(results) >= limit:
                        break
                    try:
                        record = dedup.admit(candidate, batch.index, position)
                    except (ArithmeticError, TypeError, ValueError) as e:
                        dedup.rejected += 1
                        logger.warning("Batch %d: rejected candidate %d (%s)", batch.index, position, e)
                        continue
                    if record is not None:
                        results.append(record)
                        admitted.append(record)

                logger.info(
                    "[%d/%d] Batch %d: %d candidates, +%d new | Total: %d",
                    completed, total, batch.index, len(candidates), len(admitted), len(results),
                )
                if admitted and on_partial_results is not None:
                    on_partial_results(admitted)
                progress.emit(batch_percentage(), f"Extracted {len(results)} leads so far...")

                if len(results) >= limit and self.cancel_on_limit and completed < total:
                    cancelled = self._cancel_pending(tasks)
                    completed = total
                    progress.emit(batch_percentage(), f"Extracted {len(results)} leads so far...")
        finally:
            if any(not task.done() for task in tasks):
                self._cancel_pending(tasks)
            await asyncio.gather(*tasks, return_exceptions=True)

        results = results[:limit]
        self.last_statistics = {
            "batches": total,
            "cancelled_batches": cancelled,
            "duplicates": dedup.duplicates,
            "rejected": dedup.rejected,
            "total_collected": len(results),
        }
        logger.info(
            "Extraction complete in %.1fs: %d unique leads (%d duplicates, %d rejected)",
            time.time() - start_time, len(results), dedup.duplicates, dedup.rejected,
        )
        progress.emit(100, f"Extraction complete. Found {len(results)} unique leads.")
        return results

    @staticmethod
    def _cancel_pending(tasks: List["asyncio.Task"]) -> int:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.info("Limit reached, cancelled %d in-flight batches", len(pending))
        return len(pending)
