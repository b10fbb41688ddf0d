"""
Batch Execution

Plans how a requested result count is split into batches, and executes a
single batch against the API server with its retry policy:

- rate limits (HTTP 429 / RESOURCE_EXHAUSTED) wait a fixed window and retry
  the same batch without touching the normal retry budget
- network errors, other HTTP failures and attempts that exceed the
  per-attempt timeout retry a small number of times
- model output without a JSON array counts as an empty batch
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..config import (
    API_BASE_URL,
    ATTEMPT_TIMEOUT,
    BATCH_SIZE,
    MAX_RATE_LIMIT_RETRIES,
    MAX_RETRIES,
    RATE_LIMIT_WAIT,
    RETRY_DELAY,
)
from ..exceptions import (
    BatchExhaustedError,
    MalformedResponseError,
    RateLimitError,
    TransientError,
)
from ..models import BatchDescriptor, ExtractionQuery
from ..parsers.json_text import is_object_array, parse_array_payload

logger = logging.getLogger(__name__)

RATE_LIMIT_MARKERS = ("429", "RESOURCE_EXHAUSTED", "RATE LIMIT", "QUOTA")


def plan_batches(limit: int, batch_size: int = BATCH_SIZE) -> List[BatchDescriptor]:
    """
    Split a result limit into batches of at most batch_size.

    The last batch takes the remainder, so the targets always sum to limit.

    Raises:
        ValueError: If limit or batch_size is not a positive integer
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        raise ValueError(f"batch_size must be a positive integer, got {batch_size!r}")

    batches = []
    remaining = limit
    index = 0
    while remaining > 0:
        target = min(batch_size, remaining)
        batches.append(BatchDescriptor(index=index, target_count=target, offset=limit - remaining))
        remaining -= target
        index += 1
    return batches


def is_rate_limit_message(message: str) -> bool:
    """True when an error message carries a rate-limit / quota marker."""
    upper = (message or "").upper()
    return any(marker in upper for marker in RATE_LIMIT_MARKERS)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)[:200]
    return str(body)[:200]


def raise_for_upstream_status(response: httpx.Response):
    """
    Classify a non-2xx API server response.

    Raises:
        RateLimitError: On HTTP 429 or a rate-limit marker in the error body
        TransientError: On any other failure status
    """
    if response.is_success:
        return
    message = _error_message(response)
    if response.status_code == 429 or is_rate_limit_message(message):
        raise RateLimitError(message, status_code=response.status_code)
    raise TransientError(f"API error: {response.status_code} - {message}")


@dataclass
class RetryPolicy:
    """Retry budget for one batch.

    max_rate_limit_retries=None keeps retrying rate limits forever.
    attempt_timeout bounds each request on its own; rate-limit pauses
    between attempts do not count against it.
    """

    max_retries: int = MAX_RETRIES
    retry_delay: float = RETRY_DELAY
    rate_limit_wait: float = RATE_LIMIT_WAIT
    max_rate_limit_retries: Optional[int] = MAX_RATE_LIMIT_RETRIES
    attempt_timeout: Optional[float] = ATTEMPT_TIMEOUT

    def allows_retry(self, failures: int) -> bool:
        return failures <= self.max_retries

    def allows_rate_limit_retry(self, hits: int) -> bool:
        if self.max_rate_limit_retries is None:
            return True
        return hits <= self.max_rate_limit_retries


class BatchExecutor:
    """
    Executes extraction batches through the API server's /api/search endpoint.

    Args:
        client: Shared async HTTP client
        base_url: API server base URL
        policy: Retry policy applied to every batch
        sleep: Coroutine function used for backoff waits
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = API_BASE_URL,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self.base_url = base_url.rstrip('/')
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def request_candidates(self, batch: BatchDescriptor, query: ExtractionQuery) -> List[Dict[str, Any]]:
        """Perform one attempt and return the candidate objects it produced."""
        payload = {
            "params": query.to_dict(),
            "batch_index": batch.index,
            "target_count": batch.target_count,
            "offset": batch.offset,
        }
        try:
            response = await self._client.post(f"{self.base_url}/api/search", json=payload)
        except httpx.HTTPError as e:
            raise TransientError(f"Request failed: {e!r}") from e

        raise_for_upstream_status(response)

        try:
            body = response.json()
        except ValueError as e:
            raise TransientError(f"Unreadable response body: {response.text[:200]!r}") from e

        if isinstance(body, dict) and body.get("success") is False:
            message = str(body.get("error") or body.get("detail") or "search failed")
            if is_rate_limit_message(message):
                raise RateLimitError(message)
            raise TransientError(f"API returned error: {message}")

        candidates = parse_array_payload(body, accept=is_object_array)
        return [item for item in candidates if isinstance(item, dict)]

    async def _attempt(self, batch: BatchDescriptor, query: ExtractionQuery) -> List[Dict[str, Any]]:
        if not self.policy.attempt_timeout:
            return await self.request_candidates(batch, query)
        try:
            return await asyncio.wait_for(self.request_candidates(batch, query), timeout=self.policy.attempt_timeout)
        except asyncio.TimeoutError as e:
            raise TransientError(f"attempt timed out after {self.policy.attempt_timeout:g}s") from e

    async def _run_with_retries(
        self,
        batch: BatchDescriptor,
        query: ExtractionQuery,
        on_rate_limit: Optional[Callable[[float], None]],
    ) -> List[Dict[str, Any]]:
        failures = 0
        rate_limit_hits = 0

        while True:
            try:
                return await self._attempt(batch, query)

            except RateLimitError as e:
                rate_limit_hits += 1
                if not self.policy.allows_rate_limit_retry(rate_limit_hits):
                    raise BatchExhaustedError(
                        f"batch {batch.index} still rate limited after {rate_limit_hits} attempts"
                    ) from e
                logger.warning(
                    "Batch %d rate limited (%d), pausing %.1fs", batch.index, rate_limit_hits, self.policy.rate_limit_wait
                )
                if on_rate_limit is not None:
                    on_rate_limit(self.policy.rate_limit_wait)
                await self._sleep(self.policy.rate_limit_wait)

            except TransientError as e:
                failures += 1
                if not self.policy.allows_retry(failures):
                    raise BatchExhaustedError(
                        f"batch {batch.index} failed after {failures} attempts: {e}"
                    ) from e
                logger.warning("Batch %d failed (%s), retrying in %.1fs", batch.index, e, self.policy.retry_delay)
                await self._sleep(self.policy.retry_delay)

    async def execute(
        self,
        batch: BatchDescriptor,
        query: ExtractionQuery,
        on_rate_limit: Optional[Callable[[float], None]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Execute one batch with retries. Never raises for batch-level failures.

        Args:
            batch: The batch to run
            query: The query the batch belongs to
            on_rate_limit: Called with the wait in seconds before each rate-limit pause

        Returns:
            Raw candidate objects (possibly empty)
        """
        if batch.target_count <= 0:
            return []

        try:
            candidates = await self._run_with_retries(batch, query, on_rate_limit)
        except MalformedResponseError as e:
            logger.warning("Batch %d returned no usable JSON array: %s", batch.index, e)
            return []
        except BatchExhaustedError as e:
            logger.error("Giving up on %s", e)
            return []

        logger.debug("Batch %d returned %d candidates", batch.index, len(candidates))
        return candidates
