"""
Configuration manager for library usage.

Bundles the tunables of one LeadsExtractor instance. Defaults come from
config.py; the API server URL can also come from the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional

from . import config
from .exceptions import ConfigurationError
from .extraction.batch import RetryPolicy


@dataclass
class ExtractorConfig:
    """Configuration for LeadsExtractor.

    For the API URL: explicit arg > GMAPS_LEADS_API_URL env var > http://localhost:{server_port}.

    Args:
        api_url: Base URL of the API server.
        server_port: Port for the internal API server (auto-start mode).
        batch_size: Maximum businesses requested per batch.
        batch_stagger: Seconds between batch starts (multiplied by batch index).
        cooldown_seconds: Minimum idle time between extraction runs.
        max_retries: Extra attempts for a batch after a non rate-limit failure.
        retry_delay: Seconds to wait before such a retry.
        rate_limit_wait: Seconds to pause after a 429.
        max_rate_limit_retries: Rate-limit retries per batch (None retries forever).
        attempt_timeout: Seconds before a single batch request is abandoned and retried (None disables).
        request_timeout: HTTP timeout for calls to the API server.
        cancel_on_limit: Cancel in-flight batches once the limit is filled.
    """

    api_url: Optional[str] = None
    server_port: int = config.API_PORT
    batch_size: int = config.BATCH_SIZE
    batch_stagger: float = config.BATCH_STAGGER
    cooldown_seconds: float = config.COOLDOWN_SECONDS
    max_retries: int = config.MAX_RETRIES
    retry_delay: float = config.RETRY_DELAY
    rate_limit_wait: float = config.RATE_LIMIT_WAIT
    max_rate_limit_retries: Optional[int] = config.MAX_RATE_LIMIT_RETRIES
    attempt_timeout: Optional[float] = config.ATTEMPT_TIMEOUT
    request_timeout: float = config.REQUEST_TIMEOUT
    cancel_on_limit: bool = True

    def __post_init__(self):
        """Resolve the API URL from env vars if not explicitly set."""
        if self.api_url is None:
            self.api_url = os.environ.get("GMAPS_LEADS_API_URL") or f"http://localhost:{self.server_port}"
        self.api_url = self.api_url.rstrip('/')
        if self.batch_size <= 0:
            raise ConfigurationError("batch_size must be positive")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must not be negative")

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            rate_limit_wait=self.rate_limit_wait,
            max_rate_limit_retries=self.max_rate_limit_retries,
            attempt_timeout=self.attempt_timeout,
        )
