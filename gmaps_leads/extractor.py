"""
LeadsExtractor - High-level API for Google Maps lead extraction.

Provides the main user-facing class for the library. Manages server
lifecycle, the HTTP client and the cooldown gate, and exposes async
methods for searching businesses and fetching autocomplete suggestions.

Usage:
    from gmaps_leads import LeadsExtractor, ExtractionQuery

    async with LeadsExtractor(auto_start_server=True) as extractor:
        leads = await extractor.search_businesses(
            ExtractionQuery("Paris, France", "bakery", 30),
            on_progress=lambda p: print(p.percentage, p.message),
        )
        for biz in leads:
            print(biz.name, biz.address)
"""

import logging
import socket
import threading
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from .config_manager import ExtractorConfig
from .exceptions import ServerError
from .extraction import (
    BatchExecutor,
    CooldownGate,
    ExtractionOrchestrator,
    suggest_locations,
    suggest_niches,
)
from .extraction.orchestrator import PartialResultsCallback, ProgressCallback
from .models import BusinessRecord, ExtractionQuery, LocationSuggestion

logger = logging.getLogger(__name__)


class LeadsExtractor:
    """High-level interface for Google Maps lead extraction.

    The API server can be auto-started in a background thread. If a server
    is already listening on the configured port, it is reused.

    One instance owns one CooldownGate, so consecutive searches made through
    the same extractor respect the cooldown between runs.

    Args:
        config: Full configuration (built from the keyword arguments if None).
        api_url: API server base URL override.
        auto_start_server: Whether to start the API server locally (default: False).
        cooldown_gate: Gate to share between extractors (a new one if None).
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        *,
        api_url: Optional[str] = None,
        auto_start_server: bool = False,
        cooldown_gate: Optional[CooldownGate] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config or ExtractorConfig(api_url=api_url)
        if config is not None and api_url is not None:
            self._config.api_url = api_url.rstrip('/')

        self._server_instance = None
        self._auto_start = auto_start_server

        self._client = httpx.AsyncClient(timeout=self._config.request_timeout, transport=transport)
        self.cooldown_gate = cooldown_gate or CooldownGate(self._config.cooldown_seconds)
        self.executor = BatchExecutor(self._client, self._config.api_url, self._config.retry_policy())
        self.orchestrator = ExtractionOrchestrator(
            self.executor,
            self.cooldown_gate,
            batch_size=self._config.batch_size,
            stagger=self._config.batch_stagger,
            cancel_on_limit=self._config.cancel_on_limit,
        )

        if self._auto_start:
            self._ensure_server()

    @property
    def api_url(self) -> str:
        return self._config.api_url

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    async def aclose(self):
        """Close the HTTP client and stop the managed server."""
        await self._client.aclose()
        self.shutdown()

    # ------------------------------------------------------------------
    # Server lifecycle

    def _server_address(self):
        parsed = urlparse(self._config.api_url)
        return parsed.hostname or "127.0.0.1", parsed.port or self._config.server_port

    def _is_server_running(self) -> bool:
        """Check if the API server is already listening on the configured address."""
        host, port = self._server_address()
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            try:
                sock.settimeout(0.2)
                return sock.connect_ex((host, port)) == 0
            finally:
                sock.close()
        except OSError:
            return False

    def _ensure_server(self):
        """Start the API server in a daemon thread if not already running."""
        if self._is_server_running():
            return

        from .server import app
        import uvicorn

        _, port = self._server_address()
        server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning"))
        self._server_instance = server

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()

        # Wait for server to become ready (up to 5 seconds)
        for _ in range(50):
            if self._is_server_running():
                logger.info("API server started on port %d", port)
                return
            time.sleep(0.1)

        raise ServerError(f"Failed to start API server on port {port}")

    def shutdown(self):
        """Shut down the managed API server if we started it."""
        if self._server_instance is not None:
            self._server_instance.should_exit = True
            self._server_instance = None

    # ------------------------------------------------------------------
    # Public API

    async def health(self) -> Dict[str, Any]:
        """Return the server's {status, message}; status is 'error' if unreachable."""
        try:
            response = await self._client.get(f"{self.api_url}/api/health", timeout=5.0)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Health check failed: %s", e)
            return {"status": "error", "message": f"API server not available at {self.api_url}"}

    async def search_businesses(
        self,
        query: ExtractionQuery,
        on_progress: Optional[ProgressCallback] = None,
        on_partial_results: Optional[PartialResultsCallback] = None,
    ) -> List[BusinessRecord]:
        """Search for businesses. Raises ExtractionError only when the whole run fails."""
        return await self.orchestrator.run(query, on_progress, on_partial_results)

    async def suggest_locations(self, prefix: str) -> List[LocationSuggestion]:
        return await suggest_locations(self._client, prefix, self.api_url)

    async def suggest_niches(self, prefix: str) -> List[str]:
        return await suggest_niches(self._client, prefix, self.api_url)
