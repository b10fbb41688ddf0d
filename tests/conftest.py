from typing import Callable

import httpx
import pytest

from gmaps_leads.models import ExtractionQuery

from .helpers import FakeClock, RecordingSleep


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def paris_query() -> ExtractionQuery:
    return ExtractionQuery(location="Paris", niche="Bakery", limit=30)


@pytest.fixture
def mock_client():
    """Build an httpx.AsyncClient served by a request handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
