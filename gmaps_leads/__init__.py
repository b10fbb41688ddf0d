"""
Google Maps Leads Extractor

Turns a (location, niche) query into a deduplicated list of business leads
by running many parallel, Maps-grounded Gemini requests through a small
API server.

Quick start (library usage):
    import asyncio
    from gmaps_leads import LeadsExtractor, ExtractionQuery

    async def main():
        async with LeadsExtractor(auto_start_server=True) as extractor:
            leads = await extractor.search_businesses(ExtractionQuery("Paris, France", "bakery", 30))
            for biz in leads:
                print(biz.name, biz.phone)

    asyncio.run(main())

Run the API server on its own with:
    python run_server.py
"""

from .config import OUTPUT_SCHEMA
from .config_manager import ExtractorConfig
from .exceptions import (
    ConfigurationError,
    ExtractionError,
    GMapsLeadsError,
    RateLimitError,
    ServerError,
)
from .extractor import LeadsExtractor
from .models import (
    BusinessRecord,
    ExtractionProgress,
    ExtractionQuery,
    LocationSuggestion,
)

__version__ = "1.0.0"
__all__ = [
    "LeadsExtractor",
    "ExtractorConfig",
    "ExtractionQuery",
    "BusinessRecord",
    "ExtractionProgress",
    "LocationSuggestion",
    "GMapsLeadsError",
    "ConfigurationError",
    "ExtractionError",
    "RateLimitError",
    "ServerError",
    "OUTPUT_SCHEMA",
]
