"""
Default configuration for the Google Maps Leads Extractor.

Values come from environment variables where they are deployment specific
(API key, model, server address) and are plain module constants otherwise.
Per-instance overrides go through LeadsExtractor() / ExtractorConfig.
"""

import logging
import os

logger = logging.getLogger(__name__)

# Gemini API
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_KEY_PREFIX = "AIza"


def get_api_key() -> str:
    """Get the trimmed Gemini API key from the environment (may be empty)."""
    key = (os.environ.get("GEMINI_API_KEY") or "").strip()
    if not key:
        logger.error("GEMINI_API_KEY is not set or is empty.")
    elif not key.startswith(GEMINI_KEY_PREFIX):
        logger.warning("GEMINI_API_KEY does not start with '%s'. It might be invalid.", GEMINI_KEY_PREFIX)
    return key


# API Server
API_HOST = "0.0.0.0"
API_PORT = int(os.environ.get("GMAPS_LEADS_PORT", "8000"))
API_BASE_URL = os.environ.get("GMAPS_LEADS_API_URL", f"http://localhost:{API_PORT}")

# Batching
BATCH_SIZE = 15
BATCH_STAGGER = 0.15  # seconds between batch starts, multiplied by batch index

# Cooldown between whole extraction runs (seconds)
COOLDOWN_SECONDS = 5.0

# Retry policy (seconds / counts)
RATE_LIMIT_WAIT = 10.0
MAX_RATE_LIMIT_RETRIES = 20  # None retries rate limits forever
RETRY_DELAY = 1.0
MAX_RETRIES = 1

# Timeouts (seconds)
REQUEST_TIMEOUT = 60.0
ATTEMPT_TIMEOUT = 90.0  # one /api/search attempt; rate-limit pauses are not counted
UPSTREAM_TIMEOUT = 60.0

# Suggestions
SUGGESTION_MIN_CHARS = 2
MAX_SUGGESTIONS = 5

# Sentinels for missing upstream fields
MISSING_TEXT = "N/A"
MISSING_NUMBER = 0

# Output Schema
OUTPUT_SCHEMA = {
    "id": "string",
    "name": "string",
    "address": "string",
    "phone": "string",
    "website": "string",
    "profileLink": "string",
    "rating": "float",
    "reviewCount": "integer",
}

# CSV Output Columns (header label, record key)
CSV_COLUMNS = [
    ("Name", "name"),
    ("Address", "address"),
    ("Phone", "phone"),
    ("Website", "website"),
    ("Maps Link", "profileLink"),
    ("Rating", "rating"),
    ("Reviews", "reviewCount"),
]
