"""
Autocomplete Suggestions

Best-effort location / niche suggestions fetched from the API server.
Short prefixes never hit the network, errors are logged and yield an
empty list, and there is no retry.
"""

import logging
from typing import Any, List

import httpx

from ..config import API_BASE_URL, MAX_SUGGESTIONS, SUGGESTION_MIN_CHARS
from ..models import LocationSuggestion
from ..parsers.json_text import is_object_array, is_string_array, parse_array_payload
from .batch import raise_for_upstream_status

logger = logging.getLogger(__name__)


def _is_long_enough(prefix: str) -> bool:
    return bool(prefix) and len(prefix.strip()) >= SUGGESTION_MIN_CHARS


async def _post_for_array(client: httpx.AsyncClient, url: str, prefix: str, accept) -> List[Any]:
    response = await client.post(url, json={"input": prefix})
    raise_for_upstream_status(response)
    return parse_array_payload(response.json(), accept=accept)


async def suggest_locations(
    client: httpx.AsyncClient,
    prefix: str,
    base_url: str = API_BASE_URL,
) -> List[LocationSuggestion]:
    """
    Fetch up to MAX_SUGGESTIONS location suggestions for a prefix.

    Returns:
        List of LocationSuggestion (empty on short input or any error)
    """
    if not _is_long_enough(prefix):
        return []

    try:
        items = await _post_for_array(
            client, f"{base_url.rstrip('/')}/api/suggestions/locations", prefix, is_object_array
        )
    except Exception as e:
        logger.error("Location suggestion error for %r: %s", prefix, e)
        return []

    suggestions = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name") or "").strip()
        if not name:
            continue
        suggestions.append(LocationSuggestion(name=name, description=str(item.get("description") or "").strip()))
        if len(suggestions) >= MAX_SUGGESTIONS:
            break
    return suggestions


async def suggest_niches(
    client: httpx.AsyncClient,
    prefix: str,
    base_url: str = API_BASE_URL,
) -> List[str]:
    """
    Fetch up to MAX_SUGGESTIONS niche / category suggestions for a prefix.

    Returns:
        List of strings (empty on short input or any error)
    """
    if not _is_long_enough(prefix):
        return []

    try:
        items = await _post_for_array(
            client, f"{base_url.rstrip('/')}/api/suggestions/niches", prefix, is_string_array
        )
    except Exception as e:
        logger.error("Niche suggestion error for %r: %s", prefix, e)
        return []

    return [item.strip() for item in items if isinstance(item, str) and item.strip()][:MAX_SUGGESTIONS]
