"""
Prompt templates for the Gemini model.
"""

from typing import Optional

SEARCH_PROMPT = """Find {count} unique businesses matching "{niche}" in "{location}" using Google Maps data.
This is batch number {batch_number}; return different businesses than earlier batches would \
(skip the {skip} most prominent results and continue from there).

Return ONLY a JSON array, no prose and no markdown. Each element must be an object with exactly these keys:
  "name" (string), "address" (string), "phone" (string), "website" (string),
  "profileLink" (Google Maps URL string), "rating" (number), "reviewCount" (integer).
Use "N/A" for unknown strings and 0 for unknown numbers."""

LOCATION_SUGGESTIONS_PROMPT = """Suggest up to {count} real places (cities, regions, neighbourhoods or \
countries) whose name starts with or closely matches "{prefix}".
For each give "name" (the place name as it should be searched) and "description" \
(short context such as region and country)."""

NICHE_SUGGESTIONS_PROMPT = """Suggest up to {count} Google Maps business categories or niches that start with \
or closely match "{prefix}". Return short category names only."""

LOCATION_SUGGESTIONS_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "name": {"type": "STRING"},
            "description": {"type": "STRING"},
        },
        "required": ["name", "description"],
    },
}

NICHE_SUGGESTIONS_SCHEMA = {
    "type": "ARRAY",
    "items": {"type": "STRING"},
}


def build_search_prompt(
    location: str,
    niche: str,
    batch_index: int,
    target_count: int,
    offset: Optional[int] = None,
) -> str:
    """
    Prompt for one extraction batch.

    offset is the number of results earlier batches asked for. Without it every
    earlier batch is assumed to be as large as this one, which only holds when
    this is not a shorter, final batch.
    """
    if offset is None:
        offset = batch_index * target_count
    return SEARCH_PROMPT.format(
        count=target_count,
        niche=niche,
        location=location,
        batch_number=batch_index + 1,
        skip=offset,
    )


def build_location_prompt(prefix: str, count: int) -> str:
    return LOCATION_SUGGESTIONS_PROMPT.format(prefix=prefix, count=count)


def build_niche_prompt(prefix: str, count: int) -> str:
    return NICHE_SUGGESTIONS_PROMPT.format(prefix=prefix, count=count)
