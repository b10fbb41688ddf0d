"""
Business Data Normaliser

Turns loosely-shaped candidate objects returned by the model into the
BusinessRecord field set. The model is asked for the keys

    name, address, phone, website, profileLink, rating, reviewCount

but sometimes answers with snake_case or other spellings, string numbers
("4,5", "1,234 reviews") or placeholder values ("N/A", "null").
"""

import math
import re
from typing import Any, Dict, Optional

from ..config import MISSING_TEXT, MISSING_NUMBER

# Accepted spellings for each field, first match wins
FIELD_ALIASES = {
    "name": ("name", "title", "business_name", "businessName"),
    "address": ("address", "formatted_address", "formattedAddress", "location"),
    "phone": ("phone", "phone_number", "phoneNumber", "telephone"),
    "website": ("website", "url", "website_url", "websiteUrl"),
    "profileLink": ("profileLink", "profile_link", "mapsLink", "maps_link", "google_maps_url", "googleMapsUrl"),
    "rating": ("rating", "stars"),
    "reviewCount": ("reviewCount", "review_count", "reviews", "reviewsCount", "user_ratings_total"),
}

_PLACEHOLDERS = {"", "n/a", "na", "none", "null", "undefined", "unknown", "-"}
_NUMBER_RE = re.compile(r'-?\d+(?:[.,]\d+)?')


def _as_finite(value: Any) -> Optional[float]:
    """float(value), or None when it is NaN, infinite or too large for a float"""
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def safe_get(obj: Any, *keys, default=None) -> Any:
    """Return the first present, non-placeholder value among keys."""
    if not isinstance(obj, dict):
        return default
    for key in keys:
        value = obj.get(key)
        if value is None:
            continue
        if isinstance(value, str) and value.strip().lower() in _PLACEHOLDERS:
            continue
        return value
    return default


def clean_text(value: Any) -> Optional[str]:
    """Strip a string value; None for placeholders and non-scalars"""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    if text.lower() in _PLACEHOLDERS:
        return None
    return text


def parse_rating(value: Any) -> float:
    """Parse a rating such as 4.6, "4,6" or "4.6 stars"; 0 when absent or not finite."""
    if isinstance(value, bool):
        return float(MISSING_NUMBER)
    rating = None
    if isinstance(value, (int, float)):
        rating = _as_finite(value)
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if match:
            rating = _as_finite(match.group(0).replace(',', '.'))
    if rating is None or rating <= 0:
        return float(MISSING_NUMBER)
    return rating


def parse_review_count(value: Any) -> int:
    """Parse a review count such as 120, "1,234" or "1.2k reviews"; 0 when absent or not finite."""
    if isinstance(value, bool):
        return MISSING_NUMBER
    if isinstance(value, int):
        return max(value, MISSING_NUMBER)
    if isinstance(value, float):
        number = _as_finite(value)
        return MISSING_NUMBER if number is None else max(int(number), MISSING_NUMBER)
    number = None
    multiplier = 1
    if isinstance(value, str):
        text = value.strip().lower()
        if re.search(r'\d\s*k\b', text):
            multiplier = 1000
            match = _NUMBER_RE.search(text)
            if match:
                number = _as_finite(match.group(0).replace(',', '.'))
        else:
            digits = re.sub(r'(?<=\d)[,.\s](?=\d{3}\b)', '', text)
            match = re.search(r'\d+', digits)
            if match:
                number = _as_finite(match.group(0))
    if number is None:
        return MISSING_NUMBER
    count = number * multiplier
    if not math.isfinite(count):
        return MISSING_NUMBER
    return max(int(round(count)), MISSING_NUMBER)


def candidate_name(candidate: Any) -> Optional[str]:
    """Business name of a raw candidate, or None when it has none."""
    return clean_text(safe_get(candidate, *FIELD_ALIASES["name"]))


def identity_key(candidate: Dict) -> str:
    """
    Derive the key used to recognise the same real-world business.

    lowercase(name + "-" + (phone if present else address))
    """
    name = candidate_name(candidate) or ""
    phone = clean_text(safe_get(candidate, *FIELD_ALIASES["phone"]))
    address = clean_text(safe_get(candidate, *FIELD_ALIASES["address"]))
    return f"{name}-{phone or address or ''}".lower()


def normalize_business(candidate: Dict) -> Dict[str, Any]:
    """
    Map a raw candidate onto the record fields (everything except id).

    Strings default to 'N/A' and numbers to 0.
    """
    def text_field(field: str) -> str:
        return clean_text(safe_get(candidate, *FIELD_ALIASES[field])) or MISSING_TEXT

    return {
        "name": text_field("name"),
        "address": text_field("address"),
        "phone": text_field("phone"),
        "website": text_field("website"),
        "profile_link": text_field("profileLink"),
        "rating": parse_rating(safe_get(candidate, *FIELD_ALIASES["rating"])),
        "review_count": parse_review_count(safe_get(candidate, *FIELD_ALIASES["reviewCount"])),
    }
