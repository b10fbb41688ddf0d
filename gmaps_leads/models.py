"""
Data Models

Plain dataclasses passed between the extraction components:
query, batch plan entries, business records, progress and suggestions.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class ExtractionQuery:
    """A validated (location, niche, limit) search request. Immutable."""
    location: str
    niche: str
    limit: int

    def __post_init__(self):
        if not isinstance(self.location, str) or not self.location.strip():
            raise ValueError("location must be a non-empty string")
        if not isinstance(self.niche, str) or not self.niche.strip():
            raise ValueError("niche must be a non-empty string")
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {self.limit!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {"location": self.location, "niche": self.niche, "limit": self.limit}


@dataclass(frozen=True)
class BatchDescriptor:
    """One entry of a batch plan; offset is the number of results requested by earlier batches"""
    index: int
    target_count: int
    offset: int = 0


@dataclass
class BusinessRecord:
    """A normalised business lead. Missing fields hold 'N/A' or 0, never None."""
    id: str
    name: str
    address: str
    phone: str
    website: str
    profile_link: str
    rating: float
    review_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Return the record in its wire/export shape (camelCase keys)."""
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "website": self.website,
            "profileLink": self.profile_link,
            "rating": self.rating,
            "reviewCount": self.review_count,
        }


@dataclass(frozen=True)
class ExtractionProgress:
    """A progress notification: percentage in 0..100 and a human readable message."""
    percentage: int
    message: str


@dataclass(frozen=True)
class LocationSuggestion:
    """Autocomplete entry for a location"""
    name: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "description": self.description}
