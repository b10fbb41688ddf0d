"""
Export Helpers

Filtering and CSV / JSON output for extracted leads.
"""

import csv
import json
import os
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .config import CSV_COLUMNS
from .models import BusinessRecord


def filter_records(
    records: Iterable[BusinessRecord],
    min_rating: float = 0,
    min_reviews: int = 0,
) -> List[BusinessRecord]:
    """Keep records with rating >= min_rating and review count >= min_reviews."""
    return [
        biz for biz in records
        if biz.rating >= min_rating and biz.review_count >= min_reviews
    ]


def default_output_name(location: str, niche: str, ext: str) -> str:
    """Default output path, e.g. output/bakery_in_paris.csv"""
    safe_location = location.split(",")[0].strip().replace(" ", "_").lower()
    safe_niche = niche.strip().replace(" ", "_").lower()
    return os.path.join("output", f"{safe_niche}_in_{safe_location}.{ext}")


def _ensure_parent(path: str):
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_csv(records: Iterable[BusinessRecord], path: str) -> int:
    """
    Write records to a CSV file.

    Returns:
        Number of rows written (excluding the header)
    """
    _ensure_parent(path)
    count = 0
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow([header for header, _ in CSV_COLUMNS])
        for biz in records:
            row = biz.to_dict()
            writer.writerow([row[key] for _, key in CSV_COLUMNS])
            count += 1
    return count


def write_json(
    records: Iterable[BusinessRecord],
    path: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> int:
    """
    Write records plus metadata to a JSON file.

    Returns:
        Number of businesses written
    """
    _ensure_parent(path)
    businesses = [biz.to_dict() for biz in records]
    result_data = {
        'metadata': dict(metadata or {}, exported_at=datetime.now().isoformat()),
        'businesses': businesses,
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(result_data, f, indent=2, ensure_ascii=False)
    return len(businesses)
