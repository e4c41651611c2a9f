"""
Header alias lookup table

Review exports name the same column differently (Inside Airbnb uses
"comments" and "date", other exports use "raw_text" and "created_at").
Each canonical field maps to the header names accepted for it.
"""
from typing import Dict, Iterable, Optional

from models.review import RawRecord

FIELD_ALIASES: Dict[str, tuple] = {
    "review_id": ("review_id", "id", "reviewid", "comment_id"),
    "listing_id": ("listing_id", "listing", "listingid", "property_id"),
    "neighbourhood": ("neighbourhood", "neighborhood", "neighbourhood_cleansed", "area", "district"),
    "created_at": ("created_at", "date", "review_date", "created", "timestamp"),
    "language": ("language", "lang", "language_code"),
    "raw_text": ("raw_text", "comments", "comment", "text", "review", "review_text"),
}

# Reference header list for exports that already use canonical names
EXPECTED_HEADERS = [
    "review_id",
    "listing_id",
    "neighbourhood",
    "created_at",
    "language",
    "raw_text",
]


def _normalize_header(header: str) -> str:
    return header.strip().lower()


def build_header_map(headers: Iterable[str]) -> Dict[str, str]:
    """
    Map canonical field names to the actual header present in the file

    The first alias found wins; canonical fields with no matching header are
    left out of the result.
    """
    by_normalized: Dict[str, str] = {}
    for header in headers:
        by_normalized.setdefault(_normalize_header(header), header)

    header_map: Dict[str, str] = {}
    for field_name, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            if alias in by_normalized:
                header_map[field_name] = by_normalized[alias]
                break
    return header_map


def get_field(record: RawRecord, field_name: str, header_map: Optional[Dict[str, str]] = None) -> str:
    """Read a canonical field from a record, returning "" when it is absent"""
    if header_map is None:
        header_map = build_header_map(record.keys())
    header = header_map.get(field_name)
    if header is None:
        return ""
    value = record.get(header)
    return "" if value is None else str(value)
