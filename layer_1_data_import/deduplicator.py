"""
Deduplication logic to avoid accepting the same review twice in one upload
"""
import hashlib
from typing import Set

from utils.logger import get_logger

logger = get_logger(__name__)

# Number of text characters folded into a derived review id
DERIVED_ID_TEXT_PREFIX = 20


def derive_review_id(listing_id: str, created_at: str, text: str) -> str:
    """
    Build a stable identifier for exports that have no review id column

    The id is a digest of listing id + created timestamp + a short text prefix,
    so the same review exported twice gets the same id.
    """
    composite = "|".join([
        (listing_id or "").strip(),
        (created_at or "").strip(),
        (text or "").strip()[:DERIVED_ID_TEXT_PREFIX],
    ])
    digest = hashlib.sha1(composite.encode("utf-8")).hexdigest()[:12]
    return f"derived-{digest}"


class ReviewDeduplicator:
    """Track review ids accepted so far in the current upload"""

    def __init__(self):
        self.accepted_ids: Set[str] = set()
        self.duplicates_seen = 0

    def is_duplicate(self, review_id: str) -> bool:
        """
        Check if review ID has already been accepted

        Args:
            review_id: Review ID to check

        Returns:
            True if duplicate, False otherwise
        """
        return review_id in self.accepted_ids

    def mark_as_accepted(self, review_id: str):
        """Remember a review ID as accepted"""
        self.accepted_ids.add(review_id)

    def check(self, review_id: str) -> bool:
        """Return True and count it when the id is a duplicate"""
        if self.is_duplicate(review_id):
            self.duplicates_seen += 1
            logger.debug(f"Duplicate review id: {review_id}")
            return True
        return False

    def get_stats(self) -> dict:
        """Get deduplication statistics"""
        return {
            'total_accepted': len(self.accepted_ids),
            'duplicates_seen': self.duplicates_seen,
        }
