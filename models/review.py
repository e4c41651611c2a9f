"""
Review data models
"""
from dataclasses import dataclass, replace
from typing import Dict, Optional


# One parsed input line: header name -> raw string value, in header order
RawRecord = Dict[str, str]

# Column order of the cleaned export
CLEANED_COLUMNS = [
    "review_id",
    "listing_id",
    "neighbourhood",
    "created_at",
    "language",
    "raw_text",
    "needs_translation",
]


@dataclass(frozen=True)
class CleanedRow:
    """Validated, cleaned review row"""
    review_id: str
    listing_id: str
    neighbourhood: str
    created_at: str  # YYYY-MM-DD HH:MM:SS
    language: str  # lowercase code, "en" by default
    raw_text: str  # Trimmed and mojibake-corrected
    needs_translation: bool = False

    def to_record(self) -> RawRecord:
        """Convert row back to a string mapping (export / re-normalization)"""
        return {
            "review_id": self.review_id,
            "listing_id": self.listing_id,
            "neighbourhood": self.neighbourhood,
            "created_at": self.created_at,
            "language": self.language,
            "raw_text": self.raw_text,
            "needs_translation": "true" if self.needs_translation else "false",
        }


@dataclass(frozen=True)
class ScoredRow:
    """
    Cleaned row carrying the tone score the rest of the pipeline should use.

    The score comes either from the lexicon scorer or from the external oracle;
    anomaly detection and the timeline treat both the same way.
    """
    row: CleanedRow
    sentiment_score: float
    language: str
    score_source: str = "lexicon"  # "lexicon" or "oracle"
    anomaly_score: Optional[float] = None  # Externally supplied, overrides the z-score gate
    confidence: Optional[float] = None

    @property
    def review_id(self) -> str:
        return self.row.review_id

    @property
    def listing_id(self) -> str:
        return self.row.listing_id

    @property
    def neighbourhood(self) -> str:
        return self.row.neighbourhood

    @property
    def created_at(self) -> str:
        return self.row.created_at

    @property
    def raw_text(self) -> str:
        return self.row.raw_text

    @property
    def needs_translation(self) -> bool:
        return self.language != "en"

    def with_anomaly_score(self, anomaly_score: Optional[float]) -> "ScoredRow":
        """Copy of this row with an external anomaly score attached"""
        return replace(self, anomaly_score=anomaly_score)
