"""
Sentiment, baseline, anomaly and timeline data models
"""
from dataclasses import dataclass, asdict
from typing import Optional


POSITIVE_LABEL_THRESHOLD = 0.1
NEGATIVE_LABEL_THRESHOLD = -0.1

ANOMALY_TYPES = (
    "sentiment_negative",
    "sentiment_positive",
    "sentiment_neutral",
    "suspicious",
    "language",
    "complaint",
)


def label_for_score(score: float) -> str:
    """Map a score in [-1, 1] to negative / neutral / positive"""
    if score > POSITIVE_LABEL_THRESHOLD:
        return "positive"
    if score < NEGATIVE_LABEL_THRESHOLD:
        return "negative"
    return "neutral"


@dataclass(frozen=True)
class ToneResult:
    """Bounded tone estimate of a piece of text"""
    score: float  # -1 to 1
    magnitude: float  # 0 to 1, always abs(score)
    label: str  # negative / neutral / positive

    @classmethod
    def from_score(cls, score: float) -> "ToneResult":
        """Build a result from any score, clamping it to [-1, 1]"""
        clamped = max(-1.0, min(1.0, float(score)))
        return cls(score=clamped, magnitude=abs(clamped), label=label_for_score(clamped))

    @classmethod
    def neutral(cls) -> "ToneResult":
        return cls(score=0.0, magnitude=0.0, label="neutral")


@dataclass(frozen=True)
class NeighbourhoodBaseline:
    """Mean and floored standard deviation of tone scores for a peer group"""
    mean: float
    std_dev: float
    sample_count: int


@dataclass(frozen=True)
class AnomalyRecord:
    """A review flagged as unusual, with a traceable reason"""
    review_id: str
    type: str
    reason: str
    anomaly_score: float
    sentiment_score: float
    neighbourhood: str
    created_at: str
    example: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MonthlyBucket:
    """Mean tone of all reviews in one calendar month"""
    month: str  # MM/YY
    period: str  # YYYY-MM
    average_sentiment: float  # Rescaled to [0, 1]
    review_count: int
    change_pct: Optional[float] = None  # vs. previous bucket, absent for the first one

    def to_dict(self) -> dict:
        return asdict(self)
