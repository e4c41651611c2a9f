"""
Neighbourhood-relative anomaly detection

A review is unusual when its tone sits far from what is normal for its own
neighbourhood. Comparing within neighbourhoods keeps naturally terse or
naturally critical areas from being flagged wholesale.
"""
import re
from collections import Counter
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence, Union

from layer_1_data_import.validator import DateValidator
from layer_2_sentiment.enrichment import merge_external_score
from layer_2_sentiment.tone_scorer import ToneScorer
from layer_3_anomaly_detection.baselines import BaselineTable
from layer_3_anomaly_detection.scoring import (
    BLEND_REFERENCE_MEAN,
    reaches_threshold,
    weighted_blend_anomaly_score,
    zscore_anomaly_score,
)
from models.insights import AnomalyRecord, NeighbourhoodBaseline
from models.review import CleanedRow, ScoredRow
from utils.logger import get_logger

logger = get_logger(__name__)

# Flag reviews at least this many standard deviations from their baseline
ANOMALY_THRESHOLD = 2.0
# Flagged reviews beyond this many standard deviations are negative/positive outliers
CLASSIFICATION_SIGMA = 1.5
# Lower bar for non-English reviews
LANGUAGE_THRESHOLD = 1.5
# Reviews shorter than this are always suspicious
SUSPICIOUS_MAX_LENGTH = 15

# weighted_blend strategy
BLEND_THRESHOLD = 0.8
COMPLAINT_KEYWORDS = ('dirty', 'clean', 'smell', 'noise', 'broken', 'uncomfortable', 'rude', 'terrible')
CONTENT_SHORT_LENGTH = 20
REPEATED_CHARACTER_PATTERN = re.compile(r"(.)\1{3,}")

EXAMPLE_LENGTH = 100

Row = Union[CleanedRow, ScoredRow]


def _example(text: str, length: int = EXAMPLE_LENGTH) -> str:
    return text[:length] + ("..." if len(text) > length else "")


class AnomalyDetector:
    """Flag reviews whose tone deviates from their neighbourhood baseline"""

    def __init__(self, scorer: type = ToneScorer, today: Optional[date] = None):
        """
        Initialize detector

        Args:
            scorer: Lexicon scorer for rows that carry no external score
            today: Latest acceptable review date (defaults to the current date)
        """
        self.scorer = scorer
        self.today = today

    def prepare_rows(self, rows: Sequence[Row]) -> List[ScoredRow]:
        """Keep rows with a valid date and make sure each one has a score"""
        today = self.today or date.today()
        prepared = []
        for row in rows:
            if not DateValidator.is_valid(row.created_at, today):
                logger.debug(f"Skipping {row.review_id}: invalid date {row.created_at!r}")
                continue
            if isinstance(row, ScoredRow):
                prepared.append(row)
            else:
                prepared.append(merge_external_score(row, None, self.scorer))
        return prepared

    def build_baselines(
        self,
        rows: Sequence[ScoredRow],
        baseline_overrides: Optional[Mapping[str, NeighbourhoodBaseline]] = None,
    ) -> BaselineTable:
        return BaselineTable.from_pairs(
            ((row.neighbourhood, row.sentiment_score) for row in rows),
            baseline_overrides,
        )

    def detect_anomalies(
        self,
        rows: Sequence[Row],
        baseline_overrides: Optional[Mapping[str, NeighbourhoodBaseline]] = None,
    ) -> List[AnomalyRecord]:
        """
        Detect sentiment, suspicious and language anomalies

        Args:
            rows: Cleaned rows, or scored rows carrying an external score
            baseline_overrides: Baselines to use instead of computed ones,
                keyed by neighbourhood

        Returns:
            Anomaly records in input row order. A row can produce more than
            one record (sentiment, then suspicious, then language).
        """
        scored = self.prepare_rows(rows)
        if not scored:
            return []

        table = self.build_baselines(scored, baseline_overrides)
        anomalies: List[AnomalyRecord] = []

        for row in scored:
            baseline = table.baseline_for(row.neighbourhood)
            score = row.sentiment_score
            z_score = zscore_anomaly_score(score, baseline)
            effective = row.anomaly_score if row.anomaly_score is not None else z_score
            trace = self._trace(score, baseline, table.uses_own_baseline(row.neighbourhood))

            if reaches_threshold(effective, ANOMALY_THRESHOLD):
                if score < baseline.mean - CLASSIFICATION_SIGMA * baseline.std_dev:
                    anomaly_type = "sentiment_negative"
                    reason = f"Unusually negative sentiment for {row.neighbourhood}. {trace}"
                elif score > baseline.mean + CLASSIFICATION_SIGMA * baseline.std_dev:
                    anomaly_type = "sentiment_positive"
                    reason = f"Unusually positive sentiment for {row.neighbourhood}. {trace}"
                else:
                    anomaly_type = "sentiment_neutral"
                    reason = (
                        "Neutral sentiment with low emotional engagement, potentially indicating generic "
                        f"or template content. Anomaly score: {effective:.2f}, {trace}"
                    )
                anomalies.append(self._record(row, anomaly_type, reason, effective))

            if len(row.raw_text) < SUSPICIOUS_MAX_LENGTH:
                reason = f"Extremely short review (likely spam or low-effort). {trace}"
                anomalies.append(self._record(row, "suspicious", reason, effective))

            if row.language != "en" and reaches_threshold(effective, LANGUAGE_THRESHOLD):
                reason = f"Non-English content ({row.language}) with unusual sentiment pattern. {trace}"
                anomalies.append(self._record(row, "language", reason, effective))

        logger.info(f"Detected {len(anomalies)} anomalies in {len(scored)} reviews")
        return anomalies

    def detect_content_anomalies(self, rows: Sequence[Row]) -> List[AnomalyRecord]:
        """
        Flag reviews with the weighted_blend strategy and classify them by content

        Rows scoring above BLEND_THRESHOLD are classified as complaint (complaint
        keywords), language (non-English) or suspicious (everything else).
        """
        anomalies: List[AnomalyRecord] = []

        for row in self.prepare_rows(rows):
            score = row.sentiment_score
            blend = weighted_blend_anomaly_score(score, row.language)
            if blend <= BLEND_THRESHOLD:
                continue

            text = row.raw_text.lower()
            trace = f"Anomaly score: {blend:.2f}, Score: {score:.2f}, Reference avg: {BLEND_REFERENCE_MEAN:.2f}"
            if any(keyword in text for keyword in COMPLAINT_KEYWORDS):
                anomaly_type, reason = "complaint", f"Contains complaint keywords. {trace}"
            elif row.language != "en":
                anomaly_type, reason = "language", f"Non-English content ({row.language}). {trace}"
            elif len(text) < CONTENT_SHORT_LENGTH or REPEATED_CHARACTER_PATTERN.search(text):
                anomaly_type, reason = "suspicious", f"Repetitive or too short. {trace}"
            else:
                anomaly_type, reason = "suspicious", f"High anomaly score. {trace}"

            anomalies.append(self._record(row, anomaly_type, reason, blend))

        logger.info(f"Detected {len(anomalies)} content anomalies")
        return anomalies

    @staticmethod
    def _trace(score: float, baseline: NeighbourhoodBaseline, own_baseline: bool) -> str:
        scope = "Neighbourhood" if own_baseline else "Dataset"
        return f"Score: {score:.2f}, {scope} avg: {baseline.mean:.2f}"

    @staticmethod
    def _record(row: ScoredRow, anomaly_type: str, reason: str, anomaly_score: float) -> AnomalyRecord:
        return AnomalyRecord(
            review_id=row.review_id,
            type=anomaly_type,
            reason=reason,
            anomaly_score=anomaly_score,
            sentiment_score=row.sentiment_score,
            neighbourhood=row.neighbourhood,
            created_at=row.created_at,
            example=_example(row.raw_text),
        )


def detect_anomalies(
    rows: Sequence[Row],
    baseline_overrides: Optional[Mapping[str, NeighbourhoodBaseline]] = None,
) -> List[AnomalyRecord]:
    """Detect anomalies with a default detector (see AnomalyDetector.detect_anomalies)"""
    return AnomalyDetector().detect_anomalies(rows, baseline_overrides)


def detect_content_anomalies(rows: Sequence[Row]) -> List[AnomalyRecord]:
    """Detect weighted_blend anomalies with a default detector"""
    return AnomalyDetector().detect_content_anomalies(rows)


def summarize_anomalies(anomalies: Sequence[AnomalyRecord], total_rows: int) -> Dict:
    """
    Summarize anomalies by type and neighbourhood

    Returns:
        Dictionary with total_anomalies, by_type, top_neighbourhoods (top 3)
        and percentage of reviews flagged
    """
    by_type = Counter(anomaly.type for anomaly in anomalies)
    by_neighbourhood = Counter(anomaly.neighbourhood for anomaly in anomalies)
    flagged_reviews = len({anomaly.review_id for anomaly in anomalies})

    return {
        "total_anomalies": len(anomalies),
        "flagged_reviews": flagged_reviews,
        "by_type": dict(by_type),
        "top_neighbourhoods": by_neighbourhood.most_common(3),
        "percentage": round(flagged_reviews / total_rows * 100, 1) if total_rows else 0.0,
    }


def summarize_dataset(rows: Sequence[Row]) -> Dict:
    """
    Overview of the cleaned dataset the anomalies were drawn from

    Returns:
        Dictionary with total_reviews, unique_listings, neighbourhood_count,
        language_count, date_range ((first day, last day) or None),
        english_percentage and top_neighbourhoods (top 3 by review count)
    """
    days = sorted({row.created_at.split(" ")[0] for row in rows})
    english = sum(1 for row in rows if row.language == "en")
    by_neighbourhood = Counter(row.neighbourhood for row in rows)

    return {
        "total_reviews": len(rows),
        "unique_listings": len({row.listing_id for row in rows}),
        "neighbourhood_count": len(by_neighbourhood),
        "language_count": len({row.language for row in rows}),
        "date_range": (days[0], days[-1]) if days else None,
        "english_percentage": round(english / len(rows) * 100, 1) if rows else 0.0,
        "top_neighbourhoods": by_neighbourhood.most_common(3),
    }
