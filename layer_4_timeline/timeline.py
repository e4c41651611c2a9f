"""
Monthly tone timeline

Groups reviews by the calendar month they were written in and tracks how the
average tone moves from one month to the next.
"""
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple, Union

from layer_1_data_import.validator import DateValidator
from layer_2_sentiment.tone_scorer import ToneScorer
from models.insights import MonthlyBucket
from models.review import CleanedRow, ScoredRow
from utils.logger import get_logger

logger = get_logger(__name__)


def rescale(score: float) -> float:
    """Map a tone score from [-1, 1] to [0, 1]"""
    return (score + 1) / 2


def percent_change(current: float, previous: float) -> Optional[float]:
    """Percentage change from previous to current, None when previous is zero"""
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 1)


def build_timeline(
    rows: Sequence[Union[CleanedRow, ScoredRow]],
    scorer: type = ToneScorer,
    today: Optional[date] = None,
) -> List[MonthlyBucket]:
    """
    Build the month-by-month tone timeline

    Args:
        rows: Cleaned or scored rows. A ScoredRow's own score is used as is.
        scorer: Lexicon scorer for rows without a score
        today: Latest acceptable review date (defaults to the current date)

    Returns:
        One MonthlyBucket per month that has reviews, oldest first
    """
    today = today or date.today()
    months: Dict[Tuple[int, int], List[float]] = defaultdict(list)

    for row in rows:
        if not DateValidator.is_valid(row.created_at, today):
            continue
        created = DateValidator.parse(row.created_at)
        if isinstance(row, ScoredRow):
            score = row.sentiment_score
        else:
            score = scorer.score(row.raw_text).score
        months[(created.year, created.month)].append(score)

    timeline: List[MonthlyBucket] = []
    previous: Optional[float] = None

    for year, month in sorted(months):
        scores = months[(year, month)]
        average = round(rescale(sum(scores) / len(scores)), 3)
        timeline.append(MonthlyBucket(
            month=f"{month:02d}/{year % 100:02d}",
            period=f"{year:04d}-{month:02d}",
            average_sentiment=average,
            review_count=len(scores),
            change_pct=percent_change(average, previous) if previous is not None else None,
        ))
        previous = average

    logger.info(f"Built timeline with {len(timeline)} months")
    return timeline
