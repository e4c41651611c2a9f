"""
Attach a tone score to every cleaned row

The oracle is optional and best-effort. Whatever it returns is merged row by
row; any row it could not score, and every row when it fails outright, gets
the lexicon score instead. No row is ever left unscored.
"""
import math
from typing import List, Optional, Sequence

from layer_2_sentiment.sentiment_oracle import OracleResult, SentimentOracle
from layer_2_sentiment.tone_scorer import ToneScorer
from models.review import CleanedRow, ScoredRow
from utils.logger import get_logger

logger = get_logger(__name__)


def _valid_oracle_result(result: Optional[OracleResult]) -> bool:
    if result is None:
        return False
    score = result.score
    return isinstance(score, (int, float)) and not isinstance(score, bool) and math.isfinite(score)


def merge_external_score(
    row: CleanedRow,
    result: Optional[OracleResult],
    scorer: type = ToneScorer,
) -> ScoredRow:
    """
    Combine a cleaned row with an optional oracle result

    Args:
        row: Cleaned row
        result: Oracle output for this row's text, or None
        scorer: Lexicon scorer used when the oracle result is unusable

    Returns:
        ScoredRow using the oracle score and language when valid, otherwise
        the lexicon score and the row's own language
    """
    if _valid_oracle_result(result):
        score = max(-1.0, min(1.0, float(result.score)))
        return ScoredRow(
            row=row,
            sentiment_score=score,
            language=result.language or row.language,
            score_source="oracle",
            confidence=result.confidence,
        )

    return ScoredRow(
        row=row,
        sentiment_score=scorer.score(row.raw_text).score,
        language=row.language,
        score_source="lexicon",
    )


def score_rows(
    rows: Sequence[CleanedRow],
    oracle: Optional[SentimentOracle] = None,
    scorer: type = ToneScorer,
) -> List[ScoredRow]:
    """
    Score every row, preferring oracle output where it is available

    Args:
        rows: Cleaned rows
        oracle: Optional external estimator
        scorer: Lexicon scorer

    Returns:
        Scored rows in input order
    """
    results: List[Optional[OracleResult]] = [None] * len(rows)

    if oracle is not None and rows:
        try:
            oracle_results = list(oracle.analyze_batch([row.raw_text for row in rows]))
        except Exception as e:
            logger.warning(f"Oracle failed, using lexicon scores for all rows: {e}")
            oracle_results = []

        if len(oracle_results) == len(rows):
            results = oracle_results
        elif oracle_results:
            logger.warning(
                f"Oracle returned {len(oracle_results)} results for {len(rows)} rows, using lexicon scores"
            )

    scored = [merge_external_score(row, result, scorer) for row, result in zip(rows, results)]

    from_oracle = sum(1 for row in scored if row.score_source == "oracle")
    logger.info(f"Scored {len(scored)} rows ({from_oracle} from oracle, {len(scored) - from_oracle} from lexicon)")
    return scored
