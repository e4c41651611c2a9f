"""
Anomaly score strategies

Two ways of turning a tone score into an anomaly score are in use:
- "zscore": deviation from the neighbourhood baseline in standard deviations
- "weighted_blend": 70% deviation from a fixed reference tone plus 30%
  language risk, capped at 1.0
They are kept separate and named so each can be tested and chosen explicitly.
"""
import math
from typing import Callable, Dict

from models.insights import NeighbourhoodBaseline

ZSCORE = "zscore"
WEIGHTED_BLEND = "weighted_blend"

BLEND_REFERENCE_MEAN = 0.6
BLEND_SENTIMENT_WEIGHT = 0.7
BLEND_LANGUAGE_WEIGHT = 0.3
NON_ENGLISH_RISK = 0.8
ENGLISH_RISK = 0.2


def zscore_anomaly_score(sentiment_score: float, baseline: NeighbourhoodBaseline) -> float:
    """|score - mean| / stdDev against the row's baseline"""
    deviation = abs(sentiment_score - baseline.mean)
    return deviation / baseline.std_dev


def language_risk(language: str) -> float:
    return ENGLISH_RISK if (language or "en") == "en" else NON_ENGLISH_RISK


def weighted_blend_anomaly_score(
    sentiment_score: float,
    language: str,
    reference_mean: float = BLEND_REFERENCE_MEAN,
) -> float:
    """min(1, 0.7 * |score - reference| + 0.3 * language risk)"""
    deviation = abs(sentiment_score - reference_mean)
    return min(1.0, deviation * BLEND_SENTIMENT_WEIGHT + language_risk(language) * BLEND_LANGUAGE_WEIGHT)


ANOMALY_SCORE_STRATEGIES: Dict[str, Callable[..., float]] = {
    ZSCORE: zscore_anomaly_score,
    WEIGHTED_BLEND: weighted_blend_anomaly_score,
}


def get_strategy(name: str) -> Callable[..., float]:
    """Look up a strategy by name"""
    try:
        return ANOMALY_SCORE_STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown anomaly score strategy: {name!r}") from None


def reaches_threshold(value: float, threshold: float) -> bool:
    """
    value > threshold, counting a value equal to the threshold up to float error

    A row exactly two standard deviations out is flagged; computing the same
    quantity in a different order must not change that.
    """
    return value > threshold or math.isclose(value, threshold, rel_tol=1e-9, abs_tol=1e-12)
