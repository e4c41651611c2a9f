"""
Layer 3: Anomaly detection (neighbourhood baselines, anomaly score strategies).
"""
from .baselines import (
    BaselineTable,
    compute_baseline,
    MIN_BASELINE_SAMPLES,
    MIN_STD_DEV,
)
from .scoring import (
    ANOMALY_SCORE_STRATEGIES,
    get_strategy,
    zscore_anomaly_score,
    weighted_blend_anomaly_score,
)
from .detector import (
    AnomalyDetector,
    detect_anomalies,
    detect_content_anomalies,
    summarize_anomalies,
    summarize_dataset,
    ANOMALY_THRESHOLD,
    SUSPICIOUS_MAX_LENGTH,
)

__all__ = [
    'BaselineTable',
    'compute_baseline',
    'MIN_BASELINE_SAMPLES',
    'MIN_STD_DEV',
    'ANOMALY_SCORE_STRATEGIES',
    'get_strategy',
    'zscore_anomaly_score',
    'weighted_blend_anomaly_score',
    'AnomalyDetector',
    'detect_anomalies',
    'detect_content_anomalies',
    'summarize_anomalies',
    'summarize_dataset',
    'ANOMALY_THRESHOLD',
    'SUSPICIOUS_MAX_LENGTH',
]
