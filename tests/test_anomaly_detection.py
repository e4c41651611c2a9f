"""
Tests for Layer 3: Anomaly detection
Tests baselines, anomaly score strategies, detector and summaries
"""
import sys
import os
import math

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from layer_3_anomaly_detection.baselines import BaselineTable, compute_baseline, MIN_STD_DEV
from layer_3_anomaly_detection.scoring import (
    get_strategy,
    language_risk,
    reaches_threshold,
    weighted_blend_anomaly_score,
    zscore_anomaly_score,
)
from layer_3_anomaly_detection.detector import (
    AnomalyDetector,
    detect_anomalies,
    detect_content_anomalies,
    summarize_anomalies,
    summarize_dataset,
)
from models.insights import AnomalyRecord, NeighbourhoodBaseline
from models.review import CleanedRow, ScoredRow


def make_scored(review_id, score, neighbourhood="Harbour", text="A perfectly ordinary review text",
                language="en", created_at="2023-05-01 10:00:00", anomaly_score=None):
    row = CleanedRow(
        review_id=review_id,
        listing_id="l1",
        neighbourhood=neighbourhood,
        created_at=created_at,
        language=language,
        raw_text=text,
        needs_translation=language != "en",
    )
    return ScoredRow(row=row, sentiment_score=score, language=language, anomaly_score=anomaly_score)


class TestBaselines:
    """Test neighbourhood baselines"""

    def test_compute_baseline(self):
        baseline = compute_baseline([0.1, 0.1, 0.1, 0.1, 0.9])
        assert math.isclose(baseline.mean, 0.26)
        assert math.isclose(baseline.std_dev, 0.32)
        assert baseline.sample_count == 5

    def test_std_dev_floor(self):
        baseline = compute_baseline([0.5, 0.5, 0.5, 0.5, 0.5])
        assert baseline.std_dev == MIN_STD_DEV

    def test_empty_scores(self):
        try:
            compute_baseline([])
            assert False, "Expected ValueError"
        except ValueError:
            pass

    def test_small_groups_use_global_baseline(self):
        table = BaselineTable({"Big": [0.0] * 5, "Small": [1.0, 1.0]})
        assert table.uses_own_baseline("Big")
        assert not table.uses_own_baseline("Small")
        assert table.baseline_for("Small") == table.global_baseline
        assert table.global_baseline.sample_count == 7
        assert table.global_baseline.std_dev >= MIN_STD_DEV

    def test_overrides_take_precedence(self):
        override = NeighbourhoodBaseline(mean=0.9, std_dev=0.3, sample_count=100)
        table = BaselineTable({"Big": [0.0] * 5}, overrides={"Big": override})
        assert table.baseline_for("Big") == override

    def test_overrides_get_std_dev_floor(self):
        flat = NeighbourhoodBaseline(mean=0.4, std_dev=0.0, sample_count=20)
        table = BaselineTable({}, overrides={"Harbour": flat})
        baseline = table.baseline_for("Harbour")
        assert baseline.std_dev == MIN_STD_DEV
        assert baseline.mean == 0.4
        assert baseline.sample_count == 20


class TestScoringStrategies:
    """Test named anomaly score strategies"""

    def test_zscore(self):
        baseline = NeighbourhoodBaseline(mean=0.2, std_dev=0.4, sample_count=10)
        assert math.isclose(zscore_anomaly_score(-0.6, baseline), 2.0)
        assert zscore_anomaly_score(0.2, baseline) == 0.0

    def test_language_risk(self):
        assert language_risk("en") == 0.2
        assert language_risk("fr") == 0.8

    def test_weighted_blend(self):
        assert math.isclose(weighted_blend_anomaly_score(0.6, "en"), 0.06)
        assert math.isclose(weighted_blend_anomaly_score(0.0, "fr"), 0.7 * 0.6 + 0.3 * 0.8)
        assert weighted_blend_anomaly_score(-1.0, "fr") == 1.0

    def test_get_strategy(self):
        assert get_strategy("zscore") is zscore_anomaly_score
        assert get_strategy("weighted_blend") is weighted_blend_anomaly_score
        try:
            get_strategy("magic")
            assert False, "Expected ValueError"
        except ValueError:
            pass

    def test_reaches_threshold(self):
        assert reaches_threshold(2.5, 2.0)
        assert reaches_threshold(2.0, 2.0)
        assert reaches_threshold(1.9999999999999996, 2.0)
        assert not reaches_threshold(1.99, 2.0)


class TestAnomalyDetector:
    """Test neighbourhood-relative anomaly detection"""

    def test_outlier_against_own_baseline(self):
        rows = [make_scored(f"r{i}", 0.1) for i in range(4)] + [make_scored("r4", 0.9)]
        anomalies = detect_anomalies(rows)

        assert len(anomalies) == 1
        anomaly = anomalies[0]
        assert anomaly.review_id == "r4"
        assert anomaly.type == "sentiment_positive"
        assert "Score: 0.90" in anomaly.reason
        assert "Neighbourhood avg: 0.26" in anomaly.reason

    def test_negative_outlier(self):
        rows = [make_scored(f"r{i}", 0.5) for i in range(9)] + [make_scored("r9", -1.0)]
        anomalies = detect_anomalies(rows)
        assert [(a.review_id, a.type) for a in anomalies] == [("r9", "sentiment_negative")]

    def test_no_anomalies_in_uniform_data(self):
        rows = [make_scored(f"r{i}", 0.3) for i in range(6)]
        assert detect_anomalies(rows) == []

    def test_small_neighbourhood_uses_dataset_baseline(self):
        rows = [make_scored(f"r{i}", 0.0, neighbourhood="Big") for i in range(8)]
        rows.append(make_scored("odd", 1.0, neighbourhood="Tiny"))
        anomalies = detect_anomalies(rows)
        assert [a.review_id for a in anomalies] == ["odd"]
        assert "Dataset avg" in anomalies[0].reason

    def test_short_text_always_suspicious(self):
        rows = [make_scored(f"r{i}", 0.2) for i in range(5)]
        rows.append(make_scored("short", 0.2, text="Ok"))
        anomalies = detect_anomalies(rows)
        assert [(a.review_id, a.type) for a in anomalies] == [("short", "suspicious")]
        assert anomalies[0].example == "Ok"

    def test_language_flag_below_sentiment_threshold(self):
        overrides = {"Harbour": NeighbourhoodBaseline(mean=0.0, std_dev=0.2, sample_count=50)}
        rows = [make_scored("fr1", 0.34, language="fr"), make_scored("en1", 0.34)]
        anomalies = detect_anomalies(rows, baseline_overrides=overrides)
        assert [(a.review_id, a.type) for a in anomalies] == [("fr1", "language")]

    def test_several_records_per_row_in_order(self):
        overrides = {"Harbour": NeighbourhoodBaseline(mean=0.0, std_dev=0.2, sample_count=50)}
        rows = [make_scored("x", 0.8, text="Très bien", language="fr")]
        anomalies = detect_anomalies(rows, baseline_overrides=overrides)
        assert [a.type for a in anomalies] == ["sentiment_positive", "suspicious", "language"]

    def test_zero_std_dev_override_does_not_divide_by_zero(self):
        overrides = {"Harbour": NeighbourhoodBaseline(mean=0.0, std_dev=0.0, sample_count=10)}
        anomalies = detect_anomalies([make_scored("x", 0.5)], overrides)
        # 0.5 away from the mean over the 0.2 floor is 2.5 deviations
        assert [(a.review_id, a.type) for a in anomalies] == [("x", "sentiment_positive")]
        assert anomalies[0].anomaly_score > 2.0

    def test_external_anomaly_score_overrides_zscore(self):
        rows = [make_scored(f"r{i}", 0.2) for i in range(5)]
        rows.append(make_scored("ext", 0.2, anomaly_score=3.0))
        anomalies = detect_anomalies(rows)
        assert [(a.review_id, a.type) for a in anomalies] == [("ext", "sentiment_neutral")]
        assert anomalies[0].anomaly_score == 3.0

    def test_invalid_dates_skipped(self):
        rows = [
            make_scored("old", 0.0, text="Bad", created_at="1999-01-01 00:00:00"),
            make_scored("future", 0.0, text="Bad", created_at="2999-01-01 00:00:00"),
        ]
        assert detect_anomalies(rows) == []

    def test_cleaned_rows_scored_with_lexicon(self):
        rows = [
            CleanedRow(f"r{i}", "l1", "Harbour", "2023-05-01 10:00:00", "en", "Nice quiet apartment")
            for i in range(9)
        ]
        rows.append(CleanedRow("bad", "l1", "Harbour", "2023-05-02 10:00:00", "en", "Terrible, dirty and rude host"))
        anomalies = AnomalyDetector().detect_anomalies(rows)
        assert [(a.review_id, a.type) for a in anomalies] == [("bad", "sentiment_negative")]
        assert anomalies[0].sentiment_score == -1.0

    def test_example_truncated(self):
        text = "word " * 40
        overrides = {"Harbour": NeighbourhoodBaseline(mean=0.0, std_dev=0.2, sample_count=50)}
        anomalies = detect_anomalies([make_scored("long", 1.0, text=text.strip())], baseline_overrides=overrides)
        assert anomalies[0].example == text.strip()[:100] + "..."

    def test_empty_input(self):
        assert detect_anomalies([]) == []


class TestContentAnomalies:
    """Test weighted blend content anomalies"""

    def test_complaint(self):
        rows = [make_scored("c1", -1.0, text="The room was dirty and smelled")]
        anomalies = detect_content_anomalies(rows)
        assert [(a.review_id, a.type) for a in anomalies] == [("c1", "complaint")]
        assert anomalies[0].anomaly_score == 1.0

    def test_language(self):
        rows = [make_scored("l1", -0.5, text="Appartement sombre et mal situé", language="fr")]
        anomalies = detect_content_anomalies(rows)
        assert [a.type for a in anomalies] == ["language"]

    def test_suspicious(self):
        rows = [
            make_scored("s1", -1.0, text="Awful awful"),
            make_scored("s2", -1.0, text="Nooooo this was the worst week of my life"),
        ]
        anomalies = detect_content_anomalies(rows)
        assert [a.type for a in anomalies] == ["suspicious", "suspicious"]
        assert "Repetitive or too short" in anomalies[0].reason
        assert "Repetitive or too short" in anomalies[1].reason

    def test_positive_reviews_not_flagged(self):
        rows = [make_scored("p1", 1.0, text="Wonderful stay, great host")]
        assert detect_content_anomalies(rows) == []


class TestSummarizeAnomalies:
    """Test anomaly summary"""

    def test_summary(self):
        def record(review_id, anomaly_type, neighbourhood):
            return AnomalyRecord(review_id, anomaly_type, "reason", 2.5, 0.0, neighbourhood, "2023-01-01 00:00:00")

        anomalies = [
            record("a", "sentiment_negative", "North"),
            record("a", "suspicious", "North"),
            record("b", "language", "South"),
            record("c", "suspicious", "East"),
            record("d", "suspicious", "West"),
        ]
        summary = summarize_anomalies(anomalies, total_rows=20)
        assert summary["total_anomalies"] == 5
        assert summary["flagged_reviews"] == 4
        assert summary["by_type"] == {"sentiment_negative": 1, "suspicious": 3, "language": 1}
        assert summary["top_neighbourhoods"][0] == ("North", 2)
        assert len(summary["top_neighbourhoods"]) == 3
        assert summary["percentage"] == 20.0

    def test_empty_summary(self):
        summary = summarize_anomalies([], total_rows=0)
        assert summary["total_anomalies"] == 0
        assert summary["percentage"] == 0.0


class TestSummarizeDataset:
    """Test the dataset overview"""

    def test_overview(self):
        rows = [
            make_scored("a", 0.5, neighbourhood="North", created_at="2023-03-02 08:00:00"),
            make_scored("b", 0.1, neighbourhood="North", created_at="2023-01-15 10:00:00"),
            make_scored("c", -0.2, neighbourhood="South", language="fr", created_at="2023-02-01 12:00:00"),
            make_scored("d", 0.0, neighbourhood="East", created_at="2023-01-15 18:00:00"),
            make_scored("e", 0.3, neighbourhood="West", created_at="2023-02-20 09:00:00"),
            make_scored("f", 0.3, neighbourhood="West", created_at="2023-02-21 09:00:00"),
        ]
        overview = summarize_dataset(rows)
        assert overview["total_reviews"] == 6
        assert overview["unique_listings"] == 1
        assert overview["neighbourhood_count"] == 4
        assert overview["language_count"] == 2
        assert overview["date_range"] == ("2023-01-15", "2023-03-02")
        assert overview["english_percentage"] == 83.3
        assert overview["top_neighbourhoods"] == [("North", 2), ("West", 2), ("South", 1)]

    def test_cleaned_rows_accepted(self):
        rows = [
            CleanedRow("r1", "l1", "Centrum", "2023-01-10 12:00:00", "en", "Great stay"),
            CleanedRow("r2", "l2", "Centrum", "2023-01-11 12:00:00", "de", "Gut"),
        ]
        overview = summarize_dataset(rows)
        assert overview["unique_listings"] == 2
        assert overview["english_percentage"] == 50.0
        assert overview["top_neighbourhoods"] == [("Centrum", 2)]

    def test_empty_dataset(self):
        overview = summarize_dataset([])
        assert overview["total_reviews"] == 0
        assert overview["date_range"] is None
        assert overview["english_percentage"] == 0.0
        assert overview["top_neighbourhoods"] == []
