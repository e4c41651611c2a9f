"""
Main entry point for the application

This is the file that runs the entire pipeline on one uploaded export. Think
of it as the "conductor" that orchestrates all 4 steps of the process:
1. Import, check and clean the reviews
2. Score the tone of every review
3. Flag reviews that are unusual for their neighbourhood
4. Build the monthly tone timeline
"""
import argparse
import json
import sys
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from config.settings import settings
from layer_1_data_import.data_store import ReviewDataStore
from layer_1_data_import.exporter import generate_report_summary, to_cleaned_csv
from layer_1_data_import.import_reviews import import_reviews
from layer_2_sentiment.enrichment import score_rows
from layer_2_sentiment.sentiment_oracle import SentimentOracle
from layer_3_anomaly_detection.detector import (
    detect_anomalies,
    detect_content_anomalies,
    summarize_anomalies,
    summarize_dataset,
)
from layer_4_timeline.timeline import build_timeline
from models.insights import AnomalyRecord, MonthlyBucket
from models.report import ProcessingReport
from models.review import CleanedRow, ScoredRow
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AnalysisResult:
    """Everything derived from one upload"""
    rows: List[CleanedRow]
    report: ProcessingReport
    scored_rows: List[ScoredRow] = field(default_factory=list)
    anomalies: List[AnomalyRecord] = field(default_factory=list)
    content_anomalies: List[AnomalyRecord] = field(default_factory=list)
    timeline: List[MonthlyBucket] = field(default_factory=list)


def analyze_reviews(
    text: str,
    expected_headers: Optional[Sequence[str]] = None,
    oracle: Optional[SentimentOracle] = None,
    store: Optional[ReviewDataStore] = None,
) -> AnalysisResult:
    """
    Run the complete workflow on the raw text of one export

    Args:
        text: Raw delimited text
        expected_headers: Optional reference header list for the structure check
        oracle: Optional external tone estimator (the lexicon is used without one)
        store: Optional data store that the upload replaces

    Returns:
        AnalysisResult. When the header is malformed, every list is empty and
        report.structure_errors says why.
    """
    # ============================================================
    # STEP 1: Import Reviews
    # ============================================================
    logger.info("=" * 60)
    logger.info("STEP 1: Importing Reviews")
    logger.info("=" * 60)

    rows, report = import_reviews(text, expected_headers=expected_headers, store=store)
    if report.aborted:
        logger.warning("Import aborted because of structure errors")
        return AnalysisResult(rows=[], report=report)

    # ============================================================
    # STEP 2: Score Tone
    # ============================================================
    logger.info("=" * 60)
    logger.info("STEP 2: Scoring Tone")
    logger.info("=" * 60)

    scored_rows = score_rows(rows, oracle=oracle)

    # ============================================================
    # STEP 3: Detect Anomalies
    # ============================================================
    logger.info("=" * 60)
    logger.info("STEP 3: Detecting Anomalies")
    logger.info("=" * 60)

    anomalies = detect_anomalies(scored_rows)
    content_anomalies = detect_content_anomalies(scored_rows)

    # ============================================================
    # STEP 4: Build Timeline
    # ============================================================
    logger.info("=" * 60)
    logger.info("STEP 4: Building Timeline")
    logger.info("=" * 60)

    timeline = build_timeline(scored_rows)

    return AnalysisResult(
        rows=rows,
        report=report,
        scored_rows=scored_rows,
        anomalies=anomalies,
        content_anomalies=content_anomalies,
        timeline=timeline,
    )


def build_oracle(use_llm: bool) -> Optional[SentimentOracle]:
    """Create the Gemini oracle when requested and configured"""
    if not use_llm:
        return None
    if not settings.has_oracle_credentials():
        logger.warning("GEMINI_API_KEY is not set, using lexicon scores only")
        return None

    from layer_2_sentiment.sentiment_oracle import GeminiSentimentOracle
    return GeminiSentimentOracle()


def print_results(result: AnalysisResult):
    print(generate_report_summary(result.report))
    if result.report.aborted:
        return

    overview = summarize_dataset(result.scored_rows)
    print("\n=== Dataset Overview ===")
    print(f"Reviews: {overview['total_reviews']} across {overview['unique_listings']} listings")
    print(f"Neighbourhoods: {overview['neighbourhood_count']}, languages: {overview['language_count']}")
    if overview["date_range"]:
        first_day, last_day = overview["date_range"]
        print(f"Date range: {first_day} to {last_day}")
    print(f"English reviews: {overview['english_percentage']}%")
    for neighbourhood, count in overview["top_neighbourhoods"]:
        print(f"  {neighbourhood or '(none)'}: {count} reviews")

    summary = summarize_anomalies(result.anomalies, len(result.scored_rows))
    print("\n=== Anomalies ===")
    print(f"Total: {summary['total_anomalies']} ({summary['percentage']}% of reviews flagged)")
    for anomaly_type, count in summary["by_type"].items():
        print(f"  {anomaly_type}: {count}")
    if summary["top_neighbourhoods"]:
        print("Top neighbourhoods:")
    for neighbourhood, count in summary["top_neighbourhoods"]:
        print(f"  {neighbourhood or '(none)'}: {count}")

    print(f"Content anomalies: {len(result.content_anomalies)}")

    print("\n=== Monthly Timeline ===")
    for bucket in result.timeline:
        change = "" if bucket.change_pct is None else f" ({bucket.change_pct:+.1f}%)"
        print(f"  {bucket.month}: {bucket.average_sentiment:.3f} from {bucket.review_count} reviews{change}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point - parses arguments and runs the complete workflow

    Returns:
        0 on success, 1 on error or when the upload is structurally invalid
    """
    parser = argparse.ArgumentParser(description="Property review insights: cleaning, tone, anomalies, timeline")
    parser.add_argument("csv_path", help="Path to the review export")
    parser.add_argument(
        "--expected-headers",
        help="Comma-separated header names the export must contain",
    )
    parser.add_argument(
        "--use-llm",
        action="store_true",
        help="Score tone with Gemini (requires GEMINI_API_KEY), falling back to the lexicon",
    )
    parser.add_argument("--cleaned-out", help="Write the cleaned rows as CSV to this path")
    parser.add_argument("--report-out", help="Write the processing report as JSON to this path")
    args = parser.parse_args(argv)

    expected_headers = None
    if args.expected_headers:
        expected_headers = [name.strip() for name in args.expected_headers.split(",") if name.strip()]

    try:
        logger.info("=" * 60)
        logger.info("Property Review Insights - Starting")
        logger.info("=" * 60)

        with open(args.csv_path, "r", encoding="utf-8-sig") as f:
            text = f.read()

        result = analyze_reviews(text, expected_headers=expected_headers, oracle=build_oracle(args.use_llm))

        if args.cleaned_out:
            with open(args.cleaned_out, "w", encoding="utf-8") as f:
                f.write(to_cleaned_csv(result.rows))
            logger.info(f"Cleaned rows saved to {args.cleaned_out}")

        if args.report_out:
            with open(args.report_out, "w", encoding="utf-8") as f:
                json.dump(result.report.to_dict(), f, indent=2, ensure_ascii=False)
            logger.info(f"Processing report saved to {args.report_out}")

        print_results(result)
        return 1 if result.report.aborted else 0

    except Exception as e:
        logger.error(f"Error in main workflow: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
