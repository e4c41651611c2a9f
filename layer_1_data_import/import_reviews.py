"""
Main import workflow: parse, check structure, validate and clean an upload

This is the quality control process for one uploaded export:
- It reads the header and checks it before touching any row
- It parses every line into a record, respecting quoted fields
- It drops rows with missing data, duplicate ids or implausible dates
- It cleans what is left and reports what was removed and why
"""
import sys
from typing import List, Optional, Sequence, Tuple

from config.settings import settings
from layer_1_data_import.csv_parser import CSVParser
from layer_1_data_import.data_store import ReviewDataStore
from layer_1_data_import.exporter import generate_report_summary
from layer_1_data_import.preprocessor import ReviewPreprocessor
from models.report import ProcessingReport
from models.review import CleanedRow
from utils.logger import get_logger

logger = get_logger(__name__)


def import_reviews(
    text: str,
    expected_headers: Optional[Sequence[str]] = None,
    delimiter: Optional[str] = None,
    preprocessor: Optional[ReviewPreprocessor] = None,
    store: Optional[ReviewDataStore] = None,
) -> Tuple[List[CleanedRow], ProcessingReport]:
    """
    Import one uploaded export

    Args:
        text: Raw delimited text of the upload
        expected_headers: Optional reference header list for the structure check
        delimiter: Field delimiter (defaults to settings.CSV_DELIMITER)
        preprocessor: Preprocessor instance (creates new one if not provided)
        store: Optional data store that the upload replaces

    Returns:
        Tuple of (cleaned rows, processing report). When the header is
        malformed, no rows are returned and report.structure_errors says why.
    """
    delimiter = delimiter or settings.CSV_DELIMITER
    preprocessor = preprocessor or ReviewPreprocessor()

    logger.info("Starting review import workflow")

    # ============================================================
    # STEP 1: Check the header before any row processing
    # ============================================================
    headers = CSVParser.read_headers(text, delimiter)
    structure_errors = CSVParser.validate_structure(headers, expected_headers)

    # ============================================================
    # STEP 2: Parse records
    # ============================================================
    records = CSVParser.parse(text, delimiter)
    logger.info(f"Parsed {len(records)} records with {len(headers)} columns")

    if structure_errors:
        for error in structure_errors:
            logger.warning(f"Structure error: {error}")
        report = ProcessingReport(original_rows=len(records), structure_errors=structure_errors)
        if store is not None:
            store.load([], report)
        return [], report

    # ============================================================
    # STEP 3: Validate and clean
    # ============================================================
    rows, report = preprocessor.preprocess(records)

    if store is not None:
        store.load(rows, report)

    logger.info(f"Import complete! Imported {len(rows)} reviews")
    return rows, report


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m layer_1_data_import.import_reviews <reviews.csv>")
        sys.exit(1)

    with open(sys.argv[1], "r", encoding="utf-8-sig") as f:
        cleaned, processing_report = import_reviews(f.read())
    print(generate_report_summary(processing_report))
