"""
Row normalization: validate, deduplicate and clean parsed review records

Every record goes through the same checks in a fixed order and stops at the
first failure:
1. Missing data (no text body, or no review id / listing id to identify it)
2. Duplicate review id (ids are derived when the export has none)
3. Invalid date (not a real date, before 2008, or in the future)
A dropped row is counted once and reported with its 1-based row number.
"""
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple, Union

from config.settings import settings
from layer_1_data_import.deduplicator import ReviewDeduplicator, derive_review_id
from layer_1_data_import.field_mapping import build_header_map, get_field
from layer_1_data_import.validator import DateValidator, LanguageDetector, TextCleaner
from models.report import ProcessingReport
from models.review import CleanedRow, RawRecord
from utils.logger import get_logger

logger = get_logger(__name__)

REASON_MISSING = "missing review_id or raw_text"
REASON_DUPLICATE = "duplicate review_id"
REASON_INVALID_DATE = "invalid date format"
REASON_VALIDATION_ERROR = "could not be cleaned"


class ReviewPreprocessor:
    """Turn raw records into cleaned rows plus a processing report"""

    def __init__(
        self,
        max_errors: Optional[int] = None,
        detect_missing_language: Optional[bool] = None,
        today: Optional[date] = None,
    ):
        """
        Initialize preprocessor

        Args:
            max_errors: How many removal reasons the report keeps
            detect_missing_language: Use langdetect when a row has no language
            today: Latest acceptable review date (defaults to the current date)
        """
        self.max_errors = settings.REPORT_MAX_ERRORS if max_errors is None else max_errors
        self.detect_missing_language = (
            settings.DETECT_MISSING_LANGUAGE if detect_missing_language is None else detect_missing_language
        )
        self.today = today
        self._header_maps: Dict[tuple, Dict[str, str]] = {}

    def preprocess(self, records: Iterable[Union[RawRecord, CleanedRow]]) -> Tuple[List[CleanedRow], ProcessingReport]:
        """
        Validate and clean records in a single pass

        Args:
            records: Parsed records (or already cleaned rows)

        Returns:
            Tuple of (cleaned rows in input order, processing report)
        """
        records = list(records)
        report = ProcessingReport(original_rows=len(records))
        deduplicator = ReviewDeduplicator()
        today = self.today or date.today()
        cleaned_rows: List[CleanedRow] = []

        logger.info(f"Preprocessing {len(records)} records")

        for row_number, record in enumerate(records, 1):
            if isinstance(record, CleanedRow):
                record = record.to_record()
            header_map = self._header_map_for(record)

            review_id = get_field(record, "review_id", header_map).strip()
            listing_id = get_field(record, "listing_id", header_map).strip()
            created_at = get_field(record, "created_at", header_map)
            raw_text = get_field(record, "raw_text", header_map)

            if not raw_text.strip() or not (review_id or listing_id):
                report.missing_data_removed += 1
                self._drop(report, row_number, REASON_MISSING)
                continue

            if not review_id:
                review_id = derive_review_id(listing_id, created_at, raw_text)

            if deduplicator.check(review_id):
                report.duplicates_removed += 1
                self._drop(report, row_number, REASON_DUPLICATE)
                continue

            if not DateValidator.is_valid(created_at, today):
                report.invalid_dates_removed += 1
                self._drop(report, row_number, REASON_INVALID_DATE)
                continue

            try:
                cleaned = self._clean_row(record, header_map, review_id, listing_id, created_at, raw_text)
            except (ValueError, TypeError) as e:
                logger.warning(f"Row {row_number} could not be cleaned: {e}")
                report.validation_errors_removed += 1
                self._drop(report, row_number, REASON_VALIDATION_ERROR)
                continue

            deduplicator.mark_as_accepted(cleaned.review_id)
            cleaned_rows.append(cleaned)

            report.language_distribution[cleaned.language] = report.language_distribution.get(cleaned.language, 0) + 1
            if cleaned.needs_translation:
                report.non_english_count += 1

        report.cleaned_rows = len(cleaned_rows)
        logger.info(
            f"Preprocessing complete: {report.cleaned_rows} kept, {report.removed_rows} removed "
            f"(missing={report.missing_data_removed}, duplicates={report.duplicates_removed}, "
            f"invalid_dates={report.invalid_dates_removed})"
        )
        return cleaned_rows, report

    def _header_map_for(self, record: RawRecord) -> Dict[str, str]:
        key = tuple(record.keys())
        if key not in self._header_maps:
            self._header_maps[key] = build_header_map(key)
        return self._header_maps[key]

    def _drop(self, report: ProcessingReport, row_number: int, reason: str):
        logger.debug(f"Row {row_number} removed: {reason}")
        report.record_removal(f"Row {row_number}: {reason}", self.max_errors)

    def _clean_row(
        self,
        record: RawRecord,
        header_map: Dict[str, str],
        review_id: str,
        listing_id: str,
        created_at: str,
        raw_text: str,
    ) -> CleanedRow:
        text = TextCleaner.clean(raw_text)
        language = TextCleaner.clean_language(get_field(record, "language", header_map), default="")
        if not language and self.detect_missing_language:
            language = LanguageDetector.detect(text) or ""
        language = language or "en"

        return CleanedRow(
            review_id=review_id,
            listing_id=listing_id,
            neighbourhood=TextCleaner.clean(get_field(record, "neighbourhood", header_map)),
            created_at=DateValidator.standardize(created_at),
            language=language,
            raw_text=text,
            needs_translation=language != "en",
        )


def normalize(
    records: Iterable[Union[RawRecord, CleanedRow]],
    today: Optional[date] = None,
) -> Tuple[List[CleanedRow], ProcessingReport]:
    """Validate and clean records with default settings (see ReviewPreprocessor)"""
    return ReviewPreprocessor(today=today).preprocess(records)
