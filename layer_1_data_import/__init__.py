"""
Layer 1: Data Import & Validation
- CSV Parser (quote-aware, header structure check)
- Field mapping (header aliases)
- Validator (text cleanup, date plausibility, language tagging)
- Deduplication (within one upload)
- Preprocessor (cleaned rows + processing report)
- Exporter (cleaned CSV, text report)
"""
from .csv_parser import CSVParser, parse, validate_structure
from .validator import TextCleaner, DateValidator, LanguageDetector
from .deduplicator import ReviewDeduplicator, derive_review_id
from .preprocessor import ReviewPreprocessor, normalize
from .exporter import to_cleaned_csv, generate_report_summary
from .data_store import ReviewDataStore
from .import_reviews import import_reviews

__all__ = [
    'CSVParser',
    'parse',
    'validate_structure',
    'TextCleaner',
    'DateValidator',
    'LanguageDetector',
    'ReviewDeduplicator',
    'derive_review_id',
    'ReviewPreprocessor',
    'normalize',
    'to_cleaned_csv',
    'generate_report_summary',
    'ReviewDataStore',
    'import_reviews',
]
