"""
Output artifacts for one processed upload: cleaned CSV and the text report
"""
from typing import Iterable

from layer_1_data_import.csv_parser import CSVParser
from models.report import ProcessingReport
from models.review import CLEANED_COLUMNS, CleanedRow


def to_cleaned_csv(rows: Iterable[CleanedRow], delimiter: str = ",") -> str:
    """
    Serialize cleaned rows as CSV text

    Every field is quoted so review text containing the delimiter,
    quotes or newlines survives a re-parse unchanged.
    """
    lines = [delimiter.join(CLEANED_COLUMNS)]
    for row in rows:
        record = row.to_record()
        lines.append(CSVParser.serialize_row([record[column] for column in CLEANED_COLUMNS], delimiter))
    return "\n".join(lines) + "\n"


def _percentage(count: int, total: int) -> str:
    if total == 0:
        return "0.0"
    return f"{count / total * 100:.1f}"


def generate_report_summary(report: ProcessingReport, max_reasons: int = 20) -> str:
    """
    Render the processing report as plain text

    Args:
        report: Report produced by the preprocessor
        max_reasons: How many per-row removal reasons to list

    Returns:
        Multi-line report text
    """
    lines = [
        "=== Data Preprocessing Report ===",
        f"Original rows: {report.original_rows}",
        f"Cleaned rows: {report.cleaned_rows}",
        f"Removed rows: {report.removed_rows}",
    ]

    if report.structure_errors:
        lines += ["", "Structure errors (processing aborted):"]
        lines += [f"- {error}" for error in report.structure_errors]

    lines += [
        "",
        "Removal breakdown:",
        f"- Missing data: {report.missing_data_removed}",
        f"- Duplicates: {report.duplicates_removed}",
        f"- Invalid dates: {report.invalid_dates_removed}",
    ]
    if report.validation_errors_removed:
        lines.append(f"- Other validation errors: {report.validation_errors_removed}")

    lines += ["", "Language distribution:"]
    for language, count in report.language_distribution.items():
        lines.append(f"- {language}: {count} ({_percentage(count, report.cleaned_rows)}%)")

    lines += [
        "",
        f"Non-English reviews: {report.non_english_count} "
        f"({_percentage(report.non_english_count, report.cleaned_rows)}%)",
    ]

    if report.errors:
        lines += ["", "Removed rows:"]
        shown = report.errors[:max_reasons]
        lines += [f"- {reason}" for reason in shown]
        hidden = len(report.errors) - len(shown) + report.errors_truncated
        if hidden > 0:
            lines.append(f"... and {hidden} more")

    return "\n".join(lines)
