"""
Quote-aware parser for delimited review exports

Handles fields wrapped in double quotes that contain the delimiter or raw
newlines, doubled quotes ("") as an escaped literal quote, and \\r\\n, \\r or
\\n line endings.
"""
from typing import Dict, List, Optional, Sequence

from models.review import RawRecord

QUOTE = '"'
LINE_BREAKS = ("\n", "\r")


class CSVParser:
    """Parse delimited text into ordered records of string fields"""

    @classmethod
    def parse(cls, text: str, delimiter: str = ",") -> List[RawRecord]:
        """
        Parse delimited text into a list of records

        The first line is the header. Every later non-blank line becomes one
        record keyed by header position; missing trailing fields become "".

        Args:
            text: Raw delimited text
            delimiter: Field delimiter

        Returns:
            List of records (header name -> value), in input order
        """
        lines = cls.split_lines(text)
        if not lines:
            return []

        headers = cls.parse_line(lines[0], delimiter)
        records: List[RawRecord] = []

        for line in lines[1:]:
            values = cls.parse_line(line, delimiter)
            record: RawRecord = {}
            for index, header in enumerate(headers):
                record[header] = values[index] if index < len(values) else ""
            records.append(record)

        return records

    @classmethod
    def read_headers(cls, text: str, delimiter: str = ",") -> List[str]:
        """Return only the header fields, so structure can be checked before parsing rows"""
        lines = cls.split_lines(text)
        if not lines:
            return []
        return cls.parse_line(lines[0], delimiter)

    @staticmethod
    def split_lines(text: str) -> List[str]:
        """
        Split text into logical lines, keeping line breaks that sit inside quotes

        Quote characters are kept in the returned lines so each one can be
        split into fields with the same quote-aware scan. Blank lines are dropped.
        """
        lines: List[str] = []
        current: List[str] = []
        in_quotes = False
        i = 0
        length = len(text or "")

        while i < length:
            char = text[i]

            if char == QUOTE:
                # Escaped quote: keep both characters, state unchanged
                if i + 1 < length and text[i + 1] == QUOTE:
                    current.append(QUOTE + QUOTE)
                    i += 2
                    continue
                in_quotes = not in_quotes
                current.append(char)
            elif char in LINE_BREAKS:
                if in_quotes:
                    current.append(char)
                else:
                    line = "".join(current)
                    if line.strip():
                        lines.append(line)
                    current = []
                    # \r\n is a single line break
                    if char == "\r" and i + 1 < length and text[i + 1] == "\n":
                        i += 1
            else:
                current.append(char)
            i += 1

        line = "".join(current)
        if line.strip():
            lines.append(line)

        return lines

    @staticmethod
    def parse_line(line: str, delimiter: str = ",") -> List[str]:
        """
        Split one logical line into trimmed field values

        A quote at the start of a field opens a quoted section, so "" alone is
        an empty field. Anywhere else "" is one literal quote.
        """
        values: List[str] = []
        current: List[str] = []
        in_quotes = False
        field_start = 0
        i = 0
        length = len(line)

        while i < length:
            char = line[i]

            if char == QUOTE:
                at_field_start = not in_quotes and not line[field_start:i].strip()
                if not at_field_start and i + 1 < length and line[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 2
                    continue
                in_quotes = not in_quotes
            elif char == delimiter and not in_quotes:
                values.append("".join(current).strip())
                current = []
                field_start = i + 1
            else:
                current.append(char)
            i += 1

        values.append("".join(current).strip())
        return values

    @staticmethod
    def serialize_row(values: Sequence[str], delimiter: str = ",") -> str:
        """
        Serialize one row so that parse_line gives the same values back

        Every field is quoted with embedded quotes doubled; an empty field
        becomes "".
        """
        fields = []
        for value in values:
            value = "" if value is None else str(value)
            fields.append(QUOTE + value.replace(QUOTE, QUOTE + QUOTE) + QUOTE)
        return delimiter.join(fields)

    @staticmethod
    def validate_structure(headers: Sequence[str], expected_headers: Optional[Sequence[str]] = None) -> List[str]:
        """
        Validate header structure and return any errors

        Checks for zero headers, blank headers, duplicate headers
        (case/whitespace-insensitive) and, only when expected_headers is given,
        expected headers that are absent from the file.

        Args:
            headers: Header fields as read from the file
            expected_headers: Optional reference header list

        Returns:
            List of error strings (empty when the structure is valid)
        """
        errors: List[str] = []

        if len(headers) == 0:
            errors.append("No headers found in CSV file")
            return errors

        for index, header in enumerate(headers, 1):
            if not header.strip():
                errors.append(f"Empty header found at column {index}")

        header_counts: Dict[str, int] = {}
        for header in headers:
            normalized = header.strip().lower()
            header_counts[normalized] = header_counts.get(normalized, 0) + 1

        for header, count in header_counts.items():
            if count > 1:
                errors.append(f'Duplicate header found: "{header}"')

        if expected_headers:
            normalized_headers = {header.strip().lower() for header in headers}
            for expected in expected_headers:
                normalized_expected = expected.strip().lower()
                if normalized_expected not in normalized_headers:
                    errors.append(f'Missing expected header: "{normalized_expected}"')

        return errors

    @staticmethod
    def get_statistics(records: Sequence[RawRecord]) -> Dict:
        """
        Get basic statistics about parsed records

        Returns:
            Dictionary with total_rows, total_columns, empty_rows and
            per-column filled/empty counts
        """
        if not records:
            return {
                "total_rows": 0,
                "total_columns": 0,
                "empty_rows": 0,
                "column_stats": {},
            }

        headers = list(records[0].keys())
        column_stats = {header: {"empty": 0, "filled": 0} for header in headers}
        empty_rows = 0

        for record in records:
            has_data = False
            for header in headers:
                if (record.get(header) or "").strip():
                    column_stats[header]["filled"] += 1
                    has_data = True
                else:
                    column_stats[header]["empty"] += 1
            if not has_data:
                empty_rows += 1

        return {
            "total_rows": len(records),
            "total_columns": len(headers),
            "empty_rows": empty_rows,
            "column_stats": column_stats,
        }


def parse(text: str, delimiter: str = ",") -> List[RawRecord]:
    """Parse delimited text into records (see CSVParser.parse)"""
    return CSVParser.parse(text, delimiter)


def validate_structure(headers: Sequence[str], expected_headers: Optional[Sequence[str]] = None) -> List[str]:
    """Validate header structure (see CSVParser.validate_structure)"""
    return CSVParser.validate_structure(headers, expected_headers)
