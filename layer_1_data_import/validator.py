"""
Text cleaning, date validation and language tagging for review rows
"""
from datetime import date, datetime, timezone
from typing import Optional

from langdetect import DetectorFactory, LangDetectException, detect

from utils.logger import get_logger

logger = get_logger(__name__)

# langdetect is randomized unless seeded
DetectorFactory.seed = 0

# Reviews dated before this year predate the platform and are treated as bad data
MIN_REVIEW_YEAR = 2008

CANONICAL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class TextCleaner:
    """Clean review text before processing"""

    # UTF-8 text that was decoded as Latin-1 / cp1252 somewhere upstream
    MOJIBAKE_REPLACEMENTS = [
        ("â€™", "'"),
        ("â€˜", "'"),
        ("â€œ", '"'),
        ("â€\x9d", '"'),
        ("â€”", "—"),
        ("â€“", "–"),
        ("Ã¡", "á"),
        ("Ã©", "é"),
        ("Ã\xad", "í"),
        ("Ã³", "ó"),
        ("Ãº", "ú"),
        ("Ã±", "ñ"),
    ]

    @classmethod
    def clean(cls, text: str) -> str:
        """
        Clean review text:
        - Trim surrounding whitespace
        - Fix common UTF-8-as-Latin-1 artifacts (â€™ -> ', Ã© -> é)
        """
        if not text:
            return ""

        cleaned = text.strip()
        for broken, fixed in cls.MOJIBAKE_REPLACEMENTS:
            cleaned = cleaned.replace(broken, fixed)
        return cleaned.strip()

    @staticmethod
    def clean_language(language: Optional[str], default: str = "en") -> str:
        """Trim and lower-case a language tag, falling back to the default"""
        cleaned = (language or "").strip().lower()
        return cleaned or default


class DateValidator:
    """Parse and validate review timestamps"""

    DATE_FORMATS = [
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d",
        "%Y/%m/%d %H:%M:%S",
        "%Y/%m/%d",
        "%m/%d/%Y %H:%M:%S",
        "%m/%d/%Y",
        "%d %b %Y",
        "%d %B %Y",
        "%b %d, %Y",
        "%B %d, %Y",
    ]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional[datetime]:
        """
        Parse a timestamp string into a naive UTC datetime

        Args:
            value: Timestamp as found in the export

        Returns:
            Parsed datetime, or None if it is not a real calendar date
        """
        if not value or not value.strip():
            return None

        text = value.strip()
        parsed = None

        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            for fmt in cls.DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue

        if parsed is None:
            return None

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    @classmethod
    def is_valid(cls, value: Optional[str], today: Optional[date] = None) -> bool:
        """
        Check that a timestamp is a real date within the plausible review history

        Valid dates fall between January 1st of MIN_REVIEW_YEAR and today.
        """
        parsed = cls.parse(value)
        if parsed is None:
            return False
        today = today or date.today()
        return parsed.year >= MIN_REVIEW_YEAR and parsed.date() <= today

    @classmethod
    def standardize(cls, value: str) -> str:
        """Format a timestamp as YYYY-MM-DD HH:MM:SS"""
        parsed = cls.parse(value)
        if parsed is None:
            raise ValueError(f"Unparseable date: {value!r}")
        return parsed.strftime(CANONICAL_DATE_FORMAT)


class LanguageDetector:
    """Guess the language of review text when the export does not say"""

    # Very short texts give unreliable guesses
    MIN_WORDS = 3

    @classmethod
    def detect(cls, text: str) -> Optional[str]:
        """
        Detect the language code of a text

        Returns:
            Lowercase language code, or None when detection is not reliable
        """
        if not text or len(text.split()) < cls.MIN_WORDS:
            return None

        try:
            return detect(text).lower()
        except LangDetectException:
            logger.debug(f"Language detection failed for text: {text[:50]}...")
            return None
