"""
Application settings and configuration

This file contains all the settings for the review insights pipeline.
Most settings can be changed by creating a .env file in the project root.
If a setting isn't in .env, it uses the default value shown here.

Statistical constants (baseline sample size, stdDev floor, anomaly thresholds)
are NOT settings: they live next to the code that uses them because the
anomaly results depend on them exactly.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file (if it exists)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Application configuration settings

    You can change these values by setting environment variables in a .env file.
    """

    # ============================================================
    # CSV Import Settings
    # ============================================================
    # Field delimiter used by the uploaded export
    CSV_DELIMITER = os.getenv("CSV_DELIMITER", ",")
    # How many per-row removal reasons the processing report keeps
    REPORT_MAX_ERRORS = int(os.getenv("REPORT_MAX_ERRORS", "100"))
    # Fill in a missing language column with langdetect instead of assuming "en"
    DETECT_MISSING_LANGUAGE = _env_bool("DETECT_MISSING_LANGUAGE", "false")

    # ============================================================
    # Gemini API Settings (optional sentiment oracle)
    # ============================================================
    # The pipeline works without a key: the lexicon scorer is always available
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

    # ============================================================
    # Oracle Batching & Rate Limiting
    # ============================================================
    ORACLE_BATCH_SIZE = int(os.getenv("ORACLE_BATCH_SIZE", "200"))  # Reviews per model call
    ORACLE_MAX_ERRORS = int(os.getenv("ORACLE_MAX_ERRORS", "5"))  # Stop calling the model after this many failures
    ORACLE_CACHE_KEY_LENGTH = int(os.getenv("ORACLE_CACHE_KEY_LENGTH", "100"))  # Chars of text used as cache key
    ORACLE_MAX_TEXT_CHARS = int(os.getenv("ORACLE_MAX_TEXT_CHARS", "150"))  # Chars of each review sent in the prompt
    LLM_RETRY_ATTEMPTS = int(os.getenv("LLM_RETRY_ATTEMPTS", "3"))
    LLM_RETRY_DELAY_BASE = float(os.getenv("LLM_RETRY_DELAY_BASE", "2.0"))
    LLM_BATCH_DELAY = float(os.getenv("LLM_BATCH_DELAY", "0.3"))
    LLM_RATE_LIMIT_DELAY = float(os.getenv("LLM_RATE_LIMIT_DELAY", "15.0"))

    # ============================================================
    # Logging Settings
    # ============================================================
    # Options: DEBUG (very detailed), INFO (normal), WARNING (only problems), ERROR (only errors)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "logs/app.log")  # Empty string disables the file handler

    def has_oracle_credentials(self) -> bool:
        """True when an API key for the sentiment oracle is configured"""
        return bool(self.GEMINI_API_KEY)


# Global settings instance
settings = Settings()
