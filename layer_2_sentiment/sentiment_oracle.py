"""
Optional LLM sentiment oracle

Sends batches of review texts to Gemini and returns, per text, a tone score
and a detected language. Everything that makes a remote call reliable lives
here: batching, a per-instance result cache, retries with backoff, splitting
batches that keep failing, and an error budget after which the model is no
longer called. Texts the oracle could not score come back as None; the
enrichment step scores those with the lexicon instead.
"""
import json
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.settings import settings
from utils.llm_client import LLMClient
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OracleResult:
    """Tone and language estimate for one text"""
    score: float  # -1 to 1
    language: str
    confidence: float = 0.5


class SentimentOracle:
    """Interface for external tone/language estimators"""

    def analyze_batch(self, texts: Sequence[str]) -> List[Optional[OracleResult]]:
        """Return one result (or None) per text, in input order"""
        raise NotImplementedError


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class GeminiSentimentOracle(SentimentOracle):
    """Batch tone analysis through the Gemini API"""

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        batch_size: Optional[int] = None,
        max_errors: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize oracle

        Args:
            llm_client: LLM client instance (creates new one if not provided)
            batch_size: Reviews per model call
            max_errors: Consecutive failures after which the model is skipped
            sleep: Function used to wait between retries and batches
        """
        self.llm_client = llm_client or LLMClient()
        self.batch_size = max(1, batch_size or settings.ORACLE_BATCH_SIZE)
        self.max_errors = settings.ORACLE_MAX_ERRORS if max_errors is None else max_errors
        self.cache: Dict[str, OracleResult] = {}
        self.error_count = 0
        self._sleep = sleep

    def should_skip(self) -> bool:
        """True once too many calls have failed"""
        return self.error_count >= self.max_errors

    def clear_cache(self):
        """Forget cached results and reset the error budget"""
        self.cache.clear()
        self.error_count = 0

    def _cache_key(self, text: str) -> str:
        return text[:settings.ORACLE_CACHE_KEY_LENGTH]

    def analyze_batch(self, texts: Sequence[str]) -> List[Optional[OracleResult]]:
        """
        Analyze texts in batches, serving repeats from the cache

        Args:
            texts: Review texts

        Returns:
            One OracleResult or None per text, in input order
        """
        results: List[Optional[OracleResult]] = [None] * len(texts)
        uncached: List[int] = []

        for index, text in enumerate(texts):
            cached = self.cache.get(self._cache_key(text))
            if cached is not None:
                results[index] = cached
            else:
                uncached.append(index)

        batches = [uncached[i:i + self.batch_size] for i in range(0, len(uncached), self.batch_size)]
        logger.info(
            f"Oracle analysis: {len(texts)} texts, {len(texts) - len(uncached)} cached, "
            f"{len(batches)} batches of up to {self.batch_size}"
        )

        for batch_number, indices in enumerate(batches, 1):
            if self.should_skip():
                logger.warning("Skipping oracle analysis due to too many errors")
                break

            batch_texts = [texts[i] for i in indices]
            batch_results = self._analyze_with_split(batch_texts, f"batch_{batch_number}")

            for index, result in zip(indices, batch_results):
                results[index] = result
                if result is not None:
                    self.cache[self._cache_key(texts[index])] = result

            if batch_number < len(batches):
                self._sleep(settings.LLM_BATCH_DELAY)

        return results

    def _analyze_with_split(self, texts: List[str], batch_label: str) -> List[Optional[OracleResult]]:
        """Analyze a batch; halve it and try the halves if it keeps failing"""
        results = self._analyze_with_retry(texts, batch_label)
        if results is not None:
            return results

        if len(texts) > 1 and not self.should_skip():
            middle = len(texts) // 2
            logger.info(f"Splitting {batch_label} ({len(texts)} texts) into halves")
            return (
                self._analyze_with_split(texts[:middle], f"{batch_label}a")
                + self._analyze_with_split(texts[middle:], f"{batch_label}b")
            )

        return [None] * len(texts)

    def _analyze_with_retry(self, texts: List[str], batch_label: str) -> Optional[List[Optional[OracleResult]]]:
        """
        Call the model with retry logic and exponential backoff

        Returns:
            Parsed results, or None when every attempt failed
        """
        max_retries = settings.LLM_RETRY_ATTEMPTS
        base_delay = settings.LLM_RETRY_DELAY_BASE

        for attempt in range(1, max_retries + 1):
            if self.should_skip():
                return None

            try:
                raw_response = self.llm_client.generate(self._build_prompt(texts))
                results = self._parse_response(raw_response, len(texts))
                self.error_count = 0
                return results
            except Exception as e:
                self.error_count += 1
                error_str = str(e)
                is_rate_limit = (
                    "429" in error_str or
                    "quota" in error_str.lower() or
                    "rate limit" in error_str.lower() or
                    "ResourceExhausted" in error_str
                )

                if attempt < max_retries:
                    if is_rate_limit:
                        delay = settings.LLM_RATE_LIMIT_DELAY
                    else:
                        delay = base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"Oracle error for {batch_label} (attempt {attempt}/{max_retries}): {error_str}. "
                        f"Waiting {delay}s before retry..."
                    )
                    self._sleep(delay)
                else:
                    logger.error(f"Max retries reached for {batch_label}. Error: {error_str}")

        return None

    def _build_prompt(self, texts: Sequence[str]) -> str:
        reviews = {str(i): text[:settings.ORACLE_MAX_TEXT_CHARS] for i, text in enumerate(texts)}
        return f"""Analyze the sentiment and language of {len(texts)} property reviews.

Reviews (JSON object, key = index):
{json.dumps(reviews, ensure_ascii=False)}

Return ONLY a JSON object with one entry per index:
{{"0": {{"s": -0.5, "l": "en", "c": 0.9}}, "1": {{"s": 0.3, "l": "fr", "c": 0.8}}}}

Where: s = sentiment score from -1 (very negative) to 1 (very positive),
l = ISO 639-1 language code, c = confidence from 0 to 1."""

    def _parse_response(self, raw_response: str, expected: int) -> List[Optional[OracleResult]]:
        data = LLMClient.safe_json_load(raw_response)
        if not isinstance(data, dict):
            raise ValueError("No valid JSON object found in oracle response")

        return [self._to_result(data.get(str(i))) for i in range(expected)]

    @staticmethod
    def _to_result(entry: Any) -> Optional[OracleResult]:
        """Convert one response entry, or None when it is missing or malformed"""
        if not isinstance(entry, dict) or not _is_number(entry.get("s")):
            return None

        language = entry.get("l")
        confidence = entry.get("c")
        return OracleResult(
            score=_clamp(float(entry["s"]), -1.0, 1.0),
            language=language.strip().lower() if isinstance(language, str) else "",
            confidence=_clamp(float(confidence), 0.0, 1.0) if _is_number(confidence) else 0.5,
        )
