"""
Tests for Layer 2: Tone scoring
Tests lexicon scorer, Gemini oracle (mocked, no network) and row enrichment
"""
import sys
import os
import math
from unittest.mock import Mock, call, patch

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from layer_2_sentiment.tone_scorer import ToneScorer, analyze_sentiment
from layer_2_sentiment.sentiment_oracle import GeminiSentimentOracle, OracleResult, SentimentOracle
from layer_2_sentiment.enrichment import merge_external_score, score_rows
from models.insights import ToneResult
from models.review import CleanedRow
from utils.llm_client import LLMClient
from config.settings import settings


def make_row(review_id="r1", text="Great place", language="en"):
    return CleanedRow(
        review_id=review_id,
        listing_id="l1",
        neighbourhood="Centrum",
        created_at="2023-05-01 10:00:00",
        language=language,
        raw_text=text,
        needs_translation=language != "en",
    )


def make_oracle(llm_client, **kwargs):
    kwargs.setdefault("sleep", Mock())
    return GeminiSentimentOracle(llm_client=llm_client, **kwargs)


class TestToneScorer:
    """Test lexicon tone scoring"""

    def test_empty_text(self):
        assert ToneScorer.score("") == ToneResult(score=0.0, magnitude=0.0, label="neutral")
        assert ToneScorer.score("   ") == ToneResult(score=0.0, magnitude=0.0, label="neutral")

    def test_no_sentiment_words(self):
        result = ToneScorer.score("We arrived on Tuesday")
        assert result.score == 0.0
        assert result.label == "neutral"

    def test_positive_and_negative(self):
        assert ToneScorer.score("Great location").label == "positive"
        assert ToneScorer.score("Dirty bathroom").label == "negative"

    def test_punctuation_stripped(self):
        assert ToneScorer.score("GREAT!!!").score == 1.0

    def test_mixed_text_averages(self):
        result = ToneScorer.score("The room was nice but the street was noisy")
        assert result.score == 0.0
        assert result.label == "neutral"

    def test_negation(self):
        assert ToneScorer.score("not good").score < 0
        assert ToneScorer.score("not very good").score < 0
        assert ToneScorer.score("not at all nice").score < 0
        assert ToneScorer.score("never dirty").score > 0

    def test_negation_window(self):
        """Only the three words before a sentiment word can negate it"""
        assert ToneScorer.score("not the room was good").score > 0
        assert ToneScorer.score("not the room good").score < 0

    def test_intensifier(self):
        assert ToneScorer.score("very good but bad").score == 0.25
        assert ToneScorer.score("good but bad").score == 0.0
        assert ToneScorer.score("good but very bad").score == -0.25

    def test_intensifier_saturates_at_clamp(self):
        """A lone intensified word cannot score beyond the plain word"""
        assert ToneScorer.score("very good").score == ToneScorer.score("good").score == 1.0
        assert ToneScorer.score("very bad").score == ToneScorer.score("bad").score == -1.0
        assert ToneScorer.score("very good").magnitude == 1.0

    def test_score_bounds(self):
        texts = [
            "very very good",
            "extremely terrible awful horrible",
            "not not bad",
            "absolutely perfect, really stunning and so clean",
            "Nothing was good, the bed was uncomfortable and the host rude",
        ]
        for text in texts:
            result = ToneScorer.score(text)
            assert -1.0 <= result.score <= 1.0
            assert result.magnitude == abs(result.score)

    def test_deterministic(self):
        text = "Lovely flat but a bit noisy at night"
        assert ToneScorer.score(text) == ToneScorer.score(text)
        assert analyze_sentiment(text) == ToneScorer.score(text)

    def test_average(self):
        result = ToneScorer.average(["great", "bad", "good"])
        assert math.isclose(result.score, 1 / 3)
        assert result.label == "positive"
        assert ToneScorer.average([]) == ToneResult.neutral()


class TestToneResult:
    """Test tone result model"""

    def test_from_score_clamps(self):
        assert ToneResult.from_score(3.0) == ToneResult(score=1.0, magnitude=1.0, label="positive")
        assert ToneResult.from_score(-0.05).label == "neutral"
        assert ToneResult.from_score(-0.5).magnitude == 0.5


class TestLLMClient:
    """Test LLM client helpers"""

    def test_requires_api_key(self):
        with patch.object(settings, "GEMINI_API_KEY", ""):
            try:
                LLMClient(api_key=None)
                assert False, "Expected ValueError"
            except ValueError as e:
                assert "GEMINI_API_KEY" in str(e)

    def test_safe_json_load(self):
        assert LLMClient.safe_json_load('{"0": {"s": 1}}') == {"0": {"s": 1}}
        assert LLMClient.safe_json_load('```json\n{"a": 1}\n```') == {"a": 1}
        assert LLMClient.safe_json_load('Here you go: {"a": 2} done') == {"a": 2}
        assert LLMClient.safe_json_load("no json here") is None
        assert LLMClient.safe_json_load("") is None


class TestGeminiSentimentOracle:
    """Test Gemini oracle with a mocked model"""

    def test_analyze_batch(self):
        client = Mock()
        client.generate.return_value = '{"0": {"s": 0.5, "l": "FR", "c": 0.9}, "1": {"s": "bad"}, "2": {"s": 4}}'
        oracle = make_oracle(client)

        results = oracle.analyze_batch(["Très bien", "Hmm", "Superb"])

        assert results[0] == OracleResult(score=0.5, language="fr", confidence=0.9)
        assert results[1] is None
        assert results[2] == OracleResult(score=1.0, language="", confidence=0.5)
        assert client.generate.call_count == 1

    def test_prompt_contains_texts(self):
        client = Mock()
        client.generate.return_value = "{}"
        oracle = make_oracle(client)
        oracle.analyze_batch(["Lovely canal view"])
        prompt = client.generate.call_args[0][0]
        assert "Lovely canal view" in prompt
        assert "1 property reviews" in prompt

    def test_cache(self):
        client = Mock()
        client.generate.return_value = '{"0": {"s": 0.2, "l": "en"}}'
        oracle = make_oracle(client)

        first = oracle.analyze_batch(["Nice stay"])
        second = oracle.analyze_batch(["Nice stay"])

        assert first == second
        assert client.generate.call_count == 1

        oracle.clear_cache()
        oracle.analyze_batch(["Nice stay"])
        assert client.generate.call_count == 2

    def test_separate_instances_do_not_share_cache(self):
        client = Mock()
        client.generate.return_value = '{"0": {"s": 0.2, "l": "en"}}'
        make_oracle(client).analyze_batch(["Nice stay"])
        make_oracle(client).analyze_batch(["Nice stay"])
        assert client.generate.call_count == 2

    def test_batching(self):
        client = Mock()
        client.generate.return_value = '{"0": {"s": 0.1, "l": "en"}, "1": {"s": 0.1, "l": "en"}}'
        sleep = Mock()
        oracle = make_oracle(client, batch_size=2, sleep=sleep)

        results = oracle.analyze_batch(["a", "b", "c", "d", "e"])

        assert client.generate.call_count == 3
        # Third batch has one text, its entry "0" is valid
        assert all(result is not None for result in results)
        assert sleep.call_args_list == [call(settings.LLM_BATCH_DELAY)] * 2

    def test_retry_with_backoff(self):
        client = Mock()
        client.generate.side_effect = [Exception("boom"), '{"0": {"s": -0.2, "l": "en"}}']
        sleep = Mock()
        oracle = make_oracle(client, sleep=sleep)

        results = oracle.analyze_batch(["Meh"])

        assert results == [OracleResult(score=-0.2, language="en", confidence=0.5)]
        assert sleep.call_args_list == [call(settings.LLM_RETRY_DELAY_BASE)]
        assert oracle.error_count == 0

    def test_rate_limit_delay(self):
        client = Mock()
        client.generate.side_effect = [Exception("429 Resource has been exhausted (quota)"), '{"0": {"s": 0.3}}']
        sleep = Mock()
        oracle = make_oracle(client, sleep=sleep)

        oracle.analyze_batch(["Fine"])

        assert sleep.call_args_list == [call(settings.LLM_RATE_LIMIT_DELAY)]

    def test_failing_batch_is_split(self):
        def generate(prompt):
            if "of 2 property reviews" in prompt:
                raise ValueError("response too long")
            return '{"0": {"s": 0.4, "l": "en"}}'

        client = Mock()
        client.generate.side_effect = generate
        oracle = make_oracle(client, max_errors=100)

        results = oracle.analyze_batch(["First", "Second"])

        assert [r.score for r in results] == [0.4, 0.4]
        assert client.generate.call_count == settings.LLM_RETRY_ATTEMPTS + 2

    def test_error_budget(self):
        client = Mock()
        client.generate.side_effect = Exception("service unavailable")
        oracle = make_oracle(client, max_errors=2)

        results = oracle.analyze_batch(["a", "b", "c"])

        assert results == [None, None, None]
        assert client.generate.call_count == 2
        assert oracle.should_skip()

        # Once the budget is spent the model is not called again
        oracle.analyze_batch(["d"])
        assert client.generate.call_count == 2

    def test_malformed_response(self):
        client = Mock()
        client.generate.return_value = "I cannot help with that"
        oracle = make_oracle(client, max_errors=1)

        assert oracle.analyze_batch(["Nice"]) == [None]


class TestEnrichment:
    """Test merging oracle output into rows"""

    def test_merge_uses_oracle_score_and_language(self):
        scored = merge_external_score(make_row(text="Great place"), OracleResult(score=-0.4, language="de"))
        assert scored.sentiment_score == -0.4
        assert scored.language == "de"
        assert scored.score_source == "oracle"
        assert scored.needs_translation is True

    def test_merge_keeps_row_language_when_oracle_has_none(self):
        scored = merge_external_score(make_row(language="fr"), OracleResult(score=0.3, language=""))
        assert scored.language == "fr"

    def test_merge_falls_back_to_lexicon(self):
        row = make_row(text="Great place")
        for result in [None, OracleResult(score=float("nan"), language="en")]:
            scored = merge_external_score(row, result)
            assert scored.sentiment_score == 1.0
            assert scored.score_source == "lexicon"

    def test_score_rows_without_oracle(self):
        rows = [make_row("r1", "Great place"), make_row("r2", "Dirty room")]
        scored = score_rows(rows)
        assert [s.sentiment_score for s in scored] == [1.0, -1.0]
        assert [s.review_id for s in scored] == ["r1", "r2"]

    def test_score_rows_with_oracle(self):
        oracle = Mock(spec=SentimentOracle)
        oracle.analyze_batch.return_value = [OracleResult(score=0.2, language="en"), None]
        scored = score_rows([make_row("r1", "Great place"), make_row("r2", "Dirty room")], oracle=oracle)
        assert scored[0].score_source == "oracle"
        assert scored[0].sentiment_score == 0.2
        assert scored[1].score_source == "lexicon"
        assert scored[1].sentiment_score == -1.0

    def test_oracle_exception_falls_back(self):
        oracle = Mock(spec=SentimentOracle)
        oracle.analyze_batch.side_effect = RuntimeError("timeout")
        scored = score_rows([make_row("r1", "Great place")], oracle=oracle)
        assert scored[0].score_source == "lexicon"
        assert scored[0].sentiment_score == 1.0

    def test_oracle_length_mismatch_falls_back(self):
        oracle = Mock(spec=SentimentOracle)
        oracle.analyze_batch.return_value = [OracleResult(score=0.2, language="en")]
        scored = score_rows([make_row("r1", "Great place"), make_row("r2", "Dirty room")], oracle=oracle)
        assert all(s.score_source == "lexicon" for s in scored)
