"""
Layer 2: Tone scoring (lexicon scorer, optional LLM oracle, row enrichment).
"""
from .tone_scorer import ToneScorer, analyze_sentiment
from .sentiment_oracle import SentimentOracle, GeminiSentimentOracle, OracleResult
from .enrichment import merge_external_score, score_rows

__all__ = [
    'ToneScorer',
    'analyze_sentiment',
    'SentimentOracle',
    'GeminiSentimentOracle',
    'OracleResult',
    'merge_external_score',
    'score_rows',
]
