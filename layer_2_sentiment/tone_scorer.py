"""
Lexicon-based tone scorer

Scores review text in [-1, 1] from fixed word lists. A sentiment word is
boosted by an intensifier directly before it and flipped by a negation within
the three words before it, so "not very good" still reads as negative.
"""
import re
from typing import Iterable, List

from models.insights import ToneResult, label_for_score

# Anything that is not an ASCII word character or whitespace becomes a space
NON_WORD_PATTERN = re.compile(r"[^A-Za-z0-9_\s]")

INTENSIFIER_WEIGHT = 1.5
NEGATION_WINDOW = 3


class ToneScorer:
    """Pure, stateless tone scorer"""

    POSITIVE_WORDS = frozenset([
        'amazing', 'awesome', 'excellent', 'fantastic', 'great', 'wonderful',
        'perfect', 'beautiful', 'clean', 'comfortable', 'friendly', 'helpful',
        'lovely', 'nice', 'good', 'best', 'enjoyed', 'recommend', 'love',
        'convenient', 'spacious', 'cozy', 'stunning', 'incredible', 'superb',
    ])

    NEGATIVE_WORDS = frozenset([
        'terrible', 'awful', 'horrible', 'bad', 'worst', 'dirty', 'noisy',
        'uncomfortable', 'rude', 'broken', 'disappointing', 'poor', 'ugly',
        'expensive', 'cramped', 'cold', 'hot', 'smelly', 'disgusting',
        'unclean', 'outdated', 'overpriced', 'unfriendly', 'unreliable',
    ])

    INTENSIFIERS = frozenset([
        'very', 'extremely', 'incredibly', 'absolutely', 'totally', 'completely',
        'quite', 'really', 'so', 'too', 'highly',
    ])

    NEGATIONS = frozenset([
        'not', 'no', 'never', 'nothing', 'nowhere', 'nobody', 'none',
        'neither', 'nor', 'hardly', 'barely', 'scarcely',
    ])

    @staticmethod
    def tokenize(text: str) -> List[str]:
        """Lowercase, strip punctuation and split on whitespace"""
        return NON_WORD_PATTERN.sub(" ", text.lower()).split()

    @classmethod
    def score(cls, text: str) -> ToneResult:
        """
        Score the tone of a text

        Args:
            text: Review text

        Returns:
            ToneResult with score in [-1, 1], magnitude = |score| and a label
        """
        if not text or not text.strip():
            return ToneResult.neutral()

        words = cls.tokenize(text)
        total = 0.0
        sentiment_words = 0

        for i, word in enumerate(words):
            if word in cls.POSITIVE_WORDS:
                sentiment = 1.0
            elif word in cls.NEGATIVE_WORDS:
                sentiment = -1.0
            else:
                continue

            intensity = INTENSIFIER_WEIGHT if i > 0 and words[i - 1] in cls.INTENSIFIERS else 1.0

            for j in range(max(0, i - NEGATION_WINDOW), i):
                if words[j] in cls.NEGATIONS:
                    sentiment = -sentiment
                    break

            total += sentiment * intensity
            sentiment_words += 1

        normalized = total / sentiment_words if sentiment_words > 0 else 0.0
        return ToneResult.from_score(normalized)

    @classmethod
    def average(cls, texts: Iterable[str]) -> ToneResult:
        """Mean score and magnitude over several texts"""
        results = [cls.score(text) for text in texts]
        if not results:
            return ToneResult.neutral()

        avg_score = sum(r.score for r in results) / len(results)
        avg_magnitude = sum(r.magnitude for r in results) / len(results)
        return ToneResult(score=avg_score, magnitude=avg_magnitude, label=label_for_score(avg_score))


def analyze_sentiment(text: str) -> ToneResult:
    """Score one text with the lexicon scorer"""
    return ToneScorer.score(text)
