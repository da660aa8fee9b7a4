"""
Lexicon-based sentiment scoring.

Each bullish keyword adds `weight * occurrences` to the bullish total and
each bearish keyword to the bearish total. The score is the net total over
10, clamped to [-1, 1]. Scoring has no hidden state: identical text always
produces an identical result.
"""

import logging

from meme_radar.sentiment.lexicon import BEARISH_KEYWORDS, BULLISH_KEYWORDS, Keyword
from meme_radar.sentiment.schemas import SentimentCategory, SentimentResult

logger = logging.getLogger(__name__)

# Net weight that saturates the score
NORMALIZATION_FACTOR = 10.0


def categorize(score: float) -> SentimentCategory:
    """
    Bucket a score into a category.

    Boundaries: > 0.6 strong bullish, >= 0.2 bullish, >= -0.2 neutral,
    >= -0.6 bearish, anything lower strong bearish.
    """
    if score > 0.6:
        return SentimentCategory.STRONG_BULLISH
    if score >= 0.2:
        return SentimentCategory.BULLISH
    if score >= -0.2:
        return SentimentCategory.NEUTRAL
    if score >= -0.6:
        return SentimentCategory.BEARISH
    return SentimentCategory.STRONG_BEARISH


class SentimentScorer:
    """
    Score text against the bullish and bearish lexicons.

    Usage:
        scorer = SentimentScorer()
        result = scorer.score("$GME to the moon 🚀🚀", ticker="GME")
        result.category  # SentimentCategory.STRONG_BULLISH
    """

    def __init__(
        self,
        bullish: tuple[Keyword, ...] = BULLISH_KEYWORDS,
        bearish: tuple[Keyword, ...] = BEARISH_KEYWORDS,
    ):
        self.bullish = bullish
        self.bearish = bearish

    @staticmethod
    def _tally(keywords: tuple[Keyword, ...], text: str) -> tuple[int, list[str]]:
        total = 0
        labels: list[str] = []
        for keyword in keywords:
            hits = keyword.count(text)
            if hits:
                total += keyword.weight * hits
                if keyword.label not in labels:
                    labels.append(keyword.label)
        return total, labels

    def score(self, text: str | None, ticker: str | None = None) -> SentimentResult:
        """
        Score a piece of text.

        Args:
            text: Text to analyze
            ticker: Ticker the text is being scored for. Accepted for
                interface parity; the score does not depend on it.

        Returns:
            SentimentResult with a score in [-1, 1]
        """
        if not text:
            return SentimentResult(score=0.0, category=SentimentCategory.NEUTRAL)

        bullish_total, bullish_labels = self._tally(self.bullish, text)
        bearish_total, bearish_labels = self._tally(self.bearish, text)

        net = bullish_total - bearish_total
        score = max(-1.0, min(1.0, net / NORMALIZATION_FACTOR))

        return SentimentResult(
            score=score,
            category=categorize(score),
            bullish_keywords=tuple(bullish_labels),
            bearish_keywords=tuple(bearish_labels),
        )
