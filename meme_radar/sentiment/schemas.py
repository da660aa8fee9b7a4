"""Sentiment result types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SentimentCategory(str, Enum):
    """Five-step sentiment scale, from strongly bearish to strongly bullish."""

    STRONG_BULLISH = "strong_bullish"
    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"
    STRONG_BEARISH = "strong_bearish"


@dataclass(frozen=True)
class SentimentResult:
    """
    Lexicon score for one piece of text.

    Attributes:
        score: Net sentiment in [-1, 1]
        category: Bucketed score
        bullish_keywords: Matched bullish labels, in lexicon order
        bearish_keywords: Matched bearish labels, in lexicon order
    """

    score: float
    category: SentimentCategory
    bullish_keywords: tuple[str, ...] = field(default_factory=tuple)
    bearish_keywords: tuple[str, ...] = field(default_factory=tuple)

    @property
    def keywords(self) -> list[str]:
        return [*self.bullish_keywords, *self.bearish_keywords]

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "category": self.category.value,
            "bullish_keywords": list(self.bullish_keywords),
            "bearish_keywords": list(self.bearish_keywords),
        }
