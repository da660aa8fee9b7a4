"""
Lexicon-based sentiment scoring for retail trading chatter.

Usage:
    from meme_radar.sentiment import SentimentScorer

    result = SentimentScorer().score("diamond hands, HODL 💎🙌")
    print(result.score, result.category.value)
"""

from meme_radar.sentiment.lexicon import BEARISH_KEYWORDS, BULLISH_KEYWORDS, Keyword
from meme_radar.sentiment.schemas import SentimentCategory, SentimentResult
from meme_radar.sentiment.service import SentimentScorer, categorize

__all__ = [
    "SentimentScorer",
    "SentimentResult",
    "SentimentCategory",
    "Keyword",
    "BULLISH_KEYWORDS",
    "BEARISH_KEYWORDS",
    "categorize",
]
