"""Persisted aggregate types and ranking results."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from meme_radar.sentiment.schemas import SentimentCategory


@dataclass
class StoredAggregate:
    """
    Per-ticker statistics for one bucket.

    Attributes:
        ticker: Upper-cased ticker symbol.
        bucket: Bucket start (UTC, aligned to the bucket width).
        mention_count: Mentions in the bucket.
        unique_posts: Mentions that came from posts.
        unique_comments: Mentions that came from comments.
        avg_sentiment: Mean mention score, rounded to 3 decimals.
        sentiment_category: Category of avg_sentiment.
        bullish_count: Mentions scoring above 0.2.
        bearish_count: Mentions scoring below -0.2.
        neutral_count: Everything else.
        total_upvotes: Sum of mention upvotes.
        community_breakdown: Mentions per community.
        top_keywords: Most frequent sentiment labels, at most 10.
        expires_at: Row is ignored and prunable after this instant.
    """

    ticker: str
    bucket: datetime
    mention_count: int
    unique_posts: int
    unique_comments: int
    avg_sentiment: float
    sentiment_category: SentimentCategory
    bullish_count: int
    bearish_count: int
    neutral_count: int
    total_upvotes: int
    community_breakdown: dict[str, int] = field(default_factory=dict)
    top_keywords: list[str] = field(default_factory=list)
    expires_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker,
            "bucket": self.bucket.isoformat(),
            "mention_count": self.mention_count,
            "unique_posts": self.unique_posts,
            "unique_comments": self.unique_comments,
            "avg_sentiment": self.avg_sentiment,
            "sentiment_category": self.sentiment_category.value,
            "bullish_count": self.bullish_count,
            "bearish_count": self.bearish_count,
            "neutral_count": self.neutral_count,
            "total_upvotes": self.total_upvotes,
            "community_breakdown": dict(self.community_breakdown),
            "top_keywords": list(self.top_keywords),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass
class StoredEvidence:
    """A high-upvote source unit kept to justify a ticker's ranking."""

    ticker: str
    source_id: str
    source_type: str
    bucket: datetime
    text: str
    keywords: list[str]
    sentiment_score: float
    sentiment_category: SentimentCategory
    upvotes: int
    community: str
    permalink: str
    created_at: datetime
    expires_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker,
            "source_id": self.source_id,
            "source_type": self.source_type,
            "bucket": self.bucket.isoformat(),
            "text": self.text,
            "keywords": list(self.keywords),
            "sentiment_score": self.sentiment_score,
            "sentiment_category": self.sentiment_category.value,
            "upvotes": self.upvotes,
            "community": self.community,
            "permalink": self.permalink,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass
class TrendingEntry:
    ticker: str
    mention_count: int
    sentiment_score: float
    sentiment_category: SentimentCategory
    velocity: float
    bucket: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker,
            "mention_count": self.mention_count,
            "sentiment_score": self.sentiment_score,
            "sentiment_category": self.sentiment_category.value,
            "velocity": self.velocity,
            "bucket": self.bucket.isoformat(),
        }


@dataclass
class HistoryPoint:
    bucket: datetime
    mention_count: int
    avg_sentiment: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucket": self.bucket.isoformat(),
            "mention_count": self.mention_count,
            "avg_sentiment": self.avg_sentiment,
        }


@dataclass
class TickerDetails:
    """Current-bucket aggregate plus recent history, oldest first."""

    current: StoredAggregate
    history: list[HistoryPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.current.to_dict(),
            "history": [point.to_dict() for point in self.history],
        }
