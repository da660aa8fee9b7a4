"""
Scan result types.

A ScanResult is the in-memory output of one community scan. It keeps the
raw units (with their detected tickers) and a ticker -> mentions map in
discovery order. Nothing here is persisted directly; the aggregator
derives rows from it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from meme_radar.ingestion.schemas import RawComment, RawPost
from meme_radar.sentiment.schemas import SentimentResult

MentionSource = Literal["post", "comment"]


@dataclass(frozen=True)
class TickerMention:
    """One ticker detected in one post or comment, with its own sentiment."""

    ticker: str
    source: MentionSource
    source_id: str
    text: str
    sentiment: SentimentResult
    upvotes: int
    community: str
    created_at: datetime
    permalink: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker,
            "source": self.source,
            "source_id": self.source_id,
            "text": self.text,
            "sentiment": self.sentiment.to_dict(),
            "upvotes": self.upvotes,
            "community": self.community,
            "created_at": self.created_at.isoformat(),
            "permalink": self.permalink,
        }


@dataclass
class ScannedComment:
    comment: RawComment
    tickers: list[str] = field(default_factory=list)


@dataclass
class ScannedPost:
    post: RawPost
    tickers: list[str] = field(default_factory=list)
    comments: list[ScannedComment] = field(default_factory=list)


@dataclass
class ScanStats:
    """Counters for one community scan."""

    total_posts: int = 0
    total_comments: int = 0
    unique_tickers: int = 0
    total_mentions: int = 0
    community_breakdown: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_posts": self.total_posts,
            "total_comments": self.total_comments,
            "unique_tickers": self.unique_tickers,
            "total_mentions": self.total_mentions,
            "community_breakdown": dict(self.community_breakdown),
        }


@dataclass
class ScanResult:
    """
    Output of scanning one community.

    A failed scan has no posts or tickers and carries the failure message
    in `error`.
    """

    community: str
    scanned_at: datetime
    posts: list[ScannedPost] = field(default_factory=list)
    tickers: dict[str, list[TickerMention]] = field(default_factory=dict)
    stats: ScanStats = field(default_factory=ScanStats)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def mentions(self) -> list[TickerMention]:
        return [m for mentions in self.tickers.values() for m in mentions]

    def to_dict(self, include_mentions: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "community": self.community,
            "scanned_at": self.scanned_at.isoformat(),
            "stats": self.stats.to_dict(),
            "tickers": {t: len(m) for t, m in self.tickers.items()},
            "error": self.error,
        }
        if include_mentions:
            data["mentions"] = {
                t: [m.to_dict() for m in mentions] for t, mentions in self.tickers.items()
            }
        return data


@dataclass
class ScanSummary:
    """Roll-up of a multi-community scan."""

    communities: list[str]
    scanned_at: datetime
    total_posts: int = 0
    total_comments: int = 0
    unique_tickers: int = 0
    total_mentions: int = 0
    top_tickers: list[tuple[str, int]] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "communities": self.communities,
            "scanned_at": self.scanned_at.isoformat(),
            "total_posts": self.total_posts,
            "total_comments": self.total_comments,
            "unique_tickers": self.unique_tickers,
            "total_mentions": self.total_mentions,
            "top_tickers": [{"ticker": t, "mentions": n} for t, n in self.top_tickers],
            "failed": dict(self.failed),
        }
