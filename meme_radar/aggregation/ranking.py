"""Trending and fading rankings.

Velocity compares a ticker's mention count in the current bucket with the
bucket immediately before it:

    velocity = (current - previous) / previous * 100

A ticker with no previous row gets a velocity of 100. Tickers below the
mention floor are never ranked. All functions here are pure.
"""

import logging
from datetime import datetime

from meme_radar.aggregation.schemas import StoredAggregate, TrendingEntry

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────

NEW_TICKER_VELOCITY = 100.0
DEFAULT_MIN_MENTIONS = 5

# ── Scoring ──────────────────────────────────────────────


def compute_velocity(current: int, previous: int) -> float:
    """
    Percentage change in mentions between adjacent buckets.

    Args:
        current: Mentions in the current bucket
        previous: Mentions in the previous bucket (0 if absent)

    Returns:
        Percentage change, or 100.0 when there is no previous activity
    """
    if previous <= 0:
        return NEW_TICKER_VELOCITY
    return (current - previous) / previous * 100.0


def rank_trending(
    current_rows: list[StoredAggregate],
    previous_counts: dict[str, int],
    bucket: datetime,
    limit: int = 10,
    min_mentions: int = DEFAULT_MIN_MENTIONS,
) -> list[TrendingEntry]:
    """
    Rank the current bucket by velocity, highest first.

    Args:
        current_rows: Aggregates in the current bucket
        previous_counts: ticker -> mention count in the previous bucket
        bucket: Start of the current bucket
        limit: Maximum entries returned
        min_mentions: Mention floor for the current bucket

    Returns:
        At most `limit` entries; ties keep the input order
    """
    entries = [
        TrendingEntry(
            ticker=row.ticker,
            mention_count=row.mention_count,
            sentiment_score=row.avg_sentiment,
            sentiment_category=row.sentiment_category,
            velocity=compute_velocity(row.mention_count, previous_counts.get(row.ticker, 0)),
            bucket=bucket,
        )
        for row in current_rows
        if row.mention_count >= min_mentions
    ]
    entries.sort(key=lambda e: e.velocity, reverse=True)
    return entries[:limit]


def rank_fading(candidates: list[TrendingEntry], limit: int = 10) -> list[TrendingEntry]:
    """Keep negative-velocity entries, steepest decline first."""
    fading = [e for e in candidates if e.velocity < 0]
    fading.sort(key=lambda e: e.velocity)
    return fading[:limit]
