"""
Bucketed ticker aggregation and trend ranking.

Usage:
    from meme_radar.aggregation import AggregateRepository, MentionAggregator

    aggregator = MentionAggregator(AggregateRepository(db))
    await aggregator.persist(scan_results)
    for entry in await aggregator.get_trending():
        print(entry.ticker, entry.velocity)
"""

from meme_radar.aggregation.buckets import bucket_start, previous_bucket
from meme_radar.aggregation.ranking import compute_velocity, rank_fading, rank_trending
from meme_radar.aggregation.repository import AggregateRepository
from meme_radar.aggregation.schemas import (
    HistoryPoint,
    StoredAggregate,
    StoredEvidence,
    TickerDetails,
    TrendingEntry,
)
from meme_radar.aggregation.service import MentionAggregator

__all__ = [
    "MentionAggregator",
    "AggregateRepository",
    "StoredAggregate",
    "StoredEvidence",
    "TrendingEntry",
    "TickerDetails",
    "HistoryPoint",
    "bucket_start",
    "previous_bucket",
    "compute_velocity",
    "rank_trending",
    "rank_fading",
]
