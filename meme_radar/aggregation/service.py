"""
Mention aggregation - turns scan results into bucketed rows and rankings.

persist() merges every ticker's mentions across a batch of scan results,
computes one StoredAggregate per ticker for the current bucket and keeps
the most upvoted mentions as evidence. The query side compares the
current bucket with the previous one to rank trending and fading tickers.

Repeated persists within one bucket replace the earlier row (last write
wins). Writes are not transactional across tickers: a failure part-way
through leaves the rows already written in place.
"""

from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import numpy as np
import structlog

from meme_radar.aggregation.buckets import as_utc, bucket_start, previous_bucket
from meme_radar.aggregation.ranking import rank_fading, rank_trending
from meme_radar.aggregation.repository import AggregateRepository
from meme_radar.aggregation.schemas import (
    StoredAggregate,
    StoredEvidence,
    TickerDetails,
    TrendingEntry,
)
from meme_radar.config.settings import get_settings
from meme_radar.config.tickers import normalize_ticker
from meme_radar.observability.metrics import get_metrics
from meme_radar.scanner.schemas import ScanResult, TickerMention
from meme_radar.sentiment.schemas import SentimentCategory

logger = structlog.get_logger(__name__)

# Per-mention score thresholds for the bullish/bearish counters
BULLISH_THRESHOLD = 0.2
BEARISH_THRESHOLD = -0.2
STRONG_THRESHOLD = 0.6


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def categorize_average(avg: float) -> SentimentCategory:
    """
    Category for a bucket average.

    Boundaries are strict, unlike single-mention categories: an average
    of exactly 0.2 is neutral.
    """
    if avg > STRONG_THRESHOLD:
        return SentimentCategory.STRONG_BULLISH
    if avg > BULLISH_THRESHOLD:
        return SentimentCategory.BULLISH
    if avg < -STRONG_THRESHOLD:
        return SentimentCategory.STRONG_BEARISH
    if avg < BEARISH_THRESHOLD:
        return SentimentCategory.BEARISH
    return SentimentCategory.NEUTRAL


def merge_mentions(results: list[ScanResult]) -> dict[str, list[TickerMention]]:
    """
    Merge mentions per ticker across scan results.

    Error results contribute nothing. Tickers are normalized, so "gme"
    and "GME" land in the same list.

    Raises:
        ValueError: If a ticker is not a valid symbol
    """
    merged: dict[str, list[TickerMention]] = {}
    for result in results:
        if result.error is not None:
            continue
        for ticker, mentions in result.tickers.items():
            merged.setdefault(normalize_ticker(ticker), []).extend(mentions)
    return merged


def build_aggregate(
    ticker: str,
    mentions: list[TickerMention],
    bucket: datetime,
    expires_at: datetime,
    top_keywords: int = 10,
) -> StoredAggregate:
    """
    Compute the bucket statistics for one ticker.

    Args:
        ticker: Normalized ticker symbol
        mentions: All mentions of the ticker in the batch (non-empty)
        bucket: Bucket start
        expires_at: Expiry for the row
        top_keywords: Number of keyword labels to keep

    Returns:
        StoredAggregate ready for upsert
    """
    scores = np.array([m.sentiment.score for m in mentions], dtype=np.float64)
    avg = round(float(scores.mean()), 3) if scores.size else 0.0

    bullish = int((scores > BULLISH_THRESHOLD).sum())
    bearish = int((scores < BEARISH_THRESHOLD).sum())

    communities: dict[str, int] = {}
    keyword_counts: Counter[str] = Counter()
    for mention in mentions:
        communities[mention.community] = communities.get(mention.community, 0) + 1
        keyword_counts.update(mention.sentiment.keywords)

    return StoredAggregate(
        ticker=ticker,
        bucket=bucket,
        mention_count=len(mentions),
        unique_posts=sum(1 for m in mentions if m.source == "post"),
        unique_comments=sum(1 for m in mentions if m.source == "comment"),
        avg_sentiment=avg,
        sentiment_category=categorize_average(avg),
        bullish_count=bullish,
        bearish_count=bearish,
        neutral_count=len(mentions) - bullish - bearish,
        total_upvotes=sum(m.upvotes for m in mentions),
        community_breakdown=communities,
        # most_common keeps first-seen order for ties
        top_keywords=[k for k, _ in keyword_counts.most_common(top_keywords)],
        expires_at=expires_at,
    )


def select_evidence(
    ticker: str,
    mentions: list[TickerMention],
    bucket: datetime,
    expires_at: datetime,
    limit: int = 5,
) -> list[StoredEvidence]:
    """Top mentions by upvotes; ties keep discovery order."""
    top = sorted(mentions, key=lambda m: m.upvotes, reverse=True)[:limit]
    return [
        StoredEvidence(
            ticker=ticker,
            source_id=m.source_id,
            source_type=m.source,
            bucket=bucket,
            text=m.text,
            keywords=m.sentiment.keywords,
            sentiment_score=m.sentiment.score,
            sentiment_category=m.sentiment.category,
            upvotes=m.upvotes,
            community=m.community,
            permalink=m.permalink,
            created_at=m.created_at,
            expires_at=expires_at,
        )
        for m in top
    ]


class MentionAggregator:
    """
    Persist scan results and answer ranking queries.

    Usage:
        aggregator = MentionAggregator(AggregateRepository(db))
        await aggregator.persist(results)
        trending = await aggregator.get_trending(limit=10)
    """

    def __init__(
        self,
        repository: AggregateRepository,
        bucket_width: timedelta | None = None,
        retention: timedelta | None = None,
        min_mentions: int | None = None,
        fading_pool: int | None = None,
        history: timedelta | None = None,
        evidence_limit: int | None = None,
        top_keywords: int | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        settings = get_settings()

        self._repo = repository
        self._width = bucket_width or timedelta(minutes=settings.bucket_minutes)
        self._retention = retention or timedelta(days=settings.retention_days)
        self._min_mentions = (
            settings.trending_min_mentions if min_mentions is None else min_mentions
        )
        self._fading_pool = fading_pool or settings.fading_candidate_pool
        self._history = history or timedelta(days=settings.history_days)
        self._evidence_limit = evidence_limit or settings.evidence_per_ticker
        self._top_keywords = top_keywords or settings.top_keywords_limit
        self._clock = clock
        self._metrics = get_metrics()

    def current_bucket(self, now: datetime | None = None) -> datetime:
        return bucket_start(now or self._clock(), self._width)

    async def persist(
        self,
        results: list[ScanResult],
        now: datetime | None = None,
    ) -> list[StoredAggregate]:
        """
        Write one aggregate per ticker plus its evidence for the current bucket.

        Args:
            results: Scan results to merge
            now: Reference instant (defaults to the clock)

        Returns:
            Aggregates written, in ticker discovery order

        Raises:
            ValueError: If a result carries an invalid ticker
            Exception: Any persistence error, after earlier rows are written
        """
        now = as_utc(now or self._clock())
        bucket = bucket_start(now, self._width)
        expires_at = now + self._retention
        merged = merge_mentions(results)

        written: list[StoredAggregate] = []
        evidence_written = 0
        try:
            for ticker, mentions in merged.items():
                aggregate = build_aggregate(
                    ticker, mentions, bucket, expires_at, self._top_keywords
                )
                await self._repo.upsert_aggregate(aggregate)
                written.append(aggregate)

                evidence = select_evidence(
                    ticker, mentions, bucket, expires_at, self._evidence_limit
                )
                evidence_written += await self._repo.upsert_evidence(evidence)
        except Exception as e:
            self._metrics.record_persistence_error(type(e).__name__)
            logger.error(
                "Aggregate persist failed",
                bucket=bucket.isoformat(),
                written=len(written),
                remaining=len(merged) - len(written),
                error=str(e),
            )
            raise
        finally:
            self._metrics.record_persisted(len(written), evidence_written)

        logger.info(
            "Aggregates persisted",
            bucket=bucket.isoformat(),
            tickers=len(written),
            evidence=evidence_written,
        )
        return written

    async def get_trending(
        self,
        limit: int = 10,
        now: datetime | None = None,
    ) -> list[TrendingEntry]:
        """
        Rank the current bucket by velocity against the previous bucket.

        Tickers below the mention floor are excluded.
        """
        now = as_utc(now or self._clock())
        bucket = bucket_start(now, self._width)

        current_rows = await self._repo.get_bucket(bucket, now)
        previous_rows = await self._repo.get_bucket(previous_bucket(bucket, self._width), now)
        previous_counts = {row.ticker: row.mention_count for row in previous_rows}

        return rank_trending(
            current_rows,
            previous_counts,
            bucket=bucket,
            limit=limit,
            min_mentions=self._min_mentions,
        )

    async def get_fading(
        self,
        limit: int = 10,
        now: datetime | None = None,
    ) -> list[TrendingEntry]:
        """Trending candidates with negative velocity, steepest decline first."""
        candidates = await self.get_trending(limit=self._fading_pool, now=now)
        return rank_fading(candidates, limit=limit)

    async def get_details(
        self,
        ticker: str,
        now: datetime | None = None,
    ) -> TickerDetails | None:
        """
        Current-bucket aggregate plus history, or None if the ticker has
        no row in the current bucket.
        """
        now = as_utc(now or self._clock())
        bucket = bucket_start(now, self._width)
        symbol = normalize_ticker(ticker)

        current = await self._repo.get_aggregate(symbol, bucket, now)
        if current is None:
            return None

        history = await self._repo.get_history(
            symbol,
            start=bucket_start(now - self._history, self._width),
            end=bucket,
            now=now,
        )
        return TickerDetails(current=current, history=history)

    async def get_evidence(
        self,
        ticker: str,
        limit: int = 10,
        now: datetime | None = None,
    ) -> list[StoredEvidence]:
        now = as_utc(now or self._clock())
        return await self._repo.get_evidence(normalize_ticker(ticker), limit, now)

    async def prune(self, now: datetime | None = None) -> int:
        """Delete expired rows, returning how many were removed."""
        deleted = await self._repo.prune(as_utc(now or self._clock()))
        logger.info("Expired rows pruned", deleted=deleted)
        return deleted
