"""
Repository for per-bucket ticker aggregates and evidence.

Tables:
    - ticker_aggregates: one row per (ticker, bucket), last write wins
    - ticker_evidence: one row per (ticker, source_id)

Both tables carry `expires_at`. Reads ignore expired rows and `prune`
deletes them. Every ticker is normalized before it touches SQL, so
"gme" and "GME" address the same row.
"""

import json
import logging
from datetime import datetime
from typing import Any

from meme_radar.aggregation.schemas import (
    HistoryPoint,
    StoredAggregate,
    StoredEvidence,
)
from meme_radar.config.tickers import normalize_ticker
from meme_radar.sentiment.schemas import SentimentCategory
from meme_radar.storage.database import Database

logger = logging.getLogger(__name__)


class AggregateRepository:
    """
    Storage and retrieval of ticker aggregates and evidence.

    Writes are upserts keyed on the primary key, so re-persisting a
    bucket replaces the earlier row instead of adding to it.
    """

    def __init__(self, database: Database):
        """
        Initialize repository.

        Args:
            database: Connected Database instance
        """
        self._db = database

    async def create_tables(self) -> None:
        """Create tables and indexes if they don't exist."""
        create_sql = """
        CREATE TABLE IF NOT EXISTS ticker_aggregates (
            ticker              TEXT NOT NULL,
            bucket              TIMESTAMPTZ NOT NULL,
            mention_count       INTEGER NOT NULL DEFAULT 0,
            unique_posts        INTEGER NOT NULL DEFAULT 0,
            unique_comments     INTEGER NOT NULL DEFAULT 0,
            avg_sentiment       REAL NOT NULL DEFAULT 0.0,
            sentiment_category  TEXT NOT NULL DEFAULT 'neutral',
            bullish_count       INTEGER NOT NULL DEFAULT 0,
            bearish_count       INTEGER NOT NULL DEFAULT 0,
            neutral_count       INTEGER NOT NULL DEFAULT 0,
            total_upvotes       BIGINT NOT NULL DEFAULT 0,
            community_breakdown JSONB NOT NULL DEFAULT '{}',
            top_keywords        TEXT[] NOT NULL DEFAULT '{}',
            expires_at          TIMESTAMPTZ NOT NULL,
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (ticker, bucket)
        );

        CREATE INDEX IF NOT EXISTS idx_ticker_aggregates_bucket
            ON ticker_aggregates(bucket);
        CREATE INDEX IF NOT EXISTS idx_ticker_aggregates_expires_at
            ON ticker_aggregates(expires_at);

        CREATE TABLE IF NOT EXISTS ticker_evidence (
            ticker             TEXT NOT NULL,
            source_id          TEXT NOT NULL,
            source_type        TEXT NOT NULL,
            bucket             TIMESTAMPTZ NOT NULL,
            text               TEXT NOT NULL,
            keywords           TEXT[] NOT NULL DEFAULT '{}',
            sentiment_score    REAL NOT NULL DEFAULT 0.0,
            sentiment_category TEXT NOT NULL DEFAULT 'neutral',
            upvotes            INTEGER NOT NULL DEFAULT 0,
            community          TEXT NOT NULL,
            permalink          TEXT NOT NULL DEFAULT '',
            created_at         TIMESTAMPTZ NOT NULL,
            expires_at         TIMESTAMPTZ NOT NULL,
            PRIMARY KEY (ticker, source_id)
        );

        CREATE INDEX IF NOT EXISTS idx_ticker_evidence_ticker_bucket
            ON ticker_evidence(ticker, bucket DESC, upvotes DESC);
        CREATE INDEX IF NOT EXISTS idx_ticker_evidence_expires_at
            ON ticker_evidence(expires_at);
        """
        await self._db.execute(create_sql)
        logger.info("Aggregate tables created/verified")

    # ── Writes ──────────────────────────────────────────────

    async def upsert_aggregate(self, aggregate: StoredAggregate) -> None:
        """
        Insert or replace the row for (ticker, bucket).

        Args:
            aggregate: Aggregate to store
        """
        sql = """
            INSERT INTO ticker_aggregates (
                ticker, bucket, mention_count, unique_posts, unique_comments,
                avg_sentiment, sentiment_category, bullish_count, bearish_count,
                neutral_count, total_upvotes, community_breakdown, top_keywords,
                expires_at
            ) VALUES (
                $1, $2, $3, $4, $5,
                $6, $7, $8, $9,
                $10, $11, $12::jsonb, $13,
                $14
            )
            ON CONFLICT (ticker, bucket) DO UPDATE SET
                mention_count       = EXCLUDED.mention_count,
                unique_posts        = EXCLUDED.unique_posts,
                unique_comments     = EXCLUDED.unique_comments,
                avg_sentiment       = EXCLUDED.avg_sentiment,
                sentiment_category  = EXCLUDED.sentiment_category,
                bullish_count       = EXCLUDED.bullish_count,
                bearish_count       = EXCLUDED.bearish_count,
                neutral_count       = EXCLUDED.neutral_count,
                total_upvotes       = EXCLUDED.total_upvotes,
                community_breakdown = EXCLUDED.community_breakdown,
                top_keywords        = EXCLUDED.top_keywords,
                expires_at          = EXCLUDED.expires_at,
                updated_at          = NOW()
        """
        await self._db.execute(
            sql,
            normalize_ticker(aggregate.ticker),
            aggregate.bucket,
            aggregate.mention_count,
            aggregate.unique_posts,
            aggregate.unique_comments,
            aggregate.avg_sentiment,
            aggregate.sentiment_category.value,
            aggregate.bullish_count,
            aggregate.bearish_count,
            aggregate.neutral_count,
            aggregate.total_upvotes,
            json.dumps(aggregate.community_breakdown),
            list(aggregate.top_keywords),
            aggregate.expires_at,
        )

    async def upsert_evidence(self, evidence: list[StoredEvidence]) -> int:
        """
        Insert or replace evidence rows keyed by (ticker, source_id).

        Returns:
            Number of rows written
        """
        if not evidence:
            return 0

        sql = """
            INSERT INTO ticker_evidence (
                ticker, source_id, source_type, bucket, text, keywords,
                sentiment_score, sentiment_category, upvotes, community,
                permalink, created_at, expires_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
            ON CONFLICT (ticker, source_id) DO UPDATE SET
                source_type        = EXCLUDED.source_type,
                bucket             = EXCLUDED.bucket,
                text               = EXCLUDED.text,
                keywords           = EXCLUDED.keywords,
                sentiment_score    = EXCLUDED.sentiment_score,
                sentiment_category = EXCLUDED.sentiment_category,
                upvotes            = EXCLUDED.upvotes,
                community          = EXCLUDED.community,
                permalink          = EXCLUDED.permalink,
                created_at         = EXCLUDED.created_at,
                expires_at         = EXCLUDED.expires_at
        """
        records = [
            (
                normalize_ticker(e.ticker),
                e.source_id,
                e.source_type,
                e.bucket,
                e.text,
                list(e.keywords),
                e.sentiment_score,
                e.sentiment_category.value,
                e.upvotes,
                e.community,
                e.permalink,
                e.created_at,
                e.expires_at,
            )
            for e in evidence
        ]
        await self._db.executemany(sql, records)
        return len(records)

    # ── Reads ───────────────────────────────────────────────

    async def get_bucket(self, bucket: datetime, now: datetime) -> list[StoredAggregate]:
        """
        All unexpired aggregates in one bucket.

        Returns:
            Aggregates ordered by mention count descending, then ticker
        """
        sql = """
            SELECT *
            FROM ticker_aggregates
            WHERE bucket = $1
              AND expires_at > $2
            ORDER BY mention_count DESC, ticker ASC
        """
        rows = await self._db.fetch(sql, bucket, now)
        return [_row_to_aggregate(row) for row in rows]

    async def get_aggregate(
        self,
        ticker: str,
        bucket: datetime,
        now: datetime,
    ) -> StoredAggregate | None:
        sql = """
            SELECT *
            FROM ticker_aggregates
            WHERE ticker = $1
              AND bucket = $2
              AND expires_at > $3
        """
        row = await self._db.fetchrow(sql, normalize_ticker(ticker), bucket, now)
        return _row_to_aggregate(row) if row else None

    async def get_history(
        self,
        ticker: str,
        start: datetime,
        end: datetime,
        now: datetime,
    ) -> list[HistoryPoint]:
        """
        Bucket history for a ticker between two bucket starts.

        Args:
            ticker: Ticker symbol (any case)
            start: Inclusive first bucket
            end: Inclusive last bucket
            now: Reference instant for expiry

        Returns:
            HistoryPoints ordered by bucket ascending
        """
        sql = """
            SELECT bucket, mention_count, avg_sentiment
            FROM ticker_aggregates
            WHERE ticker = $1
              AND bucket >= $2
              AND bucket <= $3
              AND expires_at > $4
            ORDER BY bucket ASC
        """
        rows = await self._db.fetch(sql, normalize_ticker(ticker), start, end, now)
        return [
            HistoryPoint(
                bucket=row["bucket"],
                mention_count=row["mention_count"],
                avg_sentiment=float(row["avg_sentiment"]),
            )
            for row in rows
        ]

    async def get_evidence(
        self,
        ticker: str,
        limit: int,
        now: datetime,
    ) -> list[StoredEvidence]:
        """Unexpired evidence, newest bucket first, then highest upvotes."""
        sql = """
            SELECT *
            FROM ticker_evidence
            WHERE ticker = $1
              AND expires_at > $2
            ORDER BY bucket DESC, upvotes DESC, source_id ASC
            LIMIT $3
        """
        rows = await self._db.fetch(sql, normalize_ticker(ticker), now, limit)
        return [_row_to_evidence(row) for row in rows]

    # ── Retention ───────────────────────────────────────────

    async def prune(self, now: datetime) -> int:
        """
        Delete expired aggregates and evidence.

        Returns:
            Total rows deleted across both tables
        """
        deleted = 0
        for table in ("ticker_aggregates", "ticker_evidence"):
            status = await self._db.execute(
                f"DELETE FROM {table} WHERE expires_at <= $1", now
            )
            deleted += _affected_rows(status)
        return deleted


# ── Helpers (module-level for testability) ──────────────────


def _affected_rows(status: str | None) -> int:
    """Parse the row count from a status string like "DELETE 12"."""
    if not status:
        return 0
    try:
        return int(status.rsplit(" ", 1)[-1])
    except ValueError:
        return 0


def _json_field(value: Any, default: Any) -> Any:
    # JSONB may come back as a string or already decoded
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def _row_to_aggregate(row: Any) -> StoredAggregate:
    """Convert an asyncpg Record to a StoredAggregate."""
    return StoredAggregate(
        ticker=row["ticker"],
        bucket=row["bucket"],
        mention_count=row["mention_count"],
        unique_posts=row["unique_posts"],
        unique_comments=row["unique_comments"],
        avg_sentiment=round(float(row["avg_sentiment"]), 3),
        sentiment_category=SentimentCategory(row["sentiment_category"]),
        bullish_count=row["bullish_count"],
        bearish_count=row["bearish_count"],
        neutral_count=row["neutral_count"],
        total_upvotes=row["total_upvotes"],
        community_breakdown=dict(_json_field(row["community_breakdown"], {})),
        top_keywords=list(row["top_keywords"] or []),
        expires_at=row["expires_at"],
    )


def _row_to_evidence(row: Any) -> StoredEvidence:
    """Convert an asyncpg Record to a StoredEvidence."""
    return StoredEvidence(
        ticker=row["ticker"],
        source_id=row["source_id"],
        source_type=row["source_type"],
        bucket=row["bucket"],
        text=row["text"],
        keywords=list(row["keywords"] or []),
        sentiment_score=float(row["sentiment_score"]),
        sentiment_category=SentimentCategory(row["sentiment_category"]),
        upvotes=row["upvotes"],
        community=row["community"],
        permalink=row["permalink"] or "",
        created_at=row["created_at"],
        expires_at=row["expires_at"],
    )
