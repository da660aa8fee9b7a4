"""Tests for MentionAggregator over a mocked database."""

from datetime import datetime, timedelta, timezone

import pytest

from meme_radar.aggregation.repository import AggregateRepository
from meme_radar.aggregation.service import (
    MentionAggregator,
    build_aggregate,
    categorize_average,
    merge_mentions,
    select_evidence,
)
from meme_radar.sentiment.schemas import SentimentCategory

NOW = datetime(2025, 1, 15, 14, 7, tzinfo=timezone.utc)
BUCKET = datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)
PREVIOUS = BUCKET - timedelta(minutes=15)
EXPIRES = NOW + timedelta(days=30)


def aggregate_row(ticker: str, mentions: int, bucket: datetime = BUCKET, avg: float = 0.3) -> dict:
    """A dict mimicking an asyncpg Record from ticker_aggregates."""
    return {
        "ticker": ticker,
        "bucket": bucket,
        "mention_count": mentions,
        "unique_posts": mentions,
        "unique_comments": 0,
        "avg_sentiment": avg,
        "sentiment_category": "bullish",
        "bullish_count": mentions,
        "bearish_count": 0,
        "neutral_count": 0,
        "total_upvotes": 10 * mentions,
        "community_breakdown": {"wallstreetbets": mentions},
        "top_keywords": ["yolo"],
        "expires_at": EXPIRES,
    }


@pytest.fixture
def aggregator(mock_database) -> MentionAggregator:
    return MentionAggregator(
        AggregateRepository(mock_database),
        bucket_width=timedelta(minutes=15),
        retention=timedelta(days=30),
        min_mentions=5,
        evidence_limit=5,
        clock=lambda: NOW,
    )


class TestMergeMentions:
    def test_merges_case_variants(self, mention_factory, result_factory):
        results = [
            result_factory("wallstreetbets", {"gme": [mention_factory(source_id="p1")]}),
            result_factory("stocks", {"GME": [mention_factory(source_id="p2", community="stocks")]}),
        ]

        merged = merge_mentions(results)

        assert list(merged) == ["GME"]
        assert [m.source_id for m in merged["GME"]] == ["p1", "p2"]

    def test_skips_error_results(self, mention_factory, result_factory):
        results = [
            result_factory("wallstreetbets", {"AMC": [mention_factory("AMC")]}),
            result_factory("stocks", {"GME": [mention_factory()]}, error="boom"),
        ]

        assert list(merge_mentions(results)) == ["AMC"]


class TestBuildAggregate:
    def test_statistics(self, mention_factory):
        mentions = [
            mention_factory(text="GME to the moon", source="post", upvotes=10),
            mention_factory(text="GME puts", source="comment", upvotes=5, community="stocks"),
            mention_factory(text="GME", source="comment", upvotes=1),
        ]

        aggregate = build_aggregate("GME", mentions, BUCKET, EXPIRES)

        assert aggregate.mention_count == 3
        assert aggregate.unique_posts == 1
        assert aggregate.unique_comments == 2
        assert aggregate.avg_sentiment == 0.0
        assert aggregate.sentiment_category is SentimentCategory.NEUTRAL
        assert (aggregate.bullish_count, aggregate.bearish_count, aggregate.neutral_count) == (1, 1, 1)
        assert aggregate.total_upvotes == 16
        assert aggregate.community_breakdown == {"wallstreetbets": 2, "stocks": 1}
        assert aggregate.top_keywords == ["to the moon", "puts"]

    def test_counters_use_strict_thresholds(self, mention_factory):
        mentions = [
            mention_factory(text="GME long"),
            mention_factory(text="GME fud"),
            mention_factory(text="GME yolo"),
        ]
        assert mentions[0].sentiment.score == 0.2
        assert mentions[0].sentiment.category is SentimentCategory.BULLISH
        assert mentions[1].sentiment.score == -0.2
        assert mentions[1].sentiment.category is SentimentCategory.NEUTRAL

        aggregate = build_aggregate("GME", mentions, BUCKET, EXPIRES)

        assert (aggregate.bullish_count, aggregate.bearish_count, aggregate.neutral_count) == (1, 0, 2)

    def test_average_on_boundary_is_neutral(self, mention_factory):
        mentions = [mention_factory(text="GME long"), mention_factory(text="GME calls")]

        aggregate = build_aggregate("GME", mentions, BUCKET, EXPIRES)

        assert aggregate.avg_sentiment == 0.2
        assert aggregate.sentiment_category is SentimentCategory.NEUTRAL
        assert aggregate.neutral_count == 2

    @pytest.mark.parametrize(
        "avg,expected",
        [
            (0.61, SentimentCategory.STRONG_BULLISH),
            (0.6, SentimentCategory.BULLISH),
            (0.21, SentimentCategory.BULLISH),
            (0.2, SentimentCategory.NEUTRAL),
            (-0.2, SentimentCategory.NEUTRAL),
            (-0.21, SentimentCategory.BEARISH),
            (-0.6, SentimentCategory.BEARISH),
            (-0.61, SentimentCategory.STRONG_BEARISH),
        ],
    )
    def test_categorize_average(self, avg, expected):
        assert categorize_average(avg) is expected

    def test_average_is_rounded(self, mention_factory):
        mentions = [
            mention_factory(text="hodl"),
            mention_factory(text="hodl"),
            mention_factory(text="calls"),
        ]

        aggregate = build_aggregate("GME", mentions, BUCKET, EXPIRES)

        # (0.3 + 0.3 + 0.2) / 3
        assert aggregate.avg_sentiment == 0.267
        assert aggregate.sentiment_category is SentimentCategory.BULLISH

    def test_top_keywords_limit(self, mention_factory):
        mentions = [mention_factory(text="yolo hodl tendies calls bullish")]

        aggregate = build_aggregate("GME", mentions, BUCKET, EXPIRES, top_keywords=2)

        assert len(aggregate.top_keywords) == 2


class TestSelectEvidence:
    def test_top_five_by_upvotes(self, mention_factory):
        mentions = [
            mention_factory(source_id=f"u{votes}", upvotes=votes)
            for votes in (5, 50, 1, 500, 20, 7, 100)
        ]

        evidence = select_evidence("GME", mentions, BUCKET, EXPIRES)

        assert [e.upvotes for e in evidence] == [500, 100, 50, 20, 7]
        assert all(e.bucket == BUCKET and e.expires_at == EXPIRES for e in evidence)

    def test_ties_keep_discovery_order(self, mention_factory):
        mentions = [mention_factory(source_id=s, upvotes=3) for s in ("a", "b", "c")]

        evidence = select_evidence("GME", mentions, BUCKET, EXPIRES, limit=2)

        assert [e.source_id for e in evidence] == ["a", "b"]

    def test_evidence_fields(self, mention_factory):
        mention = mention_factory(source="comment", source_id="c9", text="GME to the moon")

        evidence = select_evidence("GME", [mention], BUCKET, EXPIRES)[0]

        assert evidence.source_type == "comment"
        assert evidence.keywords == ["to the moon"]
        assert evidence.created_at == mention.created_at


class TestPersist:
    @pytest.mark.asyncio
    async def test_one_row_per_ticker(self, aggregator, mock_database, mention_factory, result_factory):
        results = [
            result_factory("wallstreetbets", {"gme": [mention_factory(source_id="p1")]}),
            result_factory("stocks", {"GME": [mention_factory(source_id="p2", community="stocks")]}),
        ]

        written = await aggregator.persist(results)

        assert len(written) == 1
        assert written[0].ticker == "GME"
        assert written[0].mention_count == 2
        assert written[0].bucket == BUCKET
        assert written[0].expires_at == EXPIRES

        upserts = mock_database.execute.call_args_list
        assert len(upserts) == 1
        assert upserts[0][0][1:3] == ("GME", BUCKET)

        _, records = mock_database.executemany.call_args[0]
        assert [r[1] for r in records] == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_evidence_capped_per_ticker(self, aggregator, mock_database, mention_factory, result_factory):
        mentions = [mention_factory(source_id=f"p{i}", upvotes=i) for i in range(8)]

        await aggregator.persist([result_factory("wallstreetbets", {"GME": mentions})])

        _, records = mock_database.executemany.call_args[0]
        assert [r[1] for r in records] == ["p7", "p6", "p5", "p4", "p3"]

    @pytest.mark.asyncio
    async def test_naive_now_is_utc(self, aggregator, mock_database, mention_factory, result_factory):
        results = [result_factory("wallstreetbets", {"GME": [mention_factory()]})]

        written = await aggregator.persist(results, now=datetime(2025, 1, 15, 9, 59))

        assert written[0].bucket == datetime(2025, 1, 15, 9, 45, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_nothing_to_write(self, aggregator, mock_database, result_factory):
        written = await aggregator.persist([result_factory("stocks", {}, error="boom")])

        assert written == []
        mock_database.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_propagates_after_partial_write(
        self, aggregator, mock_database, mention_factory, result_factory
    ):
        mock_database.execute.side_effect = [None, RuntimeError("connection lost")]
        results = [
            result_factory(
                "wallstreetbets",
                {"GME": [mention_factory()], "AMC": [mention_factory("AMC")]},
            )
        ]

        with pytest.raises(RuntimeError, match="connection lost"):
            await aggregator.persist(results)

        assert mock_database.execute.await_count == 2
        assert mock_database.executemany.await_count == 1


class TestQueries:
    @pytest.mark.asyncio
    async def test_trending(self, aggregator, mock_database):
        mock_database.fetch.side_effect = [
            [aggregate_row("GME", 15), aggregate_row("AMC", 8), aggregate_row("BB", 4)],
            [aggregate_row("GME", 10, bucket=PREVIOUS), aggregate_row("BB", 1, bucket=PREVIOUS)],
        ]

        entries = await aggregator.get_trending(limit=10)

        assert [(e.ticker, e.velocity) for e in entries] == [("AMC", 100.0), ("GME", 50.0)]
        first_call, second_call = mock_database.fetch.call_args_list
        assert first_call[0][1:] == (BUCKET, NOW)
        assert second_call[0][1:] == (PREVIOUS, NOW)

    @pytest.mark.asyncio
    async def test_fading(self, aggregator, mock_database):
        mock_database.fetch.side_effect = [
            [aggregate_row("GME", 5), aggregate_row("AMC", 9), aggregate_row("BB", 4)],
            [
                aggregate_row("GME", 10, bucket=PREVIOUS),
                aggregate_row("AMC", 12, bucket=PREVIOUS),
                aggregate_row("BB", 40, bucket=PREVIOUS),
            ],
        ]

        entries = await aggregator.get_fading(limit=10)

        assert [(e.ticker, e.velocity) for e in entries] == [("GME", -50.0), ("AMC", -25.0)]

    @pytest.mark.asyncio
    async def test_details(self, aggregator, mock_database):
        mock_database.fetchrow.return_value = aggregate_row("GME", 12)
        mock_database.fetch.return_value = [
            {"bucket": PREVIOUS, "mention_count": 4, "avg_sentiment": 0.1},
            {"bucket": BUCKET, "mention_count": 12, "avg_sentiment": 0.3},
        ]

        details = await aggregator.get_details("gme")

        assert details is not None
        assert details.current.ticker == "GME"
        assert [p.mention_count for p in details.history] == [4, 12]
        _, ticker, start, end, now = mock_database.fetch.call_args[0]
        assert ticker == "GME"
        assert start == datetime(2025, 1, 8, 14, 0, tzinfo=timezone.utc)
        assert end == BUCKET
        data = details.to_dict()
        assert data["mention_count"] == 12
        assert len(data["history"]) == 2

    @pytest.mark.asyncio
    async def test_details_missing(self, aggregator, mock_database):
        assert await aggregator.get_details("GME") is None
        mock_database.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_evidence(self, aggregator, mock_database):
        await aggregator.get_evidence("gme", limit=3)

        assert mock_database.fetch.call_args[0][1:] == ("GME", NOW, 3)

    @pytest.mark.asyncio
    async def test_prune(self, aggregator, mock_database):
        mock_database.execute.side_effect = ["DELETE 2", "DELETE 5"]

        assert await aggregator.prune() == 7

    def test_current_bucket(self, aggregator):
        assert aggregator.current_bucket() == BUCKET
