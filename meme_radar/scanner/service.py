"""
Community scanner - fetch, detect, score.

Walks a community's hot listing post by post. For every post it detects
tickers in the title and body, scores the text once per ticker, then
fetches the comment tree and does the same for each comment body.

Communities are scanned sequentially and posts in listing order, so the
ticker -> mentions map is built in discovery order without any locking.
"""

import time
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from meme_radar.ingestion.http_client import AuthenticationError
from meme_radar.ingestion.preprocessor import TickerDetector, normalize_text
from meme_radar.ingestion.reddit_client import RedditClient
from meme_radar.ingestion.schemas import RawComment, RawPost
from meme_radar.observability.metrics import get_metrics
from meme_radar.scanner.schemas import (
    MentionSource,
    ScannedComment,
    ScannedPost,
    ScanResult,
    ScanStats,
    ScanSummary,
    TickerMention,
)
from meme_radar.sentiment.service import SentimentScorer

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Scanner:
    """
    Scan communities for ticker mentions.

    The Reddit client is passed in and owned by the caller.

    Usage:
        async with RedditClient() as client:
            scanner = Scanner(client)
            results = await scanner.scan_communities(["wallstreetbets", "stocks"])
    """

    def __init__(
        self,
        client: RedditClient,
        detector: TickerDetector | None = None,
        scorer: SentimentScorer | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize scanner.

        Args:
            client: Reddit client used for listings and comments
            detector: Ticker detector (defaults to the built-in lists)
            scorer: Sentiment scorer (defaults to the built-in lexicon)
            clock: Source of the scan timestamp
        """
        self._client = client
        self._detector = detector or TickerDetector()
        self._scorer = scorer or SentimentScorer()
        self._clock = clock
        self._metrics = get_metrics()

    async def _ensure_authenticated(self) -> None:
        if not self._client.is_authenticated:
            await self._client.authenticate()

    def _record(
        self,
        tickers: dict[str, list[TickerMention]],
        detected: list[str],
        text: str,
        source: MentionSource,
        unit: RawPost | RawComment,
        community: str,
    ) -> int:
        for ticker in detected:
            mention = TickerMention(
                ticker=ticker,
                source=source,
                source_id=unit.id,
                text=text,
                sentiment=self._scorer.score(text, ticker),
                upvotes=unit.upvotes,
                community=community,
                created_at=unit.created_at,
                permalink=unit.permalink,
            )
            tickers.setdefault(ticker, []).append(mention)
        self._metrics.record_mentions(source, len(detected))
        return len(detected)

    async def scan_community(self, community: str, limit: int = 25) -> ScanResult:
        """
        Scan one community's hot listing.

        A failed comment fetch leaves that post with no comments and the
        scan carries on. Listing and authentication failures propagate.

        Args:
            community: Subreddit name without the r/ prefix
            limit: Maximum number of hot posts

        Returns:
            ScanResult with posts in listing order
        """
        await self._ensure_authenticated()

        scanned_at = self._clock()
        started = time.monotonic()
        tickers: dict[str, list[TickerMention]] = {}
        posts: list[ScannedPost] = []
        total_comments = 0
        total_mentions = 0

        raw_posts = await self._client.get_hot_posts(community, limit)

        for post in raw_posts:
            post_text = normalize_text(post.text)
            post_tickers = self._detector.detect(post_text)
            total_mentions += self._record(
                tickers, post_tickers, post_text, "post", post, community
            )

            comments: list[RawComment] = []
            try:
                comments = await self._client.get_comments(post.id, community)
            except AuthenticationError:
                raise
            except Exception as e:
                logger.warning(
                    "Comment fetch failed",
                    community=community,
                    post_id=post.id,
                    error=str(e),
                )

            scanned_comments: list[ScannedComment] = []
            for comment in comments:
                comment_text = normalize_text(comment.body)
                comment_tickers = self._detector.detect(comment_text)
                scanned_comments.append(
                    ScannedComment(comment=comment, tickers=comment_tickers)
                )
                total_mentions += self._record(
                    tickers, comment_tickers, comment_text, "comment", comment, community
                )

            total_comments += len(comments)
            posts.append(
                ScannedPost(post=post, tickers=post_tickers, comments=scanned_comments)
            )

        stats = ScanStats(
            total_posts=len(posts),
            total_comments=total_comments,
            unique_tickers=len(tickers),
            total_mentions=total_mentions,
            community_breakdown={community: total_mentions},
        )

        elapsed = time.monotonic() - started
        self._metrics.record_scan(community, "success", latency=elapsed)
        logger.info(
            "Community scanned",
            community=community,
            posts=stats.total_posts,
            comments=stats.total_comments,
            unique_tickers=stats.unique_tickers,
            mentions=stats.total_mentions,
            elapsed_seconds=round(elapsed, 2),
        )

        return ScanResult(
            community=community,
            scanned_at=scanned_at,
            posts=posts,
            tickers=tickers,
            stats=stats,
        )

    async def scan_communities(
        self,
        communities: list[str],
        limit: int = 25,
    ) -> list[ScanResult]:
        """
        Scan communities one after another.

        A community that fails yields an empty ScanResult with `error`
        set; the remaining communities are still scanned.
        """
        results: list[ScanResult] = []

        for community in communities:
            try:
                results.append(await self.scan_community(community, limit))
            except Exception as e:
                logger.error(
                    "Community scan failed",
                    community=community,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._metrics.record_scan(community, "error")
                results.append(
                    ScanResult(
                        community=community,
                        scanned_at=self._clock(),
                        error=str(e) or type(e).__name__,
                    )
                )

        return results


def summarize(results: list[ScanResult], top: int = 10) -> ScanSummary:
    """
    Roll a batch of scan results up into one summary.

    Unique tickers are counted across the whole batch, so a ticker seen
    in two communities counts once.
    """
    mention_counts: Counter[str] = Counter()
    summary = ScanSummary(
        communities=[r.community for r in results],
        scanned_at=min((r.scanned_at for r in results), default=_utc_now()),
    )

    for result in results:
        if result.error is not None:
            summary.failed[result.community] = result.error
            continue
        summary.total_posts += result.stats.total_posts
        summary.total_comments += result.stats.total_comments
        summary.total_mentions += result.stats.total_mentions
        for ticker, mentions in result.tickers.items():
            mention_counts[ticker] += len(mentions)

    summary.unique_tickers = len(mention_counts)
    summary.top_tickers = mention_counts.most_common(top)
    return summary
