"""
Command-line interface for meme-radar.

Usage:
    meme-radar scan -c wallstreetbets   # Scan now and print a summary
    meme-radar run                      # Run the scheduled scan service
    meme-radar trending                 # Rising tickers in the current bucket
    meme-radar fading                   # Falling tickers in the current bucket
    meme-radar details GME              # Current stats and 7-day history
    meme-radar evidence GME             # Top posts/comments behind a ticker
    meme-radar detect "text"            # Offline ticker + sentiment check
    meme-radar init-db                  # Create tables
    meme-radar prune                    # Delete expired rows
    meme-radar health                   # Check Reddit auth and Postgres
"""

import asyncio
import json
import os
import signal
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import click

from meme_radar.config.settings import get_settings
from meme_radar.observability.logging import setup_logging
from meme_radar.observability.metrics import get_metrics


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _run(factory: Callable[[], Awaitable[Any]]) -> Any:
    """Run a coroutine, turning unrecovered errors into a non-zero exit."""
    try:
        return asyncio.run(factory())
    except Exception as e:
        click.echo(click.style(f"Command failed: {e}", fg="red"), err=True)
        sys.exit(1)


@asynccontextmanager
async def _aggregator() -> AsyncIterator[Any]:
    from meme_radar.aggregation.repository import AggregateRepository
    from meme_radar.aggregation.service import MentionAggregator
    from meme_radar.storage.database import Database

    async with Database() as db:
        yield MentionAggregator(AggregateRepository(db))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Meme Radar - ticker mentions and sentiment from Reddit communities."""
    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command()
@click.option(
    "-c", "--community", "communities", multiple=True,
    help="Community to scan (repeatable, defaults from settings)",
)
@click.option("--limit", default=None, type=int, help="Hot posts per community")
@click.option("--persist/--no-persist", default=False, help="Write aggregates to Postgres")
def scan(communities: tuple[str, ...], limit: int | None, persist: bool) -> None:
    """Scan communities now and print a summary."""
    from meme_radar.ingestion.reddit_client import RedditClient
    from meme_radar.scanner.service import Scanner, summarize

    settings = get_settings()
    names = list(communities) or settings.default_communities
    post_limit = limit or settings.scan_post_limit

    async def run():
        async with RedditClient() as client:
            results = await Scanner(client).scan_communities(names, post_limit)

        summary = summarize(results).to_dict()
        if persist:
            async with _aggregator() as aggregator:
                written = await aggregator.persist(results)
            summary["persisted"] = len(written)
        _echo_json(summary)

    _run(run)


@main.command()
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def run(metrics: bool) -> None:
    """Run the scheduled scan service."""
    from meme_radar.aggregation.repository import AggregateRepository
    from meme_radar.aggregation.service import MentionAggregator
    from meme_radar.ingestion.reddit_client import RedditClient
    from meme_radar.scanner.service import Scanner
    from meme_radar.services.scan_service import ScanService
    from meme_radar.storage.database import Database

    async def serve():
        if metrics:
            get_metrics().start_server()

        async with RedditClient() as client, Database() as db:
            service = ScanService(Scanner(client), MentionAggregator(AggregateRepository(db)))

            # Handle shutdown signals
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, service.request_stop)

            await service.start()

    _run(serve)


@main.command()
@click.option("--limit", default=10, help="Number of tickers")
def trending(limit: int) -> None:
    """Print tickers rising fastest in the current bucket."""

    async def run():
        async with _aggregator() as aggregator:
            entries = await aggregator.get_trending(limit=limit)
        _echo_json([e.to_dict() for e in entries])

    _run(run)


@main.command()
@click.option("--limit", default=10, help="Number of tickers")
def fading(limit: int) -> None:
    """Print tickers falling fastest in the current bucket."""

    async def run():
        async with _aggregator() as aggregator:
            entries = await aggregator.get_fading(limit=limit)
        _echo_json([e.to_dict() for e in entries])

    _run(run)


@main.command()
@click.argument("ticker")
def details(ticker: str) -> None:
    """Print current-bucket stats and history for TICKER."""

    async def run():
        async with _aggregator() as aggregator:
            return await aggregator.get_details(ticker)

    result = _run(run)
    if result is None:
        click.echo(f"No data for {ticker.upper()} in the current bucket", err=True)
        sys.exit(1)
    _echo_json(result.to_dict())


@main.command()
@click.argument("ticker")
@click.option("--limit", default=10, help="Number of evidence rows")
def evidence(ticker: str, limit: int) -> None:
    """Print the top posts and comments behind TICKER."""

    async def run():
        async with _aggregator() as aggregator:
            rows = await aggregator.get_evidence(ticker, limit=limit)
        _echo_json([row.to_dict() for row in rows])

    _run(run)


@main.command()
@click.argument("text")
def detect(text: str) -> None:
    """Detect tickers in TEXT and score its sentiment, without network calls."""
    from meme_radar.ingestion.preprocessor import TickerDetector, normalize_text
    from meme_radar.sentiment.service import SentimentScorer

    normalized = normalize_text(text)
    detector = TickerDetector()
    scorer = SentimentScorer()

    _echo_json({
        "text": normalized,
        "tickers": detector.detect(normalized),
        "counts": detector.counts(normalized),
        "stats": detector.stats(normalized).to_dict(),
        "sentiment": scorer.score(normalized).to_dict(),
    })


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from meme_radar.aggregation.repository import AggregateRepository
    from meme_radar.storage.database import Database

    async def run():
        async with Database() as db:
            await AggregateRepository(db).create_tables()
        click.echo("Database initialized successfully")

    _run(run)


@main.command()
def prune() -> None:
    """Delete expired aggregates and evidence."""

    async def run():
        async with _aggregator() as aggregator:
            deleted = await aggregator.prune()
        click.echo(f"Deleted {deleted} expired rows")

    _run(run)


@main.command()
def health() -> None:
    """Check Reddit authentication and the database."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}

        # Check Reddit
        settings = get_settings()
        results["reddit_configured"] = settings.reddit_configured
        try:
            from meme_radar.ingestion.reddit_client import RedditClient
            async with RedditClient() as client:
                results["reddit_auth"] = await client.health_check()
        except Exception as e:
            results["reddit_auth"] = False
            logger.error("Reddit health check failed", error=str(e))

        # Check PostgreSQL
        try:
            from meme_radar.storage.database import Database
            async with Database() as db:
                results["postgres"] = await db.health_check()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if not status:
                all_healthy = False

        click.echo("-" * 40)
        return all_healthy

    if _run(check):
        click.echo(click.style("All services healthy!", fg="green"))
        sys.exit(0)
    click.echo(click.style("Some services unhealthy!", fg="red"))
    sys.exit(1)


if __name__ == "__main__":
    main()
