"""
Reddit API client for hot listings and comment trees.

Talks to the OAuth API with the client-credentials flow. Handles:
- Lazy token acquisition and refresh before expiry
- A sliding-window request budget (100 requests / 60s by default)
- A 5-minute response cache keyed by listing or post
- One retry on transient failures via HTTPClient

The client is an explicitly constructed object. Callers own its lifetime
and pass it to the Scanner, usually through `async with`.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx

from meme_radar.config.settings import get_settings
from meme_radar.ingestion.cache import TTLCache
from meme_radar.ingestion.http_client import (
    AuthenticationError,
    HTTPClient,
    HTTPClientError,
    RateLimitError,
    RequestBudget,
    RetryConfig,
)
from meme_radar.ingestion.schemas import RawComment, RawPost
from meme_radar.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

# Reddit API endpoints
REDDIT_API_BASE = "https://oauth.reddit.com"
REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
REDDIT_WEB_BASE = "https://reddit.com"

# Comment bodies that carry no text
_EMPTY_BODIES = frozenset({"", "[deleted]", "[removed]"})


def _timestamp(value: Any) -> datetime:
    try:
        return datetime.fromtimestamp(float(value or 0), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return datetime.fromtimestamp(0, tz=timezone.utc)


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _permalink(path: Any) -> str:
    return f"{REDDIT_WEB_BASE}{path}" if isinstance(path, str) and path else ""


def _text(value: Any) -> str | None:
    """String fields may be null or missing. Any other type marks the unit malformed."""
    if value is None:
        return ""
    return value if isinstance(value, str) else None


def _name(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def parse_listing(payload: Any, community: str) -> list[RawPost]:
    """
    Parse a hot listing payload into posts.

    A payload without `data.children` yields an empty list. Children
    without an id, or whose title or self text is not a string, are
    skipped.
    """
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list):
        return []

    posts: list[RawPost] = []
    for child in children:
        post = child.get("data") if isinstance(child, dict) else None
        if not isinstance(post, dict) or not post.get("id"):
            continue
        title = _text(post.get("title"))
        body = _text(post.get("selftext"))
        if title is None or body is None:
            logger.debug(f"Skipping malformed post {post['id']!r} in r/{community}")
            continue
        posts.append(
            RawPost(
                id=str(post["id"]),
                community=_name(post.get("subreddit"), community),
                title=title,
                body=body,
                author=_name(post.get("author"), "[deleted]"),
                upvotes=_int(post.get("ups")),
                created_at=_timestamp(post.get("created_utc")),
                permalink=_permalink(post.get("permalink")),
            )
        )
    return posts


def flatten_comments(
    payload: Any,
    post_id: str,
    community: str = "",
) -> list[RawComment]:
    """
    Flatten a comments payload into a depth-first list.

    The payload is `[post_listing, comment_listing]`. Only `t1` children
    are kept. Deleted, removed and empty comments are dropped but their
    replies are still walked. So are comments whose body is not a
    string. A comment's post id comes from its
    `link_id`; when that is missing the parent's post id is used.
    """
    if not isinstance(payload, list) or len(payload) < 2:
        return []
    listing = payload[1]
    data = listing.get("data") if isinstance(listing, dict) else None
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list):
        return []

    comments: list[RawComment] = []
    _walk(children, post_id, community, comments)
    return comments


def _walk(
    children: list[Any],
    post_id: str,
    community: str,
    out: list[RawComment],
) -> None:
    for child in children:
        if not isinstance(child, dict):
            continue
        kind = child.get("kind")
        if kind and kind != "t1":
            continue
        comment = child.get("data")
        if not isinstance(comment, dict):
            continue

        link_id = comment.get("link_id")
        parent_post_id = (
            link_id.removeprefix("t3_") if isinstance(link_id, str) and link_id else post_id
        )

        body = _text(comment.get("body"))
        if body is None:
            logger.debug(f"Skipping malformed comment {comment.get('id')!r} on post {post_id}")
        elif comment.get("id") and body.strip() not in _EMPTY_BODIES:
            out.append(
                RawComment(
                    id=str(comment["id"]),
                    post_id=parent_post_id,
                    community=_name(comment.get("subreddit"), community),
                    body=body,
                    author=_name(comment.get("author"), "[deleted]"),
                    upvotes=_int(comment.get("ups")),
                    created_at=_timestamp(comment.get("created_utc")),
                    permalink=_permalink(comment.get("permalink")),
                )
            )

        replies = comment.get("replies")
        if isinstance(replies, dict):
            reply_data = replies.get("data")
            reply_children = reply_data.get("children") if isinstance(reply_data, dict) else None
            if isinstance(reply_children, list):
                _walk(reply_children, parent_post_id, community, out)


class RedditClient:
    """
    Authenticated Reddit API client.

    Every logical call is recorded against the request budget before the
    cache is consulted, so cache hits count too. On a cache miss the
    token is ensured and the request is sent through HTTPClient.

    Example:
        async with RedditClient() as client:
            posts = await client.get_hot_posts("wallstreetbets", limit=25)
            comments = await client.get_comments(posts[0].id)
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        user_agent: str | None = None,
        http_client: HTTPClient | None = None,
        cache: TTLCache | None = None,
        budget: RequestBudget | None = None,
        enforce_budget: bool | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize Reddit client.

        Args:
            client_id: Reddit OAuth client ID
            client_secret: Reddit OAuth client secret
            user_agent: User agent string sent with every request
            http_client: HTTP transport, built from settings if None
            cache: Response cache, built from settings if None
            budget: Request budget, built from settings if None
            enforce_budget: Refuse cache misses while the budget is spent
            clock: Monotonic clock used for token expiry
        """
        settings = get_settings()
        self._client_id = client_id or settings.reddit_client_id
        self._client_secret = client_secret or settings.reddit_client_secret
        self._user_agent = user_agent or settings.reddit_user_agent
        self._clock = clock

        self._http = http_client or HTTPClient(
            retry_config=RetryConfig(
                max_retries=settings.max_http_retries,
                retry_delay=settings.retry_delay_seconds,
            ),
            timeout=settings.http_timeout_seconds,
        )
        self._cache = (
            cache
            if cache is not None
            else TTLCache(ttl=settings.response_cache_ttl_seconds, clock=clock)
        )
        self._budget = budget or RequestBudget(
            capacity=settings.reddit_request_budget,
            window_seconds=settings.reddit_budget_window_seconds,
            clock=clock,
        )
        self._enforce_budget = (
            settings.reddit_enforce_budget if enforce_budget is None else enforce_budget
        )
        self._owns_transport = False

        self._access_token: str | None = None
        self._token_expires_at: float = 0.0
        self._metrics = get_metrics()

        if not self._client_id or not self._client_secret:
            logger.warning(
                "Reddit API credentials not configured. "
                "Client will not be able to authenticate."
            )

    async def __aenter__(self) -> "RedditClient":
        await self._ensure_open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_open(self) -> None:
        if not self._http.is_open:
            await self._http.__aenter__()
            self._owns_transport = True

    async def close(self) -> None:
        """Close the underlying transport if this client opened it."""
        if self._owns_transport:
            await self._http.__aexit__(None, None, None)
            self._owns_transport = False

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None and self._clock() < self._token_expires_at

    # ── Auth ────────────────────────────────────────────────

    async def authenticate(self) -> str:
        """
        Exchange client credentials for a bearer token.

        The token expires `min(60, lifetime / 2)` seconds before Reddit's
        stated lifetime. The exchange is never retried.

        Returns:
            Access token string

        Raises:
            AuthenticationError: On missing credentials, a non-2xx response,
                a network failure, or a response without `access_token`
        """
        if not self._client_id or not self._client_secret:
            raise AuthenticationError("Reddit API credentials not configured")

        await self._ensure_open()
        try:
            response = await self._http.post(
                REDDIT_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                headers={"User-Agent": self._user_agent},
                auth=(self._client_id, self._client_secret),
                retry=False,
            )
        except HTTPClientError as e:
            self._metrics.record_upstream_request("token", e.status_code or "error")
            raise AuthenticationError(
                f"Reddit authentication failed: {e}",
                status_code=e.status_code,
                response_body=e.response_body,
            ) from e
        except httpx.HTTPError as e:
            self._metrics.record_upstream_request("token", "error")
            raise AuthenticationError(f"Reddit authentication failed: {e}") from e

        self._metrics.record_upstream_request("token", response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = None
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError(
                "Reddit authentication failed: response has no access_token",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            lifetime = float(data.get("expires_in") or 3600)
        except (TypeError, ValueError):
            lifetime = 3600.0
        safety_buffer = min(60.0, lifetime * 0.5)

        self._access_token = token
        self._token_expires_at = self._clock() + lifetime - safety_buffer
        logger.debug(f"Reddit token acquired, valid for {lifetime - safety_buffer:.0f}s")
        return token

    async def _ensure_token(self) -> str:
        if self._access_token and self._clock() < self._token_expires_at:
            return self._access_token
        return await self.authenticate()

    def invalidate_token(self) -> None:
        self._access_token = None
        self._token_expires_at = 0.0

    # ── Requests ────────────────────────────────────────────

    async def _get_json(
        self,
        path: str,
        cache_key: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Budget, cache, auth, then request.

        Raises:
            RateLimitError: On a 429 response, or locally when the budget
                was already spent and the call misses the cache
            AuthenticationError: If a token cannot be obtained
            HTTPClientError: On other upstream failures
        """
        exhausted = self._budget.is_exhausted()
        retry_after = self._budget.seconds_until_available() if exhausted else None
        self._budget.record()
        self._metrics.set_budget_remaining(self._budget.remaining())

        cached = self._cache.get(cache_key)
        if cached is not None:
            self._metrics.record_cache(hit=True)
            return cached
        self._metrics.record_cache(hit=False)

        if exhausted and self._enforce_budget:
            raise RateLimitError(
                f"Request budget exhausted for {endpoint}, retry after {retry_after:.1f}s",
                status_code=None,
                retry_after=retry_after,
            )

        token = await self._ensure_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "User-Agent": self._user_agent,
        }

        try:
            response = await self._http.get(
                f"{REDDIT_API_BASE}{path}",
                params=params,
                headers=headers,
            )
        except HTTPClientError as e:
            self._metrics.record_upstream_request(endpoint, e.status_code or "error")
            if e.status_code == 401:
                self.invalidate_token()
            raise

        self._metrics.record_upstream_request(endpoint, response.status_code)

        try:
            payload = response.json()
        except ValueError:
            logger.warning(f"Malformed JSON from {path}")
            return None

        self._cache.set(cache_key, payload)
        return payload

    async def get_hot_posts(self, community: str, limit: int = 25) -> list[RawPost]:
        """
        Fetch the hot listing of a community.

        Args:
            community: Subreddit name without the r/ prefix
            limit: Maximum number of posts

        Returns:
            Posts in listing order, empty for a malformed payload
        """
        payload = await self._get_json(
            f"/r/{community}/hot",
            cache_key=f"posts:{community}:{limit}",
            endpoint="hot",
            params={"limit": limit},
        )
        posts = parse_listing(payload, community)
        logger.debug(f"Fetched {len(posts)} posts from r/{community}")
        return posts

    async def get_comments(self, post_id: str, community: str = "") -> list[RawComment]:
        """
        Fetch and flatten the comment tree of a post.

        Args:
            post_id: Reddit post ID
            community: Fallback community for comments without a subreddit

        Returns:
            Comments in depth-first order, empty for a malformed payload
        """
        payload = await self._get_json(
            f"/comments/{post_id}",
            cache_key=f"comments:{post_id}",
            endpoint="comments",
        )
        return flatten_comments(payload, post_id, community)

    # ── Budget / housekeeping ───────────────────────────────

    def is_rate_limited(self) -> bool:
        """True when the trailing window already holds a full budget of calls."""
        return self._budget.is_exhausted()

    def remaining_requests(self) -> int:
        return self._budget.remaining()

    def clear_cache(self) -> None:
        self._cache.clear()

    async def health_check(self) -> bool:
        """Check that credentials can be exchanged for a token."""
        if not self._client_id or not self._client_secret:
            return False
        try:
            await self.authenticate()
            return True
        except AuthenticationError as e:
            logger.warning(f"Reddit health check failed: {e}")
            return False
