"""Data ingestion module - Reddit client, schemas, and preprocessing."""

from meme_radar.ingestion.http_client import (
    AuthenticationError,
    HTTPClientError,
    RateLimitError,
)
from meme_radar.ingestion.schemas import RawComment, RawPost

__all__ = [
    "RawPost",
    "RawComment",
    "HTTPClientError",
    "RateLimitError",
    "AuthenticationError",
]
