"""Storage layer - PostgreSQL connection management."""

from meme_radar.storage.database import Database

__all__ = ["Database"]
