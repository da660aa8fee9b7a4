"""
Raw source units fetched from Reddit.

These models are the only shape that leaves the Reddit client. They are
frozen: once a post or comment has been fetched, nothing downstream may
modify it. Mentions and aggregates are derived values built on top.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawPost(BaseModel):
    """A submission from a community's hot listing."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Reddit base36 post ID")
    community: str = Field(..., description="Subreddit name without the r/ prefix")
    title: str = ""
    body: str = Field(default="", description="Self text, empty for link posts")
    author: str = "[deleted]"
    upvotes: int = 0
    created_at: datetime
    permalink: str = Field(default="", description="Absolute URL to the post")

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def text(self) -> str:
        """Title and body joined for analysis."""
        return f"{self.title} {self.body}".strip()


class RawComment(BaseModel):
    """A single comment from a flattened comment tree."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    post_id: str = Field(..., description="ID of the post the comment belongs to")
    community: str = ""
    body: str = ""
    author: str = "[deleted]"
    upvotes: int = 0
    created_at: datetime
    permalink: str = ""

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
