"""Community scanning - turns Reddit listings into ticker mentions."""

from meme_radar.scanner.schemas import (
    ScannedComment,
    ScannedPost,
    ScanResult,
    ScanStats,
    ScanSummary,
    TickerMention,
)
from meme_radar.scanner.service import Scanner, summarize

__all__ = [
    "Scanner",
    "summarize",
    "ScanResult",
    "ScanStats",
    "ScanSummary",
    "ScannedPost",
    "ScannedComment",
    "TickerMention",
]
