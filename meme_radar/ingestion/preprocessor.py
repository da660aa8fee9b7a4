"""
Text preprocessing and ticker detection.

Components:
- clean_text / clean_reddit_markdown / normalize_text: Text normalization
- TickerDetector: Closed-world ticker extraction from free text
- TickerStats: Debug breakdown of a detection run

Detection is rule-based and pure: the same text always yields the same
tickers in the same order.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from meme_radar.config.tickers import KNOWN_TICKERS, TICKER_DENYLIST

logger = logging.getLogger(__name__)


# ── Text normalization ──────────────────────────────────


def clean_text(text: str) -> str:
    """
    Clean text content by removing excessive whitespace and normalizing.

    Args:
        text: Raw text content

    Returns:
        Cleaned text
    """
    # Remove excessive whitespace
    text = " ".join(text.split())

    # Remove null bytes and other control characters
    text = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)

    return text.strip()


def clean_reddit_markdown(text: str) -> str:
    """
    Strip Reddit-flavoured markdown, keeping the readable text.

    Links keep only their label, so a URL inside a link target never
    reaches ticker detection.
    """
    # Blockquotes
    text = re.sub(r'^>+\s*', '', text, flags=re.MULTILINE)

    # Code blocks and inline code
    text = re.sub(r'```[^`]*```', '', text)
    text = re.sub(r'`[^`]+`', '', text)

    # Links: [label](target) -> label
    text = re.sub(r'\[([^\]]+)\]\([^)]+\)', r'\1', text)

    # Bold / italic / strikethrough
    text = re.sub(r'\*{1,2}([^*]+)\*{1,2}', r'\1', text)
    text = re.sub(r'(?<!\w)_{1,2}([^_]+)_{1,2}(?!\w)', r'\1', text)
    text = re.sub(r'~~([^~]+)~~', r'\1', text)

    # Headings, horizontal rules, escaped characters
    text = re.sub(r'^#{1,6}\s+', '', text, flags=re.MULTILINE)
    text = re.sub(r'^[-*_]{3,}\s*$', '', text, flags=re.MULTILINE)
    text = re.sub(r'\\([\\`*_{}\[\]()#+\-.!$])', r'\1', text)

    # HTML entities the API leaves encoded
    text = text.replace("&amp;", "&").replace("&lt;", "<").replace("&gt;", ">")
    text = text.replace("&#x200B;", "")

    return text


def normalize_text(text: str | None) -> str:
    """Markdown stripping followed by whitespace/control-character cleanup."""
    if not text:
        return ""
    return clean_text(clean_reddit_markdown(text))


# ── Ticker detection ────────────────────────────────────


@dataclass
class TickerStats:
    """Breakdown of one detection run, for debugging the lists."""

    candidates: list[str] = field(default_factory=list)
    valid: list[str] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)
    denied: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidates": self.candidates,
            "valid": self.valid,
            "unknown": self.unknown,
            "denied": self.denied,
        }


class TickerDetector:
    """
    Extract ticker symbols from free text.

    Two patterns produce candidates:
    1. Cashtags: "$" followed by 1-5 letters, any case ($gme -> GME)
    2. Standalone words of 2-5 upper-case letters (GME, TSLA)

    Standalone candidates that sit inside a URL are dropped. A candidate is
    accepted only when it is not deny-listed and is in the allow-list.
    Results are deduplicated in order of first appearance.
    """

    CASHTAG_PATTERN = re.compile(r'\$([A-Za-z]{1,5})\b')
    STANDALONE_PATTERN = re.compile(r'\b([A-Z]{2,5})\b')

    URL_PREFIX_MARKERS = ("http", "www.", "://")
    URL_SUFFIX_MARKERS = (".com", ".net", ".org", ".io")
    URL_CONTEXT_CHARS = 15

    def __init__(
        self,
        known_tickers: frozenset[str] | set[str] | None = None,
        denylist: frozenset[str] | set[str] | None = None,
    ):
        """
        Initialize detector.

        Args:
            known_tickers: Allow-list, defaults to KNOWN_TICKERS
            denylist: Deny-list, defaults to TICKER_DENYLIST
        """
        self.known_tickers = frozenset(
            t.upper() for t in (KNOWN_TICKERS if known_tickers is None else known_tickers)
        )
        self.denylist = frozenset(
            w.upper() for w in (TICKER_DENYLIST if denylist is None else denylist)
        )

    def _in_url(self, text: str, start: int, end: int) -> bool:
        before = text[max(0, start - self.URL_CONTEXT_CHARS):start].lower()
        after = text[start:end + self.URL_CONTEXT_CHARS].lower()
        return any(m in before for m in self.URL_PREFIX_MARKERS) or any(
            m in after for m in self.URL_SUFFIX_MARKERS
        )

    def _occurrences(self, text: str) -> list[tuple[int, str]]:
        """All candidate occurrences as (position, symbol), in text order."""
        found: dict[int, str] = {}

        for match in self.CASHTAG_PATTERN.finditer(text):
            found[match.start(1)] = match.group(1).upper()

        for match in self.STANDALONE_PATTERN.finditer(text):
            # "$GME" also matches here; the cashtag already covers it
            if match.start(1) in found:
                continue
            if self._in_url(text, match.start(1), match.end(1)):
                continue
            found[match.start(1)] = match.group(1)

        return sorted(found.items())

    def extract_candidates(self, text: str | None) -> list[str]:
        """Unvalidated candidates, deduplicated in order of appearance."""
        if not text:
            return []
        return list(dict.fromkeys(symbol for _, symbol in self._occurrences(text)))

    def is_valid(self, symbol: str | None) -> bool:
        if not symbol:
            return False
        normalized = symbol.upper().strip()
        if not normalized or normalized in self.denylist:
            return False
        return normalized in self.known_tickers

    def detect(self, text: str | None) -> list[str]:
        """
        Detect tickers mentioned in text.

        Args:
            text: Text to search

        Returns:
            Valid ticker symbols in order of first appearance
        """
        return [c for c in self.extract_candidates(text) if self.is_valid(c)]

    def counts(self, text: str | None) -> dict[str, int]:
        """Occurrences of each valid ticker, keyed in order of first appearance."""
        if not text:
            return {}
        counts: dict[str, int] = {}
        for _, symbol in self._occurrences(text):
            if self.is_valid(symbol):
                counts[symbol] = counts.get(symbol, 0) + 1
        return counts

    def stats(self, text: str | None) -> TickerStats:
        """Split the candidates into valid, unknown and deny-listed."""
        result = TickerStats(candidates=self.extract_candidates(text))
        for candidate in result.candidates:
            if candidate in self.denylist:
                result.denied.append(candidate)
            elif candidate in self.known_tickers:
                result.valid.append(candidate)
            else:
                result.unknown.append(candidate)
        return result
