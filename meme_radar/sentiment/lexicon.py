"""
Retail-trading sentiment lexicon.

Each Keyword carries a label, a weight (1-3) and either plain terms or an
explicit regex. Plain terms are matched case-insensitively:
- single words on word boundaries ("yolo" does not match "yolonaut")
- phrases and emoji as substrings, with any run of whitespace between words

Explicit patterns cover plurals, verb forms and the "short" / "short
squeeze" split.
"""

import re
from dataclasses import dataclass, field

_WORD_RE = re.compile(r"^\w+$")


def _term_pattern(term: str) -> str:
    if _WORD_RE.match(term):
        return rf"\b{re.escape(term)}\b"
    return r"\s+".join(re.escape(part) for part in term.split())


@dataclass(frozen=True)
class Keyword:
    """A weighted lexicon entry."""

    label: str
    weight: int
    terms: tuple[str, ...] = ()
    pattern: str | None = None
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not 1 <= self.weight <= 3:
            raise ValueError(f"Keyword weight must be 1-3, got {self.weight}")
        if self.pattern is None and not self.terms:
            raise ValueError(f"Keyword {self.label!r} needs terms or a pattern")
        source = self.pattern or "|".join(_term_pattern(t) for t in self.terms)
        object.__setattr__(self, "regex", re.compile(source, re.IGNORECASE))

    def count(self, text: str) -> int:
        """Number of non-overlapping matches in text."""
        return sum(1 for _ in self.regex.finditer(text))


BULLISH_KEYWORDS: tuple[Keyword, ...] = (
    # Strong (3)
    Keyword("diamond hands", 3, pattern=r"diamond\s+hands?|💎\s*🙌"),
    Keyword("to the moon", 3, terms=("to the moon", "🚀")),
    Keyword("yolo", 3, terms=("yolo",)),
    Keyword("dd", 3, terms=("dd", "due diligence")),
    Keyword("hodl", 3, terms=("hodl",)),
    Keyword("short squeeze", 3, terms=("short squeeze",)),
    Keyword("gamma squeeze", 3, terms=("gamma squeeze",)),
    # Medium (2)
    Keyword("apes", 2, pattern=r"\bapes?\b|🦍"),
    Keyword("tendies", 2, terms=("tendies", "🍗")),
    Keyword("buy the dip", 2, terms=("buy the dip", "btfd")),
    Keyword("long", 2, terms=("long",)),
    Keyword("calls", 2, pattern=r"\bcalls?\b"),
    Keyword("brrr", 2, pattern=r"\bbrr+\b"),
    Keyword("bullish", 2, terms=("bullish",)),
    # Weak (1)
    Keyword("stonk", 1, pattern=r"\bstonks?\b"),
)

BEARISH_KEYWORDS: tuple[Keyword, ...] = (
    # Strong (3)
    Keyword("paper hands", 3, pattern=r"paper\s+hands?|📄\s*🙌"),
    Keyword("puts", 3, pattern=r"\bputs?\b"),
    Keyword("short", 3, pattern=r"\bshort\b(?!\s+squeeze)"),
    Keyword("dump", 3, pattern=r"\bdump(?:s|ing|ed)?\b"),
    Keyword("rug pull", 3, pattern=r"rug\s*pull(?:ed)?"),
    Keyword("crash", 3, pattern=r"\bcrash(?:es|ing|ed)?\b"),
    # Medium (2)
    Keyword("bag holder", 2, pattern=r"bag\s*holders?"),
    Keyword("fud", 2, terms=("fud",)),
    Keyword("bear", 2, pattern=r"\bbear(?:s|ish)?\b"),
)
