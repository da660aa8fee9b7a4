"""Static ticker reference data for mention detection.

This module provides:
1. A curated allow-list of ticker symbols that retail communities discuss
2. A deny-list of common words and acronyms that look like tickers
3. Helpers to normalize and validate symbols before they become storage keys

Detection is closed-world: a candidate is accepted only when it is in
KNOWN_TICKERS and not in TICKER_DENYLIST. Deny-list entries win, so
real symbols such as ALL or IT are never reported from ordinary prose.
"""

import re

# Ticker symbols accepted by the detector
KNOWN_TICKERS: frozenset[str] = frozenset({
    # Meme / retail favourites
    "GME",   # GameStop
    "AMC",   # AMC Entertainment
    "BB",    # BlackBerry
    "NOK",   # Nokia
    "BBBY",  # Bed Bath & Beyond (legacy)
    "KOSS",  # Koss
    "EXPR",  # Express
    "PLTR",  # Palantir
    "SOFI",  # SoFi
    "HOOD",  # Robinhood
    "TLRY",  # Tilray
    "SNDL",  # SNDL
    "CLOV",  # Clover Health
    "WISH",  # ContextLogic
    "SPCE",  # Virgin Galactic
    "RKT",   # Rocket Companies
    "CLF",   # Cleveland-Cliffs
    "MVIS",  # MicroVision
    "WKHS",  # Workhorse
    "RIVN",  # Rivian
    "LCID",  # Lucid
    "NIO",   # NIO
    "DJT",   # Trump Media
    "CVNA",  # Carvana
    "UPST",  # Upstart
    "AFRM",  # Affirm
    "RBLX",  # Roblox
    "DKNG",  # DraftKings
    "CHWY",  # Chewy
    "BYND",  # Beyond Meat
    "PTON",  # Peloton
    "ROKU",  # Roku
    "SNAP",  # Snap
    "UBER",  # Uber
    "LYFT",  # Lyft
    "ABNB",  # Airbnb
    "SHOP",  # Shopify
    "SQ",    # Block
    "PYPL",  # PayPal
    "COIN",  # Coinbase
    "MSTR",  # MicroStrategy
    "MARA",  # Marathon Digital
    "RIOT",  # Riot Platforms
    "SMCI",  # Super Micro Computer
    "ARM",   # Arm Holdings
    "RDDT",  # Reddit

    # Mega caps
    "AAPL",  # Apple
    "MSFT",  # Microsoft
    "GOOG",  # Alphabet C
    "GOOGL", # Alphabet A
    "AMZN",  # Amazon
    "META",  # Meta Platforms
    "TSLA",  # Tesla
    "NVDA",  # NVIDIA
    "NFLX",  # Netflix
    "BRK",   # Berkshire Hathaway
    "AVGO",  # Broadcom
    "ORCL",  # Oracle
    "CRM",   # Salesforce
    "ADBE",  # Adobe

    # Semis
    "AMD",   # Advanced Micro Devices
    "INTC",  # Intel
    "TSM",   # Taiwan Semiconductor
    "MU",    # Micron
    "QCOM",  # Qualcomm
    "ASML",  # ASML
    "AMAT",  # Applied Materials
    "MRVL",  # Marvell

    # Financials
    "JPM",   # JPMorgan Chase
    "BAC",   # Bank of America
    "WFC",   # Wells Fargo
    "GS",    # Goldman Sachs
    "MS",    # Morgan Stanley
    "C",     # Citigroup
    "V",     # Visa
    "MA",    # Mastercard
    "SCHW",  # Charles Schwab

    # Industrials / energy / consumer
    "F",     # Ford
    "GM",    # General Motors
    "T",     # AT&T
    "VZ",    # Verizon
    "BA",    # Boeing
    "DIS",   # Disney
    "NKE",   # Nike
    "SBUX",  # Starbucks
    "WMT",   # Walmart
    "COST",  # Costco
    "TGT",   # Target
    "KO",    # Coca-Cola
    "PEP",   # PepsiCo
    "XOM",   # Exxon Mobil
    "CVX",   # Chevron
    "OXY",   # Occidental
    "PFE",   # Pfizer
    "MRNA",  # Moderna
    "JNJ",   # Johnson & Johnson
    "LLY",   # Eli Lilly
    "NVO",   # Novo Nordisk
    "CCL",   # Carnival
    "AAL",   # American Airlines
    "UAL",   # United Airlines
    "DAL",   # Delta Air Lines

    # Index / leveraged ETFs
    "SPY",   # SPDR S&P 500
    "QQQ",   # Invesco QQQ
    "IWM",   # iShares Russell 2000
    "DIA",   # SPDR Dow Jones
    "VOO",   # Vanguard S&P 500
    "VTI",   # Vanguard Total Market
    "TQQQ",  # ProShares UltraPro QQQ
    "SQQQ",  # ProShares UltraPro Short QQQ
    "UVXY",  # ProShares Ultra VIX
    "SOXL",  # Direxion Semiconductor Bull 3x
    "ARKK",  # ARK Innovation
    "GLD",   # SPDR Gold
    "SLV",   # iShares Silver
    "TLT",   # iShares 20+ Year Treasury
})

# Words and acronyms that are syntactically plausible tickers but are not
COMMON_WORDS: frozenset[str] = frozenset({
    "FOR", "IT", "ARE", "OR", "ON", "BY", "AT", "TO", "IN", "A", "I",
    "THE", "IS", "AN", "AS", "BE", "OF", "AND", "BUT", "NOT", "YOU",
    "ALL", "CAN", "HER", "WAS", "ONE", "OUR", "OUT", "DAY", "GET", "HAS",
    "HIM", "HIS", "HOW", "MAN", "NEW", "NOW", "OLD", "SEE", "TWO", "WAY",
    "WHO", "BOY", "DID", "ITS", "LET", "PUT", "SAY", "SHE", "TOO", "USE",
    "DAD", "MOM", "YES", "NO", "OK", "SO", "GO", "UP", "MY", "ME", "WE",
    "BIG", "RUN", "LOW", "HIGH", "REAL", "GOOD", "NEXT", "LOVE", "PLAY",
    "CASH", "FUND", "GAIN", "MOVE", "RIDE", "HUGE", "FAST", "OPEN",
})

INTERNET_SLANG: frozenset[str] = frozenset({
    "LOL", "OMG", "WTF", "TBH", "IMO", "IMHO", "FWIW", "YMMV", "TL", "DR",
    "TLDR", "ELI", "AMA", "TIL", "PSA", "FYI", "ASAP", "DIY", "FAQ", "RIP",
    "EDIT", "IIRC", "AFAIK", "LMAO", "ROFL", "SMH", "NGL", "IRL", "GG",
})

MARKET_JARGON: frozenset[str] = frozenset({
    "CEO", "CFO", "CTO", "COO", "VP", "HR", "PR", "AI", "ML", "API", "SDK",
    "UI", "UX", "PM", "AM", "IPO", "ATH", "ATL", "EPS", "PE", "ETF", "SEC",
    "FDA", "FED", "USD", "EUR", "GDP", "CPI", "OTC", "ITM", "OTM", "ATM",
    "IV", "DD", "YOLO", "HODL", "FOMO", "FUD", "MOASS", "LFG", "DCA", "EOD",
    "EOW", "WSB", "US", "USA", "UK", "EU", "NYSE", "IRA", "ROTH", "TA",
})

TICKER_DENYLIST: frozenset[str] = COMMON_WORDS | INTERNET_SLANG | MARKET_JARGON

_SYMBOL_RE = re.compile(r"^[A-Z]{1,5}$")


def normalize_ticker(symbol: str) -> str:
    """
    Normalize a ticker for use as a storage key.

    Args:
        symbol: Raw ticker in any case, optionally with a leading "$"

    Returns:
        Upper-cased symbol

    Raises:
        ValueError: If the symbol is not 1-5 letters after normalization
    """
    normalized = (symbol or "").strip().lstrip("$").upper()
    if not _SYMBOL_RE.match(normalized):
        raise ValueError(f"Invalid ticker symbol: {symbol!r}")
    return normalized

