from __future__ import annotations

import re

MAX_TICKER_LENGTH = 20
MAX_QUERY_LENGTH = 50

_TICKER_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9.\-:^]")
_QUERY_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9 .\-]")
_WHITESPACE_RE = re.compile(r"\s+")
_CRYPTO_SUFFIX = "-USD"
_CRYPTO_PREFIX = "X:"


def sanitize_ticker(raw: str | None) -> str:
    """Return the upper-cased ticker with disallowed characters removed.

    An empty result means the input cannot name any ticker.
    """
    if not raw:
        return ""
    return _TICKER_DISALLOWED_RE.sub("", raw)[:MAX_TICKER_LENGTH].upper()


def sanitize_query(raw: str | None) -> str:
    if not raw:
        return ""
    cleaned = _WHITESPACE_RE.sub(" ", raw)
    cleaned = _QUERY_DISALLOWED_RE.sub("", cleaned).strip()
    return cleaned[:MAX_QUERY_LENGTH].strip()


def to_vendor_symbol(ticker: str) -> str:
    # BTC-USD -> X:BTCUSD
    if ticker.endswith(_CRYPTO_SUFFIX) and len(ticker) > len(_CRYPTO_SUFFIX):
        base = ticker[: -len(_CRYPTO_SUFFIX)]
        return f"{_CRYPTO_PREFIX}{base}USD"
    return ticker
