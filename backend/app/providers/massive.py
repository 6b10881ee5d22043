from __future__ import annotations

import datetime
from urllib.parse import quote, urlencode

import structlog

from app.cache import ResultCache
from app.providers.fetcher import Fetcher

logger = structlog.get_logger()

_SNAPSHOT_PATH = "/v2/snapshot/locale/us/markets/stocks/tickers/{symbol}"
_DETAILS_PATH = "/v3/reference/tickers/{symbol}"
_BARS_PATH = "/v2/aggs/ticker/{symbol}/range/1/day/{start}/{end}"
_SEARCH_PATH = "/v3/reference/tickers"
_BARS_LIMIT = 260


class MassiveClient:
    """Read-only client for the Massive (formerly Polygon.io) REST API.

    Every call goes through the result cache first; only successful
    responses are stored. Symbols and queries must already be sanitized,
    because they become part of the cache key.
    """

    def __init__(
        self,
        api_key: str,
        cache: ResultCache,
        fetcher: Fetcher,
        base_url: str = "https://api.massive.com",
    ) -> None:
        self._api_key = api_key
        self._cache = cache
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")

    def _build_url(self, path: str, params: dict[str, str] | None = None) -> str:
        query = dict(params or {})
        query["apiKey"] = self._api_key
        return f"{self._base_url}{path}?{urlencode(query)}"

    async def _get_json(self, cache_key: str, url: str) -> dict | None:
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("cache_hit", cache_key=cache_key)
            return cached
        result = await self._fetcher.fetch(url)
        if not result.ok or result.payload is None:
            return None
        self._cache.put(cache_key, result.payload)
        return result.payload

    async def get_snapshot(self, symbol: str) -> dict | None:
        url = self._build_url(_SNAPSHOT_PATH.format(symbol=quote(symbol, safe=":")))
        payload = await self._get_json(f"snapshot:{symbol}", url)
        if payload is None:
            return None
        ticker = payload.get("ticker")
        return ticker if isinstance(ticker, dict) else None

    async def get_details(self, symbol: str) -> dict | None:
        url = self._build_url(_DETAILS_PATH.format(symbol=quote(symbol, safe=":")))
        payload = await self._get_json(f"details:{symbol}", url)
        if payload is None:
            return None
        results = payload.get("results")
        return results if isinstance(results, dict) else None

    async def get_daily_bars(
        self, symbol: str, start: datetime.date, end: datetime.date
    ) -> list[dict]:
        path = _BARS_PATH.format(
            symbol=quote(symbol, safe=":"),
            start=start.isoformat(),
            end=end.isoformat(),
        )
        url = self._build_url(
            path, {"adjusted": "true", "sort": "asc", "limit": str(_BARS_LIMIT)}
        )
        payload = await self._get_json(
            f"bars:{symbol}:{start.isoformat()}:{end.isoformat()}", url
        )
        if payload is None:
            return []
        results = payload.get("results")
        return results if isinstance(results, list) else []

    async def search(self, query: str, limit: int = 10) -> list[dict]:
        url = self._build_url(
            _SEARCH_PATH, {"search": query, "active": "true", "limit": str(limit)}
        )
        payload = await self._get_json(f"search:{query}:{limit}", url)
        if payload is None:
            return []
        results = payload.get("results")
        if not isinstance(results, list):
            return []
        return [item for item in results if isinstance(item, dict)][:limit]
