from __future__ import annotations

import asyncio
import datetime
from typing import Callable

import structlog

from app.cache import ResultCache
from app.config.settings import Settings, settings as default_settings
from app.providers.fetcher import Fetcher
from app.providers.massive import MassiveClient
from app.quotes.assembler import SnapshotAssembler, utc_today
from app.schemas.quote import Quote, SearchResult
from app.validation.tickers import sanitize_query

logger = structlog.get_logger()


class QuoteService:
    """Entry point for quote lookups and ticker search.

    Every method is total: upstream failures surface as ``None`` or an empty
    list, never as an exception.
    """

    def __init__(
        self,
        client: MassiveClient,
        settings: Settings | None = None,
        today: Callable[[], datetime.date] = utc_today,
    ) -> None:
        self._settings = settings or default_settings
        self._client = client
        self._assembler = SnapshotAssembler(client, self._settings, today=today)

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, cache: ResultCache | None = None
    ) -> "QuoteService":
        settings = settings or default_settings
        cache = cache or ResultCache(
            ttl_seconds=settings.quote_cache_ttl_seconds,
            max_entries=settings.quote_cache_max_entries,
        )
        client = MassiveClient(
            api_key=settings.require_api_key(),
            cache=cache,
            fetcher=Fetcher(timeout=settings.request_timeout_seconds),
            base_url=settings.providers.massive_base_url,
        )
        return cls(client, settings)

    async def get_quote(self, ticker: str) -> Quote | None:
        logger.info("quote_get", ticker=ticker)
        try:
            return await self._assembler.assemble(ticker)
        except Exception as exc:
            logger.error("quote_assembly_error", ticker=ticker, error=str(exc))
            return None

    async def get_quotes(self, tickers: list[str]) -> list[Quote]:
        if not tickers:
            return []
        logger.info("quote_get_many", count=len(tickers))
        semaphore = asyncio.Semaphore(self._settings.max_concurrent_quotes)

        async def bounded(ticker: str) -> Quote | None:
            async with semaphore:
                return await self.get_quote(ticker)

        results = await asyncio.gather(*(bounded(ticker) for ticker in tickers))
        return [quote for quote in results if quote is not None]

    async def search_tickers(self, query: str) -> list[SearchResult]:
        cleaned = sanitize_query(query)
        if not cleaned:
            return []
        logger.info("ticker_search", query=cleaned)
        try:
            items = await self._client.search(cleaned, limit=self._settings.search_limit)
        except Exception as exc:
            logger.error("ticker_search_error", query=cleaned, error=str(exc))
            return []

        results: list[SearchResult] = []
        for item in items:
            symbol = item.get("ticker")
            if not isinstance(symbol, str) or not symbol:
                continue
            name = item.get("name") or symbol
            kind = item.get("type") or item.get("market") or "stock"
            results.append(SearchResult(symbol=symbol, name=str(name), type=str(kind)))
        return results[: self._settings.search_limit]
