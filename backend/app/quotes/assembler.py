from __future__ import annotations

import asyncio
import datetime
import math
from typing import Any, Callable, Sequence

import structlog

from app.config.settings import Settings, settings as default_settings
from app.indicators.technical import compute_indicators, percent_change
from app.providers.massive import MassiveClient
from app.schemas.quote import Bar, Quote, SignalInputs, SmaPosition
from app.scoring.scoring import score_long_term, score_short_term
from app.validation.tickers import sanitize_ticker, to_vendor_symbol

logger = structlog.get_logger()

_MONTH_LOOKBACK_DAYS = 30


def utc_today() -> datetime.date:
    return datetime.datetime.now(datetime.UTC).date()


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return float(value)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_datable(timestamp_ms: float) -> bool:
    try:
        datetime.datetime.fromtimestamp(timestamp_ms / 1000, tz=datetime.UTC)
    except (OverflowError, OSError, ValueError):
        return False
    return True


def parse_bars(rows: Sequence[Any]) -> list[Bar]:
    bars: list[Bar] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        values = [row.get(field) for field in ("o", "h", "l", "c", "t")]
        if not all(_is_number(value) for value in values):
            continue
        if not _is_datable(row["t"]):
            continue
        volume = row.get("v")
        bars.append(
            Bar(
                open=float(row["o"]),
                high=float(row["h"]),
                low=float(row["l"]),
                close=float(row["c"]),
                volume=float(volume) if _is_number(volume) else 0.0,
                timestamp=int(row["t"]),
            )
        )
    bars.sort(key=lambda bar: bar.timestamp)
    return bars


def bar_date(bar: Bar) -> datetime.date:
    return datetime.datetime.fromtimestamp(bar.timestamp / 1000, tz=datetime.UTC).date()


def first_bar_on_or_after(bars: Sequence[Bar], threshold: datetime.date) -> Bar | None:
    for bar in bars:
        if bar_date(bar) >= threshold:
            return bar
    return None


def resolve_price(snapshot: dict | None, bars: Sequence[Bar]) -> float | None:
    candidates: list[Any] = []
    if snapshot:
        for section in ("day", "prevDay"):
            values = snapshot.get(section)
            if isinstance(values, dict):
                candidates.append(values.get("c"))
    if bars:
        candidates.append(bars[-1].close)
    for candidate in candidates:
        price = _positive_number(candidate)
        if price is not None:
            return price
    return None


def _position(price: float, average: float | None) -> SmaPosition | None:
    if average is None:
        return None
    return "above" if price > average else "below"


class SnapshotAssembler:
    """Builds one Quote from the snapshot, details and daily-bar endpoints.

    The three calls run concurrently and fail independently; a missing facet
    only leaves the fields it feeds empty.
    """

    def __init__(
        self,
        client: MassiveClient,
        settings: Settings | None = None,
        today: Callable[[], datetime.date] = utc_today,
    ) -> None:
        self._client = client
        self._settings = settings or default_settings
        self._today = today

    async def assemble(self, raw_ticker: str) -> Quote | None:
        ticker = sanitize_ticker(raw_ticker)
        if not ticker:
            logger.info("quote_invalid_ticker")
            return None
        symbol = to_vendor_symbol(ticker)

        today = self._today()
        start = today - datetime.timedelta(days=self._settings.history_days)
        results = await asyncio.gather(
            self._client.get_snapshot(symbol),
            self._client.get_details(symbol),
            self._client.get_daily_bars(symbol, start, today),
            return_exceptions=True,
        )
        snapshot = self._settle(ticker, "snapshot", results[0], None)
        details = self._settle(ticker, "details", results[1], None)
        rows = self._settle(ticker, "bars", results[2], [])

        bars = parse_bars(rows)
        if not snapshot and not details and not bars:
            logger.info("quote_not_found", ticker=ticker)
            return None

        price = resolve_price(snapshot, bars)
        if price is None:
            logger.info("quote_missing_price", ticker=ticker)
            return None

        return self._build_quote(ticker, price, details or {}, bars, today)

    @staticmethod
    def _settle(ticker: str, facet: str, result: Any, default: Any) -> Any:
        if isinstance(result, Exception):
            logger.warning("quote_facet_failed", ticker=ticker, facet=facet, error=str(result))
            return default
        if isinstance(result, BaseException):
            raise result
        return result if result is not None else default

    def _build_quote(
        self,
        ticker: str,
        price: float,
        details: dict,
        bars: list[Bar],
        today: datetime.date,
    ) -> Quote:
        fifty_two_week_high = max((bar.high for bar in bars), default=None)
        fifty_two_week_low = min((bar.low for bar in bars), default=None)
        delta_from_high = (
            percent_change(price, fifty_two_week_high) if fifty_two_week_high else None
        )

        ytd_bar = first_bar_on_or_after(bars, datetime.date(today.year, 1, 1))
        month_bar = first_bar_on_or_after(
            bars, today - datetime.timedelta(days=_MONTH_LOOKBACK_DAYS)
        )
        ytd_change = percent_change(price, ytd_bar.open) if ytd_bar else None
        one_month_change = percent_change(price, month_bar.open) if month_bar else None
        one_year_change = percent_change(price, bars[0].close) if bars else None

        market_cap = _positive_number(details.get("market_cap"))
        name = details.get("name")
        if not isinstance(name, str) or not name.strip():
            name = ticker

        indicators = compute_indicators(bars)
        short_term_signal = None
        long_term_signal = None
        if bars:
            inputs = SignalInputs(
                price=price,
                sma20=indicators.sma20,
                sma50=indicators.sma50,
                sma200=indicators.sma200,
                rsi=indicators.rsi,
                momentum_5d=indicators.momentum_5d,
                volume_ratio=indicators.volume_ratio,
                fifty_two_week_high=fifty_two_week_high,
                fifty_two_week_low=fifty_two_week_low,
                one_year_change=one_year_change,
                market_cap=market_cap,
            )
            short_term_signal = score_short_term(inputs, self._settings.short_term_rules)
            long_term_signal = score_long_term(inputs, self._settings.long_term_rules)

        history_points = self._settings.history_points
        return Quote(
            ticker=ticker,
            name=name.strip(),
            price=price,
            market_cap=market_cap,
            ytd_change=ytd_change,
            one_year_change=one_year_change,
            one_month_change=one_month_change,
            fifty_two_week_high=fifty_two_week_high,
            fifty_two_week_low=fifty_two_week_low,
            delta_from_52_week_high=delta_from_high,
            historical_prices=[bar.close for bar in bars[-history_points:]],
            sma20=indicators.sma20,
            sma50=indicators.sma50,
            sma200=indicators.sma200,
            price_vs_sma20=_position(price, indicators.sma20),
            price_vs_sma50=_position(price, indicators.sma50),
            price_vs_sma200=_position(price, indicators.sma200),
            rsi=indicators.rsi,
            short_term_signal=short_term_signal,
            long_term_signal=long_term_signal,
        )
