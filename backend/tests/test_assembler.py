import asyncio
import datetime

import pytest

from app.config.settings import Settings
from app.indicators.technical import percent_change
from app.quotes.assembler import SnapshotAssembler, parse_bars, resolve_price

TODAY = datetime.date(2026, 3, 16)


def bar_rows(count: int, end: datetime.date = TODAY, start_close: float = 100.0) -> list[dict]:
    rows = []
    first_day = end - datetime.timedelta(days=count - 1)
    for index in range(count):
        day = first_day + datetime.timedelta(days=index)
        midnight = datetime.datetime.combine(day, datetime.time.min, tzinfo=datetime.UTC)
        close = start_close + index
        rows.append(
            {
                "o": close,
                "h": close + 1,
                "l": close - 1,
                "c": close,
                "v": 1_000,
                "t": int(midnight.timestamp() * 1000),
            }
        )
    return rows


class FakeClient:
    def __init__(self, snapshot=None, details=None, bars=None) -> None:
        self.snapshot = snapshot
        self.details = details
        self.bars = bars if bars is not None else []
        self.calls: list[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _respond(self, value):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        if isinstance(value, Exception):
            raise value
        return value

    async def get_snapshot(self, symbol: str):
        self.calls.append(("snapshot", symbol))
        return await self._respond(self.snapshot)

    async def get_details(self, symbol: str):
        self.calls.append(("details", symbol))
        return await self._respond(self.details)

    async def get_daily_bars(self, symbol: str, start: datetime.date, end: datetime.date):
        self.calls.append(("bars", symbol, start, end))
        return await self._respond(self.bars)


def assemble(client: FakeClient, ticker: str):
    assembler = SnapshotAssembler(client, Settings(), today=lambda: TODAY)
    return asyncio.run(assembler.assemble(ticker))


def test_invalid_ticker_makes_no_calls() -> None:
    client = FakeClient(snapshot={"day": {"c": 10}})
    assert assemble(client, "!!!") is None
    assert client.calls == []


def test_all_facets_empty_is_not_found() -> None:
    assert assemble(FakeClient(), "AAPL") is None


def test_all_facets_failing_is_not_found() -> None:
    client = FakeClient(
        snapshot=TimeoutError("slow"),
        details=RuntimeError("boom"),
        bars=ConnectionError("reset"),
    )
    assert assemble(client, "AAPL") is None
    assert len(client.calls) == 3


def test_facets_are_dispatched_concurrently() -> None:
    client = FakeClient(snapshot={"day": {"c": 10.0}}, details={"name": "Test"}, bars=bar_rows(5))
    assemble(client, "TEST")
    assert client.max_in_flight == 3


def test_price_prefers_intraday_close() -> None:
    client = FakeClient(
        snapshot={"day": {"c": 150.0}, "prevDay": {"c": 149.0}}, bars=bar_rows(30)
    )
    assert assemble(client, "aapl").price == 150.0


def test_price_falls_back_to_previous_close_then_last_bar() -> None:
    snapshot = {"day": {"c": 0}, "prevDay": {"c": 149.0}}
    assert resolve_price(snapshot, []) == 149.0
    bars = parse_bars(bar_rows(3))
    assert resolve_price({"day": {"c": 0}, "prevDay": {}}, bars) == 102.0
    assert resolve_price(None, bars) == 102.0


def test_missing_price_discards_quote() -> None:
    client = FakeClient(snapshot={"day": {"c": 0}}, details={"name": "Ghost Corp"})
    assert assemble(client, "GHST") is None


def test_non_finite_price_is_rejected() -> None:
    assert resolve_price({"day": {"c": float("nan")}, "prevDay": {"c": float("inf")}}, []) is None


def test_details_failure_only_drops_details_fields() -> None:
    client = FakeClient(
        snapshot={"day": {"c": 120.0}},
        details=RuntimeError("details down"),
        bars=bar_rows(30),
    )
    quote = assemble(client, "msft")

    assert quote is not None
    assert quote.ticker == "MSFT"
    assert quote.name == "MSFT"
    assert quote.market_cap is None
    assert quote.price_to_sales is None
    assert quote.price_to_earnings is None
    assert quote.sma20 is not None


def test_crypto_ticker_uses_vendor_symbol_and_one_year_range() -> None:
    client = FakeClient(snapshot={"day": {"c": 64000.0}})
    quote = assemble(client, "btc-usd")

    assert quote.ticker == "BTC-USD"
    assert ("snapshot", "X:BTCUSD") in client.calls
    assert ("bars", "X:BTCUSD", TODAY - datetime.timedelta(days=365), TODAY) in client.calls


def test_snapshot_only_quote_has_no_history_fields() -> None:
    quote = assemble(FakeClient(snapshot={"day": {"c": 42.0}}, details={"name": "Acme", "market_cap": 0}), "ACME")

    assert quote.name == "Acme"
    assert quote.market_cap is None
    assert quote.historical_prices == []
    assert quote.fifty_two_week_high is None
    assert quote.delta_from_52_week_high is None
    assert quote.sma20 is None
    assert quote.price_vs_sma20 is None
    assert quote.rsi is None
    assert quote.short_term_signal is None
    assert quote.long_term_signal is None


def test_derived_metrics_from_bars() -> None:
    rows = bar_rows(300)
    client = FakeClient(
        details={"name": "Apple Inc.", "market_cap": 3.2e12},
        bars=list(reversed(rows)),
    )
    quote = assemble(client, "AAPL")

    first_day = TODAY - datetime.timedelta(days=299)
    ytd_open = 100.0 + (datetime.date(2026, 1, 1) - first_day).days
    month_open = 100.0 + (TODAY - datetime.timedelta(days=30) - first_day).days

    assert quote.price == 399.0
    assert quote.name == "Apple Inc."
    assert quote.market_cap == 3.2e12
    assert quote.historical_prices == [float(close) for close in range(350, 400)]
    assert quote.fifty_two_week_high == 400.0
    assert quote.fifty_two_week_low == 99.0
    assert quote.delta_from_52_week_high == pytest.approx(percent_change(399.0, 400.0))
    assert quote.one_year_change == pytest.approx(percent_change(399.0, 100.0))
    assert quote.ytd_change == pytest.approx(percent_change(399.0, ytd_open))
    assert quote.one_month_change == pytest.approx(percent_change(399.0, month_open))
    assert quote.sma20 == pytest.approx(sum(range(380, 400)) / 20)
    assert quote.sma200 == pytest.approx(sum(range(200, 400)) / 200)
    assert quote.price_vs_sma20 == "above"
    assert quote.price_vs_sma200 == "above"
    assert quote.rsi == 100.0
    assert quote.short_term_signal is not None
    assert quote.long_term_signal is not None
    assert quote.long_term_signal.signal == "strong_buy"


def test_out_of_range_bar_timestamp_keeps_quote() -> None:
    bad_bar = {"o": 1.0, "h": 2.0, "l": 0.5, "c": 1.5, "v": 10, "t": 1e20}
    client = FakeClient(snapshot={"day": {"c": 100.0}}, details={"name": "Acme"}, bars=[bad_bar])

    quote = assemble(client, "ACME")

    assert quote is not None
    assert quote.price == 100.0
    assert quote.name == "Acme"
    assert quote.historical_prices == []
    assert parse_bars([bad_bar, *bar_rows(2)]) == parse_bars(bar_rows(2))


def test_parse_bars_skips_malformed_rows_and_sorts() -> None:
    rows = bar_rows(3)
    malformed = [{"o": 1, "h": 2, "l": 0, "c": None, "t": 5}, "junk", {"o": True, "h": 1, "l": 1, "c": 1, "t": 1}]
    bars = parse_bars([rows[2], *malformed, rows[0], rows[1]])

    assert [bar.close for bar in bars] == [100.0, 101.0, 102.0]
    assert [bar.timestamp for bar in bars] == sorted(bar.timestamp for bar in bars)
