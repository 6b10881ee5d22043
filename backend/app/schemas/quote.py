from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SignalType = Literal["strong_buy", "buy", "hold", "sell", "strong_sell"]
SmaPosition = Literal["above", "below"]


class Bar(BaseModel):
    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: int


class Signal(BaseModel):
    signal: SignalType
    score: int = Field(ge=-100, le=100)
    reasons: list[str] = Field(default_factory=list)


class Indicators(BaseModel):
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    sma200: Optional[float] = None
    rsi: Optional[float] = None
    momentum_5d: Optional[float] = None
    volume_ratio: Optional[float] = None


class SignalInputs(BaseModel):
    price: float
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    sma200: Optional[float] = None
    rsi: Optional[float] = None
    momentum_5d: Optional[float] = None
    volume_ratio: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    one_year_change: Optional[float] = None
    market_cap: Optional[float] = None


class Quote(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ticker: str = Field(min_length=1, max_length=20)
    name: str
    price: float
    market_cap: Optional[float] = None
    price_to_sales: Optional[float] = None
    price_to_earnings: Optional[float] = None
    ytd_change: Optional[float] = None
    one_year_change: Optional[float] = None
    one_month_change: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    delta_from_52_week_high: Optional[float] = Field(
        default=None, alias="deltaFrom52WeekHigh"
    )
    historical_prices: list[float] = Field(default_factory=list)
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    sma200: Optional[float] = None
    price_vs_sma20: Optional[SmaPosition] = None
    price_vs_sma50: Optional[SmaPosition] = None
    price_vs_sma200: Optional[SmaPosition] = None
    rsi: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    short_term_signal: Optional[Signal] = None
    long_term_signal: Optional[Signal] = None


class SearchResult(BaseModel):
    symbol: str
    name: str
    type: str
