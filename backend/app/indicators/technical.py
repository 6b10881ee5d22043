from __future__ import annotations

from typing import Sequence

from app.schemas.quote import Bar, Indicators

SMA_PERIODS = (20, 50, 200)
RSI_PERIOD = 14
MOMENTUM_LOOKBACK = 5
VOLUME_WINDOW = 5


def percent_change(current: float, previous: float) -> float:
    # A zero baseline reports 0 instead of dividing by zero.
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def sma(bars: Sequence[Bar], period: int) -> float | None:
    if period <= 0 or len(bars) < period:
        return None
    window = bars[-period:]
    return sum(bar.close for bar in window) / period


def rsi(bars: Sequence[Bar], period: int = RSI_PERIOD) -> float | None:
    """Relative strength index over the last ``period`` close-to-close moves.

    Uses simple averages of gains and losses. Returns 100 when there were no
    losses in the window.
    """
    if period <= 0 or len(bars) < period + 1:
        return None
    closes = [bar.close for bar in bars[-(period + 1):]]
    gains = 0.0
    losses = 0.0
    for previous, current in zip(closes, closes[1:]):
        delta = current - previous
        if delta > 0:
            gains += delta
        else:
            losses -= delta
    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    return 100 - 100 / (1 + avg_gain / avg_loss)


def momentum(bars: Sequence[Bar], lookback: int = MOMENTUM_LOOKBACK) -> float | None:
    if lookback <= 0 or len(bars) < lookback + 1:
        return None
    return percent_change(bars[-1].close, bars[-(lookback + 1)].close)


def volume_ratio(bars: Sequence[Bar], window: int = VOLUME_WINDOW) -> float | None:
    if window <= 0 or len(bars) < 2 * window:
        return None
    recent = bars[-window:]
    prior = bars[-2 * window:-window]
    prior_avg = sum(bar.volume for bar in prior) / window
    if prior_avg == 0:
        return None
    recent_avg = sum(bar.volume for bar in recent) / window
    return recent_avg / prior_avg


def compute_indicators(bars: Sequence[Bar]) -> Indicators:
    sma20, sma50, sma200 = (sma(bars, period) for period in SMA_PERIODS)
    return Indicators(
        sma20=sma20,
        sma50=sma50,
        sma200=sma200,
        rsi=rsi(bars),
        momentum_5d=momentum(bars),
        volume_ratio=volume_ratio(bars),
    )
