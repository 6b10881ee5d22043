from __future__ import annotations

from app.config.settings import LongTermRules, ShortTermRules
from app.indicators.technical import percent_change
from app.schemas.quote import Signal, SignalInputs, SignalType

SCORE_MIN = -100
SCORE_MAX = 100


def clamp(value: int, low: int = SCORE_MIN, high: int = SCORE_MAX) -> int:
    return max(low, min(high, value))


def categorize(score: int, strong_buy: int, buy: int, sell: int, strong_sell: int) -> SignalType:
    if score >= strong_buy:
        return "strong_buy"
    if score >= buy:
        return "buy"
    if score <= strong_sell:
        return "strong_sell"
    if score <= sell:
        return "sell"
    return "hold"


def score_short_term(inputs: SignalInputs, rules: ShortTermRules | None = None) -> Signal:
    """Short-horizon signal from RSI, SMA20 distance, momentum, volume and the 52-week band."""
    rules = rules or ShortTermRules()
    score = 0
    reasons: list[str] = []
    price = inputs.price

    if inputs.rsi is not None:
        if inputs.rsi < rules.rsi_oversold:
            score += rules.rsi_oversold_weight
            reasons.append(f"RSI oversold ({inputs.rsi:.1f})")
        elif inputs.rsi < rules.rsi_near_oversold:
            score += rules.rsi_near_oversold_weight
            reasons.append(f"RSI approaching oversold ({inputs.rsi:.1f})")
        elif inputs.rsi > rules.rsi_overbought:
            score += rules.rsi_overbought_weight
            reasons.append(f"RSI overbought ({inputs.rsi:.1f})")
        elif inputs.rsi > rules.rsi_near_overbought:
            score += rules.rsi_near_overbought_weight
            reasons.append(f"RSI approaching overbought ({inputs.rsi:.1f})")

    if inputs.sma20:
        distance = percent_change(price, inputs.sma20)
        if distance <= -rules.sma20_stretch_percent:
            score += rules.sma20_stretched_below_weight
            reasons.append(f"Price {abs(distance):.1f}% below SMA20 (bounce potential)")
        elif distance >= rules.sma20_stretch_percent:
            score += rules.sma20_stretched_above_weight
            reasons.append(f"Price {distance:.1f}% above SMA20 (extended)")
        elif price > inputs.sma20:
            score += rules.sma20_above_weight
            reasons.append("Price above SMA20")
        elif price < inputs.sma20:
            score += rules.sma20_below_weight
            reasons.append("Price below SMA20")

    if inputs.momentum_5d is not None:
        if inputs.momentum_5d > rules.momentum_percent:
            score += rules.momentum_up_weight
            reasons.append(f"5-day momentum +{inputs.momentum_5d:.1f}%")
        elif inputs.momentum_5d < -rules.momentum_percent:
            score += rules.momentum_down_weight
            reasons.append(f"5-day momentum {inputs.momentum_5d:.1f}%")

    if (
        inputs.volume_ratio is not None
        and inputs.volume_ratio > rules.volume_surge_ratio
        and inputs.momentum_5d
    ):
        if inputs.momentum_5d > 0:
            score += rules.volume_surge_weight
            reasons.append(f"Volume surge ({inputs.volume_ratio:.1f}x) on rising price")
        else:
            score -= rules.volume_surge_weight
            reasons.append(f"Volume surge ({inputs.volume_ratio:.1f}x) on falling price")

    if inputs.fifty_two_week_low and inputs.fifty_two_week_low > 0:
        if price <= inputs.fifty_two_week_low * (1 + rules.near_52w_low_percent / 100):
            score += rules.near_52w_low_weight
            reasons.append("Near 52-week low (support)")
    if inputs.fifty_two_week_high and inputs.fifty_two_week_high > 0:
        if price >= inputs.fifty_two_week_high * (1 - rules.near_52w_high_percent / 100):
            score += rules.near_52w_high_weight
            reasons.append("Near 52-week high (resistance)")

    score = clamp(score)
    return Signal(
        signal=categorize(score, rules.strong_buy, rules.buy, rules.sell, rules.strong_sell),
        score=score,
        reasons=reasons,
    )


def score_long_term(inputs: SignalInputs, rules: LongTermRules | None = None) -> Signal:
    """Long-horizon signal from trend (SMA50/SMA200), drawdown, 1y return and size."""
    rules = rules or LongTermRules()
    score = 0
    reasons: list[str] = []
    price = inputs.price

    if inputs.sma50 and inputs.sma200:
        if inputs.sma50 > inputs.sma200:
            score += rules.golden_cross_weight
            reasons.append("Golden cross (SMA50 above SMA200)")
        elif inputs.sma50 < inputs.sma200:
            score += rules.death_cross_weight
            reasons.append("Death cross (SMA50 below SMA200)")

    if inputs.sma200:
        if price > inputs.sma200:
            score += rules.above_sma200_weight
            reasons.append("Price above SMA200 (uptrend)")
        elif price < inputs.sma200:
            score += rules.below_sma200_weight
            reasons.append("Price below SMA200 (downtrend)")

    if inputs.fifty_two_week_high and inputs.fifty_two_week_high > 0:
        delta = percent_change(price, inputs.fifty_two_week_high)
        if delta >= rules.near_52w_high_percent:
            score += rules.near_52w_high_weight
            reasons.append(
                f"Within {abs(rules.near_52w_high_percent):.0f}% of 52-week high"
            )
        elif delta < rules.deep_drawdown_percent:
            score += rules.deep_drawdown_weight
            reasons.append(f"{abs(delta):.0f}% below 52-week high")
        elif delta < rules.drawdown_percent:
            score += rules.drawdown_weight
            reasons.append(f"{abs(delta):.0f}% below 52-week high")

    if inputs.one_year_change is not None:
        change = inputs.one_year_change
        if change > rules.strong_year_percent:
            score += rules.strong_year_weight
            reasons.append(f"Strong 1-year return (+{change:.0f}%)")
        elif change > rules.good_year_percent:
            score += rules.good_year_weight
            reasons.append(f"Good 1-year return (+{change:.0f}%)")
        elif change < rules.weak_year_percent:
            score += rules.weak_year_weight
            reasons.append(f"Weak 1-year return ({change:.0f}%)")
        elif change < rules.poor_year_percent:
            score += rules.poor_year_weight
            reasons.append(f"Poor 1-year return ({change:.0f}%)")

    if inputs.market_cap is not None:
        if inputs.market_cap >= rules.mega_cap:
            score += rules.mega_cap_weight
            reasons.append("Mega-cap stability")
        elif inputs.market_cap >= rules.large_cap:
            score += rules.large_cap_weight
            reasons.append("Large-cap")

    score = clamp(score)
    return Signal(
        signal=categorize(score, rules.strong_buy, rules.buy, rules.sell, rules.strong_sell),
        score=score,
        reasons=reasons,
    )
