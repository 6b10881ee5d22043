import pytest

from app.config.settings import LongTermRules, ShortTermRules
from app.schemas.quote import SignalInputs
from app.scoring.scoring import categorize, score_long_term, score_short_term


def test_short_term_fixed_inputs_are_reproducible() -> None:
    inputs = SignalInputs(price=95.0, sma20=100.0, rsi=25.0)

    first = score_short_term(inputs)
    second = score_short_term(SignalInputs(price=95.0, sma20=100.0, rsi=25.0))

    assert first.score == 45
    assert first.signal == "strong_buy"
    assert first.reasons == [
        "RSI oversold (25.0)",
        "Price 5.0% below SMA20 (bounce potential)",
    ]
    assert first.model_dump_json() == second.model_dump_json()


def test_short_term_without_indicators_is_hold() -> None:
    signal = score_short_term(SignalInputs(price=10.0))
    assert signal.signal == "hold"
    assert signal.score == 0
    assert signal.reasons == []


def test_short_term_overbought_and_extended() -> None:
    signal = score_short_term(SignalInputs(price=110.0, sma20=100.0, rsi=75.0))
    assert signal.score == -40
    assert signal.signal == "strong_sell"


def test_short_term_approaching_bands() -> None:
    near_oversold = score_short_term(SignalInputs(price=101.0, sma20=100.0, rsi=35.0))
    near_overbought = score_short_term(SignalInputs(price=99.0, sma20=100.0, rsi=65.0))

    assert near_oversold.score == 15 + 5
    assert near_oversold.signal == "buy"
    assert near_overbought.score == -15 - 5
    assert near_overbought.signal == "sell"


def test_short_term_volume_surge_follows_momentum_direction() -> None:
    falling = score_short_term(
        SignalInputs(price=100.0, momentum_5d=-5.0, volume_ratio=2.0)
    )
    rising = score_short_term(
        SignalInputs(price=100.0, momentum_5d=5.0, volume_ratio=2.0)
    )

    assert falling.score == -20
    assert falling.signal == "sell"
    assert rising.score == 20
    assert rising.signal == "buy"
    assert "Volume surge (2.0x) on rising price" in rising.reasons


def test_short_term_52_week_band() -> None:
    near_low = score_short_term(
        SignalInputs(price=52.0, fifty_two_week_low=50.0, fifty_two_week_high=100.0)
    )
    near_high = score_short_term(
        SignalInputs(price=99.0, fifty_two_week_low=50.0, fifty_two_week_high=100.0)
    )

    assert near_low.score == 10
    assert near_low.reasons == ["Near 52-week low (support)"]
    assert near_high.score == -5
    assert near_high.reasons == ["Near 52-week high (resistance)"]


def test_short_term_rules_table_is_respected() -> None:
    rules = ShortTermRules(rsi_oversold_weight=50)
    signal = score_short_term(SignalInputs(price=100.0, rsi=20.0), rules)
    assert signal.score == 50
    assert signal.signal == "strong_buy"


def test_long_term_strong_uptrend() -> None:
    signal = score_long_term(
        SignalInputs(
            price=130.0,
            sma50=120.0,
            sma200=100.0,
            fifty_two_week_high=132.0,
            one_year_change=60.0,
            market_cap=3e12,
        )
    )
    assert signal.score == 20 + 15 + 10 + 15 + 10
    assert signal.signal == "strong_buy"
    assert signal.reasons[0] == "Golden cross (SMA50 above SMA200)"
    assert "Mega-cap stability" in signal.reasons


def test_long_term_downtrend() -> None:
    signal = score_long_term(
        SignalInputs(
            price=60.0,
            sma50=80.0,
            sma200=100.0,
            fifty_two_week_high=120.0,
            one_year_change=-40.0,
        )
    )
    assert signal.score == -20 - 15 - 15 - 15
    assert signal.signal == "strong_sell"
    assert "Death cross (SMA50 below SMA200)" in signal.reasons
    assert "50% below 52-week high" in signal.reasons


def test_long_term_missing_data_does_not_penalize() -> None:
    signal = score_long_term(SignalInputs(price=100.0, market_cap=50e9))
    assert signal.score == 5
    assert signal.signal == "hold"
    assert signal.reasons == ["Large-cap"]


def test_long_term_moderate_drawdown_and_poor_year() -> None:
    signal = score_long_term(
        SignalInputs(price=75.0, fifty_two_week_high=100.0, one_year_change=-15.0)
    )
    assert signal.score == -5 - 10
    assert signal.signal == "sell"


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (40, "strong_buy"),
        (39, "buy"),
        (15, "buy"),
        (14, "hold"),
        (0, "hold"),
        (-14, "hold"),
        (-15, "sell"),
        (-39, "sell"),
        (-40, "strong_sell"),
    ],
)
def test_short_term_categories(score: int, expected: str) -> None:
    rules = ShortTermRules()
    assert categorize(score, rules.strong_buy, rules.buy, rules.sell, rules.strong_sell) == expected


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (40, "strong_buy"),
        (15, "buy"),
        (-9, "hold"),
        (-10, "sell"),
        (-29, "sell"),
        (-30, "strong_sell"),
    ],
)
def test_long_term_categories(score: int, expected: str) -> None:
    rules = LongTermRules()
    assert categorize(score, rules.strong_buy, rules.buy, rules.sell, rules.strong_sell) == expected


@pytest.mark.parametrize(
    ("price", "expected_score"),
    [
        (80.0, 0),
        (79.0, -5),
        (70.0, -5),
        (69.0, -15),
    ],
)
def test_long_term_drawdown_bands_are_exclusive_at_their_thresholds(
    price: float, expected_score: int
) -> None:
    signal = score_long_term(SignalInputs(price=price, fifty_two_week_high=100.0))
    assert signal.score == expected_score
