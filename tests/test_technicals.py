"""Tests for the technical snapshot builder and its classifications."""

import pytest

from fxsignal.market.models import Candle
from fxsignal.strategy.models import BollingerValues, MacdValues
from fxsignal.strategy.technicals import (
    analyze_technicals,
    classify_momentum,
    classify_trend,
    classify_volatility,
)


def _make_candle(o, h, l, c, ts=0):
    return Candle(timestamp=ts, open=o, high=h, low=l, close=c)


def _uptrend(n=100, start=1.0850, step=1.0003):
    candles = []
    price = start
    for i in range(n):
        close = price * step
        candles.append(_make_candle(price, close, price, close, ts=i))
        price = close
    return candles


_NEUTRAL_BB = BollingerValues(upper=1.102, middle=1.1, lower=1.098, percent_b=0.5, breakout=False)
_FLAT_MACD = MacdValues(macd_line=0.0, signal_line=0.0, histogram=0.0)


def _trend(**overrides):
    kwargs = dict(
        price=1.1, sma20=1.1, sma50=1.1, sma200=1.1, ema12=1.1, ema26=1.1,
        macd=_FLAT_MACD, rsi=50.0, bollinger=_NEUTRAL_BB, stochastic_k=50.0,
        supertrend_direction=None, adx=20.0,
    )
    kwargs.update(overrides)
    return classify_trend(**kwargs)


# ── Trend ────────────────────────────────────────────────────────────────


class TestClassifyTrend:
    def test_all_neutral(self):
        assert _trend() == "NEUTRAL"

    def test_moving_averages_and_supertrend_bullish(self):
        # 1.5 + 2.0 + 2.5 + 3.0 = 9 bullish
        result = _trend(sma20=1.09, sma50=1.09, sma200=1.09, supertrend_direction="BULLISH")
        assert result == "BULLISH"

    def test_within_margin_is_neutral(self):
        # sma20 alone: 1.5 points, not more than the 2-point margin
        assert _trend(sma20=1.09) == "NEUTRAL"

    def test_oversold_oscillators_vote_bullish(self):
        assert _trend(rsi=25.0, stochastic_k=15.0) == "BULLISH"

    def test_overbought_oscillators_vote_bearish(self):
        assert _trend(rsi=75.0, stochastic_k=85.0) == "BEARISH"

    def test_band_break_follows_direction(self):
        bb = BollingerValues(upper=1.099, middle=1.098, lower=1.097, percent_b=1.5, breakout=True)
        # 2.0 for the break plus 1.5 ADX reinforcement
        assert _trend(bollinger=bb, adx=30.0) == "BULLISH"
        assert _trend(bollinger=bb, adx=20.0) == "NEUTRAL"

    def test_bearish_stack(self):
        macd = MacdValues(macd_line=-0.001, signal_line=-0.0005, histogram=-0.0005)
        result = _trend(
            sma20=1.11, sma50=1.11, ema12=1.09, ema26=1.1, macd=macd,
            supertrend_direction="BEARISH",
        )
        assert result == "BEARISH"


# ── Momentum / volatility ───────────────────────────────────────────────


class TestClassifyMomentum:
    def test_strong_adx(self):
        assert classify_momentum(45.0, _FLAT_MACD) == "STRONG"

    def test_strong_histogram(self):
        macd = MacdValues(macd_line=0.0016, signal_line=0.001, histogram=0.0006)
        assert classify_momentum(10.0, macd) == "STRONG"

    def test_moderate_adx(self):
        assert classify_momentum(30.0, _FLAT_MACD) == "MODERATE"

    def test_moderate_histogram(self):
        macd = MacdValues(macd_line=0.0013, signal_line=0.001, histogram=0.0003)
        assert classify_momentum(10.0, macd) == "MODERATE"

    def test_weak(self):
        assert classify_momentum(25.0, _FLAT_MACD) == "WEAK"


class TestClassifyVolatility:
    @pytest.mark.parametrize(
        "atr,expected",
        [(0.02, "HIGH"), (0.01, "MEDIUM"), (0.005, "LOW"), (0.0, "LOW")],
    )
    def test_atr_percentage_bands(self, atr, expected):
        assert classify_volatility(atr, 1.0) == expected

    def test_non_positive_middle_is_low(self):
        assert classify_volatility(0.5, 0.0) == "LOW"


# ── Snapshot ─────────────────────────────────────────────────────────────


class TestAnalyzeTechnicals:
    def test_empty_raises(self):
        with pytest.raises(ValueError, match="candle"):
            analyze_technicals([])

    def test_single_candle_degrades_gracefully(self):
        snap = analyze_technicals([_make_candle(1.1, 1.101, 1.099, 1.1005)])
        assert snap.price == 1.1005
        assert snap.rsi == 50.0
        assert snap.sma200 == 1.1005
        assert snap.adx == 25.0
        assert snap.supertrend.direction is None
        assert snap.candle_pattern is None

    def test_flat_series(self):
        candles = [_make_candle(1.1, 1.1, 1.1, 1.1, ts=i) for i in range(100)]
        snap = analyze_technicals(candles)
        assert snap.rsi == 50.0
        assert snap.stochastic.k == 50.0
        assert snap.bollinger.percent_b == 0.5
        assert snap.atr == 0.0
        assert snap.trend == "NEUTRAL"
        assert snap.momentum == "WEAK"
        assert snap.volatility == "LOW"

    def test_uptrend_snapshot(self):
        candles = _uptrend(100)
        snap = analyze_technicals(candles)
        assert snap.price == candles[-1].close
        assert snap.rsi == 100.0
        assert snap.macd.histogram > 0
        assert snap.supertrend.direction == "BULLISH"
        assert snap.adx == pytest.approx(100.0)
        assert 0.8 < snap.bollinger.percent_b < 1.0
        # 100 candles: SMA200 falls back to the last price
        assert snap.sma200 == snap.price
        assert snap.trend == "BULLISH"
        assert snap.momentum == "STRONG"

    def test_to_dict_uses_wire_names(self):
        data = analyze_technicals(_uptrend(60)).to_dict()
        assert set(data["bollingerBands"]) == {"upper", "middle", "lower", "percentB", "breakout"}
        assert set(data["macd"]) == {"macdLine", "signalLine", "histogram"}
        assert data["supertrend"]["direction"] == "BULLISH"
        assert "candlePattern" in data
