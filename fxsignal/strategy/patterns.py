"""Candle pattern detection — pure functions, no I/O.

Classifies the most recent candle against the two before it.  Only one
pattern is reported; rules are tried in a fixed order and the first match
wins:

    engulfing → doji → hammer / bullish pin bar
    → shooting star / bearish pin bar → morning / evening star
"""

from typing import Optional

from fxsignal.market.models import Candle

ENGULF_BODY_RATIO = 0.8   # current body vs prior body
DOJI_BODY_RATIO = 0.1     # body vs full range
WICK_BODY_RATIO = 2.0     # dominant wick vs body
OPPOSITE_WICK_RATIO = 0.5  # opposite wick vs body
STAR_BODY_RATIO = 0.3     # middle star body vs first candle body


def _body(candle: Candle) -> float:
    return abs(candle.close - candle.open)


def _upper_wick(candle: Candle) -> float:
    return candle.high - max(candle.open, candle.close)


def _lower_wick(candle: Candle) -> float:
    return min(candle.open, candle.close) - candle.low


def _is_bullish(candle: Candle) -> bool:
    return candle.close > candle.open


def _is_bearish(candle: Candle) -> bool:
    return candle.close < candle.open


def _engulfing(prev: Candle, cur: Candle) -> Optional[str]:
    body = _body(cur)
    if body < ENGULF_BODY_RATIO * _body(prev):
        return None
    if (
        _is_bearish(prev) and _is_bullish(cur)
        and cur.open <= prev.close and cur.close >= prev.open
    ):
        return "bullish_engulfing"
    if (
        _is_bullish(prev) and _is_bearish(cur)
        and cur.open >= prev.close and cur.close <= prev.open
    ):
        return "bearish_engulfing"
    return None


def _star(first: Candle, middle: Candle, last: Candle) -> Optional[str]:
    """Three-candle reversal: large body, small body, strong opposite close."""
    first_body = _body(first)
    if first_body == 0 or _body(middle) >= STAR_BODY_RATIO * first_body:
        return None
    first_mid = (first.open + first.close) / 2
    if _is_bearish(first) and _is_bullish(last) and last.close > first_mid:
        return "morning_star"
    if _is_bullish(first) and _is_bearish(last) and last.close < first_mid:
        return "evening_star"
    return None


def detect_candle_pattern(candles: list[Candle]) -> Optional[str]:
    """Classify the last candle of *candles*.

    Returns one of the names in ``CANDLE_PATTERNS`` or ``None`` when fewer
    than three candles are given, the last candle has no range, or no rule
    matches.
    """
    if len(candles) < 3:
        return None

    first, prev, cur = candles[-3], candles[-2], candles[-1]
    full_range = cur.high - cur.low
    if full_range <= 0:
        return None

    body = _body(cur)
    upper = _upper_wick(cur)
    lower = _lower_wick(cur)

    pattern = _engulfing(prev, cur)
    if pattern:
        return pattern

    if (
        body < DOJI_BODY_RATIO * full_range
        and upper > WICK_BODY_RATIO * body
        and lower > WICK_BODY_RATIO * body
    ):
        return "doji"

    # Prior two candles falling → a long lower wick is a hammer
    if lower > WICK_BODY_RATIO * body and upper < OPPOSITE_WICK_RATIO * body:
        return "hammer" if first.close > prev.close else "pin_bar_bullish"

    if upper > WICK_BODY_RATIO * body and lower < OPPOSITE_WICK_RATIO * body:
        return "shooting_star" if first.close < prev.close else "pin_bar_bearish"

    return _star(first, prev, cur)
