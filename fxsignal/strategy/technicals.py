"""Technical snapshot builder — runs every indicator on one candle window.

The snapshot also carries three derived classifications:

* **trend** — weighted bullish/bearish point tally (see ``TREND_WEIGHTS``).
  BULLISH when the bullish total leads by more than ``TREND_MARGIN``,
  BEARISH symmetrically, otherwise NEUTRAL.
* **momentum** — ADX strength or MACD histogram vs signal-line magnitude.
* **volatility** — ATR as a percentage of the Bollinger middle band.
"""

from fxsignal.market.models import Candle
from fxsignal.strategy.indicators import (
    calculate_adx,
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    calculate_supertrend,
)
from fxsignal.strategy.models import (
    BollingerValues,
    MacdValues,
    TechnicalSnapshot,
)
from fxsignal.strategy.patterns import detect_candle_pattern

TREND_WEIGHTS: dict[str, float] = {
    "sma20": 1.5,
    "sma50": 2.0,
    "sma200": 2.5,
    "ema_cross": 2.0,
    "macd": 2.5,
    "rsi_extreme": 3.0,
    "bollinger_extreme": 2.0,
    "stochastic_extreme": 2.0,
    "supertrend": 3.0,
    "adx_reinforce": 1.5,
}
TREND_MARGIN = 2.0
ADX_TRENDING = 25.0
ADX_STRONG = 40.0

VOLATILITY_HIGH_PCT = 1.5
VOLATILITY_MEDIUM_PCT = 0.8


def classify_trend(
    price: float,
    sma20: float,
    sma50: float,
    sma200: float,
    ema12: float,
    ema26: float,
    macd: MacdValues,
    rsi: float,
    bollinger: BollingerValues,
    stochastic_k: float,
    supertrend_direction,
    adx: float,
) -> str:
    w = TREND_WEIGHTS
    bullish = 0.0
    bearish = 0.0

    for key, average in (("sma20", sma20), ("sma50", sma50), ("sma200", sma200)):
        if price > average:
            bullish += w[key]
        elif price < average:
            bearish += w[key]

    if ema12 > ema26:
        bullish += w["ema_cross"]
    elif ema12 < ema26:
        bearish += w["ema_cross"]

    if macd.histogram > 0 and macd.macd_line > macd.signal_line:
        bullish += w["macd"]
    elif macd.histogram < 0 and macd.macd_line < macd.signal_line:
        bearish += w["macd"]

    # Oscillators read as mean reversion
    if rsi < 30:
        bullish += w["rsi_extreme"]
    elif rsi > 70:
        bearish += w["rsi_extreme"]

    if stochastic_k < 20:
        bullish += w["stochastic_extreme"]
    elif stochastic_k > 80:
        bearish += w["stochastic_extreme"]

    # Band breaks read as continuation
    if bollinger.percent_b > 1:
        bullish += w["bollinger_extreme"]
    elif bollinger.percent_b < 0:
        bearish += w["bollinger_extreme"]

    if supertrend_direction == "BULLISH":
        bullish += w["supertrend"]
    elif supertrend_direction == "BEARISH":
        bearish += w["supertrend"]

    if adx > ADX_TRENDING:
        if bullish > bearish:
            bullish += w["adx_reinforce"]
        elif bearish > bullish:
            bearish += w["adx_reinforce"]

    if bullish > bearish + TREND_MARGIN:
        return "BULLISH"
    if bearish > bullish + TREND_MARGIN:
        return "BEARISH"
    return "NEUTRAL"


def classify_momentum(adx: float, macd: MacdValues) -> str:
    hist = abs(macd.histogram)
    signal = abs(macd.signal_line)
    if adx > ADX_STRONG or hist > signal * 0.5:
        return "STRONG"
    if adx > ADX_TRENDING or hist > signal * 0.2:
        return "MODERATE"
    return "WEAK"


def classify_volatility(atr: float, middle: float) -> str:
    if middle <= 0:
        return "LOW"
    atr_pct = atr / middle * 100
    if atr_pct > VOLATILITY_HIGH_PCT:
        return "HIGH"
    if atr_pct > VOLATILITY_MEDIUM_PCT:
        return "MEDIUM"
    return "LOW"


def analyze_technicals(candles: list[Candle]) -> TechnicalSnapshot:
    """Build a ``TechnicalSnapshot`` for *candles* (oldest-first).

    Raises ``ValueError`` if *candles* is empty.
    """
    if not candles:
        raise ValueError("Need at least 1 candle for technical analysis, got 0")

    closes = [c.close for c in candles]
    price = closes[-1]

    rsi = calculate_rsi(closes, 14)
    macd = calculate_macd(closes)
    sma20 = calculate_sma(closes, 20)
    sma50 = calculate_sma(closes, 50)
    sma200 = calculate_sma(closes, 200)
    ema12 = calculate_ema(closes, 12)
    ema26 = calculate_ema(closes, 26)
    bollinger = calculate_bollinger(closes, 20, 2.0)
    stochastic = calculate_stochastic(candles, 14, 3)
    atr = calculate_atr(candles, 14)
    adx = calculate_adx(candles, 14)
    supertrend = calculate_supertrend(candles, 10, 3.0)

    trend = classify_trend(
        price, sma20, sma50, sma200, ema12, ema26, macd, rsi,
        bollinger, stochastic.k, supertrend.direction, adx,
    )

    return TechnicalSnapshot(
        price=price,
        rsi=rsi,
        macd=macd,
        sma20=sma20,
        sma50=sma50,
        sma200=sma200,
        ema12=ema12,
        ema26=ema26,
        bollinger=bollinger,
        stochastic=stochastic,
        atr=atr,
        adx=adx,
        supertrend=supertrend,
        candle_pattern=detect_candle_pattern(candles),
        trend=trend,
        momentum=classify_momentum(adx, macd),
        volatility=classify_volatility(atr, bollinger.middle),
    )
