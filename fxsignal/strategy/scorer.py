"""Signal scorer — turns a technical snapshot into a CALL/PUT recommendation.

Pipeline:
    1. Directional scoring: each indicator awards fixed points (``WEIGHTS``)
       to a bullish or bearish accumulator.
    2. Direction: CALL when bullish ≥ bearish, else PUT.
    3. Vetoes: any triggered veto suppresses the signal (confidence 0,
       ``suppressed=True``).  All vetoes are evaluated so the reasoning
       trail lists every one that fired.
    4. Confidence: winner share of the total score, capped by the score
       differential tier, minus penalties; strict mode lowers it further.
    5. Risk levels from ATR and volatility (``fxsignal.risk.sl_tp``).

Every rule appends a line to the reasoning trail in evaluation order.
"""

import logging
from typing import Optional

from fxsignal.market.models import Candle
from fxsignal.risk.sl_tp import calculate_risk_levels
from fxsignal.strategy.models import (
    BEARISH_PATTERNS,
    BULLISH_PATTERNS,
    INDECISION_PATTERNS,
    SignalAnalysis,
    TechnicalSnapshot,
)
from fxsignal.strategy.session_filter import get_pair_tier, get_session, is_strict_mode
from fxsignal.strategy.technicals import analyze_technicals

logger = logging.getLogger("fxsignal.scorer")

# ── Directional weights ──────────────────────────────────────────────────

WEIGHTS: dict[str, int] = {
    "macd_crossover": 40,
    "supertrend": 40,
    "bollinger_breakout": 30,
    "bollinger_near_band": 15,
    "rsi_extreme": 20,
    "rsi_mild": 10,
    "sma_full_alignment": 15,
    "sma_partial_alignment": 10,
    "stochastic_extreme": 15,
    "candle_pattern": 15,
    "adx_strong": 10,
    "adx_trending": 5,
}

RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0
RSI_MILD_LOW = 45.0
RSI_MILD_HIGH = 55.0
STOCH_OVERSOLD = 20.0
STOCH_OVERBOUGHT = 80.0
BB_NEAR_UPPER = 0.8
BB_NEAR_LOWER = 0.2
ADX_STRONG = 40.0
ADX_TRENDING = 25.0

# ── Vetoes ───────────────────────────────────────────────────────────────

OSCILLATOR_VETO_LOW = 3.0
OSCILLATOR_VETO_HIGH = 97.0
EXTREME_LOW = 10.0
EXTREME_HIGH = 90.0
SPIKE_ATR_MULTIPLE = 1.5
CONFIRMATION_CANDLES = 2
STRICT_MIN_SCORE_DIFF = 40.0

# ── Confidence ───────────────────────────────────────────────────────────

# (score differential below, confidence cap), checked top-down
CONFIDENCE_CAPS: list[tuple[float, int]] = [
    (20.0, 56),
    (40.0, 70),
    (60.0, 85),
]
MAX_CONFIDENCE = 98
EXTREME_PENALTY = 10
INDECISION_PENALTY = 8
STRICT_PENALTY = 20
STRICT_CAP = 55


def _score_indicators(
    snap: TechnicalSnapshot,
    reasoning: list[str],
) -> tuple[float, float]:
    """Run the weight table; return ``(bullish, bearish)`` totals."""
    w = WEIGHTS
    bullish = 0.0
    bearish = 0.0
    price = snap.price

    macd = snap.macd
    if macd.histogram > 0 and macd.macd_line > macd.signal_line:
        bullish += w["macd_crossover"]
        reasoning.append(f"MACD bullish crossover confirmed (+{w['macd_crossover']})")
    elif macd.histogram < 0 and macd.macd_line < macd.signal_line:
        bearish += w["macd_crossover"]
        reasoning.append(f"MACD bearish crossover confirmed (+{w['macd_crossover']})")

    if snap.supertrend.direction == "BULLISH":
        bullish += w["supertrend"]
        reasoning.append(f"Supertrend bullish (+{w['supertrend']})")
    elif snap.supertrend.direction == "BEARISH":
        bearish += w["supertrend"]
        reasoning.append(f"Supertrend bearish (+{w['supertrend']})")

    bb = snap.bollinger
    if bb.breakout and price > bb.upper:
        bullish += w["bollinger_breakout"]
        reasoning.append(f"Bollinger upper breakout (+{w['bollinger_breakout']})")
    elif bb.breakout and price < bb.lower:
        bearish += w["bollinger_breakout"]
        reasoning.append(f"Bollinger lower breakout (+{w['bollinger_breakout']})")
    elif bb.percent_b > BB_NEAR_UPPER:
        bullish += w["bollinger_near_band"]
        reasoning.append(
            f"Price near upper Bollinger band, %B {bb.percent_b:.2f} "
            f"(+{w['bollinger_near_band']})"
        )
    elif bb.percent_b < BB_NEAR_LOWER:
        bearish += w["bollinger_near_band"]
        reasoning.append(
            f"Price near lower Bollinger band, %B {bb.percent_b:.2f} "
            f"(+{w['bollinger_near_band']})"
        )

    rsi = snap.rsi
    if rsi < RSI_OVERSOLD:
        bullish += w["rsi_extreme"]
        reasoning.append(f"RSI oversold at {rsi:.1f} - potential reversal up (+{w['rsi_extreme']})")
    elif rsi > RSI_OVERBOUGHT:
        bearish += w["rsi_extreme"]
        reasoning.append(f"RSI overbought at {rsi:.1f} - potential reversal down (+{w['rsi_extreme']})")
    elif rsi < RSI_MILD_LOW:
        bullish += w["rsi_mild"]
        reasoning.append(f"RSI at {rsi:.1f} - slight bullish bias (+{w['rsi_mild']})")
    elif rsi > RSI_MILD_HIGH:
        bearish += w["rsi_mild"]
        reasoning.append(f"RSI at {rsi:.1f} - slight bearish bias (+{w['rsi_mild']})")

    above = (price > snap.sma20, price > snap.sma50, price > snap.sma200)
    below = (price < snap.sma20, price < snap.sma50, price < snap.sma200)
    if all(above):
        bullish += w["sma_full_alignment"]
        reasoning.append(
            f"Price above SMA20, SMA50 and SMA200 - uptrend confirmed "
            f"(+{w['sma_full_alignment']})"
        )
    elif all(below):
        bearish += w["sma_full_alignment"]
        reasoning.append(
            f"Price below SMA20, SMA50 and SMA200 - downtrend confirmed "
            f"(+{w['sma_full_alignment']})"
        )
    elif above[0] and above[1]:
        bullish += w["sma_partial_alignment"]
        reasoning.append(f"Price above SMA20 and SMA50 (+{w['sma_partial_alignment']})")
    elif below[0] and below[1]:
        bearish += w["sma_partial_alignment"]
        reasoning.append(f"Price below SMA20 and SMA50 (+{w['sma_partial_alignment']})")

    stoch = snap.stochastic
    if stoch.k < STOCH_OVERSOLD and stoch.d < STOCH_OVERSOLD:
        bullish += w["stochastic_extreme"]
        reasoning.append(f"Stochastic oversold, %K {stoch.k:.1f} (+{w['stochastic_extreme']})")
    elif stoch.k > STOCH_OVERBOUGHT and stoch.d > STOCH_OVERBOUGHT:
        bearish += w["stochastic_extreme"]
        reasoning.append(f"Stochastic overbought, %K {stoch.k:.1f} (+{w['stochastic_extreme']})")

    pattern = snap.candle_pattern
    if pattern in BULLISH_PATTERNS:
        bullish += w["candle_pattern"]
        reasoning.append(f"Bullish candle pattern: {pattern} (+{w['candle_pattern']})")
    elif pattern in BEARISH_PATTERNS:
        bearish += w["candle_pattern"]
        reasoning.append(f"Bearish candle pattern: {pattern} (+{w['candle_pattern']})")

    if snap.adx > ADX_TRENDING and bullish != bearish:
        bonus = w["adx_strong"] if snap.adx > ADX_STRONG else w["adx_trending"]
        side = "bullish" if bullish > bearish else "bearish"
        if bullish > bearish:
            bullish += bonus
        else:
            bearish += bonus
        strength = "Strong" if snap.adx > ADX_STRONG else "Trending"
        reasoning.append(f"{strength} ADX {snap.adx:.1f} reinforces {side} side (+{bonus})")

    return bullish, bearish


def _confirming_candles(candles: list[Candle], signal_type: str) -> int:
    recent = candles[-CONFIRMATION_CANDLES:]
    if signal_type == "CALL":
        return sum(1 for c in recent if c.close > c.open)
    return sum(1 for c in recent if c.close < c.open)


def _evaluate_vetoes(
    snap: TechnicalSnapshot,
    candles: list[Candle],
    signal_type: str,
    score_diff: float,
    strict: bool,
) -> list[str]:
    """Return a description of every veto that fires (empty = signal valid)."""
    vetoes: list[str] = []

    if not OSCILLATOR_VETO_LOW <= snap.rsi <= OSCILLATOR_VETO_HIGH:
        vetoes.append(f"RSI {snap.rsi:.1f} outside [{OSCILLATOR_VETO_LOW:g}, {OSCILLATOR_VETO_HIGH:g}]")

    stoch = snap.stochastic
    if not (
        OSCILLATOR_VETO_LOW <= stoch.k <= OSCILLATOR_VETO_HIGH
        and OSCILLATOR_VETO_LOW <= stoch.d <= OSCILLATOR_VETO_HIGH
    ):
        vetoes.append(
            f"Stochastic %K {stoch.k:.1f} / %D {stoch.d:.1f} outside "
            f"[{OSCILLATOR_VETO_LOW:g}, {OSCILLATOR_VETO_HIGH:g}]"
        )

    last = candles[-1]
    last_range = last.high - last.low
    if snap.atr > 0 and last_range >= SPIKE_ATR_MULTIPLE * snap.atr:
        vetoes.append(
            f"Abnormal candle range {last_range:.5f} >= "
            f"{SPIKE_ATR_MULTIPLE:g}x ATR {snap.atr:.5f}"
        )

    confirming = _confirming_candles(candles, signal_type)
    if confirming < CONFIRMATION_CANDLES:
        vetoes.append(
            f"Only {confirming} of last {CONFIRMATION_CANDLES} candles confirm {signal_type}"
        )

    if (
        not EXTREME_LOW <= snap.rsi <= EXTREME_HIGH
        and snap.candle_pattern in INDECISION_PATTERNS
    ):
        vetoes.append(f"Extreme RSI {snap.rsi:.1f} with indecision candle ({snap.candle_pattern})")

    if strict:
        if score_diff < STRICT_MIN_SCORE_DIFF:
            vetoes.append(
                f"Strict mode: score differential {score_diff:.0f} below {STRICT_MIN_SCORE_DIFF:g}"
            )
        if snap.volatility == "HIGH":
            vetoes.append("Strict mode: HIGH volatility")

    return vetoes


def _confidence(
    snap: TechnicalSnapshot,
    winning: float,
    losing: float,
    strict: bool,
    reasoning: list[str],
) -> int:
    total = winning + losing
    confluence = winning / total * 100 if total > 0 else 50.0
    score_diff = winning - losing

    cap = MAX_CONFIDENCE
    for below, tier_cap in CONFIDENCE_CAPS:
        if score_diff < below:
            cap = tier_cap
            break
    confidence = min(confluence, cap)
    reasoning.append(f"Confluence {confluence:.0f}%, capped at {cap} for score differential {score_diff:.0f}")

    stoch_k = snap.stochastic.k
    if (
        not EXTREME_LOW <= snap.rsi <= EXTREME_HIGH
        or not EXTREME_LOW <= stoch_k <= EXTREME_HIGH
    ):
        confidence -= EXTREME_PENALTY
        reasoning.append(f"Extreme RSI/Stochastic reading (-{EXTREME_PENALTY})")

    if snap.candle_pattern in INDECISION_PATTERNS:
        confidence -= INDECISION_PENALTY
        reasoning.append(f"Indecision candle: {snap.candle_pattern} (-{INDECISION_PENALTY})")

    if strict:
        confidence = min(confidence - STRICT_PENALTY, STRICT_CAP)
        reasoning.append(f"Strict mode penalty (-{STRICT_PENALTY}, capped at {STRICT_CAP})")

    return int(round(max(0.0, min(100.0, confidence))))


def score_snapshot(
    snapshot: TechnicalSnapshot,
    candles: list[Candle],
    pair: str,
    timeframe: str,
    pair_tier: str = "LOW",
    session: str = "EVENING",
) -> SignalAnalysis:
    """Score an already-built snapshot.

    *candles* must be the window the snapshot was built from; the last two
    candles drive the confirmation and range vetoes.
    """
    if not candles:
        raise ValueError("Need at least 1 candle to score a signal, got 0")

    reasoning: list[str] = []
    strict = is_strict_mode(session, pair_tier)
    if strict:
        reasoning.append(f"Strict mode active: {session} session, {pair_tier} accuracy pair")

    bullish, bearish = _score_indicators(snapshot, reasoning)
    signal_type = "CALL" if bullish >= bearish else "PUT"
    winning, losing = (bullish, bearish) if signal_type == "CALL" else (bearish, bullish)
    score_diff = winning - losing
    reasoning.append(
        f"Direction {signal_type}: bullish {bullish:.0f} vs bearish {bearish:.0f}"
    )

    vetoes = _evaluate_vetoes(snapshot, candles, signal_type, score_diff, strict)
    for veto in vetoes:
        reasoning.append(f"VETO: {veto}")

    confidence = _confidence(snapshot, winning, losing, strict, reasoning)
    if vetoes:
        confidence = 0
        reasoning.append("Signal suppressed")
        logger.info(
            "%s %s %s suppressed by %d veto(es): %s",
            pair, timeframe, signal_type, len(vetoes), "; ".join(vetoes),
        )

    levels = calculate_risk_levels(
        price=snapshot.price,
        signal_type=signal_type,
        atr=snapshot.atr,
        volatility=snapshot.volatility,
        score_diff=score_diff,
        pair=pair,
    )
    reasoning.append(
        f"{snapshot.volatility} volatility stop, reward ratio {levels.rr_ratio:g}"
    )

    return SignalAnalysis(
        pair=pair,
        timeframe=timeframe,
        current_price=snapshot.price,
        signal_type=signal_type,
        confidence=confidence,
        entry=levels.entry,
        stop_loss=levels.stop_loss,
        take_profit=levels.take_profit,
        technicals=snapshot,
        reasoning=tuple(reasoning),
        bullish_score=bullish,
        bearish_score=bearish,
        suppressed=bool(vetoes),
        vetoes=tuple(vetoes),
    )


def generate_signal(
    pair: str,
    timeframe: str,
    candles: list[Candle],
    pair_tier: Optional[str] = None,
    session: Optional[str] = None,
) -> SignalAnalysis:
    """Analyse *candles* and score a signal for *pair*.

    *pair_tier* defaults to the static tier table and *session* to the
    current wall-clock session.
    """
    snapshot = analyze_technicals(candles)
    return score_snapshot(
        snapshot,
        candles,
        pair=pair,
        timeframe=timeframe,
        pair_tier=pair_tier or get_pair_tier(pair),
        session=session or get_session(),
    )
