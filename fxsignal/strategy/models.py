"""Strategy data models — indicator snapshot and signal result types."""

from dataclasses import dataclass, field
from typing import Literal, Optional

Direction = Literal["BULLISH", "BEARISH"]
Trend = Literal["BULLISH", "BEARISH", "NEUTRAL"]
Momentum = Literal["STRONG", "MODERATE", "WEAK"]
Volatility = Literal["HIGH", "MEDIUM", "LOW"]
SignalType = Literal["CALL", "PUT"]

CANDLE_PATTERNS = (
    "bullish_engulfing",
    "bearish_engulfing",
    "doji",
    "hammer",
    "shooting_star",
    "pin_bar_bullish",
    "pin_bar_bearish",
    "morning_star",
    "evening_star",
)
BULLISH_PATTERNS = frozenset(
    {"bullish_engulfing", "hammer", "pin_bar_bullish", "morning_star"}
)
BEARISH_PATTERNS = frozenset(
    {"bearish_engulfing", "shooting_star", "pin_bar_bearish", "evening_star"}
)
INDECISION_PATTERNS = frozenset({"doji"})


@dataclass(frozen=True)
class MacdValues:
    macd_line: float
    signal_line: float
    histogram: float


@dataclass(frozen=True)
class BollingerValues:
    upper: float
    middle: float
    lower: float
    percent_b: float
    breakout: bool


@dataclass(frozen=True)
class StochasticValues:
    k: float
    d: float


@dataclass(frozen=True)
class SupertrendValues:
    direction: Optional[Direction]  # None until enough candles to decide
    value: float


@dataclass(frozen=True)
class TechnicalSnapshot:
    """Every indicator computed on one candle window, plus classifications."""

    price: float
    rsi: float
    macd: MacdValues
    sma20: float
    sma50: float
    sma200: float
    ema12: float
    ema26: float
    bollinger: BollingerValues
    stochastic: StochasticValues
    atr: float
    adx: float
    supertrend: SupertrendValues
    candle_pattern: Optional[str]
    trend: Trend
    momentum: Momentum
    volatility: Volatility

    def to_dict(self) -> dict:
        return {
            "rsi": self.rsi,
            "macd": {
                "macdLine": self.macd.macd_line,
                "signalLine": self.macd.signal_line,
                "histogram": self.macd.histogram,
            },
            "sma20": self.sma20,
            "sma50": self.sma50,
            "sma200": self.sma200,
            "ema12": self.ema12,
            "ema26": self.ema26,
            "bollingerBands": {
                "upper": self.bollinger.upper,
                "middle": self.bollinger.middle,
                "lower": self.bollinger.lower,
                "percentB": self.bollinger.percent_b,
                "breakout": self.bollinger.breakout,
            },
            "stochastic": {"k": self.stochastic.k, "d": self.stochastic.d},
            "atr": self.atr,
            "adx": self.adx,
            "supertrend": {
                "direction": self.supertrend.direction,
                "value": self.supertrend.value,
            },
            "candlePattern": self.candle_pattern,
            "trend": self.trend,
            "momentum": self.momentum,
            "volatility": self.volatility,
        }


@dataclass(frozen=True)
class SignalAnalysis:
    """A scored directional signal.

    ``suppressed`` is the explicit veto tag: a suppressed analysis always
    carries ``confidence == 0`` and lists the triggered vetoes, and must
    never be forwarded to a notifier.
    """

    pair: str
    timeframe: str
    current_price: float
    signal_type: SignalType
    confidence: int
    entry: float
    stop_loss: float
    take_profit: float
    technicals: TechnicalSnapshot
    reasoning: tuple[str, ...]
    bullish_score: float = 0.0
    bearish_score: float = 0.0
    suppressed: bool = False
    vetoes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def score_diff(self) -> float:
        return abs(self.bullish_score - self.bearish_score)

    def to_dict(self) -> dict:
        return {
            "pair": self.pair,
            "timeframe": self.timeframe,
            "currentPrice": self.current_price,
            "signalType": self.signal_type,
            "confidence": self.confidence,
            "entry": self.entry,
            "stopLoss": self.stop_loss,
            "takeProfit": self.take_profit,
            "technicals": self.technicals.to_dict(),
            "reasoning": list(self.reasoning),
            "bullishScore": self.bullish_score,
            "bearishScore": self.bearish_score,
            "suppressed": self.suppressed,
            "vetoes": list(self.vetoes),
        }
