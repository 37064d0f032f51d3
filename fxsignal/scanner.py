"""SignalScanner — fetches candles and scores signals for one or many pairs.

A scan fans out one candle fetch per pair concurrently.  A failing pair
(unknown symbol, data outage) is recorded in ``ScanResult.errors`` and
never aborts the other pairs.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from fxsignal.errors import SignalEngineError
from fxsignal.market.pairs import FOREX_PAIRS, interval_for_timeframe
from fxsignal.market.source import MarketDataSource
from fxsignal.strategy.models import SignalAnalysis, TechnicalSnapshot
from fxsignal.strategy.scorer import generate_signal
from fxsignal.strategy.session_filter import get_pair_tier, get_session
from fxsignal.strategy.technicals import analyze_technicals

logger = logging.getLogger("fxsignal.scanner")


@dataclass(frozen=True)
class ScanResult:
    """Ranked outcome of a multi-pair scan."""

    timeframe: str
    timestamp: int
    signals: list[SignalAnalysis]
    best_signal: Optional[SignalAnalysis]
    errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "timeframe": self.timeframe,
            "signals": [s.to_dict() for s in self.signals],
            "bestSignal": self.best_signal.to_dict() if self.best_signal else None,
            "errors": dict(self.errors),
        }


def rank_signals(signals: list[SignalAnalysis]) -> list[SignalAnalysis]:
    """Sort by descending confidence with suppressed signals last.

    The sort is stable, so equal confidences keep their input order.
    """
    return sorted(signals, key=lambda s: (s.suppressed, -s.confidence))


def best_signal(ranked: list[SignalAnalysis]) -> Optional[SignalAnalysis]:
    """First non-suppressed signal of an already-ranked list."""
    return next((s for s in ranked if not s.suppressed), None)


class SignalScanner:
    """Binds a market data source to the scoring pipeline.

    Args:
        source: Candle/quote provider.
        pairs: Pairs covered by :meth:`scan` when none are passed.
        clock: Returns the current UTC time; drives session detection.
    """

    def __init__(
        self,
        source: MarketDataSource,
        pairs: Optional[list[str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._source = source
        self._pairs = list(pairs or FOREX_PAIRS)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def pairs(self) -> list[str]:
        return list(self._pairs)

    @property
    def source(self) -> MarketDataSource:
        return self._source

    def current_session(self) -> str:
        return get_session(self._clock())

    async def analyze(self, pair: str, interval: str = "5min") -> TechnicalSnapshot:
        """Technical snapshot for *pair* at a raw data-source *interval*."""
        candles = await self._source.get_candles(pair, interval)
        return analyze_technicals(candles)

    async def generate(self, pair: str, timeframe: str) -> SignalAnalysis:
        """Fetch candles for *pair* and score a signal.

        Raises ``UnknownPairError``, ``UnknownTimeframeError`` or
        ``DataUnavailableError``.
        """
        interval = interval_for_timeframe(timeframe)
        candles = await self._source.get_candles(pair, interval)
        return generate_signal(
            pair,
            timeframe.upper(),
            candles,
            pair_tier=get_pair_tier(pair),
            session=self.current_session(),
        )

    async def scan(
        self,
        timeframe: str,
        pairs: Optional[list[str]] = None,
    ) -> ScanResult:
        """Score every pair and rank the results.

        Raises ``UnknownTimeframeError`` before any fetch if *timeframe*
        is invalid; per-pair failures land in ``ScanResult.errors``.
        """
        interval_for_timeframe(timeframe)
        targets = list(pairs or self._pairs)

        results = await asyncio.gather(
            *(self.generate(pair, timeframe) for pair in targets),
            return_exceptions=True,
        )

        signals: list[SignalAnalysis] = []
        errors: dict[str, str] = {}
        for pair, result in zip(targets, results):
            if isinstance(result, SignalEngineError):
                logger.warning("Scan skipped %s: %s", pair, result)
                errors[pair] = str(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                signals.append(result)

        ranked = rank_signals(signals)
        top = best_signal(ranked)
        logger.info(
            "Scan %s: %d signal(s), %d suppressed, %d error(s), best=%s",
            timeframe, len(ranked), sum(1 for s in ranked if s.suppressed),
            len(errors), f"{top.pair} {top.confidence}%" if top else "none",
        )
        return ScanResult(
            timeframe=timeframe.upper(),
            timestamp=int(self._clock().timestamp() * 1000),
            signals=ranked,
            best_signal=top,
            errors=errors,
        )


async def scan_pairs(
    source: MarketDataSource,
    pairs: list[str],
    timeframe: str,
) -> ScanResult:
    """One-shot scan of *pairs* on *timeframe*."""
    return await SignalScanner(source, pairs=pairs).scan(timeframe)
