"""Market data source — the single entry point for candles and quotes.

Resolution order for every request:
    1. Validate the pair against the configured symbol table.
    2. Serve a live cache entry if one exists.
    3. Fetch from Alpha Vantage when an API key is configured.
    4. Fall back to the synthetic feed (when enabled) on failure or when
       no key is configured; otherwise raise ``DataUnavailableError``.
"""

import asyncio
import logging
from typing import Optional

import httpx

from fxsignal.config import Config
from fxsignal.errors import DataUnavailableError, UnknownPairError
from fxsignal.market import synthetic
from fxsignal.market.alpha_vantage import AlphaVantageClient
from fxsignal.market.cache import TtlCache
from fxsignal.market.models import Candle, ForexQuote
from fxsignal.market.pairs import FOREX_PAIRS, VALID_INTERVALS

logger = logging.getLogger("fxsignal.market")


class MarketDataSource:
    """Cached candle/quote provider.

    Args:
        client: Live data client, or ``None`` to use the synthetic feed only.
        candle_cache: Cache for ``(pair, interval)`` → candles.
        quote_cache: Cache for ``pair`` → quote.
        synthetic_fallback: Serve synthetic data when the client fails.
        pairs: Configured symbol table.
    """

    def __init__(
        self,
        client: Optional[AlphaVantageClient] = None,
        candle_cache: Optional[TtlCache] = None,
        quote_cache: Optional[TtlCache] = None,
        synthetic_fallback: bool = True,
        pairs: Optional[list[str]] = None,
    ) -> None:
        self._client = client
        self._candle_cache = candle_cache if candle_cache is not None else TtlCache()
        self._quote_cache = quote_cache if quote_cache is not None else TtlCache()
        self._synthetic_fallback = synthetic_fallback
        self._pairs = frozenset(pairs or FOREX_PAIRS)

    @classmethod
    def from_config(cls, config: Config) -> "MarketDataSource":
        client = (
            AlphaVantageClient(config.alpha_vantage_api_key)
            if config.has_api_key else None
        )
        return cls(
            client=client,
            candle_cache=TtlCache(config.cache_ttl_seconds),
            quote_cache=TtlCache(config.cache_ttl_seconds),
            synthetic_fallback=config.synthetic_fallback,
        )

    @property
    def pairs(self) -> list[str]:
        return sorted(self._pairs)

    def _check_pair(self, pair: str) -> None:
        if pair not in self._pairs:
            raise UnknownPairError(pair)

    # ── Candles ──────────────────────────────────────────────────────────

    async def get_candles(self, pair: str, interval: str = "5min") -> list[Candle]:
        """Return candles for *pair* at *interval*, oldest-first."""
        self._check_pair(pair)
        if interval not in VALID_INTERVALS:
            raise DataUnavailableError(
                pair, f"unsupported interval '{interval}'", interval=interval,
            )

        key = (pair, interval)
        cached = self._candle_cache.get(key)
        if cached is not None:
            return cached

        candles = await self._fetch_candles(pair, interval)
        if not candles:
            raise DataUnavailableError(pair, "empty candle history", interval=interval)
        self._candle_cache.set(key, candles)
        return candles

    async def _fetch_candles(self, pair: str, interval: str) -> list[Candle]:
        if self._client is not None:
            try:
                return await self._client.fetch_candles(pair, interval)
            except (httpx.HTTPError, DataUnavailableError) as exc:
                if not self._synthetic_fallback:
                    if isinstance(exc, DataUnavailableError):
                        raise
                    raise DataUnavailableError(pair, str(exc), interval=interval) from exc
                logger.warning(
                    "Candle fetch failed for %s (%s): %s — using synthetic feed",
                    pair, interval, exc,
                )
        elif not self._synthetic_fallback:
            raise DataUnavailableError(
                pair, "no data client configured", interval=interval,
            )
        return synthetic.generate_candles(pair)

    # ── Quotes ───────────────────────────────────────────────────────────

    async def get_quote(self, pair: str) -> ForexQuote:
        self._check_pair(pair)
        cached = self._quote_cache.get(pair)
        if cached is not None:
            return cached

        if self._client is not None:
            try:
                quote = await self._client.fetch_quote(pair)
                self._quote_cache.set(pair, quote)
                return quote
            except (httpx.HTTPError, DataUnavailableError) as exc:
                if not self._synthetic_fallback:
                    if isinstance(exc, DataUnavailableError):
                        raise
                    raise DataUnavailableError(pair, str(exc)) from exc
                logger.warning("Quote fetch failed for %s: %s — using synthetic feed", pair, exc)
        elif not self._synthetic_fallback:
            raise DataUnavailableError(pair, "no data client configured")

        # Synthetic quotes are never cached so the ticker keeps moving
        return synthetic.generate_quote(pair)

    async def get_all_quotes(self, pairs: Optional[list[str]] = None) -> list[ForexQuote]:
        """Fetch quotes for *pairs* (default: every configured pair) concurrently."""
        targets = pairs or FOREX_PAIRS
        return list(await asyncio.gather(*(self.get_quote(p) for p in targets)))
