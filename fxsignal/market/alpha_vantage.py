"""Alpha Vantage REST API async client.

Fetches intraday FX candles and realtime exchange-rate quotes.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from fxsignal.errors import DataUnavailableError
from fxsignal.market.models import Candle, ForexQuote
from fxsignal.market.pairs import split_pair

logger = logging.getLogger("fxsignal.market")

BASE_URL = "https://www.alphavantage.co/query"

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}

# Alpha Vantage returns newest-first; keep the most recent window only.
# SMA200 needs at least 200 closes, so the full output size is requested.
MAX_CANDLES = 200


def _parse_timestamp(raw: str) -> int:
    """Convert ``"2025-01-10 14:35:00"`` (UTC) to epoch milliseconds."""
    dt = datetime.strptime(raw, "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


class AlphaVantageClient:
    """Async client wrapping the Alpha Vantage FX endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        retry_base_delay: float = _RETRY_BASE_DELAY,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._retry_base_delay = retry_base_delay

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(
        self, pair: str, params: dict, interval: Optional[str] = None,
    ) -> dict:
        """Execute a GET with exponential-backoff retry and return the JSON body.

        Retries on transient server errors (502, 503, 504), rate-limits
        (429) and transport errors.  Non-retryable HTTP errors are raised
        immediately.  A 200 whose body is not a JSON object raises
        ``DataUnavailableError`` for *pair*.
        """
        last_exc: Optional[Exception] = None
        query = {**params, "apikey": self._api_key}

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(
                        self._base_url, params=query, timeout=30.0,
                    )

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = self._retry_base_delay * (2 ** attempt)
                    logger.warning(
                        "Alpha Vantage %s returned %d — retry %d/%d in %.1fs",
                        params.get("function"), resp.status_code,
                        attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                try:
                    data = resp.json()
                except ValueError as exc:
                    raise DataUnavailableError(
                        pair, f"malformed {params.get('function')} response: {exc}",
                        interval=interval,
                    ) from exc
                if not isinstance(data, dict):
                    raise DataUnavailableError(
                        pair, f"unexpected {params.get('function')} payload",
                        interval=interval,
                    )
                return data

            except httpx.TransportError as exc:
                delay = self._retry_base_delay * (2 ** attempt)
                logger.warning(
                    "Alpha Vantage %s transport error (%s) — retry %d/%d in %.1fs",
                    params.get("function"), exc,
                    attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(self, pair: str, interval: str = "5min") -> list[Candle]:
        """Fetch intraday candles for *pair*.

        Args:
            pair: e.g. ``"EUR/USD"``
            interval: ``"1min"``, ``"5min"``, ``"15min"``, ``"30min"`` or ``"60min"``

        Returns:
            The newest ``MAX_CANDLES`` ``Candle`` objects ordered oldest-first.

        Raises:
            DataUnavailableError: the payload carries no time series
                (rate-limit note, invalid key, unknown symbol), is not JSON,
                or holds a row that cannot be parsed.
        """
        from_symbol, to_symbol = split_pair(pair)
        data = await self._get_with_retry(pair, {
            "function": "FX_INTRADAY",
            "from_symbol": from_symbol,
            "to_symbol": to_symbol,
            "interval": interval,
            "outputsize": "full",
        }, interval=interval)

        series_key = next((k for k in data if "Time Series" in k), None)
        if series_key is None or not data[series_key]:
            reason = data.get("Note") or data.get("Error Message") or data.get(
                "Information", "no time series in response",
            )
            raise DataUnavailableError(pair, reason, interval=interval)

        try:
            rows = sorted(data[series_key].items(), reverse=True)[:MAX_CANDLES]
            candles = [
                Candle(
                    timestamp=_parse_timestamp(ts),
                    open=float(values["1. open"]),
                    high=float(values["2. high"]),
                    low=float(values["3. low"]),
                    close=float(values["4. close"]),
                )
                for ts, values in rows
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise DataUnavailableError(
                pair, f"malformed candle row: {exc!r}", interval=interval,
            ) from exc
        candles.sort(key=lambda c: c.timestamp)
        return candles

    # ── Quotes ───────────────────────────────────────────────────────────

    async def fetch_quote(self, pair: str) -> ForexQuote:
        """Fetch the realtime exchange rate for *pair*.

        Missing bid/ask fields are derived from the rate with a 0.5 bp spread.
        """
        from_currency, to_currency = split_pair(pair)
        data = await self._get_with_retry(pair, {
            "function": "CURRENCY_EXCHANGE_RATE",
            "from_currency": from_currency,
            "to_currency": to_currency,
        })

        rate = data.get("Realtime Currency Exchange Rate")
        if not rate:
            reason = data.get("Note") or data.get("Error Message") or (
                "no exchange rate in response"
            )
            raise DataUnavailableError(pair, reason)

        try:
            price = float(rate["5. Exchange Rate"])
            bid = float(rate.get("8. Bid Price") or 0) or price * 0.99995
            ask = float(rate.get("9. Ask Price") or 0) or price * 1.00005
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise DataUnavailableError(pair, f"malformed exchange rate: {exc!r}") from exc
        now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
        return ForexQuote(pair=pair, price=price, bid=bid, ask=ask, timestamp=now_ms)
