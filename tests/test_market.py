"""Tests for the market layer — pair table, TTL cache, synthetic feed,
Alpha Vantage client (mocked HTTP) and the cached data source."""

from datetime import datetime, timedelta

import numpy as np
import pytest
import httpx

from fxsignal.errors import DataUnavailableError, UnknownPairError, UnknownTimeframeError
from fxsignal.market import synthetic
from fxsignal.market.alpha_vantage import MAX_CANDLES, AlphaVantageClient
from fxsignal.market.cache import TtlCache
from fxsignal.market.models import Candle, ForexQuote
from fxsignal.market.pairs import (
    FOREX_PAIRS,
    interval_for_timeframe,
    normalize_pair,
    pip_value,
    split_pair,
)
from fxsignal.market.source import MarketDataSource


# ── Pairs ────────────────────────────────────────────────────────────────


class TestPairs:
    @pytest.mark.parametrize("raw", ["EUR/USD", "EUR_USD", "eurusd", " eur-usd "])
    def test_normalize_pair(self, raw):
        assert normalize_pair(raw) == "EUR/USD"

    def test_unknown_pair(self):
        with pytest.raises(UnknownPairError) as exc_info:
            normalize_pair("XAU/USD")
        assert str(exc_info.value) == "Unknown pair: XAU/USD"
        assert isinstance(exc_info.value, KeyError)

    def test_split_pair(self):
        assert split_pair("GBP/JPY") == ("GBP", "JPY")
        with pytest.raises(UnknownPairError):
            split_pair("ABC/DEF")

    def test_pip_value(self):
        assert pip_value("USD/JPY") == 0.01
        assert pip_value("EUR/USD") == 0.0001

    def test_timeframe_mapping(self):
        assert interval_for_timeframe("m5") == "5min"
        assert interval_for_timeframe("H1") == "60min"
        assert interval_for_timeframe("H4") == "60min"

    def test_unknown_timeframe(self):
        with pytest.raises(UnknownTimeframeError, match="D1"):
            interval_for_timeframe("D1")


# ── TTL cache ────────────────────────────────────────────────────────────


class TestTtlCache:
    def _cache(self, ttl=60.0):
        clock = [1000.0]
        return TtlCache(ttl, now=lambda: clock[0]), clock

    def test_hit_within_ttl(self):
        cache, clock = self._cache()
        cache.set("k", [1, 2])
        clock[0] += 59.9
        assert cache.get("k") == [1, 2]
        value, expiry = cache.lookup("k")
        assert expiry == pytest.approx(1060.0)

    def test_expired_entry_is_evicted(self):
        cache, clock = self._cache()
        cache.set("k", "v")
        clock[0] += 60.0
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_zero_ttl_disables_caching(self):
        cache, _ = self._cache(ttl=0)
        cache.set("k", "v")
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_clear(self):
        cache, _ = self._cache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0


# ── Synthetic feed ───────────────────────────────────────────────────────


class TestSynthetic:
    def test_candles_are_consistent(self):
        candles = synthetic.generate_candles(
            "EUR/USD", 50, rng=np.random.default_rng(1), end_ms=1_700_000_000_000,
        )
        assert len(candles) == 50
        assert candles[-1].timestamp == 1_700_000_000_000
        for prev, cur in zip(candles, candles[1:]):
            assert cur.timestamp - prev.timestamp == synthetic.FIVE_MINUTES_MS
            assert cur.open == pytest.approx(prev.close)
        for c in candles:
            assert c.low <= min(c.open, c.close) <= max(c.open, c.close) <= c.high

    def test_candles_stay_near_anchor(self):
        candles = synthetic.generate_candles("USD/JPY", rng=np.random.default_rng(2))
        assert len(candles) == synthetic.DEFAULT_CANDLE_COUNT
        assert all(140 < c.close < 160 for c in candles)

    def test_zero_count(self):
        assert synthetic.generate_candles("EUR/USD", 0) == []

    def test_quote_spread(self):
        quote = synthetic.generate_quote("GBP/USD", rng=np.random.default_rng(3))
        assert quote.bid < quote.price < quote.ask
        assert quote.pair == "GBP/USD"


# ── Alpha Vantage client ─────────────────────────────────────────────────

MOCK_INTRADAY_RESPONSE = {
    "Meta Data": {"1. Information": "FX Intraday (5min) Time Series"},
    "Time Series FX (5min)": {
        "2025-01-10 14:35:00": {
            "1. open": "1.09300", "2. high": "1.09400",
            "3. low": "1.09250", "4. close": "1.09350",
        },
        "2025-01-10 14:30:00": {
            "1. open": "1.09200", "2. high": "1.09320",
            "3. low": "1.09150", "4. close": "1.09300",
        },
    },
}

MOCK_RATE_LIMIT_RESPONSE = {
    "Note": "Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day.",
}

MOCK_EXCHANGE_RATE_RESPONSE = {
    "Realtime Currency Exchange Rate": {
        "1. From_Currency Code": "EUR",
        "3. To_Currency Code": "USD",
        "5. Exchange Rate": "1.08500",
    },
}


@pytest.mark.asyncio
async def test_parse_intraday_candles(monkeypatch):
    """Rows are parsed and returned oldest-first."""
    client = AlphaVantageClient("test-key")
    captured = {}

    async def _mock_get(self, url, *, params=None, timeout=None):
        captured.update(params)
        return httpx.Response(200, json=MOCK_INTRADAY_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    candles = await client.fetch_candles("EUR/USD", "5min")
    assert len(candles) == 2
    first = candles[0]
    assert isinstance(first, Candle)
    assert first.open == pytest.approx(1.092)
    assert first.close == pytest.approx(1.093)
    assert first.timestamp < candles[1].timestamp
    assert candles[1].timestamp == 1736519700000  # 2025-01-10 14:35:00 UTC
    assert captured["function"] == "FX_INTRADAY"
    assert captured["from_symbol"] == "EUR"
    assert captured["to_symbol"] == "USD"
    assert captured["apikey"] == "test-key"


@pytest.mark.asyncio
async def test_rate_limit_note_raises(monkeypatch):
    client = AlphaVantageClient("test-key")

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(200, json=MOCK_RATE_LIMIT_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(DataUnavailableError, match="rate limit"):
        await client.fetch_candles("EUR/USD", "5min")


@pytest.mark.asyncio
async def test_retry_on_server_error(monkeypatch):
    """A 503 is retried; the next 200 succeeds."""
    client = AlphaVantageClient("test-key", retry_base_delay=0.0)
    calls = []

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls.append(url)
        status = 503 if len(calls) == 1 else 200
        body = {} if status == 503 else MOCK_INTRADAY_RESPONSE
        return httpx.Response(status, json=body, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    candles = await client.fetch_candles("EUR/USD")
    assert len(calls) == 2
    assert len(candles) == 2


@pytest.mark.asyncio
async def test_retries_exhausted_raise(monkeypatch):
    client = AlphaVantageClient("test-key", retry_base_delay=0.0)

    async def _mock_get(self, url, *, params=None, timeout=None):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.ConnectError):
        await client.fetch_quote("EUR/USD")


@pytest.mark.asyncio
async def test_parse_exchange_rate(monkeypatch):
    """Missing bid/ask are derived from the rate."""
    client = AlphaVantageClient("test-key")

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(200, json=MOCK_EXCHANGE_RATE_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    quote = await client.fetch_quote("EUR/USD")
    assert isinstance(quote, ForexQuote)
    assert quote.price == pytest.approx(1.085)
    assert quote.bid < quote.price < quote.ask


@pytest.mark.asyncio
async def test_non_json_body_raises_data_unavailable(monkeypatch):
    client = AlphaVantageClient("test-key")

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(200, text="<html>maintenance</html>", request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(DataUnavailableError, match="malformed FX_INTRADAY"):
        await client.fetch_candles("EUR/USD", "5min")
    with pytest.raises(DataUnavailableError, match="malformed CURRENCY_EXCHANGE_RATE"):
        await client.fetch_quote("EUR/USD")


@pytest.mark.asyncio
async def test_malformed_row_raises_data_unavailable(monkeypatch):
    client = AlphaVantageClient("test-key")
    payload = {
        "Time Series FX (5min)": {
            "2025-01-10 14:35:00": {"1. open": "", "2. high": "1.094", "3. low": "1.092", "4. close": "1.093"},
        },
    }

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(200, json=payload, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(DataUnavailableError, match="malformed candle row"):
        await client.fetch_candles("EUR/USD", "5min")


@pytest.mark.asyncio
async def test_missing_rate_field_raises_data_unavailable(monkeypatch):
    client = AlphaVantageClient("test-key")
    payload = {"Realtime Currency Exchange Rate": {"1. From_Currency Code": "EUR"}}

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(200, json=payload, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(DataUnavailableError, match="malformed exchange rate"):
        await client.fetch_quote("EUR/USD")


@pytest.mark.asyncio
async def test_full_history_keeps_newest_200(monkeypatch):
    """300 rows in, the newest MAX_CANDLES out, oldest-first."""
    start = datetime(2025, 1, 10, 0, 0)
    series = {
        (start + timedelta(minutes=5 * i)).strftime("%Y-%m-%d %H:%M:%S"): {
            "1. open": "1.1", "2. high": "1.3", "3. low": "1.0",
            "4. close": f"{1.0 + i / 1000:.4f}",
        }
        for i in range(300)
    }
    captured = {}

    async def _mock_get(self, url, *, params=None, timeout=None):
        captured.update(params)
        return httpx.Response(200, json={"Time Series FX (5min)": series}, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    source = MarketDataSource(client=AlphaVantageClient("test-key"), synthetic_fallback=False)
    candles = await source.get_candles("EUR/USD", "5min")
    assert captured["outputsize"] == "full"
    assert len(candles) == MAX_CANDLES == 200
    assert candles[0].close == pytest.approx(1.1)
    assert candles[-1].close == pytest.approx(1.299)
    assert all(a.timestamp < b.timestamp for a, b in zip(candles, candles[1:]))


@pytest.mark.asyncio
async def test_malformed_live_candles_fall_back_to_synthetic(monkeypatch):
    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(200, text="<html>maintenance</html>", request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    source = MarketDataSource(client=AlphaVantageClient("test-key"))
    candles = await source.get_candles("GBP/USD", "5min")
    assert len(candles) == synthetic.DEFAULT_CANDLE_COUNT


# ── Market data source ───────────────────────────────────────────────────


class FakeClient:
    """Duck-typed AlphaVantageClient."""

    def __init__(self, candles=None, quote=None, error=None):
        self.candles = candles
        self.quote = quote
        self.error = error
        self.candle_calls = 0

    async def fetch_candles(self, pair, interval="5min"):
        self.candle_calls += 1
        if self.error is not None:
            raise self.error
        return self.candles

    async def fetch_quote(self, pair):
        if self.error is not None:
            raise self.error
        return self.quote


def _live_candles():
    return [Candle(timestamp=i, open=1.1, high=1.101, low=1.099, close=1.1) for i in range(30)]


class TestMarketDataSource:
    @pytest.mark.asyncio
    async def test_synthetic_when_no_client(self):
        source = MarketDataSource()
        candles = await source.get_candles("EUR/USD", "5min")
        assert len(candles) == synthetic.DEFAULT_CANDLE_COUNT
        # Second call is served from cache
        assert await source.get_candles("EUR/USD", "5min") is candles

    @pytest.mark.asyncio
    async def test_unknown_pair(self):
        with pytest.raises(UnknownPairError):
            await MarketDataSource().get_candles("XAU/USD")

    @pytest.mark.asyncio
    async def test_unsupported_interval(self):
        with pytest.raises(DataUnavailableError, match="2min"):
            await MarketDataSource().get_candles("EUR/USD", "2min")

    @pytest.mark.asyncio
    async def test_no_client_without_fallback(self):
        source = MarketDataSource(synthetic_fallback=False)
        with pytest.raises(DataUnavailableError, match="no data client"):
            await source.get_candles("EUR/USD")

    @pytest.mark.asyncio
    async def test_live_candles_are_cached_until_expiry(self):
        clock = [0.0]
        client = FakeClient(candles=_live_candles())
        source = MarketDataSource(
            client=client, candle_cache=TtlCache(60, now=lambda: clock[0]),
        )
        await source.get_candles("EUR/USD")
        await source.get_candles("EUR/USD")
        assert client.candle_calls == 1
        clock[0] = 61.0
        await source.get_candles("EUR/USD")
        assert client.candle_calls == 2

    @pytest.mark.asyncio
    async def test_client_failure_falls_back(self):
        client = FakeClient(error=httpx.ConnectError("down"))
        source = MarketDataSource(client=client)
        candles = await source.get_candles("GBP/USD", "15min")
        assert len(candles) == synthetic.DEFAULT_CANDLE_COUNT

    @pytest.mark.asyncio
    async def test_client_failure_without_fallback(self):
        client = FakeClient(error=httpx.ConnectError("down"))
        source = MarketDataSource(client=client, synthetic_fallback=False)
        with pytest.raises(DataUnavailableError, match="down"):
            await source.get_candles("GBP/USD")

    @pytest.mark.asyncio
    async def test_empty_history_raises(self):
        source = MarketDataSource(client=FakeClient(candles=[]))
        with pytest.raises(DataUnavailableError, match="empty"):
            await source.get_candles("EUR/USD")

    @pytest.mark.asyncio
    async def test_live_quote(self):
        quote = ForexQuote(pair="EUR/USD", price=1.085, bid=1.0849, ask=1.0851, timestamp=0)
        source = MarketDataSource(client=FakeClient(quote=quote))
        assert await source.get_quote("EUR/USD") is quote

    @pytest.mark.asyncio
    async def test_all_quotes(self):
        quotes = await MarketDataSource().get_all_quotes()
        assert [q.pair for q in quotes] == FOREX_PAIRS
