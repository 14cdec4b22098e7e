"""Tests for REST and static price sources."""

from decimal import Decimal

import pytest
from aiohttp import test_utils, web
from cross_arbitrage.constants import Exchange
from cross_arbitrage.exceptions import (
    DataError,
    ExchangeError,
    InvalidPriceError,
    TransientServiceError,
    UnknownPairError,
)
from cross_arbitrage.exchanges import RestPriceSource, StaticPriceSource


class FakeTickerApi:
    """Serves canned ticker responses and records requested URLs"""

    def __init__(self, status=200, payload=None, body=None):
        self.status = status
        self.payload = payload
        self.body = body
        self.requests = []

    async def handle(self, request):
        self.requests.append(str(request.rel_url))
        if self.body is not None:
            return web.Response(status=self.status, text=self.body)
        return web.json_response(self.payload, status=self.status)


async def serve(api):
    app = web.Application()
    app.router.add_get("/{tail:.*}", api.handle)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


def templates_for(server):
    base = str(server.make_url("")).rstrip("/")
    return {
        Exchange.MEXC: base + "/api/v3/ticker/price?symbol={pair}",
        Exchange.BITMART: base + "/spot/v1/ticker?symbol={pair}",
        Exchange.GATEIO: base + "/api/v4/spot/tickers?currency_pair={pair}",
        Exchange.POLONIEX: base + "/markets/{pair}/price",
    }


async def fetch(api, exchange, asset="JASMY"):
    server = await serve(api)
    source = RestPriceSource(url_templates=templates_for(server))
    try:
        return await source.get_price(exchange, asset, "USDT")
    finally:
        await source.close()
        await server.close()


class TestRestPriceSource:
    @pytest.mark.asyncio
    async def test_mexc(self):
        api = FakeTickerApi(payload={"symbol": "JASMYUSDT", "price": "0.02043"})
        assert await fetch(api, Exchange.MEXC) == Decimal("0.02043")
        assert api.requests == ["/api/v3/ticker/price?symbol=JASMYUSDT"]

    @pytest.mark.asyncio
    async def test_bitmart(self):
        api = FakeTickerApi(payload={
            "code": 1000,
            "message": "OK",
            "data": {"tickers": [{"symbol": "JASMY_USDT", "last_price": "0.0211"}]},
        })
        assert await fetch(api, Exchange.BITMART) == Decimal("0.0211")
        assert api.requests == ["/spot/v1/ticker?symbol=JASMY_USDT"]

    @pytest.mark.asyncio
    async def test_gateio(self):
        api = FakeTickerApi(payload=[{"currency_pair": "PEPE_USDT", "last": "0.0000112"}])
        assert await fetch(api, Exchange.GATEIO, "pepe") == Decimal("0.0000112")

    @pytest.mark.asyncio
    async def test_poloniex(self):
        api = FakeTickerApi(payload={"symbol": "BTC_USDT", "price": "64000.1"})
        assert await fetch(api, Exchange.POLONIEX, "BTC") == Decimal("64000.1")
        assert api.requests == ["/markets/BTC_USDT/price"]

    @pytest.mark.asyncio
    async def test_unknown_pair_from_error_payload(self):
        api = FakeTickerApi(
            status=400,
            payload={"label": "INVALID_CURRENCY_PAIR", "message": "Invalid currency pair"},
        )
        with pytest.raises(UnknownPairError):
            await fetch(api, Exchange.GATEIO, "NOPE")

    @pytest.mark.asyncio
    async def test_service_unavailable_is_transient(self):
        api = FakeTickerApi(status=503, body="maintenance")
        with pytest.raises(TransientServiceError):
            await fetch(api, Exchange.MEXC)

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        api = FakeTickerApi(status=429, body="slow down")
        with pytest.raises(ExchangeError, match="Rate limited"):
            await fetch(api, Exchange.BITMART)

    @pytest.mark.asyncio
    async def test_server_error(self):
        api = FakeTickerApi(status=500, body="boom")
        with pytest.raises(ExchangeError):
            await fetch(api, Exchange.POLONIEX)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        api = FakeTickerApi(status=200, body="<html>not json</html>")
        with pytest.raises(DataError):
            await fetch(api, Exchange.MEXC)

    @pytest.mark.asyncio
    async def test_zero_price_rejected(self):
        api = FakeTickerApi(payload={"symbol": "JASMYUSDT", "price": "0"})
        with pytest.raises(InvalidPriceError):
            await fetch(api, Exchange.MEXC)

    @pytest.mark.asyncio
    async def test_connection_failure_names_exchange(self):
        source = RestPriceSource(
            url_templates={Exchange.MEXC: "http://127.0.0.1:1/ticker?symbol={pair}"},
            timeout_seconds=2,
        )
        try:
            with pytest.raises(ExchangeError) as exc_info:
                await source.get_price(Exchange.MEXC, "JASMY")
        finally:
            await source.close()
        assert exc_info.value.exchange == "MEXC"


class TestStaticPriceSource:
    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self):
        source = StaticPriceSource({(Exchange.MEXC, "jasmy"): "0.02"})
        assert await source.get_price("mexc", "JASMY") == Decimal("0.02")

    @pytest.mark.asyncio
    async def test_missing_price(self):
        with pytest.raises(ExchangeError):
            await StaticPriceSource().get_price(Exchange.GATEIO, "BTC")

    @pytest.mark.asyncio
    async def test_invalid_price(self):
        source = StaticPriceSource({(Exchange.GATEIO, "BTC"): 0})
        with pytest.raises(InvalidPriceError):
            await source.get_price(Exchange.GATEIO, "BTC")
