"""
交易所客户端测试: request construction, error classification and factory
"""

import asyncio

import aiohttp
import orjson
import pytest

from orderbook_collector.exceptions import FetchError
from orderbook_collector.exchanges import (
    BinanceClient, BitkubClient, ExchangeClient, ExchangeClientFactory,
)
from orderbook_collector.ticker import Ticker


class FakeResponse:
    def __init__(self, status=200, payload=None, text="", body=None):
        self.status = status
        self._body = body if body is not None else orjson.dumps(payload)
        self._text = text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def text(self):
        return self._text

    async def read(self):
        return self._body


class FailingRequest:
    def __init__(self, error):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records GET requests and replays a fixed response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def get(self, url, params=None):
        self.requests.append((url, params))
        if self.error is not None:
            return FailingRequest(self.error)
        return self.response

    async def close(self):
        self.closed = True


class TestBinanceClient:

    def test_identity(self):
        assert BinanceClient.name == "BINANCE"
        assert BinanceClient.poll_interval == 1

    @pytest.mark.asyncio
    async def test_request_url_and_params(self):
        payload = {"lastUpdateId": 1, "bids": [["1.0", "2.0"]], "asks": []}
        session = FakeSession(FakeResponse(payload=payload))
        client = BinanceClient(session=session)

        result = await client.fetch_order_book(Ticker("BTC", "USDT"), 10)

        assert orjson.loads(result) == payload
        assert session.requests == [
            ("https://api.binance.com/api/v3/depth", {"symbol": "BTCUSDT", "limit": 10})
        ]

    @pytest.mark.asyncio
    async def test_body_returned_unchanged(self):
        body = b'{"lastUpdateId": 1027024, "bids": [["4.00000000", "431.00000000"]], "asks": [[1.10, 2]]}\n'
        client = BinanceClient(session=FakeSession(FakeResponse(body=body)))

        assert await client.fetch_order_book(Ticker("BNB", "BTC"), 10) == body

    @pytest.mark.asyncio
    async def test_negative_code_is_fetch_error(self):
        session = FakeSession(FakeResponse(payload={"code": -1121, "msg": "Invalid symbol."}))
        client = BinanceClient(session=session)

        with pytest.raises(FetchError) as exc_info:
            await client.fetch_order_book(Ticker("FOO", "BAR"), 10)

        assert exc_info.value.context.exchange == "BINANCE"
        assert exc_info.value.context.symbol == "FOO_BAR"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        session = FakeSession(FakeResponse(status=400, text='{"code":-1121,"msg":"Invalid symbol."}'))
        client = BinanceClient(session=session)

        with pytest.raises(FetchError) as exc_info:
            await client.fetch_order_book(Ticker("FOO", "BAR"), 10)

        assert exc_info.value.status == 400
        assert "HTTP 400" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_custom_rest_base(self):
        session = FakeSession(FakeResponse(payload={"bids": [], "asks": []}))
        client = BinanceClient(rest_base="http://localhost:9000", session=session)

        await client.fetch_order_book(Ticker("ETH", "USDT"), 5)

        assert session.requests[0][0] == "http://localhost:9000/api/v3/depth"


class TestBitkubClient:

    def test_identity(self):
        assert BitkubClient.name == "BITKUB"
        assert BitkubClient.poll_interval == 2

    @pytest.mark.asyncio
    async def test_request_swaps_base_and_quote(self):
        payload = {"error": 0, "result": {"bids": [], "asks": []}}
        session = FakeSession(FakeResponse(payload=payload))
        client = BitkubClient(session=session)

        result = await client.fetch_order_book(Ticker("BTC", "THB"), 10)

        assert orjson.loads(result) == payload
        assert session.requests == [
            ("https://api.bitkub.com/api/market/depth", {"sym": "THB_BTC", "lmt": 10})
        ]

    @pytest.mark.asyncio
    async def test_null_result_is_fetch_error(self):
        session = FakeSession(FakeResponse(payload={"error": 11, "result": None}))
        client = BitkubClient(session=session)

        with pytest.raises(FetchError):
            await client.fetch_order_book(Ticker("FOO", "THB"), 10)

    @pytest.mark.asyncio
    async def test_error_code_is_fetch_error(self):
        session = FakeSession(FakeResponse(payload={"error": 5, "result": {}}))
        client = BitkubClient(session=session)

        with pytest.raises(FetchError):
            await client.fetch_order_book(Ticker("BTC", "THB"), 10)

    @pytest.mark.asyncio
    async def test_plain_depth_payload_is_accepted(self):
        payload = {"bids": [[1, 2]], "asks": [[3, 4]]}
        client = BitkubClient(session=FakeSession(FakeResponse(payload=payload)))

        assert orjson.loads(await client.fetch_order_book(Ticker("BTC", "THB"), 10)) == payload


class TestTransportErrors:

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = BinanceClient(request_timeout=0.5, session=FakeSession(error=asyncio.TimeoutError()))

        with pytest.raises(FetchError) as exc_info:
            await client.fetch_order_book(Ticker("BTC", "USDT"), 10)

        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_error(self):
        error = aiohttp.ClientConnectionError("connection refused")
        client = BinanceClient(session=FakeSession(error=error))

        with pytest.raises(FetchError) as exc_info:
            await client.fetch_order_book(Ticker("BTC", "USDT"), 10)

        assert exc_info.value.cause is error

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        response = FakeResponse(body=b"<html>Service Unavailable</html>")
        client = BinanceClient(session=FakeSession(response))

        with pytest.raises(FetchError):
            await client.fetch_order_book(Ticker("BTC", "USDT"), 10)

    @pytest.mark.asyncio
    async def test_non_object_payload(self):
        client = BinanceClient(session=FakeSession(FakeResponse(payload=[1, 2, 3])))

        with pytest.raises(FetchError):
            await client.fetch_order_book(Ticker("BTC", "USDT"), 10)

    @pytest.mark.asyncio
    async def test_close_leaves_injected_session_open(self):
        session = FakeSession(FakeResponse(payload={}))
        client = BinanceClient(session=session)

        await client.close()

        assert session.closed is False

    @pytest.mark.asyncio
    async def test_close_owned_session(self):
        client = BinanceClient()
        session = client._get_session()
        assert isinstance(session, aiohttp.ClientSession)

        await client.close()

        assert session.closed


class TestExchangeClientFactory:

    def test_supported_exchanges(self):
        assert ExchangeClientFactory().supported_exchanges() == ["BINANCE", "BITKUB"]

    @pytest.mark.parametrize("name,expected", [
        ("BINANCE", BinanceClient),
        ("binance", BinanceClient),
        (" Bitkub ", BitkubClient),
    ])
    def test_create(self, name, expected):
        client = ExchangeClientFactory(request_timeout=3.0).create(name)

        assert isinstance(client, expected)
        assert client.request_timeout == 3.0

    @pytest.mark.parametrize("name", ["COINBASE", "", None])
    def test_unsupported_exchange(self, name):
        assert ExchangeClientFactory().create(name) is None

    def test_register_custom_client(self):
        class DummyClient(ExchangeClient):
            name = "DUMMY"
            poll_interval = 0.5

            def _depth_path(self):
                return "/depth"

            def _depth_params(self, ticker, depth):
                return {}

        factory = ExchangeClientFactory()
        factory.register(DummyClient)

        assert "DUMMY" in factory.supported_exchanges()
        assert isinstance(factory.create("dummy"), DummyClient)
