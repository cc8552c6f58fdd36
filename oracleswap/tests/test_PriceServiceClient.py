"""Unit tests for PriceServiceClient."""

import asyncio
import logging

import httpx
import pytest

from oracleswap.src.errors import PriceServiceError
from oracleswap.src.PriceFeed import BTC_USD_FEED_ID, ETH_USD_FEED_ID
from oracleswap.src.PriceServiceClient import LATEST_UPDATES_PATH, PriceServiceClient


def make_client(handler) -> PriceServiceClient:
    transport = httpx.MockTransport(handler)
    return PriceServiceClient(
        "http://prices.test/", client=httpx.AsyncClient(transport=transport)
    )


def fetch(client: PriceServiceClient, feed_ids: list[str]) -> list[bytes]:
    async def _fetch() -> list[bytes]:
        try:
            return await client.get_price_feeds_update_data(feed_ids)
        finally:
            await client.close()

    return asyncio.run(_fetch())


class TestPriceServiceClientInit:
    """Test PriceServiceClient initialization."""

    def test_defaults(self) -> None:
        """Trailing slashes are stripped and the default timeout applies."""
        client = PriceServiceClient("http://localhost:8080/")
        assert client.base_url == "http://localhost:8080"
        assert client.timeout == PriceServiceClient.DEFAULT_TIMEOUT

    def test_custom_timeout(self) -> None:
        """A custom timeout should be kept."""
        assert PriceServiceClient("http://x", timeout=2.5).timeout == 2.5


class TestGetPriceFeedsUpdateData:
    """Test fetching update blobs."""

    def test_success(self) -> None:
        """Hex blobs should be decoded into bytes in order."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"binary": {"encoding": "hex", "data": ["0102", "0xabcd"]}}
            )

        blobs = fetch(make_client(handler), [BTC_USD_FEED_ID, ETH_USD_FEED_ID])

        assert blobs == [b"\x01\x02", b"\xab\xcd"]
        request = seen[0]
        assert request.url.path == LATEST_UPDATES_PATH
        assert request.url.params.get_list("ids[]") == [BTC_USD_FEED_ID, ETH_USD_FEED_ID]
        assert request.url.params["encoding"] == "hex"

    def test_feed_ids_normalized(self) -> None:
        """Feed ids should be sent as lowercase 0x hex."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"binary": {"data": []}})

        fetch(make_client(handler), [BTC_USD_FEED_ID[2:].upper()])
        assert seen[0].url.params.get_list("ids[]") == [BTC_USD_FEED_ID]

    def test_empty_feed_ids(self) -> None:
        """Requesting no feeds should raise ValueError."""
        client = make_client(lambda request: httpx.Response(200))
        with pytest.raises(ValueError, match="At least one feed id"):
            fetch(client, [])

    def test_http_error(self) -> None:
        """Non-2xx responses should carry the status code."""
        client = make_client(lambda request: httpx.Response(404, text="Price ids not found"))
        with pytest.raises(PriceServiceError) as exc_info:
            fetch(client, [BTC_USD_FEED_ID])

        assert exc_info.value.status_code == 404
        assert "Price ids not found" in str(exc_info.value)

    def test_http_error_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Failed requests should be logged at debug level with url and status."""
        client = make_client(lambda request: httpx.Response(500, text="boom"))
        with caplog.at_level(logging.DEBUG, logger="oracleswap.src.PriceServiceClient"):
            with pytest.raises(PriceServiceError):
                fetch(client, [BTC_USD_FEED_ID])

        record = next(r for r in caplog.records if "failed with status" in r.getMessage())
        assert record.args == ()
        assert "status 500: boom" in record.getMessage()
        assert LATEST_UPDATES_PATH in record.getMessage()

    def test_network_error(self) -> None:
        """Transport failures should raise PriceServiceError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PriceServiceError, match="Request failed"):
            fetch(make_client(handler), [BTC_USD_FEED_ID])

    def test_timeout(self) -> None:
        """Timeouts should raise PriceServiceError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(PriceServiceError, match="Request timeout"):
            fetch(make_client(handler), [BTC_USD_FEED_ID])

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"binary": {}},
            {"binary": {"data": ["zz"]}},
            {"binary": {"data": [1]}},
            {"binary": "0102"},
        ],
    )
    def test_malformed_response(self, payload: dict) -> None:
        """Responses missing or mangling the blob list should be rejected."""
        client = make_client(lambda request: httpx.Response(200, json=payload))
        with pytest.raises(PriceServiceError, match="Malformed"):
            fetch(client, [BTC_USD_FEED_ID])

    def test_non_json_response(self) -> None:
        """A body that is not JSON should be rejected."""
        client = make_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(PriceServiceError, match="Malformed"):
            fetch(client, [BTC_USD_FEED_ID])

    def test_unsupported_encoding(self) -> None:
        """Only hex-encoded responses are understood."""
        client = make_client(
            lambda request: httpx.Response(
                200, json={"binary": {"encoding": "base64", "data": ["AQI="]}}
            )
        )
        with pytest.raises(PriceServiceError, match="Unsupported encoding"):
            fetch(client, [BTC_USD_FEED_ID])
