"""PriceServiceClient: Fetches signed price-update blobs from a price service.

The service answers::

    GET {base_url}/v1/updates/price/latest?ids[]=<feed id>&ids[]=...&encoding=hex

    {"binary": {"encoding": "hex", "data": ["<blob hex>", ...]}}

Blobs are returned as raw bytes, ready for
:meth:`PriceOracleGateway.ingest_updates`. The client never inspects them.

.. code-block:: python

    >>> client = PriceServiceClient("http://localhost:8080")
    >>> update_data = await client.get_price_feeds_update_data([BTC_USD_FEED_ID, ETH_USD_FEED_ID])
    >>> await client.close()
"""

from __future__ import annotations

import logging

import httpx

from .errors import PriceServiceError
from .PriceFeed import normalize_feed_id

logger = logging.getLogger(__name__)

LATEST_UPDATES_PATH = "/v1/updates/price/latest"


class PriceServiceClient:
    """Async HTTP client for a price-update service.

    :cvar DEFAULT_TIMEOUT: Default request timeout in seconds.
    :ivar base_url: Service base URL without trailing slash.
    :ivar timeout: Request timeout in seconds.
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        :param base_url: Service base URL (e.g., "http://localhost:8080").
        :param timeout: Request timeout in seconds (default: 10).
        :param client: Optional pre-built httpx client; created lazily if
            not given.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, *, params: list[tuple[str, str]]) -> httpx.Response:
        """Make an HTTP GET request against the service.

        :param path: Request path.
        :param params: Query parameters (repeated keys allowed).
        :returns: httpx.Response object.
        :raises PriceServiceError: On non-2xx response or network errors.
        """
        url = self.base_url + path
        try:
            response = await self._get_client().get(url, params=params, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise PriceServiceError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise PriceServiceError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                f"HTTP GET {url} failed with status {response.status_code}: "
                f"{response.text[:200]}"
            )
            raise PriceServiceError(response.text[:200], status_code=response.status_code)
        return response

    async def get_price_feeds_update_data(self, feed_ids: list[str]) -> list[bytes]:
        """Fetch the latest signed update blobs for a set of feeds.

        :param feed_ids: Feed ids to fetch (hex).
        :returns: Raw update blobs.
        :raises ValueError: If no feed id is given or one is malformed.
        :raises PriceServiceError: If the request fails or the response is
            not in the expected shape.
        """
        if not feed_ids:
            raise ValueError("At least one feed id must be specified")

        params = [("ids[]", normalize_feed_id(f)) for f in feed_ids]
        params.append(("encoding", "hex"))
        response = await self._get(LATEST_UPDATES_PATH, params=params)

        try:
            binary = response.json()["binary"]
            if binary.get("encoding", "hex") != "hex":
                raise PriceServiceError(f"Unsupported encoding: {binary.get('encoding')}")
            blobs = [bytes.fromhex(h[2:] if h.startswith("0x") else h) for h in binary["data"]]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise PriceServiceError(f"Malformed price service response: {e}") from e

        logger.debug(f"Fetched {len(blobs)} update blobs for {len(feed_ids)} feeds")
        return blobs
