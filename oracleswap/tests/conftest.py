"""Shared fixtures: a publisher key, a controllable clock and blob builders."""

import pytest
from eth_account import Account

from oracleswap.src.PriceFeed import BTC_USD_FEED_ID, ETH_USD_FEED_ID, PriceFeed
from oracleswap.src.UpdatePayload import encode_updates

# Well-known local development key, never used on a real network.
PUBLISHER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
PUBLISHER_ADDRESS = Account.from_key(PUBLISHER_KEY).address

OTHER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

START_TIME = 1_685_800_000


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_feed(feed_id: str, usd: int, publish_time: int, expo: int = -8) -> PriceFeed:
    """Build a price of ``usd`` dollars with the given exponent."""
    return PriceFeed(
        feed_id=feed_id,
        price=usd * 10**-expo,
        conf=10**-expo // 100,
        expo=expo,
        publish_time=publish_time,
    )


def make_blob(*feeds: PriceFeed, key: str = PUBLISHER_KEY) -> bytes:
    """Sign the given prices into one update blob."""
    return encode_updates(list(feeds), key)


def btc_eth_update(btc_usd: int, eth_usd: int, publish_time: int) -> list[bytes]:
    """Update data carrying one BTC/USD and one ETH/USD price, one blob each."""
    return [
        make_blob(make_feed(BTC_USD_FEED_ID, btc_usd, publish_time)),
        make_blob(make_feed(ETH_USD_FEED_ID, eth_usd, publish_time)),
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
