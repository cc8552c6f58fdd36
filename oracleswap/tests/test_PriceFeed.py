"""Unit tests for PriceFeed."""

import pytest

from oracleswap.src.PriceFeed import (
    BTC_USD_FEED_ID,
    ETH_USD_FEED_ID,
    PriceFeed,
    normalize_feed_id,
)


class TestNormalizeFeedId:
    """Test feed id normalization."""

    def test_lowercases_and_prefixes(self) -> None:
        """Hex without prefix or in uppercase should normalize."""
        raw = BTC_USD_FEED_ID[2:].upper()
        assert normalize_feed_id(raw) == BTC_USD_FEED_ID
        assert normalize_feed_id("0X" + raw) == BTC_USD_FEED_ID

    def test_accepts_bytes(self) -> None:
        """Raw 32-byte ids should be hex encoded."""
        raw = bytes.fromhex(ETH_USD_FEED_ID[2:])
        assert normalize_feed_id(raw) == ETH_USD_FEED_ID

    def test_rejects_wrong_length(self) -> None:
        """Ids that are not 32 bytes should raise ValueError."""
        with pytest.raises(ValueError, match="Invalid feed id length"):
            normalize_feed_id("0x1234")

    def test_rejects_non_hex(self) -> None:
        """Non-hex strings should raise ValueError."""
        with pytest.raises(ValueError, match="not hex"):
            normalize_feed_id("btc/usd")


class TestPriceFeed:
    """Test PriceFeed value and freshness helpers."""

    def test_value_negative_exponent(self) -> None:
        """Mantissa and exponent should combine into the USD value."""
        feed = PriceFeed(BTC_USD_FEED_ID, 2_000_000_000_000, 1_000_000, -8, 100)
        assert feed.value == 20000.0

    def test_value_positive_exponent(self) -> None:
        """Positive exponents should scale up."""
        feed = PriceFeed(BTC_USD_FEED_ID, 2, 0, 4, 100)
        assert feed.value == 20000.0

    def test_freshness_window_inclusive(self) -> None:
        """A price exactly at the window edge should still be fresh."""
        feed = PriceFeed(BTC_USD_FEED_ID, 1, 0, 0, 1000)
        assert feed.is_fresh(1060, 60)
        assert not feed.is_fresh(1061, 60)

    def test_future_prices_measured_by_distance(self) -> None:
        """Prices published ahead of the clock age by absolute distance."""
        feed = PriceFeed(BTC_USD_FEED_ID, 1, 0, 0, 1100)
        assert feed.age(1000) == 100
        assert not feed.is_fresh(1000, 60)

    def test_frozen(self) -> None:
        """PriceFeed instances should be immutable."""
        feed = PriceFeed(BTC_USD_FEED_ID, 1, 0, 0, 1000)
        with pytest.raises(AttributeError):
            feed.price = 2  # type: ignore[misc]

    @pytest.mark.parametrize("expo", [-10**6, -330, -64, 64, 330, 10**6])
    def test_extreme_exponents_never_raise(self, expo: int) -> None:
        """Display helpers should degrade to inf or 0.0 instead of raising."""
        feed = PriceFeed(BTC_USD_FEED_ID, 2**63 - 1, 0, expo, 1000)
        value = feed.value
        assert value >= 0.0
        assert str(feed).startswith(BTC_USD_FEED_ID[:10])

    def test_tiny_value_keeps_precision(self) -> None:
        """Small but representable values should not collapse to zero."""
        feed = PriceFeed(BTC_USD_FEED_ID, 2, 0, -64, 1000)
        assert feed.value == pytest.approx(2e-64)
