"""PriceFeed: A single oracle price observation.

Prices are fixed-point: the real value is ``price * 10**expo``. The confidence
interval shares the same exponent.

.. code-block:: python

    >>> feed = PriceFeed(BTC_USD_FEED_ID, 2_000_000_000_000, 1_000_000, -8, 1685800000)
    >>> feed.value
    20000.0
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import MAX_EMAX, MIN_EMIN, Context, Decimal

from web3 import Web3

# Pyth BTC/USD and ETH/USD feed ids (testnet).
BTC_USD_FEED_ID = "0xf9c0172ba10dfa4d19088d94f5bf61d3b54d5bd7483a322a982e1373ee8ea31b"
ETH_USD_FEED_ID = "0x651071f8c7ab2321b6bdd3bc79b94a50841a92a6e065f9e3b8b9926a8fb5a5d1"

FEED_ID_LENGTH = 32

# Unbounded exponent range and no traps: display conversion never raises.
_DISPLAY_CONTEXT = Context(prec=28, Emax=MAX_EMAX, Emin=MIN_EMIN, traps=[])


def normalize_feed_id(feed_id: str | bytes) -> str:
    """Normalize a feed id to lowercase ``0x``-prefixed hex.

    :param feed_id: 32-byte id as raw bytes or hex (with or without ``0x``).
    :returns: Canonical hex string.
    :raises ValueError: If the id is not 32 bytes of valid hex.
    """
    if isinstance(feed_id, (bytes, bytearray)):
        raw = bytes(feed_id)
    else:
        text = feed_id[2:] if feed_id.lower().startswith("0x") else feed_id
        try:
            raw = bytes.fromhex(text)
        except ValueError as e:
            raise ValueError(f"Invalid feed id '{feed_id}': not hex") from e

    if len(raw) != FEED_ID_LENGTH:
        raise ValueError(
            f"Invalid feed id length {len(raw)}, expected {FEED_ID_LENGTH} bytes"
        )
    return Web3.to_hex(raw)


@dataclass(frozen=True)
class PriceFeed:
    """Latest price of one oracle feed.

    :ivar feed_id: Canonical feed id (see :func:`normalize_feed_id`).
    :ivar price: Price mantissa.
    :ivar conf: Confidence interval mantissa.
    :ivar expo: Decimal exponent applied to ``price`` and ``conf``.
    :ivar publish_time: Unix timestamp (seconds) the price was published at.
    """

    feed_id: str
    price: int
    conf: int
    expo: int
    publish_time: int

    @property
    def value(self) -> float:
        """Return the price as a float, for display only.

        Magnitudes outside the float range come back as ``inf`` or ``0.0``.
        """
        return float(Decimal(self.price).scaleb(self.expo, _DISPLAY_CONTEXT))

    def age(self, now: float) -> float:
        """Return the absolute distance between ``now`` and the publish time."""
        return abs(now - self.publish_time)

    def is_fresh(self, now: float, window: int) -> bool:
        """Check whether the price may still be used.

        :param now: Current unix time.
        :param window: Freshness window in seconds.
        :returns: True if the price is within ``window`` seconds of ``now``.
        """
        return self.age(now) <= window

    def __str__(self) -> str:
        return f"{self.feed_id[:10]}=${self.value:.6f}@{self.publish_time}"
