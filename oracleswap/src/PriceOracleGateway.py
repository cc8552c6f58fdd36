"""PriceOracleGateway: Verified, fee-gated cache of oracle prices.

The gateway is the only owner of price state. Callers push batches of signed
update blobs together with a fee; the gateway verifies them and keeps the
newest price per feed. Readers get a price only while it is within the
freshness window.

Ingestion rules (each blob is decoded once up front; malformed blobs raise
``InvalidUpdateData`` before any other check):
    1. The attached fee must cover ``fee_per_update`` for every update in
       the batch (``InsufficientFee``)
    2. Every blob signature must verify (``InvalidUpdateData``)
    3. Every update must be fresh (``StalePrice``)
    4. Only then is the new cache built and swapped in: a feed is replaced
       only by a strictly newer publish time, so out-of-order batches are
       no-ops

Any failure leaves the cache and the collected fees unchanged.

.. code-block:: python

    >>> gateway = PriceOracleGateway(SignedUpdateVerifier([publisher]))
    >>> fee = gateway.get_update_fee(update_data)
    >>> gateway.ingest_updates(update_data, fee)
    >>> gateway.get_price(BTC_USD_FEED_ID).value
    20000.0
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from .errors import InsufficientFee, StalePrice, UnknownFeed
from .PriceFeed import PriceFeed, normalize_feed_id
from .UpdatePayload import UpdateVerifier

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = 60
DEFAULT_FEE_PER_UPDATE = 1


class PriceOracleGateway:
    """Verified price cache with freshness gating.

    :ivar verifier: Verifier turning blobs into trusted prices.
    :ivar freshness_window: Maximum price age in seconds.
    :ivar fee_per_update: Fee charged per price update in a batch.
    :ivar collected_fees: Total fees accepted so far.
    """

    def __init__(
        self,
        verifier: UpdateVerifier,
        freshness_window: int = DEFAULT_FRESHNESS_WINDOW,
        fee_per_update: int = DEFAULT_FEE_PER_UPDATE,
        time_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the gateway.

        :param verifier: Verifier for incoming update blobs.
        :param freshness_window: Maximum price age in seconds (default: 60).
        :param fee_per_update: Fee per price update (default: 1).
        :param time_fn: Callable returning the current unix time
            (default: ``time.time``).
        :raises ValueError: If the window or fee is negative.
        """
        if freshness_window < 0:
            raise ValueError("freshness_window must not be negative")
        if fee_per_update < 0:
            raise ValueError("fee_per_update must not be negative")

        self.verifier = verifier
        self.freshness_window = freshness_window
        self.fee_per_update = fee_per_update
        self.time_fn = time_fn or time.time
        self.collected_fees = 0
        self._feeds: dict[str, PriceFeed] = {}

    def get_update_fee(self, update_data: Sequence[bytes]) -> int:
        """Compute the fee required to ingest a batch.

        :param update_data: Signed update blobs.
        :returns: ``fee_per_update`` times the number of price updates.
        :raises InvalidUpdateData: If a blob cannot be decoded.
        """
        count = sum(self.verifier.count_updates(blob) for blob in update_data)
        return self.fee_per_update * count

    def ingest_updates(self, update_data: Sequence[bytes], fee: int) -> None:
        """Verify a batch of update blobs and cache the newest prices.

        :param update_data: Signed update blobs.
        :param fee: Fee attached to the batch.
        :raises InvalidUpdateData: If any blob is malformed or fails
            verification.
        :raises InsufficientFee: If ``fee`` is below :meth:`get_update_fee`.
        :raises StalePrice: If any update is outside the freshness window.
        """
        parsed = [self.verifier.parse(blob) for blob in update_data]
        updates = [update for blob in parsed for update in blob.updates]

        required = self.fee_per_update * len(updates)
        if fee < required:
            logger.warning(f"Rejected update batch: fee {fee} below required {required}")
            raise InsufficientFee(required, fee)

        for blob in parsed:
            self.verifier.check(blob)

        now = self.time_fn()
        for update in updates:
            if not update.is_fresh(now, self.freshness_window):
                logger.warning(f"Rejected update batch: stale price {update}")
                raise StalePrice(
                    update.feed_id, update.publish_time, now, self.freshness_window
                )

        feeds = dict(self._feeds)
        applied = 0
        for update in updates:
            current = feeds.get(update.feed_id)
            if current is None or update.publish_time > current.publish_time:
                feeds[update.feed_id] = update
                applied += 1

        self._feeds = feeds
        self.collected_fees += fee
        logger.info(
            f"Ingested {len(updates)} price updates from {len(update_data)} blobs "
            f"({applied} applied, fee {fee})"
        )

    def get_price(self, feed_id: str) -> PriceFeed:
        """Get the cached price for a feed if it is still fresh.

        :param feed_id: Feed id (hex).
        :returns: Latest cached price.
        :raises UnknownFeed: If no price was ever ingested for the feed.
        :raises StalePrice: If the cached price is past the freshness window.
        """
        feed = self.get_price_unsafe(feed_id)
        now = self.time_fn()
        if not feed.is_fresh(now, self.freshness_window):
            raise StalePrice(feed.feed_id, feed.publish_time, now, self.freshness_window)
        return feed

    def get_price_unsafe(self, feed_id: str) -> PriceFeed:
        """Get the cached price for a feed regardless of its age.

        :param feed_id: Feed id (hex).
        :returns: Latest cached price.
        :raises UnknownFeed: If no price was ever ingested for the feed.
        """
        key = normalize_feed_id(feed_id)
        feed = self._feeds.get(key)
        if feed is None:
            raise UnknownFeed(key)
        return feed

    def feed_ids(self) -> list[str]:
        """Return the ids of all feeds with a cached price."""
        return sorted(self._feeds)

    def snapshot(self) -> tuple[dict[str, PriceFeed], int]:
        """Capture the cache and fee counter for transactional rollback."""
        return dict(self._feeds), self.collected_fees

    def restore(self, state: tuple[dict[str, PriceFeed], int]) -> None:
        """Restore state captured by :meth:`snapshot`."""
        feeds, collected_fees = state
        self._feeds = dict(feeds)
        self.collected_fees = collected_fees
