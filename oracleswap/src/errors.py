"""Exception hierarchy for the oracle swap pool.

Every error is terminal for the operation that raised it. Components never
retry and never leave partially applied state behind; the caller decides
what to do next.

.. code-block:: text

    OracleSwapError
    ├── OracleError
    │   ├── InsufficientFee
    │   ├── StalePrice
    │   ├── UnknownFeed
    │   └── InvalidUpdateData
    ├── LedgerError
    │   ├── ZeroAmount
    │   ├── Insolvent
    │   └── InsufficientShares
    ├── SwapError
    │   └── SlippageExceeded
    └── PriceServiceError
"""


class OracleSwapError(Exception):
    """Base exception for all pool errors."""

    pass


class OracleError(OracleSwapError):
    """Base exception for price gateway errors."""

    pass


class InsufficientFee(OracleError):
    """Raised when the fee attached to an update batch is too low.

    :ivar required: Fee required for the batch.
    :ivar paid: Fee actually attached.
    """

    def __init__(self, required: int, paid: int):
        """Initialize the error.

        :param required: Fee required for the batch.
        :param paid: Fee actually attached.
        """
        self.required = required
        self.paid = paid
        super().__init__(f"Insufficient update fee: required {required}, paid {paid}")


class StalePrice(OracleError):
    """Raised when a price is outside the freshness window.

    :ivar feed_id: Feed the price belongs to.
    :ivar publish_time: Publish time of the rejected price.
    :ivar now: Clock reading the age was measured against.
    :ivar window: Freshness window in seconds.
    """

    def __init__(self, feed_id: str, publish_time: int, now: float, window: int):
        """Initialize the error.

        :param feed_id: Feed the price belongs to.
        :param publish_time: Publish time of the rejected price.
        :param now: Clock reading the age was measured against.
        :param window: Freshness window in seconds.
        """
        self.feed_id = feed_id
        self.publish_time = publish_time
        self.now = now
        self.window = window
        super().__init__(
            f"Stale price for {feed_id}: published at {publish_time}, "
            f"now {int(now)}, window {window}s"
        )


class UnknownFeed(OracleError):
    """Raised when no price has ever been ingested for a feed.

    :ivar feed_id: The requested feed id.
    """

    def __init__(self, feed_id: str):
        """Initialize the error.

        :param feed_id: The requested feed id.
        """
        self.feed_id = feed_id
        super().__init__(f"Unknown price feed: {feed_id}")


class InvalidUpdateData(OracleError):
    """Raised when an update blob is malformed or carries a bad signature."""

    pass


class LedgerError(OracleSwapError):
    """Base exception for liquidity ledger errors."""

    pass


class ZeroAmount(LedgerError):
    """Raised when an amount that must be positive is not."""

    pass


class Insolvent(LedgerError):
    """Raised when a delta would drive a reserve below zero.

    :ivar reserve_a: Reserve of asset A before the delta.
    :ivar reserve_b: Reserve of asset B before the delta.
    :ivar delta_a: Requested change to reserve A.
    :ivar delta_b: Requested change to reserve B.
    """

    def __init__(self, reserve_a: int, reserve_b: int, delta_a: int, delta_b: int):
        """Initialize the error.

        :param reserve_a: Reserve of asset A before the delta.
        :param reserve_b: Reserve of asset B before the delta.
        :param delta_a: Requested change to reserve A.
        :param delta_b: Requested change to reserve B.
        """
        self.reserve_a = reserve_a
        self.reserve_b = reserve_b
        self.delta_a = delta_a
        self.delta_b = delta_b
        super().__init__(
            f"Insolvent: reserves ({reserve_a}, {reserve_b}) "
            f"cannot absorb delta ({delta_a}, {delta_b})"
        )


class InsufficientShares(LedgerError):
    """Raised when a provider burns more shares than it holds.

    :ivar provider_id: Provider attempting the withdrawal.
    :ivar held: Shares held by the provider.
    :ivar requested: Shares requested to burn.
    """

    def __init__(self, provider_id: str, held: int, requested: int):
        """Initialize the error.

        :param provider_id: Provider attempting the withdrawal.
        :param held: Shares held by the provider.
        :param requested: Shares requested to burn.
        """
        self.provider_id = provider_id
        self.held = held
        self.requested = requested
        super().__init__(
            f"Provider {provider_id} holds {held} shares, cannot burn {requested}"
        )


class SwapError(OracleSwapError):
    """Base exception for swap engine errors."""

    pass


class SlippageExceeded(SwapError):
    """Raised when a quote falls below the caller's minimum output.

    :ivar amount_out: Quoted output amount.
    :ivar min_amount_out: Minimum the caller accepted.
    """

    def __init__(self, amount_out: int, min_amount_out: int):
        """Initialize the error.

        :param amount_out: Quoted output amount.
        :param min_amount_out: Minimum the caller accepted.
        """
        self.amount_out = amount_out
        self.min_amount_out = min_amount_out
        super().__init__(
            f"Slippage exceeded: quoted {amount_out}, minimum {min_amount_out}"
        )


class PriceServiceError(OracleSwapError):
    """Raised when the off-chain price service cannot be reached or answers badly.

    :ivar status_code: HTTP status code, if a response was received.
    """

    def __init__(self, message: str, status_code: int | None = None):
        """Initialize the error.

        :param message: Error description.
        :param status_code: HTTP status code, if any.
        """
        self.status_code = status_code
        if status_code is not None:
            message = f"HTTP {status_code}: {message}"
        super().__init__(message)
