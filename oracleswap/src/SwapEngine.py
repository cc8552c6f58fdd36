"""SwapEngine: Oracle-priced swaps against the liquidity pool.

Trades execute at the oracle price ratio, not along a reserve curve::

    amount_out = amount_in * price_in / price_out

scaled by both price exponents and both tokens' decimals. The calculation is
exact integer arithmetic, rounded down in the pool's favour.

A swap runs as one transaction over the gateway and the ledger:
    1. Ingest the attached price updates (fee, signature, freshness)
    2. Read both prices through the gateway
    3. Quote the output and check the caller's minimum
    4. Apply the reserve deltas

If any step raises, the price cache, collected fees and reserves are rolled
back and the error propagates unchanged.

.. code-block:: python

    >>> engine = SwapEngine(gateway, ledger, btc, eth)
    >>> request = SwapRequest(Direction.B_TO_A, 10 * 10**18, update_data, fee)
    >>> engine.swap(request).amount_out  # BTC=20000, ETH=1800
    900000000000000000
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

from .Asset import Asset
from .errors import SlippageExceeded, ZeroAmount
from .LiquidityLedger import LiquidityLedger, PoolReserves
from .PriceFeed import PriceFeed
from .PriceOracleGateway import PriceOracleGateway
from .Transaction import Transaction

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    """Which asset the caller pays in."""

    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"

    @classmethod
    def from_is_buy(cls, is_buy: bool) -> Direction:
        """Map a buy/sell flag to a direction.

        Buying means acquiring asset A (the base) with asset B.
        """
        return cls.B_TO_A if is_buy else cls.A_TO_B

    @classmethod
    def from_string(cls, value: str) -> Direction:
        """Parse "a_to_b", "b_to_a", "sell" or "buy".

        :raises ValueError: If the value is not recognised.
        """
        value = value.strip().lower()
        if value == "buy":
            return cls.B_TO_A
        if value == "sell":
            return cls.A_TO_B
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Invalid direction '{value}'. Expected a_to_b, b_to_a, buy or sell"
            ) from None


@dataclass(frozen=True)
class SwapRequest:
    """A single swap, consumed once.

    :ivar direction: Which asset is paid in.
    :ivar amount_in: Base units paid into the pool.
    :ivar update_data: Signed price-update blobs to ingest first.
    :ivar fee: Fee attached for the price updates.
    :ivar min_amount_out: Optional minimum output; None disables the check.
    """

    direction: Direction
    amount_in: int
    update_data: Sequence[bytes] = field(default_factory=tuple)
    fee: int = 0
    min_amount_out: int | None = None


@dataclass(frozen=True)
class SwapResult:
    """Outcome of an executed swap.

    :ivar direction: Direction that was executed.
    :ivar amount_in: Base units paid into the pool.
    :ivar amount_out: Base units paid out of the pool.
    :ivar price_a: Oracle price used for asset A.
    :ivar price_b: Oracle price used for asset B.
    :ivar reserves: Pool reserves after the swap.
    """

    direction: Direction
    amount_in: int
    amount_out: int
    price_a: PriceFeed
    price_b: PriceFeed
    reserves: PoolReserves


def quote_amount_out(
    amount_in: int,
    price_in: PriceFeed,
    price_out: PriceFeed,
    decimals_in: int,
    decimals_out: int,
) -> int:
    """Convert an input amount to an output amount at the oracle ratio.

    :param amount_in: Base units of the input token.
    :param price_in: USD price of the input token.
    :param price_out: USD price of the output token.
    :param decimals_in: Decimals of the input token.
    :param decimals_out: Decimals of the output token.
    :returns: Base units of the output token, rounded down.
    """
    numerator = amount_in * price_in.price * 10**decimals_out
    denominator = price_out.price * 10**decimals_in

    expo_diff = price_in.expo - price_out.expo
    if expo_diff >= 0:
        numerator *= 10**expo_diff
    else:
        denominator *= 10**-expo_diff

    return numerator // denominator


def _reserve_value(reserve: int, price: PriceFeed, decimals: int) -> tuple[int, int]:
    """Return a reserve's USD value as (mantissa, exponent)."""
    return reserve * price.price, price.expo - decimals


class SwapEngine:
    """Executes swaps and arbitrage against an oracle-priced pool.

    :ivar gateway: Source of verified prices.
    :ivar ledger: Pool reserves and shares.
    :ivar asset_a: First pooled asset.
    :ivar asset_b: Second pooled asset.
    """

    def __init__(
        self,
        gateway: PriceOracleGateway,
        ledger: LiquidityLedger,
        asset_a: Asset,
        asset_b: Asset,
    ) -> None:
        """Initialize the engine.

        :param gateway: Price gateway shared with other readers.
        :param ledger: Ledger holding the pool reserves.
        :param asset_a: First pooled asset.
        :param asset_b: Second pooled asset.
        :raises ValueError: If both assets use the same price feed.
        """
        if asset_a.feed_id == asset_b.feed_id:
            raise ValueError("Pooled assets must be priced by different feeds")

        self.gateway = gateway
        self.ledger = ledger
        self.asset_a = asset_a
        self.asset_b = asset_b

        logger.info(
            f"SwapEngine initialized: {asset_a}/{asset_b} "
            f"(feeds {asset_a.feed_id[:10]}/{asset_b.feed_id[:10]}, "
            f"freshness {gateway.freshness_window}s)"
        )

    def _assets(self, direction: Direction) -> tuple[Asset, Asset]:
        if direction == Direction.A_TO_B:
            return self.asset_a, self.asset_b
        return self.asset_b, self.asset_a

    def quote(
        self,
        direction: Direction,
        amount_in: int,
        price_a: PriceFeed,
        price_b: PriceFeed,
        reserves: PoolReserves | None = None,
    ) -> int:
        """Quote the output of a trade at the given oracle prices.

        Reserves do not influence the price; they are accepted so callers can
        pass the state they quoted against.

        :param direction: Which asset is paid in.
        :param amount_in: Base units paid in.
        :param price_a: USD price of asset A.
        :param price_b: USD price of asset B.
        :param reserves: Pool reserves (unused for pricing).
        :returns: Base units paid out, rounded down.
        """
        asset_in, asset_out = self._assets(direction)
        if direction == Direction.A_TO_B:
            price_in, price_out = price_a, price_b
        else:
            price_in, price_out = price_b, price_a
        return quote_amount_out(
            amount_in, price_in, price_out, asset_in.decimals, asset_out.decimals
        )

    def arbitrage_direction(
        self, price_a: PriceFeed, price_b: PriceFeed, reserves: PoolReserves
    ) -> Direction:
        """Pick the trade that moves the pool toward equal value on both sides.

        The side worth more at oracle prices is paid out, so the caller pays
        in the scarcer asset. Balanced pools take asset A in.
        """
        value_a, expo_a = _reserve_value(reserves.reserve_a, price_a, self.asset_a.decimals)
        value_b, expo_b = _reserve_value(reserves.reserve_b, price_b, self.asset_b.decimals)
        common = min(expo_a, expo_b)
        value_a *= 10 ** (expo_a - common)
        value_b *= 10 ** (expo_b - common)
        return Direction.B_TO_A if value_a > value_b else Direction.A_TO_B

    def get_update_fee(self, update_data: Sequence[bytes]) -> int:
        """Return the fee the gateway charges for a batch."""
        return self.gateway.get_update_fee(update_data)

    def add_liquidity(self, provider_id: str, amount_a: int, amount_b: int) -> int:
        """Deposit liquidity into the pool. See :meth:`LiquidityLedger.add_liquidity`."""
        return self.ledger.add_liquidity(provider_id, amount_a, amount_b)

    def remove_liquidity(self, provider_id: str, shares: int) -> tuple[int, int]:
        """Withdraw liquidity. See :meth:`LiquidityLedger.remove_liquidity`."""
        return self.ledger.remove_liquidity(provider_id, shares)

    def swap(self, request: SwapRequest) -> SwapResult:
        """Execute a swap at oracle prices.

        :param request: The swap to execute.
        :returns: Executed amounts, prices and resulting reserves.
        :raises ZeroAmount: If the input or the quoted output is zero.
        :raises SlippageExceeded: If the output is below ``min_amount_out``.
        :raises OracleError: Propagated from the gateway.
        :raises LedgerError: Propagated from the ledger.
        """
        return self._execute(
            request.update_data,
            request.fee,
            request.amount_in,
            lambda price_a, price_b: request.direction,
            request.min_amount_out,
            label="swap",
        )

    def arbitrate(self, amount_in: int, update_data: Sequence[bytes], fee: int) -> SwapResult:
        """Realign the pool with the oracle, callable by anyone.

        Same flow as :meth:`swap` without a minimum-output guard; the engine
        chooses the direction with :meth:`arbitrage_direction`.

        :param amount_in: Base units paid in.
        :param update_data: Signed price-update blobs to ingest first.
        :param fee: Fee attached for the price updates.
        :returns: Executed amounts, prices and resulting reserves.
        """
        return self._execute(
            update_data,
            fee,
            amount_in,
            lambda price_a, price_b: self.arbitrage_direction(
                price_a, price_b, self.ledger.reserves()
            ),
            None,
            label="arbitrate",
        )

    def _execute(
        self,
        update_data: Sequence[bytes],
        fee: int,
        amount_in: int,
        choose_direction: Callable[[PriceFeed, PriceFeed], Direction],
        min_amount_out: int | None,
        label: str,
    ) -> SwapResult:
        if amount_in <= 0:
            raise ZeroAmount(f"amount_in must be positive, got {amount_in}")

        with Transaction([self.gateway, self.ledger], name=label):
            self.gateway.ingest_updates(update_data, fee)
            price_a = self.gateway.get_price(self.asset_a.feed_id)
            price_b = self.gateway.get_price(self.asset_b.feed_id)

            direction: Direction = choose_direction(price_a, price_b)
            reserves = self.ledger.reserves()
            amount_out = self.quote(direction, amount_in, price_a, price_b, reserves)

            if amount_out <= 0:
                raise ZeroAmount(f"amount_in {amount_in} is too small to pay out anything")
            if min_amount_out is not None and amount_out < min_amount_out:
                logger.warning(
                    f"{label}: quoted {amount_out} below minimum {min_amount_out}"
                )
                raise SlippageExceeded(amount_out, min_amount_out)

            if direction == Direction.A_TO_B:
                self.ledger.apply_swap_delta(amount_in, -amount_out)
            else:
                self.ledger.apply_swap_delta(-amount_out, amount_in)

            asset_in, asset_out = self._assets(direction)
            result = SwapResult(
                direction=direction,
                amount_in=amount_in,
                amount_out=amount_out,
                price_a=price_a,
                price_b=price_b,
                reserves=self.ledger.reserves(),
            )
            logger.info(
                f"{label}: {asset_in.format_amount(amount_in)} -> "
                f"{asset_out.format_amount(amount_out)} "
                f"({self.asset_a}=${price_a.value:.6f}, {self.asset_b}=${price_b.value:.6f}); "
                f"reserves ({result.reserves.reserve_a}, {result.reserves.reserve_b})"
            )
        return result
