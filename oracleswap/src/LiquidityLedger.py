"""LiquidityLedger: Pool reserves and liquidity provider shares.

Reserves are integer token base units and never go negative. Shares are
proportional claims on both reserves; the sum of all provider positions
always equals ``total_shares``.

Share minting:
    - First deposit: ``isqrt(amount_a * amount_b)`` (equal deposits mint 1:1)
    - Later deposits: ``min(amount_a * total / reserve_a, amount_b * total / reserve_b)``,
      skipping a side whose reserve is empty

.. code-block:: python

    >>> ledger = LiquidityLedger()
    >>> ledger.add_liquidity("alice", 100, 100)
    100
    >>> ledger.reserves()
    PoolReserves(reserve_a=100, reserve_b=100)
    >>> ledger.apply_swap_delta(-150, 10)
    Traceback (most recent call last):
    ...
    Insolvent: ...
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .errors import InsufficientShares, Insolvent, ZeroAmount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolReserves:
    """Token quantities held by the pool.

    :ivar reserve_a: Base units of asset A.
    :ivar reserve_b: Base units of asset B.
    """

    reserve_a: int
    reserve_b: int


@dataclass(frozen=True)
class LiquidityPosition:
    """A provider's claim on the pool.

    :ivar provider_id: Provider identity.
    :ivar shares: Shares held.
    """

    provider_id: str
    shares: int


class LiquidityLedger:
    """Tracks pool reserves and liquidity provider shares.

    :ivar total_shares: Shares issued across all providers.
    """

    def __init__(self) -> None:
        self._reserve_a = 0
        self._reserve_b = 0
        self.total_shares = 0
        self._shares: dict[str, int] = {}

    def reserves(self) -> PoolReserves:
        """Return the current reserves."""
        return PoolReserves(self._reserve_a, self._reserve_b)

    def shares_of(self, provider_id: str) -> int:
        """Return the shares held by a provider (0 if unknown)."""
        return self._shares.get(provider_id, 0)

    def positions(self) -> list[LiquidityPosition]:
        """Return all non-empty provider positions, ordered by provider id."""
        return [
            LiquidityPosition(provider_id, shares)
            for provider_id, shares in sorted(self._shares.items())
            if shares > 0
        ]

    def _shares_for_deposit(self, amount_a: int, amount_b: int) -> int:
        if self.total_shares == 0:
            return math.isqrt(amount_a * amount_b)

        candidates = []
        if self._reserve_a > 0:
            candidates.append(amount_a * self.total_shares // self._reserve_a)
        if self._reserve_b > 0:
            candidates.append(amount_b * self.total_shares // self._reserve_b)
        if not candidates:
            # Outstanding shares over an empty pool are worthless; reprice.
            return math.isqrt(amount_a * amount_b)
        return min(candidates)

    def add_liquidity(self, provider_id: str, amount_a: int, amount_b: int) -> int:
        """Deposit both assets and mint shares to the provider.

        :param provider_id: Depositing provider.
        :param amount_a: Base units of asset A to deposit.
        :param amount_b: Base units of asset B to deposit.
        :returns: Shares minted.
        :raises ZeroAmount: If either amount is not positive, or the deposit
            is too small to mint a single share.
        """
        if amount_a <= 0 or amount_b <= 0:
            raise ZeroAmount(
                f"Liquidity amounts must be positive, got ({amount_a}, {amount_b})"
            )

        minted = self._shares_for_deposit(amount_a, amount_b)
        if minted <= 0:
            raise ZeroAmount(
                f"Deposit ({amount_a}, {amount_b}) is too small to mint a share"
            )

        self._reserve_a += amount_a
        self._reserve_b += amount_b
        self.total_shares += minted
        self._shares[provider_id] = self._shares.get(provider_id, 0) + minted

        logger.info(
            f"{provider_id} added liquidity ({amount_a}, {amount_b}), "
            f"minted {minted} shares (total {self.total_shares})"
        )
        return minted

    def remove_liquidity(self, provider_id: str, shares: int) -> tuple[int, int]:
        """Burn a provider's shares and pay out its pro-rata reserves.

        :param provider_id: Withdrawing provider.
        :param shares: Shares to burn.
        :returns: Tuple of (amount_a, amount_b) paid out, rounded down.
        :raises ZeroAmount: If ``shares`` is not positive.
        :raises InsufficientShares: If the provider holds fewer shares.
        """
        if shares <= 0:
            raise ZeroAmount(f"Shares to burn must be positive, got {shares}")
        held = self.shares_of(provider_id)
        if shares > held:
            raise InsufficientShares(provider_id, held, shares)

        amount_a = self._reserve_a * shares // self.total_shares
        amount_b = self._reserve_b * shares // self.total_shares

        self._reserve_a -= amount_a
        self._reserve_b -= amount_b
        self.total_shares -= shares
        if held == shares:
            del self._shares[provider_id]
        else:
            self._shares[provider_id] = held - shares

        logger.info(
            f"{provider_id} removed liquidity: burned {shares} shares "
            f"for ({amount_a}, {amount_b})"
        )
        return amount_a, amount_b

    def apply_swap_delta(self, delta_a: int, delta_b: int) -> None:
        """Apply signed deltas to both reserves atomically.

        :param delta_a: Change to reserve A (negative pays out of the pool).
        :param delta_b: Change to reserve B.
        :raises Insolvent: If either reserve would become negative; neither
            reserve changes in that case.
        """
        new_a = self._reserve_a + delta_a
        new_b = self._reserve_b + delta_b
        if new_a < 0 or new_b < 0:
            logger.warning(
                f"Rejected swap delta ({delta_a}, {delta_b}) against reserves "
                f"({self._reserve_a}, {self._reserve_b})"
            )
            raise Insolvent(self._reserve_a, self._reserve_b, delta_a, delta_b)

        self._reserve_a = new_a
        self._reserve_b = new_b
        logger.debug(f"Applied swap delta ({delta_a}, {delta_b}) -> ({new_a}, {new_b})")

    def snapshot(self) -> tuple[int, int, int, dict[str, int]]:
        """Capture reserves and shares for transactional rollback."""
        return self._reserve_a, self._reserve_b, self.total_shares, dict(self._shares)

    def restore(self, state: tuple[int, int, int, dict[str, int]]) -> None:
        """Restore state captured by :meth:`snapshot`."""
        self._reserve_a, self._reserve_b, self.total_shares, shares = state
        self._shares = dict(shares)
