"""Asset: A pooled token and the oracle feed that prices it.

.. code-block:: python

    >>> btc = Asset("BTC", BTC_USD_FEED_ID)
    >>> str(btc)
    'btc'
    >>> btc.decimals
    18
    >>> btc.to_base_units("0.9")
    900000000000000000
"""

from __future__ import annotations

from .PriceFeed import normalize_feed_id

DEFAULT_DECIMALS = 18


class Asset:
    """A fungible token held by the pool.

    :ivar symbol: Token symbol (lowercase).
    :ivar feed_id: Canonical id of the oracle feed quoting this token in USD.
    :ivar decimals: Number of decimals of the token's base unit.
    """

    def __init__(self, symbol: str, feed_id: str | bytes, decimals: int = DEFAULT_DECIMALS) -> None:
        """Initialize an asset.

        :param symbol: Token symbol (e.g., "btc", "eth").
        :param feed_id: 32-byte oracle feed id (hex or bytes).
        :param decimals: Token decimals (default: 18).
        :raises ValueError: If the symbol is empty, decimals negative or the
            feed id malformed.
        """
        if not symbol:
            raise ValueError("Asset symbol must not be empty")
        if decimals < 0:
            raise ValueError("decimals must not be negative")
        self.symbol = symbol.lower()
        self.feed_id = normalize_feed_id(feed_id)
        self.decimals = decimals

    def __str__(self) -> str:
        """Return the token symbol."""
        return self.symbol

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"Asset({self.symbol!r}, {self.feed_id!r}, decimals={self.decimals})"

    def __hash__(self) -> int:
        """Return hash for use in dicts and sets."""
        return hash((self.symbol, self.feed_id, self.decimals))

    def __eq__(self, other: object) -> bool:
        """Check equality on symbol, feed and decimals."""
        if not isinstance(other, Asset):
            return NotImplemented
        return (self.symbol, self.feed_id, self.decimals) == (
            other.symbol,
            other.feed_id,
            other.decimals,
        )

    def to_base_units(self, amount: int | str) -> int:
        """Convert a whole-token amount (e.g., "1.5") to base units.

        :param amount: Token amount as int or decimal string.
        :returns: Amount in base units.
        :raises ValueError: If the amount has more fractional digits than
            the token supports.
        """
        text = str(amount).strip()
        if text.startswith("-"):
            raise ValueError(f"Amount {text} must not be negative")
        whole, _, frac = text.partition(".")
        if len(frac) > self.decimals:
            raise ValueError(
                f"Amount {text} has more than {self.decimals} decimals for {self}"
            )
        return int(whole or "0") * 10**self.decimals + int(frac.ljust(self.decimals, "0") or "0")

    def format_amount(self, base_units: int) -> str:
        """Format a base-unit amount as a decimal string with the symbol."""
        if self.decimals == 0:
            return f"{base_units} {self.symbol.upper()}"
        sign = "-" if base_units < 0 else ""
        whole, frac = divmod(abs(base_units), 10**self.decimals)
        frac_str = str(frac).rjust(self.decimals, "0").rstrip("0") or "0"
        return f"{sign}{whole}.{frac_str} {self.symbol.upper()}"

    @classmethod
    def from_string(cls, asset_str: str) -> Asset:
        """Parse an asset string in format "symbol:feed_id[:decimals]".

        :param asset_str: Asset string like "btc:0xf9c0...ea31b:18".
        :returns: New Asset instance.
        :raises ValueError: If the string format is invalid.
        """
        parts = asset_str.split(":")
        if len(parts) not in (2, 3):
            raise ValueError(
                f"Invalid asset format '{asset_str}'. Expected 'symbol:feed_id[:decimals]'"
            )
        decimals = int(parts[2]) if len(parts) == 3 else DEFAULT_DECIMALS
        return cls(parts[0], parts[1], decimals)
