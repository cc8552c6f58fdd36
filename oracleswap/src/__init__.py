"""
Oracle Swap - Oracle-Priced Two-Asset Swap Pool

This module provides the pool core and its price collaborators:
- Asset: Pooled token with its decimals and oracle feed
- PriceFeed: Fixed-point oracle price observation
- UpdatePayload: Signed price-update wire format and verifiers
- PriceOracleGateway: Fee-gated, freshness-checked price cache
- LiquidityLedger: Pool reserves and provider shares
- SwapEngine: Oracle-priced swap and arbitrage execution
- Transaction: All-or-nothing execution across components
- PriceServiceClient: Async client fetching update blobs
"""

from .Asset import Asset
from .errors import (
    InsufficientFee,
    InsufficientShares,
    Insolvent,
    InvalidUpdateData,
    LedgerError,
    OracleError,
    OracleSwapError,
    PriceServiceError,
    SlippageExceeded,
    StalePrice,
    SwapError,
    UnknownFeed,
    ZeroAmount,
)
from .LiquidityLedger import LiquidityLedger, LiquidityPosition, PoolReserves
from .PriceFeed import BTC_USD_FEED_ID, ETH_USD_FEED_ID, PriceFeed, normalize_feed_id
from .PriceOracleGateway import PriceOracleGateway
from .PriceServiceClient import PriceServiceClient
from .SwapEngine import Direction, SwapEngine, SwapRequest, SwapResult, quote_amount_out
from .Transaction import Transaction
from .UpdatePayload import (
    SignedUpdate,
    SignedUpdateVerifier,
    UpdateVerifier,
    decode_updates,
    encode_updates,
    parse_blob,
)

__all__ = [
    "Asset",
    "BTC_USD_FEED_ID",
    "Direction",
    "ETH_USD_FEED_ID",
    "InsufficientFee",
    "InsufficientShares",
    "Insolvent",
    "InvalidUpdateData",
    "LedgerError",
    "LiquidityLedger",
    "LiquidityPosition",
    "OracleError",
    "OracleSwapError",
    "PoolReserves",
    "PriceFeed",
    "PriceOracleGateway",
    "PriceServiceClient",
    "PriceServiceError",
    "SignedUpdate",
    "SignedUpdateVerifier",
    "SlippageExceeded",
    "StalePrice",
    "SwapEngine",
    "SwapError",
    "SwapRequest",
    "SwapResult",
    "Transaction",
    "UnknownFeed",
    "UpdateVerifier",
    "ZeroAmount",
    "decode_updates",
    "encode_updates",
    "normalize_feed_id",
    "parse_blob",
    "quote_amount_out",
]
