#!/usr/bin/env python3
"""Oracle Swap harness.

Sets up an oracle-priced BTC/ETH pool, seeds it with liquidity, fetches
signed price updates from a price service and submits them together with a
swap (or an arbitrage) against the pool.

Run via ``python -m oracleswap.main`` with env vars or CLI arguments.
"""

import argparse
import asyncio
import logging
import os
import sys

from .src.Asset import Asset
from .src.errors import OracleSwapError
from .src.LiquidityLedger import LiquidityLedger
from .src.PriceFeed import BTC_USD_FEED_ID, ETH_USD_FEED_ID
from .src.PriceOracleGateway import (
    DEFAULT_FEE_PER_UPDATE,
    DEFAULT_FRESHNESS_WINDOW,
    PriceOracleGateway,
)
from .src.PriceServiceClient import PriceServiceClient
from .src.SwapEngine import Direction, SwapEngine, SwapRequest, SwapResult
from .src.UpdatePayload import SignedUpdateVerifier

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

DEFAULT_PRICE_SERVICE_URL = "http://localhost:8080"
DEFAULT_ASSET_A = f"btc:{BTC_USD_FEED_ID}:18"
DEFAULT_ASSET_B = f"eth:{ETH_USD_FEED_ID}:18"
LIQUIDITY_PROVIDER = "deployer"
DEFAULT_AMOUNT_IN = "10"
DEFAULT_ARBITRATE_AMOUNT_IN = str(10 * 10**18)


def parse_trusted_signers(signers_str: str | None) -> list[str]:
    """Parse a comma-separated list of publisher addresses.

    :param signers_str: Comma-separated addresses.
    :returns: List of non-empty, stripped addresses.
    """
    if not signers_str:
        return []
    return [s.strip() for s in signers_str.split(",") if s.strip()]


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser. Environment variables supply defaults."""
    parser = argparse.ArgumentParser(
        description="Oracle Swap: oracle-priced two-asset swap pool harness",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Buy BTC with 10 ETH at oracle prices
  python -m oracleswap.main --trusted-signers 0xPublisher --direction buy --amount-in 10

  # Arbitrage the pool back toward the oracle price
  python -m oracleswap.main --trusted-signers 0xPublisher --arbitrate --amount-in 10000000000000000000

Environment variables (CLI args take precedence):
  PRICE_SERVICE_URL, ASSET_A, ASSET_B, TRUSTED_SIGNERS, FRESHNESS_WINDOW,
  UPDATE_FEE, LIQUIDITY_A, LIQUIDITY_B, AMOUNT_IN, DIRECTION,
  MIN_AMOUNT_OUT, FETCH_TIMEOUT
""",
    )

    parser.add_argument(
        "--price-service-url",
        dest="price_service_url",
        type=str,
        help=f"Price service base URL (default: {DEFAULT_PRICE_SERVICE_URL})",
        default=os.environ.get("PRICE_SERVICE_URL") or DEFAULT_PRICE_SERVICE_URL,
    )

    parser.add_argument(
        "--asset-a",
        dest="asset_a",
        type=str,
        help="First pooled asset as symbol:feed_id[:decimals] (default: BTC)",
        default=os.environ.get("ASSET_A") or DEFAULT_ASSET_A,
    )

    parser.add_argument(
        "--asset-b",
        dest="asset_b",
        type=str,
        help="Second pooled asset as symbol:feed_id[:decimals] (default: ETH)",
        default=os.environ.get("ASSET_B") or DEFAULT_ASSET_B,
    )

    parser.add_argument(
        "--trusted-signers",
        dest="trusted_signers",
        type=str,
        help="Comma-separated publisher addresses whose updates are accepted",
        default=os.environ.get("TRUSTED_SIGNERS"),
    )

    parser.add_argument(
        "--freshness-window",
        dest="freshness_window",
        type=int,
        help=f"Max price age in seconds (default: {DEFAULT_FRESHNESS_WINDOW})",
        default=int(os.environ.get("FRESHNESS_WINDOW") or DEFAULT_FRESHNESS_WINDOW),
    )

    parser.add_argument(
        "--update-fee",
        dest="update_fee",
        type=int,
        help=f"Fee charged per price update (default: {DEFAULT_FEE_PER_UPDATE})",
        default=int(os.environ.get("UPDATE_FEE") or DEFAULT_FEE_PER_UPDATE),
    )

    parser.add_argument(
        "--liquidity-a",
        dest="liquidity_a",
        type=str,
        help="Initial liquidity of asset A in whole tokens (default: 100)",
        default=os.environ.get("LIQUIDITY_A") or "100",
    )

    parser.add_argument(
        "--liquidity-b",
        dest="liquidity_b",
        type=str,
        help="Initial liquidity of asset B in whole tokens (default: 100)",
        default=os.environ.get("LIQUIDITY_B") or "100",
    )

    parser.add_argument(
        "--amount-in",
        dest="amount_in",
        type=str,
        help=(
            f"Amount paid into the pool: whole tokens for swaps (default: {DEFAULT_AMOUNT_IN}), "
            f"base units with --arbitrate (default: {DEFAULT_ARBITRATE_AMOUNT_IN})"
        ),
        default=os.environ.get("AMOUNT_IN"),
    )

    parser.add_argument(
        "--direction",
        type=str,
        help="a_to_b, b_to_a, sell (=a_to_b) or buy (=b_to_a) (default: buy)",
        default=os.environ.get("DIRECTION") or "buy",
    )

    parser.add_argument(
        "--min-amount-out",
        dest="min_amount_out",
        type=str,
        help="Minimum output in whole tokens (default: no slippage check)",
        default=os.environ.get("MIN_AMOUNT_OUT"),
    )

    parser.add_argument(
        "--arbitrate",
        action="store_true",
        help="Arbitrate the pool instead of swapping (direction chosen by the pool)",
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for price service requests in seconds (default: 10.0)",
        default=float(os.environ.get("FETCH_TIMEOUT") or "10.0"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def build_engine(args: argparse.Namespace, time_fn=None) -> SwapEngine:
    """Create the gateway, ledger and engine described by the arguments.

    :param args: Parsed CLI arguments.
    :param time_fn: Optional clock for the gateway.
    :returns: Configured SwapEngine with an empty pool.
    :raises ValueError: If any argument is invalid.
    """
    verifier = SignedUpdateVerifier(parse_trusted_signers(args.trusted_signers))
    gateway = PriceOracleGateway(
        verifier,
        freshness_window=args.freshness_window,
        fee_per_update=args.update_fee,
        time_fn=time_fn,
    )
    return SwapEngine(
        gateway,
        LiquidityLedger(),
        Asset.from_string(args.asset_a),
        Asset.from_string(args.asset_b),
    )


async def run(
    args: argparse.Namespace,
    engine: SwapEngine,
    client: PriceServiceClient,
) -> SwapResult:
    """Seed the pool, fetch price updates and execute the trade.

    :param args: Parsed CLI arguments.
    :param engine: Engine to trade against.
    :param client: Price service client.
    :returns: The executed swap.
    """
    asset_a, asset_b = engine.asset_a, engine.asset_b

    engine.add_liquidity(
        LIQUIDITY_PROVIDER,
        asset_a.to_base_units(args.liquidity_a),
        asset_b.to_base_units(args.liquidity_b),
    )
    logger.info("Liquidity added")

    update_data = await client.get_price_feeds_update_data(
        [asset_a.feed_id, asset_b.feed_id]
    )
    fee = engine.get_update_fee(update_data)
    logger.info(f"Fetched {len(update_data)} update blobs, fee {fee}")

    if args.arbitrate:
        # The pool picks the input asset, so the amount is already in base units.
        amount_in = int(args.amount_in or DEFAULT_ARBITRATE_AMOUNT_IN)
        result = engine.arbitrate(amount_in, update_data, fee)
        logger.info("Arbitrage done")
        return result

    direction = Direction.from_string(args.direction)
    asset_in, asset_out = (asset_a, asset_b) if direction == Direction.A_TO_B else (asset_b, asset_a)
    min_amount_out = (
        asset_out.to_base_units(args.min_amount_out)
        if args.min_amount_out is not None
        else None
    )
    request = SwapRequest(
        direction=direction,
        amount_in=asset_in.to_base_units(args.amount_in or DEFAULT_AMOUNT_IN),
        update_data=tuple(update_data),
        fee=fee,
        min_amount_out=min_amount_out,
    )
    result = engine.swap(request)
    logger.info("Swap done")
    return result


async def _main_async(args: argparse.Namespace, engine: SwapEngine) -> SwapResult:
    client = PriceServiceClient(args.price_service_url, timeout=args.fetch_timeout)
    try:
        return await run(args, engine, client)
    finally:
        await client.close()


def main() -> None:
    """Main entry point for the Oracle Swap CLI."""
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if not parse_trusted_signers(args.trusted_signers):
        parser.error("At least one trusted signer must be specified")

    if args.freshness_window < 0:
        parser.error("--freshness-window must not be negative")

    if args.update_fee < 0:
        parser.error("--update-fee must not be negative")

    if args.arbitrate and args.amount_in is not None and not args.amount_in.isdigit():
        parser.error("--amount-in must be an integer number of base units with --arbitrate")

    try:
        engine = build_engine(args)
    except ValueError as e:
        parser.error(str(e))

    # Log configuration
    logger.info("=" * 60)
    logger.info("Oracle Swap - Oracle-Priced Pool Harness")
    logger.info("=" * 60)
    logger.info(f"Price Service:     {args.price_service_url}")
    logger.info(f"Assets:            {engine.asset_a}/{engine.asset_b}")
    logger.info(f"Trusted Signers:   {args.trusted_signers}")
    logger.info(f"Freshness Window:  {args.freshness_window}s")
    logger.info(f"Update Fee:        {args.update_fee} per update")
    logger.info(f"Liquidity:         {args.liquidity_a} / {args.liquidity_b}")
    logger.info(f"Mode:              {'arbitrate' if args.arbitrate else args.direction}")
    logger.info("=" * 60)

    try:
        asyncio.run(_main_async(args, engine))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except (OracleSwapError, ValueError) as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
