#!/usr/bin/env python3
"""Oracle Guard.

Validates on-chain prices from a Chainlink feed and an optional Uniswap V3
TWAP, gated on L2 sequencer health, and checks swap quotes against them.

Configure RPC endpoints with RPC_URL_<CHAIN_ID> env vars or --rpc-url.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from decimal import Decimal

from .src.ChainData import Web3ChainData
from .src.errors import OracleGuardError
from .src.FeedRegistry import CHAIN_NAMES
from .src.GuardConfig import GuardConfig, parse_decimal
from .src.OracleGuard import OracleGuard

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def parse_feed_overrides(feed_str: str | None) -> dict[str, str]:
    """Parse comma-separated feed overrides into a dictionary.

    Format: PAIR=address,PAIR=address
    Example: ETH/USD=0x5f4e...,SEQUENCER=0xFdB6...

    :param feed_str: Comma-separated feed override string.
    :returns: Dict mapping pair keys to feed addresses.
    """
    if not feed_str:
        return {}

    feeds = {}
    for item in feed_str.split(","):
        item = item.strip()
        if "=" in item:
            pair, address = item.split("=", 1)
            feeds[pair.strip().upper()] = address.strip()
    return feeds


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the oracle-guard CLI."""
    parser = argparse.ArgumentParser(
        description="Oracle Guard: Dual-oracle price validation with L2 sequencer checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Chainlink price for ETH/USD on Ethereum mainnet
  python -m oracle_guard.main price --pair ETH/USD --chain-id 1

  # Cross-validate against a Uniswap V3 pool TWAP on Arbitrum
  python -m oracle_guard.main price --pair ETH/USD --chain-id 42161 \\
      --twap-pool 0xC6962004f452bE9203591991D15f6b388e09E8D0

  # Check a router quote, rejecting if the oracle is unavailable
  python -m oracle_guard.main quote --pair ETH/USD --chain-id 1 \\
      --quoted-price 2013.5 --require-oracle

Environment variables (CLI args take precedence):
  RPC_URL_<CHAIN_ID>, DEVIATION_WARNING, DEVIATION_REJECT, DEFAULT_HEARTBEAT,
  SEQUENCER_GRACE_PERIOD, TWAP_PERIOD, READ_TIMEOUT
""",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--chain-id",
        dest="chain_id",
        type=int,
        help="EVM chain ID (default: 1)",
        default=int(os.environ.get("CHAIN_ID") or "1"),
    )
    common.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="RPC endpoint for --chain-id (overrides RPC_URL_<CHAIN_ID>)",
        default=None,
    )
    common.add_argument(
        "--feeds",
        type=str,
        help="Comma-separated feed overrides for --chain-id (e.g., ETH/USD=0x...,SEQUENCER=0x...)",
        default=os.environ.get("FEEDS"),
    )
    common.add_argument(
        "--deviation-warning",
        dest="deviation_warning",
        type=parse_decimal,
        help="Deviation ratio that triggers a warning (default: 0.02)",
        default=None,
    )
    common.add_argument(
        "--deviation-reject",
        dest="deviation_reject",
        type=parse_decimal,
        help="Deviation ratio that rejects the price (default: 0.05)",
        default=None,
    )
    common.add_argument(
        "--read-timeout",
        dest="read_timeout",
        type=float,
        help="Deadline for each chain read in seconds (default: 10.0)",
        default=None,
    )
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    price = subparsers.add_parser(
        "price", parents=[common], help="Get a validated price"
    )
    price.add_argument("--pair", type=str, required=True, help="Price pair (e.g., ETH/USD)")
    price.add_argument(
        "--twap-pool",
        dest="twap_pool",
        type=str,
        help="Uniswap V3 pool address for TWAP cross-validation",
        default=None,
    )

    quote = subparsers.add_parser(
        "quote", parents=[common], help="Validate a quoted price against the oracle"
    )
    quote.add_argument("--pair", type=str, required=True, help="Price pair (e.g., ETH/USD)")
    quote.add_argument(
        "--quoted-price",
        dest="quoted_price",
        type=parse_decimal,
        required=True,
        help="Price implied by the quote",
    )
    quote.add_argument(
        "--twap-pool",
        dest="twap_pool",
        type=str,
        help="Uniswap V3 pool address for TWAP cross-validation",
        default=None,
    )
    quote.add_argument(
        "--require-oracle",
        dest="require_oracle",
        action="store_true",
        help="Reject the quote when the oracle cannot validate it",
    )

    subparsers.add_parser(
        "pairs", parents=[common], help="List supported pairs for a chain"
    )

    return parser


def build_config(args: argparse.Namespace) -> GuardConfig:
    """Build a GuardConfig from environment variables and CLI arguments.

    :param args: Parsed CLI arguments.
    :returns: Effective configuration.
    """
    config = GuardConfig.from_env()
    read_timeout = args.read_timeout
    if read_timeout is None and config.read_timeout is None:
        read_timeout = 10.0
    feeds = parse_feed_overrides(args.feeds)
    return config.with_overrides(
        deviation_warning_threshold=args.deviation_warning,
        deviation_reject_threshold=args.deviation_reject,
        read_timeout=read_timeout,
        feeds={args.chain_id: feeds} if feeds else None,
    )


async def run(args: argparse.Namespace, guard: OracleGuard) -> int:
    """Run a CLI command against the guard.

    :param args: Parsed CLI arguments.
    :param guard: Configured oracle guard.
    :returns: Process exit code.
    """
    if args.command == "pairs":
        print(json.dumps({
            "chain_id": args.chain_id,
            "chain": CHAIN_NAMES.get(args.chain_id),
            "pairs": guard.get_supported_pairs(args.chain_id),
            "sequencer_feed": guard.is_l2_with_sequencer(args.chain_id),
        }, indent=2))
        return 0

    if args.command == "price":
        try:
            result = await guard.get_validated_price(args.pair, args.chain_id, args.twap_pool)
        except OracleGuardError as e:
            logger.error(f"Price validation failed: {e}")
            print(json.dumps(e.to_dict(), indent=2))
            return 1
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    verdict = await guard.validate_quote(
        args.quoted_price,
        args.pair,
        args.chain_id,
        twap_pool_address=args.twap_pool,
        require_oracle=args.require_oracle,
    )
    print(json.dumps(verdict.to_dict(), indent=2))
    return 0 if verdict.accepted else 1


def main() -> None:
    """Main entry point for the Oracle Guard CLI."""
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "quote" and args.quoted_price <= Decimal(0):
        parser.error("--quoted-price must be positive")

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    rpc_urls = {args.chain_id: args.rpc_url} if args.rpc_url else None
    chain_data = Web3ChainData(rpc_urls)

    async def _run() -> int:
        try:
            return await run(args, OracleGuard(chain_data, config))
        finally:
            await chain_data.close()

    try:
        exit_code = asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        exit_code = 130
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
