"""Command line entry point.

Usage:
    sagadex pools [--account 0x...]
    sagadex quote TEST USD 100
    sagadex serve [--host 127.0.0.1] [--port 8000]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace
from decimal import Decimal
from pathlib import Path

import structlog

from sagadex.amounts import format_decimal, from_ledger_units, to_ledger_units
from sagadex.config import Settings, load_configuration
from sagadex.errors import InvalidAmount
from sagadex.models.types import is_valid_address
from sagadex.pools import aggregate
from sagadex.quotes import min_acceptable_output
from sagadex.service import DexService, build_service
from sagadex.session import short_address


def configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sagadex", description="Saga DEX client")
    parser.add_argument("--catalogue", type=Path, default=None, help="Token catalogue JSON file")
    parser.add_argument(
        "--deployment",
        type=Path,
        default=None,
        help="Deployment address file (overrides SAGADEX_DEPLOYMENT_FILE)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    pools = sub.add_parser("pools", help="List pools that hold liquidity")
    pools.add_argument("--account", default=None, help="Show this account's share of each pool")

    quote = sub.add_parser("quote", help="Quote an exact-input swap")
    quote.add_argument("token_in")
    quote.add_argument("token_out")
    quote.add_argument("amount_in", help="Decimal amount of token_in")

    serve = sub.add_parser("serve", help="Run the read-only status API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    return parser


async def show_pools(service: DexService, account: str | None) -> int:
    listings = await service.pools.list_pools(account)
    if not listings:
        print("No pools with liquidity.")
        return 0

    for listing in listings:
        pool = listing.pool
        line = (
            f"{listing.pair.label:<12} "
            f"{format_decimal(pool.reserve_a)} {listing.pair.token_a} / "
            f"{format_decimal(pool.reserve_b)} {listing.pair.token_b}  "
            f"liquidity {format_decimal(pool.total_liquidity)}"
        )
        if account:
            line += f"  yours {format_decimal(listing.user_liquidity)}"
        print(line)

    summary = aggregate(listings)
    print()
    print(f"Pools: {summary.count}")
    if account:
        print(f"Owned by {short_address(account)}: {summary.owned_count}")
    estimate = summary.estimated_total_value.quantize(Decimal(1))
    print(f"Estimated total value: ~${format_decimal(estimate)} (estimate)")
    return 0


async def show_quote(service: DexService, token_in: str, token_out: str, amount_in: str) -> int:
    token = service.catalogue.get_token(token_in)
    out_token = service.catalogue.get_token(token_out)
    if token is None or out_token is None:
        print(f"Unknown token. Known: {', '.join(service.catalogue.symbols)}")
        return 1
    try:
        units = to_ledger_units(amount_in, token.decimals)
    except InvalidAmount as e:
        print(f"Error: {e}")
        return 1

    result = await service.quotes.quote(token_in, token_out, units)
    if not result.is_valid:
        reason = result.reason.value if result.reason else "no output"
        print(f"No quote for {token_in} -> {token_out}: {reason}")
        return 1

    bps = service.quotes.slippage_bps
    bound = min_acceptable_output(result.amount_out, bps)
    amount_out = from_ledger_units(result.amount_out, out_token.decimals)
    print(f"{from_ledger_units(units, token.decimals)} {token_in} -> {amount_out} {token_out}")
    print(f"Minimum at {bps / 100:g}% slippage: {from_ledger_units(bound, out_token.decimals)} {token_out}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "serve":
        from sagadex.api.main import run

        run(host=args.host, port=args.port)
        return 0

    settings = Settings.from_env()
    if args.deployment is not None:
        settings = replace(settings, deployment_file=args.deployment)
    catalogue = load_configuration(settings, args.catalogue)
    service = build_service(settings, catalogue)

    if args.command == "pools":
        if args.account is not None and not is_valid_address(args.account):
            print(f"Error: invalid account address: {args.account}")
            return 1
        return asyncio.run(show_pools(service, args.account))
    if args.command == "quote":
        return asyncio.run(show_quote(service, args.token_in, args.token_out, args.amount_in))
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
