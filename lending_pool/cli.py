"""Command-line interface for the lending pool."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .bootstrap import PoolContext, build_context, initialize_from_config
from .config import load_config
from .errors import LendingPoolError
from .logging_setup import configure_logging
from .models import AccountSnapshot
from .units import HEALTH_FACTOR_MAX, format_bps, format_fixed, to_fixed

logger = logging.getLogger(__name__)

# CLI command -> LendingPool method taking (user, symbol, amount)
_USER_OPERATIONS = {
    "deposit": "deposit",
    "withdraw": "withdraw",
    "deposit-collateral": "deposit_collateral",
    "withdraw-collateral": "withdraw_collateral",
    "borrow": "borrow",
    "repay": "repay",
}


def _amount(value: str) -> int:
    try:
        return to_fixed(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="lending-pool",
        description="Lending pool accounting and risk engine",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init", help="Initialize the pool and configure assets from config")

    status_parser = sub.add_parser("status", help="Show pool totals and rates")
    status_parser.add_argument("symbols", nargs="*", help="Assets (default: all)")

    account_parser = sub.add_parser("account", help="Show a user's account data")
    account_parser.add_argument("user")

    price_parser = sub.add_parser("set-price", help="Set an oracle price (admin)")
    price_parser.add_argument("symbol")
    price_parser.add_argument("price", type=_amount, help="USD price, e.g. 0.12")

    refresh_parser = sub.add_parser("refresh-prices", help="Publish Pyth prices to the oracle")
    refresh_parser.add_argument("symbols", nargs="*", help="Assets (default: all feeds)")

    for command in _USER_OPERATIONS:
        op_parser = sub.add_parser(command, help=f"{command.replace('-', ' ').capitalize()}")
        op_parser.add_argument("user")
        op_parser.add_argument("symbol")
        op_parser.add_argument("amount", type=_amount, help="Token amount, e.g. 100.5")

    return parser


def _print_status(ctx: PoolContext, symbols: list[str]) -> None:
    pool = ctx.pool
    for symbol in symbols or pool.configured_assets():
        config = pool.get_asset_config(symbol)
        state = pool.get_pool_state(symbol)
        print(
            f"{symbol}: supplied={format_fixed(state.total_supplied)} "
            f"borrowed={format_fixed(state.total_borrowed)} "
            f"utilization={format_bps(state.utilization_rate)} "
            f"borrow_rate={format_fixed(state.borrow_rate, 4)}% "
            f"supply_rate={format_fixed(state.supply_rate, 4)}% "
            f"ltv={format_bps(config.ltv_ratio)} "
            f"liq_threshold={format_bps(config.liquidation_threshold)} "
            f"active={config.is_active} collateral={config.is_collateral}"
        )


def _print_account(user: str, snapshot: AccountSnapshot) -> None:
    hf = (
        "∞"
        if snapshot.health_factor == HEALTH_FACTOR_MAX
        else format_fixed(snapshot.health_factor, 4)
    )
    print(f"Account {user}")
    for line in snapshot.assets:
        print(
            f"  {line.symbol}: collateral={format_fixed(line.collateral_amount)} "
            f"(${format_fixed(line.collateral_usd, 2)}) "
            f"debt={format_fixed(line.debt_amount)} (${format_fixed(line.debt_usd, 2)})"
        )
    print(f"  Total collateral: ${format_fixed(snapshot.total_collateral_usd, 2)}")
    print(f"  Total debt:       ${format_fixed(snapshot.total_debt_usd, 2)}")
    print(f"  LTV:              {format_bps(snapshot.ltv)}")
    print(f"  Health factor:    {hf}")


def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    config = load_config(args.config)
    ctx = build_context(config)
    admin = config.pool.admin

    if args.command == "init":
        initialize_from_config(ctx)
        _print_status(ctx, [])
    elif args.command == "status":
        _print_status(ctx, args.symbols)
    elif args.command == "account":
        _print_account(args.user, ctx.pool.get_user_account_data(args.user))
    elif args.command == "set-price":
        ctx.oracle.set_price(admin, args.symbol, args.price)
    elif args.command == "refresh-prices":
        prices = asyncio.run(ctx.price_feed.publish(ctx.oracle, admin, args.symbols or None))
        if not prices:
            logger.warning("No prices published")
    elif args.command in _USER_OPERATIONS:
        method = getattr(ctx.pool, _USER_OPERATIONS[args.command])
        result = method(args.user, args.symbol, args.amount)
        if args.command == "repay":
            print(f"Repaid {format_fixed(result)} {args.symbol}")
        elif args.command == "borrow":
            _print_account(args.user, result)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    try:
        _run(args)
    except LendingPoolError as e:
        logger.error("%s failed: %s", args.command, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
