"""Command-line interface for the Celo portfolio tracker."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal
from typing import Any

from eth_utils import is_hex_address

from .config import load_config
from .errors import UnpricedTokenError
from .logging_setup import configure_logging
from .models import Portfolio
from .services import PortfolioService

logger = logging.getLogger(__name__)


def wallet_address(value: str) -> str:
    """argparse type for a 0x-prefixed 20-byte hex wallet address."""
    if not is_hex_address(value):
        raise argparse.ArgumentTypeError(f"not a wallet address: {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="celo-portfolio",
        description="Value a Celo wallet from on-chain balances and Ubeswap prices",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    sub = parser.add_subparsers(dest="command")

    value_parser = sub.add_parser("value", help="Value a wallet's holdings")
    value_parser.add_argument("address", type=wallet_address, help="Wallet address")
    value_parser.add_argument(
        "--json", action="store_true", help="Print the portfolio as JSON"
    )
    value_parser.add_argument(
        "--allow-unpriced",
        action="store_true",
        help="Report entries without a price instead of failing",
    )

    return parser


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _format_wallet(address: str) -> str:
    if len(address) > 16:
        return f"{address[:8]}...{address[-6:]}"
    return address


def _usd(value: Decimal | None) -> str:
    return "price unavailable" if value is None else f"${value:,.2f}"


def format_portfolio(portfolio: Portfolio, base_unit: int = 10**18) -> str:
    """Plain-text report of a valued portfolio."""
    lines = [
        f"Portfolio {_format_wallet(portfolio.address)}",
        f"Total: ${portfolio.total:,.2f}",
        "",
        "Tokens:",
    ]
    for balance in portfolio.token_balances:
        amount = Decimal(balance.raw_amount) / base_unit
        usd_value = (
            None if balance.usd_value is None else balance.usd_value / base_unit
        )
        lines.append(
            f"  {balance.token.symbol:<8} {amount:>18,.4f}  {_usd(usd_value)}"
        )
    if not portfolio.token_balances:
        lines.append("  (none)")

    if portfolio.pooled_positions:
        lines += ["", "Ubeswap:"]
        for position in portfolio.pooled_positions:
            lines.append(f"  {position.label:<18} {_usd(position.usd_value)}")

    locked = portfolio.locked_position
    if locked is not None:
        lines += ["", f"Locked {locked.token.symbol}:"]
        if locked.total > 0:
            amount = Decimal(locked.total) / base_unit
            lines.append(f"  Total      {amount:>18,.4f}  {_usd(locked.usd_value)}")
        if locked.nonvoting > 0:
            amount = Decimal(locked.nonvoting) / base_unit
            lines.append(
                f"  Non voting {amount:>18,.4f}  {_usd(locked.nonvoting_usd_value)}"
            )

    if portfolio.unpriced:
        lines += ["", f"Unpriced (excluded from total): {', '.join(portfolio.unpriced)}"]

    if portfolio.failures:
        lines += ["", "Failed lookups:"]
        for failure in portfolio.failures:
            name = failure.symbol or failure.key
            lines.append(f"  [{failure.kind}] {name}: {failure.reason}")

    return "\n".join(lines)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def portfolio_to_dict(portfolio: Portfolio) -> dict[str, Any]:
    locked = portfolio.locked_position
    return {
        "address": portfolio.address,
        "total": portfolio.total,
        "tokens": [
            {
                "symbol": b.token.symbol,
                "address": b.token.address,
                "raw_amount": str(b.raw_amount),
                "usd_value_raw": b.usd_value,
            }
            for b in portfolio.token_balances
        ],
        "pools": [
            {
                "label": p.label,
                "pool": p.pool_address,
                "balances": p.balances,
                "usd_value": p.usd_value,
            }
            for p in portfolio.pooled_positions
        ],
        "locked": None
        if locked is None
        else {
            "symbol": locked.token.symbol,
            "total": str(locked.total),
            "nonvoting": str(locked.nonvoting),
            "usd_value": locked.usd_value,
            "nonvoting_usd_value": locked.nonvoting_usd_value,
        },
        "unpriced": list(portfolio.unpriced),
        "failures": [
            {"kind": str(f.kind), "key": f.key, "symbol": f.symbol, "reason": f.reason}
            for f in portfolio.failures
        ],
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command and return the exit status."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    service = PortfolioService(config)

    try:
        portfolio = await service.value(
            args.address, allow_unpriced=args.allow_unpriced
        )
    except UnpricedTokenError as e:
        logger.error("%s", e)
        print(f"Cannot value portfolio: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(portfolio_to_dict(portfolio), indent=2, default=_json_default))
    else:
        print(format_portfolio(portfolio, config.balances.base_unit))
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
