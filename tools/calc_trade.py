"""
Size a leveraged trade from the command line.

Usage:
    python tools/calc_trade.py 100 5 2 10 1000
    python tools/calc_trade.py 100 5 2 10 400 --json

Arguments are: maximum risk, expected profit %, stop loss %, leverage, margin limit.
Fee rate and domain checks default to CALC_FEE_RATE_PCT / CALC_ENFORCE_INPUT_DOMAIN.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.append(str(repo_root))

from backend.core.config import get_log_level, get_settings
from backend.core.logging import init_logging
from backend.risk.trade_calculator import InvalidInputError, TradeResult, calculate_trade, parse_number


def _print_table(args: argparse.Namespace, result: TradeResult) -> None:
    rows = [
        ("Maximum Risk", f"{result.actual_risk:.2f}"),
        ("Expected Profit %", f"{args.profit}%"),
        ("Stop Loss %", f"{args.loss}%"),
        ("Leverage", str(args.leverage)),
        ("Position Size", f"{result.position_size:.2f}"),
        ("Margin Required", f"{result.margin_required:.2f}"),
        ("Total Fees", f"{result.total_fees:.2f}"),
        ("Expected Profit", f"{result.expected_profit:.2f}"),
    ]
    width = max(len(label) for label, _ in rows) + 1
    print("Trade Calculations")
    print("-" * (width + 16))
    for label, value in rows:
        print(f"{label + ':':<{width}}  {value:>14}")
    for warning in result.warnings:
        print(f"Warning: {warning}")


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Position size, margin, fees and risk for one leveraged trade.")
    parser.add_argument("max_risk", help="Maximum amount you are willing to lose.")
    parser.add_argument("profit", help="Expected profit as a percent of position size.")
    parser.add_argument("loss", help="Stop loss distance as a percent of position size.")
    parser.add_argument("leverage", help="Leverage multiplier.")
    parser.add_argument("margin_limit", help="Maximum margin to commit.")
    parser.add_argument(
        "--fee-rate",
        default=None,
        help="Fee per side in percent. Defaults to the configured rate (0.04).",
    )
    parser.add_argument(
        "--no-domain-check",
        action="store_true",
        help="Accept zero/negative risk, stop loss and margin limit like the original form did.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of a table.",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    init_logging(get_log_level())
    payload = {
        "max_risk": args.max_risk,
        "profit_percent": args.profit,
        "stop_loss_percent": args.loss,
        "leverage": args.leverage,
        "margin_limit": args.margin_limit,
    }
    try:
        fee_rate = settings.calc_fee_rate_pct if args.fee_rate is None else parse_number("fee_rate_pct", args.fee_rate)
        enforce = settings.calc_enforce_input_domain and not args.no_domain_check
        result = calculate_trade(payload, fee_rate_pct=fee_rate, enforce_domain=enforce)
    except InvalidInputError as exc:
        fields = ", ".join(exc.fields)
        print(f"Error: {exc}" + (f" ({fields})" if fields else ""), file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_table(args, result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
