"""Command line entry point: compute EPB indicators from CSV inputs."""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from epbd.config import RunConfig, load_run_config, run_config_from_dict
from epbd.core.averaging import AveragingPolicy
from epbd.core.factors import derive_missing_factors, to_nearby
from epbd.core.indicators import compute_balance
from epbd.core.ledger import balance_environment
from epbd.data.sources import load_factor_table, load_ledger
from epbd.errors import BalanceError
from epbd.report import RENDERERS, render

logger = logging.getLogger("epbd")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epbd",
        description="Weighted energy performance indicators (EN ISO 52000-1).",
    )
    parser.add_argument("--config", "-c", help="YAML run configuration file.")
    parser.add_argument("--ledger", "-l", help="Carrier ledger CSV file.")
    parser.add_argument("--factors", "-f", help="Weighting factors CSV file.")
    parser.add_argument("--area", "-a", type=float, help="Reference area [m2].")
    parser.add_argument("--kexp", "-k", type=float, help="Export factor k_exp [0-1].")
    parser.add_argument(
        "--averaging",
        choices=[p.value for p in AveragingPolicy],
        help="Averaging of factors across production sources.",
    )
    # None keeps the value of the config file
    parser.add_argument(
        "--derive-factors",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Complete the factor table with default and derived factors.",
    )
    parser.add_argument(
        "--balance-environment",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Add the ENVIRONMENT production implied by its metered use.",
    )
    parser.add_argument(
        "--nearby",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also report the RER for the nearby perimeter.",
    )
    parser.add_argument(
        "--format", choices=sorted(RENDERERS), default="plain", help="Report format."
    )
    parser.add_argument("--output", "-o", help="Write the report to this file.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    return parser


def resolve_config(args: argparse.Namespace) -> RunConfig:
    """Merge a config file (if any) with explicit command line flags."""
    overrides: Dict[str, Any] = {
        "ledger": args.ledger,
        "factors": args.factors,
        "reference_area": args.area,
        "k_exp": args.kexp,
        "averaging": args.averaging,
        "derive_factors": args.derive_factors,
        "balance_environment": args.balance_environment,
        "nearby": args.nearby,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if "averaging" in overrides:
        overrides["averaging"] = AveragingPolicy(overrides["averaging"])

    if args.config:
        config = load_run_config(args.config)
        config = dataclasses.replace(config, **overrides) if overrides else config
    else:
        if "reference_area" not in overrides:
            raise ValueError("A reference area is required (--area or --config).")
        config = run_config_from_dict(overrides)

    if config.ledger is None or config.factors is None:
        raise ValueError("Both a ledger and a factors file are required.")
    return config


def run(config: RunConfig, fmt: str = "plain") -> str:
    ledger = load_ledger(config.ledger)
    if config.balance_environment:
        ledger = balance_environment(ledger)
    factors = load_factor_table(config.factors)
    if config.derive_factors:
        factors = derive_missing_factors(factors, config.factor_defaults)
    balance = compute_balance(ledger, factors, config.parameters)
    nearby = None
    if config.nearby:
        nearby = compute_balance(ledger, to_nearby(factors), config.parameters)
    return render(balance, fmt, nearby)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = resolve_config(args)
        report = run(config, args.format)
    except (BalanceError, ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        return 2

    if args.output:
        Path(args.output).write_text(report + "\n")
        logger.info(f"Report written to {args.output}")
    else:
        sys.stdout.write(report + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
