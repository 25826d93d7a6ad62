"""
Command-line simulation of the adaptive vocabulary test.

Builds a synthetic item bank (or loads a calibrated CSV bank), runs simulated
examinees through complete adaptive sessions and prints a summary.

Exit codes:
    0 - Success
    1 - Item bank error
    2 - Simulation error
"""
import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import List, Optional

from vocabcat.core.cat.item_bank import EmptyBankError, ItemBankError, load_item_bank
from vocabcat.core.cat.simulation import (
    SimulationConfig,
    SimulationResult,
    generate_item_bank,
    run_simulation,
)
from vocabcat.core.config import settings
from vocabcat.core.logging_config import setup_logging

logger = logging.getLogger("vocabcat.cli")

DEFAULT_N_ITEMS = 300
DEFAULT_N_EXAMINEES = 200


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vocabcat-simulate",
        description="Simulate adaptive vocabulary tests against an item bank",
    )
    parser.add_argument(
        "--bank",
        type=str,
        help="CSV item bank to load (default: generate a synthetic bank)",
    )
    parser.add_argument(
        "--items",
        type=int,
        default=DEFAULT_N_ITEMS,
        help=f"Size of the synthetic bank when --bank is not given (default: {DEFAULT_N_ITEMS})",
    )
    parser.add_argument(
        "--examinees",
        type=int,
        default=DEFAULT_N_EXAMINEES,
        help=f"Number of simulated examinees (default: {DEFAULT_N_EXAMINEES})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=settings.SIMULATION_SEED,
        help=f"Random seed (default: {settings.SIMULATION_SEED})",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the summary as JSON",
    )
    return parser


def summarize(result: SimulationResult) -> dict:
    """Aggregate metrics of a simulation run as a JSON-serializable dict."""
    return {
        "examinees": len(result.examinee_results),
        "mean_items": round(result.mean_items, 2),
        "median_items": result.median_items,
        "mean_se": round(result.mean_se, 4),
        "mean_bias": round(result.mean_bias, 4),
        "rmse": round(result.rmse, 4),
        "stopping_reasons": result.stopping_reason_counts,
        "cat_config": asdict(result.cat_config),
    }


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the simulation."""
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        if args.bank:
            bank = load_item_bank(args.bank)
        else:
            bank = generate_item_bank(n_items=args.items, seed=args.seed)
        if len(bank) == 0:
            raise EmptyBankError("Item bank has no items")
    except (ItemBankError, EmptyBankError) as exc:
        logger.error("Item bank error: %s", exc)
        return 1

    config = SimulationConfig(n_examinees=args.examinees, seed=args.seed)
    try:
        result = run_simulation(bank, config)
    except Exception as exc:
        logger.exception("Simulation failed: %s", exc)
        return 2

    summary = summarize(result)
    if args.json:
        print(json.dumps(summary, indent=2), flush=True)
    else:
        print(f"Examinees:     {summary['examinees']}")
        print(f"Mean items:    {summary['mean_items']}")
        print(f"Median items:  {summary['median_items']}")
        print(f"Mean SE:       {summary['mean_se']}")
        print(f"Mean bias:     {summary['mean_bias']:+}")
        print(f"RMSE:          {summary['rmse']}")
        for reason, count in sorted(summary["stopping_reasons"].items()):
            print(f"  {reason:<18} {count}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
