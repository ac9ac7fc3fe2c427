"""
Command line interface.

Usage:
    python3 run_arbitrage.py quote
    python3 run_arbitrage.py --config configs/skale_arbitrage.yaml run
    python3 run_arbitrage.py --config configs/skale_arbitrage.yaml run --live
    python3 run_arbitrage.py scan
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

import logging_config

from .config_loader import load_arbitrage_config
from .exceptions import (
    ConfigurationError,
    DecimalMismatchError,
    MultiHopArbitrageError,
    PartialExecutionError,
)
from .pipeline import ArbitragePipeline, CycleReport, ScanResult
from .utils import format_usd

DEFAULT_CONFIG = "configs/skale_arbitrage.yaml"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PARTIAL = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Multi-hop cross-chain pool arbitrage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Quote both paths, send nothing
  python3 run_arbitrage.py quote

  # Evaluate and log the swaps that would be sent
  python3 run_arbitrage.py run

  # Evaluate and execute the selected path
  python3 run_arbitrage.py run --live

  # Search all configured pools for any profitable cycle
  python3 run_arbitrage.py scan
        """,
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to config YAML file (default: {DEFAULT_CONFIG})",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("--quiet", action="store_true", help="Warnings and errors only")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("quote", help="Evaluate forward and reverse paths once")
    run = commands.add_parser("run", help="Evaluate and execute the selected path")
    run.add_argument(
        "--live",
        action="store_true",
        help="Submit transactions (default: dry run, instructions are only logged)",
    )
    commands.add_parser("scan", help="Negative-cycle search over every configured pool")

    return parser.parse_args(argv)


def _setup_logging(args: argparse.Namespace) -> None:
    if args.verbose:
        logging_config.setup_debug()
    elif args.quiet:
        logging_config.setup_minimal()
    else:
        logging_config.setup(logging.INFO)


def print_report(report: CycleReport) -> None:
    """Console summary of a cycle."""
    print("=" * 80)
    for evaluation in report.evaluations:
        print(
            f"{evaluation.path.name:<8} {evaluation.path.describe():<40} "
            f"${evaluation.start_usd:.2f} -> ${evaluation.end_usd:.2f} "
            f"({format_usd(evaluation.profit)})"
        )
    flagged = [d for d in report.deviations if d.flagged]
    if flagged:
        print(f"⚠️  {len(flagged)} rate(s) deviate from reference prices")
    print("-" * 80)
    if report.selected is None:
        print("❌ No profitable path")
    else:
        print(f"✅ Selected: {report.selected.name} ({report.selected.describe()})")
    for receipt in report.receipts:
        print(
            f"  Hop {receipt.hop_index + 1} [{receipt.chain}] {receipt.tx_hash} "
            f"block={receipt.block_number} out={receipt.amount_out}"
        )
    print("=" * 80)


def print_scan(result: ScanResult) -> None:
    """Console summary of a cycle scan."""
    if result.cycle is None:
        print(
            f"❌ No profitable cycle ({result.node_count} assets, "
            f"{result.edge_count} edges)"
        )
        return
    route = " → ".join(result.cycle + result.cycle[:1])
    print(f"📊 {route}: {result.profit_pct:+.4f}%")


async def _run(args: argparse.Namespace, pipeline: ArbitragePipeline) -> int:
    if args.command == "scan":
        print_scan(await pipeline.scan())
        return EXIT_OK

    if args.command == "quote":
        report = await pipeline.quote()
    else:
        report = await pipeline.run_cycle(execute=args.live)

    print_report(report)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        0 on success, 1 on configuration or cycle failure, 2 when execution
        stopped after some hops confirmed
    """
    args = parse_args(argv)
    _setup_logging(args)
    logger = logging.getLogger(__name__)

    load_dotenv()

    try:
        config = load_arbitrage_config(args.config)
        pipeline = ArbitragePipeline.from_config(config)
    except (ConfigurationError, DecimalMismatchError) as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        return asyncio.run(_run(args, pipeline))
    except KeyboardInterrupt:
        print("\n\n⏸ Stopped by user")
        return EXIT_OK
    except PartialExecutionError as e:
        logger.error(f"Partial execution: {e}")
        for receipt in e.completed:
            logger.error(
                f"  confirmed hop {receipt.hop_index + 1} [{receipt.chain}] {receipt.tx_hash}"
            )
        print(
            f"❌ Execution stopped at hop {e.failed_index + 1}; "
            f"{len(e.completed)} hop(s) confirmed and not rolled back",
            file=sys.stderr,
        )
        return EXIT_PARTIAL
    except MultiHopArbitrageError as e:
        logger.error(f"Cycle failed: {e}")
        print(f"❌ Cycle failed: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
