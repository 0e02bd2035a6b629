# src/main.py — v1
"""CLI entry point — analyze and services commands.

Usage:
    rateshop analyze <shipments.json> --mappings <m.json> --carriers <c.json> [options]
    rateshop services [--carrier UPS]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rateshop.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def cli() -> None:
    """Console-script wrapper."""
    sys.exit(main())


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="rateshop",
        description=f"rateshop v{__version__} — Multi-carrier rate shopping and savings analysis",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- analyze ---
    p_analyze = subparsers.add_parser(
        "analyze", help="Analyze a shipment file against the selected carriers",
    )
    p_analyze.add_argument("shipments", type=Path, help="JSON file of raw shipment rows")
    p_analyze.add_argument(
        "-m", "--mappings", type=Path, required=True,
        help="JSON file of confirmed service mappings",
    )
    p_analyze.add_argument(
        "-c", "--carriers", type=Path, required=True,
        help="JSON file of carrier account configs",
    )
    p_analyze.add_argument(
        "--field-map", type=Path, default=None,
        help="JSON file mapping shipment fields to input columns",
    )
    p_analyze.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write the full report JSON here",
    )
    p_analyze.add_argument(
        "--failed-rows", type=Path, default=None,
        help="Write raw rows of orphaned shipments here for resubmission",
    )
    p_analyze.set_defaults(func=_cmd_analyze)

    # --- services ---
    p_services = subparsers.add_parser(
        "services", help="List universal service categories and carrier codes",
    )
    p_services.add_argument(
        "--carrier", default=None,
        help="Only show codes for this carrier (UPS, FEDEX, DHL, AMAZON)",
    )
    p_services.set_defaults(func=_cmd_services)

    return parser


async def _cmd_analyze(args: argparse.Namespace) -> int:
    """Execute a rate-shopping analysis."""
    from rateshop.api.facade import analyze_shipments
    from rateshop.api.models import AnalysisRequest
    from rateshop.core.models import FieldMap
    from rateshop.storage.reader import (
        load_carriers,
        load_field_map,
        load_mappings,
        load_shipments,
    )
    from rateshop.storage.report_writer import write_failed_rows, write_report

    for path in (args.shipments, args.mappings, args.carriers, args.field_map):
        if path is not None and not path.exists():
            logger.error("File not found: %s", path)
            return 1

    request = AnalysisRequest(
        shipments=load_shipments(args.shipments),
        service_mappings=load_mappings(args.mappings),
        carriers=load_carriers(args.carriers),
        field_map=load_field_map(args.field_map) if args.field_map else FieldMap(),
    )

    def on_progress(done: int, total: int) -> None:
        logger.info("Progress: %d/%d chunk(s)", done, total)

    run = await analyze_shipments(request, on_progress=on_progress)

    if args.output:
        write_report(run, args.output)
    if args.failed_rows and run.orphaned_shipments:
        write_failed_rows(run, args.failed_rows)

    _print_run_summary(run)
    return 0


async def _cmd_services(args: argparse.Namespace) -> int:
    """Print the service taxonomy."""
    from rateshop.taxonomy.services import (
        CARRIER_SERVICE_TABLES,
        UNIVERSAL_SERVICES,
        CarrierType,
    )

    carriers = list(CarrierType)
    if args.carrier:
        try:
            carriers = [CarrierType(args.carrier.strip().upper())]
        except ValueError:
            logger.error("Unknown carrier: %s", args.carrier)
            return 1

    for category, info in UNIVERSAL_SERVICES.items():
        print(f"{category.value:<26} {info.display_name} ({info.typical_transit_days} days)")
        for carrier in carriers:
            for entry in CARRIER_SERVICE_TABLES[carrier]:
                if entry.category == category and entry.is_available:
                    print(f"    {carrier.value:<7} {entry.code:<24} {entry.service_name}")
    return 0


def _print_run_summary(run: object) -> None:
    """Print a human-readable summary of an AnalysisRun."""
    print(f"\nAnalysis {run.status}:")
    print(f"  Run ID:        {run.run_id}")
    print(f"  Shipments:     {run.total_shipments}")
    print(f"  Analyzed:      {run.completed_shipments}")
    print(f"  Orphaned:      {run.error_shipments}")
    if run.excluded_shipments:
        print(f"  Excluded:      {run.excluded_shipments}")
    print(f"  Current cost:  ${run.total_current_cost:,.2f}")
    print(f"  Savings:       ${run.total_savings:,.2f} ({run.savings_percentage:.1f}%)")
    if run.fallback_comparisons:
        print(f"  Fallbacks:     {run.fallback_comparisons} (no rate in the mapped category)")
    for orphan in run.orphaned_shipments[:10]:
        print(f"    ! {orphan.shipment_id}: [{orphan.error_category}] {orphan.error}")
    if len(run.orphaned_shipments) > 10:
        print(f"    ... {len(run.orphaned_shipments) - 10} more")


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from rateshop.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO", log_format="text")
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
