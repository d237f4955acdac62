#!/usr/bin/env python3
"""
CLI for running property comparisons.

Usage:
    python cli.py dashboards
    python cli.py compare <subject_id> <comparable_id> [<comparable_id> ...]
    python cli.py one-click <subject_id>
    python cli.py show <result_id>
    python cli.py reconcile <result_id> <value> [--notes TEXT]

Examples:
    # Compare against two comparables on the detailed dashboard
    python cli.py compare property_12 property_15 property_31 --dashboard dashboard_detailed

    # Let the finder pick up to 3 comparables within 2 miles
    python cli.py one-click property_12 --max 3 --max-distance 2

    # Raw JSON output
    python cli.py compare property_12 property_15 --json

    # Reconcile a stored result (STORAGE_BACKEND=file keeps results between runs)
    python cli.py reconcile comparison_<uuid> 315000 --notes "Weighted to closest sale"
"""

import argparse
import asyncio
import json
import logging
import sys

from core.comparison import ComparisonResult, ComparisonValidationError, PropertyNotFoundError
from core.comparison.engine import (
    DEFAULT_MAX_COMPARABLES,
    DEFAULT_MAX_DISTANCE_MILES,
    DEFAULT_SIMILARITY_THRESHOLD,
)
from providers.factory import build_engine
from utils.config import Config
from utils.formatting import format_currency, format_percent, format_value


def print_result(result: ComparisonResult) -> None:
    """Print a comparison as a metric table plus similarity ranking."""
    print(f"Comparison {result.id}")
    print(f"Subject: {result.subject_property_id}  Dashboard: {result.dashboard_id}")
    print()

    for metric in result.metric_results:
        print(f"{metric.metric.value}: subject {format_value(metric.subject_value.to_raw())}")
        for cv in metric.comparable_values:
            diff = ""
            if cv.value.is_numeric and metric.subject_value.is_numeric:
                diff = f"  ({format_percent(cv.percent_difference, signed=True)})"
            print(f"    {cv.property_id:<20} {format_value(cv.value.to_raw()):>14}{diff}")
        stats = metric.statistics
        print(
            f"    median {format_value(stats.median)}  mean {format_value(stats.mean)}"
            f"  sd {format_value(stats.standard_deviation)}"
        )

    print()
    print("Similarity:")
    ranked = sorted(result.similarity_scores, key=lambda s: s.score, reverse=True)
    for score in ranked:
        categories = ", ".join(f"{cs.category} {cs.score:.2f}" for cs in score.category_scores)
        print(f"    {score.property_id:<20} {score.score:.3f}  [{categories}]")

    reconciliation = result.value_reconciliation
    if reconciliation is not None:
        print()
        print(
            f"Reconciled value: {format_currency(reconciliation.reconciled_value)}"
            f" (range {format_currency(reconciliation.min_value)}"
            f" - {format_currency(reconciliation.max_value)})"
        )
        if reconciliation.notes:
            print(f"    {reconciliation.notes}")


def cmd_dashboards(args, engine):
    """List configured dashboards."""
    dashboards = asyncio.run(engine.get_dashboards())
    for dashboard in dashboards:
        flags = []
        if dashboard.is_default:
            flags.append("default")
        if dashboard.is_system:
            flags.append("system")
        suffix = f" ({', '.join(flags)})" if flags else ""
        print(f"{dashboard.id}: {dashboard.name}{suffix}")
        print(f"    {', '.join(m.metric.value for m in dashboard.enabled_metrics)}")
    return 0


def cmd_compare(args, engine):
    """Compare a subject against explicit comparables."""
    result = asyncio.run(
        engine.compare_properties(args.subject_id, args.comparable_ids, args.dashboard)
    )
    return _output(result, args.json)


def cmd_one_click(args, engine):
    """Find comparables and compare in one step."""
    result = asyncio.run(
        engine.one_click_comparison(
            args.subject_id,
            max_comparables=args.max,
            dashboard_id=args.dashboard,
            similarity_threshold=args.threshold,
            max_distance=args.max_distance,
        )
    )
    return _output(result, args.json)


def cmd_show(args, engine):
    """Print a stored comparison result."""
    result = asyncio.run(engine.get_comparison_result(args.result_id))
    if result is None:
        print(f"Error: comparison result {args.result_id} not found", file=sys.stderr)
        return 1
    return _output(result, args.json)


def cmd_reconcile(args, engine):
    """Record a reconciled value on a stored result."""
    saved = asyncio.run(engine.save_reconciled_value(args.result_id, args.value, args.notes))
    if not saved:
        print(
            f"Error: could not reconcile {args.result_id} (unknown result or no comparable prices)",
            file=sys.stderr,
        )
        return 1
    return cmd_show(args, engine)


def _output(result: ComparisonResult, as_json: bool) -> int:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_result(result)
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Property Comparison Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python cli.py dashboards
    python cli.py compare property_12 property_15 property_31
    python cli.py one-click property_12 --max 3
        """,
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    dashboards_parser = subparsers.add_parser("dashboards", help="List dashboards")
    dashboards_parser.set_defaults(func=cmd_dashboards)

    compare_parser = subparsers.add_parser("compare", help="Compare explicit comparables")
    compare_parser.add_argument("subject_id", help="Subject property id")
    compare_parser.add_argument("comparable_ids", nargs="+", help="Comparable property ids")
    compare_parser.add_argument("--dashboard", help="Dashboard id (default: default dashboard)")
    compare_parser.add_argument("--json", action="store_true", help="Print raw JSON")
    compare_parser.set_defaults(func=cmd_compare)

    one_click_parser = subparsers.add_parser("one-click", help="Find comparables and compare")
    one_click_parser.add_argument("subject_id", help="Subject property id")
    one_click_parser.add_argument("--max", type=int, default=DEFAULT_MAX_COMPARABLES)
    one_click_parser.add_argument("--threshold", type=float, default=DEFAULT_SIMILARITY_THRESHOLD)
    one_click_parser.add_argument("--max-distance", type=float, default=DEFAULT_MAX_DISTANCE_MILES)
    one_click_parser.add_argument("--dashboard", help="Dashboard id (default: default dashboard)")
    one_click_parser.add_argument("--json", action="store_true", help="Print raw JSON")
    one_click_parser.set_defaults(func=cmd_one_click)

    show_parser = subparsers.add_parser("show", help="Show a stored comparison result")
    show_parser.add_argument("result_id", help="Comparison result id")
    show_parser.add_argument("--json", action="store_true", help="Print raw JSON")
    show_parser.set_defaults(func=cmd_show)

    reconcile_parser = subparsers.add_parser("reconcile", help="Record a reconciled value")
    reconcile_parser.add_argument("result_id", help="Comparison result id")
    reconcile_parser.add_argument("value", type=float, help="Reconciled value")
    reconcile_parser.add_argument("--notes", help="Supporting notes")
    reconcile_parser.add_argument("--json", action="store_true", help="Print raw JSON")
    reconcile_parser.set_defaults(func=cmd_reconcile)

    args = parser.parse_args(argv)

    config = Config.load()
    logging.basicConfig(level=logging.DEBUG if args.verbose else config.log_level)

    try:
        engine = build_engine(config)
        return args.func(args, engine)
    except (ComparisonValidationError, PropertyNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
