#!/usr/bin/env python3
"""
Statement Analyzer - Command Line Runner
========================================

Runs the full pipeline for one company:

- Fetch balance sheet, income and cashflow statements (mock, Tushare Pro or AkShare)
- Optional accounting-identity validation
- Asset structure, profit and leverage ratios
- DCF and profit-growth multiple model valuation
- Optional sensitivity re-run under alternate assumptions

Usage:
    python run_analysis.py --stock 600519.SH --years 2023,2022,2021
    python run_analysis.py --stock 600519.SH --source tushare --enable-validation
    python run_analysis.py --stock 600519.SH --source akshare --strict-validation
    python run_analysis.py --stock 600519.SH --sensitivity --fcf-growth-rate -0.05
    python run_analysis.py --stock 600519.SH --classification policy.json --quiet

Output:
    outputs/<stock>/<stock>_report.txt
    outputs/<stock>/<stock>_analysis.json
    outputs/<stock>/<stock>_ratios.csv
    outputs/<stock>/<stock>_analysis.xlsx

Version: 1.0.0
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List

from statement_analyzer import (
    LOGGER,
    OUTPUT_DIR,
    AnalyzerError,
    FinancialAnalyzer,
    SensitivityParams,
    StatementValidator,
    TextReporter,
    get_data_source,
    load_classification_policy,
    __version__,
)


# =============================================================================
# FORMATTING UTILITIES
# =============================================================================

def print_line(char="=", length=72):
    """Print separator line."""
    print(char * length)


def print_banner():
    """Print application banner."""
    print()
    print_line()
    print("  STATEMENT ANALYZER")
    print("  Ratio Analysis, DCF & Multiple Model Valuation")
    print(f"  Version: {__version__}")
    print_line()


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def parse_years(value: str) -> List[int]:
    """Parse a comma-separated list of fiscal years."""
    try:
        years = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid year list: {value}") from None
    if not years:
        raise argparse.ArgumentTypeError("At least one year is required")
    return years


def default_years() -> str:
    last = date.today().year - 1
    return ",".join(str(last - i) for i in range(3))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Statement Analyzer - Ratio Analysis & Equity Valuation"
    )
    parser.add_argument(
        "--stock",
        required=True,
        help="Stock code, e.g. 600519.SH"
    )
    parser.add_argument(
        "--years",
        type=parse_years,
        default=default_years(),
        help="Comma-separated fiscal years (default: last three completed years)"
    )
    parser.add_argument(
        "--source",
        choices=["mock", "tushare", "akshare"],
        default="mock",
        help="Statement data source (default: mock)"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=OUTPUT_DIR,
        help="Output directory (default: outputs/)"
    )
    parser.add_argument(
        "--enable-validation",
        action="store_true",
        help="Validate statements before analysis"
    )
    parser.add_argument(
        "--strict-validation",
        action="store_true",
        help="Abort when a statement fails a critical check (implies --enable-validation)"
    )
    parser.add_argument(
        "--classification",
        type=Path,
        default=None,
        help="JSON account classification policy file"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and skip printing the report"
    )

    sensitivity = parser.add_argument_group("sensitivity analysis")
    sensitivity.add_argument(
        "--sensitivity",
        action="store_true",
        help="Re-run valuation under alternate assumptions"
    )
    sensitivity.add_argument("--discount-rate", type=float, default=None)
    sensitivity.add_argument("--perpetual-growth-rate", type=float, default=None)
    sensitivity.add_argument("--fcf-growth-rate", type=float, default=None)
    sensitivity.add_argument("--net-profit-growth-rate", type=float, default=None)
    sensitivity.add_argument("--low-yield", type=float, default=None)
    sensitivity.add_argument("--high-yield", type=float, default=None)

    return parser


def sensitivity_params_from_args(args: argparse.Namespace) -> SensitivityParams:
    """Default SensitivityParams overridden by any rate given on the command line."""
    overrides = {
        name: getattr(args, name)
        for name in (
            "discount_rate",
            "perpetual_growth_rate",
            "fcf_growth_rate",
            "net_profit_growth_rate",
            "low_yield",
            "high_yield",
        )
        if getattr(args, name) is not None
    }
    return SensitivityParams(**overrides)


# =============================================================================
# MAIN FUNCTION
# =============================================================================

def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.quiet:
        LOGGER.setLevel(logging.WARNING)
    else:
        print_banner()

    try:
        analyzer = FinancialAnalyzer()
        if args.enable_validation or args.strict_validation:
            analyzer.with_validator(StatementValidator(strict=args.strict_validation))
        if args.classification is not None:
            analyzer.with_classification_policy(load_classification_policy(args.classification))

        data_source = get_data_source(args.source)
        result = analyzer.analyze(args.stock, args.years, data_source)

        if args.sensitivity:
            result = analyzer.run_sensitivity(result, sensitivity_params_from_args(args))

        reporter = TextReporter(output_dir=args.output)
        paths = reporter.save_all(result)

    except AnalyzerError as e:
        LOGGER.error(f"Analysis failed: {e}")
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(reporter.render(result))
        print()
        for path in paths:
            print(f"  Saved: {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
