"""
Report Module - Statement Analyzer

Renders an AnalysisResult as a plain-text report and exports it to disk:

    <output_dir>/<stock_code>/<stock_code>_report.txt
    <output_dir>/<stock_code>/<stock_code>_analysis.json
    <output_dir>/<stock_code>/<stock_code>_ratios.csv
    <output_dir>/<stock_code>/<stock_code>_analysis.xlsx

Ratio tables are built with pandas from the analyses' to_frame() views; the
workbook is written through pd.ExcelWriter with the openpyxl engine.

Version: 1.0.0
"""

from __future__ import annotations

import json
import pandas as pd
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from .config import LOGGER, OUTPUT_DIR
from .models import AnalysisResult
from .ratio_analyzer import RatioCalculator


__version__ = "1.0.0"

WIDTH = 72


def _pct(value: Decimal) -> str:
    return f"{float(value) * 100:.2f}%"


def _money(value: Decimal) -> str:
    return f"{float(value):,.2f}"


def _price(value: Decimal) -> str:
    return f"{float(value):.4f}"


class TextReporter:
    """Plain-text, JSON, CSV and Excel output for an analysis."""

    def __init__(self, output_dir: Optional[Path] = None, ratio_calculator: Optional[RatioCalculator] = None):
        self.output_dir = Path(output_dir) if output_dir is not None else OUTPUT_DIR
        self.ratio_calculator = ratio_calculator or RatioCalculator()

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def render(self, result: AnalysisResult) -> str:
        lines: List[str] = []
        lines.append("=" * WIDTH)
        lines.append(f"FINANCIAL ANALYSIS REPORT: {result.stock_code}")
        lines.append(f"Years: {', '.join(str(y) for y in result.years)}")
        if result.total_shares is not None:
            lines.append(f"Total shares: {result.total_shares:,}")
        lines.append("=" * WIDTH)

        lines.extend(self._section("ASSET STRUCTURE", result.asset_structure.to_frame()))
        lines.extend(self._section("PROFIT RATIOS", result.profit_analysis.to_frame()))

        if result.leverage_analysis is not None:
            lines.extend(self._section("LEVERAGE", result.leverage_analysis.to_frame(), percent=False))
        else:
            lines.extend(["", "LEVERAGE", "-" * WIDTH, "  Not available (no income statements)"])

        lines.extend(self._trend_section(result))
        lines.extend(self._valuation_section(result))
        lines.extend(self._sensitivity_section(result))
        lines.extend(self._validation_section(result))

        lines.append("")
        lines.append("=" * WIDTH)
        return "\n".join(lines)

    @staticmethod
    def _section(title: str, frame: pd.DataFrame, percent: bool = True) -> List[str]:
        lines = ["", title, "-" * WIDTH]
        if frame.empty:
            lines.append("  No data")
            return lines
        if percent:
            table = frame.map(lambda v: f"{v * 100:.2f}%")
        else:
            table = frame.map(lambda v: f"{v:.4f}")
        lines.extend(f"  {row}" for row in table.to_string().splitlines())
        return lines

    def _trend_section(self, result: AnalysisResult) -> List[str]:
        summaries = self.ratio_calculator.summarize_all(
            result.asset_structure, result.profit_analysis, result.leverage_analysis
        )
        lines = ["", "RATIO TRENDS", "-" * WIDTH]
        for name, summary in summaries.items():
            if summary.latest_value is None:
                continue
            change = f"{summary.period_change:+.4f}" if summary.period_change is not None else "n/a"
            lines.append(
                f"  {name:<24} latest {summary.latest_value:>10.4f}  "
                f"change {change:>9}  {summary.trend.value}"
            )
        return lines

    @staticmethod
    def _valuation_section(result: AnalysisResult) -> List[str]:
        lines = ["", "VALUATION", "-" * WIDTH]
        if result.valuation is None:
            lines.append("  Not available")
            return lines

        dcf = result.valuation.dcf
        multiple = result.valuation.multiple_model
        lines.append("  DCF")
        lines.append(f"    Base free cashflow:      {_money(dcf.base_fcf)}")
        for projection in dcf.projections:
            lines.append(
                f"    Year {projection.year} FCF:            {_money(projection.fcf)}"
                f"  (PV {_money(projection.present_value)})"
            )
        lines.append(f"    Terminal value:          {_money(dcf.terminal_value)}")
        lines.append(f"    Enterprise value:        {_money(dcf.enterprise_value)}")
        lines.append(f"    Price per share:         {_price(dcf.price_per_share)}")
        lines.append("  Multiple model")
        lines.append(f"    Future net profit:       {_money(multiple.future_profit)}")
        lines.append(f"    Low estimate:            {_price(multiple.low_estimate)}")
        lines.append(f"    High estimate:           {_price(multiple.high_estimate)}")
        lines.append(f"    Safety margin price:     {_price(multiple.safety_margin_price)}")
        return lines

    @staticmethod
    def _sensitivity_section(result: AnalysisResult) -> List[str]:
        if result.sensitivity is None:
            return []

        s = result.sensitivity
        p = s.params
        return [
            "",
            "SENSITIVITY",
            "-" * WIDTH,
            f"  Discount rate {p.discount_rate:.2%}, perpetual growth {p.perpetual_growth_rate:.2%}, "
            f"FCF growth {p.fcf_growth_rate:.2%}",
            f"  Net profit growth {p.net_profit_growth_rate:.2%}, yields {p.low_yield:.2%} / {p.high_yield:.2%}",
            f"    DCF enterprise value:    {_money(s.dcf_enterprise_value)}",
            f"    DCF price per share:     {_price(s.dcf_price_per_share)}",
            f"    Low estimate:            {_price(s.multiple_low_estimate)}",
            f"    High estimate:           {_price(s.multiple_high_estimate)}",
            f"    Safety margin price:     {_price(s.multiple_safety_margin_price)}",
        ]

    @staticmethod
    def _validation_section(result: AnalysisResult) -> List[str]:
        if not result.validation_reports:
            return []

        lines = ["", "DATA VALIDATION", "-" * WIDTH]
        for report in result.validation_reports:
            status = "OK" if report.is_valid else "FAILED"
            lines.append(
                f"  {report.kind.value:<20} {report.year}  {status:<6} "
                f"score {report.reliability_score:.0f}"
            )
            for finding in report.errors + report.warnings:
                lines.append(f"      - {finding.message}")
        return lines

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def _target_dir(self, result: AnalysisResult) -> Path:
        target = self.output_dir / result.stock_code
        target.mkdir(parents=True, exist_ok=True)
        return target

    def save_text(self, result: AnalysisResult) -> Path:
        filepath = self._target_dir(result) / f"{result.stock_code}_report.txt"
        filepath.write_text(self.render(result), encoding="utf-8")
        LOGGER.info(f"Saved text report to {filepath}")
        return filepath

    def save_json(self, result: AnalysisResult) -> Path:
        filepath = self._target_dir(result) / f"{result.stock_code}_analysis.json"
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, default=str)
        LOGGER.info(f"Saved JSON analysis to {filepath}")
        return filepath

    def save_csv(self, result: AnalysisResult) -> Path:
        """All per-year ratios in one table, one row per year."""
        frames = [result.asset_structure.to_frame(), result.profit_analysis.to_frame()]
        if result.leverage_analysis is not None:
            frames.append(result.leverage_analysis.to_frame())

        table = pd.concat(frames, axis=1).sort_index(ascending=False)
        filepath = self._target_dir(result) / f"{result.stock_code}_ratios.csv"
        table.to_csv(filepath)
        LOGGER.info(f"Saved ratio table to {filepath}")
        return filepath

    def save_excel(self, result: AnalysisResult) -> Path:
        """
        Workbook with one sheet per analysis.

        Sheets: Asset Structure, Profit, Leverage (when income statements
        exist), Valuation, DCF Projections, Sensitivity (when run) and
        Validation (when reports exist).
        """
        filepath = self._target_dir(result) / f"{result.stock_code}_analysis.xlsx"

        with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
            result.asset_structure.to_frame().to_excel(writer, sheet_name="Asset Structure")
            result.profit_analysis.to_frame().to_excel(writer, sheet_name="Profit")
            if result.leverage_analysis is not None:
                result.leverage_analysis.to_frame().to_excel(writer, sheet_name="Leverage")

            if result.valuation is not None:
                self._valuation_frame(result).to_excel(writer, sheet_name="Valuation", index=False)
                self._projection_frame(result).to_excel(writer, sheet_name="DCF Projections", index=False)

            if result.sensitivity is not None:
                self._sensitivity_frame(result).to_excel(writer, sheet_name="Sensitivity", index=False)

            if result.validation_reports:
                self._validation_frame(result).to_excel(writer, sheet_name="Validation", index=False)

        LOGGER.info(f"Saved Excel workbook to {filepath}")
        return filepath

    @staticmethod
    def _valuation_frame(result: AnalysisResult) -> pd.DataFrame:
        dcf = result.valuation.dcf
        multiple = result.valuation.multiple_model
        rows = [
            ("DCF", "Base free cashflow", dcf.base_fcf),
            ("DCF", "Terminal value", dcf.terminal_value),
            ("DCF", "PV of terminal value", dcf.pv_terminal_value),
            ("DCF", "Enterprise value", dcf.enterprise_value),
            ("DCF", "Price per share", dcf.price_per_share),
            ("Multiple model", "Latest net profit", multiple.latest_net_profit),
            ("Multiple model", "Future net profit", multiple.future_profit),
            ("Multiple model", "Low estimate", multiple.low_estimate),
            ("Multiple model", "High estimate", multiple.high_estimate),
            ("Multiple model", "Safety margin price", multiple.safety_margin_price),
        ]
        return pd.DataFrame(
            [(model, item, float(value)) for model, item, value in rows],
            columns=["model", "item", "value"],
        )

    @staticmethod
    def _projection_frame(result: AnalysisResult) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "year": p.year,
                    "fcf": float(p.fcf),
                    "discount_factor": float(p.discount_factor),
                    "present_value": float(p.present_value),
                }
                for p in result.valuation.dcf.projections
            ],
            columns=["year", "fcf", "discount_factor", "present_value"],
        )

    @staticmethod
    def _sensitivity_frame(result: AnalysisResult) -> pd.DataFrame:
        s = result.sensitivity
        rows = list(s.params.to_dict().items())
        rows.extend([
            ("total_shares", float(s.total_shares)),
            ("dcf_enterprise_value", float(s.dcf_enterprise_value)),
            ("dcf_price_per_share", float(s.dcf_price_per_share)),
            ("multiple_low_estimate", float(s.multiple_low_estimate)),
            ("multiple_high_estimate", float(s.multiple_high_estimate)),
            ("multiple_safety_margin_price", float(s.multiple_safety_margin_price)),
        ])
        return pd.DataFrame(rows, columns=["item", "value"])

    @staticmethod
    def _validation_frame(result: AnalysisResult) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "kind": r.kind.value,
                    "year": r.year,
                    "is_valid": r.is_valid,
                    "reliability_score": r.reliability_score,
                    "errors": len(r.errors),
                    "warnings": len(r.warnings),
                }
                for r in result.validation_reports
            ],
            columns=["kind", "year", "is_valid", "reliability_score", "errors", "warnings"],
        )

    def save_all(self, result: AnalysisResult) -> List[Path]:
        return [
            self.save_text(result),
            self.save_json(result),
            self.save_csv(result),
            self.save_excel(result),
        ]


__all__ = [
    "__version__",
    "TextReporter",
]
