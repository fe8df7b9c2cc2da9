"""
Ratio Analysis Module - Statement Analyzer

Implements per-year financial ratio analysis:
- Asset structure: operating vs financial asset share of total assets
- Profitability: gross, core-profit and net-profit margins
- Leverage: degree of operating (DOL), financial (DFL) and total (DTL) leverage

Inputs: ordered statement sequences, index 0 = most recent year
Outputs: AssetStructureAnalysis / ProfitAnalysis / LeverageAnalysis with
one entry per input statement

Every edge case has a defined value (zero denominators, the oldest leverage
year, near-flat revenue) so the calculator never fails on well-typed input.

Version: 1.0.0
"""

from __future__ import annotations

import numpy as np
from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .config import LOGGER, RATIO_CONFIG, RatioConfig, RatioTrend
from .models import (
    ZERO,
    AssetStructureAnalysis,
    BalanceSheet,
    IncomeStatement,
    LeverageAnalysis,
    ProfitAnalysis,
)


__version__ = "1.0.0"

ONE = Decimal(1)


# =============================================================================
# DATA CONTAINERS
# =============================================================================

@dataclass
class RatioTrendSummary:
    """Multi-year summary of a single ratio series."""

    ratio_name: str
    latest_value: Optional[float] = None
    average_value: Optional[float] = None
    period_change: Optional[float] = None
    trend: RatioTrend = RatioTrend.INSUFFICIENT_DATA

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ratio_name": self.ratio_name,
            "latest_value": self.latest_value,
            "average_value": self.average_value,
            "period_change": self.period_change,
            "trend": self.trend.value,
        }


# =============================================================================
# RATIO CALCULATOR
# =============================================================================

class RatioCalculator:
    """
    Calculates asset structure, profitability and leverage ratios.

    Stateless apart from its RatioConfig, which carries the DOL materiality
    floor and the ordered interest-expense line item keys.
    """

    def __init__(self, config: RatioConfig = RATIO_CONFIG):
        self.config = config
        self.materiality_floor = Decimal(config.dol_materiality_floor)

    def calculate_asset_structure(
        self,
        balance_sheets: Sequence[BalanceSheet],
    ) -> AssetStructureAnalysis:
        """
        Operating and financial asset ratios for each year.

        Total assets are the sum of the two groupings; a zero total yields
        zero for both ratios.
        """
        analysis = AssetStructureAnalysis(years=[bs.year for bs in balance_sheets])

        for bs in balance_sheets:
            total_assets = bs.operating_assets.total + bs.financial_assets.total

            if total_assets != ZERO:
                analysis.operating_asset_ratio.append(bs.operating_assets.total / total_assets)
                analysis.financial_asset_ratio.append(bs.financial_assets.total / total_assets)
            else:
                analysis.operating_asset_ratio.append(ZERO)
                analysis.financial_asset_ratio.append(ZERO)

        return analysis

    def calculate_profit_ratios(
        self,
        income_statements: Sequence[IncomeStatement],
    ) -> ProfitAnalysis:
        """Gross, core-profit and net-profit margins; zero revenue gives zeros."""
        analysis = ProfitAnalysis(years=[s.year for s in income_statements])

        for s in income_statements:
            if s.revenue != ZERO:
                analysis.gross_margin.append(s.gross_profit / s.revenue)
                analysis.core_profit_margin.append(s.core_profit / s.revenue)
                analysis.net_profit_margin.append(s.net_profit / s.revenue)
            else:
                analysis.gross_margin.append(ZERO)
                analysis.core_profit_margin.append(ZERO)
                analysis.net_profit_margin.append(ZERO)

        return analysis

    def calculate_leverage(
        self,
        income_statements: Sequence[IncomeStatement],
    ) -> LeverageAnalysis:
        """
        DOL, DFL and DTL for each year against the next-older year.

        Args:
            income_statements: Most recent first

        Returns:
            LeverageAnalysis; the oldest year carries DOL=0, DFL=1, DTL=0
        """
        analysis = LeverageAnalysis(years=[s.year for s in income_statements])

        for i, current in enumerate(income_statements):
            if i + 1 >= len(income_statements):
                analysis.operating_leverage.append(ZERO)
                analysis.financial_leverage.append(ONE)
                analysis.total_leverage.append(ZERO)
                continue

            prev = income_statements[i + 1]

            ebit = current.core_profit
            ebt = ebit - self.interest_expense(current)
            prev_ebit = prev.core_profit

            revenue_change = self._relative_change(current.revenue, prev.revenue)
            ebit_change = self._relative_change(ebit, prev_ebit)

            # DOL = %change EBIT / %change revenue
            if abs(revenue_change) > self.materiality_floor:
                dol = ebit_change / revenue_change
            else:
                dol = ZERO

            # DFL = EBIT / EBT
            if ebit != ZERO and ebt != ZERO:
                dfl = ebit / ebt
            else:
                dfl = ONE

            analysis.operating_leverage.append(dol)
            analysis.financial_leverage.append(dfl)
            analysis.total_leverage.append(dol * dfl)

        return analysis

    def interest_expense(self, income_statement: IncomeStatement) -> Decimal:
        """Interest expense from the first configured line item present."""
        return income_statement.statement.get(*self.config.interest_expense_keys)

    @staticmethod
    def _relative_change(current: Decimal, previous: Decimal) -> Decimal:
        if previous == ZERO:
            return ZERO
        return (current - previous) / previous

    # -------------------------------------------------------------------------
    # Trend summaries
    # -------------------------------------------------------------------------

    def summarize(self, ratio_name: str, values: Sequence[Decimal]) -> RatioTrendSummary:
        """
        Summarize a most-recent-first ratio series.

        Trend is classified from the change between the oldest and latest
        value, or VOLATILE when the coefficient of variation is high.
        """
        summary = RatioTrendSummary(ratio_name=ratio_name)
        series = [float(v) for v in values]

        if not series:
            return summary

        summary.latest_value = series[0]
        summary.average_value = float(np.mean(series))

        if len(series) < 2:
            return summary

        summary.period_change = series[0] - series[-1]

        if len(series) < self.config.min_years_for_trend:
            return summary

        mean = np.mean(series)
        cv = float(np.std(series) / abs(mean)) if mean != 0 else 0.0

        if cv > self.config.volatility_cv_threshold:
            summary.trend = RatioTrend.VOLATILE
        elif summary.period_change > self.config.trend_improving_threshold:
            summary.trend = RatioTrend.IMPROVING
        elif summary.period_change < self.config.trend_deteriorating_threshold:
            summary.trend = RatioTrend.DETERIORATING
        else:
            summary.trend = RatioTrend.STABLE

        return summary

    def summarize_all(
        self,
        asset_structure: AssetStructureAnalysis,
        profit_analysis: ProfitAnalysis,
        leverage_analysis: Optional[LeverageAnalysis] = None,
    ) -> Dict[str, RatioTrendSummary]:
        """Trend summaries for every ratio series of an analysis."""
        series: Dict[str, List[Decimal]] = {
            "operating_asset_ratio": asset_structure.operating_asset_ratio,
            "financial_asset_ratio": asset_structure.financial_asset_ratio,
            "gross_margin": profit_analysis.gross_margin,
            "core_profit_margin": profit_analysis.core_profit_margin,
            "net_profit_margin": profit_analysis.net_profit_margin,
        }
        if leverage_analysis is not None:
            series["operating_leverage"] = leverage_analysis.operating_leverage
            series["financial_leverage"] = leverage_analysis.financial_leverage
            series["total_leverage"] = leverage_analysis.total_leverage

        summaries = {name: self.summarize(name, values) for name, values in series.items()}
        LOGGER.debug(f"Summarized {len(summaries)} ratio series")
        return summaries


__all__ = [
    "__version__",
    "RatioTrendSummary",
    "RatioCalculator",
]
