"""
Sensitivity Module - Statement Analyzer

Re-runs both valuations under an alternate flat assumption set and pairs
the five resulting scalars with the assumptions that produced them.

The primary AnalysisResult is never modified; derived statement fields are
rebuilt from the raw line items kept in AnalysisResult.statements.

Version: 1.0.0
"""

from __future__ import annotations

from decimal import Decimal
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .config import LOGGER, SENSITIVITY_CONFIG, VALUATION_CONFIG, StatementKind
from .errors import CalculationOutcome
from .models import (
    ZERO,
    AnalysisResult,
    build_cashflow_statement,
    build_income_statement,
    sort_most_recent_first,
)
from .valuator import (
    DCFParams,
    MultipleModelParams,
    ValuationParams,
    Valuator,
    resolve_total_shares,
)


__version__ = "1.0.0"


# =============================================================================
# DATA CONTAINERS
# =============================================================================

@dataclass(frozen=True)
class SensitivityParams:
    """Alternate flat valuation assumptions."""

    discount_rate: float = SENSITIVITY_CONFIG.discount_rate
    perpetual_growth_rate: float = SENSITIVITY_CONFIG.perpetual_growth_rate
    fcf_growth_rate: float = SENSITIVITY_CONFIG.fcf_growth_rate
    net_profit_growth_rate: float = SENSITIVITY_CONFIG.net_profit_growth_rate
    low_yield: float = SENSITIVITY_CONFIG.low_yield
    high_yield: float = SENSITIVITY_CONFIG.high_yield

    def to_valuation_params(
        self,
        total_shares: Decimal,
        safety_margin: float = VALUATION_CONFIG.safety_margin,
    ) -> ValuationParams:
        return ValuationParams(
            dcf=DCFParams(
                discount_rate=self.discount_rate,
                perpetual_growth_rate=self.perpetual_growth_rate,
                fcf_growth_rate=self.fcf_growth_rate,
            ),
            multiple_model=MultipleModelParams(
                net_profit_growth_rate=self.net_profit_growth_rate,
                low_yield=self.low_yield,
                high_yield=self.high_yield,
                safety_margin=safety_margin,
            ),
            total_shares=total_shares,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "discount_rate": self.discount_rate,
            "perpetual_growth_rate": self.perpetual_growth_rate,
            "fcf_growth_rate": self.fcf_growth_rate,
            "net_profit_growth_rate": self.net_profit_growth_rate,
            "low_yield": self.low_yield,
            "high_yield": self.high_yield,
        }


@dataclass
class SensitivityResult:
    """Valuation scalars under SensitivityParams."""

    params: SensitivityParams = field(default_factory=SensitivityParams)
    dcf_enterprise_value: Decimal = ZERO
    dcf_price_per_share: Decimal = ZERO
    multiple_low_estimate: Decimal = ZERO
    multiple_high_estimate: Decimal = ZERO
    multiple_safety_margin_price: Decimal = ZERO
    total_shares: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "params": self.params.to_dict(),
            "dcf_enterprise_value": str(self.dcf_enterprise_value),
            "dcf_price_per_share": str(self.dcf_price_per_share),
            "multiple_low_estimate": str(self.multiple_low_estimate),
            "multiple_high_estimate": str(self.multiple_high_estimate),
            "multiple_safety_margin_price": str(self.multiple_safety_margin_price),
            "total_shares": str(self.total_shares),
        }


# =============================================================================
# SENSITIVITY ENGINE
# =============================================================================

class SensitivityEngine:
    """Runs a throwaway Valuator over an existing analysis."""

    def __init__(self, default_total_shares: int = VALUATION_CONFIG.default_total_shares):
        self.default_total_shares = default_total_shares
        self.logger = LOGGER

    def run(
        self,
        result: AnalysisResult,
        params: Optional[SensitivityParams] = None,
    ) -> CalculationOutcome[SensitivityResult]:
        """
        Valuation under alternate assumptions.

        Args:
            result: Completed analysis; only its raw statements are read
            params: Alternate assumptions (defaults when None)

        Returns:
            Outcome with SensitivityResult, or the Valuator's parameter error
        """
        params = params if params is not None else SensitivityParams()
        self.logger.info(f"Running sensitivity analysis for {result.stock_code}")

        income_statements = [
            build_income_statement(s)
            for s in sort_most_recent_first(result.statements_of(StatementKind.INCOME_STATEMENT))
        ]
        cashflow_statements = [
            build_cashflow_statement(s)
            for s in sort_most_recent_first(result.statements_of(StatementKind.CASHFLOW_STATEMENT))
        ]
        balance_sheets = sort_most_recent_first(result.statements_of(StatementKind.BALANCE_SHEET))

        total_shares = resolve_total_shares(balance_sheets, self.default_total_shares)
        valuator = Valuator(params.to_valuation_params(total_shares))

        outcome = valuator.calculate(income_statements, cashflow_statements)
        if not outcome.is_valid:
            self.logger.warning(f"Sensitivity valuation failed: {outcome.error}")
            return CalculationOutcome.fail(outcome.error)

        valuation = outcome.value
        return CalculationOutcome.ok(
            SensitivityResult(
                params=params,
                dcf_enterprise_value=valuation.dcf.enterprise_value,
                dcf_price_per_share=valuation.dcf.price_per_share,
                multiple_low_estimate=valuation.multiple_model.low_estimate,
                multiple_high_estimate=valuation.multiple_model.high_estimate,
                multiple_safety_margin_price=valuation.multiple_model.safety_margin_price,
                total_shares=total_shares,
            ),
            outcome.warnings,
        )


__all__ = [
    "__version__",
    "SensitivityParams",
    "SensitivityResult",
    "SensitivityEngine",
]
