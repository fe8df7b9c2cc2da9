"""
Valuation Module - Statement Analyzer

Two independent point-estimate valuations driven by a ValuationParams set:

DCF (free cashflow based):
    FCF_t = base FCF x (1 + G)^t                     t = 1..3
    PV    = sum FCF_t / (1 + r)^t
    TV    = FCF_3 x (1 + g) / (r - g)                Gordon Growth
    EV    = PV + TV / (1 + r)^3
    Price = EV / total shares

Profit-growth multiple model:
    Future profit = latest net profit x (1 + growth)^3
    Low / high    = future profit x (1 / yield) / total shares
    Entry price   = low estimate x safety margin

All arithmetic is decimal.Decimal. Parameter errors come back as a failed
CalculationOutcome; non-positive base FCF is a warning, not an error.

Version: 1.0.0
"""

from __future__ import annotations

from decimal import Decimal
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Union

from .config import LOGGER, SHARE_CAPITAL_KEYS, VALUATION_CONFIG, StatementKind
from .errors import CalculationOutcome, ParameterError
from .models import (
    ZERO,
    BalanceSheet,
    CashflowStatement,
    FinancialStatement,
    IncomeStatement,
    to_decimal,
)


__version__ = "1.0.0"

ONE = Decimal(1)


# =============================================================================
# PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class DCFParams:
    """Discounted cashflow assumptions."""

    discount_rate: float = VALUATION_CONFIG.discount_rate
    perpetual_growth_rate: float = VALUATION_CONFIG.perpetual_growth_rate
    fcf_growth_rate: float = VALUATION_CONFIG.fcf_growth_rate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "discount_rate": self.discount_rate,
            "perpetual_growth_rate": self.perpetual_growth_rate,
            "fcf_growth_rate": self.fcf_growth_rate,
        }


@dataclass(frozen=True)
class MultipleModelParams:
    """Profit-growth multiple model assumptions."""

    net_profit_growth_rate: float = VALUATION_CONFIG.net_profit_growth_rate
    low_yield: float = VALUATION_CONFIG.low_yield
    high_yield: float = VALUATION_CONFIG.high_yield
    safety_margin: float = VALUATION_CONFIG.safety_margin

    def to_dict(self) -> Dict[str, Any]:
        return {
            "net_profit_growth_rate": self.net_profit_growth_rate,
            "low_yield": self.low_yield,
            "high_yield": self.high_yield,
            "safety_margin": self.safety_margin,
        }


@dataclass(frozen=True)
class ValuationParams:
    """Complete valuation parameter set."""

    dcf: DCFParams = field(default_factory=DCFParams)
    multiple_model: MultipleModelParams = field(default_factory=MultipleModelParams)
    total_shares: Decimal = Decimal(VALUATION_CONFIG.default_total_shares)

    def with_total_shares(self, total_shares: Union[Decimal, int]) -> "ValuationParams":
        """Fresh parameter set carrying the resolved share count."""
        return replace(self, total_shares=to_decimal(total_shares))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dcf": self.dcf.to_dict(),
            "multiple_model": self.multiple_model.to_dict(),
            "total_shares": str(self.total_shares),
        }


# =============================================================================
# DATA CONTAINERS
# =============================================================================

@dataclass
class YearlyProjection:
    """Single forecast year of the DCF."""

    year: int
    fcf: Decimal
    discount_factor: Decimal
    present_value: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "fcf": str(self.fcf),
            "discount_factor": str(self.discount_factor),
            "present_value": str(self.present_value),
        }


@dataclass
class DCFValuation:
    """DCF point estimate."""

    enterprise_value: Decimal = ZERO
    price_per_share: Decimal = ZERO

    # Breakdown
    base_fcf: Decimal = ZERO
    projections: List[YearlyProjection] = field(default_factory=list)
    terminal_value: Decimal = ZERO
    pv_terminal_value: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enterprise_value": str(self.enterprise_value),
            "price_per_share": str(self.price_per_share),
            "base_fcf": str(self.base_fcf),
            "projections": [p.to_dict() for p in self.projections],
            "terminal_value": str(self.terminal_value),
            "pv_terminal_value": str(self.pv_terminal_value),
        }


@dataclass
class MultipleModelValuation:
    """Profit-growth multiple model range."""

    low_estimate: Decimal = ZERO
    high_estimate: Decimal = ZERO
    safety_margin_price: Decimal = ZERO

    # Breakdown
    latest_net_profit: Decimal = ZERO
    future_profit: Decimal = ZERO
    low_multiple: Decimal = ZERO
    high_multiple: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "low_estimate": str(self.low_estimate),
            "high_estimate": str(self.high_estimate),
            "safety_margin_price": str(self.safety_margin_price),
            "latest_net_profit": str(self.latest_net_profit),
            "future_profit": str(self.future_profit),
            "low_multiple": str(self.low_multiple),
            "high_multiple": str(self.high_multiple),
        }


@dataclass
class ValuationResult:
    """Both valuations side by side."""

    dcf: DCFValuation = field(default_factory=DCFValuation)
    multiple_model: MultipleModelValuation = field(default_factory=MultipleModelValuation)
    params: Optional[ValuationParams] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dcf": self.dcf.to_dict(),
            "multiple_model": self.multiple_model.to_dict(),
            "params": self.params.to_dict() if self.params else None,
        }


# =============================================================================
# SHARE COUNT RESOLUTION
# =============================================================================

def resolve_total_shares(
    balance_sheets: Sequence[Union[BalanceSheet, FinancialStatement]],
    default: Union[Decimal, int] = VALUATION_CONFIG.default_total_shares,
) -> Decimal:
    """
    Share count from the first balance sheet's share capital line item.

    Accepts derived BalanceSheets or raw statements; raw statements of other
    kinds are skipped. Falls back to the default (with a logged advisory)
    when no positive share capital is found.
    """
    first: Optional[FinancialStatement] = None
    for item in balance_sheets:
        statement = item.statement if isinstance(item, BalanceSheet) else item
        if statement.kind == StatementKind.BALANCE_SHEET:
            first = statement
            break

    if first is not None:
        shares = first.get(*SHARE_CAPITAL_KEYS)
        if shares > ZERO:
            return shares

    fallback = to_decimal(default)
    LOGGER.warning(f"Share capital not available, using default total shares {fallback:,}")
    return fallback


# =============================================================================
# VALUATOR
# =============================================================================

class Valuator:
    """
    Computes DCF and multiple-model valuations from one parameter set.

    Usage:
        valuator = Valuator(params)
        outcome = valuator.calculate(income_statements, cashflow_statements)
        if outcome.is_valid:
            result = outcome.value
    """

    def __init__(self, params: Optional[ValuationParams] = None):
        self.params = params if params is not None else ValuationParams()
        self.projection_years = VALUATION_CONFIG.projection_years
        self.profit_projection_years = VALUATION_CONFIG.profit_projection_years

    def calculate(
        self,
        income_statements: Sequence[IncomeStatement],
        cashflow_statements: Sequence[CashflowStatement],
    ) -> CalculationOutcome[ValuationResult]:
        """Run both valuations; the first parameter error fails the whole result."""
        dcf = self.calculate_dcf(cashflow_statements)
        if not dcf.is_valid:
            return CalculationOutcome.fail(dcf.error)

        multiple = self.calculate_multiple_model(income_statements)
        if not multiple.is_valid:
            return CalculationOutcome.fail(multiple.error)

        result = ValuationResult(dcf=dcf.value, multiple_model=multiple.value, params=self.params)
        return CalculationOutcome.ok(result, dcf.warnings + multiple.warnings)

    def calculate_dcf(
        self,
        cashflows: Sequence[CashflowStatement],
    ) -> CalculationOutcome[DCFValuation]:
        """
        DCF valuation from the most recent year's free cashflow.

        Args:
            cashflows: Most recent first

        Returns:
            Outcome with DCFValuation, or ParameterError when r <= g,
            r <= -1 or total shares <= 0
        """
        discount_rate = to_decimal(self.params.dcf.discount_rate)
        perpetual_growth = to_decimal(self.params.dcf.perpetual_growth_rate)
        fcf_growth = to_decimal(self.params.dcf.fcf_growth_rate)

        if discount_rate <= perpetual_growth:
            return CalculationOutcome.fail(ParameterError(
                f"Discount rate ({discount_rate}) must exceed perpetual growth rate ({perpetual_growth})"
            ))
        if ONE + discount_rate <= ZERO:
            return CalculationOutcome.fail(ParameterError(
                f"Discount rate ({discount_rate}) must be greater than -1"
            ))
        share_error = self._check_total_shares()
        if share_error is not None:
            return CalculationOutcome.fail(share_error)

        if not cashflows:
            return CalculationOutcome.ok(DCFValuation())

        warnings: List[str] = []
        base_fcf = cashflows[0].free_cashflow
        if base_fcf <= ZERO:
            message = (
                f"Base free cashflow for {cashflows[0].year} is non-positive ({base_fcf}); "
                f"DCF estimate is unreliable"
            )
            LOGGER.warning(message)
            warnings.append(message)

        valuation = DCFValuation(base_fcf=base_fcf)
        pv_sum = ZERO

        for year in range(1, self.projection_years + 1):
            fcf = base_fcf * (ONE + fcf_growth) ** year
            discount_factor = (ONE + discount_rate) ** year
            present_value = fcf / discount_factor
            valuation.projections.append(YearlyProjection(
                year=year,
                fcf=fcf,
                discount_factor=discount_factor,
                present_value=present_value,
            ))
            pv_sum += present_value

        terminal_fcf = base_fcf * (ONE + fcf_growth) ** self.projection_years
        valuation.terminal_value = (
            terminal_fcf * (ONE + perpetual_growth) / (discount_rate - perpetual_growth)
        )
        valuation.pv_terminal_value = (
            valuation.terminal_value / (ONE + discount_rate) ** self.projection_years
        )

        valuation.enterprise_value = pv_sum + valuation.pv_terminal_value
        valuation.price_per_share = valuation.enterprise_value / self.params.total_shares

        return CalculationOutcome.ok(valuation, warnings)

    def calculate_multiple_model(
        self,
        income_statements: Sequence[IncomeStatement],
    ) -> CalculationOutcome[MultipleModelValuation]:
        """
        Low/high fair value range from projected net profit.

        Args:
            income_statements: Most recent first

        Returns:
            Outcome with MultipleModelValuation
        """
        params = self.params.multiple_model
        low_yield = to_decimal(params.low_yield)
        high_yield = to_decimal(params.high_yield)

        if low_yield <= ZERO or high_yield <= ZERO:
            return CalculationOutcome.fail(ParameterError(
                f"Yields must be positive (low={low_yield}, high={high_yield})"
            ))
        share_error = self._check_total_shares()
        if share_error is not None:
            return CalculationOutcome.fail(share_error)

        if not income_statements:
            return CalculationOutcome.ok(MultipleModelValuation())

        growth = to_decimal(params.net_profit_growth_rate)
        safety_margin = to_decimal(params.safety_margin)
        total_shares = self.params.total_shares

        latest_net_profit = income_statements[0].net_profit
        low_multiple = ONE / low_yield
        high_multiple = ONE / high_yield
        future_profit = latest_net_profit * (ONE + growth) ** self.profit_projection_years

        low_estimate = future_profit * low_multiple / total_shares
        high_estimate = future_profit * high_multiple / total_shares

        return CalculationOutcome.ok(MultipleModelValuation(
            low_estimate=low_estimate,
            high_estimate=high_estimate,
            safety_margin_price=low_estimate * safety_margin,
            latest_net_profit=latest_net_profit,
            future_profit=future_profit,
            low_multiple=low_multiple,
            high_multiple=high_multiple,
        ))

    def _check_total_shares(self) -> Optional[ParameterError]:
        if self.params.total_shares <= ZERO:
            return ParameterError(f"Total shares must be positive, got {self.params.total_shares}")
        return None


__all__ = [
    "__version__",
    "DCFParams",
    "MultipleModelParams",
    "ValuationParams",
    "YearlyProjection",
    "DCFValuation",
    "MultipleModelValuation",
    "ValuationResult",
    "resolve_total_shares",
    "Valuator",
]
