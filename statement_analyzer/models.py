"""
Statement Data Model - Statement Analyzer

Typed containers for per-year financial statements and the analyses derived
from them:

    FinancialStatement  raw line items for one entity, one report date
    BalanceSheet        + operating/financial asset and liability groupings
    IncomeStatement     + revenue, operating cost, gross/core/net profit
    CashflowStatement   + operating/investing/financing cashflow, FCF

Derived fields are computed once by the build_* functions below. Data
sources and the sensitivity engine both go through these builders so the
derivation rules (free cashflow sign convention included) stay identical.

All amounts are decimal.Decimal. A missing line item resolves to zero.
"""

from __future__ import annotations

import math
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .config import (
    AccountClass,
    StatementKind,
    DEFAULT_ACCOUNT_CLASSIFICATION,
    REVENUE_KEYS,
    CORE_PROFIT_KEYS,
    OPERATING_COST,
    NET_PROFIT,
    OPERATING_CASHFLOW,
    INVESTING_CASHFLOW,
    FINANCING_CASHFLOW,
    CAPITAL_EXPENDITURE,
)


ZERO = Decimal(0)

Number = Union[Decimal, int, float, str, None]


# =============================================================================
# VALUE HELPERS
# =============================================================================

def to_decimal(value: Number) -> Decimal:
    """
    Convert a raw amount to Decimal.

    Floats go through their shortest repr so 0.08 becomes Decimal("0.08")
    rather than its binary expansion. None and NaN resolve to zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return ZERO
        return Decimal(repr(float(value)))
    return Decimal(str(value))


def get_line_item(
    items: Mapping[str, Decimal],
    *candidates: str,
    default: Decimal = ZERO,
) -> Decimal:
    """
    Look up the first candidate line item present in a statement.

    Args:
        items: Line item mapping of a statement
        *candidates: Line item names in priority order
        default: Value when no candidate is present

    Returns:
        Amount of the first present candidate, else default
    """
    for name in candidates:
        if name in items:
            return items[name]
    return default


def decimals_to_strings(values: Iterable[Decimal]) -> List[str]:
    return [str(v) for v in values]


# =============================================================================
# RAW STATEMENT
# =============================================================================

@dataclass(frozen=True)
class FinancialStatement:
    """One statement of one entity at one report date."""

    stock_code: str
    report_date: date
    kind: StatementKind
    items: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = MappingProxyType({k: to_decimal(v) for k, v in dict(self.items).items()})
        object.__setattr__(self, "items", frozen)

    @property
    def year(self) -> int:
        return self.report_date.year

    def get(self, *candidates: str, default: Decimal = ZERO) -> Decimal:
        return get_line_item(self.items, *candidates, default=default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stock_code": self.stock_code,
            "report_date": self.report_date.isoformat(),
            "kind": self.kind.value,
            "items": {k: str(v) for k, v in self.items.items()},
        }


# =============================================================================
# DERIVED STATEMENT SUBTYPES
# =============================================================================

@dataclass
class AccountGroup:
    """Named line items with a running total."""

    items: Dict[str, Decimal] = field(default_factory=dict)
    total: Decimal = ZERO

    def add(self, name: str, amount: Decimal) -> None:
        self.total += amount
        self.items[name] = amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": {k: str(v) for k, v in self.items.items()},
            "total": str(self.total),
        }


@dataclass
class BalanceSheet:
    """Balance sheet with operating/financial groupings."""

    statement: FinancialStatement
    operating_assets: AccountGroup = field(default_factory=AccountGroup)
    financial_assets: AccountGroup = field(default_factory=AccountGroup)
    operating_liabilities: AccountGroup = field(default_factory=AccountGroup)
    financial_liabilities: AccountGroup = field(default_factory=AccountGroup)

    @property
    def year(self) -> int:
        return self.statement.year

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement": self.statement.to_dict(),
            "operating_assets": self.operating_assets.to_dict(),
            "financial_assets": self.financial_assets.to_dict(),
            "operating_liabilities": self.operating_liabilities.to_dict(),
            "financial_liabilities": self.financial_liabilities.to_dict(),
        }


@dataclass
class IncomeStatement:
    """Income statement with derived profit lines."""

    statement: FinancialStatement
    revenue: Decimal = ZERO
    operating_cost: Decimal = ZERO
    gross_profit: Decimal = ZERO
    core_profit: Decimal = ZERO
    net_profit: Decimal = ZERO

    @property
    def year(self) -> int:
        return self.statement.year

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement": self.statement.to_dict(),
            "revenue": str(self.revenue),
            "operating_cost": str(self.operating_cost),
            "gross_profit": str(self.gross_profit),
            "core_profit": str(self.core_profit),
            "net_profit": str(self.net_profit),
        }


@dataclass
class CashflowStatement:
    """Cashflow statement with derived free cashflow."""

    statement: FinancialStatement
    operating_cashflow: Decimal = ZERO
    investing_cashflow: Decimal = ZERO
    financing_cashflow: Decimal = ZERO
    capital_expenditure: Decimal = ZERO
    free_cashflow: Decimal = ZERO

    @property
    def year(self) -> int:
        return self.statement.year

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement": self.statement.to_dict(),
            "operating_cashflow": str(self.operating_cashflow),
            "investing_cashflow": str(self.investing_cashflow),
            "financing_cashflow": str(self.financing_cashflow),
            "capital_expenditure": str(self.capital_expenditure),
            "free_cashflow": str(self.free_cashflow),
        }


# =============================================================================
# STATEMENT BUILDERS
# =============================================================================

def build_balance_sheet(
    statement: FinancialStatement,
    policy: Optional[Mapping[str, AccountClass]] = None,
) -> BalanceSheet:
    """
    Group balance sheet line items by the classification policy.

    Line items absent from the policy are left out of every grouping.
    """
    policy = DEFAULT_ACCOUNT_CLASSIFICATION if policy is None else policy
    sheet = BalanceSheet(statement=statement)

    groups = {
        AccountClass.OPERATING_ASSET: sheet.operating_assets,
        AccountClass.FINANCIAL_ASSET: sheet.financial_assets,
        AccountClass.OPERATING_LIABILITY: sheet.operating_liabilities,
        AccountClass.FINANCIAL_LIABILITY: sheet.financial_liabilities,
    }

    for name, account_class in policy.items():
        if name in statement.items:
            groups[account_class].add(name, statement.items[name])

    return sheet


def build_income_statement(statement: FinancialStatement) -> IncomeStatement:
    """Derive revenue, gross profit and the operating-profit proxy."""
    revenue = statement.get(*REVENUE_KEYS)
    operating_cost = statement.get(OPERATING_COST)
    net_profit = statement.get(NET_PROFIT)
    core_profit = statement.get(*CORE_PROFIT_KEYS)

    return IncomeStatement(
        statement=statement,
        revenue=revenue,
        operating_cost=operating_cost,
        gross_profit=revenue - operating_cost,
        core_profit=core_profit,
        net_profit=net_profit,
    )


def build_cashflow_statement(statement: FinancialStatement) -> CashflowStatement:
    """
    Derive free cashflow as operating cashflow minus capital expenditure.

    Capital expenditure is taken as an absolute outflow whatever sign the
    source reports it with.
    """
    operating = statement.get(OPERATING_CASHFLOW)
    capex = abs(statement.get(CAPITAL_EXPENDITURE))

    return CashflowStatement(
        statement=statement,
        operating_cashflow=operating,
        investing_cashflow=statement.get(INVESTING_CASHFLOW),
        financing_cashflow=statement.get(FINANCING_CASHFLOW),
        capital_expenditure=capex,
        free_cashflow=operating - capex,
    )


def sort_most_recent_first(series: Sequence[Any]) -> List[Any]:
    """Order statements (raw or derived) by report date, newest first."""
    def report_date(item: Any) -> date:
        statement = item if isinstance(item, FinancialStatement) else item.statement
        return statement.report_date
    return sorted(series, key=report_date, reverse=True)


def filter_kind(
    statements: Iterable[FinancialStatement],
    kind: StatementKind,
) -> List[FinancialStatement]:
    return [s for s in statements if s.kind == kind]


def flatten_statements(
    balance_sheets: Sequence[BalanceSheet],
    income_statements: Sequence[IncomeStatement],
    cashflow_statements: Sequence[CashflowStatement],
) -> List[FinancialStatement]:
    """Strip derived fields, keeping raw statements in series order."""
    statements: List[FinancialStatement] = []
    statements.extend(bs.statement for bs in balance_sheets)
    statements.extend(s.statement for s in income_statements)
    statements.extend(cf.statement for cf in cashflow_statements)
    return statements


# =============================================================================
# ANALYSIS CONTAINERS
# =============================================================================

@dataclass
class AssetStructureAnalysis:
    """Operating vs financial asset share per year."""

    years: List[int] = field(default_factory=list)
    operating_asset_ratio: List[Decimal] = field(default_factory=list)
    financial_asset_ratio: List[Decimal] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "years": self.years,
            "operating_asset_ratio": decimals_to_strings(self.operating_asset_ratio),
            "financial_asset_ratio": decimals_to_strings(self.financial_asset_ratio),
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "operating_asset_ratio": [float(v) for v in self.operating_asset_ratio],
                "financial_asset_ratio": [float(v) for v in self.financial_asset_ratio],
            },
            index=pd.Index(self.years, name="year"),
        )


@dataclass
class ProfitAnalysis:
    """Margins per year."""

    years: List[int] = field(default_factory=list)
    gross_margin: List[Decimal] = field(default_factory=list)
    core_profit_margin: List[Decimal] = field(default_factory=list)
    net_profit_margin: List[Decimal] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "years": self.years,
            "gross_margin": decimals_to_strings(self.gross_margin),
            "core_profit_margin": decimals_to_strings(self.core_profit_margin),
            "net_profit_margin": decimals_to_strings(self.net_profit_margin),
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "gross_margin": [float(v) for v in self.gross_margin],
                "core_profit_margin": [float(v) for v in self.core_profit_margin],
                "net_profit_margin": [float(v) for v in self.net_profit_margin],
            },
            index=pd.Index(self.years, name="year"),
        )


@dataclass
class LeverageAnalysis:
    """Degree of operating, financial and total leverage per year."""

    years: List[int] = field(default_factory=list)
    operating_leverage: List[Decimal] = field(default_factory=list)  # DOL
    financial_leverage: List[Decimal] = field(default_factory=list)  # DFL
    total_leverage: List[Decimal] = field(default_factory=list)      # DTL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "years": self.years,
            "operating_leverage": decimals_to_strings(self.operating_leverage),
            "financial_leverage": decimals_to_strings(self.financial_leverage),
            "total_leverage": decimals_to_strings(self.total_leverage),
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "operating_leverage": [float(v) for v in self.operating_leverage],
                "financial_leverage": [float(v) for v in self.financial_leverage],
                "total_leverage": [float(v) for v in self.total_leverage],
            },
            index=pd.Index(self.years, name="year"),
        )


@dataclass
class AnalysisResult:
    """Aggregate output of one analysis run."""

    stock_code: str
    years: List[int]
    asset_structure: AssetStructureAnalysis
    profit_analysis: ProfitAnalysis
    leverage_analysis: Optional[LeverageAnalysis] = None
    valuation: Optional[Any] = None    # valuator.ValuationResult
    sensitivity: Optional[Any] = None  # sensitivity.SensitivityResult
    statements: List[FinancialStatement] = field(default_factory=list)
    total_shares: Optional[Decimal] = None
    validation_reports: List[Any] = field(default_factory=list)

    def statements_of(self, kind: StatementKind) -> List[FinancialStatement]:
        return filter_kind(self.statements, kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stock_code": self.stock_code,
            "years": self.years,
            "asset_structure": self.asset_structure.to_dict(),
            "profit_analysis": self.profit_analysis.to_dict(),
            "leverage_analysis": self.leverage_analysis.to_dict() if self.leverage_analysis else None,
            "valuation": self.valuation.to_dict() if self.valuation else None,
            "sensitivity": self.sensitivity.to_dict() if self.sensitivity else None,
            "total_shares": str(self.total_shares) if self.total_shares is not None else None,
            "validation_reports": [r.to_dict() for r in self.validation_reports],
            "statements": [s.to_dict() for s in self.statements],
        }
