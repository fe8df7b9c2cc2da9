"""
Configuration Module - Statement Analyzer
Financial Ratio Analysis & Equity Valuation

Centralizes configuration constants, canonical line-item names, data source
field mappings, the default account classification policy, ratio and
valuation defaults, and validation rules for the analysis pipeline.

Version: 1.0.0
"""

from __future__ import annotations

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple
from enum import Enum

from .errors import ConfigError


# =============================================================================
# DIRECTORY CONFIGURATION
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.absolute()
OUTPUT_DIR = PROJECT_ROOT / "outputs"


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Configure and return a logger instance with professional formatting."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


LOGGER = setup_logger("StatementAnalyzer")


# =============================================================================
# ENUMERATIONS
# =============================================================================

class StatementKind(Enum):
    """Financial statement kinds."""
    BALANCE_SHEET = "balance_sheet"
    INCOME_STATEMENT = "income_statement"
    CASHFLOW_STATEMENT = "cashflow_statement"


class AccountClass(Enum):
    """Operating/financial classification of a balance sheet line item."""
    OPERATING_ASSET = "operating_asset"
    FINANCIAL_ASSET = "financial_asset"
    OPERATING_LIABILITY = "operating_liability"
    FINANCIAL_LIABILITY = "financial_liability"


class Severity(Enum):
    """Validation finding severity."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RatioTrend(Enum):
    """Multi-year ratio trend classification."""
    IMPROVING = "improving"
    STABLE = "stable"
    DETERIORATING = "deteriorating"
    VOLATILE = "volatile"
    INSUFFICIENT_DATA = "insufficient_data"


# =============================================================================
# CANONICAL LINE ITEM NAMES
# =============================================================================

# Balance Sheet - assets
CASH = "cash"
NOTES_RECEIVABLE = "notes_receivable"
ACCOUNTS_RECEIVABLE = "accounts_receivable"
PREPAYMENTS = "prepayments"
INVENTORY = "inventory"
FIXED_ASSETS = "fixed_assets"
INTANGIBLE_ASSETS = "intangible_assets"
TRADING_FINANCIAL_ASSETS = "trading_financial_assets"
LONG_TERM_EQUITY_INVESTMENT = "long_term_equity_investment"
INVESTMENT_PROPERTY = "investment_property"
DEFERRED_TAX_ASSETS = "deferred_tax_assets"
CURRENT_ASSETS = "current_assets"
TOTAL_ASSETS = "total_assets"

# Balance Sheet - liabilities and equity
NOTES_PAYABLE = "notes_payable"
ACCOUNTS_PAYABLE = "accounts_payable"
ADVANCE_RECEIPTS = "advance_receipts"
EMPLOYEE_PAYABLE = "employee_payable"
TAX_PAYABLE = "tax_payable"
CONTRACT_LIABILITIES = "contract_liabilities"
DEFERRED_TAX_LIABILITIES = "deferred_tax_liabilities"
SHORT_TERM_LOAN = "short_term_loan"
LONG_TERM_LOAN = "long_term_loan"
BONDS_PAYABLE = "bonds_payable"
TRADING_FINANCIAL_LIABILITIES = "trading_financial_liabilities"
NON_CURRENT_LIABILITIES_DUE_1Y = "non_current_liabilities_due_within_one_year"
CURRENT_LIABILITIES = "current_liabilities"
TOTAL_LIABILITIES = "total_liabilities"
TOTAL_EQUITY = "total_equity"
SHARE_CAPITAL = "share_capital"
PAID_IN_CAPITAL = "paid_in_capital"
UNDISTRIBUTED_PROFIT = "undistributed_profit"

# Income Statement
TOTAL_REVENUE = "total_revenue"
REVENUE = "revenue"
OPERATING_COST = "operating_cost"
TAXES_AND_SURCHARGES = "taxes_and_surcharges"
SELLING_EXPENSE = "selling_expense"
ADMIN_EXPENSE = "admin_expense"
RD_EXPENSE = "rd_expense"
FINANCIAL_EXPENSE = "financial_expense"
INTEREST_EXPENSE = "interest_expense"
INVESTMENT_INCOME = "investment_income"
OPERATING_PROFIT = "operating_profit"
INCOME_TAX = "income_tax"
NET_PROFIT = "net_profit"

# Cashflow Statement
OPERATING_CASHFLOW = "operating_cashflow"
INVESTING_CASHFLOW = "investing_cashflow"
FINANCING_CASHFLOW = "financing_cashflow"
CAPITAL_EXPENDITURE = "capital_expenditure"


# Ordered candidate keys: the first one present in a statement wins
REVENUE_KEYS: Tuple[str, ...] = (REVENUE, TOTAL_REVENUE)
CORE_PROFIT_KEYS: Tuple[str, ...] = (OPERATING_PROFIT, NET_PROFIT)
SHARE_CAPITAL_KEYS: Tuple[str, ...] = (SHARE_CAPITAL, PAID_IN_CAPITAL)
INTEREST_EXPENSE_KEYS: Tuple[str, ...] = (FINANCIAL_EXPENSE, INTEREST_EXPENSE)


# =============================================================================
# ACCOUNT CLASSIFICATION POLICY
# =============================================================================

# Canonical line item -> operating/financial tag used to build the
# BalanceSheet groupings. Totals and equity lines are not classified.
DEFAULT_ACCOUNT_CLASSIFICATION: Dict[str, AccountClass] = {
    # Operating assets
    CASH: AccountClass.OPERATING_ASSET,
    FIXED_ASSETS: AccountClass.OPERATING_ASSET,
    NOTES_RECEIVABLE: AccountClass.OPERATING_ASSET,
    ACCOUNTS_RECEIVABLE: AccountClass.OPERATING_ASSET,
    PREPAYMENTS: AccountClass.OPERATING_ASSET,
    INVENTORY: AccountClass.OPERATING_ASSET,
    INTANGIBLE_ASSETS: AccountClass.OPERATING_ASSET,

    # Financial (investment) assets
    TRADING_FINANCIAL_ASSETS: AccountClass.FINANCIAL_ASSET,
    LONG_TERM_EQUITY_INVESTMENT: AccountClass.FINANCIAL_ASSET,
    INVESTMENT_PROPERTY: AccountClass.FINANCIAL_ASSET,
    DEFERRED_TAX_ASSETS: AccountClass.FINANCIAL_ASSET,

    # Operating liabilities
    NOTES_PAYABLE: AccountClass.OPERATING_LIABILITY,
    ACCOUNTS_PAYABLE: AccountClass.OPERATING_LIABILITY,
    ADVANCE_RECEIPTS: AccountClass.OPERATING_LIABILITY,
    EMPLOYEE_PAYABLE: AccountClass.OPERATING_LIABILITY,
    TAX_PAYABLE: AccountClass.OPERATING_LIABILITY,
    CONTRACT_LIABILITIES: AccountClass.OPERATING_LIABILITY,
    DEFERRED_TAX_LIABILITIES: AccountClass.OPERATING_LIABILITY,

    # Financial liabilities
    SHORT_TERM_LOAN: AccountClass.FINANCIAL_LIABILITY,
    LONG_TERM_LOAN: AccountClass.FINANCIAL_LIABILITY,
    BONDS_PAYABLE: AccountClass.FINANCIAL_LIABILITY,
    TRADING_FINANCIAL_LIABILITIES: AccountClass.FINANCIAL_LIABILITY,
    NON_CURRENT_LIABILITIES_DUE_1Y: AccountClass.FINANCIAL_LIABILITY,
}


def load_classification_policy(path: Path) -> Dict[str, AccountClass]:
    """
    Load an account classification policy from a JSON file.

    The file holds a single object mapping canonical line item names to one
    of the AccountClass values, e.g. {"cash": "operating_asset"}.

    Args:
        path: Path to the JSON policy file

    Returns:
        Mapping of line item name to AccountClass

    Raises:
        ConfigError: If the file cannot be read or holds an unknown tag
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot load classification policy {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Classification policy {path} must be a JSON object")

    policy: Dict[str, AccountClass] = {}
    for name, tag in raw.items():
        try:
            policy[name] = AccountClass(tag)
        except ValueError:
            raise ConfigError(
                f"Unknown classification '{tag}' for line item '{name}'"
            ) from None

    LOGGER.info(f"Loaded classification policy with {len(policy)} line items from {path}")
    return policy


# =============================================================================
# TUSHARE FIELD MAPPINGS
# =============================================================================

# Balance Sheet: Tushare Pro field names -> canonical names
TUSHARE_BALANCE_FIELD_MAP: Dict[str, str] = {
    "money_cap": CASH,
    "notes_receiv": NOTES_RECEIVABLE,
    "accounts_receiv": ACCOUNTS_RECEIVABLE,
    "prepayment": PREPAYMENTS,
    "inventories": INVENTORY,
    "fix_assets": FIXED_ASSETS,
    "intan_assets": INTANGIBLE_ASSETS,
    "trad_asset": TRADING_FINANCIAL_ASSETS,
    "lt_eqt_invest": LONG_TERM_EQUITY_INVESTMENT,
    "invest_real_estate": INVESTMENT_PROPERTY,
    "defer_tax_assets": DEFERRED_TAX_ASSETS,
    "total_cur_assets": CURRENT_ASSETS,
    "total_assets": TOTAL_ASSETS,
    "notes_payable": NOTES_PAYABLE,
    "acct_payable": ACCOUNTS_PAYABLE,
    "adv_receipts": ADVANCE_RECEIPTS,
    "payroll_payable": EMPLOYEE_PAYABLE,
    "taxes_payable": TAX_PAYABLE,
    "contract_liab": CONTRACT_LIABILITIES,
    "defer_tax_liab": DEFERRED_TAX_LIABILITIES,
    "st_borr": SHORT_TERM_LOAN,
    "lt_borr": LONG_TERM_LOAN,
    "bond_payable": BONDS_PAYABLE,
    "trading_fl": TRADING_FINANCIAL_LIABILITIES,
    "non_cur_liab_due_1y": NON_CURRENT_LIABILITIES_DUE_1Y,
    "total_cur_liab": CURRENT_LIABILITIES,
    "total_liab": TOTAL_LIABILITIES,
    "total_hldr_eqy_inc_min_int": TOTAL_EQUITY,
    "total_share": SHARE_CAPITAL,
    "undistr_porfit": UNDISTRIBUTED_PROFIT,
}

# Income Statement: Tushare Pro field names -> canonical names
TUSHARE_INCOME_FIELD_MAP: Dict[str, str] = {
    "total_revenue": TOTAL_REVENUE,
    "revenue": REVENUE,
    "oper_cost": OPERATING_COST,
    "biz_tax_surchg": TAXES_AND_SURCHARGES,
    "sell_exp": SELLING_EXPENSE,
    "admin_exp": ADMIN_EXPENSE,
    "rd_exp": RD_EXPENSE,
    "fin_exp": FINANCIAL_EXPENSE,
    "int_exp": INTEREST_EXPENSE,
    "invest_income": INVESTMENT_INCOME,
    "operate_profit": OPERATING_PROFIT,
    "income_tax": INCOME_TAX,
    "n_income": NET_PROFIT,
}

# Cashflow Statement: Tushare Pro field names -> canonical names
TUSHARE_CASHFLOW_FIELD_MAP: Dict[str, str] = {
    "n_cashflow_act": OPERATING_CASHFLOW,
    "n_cashflow_inv_act": INVESTING_CASHFLOW,
    "n_cash_flows_fnc_act": FINANCING_CASHFLOW,
    "c_pay_acq_const_fiolta": CAPITAL_EXPENDITURE,
}


def get_field_mapping(kind: StatementKind) -> Dict[str, str]:
    """Get the Tushare field mapping for a statement kind."""
    mappings = {
        StatementKind.BALANCE_SHEET: TUSHARE_BALANCE_FIELD_MAP,
        StatementKind.INCOME_STATEMENT: TUSHARE_INCOME_FIELD_MAP,
        StatementKind.CASHFLOW_STATEMENT: TUSHARE_CASHFLOW_FIELD_MAP,
    }
    return mappings[kind]


# =============================================================================
# AKSHARE FIELD MAPPINGS
# =============================================================================

# Sina report names accepted by akshare.stock_financial_report_sina
AKSHARE_REPORT_NAMES: Dict[StatementKind, str] = {
    StatementKind.BALANCE_SHEET: "资产负债表",
    StatementKind.INCOME_STATEMENT: "利润表",
    StatementKind.CASHFLOW_STATEMENT: "现金流量表",
}

AKSHARE_DATE_COLUMN = "报告日"

# Canonical name -> Sina column names, tried in order
AKSHARE_BALANCE_FIELD_MAP: Dict[str, Tuple[str, ...]] = {
    CASH: ("货币资金",),
    NOTES_RECEIVABLE: ("应收票据",),
    ACCOUNTS_RECEIVABLE: ("应收账款",),
    PREPAYMENTS: ("预付款项",),
    INVENTORY: ("存货",),
    FIXED_ASSETS: ("固定资产净额", "固定资产及清理合计", "固定资产"),
    INTANGIBLE_ASSETS: ("无形资产",),
    TRADING_FINANCIAL_ASSETS: ("交易性金融资产",),
    LONG_TERM_EQUITY_INVESTMENT: ("长期股权投资",),
    INVESTMENT_PROPERTY: ("投资性房地产",),
    DEFERRED_TAX_ASSETS: ("递延所得税资产", "递延税款借项"),
    CURRENT_ASSETS: ("流动资产合计",),
    TOTAL_ASSETS: ("资产总计",),
    NOTES_PAYABLE: ("应付票据",),
    ACCOUNTS_PAYABLE: ("应付账款",),
    ADVANCE_RECEIPTS: ("预收款项",),
    EMPLOYEE_PAYABLE: ("应付职工薪酬",),
    TAX_PAYABLE: ("应交税费",),
    CONTRACT_LIABILITIES: ("合同负债",),
    DEFERRED_TAX_LIABILITIES: ("递延所得税负债", "递延税款贷项"),
    SHORT_TERM_LOAN: ("短期借款",),
    LONG_TERM_LOAN: ("长期借款",),
    BONDS_PAYABLE: ("应付债券", "应付债券款"),
    TRADING_FINANCIAL_LIABILITIES: ("交易性金融负债",),
    NON_CURRENT_LIABILITIES_DUE_1Y: ("一年内到期的非流动负债",),
    CURRENT_LIABILITIES: ("流动负债合计",),
    TOTAL_LIABILITIES: ("负债合计",),
    TOTAL_EQUITY: ("所有者权益(或股东权益)合计", "所有者权益合计"),
    SHARE_CAPITAL: ("实收资本(或股本)", "股本"),
    UNDISTRIBUTED_PROFIT: ("未分配利润",),
}

AKSHARE_INCOME_FIELD_MAP: Dict[str, Tuple[str, ...]] = {
    TOTAL_REVENUE: ("营业总收入",),
    REVENUE: ("营业收入",),
    OPERATING_COST: ("营业成本",),
    TAXES_AND_SURCHARGES: ("营业税金及附加", "税金及附加"),
    SELLING_EXPENSE: ("销售费用",),
    ADMIN_EXPENSE: ("管理费用", "业务及管理费"),
    RD_EXPENSE: ("研发费用",),
    FINANCIAL_EXPENSE: ("财务费用",),
    INVESTMENT_INCOME: ("投资收益",),
    OPERATING_PROFIT: ("营业利润",),
    INCOME_TAX: ("减:所得税费用", "所得税费用"),
    NET_PROFIT: ("净利润",),
}

AKSHARE_CASHFLOW_FIELD_MAP: Dict[str, Tuple[str, ...]] = {
    OPERATING_CASHFLOW: ("经营活动产生的现金流量净额",),
    INVESTING_CASHFLOW: ("投资活动产生的现金流量净额",),
    FINANCING_CASHFLOW: ("筹资活动产生的现金流量净额",),
    CAPITAL_EXPENDITURE: (
        "购建固定资产、无形资产和其他长期资产所支付的现金",
        "购建固定资产、无形资产和其他长期资产支付的现金",
    ),
}


def get_akshare_field_mapping(kind: StatementKind) -> Dict[str, Tuple[str, ...]]:
    """Get the AkShare (Sina) column candidates for a statement kind."""
    mappings = {
        StatementKind.BALANCE_SHEET: AKSHARE_BALANCE_FIELD_MAP,
        StatementKind.INCOME_STATEMENT: AKSHARE_INCOME_FIELD_MAP,
        StatementKind.CASHFLOW_STATEMENT: AKSHARE_CASHFLOW_FIELD_MAP,
    }
    return mappings[kind]


# =============================================================================
# RATIO ANALYSIS CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class RatioConfig:
    """Configuration for ratio and leverage calculation."""

    # Revenue change below this (absolute) leaves DOL at zero
    dol_materiality_floor: str = "0.0001"

    # Line items tried in order for interest expense
    interest_expense_keys: Tuple[str, ...] = INTEREST_EXPENSE_KEYS

    # Trend classification
    min_years_for_trend: int = 3
    trend_improving_threshold: float = 0.02
    trend_deteriorating_threshold: float = -0.02
    volatility_cv_threshold: float = 0.25


# =============================================================================
# VALUATION CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class ValuationConfig:
    """Default valuation assumptions."""

    # DCF
    discount_rate: float = 0.08
    perpetual_growth_rate: float = 0.03
    fcf_growth_rate: float = 0.10
    projection_years: int = 3

    # Profit-growth multiple model
    net_profit_growth_rate: float = 0.10
    low_yield: float = 0.04
    high_yield: float = 0.02
    safety_margin: float = 0.7
    profit_projection_years: int = 3

    # Used when no share capital line item is available
    default_total_shares: int = 100_000_000


@dataclass(frozen=True)
class SensitivityConfig:
    """Default alternate assumption set for sensitivity re-runs."""

    discount_rate: float = 0.08
    perpetual_growth_rate: float = 0.04
    fcf_growth_rate: float = -0.10
    net_profit_growth_rate: float = 0.10
    low_yield: float = 0.04
    high_yield: float = 0.02


# =============================================================================
# DATA SOURCE CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class TushareConfig:
    """Tushare Pro API configuration."""

    token: Optional[str] = os.getenv("TUSHARE_TOKEN")
    api_url: str = "http://api.tushare.pro"
    request_timeout: int = 30
    fetch_workers: int = 3


# =============================================================================
# VALIDATION CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class ValidationRules:
    """Rules applied by the statement validator."""

    # Balance sheet lines that may legitimately be negative
    allow_negative: FrozenSet[str] = frozenset({
        UNDISTRIBUTED_PROFIT,
        DEFERRED_TAX_ASSETS,
        DEFERRED_TAX_LIABILITIES,
    })

    required_balance_accounts: Tuple[str, ...] = (
        TOTAL_ASSETS, TOTAL_LIABILITIES, TOTAL_EQUITY,
    )
    required_income_accounts: Tuple[str, ...] = (NET_PROFIT,)
    required_cashflow_accounts: Tuple[str, ...] = (OPERATING_CASHFLOW,)

    # Assets = Liabilities + Equity absolute tolerance
    accounting_equation_tolerance: int = 1000

    # Absolute amount above which a line item is flagged
    max_reasonable_amount: int = 1_000_000_000_000

    # Plausible gross margin range
    gross_margin_min: float = -0.5
    gross_margin_max: float = 0.95

    # Reliability score penalties
    severity_penalties: Dict[Severity, float] = field(default_factory=lambda: {
        Severity.CRITICAL: 50.0,
        Severity.HIGH: 20.0,
        Severity.MEDIUM: 10.0,
        Severity.LOW: 5.0,
    })
    warning_penalty: float = 2.0


# =============================================================================
# GLOBAL CONFIGURATION INSTANCES
# =============================================================================

RATIO_CONFIG = RatioConfig()
VALUATION_CONFIG = ValuationConfig()
SENSITIVITY_CONFIG = SensitivityConfig()
TUSHARE_CONFIG = TushareConfig()
VALIDATION_RULES = ValidationRules()
