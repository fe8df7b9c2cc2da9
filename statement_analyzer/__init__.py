"""
Statement Analyzer - Financial Ratio Analysis & Equity Valuation
================================================================

Ratio Analysis
- Asset structure: operating vs financial asset share
- Profitability: gross, core-profit and net-profit margins
- Leverage: DOL, DFL and DTL against the prior year
- Multi-year trend summaries

Valuation
- DCF: 3 explicit years of free cashflow plus Gordon Growth terminal value
- Profit-growth multiple model with safety margin entry price
- Sensitivity re-run under an alternate assumption set

Collaborators
- Statement sources (mock fixture, Tushare Pro, AkShare)
- Accounting-identity validation with reliability scoring
- Plain-text, JSON, CSV and Excel reporting

Version: 1.0.0
"""

from .config import (
    LOGGER,
    OUTPUT_DIR,
    PROJECT_ROOT,
    StatementKind,
    AccountClass,
    Severity,
    RatioTrend,
    RATIO_CONFIG,
    VALUATION_CONFIG,
    SENSITIVITY_CONFIG,
    TUSHARE_CONFIG,
    VALIDATION_RULES,
    RatioConfig,
    ValuationConfig,
    SensitivityConfig,
    TushareConfig,
    ValidationRules,
    DEFAULT_ACCOUNT_CLASSIFICATION,
    load_classification_policy,
    setup_logger,
)

from .errors import (
    AnalyzerError,
    ParameterError,
    DataSourceError,
    ValidationError,
    ConfigError,
    CalculationOutcome,
)

from .models import (
    FinancialStatement,
    AccountGroup,
    BalanceSheet,
    IncomeStatement,
    CashflowStatement,
    AssetStructureAnalysis,
    ProfitAnalysis,
    LeverageAnalysis,
    AnalysisResult,
    build_balance_sheet,
    build_income_statement,
    build_cashflow_statement,
    get_line_item,
    to_decimal,
)

from .ratio_analyzer import (
    RatioCalculator,
    RatioTrendSummary,
    __version__ as ratio_version,
)

from .valuator import (
    DCFParams,
    MultipleModelParams,
    ValuationParams,
    DCFValuation,
    MultipleModelValuation,
    ValuationResult,
    Valuator,
    resolve_total_shares,
    __version__ as valuation_version,
)

from .sensitivity import (
    SensitivityParams,
    SensitivityResult,
    SensitivityEngine,
)

from .data_sources import (
    DataSource,
    MockDataSource,
    TushareClient,
    AkShareClient,
    get_data_source,
)

from .validator import (
    ValidationFinding,
    ValidationReport,
    StatementValidator,
)

from .analyzer import FinancialAnalyzer

from .report import TextReporter


__version__ = "1.0.0"

__all__ = [
    # Configuration
    "LOGGER",
    "OUTPUT_DIR",
    "PROJECT_ROOT",
    "StatementKind",
    "AccountClass",
    "Severity",
    "RatioTrend",
    "RATIO_CONFIG",
    "VALUATION_CONFIG",
    "SENSITIVITY_CONFIG",
    "TUSHARE_CONFIG",
    "VALIDATION_RULES",
    "RatioConfig",
    "ValuationConfig",
    "SensitivityConfig",
    "TushareConfig",
    "ValidationRules",
    "DEFAULT_ACCOUNT_CLASSIFICATION",
    "load_classification_policy",
    "setup_logger",

    # Errors
    "AnalyzerError",
    "ParameterError",
    "DataSourceError",
    "ValidationError",
    "ConfigError",
    "CalculationOutcome",

    # Data Model
    "FinancialStatement",
    "AccountGroup",
    "BalanceSheet",
    "IncomeStatement",
    "CashflowStatement",
    "AssetStructureAnalysis",
    "ProfitAnalysis",
    "LeverageAnalysis",
    "AnalysisResult",
    "build_balance_sheet",
    "build_income_statement",
    "build_cashflow_statement",
    "get_line_item",
    "to_decimal",

    # Ratio Analysis
    "RatioCalculator",
    "RatioTrendSummary",

    # Valuation
    "DCFParams",
    "MultipleModelParams",
    "ValuationParams",
    "DCFValuation",
    "MultipleModelValuation",
    "ValuationResult",
    "Valuator",
    "resolve_total_shares",

    # Sensitivity
    "SensitivityParams",
    "SensitivityResult",
    "SensitivityEngine",

    # Data Sources
    "DataSource",
    "MockDataSource",
    "TushareClient",
    "AkShareClient",
    "get_data_source",

    # Validation
    "ValidationFinding",
    "ValidationReport",
    "StatementValidator",

    # Orchestration & Reporting
    "FinancialAnalyzer",
    "TextReporter",

    # Version
    "__version__",
    "ratio_version",
    "valuation_version",
]
