"""
Analysis Orchestrator - Statement Analyzer

Sequences one analysis run:

    fetch (3 series, concurrent) -> sort -> optional validation
    -> asset structure / profit ratios / leverage
    -> total shares resolution -> valuation -> AnalysisResult

The calculation core is synchronous; only the fetch step runs on a thread
pool, and all three series must arrive before any calculation starts.

Version: 1.0.0
"""

from __future__ import annotations

from dataclasses import replace
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Mapping, Optional, Sequence

from .config import LOGGER, RATIO_CONFIG, TUSHARE_CONFIG, AccountClass, RatioConfig
from .errors import AnalyzerError, DataSourceError, ParameterError
from .models import AnalysisResult, flatten_statements, sort_most_recent_first
from .ratio_analyzer import RatioCalculator
from .valuator import ValuationParams, Valuator, resolve_total_shares
from .sensitivity import SensitivityEngine, SensitivityParams
from .validator import StatementValidator
from .data_sources import DataSource


__version__ = "1.0.0"


class FinancialAnalyzer:
    """
    Runs ratio analysis and valuation for one company.

    Usage:
        analyzer = (
            FinancialAnalyzer()
            .with_validator(StatementValidator())
            .with_valuation_params(ValuationParams())
        )
        result = analyzer.analyze("600519.SH", [2023, 2022, 2021], MockDataSource())
        result = analyzer.run_sensitivity(result)
    """

    def __init__(self, ratio_config: RatioConfig = RATIO_CONFIG):
        self.ratio_calculator = RatioCalculator(ratio_config)
        self.validator: Optional[StatementValidator] = None
        self.valuation_params = ValuationParams()
        self.classification_policy: Optional[Mapping[str, AccountClass]] = None
        self.fetch_workers = TUSHARE_CONFIG.fetch_workers
        self.logger = LOGGER

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def with_validator(self, validator: StatementValidator) -> "FinancialAnalyzer":
        self.validator = validator
        return self

    def with_valuation_params(self, params: ValuationParams) -> "FinancialAnalyzer":
        self.valuation_params = params
        return self

    def with_classification_policy(self, policy: Mapping[str, AccountClass]) -> "FinancialAnalyzer":
        self.classification_policy = policy
        return self

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def analyze(
        self,
        stock_code: str,
        years: Sequence[int],
        data_source: DataSource,
    ) -> AnalysisResult:
        """
        Full analysis for the requested fiscal years.

        Args:
            stock_code: Entity identifier understood by the data source
            years: Fiscal years to cover, any order
            data_source: Statement provider

        Returns:
            AnalysisResult with ratios and valuation attached

        Raises:
            DataSourceError: If any statement series cannot be fetched
            ParameterError: If no years are requested or the valuation
                parameters are invalid
        """
        if not years:
            raise ParameterError("At least one fiscal year is required")

        ordered_years = sorted(set(years), reverse=True)
        start_date = date(ordered_years[-1], 12, 31)
        end_date = date(ordered_years[0], 12, 31)

        self.logger.info(
            f"Analyzing {stock_code} for {ordered_years[-1]}-{ordered_years[0]} "
            f"using {data_source.name} data"
        )

        # Step 1: Fetch
        balance_sheets, income_statements, cashflow_statements = self._fetch_all(
            data_source, stock_code, start_date, end_date
        )
        balance_sheets = sort_most_recent_first(balance_sheets)
        income_statements = sort_most_recent_first(income_statements)
        cashflow_statements = sort_most_recent_first(cashflow_statements)

        self.logger.info(
            f"Fetched {len(balance_sheets)} balance sheets, {len(income_statements)} "
            f"income statements, {len(cashflow_statements)} cashflow statements"
        )

        # Step 2: Validation
        validation_reports = []
        if self.validator is not None:
            validation_reports = self.validator.validate_all(
                balance_sheets, income_statements, cashflow_statements
            )

        # Step 3: Ratios
        asset_structure = self.ratio_calculator.calculate_asset_structure(balance_sheets)
        profit_analysis = self.ratio_calculator.calculate_profit_ratios(income_statements)

        leverage_analysis = None
        if income_statements:
            leverage_analysis = self.ratio_calculator.calculate_leverage(income_statements)
        else:
            self.logger.warning("No income statements; skipping leverage analysis")

        # Step 4: Valuation
        total_shares = resolve_total_shares(balance_sheets, self.valuation_params.total_shares)
        params = self.valuation_params.with_total_shares(total_shares)
        valuation = Valuator(params).calculate(income_statements, cashflow_statements).unwrap()

        self.logger.info(
            f"DCF price per share {valuation.dcf.price_per_share:.4f}, "
            f"multiple model range {valuation.multiple_model.low_estimate:.4f}"
            f"-{valuation.multiple_model.high_estimate:.4f}"
        )

        return AnalysisResult(
            stock_code=stock_code,
            years=ordered_years,
            asset_structure=asset_structure,
            profit_analysis=profit_analysis,
            leverage_analysis=leverage_analysis,
            valuation=valuation,
            statements=flatten_statements(balance_sheets, income_statements, cashflow_statements),
            total_shares=total_shares,
            validation_reports=validation_reports,
        )

    def run_sensitivity(
        self,
        result: AnalysisResult,
        params: Optional[SensitivityParams] = None,
    ) -> AnalysisResult:
        """
        Copy of the result with a sensitivity valuation attached.

        Raises:
            ParameterError: If the alternate parameters are invalid
        """
        outcome = SensitivityEngine().run(result, params)
        return replace(result, sensitivity=outcome.unwrap())

    def _fetch_all(
        self,
        data_source: DataSource,
        stock_code: str,
        start_date: date,
        end_date: date,
    ):
        with ThreadPoolExecutor(max_workers=self.fetch_workers) as executor:
            balance_future = executor.submit(
                data_source.fetch_balance_sheet,
                stock_code, start_date, end_date, self.classification_policy,
            )
            income_future = executor.submit(
                data_source.fetch_income_statement, stock_code, start_date, end_date
            )
            cashflow_future = executor.submit(
                data_source.fetch_cashflow_statement, stock_code, start_date, end_date
            )

            try:
                return (
                    balance_future.result(),
                    income_future.result(),
                    cashflow_future.result(),
                )
            except AnalyzerError:
                raise
            except Exception as e:
                raise DataSourceError(f"Failed to fetch statements for {stock_code}: {e}") from e


__all__ = [
    "__version__",
    "FinancialAnalyzer",
]
