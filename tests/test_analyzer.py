"""
tests/test_analyzer.py
======================
End-to-end orchestration against the mock data source and stub sources.

Run:  pytest tests/ -v
"""

from decimal import Decimal

import pytest

from statement_analyzer.analyzer import FinancialAnalyzer
from statement_analyzer.config import AccountClass, DEFAULT_ACCOUNT_CLASSIFICATION, StatementKind
from statement_analyzer.data_sources import DataSource, MockDataSource
from statement_analyzer.errors import DataSourceError, ParameterError, ValidationError
from statement_analyzer.models import ZERO, FinancialStatement
from statement_analyzer.validator import StatementValidator
from statement_analyzer.valuator import DCFParams, ValuationParams


class FailingSource(DataSource):
    name = "failing"

    def __init__(self, error):
        self.error = error

    def fetch_raw(self, kind, stock_code, start_date, end_date):
        if kind == StatementKind.CASHFLOW_STATEMENT:
            raise self.error
        return []


class BalanceSheetOnlySource(MockDataSource):
    name = "balance-only"

    def fetch_raw(self, kind, stock_code, start_date, end_date):
        if kind != StatementKind.BALANCE_SHEET:
            return []
        return super().fetch_raw(kind, stock_code, start_date, end_date)


class UnbalancedSource(MockDataSource):
    name = "unbalanced"

    def fetch_raw(self, kind, stock_code, start_date, end_date):
        statements = super().fetch_raw(kind, stock_code, start_date, end_date)
        if kind != StatementKind.BALANCE_SHEET:
            return statements
        return [
            FinancialStatement(
                stock_code=s.stock_code,
                report_date=s.report_date,
                kind=s.kind,
                items=dict(s.items, total_assets=9_000_000),
            )
            for s in statements
        ]


@pytest.fixture
def result():
    return FinancialAnalyzer().analyze("600519.SH", [2021, 2023, 2022], MockDataSource())


class TestAnalyze:
    def test_years_most_recent_first(self, result):
        assert result.years == [2023, 2022, 2021]
        assert result.asset_structure.years == [2023, 2022, 2021]
        assert result.profit_analysis.years == [2023, 2022, 2021]

    def test_asset_structure(self, result):
        assert result.asset_structure.operating_asset_ratio == [Decimal(1)] * 3
        assert result.asset_structure.financial_asset_ratio == [ZERO] * 3

    def test_profit_margins(self, result):
        assert result.profit_analysis.gross_margin == [Decimal("0.4")] * 3
        assert result.profit_analysis.core_profit_margin == [Decimal("0.25")] * 3
        assert result.profit_analysis.net_profit_margin == [Decimal("0.2")] * 3

    def test_leverage_with_flat_revenue(self, result):
        leverage = result.leverage_analysis
        assert leverage.operating_leverage == [ZERO] * 3
        assert leverage.financial_leverage[0] == Decimal(1_250_000) / Decimal(1_200_000)
        assert leverage.financial_leverage[-1] == Decimal(1)
        assert leverage.total_leverage == [ZERO] * 3

    def test_valuation_with_default_params(self, result):
        base = 700_000
        pv = sum(base * 1.1 ** t / 1.08 ** t for t in (1, 2, 3))
        expected = pv + base * 1.1 ** 3 * 1.03 / 0.05 / 1.08 ** 3

        assert float(result.valuation.dcf.enterprise_value) == pytest.approx(expected, rel=1e-9)
        assert result.valuation.multiple_model.low_estimate == Decimal("0.33275")

    def test_default_total_shares(self, result):
        assert result.total_shares == Decimal(100_000_000)
        assert result.valuation.params.total_shares == Decimal(100_000_000)

    def test_flattened_statements(self, result):
        assert len(result.statements) == 9
        assert len(result.statements_of(StatementKind.CASHFLOW_STATEMENT)) == 3

    def test_no_sensitivity_or_validation_by_default(self, result):
        assert result.sensitivity is None
        assert result.validation_reports == []

    def test_to_dict(self, result):
        data = result.to_dict()
        assert data["stock_code"] == "600519.SH"
        assert data["total_shares"] == "100000000"
        assert len(data["statements"]) == 9


class TestAnalyzeEdgeCases:
    def test_requires_years(self):
        with pytest.raises(ParameterError):
            FinancialAnalyzer().analyze("600519.SH", [], MockDataSource())

    def test_fetch_error_propagates(self):
        source = FailingSource(DataSourceError("boom"))
        with pytest.raises(DataSourceError, match="boom"):
            FinancialAnalyzer().analyze("600519.SH", [2023], source)

    def test_unexpected_fetch_error_is_wrapped(self):
        source = FailingSource(RuntimeError("socket closed"))
        with pytest.raises(DataSourceError, match="socket closed"):
            FinancialAnalyzer().analyze("600519.SH", [2023], source)

    def test_no_income_statements_skips_leverage(self):
        result = FinancialAnalyzer().analyze("600519.SH", [2023, 2022], BalanceSheetOnlySource())
        assert result.leverage_analysis is None
        assert result.profit_analysis.gross_margin == []
        assert result.valuation.dcf.enterprise_value == ZERO

    def test_invalid_valuation_params_abort(self):
        params = ValuationParams(dcf=DCFParams(discount_rate=0.03, perpetual_growth_rate=0.05))
        analyzer = FinancialAnalyzer().with_valuation_params(params)
        with pytest.raises(ParameterError):
            analyzer.analyze("600519.SH", [2023], MockDataSource())

    def test_shared_params_not_mutated(self):
        params = ValuationParams(total_shares=Decimal(1))
        analyzer = FinancialAnalyzer().with_valuation_params(params)
        analyzer.analyze("600519.SH", [2023], MockDataSource())
        assert params.total_shares == Decimal(1)
        assert analyzer.valuation_params is params


class TestCollaborators:
    def test_validation_reports_attached(self):
        analyzer = FinancialAnalyzer().with_validator(StatementValidator())
        result = analyzer.analyze("600519.SH", [2023, 2022], MockDataSource())
        assert len(result.validation_reports) == 6
        assert all(r.is_valid for r in result.validation_reports)

    def test_strict_validator_aborts(self):
        analyzer = FinancialAnalyzer().with_validator(StatementValidator(strict=True))
        with pytest.raises(ValidationError):
            analyzer.analyze("600519.SH", [2023], UnbalancedSource())

    def test_lenient_validator_keeps_going(self):
        analyzer = FinancialAnalyzer().with_validator(StatementValidator())
        result = analyzer.analyze("600519.SH", [2023], UnbalancedSource())
        assert not result.validation_reports[0].is_valid
        assert result.valuation is not None

    def test_classification_policy_injected(self):
        policy = dict(DEFAULT_ACCOUNT_CLASSIFICATION)
        policy["cash"] = AccountClass.FINANCIAL_ASSET
        analyzer = FinancialAnalyzer().with_classification_policy(policy)

        result = analyzer.analyze("600519.SH", [2023], MockDataSource())
        assert result.asset_structure.financial_asset_ratio == [Decimal(1_000_000) / Decimal(3_800_000)]

    def test_builders_chain(self):
        analyzer = FinancialAnalyzer()
        assert analyzer.with_validator(StatementValidator()) is analyzer
        assert analyzer.with_valuation_params(ValuationParams()) is analyzer
        assert analyzer.with_classification_policy({}) is analyzer
