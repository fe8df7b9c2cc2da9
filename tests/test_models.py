"""
tests/test_models.py
====================
Statement data model: decimal conversion, ordered-candidate lookup,
statement builders and analysis containers.

Run:  pytest tests/ -v
"""

from decimal import Decimal

import numpy as np
import pytest

from statement_analyzer.config import AccountClass, StatementKind
from statement_analyzer.models import (
    ZERO,
    AssetStructureAnalysis,
    FinancialStatement,
    flatten_statements,
    get_line_item,
    sort_most_recent_first,
    to_decimal,
)


class TestToDecimal:
    def test_float_uses_shortest_repr(self):
        assert to_decimal(0.08) == Decimal("0.08")

    def test_numpy_float(self):
        assert to_decimal(np.float64(1.5)) == Decimal("1.5")

    def test_none_is_zero(self):
        assert to_decimal(None) == ZERO

    def test_nan_is_zero(self):
        assert to_decimal(float("nan")) == ZERO

    def test_int_and_string(self):
        assert to_decimal(1_000_000) == Decimal(1_000_000)
        assert to_decimal("123.45") == Decimal("123.45")

    def test_decimal_passthrough(self):
        value = Decimal("7.1")
        assert to_decimal(value) is value


class TestGetLineItem:
    def test_first_candidate_wins(self):
        items = {"revenue": Decimal(10), "total_revenue": Decimal(12)}
        assert get_line_item(items, "revenue", "total_revenue") == Decimal(10)

    def test_falls_back_to_later_candidate(self):
        items = {"total_revenue": Decimal(12)}
        assert get_line_item(items, "revenue", "total_revenue") == Decimal(12)

    def test_missing_is_zero(self):
        assert get_line_item({}, "revenue") == ZERO

    def test_custom_default(self):
        assert get_line_item({}, "revenue", default=Decimal(-1)) == Decimal(-1)


class TestFinancialStatement:
    def test_items_are_read_only(self, raw_statement):
        statement = raw_statement(StatementKind.INCOME_STATEMENT, 2023, revenue=100)
        with pytest.raises(TypeError):
            statement.items["revenue"] = Decimal(1)

    def test_items_converted_to_decimal(self, raw_statement):
        statement = raw_statement(StatementKind.INCOME_STATEMENT, 2023, revenue=100.5)
        assert statement.items["revenue"] == Decimal("100.5")

    def test_year(self, raw_statement):
        assert raw_statement(StatementKind.BALANCE_SHEET, 2021).year == 2021

    def test_to_dict(self, raw_statement):
        data = raw_statement(StatementKind.BALANCE_SHEET, 2021, cash=5).to_dict()
        assert data["report_date"] == "2021-12-31"
        assert data["kind"] == "balance_sheet"
        assert data["items"] == {"cash": "5"}


class TestBuilders:
    def test_balance_sheet_groups_by_default_policy(self, make_balance_sheet):
        bs = make_balance_sheet(
            cash=100, inventory=50, trading_financial_assets=30,
            accounts_payable=20, short_term_loan=40, total_assets=180,
        )
        assert bs.operating_assets.total == Decimal(150)
        assert bs.financial_assets.total == Decimal(30)
        assert bs.operating_liabilities.total == Decimal(20)
        assert bs.financial_liabilities.total == Decimal(40)
        assert "total_assets" not in bs.operating_assets.items

    def test_balance_sheet_custom_policy(self, make_balance_sheet):
        policy = {"cash": AccountClass.FINANCIAL_ASSET}
        bs = make_balance_sheet(policy=policy, cash=100, inventory=50)
        assert bs.financial_assets.total == Decimal(100)
        assert bs.operating_assets.total == ZERO

    def test_income_statement_derivations(self, make_income_statement):
        s = make_income_statement(
            revenue=5_000_000, operating_cost=3_000_000,
            operating_profit=1_250_000, net_profit=1_000_000,
        )
        assert s.gross_profit == Decimal(2_000_000)
        assert s.core_profit == Decimal(1_250_000)
        assert s.net_profit == Decimal(1_000_000)

    def test_income_statement_fallbacks(self, make_income_statement):
        s = make_income_statement(total_revenue=800, net_profit=90)
        assert s.revenue == Decimal(800)
        assert s.core_profit == Decimal(90)

    def test_free_cashflow_subtracts_capex(self, make_cashflow_statement):
        cf = make_cashflow_statement(operating_cashflow=900_000, capital_expenditure=200_000)
        assert cf.free_cashflow == Decimal(700_000)

    def test_capex_sign_is_normalized(self, make_cashflow_statement):
        cf = make_cashflow_statement(operating_cashflow=900_000, capital_expenditure=-200_000)
        assert cf.capital_expenditure == Decimal(200_000)
        assert cf.free_cashflow == Decimal(700_000)

    def test_missing_capex_means_fcf_equals_ocf(self, make_cashflow_statement):
        cf = make_cashflow_statement(operating_cashflow=900_000, investing_cashflow=-300_000)
        assert cf.free_cashflow == Decimal(900_000)


class TestSeriesHelpers:
    def test_sort_most_recent_first(self, make_income_statement):
        series = [make_income_statement(2021), make_income_statement(2023), make_income_statement(2022)]
        assert [s.year for s in sort_most_recent_first(series)] == [2023, 2022, 2021]

    def test_sort_raw_statements(self, raw_statement):
        series = [raw_statement(StatementKind.BALANCE_SHEET, y) for y in (2020, 2022)]
        assert [s.year for s in sort_most_recent_first(series)] == [2022, 2020]

    def test_flatten_keeps_raw_statements(
        self, make_balance_sheet, make_income_statement, make_cashflow_statement
    ):
        flat = flatten_statements(
            [make_balance_sheet()], [make_income_statement()], [make_cashflow_statement()]
        )
        assert all(isinstance(s, FinancialStatement) for s in flat)
        assert [s.kind for s in flat] == [
            StatementKind.BALANCE_SHEET,
            StatementKind.INCOME_STATEMENT,
            StatementKind.CASHFLOW_STATEMENT,
        ]


class TestAnalysisContainers:
    def test_to_frame_indexed_by_year(self):
        analysis = AssetStructureAnalysis(
            years=[2023, 2022],
            operating_asset_ratio=[Decimal("0.75"), Decimal("0.5")],
            financial_asset_ratio=[Decimal("0.25"), Decimal("0.5")],
        )
        frame = analysis.to_frame()
        assert frame.index.name == "year"
        assert list(frame.index) == [2023, 2022]
        assert frame.loc[2023, "operating_asset_ratio"] == pytest.approx(0.75)

    def test_to_dict_uses_strings(self):
        analysis = AssetStructureAnalysis(
            years=[2023],
            operating_asset_ratio=[Decimal("1")],
            financial_asset_ratio=[Decimal("0")],
        )
        assert analysis.to_dict()["operating_asset_ratio"] == ["1"]
