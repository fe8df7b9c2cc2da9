"""
tests/test_valuator.py
======================
DCF and profit-growth multiple model valuation, parameter errors and
total shares resolution.

Run:  pytest tests/ -v
"""

from decimal import Decimal

import pytest

from statement_analyzer.config import StatementKind
from statement_analyzer.errors import ParameterError
from statement_analyzer.models import ZERO
from statement_analyzer.valuator import (
    DCFParams,
    MultipleModelParams,
    ValuationParams,
    Valuator,
    resolve_total_shares,
)


def expected_enterprise_value(base_fcf, discount_rate, growth, perpetual_growth, years=3):
    pv = sum(base_fcf * (1 + growth) ** t / (1 + discount_rate) ** t for t in range(1, years + 1))
    terminal = base_fcf * (1 + growth) ** years * (1 + perpetual_growth) / (discount_rate - perpetual_growth)
    return pv + terminal / (1 + discount_rate) ** years


@pytest.fixture
def dcf_valuator():
    params = ValuationParams(
        dcf=DCFParams(discount_rate=0.08, perpetual_growth_rate=0.04, fcf_growth_rate=0.10),
        total_shares=Decimal(100_000_000),
    )
    return Valuator(params)


@pytest.fixture
def fcf_700k(make_cashflow_statement):
    return make_cashflow_statement(2023, operating_cashflow=900_000, capital_expenditure=200_000)


class TestDCF:
    def test_regression_value(self, dcf_valuator, fcf_700k):
        outcome = dcf_valuator.calculate_dcf([fcf_700k])
        assert outcome.is_valid
        valuation = outcome.value

        expected = expected_enterprise_value(700_000, 0.08, 0.10, 0.04)
        assert float(valuation.enterprise_value) == pytest.approx(expected, rel=1e-9)
        assert 21_400_000 < valuation.enterprise_value < 21_420_000
        assert valuation.price_per_share == valuation.enterprise_value / Decimal(100_000_000)

    def test_projection_breakdown(self, dcf_valuator, fcf_700k):
        valuation = dcf_valuator.calculate_dcf([fcf_700k]).value
        assert [p.year for p in valuation.projections] == [1, 2, 3]
        assert valuation.projections[0].fcf == Decimal("770000.00")
        assert valuation.base_fcf == Decimal(700_000)

    def test_uses_most_recent_year(self, dcf_valuator, fcf_700k, make_cashflow_statement):
        older = make_cashflow_statement(2022, operating_cashflow=100)
        valuation = dcf_valuator.calculate_dcf([fcf_700k, older]).value
        assert valuation.base_fcf == Decimal(700_000)

    @pytest.mark.parametrize("discount_rate", [0.04, 0.03])
    def test_discount_rate_must_exceed_growth(self, fcf_700k, discount_rate):
        params = ValuationParams(dcf=DCFParams(discount_rate=discount_rate, perpetual_growth_rate=0.04))
        outcome = Valuator(params).calculate_dcf([fcf_700k])
        assert not outcome.is_valid
        assert isinstance(outcome.error, ParameterError)
        with pytest.raises(ParameterError):
            outcome.unwrap()

    def test_parameter_error_on_empty_input(self):
        params = ValuationParams(dcf=DCFParams(discount_rate=0.02, perpetual_growth_rate=0.04))
        outcome = Valuator(params).calculate_dcf([])
        assert isinstance(outcome.error, ParameterError)

    def test_empty_input_is_zero_valuation(self, dcf_valuator):
        outcome = dcf_valuator.calculate_dcf([])
        assert outcome.is_valid
        assert outcome.value.enterprise_value == ZERO
        assert outcome.value.price_per_share == ZERO

    def test_non_positive_base_fcf_warns(self, dcf_valuator, make_cashflow_statement):
        cf = make_cashflow_statement(operating_cashflow=100_000, capital_expenditure=300_000)
        outcome = dcf_valuator.calculate_dcf([cf])
        assert outcome.is_valid
        assert len(outcome.warnings) == 1
        assert outcome.value.enterprise_value < ZERO

    def test_zero_total_shares(self, fcf_700k):
        outcome = Valuator(ValuationParams(total_shares=Decimal(0))).calculate_dcf([fcf_700k])
        assert isinstance(outcome.error, ParameterError)

    @pytest.mark.parametrize("discount_rate, perpetual_growth_rate", [(-1.0, -2.0), (-1.5, -2.0)])
    def test_discount_rate_at_or_below_minus_one(self, fcf_700k, discount_rate, perpetual_growth_rate):
        params = ValuationParams(
            dcf=DCFParams(discount_rate=discount_rate, perpetual_growth_rate=perpetual_growth_rate)
        )
        outcome = Valuator(params).calculate_dcf([fcf_700k])
        assert not outcome.is_valid
        assert isinstance(outcome.error, ParameterError)

    def test_repeated_calls_are_identical(self, dcf_valuator, fcf_700k):
        first = dcf_valuator.calculate_dcf([fcf_700k]).value
        second = dcf_valuator.calculate_dcf([fcf_700k]).value
        assert first.enterprise_value == second.enterprise_value
        assert first.price_per_share == second.price_per_share
        assert [p.present_value for p in first.projections] == [p.present_value for p in second.projections]


class TestMultipleModel:
    @pytest.fixture
    def valuator(self):
        params = ValuationParams(
            multiple_model=MultipleModelParams(
                net_profit_growth_rate=0.10, low_yield=0.04, high_yield=0.02, safety_margin=0.7
            ),
            total_shares=Decimal(100_000_000),
        )
        return Valuator(params)

    def test_reference_values(self, valuator, make_income_statement):
        outcome = valuator.calculate_multiple_model([make_income_statement(net_profit=1_000_000)])
        assert outcome.is_valid
        valuation = outcome.value

        assert valuation.future_profit == Decimal("1331000")
        assert valuation.low_multiple == Decimal(25)
        assert valuation.high_multiple == Decimal(50)
        assert valuation.low_estimate == Decimal("0.33275")
        assert valuation.high_estimate == Decimal("0.6655")
        assert valuation.safety_margin_price == Decimal("0.232925")

    def test_low_estimate_is_conservative(self, valuator, make_income_statement):
        valuation = valuator.calculate_multiple_model([make_income_statement(net_profit=5)]).value
        assert valuation.low_estimate < valuation.high_estimate

    def test_uses_latest_net_profit(self, valuator, make_income_statement):
        series = [make_income_statement(2023, net_profit=1_000_000), make_income_statement(2022, net_profit=1)]
        assert valuator.calculate_multiple_model(series).value.latest_net_profit == Decimal(1_000_000)

    def test_empty_input(self, valuator):
        outcome = valuator.calculate_multiple_model([])
        assert outcome.is_valid
        assert outcome.value.low_estimate == ZERO
        assert outcome.value.safety_margin_price == ZERO

    def test_non_positive_yield(self, make_income_statement):
        params = ValuationParams(multiple_model=MultipleModelParams(low_yield=0.0))
        outcome = Valuator(params).calculate_multiple_model([make_income_statement(net_profit=1)])
        assert isinstance(outcome.error, ParameterError)

    def test_repeated_calls_are_identical(self, valuator, make_income_statement):
        series = [make_income_statement(net_profit=1_000_000)]
        first = valuator.calculate_multiple_model(series).value
        second = valuator.calculate_multiple_model(series).value
        assert first.low_estimate == second.low_estimate
        assert first.high_estimate == second.high_estimate
        assert first.safety_margin_price == second.safety_margin_price


class TestCalculate:
    def test_combines_both_valuations(self, dcf_valuator, fcf_700k, make_income_statement):
        outcome = dcf_valuator.calculate([make_income_statement(net_profit=1_000_000)], [fcf_700k])
        assert outcome.is_valid
        result = outcome.value
        assert result.dcf.enterprise_value > ZERO
        assert result.multiple_model.future_profit == Decimal("1331000")
        assert result.params is dcf_valuator.params

    def test_parameter_error_fails_whole_result(self, fcf_700k, make_income_statement):
        params = ValuationParams(dcf=DCFParams(discount_rate=0.03, perpetual_growth_rate=0.03))
        outcome = Valuator(params).calculate([make_income_statement(net_profit=1)], [fcf_700k])
        assert outcome.value is None
        assert isinstance(outcome.error, ParameterError)

    def test_warnings_carried(self, dcf_valuator, make_cashflow_statement, make_income_statement):
        cf = make_cashflow_statement(operating_cashflow=-5)
        outcome = dcf_valuator.calculate([make_income_statement(net_profit=1)], [cf])
        assert outcome.is_valid
        assert outcome.warnings

    def test_to_dict(self, dcf_valuator, fcf_700k):
        data = dcf_valuator.calculate([], [fcf_700k]).value.to_dict()
        assert set(data) == {"dcf", "multiple_model", "params"}
        assert data["params"]["total_shares"] == "100000000"


class TestValuationParams:
    def test_defaults(self):
        params = ValuationParams()
        assert params.dcf.discount_rate == 0.08
        assert params.dcf.perpetual_growth_rate == 0.03
        assert params.dcf.fcf_growth_rate == 0.10
        assert params.multiple_model.safety_margin == 0.7
        assert params.total_shares == Decimal(100_000_000)

    def test_with_total_shares_returns_fresh_object(self):
        params = ValuationParams()
        updated = params.with_total_shares(Decimal(5_000))
        assert updated.total_shares == Decimal(5_000)
        assert params.total_shares == Decimal(100_000_000)
        assert updated.dcf == params.dcf

    def test_params_are_frozen(self):
        with pytest.raises(AttributeError):
            ValuationParams().total_shares = Decimal(1)


class TestResolveTotalShares:
    def test_share_capital(self, make_balance_sheet):
        assert resolve_total_shares([make_balance_sheet(share_capital=2_000_000)]) == Decimal(2_000_000)

    def test_paid_in_capital_fallback(self, make_balance_sheet):
        assert resolve_total_shares([make_balance_sheet(paid_in_capital=3_000)]) == Decimal(3_000)

    def test_first_balance_sheet_only(self, make_balance_sheet):
        sheets = [make_balance_sheet(2023, share_capital=10), make_balance_sheet(2022, share_capital=20)]
        assert resolve_total_shares(sheets) == Decimal(10)

    def test_default_when_missing(self, make_balance_sheet):
        assert resolve_total_shares([make_balance_sheet(cash=1)]) == Decimal(100_000_000)
        assert resolve_total_shares([], default=42) == Decimal(42)

    def test_non_positive_uses_default(self, make_balance_sheet):
        assert resolve_total_shares([make_balance_sheet(share_capital=0)], default=7) == Decimal(7)

    def test_skips_other_statement_kinds(self, raw_statement):
        statements = [
            raw_statement(StatementKind.INCOME_STATEMENT, 2023, share_capital=1),
            raw_statement(StatementKind.BALANCE_SHEET, 2023, share_capital=9),
        ]
        assert resolve_total_shares(statements) == Decimal(9)
