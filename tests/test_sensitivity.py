"""
tests/test_sensitivity.py
=========================
Sensitivity re-run of both valuations over an existing analysis.

Run:  pytest tests/ -v
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from statement_analyzer.analyzer import FinancialAnalyzer
from statement_analyzer.config import StatementKind
from statement_analyzer.data_sources import MockDataSource
from statement_analyzer.errors import ParameterError
from statement_analyzer.models import FinancialStatement
from statement_analyzer.sensitivity import SensitivityEngine, SensitivityParams


@pytest.fixture
def analyzer():
    return FinancialAnalyzer()


@pytest.fixture
def result(analyzer):
    return analyzer.analyze("600519.SH", [2023, 2022, 2021], MockDataSource())


class TestSensitivityParams:
    def test_defaults(self):
        params = SensitivityParams()
        assert params.discount_rate == 0.08
        assert params.perpetual_growth_rate == 0.04
        assert params.fcf_growth_rate == -0.10
        assert params.net_profit_growth_rate == 0.10
        assert params.low_yield == 0.04
        assert params.high_yield == 0.02

    def test_to_valuation_params(self):
        params = SensitivityParams(discount_rate=0.09).to_valuation_params(Decimal(500))
        assert params.dcf.discount_rate == 0.09
        assert params.dcf.fcf_growth_rate == -0.10
        assert params.multiple_model.safety_margin == 0.7
        assert params.total_shares == Decimal(500)


class TestSensitivityEngine:
    def test_default_scenario(self, result):
        outcome = SensitivityEngine().run(result)
        assert outcome.is_valid
        sensitivity = outcome.value

        base = 700_000
        pv = sum(base * 0.9 ** t / 1.08 ** t for t in (1, 2, 3))
        expected = pv + base * 0.9 ** 3 * 1.04 / 0.04 / 1.08 ** 3

        assert float(sensitivity.dcf_enterprise_value) == pytest.approx(expected, rel=1e-9)
        assert sensitivity.dcf_price_per_share == sensitivity.dcf_enterprise_value / Decimal(100_000_000)
        assert sensitivity.multiple_low_estimate == Decimal("0.33275")
        assert sensitivity.multiple_high_estimate == Decimal("0.6655")
        assert sensitivity.multiple_safety_margin_price == Decimal("0.232925")
        assert sensitivity.total_shares == Decimal(100_000_000)

    def test_params_paired_with_result(self, result):
        params = SensitivityParams(net_profit_growth_rate=0.0)
        sensitivity = SensitivityEngine().run(result, params).value
        assert sensitivity.params is params
        assert sensitivity.multiple_low_estimate == Decimal(1_000_000) * 25 / Decimal(100_000_000)

    def test_primary_result_untouched(self, result):
        before = result.valuation.to_dict()
        SensitivityEngine().run(result, SensitivityParams(discount_rate=0.2))
        assert result.valuation.to_dict() == before
        assert result.sensitivity is None

    def test_idempotent(self, result):
        engine = SensitivityEngine()
        first = engine.run(result).value
        second = engine.run(result).value
        assert first.to_dict() == second.to_dict()

    def test_invalid_params(self, result):
        outcome = SensitivityEngine().run(result, SensitivityParams(discount_rate=0.04))
        assert not outcome.is_valid
        assert isinstance(outcome.error, ParameterError)

    def test_share_capital_from_first_balance_sheet(self, result):
        balance = result.statements_of(StatementKind.BALANCE_SHEET)[0]
        with_shares = FinancialStatement(
            stock_code=balance.stock_code,
            report_date=balance.report_date,
            kind=balance.kind,
            items={**balance.items, "share_capital": Decimal(1_000_000)},
        )
        statements = [with_shares] + [s for s in result.statements if s is not balance]

        sensitivity = SensitivityEngine().run(replace(result, statements=statements)).value
        assert sensitivity.total_shares == Decimal(1_000_000)
        assert sensitivity.multiple_low_estimate == Decimal("33.275")

    def test_rebuilds_derived_fields(self, result):
        # Only raw line items survive flattening; FCF must come from OCF - capex
        sensitivity = SensitivityEngine().run(result, SensitivityParams(fcf_growth_rate=0.0)).value
        expected = sum(700_000 / 1.08 ** t for t in (1, 2, 3)) + 700_000 * 1.04 / 0.04 / 1.08 ** 3
        assert float(sensitivity.dcf_enterprise_value) == pytest.approx(expected, rel=1e-9)


class TestRunSensitivity:
    def test_returns_new_result(self, analyzer, result):
        updated = analyzer.run_sensitivity(result)
        assert updated is not result
        assert updated.sensitivity is not None
        assert result.sensitivity is None
        assert updated.valuation is result.valuation

    def test_raises_on_invalid_params(self, analyzer, result):
        with pytest.raises(ParameterError):
            analyzer.run_sensitivity(result, SensitivityParams(perpetual_growth_rate=0.09))

    def test_serializes(self, analyzer, result):
        data = analyzer.run_sensitivity(result).to_dict()
        assert data["sensitivity"]["params"]["fcf_growth_rate"] == -0.10
