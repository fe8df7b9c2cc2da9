"""
tests/conftest.py
=================
Shared pytest fixtures for the Statement Analyzer test suite.
"""
import sys
import os
from datetime import date

import pytest

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from statement_analyzer.config import StatementKind
from statement_analyzer.models import (
    FinancialStatement,
    build_balance_sheet,
    build_cashflow_statement,
    build_income_statement,
)


def _statement(kind, year, stock_code="TEST.SH", **items):
    return FinancialStatement(
        stock_code=stock_code,
        report_date=date(year, 12, 31),
        kind=kind,
        items=items,
    )


@pytest.fixture
def make_balance_sheet():
    """Factory: make_balance_sheet(year, policy=None, **line_items) -> BalanceSheet."""
    def factory(year=2023, policy=None, **items):
        return build_balance_sheet(_statement(StatementKind.BALANCE_SHEET, year, **items), policy)
    return factory


@pytest.fixture
def make_income_statement():
    """Factory: make_income_statement(year, **line_items) -> IncomeStatement."""
    def factory(year=2023, **items):
        return build_income_statement(_statement(StatementKind.INCOME_STATEMENT, year, **items))
    return factory


@pytest.fixture
def make_cashflow_statement():
    """Factory: make_cashflow_statement(year, **line_items) -> CashflowStatement."""
    def factory(year=2023, **items):
        return build_cashflow_statement(_statement(StatementKind.CASHFLOW_STATEMENT, year, **items))
    return factory


@pytest.fixture
def raw_statement():
    """Factory: raw_statement(kind, year, **line_items) -> FinancialStatement."""
    return _statement
