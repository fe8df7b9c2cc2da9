"""
Statement Validation Module - Statement Analyzer

Structural and accounting-identity checks applied to fetched statements
before ratio calculation:

- Accounting equation: Assets = Liabilities + Equity (within tolerance)
- Required line items per statement kind
- Sign constraints (non-negative balance sheet lines unless allowed)
- Abnormal magnitudes
- Gross margin plausibility (warning only)

Each statement yields a ValidationReport with a 0-100 reliability score.
Only CRITICAL findings make a report invalid; the analyzer logs and attaches
reports, and aborts with ValidationError only when the validator is strict.

Version: 1.0.0
"""

from __future__ import annotations

from decimal import Decimal
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .config import (
    LOGGER,
    VALIDATION_RULES,
    Severity,
    StatementKind,
    ValidationRules,
    TOTAL_ASSETS,
    TOTAL_LIABILITIES,
    TOTAL_EQUITY,
    CAPITAL_EXPENDITURE,
)
from .errors import ValidationError
from .models import ZERO, BalanceSheet, CashflowStatement, FinancialStatement, IncomeStatement


__version__ = "1.0.0"


# =============================================================================
# DATA CONTAINERS
# =============================================================================

@dataclass
class ValidationFinding:
    """Single failed check."""

    field: str
    rule: str
    message: str
    severity: Severity = Severity.LOW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "rule": self.rule,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass
class ValidationReport:
    """Validation outcome for one statement."""

    stock_code: str
    year: int
    kind: StatementKind
    errors: List[ValidationFinding] = field(default_factory=list)
    warnings: List[ValidationFinding] = field(default_factory=list)
    reliability_score: float = 100.0

    @property
    def is_valid(self) -> bool:
        return not any(e.severity == Severity.CRITICAL for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stock_code": self.stock_code,
            "year": self.year,
            "kind": self.kind.value,
            "is_valid": self.is_valid,
            "reliability_score": self.reliability_score,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


# =============================================================================
# STATEMENT VALIDATOR
# =============================================================================

class StatementValidator:
    """
    Validates typed statements against ValidationRules.

    In strict mode validate_all raises ValidationError when any report
    carries a CRITICAL finding.

    Usage:
        validator = StatementValidator()
        report = validator.validate_balance_sheet(balance_sheet)
    """

    def __init__(self, rules: ValidationRules = VALIDATION_RULES, strict: bool = False):
        self.rules = rules
        self.strict = strict
        self.max_reasonable = Decimal(rules.max_reasonable_amount)
        self.tolerance = Decimal(rules.accounting_equation_tolerance)

    def validate_balance_sheet(self, balance_sheet: BalanceSheet) -> ValidationReport:
        statement = balance_sheet.statement
        report = self._new_report(statement)

        equation_error = self._check_accounting_equation(statement)
        if equation_error is not None:
            report.errors.append(equation_error)

        report.errors.extend(self._check_required(statement, self.rules.required_balance_accounts))
        report.errors.extend(self._check_value_ranges(statement, check_sign=True))

        return self._finalize(report)

    def validate_income_statement(self, income_statement: IncomeStatement) -> ValidationReport:
        statement = income_statement.statement
        report = self._new_report(statement)

        report.errors.extend(self._check_required(statement, self.rules.required_income_accounts))
        report.errors.extend(self._check_value_ranges(statement, check_sign=False))

        if income_statement.revenue > ZERO:
            gross_margin = float(income_statement.gross_profit / income_statement.revenue)
            if not self.rules.gross_margin_min <= gross_margin <= self.rules.gross_margin_max:
                report.warnings.append(ValidationFinding(
                    field="gross_margin",
                    rule="plausible_range",
                    message=f"Gross margin {gross_margin:.2%} outside plausible range",
                ))

        return self._finalize(report)

    def validate_cashflow_statement(self, cashflow_statement: CashflowStatement) -> ValidationReport:
        statement = cashflow_statement.statement
        report = self._new_report(statement)

        report.errors.extend(self._check_required(statement, self.rules.required_cashflow_accounts))
        report.errors.extend(self._check_value_ranges(statement, check_sign=False))

        if CAPITAL_EXPENDITURE not in statement.items:
            report.warnings.append(ValidationFinding(
                field=CAPITAL_EXPENDITURE,
                rule="free_cashflow_basis",
                message="Capital expenditure missing; free cashflow equals operating cashflow",
            ))

        return self._finalize(report)

    def validate_all(
        self,
        balance_sheets: Iterable[BalanceSheet],
        income_statements: Iterable[IncomeStatement],
        cashflow_statements: Iterable[CashflowStatement],
    ) -> List[ValidationReport]:
        """
        Validate every statement, logging failed reports.

        Raises:
            ValidationError: In strict mode, if any report is invalid
        """
        reports = [self.validate_balance_sheet(bs) for bs in balance_sheets]
        reports.extend(self.validate_income_statement(s) for s in income_statements)
        reports.extend(self.validate_cashflow_statement(cf) for cf in cashflow_statements)

        for report in reports:
            if not report.is_valid:
                messages = "; ".join(e.message for e in report.errors)
                LOGGER.warning(
                    f"Validation failed for {report.kind.value} {report.year} "
                    f"(score {report.reliability_score:.0f}): {messages}"
                )
            elif report.errors or report.warnings:
                LOGGER.info(
                    f"Validation issues for {report.kind.value} {report.year}: "
                    f"{len(report.errors)} errors, {len(report.warnings)} warnings"
                )

        failed = [r for r in reports if not r.is_valid]
        if self.strict and failed:
            labels = ", ".join(f"{r.kind.value} {r.year}" for r in failed)
            raise ValidationError(f"Statements failed validation: {labels}")

        return reports

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _check_accounting_equation(self, statement: FinancialStatement) -> Optional[ValidationFinding]:
        total_assets = statement.get(TOTAL_ASSETS)
        total_liabilities = statement.get(TOTAL_LIABILITIES)
        total_equity = statement.get(TOTAL_EQUITY)

        diff = abs(total_assets - (total_liabilities + total_equity))
        if diff <= self.tolerance:
            return None

        return ValidationFinding(
            field="accounting_equation",
            rule="assets = liabilities + equity",
            message=(
                f"Unbalanced: assets ({total_assets}) != liabilities ({total_liabilities}) "
                f"+ equity ({total_equity}), difference {diff}"
            ),
            severity=Severity.CRITICAL,
        )

    @staticmethod
    def _check_required(statement: FinancialStatement, required: Iterable[str]) -> List[ValidationFinding]:
        return [
            ValidationFinding(
                field=account,
                rule="required_account",
                message=f"Missing required account: {account}",
                severity=Severity.HIGH,
            )
            for account in required
            if account not in statement.items
        ]

    def _check_value_ranges(self, statement: FinancialStatement, check_sign: bool) -> List[ValidationFinding]:
        findings = []

        for account, value in statement.items.items():
            if check_sign and value < ZERO and account not in self.rules.allow_negative:
                findings.append(ValidationFinding(
                    field=account,
                    rule="non_negative",
                    message=f"{account} should not be negative: {value}",
                    severity=Severity.HIGH,
                ))

            if abs(value) > self.max_reasonable:
                findings.append(ValidationFinding(
                    field=account,
                    rule="magnitude",
                    message=f"{account} is abnormally large: {value}",
                    severity=Severity.MEDIUM,
                ))

        return findings

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    @staticmethod
    def _new_report(statement: FinancialStatement) -> ValidationReport:
        return ValidationReport(
            stock_code=statement.stock_code,
            year=statement.year,
            kind=statement.kind,
        )

    def _finalize(self, report: ValidationReport) -> ValidationReport:
        score = 100.0
        for error in report.errors:
            score -= self.rules.severity_penalties[error.severity]
        score -= len(report.warnings) * self.rules.warning_penalty
        report.reliability_score = max(score, 0.0)
        return report


__all__ = [
    "__version__",
    "ValidationFinding",
    "ValidationReport",
    "StatementValidator",
]
