"""
Error Types - Statement Analyzer

Exception hierarchy for the analysis pipeline and the tagged outcome
returned by the calculation core. Calculators report modeled failures
(bad parameters) through CalculationOutcome rather than raising; callers
decide whether to abort via unwrap().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar


T = TypeVar("T")


# =============================================================================
# EXCEPTIONS
# =============================================================================

class AnalyzerError(Exception):
    """Base class for all statement analyzer errors."""


class ParameterError(AnalyzerError):
    """Valuation or ratio parameters that make a formula undefined."""


class DataSourceError(AnalyzerError):
    """Statement acquisition failed (network, API or parse error)."""


class ValidationError(AnalyzerError):
    """Statement data failed a structural or accounting check."""


class ConfigError(AnalyzerError):
    """Configuration file missing or malformed."""


# =============================================================================
# CALCULATION OUTCOME
# =============================================================================

@dataclass
class CalculationOutcome(Generic[T]):
    """
    Result-or-error container returned by the calculation core.

    Exactly one of value / error is set. Warnings are non-fatal advisories
    (e.g. non-positive base free cashflow) that accompany a valid value.
    """

    value: Optional[T] = None
    error: Optional[AnalyzerError] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, value: T, warnings: Optional[List[str]] = None) -> "CalculationOutcome[T]":
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def fail(cls, error: AnalyzerError) -> "CalculationOutcome[T]":
        return cls(error=error)

    @property
    def is_valid(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        value = self.value.to_dict() if hasattr(self.value, "to_dict") else self.value
        return {
            "is_valid": self.is_valid,
            "value": value,
            "error": str(self.error) if self.error else None,
            "warnings": self.warnings,
        }
