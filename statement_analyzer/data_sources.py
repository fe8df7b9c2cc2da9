"""
Data Source Module - Statement Acquisition
Statement Analyzer

Fetch collaborators producing typed statement series for the analyzer:

    MockDataSource   deterministic fixture company, no network
    TushareClient    Tushare Pro HTTP API (requires TUSHARE_TOKEN)
    AkShareClient    Sina finance reports through akshare (no token)

Every source returns raw FinancialStatements mapped to canonical line item
names; the shared builders in models.py then derive the typed statements,
so derivation rules are identical whatever the source.

Only annual reports (period ending Dec-31) inside the requested range are
returned. Order is unspecified; the analyzer sorts.

Version: 1.0.0
"""

from __future__ import annotations

import requests
import pandas as pd
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import (
    LOGGER,
    TUSHARE_CONFIG,
    AKSHARE_DATE_COLUMN,
    AKSHARE_REPORT_NAMES,
    AccountClass,
    StatementKind,
    get_akshare_field_mapping,
    get_field_mapping,
    CASH,
    ACCOUNTS_RECEIVABLE,
    INVENTORY,
    FIXED_ASSETS,
    TOTAL_ASSETS,
    ACCOUNTS_PAYABLE,
    SHORT_TERM_LOAN,
    TOTAL_LIABILITIES,
    TOTAL_EQUITY,
    REVENUE,
    OPERATING_COST,
    TAXES_AND_SURCHARGES,
    SELLING_EXPENSE,
    ADMIN_EXPENSE,
    RD_EXPENSE,
    FINANCIAL_EXPENSE,
    OPERATING_PROFIT,
    NET_PROFIT,
    OPERATING_CASHFLOW,
    INVESTING_CASHFLOW,
    FINANCING_CASHFLOW,
    CAPITAL_EXPENDITURE,
)
from .errors import ConfigError, DataSourceError
from .models import (
    BalanceSheet,
    CashflowStatement,
    FinancialStatement,
    IncomeStatement,
    build_balance_sheet,
    build_cashflow_statement,
    build_income_statement,
)


__version__ = "1.0.0"

# Lazy-loaded: akshare is only needed by AkShareClient and takes about a second to import
ak = None


def _get_ak():
    """Import akshare on first use."""
    global ak
    if ak is None:
        import akshare as _ak
        ak = _ak
    return ak


def annual_report_dates(start_date: date, end_date: date) -> List[date]:
    """Dec-31 report dates falling inside [start_date, end_date], oldest first."""
    dates = []
    for year in range(start_date.year, end_date.year + 1):
        report_date = date(year, 12, 31)
        if start_date <= report_date <= end_date:
            dates.append(report_date)
    return dates


# =============================================================================
# DATA SOURCE INTERFACE
# =============================================================================

class DataSource(ABC):
    """
    Base class for statement providers.

    Subclasses implement fetch_raw(); the typed fetch_* methods are shared.
    """

    name: str = "base"

    @abstractmethod
    def fetch_raw(
        self,
        kind: StatementKind,
        stock_code: str,
        start_date: date,
        end_date: date,
    ) -> List[FinancialStatement]:
        """Raw statements of one kind with canonical line item names."""

    def fetch_balance_sheet(
        self,
        stock_code: str,
        start_date: date,
        end_date: date,
        policy: Optional[Mapping[str, AccountClass]] = None,
    ) -> List[BalanceSheet]:
        raw = self.fetch_raw(StatementKind.BALANCE_SHEET, stock_code, start_date, end_date)
        return [build_balance_sheet(s, policy) for s in raw]

    def fetch_income_statement(
        self,
        stock_code: str,
        start_date: date,
        end_date: date,
    ) -> List[IncomeStatement]:
        raw = self.fetch_raw(StatementKind.INCOME_STATEMENT, stock_code, start_date, end_date)
        return [build_income_statement(s) for s in raw]

    def fetch_cashflow_statement(
        self,
        stock_code: str,
        start_date: date,
        end_date: date,
    ) -> List[CashflowStatement]:
        raw = self.fetch_raw(StatementKind.CASHFLOW_STATEMENT, stock_code, start_date, end_date)
        return [build_cashflow_statement(s) for s in raw]


# =============================================================================
# MOCK DATA SOURCE
# =============================================================================

MOCK_LINE_ITEMS: Dict[StatementKind, Dict[str, int]] = {
    StatementKind.BALANCE_SHEET: {
        CASH: 1_000_000,
        ACCOUNTS_RECEIVABLE: 500_000,
        INVENTORY: 300_000,
        FIXED_ASSETS: 2_000_000,
        TOTAL_ASSETS: 4_000_000,
        ACCOUNTS_PAYABLE: 400_000,
        SHORT_TERM_LOAN: 600_000,
        TOTAL_LIABILITIES: 1_500_000,
        TOTAL_EQUITY: 2_500_000,
    },
    StatementKind.INCOME_STATEMENT: {
        REVENUE: 5_000_000,
        OPERATING_COST: 3_000_000,
        TAXES_AND_SURCHARGES: 50_000,
        SELLING_EXPENSE: 300_000,
        ADMIN_EXPENSE: 200_000,
        RD_EXPENSE: 150_000,
        FINANCIAL_EXPENSE: 50_000,
        OPERATING_PROFIT: 1_250_000,
        NET_PROFIT: 1_000_000,
    },
    StatementKind.CASHFLOW_STATEMENT: {
        OPERATING_CASHFLOW: 900_000,
        INVESTING_CASHFLOW: -200_000,
        FINANCING_CASHFLOW: -100_000,
        CAPITAL_EXPENDITURE: 200_000,
    },
}


class MockDataSource(DataSource):
    """Fixture company with identical figures every year."""

    name = "mock"

    def fetch_raw(
        self,
        kind: StatementKind,
        stock_code: str,
        start_date: date,
        end_date: date,
    ) -> List[FinancialStatement]:
        items = MOCK_LINE_ITEMS[kind]
        return [
            FinancialStatement(stock_code=stock_code, report_date=d, kind=kind, items=items)
            for d in annual_report_dates(start_date, end_date)
        ]


# =============================================================================
# TUSHARE PRO CLIENT
# =============================================================================

TUSHARE_API_NAMES: Dict[StatementKind, str] = {
    StatementKind.BALANCE_SHEET: "balancesheet",
    StatementKind.INCOME_STATEMENT: "income",
    StatementKind.CASHFLOW_STATEMENT: "cashflow",
}


class TushareClient(DataSource):
    """
    Tushare Pro statement client.

    Requests are JSON POSTs of {api_name, token, params, fields}; a response
    carries {code, msg, data: {fields, items}}. Any non-zero code, transport
    failure or malformed payload raises DataSourceError.
    """

    name = "tushare"

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = TUSHARE_CONFIG.api_url,
        timeout: int = TUSHARE_CONFIG.request_timeout,
    ):
        """
        Initialize TushareClient.

        Args:
            token: Tushare Pro token (defaults to TUSHARE_TOKEN)
            api_url: API endpoint
            timeout: Request timeout in seconds

        Raises:
            DataSourceError: If no token is available
        """
        self.token = token or TUSHARE_CONFIG.token
        self.api_url = api_url
        self.timeout = timeout
        self._call_count = 0

        if not self.token:
            raise DataSourceError(
                "Tushare token required. Set the TUSHARE_TOKEN environment variable."
            )

    @property
    def call_count(self) -> int:
        return self._call_count

    def _request(self, api_name: str, params: Dict[str, str], fields: List[str]) -> Dict[str, Any]:
        payload = {
            "api_name": api_name,
            "token": self.token,
            "params": params,
            "fields": ",".join(fields),
        }

        try:
            LOGGER.info(f"API request: {api_name} for {params.get('ts_code')}")
            response = requests.post(self.api_url, json=payload, timeout=self.timeout)
            self._call_count += 1
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.Timeout as e:
            raise DataSourceError(f"Request timeout for {api_name}") from e
        except requests.exceptions.RequestException as e:
            raise DataSourceError(f"Request failed for {api_name}: {e}") from e
        except ValueError as e:
            raise DataSourceError(f"Invalid JSON response for {api_name}") from e

        if body.get("code") != 0:
            raise DataSourceError(f"Tushare error for {api_name}: {body.get('msg') or body.get('code')}")

        data = body.get("data")
        if not data or "fields" not in data or "items" not in data:
            raise DataSourceError(f"Tushare response for {api_name} carries no data")

        LOGGER.info(f"API success: {api_name} ({len(data['items'])} rows)")
        return data

    def parse_rows(
        self,
        data: Dict[str, Any],
        kind: StatementKind,
        stock_code: str,
        start_date: date,
        end_date: date,
    ) -> List[FinancialStatement]:
        """
        Map Tushare rows to raw statements.

        Keeps Dec-31 rows inside the range, one row per report date (the
        first, which Tushare returns as the latest revision).
        """
        df = pd.DataFrame(data["items"], columns=data["fields"])
        if df.empty or "end_date" not in df.columns:
            return []

        df["end_date"] = pd.to_datetime(df["end_date"].astype(str), format="%Y%m%d", errors="coerce")
        df = df.dropna(subset=["end_date"])
        df = df[(df["end_date"].dt.month == 12) & (df["end_date"].dt.day == 31)]
        df = df[(df["end_date"].dt.date >= start_date) & (df["end_date"].dt.date <= end_date)]
        df = df.drop_duplicates(subset="end_date", keep="first")

        field_map = get_field_mapping(kind)
        statements = []

        for _, row in df.iterrows():
            items = {}
            for raw_field, canonical in field_map.items():
                if raw_field in row.index and not pd.isna(row[raw_field]):
                    items[canonical] = row[raw_field]

            statements.append(FinancialStatement(
                stock_code=stock_code,
                report_date=row["end_date"].date(),
                kind=kind,
                items=items,
            ))

        return statements

    def fetch_raw(
        self,
        kind: StatementKind,
        stock_code: str,
        start_date: date,
        end_date: date,
    ) -> List[FinancialStatement]:
        params = {
            "ts_code": stock_code,
            "start_date": start_date.strftime("%Y%m%d"),
            "end_date": end_date.strftime("%Y%m%d"),
        }
        fields = ["ts_code", "end_date"] + list(get_field_mapping(kind))
        data = self._request(TUSHARE_API_NAMES[kind], params, fields)
        return self.parse_rows(data, kind, stock_code, start_date, end_date)


# =============================================================================
# AKSHARE CLIENT
# =============================================================================

class AkShareClient(DataSource):
    """
    AkShare statement client backed by Sina finance reports.

    Needs no token. Each request returns the full report history of one
    statement kind as a DataFrame with Chinese column names; rows are mapped
    through the AkShare field maps and filtered like Tushare rows. Any
    akshare failure raises DataSourceError.
    """

    name = "akshare"

    def __init__(self):
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    @staticmethod
    def sina_symbol(stock_code: str) -> str:
        """600519.SH -> sh600519; bare codes starting with 6 are Shanghai."""
        code, _, exchange = stock_code.partition(".")
        if exchange:
            return f"{exchange.lower()}{code}"
        return f"sh{code}" if code.startswith("6") else f"sz{code}"

    def _request(self, kind: StatementKind, stock_code: str) -> pd.DataFrame:
        symbol = self.sina_symbol(stock_code)
        report_name = AKSHARE_REPORT_NAMES[kind]

        try:
            LOGGER.info(f"AkShare request: {kind.value} for {symbol}")
            df = _get_ak().stock_financial_report_sina(stock=symbol, symbol=report_name)
            self._call_count += 1
        except Exception as e:
            raise DataSourceError(f"AkShare request failed for {kind.value} {symbol}: {e}") from e

        if df is None:
            raise DataSourceError(f"AkShare returned no data for {kind.value} {symbol}")

        LOGGER.info(f"AkShare success: {kind.value} ({len(df)} rows)")
        return df

    @staticmethod
    def _first_value(row: pd.Series, columns: Sequence[str]) -> Optional[Any]:
        # First non-zero candidate; a zero only when no candidate is non-zero
        fallback = None
        for column in columns:
            if column not in row.index:
                continue
            value = pd.to_numeric(row[column], errors="coerce")
            if pd.isna(value):
                continue
            if value != 0:
                return value
            if fallback is None:
                fallback = value
        return fallback

    def parse_rows(
        self,
        df: pd.DataFrame,
        kind: StatementKind,
        stock_code: str,
        start_date: date,
        end_date: date,
    ) -> List[FinancialStatement]:
        """Map Sina report rows to raw statements, one per Dec-31 date in range."""
        if df.empty or AKSHARE_DATE_COLUMN not in df.columns:
            return []

        df = df.copy()
        raw_dates = df[AKSHARE_DATE_COLUMN].astype(str).str.replace("-", "", regex=False).str[:8]
        df["report_date"] = pd.to_datetime(raw_dates, format="%Y%m%d", errors="coerce")
        df = df.dropna(subset=["report_date"])
        df = df[(df["report_date"].dt.month == 12) & (df["report_date"].dt.day == 31)]
        df = df[(df["report_date"].dt.date >= start_date) & (df["report_date"].dt.date <= end_date)]
        df = df.drop_duplicates(subset="report_date", keep="first")

        field_map = get_akshare_field_mapping(kind)
        statements = []

        for _, row in df.iterrows():
            items = {}
            for canonical, columns in field_map.items():
                value = self._first_value(row, columns)
                if value is not None:
                    items[canonical] = value

            statements.append(FinancialStatement(
                stock_code=stock_code,
                report_date=row["report_date"].date(),
                kind=kind,
                items=items,
            ))

        return statements

    def fetch_raw(
        self,
        kind: StatementKind,
        stock_code: str,
        start_date: date,
        end_date: date,
    ) -> List[FinancialStatement]:
        df = self._request(kind, stock_code)
        return self.parse_rows(df, kind, stock_code, start_date, end_date)


# =============================================================================
# FACTORY
# =============================================================================

DATA_SOURCES = {
    MockDataSource.name: MockDataSource,
    TushareClient.name: TushareClient,
    AkShareClient.name: AkShareClient,
}


def get_data_source(name: str, **kwargs: Any) -> DataSource:
    """
    Instantiate a data source by name.

    Raises:
        ConfigError: If the name is not registered
    """
    try:
        source_cls = DATA_SOURCES[name.lower()]
    except KeyError:
        raise ConfigError(
            f"Unknown data source '{name}'. Available: {', '.join(sorted(DATA_SOURCES))}"
        ) from None
    return source_cls(**kwargs)


__all__ = [
    "__version__",
    "annual_report_dates",
    "DataSource",
    "MockDataSource",
    "TushareClient",
    "AkShareClient",
    "get_data_source",
]
