"""
payoutdesk - Temporal aggregation and payout-accrual engine for managed
trading accounts.

Filters timestamped account records by date window, rolls them up into
daily/weekly/monthly buckets, and accrues profit-share and volume-rebate
earnings from each account's payout structure.
"""

from .accrual import Accrual, accrue
from .aggregation import (
    BucketRow,
    SeriesEvent,
    aggregate,
    drawdown_series,
    earnings_series,
    lots_series,
    pnl_series,
    portfolio_ledger,
    reaggregate,
    series_values,
)
from .buckets import BucketKey, derive_key
from .config import EngineConfig, configure_logging
from .errors import ConfigurationError, PayoutDeskError
from .models import (
    AccountSnapshot,
    Cashflow,
    ManagedAccount,
    PaymentRecord,
    PayoutStructure,
    Trade,
)
from .portfolio import (
    AccountBreakdown,
    PaymentLedgerRow,
    PaymentLedgerSummary,
    PortfolioSummary,
    account_breakdown,
    lifetime_max_drawdown,
    max_drawdown_in_window,
    payment_ledger,
    payment_summary,
    summarize,
)
from .sorting import Sorter, filter_rows, sort_rows
from .types import Granularity, ReducePolicy, SortDirection, WindowKind
from .window import TimeWindow, includes

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AccountBreakdown",
    "AccountSnapshot",
    "Accrual",
    "BucketKey",
    "BucketRow",
    "Cashflow",
    "ConfigurationError",
    "EngineConfig",
    "Granularity",
    "ManagedAccount",
    "PaymentLedgerRow",
    "PaymentLedgerSummary",
    "PaymentRecord",
    "PayoutDeskError",
    "PayoutStructure",
    "PortfolioSummary",
    "ReducePolicy",
    "SeriesEvent",
    "SortDirection",
    "Sorter",
    "TimeWindow",
    "Trade",
    "WindowKind",
    "account_breakdown",
    "accrue",
    "aggregate",
    "configure_logging",
    "derive_key",
    "drawdown_series",
    "earnings_series",
    "filter_rows",
    "includes",
    "lifetime_max_drawdown",
    "lots_series",
    "max_drawdown_in_window",
    "payment_ledger",
    "payment_summary",
    "pnl_series",
    "portfolio_ledger",
    "reaggregate",
    "series_values",
    "sort_rows",
    "summarize",
]
