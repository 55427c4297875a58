"""Enumerated selectors and record kinds."""

from enum import Enum

from payoutdesk.errors import ConfigurationError


__all__ = [
    "CashflowKind",
    "ConnectionStatus",
    "Granularity",
    "PaymentKind",
    "PaymentStatus",
    "Platform",
    "ReducePolicy",
    "SettlementFrequency",
    "Side",
    "SortDirection",
    "WindowKind",
]


def _parse_member(enum_cls, raw, aliases=None):
    if isinstance(raw, enum_cls):
        return raw
    s = str(raw or "").strip().upper().replace("-", "_").replace(" ", "_")
    s = (aliases or {}).get(s, s)
    try:
        return enum_cls[s]
    except KeyError:
        raise ConfigurationError(f"Unknown {enum_cls.__name__}: {raw!r}") from None


class Side(str, Enum):
    """Trade direction as reported by the trading platform."""
    BUY = "BUY"
    SELL = "SELL"


class CashflowKind(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


class PaymentKind(str, Enum):
    PNL_SHARE = "PNL_SHARE"
    REBATE = "REBATE"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"

    @property
    def is_outstanding(self) -> bool:
        """True for invoice lines that have not been collected yet."""
        return self is not PaymentStatus.PAID


class SettlementFrequency(str, Enum):
    """How often a client settles. Informational only; never affects accrual."""
    WEEKLY = "Weekly"
    BI_WEEKLY = "Bi-Weekly"
    MONTHLY = "Monthly"

    @classmethod
    def parse(cls, raw) -> "SettlementFrequency":
        return _parse_member(cls, raw, {"BIWEEKLY": "BI_WEEKLY"})


class Platform(str, Enum):
    MT4 = "MT4"
    MT5 = "MT5"


class ConnectionStatus(str, Enum):
    CONNECTED = "Connected"
    NO_MARKET = "No Market"
    BUSY = "Busy"
    DISCONNECTED = "Disconnected"

    @classmethod
    def parse(cls, raw) -> "ConnectionStatus":
        if isinstance(raw, str):
            for member in cls:
                if member.value == raw:
                    return member
        return _parse_member(cls, raw)


class WindowKind(str, Enum):
    """Date-filter selection offered by every dashboard view."""
    ALL = "ALL"
    TODAY = "TODAY"
    LAST_7D = "LAST_7D"
    LAST_30D = "LAST_30D"
    MONTH_TO_DATE = "MONTH_TO_DATE"
    CUSTOM = "CUSTOM"

    @classmethod
    def parse(cls, raw) -> "WindowKind":
        return _parse_member(cls, raw, {"MTD": "MONTH_TO_DATE"})


class Granularity(str, Enum):
    """Bucket width for periodic rollups."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"

    @classmethod
    def parse(cls, raw) -> "Granularity":
        return _parse_member(cls, raw)


class ReducePolicy(str, Enum):
    """How values landing in the same bucket are combined.

    SUM is for flow quantities (PnL, lots, rebate dollars); MAX is for level
    quantities (drawdown percent).
    """
    SUM = "SUM"
    MAX = "MAX"

    @classmethod
    def parse(cls, raw) -> "ReducePolicy":
        return _parse_member(cls, raw)


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw) -> "SortDirection":
        return _parse_member(cls, raw)

    def toggled(self) -> "SortDirection":
        """Return the opposite direction."""
        return SortDirection.ASC if self is SortDirection.DESC else SortDirection.DESC
