"""Immutable input records consumed by the engine.

Every record is a frozen dataclass. Collections owned by an account are
tuples so a record can never be mutated after it has been handed to the
engine. ``from_dict`` constructors accept the plain dict shape produced by
the dashboard's data layer (camelCase keys, ISO timestamps).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, TypeVar

from payoutdesk.time_utils import ZERO, parse_timestamp, to_decimal
from payoutdesk.types import (
    CashflowKind,
    ConnectionStatus,
    PaymentKind,
    PaymentStatus,
    Platform,
    SettlementFrequency,
    Side,
)


__all__ = [
    "AccountSnapshot",
    "Cashflow",
    "ManagedAccount",
    "PaymentRecord",
    "PayoutStructure",
    "Trade",
]


T = TypeVar("T")

_MISSING = object()


def _field(raw: dict[str, Any], key: str, conv: Callable[[Any], T], *, owner: str, default: Any = _MISSING) -> T:
    """Read ``raw[key]`` through *conv*, turning lookup/convert failures into ``ValueError``."""
    value = raw.get(key, _MISSING)
    if value is _MISSING or value is None:
        if default is _MISSING:
            raise ValueError(f"{owner}.{key} is missing")
        return default
    try:
        return conv(value)
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"{owner}.{key} is invalid: {value!r}") from exc


@dataclass(frozen=True)
class Trade:
    """A single closed or still-open trade.

    ``net_pnl`` is derived from its three components and has no storage of
    its own, so it can never drift from ``profit + swap + commission``.
    """
    id: str
    side: Side
    symbol: str
    lots: Decimal
    open_price: Decimal
    open_time: datetime
    profit: Decimal = ZERO
    swap: Decimal = ZERO
    commission: Decimal = ZERO
    close_price: Decimal | None = None
    close_time: datetime | None = None

    def __post_init__(self):
        if self.lots <= 0:
            raise ValueError(f"trade {self.id}: lots must be > 0, got {self.lots}")

    @property
    def net_pnl(self) -> Decimal:
        return self.profit + self.swap + self.commission

    @property
    def is_open(self) -> bool:
        return self.close_time is None

    @property
    def event_time(self) -> datetime:
        """Timestamp used for windowing and bucketing: close time, else open time."""
        return self.close_time if self.close_time is not None else self.open_time

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Trade:
        return cls(
            id=str(_field(raw, "id", str, owner="trade")),
            side=_field(raw, "type", Side, owner="trade"),
            symbol=_field(raw, "symbol", str, owner="trade"),
            lots=_field(raw, "lots", to_decimal, owner="trade"),
            open_price=_field(raw, "openPrice", to_decimal, owner="trade"),
            open_time=_field(raw, "openTime", parse_timestamp, owner="trade"),
            profit=_field(raw, "profit", to_decimal, owner="trade", default=ZERO),
            swap=_field(raw, "swap", to_decimal, owner="trade", default=ZERO),
            commission=_field(raw, "commission", to_decimal, owner="trade", default=ZERO),
            close_price=_field(raw, "closePrice", to_decimal, owner="trade", default=None),
            close_time=_field(raw, "closeTime", parse_timestamp, owner="trade", default=None),
        )


@dataclass(frozen=True)
class Cashflow:
    """Deposit or withdrawal. Feeds capital-flow totals only, never PnL."""
    id: str
    kind: CashflowKind
    amount: Decimal
    timestamp: datetime
    note: str = ""

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"cashflow {self.id}: amount must be >= 0, got {self.amount}")

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Cashflow:
        return cls(
            id=str(_field(raw, "id", str, owner="cashflow")),
            kind=_field(raw, "type", CashflowKind, owner="cashflow"),
            amount=_field(raw, "amount", to_decimal, owner="cashflow"),
            timestamp=_field(raw, "timestamp", parse_timestamp, owner="cashflow"),
            note=_field(raw, "note", str, owner="cashflow", default=""),
        )


@dataclass(frozen=True)
class AccountSnapshot:
    """Point-in-time balance/equity/drawdown reading."""
    timestamp: datetime
    balance: Decimal
    equity: Decimal
    drawdown_percent: Decimal

    def __post_init__(self):
        # Readings above 100 are accepted.
        if self.drawdown_percent < 0:
            raise ValueError(f"snapshot at {self.timestamp}: drawdown_percent must be >= 0")

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> AccountSnapshot:
        return cls(
            timestamp=_field(raw, "timestamp", parse_timestamp, owner="snapshot"),
            balance=_field(raw, "balance", to_decimal, owner="snapshot"),
            equity=_field(raw, "equity", to_decimal, owner="snapshot"),
            drawdown_percent=_field(raw, "drawdownPercent", to_decimal, owner="snapshot"),
        )


@dataclass(frozen=True)
class PayoutStructure:
    """Commercial terms agreed with the client."""
    pnl_share_percent: Decimal
    rebate_per_lot: Decimal
    frequency: SettlementFrequency = SettlementFrequency.MONTHLY

    def __post_init__(self):
        if not (0 <= self.pnl_share_percent <= 100):
            raise ValueError(f"pnl_share_percent must be within 0..100, got {self.pnl_share_percent}")
        if self.rebate_per_lot < 0:
            raise ValueError(f"rebate_per_lot must be >= 0, got {self.rebate_per_lot}")

    @property
    def share_rate(self) -> Decimal:
        """Share percentage as a fraction (30 -> 0.3)."""
        return self.pnl_share_percent / 100

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PayoutStructure:
        return cls(
            pnl_share_percent=_field(raw, "pnlSharePercent", to_decimal, owner="payoutStructure"),
            rebate_per_lot=_field(raw, "rebatePerLot", to_decimal, owner="payoutStructure"),
            frequency=_field(
                raw, "frequency", SettlementFrequency.parse, owner="payoutStructure",
                default=SettlementFrequency.MONTHLY,
            ),
        )


@dataclass(frozen=True)
class PaymentRecord:
    """A settled or scheduled invoice line."""
    id: str
    kind: PaymentKind
    amount: Decimal
    due_date: datetime
    status: PaymentStatus
    period_label: str = ""

    @property
    def is_paid(self) -> bool:
        return self.status is PaymentStatus.PAID

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PaymentRecord:
        return cls(
            id=str(_field(raw, "id", str, owner="payment")),
            kind=_field(raw, "type", PaymentKind, owner="payment"),
            amount=_field(raw, "amount", to_decimal, owner="payment"),
            due_date=_field(raw, "dueDate", parse_timestamp, owner="payment"),
            status=_field(raw, "status", PaymentStatus, owner="payment"),
            period_label=_field(raw, "periodLabel", str, owner="payment", default=""),
        )


@dataclass(frozen=True)
class ManagedAccount:
    """A third-party trading account under management.

    Live metrics describe the account right now; the tuples carry its history.
    History is owned by exactly one account.
    """
    id: str
    name: str
    payout_structure: PayoutStructure
    broker: str = ""
    server: str = ""
    vps_name: str = ""
    platform: Platform = Platform.MT4
    account_number: str = ""
    status: ConnectionStatus = ConnectionStatus.CONNECTED
    balance: Decimal = ZERO
    equity: Decimal = ZERO
    margin_percent: Decimal = ZERO
    current_dd_percent: Decimal = ZERO
    live_pnl: Decimal = ZERO
    buy_positions_count: int = 0
    buy_lots_total: Decimal = ZERO
    sell_positions_count: int = 0
    sell_lots_total: Decimal = ZERO
    trades: tuple[Trade, ...] = field(default_factory=tuple)
    cashflows: tuple[Cashflow, ...] = field(default_factory=tuple)
    snapshots: tuple[AccountSnapshot, ...] = field(default_factory=tuple)
    payment_history: tuple[PaymentRecord, ...] = field(default_factory=tuple)
    strategy_tag: str = ""

    def __post_init__(self):
        # Accept any iterable from callers but store tuples.
        for name in ("trades", "cashflows", "snapshots", "payment_history"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ManagedAccount:
        def many(key: str, conv: Callable[[dict[str, Any]], T]) -> tuple[T, ...]:
            return tuple(conv(item) for item in raw.get(key) or ())

        dec = to_decimal
        return cls(
            id=str(_field(raw, "id", str, owner="account")),
            name=_field(raw, "name", str, owner="account"),
            payout_structure=_field(raw, "payoutStructure", PayoutStructure.from_dict, owner="account"),
            broker=_field(raw, "broker", str, owner="account", default=""),
            server=_field(raw, "server", str, owner="account", default=""),
            vps_name=_field(raw, "vpsName", str, owner="account", default=""),
            platform=_field(raw, "platform", Platform, owner="account", default=Platform.MT4),
            account_number=str(_field(raw, "accountNumber", str, owner="account", default="")),
            status=_field(raw, "status", ConnectionStatus.parse, owner="account", default=ConnectionStatus.CONNECTED),
            balance=_field(raw, "balance", dec, owner="account", default=ZERO),
            equity=_field(raw, "equity", dec, owner="account", default=ZERO),
            margin_percent=_field(raw, "marginPercent", dec, owner="account", default=ZERO),
            current_dd_percent=_field(raw, "currentDDPercent", dec, owner="account", default=ZERO),
            live_pnl=_field(raw, "livePnL", dec, owner="account", default=ZERO),
            buy_positions_count=_field(raw, "buyPositionsCount", int, owner="account", default=0),
            buy_lots_total=_field(raw, "buyLotsTotal", dec, owner="account", default=ZERO),
            sell_positions_count=_field(raw, "sellPositionsCount", int, owner="account", default=0),
            sell_lots_total=_field(raw, "sellLotsTotal", dec, owner="account", default=ZERO),
            trades=many("trades", Trade.from_dict),
            cashflows=many("cashflows", Cashflow.from_dict),
            snapshots=many("snapshots", AccountSnapshot.from_dict),
            payment_history=many("paymentHistory", PaymentRecord.from_dict),
            strategy_tag=_field(raw, "strategyTag", str, owner="account", default=""),
        )
