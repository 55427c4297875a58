# tests/conftest.py
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from payoutdesk.models import (  # noqa: E402
    AccountSnapshot,
    Cashflow,
    ManagedAccount,
    PaymentRecord,
    PayoutStructure,
    Trade,
)
from payoutdesk.types import CashflowKind, PaymentKind, PaymentStatus, Side  # noqa: E402

D = Decimal

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def ts(day, hour=12, month=6, year=2024):
    return datetime(year, month, day, hour, 0, tzinfo=timezone.utc)


def make_trade(net="0", lots="1.0", close=None, open_time=None, id="t1", swap="0", commission="0", side=Side.BUY):
    open_time = open_time or close or NOW
    return Trade(
        id=id,
        side=side,
        symbol="EURUSD",
        lots=D(lots),
        open_price=D("1.0850"),
        open_time=open_time,
        profit=D(net),
        swap=D(swap),
        commission=D(commission),
        close_price=D("1.0900") if close is not None else None,
        close_time=close,
    )


def make_payment(amount, due, kind=PaymentKind.PNL_SHARE, status=PaymentStatus.PAID, id="p1"):
    return PaymentRecord(id=id, kind=kind, amount=D(amount), due_date=due, status=status, period_label="")


def make_account(
    id="a1",
    name="Alpha Capital",
    trades=(),
    snapshots=(),
    cashflows=(),
    payments=(),
    share="30",
    rebate="2.0",
    balance="100000",
    equity="101000",
    live_pnl="1000",
    current_dd="1.5",
    account_number="5001001",
    broker="Pepperstone",
    vps_name="Zurich-HFT-01",
):
    return ManagedAccount(
        id=id,
        name=name,
        payout_structure=PayoutStructure(pnl_share_percent=D(share), rebate_per_lot=D(rebate)),
        broker=broker,
        vps_name=vps_name,
        account_number=account_number,
        balance=D(balance),
        equity=D(equity),
        live_pnl=D(live_pnl),
        current_dd_percent=D(current_dd),
        trades=trades,
        cashflows=cashflows,
        snapshots=snapshots,
        payment_history=payments,
    )


def make_snapshot(when, dd, balance="100000"):
    return AccountSnapshot(timestamp=when, balance=D(balance), equity=D(balance), drawdown_percent=D(dd))


def make_cashflow(amount, when, kind=CashflowKind.DEPOSIT, id="c1"):
    return Cashflow(id=id, kind=kind, amount=D(amount), timestamp=when)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def payout():
    return PayoutStructure(pnl_share_percent=D("30"), rebate_per_lot=D("2.0"))


@pytest.fixture
def account():
    return make_account(
        trades=[
            make_trade(net="1000", lots="1.0", close=ts(3), id="t1"),
            make_trade(net="-200", lots="1.0", close=ts(4), id="t2"),
        ],
        snapshots=[make_snapshot(ts(10), "3.2")],
    )
