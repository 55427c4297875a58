"""Tests for payoutdesk.portfolio – portfolio rollups and payment ledger."""

from datetime import date
from decimal import Decimal

import pytest

from payoutdesk.portfolio import (
    PaymentLedgerSummary,
    account_breakdown,
    lifetime_max_drawdown,
    max_drawdown_in_window,
    payment_ledger,
    payment_summary,
    summarize,
)
from payoutdesk.types import CashflowKind, PaymentKind, PaymentStatus
from payoutdesk.window import TimeWindow

from conftest import NOW, make_account, make_cashflow, make_payment, make_snapshot, make_trade, ts

D = Decimal


def _portfolio():
    winner = make_account(
        id="a1",
        name="Alpha Capital",
        balance="100000",
        equity="101000",
        live_pnl="1000",
        current_dd="1.5",
        share="30",
        rebate="2.0",
        trades=[
            make_trade(net="1000", lots="1.0", close=ts(3), id="t1"),
            make_trade(net="-200", lots="1.0", close=ts(4), id="t2"),
            make_trade(net="5000", lots="10", close=ts(1, month=3), id="t3"),
        ],
        snapshots=[
            make_snapshot(ts(10), "3.2"),
            make_snapshot(ts(12), "4.1"),
            make_snapshot(ts(1, month=3), "12.0"),
        ],
        cashflows=[
            make_cashflow("50000", ts(2), CashflowKind.DEPOSIT, id="c1"),
            make_cashflow("2000", ts(5), CashflowKind.WITHDRAWAL, id="c2"),
            make_cashflow("99999", ts(1, month=1), CashflowKind.DEPOSIT, id="c3"),
        ],
    )
    loser = make_account(
        id="a2",
        name="Beta Fund",
        balance="50000",
        equity="48000",
        live_pnl="-2000",
        current_dd="4.0",
        share="40",
        rebate="1.5",
        account_number="7002002",
        broker="IC Markets",
        vps_name="London-01",
        trades=[make_trade(net="-700", lots="3.0", close=ts(6), id="t4")],
    )
    return [winner, loser]


# ---------------------------------------------------------------------------
# Drawdown
# ---------------------------------------------------------------------------

class TestDrawdown:

    def test_max_of_in_window_snapshots(self):
        acc = _portfolio()[0]
        assert max_drawdown_in_window(acc, TimeWindow.month_to_date(), NOW) == D("4.1")

    def test_falls_back_to_current_drawdown(self):
        acc = _portfolio()[0]
        assert max_drawdown_in_window(acc, TimeWindow.today(), NOW) == D("1.5")

    def test_no_snapshots_at_all(self):
        acc = _portfolio()[1]
        assert max_drawdown_in_window(acc, TimeWindow.all(), NOW) == D("4.0")

    def test_lifetime_includes_live_reading(self):
        winner, loser = _portfolio()
        assert lifetime_max_drawdown(winner) == D("12.0")
        assert lifetime_max_drawdown(loser) == D("4.0")


# ---------------------------------------------------------------------------
# account_breakdown / summarize
# ---------------------------------------------------------------------------

class TestAccountBreakdown:

    def test_per_account_accrual(self):
        rows = account_breakdown(_portfolio(), TimeWindow.month_to_date(), NOW)
        assert [r.account_id for r in rows] == ["a1", "a2"]

        alpha, beta = rows
        assert alpha.net_pnl == D("800")
        assert alpha.lots_traded == D("2.0")
        assert alpha.profit_share == D("240")
        assert alpha.rebate == D("4.00")
        assert alpha.total_accrued == D("244.00")
        assert alpha.max_dd_in_window == D("4.1")

        assert beta.net_pnl == D("-700")
        assert beta.profit_share == D("0")
        assert beta.rebate == D("4.50")
        assert beta.max_dd_in_window == D("4.0")

    def test_single_account(self, account):
        [row] = account_breakdown([account], TimeWindow.all(), NOW)
        assert row.total_accrued == D("244.00")
        assert row.max_dd_in_window == D("3.2")

    def test_empty_window(self):
        w = TimeWindow.custom(date(2030, 1, 1), date(2030, 1, 2))
        rows = account_breakdown(_portfolio(), w, NOW)
        assert all(r.total_accrued == 0 and r.lots_traded == 0 for r in rows)


class TestSummarize:

    def test_live_totals_ignore_window(self):
        for window in (TimeWindow.all(), TimeWindow.today()):
            s = summarize(_portfolio(), window, NOW)
            assert s.total_balance == D("150000")
            assert s.aum == D("150000")
            assert s.total_equity == D("149000")
            assert s.total_live_pnl == D("-1000")
            assert s.account_count == 2

    def test_realized_figures_are_windowed(self):
        s = summarize(_portfolio(), TimeWindow.month_to_date(), NOW)
        assert s.realized_net_pnl == D("100")
        assert s.lots_traded == D("5.0")
        assert s.profit_share == D("240")
        assert s.rebate == D("8.50")
        assert s.total_accrued == D("248.50")

    def test_gating_per_account_not_portfolio(self):
        # Portfolio net is +100, but Beta's loss must not shrink Alpha's fee.
        s = summarize(_portfolio(), TimeWindow.month_to_date(), NOW)
        assert s.profit_share != s.realized_net_pnl * D("0.3")

    def test_all_time(self):
        s = summarize(_portfolio(), TimeWindow.all(), NOW)
        assert s.realized_net_pnl == D("5100")
        assert s.profit_share == D("1740")
        assert s.max_dd_percent == D("12.0")

    def test_cashflows_windowed(self):
        s = summarize(_portfolio(), TimeWindow.month_to_date(), NOW)
        assert s.total_deposits == D("50000")
        assert s.total_withdrawals == D("2000")

    def test_max_dd_across_accounts(self):
        s = summarize(_portfolio(), TimeWindow.month_to_date(), NOW)
        assert s.max_dd_percent == D("4.1")

    def test_no_accounts(self):
        s = summarize([], TimeWindow.all(), NOW)
        assert s.account_count == 0
        assert s.total_accrued == 0
        assert s.max_dd_percent == 0


# ---------------------------------------------------------------------------
# Payment ledger
# ---------------------------------------------------------------------------

def _billing_accounts():
    a = make_account(
        id="a1",
        name="Alpha Capital",
        rebate="2.5",
        payments=[
            make_payment("1200.50", ts(1, month=5), PaymentKind.PNL_SHARE, PaymentStatus.PAID, id="p1"),
            make_payment("450", ts(1, month=5), PaymentKind.REBATE, PaymentStatus.PAID, id="p2"),
            make_payment("1540.20", ts(1), PaymentKind.PNL_SHARE, PaymentStatus.PENDING, id="p3"),
            make_payment("320.10", ts(1), PaymentKind.REBATE, PaymentStatus.OVERDUE, id="p4"),
        ],
        # Live trades must not leak into ledger totals.
        trades=[make_trade(net="100000", lots="50", close=ts(1, month=5))],
    )
    b = make_account(
        id="a2",
        name="Beta Fund",
        account_number="7002002",
        rebate="0",
        payments=[make_payment("80", ts(2), PaymentKind.REBATE, PaymentStatus.PAID, id="p5")],
    )
    return [a, b]


class TestPaymentSummary:

    def test_all_time(self):
        s = payment_summary(_billing_accounts(), TimeWindow.all(), NOW)
        assert s.collected_total == D("1730.50")
        assert s.collected_pnl_share == D("1200.50")
        assert s.collected_rebate == D("530")
        assert s.pending_total == D("1860.30")
        assert s.pending_count == 2
        # 450 / 2.5; Beta's zero rate contributes no lots
        assert s.paid_lots == D("180")

    def test_windowed_by_due_date(self):
        s = payment_summary(_billing_accounts(), TimeWindow.month_to_date(), NOW)
        assert s.collected_total == D("80")
        assert s.pending_total == D("1860.30")

    def test_collection_rate(self):
        s = payment_summary(_billing_accounts(), TimeWindow.all(), NOW)
        assert s.collection_rate == D("1730.50") / D("3590.80")

    def test_empty_collection_rate_is_zero(self):
        assert PaymentLedgerSummary().collection_rate == 0

    def test_nothing_in_window(self):
        w = TimeWindow.custom(date(2020, 1, 1), date(2020, 1, 31))
        s = payment_summary(_billing_accounts(), w, NOW)
        assert s == PaymentLedgerSummary()


class TestPaymentLedger:

    def test_flattens_with_account_terms(self):
        rows = payment_ledger(_billing_accounts(), TimeWindow.all(), NOW)
        assert len(rows) == 5
        assert rows[0].account_name == "Alpha Capital"
        assert rows[0].rebate_per_lot == D("2.5")
        assert rows[0].amount == D("1200.50")
        assert rows[-1].account_number == "7002002"

    def test_status_filter(self):
        rows = payment_ledger(_billing_accounts(), TimeWindow.all(), NOW, status=PaymentStatus.OVERDUE)
        assert [r.payment.id for r in rows] == ["p4"]

    @pytest.mark.parametrize("term,ids", [
        ("beta", ["p5"]),
        ("7002", ["p5"]),
        ("ALPHA", ["p1", "p2", "p3", "p4"]),
        ("nobody", []),
    ])
    def test_search(self, term, ids):
        rows = payment_ledger(_billing_accounts(), TimeWindow.all(), NOW, search=term)
        assert [r.payment.id for r in rows] == ids

    def test_window(self):
        rows = payment_ledger(_billing_accounts(), TimeWindow.last_30d(), NOW)
        assert {r.payment.id for r in rows} == {"p3", "p4", "p5"}
