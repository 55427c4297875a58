"""Portfolio-wide summaries across managed accounts.

Two data sources are kept strictly apart:

- live trades, windowed by trade close/open time, drive *accrued* earnings
- payment records, windowed by due date, drive *collected*/*pending* totals
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from payoutdesk.accrual import Accrual, accrue
from payoutdesk.models import ManagedAccount, PaymentRecord
from payoutdesk.time_utils import ZERO, utc_now
from payoutdesk.types import CashflowKind, PaymentKind, PaymentStatus
from payoutdesk.window import TimeWindow, filter_by_window


log = logging.getLogger(__name__)


__all__ = [
    "AccountBreakdown",
    "PaymentLedgerRow",
    "PaymentLedgerSummary",
    "PortfolioSummary",
    "account_breakdown",
    "lifetime_max_drawdown",
    "max_drawdown_in_window",
    "payment_ledger",
    "payment_summary",
    "summarize",
]


@dataclass(frozen=True)
class AccountBreakdown:
    """Per-account accrual for a window."""
    account: ManagedAccount
    accrual: Accrual
    max_dd_in_window: Decimal

    @property
    def account_id(self) -> str:
        return self.account.id

    @property
    def name(self) -> str:
        return self.account.name

    @property
    def net_pnl(self) -> Decimal:
        return self.accrual.net_pnl

    @property
    def lots_traded(self) -> Decimal:
        return self.accrual.lots_traded

    @property
    def profit_share(self) -> Decimal:
        return self.accrual.profit_share

    @property
    def rebate(self) -> Decimal:
        return self.accrual.rebate

    @property
    def total_accrued(self) -> Decimal:
        return self.accrual.total_accrued


@dataclass(frozen=True)
class PortfolioSummary:
    """Global figures across all accounts.

    ``total_balance``/``total_equity``/``total_live_pnl`` are instantaneous
    state and ignore the window. Everything else is windowed.
    """
    account_count: int
    total_balance: Decimal
    total_equity: Decimal
    total_live_pnl: Decimal
    realized_net_pnl: Decimal
    lots_traded: Decimal
    profit_share: Decimal
    rebate: Decimal
    total_deposits: Decimal
    total_withdrawals: Decimal
    max_dd_percent: Decimal

    @property
    def aum(self) -> Decimal:
        return self.total_balance

    @property
    def total_accrued(self) -> Decimal:
        return self.profit_share + self.rebate


@dataclass(frozen=True)
class PaymentLedgerSummary:
    collected_total: Decimal = ZERO
    collected_pnl_share: Decimal = ZERO
    collected_rebate: Decimal = ZERO
    pending_total: Decimal = ZERO
    pending_count: int = 0
    paid_lots: Decimal = ZERO

    @property
    def collection_rate(self) -> Decimal:
        """Collected share of all invoiced amounts; 0 when nothing was invoiced."""
        invoiced = self.collected_total + self.pending_total
        return self.collected_total / invoiced if invoiced else ZERO


@dataclass(frozen=True)
class PaymentLedgerRow:
    """A payment record flattened with the owning account's identity and terms."""
    payment: PaymentRecord
    account_id: str
    account_name: str
    account_number: str
    pnl_share_percent: Decimal
    rebate_per_lot: Decimal

    @property
    def amount(self) -> Decimal:
        return self.payment.amount

    @property
    def due_date(self) -> datetime:
        return self.payment.due_date

    @property
    def status(self) -> PaymentStatus:
        return self.payment.status


# ---------------------------------------------------------------------------
# Drawdown
# ---------------------------------------------------------------------------


def max_drawdown_in_window(account: ManagedAccount, window: TimeWindow, now: datetime | None = None) -> Decimal:
    """Peak snapshot drawdown inside *window*.

    Falls back to the account's current drawdown when no snapshot is in the
    window, so the result is never empty.
    """
    snaps = filter_by_window(account.snapshots, window, now, lambda s: s.timestamp)
    if not snaps:
        return account.current_dd_percent
    return max(s.drawdown_percent for s in snaps)


def lifetime_max_drawdown(account: ManagedAccount) -> Decimal:
    """Peak drawdown over all snapshots and the live reading."""
    return max([s.drawdown_percent for s in account.snapshots] + [account.current_dd_percent])


# ---------------------------------------------------------------------------
# Accrual rollup
# ---------------------------------------------------------------------------


def account_breakdown(
    accounts: Iterable[ManagedAccount],
    window: TimeWindow,
    now: datetime | None = None,
) -> list[AccountBreakdown]:
    """Per-account accrual rows, in input order."""
    now = now if now is not None else utc_now()
    return [
        AccountBreakdown(
            account=acc,
            accrual=accrue(acc.trades, acc.payout_structure, window, now),
            max_dd_in_window=max_drawdown_in_window(acc, window, now),
        )
        for acc in accounts
    ]


def summarize(
    accounts: Iterable[ManagedAccount],
    window: TimeWindow,
    now: datetime | None = None,
) -> PortfolioSummary:
    """Portfolio totals for *window*.

    Profit share is gated per account on that account's windowed net PnL,
    then summed; one account's loss never offsets another's fee.
    """
    accounts = list(accounts)
    now = now if now is not None else utc_now()
    rows = account_breakdown(accounts, window, now)

    realized = sum((r.accrual for r in rows), Accrual())

    deposits = withdrawals = ZERO
    for acc in accounts:
        for cf in filter_by_window(acc.cashflows, window, now, lambda c: c.timestamp):
            if cf.kind == CashflowKind.DEPOSIT:
                deposits += cf.amount
            else:
                withdrawals += cf.amount

    summary = PortfolioSummary(
        account_count=len(accounts),
        total_balance=sum((a.balance for a in accounts), ZERO),
        total_equity=sum((a.equity for a in accounts), ZERO),
        total_live_pnl=sum((a.live_pnl for a in accounts), ZERO),
        realized_net_pnl=realized.net_pnl,
        lots_traded=realized.lots_traded,
        profit_share=realized.profit_share,
        rebate=realized.rebate,
        total_deposits=deposits,
        total_withdrawals=withdrawals,
        max_dd_percent=max((r.max_dd_in_window for r in rows), default=ZERO),
    )
    log.debug("Summarized %d accounts: accrued=%s", len(accounts), summary.total_accrued)
    return summary


# ---------------------------------------------------------------------------
# Payment ledger
# ---------------------------------------------------------------------------


def payment_summary(
    accounts: Iterable[ManagedAccount],
    window: TimeWindow,
    now: datetime | None = None,
) -> PaymentLedgerSummary:
    """Collected vs. pending invoice totals, windowed by due date.

    ``paid_lots`` converts paid rebates back into lots at each account's
    rate; accounts with a zero rebate rate contribute nothing to it.
    """
    now = now if now is not None else utc_now()
    collected = share = rebates = pending = paid_lots = ZERO
    pending_count = 0

    for acc in accounts:
        rate = acc.payout_structure.rebate_per_lot
        for pay in filter_by_window(acc.payment_history, window, now, lambda p: p.due_date):
            if pay.is_paid:
                collected += pay.amount
                if pay.kind == PaymentKind.PNL_SHARE:
                    share += pay.amount
                else:
                    rebates += pay.amount
                    if rate > 0:
                        paid_lots += pay.amount / rate
            else:
                pending += pay.amount
                pending_count += 1

    return PaymentLedgerSummary(
        collected_total=collected,
        collected_pnl_share=share,
        collected_rebate=rebates,
        pending_total=pending,
        pending_count=pending_count,
        paid_lots=paid_lots,
    )


def payment_ledger(
    accounts: Iterable[ManagedAccount],
    window: TimeWindow,
    now: datetime | None = None,
    *,
    status: PaymentStatus | None = None,
    search: str = "",
) -> list[PaymentLedgerRow]:
    """Flattened payment history, filtered by due date, status and search term.

    *search* matches account name (case-insensitive) or account number.
    """
    now = now if now is not None else utc_now()
    term = search.strip().lower()
    out: list[PaymentLedgerRow] = []

    for acc in accounts:
        if term and term not in acc.name.lower() and term not in acc.account_number:
            continue
        for pay in filter_by_window(acc.payment_history, window, now, lambda p: p.due_date):
            if status is not None and pay.status != status:
                continue
            out.append(
                PaymentLedgerRow(
                    payment=pay,
                    account_id=acc.id,
                    account_name=acc.name,
                    account_number=acc.account_number,
                    pnl_share_percent=acc.payout_structure.pnl_share_percent,
                    rebate_per_lot=acc.payout_structure.rebate_per_lot,
                )
            )
    return out
