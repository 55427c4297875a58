"""Profit-share and rebate accrual for a single account."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from payoutdesk.models import PayoutStructure, Trade
from payoutdesk.time_utils import ZERO
from payoutdesk.window import TimeWindow, filter_by_window


log = logging.getLogger(__name__)


__all__ = [
    "Accrual",
    "accrue",
    "profit_share",
    "rebate",
]


@dataclass(frozen=True)
class Accrual:
    """Earned-but-not-necessarily-settled fees for one account and window."""
    net_pnl: Decimal = ZERO
    lots_traded: Decimal = ZERO
    profit_share: Decimal = ZERO
    rebate: Decimal = ZERO
    trade_count: int = 0

    @property
    def total_accrued(self) -> Decimal:
        return self.profit_share + self.rebate

    def __add__(self, other: "Accrual") -> "Accrual":
        """Combine two accruals that were each gated on their own net PnL."""
        if not isinstance(other, Accrual):
            return NotImplemented
        return Accrual(
            net_pnl=self.net_pnl + other.net_pnl,
            lots_traded=self.lots_traded + other.lots_traded,
            profit_share=self.profit_share + other.profit_share,
            rebate=self.rebate + other.rebate,
            trade_count=self.trade_count + other.trade_count,
        )


def profit_share(net_pnl: Decimal, payout: PayoutStructure) -> Decimal:
    """Performance fee on *net_pnl*. Losses never produce a negative fee."""
    return net_pnl * payout.share_rate if net_pnl > 0 else ZERO


def rebate(lots: Decimal, payout: PayoutStructure) -> Decimal:
    """Volume rebate on *lots*, independent of PnL sign."""
    return lots * payout.rebate_per_lot


def accrue(
    trades: Iterable[Trade],
    payout: PayoutStructure,
    window: TimeWindow,
    now: datetime | None = None,
) -> Accrual:
    """Accrue fees over the trades that fall inside *window*.

    Trades are placed by close time, falling back to open time. The profit
    share is gated once on the cumulative net PnL of the window, not per
    trade or per bucket. No rounding is applied.
    """
    selected = filter_by_window(trades, window, now, lambda t: t.event_time)

    net_pnl = sum((t.net_pnl for t in selected), ZERO)
    lots = sum((t.lots for t in selected), ZERO)

    result = Accrual(
        net_pnl=net_pnl,
        lots_traded=lots,
        profit_share=profit_share(net_pnl, payout),
        rebate=rebate(lots, payout),
        trade_count=len(selected),
    )
    log.debug("Accrued %d trades: net_pnl=%s lots=%s total=%s", len(selected), net_pnl, lots, result.total_accrued)
    return result
