"""Time-bucketed rollups of timestamped numeric events.

Every series goes through the same four steps:

1. filter events by :class:`~payoutdesk.window.TimeWindow`
2. group by :func:`~payoutdesk.buckets.derive_key`
3. reduce each group with an explicit accumulator (SUM or MAX)
4. order rows ascending by bucket

Output is sparse: a bucket with no contributing events is never emitted.
Derived sub-fields (profit split, rebate dollars) are computed per bucket
after reduction, from the bucket's total.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Callable, Iterable, Mapping

import numpy as np

from payoutdesk.accrual import profit_share, rebate
from payoutdesk.buckets import BucketKey, derive_key
from payoutdesk.errors import ConfigurationError
from payoutdesk.models import AccountSnapshot, ManagedAccount, PayoutStructure, Trade
from payoutdesk.time_utils import ZERO, parse_timestamp
from payoutdesk.types import Granularity, PaymentKind, ReducePolicy
from payoutdesk.window import TimeWindow, filter_by_window


log = logging.getLogger(__name__)


__all__ = [
    "BucketRow",
    "FlowAccumulator",
    "LevelAccumulator",
    "SeriesEvent",
    "aggregate",
    "drawdown_series",
    "earnings_series",
    "lots_series",
    "pnl_series",
    "portfolio_ledger",
    "reaggregate",
    "series_values",
    "with_profit_split",
    "with_rebate",
]


@dataclass(frozen=True)
class SeriesEvent:
    """A timestamp plus one or more named numeric fields."""
    timestamp: datetime
    values: Mapping[str, Decimal]


@dataclass(frozen=True)
class BucketRow:
    """Reduced values for one bucket."""
    bucket: BucketKey
    values: Mapping[str, Decimal]
    event_count: int
    policy: ReducePolicy

    @property
    def label(self) -> str:
        return self.bucket.label

    @property
    def key(self) -> str:
        return self.bucket.key

    def __getitem__(self, name: str) -> Decimal:
        return self.values[name]


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------


@dataclass
class FlowAccumulator:
    """SUM reduction for flow quantities (PnL, lots, rebate dollars)."""
    policy = ReducePolicy.SUM
    totals: dict[str, Decimal] = field(default_factory=dict)
    count: int = 0

    def add(self, values: Mapping[str, Decimal], count: int = 1) -> None:
        self.count += count
        for name, value in values.items():
            self.totals[name] = self.totals.get(name, ZERO) + value

    def result(self) -> dict[str, Decimal]:
        return dict(self.totals)


@dataclass
class LevelAccumulator:
    """MAX reduction for level quantities (drawdown percent)."""
    policy = ReducePolicy.MAX
    peaks: dict[str, Decimal] = field(default_factory=dict)
    count: int = 0

    def add(self, values: Mapping[str, Decimal]) -> None:
        self.count += 1
        for name, value in values.items():
            current = self.peaks.get(name)
            self.peaks[name] = value if current is None else max(current, value)

    def result(self) -> dict[str, Decimal]:
        return dict(self.peaks)


_ACCUMULATORS: dict[ReducePolicy, type] = {
    ReducePolicy.SUM: FlowAccumulator,
    ReducePolicy.MAX: LevelAccumulator,
}


def _accumulator_for(policy: ReducePolicy) -> type:
    try:
        return _ACCUMULATORS[policy]
    except (KeyError, TypeError):
        raise ConfigurationError(f"Unknown reduce policy: {policy!r}") from None


# ---------------------------------------------------------------------------
# Generic fold
# ---------------------------------------------------------------------------


def aggregate(
    events: Iterable[SeriesEvent],
    window: TimeWindow,
    granularity: Granularity,
    policy: ReducePolicy = ReducePolicy.SUM,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[BucketRow]:
    """Fold *events* into per-bucket rows, ascending by bucket.

    Buckets follow each timestamp's own calendar unless *tz* is given, in
    which case timestamps are converted to *tz* first. Pass ``now.tzinfo`` to
    bucket on the same calendar that TODAY and MONTH_TO_DATE filter on.

    Raises:
        ConfigurationError: on unknown window kind, granularity or policy.
    """
    granularity = Granularity.parse(granularity)
    acc_cls = _accumulator_for(policy)
    events = list(events)
    selected = filter_by_window(events, window, now, lambda e: e.timestamp)

    groups: dict[BucketKey, object] = {}
    for ev in selected:
        when = ev.timestamp if tz is None else parse_timestamp(ev.timestamp).astimezone(tz)
        bucket = derive_key(when, granularity)
        acc = groups.get(bucket)
        if acc is None:
            acc = groups[bucket] = acc_cls()
        acc.add(ev.values)

    rows = [
        BucketRow(bucket=bucket, values=acc.result(), event_count=acc.count, policy=policy)
        for bucket, acc in groups.items()
    ]
    rows.sort(key=lambda r: r.bucket)

    log.debug(
        "Aggregated %d of %d events into %d %s buckets (%s)",
        len(selected), len(events), len(rows), granularity, policy,
    )
    return rows


# Derived sub-fields, keyed by the aggregated field they are computed from.
_DERIVED_FROM = {
    "net_pnl": ("fintech_share", "client_pnl"),
    "lots": ("rebate",),
}


def _base_values(values: Mapping[str, Decimal]) -> dict[str, Decimal]:
    derived = {name for source, names in _DERIVED_FROM.items() if source in values for name in names}
    return {k: v for k, v in values.items() if k not in derived}


def reaggregate(
    rows: Iterable[BucketRow],
    granularity: Granularity,
    payout: PayoutStructure | None = None,
) -> list[BucketRow]:
    """Re-bucket DAILY SUM rows into a coarser granularity by summing.

    SUM is associative, so this matches aggregating the raw events directly.
    MAX rows are rejected: the sum of daily maxima is not a weekly maximum.

    Derived sub-fields (``fintech_share``/``client_pnl`` next to ``net_pnl``,
    ``rebate`` next to ``lots``) are never summed. They are dropped, and
    recomputed from the new bucket totals when *payout* is given.

    Raises:
        ConfigurationError: for unknown granularity, MAX rows or non-DAILY
            source rows.
    """
    granularity = Granularity.parse(granularity)
    groups: dict[BucketKey, FlowAccumulator] = {}
    for row in rows:
        if row.policy != ReducePolicy.SUM:
            raise ConfigurationError("Only SUM rows can be re-aggregated; MAX must be reduced from raw events")
        if row.bucket.granularity not in (Granularity.DAILY, granularity):
            raise ConfigurationError(
                f"Cannot re-aggregate {row.bucket.granularity} rows into {granularity}"
            )
        bucket = derive_key(row.bucket.start, granularity)
        acc = groups.setdefault(bucket, FlowAccumulator())
        acc.add(_base_values(row.values), row.event_count)

    out = [
        BucketRow(bucket=bucket, values=acc.result(), event_count=acc.count, policy=ReducePolicy.SUM)
        for bucket, acc in groups.items()
    ]
    out.sort(key=lambda r: r.bucket)

    if payout is not None:
        if any("net_pnl" in r.values for r in out):
            out = with_profit_split(out, payout)
        if any("lots" in r.values for r in out):
            out = with_rebate(out, payout)
    return out


def _with_derived(rows: list[BucketRow], derive: Callable[[Mapping[str, Decimal]], dict[str, Decimal]]) -> list[BucketRow]:
    return [replace(r, values={**r.values, **derive(r.values)}) for r in rows]


def with_profit_split(rows: list[BucketRow], payout: PayoutStructure, field_name: str = "net_pnl") -> list[BucketRow]:
    """Add ``fintech_share`` and ``client_pnl`` from each bucket's aggregated PnL.

    The share is gated per bucket: a bucket whose total is not positive
    earns nothing, whatever its individual trades did.
    """
    def split(values: Mapping[str, Decimal]) -> dict[str, Decimal]:
        total = values.get(field_name, ZERO)
        share = profit_share(total, payout)
        return {"fintech_share": share, "client_pnl": total - share}

    return _with_derived(rows, split)


def with_rebate(rows: list[BucketRow], payout: PayoutStructure, field_name: str = "lots") -> list[BucketRow]:
    """Add ``rebate`` dollars from each bucket's aggregated lots."""
    return _with_derived(rows, lambda v: {"rebate": rebate(v.get(field_name, ZERO), payout)})


# ---------------------------------------------------------------------------
# Domain series
# ---------------------------------------------------------------------------


def pnl_series(
    trades: Iterable[Trade],
    payout: PayoutStructure,
    window: TimeWindow,
    granularity: Granularity,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[BucketRow]:
    """Net PnL per bucket with per-bucket client/fintech split."""
    events = (SeriesEvent(t.event_time, {"net_pnl": t.net_pnl}) for t in trades)
    rows = aggregate(events, window, granularity, ReducePolicy.SUM, now, tz)
    return with_profit_split(rows, payout)


def lots_series(
    trades: Iterable[Trade],
    payout: PayoutStructure,
    window: TimeWindow,
    granularity: Granularity,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[BucketRow]:
    """Lots traded per bucket with the rebate they earned."""
    events = (SeriesEvent(t.event_time, {"lots": t.lots}) for t in trades)
    rows = aggregate(events, window, granularity, ReducePolicy.SUM, now, tz)
    return with_rebate(rows, payout)


def drawdown_series(
    snapshots: Iterable[AccountSnapshot],
    window: TimeWindow,
    granularity: Granularity,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[BucketRow]:
    """Peak drawdown percent per bucket (MAX policy)."""
    events = (SeriesEvent(s.timestamp, {"drawdown_percent": s.drawdown_percent}) for s in snapshots)
    return aggregate(events, window, granularity, ReducePolicy.MAX, now, tz)


def portfolio_ledger(
    accounts: Iterable[ManagedAccount],
    window: TimeWindow,
    granularity: Granularity,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[BucketRow]:
    """Periodic performance across all accounts: ``net_pnl``, ``lots``, ``trades``."""
    one = Decimal(1)
    events = (
        SeriesEvent(t.event_time, {"net_pnl": t.net_pnl, "lots": t.lots, "trades": one})
        for acc in accounts
        for t in acc.trades
    )
    return aggregate(events, window, granularity, ReducePolicy.SUM, now, tz)


def earnings_series(
    accounts: Iterable[ManagedAccount],
    granularity: Granularity,
    window: TimeWindow | None = None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[BucketRow]:
    """Collected earnings per bucket, keyed by payment due date.

    Only PAID records contribute. Every row carries both ``pnl_share`` and
    ``rebate``. The window defaults to ALL so the history gives context
    regardless of the period being inspected.
    """
    events = []
    for acc in accounts:
        for pay in acc.payment_history:
            if not pay.is_paid:
                continue
            is_share = pay.kind == PaymentKind.PNL_SHARE
            events.append(SeriesEvent(pay.due_date, {
                "pnl_share": pay.amount if is_share else ZERO,
                "rebate": ZERO if is_share else pay.amount,
            }))
    return aggregate(events, window or TimeWindow.all(), granularity, ReducePolicy.SUM, now, tz)


def series_values(rows: Iterable[BucketRow], name: str) -> np.ndarray:
    """Array of one field across *rows*, in row order, for chart consumers.

    Rows missing the field contribute 0.
    """
    return np.array([float(r.values.get(name, ZERO)) for r in rows], dtype=np.float64)
