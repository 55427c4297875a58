"""Stable sorting and filtering for table-like consumers.

Sortable columns are declared up front as a registry of typed accessors, one
registry per row type. Asking for a column that is not registered is a
:class:`~payoutdesk.errors.ConfigurationError`, never a silent no-op.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Mapping, TypeVar

from payoutdesk.errors import ConfigurationError
from payoutdesk.models import ManagedAccount
from payoutdesk.portfolio import AccountBreakdown, PaymentLedgerRow, lifetime_max_drawdown
from payoutdesk.types import SortDirection


__all__ = [
    "ACCOUNT_SORT_KEYS",
    "BREAKDOWN_SORT_KEYS",
    "PAYMENT_SORT_KEYS",
    "Sorter",
    "account_matches",
    "filter_rows",
    "next_sort",
    "sort_rows",
]


T = TypeVar("T")

Accessor = Callable[[T], Any]


ACCOUNT_SORT_KEYS: Mapping[str, Accessor[ManagedAccount]] = {
    "name": lambda a: a.name.lower(),
    "account_number": lambda a: a.account_number,
    "broker": lambda a: a.broker.lower(),
    "balance": lambda a: a.balance,
    "equity": lambda a: a.equity,
    "live_pnl": lambda a: a.live_pnl,
    "margin_percent": lambda a: a.margin_percent,
    "current_dd_percent": lambda a: a.current_dd_percent,
    "max_dd": lifetime_max_drawdown,
}

BREAKDOWN_SORT_KEYS: Mapping[str, Accessor[AccountBreakdown]] = {
    "name": lambda r: r.name.lower(),
    "net_pnl": lambda r: r.net_pnl,
    "lots_traded": lambda r: r.lots_traded,
    "profit_share": lambda r: r.profit_share,
    "rebate": lambda r: r.rebate,
    "total_accrued": lambda r: r.total_accrued,
    "max_dd_in_window": lambda r: r.max_dd_in_window,
}

PAYMENT_SORT_KEYS: Mapping[str, Accessor[PaymentLedgerRow]] = {
    "amount": lambda r: r.amount,
    "due_date": lambda r: r.due_date,
    "status": lambda r: r.status.value,
    "kind": lambda r: r.payment.kind.value,
    "period_label": lambda r: r.payment.period_label,
    "account_name": lambda r: r.account_name.lower(),
}


def _accessor(accessors: Mapping[str, Accessor[T]], key: str) -> Accessor[T]:
    try:
        return accessors[key]
    except KeyError:
        raise ConfigurationError(
            f"Unknown sort key {key!r}; expected one of {sorted(accessors)}"
        ) from None


def sort_rows(
    rows: Iterable[T],
    key: str,
    direction: SortDirection | str,
    accessors: Mapping[str, Accessor[T]],
) -> list[T]:
    """Return *rows* ordered by *key*.

    Stable in both directions: rows with equal keys keep their input order.

    Raises:
        ConfigurationError: if *key* is not in *accessors* or *direction* is unknown.
    """
    get = _accessor(accessors, key)
    direction = SortDirection.parse(direction)
    return sorted(rows, key=get, reverse=direction is SortDirection.DESC)


def filter_rows(rows: Iterable[T], predicate: Callable[[T], bool]) -> list[T]:
    """Return the rows matching *predicate*, in input order."""
    return [r for r in rows if predicate(r)]


def next_sort(
    current_key: str | None,
    current_direction: SortDirection,
    key: str,
    first: SortDirection = SortDirection.ASC,
) -> tuple[str, SortDirection]:
    """Sort state after a header click on *key*.

    Clicking a new column sorts it in the *first* direction; clicking the
    active column again flips it.
    """
    if key == current_key and current_direction == first:
        return key, first.toggled()
    return key, first


def account_matches(term: str) -> Callable[[ManagedAccount], bool]:
    """Predicate matching name, account number, broker or VPS (case-insensitive)."""
    needle = term.strip().lower()

    def match(acc: ManagedAccount) -> bool:
        if not needle:
            return True
        return (
            needle in acc.name.lower()
            or needle in acc.account_number.lower()
            or needle in acc.broker.lower()
            or needle in acc.vps_name.lower()
        )

    return match


@dataclass(frozen=True)
class Sorter(Generic[T]):
    """Sort configuration validated at construction.

    Usage:
        sorter = Sorter(BREAKDOWN_SORT_KEYS, "total_accrued", SortDirection.DESC)
        rows = sorter.sort(account_breakdown(accounts, window))
    """
    accessors: Mapping[str, Accessor[T]]
    key: str
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self):
        _accessor(self.accessors, self.key)
        object.__setattr__(self, "direction", SortDirection.parse(self.direction))

    def sort(self, rows: Iterable[T]) -> list[T]:
        return sort_rows(rows, self.key, self.direction, self.accessors)

    def clicked(self, key: str) -> "Sorter[T]":
        """Return the sorter after a header click on *key*."""
        _accessor(self.accessors, key)
        new_key, new_direction = next_sort(self.key, self.direction, key)
        return Sorter(self.accessors, new_key, new_direction)
