"""Ledger Store: read-side derivations over a transaction set.

All functions here are pure. ``LedgerStore`` holds the authoritative snapshot
loaded from the repository and recomputes every derived view from scratch
whenever it is told the underlying set changed.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, NamedTuple

from .logging_setup import get_logger
from .models import APPROVED, CATEGORIES, INCOME, PENDING, Principal, Transaction

logger = get_logger(__name__)

Predicate = Callable[[Transaction], bool]


@dataclass(frozen=True)
class ChangeNotice:
    """Something changed in the backing store; reload. No other guarantee."""

    source: str = ""
    txn_id: int | None = None


@dataclass(frozen=True)
class Totals:
    total_income: int
    total_expense: int

    @property
    def balance(self) -> int:
        return self.total_income - self.total_expense

    def as_dict(self) -> dict:
        return {
            "total_income": self.total_income,
            "total_expense": self.total_expense,
            "balance": self.balance,
        }


class ExportRow(NamedTuple):
    date: str
    reference: str
    description: str
    category: str
    income: int
    expense: int
    balance: int
    created_by: str
    approved_by: str


def approved_only(txn: Transaction) -> bool:
    return txn.status == APPROVED


def visible_to(principal: Principal) -> Predicate:
    """Directors see everything; treasurers see their own plus anything approved."""
    if principal.is_director:
        return lambda txn: True
    return lambda txn: txn.created_by == principal.username or txn.status == APPROVED


def aggregate(
    transactions: Iterable[Transaction], filter: Predicate | None = approved_only
) -> Totals:
    income = 0
    expense = 0
    for txn in transactions:
        if filter is not None and not filter(txn):
            continue
        if txn.type == INCOME:
            income += txn.amount
        else:
            expense += txn.amount
    return Totals(total_income=income, total_expense=expense)


def canonical_order(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda txn: (txn.date, txn.id))


class RunningBalanceSeries:
    """Lazy ``(transaction, balance_after)`` pairs in book-of-accounts order.

    Iterating again starts over from a zero balance.
    """

    def __init__(self, transactions: Iterable[Transaction]):
        self._ordered = tuple(canonical_order(transactions))

    def __iter__(self) -> Iterator[tuple[Transaction, int]]:
        balance = 0
        for txn in self._ordered:
            balance += txn.signed_amount
            yield txn, balance

    def __len__(self) -> int:
        return len(self._ordered)

    @property
    def closing_balance(self) -> int:
        return sum(txn.signed_amount for txn in self._ordered)


def running_balance_series(transactions: Iterable[Transaction]) -> RunningBalanceSeries:
    return RunningBalanceSeries(transactions)


def category_breakdown(
    transactions: Iterable[Transaction], filter: Predicate | None = approved_only
) -> dict[str, dict[str, int]]:
    sums: dict[str, dict[str, int]] = {}
    for txn in transactions:
        if filter is not None and not filter(txn):
            continue
        bucket = sums.setdefault(txn.category, {"income": 0, "expense": 0})
        bucket["income" if txn.type == INCOME else "expense"] += txn.amount

    def order(category: str):
        if category in CATEGORIES:
            return (0, CATEGORIES.index(category), category)
        return (1, 0, category)

    return {
        category: sums[category]
        for category in sorted(sums, key=order)
        if sums[category]["income"] or sums[category]["expense"]
    }


def recent_n(
    transactions: Iterable[Transaction], n: int, visibility: Predicate
) -> list[Transaction]:
    visible = [txn for txn in transactions if visibility(txn)]
    visible.sort(key=lambda txn: (txn.created_at, txn.id), reverse=True)
    return visible[: max(n, 0)]


def pending_queue(
    transactions: Iterable[Transaction], principal: Principal
) -> list[Transaction]:
    visibility = visible_to(principal)
    pending = [txn for txn in transactions if txn.status == PENDING]
    return canonical_order(txn for txn in pending if visibility(txn))


def export_rows(transactions: Iterable[Transaction]) -> list[ExportRow]:
    approved = [txn for txn in transactions if approved_only(txn)]
    return [
        ExportRow(
            date=txn.date,
            reference=txn.reference,
            description=txn.description,
            category=txn.category,
            income=txn.amount if txn.type == INCOME else 0,
            expense=0 if txn.type == INCOME else txn.amount,
            balance=balance,
            created_by=txn.created_by,
            approved_by=txn.approved_by or "-",
        )
        for txn, balance in running_balance_series(approved)
    ]


@dataclass(frozen=True)
class BookOfAccounts:
    entries: tuple[tuple[Transaction, int], ...]
    totals: Totals

    @property
    def count(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class PublicSummary:
    totals: Totals
    breakdown: dict
    approved_count: int
    income_count: int
    expense_count: int
    recent: tuple[tuple[Transaction, int], ...]


@dataclass(frozen=True)
class LedgerViews:
    transactions: tuple[Transaction, ...]
    totals: Totals
    book: BookOfAccounts
    breakdown: dict


def compute_views(transactions: Iterable[Transaction]) -> LedgerViews:
    snapshot = tuple(transactions)
    approved = [txn for txn in snapshot if approved_only(txn)]
    totals = aggregate(approved, filter=None)
    return LedgerViews(
        transactions=snapshot,
        totals=totals,
        book=BookOfAccounts(entries=tuple(running_balance_series(approved)), totals=totals),
        breakdown=category_breakdown(approved, filter=None),
    )


class LedgerStore:
    """Owns the in-memory transaction set and every view derived from it.

    ``source`` is anything with a ``load()`` returning transactions. When it
    also offers ``subscribe(callback)``, change notices from it are handled
    automatically.
    """

    def __init__(self, source):
        self.source = source
        self._views: LedgerViews | None = None
        self._stale = True
        subscribe = getattr(source, "subscribe", None)
        if subscribe is not None:
            subscribe(self.handle)

    def handle(self, notice: ChangeNotice) -> None:
        logger.debug("change notice %s; views invalidated", notice)
        self._stale = True

    def refresh(self) -> LedgerViews:
        transactions = self.source.load()
        self._views = compute_views(transactions)
        self._stale = False
        logger.debug("recomputed views over %d transactions", len(self._views.transactions))
        return self._views

    @property
    def views(self) -> LedgerViews:
        if self._stale or self._views is None:
            return self.refresh()
        return self._views

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self.views.transactions

    def get(self, txn_id: int) -> Transaction | None:
        for txn in self.transactions:
            if txn.id == txn_id:
                return txn
        return None

    def totals(self) -> Totals:
        return self.views.totals

    def book(self) -> BookOfAccounts:
        return self.views.book

    def breakdown(self) -> dict:
        return self.views.breakdown

    def recent(self, principal: Principal, n: int = 10) -> list[Transaction]:
        return recent_n(self.transactions, n, visible_to(principal))

    def pending(self, principal: Principal) -> list[Transaction]:
        return pending_queue(self.transactions, principal)

    def export_rows(self) -> list[ExportRow]:
        return export_rows(self.transactions)

    def public_summary(self, limit: int = 50) -> PublicSummary:
        views = self.views
        entries = views.book.entries
        recent = tuple(reversed(entries[-limit:])) if limit > 0 else ()
        income_count = sum(1 for txn, _ in entries if txn.type == INCOME)
        return PublicSummary(
            totals=views.totals,
            breakdown=views.breakdown,
            approved_count=views.book.count,
            income_count=income_count,
            expense_count=views.book.count - income_count,
            recent=recent,
        )
