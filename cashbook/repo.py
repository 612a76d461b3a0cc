"""sqlite-backed transaction repository.

This is the system of record. Every method either completes and commits or
raises ``PersistenceFailure``; callers never see a half-applied write.
"""

import sqlite3
from typing import Callable

from .db import connect
from .errors import PersistenceFailure
from .ledger import ChangeNotice
from .logging_setup import get_logger
from .models import Transaction

logger = get_logger(__name__)

_COLUMNS = (
    "id",
    "date",
    "description",
    "amount",
    "type",
    "category",
    "status",
    "created_by",
    "approved_by",
    "created_at",
    "approved_at",
)
_UPDATABLE = frozenset({"status", "approved_by", "approved_at"})


def _row_to_txn(row: sqlite3.Row) -> Transaction:
    return Transaction(**{name: row[name] for name in _COLUMNS})


class TransactionRepo:
    def __init__(self, db_path):
        self.db_path = db_path
        self._subscribers: list[Callable[[ChangeNotice], None]] = []

    def subscribe(self, callback: Callable[[ChangeNotice], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, txn_id: int) -> None:
        notice = ChangeNotice(source=str(self.db_path), txn_id=txn_id)
        for callback in list(self._subscribers):
            callback(notice)

    def load(self) -> list[Transaction]:
        try:
            with connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT * FROM transactions ORDER BY id ASC"
                ).fetchall()
        except sqlite3.Error as exc:
            logger.error("load failed: %s", exc)
            raise PersistenceFailure("could not load transactions") from exc
        return [_row_to_txn(row) for row in rows]

    def get(self, txn_id: int) -> Transaction | None:
        try:
            with connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT * FROM transactions WHERE id = ?", (txn_id,)
                ).fetchone()
        except sqlite3.Error as exc:
            logger.error("get %s failed: %s", txn_id, exc)
            raise PersistenceFailure(f"could not read transaction {txn_id}") from exc
        return _row_to_txn(row) if row is not None else None

    def insert(self, txn: Transaction) -> Transaction:
        """Store ``txn``; re-inserting an identical record returns the stored copy."""
        values = tuple(getattr(txn, name) for name in _COLUMNS)
        try:
            with connect(self.db_path) as conn:
                cur = conn.execute(
                    f"""
                    INSERT INTO transactions({", ".join(_COLUMNS)})
                    VALUES ({", ".join("?" for _ in _COLUMNS)})
                    ON CONFLICT(id) DO NOTHING
                    """,
                    values,
                )
                inserted = cur.rowcount == 1
                row = conn.execute(
                    "SELECT * FROM transactions WHERE id = ?", (txn.id,)
                ).fetchone()
        except sqlite3.Error as exc:
            logger.error("insert %s failed: %s", txn.id, exc)
            raise PersistenceFailure(f"could not store transaction {txn.id}") from exc

        if row is None:
            raise PersistenceFailure(f"transaction {txn.id} was not stored")
        stored = _row_to_txn(row)
        if not inserted:
            if _same_intake(stored, txn):
                logger.info("insert %s already stored; returning existing", txn.id)
                return stored
            raise PersistenceFailure(f"transaction id {txn.id} already in use")
        self._notify(stored.id)
        return stored

    def update(self, txn_id: int, fields: dict, *, expected_status: str | None = None) -> bool:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"fields not updatable: {sorted(unknown)}")
        assignments = ", ".join(f"{name} = ?" for name in fields)
        sql = f"UPDATE transactions SET {assignments} WHERE id = ?"
        params = [*fields.values(), txn_id]
        if expected_status is not None:
            sql += " AND status = ?"
            params.append(expected_status)
        try:
            with connect(self.db_path) as conn:
                changed = conn.execute(sql, tuple(params)).rowcount
        except sqlite3.Error as exc:
            logger.error("update %s failed: %s", txn_id, exc)
            raise PersistenceFailure(f"could not update transaction {txn_id}") from exc
        if changed == 0:
            return False
        self._notify(txn_id)
        return True

    def delete(self, txn_id: int, *, expected_status: str | None = None) -> bool:
        sql = "DELETE FROM transactions WHERE id = ?"
        params: list = [txn_id]
        if expected_status is not None:
            sql += " AND status = ?"
            params.append(expected_status)
        try:
            with connect(self.db_path) as conn:
                changed = conn.execute(sql, tuple(params)).rowcount
        except sqlite3.Error as exc:
            logger.error("delete %s failed: %s", txn_id, exc)
            raise PersistenceFailure(f"could not delete transaction {txn_id}") from exc
        if changed == 0:
            return False
        self._notify(txn_id)
        return True


def _same_intake(a: Transaction, b: Transaction) -> bool:
    return (a.date, a.description, a.amount, a.type, a.category, a.created_by) == (
        b.date,
        b.description,
        b.amount,
        b.type,
        b.category,
        b.created_by,
    )
