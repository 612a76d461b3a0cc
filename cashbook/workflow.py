"""Approval workflow: every state change goes through here.

Transition table (``deleted`` means removed from the set)::

    intake   by director   -> approved
    intake   by treasurer  -> pending
    approve  pending       -> approved   (director)
    reject   pending       -> deleted    (director)
    delete   any           -> deleted    (director, or the creator)

A change is reported as done only after the repository confirms it; the
ledger store is then invalidated so the next read reloads the full set.
"""

import time
from datetime import datetime, timezone
from typing import Callable

from .errors import InvalidState, PermissionDenied, ValidationError
from .ledger import ChangeNotice, LedgerStore
from .logging_setup import get_logger
from .logic import validate_intake
from .models import APPROVED, DIRECTOR, PENDING, ROLES, TREASURER, Principal, Transaction

logger = get_logger(__name__)

INTAKE_STATUS = {DIRECTOR: APPROVED, TREASURER: PENDING}

TRANSITIONS = {
    ("approve", PENDING): APPROVED,
    ("reject", PENDING): None,
}


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class MonotonicIds:
    """Millisecond-clock ids, strictly increasing within the process.

    Remembers what it handed out so a retry can only reuse one of its own ids.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0
        self._issued: set[int] = set()

    def __call__(self) -> int:
        candidate = int(self._clock() * 1000)
        self._last = max(candidate, self._last + 1)
        self._issued.add(self._last)
        return self._last

    def issued(self, txn_id: int) -> bool:
        return txn_id in self._issued


def intake_status(principal: Principal) -> tuple[str, str | None]:
    """Initial ``(status, approved_by)`` for a transaction created by ``principal``."""
    status = INTAKE_STATUS[principal.role]
    return status, (principal.username if status == APPROVED else None)


def can_delete(txn: Transaction, actor: Principal) -> bool:
    return actor.is_director or txn.created_by == actor.username


class ApprovalWorkflow:
    def __init__(
        self,
        repo,
        store: LedgerStore,
        *,
        now: Callable[[], str] = utc_now,
        next_id: MonotonicIds | None = None,
    ):
        self.repo = repo
        self.store = store
        self._now = now
        self._next_id = next_id or MonotonicIds()

    def _check_actor(self, actor: Principal) -> None:
        if actor.role not in ROLES:
            raise PermissionDenied(f"unknown role: {actor.role!r}")

    def _require_director(self, action: str, txn_id: int, actor: Principal) -> None:
        self._check_actor(actor)
        if not actor.is_director:
            logger.warning("%s %s denied for %s", action, txn_id, actor.username)
            raise PermissionDenied(f"only a director may {action} transactions")

    def _load_for(self, action: str, txn_id: int) -> Transaction:
        txn = self.repo.get(txn_id)
        if txn is None:
            logger.warning("%s %s: no such transaction", action, txn_id)
            raise InvalidState(
                f"transaction {txn_id} not found", txn_id=txn_id, missing=True
            )
        if (action, txn.status) not in TRANSITIONS:
            logger.warning("%s %s: status is %s", action, txn_id, txn.status)
            raise InvalidState(
                f"cannot {action} a transaction that is {txn.status}", txn_id=txn_id
            )
        return txn

    def _changed(self, txn_id: int) -> None:
        self.store.handle(ChangeNotice(source="workflow", txn_id=txn_id))

    def intake(
        self,
        actor: Principal,
        *,
        date,
        description,
        amount,
        type,
        category,
        txn_id: int | None = None,
    ) -> Transaction:
        """Validate and store a new transaction.

        Pass ``txn_id`` from a previous attempt whose outcome is unknown to
        retry without creating a duplicate.
        """
        self._check_actor(actor)
        if txn_id is not None and not self._next_id.issued(txn_id):
            logger.warning("intake by %s: retry id %s was never issued", actor.username, txn_id)
            raise ValidationError(f"unknown retry id: {txn_id}")
        data = validate_intake(
            date=date, description=description, amount=amount, type=type, category=category
        )
        status, approved_by = intake_status(actor)
        created_at = self._now()
        txn = Transaction(
            id=txn_id if txn_id is not None else self._next_id(),
            date=data.date,
            description=data.description,
            amount=data.amount,
            type=data.type,
            category=data.category,
            status=status,
            created_by=actor.username,
            approved_by=approved_by,
            created_at=created_at,
            approved_at=created_at if status == APPROVED else None,
        )
        stored = self.repo.insert(txn)
        self._changed(stored.id)
        logger.info(
            "intake %s by %s: %s %s (%s)",
            stored.id,
            actor.username,
            stored.type,
            stored.amount,
            stored.status,
        )
        return stored

    def approve(self, txn_id: int, actor: Principal) -> Transaction:
        self._require_director("approve", txn_id, actor)
        txn = self._load_for("approve", txn_id)
        approved = txn.approve(actor.username, self._now())
        confirmed = self.repo.update(
            txn_id,
            {
                "status": approved.status,
                "approved_by": approved.approved_by,
                "approved_at": approved.approved_at,
            },
            expected_status=PENDING,
        )
        if not confirmed:
            raise InvalidState(f"transaction {txn_id} is no longer pending", txn_id=txn_id)
        self._changed(txn_id)
        logger.info("approve %s by %s", txn_id, actor.username)
        return approved

    def reject(self, txn_id: int, actor: Principal) -> None:
        self._require_director("reject", txn_id, actor)
        self._load_for("reject", txn_id)
        if not self.repo.delete(txn_id, expected_status=PENDING):
            raise InvalidState(f"transaction {txn_id} is no longer pending", txn_id=txn_id)
        self._changed(txn_id)
        logger.info("reject %s by %s", txn_id, actor.username)

    def delete(self, txn_id: int, actor: Principal) -> None:
        self._check_actor(actor)
        txn = self.repo.get(txn_id)
        if txn is None:
            raise InvalidState(
                f"transaction {txn_id} not found", txn_id=txn_id, missing=True
            )
        if not can_delete(txn, actor):
            logger.warning("delete %s denied for %s", txn_id, actor.username)
            raise PermissionDenied("you can only delete transactions you created")
        if not self.repo.delete(txn_id):
            raise InvalidState(
                f"transaction {txn_id} not found", txn_id=txn_id, missing=True
            )
        self._changed(txn_id)
        logger.info("delete %s (%s) by %s", txn_id, txn.status, actor.username)
