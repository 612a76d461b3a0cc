import pytest

from cashbook.db import init_db
from cashbook.ledger import LedgerStore
from cashbook.models import Principal, Transaction
from cashbook.repo import TransactionRepo
from cashbook.settings import Settings, parse_users
from cashbook.workflow import ApprovalWorkflow, MonotonicIds


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path,
        db_path=tmp_path / "t.sqlite",
        users=parse_users(
            "direktur:dir-pw:director:Direktur;"
            "bendahara:ben-pw:treasurer:Bendahara;"
            "kasir:kas-pw:treasurer"
        ),
        recent_limit=10,
        public_limit=50,
        org_name="BUMDESa Margajaya",
    )


@pytest.fixture
def repo(settings):
    init_db(settings)
    return TransactionRepo(settings.db_path)


@pytest.fixture
def store(repo):
    return LedgerStore(repo)


@pytest.fixture
def workflow(repo, store):
    ticks = iter(range(1, 10_000))
    return ApprovalWorkflow(
        repo,
        store,
        now=lambda: f"2025-01-01T00:00:{next(ticks) % 60:02d}.000+00:00",
        next_id=MonotonicIds(clock=lambda: 1735689600.0),
    )


@pytest.fixture
def director():
    return Principal(username="direktur", role="director", name="Direktur")


@pytest.fixture
def treasurer():
    return Principal(username="bendahara", role="treasurer", name="Bendahara")


@pytest.fixture
def other_treasurer():
    return Principal(username="kasir", role="treasurer")


@pytest.fixture
def make_txn():
    def _make(
        id,
        date,
        type,
        amount,
        *,
        status="approved",
        category="Lain-lain",
        created_by="direktur",
        created_at=None,
        description=None,
    ):
        return Transaction(
            id=id,
            date=date,
            description=description or f"txn {id}",
            amount=amount,
            type=type,
            category=category,
            status=status,
            created_by=created_by,
            approved_by="direktur" if status == "approved" else None,
            created_at=created_at or f"{date}T08:00:00.000+00:00",
            approved_at=created_at if status == "approved" else None,
        )

    return _make
