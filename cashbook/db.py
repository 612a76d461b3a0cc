import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path

from .settings import Settings


@contextmanager
def connect(db_path: str | Path):
    """Open a connection, commit (or roll back) on exit, then close it."""
    with closing(sqlite3.connect(str(db_path))) as conn:
        conn.row_factory = sqlite3.Row
        with conn:
            yield conn


def _column_exists(conn: sqlite3.Connection, table_name: str, column_name: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table_name})").fetchall()
    return any(row["name"] == column_name for row in rows)


def init_db(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    with connect(settings.db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
              id INTEGER PRIMARY KEY,
              date TEXT NOT NULL,
              description TEXT NOT NULL CHECK(length(trim(description)) > 0),
              amount INTEGER NOT NULL CHECK(amount > 0),
              type TEXT NOT NULL CHECK(type IN ('income','expense')),
              category TEXT NOT NULL,
              status TEXT NOT NULL CHECK(status IN ('pending','approved')),
              created_by TEXT NOT NULL,
              approved_by TEXT,
              created_at TEXT NOT NULL,
              CHECK((status = 'approved') = (approved_by IS NOT NULL))
            );
            """
        )
        if not _column_exists(conn, "transactions", "approved_at"):
            conn.execute(
                """
                ALTER TABLE transactions
                ADD COLUMN approved_at TEXT
                """
            )
        conn.execute(
            """
            UPDATE transactions
            SET approved_at = created_at
            WHERE status = 'approved' AND approved_at IS NULL
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_transactions_status_date
            ON transactions(status, date ASC, id ASC)
            """
        )
