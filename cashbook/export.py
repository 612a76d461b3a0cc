import csv
from datetime import date as dt_date
from io import StringIO
from typing import Iterable

from .ledger import ExportRow

HEADERS = [
    "Tanggal",
    "No. Bukti",
    "Uraian",
    "Kategori",
    "Penerimaan",
    "Pengeluaran",
    "Saldo",
    "Dibuat Oleh",
    "Disetujui Oleh",
]


def render_csv(rows: Iterable[ExportRow]) -> str:
    """Encode export rows as CSV text prefixed with a UTF-8 BOM.

    Text fields (description included) are always quoted; amounts are not.
    """
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(HEADERS)
    for row in rows:
        writer.writerow(
            [
                dt_date.fromisoformat(row.date).isoformat(),
                row.reference,
                row.description,
                row.category,
                row.income,
                row.expense,
                row.balance,
                row.created_by,
                row.approved_by,
            ]
        )
    return "\ufeff" + output.getvalue()


def export_filename(org_name: str, today: dt_date | None = None) -> str:
    current = today or dt_date.today()
    safe_org = "_".join(org_name.split()) or "ledger"
    return f"BKU_{safe_org}_{current.isoformat()}.csv"
