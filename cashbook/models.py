from dataclasses import asdict, dataclass, replace

DIRECTOR = "director"
TREASURER = "treasurer"
ROLES = frozenset({DIRECTOR, TREASURER})

PENDING = "pending"
APPROVED = "approved"
STATUSES = frozenset({PENDING, APPROVED})

INCOME = "income"
EXPENSE = "expense"
TYPES = frozenset({INCOME, EXPENSE})

CATEGORIES = (
    "Modal Awal",
    "Penjualan (Pangan)",
    "Jasa (Agen Bank/PPOB)",
    "Belanja Stok Barang",
    "Gaji & Operasional",
    "Inventaris/Aset",
    "Lain-lain",
)


@dataclass(frozen=True)
class Principal:
    username: str
    role: str
    name: str = ""

    @property
    def is_director(self) -> bool:
        return self.role == DIRECTOR


@dataclass(frozen=True)
class Transaction:
    id: int
    date: str
    description: str
    amount: int
    type: str
    category: str
    status: str
    created_by: str
    approved_by: str | None
    created_at: str
    approved_at: str | None = None

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type == INCOME else -self.amount

    @property
    def reference(self) -> str:
        return f"#{str(self.id)[-6:]}"

    def approve(self, approver: str, approved_at: str) -> "Transaction":
        return replace(
            self, status=APPROVED, approved_by=approver, approved_at=approved_at
        )

    def to_record(self) -> dict:
        """Backend-agnostic persisted shape (camelCase keys)."""
        data = asdict(self)
        return {
            "id": data["id"],
            "date": data["date"],
            "description": data["description"],
            "amount": data["amount"],
            "type": data["type"],
            "category": data["category"],
            "status": data["status"],
            "createdBy": data["created_by"],
            "approvedBy": data["approved_by"],
            "createdAt": data["created_at"],
            "approvedAt": data["approved_at"],
        }

    @classmethod
    def from_record(cls, record) -> "Transaction":
        return cls(
            id=int(record["id"]),
            date=record["date"],
            description=record["description"],
            amount=int(record["amount"]),
            type=record["type"],
            category=record["category"],
            status=record["status"],
            created_by=record["createdBy"],
            approved_by=record.get("approvedBy"),
            created_at=record["createdAt"],
            approved_at=record.get("approvedAt"),
        )
