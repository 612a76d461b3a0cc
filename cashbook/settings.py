import os
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_USERS = (
    "direktur:direktur:director:Direktur BUMDESa;"
    "bendahara:bendahara:treasurer:Bendahara BUMDESa"
)


@dataclass(frozen=True)
class UserCredential:
    username: str
    password: str
    role: str
    name: str


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    log_level: str | None = None
    users: tuple[UserCredential, ...] = field(default_factory=tuple)
    recent_limit: int = 10
    public_limit: int = 50
    org_name: str = "BUMDESa"


def parse_users(raw: str) -> tuple[UserCredential, ...]:
    users = []
    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) not in (3, 4):
            raise ValueError(f"malformed user entry: {entry!r}")
        username, password, role = (p.strip() for p in parts[:3])
        name = parts[3].strip() if len(parts) == 4 else username
        if not username or not password:
            raise ValueError(f"malformed user entry: {entry!r}")
        if role not in {"director", "treasurer"}:
            raise ValueError(f"unknown role for {username}: {role!r}")
        users.append(UserCredential(username, password, role, name))
    return tuple(users)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = int(raw)
    if value < 1:
        raise ValueError(f"{name} must be positive")
    return value


def get_settings() -> Settings:
    data_dir = Path(os.getenv("CASHBOOK_DATA_DIR") or Path.cwd() / ".data")
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "cashbook.sqlite",
        log_level=os.getenv("CASHBOOK_LOG_LEVEL"),
        users=parse_users(os.getenv("CASHBOOK_USERS", DEFAULT_USERS)),
        recent_limit=_int_env("CASHBOOK_RECENT_LIMIT", 10),
        public_limit=_int_env("CASHBOOK_PUBLIC_LIMIT", 50),
        org_name=os.getenv("CASHBOOK_ORG_NAME", "BUMDESa"),
    )
