from dataclasses import dataclass
from datetime import date as dt_date
from decimal import Decimal, InvalidOperation

from .errors import ValidationError
from .models import CATEGORIES, TYPES

MAX_AMOUNT = Decimal(2**63 - 1)


@dataclass(frozen=True)
class Intake:
    date: str
    description: str
    amount: int
    type: str
    category: str


def validate_type(s: str) -> str:
    if s not in TYPES:
        raise ValidationError("type must be income or expense")
    return s


def validate_category(s: str) -> str:
    category = s.strip() if isinstance(s, str) else s
    if category not in CATEGORIES:
        raise ValidationError(f"unknown category: {s!r}")
    return category


def validate_description(s: str) -> str:
    if not isinstance(s, str) or not s.strip():
        raise ValidationError("description required")
    return s.strip()


def validate_date(s) -> str:
    if isinstance(s, dt_date):
        return s.isoformat()
    if not isinstance(s, str) or not s.strip():
        raise ValidationError("date required")
    try:
        return dt_date.fromisoformat(s.strip()).isoformat()
    except ValueError as e:
        raise ValidationError("date must be YYYY-MM-DD") from e


def parse_amount(s) -> int:
    """Parse an amount in the smallest currency unit.

    Must be a positive whole number that fits a signed 64-bit column.
    """
    if isinstance(s, bool):
        raise ValidationError("amount invalid")
    if isinstance(s, int):
        d = Decimal(s)
    else:
        if not isinstance(s, str) or not s.strip():
            raise ValidationError("amount required")
        try:
            d = Decimal(s.strip())
        except InvalidOperation as e:
            raise ValidationError("amount invalid") from e
        if not d.is_finite():
            raise ValidationError("amount invalid")
    if d <= 0:
        raise ValidationError("amount must be positive")
    # compare before int(): a large exponent would build a huge integer
    if d > MAX_AMOUNT:
        raise ValidationError("amount too large")
    if d != d.to_integral_value():
        raise ValidationError("amount must be a whole number")
    return int(d)


def validate_intake(*, date, description, amount, type, category) -> Intake:
    return Intake(
        date=validate_date(date),
        description=validate_description(description),
        amount=parse_amount(amount),
        type=validate_type(type),
        category=validate_category(category),
    )
