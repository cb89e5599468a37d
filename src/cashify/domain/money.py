"""Amount and currency validation helpers."""

import re
from decimal import Decimal, InvalidOperation
from typing import Type

from cashify.domain.errors import ValidationError

CENT = Decimal("0.01")
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def to_decimal(value) -> Decimal:
    """Coerce an int/str/Decimal amount to Decimal. Floats are refused."""
    if isinstance(value, float):
        raise ValidationError(f"Amount {value!r} must be given as a string or Decimal, not float")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount '{value}'")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount '{value}'")
    return amount


def validate_amount(value, error_cls: Type[ValidationError] = ValidationError) -> Decimal:
    """Return a positive two-place amount or raise ``error_cls``."""
    amount = to_decimal(value)
    if amount <= 0:
        raise error_cls(f"Amount must be positive, got {amount}")
    if amount != amount.quantize(CENT):
        raise error_cls(f"Amount {amount} has more than two decimal places")
    return amount.quantize(CENT)


def validate_balance(value) -> Decimal:
    """Opening balances may be zero or negative (credit accounts)."""
    amount = to_decimal(value)
    if amount != amount.quantize(CENT):
        raise ValidationError(f"Amount {amount} has more than two decimal places")
    return amount.quantize(CENT)


def normalize_currency(currency: str) -> str:
    """Upper-case and validate an ISO 4217 style code."""
    code = (currency or "").strip().upper()
    if not _CURRENCY_RE.match(code):
        raise ValidationError(f"Invalid currency code '{currency}'")
    return code
