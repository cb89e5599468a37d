"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

_SYMBOLS = re.compile(r"[$€£¥₹]")
_CODE_SUFFIX = re.compile(r"\s+[A-Za-z]{3}$")


def parse_amount(amount_str: str) -> Decimal:
    """Parse a user-typed amount into an exact Decimal.

    Handles "123.45", "$1,234.56", "₹ 500" and a trailing currency code
    such as "12.50 EUR". The value is never routed through float.

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount (sign preserved; callers decide whether it is allowed)

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = _CODE_SUFFIX.sub("", amount_str.strip())
    cleaned = _SYMBOLS.sub("", cleaned).replace(",", "").replace(" ", "")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return amount
