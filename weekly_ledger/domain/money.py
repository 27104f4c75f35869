"""
Money helpers.

Amounts are Decimal end to end.  JSON payload columns cannot hold Decimal,
so entries are serialized with ``money_to_str`` and read back with
``money_from_value``.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def money_from_value(value: Any) -> Decimal:
    """
    Coerce a stored or submitted amount to Decimal.

    None becomes zero.  Floats go through ``str`` so 0.1 stays 0.1.

    Raises:
        ValueError: If value is not numeric (bools included) or not finite.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return result


def money_to_str(value: Decimal) -> str:
    """Canonical string form: no exponent, no trailing zeros."""
    if value == ZERO:
        return "0"
    return format(value.normalize(), "f")
