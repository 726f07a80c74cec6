# backoffice/utils/money.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0")


class MalformedAmountError(ValueError):
    """A value that should be a number could not be read as one"""
    pass


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Read a currency/quantity value exactly.

    Floats go through str() so 2.5 becomes Decimal("2.5") rather than its
    binary expansion. Strings may carry a currency sign or thousands separators.
    """
    if isinstance(value, bool) or value is None:
        raise MalformedAmountError(f"{field} is not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            raise MalformedAmountError(f"{field} is not a number: {value!r}")
    else:
        raise MalformedAmountError(f"{field} is not a number: {value!r}")

    if not result.is_finite():
        raise MalformedAmountError(f"{field} is not a finite number: {value!r}")
    return result


def money(value: Optional[Decimal]) -> Decimal:
    """Round to cents (half up)."""
    return (value or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """25.00 -> '25', 2.50 -> '2.5'; never scientific notation."""
    text = format(value.normalize(), "f")
    return "0" if text in ("-0", "") else text


def json_number(value: Decimal) -> Union[int, float]:
    """Decimal -> JSON-safe number; integral values stay ints."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)
