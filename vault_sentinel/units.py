"""Pure conversions between raw 18-decimal on-chain integers and decimal strings. No I/O."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

from .errors import ValidationError

DECIMALS = 18
WAD = 10**DECIMALS


def format18(raw: int | str) -> str:
    """Render a raw 18-decimal integer as a decimal string.

    Conversion is textual, so no precision is lost. The integer part always
    has at least one digit and the sign is preserved.

    Examples:
        1500000000000000000 → "1.500000000000000000"
        -5 → "-0.000000000000000005"
    """
    text = str(raw).strip()
    negative = text.startswith("-")
    digits = text.lstrip("+-")
    if not digits.isdigit():
        raise ValidationError(f"Not an integer amount: {raw!r}")

    padded = digits.rjust(DECIMALS + 1, "0")
    int_part = padded[:-DECIMALS]
    frac_part = padded[-DECIMALS:]
    sign = "-" if negative and digits.strip("0") else ""
    return f"{sign}{int_part}.{frac_part}"


def parse_units(amount: str | int | Decimal) -> int:
    """Convert a human decimal amount into raw 18-decimal units, exactly.

    Raises:
        ValidationError: when the amount is not a finite non-negative number or
            carries more than 18 fractional digits.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValidationError(f"Invalid amount: {amount!r}") from e

    if not value.is_finite():
        raise ValidationError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise ValidationError(f"Amount must not be negative: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = len(value.as_tuple().digits) + DECIMALS + 2
        scaled = value * WAD
        if scaled != scaled.to_integral_value():
            raise ValidationError(f"Amount has more than {DECIMALS} decimals: {amount!r}")
    return int(scaled)


def to_decimal(raw: int) -> Decimal:
    """Raw 18-decimal integer → Decimal (exact)."""
    return Decimal(format18(raw))
