"""Exact conversion between base units and decimal display strings."""

from __future__ import annotations

import re
from decimal import Decimal

from allowance_gateway.errors import ConversionError

ETHER_DECIMALS = 18

_DECIMAL_RE = re.compile(r"^([0-9]*)(?:\.([0-9]*))?$")


def to_display(base_amount: int, decimals: int = ETHER_DECIMALS) -> str:
    """Render an integer amount of base units as a decimal string.

    ``1500000000000000000`` → ``"1.5"``. Trailing fractional zeros are
    dropped, so whole amounts carry no decimal point.
    """
    if isinstance(base_amount, bool) or not isinstance(base_amount, int):
        raise ConversionError(
            f"Base amount must be an integer, got {type(base_amount).__name__}"
        )
    if base_amount < 0:
        raise ConversionError(f"Base amount must not be negative: {base_amount}")

    whole, fraction = divmod(base_amount, 10**decimals)
    if decimals == 0 or fraction == 0:
        return str(whole)
    digits = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{digits}"


def to_base(display_amount: str | int | float | Decimal, decimals: int = ETHER_DECIMALS) -> int:
    """Parse a display amount into an integer number of base units.

    Floats go through ``str()`` first so ``0.1`` means ``"0.1"`` and not
    its binary approximation. No floating point arithmetic is performed.
    """
    if isinstance(display_amount, bool):
        raise ConversionError("Amount must be a number or decimal string, got bool")

    if isinstance(display_amount, int):
        if display_amount < 0:
            raise ConversionError(f"Amount must not be negative: {display_amount}")
        return display_amount * 10**decimals

    if isinstance(display_amount, float):
        display_amount = Decimal(str(display_amount))

    if isinstance(display_amount, Decimal):
        if not display_amount.is_finite():
            raise ConversionError(f"Amount must be finite: {display_amount}")
        if display_amount < 0:
            raise ConversionError(f"Amount must not be negative: {display_amount}")
        text = format(display_amount, "f")
    elif isinstance(display_amount, str):
        text = display_amount.strip()
    else:
        raise ConversionError(
            f"Amount must be a number or decimal string, got {type(display_amount).__name__}"
        )

    match = _DECIMAL_RE.match(text)
    if match is None or text in ("", "."):
        raise ConversionError(f"Malformed decimal amount: {display_amount!r}")

    whole, fraction = match.group(1) or "0", match.group(2) or ""
    fraction = fraction.rstrip("0")
    if len(fraction) > decimals:
        raise ConversionError(
            f"Amount {display_amount!r} has more than {decimals} fractional digits"
        )
    return int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")
