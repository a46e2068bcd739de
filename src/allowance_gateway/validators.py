"""Input gating predicates. Pure, no I/O."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any

_HEX_BODY_RE = re.compile(r"^[0-9a-fA-F]{40}$")


def is_valid_address(address: Any, *, strict: bool = False) -> bool:
    """Check that *address* looks like an EVM account address.

    The default check only requires 42 characters and a ``0x`` prefix.
    With *strict* the remaining 40 characters must also be hex digits.
    Checksum casing is never enforced.
    """
    if not isinstance(address, str):
        return False
    if len(address) != 42 or not address.startswith("0x"):
        return False
    if strict:
        return bool(_HEX_BODY_RE.match(address[2:]))
    return True


def is_valid_value(value: Any) -> bool:
    """Check that *value* is a finite number strictly greater than zero.

    Numeric strings such as ``"1000"`` are rejected.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    if isinstance(value, float):
        return math.isfinite(value) and value > 0
    if isinstance(value, Decimal):
        return value.is_finite() and value > 0
    return False


def is_valid_password(password: Any) -> bool:
    return isinstance(password, str) and password != ""
