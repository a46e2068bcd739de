"""Allowance Gateway - derive per-user signing wallets and manage ERC-20 approvals."""

from allowance_gateway.errors import (
    ConversionError,
    DerivationError,
    GasEstimationError,
    GatewayError,
    InvalidInputError,
    NetworkError,
    TransactionError,
)
from allowance_gateway.units import to_base, to_display
from allowance_gateway.validators import is_valid_address, is_valid_value

__version__ = "0.1.0"

__all__ = [
    "ConversionError",
    "DerivationError",
    "GasEstimationError",
    "GatewayError",
    "InvalidInputError",
    "NetworkError",
    "TransactionError",
    "is_valid_address",
    "is_valid_value",
    "to_base",
    "to_display",
]
