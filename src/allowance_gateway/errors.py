"""Error taxonomy for the gateway.

Every error carries a human-readable message and is raised with the
underlying cause chained (``raise ... from exc``).
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base class for all errors raised by the gateway."""


class InvalidInputError(GatewayError, ValueError):
    """Malformed address, value or password. Never retried."""


class ConversionError(InvalidInputError):
    """A value could not be converted between base and display units."""


class DerivationError(GatewayError):
    """The wallet deriver is misconfigured (e.g. the server seed is missing)."""


class NetworkError(GatewayError):
    """The ledger node is unreachable or returned a malformed response.

    Safe for the caller to retry.
    """


class TransactionError(GatewayError):
    """Signing, broadcast or confirmation of a transaction failed.

    Attributes
    ----------
    stage:
        Pipeline step that failed (``estimate_gas``, ``gas_price``,
        ``nonce``, ``sign``, ``broadcast`` or ``receipt``).
    tx_hash:
        Hash of the broadcast transaction, when it got that far.
    receipt:
        Receipt of a mined but reverted transaction.
    retryable:
        *True* when the cause was a transport failure rather than a
        logically invalid transaction.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        tx_hash: str | None = None,
        receipt: Any = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.tx_hash = tx_hash
        self.receipt = receipt
        self.retryable = retryable


class GasEstimationError(TransactionError):
    """The node refused to estimate gas or price the call.

    Usually the call would revert (insufficient balance, contract-level
    check) and retrying without changing inputs will not help.
    """
