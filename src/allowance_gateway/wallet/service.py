"""High-level token service: balance and allowance queries, and approvals."""

from __future__ import annotations

import logging
from decimal import Decimal

from web3.types import TxReceipt

from allowance_gateway.config import GatewayConfig
from allowance_gateway.errors import InvalidInputError, NetworkError, TransactionError
from allowance_gateway.units import ETHER_DECIMALS, to_base, to_display
from allowance_gateway.validators import is_valid_address, is_valid_password, is_valid_value
from allowance_gateway.wallet.deriver import ScryptParams, WalletDeriver
from allowance_gateway.wallet.models import TransactionRequest
from allowance_gateway.wallet.provider import LedgerClient, to_checksum

logger = logging.getLogger("allowance_gateway.wallet.service")


class TokenService:
    """Orchestrates the deriver and the ledger client.

    Holds no per-request state: the seed, contract address and ABI are
    fixed at construction, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        config: GatewayConfig,
        ledger: LedgerClient | None = None,
        deriver: WalletDeriver | None = None,
    ) -> None:
        self.config = config
        self.ledger = ledger or LedgerClient(config)
        self._deriver = deriver
        self.token_decimals = config.token.decimals
        self.strict_addresses = config.validation.strict_addresses

    @property
    def deriver(self) -> WalletDeriver:
        """The seed-bound deriver, built on first use.

        Read-only queries never touch it, so they work on a process that
        has no seed configured. Raises ``DerivationError`` in that case.
        """
        if self._deriver is None:
            wallet = self.config.wallet
            self._deriver = WalletDeriver(
                wallet.seed.get_secret_value(),
                ScryptParams(n=wallet.scrypt_n, r=wallet.scrypt_r, p=wallet.scrypt_p),
            )
        return self._deriver

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _require_address(self, address: str, label: str) -> str:
        if not is_valid_address(address, strict=self.strict_addresses):
            raise InvalidInputError(f"Invalid {label} address")
        return to_checksum(address)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    async def balance_of(self, address: str) -> str:
        """Native balance of *address* as a decimal display string."""
        checksum = self._require_address(address, "account")
        balance = await self.ledger.get_balance(checksum)
        return to_display(balance, ETHER_DECIMALS)

    async def allowance_of(self, owner: str, spender: str) -> str:
        """Amount *spender* may transfer on behalf of *owner*, for display."""
        owner = self._require_address(owner, "owner")
        spender = self._require_address(spender, "spender")
        allowance = await self.ledger.get_allowance(owner, spender)
        if isinstance(allowance, bool) or not isinstance(allowance, int):
            raise NetworkError(f"Malformed allowance response: {allowance!r}")
        return to_display(allowance, self.token_decimals)

    def address_of(self, password: str) -> str:
        """The owner address a *password* derives to, so it can be funded."""
        if not is_valid_password(password):
            raise InvalidInputError("Invalid password")
        return self.deriver.address_for(password)

    # ------------------------------------------------------------------
    # Approval pipeline
    # ------------------------------------------------------------------

    async def approve(self, spender: str, value: int | float | Decimal, password: str) -> TxReceipt:
        """Approve *spender* to spend *value* tokens from the password's wallet.

        Returns the transaction receipt once the approval is mined.

        Raises
        ------
        InvalidInputError
            Malformed spender, value or password. Raised before any
            derivation or network call.
        DerivationError
            No usable server seed is configured.
        GasEstimationError
            The node refused to estimate or price the call.
        TransactionError
            Any other failure after validation. ``retryable`` is set when
            the cause was a transport failure before broadcast. Once
            ``tx_hash`` is known the approval may still be mined, so it is
            never retryable.
        """
        if not is_valid_address(spender, strict=self.strict_addresses):
            raise InvalidInputError("Invalid spender address")
        if not is_valid_value(value):
            raise InvalidInputError("Invalid value")
        if not is_valid_password(password):
            raise InvalidInputError("Invalid password")
        spender = to_checksum(spender)
        amount = to_base(value, self.token_decimals)

        raw_transaction, owner = await self._build_and_sign(spender, amount, password)

        tx_hash = await self._step("broadcast", self.ledger.send_raw_transaction(raw_transaction))
        logger.info(f"Approval broadcast: tx={tx_hash} owner={owner}")
        receipt = await self._step("receipt", self.ledger.wait_for_receipt(tx_hash), tx_hash)

        logger.info(f"Approved {value} for spender {spender} and owner {owner}")
        return receipt

    async def _build_and_sign(self, spender: str, amount: int, password: str) -> tuple[bytes, str]:
        """Steps 2-5: derive, encode, price and sign.

        The account is confined to this frame; only the raw signed bytes
        and the public owner address leave it.
        """
        deriver = self.deriver
        data = self.ledger.encode_approve(spender, amount)

        async with deriver.unlocked_async(password) as account:
            try:
                owner = account.address
                call = {"from": owner, "to": self.ledger.token_address, "data": data}

                gas = await self._step("estimate_gas", self.ledger.estimate_gas(call))
                gas_price = await self._step("gas_price", self.ledger.gas_price())
                nonce = await self._step("nonce", self.ledger.get_nonce(owner))

                request = TransactionRequest(
                    to=self.ledger.token_address,
                    data=data,
                    from_address=owner,
                    gas=gas,
                    gas_price=gas_price,
                    nonce=nonce,
                    chain_id=self.ledger.chain_id,
                )
                try:
                    signed = account.sign_transaction(request.to_dict())
                except (TypeError, ValueError) as exc:
                    raise TransactionError(f"Failed to sign approval: {exc}", stage="sign") from exc
            finally:
                del account

        return signed.raw_transaction, owner

    @staticmethod
    async def _step(stage: str, awaitable, tx_hash: str | None = None):
        """Await one network step, reclassifying transport failures.

        A transport failure is retryable only while nothing has been
        broadcast.
        """
        try:
            return await awaitable
        except NetworkError as exc:
            raise TransactionError(
                f"Approval failed at {stage}: {exc}",
                stage=stage,
                tx_hash=tx_hash,
                retryable=tx_hash is None,
            ) from exc
