"""Async Web3 client for the ledger node and the token contract.

This is the only module that talks to the network. It translates ``web3``
and transport exceptions into the gateway taxonomy:

* transport failures (connection refused, timeouts) -> ``NetworkError``
* node rejected gas estimation / pricing -> ``GasEstimationError``
* node rejected the nonce query or the raw transaction, failed while
  polling the receipt, reverted receipt, receipt timeout -> ``TransactionError``
* malformed node responses on reads -> ``NetworkError``

Anything else propagates untouched.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import (
    BadFunctionCallOutput,
    BadResponseFormat,
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3RPCError,
)
from web3.middleware import ExtraDataToPOAMiddleware
from web3.types import TxReceipt

from allowance_gateway.config import GatewayConfig
from allowance_gateway.errors import (
    GasEstimationError,
    GatewayError,
    InvalidInputError,
    NetworkError,
    TransactionError,
)
from allowance_gateway.wallet.abi import ERC20_ABI, load_abi

logger = logging.getLogger("allowance_gateway.wallet.provider")

_TRANSPORT_ERRORS = (
    ProviderConnectionError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
)


def to_checksum(address: str) -> str:
    """Checksum *address*, raising ``InvalidInputError`` on non-hex input."""
    try:
        return Web3.to_checksum_address(address)
    except ValueError as exc:
        raise InvalidInputError(f"Invalid address {address!r}: {exc}") from exc


class LedgerClient:
    """Wraps an ``AsyncWeb3`` connection and the configured token contract.

    Stateless beyond the connection itself; safe to share between
    concurrent requests.
    """

    def __init__(self, config: GatewayConfig, w3: AsyncWeb3 | None = None) -> None:
        self.chain = config.ledger.resolve_chain()
        self.rpc_url = config.ledger.resolve_rpc_url()
        self.chain_id = config.ledger.chain_id or self.chain.chain_id
        self.receipt_timeout = config.ledger.receipt_timeout
        self.poll_latency = config.ledger.poll_latency

        if w3 is None:
            w3 = AsyncWeb3(
                AsyncHTTPProvider(
                    self.rpc_url,
                    request_kwargs={
                        "timeout": aiohttp.ClientTimeout(total=config.ledger.request_timeout)
                    },
                )
            )
            if self.chain.poa:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self.w3 = w3

        # native balance queries work without a token contract
        self.token_address: str | None = None
        self.contract = None
        if config.token.address:
            abi = load_abi(Path(config.token.abi_path)) if config.token.abi_path else ERC20_ABI
            self.token_address = to_checksum(config.token.address)
            self.contract = self.w3.eth.contract(address=self.token_address, abi=abi)

    def _require_contract(self):
        if self.contract is None:
            raise GatewayError("Token contract address is not configured")
        return self.contract

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, address: str) -> int:
        """Native balance of *address* in base units."""
        try:
            return await self.w3.eth.get_balance(to_checksum(address))
        except _TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Ledger node unreachable while fetching balance: {exc}") from exc
        except (BadResponseFormat, Web3RPCError) as exc:
            raise NetworkError(f"Ledger node rejected balance query: {exc}") from exc

    async def get_allowance(self, owner: str, spender: str) -> int:
        """Token allowance granted by *owner* to *spender*, in base units."""
        call = self._require_contract().functions.allowance(to_checksum(owner), to_checksum(spender))
        try:
            return await call.call()
        except _TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Ledger node unreachable while fetching allowance: {exc}") from exc
        except (BadFunctionCallOutput, BadResponseFormat, ContractLogicError, Web3RPCError) as exc:
            raise NetworkError(f"Malformed allowance response from {self.token_address}: {exc}") from exc

    # ------------------------------------------------------------------
    # Approval transaction building blocks
    # ------------------------------------------------------------------

    def encode_approve(self, spender: str, amount: int) -> str:
        """ABI-encode ``approve(spender, amount)`` for the token contract."""
        return self._require_contract().encode_abi("approve", args=[to_checksum(spender), amount])

    async def estimate_gas(self, tx: dict) -> int:
        try:
            return await self.w3.eth.estimate_gas(tx)
        except _TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Ledger node unreachable while estimating gas: {exc}") from exc
        except (ContractLogicError, Web3RPCError) as exc:
            raise GasEstimationError(
                f"Gas estimation failed, the call would not succeed: {exc}",
                stage="estimate_gas",
            ) from exc

    async def gas_price(self) -> int:
        try:
            return await self.w3.eth.gas_price
        except _TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Ledger node unreachable while fetching gas price: {exc}") from exc
        except Web3RPCError as exc:
            raise GasEstimationError(
                f"Ledger node refused to quote a gas price: {exc}",
                stage="gas_price",
            ) from exc

    async def get_nonce(self, address: str) -> int:
        try:
            return await self.w3.eth.get_transaction_count(address, "pending")
        except _TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Ledger node unreachable while fetching nonce: {exc}") from exc
        except Web3RPCError as exc:
            raise TransactionError(
                f"Ledger node rejected nonce query: {exc}",
                stage="nonce",
            ) from exc

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        """Broadcast a signed transaction and return its hash as hex."""
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(raw_transaction)
        except _TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Ledger node unreachable while broadcasting: {exc}") from exc
        except Web3RPCError as exc:
            raise TransactionError(
                f"Ledger node rejected the transaction: {exc}",
                stage="broadcast",
            ) from exc
        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.debug(f"Broadcast raw transaction {tx_hash_hex} to {self.rpc_url}")
        return tx_hash_hex

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Wait for *tx_hash* to be mined.

        Raises ``TransactionError`` if the receipt reports a revert or does
        not arrive within ``receipt_timeout`` seconds.
        """
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.poll_latency,
            )
        except TimeExhausted as exc:
            raise TransactionError(
                f"Transaction {tx_hash} was broadcast but not mined within "
                f"{self.receipt_timeout}s",
                stage="receipt",
                tx_hash=tx_hash,
            ) from exc
        except _TRANSPORT_ERRORS as exc:
            raise NetworkError(
                f"Ledger node unreachable while waiting for {tx_hash}: {exc}"
            ) from exc
        except (BadResponseFormat, Web3RPCError) as exc:
            raise TransactionError(
                f"Ledger node failed while polling the receipt for {tx_hash}: {exc}",
                stage="receipt",
                tx_hash=tx_hash,
            ) from exc

        logger.debug(f"Receipt for {tx_hash}: block={receipt.get('blockNumber')} status={receipt.get('status')}")
        if receipt.get("status") == 0:
            raise TransactionError(
                f"Transaction {tx_hash} was reverted by the EVM",
                stage="receipt",
                tx_hash=tx_hash,
                receipt=receipt,
            )
        return receipt
