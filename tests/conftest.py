from __future__ import annotations

import pytest
from eth_utils import keccak
from hexbytes import HexBytes
from pydantic import SecretStr

from allowance_gateway.config import (
    GatewayConfig,
    LedgerConfig,
    TokenConfig,
    WalletConfig,
)
from allowance_gateway.wallet.deriver import ScryptParams, WalletDeriver
from allowance_gateway.wallet.provider import LedgerClient
from allowance_gateway.wallet.service import TokenService

TEST_SEED = "server-seed-for-tests-only"
TOKEN_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
OWNER = "0x06Eb67071a06E676b678F5dd3614D852C129d460"
SPENDER = "0xA6Eb67071a06E676b678F5dd3614D852C129d460"

# cheap scrypt cost keeps the suite fast; the algorithm is unchanged
FAST_SCRYPT = ScryptParams(n=2**10, r=8, p=1)


class FakeLedger(LedgerClient):
    """LedgerClient with canned responses in place of RPC calls.

    Every RPC method appends its name to ``calls``. Set ``failures[name]``
    to an exception instance to make that method raise it.
    """

    def __init__(self, config: GatewayConfig, **responses) -> None:
        super().__init__(config)
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.balance = responses.get("balance", 0)
        self.allowance = responses.get("allowance", 0)
        self.gas = responses.get("gas", 46_000)
        self.price = responses.get("gas_price", 2_000_000_000)
        self.nonce = responses.get("nonce", 7)
        self.receipt_status = responses.get("receipt_status", 1)
        self.estimated: list[dict] = []
        self.broadcast: list[bytes] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    async def get_balance(self, address: str) -> int:
        self._record("get_balance")
        return self.balance

    async def get_allowance(self, owner: str, spender: str) -> int:
        self._record("get_allowance")
        return self.allowance

    async def estimate_gas(self, tx: dict) -> int:
        self._record("estimate_gas")
        self.estimated.append(tx)
        return self.gas

    async def gas_price(self) -> int:
        self._record("gas_price")
        return self.price

    async def get_nonce(self, address: str) -> int:
        self._record("get_nonce")
        return self.nonce

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        self._record("send_raw_transaction")
        self.broadcast.append(bytes(raw_transaction))
        return "0x" + keccak(bytes(raw_transaction)).hex()

    async def wait_for_receipt(self, tx_hash: str):
        self._record("wait_for_receipt")
        return {
            "transactionHash": HexBytes(tx_hash),
            "status": self.receipt_status,
            "blockNumber": 1,
            "gasUsed": self.gas,
        }


@pytest.fixture
def config() -> GatewayConfig:
    return GatewayConfig(
        ledger=LedgerConfig(network="localhost"),
        token=TokenConfig(address=TOKEN_ADDRESS),
        wallet=WalletConfig(
            seed=SecretStr(TEST_SEED),
            scrypt_n=FAST_SCRYPT.n,
            scrypt_r=FAST_SCRYPT.r,
            scrypt_p=FAST_SCRYPT.p,
        ),
    )


@pytest.fixture
def ledger(config) -> FakeLedger:
    return FakeLedger(config, allowance=1000 * 10**18, balance=900 * 10**18)


@pytest.fixture
def deriver() -> WalletDeriver:
    return WalletDeriver(TEST_SEED, FAST_SCRYPT)


@pytest.fixture
def service(config, ledger, deriver) -> TokenService:
    return TokenService(config, ledger=ledger, deriver=deriver)
