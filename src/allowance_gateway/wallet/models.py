"""Value types passed between the approval pipeline steps."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TransactionRequest:
    """A fully-specified legacy transaction, ready for local signing."""

    to: str
    data: str
    from_address: str
    gas: int
    gas_price: int
    nonce: int
    chain_id: int
    value: int = 0

    def to_dict(self) -> dict:
        """Render the dict shape ``eth_account`` signs."""
        return {
            "to": self.to,
            "data": self.data,
            "from": self.from_address,
            "gas": self.gas,
            "gasPrice": self.gas_price,
            "nonce": self.nonce,
            "chainId": self.chain_id,
            "value": self.value,
        }
