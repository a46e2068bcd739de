"""ERC-20 ABI fragments and ABI file loading."""

from __future__ import annotations

import json
from pathlib import Path

ERC20_ABI: list[dict] = [
    {
        "constant": True,
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]

_REQUIRED_FUNCTIONS = ("allowance", "approve")


def load_abi(path: Path) -> list[dict]:
    """Load a contract ABI from a JSON file.

    Accepts either a bare ABI list or a compiler artifact with an ``abi``
    key (Hardhat, Truffle, Foundry).

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the file is not an ABI or lacks ``allowance``/``approve``.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("abi")
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a contract ABI")

    names = {
        entry.get("name")
        for entry in data
        if isinstance(entry, dict) and entry.get("type") == "function"
    }
    missing = [name for name in _REQUIRED_FUNCTIONS if name not in names]
    if missing:
        raise ValueError(f"ABI in {path} is missing functions: {missing}")
    return data
