"""Configuration system for Allowance Gateway.

Loads gateway config from a YAML file with ``${VAR}`` environment variable
expansion, or builds it straight from the process environment (the way a
``.env``-driven deployment runs). The resulting :class:`GatewayConfig` is
immutable and passed into every component at construction time.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from allowance_gateway.wallet.chains import Chain, get_chain


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    validation can catch it later.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class LedgerConfig(_Frozen):
    """Connection to the ledger RPC node."""

    network: str = "sepolia"
    rpc_url: Optional[str] = None   # overrides the network preset
    chain_id: Optional[int] = None  # overrides the network preset
    request_timeout: float = 30.0   # seconds per RPC call
    receipt_timeout: float = 120.0  # seconds to wait for inclusion
    poll_latency: float = 1.0

    def resolve_chain(self) -> Chain:
        return get_chain(self.network)

    def resolve_rpc_url(self) -> str:
        return self.rpc_url or self.resolve_chain().rpc_url


class TokenConfig(_Frozen):
    """The ERC-20 token contract approvals are made against."""

    address: str = ""
    abi_path: Optional[str] = None  # bundled ERC-20 ABI when unset
    decimals: int = 18


class WalletConfig(_Frozen):
    """Deterministic wallet derivation settings."""

    seed: SecretStr = SecretStr("")  # ${APP_SEED}
    scrypt_n: int = 2**14
    scrypt_r: int = 8
    scrypt_p: int = 1


class ValidationConfig(_Frozen):
    strict_addresses: bool = False


class ServerConfig(_Frozen):
    """HTTP API settings."""

    host: str = "127.0.0.1"
    port: int = 8050


class GatewayConfig(_Frozen):
    """Root configuration object."""

    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    token: TokenConfig = Field(default_factory=TokenConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

# env var -> (section, field)
_ENV_FIELDS: dict[str, tuple[str, str]] = {
    "APP_SEED": ("wallet", "seed"),
    "NETWORK": ("ledger", "network"),
    "RPC_URL": ("ledger", "rpc_url"),
    "CHAIN_ID": ("ledger", "chain_id"),
    "CONTRACT_ADDRESS": ("token", "address"),
    "CONTRACT_ABI_PATH": ("token", "abi_path"),
    "TOKEN_DECIMALS": ("token", "decimals"),
    "HOST": ("server", "host"),
    "PORT": ("server", "port"),
}


def load_config(path: Path) -> GatewayConfig:
    """Load and validate gateway configuration from a YAML file.

    Environment variable placeholders (``${VAR}``) are expanded before
    validation.
    """
    raw_text = path.read_text(encoding="utf-8")
    raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return GatewayConfig.model_validate(expanded)


def config_from_env(environ: dict[str, str] | None = None) -> GatewayConfig:
    """Build a :class:`GatewayConfig` from environment variables only.

    Recognised variables: ``APP_SEED``, ``NETWORK``, ``RPC_URL``,
    ``CHAIN_ID``, ``CONTRACT_ADDRESS``, ``CONTRACT_ABI_PATH``,
    ``TOKEN_DECIMALS``, ``HOST``, ``PORT``. Unset variables keep defaults.
    """
    if environ is None:
        environ = dict(os.environ)
    data: dict[str, dict[str, str]] = {}
    for var, (section, field) in _ENV_FIELDS.items():
        value = environ.get(var)
        if value:
            data.setdefault(section, {})[field] = value
    return GatewayConfig.model_validate(data)


def save_config(config: GatewayConfig, path: Path) -> None:
    """Serialize a :class:`GatewayConfig` to a YAML file.

    The seed is written as the ``${APP_SEED}`` placeholder, never in clear.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    data["wallet"]["seed"] = "${APP_SEED}"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
