"""Deterministic wallet derivation from a server seed and a user password.

The private key is a function of *both* secrets:

1. ``material = scrypt(password, salt=seed)`` stretches the password so
   that a leaked seed still leaves a costly brute force per guess.
2. ``HMAC-SHA256(key=seed, DOMAIN || material || counter)`` keys the result
   with the seed again, so a leaked password is useless without it.
   The counter only advances in the (astronomically unlikely) case the
   candidate falls outside the secp256k1 scalar range.

The same ``(password, seed)`` pair always yields the same account, which is
what lets a user come back to the same address without the server storing
anything but the seed.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass

from eth_account import Account
from eth_account.signers.local import LocalAccount

from allowance_gateway.errors import DerivationError, InvalidInputError
from allowance_gateway.validators import is_valid_password

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

_DOMAIN = b"allowance-gateway/wallet/v1"


@dataclass(frozen=True)
class ScryptParams:
    """Cost parameters for the password-stretching step."""

    n: int = 2**14
    r: int = 8
    p: int = 1

    @property
    def maxmem(self) -> int:
        # scrypt needs 128 * n * r bytes
        return 256 * self.n * self.r + 1024 * 1024


def _check_seed(seed: str | None) -> bytes:
    if not seed:
        raise DerivationError("Server seed is not configured")
    if seed.startswith("${") and seed.endswith("}"):
        raise DerivationError(f"Server seed placeholder {seed} was never expanded")
    return seed.encode("utf-8")


def derive_private_key(password: str, seed: str, params: ScryptParams = ScryptParams()) -> bytes:
    """Derive the raw 32-byte private key for ``(password, seed)``."""
    if not is_valid_password(password):
        raise InvalidInputError("Password must be a non-empty string")
    seed_bytes = _check_seed(seed)

    material = hashlib.scrypt(
        password.encode("utf-8"),
        salt=seed_bytes,
        n=params.n,
        r=params.r,
        p=params.p,
        maxmem=params.maxmem,
        dklen=32,
    )
    counter = 0
    while True:
        candidate = hmac.new(
            seed_bytes,
            _DOMAIN + material + counter.to_bytes(4, "big"),
            hashlib.sha256,
        ).digest()
        if 0 < int.from_bytes(candidate, "big") < SECP256K1_ORDER:
            return candidate
        counter += 1


def derive_account(password: str, seed: str, params: ScryptParams = ScryptParams()) -> LocalAccount:
    """Derive the signing account for ``(password, seed)``.

    Pure and deterministic. The returned account holds the private key;
    callers should prefer :meth:`WalletDeriver.unlocked`, which scopes it.
    """
    return Account.from_key(derive_private_key(password, seed, params))


class WalletDeriver:
    """Binds the immutable server seed and derives per-user accounts.

    Parameters
    ----------
    seed:
        The server-wide secret. Checked on construction, which
        :class:`~allowance_gateway.wallet.service.TokenService` defers until
        a password is first used.
    params:
        scrypt cost parameters.
    """

    def __init__(self, seed: str | None, params: ScryptParams | None = None) -> None:
        _check_seed(seed)
        self._seed = seed
        self._params = params or ScryptParams()

    def __repr__(self) -> str:
        return f"WalletDeriver(params={self._params!r})"

    @contextmanager
    def unlocked(self, password: str) -> Iterator[LocalAccount]:
        """Yield the account for *password* for the duration of the block.

        The derived key is only referenced from this frame and the caller's
        ``as`` target; both are dropped on every exit path.
        """
        account = derive_account(password, self._seed, self._params)
        try:
            yield account
        finally:
            del account

    @asynccontextmanager
    async def unlocked_async(self, password: str) -> AsyncIterator[LocalAccount]:
        """Async form of :meth:`unlocked`.

        scrypt runs in the default executor so the event loop keeps serving
        other requests while a key is being derived.
        """
        loop = asyncio.get_running_loop()
        account = await loop.run_in_executor(
            None, derive_account, password, self._seed, self._params
        )
        try:
            yield account
        finally:
            del account

    def address_for(self, password: str) -> str:
        """Return the checksummed address for *password* without exposing the key."""
        with self.unlocked(password) as account:
            return account.address
