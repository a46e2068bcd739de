"""FastAPI HTTP API for Allowance Gateway."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from web3 import Web3

from allowance_gateway.config import GatewayConfig
from allowance_gateway.errors import GatewayError, InvalidInputError
from allowance_gateway.validators import is_valid_address, is_valid_password, is_valid_value
from allowance_gateway.wallet.service import TokenService

logger = logging.getLogger("allowance_gateway.api")


def _error(status_code: int, error: str, reason: str | None = None) -> JSONResponse:
    content = {"error": error}
    if reason:
        content["reason"] = reason
    return JSONResponse(status_code=status_code, content=content)


def create_app(config: GatewayConfig, service: TokenService | None = None) -> FastAPI:
    """Build the API app around a :class:`TokenService`.

    A service is created from *config* when none is given.
    """
    app = FastAPI(title="Allowance Gateway")
    service = service or TokenService(config)
    strict = config.validation.strict_addresses
    app.state.service = service

    # ------------------------------------------------------------------
    # API routes
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "network": config.ledger.network,
            "token": service.ledger.token_address,
        }

    @app.get("/GetAllowance/{owner}/{spender}")
    async def get_allowance(owner: str, spender: str):
        if not is_valid_address(owner, strict=strict):
            return _error(400, "Invalid owner address")
        if not is_valid_address(spender, strict=strict):
            return _error(400, "Invalid spender address")

        try:
            allowance = await service.allowance_of(owner, spender)
        except InvalidInputError as e:
            return _error(400, str(e))
        except GatewayError as e:
            logger.error(f"Error fetching allowance: {e}")
            return _error(500, "Error fetching allowance", str(e))

        response = {
            "owner": owner,
            "spender": spender,
            "allowance": allowance,
            "message": "Allowance fetched successfully",
        }
        logger.info(response)
        return response

    @app.get("/GetBalance/{address}")
    async def get_balance(address: str):
        if not is_valid_address(address, strict=strict):
            return _error(400, "Invalid address")

        try:
            balance = await service.balance_of(address)
        except InvalidInputError as e:
            return _error(400, str(e))
        except GatewayError as e:
            logger.error(f"Error fetching Balance: {e}")
            return _error(500, "Error fetching Balance", str(e))

        response = {
            "address": address,
            "balance": balance,
            "message": "Balance fetched successfully",
        }
        logger.info(response)
        return response

    @app.post("/SetApprove")
    async def set_approve(body: dict):
        spender = body.get("spender")
        value = body.get("value")
        password = body.get("password")

        if not is_valid_address(spender, strict=strict):
            return _error(400, "Invalid spender address")
        if not is_valid_value(value):
            return _error(400, "Invalid value")
        if not is_valid_password(password):
            return _error(400, "Invalid password")

        try:
            receipt = await service.approve(spender, value, password)
        except InvalidInputError as e:
            return _error(400, str(e))
        except GatewayError as e:
            logger.error(f"Error approving: {e!r}")
            return _error(500, "Error approving", str(e))

        tx_hash = receipt.get("transactionHash")
        response = {
            "spender": spender,
            "value": value,
            "transactionHash": Web3.to_hex(tx_hash) if tx_hash is not None else None,
            "message": "Approval success",
        }
        logger.info(response)
        return response

    return app


def run_server(config: GatewayConfig) -> None:
    """Start the API server (blocking)."""
    app = create_app(config)
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level="info")
