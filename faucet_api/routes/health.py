import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from faucet_api.config.settings import Settings
from faucet_api.routes.deps import get_settings

router = APIRouter()
docs_router = APIRouter()

ENDPOINTS = {
    "auth": {
        "POST /auth/nonce": "Get a sign-in nonce for a wallet address",
        "POST /auth/verify": "Exchange a signed nonce for a session token",
        "GET /auth/me": "Current session (Bearer token)",
    },
    "faucet": {
        "GET /faucet/tokens": "Tokens available from the faucet",
        "POST /faucet/claim": "Claim ETH or a token for an address",
        "GET /faucet/stats": "Claim statistics, optionally for one address",
        "GET /faucet/history/{address}": "Claim history for an address",
    },
    "admin": {
        "GET /admin/stats": "Faucet overview",
        "GET /admin/tokens": "Registered tokens",
        "POST /admin/tokens/add": "Register a token",
        "PUT /admin/tokens/{address}": "Update token metadata",
        "PATCH /admin/tokens/{address}/status": "Activate or deactivate a token",
        "DELETE /admin/tokens/{address}": "Remove a token",
        "DELETE /admin/tokens": "Remove several tokens",
        "POST /admin/pause": "Pause claims",
        "POST /admin/unpause": "Resume claims",
        "GET /admin/config": "Runtime configuration",
        "PUT /admin/config": "Acknowledge a configuration update",
        "POST /admin/test-connection": "Check the RPC connection",
        "GET /admin/contract-balance": "ETH and token balances held by the faucet contract",
        "GET /admin/users": "Users",
        "PATCH /admin/users/{id}/status": "Update a user's status",
        "PATCH /admin/users/{id}/admin": "Grant or revoke admin",
        "GET /admin/claims": "Claims in a time range",
        "GET /admin/claims/stats": "Claim statistics for a time range",
        "GET /admin/claims/export": "Claims in a time range as CSV",
    },
}


@router.get("/health")
async def health_check(request: Request, settings: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": time.monotonic() - request.app.state.started_at,
        "version": settings.api_version,
    }


@docs_router.get("/docs")
async def endpoint_index(settings: Settings = Depends(get_settings)):
    return {
        "name": "Testnet Faucet API",
        "version": settings.api_version,
        "basePath": settings.api_prefix,
        "endpoints": ENDPOINTS,
    }
