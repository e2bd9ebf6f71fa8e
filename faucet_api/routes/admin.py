import logging
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import Response
from web3.exceptions import Web3Exception

from faucet_api.config.settings import Settings
from faucet_api.models.records import PauseStatus, TokenInfo
from faucet_api.models.schemas import (
    AddTokenRequest,
    BulkDeleteTokensRequest,
    ClaimsRange,
    ConnectionTestRequest,
    PauseRequest,
    UpdateTokenRequest,
    UpdateTokenStatusRequest,
    UpdateUserAdminRequest,
    UpdateUserStatusRequest,
)
from faucet_api.routes.deps import get_clock, get_contract, get_settings, get_stores
from faucet_api.services.contract import ContractClient
from faucet_api.services.eligibility import ETH_COOLDOWN_SECONDS
from faucet_api.services.stats import claims_summary, claims_to_csv, list_claims, range_start
from faucet_api.stores.factory import Stores
from faucet_api.utils.addresses import is_native, is_valid_address, normalize_address
from faucet_api.utils.auth import get_admin_user
from faucet_api.utils.errors import (
    AlreadyPaused,
    BalanceLookupFailed,
    InvalidAmount,
    MissingData,
    NotPaused,
    RpcConnectionFailed,
    TokenExists,
    TokenNotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Every route here requires an admin session. None of them write on-chain.
router = APIRouter(dependencies=[Depends(get_admin_user)])


def _now_ms(clock: Callable[[], float]) -> int:
    return int(clock() * 1000)


def _positive_amount(amount: str) -> str:
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError):
        raise InvalidAmount()
    if not value.is_finite() or value <= 0:
        raise InvalidAmount()
    return amount


async def _require_token(stores: Stores, address: str) -> TokenInfo:
    info = await stores.registry.get_token(normalize_address(address))
    if info is None:
        raise TokenNotFound()
    return info


@router.get("/stats")
async def admin_stats(
    request: Request,
    stores: Stores = Depends(get_stores),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], float] = Depends(get_clock),
):
    pause = await stores.pause.get()
    tokens = await stores.registry.list_tokens()
    all_claims = await stores.history.get_all_claims()

    now = _now_ms(clock)
    timestamps = [record.timestamp for records in all_claims.values() for record in records]
    return {
        "faucet": pause.to_dict(),
        "tokens": {
            "total": len(tokens),
            "registered": [info.to_dict(address) for address, info in tokens],
        },
        "claims": {
            "today": sum(1 for ts in timestamps if ts >= range_start("today", now)),
            "thisWeek": sum(1 for ts in timestamps if ts >= range_start("week", now)),
            "thisMonth": sum(1 for ts in timestamps if ts >= range_start("month", now)),
            "total": len(timestamps),
        },
        "users": {
            "total": sum(1 for records in all_claims.values() if records),
        },
        "system": {
            "uptime": time.monotonic() - request.app.state.started_at,
            "version": settings.api_version,
            "nodeEnv": settings.node_env,
        },
    }


@router.get("/tokens")
async def admin_list_tokens(stores: Stores = Depends(get_stores)):
    tokens = [dict(info.to_dict(address), id=address) for address, info in await stores.registry.list_tokens()]
    return {"success": True, "tokens": tokens, "total": len(tokens)}


@router.post("/tokens/add")
async def add_token(
    body: AddTokenRequest,
    stores: Stores = Depends(get_stores),
    admin: Dict[str, Any] = Depends(get_admin_user),
    clock: Callable[[], float] = Depends(get_clock),
):
    if not is_valid_address(body.address):
        raise ValidationError("Please provide a valid token contract address")
    if not body.symbol or not body.name or not body.amount:
        raise MissingData("Symbol, name, and amount are required")
    if await stores.registry.get_token(body.address) is not None:
        raise TokenExists()
    _positive_amount(body.amount)

    info = TokenInfo(
        symbol=body.symbol.upper(),
        name=body.name,
        amount=body.amount,
        decimals=body.decimals,
        added_at=_now_ms(clock),
        added_by=admin["address"],
    )
    await stores.registry.add_token(body.address, info)
    logger.info(f"Token added by admin {admin['address']}: {info.symbol} ({body.address})")
    return {
        "success": True,
        "token": info.to_dict(body.address.lower()),
        "addedBy": info.added_by,
        "addedAt": info.added_at,
    }


@router.put("/tokens/{address}")
async def update_token(
    address: str,
    body: UpdateTokenRequest,
    stores: Stores = Depends(get_stores),
    admin: Dict[str, Any] = Depends(get_admin_user),
):
    current = await _require_token(stores, address)
    if body.amount is not None:
        _positive_amount(body.amount)

    updated = current.updated(
        name=body.name or None,
        symbol=body.symbol.upper() if body.symbol else None,
        amount=body.amount or None,
        decimals=body.decimals,
    )
    await stores.registry.add_token(address, updated)
    logger.info(f"Token updated by admin {admin['address']}: {updated.symbol} ({address})")
    return {"success": True, "token": dict(updated.to_dict(address.lower()), id=address.lower())}


@router.patch("/tokens/{address}/status")
async def update_token_status(
    address: str,
    body: UpdateTokenStatusRequest,
    stores: Stores = Depends(get_stores),
    admin: Dict[str, Any] = Depends(get_admin_user),
):
    current = await _require_token(stores, address)
    await stores.registry.add_token(address, current.updated(is_active=body.isActive))
    logger.info(
        f"Token status updated by admin {admin['address']}: {current.symbol} ({address}) - "
        f"{'activated' if body.isActive else 'deactivated'}"
    )
    return {"success": True, "token": {"id": address.lower(), "address": address.lower(), "isActive": body.isActive}}


@router.delete("/tokens/{address}")
async def remove_token(
    address: str,
    stores: Stores = Depends(get_stores),
    admin: Dict[str, Any] = Depends(get_admin_user),
    clock: Callable[[], float] = Depends(get_clock),
):
    if not is_valid_address(address):
        raise ValidationError("Please provide a valid token contract address")
    removed = await stores.registry.remove_token(address)
    if removed is None:
        raise TokenNotFound()
    logger.info(f"Token removed by admin {admin['address']}: {removed.symbol} ({address})")
    return {
        "success": True,
        "removedToken": removed.to_dict(address.lower()),
        "removedBy": admin["address"],
        "removedAt": _now_ms(clock),
    }


@router.delete("/tokens")
async def bulk_remove_tokens(
    body: BulkDeleteTokensRequest,
    stores: Stores = Depends(get_stores),
    admin: Dict[str, Any] = Depends(get_admin_user),
    clock: Callable[[], float] = Depends(get_clock),
):
    removed_tokens = []
    errors = []
    for address in body.addresses:
        if not is_valid_address(address):
            errors.append({"address": address, "error": "Invalid address format"})
            continue
        removed = await stores.registry.remove_token(address)
        if removed is None:
            errors.append({"address": address, "error": "Token not found"})
            continue
        removed_tokens.append(removed.to_dict(address.lower()))

    logger.info(f"Bulk token removal by admin {admin['address']}: {len(removed_tokens)} tokens removed")
    return {
        "success": True,
        "removedTokens": removed_tokens,
        "errors": errors,
        "removedBy": admin["address"],
        "removedAt": _now_ms(clock),
    }


@router.post("/pause")
async def pause_faucet(
    body: Optional[PauseRequest] = Body(None),
    stores: Stores = Depends(get_stores),
    admin: Dict[str, Any] = Depends(get_admin_user),
    clock: Callable[[], float] = Depends(get_clock),
):
    reason = body.reason if body else "Maintenance"
    if (await stores.pause.get()).is_paused:
        raise AlreadyPaused()

    status = PauseStatus(is_paused=True, reason=reason, paused_at=_now_ms(clock), paused_by=admin["address"])
    await stores.pause.set(status)
    logger.warning(f"Faucet paused by admin {admin['address']}: {reason}")
    return {
        "success": True,
        "status": "paused",
        "reason": reason,
        "pausedBy": status.paused_by,
        "pausedAt": status.paused_at,
    }


@router.post("/unpause")
async def unpause_faucet(
    stores: Stores = Depends(get_stores),
    admin: Dict[str, Any] = Depends(get_admin_user),
    clock: Callable[[], float] = Depends(get_clock),
):
    current = await stores.pause.get()
    if not current.is_paused:
        raise NotPaused()

    now = _now_ms(clock)
    pause_duration = now - current.paused_at
    await stores.pause.set(PauseStatus())
    logger.info(f"Faucet resumed by admin {admin['address']} (paused for {pause_duration}ms)")
    return {
        "success": True,
        "status": "active",
        "resumedBy": admin["address"],
        "resumedAt": now,
        "pauseDuration": pause_duration,
    }


@router.get("/config")
async def read_config(stores: Stores = Depends(get_stores), settings: Settings = Depends(get_settings)):
    pause = await stores.pause.get()
    return {
        "config": {
            "rateLimitEnabled": settings.rate_limit_enabled,
            "rateLimitWindowMs": settings.rate_limit_window * 1000,
            "rateLimitMaxRequests": settings.rate_limit_max,
            "defaultCooldownHours": ETH_COOLDOWN_SECONDS // 3600,
            "requireWalletConnection": True,
            "maxClaimsPerUser": settings.daily_claim_limit,
            "maintenanceMode": pause.is_paused,
            "maintenanceMessage": pause.reason or "System maintenance in progress",
            "logLevel": settings.log_level.lower(),
            "networkName": "Sepolia Testnet",
            "chainId": 11155111,
            "contractAddress": settings.contract_address,
            "blockConfirmations": 1,
            "gasMarginPercent": 20,
            "transactionTimeoutSeconds": settings.tx_confirmation_timeout,
        }
    }


@router.put("/config")
async def update_config(config_update: Optional[Dict[str, Any]] = Body(None),
                        admin: Dict[str, Any] = Depends(get_admin_user)):
    # Runtime configuration comes from the environment; updates are acknowledged only.
    logger.info(f"System configuration update acknowledged for admin {admin['address']}: {sorted(config_update or {})}")
    return {
        "success": True,
        "message": "Configuration updated successfully",
        "updatedBy": admin["address"],
        "updatedAt": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/test-connection")
async def test_connection(body: ConnectionTestRequest, contract: ContractClient = Depends(get_contract)):
    if body.type != "rpc":
        raise ValidationError("Invalid connection type")
    try:
        probe = await contract.probe()
    except (Web3Exception, ValueError, OSError) as e:
        logger.error(f"RPC connection test failed: {e}")
        raise RpcConnectionFailed(str(e) or "Unknown RPC error")
    return {
        "success": True,
        "message": "RPC connection successful",
        **probe,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/contract-balance")
async def contract_balance(
    stores: Stores = Depends(get_stores),
    contract: ContractClient = Depends(get_contract),
    clock: Callable[[], float] = Depends(get_clock),
):
    try:
        eth_balance = await contract.eth_balance()
    except (Web3Exception, ValueError, OSError) as e:
        logger.error(f"Error fetching contract ETH balance: {e}")
        raise BalanceLookupFailed()

    # tokens that fail to answer are left out of the report
    tokens = []
    for address, _ in await stores.registry.list_tokens():
        if is_native(address):
            continue
        try:
            tokens.append(await contract.token_balance(address))
        except (Web3Exception, ValueError, OSError) as e:
            logger.error(f"Failed to fetch token data for {address}: {e}")

    return {
        "eth": {"balance": str(eth_balance)},
        "tokens": tokens,
        "lastUpdated": datetime.fromtimestamp(clock(), timezone.utc).isoformat(),
    }


@router.get("/users")
async def list_users(settings: Settings = Depends(get_settings)):
    now = datetime.now(timezone.utc).isoformat()
    users = [{
        "id": "1",
        "address": settings.admin_address,
        "isAdmin": True,
        "createdAt": now,
        "updatedAt": now,
        "claimsCount": 0,
        "status": "active",
    }]
    return {"success": True, "users": users, "total": len(users)}


@router.patch("/users/{user_id}/status")
async def update_user_status(user_id: str, body: UpdateUserStatusRequest, admin: Dict[str, Any] = Depends(get_admin_user)):
    logger.info(f"User status updated by admin {admin['address']}: {user_id} - {body.status}")
    return {"success": True, "user": {"id": user_id, "status": body.status}}


@router.patch("/users/{user_id}/admin")
async def update_user_admin(user_id: str, body: UpdateUserAdminRequest, admin: Dict[str, Any] = Depends(get_admin_user)):
    logger.info(
        f"User admin status updated by admin {admin['address']}: {user_id} - "
        f"{'granted' if body.isAdmin else 'revoked'}"
    )
    return {"success": True, "user": {"id": user_id, "isAdmin": body.isAdmin}}


@router.get("/claims")
async def get_claims(
    range_: ClaimsRange = Query("all", alias="range"),
    stores: Stores = Depends(get_stores),
    clock: Callable[[], float] = Depends(get_clock),
):
    claims = await list_claims(stores.history, stores.registry, range_, now_ms=_now_ms(clock))
    return {"claims": claims, "totalClaims": len(claims), "range": range_}


@router.get("/claims/stats")
async def get_claims_stats(
    range_: ClaimsRange = Query("all", alias="range"),
    stores: Stores = Depends(get_stores),
    clock: Callable[[], float] = Depends(get_clock),
):
    claims = await list_claims(stores.history, stores.registry, range_, now_ms=_now_ms(clock))
    return dict(claims_summary(claims), range=range_)


@router.get("/claims/export")
async def export_claims(
    range_: ClaimsRange = Query("all", alias="range"),
    stores: Stores = Depends(get_stores),
    clock: Callable[[], float] = Depends(get_clock),
):
    claims = await list_claims(stores.history, stores.registry, range_, now_ms=_now_ms(clock))
    day = datetime.fromtimestamp(clock(), timezone.utc).strftime("%Y-%m-%d")
    filename = f"claims-{range_}-{day}.csv"
    return Response(
        content=claims_to_csv(claims),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
