import logging
from typing import Optional

from fastapi import APIRouter, Depends
from web3.constants import ADDRESS_ZERO

from faucet_api.config.settings import Settings
from faucet_api.models.schemas import ClaimRequest
from faucet_api.routes.deps import get_executor, get_settings, get_stores
from faucet_api.services.eligibility import ETH_COOLDOWN_SECONDS
from faucet_api.services.executor import ClaimExecutor
from faucet_api.services.stats import faucet_stats
from faucet_api.stores.factory import Stores
from faucet_api.utils.addresses import is_native, is_valid_address, normalize_address
from faucet_api.utils.errors import FaucetPaused, InvalidAddress, TokenNotSupported

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/tokens")
async def list_tokens(stores: Stores = Depends(get_stores), settings: Settings = Depends(get_settings)):
    tokens = [
        info.to_dict(address)
        for address, info in await stores.registry.list_tokens()
        if info.is_active
    ]
    return {
        "tokens": tokens,
        "limits": {
            "dailyLimit": settings.daily_claim_limit,
            "ethCooldownSeconds": ETH_COOLDOWN_SECONDS,
        },
    }


@router.post("/claim")
async def claim(
    body: ClaimRequest,
    stores: Stores = Depends(get_stores),
    executor: ClaimExecutor = Depends(get_executor),
):
    recipient = normalize_address(body.address)

    pause = await stores.pause.get()
    if pause.is_paused:
        logger.warning(f"Claim from {recipient} rejected: faucet paused ({pause.reason})")
        raise FaucetPaused(f"Faucet is paused: {pause.reason}" if pause.reason else "Faucet is paused")

    token_address = ADDRESS_ZERO if is_native(body.tokenAddress) else body.tokenAddress
    if not is_valid_address(token_address):
        raise InvalidAddress("Please provide a valid token address")
    token_info = await stores.registry.get_token(token_address)
    if token_info is None or not token_info.is_active:
        logger.warning(f"Claim from {recipient} rejected: token {token_address} not supported")
        raise TokenNotSupported()

    # eligibility is checked once, inside the executor, against the contract
    if is_native(token_address):
        result = await executor.claim_eth(body.address)
    else:
        result = await executor.claim_token(body.address, token_address, token_info)

    return {
        "success": True,
        "txHash": result.tx_hash,
        "type": result.type,
        "token": {
            "address": result.token_address,
            "symbol": result.symbol,
            "amount": result.amount,
        },
        "recipient": recipient,
        "timestamp": result.timestamp,
    }


@router.get("/stats")
async def get_stats(
    address: Optional[str] = None,
    stores: Stores = Depends(get_stores),
    settings: Settings = Depends(get_settings),
):
    if address is not None:
        address = normalize_address(address)
    body = await faucet_stats(stores.history, stores.registry, address)
    body["dailyLimit"] = settings.daily_claim_limit
    return body


@router.get("/history/{address}")
async def get_history(address: str, stores: Stores = Depends(get_stores)):
    normalized = normalize_address(address)
    claims = sorted(await stores.history.get_user_claims(normalized), key=lambda c: c.timestamp, reverse=True)
    return {
        "address": normalized,
        "claims": [record.to_dict() for record in claims],
        "totalClaims": len(claims),
    }
