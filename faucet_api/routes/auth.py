import logging
import re

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError
from fastapi import APIRouter, Depends

from faucet_api.config.settings import Settings
from faucet_api.models.schemas import NonceRequest, VerifyRequest
from faucet_api.routes.deps import get_nonces, get_settings
from faucet_api.services.nonces import NonceStore, sign_in_message
from faucet_api.utils.addresses import normalize_address
from faucet_api.utils.auth import create_access_token, get_current_user
from faucet_api.utils.errors import InvalidNonce, InvalidSignature, MissingData

logger = logging.getLogger(__name__)

router = APIRouter()

SIGNATURE_PATTERN = re.compile(r"(0x)?[0-9a-fA-F]{130}")


def _expires_in(minutes: int) -> str:
    return f"{minutes // 60}h" if minutes % 60 == 0 else f"{minutes}m"


def recover_signer(message: str, signature: str) -> str:
    """Recover the wallet that produced an EIP-191 personal signature."""
    if not SIGNATURE_PATTERN.fullmatch(signature):
        raise InvalidSignature()
    raw = bytearray(bytes.fromhex(signature[-130:]))
    # some wallets emit v as 0/1 rather than 27/28
    if raw[64] in (0, 1):
        raw[64] += 27
    if raw[64] not in (27, 28):
        raise InvalidSignature()
    try:
        return Account.recover_message(encode_defunct(text=message), signature=bytes(raw))
    except (ValueError, BadSignature, KeyValidationError) as e:
        logger.warning(f"Could not recover signer: {e}")
        raise InvalidSignature()


@router.post("/nonce")
async def create_nonce(body: NonceRequest, nonces: NonceStore = Depends(get_nonces)):
    address = normalize_address(body.address)
    nonce = nonces.issue(address)
    logger.info(f"Generated nonce for address: {address}")
    return {"nonce": nonce, "message": sign_in_message(nonce)}


@router.post("/verify")
async def verify_signature(
    body: VerifyRequest,
    nonces: NonceStore = Depends(get_nonces),
    settings: Settings = Depends(get_settings),
):
    """
    Exchange a signed nonce for a session token. Any attempt that presents a
    live nonce spends it, whether or not the signature checks out.
    """
    address = normalize_address(body.address)
    if not body.signature or not body.nonce:
        raise MissingData("Signature and nonce are required")
    if not nonces.consume(address, body.nonce):
        raise InvalidNonce()

    signer = recover_signer(sign_in_message(body.nonce), body.signature)
    if signer.lower() != address:
        logger.warning(f"Signature for {address} was made by {signer}")
        raise InvalidSignature()

    is_admin = address == settings.admin_address.lower()
    token = create_access_token(settings, body.address, is_admin)
    logger.info(f"Authenticated user: {body.address} (admin: {is_admin})")
    return {
        "token": token,
        "address": body.address,
        "isAdmin": is_admin,
        "expiresIn": _expires_in(settings.jwt_expires_minutes),
    }


@router.get("/me")
async def read_current_user(user: dict = Depends(get_current_user)):
    return user
