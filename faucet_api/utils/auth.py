import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from faucet_api.config.settings import Settings
from faucet_api.utils.errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Bearer scheme; missing credentials are reported as our own 401 body
security = HTTPBearer(auto_error=False)


def create_access_token(settings: Settings, address: str, is_admin: bool) -> str:
    """
    Create a JWT session token for a verified wallet address.
    """
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": address,
        "address": address,
        "isAdmin": is_admin,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expires_minutes),
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(settings: Settings, token: str) -> Dict[str, Any]:
    """
    Verify the JWT token and return the payload if valid.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected session token: {e}")
        raise Unauthorized("Invalid or expired token")

    if not payload.get("address"):
        raise Unauthorized("Invalid token: missing address")
    return payload


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict[str, Any]:
    if credentials is None:
        raise Unauthorized("Missing bearer token")
    payload = decode_access_token(request.app.state.settings, credentials.credentials)
    return {"address": payload["address"], "isAdmin": bool(payload.get("isAdmin"))}


async def get_admin_user(
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    admin_address = request.app.state.settings.admin_address
    if not user["isAdmin"] or user["address"].lower() != admin_address.lower():
        logger.warning(f"Admin access denied for {user['address']}")
        raise Forbidden("Admin privileges required")
    return user
