from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class NonceRequest(BaseModel):
    address: str


class VerifyRequest(BaseModel):
    address: str
    signature: Optional[str] = None
    nonce: Optional[str] = None


class ClaimRequest(BaseModel):
    address: str = Field(..., description="Wallet address receiving the funds")
    tokenAddress: Optional[str] = Field(None, description="ERC-20 token address; omit or zero address for ETH")


class AddTokenRequest(BaseModel):
    address: str
    symbol: Optional[str] = None
    name: Optional[str] = None
    amount: Optional[str] = None
    decimals: int = Field(18, ge=0, le=255)


class UpdateTokenRequest(BaseModel):
    name: Optional[str] = None
    symbol: Optional[str] = None
    amount: Optional[str] = None
    decimals: Optional[int] = Field(None, ge=0, le=255)


class UpdateTokenStatusRequest(BaseModel):
    isActive: bool


class BulkDeleteTokensRequest(BaseModel):
    addresses: List[str]


class PauseRequest(BaseModel):
    reason: str = "Maintenance"


class ConnectionTestRequest(BaseModel):
    type: str = "rpc"


class UpdateUserStatusRequest(BaseModel):
    status: str


class UpdateUserAdminRequest(BaseModel):
    isAdmin: bool


ClaimsRange = Literal["today", "week", "month", "all"]
