from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from web3.constants import ADDRESS_ZERO


@dataclass(frozen=True)
class ClaimRecord:
    timestamp: int  # epoch milliseconds
    token_address: str
    amount: str
    tx_hash: str

    @property
    def type(self) -> str:
        return "ETH" if self.token_address.lower() == ADDRESS_ZERO else "TOKEN"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "tokenAddress": self.token_address,
            "amount": self.amount,
            "txHash": self.tx_hash,
            "type": self.type,
        }


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    name: str
    amount: str
    decimals: int = 18
    is_active: bool = True
    added_at: int = 0
    added_by: str = "system"

    def updated(self, **changes: Any) -> "TokenInfo":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def to_dict(self, address: str) -> Dict[str, Any]:
        return {
            "address": address,
            "symbol": self.symbol,
            "name": self.name,
            "amount": self.amount,
            "decimals": self.decimals,
            "isActive": self.is_active,
            "addedAt": self.added_at,
            "addedBy": self.added_by,
        }


@dataclass(frozen=True)
class OnChainTokenInfo:
    """The contract's supportedTokens(token) tuple."""

    amount: int
    cooldown_seconds: int
    active: bool


@dataclass(frozen=True)
class Eligibility:
    can_claim: bool
    remaining_seconds: Optional[int] = None
    reason: Optional[str] = None  # "blacklisted", "inactive" or "cooldown"

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"canClaim": self.can_claim}
        if self.remaining_seconds is not None:
            body["remainingTime"] = self.remaining_seconds
        return body


@dataclass
class PauseStatus:
    is_paused: bool = False
    reason: str = ""
    paused_at: int = 0
    paused_by: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "paused" if self.is_paused else "active",
            "pauseReason": self.reason,
            "pausedAt": self.paused_at,
            "pausedBy": self.paused_by,
        }


@dataclass(frozen=True)
class ClaimResult:
    tx_hash: str
    recipient: str
    token_address: str
    symbol: str
    amount: str
    timestamp: int

    @property
    def type(self) -> str:
        return "ETH" if self.token_address == ADDRESS_ZERO else "TOKEN"
