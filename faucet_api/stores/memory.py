import threading
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from faucet_api.models.records import ClaimRecord, PauseStatus, TokenInfo
from faucet_api.stores.base import ClaimHistoryStore, PauseStateStore, TokenRegistry


# Process-local stores. Everything here is lost on restart.

class InMemoryClaimHistory(ClaimHistoryStore):
    def __init__(self):
        self._claims: Dict[str, List[ClaimRecord]] = {}
        self._lock = threading.Lock()

    async def add_claim(self, address: str, record: ClaimRecord) -> None:
        with self._lock:
            self._claims.setdefault(address.lower(), []).append(record)

    async def get_user_claims(self, address: str) -> List[ClaimRecord]:
        with self._lock:
            return list(self._claims.get(address.lower(), []))

    async def get_all_claims(self) -> Dict[str, List[ClaimRecord]]:
        with self._lock:
            return {address: list(claims) for address, claims in self._claims.items()}


class InMemoryTokenRegistry(TokenRegistry):
    def __init__(self):
        self._tokens: Dict[str, TokenInfo] = {}
        self._lock = threading.Lock()

    async def add_token(self, address: str, info: TokenInfo) -> None:
        with self._lock:
            self._tokens[address.lower()] = info

    async def get_token(self, address: str) -> Optional[TokenInfo]:
        with self._lock:
            return self._tokens.get(address.lower())

    async def remove_token(self, address: str) -> Optional[TokenInfo]:
        with self._lock:
            return self._tokens.pop(address.lower(), None)

    async def list_tokens(self) -> List[Tuple[str, TokenInfo]]:
        with self._lock:
            return list(self._tokens.items())


class InMemoryPauseState(PauseStateStore):
    def __init__(self):
        self._status = PauseStatus()
        self._lock = threading.Lock()

    async def get(self) -> PauseStatus:
        with self._lock:
            return replace(self._status)

    async def set(self, status: PauseStatus) -> None:
        with self._lock:
            self._status = replace(status)
