from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from faucet_api.models.records import ClaimRecord, PauseStatus, TokenInfo


class ClaimHistoryStore(ABC):
    """
    Append-only claim history keyed by lowercased wallet address.
    Display only: never consulted to decide whether a claim may proceed.
    """

    @abstractmethod
    async def add_claim(self, address: str, record: ClaimRecord) -> None: ...

    @abstractmethod
    async def get_user_claims(self, address: str) -> List[ClaimRecord]: ...

    @abstractmethod
    async def get_all_claims(self) -> Dict[str, List[ClaimRecord]]: ...


class TokenRegistry(ABC):
    """Token metadata keyed by lowercased token address."""

    @abstractmethod
    async def add_token(self, address: str, info: TokenInfo) -> None: ...

    @abstractmethod
    async def get_token(self, address: str) -> Optional[TokenInfo]: ...

    @abstractmethod
    async def remove_token(self, address: str) -> Optional[TokenInfo]: ...

    @abstractmethod
    async def list_tokens(self) -> List[Tuple[str, TokenInfo]]: ...


class PauseStateStore(ABC):
    @abstractmethod
    async def get(self) -> PauseStatus: ...

    @abstractmethod
    async def set(self, status: PauseStatus) -> None: ...
