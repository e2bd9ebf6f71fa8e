from typing import Dict, List, Optional, Tuple

from sqlalchemy import select

from faucet_api.database import Database
from faucet_api.models.records import ClaimRecord, PauseStatus, TokenInfo
from faucet_api.models.tables import ClaimRow, FaucetStateRow, TokenRow
from faucet_api.stores.base import ClaimHistoryStore, PauseStateStore, TokenRegistry

STATE_ROW_ID = 1


def _claim_from_row(row: ClaimRow) -> ClaimRecord:
    return ClaimRecord(
        timestamp=row.timestamp,
        token_address=row.token_address,
        amount=row.amount,
        tx_hash=row.tx_hash,
    )


def _token_from_row(row: TokenRow) -> TokenInfo:
    return TokenInfo(
        symbol=row.symbol,
        name=row.name,
        amount=row.amount,
        decimals=row.decimals,
        is_active=row.is_active,
        added_at=row.added_at,
        added_by=row.added_by,
    )


class SQLClaimHistory(ClaimHistoryStore):
    def __init__(self, db: Database):
        self.db = db

    async def add_claim(self, address: str, record: ClaimRecord) -> None:
        async with self.db.session_factory() as session:
            session.add(ClaimRow(
                user_address=address.lower(),
                timestamp=record.timestamp,
                token_address=record.token_address,
                amount=record.amount,
                tx_hash=record.tx_hash,
            ))
            await session.commit()

    async def get_user_claims(self, address: str) -> List[ClaimRecord]:
        async with self.db.session_factory() as session:
            result = await session.execute(
                select(ClaimRow).where(ClaimRow.user_address == address.lower()).order_by(ClaimRow.id)
            )
            return [_claim_from_row(row) for row in result.scalars()]

    async def get_all_claims(self) -> Dict[str, List[ClaimRecord]]:
        claims: Dict[str, List[ClaimRecord]] = {}
        async with self.db.session_factory() as session:
            result = await session.execute(select(ClaimRow).order_by(ClaimRow.id))
            for row in result.scalars():
                claims.setdefault(row.user_address, []).append(_claim_from_row(row))
        return claims


class SQLTokenRegistry(TokenRegistry):
    def __init__(self, db: Database):
        self.db = db

    async def add_token(self, address: str, info: TokenInfo) -> None:
        async with self.db.session_factory() as session:
            await session.merge(TokenRow(
                address=address.lower(),
                symbol=info.symbol,
                name=info.name,
                amount=info.amount,
                decimals=info.decimals,
                is_active=info.is_active,
                added_at=info.added_at,
                added_by=info.added_by,
            ))
            await session.commit()

    async def get_token(self, address: str) -> Optional[TokenInfo]:
        async with self.db.session_factory() as session:
            row = await session.get(TokenRow, address.lower())
            return _token_from_row(row) if row else None

    async def remove_token(self, address: str) -> Optional[TokenInfo]:
        async with self.db.session_factory() as session:
            row = await session.get(TokenRow, address.lower())
            if row is None:
                return None
            info = _token_from_row(row)
            await session.delete(row)
            await session.commit()
            return info

    async def list_tokens(self) -> List[Tuple[str, TokenInfo]]:
        async with self.db.session_factory() as session:
            result = await session.execute(select(TokenRow).order_by(TokenRow.added_at, TokenRow.address))
            return [(row.address, _token_from_row(row)) for row in result.scalars()]


class SQLPauseState(PauseStateStore):
    def __init__(self, db: Database):
        self.db = db

    async def get(self) -> PauseStatus:
        async with self.db.session_factory() as session:
            row = await session.get(FaucetStateRow, STATE_ROW_ID)
            if row is None:
                return PauseStatus()
            return PauseStatus(
                is_paused=row.is_paused,
                reason=row.reason,
                paused_at=row.paused_at,
                paused_by=row.paused_by,
            )

    async def set(self, status: PauseStatus) -> None:
        async with self.db.session_factory() as session:
            await session.merge(FaucetStateRow(
                id=STATE_ROW_ID,
                is_paused=status.is_paused,
                reason=status.reason,
                paused_at=status.paused_at,
                paused_by=status.paused_by,
            ))
            await session.commit()
