import logging
import time
from dataclasses import dataclass
from typing import Optional

from web3.constants import ADDRESS_ZERO

from faucet_api.config.settings import Settings
from faucet_api.database import Database
from faucet_api.models.records import TokenInfo
from faucet_api.stores.base import ClaimHistoryStore, PauseStateStore, TokenRegistry
from faucet_api.stores.memory import InMemoryClaimHistory, InMemoryPauseState, InMemoryTokenRegistry
from faucet_api.stores.sql import SQLClaimHistory, SQLPauseState, SQLTokenRegistry
from faucet_api.utils.addresses import is_valid_address

logger = logging.getLogger(__name__)


@dataclass
class Stores:
    history: ClaimHistoryStore
    registry: TokenRegistry
    pause: PauseStateStore
    database: Optional[Database] = None

    async def start(self) -> None:
        if self.database is not None:
            await self.database.create_all()

    async def close(self) -> None:
        if self.database is not None:
            await self.database.dispose()


def build_stores(settings: Settings) -> Stores:
    if settings.database_url:
        db = Database(settings.database_url)
        logger.info("Using SQL stores for claim history and token registry")
        return Stores(
            history=SQLClaimHistory(db),
            registry=SQLTokenRegistry(db),
            pause=SQLPauseState(db),
            database=db,
        )

    logger.warning("DATABASE_URL not set: claim history and token registry live in memory and reset on restart")
    return Stores(
        history=InMemoryClaimHistory(),
        registry=InMemoryTokenRegistry(),
        pause=InMemoryPauseState(),
    )


async def seed_registry(registry: TokenRegistry, settings: Settings) -> int:
    """
    Register the native ETH entry and the configured seed tokens.
    Entries already present are left untouched so admin edits survive
    restarts on a durable backend. Returns the number of entries added.
    """
    now = int(time.time() * 1000)
    seeds = [{
        "address": ADDRESS_ZERO,
        "symbol": "ETH",
        "name": "Ethereum",
        "amount": settings.eth_amount,
        "decimals": 18,
    }] + list(settings.seed_tokens)

    added = 0
    for seed in seeds:
        address = seed.get("address")
        if not is_valid_address(address):
            raise ValueError(f"Invalid token address in seed list: {address!r}")
        if await registry.get_token(address) is not None:
            continue
        await registry.add_token(address, TokenInfo(
            symbol=seed["symbol"],
            name=seed["name"],
            amount=str(seed["amount"]),
            decimals=int(seed.get("decimals", 18)),
            added_at=now,
        ))
        added += 1

    logger.info(f"Token registry seeded from {settings.seed_source}: {added} new entries")
    return added
