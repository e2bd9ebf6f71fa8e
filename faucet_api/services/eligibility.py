import time
from typing import Callable

from faucet_api.models.records import Eligibility
from faucet_api.services.contract import ContractClient

ETH_COOLDOWN_SECONDS = 24 * 60 * 60


def cooldown_eligibility(last_claim: int, cooldown_seconds: int, now: int) -> Eligibility:
    """
    A zero timestamp means the address never claimed. Otherwise the claim is
    allowed once the full cooldown has elapsed.
    """
    if last_claim == 0:
        return Eligibility(can_claim=True)
    elapsed = now - last_claim
    if elapsed >= cooldown_seconds:
        return Eligibility(can_claim=True)
    return Eligibility(
        can_claim=False,
        remaining_seconds=min(cooldown_seconds - elapsed, cooldown_seconds),
        reason="cooldown",
    )


class EligibilityChecker:
    """Derives claim eligibility from the contract's state at call time."""

    def __init__(self, contract: ContractClient, clock: Callable[[], float] = time.time):
        self.contract = contract
        self.clock = clock

    def _now(self) -> int:
        return int(self.clock())

    async def check_eth(self, address: str) -> Eligibility:
        if await self.contract.is_blacklisted(address):
            return Eligibility(can_claim=False, reason="blacklisted")
        last_claim = await self.contract.last_eth_claim_timestamp(address)
        return cooldown_eligibility(last_claim, ETH_COOLDOWN_SECONDS, self._now())

    async def check_token(self, address: str, token: str) -> Eligibility:
        if await self.contract.is_blacklisted(address):
            return Eligibility(can_claim=False, reason="blacklisted")
        info = await self.contract.token_info(token)
        if not info.active:
            return Eligibility(can_claim=False, reason="inactive")
        last_claim = await self.contract.last_token_claim_timestamp(address, token)
        return cooldown_eligibility(last_claim, info.cooldown_seconds, self._now())
