import logging
import time
from typing import Callable, Optional

from web3.constants import ADDRESS_ZERO

from faucet_api.models.records import ClaimRecord, ClaimResult, Eligibility, TokenInfo
from faucet_api.services.contract import ContractClient, format_units
from faucet_api.services.eligibility import EligibilityChecker
from faucet_api.services.limits import DailyClaimLimiter
from faucet_api.stores.base import ClaimHistoryStore
from faucet_api.utils.errors import BlacklistedAddress, CooldownActive, TokenNotSupported

logger = logging.getLogger(__name__)


def _refuse(address: str, eligibility: Eligibility) -> None:
    if eligibility.can_claim:
        return
    logger.warning(f"Claim refused for {address}: {eligibility.reason}")
    if eligibility.reason == "blacklisted":
        raise BlacklistedAddress()
    if eligibility.reason == "inactive":
        raise TokenNotSupported()
    raise CooldownActive(eligibility.remaining_seconds or 0)


class ClaimExecutor:
    """
    Runs a claim end to end: re-check eligibility against the contract,
    submit, wait for confirmation, then append to the claim history.

    A claim that was submitted is never rolled back, whatever happens to
    the HTTP request that triggered it.
    """

    def __init__(
        self,
        contract: ContractClient,
        checker: EligibilityChecker,
        history: ClaimHistoryStore,
        daily_limiter: Optional[DailyClaimLimiter] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.contract = contract
        self.checker = checker
        self.history = history
        self.daily_limiter = daily_limiter
        self.clock = clock

    def _check_daily_limit(self, recipient: str) -> None:
        if self.daily_limiter is not None:
            self.daily_limiter.check(recipient)

    async def claim_eth(self, recipient: str) -> ClaimResult:
        _refuse(recipient, await self.checker.check_eth(recipient))
        self._check_daily_limit(recipient)

        amount = await self.contract.eth_amount()
        logger.info(f"Submitting ETH claim of {amount} for {recipient}")
        tx_hash = await self.contract.submit_eth_claim(recipient)
        return await self._record(recipient, ADDRESS_ZERO, "ETH", amount, tx_hash)

    async def claim_token(self, recipient: str, token: str, token_info: Optional[TokenInfo] = None) -> ClaimResult:
        _refuse(recipient, await self.checker.check_token(recipient, token))
        self._check_daily_limit(recipient)

        decimals = token_info.decimals if token_info else 18
        symbol = token_info.symbol if token_info else ""
        on_chain = await self.contract.token_info(token)
        amount = format_units(on_chain.amount, decimals)
        logger.info(f"Submitting {symbol or token} claim of {amount} for {recipient}")
        tx_hash = await self.contract.submit_token_claim(recipient, token)
        return await self._record(recipient, token.lower(), symbol, amount, tx_hash)

    async def _record(self, recipient: str, token: str, symbol: str, amount: str, tx_hash: str) -> ClaimResult:
        timestamp = int(self.clock() * 1000)
        await self.history.add_claim(recipient, ClaimRecord(
            timestamp=timestamp,
            token_address=token,
            amount=amount,
            tx_hash=tx_hash,
        ))
        if self.daily_limiter is not None:
            self.daily_limiter.record(recipient)
        logger.info(f"Claim confirmed for {recipient}: {amount} {symbol} ({tx_hash})")
        return ClaimResult(
            tx_hash=tx_hash,
            recipient=recipient,
            token_address=token,
            symbol=symbol,
            amount=amount,
            timestamp=timestamp,
        )
