import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict

from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception
from web3.types import TxReceipt

from faucet_api.config.settings import Settings
from faucet_api.models.records import OnChainTokenInfo
from faucet_api.services.abi import ERC20_ABI, FAUCET_ABI
from faucet_api.utils.addresses import is_valid_address, to_checksum
from faucet_api.utils.errors import (
    GasEstimationFailed,
    TransactionNotConfirmed,
    TransactionReverted,
    TransactionSubmissionFailed,
)

logger = logging.getLogger(__name__)

GAS_MARGIN_PERCENT = 120


def format_units(raw: int, decimals: int) -> str:
    """Render an integer base-unit amount as a plain decimal string."""
    value = (Decimal(raw) / (Decimal(10) ** decimals)).normalize()
    return format(value, "f")


def revert_reason(error: Exception) -> str:
    # ContractLogicError carries the decoded revert string in .message
    return getattr(error, "message", None) or str(error) or error.__class__.__name__


class ContractClient:
    """
    Thin async wrapper around the faucet contract.

    web3's HTTPProvider is blocking, so every RPC round trip runs in a worker
    thread. Submissions are serialized so concurrent claims never reuse the
    signer's account nonce.
    """

    def __init__(
        self,
        w3: Web3,
        signer,
        contract,
        confirmation_timeout: float = 300,
        poll_interval: float = 2.0,
    ):
        self.w3 = w3
        self.signer = signer
        self.contract = contract
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self._submit_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContractClient":
        if not settings.rpc_url:
            raise ValueError("SEPOLIA_RPC_URL is not set")
        if not settings.private_key:
            raise ValueError("PRIVATE_KEY is not set")
        if not is_valid_address(settings.contract_address):
            raise ValueError(f"Invalid FAUCET_CONTRACT_ADDRESS: {settings.contract_address!r}")

        w3 = Web3(Web3.HTTPProvider(settings.rpc_url))
        signer = w3.eth.account.from_key(settings.private_key)
        contract = w3.eth.contract(address=to_checksum(settings.contract_address), abi=FAUCET_ABI)

        logger.info(f"Blockchain client initialized: contract {contract.address}, signer {signer.address}")
        return cls(
            w3,
            signer,
            contract,
            confirmation_timeout=settings.tx_confirmation_timeout,
            poll_interval=settings.tx_poll_interval,
        )

    @property
    def address(self) -> str:
        return self.contract.address

    async def _call(self, contract_function) -> Any:
        return await asyncio.to_thread(contract_function.call)

    # Reads

    async def is_blacklisted(self, address: str) -> bool:
        return bool(await self._call(self.contract.functions.blacklisted(to_checksum(address))))

    async def last_eth_claim_timestamp(self, address: str) -> int:
        return int(await self._call(self.contract.functions.lastEthClaimTime(to_checksum(address))))

    async def last_token_claim_timestamp(self, address: str, token: str) -> int:
        fn = self.contract.functions.lastClaimTime(to_checksum(address), to_checksum(token))
        return int(await self._call(fn))

    async def token_info(self, token: str) -> OnChainTokenInfo:
        amount, cooldown, active = await self._call(self.contract.functions.supportedTokens(to_checksum(token)))
        return OnChainTokenInfo(amount=int(amount), cooldown_seconds=int(cooldown), active=bool(active))

    async def eth_amount(self) -> str:
        wei = await self._call(self.contract.functions.ethAmount())
        return format_units(int(wei), 18)

    async def probe(self) -> Dict[str, Any]:
        """Read-only connectivity check."""
        chain_id = await asyncio.to_thread(lambda: self.w3.eth.chain_id)
        block_number = await asyncio.to_thread(lambda: self.w3.eth.block_number)
        return {
            "chainId": chain_id,
            "blockNumber": block_number,
            "ethAmount": await self.eth_amount(),
            "contract": self.address,
        }

    async def eth_balance(self) -> int:
        """Native balance held by the faucet contract, in wei."""
        return int(await asyncio.to_thread(self.w3.eth.get_balance, self.address))

    async def token_balance(self, token: str) -> Dict[str, Any]:
        """ERC-20 holdings of the faucet contract plus the token's own metadata."""
        erc20 = self.w3.eth.contract(address=to_checksum(token), abi=ERC20_ABI)
        balance = await self._call(erc20.functions.balanceOf(self.address))
        decimals = await self._call(erc20.functions.decimals())
        symbol = await self._call(erc20.functions.symbol())
        name = await self._call(erc20.functions.name())
        return {
            "address": token,
            "symbol": symbol,
            "name": name,
            "balance": str(int(balance)),
            "decimals": int(decimals),
        }

    # Writes

    async def submit_eth_claim(self, recipient: str) -> str:
        return await self._transact(self.contract.functions.claimEthFor(to_checksum(recipient)))

    async def submit_token_claim(self, recipient: str, token: str) -> str:
        fn = self.contract.functions.claimTokenFor(to_checksum(token), to_checksum(recipient))
        return await self._transact(fn)

    def _build_transaction(self, contract_function) -> dict:
        sender = self.signer.address
        try:
            estimated_gas = contract_function.estimate_gas({"from": sender})
        except (Web3Exception, ValueError) as e:
            reason = revert_reason(e)
            logger.error(f"Gas estimation failed: {reason}")
            raise GasEstimationFailed(reason)

        gas = estimated_gas * GAS_MARGIN_PERCENT // 100
        logger.info(f"Estimated gas {estimated_gas}, submitting with limit {gas}")
        return contract_function.build_transaction({
            "from": sender,
            "chainId": self.w3.eth.chain_id,
            "nonce": self.w3.eth.get_transaction_count(sender, "pending"),
            "gasPrice": self.w3.eth.gas_price,
            "gas": gas,
        })

    def _send(self, contract_function) -> tuple:
        tx = self._build_transaction(contract_function)
        signed_tx = self.w3.eth.account.sign_transaction(tx, self.signer.key)
        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except (Web3Exception, ValueError) as e:
            reason = revert_reason(e)
            logger.error(f"Transaction submission failed: {reason}")
            raise TransactionSubmissionFailed(reason)
        return tx, Web3.to_hex(tx_hash)

    async def _transact(self, contract_function) -> str:
        async with self._submit_lock:
            tx, tx_hash = await asyncio.to_thread(self._send, contract_function)
        logger.info(f"Transaction sent: {tx_hash}")

        receipt = await self.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] != 1:
            reason = await asyncio.to_thread(self._replay_for_reason, tx, receipt["blockNumber"])
            logger.error(f"Transaction {tx_hash} reverted: {reason}")
            raise TransactionReverted(tx_hash, reason)

        logger.info(f"Transaction confirmed: {tx_hash} (block {receipt['blockNumber']})")
        return tx_hash

    def _replay_for_reason(self, tx: dict, block_number: int):
        call = {"from": tx["from"], "to": tx["to"], "data": tx["data"]}
        try:
            self.w3.eth.call(call, block_identifier=block_number)
        except (Web3Exception, ValueError) as e:
            return revert_reason(e)
        return None

    async def wait_for_transaction_receipt(self, tx_hash: str) -> TxReceipt:
        """
        Poll for a transaction receipt until the confirmation timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirmation_timeout
        while loop.time() < deadline:
            try:
                receipt = await asyncio.to_thread(self.w3.eth.get_transaction_receipt, tx_hash)
                if receipt is not None:
                    return receipt
            except TransactionNotFound:
                pass
            except (Web3Exception, ValueError, OSError) as e:
                logger.warning(f"Receipt lookup for {tx_hash} failed, retrying: {e}")
            await asyncio.sleep(self.poll_interval)
        raise TransactionNotConfirmed(tx_hash, self.confirmation_timeout)
