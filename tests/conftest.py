from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_account import Account
from fastapi.testclient import TestClient

from faucet_api.config.settings import Settings
from faucet_api.main import create_app
from faucet_api.models.records import OnChainTokenInfo
from faucet_api.stores.factory import build_stores
from faucet_api.utils.auth import create_access_token

# Well-known development keys; never funded on a real network.
ADMIN_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
USER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
USDT = "0xd82183033422079e6281f350566Da971c13Cb1e7"
ETH_TX = "0x" + "ab" * 32
TOKEN_TX = "0x" + "cd" * 32
START_TIME = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> Settings:
    values = dict(
        rpc_url="http://localhost:8545",
        private_key=ADMIN_KEY,
        contract_address=CONTRACT_ADDRESS,
        jwt_secret="test-secret",
        admin_address=Account.from_key(ADMIN_KEY).address,
        rate_limit_enabled=False,
    )
    values.update(overrides)
    return Settings(**values)


def make_contract(clock: FakeClock) -> MagicMock:
    """
    Stand-in for ContractClient. Submissions stamp the last-claim time the
    way the faucet contract does, so cooldowns behave realistically.
    """
    contract = MagicMock()
    contract.address = CONTRACT_ADDRESS
    contract.is_blacklisted = AsyncMock(return_value=False)
    contract.last_eth_claim_timestamp = AsyncMock(return_value=0)
    contract.last_token_claim_timestamp = AsyncMock(return_value=0)
    contract.token_info = AsyncMock(return_value=OnChainTokenInfo(
        amount=100 * 10 ** 6, cooldown_seconds=24 * 60 * 60, active=True,
    ))
    contract.eth_amount = AsyncMock(return_value="0.1")
    contract.eth_balance = AsyncMock(return_value=5 * 10 ** 18)

    async def token_balance(token):
        return {"address": token, "symbol": "USDT", "name": "Tether USD", "balance": "1000000000", "decimals": 6}

    contract.token_balance = AsyncMock(side_effect=token_balance)
    contract.probe = AsyncMock(return_value={
        "chainId": 11155111, "blockNumber": 123, "ethAmount": "0.1", "contract": CONTRACT_ADDRESS,
    })

    async def submit_eth_claim(recipient):
        contract.last_eth_claim_timestamp.return_value = int(clock())
        return ETH_TX

    async def submit_token_claim(recipient, token):
        contract.last_token_claim_timestamp.return_value = int(clock())
        return TOKEN_TX

    contract.submit_eth_claim = AsyncMock(side_effect=submit_eth_claim)
    contract.submit_token_claim = AsyncMock(side_effect=submit_token_claim)
    return contract


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def contract(clock):
    return make_contract(clock)


@pytest.fixture
def stores(settings):
    return build_stores(settings)


@pytest.fixture
def app(settings, contract, stores, clock):
    return create_app(settings, contract=contract, stores=stores, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_account():
    return Account.from_key(USER_KEY)


@pytest.fixture
def admin_headers(settings):
    token = create_access_token(settings, settings.admin_address, True)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(settings, user_account):
    token = create_access_token(settings, user_account.address, False)
    return {"Authorization": f"Bearer {token}"}
