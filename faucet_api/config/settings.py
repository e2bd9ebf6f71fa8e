import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load .env file from the project root
project_root = Path(__file__).resolve().parent.parent.parent
load_dotenv(project_root / ".env")

# Sepolia test tokens served when FAUCET_TOKENS is not set.
DEFAULT_TOKENS: List[Dict] = [
    {"address": "0xd82183033422079e6281f350566Da971c13Cb1e7", "symbol": "USDT", "name": "Tether USD", "amount": "100", "decimals": 6},
    {"address": "0xD4547d4d0854D57f0b10A62BfB49261Ba133c46b", "symbol": "USDC", "name": "USD Coin", "amount": "100", "decimals": 6},
    {"address": "0xb748db3348b98E6c2A2dE268ed25b73f78490D25", "symbol": "DAI", "name": "Dai Stablecoin", "amount": "100", "decimals": 18},
    {"address": "0x395Eb6F0cAf9Df14a245A30e5fd685A1a13548c7", "symbol": "WETH", "name": "Wrapped Ethereum", "amount": "0.1", "decimals": 18},
    {"address": "0x02632700270A2c8419BCcAcE8196b7738F80c602", "symbol": "LINK", "name": "Chainlink", "amount": "10", "decimals": 18},
    {"address": "0x4c55c5a8D00079d678996431b8CD01B0b3aD2b0E", "symbol": "UNI", "name": "Uniswap", "amount": "5", "decimals": 18},
]

REQUIRED_VARS = [
    "SEPOLIA_RPC_URL",
    "PRIVATE_KEY",
    "FAUCET_CONTRACT_ADDRESS",
    "JWT_SECRET",
    "ADMIN_ADDRESS",
]


def _env_bool(env: Dict[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None or value == "":
        return default
    return value.strip().lower() == "true"


def _env_int(env: Dict[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}")


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    private_key: str
    contract_address: str
    jwt_secret: str
    admin_address: str
    host: str = "0.0.0.0"
    port: int = 3001
    node_env: str = "development"
    api_version: str = "v1"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    rate_limit_enabled: bool = True
    rate_limit_max: int = 10
    rate_limit_window: int = 900
    daily_claim_limit: int = 0
    jwt_expires_minutes: int = 24 * 60
    helmet_enabled: bool = True
    log_level: str = "INFO"
    log_file: Optional[str] = None
    eth_amount: str = "0.1"
    seed_tokens: List[Dict] = field(default_factory=lambda: list(DEFAULT_TOKENS))
    seed_source: str = "built-in defaults"
    database_url: Optional[str] = None
    tx_confirmation_timeout: int = 300
    tx_poll_interval: float = 2.0

    @property
    def api_prefix(self) -> str:
        return f"/api/{self.api_version}"

    @property
    def is_production(self) -> bool:
        return self.node_env == "production"

    @property
    def rate_limit(self) -> str:
        return f"{self.rate_limit_max} per {self.rate_limit_window} seconds"


def load_settings(env: Optional[Dict[str, str]] = None) -> Settings:
    """
    Build Settings from the environment (or a mapping, for tests).
    Raises ValueError naming every missing required variable.
    """
    if env is None:
        env = dict(os.environ)

    missing = [key for key in REQUIRED_VARS if not env.get(key)]
    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

    seed_tokens = list(DEFAULT_TOKENS)
    seed_source = "built-in defaults"
    raw_tokens = env.get("FAUCET_TOKENS")
    if raw_tokens:
        try:
            seed_tokens = json.loads(raw_tokens)
        except json.JSONDecodeError as e:
            raise ValueError(f"FAUCET_TOKENS is not valid JSON: {e}")
        if not isinstance(seed_tokens, list):
            raise ValueError("FAUCET_TOKENS must be a JSON list of token objects")
        seed_source = "FAUCET_TOKENS"

    origins = env.get("CORS_ORIGIN", "http://localhost:3000")

    return Settings(
        rpc_url=env["SEPOLIA_RPC_URL"],
        private_key=env["PRIVATE_KEY"],
        contract_address=env["FAUCET_CONTRACT_ADDRESS"],
        jwt_secret=env["JWT_SECRET"],
        admin_address=env["ADMIN_ADDRESS"],
        host=env.get("HOST", "0.0.0.0"),
        port=_env_int(env, "PORT", 3001),
        node_env=env.get("NODE_ENV", "development"),
        api_version=env.get("API_VERSION", "v1"),
        cors_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        rate_limit_enabled=_env_bool(env, "RATE_LIMIT_ENABLED", True),
        rate_limit_max=_env_int(env, "RATE_LIMIT_MAX", 10),
        rate_limit_window=_env_int(env, "RATE_LIMIT_WINDOW", 900),
        daily_claim_limit=_env_int(env, "DAILY_CLAIM_LIMIT", 0),
        jwt_expires_minutes=_env_int(env, "JWT_EXPIRES_MINUTES", 24 * 60),
        helmet_enabled=_env_bool(env, "HELMET_ENABLED", True),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        log_file=env.get("LOG_FILE") or None,
        eth_amount=env.get("ETH_AMOUNT", "0.1"),
        seed_tokens=seed_tokens,
        seed_source=seed_source,
        database_url=env.get("DATABASE_URL") or None,
        tx_confirmation_timeout=_env_int(env, "TX_CONFIRMATION_TIMEOUT", 300),
        tx_poll_interval=float(env.get("TX_POLL_INTERVAL", "2")),
    )
