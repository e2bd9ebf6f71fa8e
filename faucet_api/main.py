import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI

from faucet_api.config.log_config import configure_logging
from faucet_api.config.settings import Settings, load_settings
from faucet_api.middleware.cors import setup_cors
from faucet_api.middleware.errors import register_exception_handlers
from faucet_api.middleware.security import setup_rate_limit, setup_security_headers
from faucet_api.routes import admin, auth, faucet, health
from faucet_api.services.contract import ContractClient
from faucet_api.services.eligibility import EligibilityChecker
from faucet_api.services.executor import ClaimExecutor
from faucet_api.services.limits import DailyClaimLimiter
from faucet_api.services.nonces import NonceStore
from faucet_api.stores.factory import Stores, build_stores, seed_registry

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    contract: Optional[ContractClient] = None,
    stores: Optional[Stores] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """
    Build the API. Every collaborator can be passed in; anything omitted is
    built from the environment.
    """
    if settings is None:
        settings = load_settings()
        configure_logging(settings.log_level, settings.log_file)
    if contract is None:
        contract = ContractClient.from_settings(settings)
    if stores is None:
        stores = build_stores(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await stores.start()
        await seed_registry(stores.registry, settings)
        logger.info(f"Faucet API ready on {settings.api_prefix} ({settings.node_env})")
        yield
        await stores.close()
        logger.info("Faucet API stopped")

    app = FastAPI(title="Testnet Faucet API", version=settings.api_version, lifespan=lifespan)

    checker = EligibilityChecker(contract, clock=clock)
    daily_limiter = DailyClaimLimiter(settings.daily_claim_limit, clock=clock)
    app.state.settings = settings
    app.state.contract = contract
    app.state.stores = stores
    app.state.executor = ClaimExecutor(contract, checker, stores.history, daily_limiter, clock=clock)
    app.state.nonces = NonceStore(clock=clock)
    app.state.clock = clock
    app.state.started_at = time.monotonic()

    register_exception_handlers(app, settings.is_production)
    limiter = setup_rate_limit(app, settings)
    limiter.exempt(health.health_check)
    if settings.helmet_enabled:
        setup_security_headers(app)
    setup_cors(app, settings.cors_origins)

    # Mount routes
    prefix = settings.api_prefix
    app.include_router(health.router)
    app.include_router(health.docs_router, prefix=prefix)
    app.include_router(auth.router, prefix=f"{prefix}/auth")
    app.include_router(faucet.router, prefix=f"{prefix}/faucet")
    app.include_router(admin.router, prefix=f"{prefix}/admin")
    return app


if __name__ == "__main__":
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_file)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
