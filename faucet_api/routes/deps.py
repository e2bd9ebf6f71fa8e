from typing import Callable

from fastapi import Request

from faucet_api.config.settings import Settings
from faucet_api.services.contract import ContractClient
from faucet_api.services.executor import ClaimExecutor
from faucet_api.services.nonces import NonceStore
from faucet_api.stores.factory import Stores


# Services are built once by the app factory and shared through app.state.

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_contract(request: Request) -> ContractClient:
    return request.app.state.contract


def get_stores(request: Request) -> Stores:
    return request.app.state.stores


def get_executor(request: Request) -> ClaimExecutor:
    return request.app.state.executor


def get_nonces(request: Request) -> NonceStore:
    return request.app.state.nonces


def get_clock(request: Request) -> Callable[[], float]:
    return request.app.state.clock
