import re
from typing import Optional

from web3 import Web3
from web3.constants import ADDRESS_ZERO

from faucet_api.utils.errors import InvalidAddress

ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")


def is_valid_address(address: Optional[str]) -> bool:
    return bool(address) and bool(ADDRESS_PATTERN.fullmatch(address))


def normalize_address(address: Optional[str]) -> str:
    """Validate and lowercase an address, raising InvalidAddress otherwise."""
    if not is_valid_address(address):
        raise InvalidAddress()
    return address.lower()


def to_checksum(address: str) -> str:
    return Web3.to_checksum_address(address.lower())


def is_native(token_address: Optional[str]) -> bool:
    return not token_address or token_address.lower() == ADDRESS_ZERO
