import secrets

from web3 import Web3

from .errors import InvalidArgument

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(address: str, label: str = "address") -> str:
    """Return the checksum form of ``address`` or raise InvalidArgument."""
    if not isinstance(address, str) or not Web3.is_address(address.strip()):
        raise InvalidArgument(f"Invalid {label}: {address!r}")
    return Web3.to_checksum_address(address.strip())


def is_zero_address(address: str) -> bool:
    return address.lower() == ZERO_ADDRESS


def random_address() -> str:
    return Web3.to_checksum_address("0x" + secrets.token_hex(20))
