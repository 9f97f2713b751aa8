"""
VaultGuard Crypto Address Module

Ethereum-style addresses with EIP-55 checksum.
"""

from typing import Union

from eth_utils import is_address, to_checksum_address as _to_checksum_address

from ..constants import ZERO_ADDRESS
from ..exceptions import NullAddressError
from .hashing import keccak256


def public_key_to_address(public_key) -> str:
    """
    Derive address from public key: last 20 bytes of keccak256(pubkey).

    Args:
        public_key: PublicKey instance or 64-byte uncompressed key

    Returns:
        Checksum address
    """
    if hasattr(public_key, 'to_bytes'):
        pub_bytes = public_key.to_bytes()
    else:
        pub_bytes = public_key

    if len(pub_bytes) == 65 and pub_bytes[0] == 0x04:
        pub_bytes = pub_bytes[1:]

    return to_checksum_address(keccak256(pub_bytes)[-20:])


def to_checksum_address(address: Union[str, bytes]) -> str:
    """Normalize a hex string or 20 raw bytes to its EIP-55 checksum form."""
    if isinstance(address, bytes):
        if len(address) != 20:
            raise ValueError(f"Address must be 20 bytes, got {len(address)}")
        address = '0x' + address.hex()
    if not is_address(address):
        raise ValueError(f"Invalid address: {address}")
    return _to_checksum_address(address)


def address_to_bytes(address: str) -> bytes:
    """Get the raw 20 bytes of an address."""
    return bytes.fromhex(to_checksum_address(address)[2:])


def address_to_int(address: str) -> int:
    """Numeric value of an address, used for signer ordering."""
    return int.from_bytes(address_to_bytes(address), 'big')


def is_zero_address(address: str) -> bool:
    return address is None or to_checksum_address(address) == ZERO_ADDRESS


def require_non_null(address: str, reason: str, error=NullAddressError) -> str:
    """Return the checksummed address, raising ``error`` if it is the zero address."""
    if is_zero_address(address):
        raise error(reason)
    return to_checksum_address(address)


def short_address(address: str) -> str:
    """Abbreviated address for log lines."""
    return f"{address[:8]}…{address[-4:]}"
