"""
VaultGuard Crypto Hashing Module

Keccak-256 helpers used for identifiers, signature digests and addresses.
"""

from typing import Sequence, Union

from eth_abi.packed import encode_packed
from eth_utils import keccak


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum standard).

    Args:
        data: Input bytes or hex string

    Returns:
        32-byte hash
    """
    if isinstance(data, str):
        if data.startswith('0x') or data.startswith('0X'):
            data = bytes.fromhex(data[2:])
        else:
            data = bytes.fromhex(data)
    return keccak(data)


def solidity_keccak256(types: Sequence[str], values: Sequence) -> bytes:
    """
    Keccak-256 over the tightly packed encoding of ``values``.

    Equivalent to Solidity's ``keccak256(abi.encodePacked(...))``.
    """
    return keccak(encode_packed(list(types), list(values)))


def hash_to_hex(h: bytes) -> str:
    """Convert hash bytes to a 0x-prefixed hex string."""
    return '0x' + h.hex()
