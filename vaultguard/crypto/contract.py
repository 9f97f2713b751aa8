"""
Contract Address Generation and Call Encoding

CREATE / CREATE2 address derivation and ABI calldata helpers.
"""

from typing import Any, List, Sequence, Tuple

import rlp
from eth_abi import decode, encode
from eth_utils import keccak

from .address import address_to_bytes, to_checksum_address


def generate_contract_address(sender: str, nonce: int) -> str:
    """
    Generate contract address using CREATE opcode logic.

    Address = keccak256(rlp([sender, nonce]))[-20:]

    Args:
        sender: Deployer address
        nonce: Deployer nonce

    Returns:
        Contract address (checksum format)
    """
    rlp_encoded = rlp.encode([address_to_bytes(sender), nonce])
    return to_checksum_address(keccak(rlp_encoded)[-20:])


def generate_contract_address_create2(
    sender: str,
    salt: bytes,
    bytecode: bytes
) -> str:
    """
    Generate contract address using CREATE2 opcode logic.

    Address = keccak256(0xff + sender + salt + keccak256(bytecode))[-20:]

    Args:
        sender: Creating contract address
        salt: 32-byte salt
        bytecode: Contract initialization bytecode

    Returns:
        Contract address (checksum format)
    """
    if len(salt) != 32:
        raise ValueError(f"Salt must be 32 bytes, got {len(salt)}")

    data = b'\xff' + address_to_bytes(sender) + salt + keccak(bytecode)
    return to_checksum_address(keccak(data)[-20:])


def parse_signature_types(function_signature: str) -> List[str]:
    """
    Argument types of a function signature.

    E.g., "transfer(address,uint256)" -> ['address', 'uint256']
    """
    args_start = function_signature.index('(') + 1
    args_end = function_signature.rindex(')')
    arg_types_str = function_signature[args_start:args_end]
    if not arg_types_str:
        return []
    return [t.strip() for t in arg_types_str.split(',')]


def compute_function_selector(function_signature: str) -> bytes:
    """
    Compute function selector (first 4 bytes of keccak256(sig)).

    Args:
        function_signature: Function signature like "transfer(address,uint256)"

    Returns:
        4-byte function selector
    """
    return keccak(function_signature.encode('utf-8'))[:4]


def encode_function_call(function_signature: str, *args) -> bytes:
    """
    Encode function call data (selector + ABI-encoded arguments).

    Args:
        function_signature: Function signature
        *args: Function arguments

    Returns:
        Encoded call data
    """
    selector = compute_function_selector(function_signature)
    arg_types = parse_signature_types(function_signature)
    if len(arg_types) != len(args):
        raise ValueError(
            f"{function_signature} expects {len(arg_types)} arguments, got {len(args)}"
        )
    encoded_args = encode(arg_types, list(args)) if arg_types else b''
    return selector + encoded_args


def split_function_call(data: bytes) -> Tuple[bytes, bytes]:
    """
    Split call data into selector and encoded arguments.
    """
    if len(data) < 4:
        return b'', b''
    return data[:4], data[4:]


def decode_function_args(arg_types: Sequence[str], encoded_args: bytes) -> Tuple[Any, ...]:
    """Decode ABI-encoded arguments of the given types."""
    if not arg_types:
        return ()
    return tuple(decode(list(arg_types), encoded_args))


def ascii_to_bytes32(text: str) -> bytes:
    """Right-pad an ASCII string into a bytes32 value."""
    raw = text.encode('ascii')
    if len(raw) > 32:
        raise ValueError(f"'{text}' does not fit in 32 bytes")
    return raw.ljust(32, b'\x00')


def bytes32_to_ascii(value: bytes) -> str:
    return value.rstrip(b'\x00').decode('ascii')
