"""
VaultGuard Crypto Module

secp256k1 keys and signatures, keccak hashing, checksum addresses,
contract address derivation and ABI call encoding.
"""

from .hashing import keccak256, solidity_keccak256, hash_to_hex
from .keys import PrivateKey, PublicKey, Signature
from .signing import (
    eth_signed_message_hash,
    sign_message,
    recover_signer,
    split_signatures,
    sign_sorted,
)
from .address import (
    public_key_to_address,
    to_checksum_address,
    address_to_bytes,
    address_to_int,
    is_zero_address,
    require_non_null,
    short_address,
)
from .contract import (
    generate_contract_address,
    generate_contract_address_create2,
    compute_function_selector,
    encode_function_call,
    split_function_call,
    decode_function_args,
    parse_signature_types,
    ascii_to_bytes32,
    bytes32_to_ascii,
)

__all__ = [
    'keccak256',
    'solidity_keccak256',
    'hash_to_hex',
    'PrivateKey',
    'PublicKey',
    'Signature',
    'eth_signed_message_hash',
    'sign_message',
    'recover_signer',
    'split_signatures',
    'sign_sorted',
    'public_key_to_address',
    'to_checksum_address',
    'address_to_bytes',
    'address_to_int',
    'is_zero_address',
    'require_non_null',
    'short_address',
    'generate_contract_address',
    'generate_contract_address_create2',
    'compute_function_selector',
    'encode_function_call',
    'split_function_call',
    'decode_function_args',
    'parse_signature_types',
    'ascii_to_bytes32',
    'bytes32_to_ascii',
]
