"""
VaultGuard Crypto Signing Module

personal_sign signatures over request digests, and the concatenated
signature blobs carried by relayed and multisig requests.
"""

from typing import Iterable, List

from ..constants import SIGNATURE_LENGTH
from ..exceptions import InvalidSignatureError
from .address import address_to_int
from .hashing import keccak256
from .keys import PrivateKey, PublicKey, Signature


def eth_signed_message_hash(msg_hash: bytes) -> bytes:
    """keccak256("\\x19Ethereum Signed Message:\\n32" ‖ hash), as ``personal_sign`` does."""
    prefix = b'\x19Ethereum Signed Message:\n' + str(len(msg_hash)).encode()
    return keccak256(prefix + msg_hash)


def sign_message(private_key: PrivateKey, msg_hash: bytes) -> Signature:
    return private_key.sign_msg_hash(eth_signed_message_hash(msg_hash))


def recover_signer(msg_hash: bytes, signature: Signature) -> str:
    """
    Recover the address that personal-signed ``msg_hash``.

    Returns:
        Checksum address of the signer

    Raises:
        InvalidSignatureError: The signature does not recover to any key
    """
    return PublicKey.recover(eth_signed_message_hash(msg_hash), signature).to_address()


def split_signatures(blob: bytes) -> List[Signature]:
    """
    Split concatenated 65-byte signatures.

    Raises:
        InvalidSignatureError: If the blob is not a whole number of signatures
    """
    if len(blob) % SIGNATURE_LENGTH != 0:
        raise InvalidSignatureError(
            f"Signature blob length {len(blob)} is not a multiple of {SIGNATURE_LENGTH}"
        )
    return [
        Signature.from_bytes(blob[i:i + SIGNATURE_LENGTH])
        for i in range(0, len(blob), SIGNATURE_LENGTH)
    ]


def sign_sorted(msg_hash: bytes, keys: Iterable[PrivateKey]) -> bytes:
    """
    Personal-sign ``msg_hash`` with every key and concatenate the signatures
    ordered by ascending signer address.
    """
    ordered = sorted(keys, key=lambda k: address_to_int(k.address))
    return b''.join(sign_message(k, msg_hash).to_bytes() for k in ordered)
