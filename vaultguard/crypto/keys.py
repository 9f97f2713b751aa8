"""
VaultGuard Crypto Keys Module

secp256k1 keys of owners, guardians, relayers and multisig signers, and the
65-byte ``r ‖ s ‖ v`` signatures they put into relayed requests.
"""

import secrets

from eth_keys.datatypes import PrivateKey as EthPrivateKey, PublicKey as EthPublicKey
from eth_keys.datatypes import Signature as EthSignature
from eth_keys.exceptions import BadSignature, ValidationError as EthKeysValidationError
from eth_utils import decode_hex

from ..constants import SIGNATURE_LENGTH
from ..exceptions import InvalidKeyError, InvalidSignatureError


class PrivateKey:
    """Signing key of one account. Wraps an eth-keys ``PrivateKey``."""

    def __init__(self, key_bytes: bytes):
        """
        Raises:
            InvalidKeyError: Wrong length or outside the curve order
        """
        if len(key_bytes) != 32:
            raise InvalidKeyError(f"Private key must be 32 bytes, got {len(key_bytes)}")
        try:
            self._key = EthPrivateKey(key_bytes)
        except EthKeysValidationError as e:
            raise InvalidKeyError(f"Invalid private key: {e}") from e

    @classmethod
    def from_hex(cls, hex_str: str) -> "PrivateKey":
        return cls(decode_hex(hex_str))

    @classmethod
    def from_int(cls, key_int: int) -> "PrivateKey":
        """Deterministic key, handy for fixtures and scripted deployments."""
        return cls(key_int.to_bytes(32, 'big'))

    @classmethod
    def generate(cls) -> "PrivateKey":
        return cls(secrets.token_bytes(32))

    @property
    def public_key(self) -> "PublicKey":
        return PublicKey(self._key.public_key)

    @property
    def address(self) -> str:
        """Checksum address controlled by this key."""
        return self.public_key.to_address()

    def to_hex(self) -> str:
        return '0x' + self._key.to_bytes().hex()

    def sign_msg_hash(self, msg_hash: bytes) -> "Signature":
        if len(msg_hash) != 32:
            raise ValueError(f"Message hash must be 32 bytes, got {len(msg_hash)}")
        return Signature(self._key.sign_msg_hash(msg_hash))

    def __eq__(self, other) -> bool:
        return isinstance(other, PrivateKey) and self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key.to_bytes())

    def __repr__(self) -> str:
        # never print key material
        return f"PrivateKey({self.address})"


class PublicKey:

    def __init__(self, key: EthPublicKey):
        if not isinstance(key, EthPublicKey):
            raise InvalidKeyError(f"Invalid public key type: {type(key)}")
        self._key = key

    @classmethod
    def recover(cls, msg_hash: bytes, signature: "Signature") -> "PublicKey":
        """
        Public key that produced ``signature`` over ``msg_hash``.

        Raises:
            InvalidSignatureError: Nothing can be recovered from the signature
        """
        try:
            return cls(signature.eth_signature.recover_public_key_from_msg_hash(msg_hash))
        except (BadSignature, EthKeysValidationError, ValueError) as e:
            raise InvalidSignatureError(f"Cannot recover signer: {e}") from e

    def to_bytes(self) -> bytes:
        return self._key.to_bytes()

    def to_address(self) -> str:
        from .address import public_key_to_address
        return public_key_to_address(self)

    def __eq__(self, other) -> bool:
        return isinstance(other, PublicKey) and self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key.to_bytes())


class Signature:
    """
    Recoverable ECDSA signature.

    Serialized as ``r[32] ‖ s[32] ‖ v[1]`` with ``v`` in {27, 28}, which is
    the layout wallets concatenate into a relayed request's signature blob.
    """

    def __init__(self, signature: EthSignature):
        self.eth_signature = signature

    @classmethod
    def from_bytes(cls, sig_bytes: bytes) -> "Signature":
        """
        Raises:
            InvalidSignatureError: Wrong length or out-of-range components
        """
        if len(sig_bytes) != SIGNATURE_LENGTH:
            raise InvalidSignatureError(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(sig_bytes)}"
            )
        r = int.from_bytes(sig_bytes[:32], 'big')
        s = int.from_bytes(sig_bytes[32:64], 'big')
        v = sig_bytes[64]
        if v >= 27:
            v -= 27
        try:
            return cls(EthSignature(vrs=(v, r, s)))
        except EthKeysValidationError as e:
            raise InvalidSignatureError(f"Invalid signature components: {e}") from e

    def to_bytes(self) -> bytes:
        sig = self.eth_signature
        return sig.r.to_bytes(32, 'big') + sig.s.to_bytes(32, 'big') + bytes([sig.v + 27])

    def __repr__(self) -> str:
        return f"Signature(0x{self.to_bytes().hex()[:16]}...)"
