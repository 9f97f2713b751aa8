"""
Relayer Module

Meta-transaction support. A third party (the relayer) submits calldata for
one of the module's methods together with the signatures of the principals
that method requires. The module:

  1. checks that the calldata targets itself and the given wallet
  2. checks the number of signatures and the replay guard
  3. recovers the signers and validates them against the method's policy
  4. dispatches the call as if the principals had made it directly
  5. refunds the relayer out of the wallet

All five steps run in one atomic scope: a failed action leaves the nonce
unconsumed and no refund is paid.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..config.loader import RelayConfig
from ..constants import ETH_TOKEN
from ..crypto.address import address_to_int, is_zero_address, short_address, to_checksum_address
from ..crypto.contract import encode_function_call
from ..crypto.hashing import hash_to_hex, solidity_keccak256
from ..crypto.keys import PrivateKey
from ..crypto.signing import recover_signer, sign_message, split_signatures
from ..exceptions import ContractCallError, RelayError, ReplayDetectedError, UnauthorizedError
from ..ledger.contract import external
from ..logger import get_logger
from .base import BaseModule
from .guardian_utils import match_guardian

logger = get_logger(__name__)


# Owner signature policies for ``validate_signers``
OWNER_REQUIRED = "required"
OWNER_OPTIONAL = "optional"
OWNER_DISALLOWED = "disallowed"


@dataclass
class RelayResult:
    """Outcome of a relayed call."""
    sign_hash: bytes
    return_value: Any
    refund_amount: int
    refund_token: str
    refund_address: str

    def to_dict(self) -> dict:
        return {
            "signHash": hash_to_hex(self.sign_hash),
            "refundAmount": str(self.refund_amount),
            "refundToken": self.refund_token,
            "refundAddress": self.refund_address,
        }


def ceil_half(n: int) -> int:
    return math.ceil(n / 2)


class RelayerModule(BaseModule):
    """Module whose methods can be reached through signed relayed requests."""

    def __init__(
        self,
        ledger,
        registry,
        guardian_storage=None,
        *,
        swap_network=None,
        relay_config: Optional[RelayConfig] = None,
        name: str = None,
        address: str = None,
    ):
        super().__init__(ledger, registry, guardian_storage, name=name, address=address)
        self.swap_network = swap_network
        self.relay_config = relay_config or RelayConfig()

    # ── Signature policy (overridden per module) ──────────────────────

    def get_required_signatures(self, wallet: str, method: str, args: Tuple[Any, ...]) -> int:
        """Number of signatures ``method`` needs; 0 means anyone may relay it."""
        return 1

    def validate_signatures(
        self, wallet: str, method: str, args: Tuple[Any, ...], signers: Sequence[str]
    ) -> bool:
        return self.validate_signers(wallet, signers, OWNER_REQUIRED)

    def validate_signers(self, wallet: str, signers: Sequence[str], owner_policy: str) -> bool:
        """
        Check an ordered signer list against the owner and the guardians.

        The owner, when present, signs first. Every other signer must
        authorise a distinct guardian and signers are strictly ascending.
        """
        owner = self.owner_of(wallet)
        guardians = self.guardian_storage.get_guardians(wallet) if self.guardian_storage else ()
        last_signer = 0
        for i, signer in enumerate(signers):
            if i == 0 and owner_policy in (OWNER_REQUIRED, OWNER_OPTIONAL):
                if signer == owner:
                    continue
                if owner_policy == OWNER_REQUIRED:
                    return False
            if address_to_int(signer) <= last_signer:
                return False
            last_signer = address_to_int(signer)
            matched, guardians = match_guardian(self.ledger, guardians, signer)
            if not matched:
                return False
        return True

    # ── Replay guard ──────────────────────────────────────────────────

    def get_nonce(self, wallet: str) -> int:
        return self._load(("nonce", to_checksum_address(wallet)), 0)

    def is_executed(self, wallet: str, sign_hash: bytes) -> bool:
        return self._load(("executed", to_checksum_address(wallet), sign_hash), False)

    def _check_and_update_uniqueness(
        self, wallet: str, nonce: int, sign_hash: bytes, required: int
    ) -> None:
        if required > 0:
            if nonce <= self.get_nonce(wallet):
                raise ReplayDetectedError("RM: Duplicate request")
            self._store(("nonce", wallet), nonce)
        else:
            if self.is_executed(wallet, sign_hash):
                raise ReplayDetectedError("RM: Duplicate request")
            self._store(("executed", wallet, sign_hash), True)

    # ── Hashing ───────────────────────────────────────────────────────

    def get_sign_hash(
        self,
        wallet: str,
        data: bytes,
        nonce: int,
        gas_price: int = 0,
        gas_limit: Optional[int] = None,
        refund_token: str = ETH_TOKEN,
    ) -> bytes:
        """
        keccak256(0x19 ‖ 0x00 ‖ module ‖ wallet ‖ 0 ‖ data ‖ nonce ‖ gasPrice ‖ gasLimit ‖ refundToken)
        """
        if gas_limit is None:
            gas_limit = self.relay_config.default_gas_limit
        return solidity_keccak256(
            ["bytes1", "bytes1", "address", "address", "uint256", "bytes",
             "uint256", "uint256", "uint256", "address"],
            [b"\x19", b"\x00", self.address, to_checksum_address(wallet), 0, data,
             nonce, gas_price, gas_limit, to_checksum_address(refund_token)],
        )

    # ── Execution ─────────────────────────────────────────────────────

    def _decode_relayed(self, wallet: str, data: bytes) -> Tuple[str, Tuple[Any, ...]]:
        try:
            method, args = self.decode_call(data)
        except ContractCallError as e:
            raise RelayError(f"RM: {e.reason}") from e
        if method == "execute":
            raise RelayError("RM: cannot relay execute()")
        if not args or to_checksum_address(args[0]) != wallet:
            raise RelayError("RM: relayed data must target the wallet")
        return method, args

    @external("execute(address,bytes,uint256,bytes,uint256,uint256,address,address)")
    def execute(
        self,
        caller: str,
        wallet: str,
        data: bytes,
        nonce: int,
        signatures: bytes = b"",
        gas_price: int = 0,
        gas_limit: Optional[int] = None,
        refund_token: str = ETH_TOKEN,
        refund_address: Optional[str] = None,
    ) -> RelayResult:
        """
        Execute a signed request on behalf of the wallet's principals.

        Args:
            caller: Relayer submitting the request
            wallet: Target wallet
            data: Calldata of one of this module's methods
            nonce: Replay-protection nonce (must exceed the last one for signed requests)
            signatures: Concatenated 65-byte signatures
            gas_price: Price per cost unit paid back to the relayer (0 = no refund)
            gas_limit: Cap on the charged cost units
            refund_token: Asset the refund is paid in
            refund_address: Refund recipient, the relayer by default

        Raises:
            UnauthorizedError: Wrong number of signatures or invalid signers
            ReplayDetectedError: Request already consumed
        """
        wallet = to_checksum_address(wallet)
        refund_token = to_checksum_address(refund_token)
        if gas_limit is None:
            gas_limit = self.relay_config.default_gas_limit
        if not refund_address or is_zero_address(refund_address):
            refund_address = caller
        refund_address = to_checksum_address(refund_address)

        with self.ledger.atomic():
            if not self._wallet(wallet).authorised(self.address):
                raise UnauthorizedError("RM: module not authorised on the wallet")
            method, args = self._decode_relayed(wallet, data)

            required = self.get_required_signatures(wallet, method, args)
            sigs = split_signatures(signatures)
            if len(sigs) != required:
                raise UnauthorizedError("RM: Wrong number of signatures")

            sign_hash = self.get_sign_hash(wallet, data, nonce, gas_price, gas_limit, refund_token)
            self._check_and_update_uniqueness(wallet, nonce, sign_hash, required)

            signers = [recover_signer(sign_hash, sig) for sig in sigs]
            if required > 0 and not self.validate_signatures(wallet, method, args, signers):
                raise UnauthorizedError("RM: Invalid signatures")

            return_value = self.handle_call(self.address, data)

            refund_amount = self._refund(
                wallet, len(data), required, gas_price, gas_limit, refund_token, refund_address
            )
            self.emit("TransactionExecuted", wallet=wallet, success=True, sign_hash=sign_hash)

        logger.info(
            f"Relayed {method} for {short_address(wallet)} via {self.name} "
            f"(signers={len(signers)}, refund={refund_amount})"
        )
        return RelayResult(sign_hash, return_value, refund_amount, refund_token, refund_address)

    # ── Refund ────────────────────────────────────────────────────────

    def relay_cost(self, data_length: int, signatures: int, gas_limit: int) -> int:
        """Deterministic cost units of a relayed call, capped at ``gas_limit``."""
        cfg = self.relay_config
        used = cfg.base_gas + cfg.gas_per_byte * data_length + cfg.gas_per_signature * signatures
        return min(used, gas_limit)

    def _charge_refund(self, wallet: str, ether_amount: int, required: int) -> None:
        """Hook for modules that account refunds against a spending policy."""

    def _refund(
        self,
        wallet: str,
        data_length: int,
        required: int,
        gas_price: int,
        gas_limit: int,
        refund_token: str,
        refund_address: str,
    ) -> int:
        # unsigned requests are open to anyone and pay nothing
        if gas_price == 0 or required == 0:
            return 0
        cost = self.relay_cost(data_length, required, gas_limit) * gas_price
        self._charge_refund(wallet, cost, required)

        if refund_token == ETH_TOKEN:
            amount = cost
            self._invoke_wallet(wallet, refund_address, amount)
        else:
            if self.swap_network is None:
                raise RelayError("RM: no swap network for token refunds")
            amount = self.swap_network.convert(ETH_TOKEN, refund_token, cost)
            self._invoke_wallet(
                wallet,
                refund_token,
                0,
                encode_function_call("transfer(address,uint256)", refund_address, amount),
            )

        self.emit(
            "Refund",
            wallet=wallet,
            refund_address=refund_address,
            refund_token=refund_token,
            refund_amount=amount,
        )
        return amount


# ══════════════════════════════════════════════════════════════════════
#  CLIENT SIDE
# ══════════════════════════════════════════════════════════════════════

@dataclass
class RelayRequest:
    """
    Off-ledger builder of a relayed request.

    Usage::

        req = RelayRequest(module, wallet, "lock(address)", [wallet], nonce=1)
        req.sign(guardian_keys=[guardian])
        module.execute(relayer, **req.execute_kwargs())
    """
    module: RelayerModule
    wallet: str
    method: str
    args: List[Any]
    nonce: int = 0
    gas_price: int = 0
    gas_limit: Optional[int] = None
    refund_token: str = ETH_TOKEN
    refund_address: Optional[str] = None
    signatures: bytes = b""

    @property
    def data(self) -> bytes:
        return encode_function_call(self.method, *self.args)

    @property
    def sign_hash(self) -> bytes:
        return self.module.get_sign_hash(
            self.wallet, self.data, self.nonce, self.gas_price, self.gas_limit, self.refund_token
        )

    def sign(
        self,
        owner_key: Optional[PrivateKey] = None,
        guardian_keys: Iterable[PrivateKey] = (),
    ) -> "RelayRequest":
        """Owner signature first, then guardian signatures by ascending signer address."""
        keys = [owner_key] if owner_key is not None else []
        keys += sorted(guardian_keys, key=lambda k: address_to_int(k.address))
        digest = self.sign_hash
        self.signatures = b"".join(sign_message(k, digest).to_bytes() for k in keys)
        return self

    def execute_kwargs(self) -> dict:
        return {
            "wallet": self.wallet,
            "data": self.data,
            "nonce": self.nonce,
            "signatures": self.signatures,
            "gas_price": self.gas_price,
            "gas_limit": self.gas_limit,
            "refund_token": self.refund_token,
            "refund_address": self.refund_address,
        }

    def submit(self, relayer: str) -> RelayResult:
        return self.module.execute(relayer, **self.execute_kwargs())
