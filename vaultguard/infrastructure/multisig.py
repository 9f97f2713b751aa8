"""
Multisig Governance

``MultiSigWallet`` is an N-of-M account: a call is executed once at least
``threshold`` owners have signed it. It owns the infrastructure contracts
(module registry, wallet factory) in a production deployment.

``MultisigExecutor`` is the client side: it encodes a call, collects the
owners' approvals and submits the single execution.
"""

from typing import Any, Iterable, List, Optional, Sequence

from ..constants import MULTISIG_MAX_OWNERS, SIGNATURE_LENGTH
from ..crypto.address import address_to_int, require_non_null, short_address, to_checksum_address
from ..crypto.contract import encode_function_call
from ..crypto.hashing import solidity_keccak256
from ..crypto.keys import PrivateKey
from ..crypto.signing import recover_signer, sign_sorted, split_signatures
from ..exceptions import (
    AlreadyExistsError,
    ConfigurationError,
    NotFoundError,
    UnauthorizedError,
)
from ..ledger.contract import Contract, external, transaction
from ..logger import get_logger

logger = get_logger(__name__)


class MultiSigWallet(Contract):
    """
    Storage:
        owners     : frozenset of owner addresses
        threshold  : approvals needed per execution
        nonce      : number of executions so far
    """

    def __init__(self, ledger, threshold: int, owners: Sequence[str], address: str = None):
        owners = [require_non_null(o, "MSW: Invalid new owner") for o in owners]
        if not 0 < threshold <= len(owners):
            raise ConfigurationError("MSW: Not enough or too many owners")
        if len(owners) > MULTISIG_MAX_OWNERS:
            raise ConfigurationError(f"MSW: at most {MULTISIG_MAX_OWNERS} owners")
        if len(set(owners)) != len(owners):
            raise ConfigurationError("MSW: Duplicate owner")
        super().__init__(ledger, address)
        self._store("owners", frozenset(owners))
        self._store("threshold", threshold)
        logger.info(f"MultiSig deployed at {short_address(self.address)}: {threshold}-of-{len(owners)}")

    # ── Views ─────────────────────────────────────────────────────────

    @property
    def owners(self) -> List[str]:
        return sorted(self._load("owners"), key=address_to_int)

    @property
    def threshold(self) -> int:
        return self._load("threshold")

    @property
    def nonce(self) -> int:
        return self._load("nonce", 0)

    def is_owner(self, address: str) -> bool:
        return to_checksum_address(address) in self._load("owners")

    def get_sign_hash(self, to: str, value: int, data: bytes, nonce: Optional[int] = None) -> bytes:
        """keccak256(0x19 ‖ 0x00 ‖ multisig ‖ to ‖ value ‖ data ‖ nonce)"""
        if nonce is None:
            nonce = self.nonce
        return solidity_keccak256(
            ["bytes1", "bytes1", "address", "address", "uint256", "bytes", "uint256"],
            [b"\x19", b"\x00", self.address, to_checksum_address(to), value, data, nonce],
        )

    # ── Execution ─────────────────────────────────────────────────────

    @external("execute(address,uint256,bytes,bytes)")
    @transaction
    def execute(self, caller: str, to: str, value: int, data: bytes, signatures: bytes) -> Any:
        """
        Execute a call approved by at least ``threshold`` owners.

        Signatures are ordered by strictly ascending signer address; only
        the first ``threshold`` are checked.
        """
        to = to_checksum_address(to)
        if len(signatures) < self.threshold * SIGNATURE_LENGTH:
            raise UnauthorizedError("MSW: Not enough signatures")
        sign_hash = self.get_sign_hash(to, value, data)
        self._store("nonce", self.nonce + 1)

        last_signer = 0
        for sig in split_signatures(signatures)[:self.threshold]:
            signer = recover_signer(sign_hash, sig)
            if address_to_int(signer) <= last_signer:
                raise UnauthorizedError("MSW: Badly ordered signatures")
            last_signer = address_to_int(signer)
            if not self.is_owner(signer):
                raise UnauthorizedError("MSW: Not an owner")

        result = self.ledger.call(self.address, to, value, data)
        self.emit("Executed", destination=to, value=value, data=data)
        logger.info(f"MultiSig executed call to {short_address(to)} (nonce {self.nonce - 1})")
        return result

    # ── Self-administration (through execute only) ────────────────────

    def _require_self(self, caller: str) -> None:
        if caller != self.address:
            raise UnauthorizedError("MSW: Calling account is not wallet")

    @external("addOwner(address)")
    @transaction
    def add_owner(self, caller: str, owner: str) -> None:
        self._require_self(caller)
        owner = require_non_null(owner, "MSW: Invalid new owner")
        owners = self._load("owners")
        if owner in owners:
            raise AlreadyExistsError("MSW: Already owner")
        if len(owners) >= MULTISIG_MAX_OWNERS:
            raise ConfigurationError("MSW: Too many owners")
        self._store("owners", owners | {owner})
        self.emit("OwnerAdded", owner=owner)

    @external("removeOwner(address)")
    @transaction
    def remove_owner(self, caller: str, owner: str) -> None:
        self._require_self(caller)
        owner = to_checksum_address(owner)
        owners = self._load("owners")
        if owner not in owners:
            raise NotFoundError("MSW: Not an owner")
        if len(owners) - 1 < self.threshold:
            raise ConfigurationError("MSW: Invalid threshold")
        self._store("owners", owners - {owner})
        self.emit("OwnerRemoved", owner=owner)

    @external("changeThreshold(uint256)")
    @transaction
    def change_threshold(self, caller: str, threshold: int) -> None:
        self._require_self(caller)
        if not 0 < threshold <= len(self._load("owners")):
            raise ConfigurationError("MSW: Invalid threshold")
        self._store("threshold", threshold)
        self.emit("ThresholdChanged", threshold=threshold)

    def receive(self, caller: str, value: int) -> None:
        if value:
            self.emit("Received", value=value, sender=caller)


class MultisigExecutor:
    """
    Collects owner approvals for a call and submits it.

    Usage::

        executor = MultisigExecutor(multisig, owner_keys)
        executor.execute_call(registry, "registerModule(address,bytes32)", [module, name])
    """

    def __init__(self, multisig: MultiSigWallet, owner_keys: Iterable[PrivateKey], autosign: bool = True):
        self.multisig = multisig
        self.owner_keys = list(owner_keys)
        self.autosign = autosign

    def approve(self, to: str, value: int, data: bytes, keys: Optional[Iterable[PrivateKey]] = None) -> bytes:
        """Signatures of ``threshold`` owners, ordered for submission."""
        keys = list(keys) if keys is not None else self.owner_keys
        keys = [k for k in keys if self.multisig.is_owner(k.address)]
        if len(keys) < self.multisig.threshold:
            raise UnauthorizedError(
                f"MultisigExecutor: {len(keys)} owner keys, threshold is {self.multisig.threshold}"
            )
        keys = sorted(keys, key=lambda k: address_to_int(k.address))[:self.multisig.threshold]
        return sign_sorted(self.multisig.get_sign_hash(to, value, data), keys)

    def execute_call(
        self,
        contract,
        signature: str,
        args: Sequence[Any] = (),
        value: int = 0,
        signatures: Optional[bytes] = None,
        submitter: Optional[str] = None,
    ) -> Any:
        target = getattr(contract, "address", contract)
        data = encode_function_call(signature, *args)
        if signatures is None:
            if not self.autosign:
                raise ConfigurationError("MultisigExecutor: autosign disabled, approvals required")
            signatures = self.approve(target, value, data)
        submitter = submitter or (self.owner_keys[0].address if self.owner_keys else self.multisig.address)
        logger.debug(f"Submitting {signature} on {short_address(target)} through multisig")
        return self.multisig.execute(submitter, target, value, data, signatures)
