"""
Wallet Factory

Creates wallets and configures their owner, modules and first guardian in
the same transaction. Wallets are created either at the next CREATE address
of the factory, or counterfactually at a CREATE2 address derived from
``(owner, modules[, guardian], salt)`` so that the address can be shared and
funded before the wallet exists.
"""

from typing import Optional, Sequence, Union

from ..constants import PROXY_CREATION_CODE, ZERO_ADDRESS
from ..crypto.address import address_to_bytes, require_non_null, short_address, to_checksum_address
from ..crypto.contract import generate_contract_address_create2
from ..crypto.hashing import keccak256
from ..exceptions import (
    AlreadyExistsError,
    GuardianStorageMissingError,
    ModuleNotRegisteredError,
    NoModulesError,
    NullGuardianError,
)
from ..ledger.contract import external, transaction
from ..logger import get_logger
from ..wallet.base import BaseWallet
from .owned import Managed

logger = get_logger(__name__)

Salt = Union[bytes, int]


def _salt_bytes(salt: Salt) -> bytes:
    if isinstance(salt, int):
        return salt.to_bytes(32, "big")
    if len(salt) != 32:
        raise ValueError(f"Salt must be 32 bytes, got {len(salt)}")
    return bytes(salt)


def wallet_salt(salt: Salt, owner: str, modules: Sequence[str], guardian: Optional[str] = None) -> bytes:
    """keccak256(keccak256(owner ‖ modules[ ‖ guardian]) ‖ salt), modules padded to 32 bytes."""
    packed = address_to_bytes(owner)
    packed += b"".join(address_to_bytes(m).rjust(32, b"\x00") for m in modules)
    if guardian is not None:
        packed += address_to_bytes(guardian)
    return keccak256(keccak256(packed) + _salt_bytes(salt))


class WalletFactory(Managed):
    """Manager-operated wallet creation."""

    def __init__(
        self,
        ledger,
        owner: str,
        module_registry: str,
        wallet_implementation: str,
        guardian_storage: Optional[str] = None,
        address: str = None,
    ):
        super().__init__(ledger, owner, address)
        self._store("module_registry", to_checksum_address(getattr(module_registry, "address", module_registry)))
        self._store("wallet_implementation", to_checksum_address(
            getattr(wallet_implementation, "address", wallet_implementation)
        ))
        if guardian_storage is not None:
            self._store("guardian_storage", to_checksum_address(getattr(guardian_storage, "address", guardian_storage)))

    # ── Configuration ─────────────────────────────────────────────────

    @property
    def module_registry(self):
        return self.ledger.contract_at(self._load("module_registry"))

    @property
    def wallet_implementation(self) -> str:
        return self._load("wallet_implementation")

    @property
    def guardian_storage(self):
        address = self._load("guardian_storage")
        return self.ledger.contract_at(address) if address else None

    @external("changeModuleRegistry(address)")
    @transaction
    def change_module_registry(self, caller: str, registry: str) -> None:
        self._require_owner(caller)
        registry = require_non_null(registry, "WF: address cannot be null")
        self._store("module_registry", registry)
        self.emit("ModuleRegistryChanged", addr=registry)

    @external("changeWalletImplementation(address)")
    @transaction
    def change_wallet_implementation(self, caller: str, implementation: str) -> None:
        self._require_owner(caller)
        implementation = require_non_null(implementation, "WF: address cannot be null")
        self._store("wallet_implementation", implementation)
        self.emit("WalletImplementationChanged", addr=implementation)

    @external("changeGuardianStorage(address)")
    @transaction
    def change_guardian_storage(self, caller: str, guardian_storage: str) -> None:
        self._require_owner(caller)
        guardian_storage = require_non_null(guardian_storage, "WF: address cannot be null")
        self._store("guardian_storage", guardian_storage)
        self.emit("GuardianStorageChanged", addr=guardian_storage)

    def init(self, caller: str, wallet: str) -> None:
        """The factory is briefly a module of every wallet it creates."""

    # ── Validation ────────────────────────────────────────────────────

    def _validate_inputs(self, owner: str, modules: Sequence[str]) -> None:
        if len(modules) == 0:
            raise NoModulesError("WF: cannot assign with less than 1 module")
        require_non_null(owner, "WF: owner cannot be null")
        if not self.module_registry.is_registered_module(list(modules)):
            raise ModuleNotRegisteredError("WF: one or more modules are not registered")

    def _validate_guardian(self, guardian: str) -> None:
        require_non_null(guardian, "WF: guardian cannot be null", NullGuardianError)
        if self.guardian_storage is None:
            raise GuardianStorageMissingError("GuardianStorage address not defined")

    # ── Creation ──────────────────────────────────────────────────────

    def _configure_wallet(
        self, wallet: BaseWallet, owner: str, modules: Sequence[str], guardian: Optional[str]
    ) -> None:
        wallet.init(self.address, self.address, list(modules) + [self.address])
        if guardian is not None:
            self.guardian_storage.add_guardian(self.address, wallet.address, guardian)
        wallet.set_owner(self.address, owner)
        wallet.authorise_module(self.address, self.address, False)
        self.emit("WalletCreated", wallet=wallet.address, owner=to_checksum_address(owner),
                  guardian=to_checksum_address(guardian) if guardian else ZERO_ADDRESS)
        logger.info(
            f"Wallet created at {short_address(wallet.address)} for {short_address(owner)} "
            f"with {len(modules)} module(s)"
        )

    def _deploy(self, address: str) -> BaseWallet:
        if self.ledger.is_contract(address):
            raise AlreadyExistsError(f"WF: wallet already exists at {address}")
        return BaseWallet(self.ledger, address)

    @external("createWallet(address,address[])")
    @transaction
    def create_wallet(self, caller: str, owner: str, modules: Sequence[str]) -> str:
        self._require_manager(caller)
        self._validate_inputs(owner, modules)
        wallet = self._deploy(self.ledger.next_contract_address(self.address))
        self._configure_wallet(wallet, owner, modules, None)
        return wallet.address

    @external("createWalletWithGuardian(address,address[],address)")
    @transaction
    def create_wallet_with_guardian(self, caller: str, owner: str, modules: Sequence[str], guardian: str) -> str:
        self._require_manager(caller)
        self._validate_inputs(owner, modules)
        self._validate_guardian(guardian)
        wallet = self._deploy(self.ledger.next_contract_address(self.address))
        self._configure_wallet(wallet, owner, modules, guardian)
        return wallet.address

    # ── Counterfactual creation ───────────────────────────────────────

    def _init_code(self) -> bytes:
        return PROXY_CREATION_CODE + address_to_bytes(self.wallet_implementation).rjust(32, b"\x00")

    def get_address_for_counterfactual_wallet(self, owner: str, modules: Sequence[str], salt: Salt) -> str:
        """Address a counterfactual wallet for these inputs has, or will have."""
        return generate_contract_address_create2(
            self.address, wallet_salt(salt, owner, modules), self._init_code()
        )

    def get_address_for_counterfactual_wallet_with_guardian(
        self, owner: str, modules: Sequence[str], guardian: str, salt: Salt
    ) -> str:
        return generate_contract_address_create2(
            self.address, wallet_salt(salt, owner, modules, guardian), self._init_code()
        )

    @external("createCounterfactualWallet(address,address[],bytes32)")
    @transaction
    def create_counterfactual_wallet(self, caller: str, owner: str, modules: Sequence[str], salt: Salt) -> str:
        self._require_manager(caller)
        self._validate_inputs(owner, modules)
        wallet = self._deploy(self.get_address_for_counterfactual_wallet(owner, modules, salt))
        self._configure_wallet(wallet, owner, modules, None)
        return wallet.address

    @external("createCounterfactualWalletWithGuardian(address,address[],address,bytes32)")
    @transaction
    def create_counterfactual_wallet_with_guardian(
        self, caller: str, owner: str, modules: Sequence[str], guardian: str, salt: Salt
    ) -> str:
        self._require_manager(caller)
        self._validate_inputs(owner, modules)
        self._validate_guardian(guardian)
        wallet = self._deploy(
            self.get_address_for_counterfactual_wallet_with_guardian(owner, modules, guardian, salt)
        )
        self._configure_wallet(wallet, owner, modules, guardian)
        return wallet.address
