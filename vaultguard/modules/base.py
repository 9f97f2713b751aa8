"""
Base Module

Common plumbing of every policy module: access to the wallet it governs,
owner and lock guards, and adding further registered modules to a wallet.
"""

from typing import Any

from ..crypto.address import to_checksum_address
from ..exceptions import (
    ContractCallError,
    ModuleNotRegisteredError,
    UnauthorizedError,
    WalletLockedError,
)
from ..ledger.contract import Contract, external, transaction
from ..logger import get_logger

logger = get_logger(__name__)


class BaseModule(Contract):
    """
    A module is authorised on wallets and acts on them through ``invoke``.

    Methods reached through the relay path are called with the module's own
    address as the caller; owner checks accept it because the relay has
    already verified the owner's signature.
    """

    NAME = "BaseModule"
    PREFIX = "BM"

    def __init__(self, ledger, registry, guardian_storage=None, *, name: str = None, address: str = None):
        super().__init__(ledger, address)
        self.registry = registry
        self.guardian_storage = guardian_storage
        self.name = name or self.NAME

    # ── Wallet access ─────────────────────────────────────────────────

    def _wallet(self, wallet: str):
        contract = self.ledger.contract_at(wallet)
        if contract is None or not hasattr(contract, "authorised"):
            raise ContractCallError(f"{self.PREFIX}: {wallet} is not a wallet")
        return contract

    def owner_of(self, wallet: str) -> str:
        return self._wallet(wallet).owner

    def is_owner(self, wallet: str, address: str) -> bool:
        return self.owner_of(wallet) == to_checksum_address(address)

    def is_locked(self, wallet: str) -> bool:
        return self.guardian_storage is not None and self.guardian_storage.is_locked(wallet)

    def _invoke_wallet(self, wallet: str, target: str, value: int, data: bytes = b"") -> Any:
        return self._wallet(wallet).invoke(self.address, target, value, data)

    # ── Guards ────────────────────────────────────────────────────────

    def _require_owner(self, wallet: str, caller: str) -> None:
        if caller != self.address and not self.is_owner(wallet, caller):
            raise UnauthorizedError(f"{self.PREFIX}: must be an owner")

    def _require_unlocked(self, wallet: str) -> None:
        if self.is_locked(wallet):
            raise WalletLockedError(f"{self.PREFIX}: wallet must be unlocked")

    def _require_relayed(self, caller: str) -> None:
        if caller != self.address:
            raise UnauthorizedError(f"{self.PREFIX}: must be called via execute()")

    # ── Lifecycle ─────────────────────────────────────────────────────

    def init(self, caller: str, wallet: str) -> None:
        """Called by the wallet when this module is authorised on it."""
        if caller != to_checksum_address(wallet):
            raise UnauthorizedError(f"{self.PREFIX}: must be the wallet")

    @external("addModule(address,address)")
    @transaction
    def add_module(self, caller: str, wallet: str, module: str) -> None:
        """Authorise another registered module on ``wallet``."""
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        if not self.registry.is_registered_module(module):
            raise ModuleNotRegisteredError(f"{self.PREFIX}: module is not registered")
        self._wallet(wallet).authorise_module(self.address, module, True)
        logger.info(f"{self.name} added module {module} to {wallet}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} {self.address}>"
