"""
Module Registry

Allow-list of the modules a wallet may adopt. Mutations are owner-only; in a
production deployment the owner is the governance multisig, so every change
goes through a quorum of approvals.
"""

from typing import Iterable, Union

from ..crypto.address import short_address, to_checksum_address
from ..crypto.contract import bytes32_to_ascii
from ..exceptions import AlreadyExistsError, NotFoundError
from ..ledger.contract import external, transaction
from ..logger import get_logger
from .owned import Owned

logger = get_logger(__name__)


class ModuleRegistry(Owned):
    """Registry of approved modules, keyed by address with a bytes32 name."""

    @external("registerModule(address,bytes32)")
    @transaction
    def register_module(self, caller: str, module: str, name: bytes) -> None:
        self._require_owner(caller)
        module = to_checksum_address(module)
        if self._load(("module", module)) is not None:
            raise AlreadyExistsError("MR: module already exists")
        self._store(("module", module), bytes(name))
        self.emit("ModuleRegistered", module=module, name=bytes(name))
        logger.info(f"Module registered: {bytes32_to_ascii(name)} at {short_address(module)}")

    @external("deregisterModule(address)")
    @transaction
    def deregister_module(self, caller: str, module: str) -> None:
        self._require_owner(caller)
        module = to_checksum_address(module)
        if self._load(("module", module)) is None:
            raise NotFoundError("MR: module does not exist")
        self._store(("module", module), None)
        self.emit("ModuleDeRegistered", module=module)
        logger.info(f"Module deregistered: {short_address(module)}")

    def module_info(self, module: str) -> bytes:
        """Registered bytes32 name, or empty bytes for unknown modules."""
        return self._load(("module", to_checksum_address(module)), b"")

    def is_registered_module(self, modules: Union[str, Iterable[str]]) -> bool:
        if isinstance(modules, str):
            modules = [modules]
        return all(
            self._load(("module", to_checksum_address(m))) is not None for m in modules
        )
