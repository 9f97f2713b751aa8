"""
Owner and manager access control for infrastructure contracts.
"""

from typing import FrozenSet

from ..crypto.address import require_non_null, short_address, to_checksum_address
from ..exceptions import UnauthorizedError
from ..ledger.contract import Contract, external, transaction
from ..logger import get_logger

logger = get_logger(__name__)


class Owned(Contract):
    """Contract with a single owner that may hand ownership over."""

    def __init__(self, ledger, owner: str, address: str = None):
        super().__init__(ledger, address)
        self._store("owner", require_non_null(owner, "Address must not be null"))

    @property
    def owner(self) -> str:
        return self._load("owner")

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise UnauthorizedError("Must be owner")

    @external("changeOwner(address)")
    @transaction
    def change_owner(self, caller: str, new_owner: str) -> None:
        self._require_owner(caller)
        new_owner = require_non_null(new_owner, "Address must not be null")
        self._store("owner", new_owner)
        self.emit("OwnerChanged", new_owner=new_owner)
        logger.info(f"{type(self).__name__} owner → {short_address(new_owner)}")


class Managed(Owned):
    """Owned contract with a set of managers for day-to-day operations."""

    @property
    def managers(self) -> FrozenSet[str]:
        return self._load("managers", frozenset())

    def is_manager(self, address: str) -> bool:
        return to_checksum_address(address) in self.managers

    def _require_manager(self, caller: str) -> None:
        if caller not in self.managers:
            raise UnauthorizedError("M: Must be manager")

    @external("addManager(address)")
    @transaction
    def add_manager(self, caller: str, manager: str) -> None:
        self._require_owner(caller)
        manager = require_non_null(manager, "M: Address must not be null")
        if manager not in self.managers:
            self._store("managers", self.managers | {manager})
            self.emit("ManagerAdded", manager=manager)

    @external("revokeManager(address)")
    @transaction
    def revoke_manager(self, caller: str, manager: str) -> None:
        self._require_owner(caller)
        manager = to_checksum_address(manager)
        if manager not in self.managers:
            raise UnauthorizedError("M: Target must be an existing manager")
        self._store("managers", self.managers - {manager})
        self.emit("ManagerRevoked", manager=manager)
