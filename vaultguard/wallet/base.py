"""
Base Wallet

The thin custodial account: it holds funds, knows its owner and the set of
modules it trusts, and does nothing on its own. Every outgoing action is an
``invoke`` issued by an authorised module.
"""

from typing import Any, Iterable

from ..constants import ZERO_ADDRESS
from ..crypto.address import require_non_null, short_address, to_checksum_address
from ..exceptions import AlreadyExistsError, NoModulesError, UnauthorizedError
from ..ledger.contract import Contract, external, transaction
from ..logger import get_logger

logger = get_logger(__name__)


class BaseWallet(Contract):
    """
    Wallet proxy.

    Storage:
        owner    : current owner address
        modules  : frozenset of authorised module addresses
    """

    # ── Views ─────────────────────────────────────────────────────────

    @property
    def owner(self) -> str:
        return self._load("owner", ZERO_ADDRESS)

    @property
    def modules(self) -> int:
        """Number of authorised modules."""
        return len(self._load("modules", frozenset()))

    def authorised(self, module: str) -> bool:
        return to_checksum_address(module) in self._load("modules", frozenset())

    @property
    def balance(self) -> int:
        return self.ledger.balance_of(self.address)

    # ── Guards ────────────────────────────────────────────────────────

    def _require_module(self, caller: str) -> None:
        if not self.authorised(caller):
            raise UnauthorizedError("BW: msg.sender not an authorized module")

    # ── Initialisation ────────────────────────────────────────────────

    @transaction
    def init(self, caller: str, owner: str, modules: Iterable[str]) -> None:
        """
        Set the owner and the initial modules. Callable once.

        Raises:
            AlreadyExistsError: Wallet already initialised
            NoModulesError: Empty module list
        """
        modules = [to_checksum_address(m) for m in modules]
        if self.owner != ZERO_ADDRESS or self.modules:
            raise AlreadyExistsError("BW: wallet already initialised")
        if not modules:
            raise NoModulesError("BW: construction requires at least 1 module")

        owner = require_non_null(owner, "BW: owner cannot be null")
        self._store("owner", owner)
        self._store("modules", frozenset(modules))

        for module in modules:
            self.emit("AuthorisedModule", module=module, value=True)
            self._init_module(module)

        if self.balance > 0:
            self.emit("Received", value=self.balance, sender=ZERO_ADDRESS, data=b"")

        logger.info(
            f"Wallet {short_address(self.address)} initialised: owner={short_address(owner)}, "
            f"modules={len(modules)}"
        )

    def _init_module(self, module: str) -> None:
        contract = self.ledger.contract_at(module)
        if contract is not None:
            contract.init(self.address, self.address)

    # ── Module-only mutators ──────────────────────────────────────────

    @transaction
    def authorise_module(self, caller: str, module: str, value: bool) -> None:
        self._require_module(caller)
        module = to_checksum_address(module)
        current = self._load("modules", frozenset())
        if value == (module in current):
            return
        if value:
            self._store("modules", current | {module})
            self.emit("AuthorisedModule", module=module, value=True)
            self._init_module(module)
        else:
            if len(current) == 1:
                raise NoModulesError("BW: wallet must have at least one module")
            self._store("modules", current - {module})
            self.emit("AuthorisedModule", module=module, value=False)

    @transaction
    def set_owner(self, caller: str, new_owner: str) -> None:
        self._require_module(caller)
        new_owner = require_non_null(new_owner, "BW: address cannot be null")
        self._store("owner", new_owner)
        self.emit("OwnerChanged", owner=new_owner)
        logger.info(f"Wallet {short_address(self.address)} owner → {short_address(new_owner)}")

    @transaction
    def invoke(self, caller: str, target: str, value: int, data: bytes = b"") -> Any:
        """Perform a call from the wallet on behalf of an authorised module."""
        self._require_module(caller)
        result = self.ledger.call(self.address, target, value, data)
        self.emit("Invoked", module=caller, target=to_checksum_address(target), value=value, data=data)
        return result

    # ── Incoming value ────────────────────────────────────────────────

    def receive(self, caller: str, value: int) -> None:
        if value:
            self.emit("Received", value=value, sender=caller, data=b"")

    @external("owner()")
    def get_owner(self, caller: str) -> str:
        return self.owner

    def __repr__(self) -> str:
        return f"<BaseWallet {short_address(self.address)} owner={short_address(self.owner)}>"
