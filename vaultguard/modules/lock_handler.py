"""
Lock Handler

Lets a guardian freeze a wallet for ``lock_period`` seconds, for instance
when the owner key is lost or compromised. The lock lifts by itself once the
period has elapsed; a guardian may also lift it earlier.
"""

from typing import Any, Sequence, Tuple

from ..constants import DEFAULT_LOCK_PERIOD
from ..crypto.address import short_address, to_checksum_address
from ..exceptions import NotFoundError, UnauthorizedError
from ..ledger.contract import external, transaction
from ..logger import get_logger
from .relayer import OWNER_DISALLOWED, RelayerModule

logger = get_logger(__name__)


class LockHandler(RelayerModule):

    NAME = "LockHandler"
    PREFIX = "LM"

    def __init__(self, ledger, registry, guardian_storage, lock_period: int = DEFAULT_LOCK_PERIOD, **kwargs):
        super().__init__(ledger, registry, guardian_storage, **kwargs)
        self.lock_period = lock_period

    def _require_guardian(self, wallet: str, caller: str) -> None:
        if caller != self.address and not self.guardian_storage.is_guardian(wallet, caller):
            raise UnauthorizedError("LM: must be a guardian or the module")

    def get_required_signatures(self, wallet: str, method: str, args: Tuple[Any, ...]) -> int:
        return 1

    def validate_signatures(
        self, wallet: str, method: str, args: Tuple[Any, ...], signers: Sequence[str]
    ) -> bool:
        return self.validate_signers(wallet, signers, OWNER_DISALLOWED)

    @external("lock(address)")
    @transaction
    def lock(self, caller: str, wallet: str) -> int:
        """Lock ``wallet``; locking again restarts the period."""
        wallet = to_checksum_address(wallet)
        self._require_guardian(wallet, caller)
        if self.guardian_storage.is_locked(wallet) and self.guardian_storage.get_locker(wallet) != self.address:
            raise UnauthorizedError("LM: wallet is locked by another module")
        release_after = self.now + self.lock_period
        self.guardian_storage.set_lock(self.address, wallet, release_after)
        self.emit("Locked", wallet=wallet, release_after=release_after)
        logger.info(f"Wallet {short_address(wallet)} locked until {release_after}")
        return release_after

    @external("unlock(address)")
    @transaction
    def unlock(self, caller: str, wallet: str) -> None:
        wallet = to_checksum_address(wallet)
        self._require_guardian(wallet, caller)
        if not self.guardian_storage.is_locked(wallet):
            raise NotFoundError("LM: wallet must be locked")
        if self.guardian_storage.get_locker(wallet) != self.address:
            raise UnauthorizedError("LM: cannot unlock a wallet that was locked by another module")
        self.guardian_storage.set_lock(self.address, wallet, 0)
        self.emit("Unlocked", wallet=wallet)
        logger.info(f"Wallet {short_address(wallet)} unlocked")

    def get_lock(self, wallet: str) -> int:
        """Release timestamp while locked, otherwise 0."""
        return self.guardian_storage.get_lock(wallet)

    def is_locked(self, wallet: str) -> bool:
        return self.guardian_storage.is_locked(wallet)
