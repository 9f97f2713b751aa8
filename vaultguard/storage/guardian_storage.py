"""
Guardian Storage

Per-wallet guardian list and lock state, shared by every guardian-aware
module. Only modules authorised on the wallet may write.

The lock is stored as an absolute release timestamp; a wallet whose release
time has passed is unlocked without any transaction.
"""

from typing import Tuple

from ..constants import ZERO_ADDRESS
from ..crypto.address import short_address, to_checksum_address
from ..exceptions import AlreadyExistsError, InvalidGuardianError, NotFoundError, UnauthorizedError
from ..ledger.contract import Contract, transaction
from ..logger import get_logger

logger = get_logger(__name__)


class GuardianStorage(Contract):
    """Guardians and lock of each wallet."""

    def _require_module(self, wallet: str, caller: str) -> None:
        contract = self.ledger.contract_at(wallet)
        if contract is None or not contract.authorised(caller):
            raise UnauthorizedError("must be an authorized module")

    # ── Guardians ─────────────────────────────────────────────────────

    def get_guardians(self, wallet: str) -> Tuple[str, ...]:
        return self._load(("guardians", to_checksum_address(wallet)), ())

    def guardian_count(self, wallet: str) -> int:
        return len(self.get_guardians(wallet))

    def is_guardian(self, wallet: str, guardian: str) -> bool:
        return to_checksum_address(guardian) in self.get_guardians(wallet)

    @transaction
    def add_guardian(self, caller: str, wallet: str, guardian: str) -> None:
        wallet = to_checksum_address(wallet)
        guardian = to_checksum_address(guardian)
        self._require_module(wallet, caller)
        if guardian == wallet:
            raise InvalidGuardianError("GS: wallet cannot be its own guardian")
        if guardian == ZERO_ADDRESS:
            raise InvalidGuardianError("GS: guardian cannot be null")
        guardians = self.get_guardians(wallet)
        if guardian in guardians:
            raise AlreadyExistsError("GS: target is already a guardian")
        self._store(("guardians", wallet), guardians + (guardian,))

    @transaction
    def revoke_guardian(self, caller: str, wallet: str, guardian: str) -> None:
        wallet = to_checksum_address(wallet)
        guardian = to_checksum_address(guardian)
        self._require_module(wallet, caller)
        guardians = self.get_guardians(wallet)
        if guardian not in guardians:
            raise NotFoundError("GS: must be an existing guardian")
        self._store(("guardians", wallet), tuple(g for g in guardians if g != guardian))

    # ── Lock ──────────────────────────────────────────────────────────

    @transaction
    def set_lock(self, caller: str, wallet: str, release_after: int) -> None:
        """Lock until ``release_after`` (0 unlocks). Records the locking module."""
        wallet = to_checksum_address(wallet)
        self._require_module(wallet, caller)
        if release_after == 0:
            self._store(("lock", wallet), None)
        else:
            self._store(("lock", wallet), (release_after, caller))
        logger.debug(f"Lock of {short_address(wallet)} set to {release_after}")

    def _lock_record(self, wallet: str) -> Tuple[int, str]:
        return self._load(("lock", to_checksum_address(wallet)), (0, ZERO_ADDRESS))

    def is_locked(self, wallet: str) -> bool:
        release, _ = self._lock_record(wallet)
        return release > self.now

    def get_lock(self, wallet: str) -> int:
        """Release timestamp while locked, otherwise 0."""
        release, _ = self._lock_record(wallet)
        return release if release > self.now else 0

    def get_locker(self, wallet: str) -> str:
        """Module that placed the current lock, or the zero address."""
        release, locker = self._lock_record(wallet)
        return locker if release > self.now else ZERO_ADDRESS
