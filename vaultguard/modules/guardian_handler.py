"""
Guardian Handler

Owner-driven management of a wallet's guardians. The first guardian is
added at once; every later addition and every revocation waits for the
security period and must then be confirmed, by anyone, within the security
window. Delaying changes gives the remaining guardians time to react to a
compromised owner key.
"""

from typing import Any, Tuple

from ..constants import DEFAULT_SECURITY_PERIOD, DEFAULT_SECURITY_WINDOW
from ..crypto.address import require_non_null, short_address, to_checksum_address
from ..exceptions import (
    AlreadyExistsError,
    InvalidGuardianError,
    NotFoundError,
    NotYetExecutableError,
    WindowExpiredError,
)
from ..ledger.contract import external, transaction
from ..logger import get_logger
from .guardian_utils import is_valid_guardian
from .relayer import RelayerModule

logger = get_logger(__name__)


class GuardianHandler(RelayerModule):

    NAME = "GuardianHandler"
    PREFIX = "GM"

    def __init__(
        self,
        ledger,
        registry,
        guardian_storage,
        security_period: int = DEFAULT_SECURITY_PERIOD,
        security_window: int = DEFAULT_SECURITY_WINDOW,
        **kwargs,
    ):
        super().__init__(ledger, registry, guardian_storage, **kwargs)
        self.security_period = security_period
        self.security_window = security_window

    def get_required_signatures(self, wallet: str, method: str, args: Tuple[Any, ...]) -> int:
        if method in ("confirm_guardian_addition", "confirm_guardian_revokation"):
            return 0
        return 1

    # ── Queries ───────────────────────────────────────────────────────

    def guardian_count(self, wallet: str) -> int:
        return self.guardian_storage.guardian_count(wallet)

    def is_guardian(self, wallet: str, guardian: str) -> bool:
        return self.guardian_storage.is_guardian(wallet, guardian)

    def get_guardians(self, wallet: str) -> Tuple[str, ...]:
        return self.guardian_storage.get_guardians(wallet)

    def get_pending_addition(self, wallet: str, guardian: str) -> int:
        return self._load(("addition", to_checksum_address(wallet), to_checksum_address(guardian)), 0)

    def get_pending_revokation(self, wallet: str, guardian: str) -> int:
        return self._load(("revokation", to_checksum_address(wallet), to_checksum_address(guardian)), 0)

    # ── Pending requests ──────────────────────────────────────────────

    def _request(self, kind: str, wallet: str, guardian: str) -> int:
        execute_after = self._load((kind, wallet, guardian), 0)
        if execute_after and self.now < execute_after + self.security_window:
            raise AlreadyExistsError(f"GM: {kind} of target as guardian is already pending")
        execute_after = self.now + self.security_period
        self._store((kind, wallet, guardian), execute_after)
        return execute_after

    def _confirm(self, kind: str, wallet: str, guardian: str) -> None:
        execute_after = self._load((kind, wallet, guardian), 0)
        if not execute_after:
            raise NotFoundError(f"GM: no pending {kind} as guardian for target")
        if self.now < execute_after:
            raise NotYetExecutableError(f"GM: Too early to confirm guardian {kind}")
        if self.now >= execute_after + self.security_window:
            raise WindowExpiredError(f"GM: Too late to confirm guardian {kind}")
        self._store((kind, wallet, guardian), None)

    def _cancel(self, kind: str, wallet: str, guardian: str) -> None:
        if not self._load((kind, wallet, guardian), 0):
            raise NotFoundError(f"GM: no pending {kind} as guardian for target")
        self._store((kind, wallet, guardian), None)

    # ── Addition ──────────────────────────────────────────────────────

    @external("addGuardian(address,address)")
    @transaction
    def add_guardian(self, caller: str, wallet: str, guardian: str) -> None:
        wallet = to_checksum_address(wallet)
        guardian = require_non_null(guardian, "GM: guardian cannot be null")
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        if self.is_owner(wallet, guardian):
            raise InvalidGuardianError("GM: target guardian cannot be owner")
        if guardian == wallet:
            raise InvalidGuardianError("GM: wallet cannot be its own guardian")
        if self.is_guardian(wallet, guardian):
            raise AlreadyExistsError("GM: target is already a guardian")
        if not is_valid_guardian(self.ledger, guardian):
            raise InvalidGuardianError("GM: guardian must be a key or implement owner()")

        if self.guardian_count(wallet) == 0:
            self.guardian_storage.add_guardian(self.address, wallet, guardian)
            self.emit("GuardianAdded", wallet=wallet, guardian=guardian)
            logger.info(f"Guardian {short_address(guardian)} added to {short_address(wallet)}")
            return

        execute_after = self._request("addition", wallet, guardian)
        self.emit("GuardianAdditionRequested", wallet=wallet, guardian=guardian, execute_after=execute_after)
        logger.info(f"Guardian {short_address(guardian)} addition to {short_address(wallet)} pending")

    @external("confirmGuardianAddition(address,address)")
    @transaction
    def confirm_guardian_addition(self, caller: str, wallet: str, guardian: str) -> None:
        wallet = to_checksum_address(wallet)
        guardian = to_checksum_address(guardian)
        self._require_unlocked(wallet)
        self._confirm("addition", wallet, guardian)
        self.guardian_storage.add_guardian(self.address, wallet, guardian)
        self.emit("GuardianAdded", wallet=wallet, guardian=guardian)
        logger.info(f"Guardian {short_address(guardian)} added to {short_address(wallet)}")

    @external("cancelGuardianAddition(address,address)")
    @transaction
    def cancel_guardian_addition(self, caller: str, wallet: str, guardian: str) -> None:
        wallet = to_checksum_address(wallet)
        guardian = to_checksum_address(guardian)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        self._cancel("addition", wallet, guardian)
        self.emit("GuardianAdditionCancelled", wallet=wallet, guardian=guardian)

    # ── Revocation ────────────────────────────────────────────────────

    @external("revokeGuardian(address,address)")
    @transaction
    def revoke_guardian(self, caller: str, wallet: str, guardian: str) -> None:
        wallet = to_checksum_address(wallet)
        guardian = to_checksum_address(guardian)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        if not self.is_guardian(wallet, guardian):
            raise NotFoundError("GM: must be an existing guardian")
        execute_after = self._request("revokation", wallet, guardian)
        self.emit("GuardianRevokationRequested", wallet=wallet, guardian=guardian, execute_after=execute_after)
        logger.info(f"Guardian {short_address(guardian)} revocation from {short_address(wallet)} pending")

    @external("confirmGuardianRevokation(address,address)")
    @transaction
    def confirm_guardian_revokation(self, caller: str, wallet: str, guardian: str) -> None:
        wallet = to_checksum_address(wallet)
        guardian = to_checksum_address(guardian)
        self._require_unlocked(wallet)
        self._confirm("revokation", wallet, guardian)
        self.guardian_storage.revoke_guardian(self.address, wallet, guardian)
        self.emit("GuardianRevoked", wallet=wallet, guardian=guardian)
        logger.info(f"Guardian {short_address(guardian)} revoked from {short_address(wallet)}")

    @external("cancelGuardianRevokation(address,address)")
    @transaction
    def cancel_guardian_revokation(self, caller: str, wallet: str, guardian: str) -> None:
        wallet = to_checksum_address(wallet)
        guardian = to_checksum_address(guardian)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        self._cancel("revokation", wallet, guardian)
        self.emit("GuardianRevokationCancelled", wallet=wallet, guardian=guardian)
