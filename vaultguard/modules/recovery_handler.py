"""
Recovery Handler

Guardian-driven transfer of ownership to a new key. A majority of guardians
starts a recovery through the relay, which locks the wallet; once the
recovery period has passed anyone may finalize it. The owner together with
guardians may cancel an ongoing recovery.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from ..constants import DEFAULT_LOCK_PERIOD, DEFAULT_RECOVERY_PERIOD
from ..crypto.address import require_non_null, short_address, to_checksum_address
from ..exceptions import (
    AlreadyExistsError,
    InvalidGuardianError,
    NotFoundError,
    NotYetExecutableError,
    UnauthorizedError,
)
from ..ledger.contract import external, transaction
from ..logger import get_logger
from .relayer import OWNER_DISALLOWED, OWNER_OPTIONAL, RelayerModule, ceil_half

logger = get_logger(__name__)


@dataclass(frozen=True)
class Recovery:
    recovery: str
    execute_after: int
    guardian_count: int


class RecoveryHandler(RelayerModule):

    NAME = "RecoveryHandler"
    PREFIX = "RM"

    def __init__(
        self,
        ledger,
        registry,
        guardian_storage,
        recovery_period: int = DEFAULT_RECOVERY_PERIOD,
        lock_period: int = DEFAULT_LOCK_PERIOD,
        **kwargs,
    ):
        super().__init__(ledger, registry, guardian_storage, **kwargs)
        if lock_period < recovery_period:
            raise ValueError("RM: insecure security periods")
        self.recovery_period = recovery_period
        self.lock_period = lock_period

    # ── Relay policy ──────────────────────────────────────────────────

    def get_required_signatures(self, wallet: str, method: str, args: Tuple[Any, ...]) -> int:
        if method == "execute_recovery":
            count = self.guardian_storage.guardian_count(wallet)
            if count == 0:
                raise UnauthorizedError("RM: no guardians set on wallet")
            return ceil_half(count)
        if method == "cancel_recovery":
            ongoing = self.get_recovery(wallet)
            count = ongoing.guardian_count if ongoing else self.guardian_storage.guardian_count(wallet)
            return ceil_half(count + 1)
        return 0

    def validate_signatures(
        self, wallet: str, method: str, args: Tuple[Any, ...], signers: Sequence[str]
    ) -> bool:
        if method == "execute_recovery":
            return self.validate_signers(wallet, signers, OWNER_DISALLOWED)
        return self.validate_signers(wallet, signers, OWNER_OPTIONAL)

    # ── Recovery ──────────────────────────────────────────────────────

    def get_recovery(self, wallet: str) -> Optional[Recovery]:
        return self._load(("recovery", to_checksum_address(wallet)))

    @external("executeRecovery(address,address)")
    @transaction
    def execute_recovery(self, caller: str, wallet: str, recovery: str) -> int:
        """Start the recovery of ``wallet`` to ``recovery``. Relay only."""
        self._require_relayed(caller)
        wallet = to_checksum_address(wallet)
        recovery = require_non_null(recovery, "RM: recovery address cannot be null")
        if self.is_owner(wallet, recovery):
            raise InvalidGuardianError("RM: recovery address cannot be the owner")
        if self.guardian_storage.is_guardian(wallet, recovery):
            raise InvalidGuardianError("RM: recovery address cannot be a guardian")
        if self.get_recovery(wallet) is not None:
            raise AlreadyExistsError("RM: there cannot be an ongoing recovery")

        execute_after = self.now + self.recovery_period
        self._store(
            ("recovery", wallet),
            Recovery(recovery, execute_after, self.guardian_storage.guardian_count(wallet)),
        )
        self.guardian_storage.set_lock(self.address, wallet, self.now + self.lock_period)
        self.emit("RecoveryExecuted", wallet=wallet, recovery=recovery, execute_after=execute_after)
        logger.info(f"Recovery of {short_address(wallet)} to {short_address(recovery)} started")
        return execute_after

    @external("finalizeRecovery(address)")
    @transaction
    def finalize_recovery(self, caller: str, wallet: str) -> None:
        """Hand ownership to the recovery address once the period is over. Anyone may call."""
        wallet = to_checksum_address(wallet)
        ongoing = self.get_recovery(wallet)
        if ongoing is None:
            raise NotFoundError("RM: there must be an ongoing recovery")
        if self.now < ongoing.execute_after:
            raise NotYetExecutableError("RM: the recovery period is not over yet")
        self._store(("recovery", wallet), None)
        self.guardian_storage.set_lock(self.address, wallet, 0)
        self._wallet(wallet).set_owner(self.address, ongoing.recovery)
        self.emit("RecoveryFinalized", wallet=wallet, recovery=ongoing.recovery)
        logger.info(f"Recovery of {short_address(wallet)} finalized")

    @external("cancelRecovery(address)")
    @transaction
    def cancel_recovery(self, caller: str, wallet: str) -> None:
        """Abort the ongoing recovery and unlock the wallet. Relay only."""
        self._require_relayed(caller)
        wallet = to_checksum_address(wallet)
        ongoing = self.get_recovery(wallet)
        if ongoing is None:
            raise NotFoundError("RM: there must be an ongoing recovery")
        self._store(("recovery", wallet), None)
        self.guardian_storage.set_lock(self.address, wallet, 0)
        self.emit("RecoveryCanceled", wallet=wallet, recovery=ongoing.recovery)
        logger.info(f"Recovery of {short_address(wallet)} cancelled")
