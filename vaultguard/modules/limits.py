"""
Daily Limit

Rolling-window spending limit of each wallet, kept in the storage of the
module that enforces it.

Both records are evaluated lazily against the ledger clock: a pending limit
becomes current the first time it is read at or after ``change_after``, and
the spent counter restarts the first time it is touched after its period
ends. Nothing is ever promoted by a background task.
"""

from dataclasses import dataclass
from typing import Tuple

from ..constants import DEFAULT_LIMIT, DEFAULT_SECURITY_PERIOD, LIMIT_DISABLED, LIMIT_PERIOD
from ..crypto.address import short_address, to_checksum_address
from ..ledger.contract import external, transaction
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Limit:
    current: int
    pending: int = 0
    change_after: int = 0

    def effective(self, now: int) -> int:
        if self.change_after > 0 and now >= self.change_after:
            return self.pending
        return self.current


@dataclass(frozen=True)
class DailySpent:
    already_spent: int = 0
    period_end: int = 0


class LimitManager:
    """
    Mixin for modules that enforce a daily limit.

    Expects the host to be a ``BaseModule`` and to set ``default_limit`` and
    ``security_period``.
    """

    default_limit: int = DEFAULT_LIMIT
    security_period: int = DEFAULT_SECURITY_PERIOD

    # ── Limit record ──────────────────────────────────────────────────

    def _limit(self, wallet: str) -> Limit:
        return self._load(("limit", to_checksum_address(wallet)), Limit(self.default_limit))

    def get_current_limit(self, wallet: str) -> int:
        return self._limit(wallet).effective(self.now)

    def get_pending_limit(self, wallet: str) -> Tuple[int, int]:
        """(pending limit, change_after) while a change is maturing, otherwise (0, 0)."""
        limit = self._limit(wallet)
        if limit.change_after > self.now:
            return limit.pending, limit.change_after
        return 0, 0

    def is_limit_disabled(self, wallet: str) -> bool:
        return self.get_current_limit(wallet) == LIMIT_DISABLED

    def _change_limit(self, wallet: str, new_limit: int) -> int:
        """Schedule ``new_limit``, replacing any change still maturing."""
        current = self.get_current_limit(wallet)
        change_after = self.now + self.security_period
        self._store(("limit", wallet), Limit(current, new_limit, change_after))
        return change_after

    @external("changeLimit(address,uint256)")
    @transaction
    def change_limit(self, caller: str, wallet: str, new_limit: int) -> None:
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        start_after = self._change_limit(wallet, new_limit)
        self.emit("LimitChanged", wallet=wallet, new_limit=new_limit, start_after=start_after)
        logger.info(f"Limit of {short_address(wallet)} → {new_limit} after {start_after}")

    @external("disableLimit(address)")
    @transaction
    def disable_limit(self, caller: str, wallet: str) -> None:
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        start_after = self._change_limit(wallet, LIMIT_DISABLED)
        self.emit("DailyLimitDisabled", wallet=wallet, security_period=self.security_period)
        logger.info(f"Limit of {short_address(wallet)} disabled after {start_after}")

    # ── Daily spent ───────────────────────────────────────────────────

    def _daily_spent(self, wallet: str) -> DailySpent:
        return self._load(("spent", to_checksum_address(wallet)), DailySpent())

    def get_daily_unspent(self, wallet: str) -> Tuple[int, int]:
        """
        Amount still spendable in the current period.

        Returns:
            (unspent, period_end); a period that has ended reports the full
            limit and the end of a period starting now
        """
        limit = self.get_current_limit(wallet)
        if limit == LIMIT_DISABLED:
            return LIMIT_DISABLED, 0
        spent = self._daily_spent(wallet)
        if self.now >= spent.period_end:
            return limit, self.now + LIMIT_PERIOD
        return max(limit - spent.already_spent, 0), spent.period_end

    def is_within_daily_limit(self, wallet: str, amount: int) -> bool:
        return amount <= self.get_daily_unspent(wallet)[0]

    def check_and_update_daily_spent(self, wallet: str, amount: int) -> bool:
        """
        Debit ``amount`` (in wei) from the daily allowance.

        Returns:
            False, leaving the counter untouched, if the debit would exceed the limit
        """
        wallet = to_checksum_address(wallet)
        if amount == 0:
            return True
        limit = self.get_current_limit(wallet)
        if limit == LIMIT_DISABLED:
            return True
        spent = self._daily_spent(wallet)
        if self.now >= spent.period_end:
            if amount > limit:
                return False
            self._store(("spent", wallet), DailySpent(amount, self.now + LIMIT_PERIOD))
            return True
        if spent.already_spent + amount > limit:
            return False
        self._store(("spent", wallet), DailySpent(spent.already_spent + amount, spent.period_end))
        return True
