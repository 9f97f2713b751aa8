"""
Lock handler tests: guardian locks, automatic expiry, early unlock and
locks held by the recovery module.
"""

import pytest

from vaultguard.exceptions import (
    NotFoundError,
    UnauthorizedError,
    WalletLockedError,
)


LOCK_PERIOD = 5 * 24 * 60 * 60


@pytest.fixture
def guarded(accounts, infra, wallet):
    """Wallet with guardian1."""
    infra.guardian_handler.add_guardian(accounts.owner.address, wallet.address, accounts.guardian1.address)
    return wallet


class TestLock:
    """Direct calls by a guardian."""

    def test_guardian_can_lock(self, ledger, accounts, infra, guarded):
        lh = infra.lock_handler
        release = lh.lock(accounts.guardian1.address, guarded.address)
        assert release == ledger.timestamp + LOCK_PERIOD
        assert lh.is_locked(guarded.address)
        assert lh.get_lock(guarded.address) == release
        assert ledger.events("Locked")[-1]["release_after"] == release

    def test_non_guardian_cannot_lock(self, accounts, infra, guarded):
        with pytest.raises(UnauthorizedError, match="must be a guardian"):
            infra.lock_handler.lock(accounts.nonowner.address, guarded.address)
        assert not infra.lock_handler.is_locked(guarded.address)

    def test_owner_cannot_lock(self, accounts, infra, guarded):
        with pytest.raises(UnauthorizedError):
            infra.lock_handler.lock(accounts.owner.address, guarded.address)

    def test_lock_blocks_owner_operations(self, accounts, infra, guarded):
        infra.lock_handler.lock(accounts.guardian1.address, guarded.address)
        with pytest.raises(WalletLockedError, match="GM: wallet must be unlocked"):
            infra.guardian_handler.add_guardian(
                accounts.owner.address, guarded.address, accounts.guardian2.address
            )
        with pytest.raises(WalletLockedError, match="TT: wallet must be unlocked"):
            infra.transfer_handler.change_limit(accounts.owner.address, guarded.address, 1)

    def test_lock_expires(self, ledger, accounts, infra, guarded):
        lh = infra.lock_handler
        lh.lock(accounts.guardian1.address, guarded.address)
        ledger.advance_time(LOCK_PERIOD - 1)
        assert lh.is_locked(guarded.address)
        ledger.advance_time(1)
        assert not lh.is_locked(guarded.address)
        assert lh.get_lock(guarded.address) == 0

    def test_relock_restarts_period(self, ledger, accounts, infra, guarded):
        lh = infra.lock_handler
        first = lh.lock(accounts.guardian1.address, guarded.address)
        ledger.advance_time(100)
        second = lh.lock(accounts.guardian1.address, guarded.address)
        assert second == first + 100
        assert lh.get_lock(guarded.address) == second


class TestUnlock:
    """Early unlock by a guardian."""

    def test_guardian_can_unlock(self, ledger, accounts, infra, guarded):
        lh = infra.lock_handler
        lh.lock(accounts.guardian1.address, guarded.address)
        lh.unlock(accounts.guardian1.address, guarded.address)
        assert not lh.is_locked(guarded.address)
        assert ledger.events("Unlocked")[-1]["wallet"] == guarded.address

    def test_unlock_unlocked_wallet(self, accounts, infra, guarded):
        with pytest.raises(NotFoundError, match="wallet must be locked"):
            infra.lock_handler.unlock(accounts.guardian1.address, guarded.address)

    def test_unlock_after_expiry(self, ledger, accounts, infra, guarded):
        lh = infra.lock_handler
        lh.lock(accounts.guardian1.address, guarded.address)
        ledger.advance_time(LOCK_PERIOD)
        with pytest.raises(NotFoundError):
            lh.unlock(accounts.guardian1.address, guarded.address)

    def test_non_guardian_cannot_unlock(self, accounts, infra, guarded):
        infra.lock_handler.lock(accounts.guardian1.address, guarded.address)
        with pytest.raises(UnauthorizedError):
            infra.lock_handler.unlock(accounts.nonowner.address, guarded.address)
        assert infra.lock_handler.is_locked(guarded.address)


class TestRelayedLock:
    """lock()/unlock() through execute(), signed by one guardian."""

    def test_relayed_lock(self, accounts, infra, guarded, relay):
        lh = infra.lock_handler
        result = relay(lh, guarded, "lock(address)", [guarded.address], guardians=[accounts.guardian1])
        assert lh.is_locked(guarded.address)
        assert result.return_value == lh.get_lock(guarded.address)

    def test_owner_signature_rejected(self, accounts, infra, guarded, relay):
        with pytest.raises(UnauthorizedError, match="Invalid signatures"):
            relay(infra.lock_handler, guarded, "lock(address)", [guarded.address], owner=accounts.owner)
        assert not infra.lock_handler.is_locked(guarded.address)

    def test_relayed_unlock(self, accounts, infra, guarded, relay):
        lh = infra.lock_handler
        relay(lh, guarded, "lock(address)", [guarded.address], guardians=[accounts.guardian1])
        relay(lh, guarded, "unlock(address)", [guarded.address], guardians=[accounts.guardian1])
        assert not lh.is_locked(guarded.address)


class TestLockOwnership:
    """A lock set by the recovery module belongs to it."""

    def _start_recovery(self, accounts, infra, wallet, relay):
        relay(
            infra.recovery_handler,
            wallet,
            "executeRecovery(address,address)",
            [wallet.address, accounts.recovery.address],
            guardians=[accounts.guardian1],
        )

    def test_cannot_unlock_recovery_lock(self, accounts, infra, guarded, relay):
        self._start_recovery(accounts, infra, guarded, relay)
        assert infra.lock_handler.is_locked(guarded.address)
        with pytest.raises(UnauthorizedError, match="locked by another module"):
            infra.lock_handler.unlock(accounts.guardian1.address, guarded.address)

    def test_cannot_relock_over_recovery_lock(self, accounts, infra, guarded, relay):
        self._start_recovery(accounts, infra, guarded, relay)
        release = infra.lock_handler.get_lock(guarded.address)
        with pytest.raises(UnauthorizedError, match="locked by another module"):
            infra.lock_handler.lock(accounts.guardian1.address, guarded.address)
        assert infra.lock_handler.get_lock(guarded.address) == release
