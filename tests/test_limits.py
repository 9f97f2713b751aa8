"""
Daily limit tests: lazy limit changes, the rolling spending window and
disabling the limit.
"""

import pytest

from vaultguard.constants import ETH_TOKEN, LIMIT_DISABLED, LIMIT_PERIOD
from vaultguard.exceptions import UnauthorizedError
from vaultguard.modules import DailySpent, Limit


ETHER = 10 ** 18
SECURITY_PERIOD = 24 * 60 * 60


def spend(infra, accounts, wallet, amount):
    return infra.transfer_handler.transfer_token(
        accounts.owner.address, wallet.address, ETH_TOKEN, accounts.recipient.address, amount, b""
    )


# ══════════════════════════════════════════════════════════════════════
#  VALUE TYPES
# ══════════════════════════════════════════════════════════════════════


class TestLimitRecord:
    """Limit.effective() resolves a maturing change lazily."""

    def test_no_change(self):
        assert Limit(100).effective(10 ** 10) == 100

    def test_pending_before_maturity(self):
        assert Limit(100, 200, 50).effective(49) == 100

    def test_pending_at_maturity(self):
        assert Limit(100, 200, 50).effective(50) == 200

    def test_zero_pending_limit_matures(self):
        assert Limit(100, 0, 50).effective(60) == 0

    def test_daily_spent_defaults(self):
        spent = DailySpent()
        assert spent.already_spent == 0
        assert spent.period_end == 0


# ══════════════════════════════════════════════════════════════════════
#  LIMIT CHANGES
# ══════════════════════════════════════════════════════════════════════


class TestChangeLimit:
    """changeLimit() and disableLimit() take effect after the security period."""

    def test_default_limit(self, infra, wallet):
        th = infra.transfer_handler
        assert th.get_current_limit(wallet.address) == ETHER
        assert th.get_pending_limit(wallet.address) == (0, 0)

    def test_change_is_delayed(self, ledger, accounts, infra, wallet):
        th = infra.transfer_handler
        th.change_limit(accounts.owner.address, wallet.address, 4 * ETHER)

        assert th.get_current_limit(wallet.address) == ETHER
        assert th.get_pending_limit(wallet.address) == (4 * ETHER, ledger.timestamp + SECURITY_PERIOD)

        ledger.advance_time(SECURITY_PERIOD - 1)
        assert th.get_current_limit(wallet.address) == ETHER

        ledger.advance_time(1)
        assert th.get_current_limit(wallet.address) == 4 * ETHER
        assert th.get_pending_limit(wallet.address) == (0, 0)

    def test_change_emits_event(self, ledger, accounts, infra, wallet):
        infra.transfer_handler.change_limit(accounts.owner.address, wallet.address, 4 * ETHER)
        event = ledger.events("LimitChanged")[-1]
        assert event["new_limit"] == 4 * ETHER
        assert event["start_after"] == ledger.timestamp + SECURITY_PERIOD

    def test_new_change_replaces_maturing_one(self, ledger, accounts, infra, wallet):
        th = infra.transfer_handler
        th.change_limit(accounts.owner.address, wallet.address, 4 * ETHER)
        ledger.advance_time(SECURITY_PERIOD // 2)
        th.change_limit(accounts.owner.address, wallet.address, 2 * ETHER)

        ledger.advance_time(SECURITY_PERIOD // 2)
        assert th.get_current_limit(wallet.address) == ETHER
        ledger.advance_time(SECURITY_PERIOD // 2)
        assert th.get_current_limit(wallet.address) == 2 * ETHER

    def test_change_requires_owner(self, accounts, infra, wallet):
        with pytest.raises(UnauthorizedError):
            infra.transfer_handler.change_limit(accounts.nonowner.address, wallet.address, 0)

    def test_disable_limit(self, ledger, accounts, infra, wallet):
        th = infra.transfer_handler
        th.disable_limit(accounts.owner.address, wallet.address)
        assert not th.is_limit_disabled(wallet.address)

        ledger.advance_time(SECURITY_PERIOD)
        assert th.is_limit_disabled(wallet.address)
        assert th.get_daily_unspent(wallet.address) == (LIMIT_DISABLED, 0)

        assert spend(infra, accounts, wallet, 20 * ETHER) is None
        assert ledger.balance_of(accounts.recipient.address) == 20 * ETHER


# ══════════════════════════════════════════════════════════════════════
#  SPENDING WINDOW
# ══════════════════════════════════════════════════════════════════════


class TestDailySpent:
    """The rolling window starts at the first spend."""

    def test_fresh_wallet_has_full_allowance(self, ledger, infra, wallet):
        unspent, period_end = infra.transfer_handler.get_daily_unspent(wallet.address)
        assert unspent == ETHER
        assert period_end == ledger.timestamp + LIMIT_PERIOD

    def test_spends_accumulate(self, accounts, infra, wallet):
        spend(infra, accounts, wallet, ETHER // 4)
        spend(infra, accounts, wallet, ETHER // 4)
        assert infra.transfer_handler.get_daily_unspent(wallet.address)[0] == ETHER // 2

    def test_spend_up_to_exact_limit(self, ledger, accounts, infra, wallet):
        assert spend(infra, accounts, wallet, ETHER) is None
        assert infra.transfer_handler.get_daily_unspent(wallet.address)[0] == 0
        assert spend(infra, accounts, wallet, 1) is not None

    def test_window_resets(self, ledger, accounts, infra, wallet):
        th = infra.transfer_handler
        spend(infra, accounts, wallet, ETHER)
        _, period_end = th.get_daily_unspent(wallet.address)

        ledger.advance_time(period_end - ledger.timestamp - 1)
        assert th.get_daily_unspent(wallet.address)[0] == 0

        ledger.advance_time(1)
        assert th.get_daily_unspent(wallet.address)[0] == ETHER
        assert spend(infra, accounts, wallet, ETHER // 2) is None

    def test_failed_check_leaves_counter(self, accounts, infra, wallet):
        th = infra.transfer_handler
        spend(infra, accounts, wallet, ETHER // 2)
        before = th.get_daily_unspent(wallet.address)
        assert not th.check_and_update_daily_spent(wallet.address, ETHER)
        assert th.get_daily_unspent(wallet.address) == before

    def test_is_within_daily_limit(self, accounts, infra, wallet):
        th = infra.transfer_handler
        assert th.is_within_daily_limit(wallet.address, ETHER)
        assert not th.is_within_daily_limit(wallet.address, ETHER + 1)

    def test_lowered_limit_clamps_unspent(self, ledger, accounts, infra, wallet):
        th = infra.transfer_handler
        th.change_limit(accounts.owner.address, wallet.address, ETHER // 4)
        ledger.advance_time(SECURITY_PERIOD - 10)
        spend(infra, accounts, wallet, ETHER // 2)
        assert th.get_daily_unspent(wallet.address)[0] == ETHER // 2
        ledger.advance_time(10)
        assert th.get_daily_unspent(wallet.address)[0] == 0
