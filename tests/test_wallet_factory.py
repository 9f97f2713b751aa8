"""
Wallet Factory Test Suite

Coverage:
  - createWallet / createWalletWithGuardian
  - Counterfactual addresses: determinism, prefunding, collisions
  - Input validation: modules, owner, guardian, guardian storage
  - Manager and owner access control
"""

import pytest

from vaultguard.constants import ZERO_ADDRESS
from vaultguard.crypto import generate_contract_address_create2
from vaultguard.exceptions import (
    AlreadyExistsError,
    GuardianStorageMissingError,
    ModuleNotRegisteredError,
    NoModulesError,
    NullAddressError,
    NullGuardianError,
    UnauthorizedError,
)
from vaultguard.infrastructure import WalletFactory, wallet_salt
from vaultguard.modules import LockHandler
from vaultguard.wallet import BaseWallet


ETHER = 10 ** 18
SALT = 42


# ══════════════════════════════════════════════════════════════════════
#  CREATION
# ══════════════════════════════════════════════════════════════════════


class TestCreateWallet:
    """Plain CREATE wallets."""

    def test_create_wallet(self, ledger, accounts, infra):
        address = infra.factory.create_wallet(
            accounts.manager.address, accounts.owner.address, infra.module_addresses
        )
        wallet = ledger.contract_at(address)
        assert isinstance(wallet, BaseWallet)
        assert wallet.owner == accounts.owner.address
        assert wallet.modules == len(infra.modules)
        for module in infra.modules:
            assert wallet.authorised(module.address)

    def test_factory_is_not_left_as_module(self, ledger, accounts, infra):
        address = infra.factory.create_wallet(
            accounts.manager.address, accounts.owner.address, infra.module_addresses
        )
        assert not ledger.contract_at(address).authorised(infra.factory.address)

    def test_created_event(self, ledger, accounts, infra):
        address = infra.factory.create_wallet(
            accounts.manager.address, accounts.owner.address, infra.module_addresses
        )
        event = ledger.events("WalletCreated")[-1]
        assert event["wallet"] == address
        assert event["owner"] == accounts.owner.address
        assert event["guardian"] == ZERO_ADDRESS

    def test_successive_wallets_differ(self, accounts, infra):
        first = infra.factory.create_wallet(accounts.manager.address, accounts.owner.address, infra.module_addresses)
        second = infra.factory.create_wallet(accounts.manager.address, accounts.owner.address, infra.module_addresses)
        assert first != second

    def test_with_guardian(self, ledger, accounts, infra):
        address = infra.factory.create_wallet_with_guardian(
            accounts.manager.address, accounts.owner.address, infra.module_addresses, accounts.guardian1.address
        )
        assert infra.guardian_storage.get_guardians(address) == (accounts.guardian1.address,)
        assert ledger.events("WalletCreated")[-1]["guardian"] == accounts.guardian1.address

    def test_subset_of_modules(self, ledger, accounts, infra):
        address = infra.factory.create_wallet(
            accounts.manager.address, accounts.owner.address, [infra.transfer_handler.address]
        )
        wallet = ledger.contract_at(address)
        assert wallet.modules == 1
        assert not wallet.authorised(infra.lock_handler.address)


class TestValidation:
    """Rejected inputs leave no wallet behind."""

    def test_non_manager(self, accounts, infra):
        with pytest.raises(UnauthorizedError, match="Must be manager"):
            infra.factory.create_wallet(accounts.nonowner.address, accounts.owner.address, infra.module_addresses)

    def test_no_modules(self, accounts, infra):
        with pytest.raises(NoModulesError, match="less than 1 module"):
            infra.factory.create_wallet(accounts.manager.address, accounts.owner.address, [])

    def test_no_modules_checked_before_owner(self, accounts, infra):
        with pytest.raises(NoModulesError):
            infra.factory.create_wallet(accounts.manager.address, ZERO_ADDRESS, [])

    def test_null_owner(self, accounts, infra):
        with pytest.raises(NullAddressError, match="owner cannot be null"):
            infra.factory.create_wallet(accounts.manager.address, ZERO_ADDRESS, infra.module_addresses)

    def test_unregistered_module(self, ledger, accounts, infra):
        rogue = LockHandler(ledger, infra.registry, infra.guardian_storage)
        with pytest.raises(ModuleNotRegisteredError):
            infra.factory.create_wallet(
                accounts.manager.address, accounts.owner.address, infra.module_addresses + [rogue.address]
            )

    def test_null_guardian(self, accounts, infra):
        with pytest.raises(NullGuardianError, match="guardian cannot be null"):
            infra.factory.create_wallet_with_guardian(
                accounts.manager.address, accounts.owner.address, infra.module_addresses, ZERO_ADDRESS
            )

    def test_guardian_storage_missing(self, ledger, accounts, infra):
        factory = WalletFactory(ledger, accounts.owner.address, infra.registry, infra.wallet_implementation)
        factory.add_manager(accounts.owner.address, accounts.manager.address)
        with pytest.raises(GuardianStorageMissingError):
            factory.create_wallet_with_guardian(
                accounts.manager.address, accounts.owner.address, infra.module_addresses, accounts.guardian1.address
            )

    def test_failed_creation_is_rolled_back(self, ledger, accounts, infra):
        before = ledger.events("WalletCreated")
        with pytest.raises(NullGuardianError):
            infra.factory.create_counterfactual_wallet_with_guardian(
                accounts.manager.address, accounts.owner.address, infra.module_addresses, ZERO_ADDRESS, SALT
            )
        assert ledger.events("WalletCreated") == before


# ══════════════════════════════════════════════════════════════════════
#  COUNTERFACTUAL
# ══════════════════════════════════════════════════════════════════════


class TestCounterfactual:
    """CREATE2 wallets derived from (owner, modules[, guardian], salt)."""

    def test_predicted_address_matches(self, ledger, accounts, infra):
        factory = infra.factory
        predicted = factory.get_address_for_counterfactual_wallet(
            accounts.owner.address, infra.module_addresses, SALT
        )
        address = factory.create_counterfactual_wallet(
            accounts.manager.address, accounts.owner.address, infra.module_addresses, SALT
        )
        assert address == predicted
        assert ledger.contract_at(address).owner == accounts.owner.address

    def test_prediction_is_stable(self, accounts, infra):
        factory = infra.factory
        a = factory.get_address_for_counterfactual_wallet(accounts.owner.address, infra.module_addresses, SALT)
        b = factory.get_address_for_counterfactual_wallet(accounts.owner.address, infra.module_addresses, SALT)
        assert a == b

    def test_inputs_change_address(self, accounts, infra):
        factory = infra.factory
        base = factory.get_address_for_counterfactual_wallet(accounts.owner.address, infra.module_addresses, SALT)
        assert base != factory.get_address_for_counterfactual_wallet(
            accounts.owner.address, infra.module_addresses, SALT + 1
        )
        assert base != factory.get_address_for_counterfactual_wallet(
            accounts.nonowner.address, infra.module_addresses, SALT
        )
        assert base != factory.get_address_for_counterfactual_wallet(
            accounts.owner.address, infra.module_addresses[:1], SALT
        )
        assert base != factory.get_address_for_counterfactual_wallet_with_guardian(
            accounts.owner.address, infra.module_addresses, accounts.guardian1.address, SALT
        )

    def test_address_derivation(self, accounts, infra):
        factory = infra.factory
        expected = generate_contract_address_create2(
            factory.address,
            wallet_salt(SALT, accounts.owner.address, infra.module_addresses),
            factory._init_code(),
        )
        assert factory.get_address_for_counterfactual_wallet(
            accounts.owner.address, infra.module_addresses, SALT
        ) == expected

    def test_int_and_bytes_salt_agree(self, accounts, infra):
        modules = infra.module_addresses
        assert wallet_salt(SALT, accounts.owner.address, modules) == wallet_salt(
            SALT.to_bytes(32, "big"), accounts.owner.address, modules
        )

    def test_bad_salt_length(self, accounts, infra):
        with pytest.raises(ValueError):
            wallet_salt(b"\x01" * 31, accounts.owner.address, infra.module_addresses)

    def test_prefunded_wallet(self, ledger, accounts, infra):
        factory = infra.factory
        predicted = factory.get_address_for_counterfactual_wallet(
            accounts.owner.address, infra.module_addresses, SALT
        )
        ledger.fund(predicted, 3 * ETHER)

        address = factory.create_counterfactual_wallet(
            accounts.manager.address, accounts.owner.address, infra.module_addresses, SALT
        )

        wallet = ledger.contract_at(address)
        assert wallet.balance == 3 * ETHER
        received = ledger.events("Received", emitter=address)
        assert received[-1]["value"] == 3 * ETHER

    def test_second_creation_rejected(self, accounts, infra):
        factory = infra.factory
        factory.create_counterfactual_wallet(
            accounts.manager.address, accounts.owner.address, infra.module_addresses, SALT
        )
        with pytest.raises(AlreadyExistsError):
            factory.create_counterfactual_wallet(
                accounts.manager.address, accounts.owner.address, infra.module_addresses, SALT
            )

    def test_with_guardian(self, ledger, accounts, infra):
        factory = infra.factory
        predicted = factory.get_address_for_counterfactual_wallet_with_guardian(
            accounts.owner.address, infra.module_addresses, accounts.guardian1.address, SALT
        )
        address = factory.create_counterfactual_wallet_with_guardian(
            accounts.manager.address, accounts.owner.address, infra.module_addresses,
            accounts.guardian1.address, SALT,
        )
        assert address == predicted
        assert infra.guardian_storage.is_guardian(address, accounts.guardian1.address)


# ══════════════════════════════════════════════════════════════════════
#  ADMINISTRATION
# ══════════════════════════════════════════════════════════════════════


class TestFactoryAdministration:
    """Owner-only configuration, owned by the governance multisig."""

    def test_owner_is_multisig(self, infra):
        assert infra.factory.owner == infra.multisig.address

    def test_direct_change_rejected(self, accounts, infra):
        with pytest.raises(UnauthorizedError, match="Must be owner"):
            infra.factory.change_wallet_implementation(accounts.owner.address, accounts.recipient.address)

    def test_change_through_multisig(self, ledger, accounts, infra):
        old = infra.factory.get_address_for_counterfactual_wallet(
            accounts.owner.address, infra.module_addresses, SALT
        )
        implementation = BaseWallet(ledger)
        infra.executor.execute_call(
            infra.factory, "changeWalletImplementation(address)", [implementation.address]
        )
        assert infra.factory.wallet_implementation == implementation.address
        assert infra.factory.get_address_for_counterfactual_wallet(
            accounts.owner.address, infra.module_addresses, SALT
        ) != old

    def test_null_address_rejected(self, infra):
        with pytest.raises(NullAddressError):
            infra.executor.execute_call(infra.factory, "changeGuardianStorage(address)", [ZERO_ADDRESS])

    def test_manager_management(self, accounts, infra):
        infra.executor.execute_call(infra.factory, "addManager(address)", [accounts.nonowner.address])
        infra.factory.create_wallet(accounts.nonowner.address, accounts.owner.address, infra.module_addresses)
        infra.executor.execute_call(infra.factory, "revokeManager(address)", [accounts.nonowner.address])
        assert not infra.factory.is_manager(accounts.nonowner.address)
