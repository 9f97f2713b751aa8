"""
Shared fixtures: a ledger with a deterministic clock, named accounts, a fully
deployed control plane and a wallet created through the factory.
"""

import itertools
import os
import sys
from types import SimpleNamespace

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from vaultguard.config import VaultGuardConfig
from vaultguard.crypto import PrivateKey
from vaultguard.infrastructure.deployment import deploy_infrastructure
from vaultguard.ledger import LedgerState
from vaultguard.modules import RelayRequest

START_TIME = 1_600_000_000
ETHER = 10 ** 18

SECURITY_PERIOD = 24 * 60 * 60
SECURITY_WINDOW = 12 * 60 * 60
LOCK_PERIOD = 5 * 24 * 60 * 60
RECOVERY_PERIOD = 5 * 24 * 60 * 60


@pytest.fixture
def ledger():
    return LedgerState(timestamp=START_TIME)


@pytest.fixture
def accounts():
    """Deterministic keys, one per role."""
    names = [
        "owner", "nonowner", "recipient", "relayer", "manager",
        "guardian1", "guardian2", "guardian3", "recovery",
        "ms1", "ms2", "ms3",
    ]
    return SimpleNamespace(**{
        name: PrivateKey.from_int(0x1000 + i) for i, name in enumerate(names, start=1)
    })


@pytest.fixture
def config():
    cfg = VaultGuardConfig()
    cfg.settings.security_period = SECURITY_PERIOD
    cfg.settings.security_window = SECURITY_WINDOW
    cfg.settings.lock_period = LOCK_PERIOD
    cfg.settings.recovery_period = RECOVERY_PERIOD
    cfg.settings.default_limit = ETHER
    cfg.multisig.threshold = 2
    return cfg


@pytest.fixture
def infra(ledger, accounts, config):
    return deploy_infrastructure(
        ledger,
        config,
        multisig_keys=[accounts.ms1, accounts.ms2, accounts.ms3],
        managers=[accounts.manager.address],
    )


@pytest.fixture
def wallet(ledger, accounts, infra):
    """Wallet owned by ``accounts.owner`` with every module and 50 ether."""
    address = infra.factory.create_wallet(
        accounts.manager.address, accounts.owner.address, infra.module_addresses
    )
    ledger.fund(address, 50 * ETHER)
    return ledger.contract_at(address)


@pytest.fixture
def relay(accounts):
    """
    Submit a relayed call: ``relay(module, wallet, sig, args, owner=key, guardians=[...])``.
    Nonces increase automatically.
    """
    nonces = itertools.count(1)

    def _relay(module, wallet, method, args, owner=None, guardians=(), relayer=None, nonce=None, **kwargs):
        request = RelayRequest(
            module,
            wallet.address,
            method,
            list(args),
            nonce=next(nonces) if nonce is None else nonce,
            **kwargs,
        )
        request.sign(owner_key=owner, guardian_keys=guardians)
        return request.submit((relayer or accounts.relayer).address)

    return _relay
