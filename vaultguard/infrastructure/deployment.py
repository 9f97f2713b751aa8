"""
Deployment bootstrap.

Stands up a complete control plane on a ledger, in dependency order:

  1. governance multisig, module registry, swap network, price provider,
     wallet implementation and factory
  2. managers on the factory and price provider; factory and registry
     ownership handed to the multisig
  3. guardian and transfer storages and the six policy modules
  4. every module registered through the multisig
  5. a version record fingerprinting the module set
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..config.loader import VaultGuardConfig
from ..constants import GENESIS_DEPLOYER, VAULTGUARD_VERSION
from ..crypto.address import address_to_int, to_checksum_address
from ..crypto.contract import ascii_to_bytes32
from ..crypto.hashing import keccak256
from ..crypto.keys import PrivateKey
from ..exceptions import ConfigurationError
from ..exchange import SwapNetwork, TokenPriceProvider
from ..logger import get_logger, set_log_level
from ..modules import (
    ApprovedTransfer,
    GuardianHandler,
    LockHandler,
    RecoveryHandler,
    TokenSwapHandler,
    TransferHandler,
)
from ..storage import GuardianStorage, TransferStorage
from ..wallet import BaseWallet
from .factory import WalletFactory
from .module_registry import ModuleRegistry
from .multisig import MultisigExecutor, MultiSigWallet

logger = get_logger(__name__)


def version_fingerprint(modules: Iterable[str]) -> str:
    """First 4 bytes of keccak over the ascending module addresses, concatenated."""
    ordered = sorted((to_checksum_address(m) for m in modules), key=address_to_int)
    digest = keccak256("0x" + "".join(m[2:] for m in ordered))
    return "0x" + digest[:4].hex()


@dataclass
class Infrastructure:
    """Handles to every deployed contract."""
    ledger: Any
    multisig: MultiSigWallet
    executor: MultisigExecutor
    registry: ModuleRegistry
    swap_network: SwapNetwork
    price_provider: TokenPriceProvider
    wallet_implementation: BaseWallet
    factory: WalletFactory
    guardian_storage: GuardianStorage
    transfer_storage: TransferStorage
    guardian_handler: GuardianHandler
    lock_handler: LockHandler
    recovery_handler: RecoveryHandler
    approved_transfer: ApprovedTransfer
    transfer_handler: TransferHandler
    token_swap_handler: TokenSwapHandler
    version: Dict[str, Any] = field(default_factory=dict)

    @property
    def modules(self) -> List[Any]:
        return [
            self.guardian_handler,
            self.lock_handler,
            self.recovery_handler,
            self.approved_transfer,
            self.transfer_handler,
            self.token_swap_handler,
        ]

    @property
    def module_addresses(self) -> List[str]:
        return [m.address for m in self.modules]


def deploy_infrastructure(
    ledger,
    config: Optional[VaultGuardConfig] = None,
    deployer: str = GENESIS_DEPLOYER,
    multisig_keys: Iterable[PrivateKey] = (),
    managers: Iterable[str] = (),
) -> Infrastructure:
    """
    Deploy and wire the full control plane.

    Args:
        ledger: Target LedgerState
        config: Policy settings; defaults when omitted
        deployer: Initial owner of every contract before the hand-over
        multisig_keys: Keys of the governance owners
        managers: Accounts allowed to create wallets and set prices
    """
    config = config or VaultGuardConfig()
    config.validate()
    set_log_level(config.logging.level)
    settings = config.settings
    deployer = to_checksum_address(deployer)

    multisig_keys = list(multisig_keys)
    if not multisig_keys:
        raise ConfigurationError("deploy_infrastructure needs at least one multisig key")
    owners = [k.address for k in multisig_keys]
    if config.multisig.owners:
        configured = {to_checksum_address(o) for o in config.multisig.owners}
        if configured != set(owners):
            raise ConfigurationError("multisig keys do not match [multisig] owners")
    threshold = min(config.multisig.threshold, len(owners))

    # ── Core contracts ────────────────────────────────────────────────
    multisig = MultiSigWallet(ledger, threshold, owners)
    executor = MultisigExecutor(multisig, multisig_keys, config.multisig.autosign)
    registry = ModuleRegistry(ledger, deployer)
    swap_network = SwapNetwork(ledger, deployer)
    price_provider = TokenPriceProvider(ledger, deployer, swap_network)
    wallet_implementation = BaseWallet(ledger)
    guardian_storage = GuardianStorage(ledger)
    transfer_storage = TransferStorage(ledger)
    factory = WalletFactory(ledger, deployer, registry, wallet_implementation, guardian_storage)

    # ── Managers and ownership ────────────────────────────────────────
    for manager in managers:
        factory.add_manager(deployer, manager)
        price_provider.add_manager(deployer, manager)
    for contract in (factory, registry):
        contract.change_owner(deployer, multisig.address)

    # ── Modules ───────────────────────────────────────────────────────
    common = {"swap_network": swap_network, "relay_config": config.relay}
    guardian_handler = GuardianHandler(
        ledger, registry, guardian_storage, settings.security_period, settings.security_window, **common
    )
    lock_handler = LockHandler(ledger, registry, guardian_storage, settings.lock_period, **common)
    recovery_handler = RecoveryHandler(
        ledger, registry, guardian_storage, settings.recovery_period, settings.lock_period, **common
    )
    approved_transfer = ApprovedTransfer(ledger, registry, guardian_storage, **common)
    transfer_handler = TransferHandler(
        ledger,
        registry,
        transfer_storage,
        guardian_storage,
        price_provider,
        settings.security_period,
        settings.security_window,
        settings.default_limit,
        **common,
    )
    token_swap_handler = TokenSwapHandler(
        ledger,
        registry,
        guardian_storage,
        swap_network,
        multisig.address,
        settings.fee_ratio,
        relay_config=config.relay,
    )

    infra = Infrastructure(
        ledger=ledger,
        multisig=multisig,
        executor=executor,
        registry=registry,
        swap_network=swap_network,
        price_provider=price_provider,
        wallet_implementation=wallet_implementation,
        factory=factory,
        guardian_storage=guardian_storage,
        transfer_storage=transfer_storage,
        guardian_handler=guardian_handler,
        lock_handler=lock_handler,
        recovery_handler=recovery_handler,
        approved_transfer=approved_transfer,
        transfer_handler=transfer_handler,
        token_swap_handler=token_swap_handler,
    )

    # ── Registration through governance ───────────────────────────────
    for module in infra.modules:
        executor.execute_call(
            registry, "registerModule(address,bytes32)", [module.address, ascii_to_bytes32(module.name)]
        )

    infra.version = {
        "modules": [{"address": m.address, "name": m.name} for m in infra.modules],
        "fingerprint": version_fingerprint(infra.module_addresses),
        "version": VAULTGUARD_VERSION,
        "createdAt": int(time.time()),
    }
    logger.info(
        f"Infrastructure deployed: {len(infra.modules)} modules, "
        f"fingerprint {infra.version['fingerprint']}"
    )
    return infra
