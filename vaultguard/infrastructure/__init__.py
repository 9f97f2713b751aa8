"""
VaultGuard Infrastructure

Access control, module registry, governance multisig and wallet factory.
The deployment bootstrap lives in ``vaultguard.infrastructure.deployment``.
"""

from .owned import Managed, Owned
from .module_registry import ModuleRegistry
from .multisig import MultisigExecutor, MultiSigWallet
from .factory import WalletFactory, wallet_salt

__all__ = [
    "Owned",
    "Managed",
    "ModuleRegistry",
    "MultiSigWallet",
    "MultisigExecutor",
    "WalletFactory",
    "wallet_salt",
]
