"""
VaultGuard Policy Modules

Modules decide, for every outgoing action of a wallet, whether it executes
now, waits, or is rejected.
"""

from .base import BaseModule
from .relayer import RelayerModule, RelayRequest, RelayResult
from .guardian_utils import ContractGuardian, GuardianPrincipal, KeyGuardian, guardian_principal
from .limits import DailySpent, Limit, LimitManager
from .base_transfer import BaseTransfer
from .transfer_handler import PendingTransfer, TransferHandler, pending_transfer_id
from .lock_handler import LockHandler
from .guardian_handler import GuardianHandler
from .recovery_handler import Recovery, RecoveryHandler
from .approved_transfer import ApprovedTransfer
from .token_swap_handler import TokenSwapHandler

__all__ = [
    "BaseModule",
    "RelayerModule",
    "RelayRequest",
    "RelayResult",
    "GuardianPrincipal",
    "KeyGuardian",
    "ContractGuardian",
    "guardian_principal",
    "Limit",
    "DailySpent",
    "LimitManager",
    "BaseTransfer",
    "PendingTransfer",
    "TransferHandler",
    "pending_transfer_id",
    "LockHandler",
    "GuardianHandler",
    "Recovery",
    "RecoveryHandler",
    "ApprovedTransfer",
    "TokenSwapHandler",
]
