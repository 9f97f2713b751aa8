"""
VaultGuard Storage

Shared per-wallet state written by modules: guardians, locks and whitelists.
"""

from .guardian_storage import GuardianStorage
from .transfer_storage import TransferStorage

__all__ = ["GuardianStorage", "TransferStorage"]
