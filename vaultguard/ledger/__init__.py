"""
VaultGuard Ledger

The execution environment: clock, balances, contract storage, event log and
atomic scopes.
"""

from .events import Event
from .state import LedgerState
from .contract import Contract, external, transaction

__all__ = [
    "Event",
    "LedgerState",
    "Contract",
    "external",
    "transaction",
]
