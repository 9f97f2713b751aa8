"""
Ledger State

In-memory execution environment shared by every contract:

  - ledger-wide monotonic clock and block counter
  - native balances and deployer nonces
  - per-contract key/value storage
  - registry of deployed contracts
  - append-only event log
  - snapshots and reverts, composed into nested atomic scopes

A top-level atomic scope is one transaction and mines one block. Nested
scopes behave like call frames: a failing frame is rolled back to its own
snapshot and the exception continues to the caller.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator, List, Optional, Tuple

from ..constants import GENESIS_DEPLOYER
from ..crypto.address import short_address, to_checksum_address
from ..crypto.contract import generate_contract_address
from ..exceptions import AlreadyExistsError, InsufficientBalanceError
from ..logger import get_logger
from .events import Event

logger = get_logger(__name__)

StorageKey = Tuple[str, Hashable]


class LedgerState:
    """
    Shared state of all accounts and contracts.

    Storage values must be immutable (ints, strings, bytes, tuples,
    frozensets, frozen dataclasses) so that a snapshot can be a shallow copy.
    """

    def __init__(self, timestamp: Optional[int] = None, block_number: int = 0):
        self._timestamp = int(time.time()) if timestamp is None else int(timestamp)
        self._block_number = block_number

        self._balances: Dict[str, int] = {}
        self._nonces: Dict[str, int] = {}
        self._storage: Dict[StorageKey, Any] = {}
        self._contracts: Dict[str, Any] = {}
        self._events: List[Event] = []

        self._snapshots: List[Dict[str, Any]] = []
        self._depth = 0

    # ── Clock ─────────────────────────────────────────────────────────

    @property
    def timestamp(self) -> int:
        return self._timestamp

    @property
    def block_number(self) -> int:
        return self._block_number

    def advance_time(self, seconds: int) -> int:
        """Move the clock forward and mine a block. Returns the new timestamp."""
        if seconds < 0:
            raise ValueError("Time cannot move backwards")
        self._timestamp += int(seconds)
        self.mine()
        return self._timestamp

    def mine(self, blocks: int = 1) -> int:
        self._block_number += blocks
        return self._block_number

    # ── Native balances ───────────────────────────────────────────────

    def balance_of(self, address: str) -> int:
        return self._balances.get(to_checksum_address(address), 0)

    def fund(self, address: str, amount: int) -> None:
        """Credit native value out of thin air (genesis allocation / faucet)."""
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        address = to_checksum_address(address)
        self._balances[address] = self._balances.get(address, 0) + amount

    def transfer_value(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move native value between two accounts.

        Raises:
            InsufficientBalanceError: If the sender cannot cover the amount
        """
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        if amount == 0:
            return
        sender = to_checksum_address(sender)
        recipient = to_checksum_address(recipient)
        available = self._balances.get(sender, 0)
        if available < amount:
            raise InsufficientBalanceError(
                f"{short_address(sender)} has {available}, needs {amount}"
            )
        self._balances[sender] = available - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

    # ── Contracts ─────────────────────────────────────────────────────

    def next_contract_address(self, deployer: str = GENESIS_DEPLOYER) -> str:
        """Allocate the CREATE address for the deployer's next contract."""
        deployer = to_checksum_address(deployer)
        nonce = self._nonces.get(deployer, 0)
        self._nonces[deployer] = nonce + 1
        return generate_contract_address(deployer, nonce)

    def deploy(self, contract) -> None:
        """
        Register a contract instance at its address.

        Raises:
            AlreadyExistsError: If a contract already occupies the address
        """
        if contract.address in self._contracts:
            raise AlreadyExistsError(f"Contract already deployed at {contract.address}")
        self._contracts[contract.address] = contract
        logger.debug(f"Deployed {type(contract).__name__} at {short_address(contract.address)}")

    def contract_at(self, address: str):
        return self._contracts.get(to_checksum_address(address))

    def is_contract(self, address: str) -> bool:
        return to_checksum_address(address) in self._contracts

    # ── Storage ───────────────────────────────────────────────────────

    def load(self, address: str, key: Hashable, default: Any = None) -> Any:
        return self._storage.get((address, key), default)

    def store(self, address: str, key: Hashable, value: Any) -> None:
        """Write a storage slot; ``None`` clears it."""
        if value is None:
            self._storage.pop((address, key), None)
        else:
            self._storage[(address, key)] = value

    # ── Events ────────────────────────────────────────────────────────

    def emit(self, name: str, emitter: str, args: Dict[str, Any]) -> Event:
        event = Event(
            name=name,
            emitter=emitter,
            block_number=self._block_number,
            timestamp=self._timestamp,
            log_index=len(self._events),
            args=dict(args),
        )
        self._events.append(event)
        return event

    def events(
        self,
        name: Optional[str] = None,
        emitter: Optional[str] = None,
        since: int = 0,
    ) -> List[Event]:
        """Query the event log, optionally filtered by name and emitter."""
        found = self._events[since:]
        if name is not None:
            found = [e for e in found if e.name == name]
        if emitter is not None:
            emitter = to_checksum_address(emitter)
            found = [e for e in found if e.emitter == emitter]
        return list(found)

    @property
    def event_count(self) -> int:
        return len(self._events)

    # ── Snapshots ─────────────────────────────────────────────────────

    def snapshot(self) -> int:
        """
        Create state snapshot for revert.

        Returns:
            Snapshot ID
        """
        self._snapshots.append({
            'balances': dict(self._balances),
            'nonces': dict(self._nonces),
            'storage': dict(self._storage),
            'contracts': dict(self._contracts),
            'events': len(self._events),
        })
        return len(self._snapshots) - 1

    def revert(self, snapshot_id: int) -> None:
        """
        Revert state to snapshot.

        Args:
            snapshot_id: Snapshot ID from snapshot()
        """
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")

        snapshot = self._snapshots[snapshot_id]
        self._balances = snapshot['balances']
        self._nonces = snapshot['nonces']
        self._storage = snapshot['storage']
        self._contracts = snapshot['contracts']
        del self._events[snapshot['events']:]

        # Remove this and newer snapshots
        self._snapshots = self._snapshots[:snapshot_id]

    def _release(self, snapshot_id: int) -> None:
        self._snapshots = self._snapshots[:snapshot_id]

    @contextmanager
    def atomic(self) -> Iterator["LedgerState"]:
        """
        All-or-nothing scope.

        Any exception raised inside the scope restores balances, storage,
        deployed contracts and the event log, then propagates.
        """
        if self._depth == 0:
            self.mine()
        snapshot_id = self.snapshot()
        self._depth += 1
        try:
            yield self
        except Exception:
            self.revert(snapshot_id)
            raise
        else:
            self._release(snapshot_id)
        finally:
            self._depth -= 1

    # ── Message calls ─────────────────────────────────────────────────

    def call(self, sender: str, target: str, value: int = 0, data: bytes = b"") -> Any:
        """
        Send ``value`` from ``sender`` to ``target`` and dispatch ``data``.

        Calls to plain accounts only move value.
        """
        target = to_checksum_address(target)
        with self.atomic():
            self.transfer_value(sender, target, value)
            contract = self._contracts.get(target)
            if contract is None:
                return None
            return contract.handle_call(to_checksum_address(sender), data, value)

    def __repr__(self) -> str:
        return (
            f"<LedgerState block={self._block_number} time={self._timestamp} "
            f"contracts={len(self._contracts)} events={len(self._events)}>"
        )
