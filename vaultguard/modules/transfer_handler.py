"""
Transfer Handler

The owner's gateway for moving value out of a wallet:

  - transfers, approvals, contract calls and approve-and-call
  - whitelist of trusted destinations, active after the security period
  - daily limit on everything sent to non-whitelisted destinations
  - pending transfers for value transfers above the limit, executable by
    anyone during the security window that follows the security period

Pending transfer ids are ``keccak256(action, token, to, amount, data, block)``
so anyone can recompute them from the ``PendingTransferCreated`` log.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ..constants import (
    ACTION_TRANSFER,
    DEFAULT_LIMIT,
    DEFAULT_SECURITY_PERIOD,
    DEFAULT_SECURITY_WINDOW,
    ETH_TOKEN,
)
from ..crypto.address import short_address, to_checksum_address
from ..crypto.hashing import hash_to_hex, solidity_keccak256
from ..exceptions import (
    AlreadyExistsError,
    AlreadyTerminalError,
    LimitExceededError,
    NotFoundError,
    NotWhitelistedYetError,
    NotYetExecutableError,
    WindowExpiredError,
)
from ..ledger.contract import external, transaction
from ..logger import get_logger
from .base_transfer import BaseTransfer
from .limits import LimitManager

logger = get_logger(__name__)

PENDING = "pending"
EXECUTED = "executed"


@dataclass(frozen=True)
class PendingTransfer:
    execute_after: int
    execute_before: int
    status: str = PENDING

    def to_dict(self) -> dict:
        return {
            "executeAfter": self.execute_after,
            "executeBefore": self.execute_before,
            "status": self.status,
        }


def pending_transfer_id(token: str, to: str, amount: int, data: bytes, block_number: int) -> bytes:
    return solidity_keccak256(
        ["uint8", "address", "address", "uint256", "bytes", "uint256"],
        [ACTION_TRANSFER, to_checksum_address(token), to_checksum_address(to), amount, data, block_number],
    )


class TransferHandler(LimitManager, BaseTransfer):
    """Limit-and-whitelist gated transfers."""

    NAME = "TransferHandler"
    PREFIX = "TT"

    def __init__(
        self,
        ledger,
        registry,
        transfer_storage,
        guardian_storage,
        price_provider,
        security_period: int = DEFAULT_SECURITY_PERIOD,
        security_window: int = DEFAULT_SECURITY_WINDOW,
        default_limit: int = DEFAULT_LIMIT,
        **kwargs,
    ):
        super().__init__(ledger, registry, guardian_storage, **kwargs)
        self.transfer_storage = transfer_storage
        self.price_provider = price_provider
        self.security_period = security_period
        self.security_window = security_window
        self.default_limit = default_limit

    # ── Relay policy ──────────────────────────────────────────────────

    def get_required_signatures(self, wallet: str, method: str, args: Tuple[Any, ...]) -> int:
        if method == "execute_pending_transfer":
            return 0
        return 1

    def _charge_refund(self, wallet: str, ether_amount: int, required: int) -> None:
        if required == 1 and not self.check_and_update_daily_spent(wallet, ether_amount):
            raise LimitExceededError("RM: refund is above daily limit")

    # ── Valuation ─────────────────────────────────────────────────────

    def _ether_value(self, token: str, amount: int) -> int:
        if to_checksum_address(token) == ETH_TOKEN:
            return amount
        return self.price_provider.get_ether_value(amount, token)

    # ── Whitelist ─────────────────────────────────────────────────────

    def get_whitelist(self, wallet: str, target: str) -> int:
        return self.transfer_storage.get_whitelist(wallet, target)

    def is_whitelisted(self, wallet: str, target: str) -> bool:
        whitelist_after = self.get_whitelist(wallet, target)
        return whitelist_after > 0 and self.now >= whitelist_after

    @external("addToWhitelist(address,address)")
    @transaction
    def add_to_whitelist(self, caller: str, wallet: str, target: str) -> int:
        wallet = to_checksum_address(wallet)
        target = to_checksum_address(target)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        if self.get_whitelist(wallet, target) > 0:
            raise AlreadyExistsError("TT: target already whitelisted")
        whitelist_after = self.now + self.security_period
        self.transfer_storage.set_whitelist(self.address, wallet, target, whitelist_after)
        self.emit("AddedToWhitelist", wallet=wallet, target=target, whitelist_after=whitelist_after)
        logger.info(f"{short_address(target)} whitelisted for {short_address(wallet)} after {whitelist_after}")
        return whitelist_after

    @external("removeFromWhitelist(address,address)")
    @transaction
    def remove_from_whitelist(self, caller: str, wallet: str, target: str) -> None:
        wallet = to_checksum_address(wallet)
        target = to_checksum_address(target)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        if self.get_whitelist(wallet, target) == 0:
            raise NotFoundError("TT: target not whitelisted")
        self.transfer_storage.set_whitelist(self.address, wallet, target, 0)
        self.emit("RemovedFromWhitelist", wallet=wallet, target=target)
        logger.info(f"{short_address(target)} removed from whitelist of {short_address(wallet)}")

    def _reject_above_limit(self, wallet: str, target: str, what: str) -> None:
        if self.get_whitelist(wallet, target) > self.now:
            raise NotWhitelistedYetError(f"TT: {short_address(target)} is not whitelisted yet")
        raise LimitExceededError(f"TT: {what} above daily limit")

    # ── Gateway ───────────────────────────────────────────────────────

    @external("transferToken(address,address,address,uint256,bytes)")
    @transaction
    def transfer_token(
        self, caller: str, wallet: str, token: str, to: str, amount: int, data: bytes = b""
    ) -> Optional[bytes]:
        """
        Transfer ether or tokens.

        Returns:
            The pending transfer id when the transfer is queued, otherwise None
        """
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        if self.is_whitelisted(wallet, to):
            self._do_transfer(wallet, token, to, amount, data)
            return None
        if self.check_and_update_daily_spent(wallet, self._ether_value(token, amount)):
            self._do_transfer(wallet, token, to, amount, data)
            return None
        return self._add_pending_transfer(wallet, token, to, amount, data)

    @external("approveToken(address,address,address,uint256)")
    @transaction
    def approve_token(self, caller: str, wallet: str, token: str, spender: str, amount: int) -> None:
        """Set an allowance. Only the increase over the current allowance counts against the limit."""
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        if not self.is_whitelisted(wallet, spender):
            current = self.token_allowance(wallet, token, spender)
            if amount > current:
                increase = self._ether_value(token, amount - current)
                if not self.check_and_update_daily_spent(wallet, increase):
                    self._reject_above_limit(wallet, spender, "approve")
        self._do_approve_token(wallet, token, spender, amount)

    @external("callContract(address,address,uint256,bytes)")
    @transaction
    def call_contract(self, caller: str, wallet: str, contract: str, value: int, data: bytes) -> None:
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        self._check_call_target(wallet, contract)
        if not self.is_whitelisted(wallet, contract):
            if not self.check_and_update_daily_spent(wallet, value):
                self._reject_above_limit(wallet, contract, "call contract")
        self._do_call_contract(wallet, contract, value, data)

    @external("approveTokenAndCallContract(address,address,address,uint256,bytes)")
    @transaction
    def approve_token_and_call_contract(
        self, caller: str, wallet: str, token: str, contract: str, amount: int, data: bytes
    ) -> None:
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        self._check_call_target(wallet, contract)
        if not self.is_whitelisted(wallet, contract):
            current = self.token_allowance(wallet, token, contract)
            if amount > current:
                increase = self._ether_value(token, amount - current)
                if not self.check_and_update_daily_spent(wallet, increase):
                    self._reject_above_limit(wallet, contract, "approve")
        self._do_approve_token_and_call_contract(wallet, token, contract, amount, data)

    # ── Pending transfers ─────────────────────────────────────────────

    def pending_transfer(self, wallet: str, transfer_id: bytes) -> Optional[PendingTransfer]:
        return self._load(("pending", to_checksum_address(wallet), bytes(transfer_id)))

    def get_pending_transfer(self, wallet: str, transfer_id: bytes) -> int:
        """``execute_after`` of a transfer still pending, otherwise 0."""
        entry = self.pending_transfer(wallet, transfer_id)
        if entry is None or entry.status != PENDING:
            return 0
        return entry.execute_after

    def _add_pending_transfer(self, wallet: str, token: str, to: str, amount: int, data: bytes) -> bytes:
        transfer_id = pending_transfer_id(token, to, amount, data, self.ledger.block_number)
        if self.pending_transfer(wallet, transfer_id) is not None:
            raise AlreadyExistsError("TT: transfer already pending")
        execute_after = self.now + self.security_period
        entry = PendingTransfer(execute_after, execute_after + self.security_window)
        self._store(("pending", wallet, transfer_id), entry)
        self.emit(
            "PendingTransferCreated",
            wallet=wallet,
            id=transfer_id,
            execute_after=entry.execute_after,
            execute_before=entry.execute_before,
            token=to_checksum_address(token),
            to=to_checksum_address(to),
            amount=amount,
            data=data,
        )
        logger.info(
            f"Pending transfer {hash_to_hex(transfer_id)[:10]} for {short_address(wallet)}: "
            f"{amount} to {short_address(to)}, executable [{entry.execute_after}, {entry.execute_before})"
        )
        return transfer_id

    @external("executePendingTransfer(address,address,address,uint256,bytes,uint256)")
    @transaction
    def execute_pending_transfer(
        self,
        caller: str,
        wallet: str,
        token: str,
        to: str,
        amount: int,
        data: bytes,
        block_number: int,
    ) -> None:
        """Execute a queued transfer inside its window. Anyone may call this."""
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        transfer_id = pending_transfer_id(token, to, amount, data, block_number)
        entry = self.pending_transfer(wallet, transfer_id)
        if entry is None:
            raise NotFoundError("TT: unknown pending transfer")
        if entry.status != PENDING:
            raise AlreadyTerminalError("TT: transfer already executed")
        if self.now < entry.execute_after:
            raise NotYetExecutableError("TT: outside of the execution window")
        if self.now >= entry.execute_before:
            raise WindowExpiredError("TT: outside of the execution window")
        self._store(("pending", wallet, transfer_id), PendingTransfer(
            entry.execute_after, entry.execute_before, EXECUTED
        ))
        self._do_transfer(wallet, token, to, amount, data)
        self.emit("PendingTransferExecuted", wallet=wallet, id=transfer_id)
        logger.info(f"Pending transfer {hash_to_hex(transfer_id)[:10]} executed")

    @external("cancelPendingTransfer(address,bytes32)")
    @transaction
    def cancel_pending_transfer(self, caller: str, wallet: str, transfer_id: bytes) -> None:
        wallet = to_checksum_address(wallet)
        transfer_id = bytes(transfer_id)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)
        entry = self.pending_transfer(wallet, transfer_id)
        if entry is None:
            raise NotFoundError("TT: unknown pending transfer")
        if entry.status != PENDING:
            raise AlreadyTerminalError("TT: transfer already executed")
        if self.now >= entry.execute_before:
            raise WindowExpiredError("TT: pending transfer expired")
        self._store(("pending", wallet, transfer_id), None)
        self.emit("PendingTransferCanceled", wallet=wallet, id=transfer_id)
        logger.info(f"Pending transfer {hash_to_hex(transfer_id)[:10]} cancelled")
