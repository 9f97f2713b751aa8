"""
ERC20 Token

Ledger-resident fungible token with:
  - ERC-20 interface (transfer, approve, transferFrom, balanceOf, allowance)
  - ABI-reachable mutators so wallets can drive it through ``invoke``
  - Owner-restricted minting for faucets and liquidity seeding
"""

from typing import Any, Dict

from ..constants import ZERO_ADDRESS
from ..crypto.address import require_non_null, short_address, to_checksum_address
from ..exceptions import InsufficientBalanceError, UnauthorizedError, VaultGuardException
from ..ledger.contract import Contract, external, transaction
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class TokenError(VaultGuardException):
    """Base exception for token operations."""


class InsufficientAllowanceError(TokenError):
    """Raised when spender allowance is too low."""


# ══════════════════════════════════════════════════════════════════════
#  ERC20 TOKEN
# ══════════════════════════════════════════════════════════════════════

class ERC20Token(Contract):
    """
    ERC-20 token stored in the ledger.

    Balances live under ``("balance", holder)`` and allowances under
    ``("allowance", owner, spender)`` so that failed transactions roll them back.
    """

    def __init__(
        self,
        ledger,
        name: str,
        symbol: str,
        decimals: int = 18,
        total_supply: int = 0,
        holder: str = None,
        *,
        address: str = None,
    ):
        if not name:
            raise TokenError("Token name cannot be empty")
        if not symbol:
            raise TokenError("Token symbol cannot be empty")
        if decimals < 0 or decimals > 18:
            raise TokenError(f"Decimals must be 0-18, got {decimals}")
        if total_supply < 0:
            raise TokenError("Total supply cannot be negative")

        super().__init__(ledger, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.minter = to_checksum_address(holder) if holder else None

        if total_supply and holder:
            self._credit(self.minter, total_supply)
            self._store("total_supply", total_supply)

        logger.info(f"ERC20 deployed: {symbol} ({name}) at {short_address(self.address)}")

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._load("total_supply", 0)

    def balance_of(self, address: str) -> int:
        return self._load(("balance", to_checksum_address(address)), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._load(("allowance", to_checksum_address(owner), to_checksum_address(spender)), 0)

    # ── Internals ─────────────────────────────────────────────────────

    def _credit(self, holder: str, amount: int) -> None:
        self._store(("balance", holder), self.balance_of(holder) + amount)

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise TokenError("Transfer amount cannot be negative")
        require_non_null(recipient, "ERC20: transfer to the zero address")
        bal = self.balance_of(sender)
        if bal < amount:
            raise InsufficientBalanceError(
                f"ERC20: {short_address(sender)} balance {bal} < transfer amount {amount}"
            )
        self._store(("balance", sender), bal - amount)
        self._credit(to_checksum_address(recipient), amount)
        self.emit("Transfer", sender=sender, recipient=to_checksum_address(recipient), value=amount)
        logger.debug(f"Transfer: {short_address(sender)} → {short_address(recipient)} {amount} {self.symbol}")

    # ── Core ERC-20 operations ────────────────────────────────────────

    @external("transfer(address,uint256)")
    @transaction
    def transfer(self, caller: str, recipient: str, amount: int) -> bool:
        self._move(caller, recipient, amount)
        return True

    @external("approve(address,uint256)")
    @transaction
    def approve(self, caller: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise TokenError("Allowance amount cannot be negative")
        spender = require_non_null(spender, "ERC20: approve to the zero address")
        self._store(("allowance", caller, spender), amount)
        self.emit("Approval", owner=caller, spender=spender, value=amount)
        return True

    @external("transferFrom(address,address,uint256)")
    @transaction
    def transfer_from(self, caller: str, sender: str, recipient: str, amount: int) -> bool:
        sender = to_checksum_address(sender)
        allowed = self.allowance(sender, caller)
        if allowed < amount:
            raise InsufficientAllowanceError(
                f"ERC20: allowance {allowed} of {short_address(caller)} < {amount}"
            )
        self._store(("allowance", sender, caller), allowed - amount)
        self._move(sender, recipient, amount)
        return True

    @external("mint(address,uint256)")
    @transaction
    def mint(self, caller: str, recipient: str, amount: int) -> bool:
        if self.minter is None or caller != self.minter:
            raise UnauthorizedError("ERC20: caller is not the minter")
        if amount < 0:
            raise TokenError("Mint amount cannot be negative")
        recipient = require_non_null(recipient, "ERC20: mint to the zero address")
        self._credit(recipient, amount)
        self._store("total_supply", self.total_supply + amount)
        self.emit("Transfer", sender=ZERO_ADDRESS, recipient=recipient, value=amount)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalSupply": str(self.total_supply),
        }

    def __repr__(self) -> str:
        return f"<ERC20Token {self.symbol} supply={self.total_supply}>"
