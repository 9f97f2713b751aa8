"""
Guardian principals.

A guardian is either a plain key, authorised by its own signature, or a
contract (typically another wallet) whose owner signs on its behalf. Both
expose the same ``authorizes(signer)`` capability so that quorum checks
never need to know which kind they are looking at.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from ..constants import ZERO_ADDRESS
from ..crypto.address import to_checksum_address
from ..crypto.contract import encode_function_call
from ..exceptions import ContractCallError

OWNER_CALL = encode_function_call("owner()")


class GuardianPrincipal(ABC):

    def __init__(self, ledger, address: str):
        self.ledger = ledger
        self.address = to_checksum_address(address)

    @abstractmethod
    def authorizes(self, signer: str) -> bool:
        """True if ``signer``'s signature counts as this guardian's approval."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.address}>"


class KeyGuardian(GuardianPrincipal):

    def authorizes(self, signer: str) -> bool:
        return to_checksum_address(signer) == self.address


class ContractGuardian(GuardianPrincipal):
    """Guardian contract that delegates authorisation to its current owner."""

    def owner(self) -> str:
        try:
            return to_checksum_address(
                self.ledger.call(ZERO_ADDRESS, self.address, 0, OWNER_CALL)
            )
        except (ContractCallError, ValueError):
            return ZERO_ADDRESS

    def authorizes(self, signer: str) -> bool:
        owner = self.owner()
        return owner != ZERO_ADDRESS and owner == to_checksum_address(signer)


def guardian_principal(ledger, address: str) -> GuardianPrincipal:
    if ledger.is_contract(address):
        return ContractGuardian(ledger, address)
    return KeyGuardian(ledger, address)


def is_valid_guardian(ledger, address: str) -> bool:
    """Plain keys are always acceptable; contracts must answer ``owner()``."""
    principal = guardian_principal(ledger, address)
    if isinstance(principal, ContractGuardian):
        return principal.owner() != ZERO_ADDRESS
    return True


def match_guardian(
    ledger, guardians: Sequence[str], signer: str
) -> Tuple[bool, List[str]]:
    """
    Find the guardian authorised by ``signer``.

    Returns:
        (matched, remaining guardians); a matched guardian is removed so it
        cannot be counted twice.
    """
    remaining = list(guardians)
    for i, guardian in enumerate(remaining):
        if guardian_principal(ledger, guardian).authorizes(signer):
            del remaining[i]
            return True, remaining
    return False, remaining
