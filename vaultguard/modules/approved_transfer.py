"""
Approved Transfer

Transfers and contract calls co-signed by the owner and a majority of the
guardians. With that much approval the daily limit and the whitelist do
not apply. Every method is reachable through the relay only.
"""

from typing import Any, Tuple

from ..crypto.address import to_checksum_address
from ..exceptions import UnauthorizedError
from ..ledger.contract import external, transaction
from .base_transfer import BaseTransfer
from .relayer import ceil_half


class ApprovedTransfer(BaseTransfer):

    NAME = "ApprovedTransfer"
    PREFIX = "AT"

    def get_required_signatures(self, wallet: str, method: str, args: Tuple[Any, ...]) -> int:
        count = self.guardian_storage.guardian_count(wallet)
        if count == 0:
            raise UnauthorizedError("AT: no guardians set on wallet")
        return 1 + ceil_half(count)

    @external("transferToken(address,address,address,uint256,bytes)")
    @transaction
    def transfer_token(
        self, caller: str, wallet: str, token: str, to: str, amount: int, data: bytes = b""
    ) -> None:
        self._require_relayed(caller)
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._do_transfer(wallet, token, to, amount, data)

    @external("callContract(address,address,uint256,bytes)")
    @transaction
    def call_contract(self, caller: str, wallet: str, contract: str, value: int, data: bytes) -> None:
        self._require_relayed(caller)
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._check_call_target(wallet, contract)
        self._do_call_contract(wallet, contract, value, data)

    @external("approveTokenAndCallContract(address,address,address,uint256,bytes)")
    @transaction
    def approve_token_and_call_contract(
        self, caller: str, wallet: str, token: str, contract: str, amount: int, data: bytes
    ) -> None:
        self._require_relayed(caller)
        wallet = to_checksum_address(wallet)
        self._require_unlocked(wallet)
        self._check_call_target(wallet, contract)
        self._do_approve_token_and_call_contract(wallet, token, contract, amount, data)
