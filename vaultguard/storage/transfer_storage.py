"""
Transfer Storage

Per-wallet whitelist of trusted destinations. Each entry is the timestamp
after which the destination is considered whitelisted (0 = absent).
"""

from ..crypto.address import to_checksum_address
from ..exceptions import UnauthorizedError
from ..ledger.contract import Contract, transaction


class TransferStorage(Contract):

    def _require_module(self, wallet: str, caller: str) -> None:
        contract = self.ledger.contract_at(wallet)
        if contract is None or not contract.authorised(caller):
            raise UnauthorizedError("must be an authorized module")

    @transaction
    def set_whitelist(self, caller: str, wallet: str, target: str, value: int) -> None:
        wallet = to_checksum_address(wallet)
        self._require_module(wallet, caller)
        self._store(("whitelist", wallet, to_checksum_address(target)), value or None)

    def get_whitelist(self, wallet: str, target: str) -> int:
        return self._load(
            ("whitelist", to_checksum_address(wallet), to_checksum_address(target)), 0
        )
