"""
Base Transfer

Asset-moving primitives shared by the transfer handler and the approved
transfer module. Each primitive goes through the wallet's ``invoke`` and
emits the event clients use to follow the wallet's activity.
"""

from ..constants import ETH_TOKEN
from ..crypto.address import short_address, to_checksum_address
from ..crypto.contract import encode_function_call
from ..exceptions import UnauthorizedError
from ..logger import get_logger
from .relayer import RelayerModule

logger = get_logger(__name__)


class BaseTransfer(RelayerModule):

    def _check_call_target(self, wallet: str, contract: str) -> None:
        """A wallet may not call itself or one of its own modules."""
        contract = to_checksum_address(contract)
        if contract == wallet or self._wallet(wallet).authorised(contract):
            raise UnauthorizedError(f"{self.PREFIX}: Forbidden contract")

    def token_allowance(self, wallet: str, token: str, spender: str) -> int:
        contract = self.ledger.contract_at(token)
        return contract.allowance(wallet, spender) if contract is not None else 0

    def _do_transfer(self, wallet: str, token: str, to: str, amount: int, data: bytes = b"") -> None:
        token = to_checksum_address(token)
        to = to_checksum_address(to)
        if token == ETH_TOKEN:
            self._invoke_wallet(wallet, to, amount, data)
        else:
            self._invoke_wallet(
                wallet, token, 0, encode_function_call("transfer(address,uint256)", to, amount)
            )
        self.emit("Transfer", wallet=wallet, token=token, amount=amount, to=to, data=data)
        logger.info(f"Transfer {amount} of {short_address(token)} from {short_address(wallet)} to {short_address(to)}")

    def _do_approve_token(self, wallet: str, token: str, spender: str, amount: int) -> None:
        token = to_checksum_address(token)
        spender = to_checksum_address(spender)
        self._invoke_wallet(
            wallet, token, 0, encode_function_call("approve(address,uint256)", spender, amount)
        )
        self.emit("Approved", wallet=wallet, token=token, amount=amount, spender=spender)

    def _do_call_contract(self, wallet: str, contract: str, value: int, data: bytes) -> None:
        contract = to_checksum_address(contract)
        self._invoke_wallet(wallet, contract, value, data)
        self.emit("CalledContract", wallet=wallet, to=contract, amount=value, data=data)

    def _do_approve_token_and_call_contract(
        self, wallet: str, token: str, contract: str, amount: int, data: bytes
    ) -> None:
        """Approve ``contract`` to spend ``amount`` of ``token``, then call it."""
        self._do_approve_token(wallet, token, contract, amount)
        self._do_call_contract(wallet, contract, 0, data)
