"""
Token Swap Handler

Owner-initiated swaps through the swap network. A fee, expressed in basis
points of the source amount, is taken before the swap and paid to the fee
collector.
"""

from typing import Any, Tuple

from ..constants import DEFAULT_FEE_RATIO, ETH_TOKEN, FEE_RATIO_DENOMINATOR
from ..crypto.address import short_address, to_checksum_address
from ..crypto.contract import encode_function_call
from ..ledger.contract import external, transaction
from ..logger import get_logger
from .relayer import RelayerModule

logger = get_logger(__name__)

TRADE_SIGNATURE = "trade(address,uint256,address,address,uint256,uint256,address)"


class TokenSwapHandler(RelayerModule):

    NAME = "TokenSwapHandler"
    PREFIX = "TE"

    def __init__(
        self,
        ledger,
        registry,
        guardian_storage,
        swap_network,
        fee_collector: str,
        fee_ratio: int = DEFAULT_FEE_RATIO,
        **kwargs,
    ):
        kwargs.setdefault("swap_network", swap_network)
        super().__init__(ledger, registry, guardian_storage, **kwargs)
        if not 0 <= fee_ratio < FEE_RATIO_DENOMINATOR:
            raise ValueError(f"TE: fee ratio must be in [0, {FEE_RATIO_DENOMINATOR})")
        self.fee_collector = to_checksum_address(fee_collector)
        self.fee_ratio = fee_ratio

    def get_required_signatures(self, wallet: str, method: str, args: Tuple[Any, ...]) -> int:
        return 1

    def fee(self, src_amount: int) -> int:
        return src_amount * self.fee_ratio // FEE_RATIO_DENOMINATOR

    def get_expected_trade(self, src: str, dest: str, src_amount: int) -> Tuple[int, int]:
        """
        Quote a swap net of the fee.

        Returns:
            (destination amount, expected rate)
        """
        rate, _ = self.swap_network.get_expected_rate(src, dest, src_amount)
        dest_amount = self.swap_network.convert(src, dest, src_amount - self.fee(src_amount))
        return dest_amount, rate

    @external("trade(address,address,uint256,address,uint256,uint256)")
    @transaction
    def trade(
        self,
        caller: str,
        wallet: str,
        src: str,
        src_amount: int,
        dest: str,
        max_dest_amount: int,
        min_conversion_rate: int,
    ) -> int:
        """Swap ``src_amount`` of ``src`` held by the wallet into ``dest``."""
        wallet = to_checksum_address(wallet)
        src = to_checksum_address(src)
        dest = to_checksum_address(dest)
        self._require_unlocked(wallet)
        self._require_owner(wallet, caller)

        fee = self.fee(src_amount)
        amount = src_amount - fee
        network = self.swap_network.address
        trade_data = encode_function_call(
            TRADE_SIGNATURE, src, amount, dest, wallet, max_dest_amount, min_conversion_rate, self.fee_collector
        )

        if src == ETH_TOKEN:
            if fee:
                self._invoke_wallet(wallet, self.fee_collector, fee)
            dest_amount = self._invoke_wallet(wallet, network, amount, trade_data)
        else:
            if fee:
                self._invoke_wallet(
                    wallet, src, 0, encode_function_call("transfer(address,uint256)", self.fee_collector, fee)
                )
            self._invoke_wallet(
                wallet, src, 0, encode_function_call("approve(address,uint256)", network, amount)
            )
            dest_amount = self._invoke_wallet(wallet, network, 0, trade_data)

        self.emit(
            "TokenExchanged",
            wallet=wallet,
            src_token=src,
            src_amount=src_amount,
            dest_token=dest,
            dest_amount=dest_amount,
        )
        logger.info(
            f"Swap for {short_address(wallet)}: {src_amount} {short_address(src)} → "
            f"{dest_amount} {short_address(dest)} (fee {fee})"
        )
        return dest_amount
