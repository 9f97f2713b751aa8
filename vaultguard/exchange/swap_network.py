"""
Swap Network

Fixed-rate token exchange used as the swap-rate source of the relay refund
path and as the liquidity venue of the token swap handler.

Rates are quoted per token as "ether per token, scaled by 1e18". The rate
of an ether-to-token swap is the inverse, ``1e36 // token_rate``.
"""

from typing import Tuple

from ..constants import ETH_TOKEN, ETHER_DECIMALS
from ..crypto.address import short_address, to_checksum_address
from ..crypto.contract import encode_function_call
from ..exceptions import ContractCallError, PriceNotAvailableError
from ..ledger.contract import external, transaction
from ..logger import get_logger
from ..infrastructure.owned import Owned

logger = get_logger(__name__)

RATE_PRECISION = 10 ** 18


class SwapNetwork(Owned):
    """Constant-rate exchange between ether and listed tokens."""

    def add_token(self, caller: str, token: str, rate: int, decimals: int) -> None:
        self._require_owner(caller)
        token = to_checksum_address(token)
        self._store(("token", token), (rate, decimals))
        logger.info(f"Swap network listed {short_address(token)} at rate {rate}")

    def _token(self, token: str) -> Tuple[int, int]:
        token = to_checksum_address(token)
        if token == ETH_TOKEN:
            return RATE_PRECISION, ETHER_DECIMALS
        listing = self._load(("token", token))
        if listing is None:
            raise PriceNotAvailableError(f"SN: token {short_address(token)} not listed")
        return listing

    # ── Quotes ────────────────────────────────────────────────────────

    def get_expected_rate(self, src: str, dest: str, src_qty: int = 0) -> Tuple[int, int]:
        """
        Rate of ``dest`` units per ``src`` unit, scaled by 1e18.

        Returns:
            (expected rate, slippage rate); slippage equals the expected rate
            on a constant-rate network
        """
        src = to_checksum_address(src)
        dest = to_checksum_address(dest)
        if src == dest:
            return RATE_PRECISION, RATE_PRECISION
        if src == ETH_TOKEN:
            rate = RATE_PRECISION * RATE_PRECISION // self._token(dest)[0]
        elif dest == ETH_TOKEN:
            rate = self._token(src)[0]
        else:
            # token to token goes through ether
            rate = self._token(src)[0] * RATE_PRECISION // self._token(dest)[0]
        return rate, rate

    def swap_rate(self, src: str, dest: str, amount: int) -> int:
        return self.get_expected_rate(src, dest, amount)[0]

    def convert(self, src: str, dest: str, amount: int) -> int:
        """Amount of ``dest`` received for ``amount`` of ``src``."""
        rate = self.swap_rate(src, dest, amount)
        src_decimals = self._token(src)[1]
        dest_decimals = self._token(dest)[1]
        return amount * rate * 10 ** dest_decimals // 10 ** (src_decimals + ETHER_DECIMALS)

    # ── Trading ───────────────────────────────────────────────────────

    @external("trade(address,uint256,address,address,uint256,uint256,address)")
    @transaction
    def trade(
        self,
        caller: str,
        src: str,
        src_amount: int,
        dest: str,
        dest_address: str,
        max_dest_amount: int,
        min_conversion_rate: int,
        wallet_id: str,
    ) -> int:
        """
        Swap ``src_amount`` of ``src`` for ``dest`` sent to ``dest_address``.

        Ether must arrive as the value of the call; tokens are pulled with
        ``transferFrom`` and therefore need an allowance.
        """
        src = to_checksum_address(src)
        dest = to_checksum_address(dest)
        rate = self.swap_rate(src, dest, src_amount)
        if rate < min_conversion_rate:
            raise ContractCallError("SN: rate below minimum conversion rate")
        dest_amount = min(self.convert(src, dest, src_amount), max_dest_amount)

        if src != ETH_TOKEN:
            self.ledger.call(
                self.address,
                src,
                0,
                encode_function_call(
                    "transferFrom(address,address,uint256)", caller, self.address, src_amount
                ),
            )
        if dest == ETH_TOKEN:
            self.ledger.call(self.address, dest_address, dest_amount)
        else:
            self.ledger.call(
                self.address,
                dest,
                0,
                encode_function_call("transfer(address,uint256)", dest_address, dest_amount),
            )

        self.emit(
            "ExecuteTrade",
            sender=caller,
            src=src,
            dest=dest,
            src_amount=src_amount,
            dest_amount=dest_amount,
        )
        logger.debug(
            f"Trade {src_amount} {short_address(src)} → {dest_amount} {short_address(dest)}"
        )
        return dest_amount

    def receive(self, caller: str, value: int) -> None:
        """Ether is accepted as trade input and as liquidity."""
