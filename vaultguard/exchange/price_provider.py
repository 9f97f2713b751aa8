"""
Token Price Provider

Values token amounts in the wallets' accounting asset (ether) so that token
transfers can be checked against the daily limit. Prices are pushed by
managers, either directly or synchronised from the swap network.
"""

from ..constants import ETH_TOKEN
from ..crypto.address import short_address, to_checksum_address
from ..exceptions import PriceNotAvailableError
from ..ledger.contract import external, transaction
from ..logger import get_logger
from ..infrastructure.owned import Managed

logger = get_logger(__name__)


class TokenPriceProvider(Managed):
    """
    Per-token price in wei for one whole token (``10 ** decimals`` units).
    """

    def __init__(self, ledger, owner: str, swap_network=None, address: str = None):
        super().__init__(ledger, owner, address)
        self.swap_network = swap_network

    @external("setPrice(address,uint256)")
    @transaction
    def set_price(self, caller: str, token: str, price: int) -> None:
        self._require_manager(caller)
        token = to_checksum_address(token)
        self._store(("price", token), price or None)
        self.emit("PriceUpdated", token=token, price=price)
        logger.info(f"Price of {short_address(token)} set to {price}")

    @external("syncPrice(address)")
    @transaction
    def sync_price(self, caller: str, token: str) -> int:
        """Copy the swap network's current ether rate for ``token``."""
        self._require_manager(caller)
        if self.swap_network is None:
            raise PriceNotAvailableError("TPP: no swap network configured")
        token = to_checksum_address(token)
        rate, _ = self.swap_network.get_expected_rate(token, ETH_TOKEN)
        self._store(("price", token), rate or None)
        self.emit("PriceUpdated", token=token, price=rate)
        return rate

    def cached_price(self, token: str) -> int:
        return self._load(("price", to_checksum_address(token)), 0)

    def get_ether_value(self, amount: int, token: str) -> int:
        """
        Value of ``amount`` token units in wei.

        Raises:
            PriceNotAvailableError: No price has been set for the token
        """
        token = to_checksum_address(token)
        if token == ETH_TOKEN:
            return amount
        price = self.cached_price(token)
        if not price:
            raise PriceNotAvailableError(f"TPP: no price for {short_address(token)}")
        contract = self.ledger.contract_at(token)
        decimals = getattr(contract, "decimals", 18)
        return price * amount // 10 ** decimals

    value_in_accounting_asset = get_ether_value
