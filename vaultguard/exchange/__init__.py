"""
VaultGuard Exchange

Swap-rate source and accounting-asset valuation of tokens.
"""

from .swap_network import SwapNetwork
from .price_provider import TokenPriceProvider

__all__ = ["SwapNetwork", "TokenPriceProvider"]
