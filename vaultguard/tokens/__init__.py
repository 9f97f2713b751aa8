"""
VaultGuard Token Standard

ERC-20 tokens held and moved by wallets.
"""

from .erc20 import ERC20Token, TokenError, InsufficientAllowanceError

__all__ = [
    "ERC20Token",
    "TokenError",
    "InsufficientAllowanceError",
]
