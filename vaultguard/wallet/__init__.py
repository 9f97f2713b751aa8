"""
VaultGuard Wallet

The custodial wallet proxy governed by policy modules.
"""

from .base import BaseWallet

__all__ = ["BaseWallet"]
