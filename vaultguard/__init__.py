"""
VaultGuard: smart-wallet control plane.

Policy modules deciding whether an outgoing wallet action executes now, waits,
or is rejected, together with the guardian trust layer, the meta-transaction
relay and the counterfactual wallet factory.
"""

from .constants import VAULTGUARD_VERSION

__version__ = VAULTGUARD_VERSION
