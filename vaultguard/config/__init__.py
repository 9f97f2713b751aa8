"""
VaultGuard Configuration

Loads all sections of config.toml.
Environment variables override TOML values.
"""

from .loader import (
    VaultGuardConfig,
    SettingsConfig,
    RelayConfig,
    MultisigConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "VaultGuardConfig",
    "SettingsConfig",
    "RelayConfig",
    "MultisigConfig",
    "LoggingConfig",
    "load_config",
]
