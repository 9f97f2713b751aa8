"""
VaultGuard TOML Configuration Loader

Loads all sections of config.toml with environment variable overrides.
Every section is a dataclass with ``from_dict`` and ``apply_env``.

Environment variable mapping:
    [settings] security_period → VAULTGUARD_SECURITY_PERIOD
    [settings] default_limit   → VAULTGUARD_DEFAULT_LIMIT
    [multisig] owners          → VAULTGUARD_MULTISIG_OWNERS (comma separated)
    [logging] level            → VAULTGUARD_LOG_LEVEL
    ...

Keys of multisig owners MUST come from the environment or a key store, never TOML.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    DEFAULT_FEE_RATIO,
    DEFAULT_LIMIT,
    DEFAULT_LOCK_PERIOD,
    DEFAULT_RECOVERY_PERIOD,
    DEFAULT_SECURITY_PERIOD,
    DEFAULT_SECURITY_WINDOW,
    FEE_RATIO_DENOMINATOR,
    MULTISIG_MAX_OWNERS,
    RELAY_BASE_GAS,
    RELAY_DEFAULT_GAS_LIMIT,
    RELAY_GAS_PER_BYTE,
    RELAY_GAS_PER_SIGNATURE,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class SettingsConfig:
    """[settings] section: policy timings and limits shared by the modules."""
    security_period: int = DEFAULT_SECURITY_PERIOD
    security_window: int = DEFAULT_SECURITY_WINDOW
    lock_period: int = DEFAULT_LOCK_PERIOD
    recovery_period: int = DEFAULT_RECOVERY_PERIOD
    default_limit: int = DEFAULT_LIMIT
    fee_ratio: int = DEFAULT_FEE_RATIO

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettingsConfig":
        return cls(
            security_period=int(data.get("security_period", DEFAULT_SECURITY_PERIOD)),
            security_window=int(data.get("security_window", DEFAULT_SECURITY_WINDOW)),
            lock_period=int(data.get("lock_period", DEFAULT_LOCK_PERIOD)),
            recovery_period=int(data.get("recovery_period", DEFAULT_RECOVERY_PERIOD)),
            default_limit=int(data.get("default_limit", DEFAULT_LIMIT)),
            fee_ratio=int(data.get("fee_ratio", DEFAULT_FEE_RATIO)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("VAULTGUARD_SECURITY_PERIOD"):
            self.security_period = int(v)
        if v := os.environ.get("VAULTGUARD_SECURITY_WINDOW"):
            self.security_window = int(v)
        if v := os.environ.get("VAULTGUARD_LOCK_PERIOD"):
            self.lock_period = int(v)
        if v := os.environ.get("VAULTGUARD_RECOVERY_PERIOD"):
            self.recovery_period = int(v)
        if v := os.environ.get("VAULTGUARD_DEFAULT_LIMIT"):
            self.default_limit = int(v)
        if v := os.environ.get("VAULTGUARD_FEE_RATIO"):
            self.fee_ratio = int(v)

    def validate(self) -> None:
        for name in ("security_period", "lock_period", "recovery_period", "default_limit"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be >= 0")
        if self.security_window <= 0:
            raise ConfigurationError("security_window must be > 0")
        if not 0 <= self.fee_ratio < FEE_RATIO_DENOMINATOR:
            raise ConfigurationError(
                f"fee_ratio must be in [0, {FEE_RATIO_DENOMINATOR})"
            )


@dataclass
class RelayConfig:
    """[relay] section: deterministic cost model used for refunds."""
    base_gas: int = RELAY_BASE_GAS
    gas_per_byte: int = RELAY_GAS_PER_BYTE
    gas_per_signature: int = RELAY_GAS_PER_SIGNATURE
    default_gas_limit: int = RELAY_DEFAULT_GAS_LIMIT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelayConfig":
        return cls(
            base_gas=int(data.get("base_gas", RELAY_BASE_GAS)),
            gas_per_byte=int(data.get("gas_per_byte", RELAY_GAS_PER_BYTE)),
            gas_per_signature=int(data.get("gas_per_signature", RELAY_GAS_PER_SIGNATURE)),
            default_gas_limit=int(data.get("default_gas_limit", RELAY_DEFAULT_GAS_LIMIT)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("VAULTGUARD_RELAY_BASE_GAS"):
            self.base_gas = int(v)
        if v := os.environ.get("VAULTGUARD_RELAY_GAS_LIMIT"):
            self.default_gas_limit = int(v)


@dataclass
class MultisigConfig:
    """[multisig] section."""
    threshold: int = 1
    owners: List[str] = field(default_factory=list)
    autosign: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MultisigConfig":
        return cls(
            threshold=int(data.get("threshold", 1)),
            owners=list(data.get("owners", [])),
            autosign=bool(data.get("autosign", True)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("VAULTGUARD_MULTISIG_THRESHOLD"):
            self.threshold = int(v)
        if v := os.environ.get("VAULTGUARD_MULTISIG_OWNERS"):
            self.owners = [o.strip() for o in v.split(",") if o.strip()]

    def validate(self) -> None:
        if self.threshold < 1:
            raise ConfigurationError("multisig threshold must be >= 1")
        if self.owners:
            if len(self.owners) > MULTISIG_MAX_OWNERS:
                raise ConfigurationError(
                    f"multisig supports at most {MULTISIG_MAX_OWNERS} owners"
                )
            if self.threshold > len(self.owners):
                raise ConfigurationError(
                    f"multisig threshold ({self.threshold}) exceeds owner count ({len(self.owners)})"
                )


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(level=str(data.get("level", "INFO")).upper())

    def apply_env(self) -> None:
        if v := os.environ.get("VAULTGUARD_LOG_LEVEL"):
            self.level = v.upper()


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class VaultGuardConfig:
    """
    Complete control-plane configuration.

    Usage::

        cfg = VaultGuardConfig.from_file("config.toml")
        cfg.validate()
        print(cfg.settings.security_period)
    """
    settings: SettingsConfig = field(default_factory=SettingsConfig)
    relay: RelayConfig = field(default_factory=RelayConfig)
    multisig: MultisigConfig = field(default_factory=MultisigConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultGuardConfig":
        return cls(
            settings=SettingsConfig.from_dict(data.get("settings", {})),
            relay=RelayConfig.from_dict(data.get("relay", {})),
            multisig=MultisigConfig.from_dict(data.get("multisig", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "VaultGuardConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to config.toml

        Returns:
            VaultGuardConfig instance
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            raw = tomli.load(f)

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.settings.apply_env()
        self.relay.apply_env()
        self.multisig.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.settings.validate()
        self.multisig.validate()
        if self.logging.level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        if self.relay.default_gas_limit < self.relay.base_gas:
            raise ConfigurationError("default_gas_limit must cover base_gas")
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "settings": {
                "security_period": self.settings.security_period,
                "security_window": self.settings.security_window,
                "lock_period": self.settings.lock_period,
                "recovery_period": self.settings.recovery_period,
                "default_limit": self.settings.default_limit,
                "fee_ratio": self.settings.fee_ratio,
            },
            "relay": {
                "base_gas": self.relay.base_gas,
                "gas_per_byte": self.relay.gas_per_byte,
                "gas_per_signature": self.relay.gas_per_signature,
                "default_gas_limit": self.relay.default_gas_limit,
            },
            "multisig": {
                "threshold": self.multisig.threshold,
                "owners": list(self.multisig.owners),
                "autosign": self.multisig.autosign,
            },
            "logging": {
                "level": self.logging.level,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> VaultGuardConfig:
    """
    Load control-plane configuration.

    Resolution order:
        1. Explicit *path* argument
        2. VAULTGUARD_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("VAULTGUARD_CONFIG", "config.toml")

    return VaultGuardConfig.from_file(path)
