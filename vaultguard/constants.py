"""
VaultGuard Constants

Protocol sentinels, policy defaults and the relay cost model shared by every
module, plus the logging settings read once from ``.env``.
"""
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
_env = dotenv_values(".env")


class Setting(str):
    """String setting taken from ``.env`` that remembers its built-in default."""

    def __new__(cls, key, default):
        raw = _env.get(key)
        obj = str.__new__(cls, default if raw is None or not raw.strip() else raw.strip())
        obj._default = default
        return obj

    def default(self):
        return self._default


def _flag(key, default):
    raw = _env.get(key)
    if raw is None or raw.strip().casefold() not in {"true", "false"}:
        return default
    return raw.strip().casefold() == "true"


LOG_LEVEL = Setting('LOG_LEVEL', 'INFO')
LOG_FORMAT = Setting('LOG_FORMAT', '%(asctime)s - %(levelname)s - %(name)s - %(message)s')
LOG_DATE_FORMAT = Setting('LOG_DATE_FORMAT', '%Y-%m-%dT%H:%M:%S')
LOG_CONSOLE_HIGHLIGHTING = _flag('LOG_CONSOLE_HIGHLIGHTING', True)
LOG_FILE_OUTPUT = _flag('LOG_FILE_OUTPUT', False)

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# PROTOCOL CONSTANTS
# ==================================================================================
VAULTGUARD_VERSION = '1.0.0'

# Sentinel standing for the native asset wherever a token address is expected
ETH_TOKEN = '0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE'
ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'
ZERO_BYTES32 = b'\x00' * 32
ETHER_DECIMALS = 18

# Address that deploys contracts created without an explicit deployer
GENESIS_DEPLOYER = '0x00000000000000000000000000000000000000aa'


# ==================================================================================
# POLICY DEFAULTS
# ==================================================================================
DEFAULT_SECURITY_PERIOD = 24 * 60 * 60        # 24 hours
DEFAULT_SECURITY_WINDOW = 12 * 60 * 60        # 12 hours
DEFAULT_LOCK_PERIOD = 5 * 24 * 60 * 60        # 5 days
DEFAULT_RECOVERY_PERIOD = 5 * 24 * 60 * 60    # 5 days
DEFAULT_LIMIT = 10 ** 18                      # 1 ether per rolling window
LIMIT_PERIOD = 24 * 60 * 60                   # length of the spending window
LIMIT_DISABLED = 2 ** 256 - 1

# Action kinds hashed into pending-transfer identifiers
ACTION_TRANSFER = 0

# Fee ratios are expressed in basis points
FEE_RATIO_DENOMINATOR = 10000
DEFAULT_FEE_RATIO = 0


# ==================================================================================
# RELAY COST MODEL
# ==================================================================================
RELAY_BASE_GAS = 21000
RELAY_GAS_PER_BYTE = 16
RELAY_GAS_PER_SIGNATURE = 5000
RELAY_DEFAULT_GAS_LIMIT = 1_000_000
SIGNATURE_LENGTH = 65


# ==================================================================================
# GOVERNANCE
# ==================================================================================
MULTISIG_MAX_OWNERS = 10
# Init-code prefix of the wallet proxy; the implementation address is appended
PROXY_CREATION_CODE = bytes.fromhex(
    '608060405234801561001057600080fd5b5060405160208061'
    '01e58339810180604052602081101561003057600080fd5b5051'
)
