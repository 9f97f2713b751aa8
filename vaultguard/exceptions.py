"""
VaultGuard Exceptions

Custom exception classes for the wallet control plane. Every rejection carries
a short human-readable reason, available as ``str(exc)`` or ``exc.reason``.
"""


class VaultGuardException(Exception):
    """Base exception for VaultGuard."""

    @property
    def reason(self) -> str:
        return str(self)


class UnauthorizedError(VaultGuardException):
    """Caller or signer set is not allowed to perform the action."""
    pass


class InvalidSignatureError(UnauthorizedError):
    """Signature is malformed or does not recover to an expected signer."""
    pass


class InvalidKeyError(VaultGuardException):
    """Invalid cryptographic key."""
    pass


class WalletLockedError(VaultGuardException):
    """Wallet is locked by a guardian."""
    pass


class LimitExceededError(VaultGuardException):
    """Action value is above the wallet's daily unspent amount."""
    pass


class NotWhitelistedYetError(VaultGuardException):
    """Destination is not (or not yet) whitelisted."""
    pass


class TimeWindowError(VaultGuardException):
    """Action attempted outside of its permitted time window."""
    pass


class NotYetExecutableError(TimeWindowError):
    """Security period has not elapsed yet."""
    pass


class WindowExpiredError(TimeWindowError):
    """Execution window has already closed."""
    pass


class NotFoundError(VaultGuardException):
    """Referenced entry does not exist."""
    pass


class AlreadyTerminalError(VaultGuardException):
    """Entry already reached a terminal state."""
    pass


class AlreadyExistsError(VaultGuardException):
    """Entry or contract already exists."""
    pass


class NoModulesError(VaultGuardException):
    """Wallet cannot be created without modules."""
    pass


class NullAddressError(VaultGuardException):
    """A required address is the zero address."""
    pass


class NullGuardianError(NullAddressError):
    """Guardian-variant call was given a null guardian."""
    pass


class GuardianStorageMissingError(VaultGuardException):
    """No guardian storage is configured."""
    pass


class InvalidGuardianError(VaultGuardException):
    """Principal cannot act as a guardian of the wallet."""
    pass


class ReplayDetectedError(VaultGuardException):
    """Signed payload was already consumed."""
    pass


class ModuleNotRegisteredError(VaultGuardException):
    """Module is not in the module registry."""
    pass


class InsufficientBalanceError(VaultGuardException):
    """Account balance is too low."""
    pass


class ContractCallError(VaultGuardException):
    """Message call could not be dispatched."""
    pass


class PriceNotAvailableError(VaultGuardException):
    """No price is known for the asset."""
    pass


class RelayError(VaultGuardException):
    """Relayed request is malformed."""
    pass


class ConfigurationError(VaultGuardException):
    """Configuration error."""
    pass
