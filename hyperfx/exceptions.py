"""
HYPERFX ERRORS

Centralized domain errors for the HyperFX core. Nothing in the core retries;
every error below propagates to the caller.
"""


class HyperFXError(Exception):
    """Base exception for all HyperFX core failures."""


class ConfigurationError(HyperFXError):
    """Raised when the deployment configuration cannot support startup."""


class UnknownCurrencyError(HyperFXError, LookupError):
    """Raised when a ledger has no asset scale entry. Always a programming error."""

    def __init__(self, ledger):
        self.ledger = ledger
        super().__init__(f"No asset scale registered for ledger {ledger}")


class NamespaceError(HyperFXError):
    """Raised when the namespace file cannot be read, parsed or written."""


class NamespaceNotFoundError(NamespaceError):
    """Raised when no namespace has been persisted yet."""


class LedgerEngineError(HyperFXError):
    """Raised when a request to the ledger engine fails as a whole."""


class BootstrapError(HyperFXError):
    """Raised when system accounts could not be provisioned."""

    def __init__(self, message: str, report=None):
        self.report = report
        super().__init__(message)


class RateError(HyperFXError):
    """Base exception for exchange rate failures."""


class RateUnavailableError(RateError):
    """Raised when no rate can be supplied for a currency."""


class StaleRateError(RateUnavailableError):
    """Raised when the only known rate is older than the allowed age."""


class InvalidRateError(RateError, ValueError):
    """Raised on zero, negative or non-finite rates."""
