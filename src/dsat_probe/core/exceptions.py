"""Custom exceptions for DSAT token probing."""


class ProbeError(Exception):
    """Base exception for token probe errors."""

    pass


class ParameterSetError(ProbeError):
    """Raised when a parameter set is malformed (duplicate key, non-string value)."""

    pass


class TokenSchemeError(ProbeError):
    """Raised when a token derivation scheme cannot be applied."""

    pass


class ConfigurationError(ProbeError):
    """Raised when settings or variant definitions cannot be loaded."""

    pass
