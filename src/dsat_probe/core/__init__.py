"""Core token derivation and probing functionality."""

from .canonical import Ordering, canonical_query_string
from .config import ProbeSettings, load_settings
from .exceptions import (
    ConfigurationError,
    ParameterSetError,
    ProbeError,
    TokenSchemeError,
)
from .models import (
    FailureKind,
    Insertion,
    ProbeResult,
    TimestampComponents,
    TokenScheme,
    Variant,
)
from .params import ParameterSet
from .probe import ProbeExecutor
from .token import (
    BUILTIN_SCHEMES,
    DEFAULT_SCHEME,
    compute_digest,
    derive_token,
    get_scheme,
    splice,
)

__all__ = [
    "BUILTIN_SCHEMES",
    "DEFAULT_SCHEME",
    "ConfigurationError",
    "FailureKind",
    "Insertion",
    "Ordering",
    "ParameterSet",
    "ParameterSetError",
    "ProbeError",
    "ProbeExecutor",
    "ProbeResult",
    "ProbeSettings",
    "TimestampComponents",
    "TokenScheme",
    "TokenSchemeError",
    "Variant",
    "canonical_query_string",
    "compute_digest",
    "derive_token",
    "get_scheme",
    "load_settings",
    "splice",
]
