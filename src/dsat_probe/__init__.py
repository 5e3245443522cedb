"""DSAT Token Probe Package

A Python package for reproducing the Macau DSAT live-bus client token and
probing which token scheme the service accepts.
"""

__version__ = "0.1.0"

from .core.canonical import Ordering, canonical_query_string
from .core.models import ProbeResult, Variant
from .core.params import ParameterSet
from .core.probe import ProbeExecutor
from .core.token import derive_token

__all__ = [
    "Ordering",
    "ParameterSet",
    "ProbeExecutor",
    "ProbeResult",
    "Variant",
    "canonical_query_string",
    "derive_token",
]
