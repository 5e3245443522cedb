"""Canonical query string used as the token hash input."""

from enum import Enum

from .params import ParameterSet


class Ordering(str, Enum):
    """How parameters are ordered before hashing."""

    INSERTION = "insertion"
    SORTED = "sorted"


def canonical_query_string(
    params: ParameterSet, ordering: Ordering = Ordering.INSERTION
) -> str:
    """Join parameters as ``key=value`` pairs separated by ``&``.

    Values are used verbatim, without percent-encoding, since the digest has
    to match the raw bytes the web client hashes.

    Args:
        params: Parameters to serialize
        ordering: Keep insertion order or sort by key

    Returns:
        The string to hash (empty for an empty parameter set)
    """
    ordering = Ordering(ordering)
    if ordering is Ordering.SORTED:
        pairs = params.sorted_pairs()
    else:
        pairs = list(params.pairs)
    return "&".join(f"{key}={value}" for key, value in pairs)
